# Generated manually for the shared-expense ledger

import uuid
from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Group',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('name', models.CharField(max_length=50)),
                ('written_off', models.BigIntegerField(default=0)),
                ('ledger_version', models.PositiveIntegerField(default=0)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('created_by', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='created_groups', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'groups',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['created_by', 'created_at'], name='groups_created_b_9c1f0e_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='GroupMember',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('name', models.CharField(max_length=50)),
                ('balance', models.BigIntegerField(default=0)),
                ('is_temporary', models.BooleanField(default=False)),
                ('deletion_condition', models.CharField(blank=True, choices=[('SETTLED', 'When settled'), ('TIME_LIMIT', 'After time limit')], default='', max_length=20)),
                ('expires_at', models.DateTimeField(blank=True, null=True)),
                ('joined_at', models.DateTimeField(auto_now_add=True)),
                ('removed_at', models.DateTimeField(blank=True, null=True)),
                ('group', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='members', to='groups.group')),
                ('user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='group_memberships', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'group_members',
                'ordering': ['joined_at'],
                'indexes': [
                    models.Index(fields=['group', 'removed_at'], name='group_membe_group_i_4e2a71_idx'),
                    models.Index(fields=['is_temporary', 'expires_at'], name='group_membe_is_temp_0b8d3c_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(condition=models.Q(('removed_at__isnull', True), ('user__isnull', False)), fields=('group', 'user'), name='unique_active_user_per_group'),
                ],
            },
        ),
    ]
