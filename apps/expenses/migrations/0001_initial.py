# Generated manually for the shared-expense ledger

import uuid
from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('groups', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='LedgerTransaction',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('kind', models.CharField(choices=[('expense', 'Expense'), ('payment', 'Payment')], max_length=20)),
                ('amount', models.BigIntegerField()),
                ('sequence', models.PositiveIntegerField()),
                ('place', models.CharField(blank=True, max_length=200)),
                ('method', models.CharField(blank=True, choices=[('cash', 'Cash'), ('online', 'Online')], max_length=10)),
                ('note', models.CharField(blank=True, max_length=200)),
                ('annotations', models.JSONField(blank=True, default=list)),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('group', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='transactions', to='groups.group')),
                ('paid_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.CASCADE, related_name='expenses_paid', to='groups.groupmember')),
                ('from_member', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.CASCADE, related_name='payments_sent', to='groups.groupmember')),
                ('to_member', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.CASCADE, related_name='payments_received', to='groups.groupmember')),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='ledger_transactions', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'ledger_transactions',
                'ordering': ['sequence'],
                'indexes': [
                    models.Index(fields=['group', 'created_at'], name='ledger_tran_group_i_7d3e52_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(fields=('group', 'sequence'), name='unique_group_sequence'),
                ],
            },
        ),
        migrations.CreateModel(
            name='ExpenseShare',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('amount', models.BigIntegerField()),
                ('position', models.PositiveSmallIntegerField()),
                ('transaction', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='shares', to='expenses.ledgertransaction')),
                ('member', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='expense_shares', to='groups.groupmember')),
            ],
            options={
                'db_table': 'expense_shares',
                'ordering': ['position'],
                'unique_together': {('transaction', 'member')},
            },
        ),
        migrations.CreateModel(
            name='WalletEntry',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('amount', models.BigIntegerField()),
                ('note', models.CharField(blank=True, max_length=200)),
                ('balance_before', models.BigIntegerField()),
                ('balance_after', models.BigIntegerField()),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='wallet_entries', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'wallet_entries',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['user', 'created_at'], name='wallet_entr_user_id_2f6c91_idx'),
                ],
            },
        ),
    ]
