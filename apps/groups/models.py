# ==========================================
# apps/groups/models.py
# ==========================================

from django.db import models
from django.db.models import Q
import uuid


class DeletionCondition(models.TextChoices):
    SETTLED = 'SETTLED', 'When settled'
    TIME_LIMIT = 'TIME_LIMIT', 'After time limit'


class Group(models.Model):
    """
    Group of people sharing expenses.

    ``written_off`` accumulates the balances discarded when members with an
    open balance were removed. ``ledger_version`` increases with every
    ledger write and guards against concurrent writers.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=50)
    created_by = models.ForeignKey('accounts.User', on_delete=models.CASCADE, related_name='created_groups')
    written_off = models.BigIntegerField(default=0)
    ledger_version = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'groups'
        indexes = [
            models.Index(fields=['created_by', 'created_at'], name='groups_created_b_9c1f0e_idx'),
        ]
        ordering = ['-created_at']

    def __str__(self):
        return self.name

    @property
    def active_members(self):
        return self.members.filter(removed_at__isnull=True)

    def has_member(self, user):
        return self.active_members.filter(user=user).exists()

    def get_member_for(self, user):
        """Active member linked to ``user``, or None."""
        return self.active_members.filter(user=user).first()

    def is_creator(self, user):
        return self.created_by_id == getattr(user, 'id', None)


class GroupMember(models.Model):
    """
    Person inside a group.

    A member is either linked to a registered user or is a named guest
    (``user`` is null). Removed members are kept with ``removed_at`` set so
    that historical transactions keep their references.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    group = models.ForeignKey(Group, on_delete=models.CASCADE, related_name='members')
    user = models.ForeignKey(
        'accounts.User', on_delete=models.SET_NULL, null=True, blank=True,
        related_name='group_memberships',
    )
    name = models.CharField(max_length=50)
    balance = models.BigIntegerField(default=0)
    is_temporary = models.BooleanField(default=False)
    deletion_condition = models.CharField(
        max_length=20, choices=DeletionCondition.choices, blank=True, default='',
    )
    expires_at = models.DateTimeField(null=True, blank=True)
    joined_at = models.DateTimeField(auto_now_add=True)
    removed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = 'group_members'
        constraints = [
            models.UniqueConstraint(
                fields=['group', 'user'],
                condition=Q(removed_at__isnull=True, user__isnull=False),
                name='unique_active_user_per_group',
            ),
        ]
        indexes = [
            models.Index(fields=['group', 'removed_at'], name='group_membe_group_i_4e2a71_idx'),
            models.Index(fields=['is_temporary', 'expires_at'], name='group_membe_is_temp_0b8d3c_idx'),
        ]
        ordering = ['joined_at']

    def __str__(self):
        return f"{self.name} in {self.group.name}"

    @property
    def is_active(self):
        return self.removed_at is None
