"""
Ledger persistence models.

Amounts are BigIntegerFields in minor currency units. The log is
append-only: only ``annotations`` is ever updated, when a referenced
member is removed.
"""

from django.db import models
from django.utils import timezone
import uuid


class TransactionKind(models.TextChoices):
    EXPENSE = 'expense', 'Expense'
    PAYMENT = 'payment', 'Payment'


class PaymentMethod(models.TextChoices):
    CASH = 'cash', 'Cash'
    ONLINE = 'online', 'Online'


class LedgerTransaction(models.Model):
    """
    One entry of a group's transaction log.

    Expenses use ``paid_by`` and ``shares``; payments use ``from_member``,
    ``to_member`` and ``method``. ``sequence`` is the group ledger version
    right after this entry was appended.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    group = models.ForeignKey('groups.Group', on_delete=models.CASCADE, related_name='transactions')
    kind = models.CharField(max_length=20, choices=TransactionKind.choices)
    amount = models.BigIntegerField()
    sequence = models.PositiveIntegerField()

    # Expense
    paid_by = models.ForeignKey(
        'groups.GroupMember', on_delete=models.CASCADE, null=True, blank=True,
        related_name='expenses_paid',
    )
    place = models.CharField(max_length=200, blank=True)

    # Payment
    from_member = models.ForeignKey(
        'groups.GroupMember', on_delete=models.CASCADE, null=True, blank=True,
        related_name='payments_sent',
    )
    to_member = models.ForeignKey(
        'groups.GroupMember', on_delete=models.CASCADE, null=True, blank=True,
        related_name='payments_received',
    )
    method = models.CharField(max_length=10, choices=PaymentMethod.choices, blank=True)

    note = models.CharField(max_length=200, blank=True)
    annotations = models.JSONField(default=list, blank=True)
    created_by = models.ForeignKey(
        'accounts.User', on_delete=models.SET_NULL, null=True, blank=True,
        related_name='ledger_transactions',
    )
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = 'ledger_transactions'
        constraints = [
            models.UniqueConstraint(fields=['group', 'sequence'], name='unique_group_sequence'),
        ]
        indexes = [
            models.Index(fields=['group', 'created_at'], name='ledger_tran_group_i_7d3e52_idx'),
        ]
        ordering = ['sequence']

    def __str__(self):
        return f"{self.get_kind_display()} {self.amount} in {self.group_id}"


class ExpenseShare(models.Model):
    """Share of one member in an expense, kept in split order."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    transaction = models.ForeignKey(LedgerTransaction, on_delete=models.CASCADE, related_name='shares')
    member = models.ForeignKey('groups.GroupMember', on_delete=models.CASCADE, related_name='expense_shares')
    amount = models.BigIntegerField()
    position = models.PositiveSmallIntegerField()

    class Meta:
        db_table = 'expense_shares'
        unique_together = [['transaction', 'member']]
        ordering = ['position']

    def __str__(self):
        return f"{self.member.name}: {self.amount}"


class WalletEntry(models.Model):
    """Signed change to a user's wallet with the balance before and after."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey('accounts.User', on_delete=models.CASCADE, related_name='wallet_entries')
    amount = models.BigIntegerField()
    note = models.CharField(max_length=200, blank=True)
    balance_before = models.BigIntegerField()
    balance_after = models.BigIntegerField()
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = 'wallet_entries'
        indexes = [
            models.Index(fields=['user', 'created_at'], name='wallet_entr_user_id_2f6c91_idx'),
        ]
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.user_id}: {self.amount:+d}"
