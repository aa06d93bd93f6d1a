"""
Django ORM implementation of the ledger store.

Maps ``apps.groups`` / ``apps.expenses`` rows to the engine's immutable
records and back. Optimistic concurrency is a conditional UPDATE on
``Group.ledger_version``: zero rows updated means someone else wrote first.
"""

import logging

from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import F, Q
from django.utils import timezone

from apps.accounts.models import User
from apps.groups.models import Group, GroupMember
from apps.ledger.exceptions import ConcurrentModificationError, MemberNotInGroupError
from apps.ledger.records import (
    DeletionCondition,
    Expense,
    Group as LedgerGroup,
    Member,
    Payment,
    Share,
)

from .models import ExpenseShare, LedgerTransaction, TransactionKind, WalletEntry

logger = logging.getLogger(__name__)


def _member_record(member: GroupMember) -> Member:
    return Member(
        id=str(member.id),
        name=member.name,
        user_id=str(member.user_id) if member.user_id else None,
        is_temporary=member.is_temporary,
        deletion_condition=DeletionCondition(member.deletion_condition) if member.deletion_condition else None,
        expires_at=member.expires_at,
    )


def transaction_record(obj: LedgerTransaction):
    """Convert a LedgerTransaction row (with shares prefetched) into a record."""
    annotations = tuple(obj.annotations or ())
    if obj.kind == TransactionKind.EXPENSE:
        return Expense(
            id=str(obj.id),
            group_id=str(obj.group_id),
            amount=obj.amount,
            paid_by=str(obj.paid_by_id),
            shares=[Share(member_id=str(s.member_id), amount=s.amount) for s in obj.shares.all()],
            created_at=obj.created_at,
            note=obj.note,
            place=obj.place,
            annotations=annotations,
        )
    return Payment(
        id=str(obj.id),
        group_id=str(obj.group_id),
        amount=obj.amount,
        from_member=str(obj.from_member_id),
        to_member=str(obj.to_member_id),
        created_at=obj.created_at,
        method=obj.method or 'cash',
        note=obj.note,
        annotations=annotations,
    )


class DjangoLedgerStore:
    """
    Ledger store backed by the project database.

    Args:
        acting_user: User recorded as ``created_by`` on appended rows.
    """

    def __init__(self, acting_user=None):
        self.acting_user = acting_user

    def load_group(self, group_id):
        try:
            group = Group.objects.filter(id=group_id).first()
        except (ValueError, ValidationError):
            return None
        if group is None:
            return None

        members = list(
            GroupMember.objects
            .filter(group=group, removed_at__isnull=True)
            .order_by('joined_at', 'id')
        )
        return LedgerGroup(
            id=str(group.id),
            name=group.name,
            members=[_member_record(m) for m in members],
            created_by=str(group.created_by_id),
            created_at=group.created_at,
            balances={str(m.id): m.balance for m in members},
            written_off=group.written_off,
            version=group.ledger_version,
        )

    def load_transactions(self, group_id):
        queryset = (
            LedgerTransaction.objects
            .filter(group_id=group_id)
            .prefetch_related('shares')
            .order_by('sequence')
        )
        return [transaction_record(obj) for obj in queryset]

    def _bump_version(self, group_id, expected_version) -> int:
        updated = (
            Group.objects
            .filter(id=group_id, ledger_version=expected_version)
            .update(ledger_version=F('ledger_version') + 1)
        )
        if not updated:
            logger.warning('Stale ledger version %s for group %s', expected_version, group_id)
            raise ConcurrentModificationError()
        return expected_version + 1

    def append_transaction(self, group_id, tx, expected_version):
        sequence = self._bump_version(group_id, expected_version)
        common = {
            'id': tx.id,
            'group_id': group_id,
            'amount': tx.amount,
            'sequence': sequence,
            'note': tx.note,
            'annotations': list(tx.annotations),
            'created_by': self.acting_user,
            'created_at': tx.created_at,
        }
        if isinstance(tx, Expense):
            row = LedgerTransaction.objects.create(
                kind=TransactionKind.EXPENSE,
                paid_by_id=tx.paid_by,
                place=tx.place,
                **common,
            )
            ExpenseShare.objects.bulk_create([
                ExpenseShare(transaction=row, member_id=share.member_id, amount=share.amount, position=index)
                for index, share in enumerate(tx.shares)
            ])
        else:
            LedgerTransaction.objects.create(
                kind=TransactionKind.PAYMENT,
                from_member_id=tx.from_member,
                to_member_id=tx.to_member,
                method=tx.method.value,
                **common,
            )
        return sequence

    def save_group_balances(self, group_id, balances, written_off):
        for member_id, balance in balances.items():
            GroupMember.objects.filter(id=member_id, group_id=group_id).update(balance=balance)
        Group.objects.filter(id=group_id).update(written_off=written_off)

    def annotate_transactions(self, group_id, member_id, note):
        rows = (
            LedgerTransaction.objects
            .filter(group_id=group_id)
            .filter(
                Q(paid_by_id=member_id)
                | Q(shares__member_id=member_id)
                | Q(from_member_id=member_id)
                | Q(to_member_id=member_id)
            )
            .distinct()
        )
        count = 0
        for row in rows:
            row.annotations = list(row.annotations or []) + [note]
            row.save(update_fields=['annotations'])
            count += 1
        return count

    def remove_member(self, group_id, member_id, expected_version):
        version = self._bump_version(group_id, expected_version)
        updated = (
            GroupMember.objects
            .filter(id=member_id, group_id=group_id, removed_at__isnull=True)
            .update(removed_at=timezone.now(), balance=0)
        )
        if not updated:
            raise MemberNotInGroupError('Member is not part of this group.')
        return version

    def load_wallet_balance(self, user_id):
        balance = User.objects.filter(id=user_id).values_list('wallet_balance', flat=True).first()
        return balance or 0

    def save_wallet_balance(self, user_id, balance):
        User.objects.filter(id=user_id).update(wallet_balance=balance)

    def append_wallet_entry(self, entry):
        WalletEntry.objects.create(
            id=entry.id,
            user_id=entry.user_id,
            amount=entry.amount,
            note=entry.note,
            balance_before=entry.balance_before,
            balance_after=entry.balance_after,
            created_at=entry.created_at,
        )

    def atomic(self):
        return transaction.atomic()
