"""
Per-member balance update rules.

Sign convention: a positive balance is owed to the member, a negative
balance is owed by the member to the group.

All functions are pure. They take a mapping of balances and return a new
dict; committing it is the store's job.
"""

import logging
from typing import Dict, Iterable, Mapping, Sequence, Tuple

from .exceptions import (
    InvalidAmountError,
    LedgerConsistencyError,
    SelfPaymentError,
    UnknownMemberError,
)
from .records import Expense, Group, Payment

logger = logging.getLogger(__name__)


def _require_member(member_ids, member_id):
    if member_id not in member_ids:
        raise UnknownMemberError(f'Member {member_id} not found in this group.')


def apply_expense(group: Group, expense: Expense) -> Dict[str, int]:
    """
    Apply an expense to the group balances.

    The payer is credited with ``amount - own_share`` (the full amount when
    they did not participate); every other participant is debited their share.

    Args:
        group (Group): Group snapshot with current balances.
        expense (Expense): Validated expense.

    Returns:
        dict: New balances keyed by member id.

    Raises:
        UnknownMemberError: Payer or a participant is not in the group.
        InvalidAmountError: Amount is not positive.
    """
    return _apply_expense(group.member_ids, group.balances, expense)


def apply_payment(group: Group, payment: Payment) -> Dict[str, int]:
    """
    Apply a payment to the group balances.

    The sender settles debt, so their balance rises by ``amount``; the
    receiver has been paid back, so theirs falls by ``amount``.

    Raises:
        UnknownMemberError: Sender or receiver is not in the group.
        SelfPaymentError: Sender and receiver are the same member.
        InvalidAmountError: Amount is not positive.
    """
    return _apply_payment(group.member_ids, group.balances, payment)


def _apply_expense(member_ids, balances, expense):
    if expense.amount <= 0:
        raise InvalidAmountError()
    _require_member(member_ids, expense.paid_by)
    for share in expense.shares:
        _require_member(member_ids, share.member_id)

    updated = dict(balances)
    own_share = expense.share_of(expense.paid_by) or 0
    updated[expense.paid_by] = updated.get(expense.paid_by, 0) + expense.amount - own_share
    for share in expense.shares:
        if share.member_id == expense.paid_by:
            continue
        updated[share.member_id] = updated.get(share.member_id, 0) - share.amount
    return updated


def _apply_payment(member_ids, balances, payment):
    if payment.amount <= 0:
        raise InvalidAmountError()
    if payment.from_member == payment.to_member:
        raise SelfPaymentError()
    _require_member(member_ids, payment.from_member)
    _require_member(member_ids, payment.to_member)

    updated = dict(balances)
    updated[payment.from_member] = updated.get(payment.from_member, 0) + payment.amount
    updated[payment.to_member] = updated.get(payment.to_member, 0) - payment.amount
    return updated


def replay(member_ids: Sequence[str], transactions: Iterable) -> Dict[str, int]:
    """
    Rebuild balances from empty state by applying ``transactions`` in order.

    Removed members still appear in historical transactions, so replay
    accumulates over every id the log mentions and only then restricts the
    result to ``member_ids``. Wallet adjustments are ignored.

    Returns:
        dict: Balance for every id in ``member_ids`` (zero when untouched).
    """
    transactions = list(transactions)
    known = set(member_ids)
    for tx in transactions:
        if isinstance(tx, Expense):
            known.add(tx.paid_by)
            known.update(tx.participant_ids)
        elif isinstance(tx, Payment):
            known.update((tx.from_member, tx.to_member))

    balances = {}
    for tx in transactions:
        if isinstance(tx, Expense):
            balances = _apply_expense(known, balances, tx)
        elif isinstance(tx, Payment):
            balances = _apply_payment(known, balances, tx)

    return {member_id: balances.get(member_id, 0) for member_id in member_ids}


def check_zero_sum(balances: Mapping[str, int], written_off: int = 0, *, group_id=None):
    """
    Raise ``LedgerConsistencyError`` unless ``sum(balances) + written_off == 0``.
    """
    total = sum(balances.values()) + written_off
    if total != 0:
        logger.error(
            'Zero-sum violation in group %s: balances=%s written_off=%s',
            group_id, dict(balances), written_off,
        )
        raise LedgerConsistencyError(
            f'Group balances do not sum to zero (off by {total}).',
            group_id=group_id,
            details={'balances': dict(balances), 'written_off': written_off, 'total': total},
        )


def discard_member(balances: Mapping[str, int], member_id: str) -> Tuple[Dict[str, int], int]:
    """
    Drop a member's balance.

    Returns:
        tuple: ``(remaining_balances, discarded_amount)``. The discarded
        amount is what must be added to ``Group.written_off`` to keep the
        books closed.
    """
    remaining = dict(balances)
    discarded = remaining.pop(member_id, 0)
    return remaining, discarded
