"""
Time-windowed duplicate detection.

A safety net against double submission, not an idempotency key: two
genuinely identical expenses entered within the window are rejected too.
"""

from datetime import timedelta
from typing import Iterable, Optional

from .records import Expense, Payment

EXPENSE_DUPLICATE_WINDOW = timedelta(minutes=5)
PAYMENT_DUPLICATE_WINDOW = timedelta(minutes=2)


def _default_window(candidate):
    if isinstance(candidate, Payment):
        return PAYMENT_DUPLICATE_WINDOW
    return EXPENSE_DUPLICATE_WINDOW


def _matches(candidate, existing) -> bool:
    if type(candidate) is not type(existing):
        return False
    if candidate.group_id != existing.group_id or candidate.amount != existing.amount:
        return False
    if isinstance(candidate, Expense):
        return (
            candidate.paid_by == existing.paid_by
            and set(candidate.participant_ids) == set(existing.participant_ids)
        )
    if isinstance(candidate, Payment):
        return (
            candidate.from_member == existing.from_member
            and candidate.to_member == existing.to_member
            and candidate.method == existing.method
        )
    return False


def find_duplicate(candidate, recent_log: Iterable, window: Optional[timedelta] = None):
    """
    Return the first entry of ``recent_log`` that duplicates ``candidate``.

    An entry counts only if its ``created_at`` is strictly later than
    ``candidate.created_at - window``.

    Args:
        candidate (Expense | Payment): Transaction about to be appended.
        recent_log (Iterable): Existing transactions of the group.
        window (timedelta, optional): Defaults to 5 minutes for expenses and
            2 minutes for payments.

    Returns:
        The matching transaction, or None.
    """
    if window is None:
        window = _default_window(candidate)
    cutoff = candidate.created_at - window
    for existing in recent_log:
        if existing.created_at > cutoff and _matches(candidate, existing):
            return existing
    return None


def is_duplicate(candidate, recent_log: Iterable, window: Optional[timedelta] = None) -> bool:
    return find_duplicate(candidate, recent_log, window) is not None
