"""Wallet guard: the current user's personal spendable balance."""

from typing import Optional

from .exceptions import InsufficientWalletBalanceError
from .records import Expense


def can_deduct(balance: int, amount: int) -> bool:
    return amount >= 0 and balance - amount >= 0


def deduct(balance: int, amount: int) -> int:
    """
    Take ``amount`` out of the wallet.

    Raises:
        InsufficientWalletBalanceError: If the wallet would go below zero.
    """
    if not can_deduct(balance, amount):
        raise InsufficientWalletBalanceError(
            f'Insufficient wallet balance: {balance} available, {amount} required.'
        )
    return balance - amount


def credit(balance: int, amount: int) -> int:
    return balance + amount


def own_share_due(expense: Expense, current_member_id: Optional[str]) -> int:
    """
    Share the wallet must cover for ``expense``.

    Non-zero only when the current user both paid and took part.
    """
    if current_member_id is None or expense.paid_by != current_member_id:
        return 0
    return expense.share_of(current_member_id) or 0
