"""
Exact integer splitting.

Every amount is already in minor units, so the split is plain integer
arithmetic: ``base = total // N``, and the first ``total % N`` participants
in the given order receive one extra unit.

Example::

    >>> split(1001, ['A', 'B', 'C'])
    [334, 334, 333]
"""

from numbers import Integral
from typing import List, Sequence

from .exceptions import InvalidAmountError, InvalidSplitError, NoParticipantsError
from .records import Share


def validate_amount(amount, max_amount=None) -> int:
    """
    Check that ``amount`` is a positive whole number of minor units.

    Args:
        amount: Value supplied by the caller.
        max_amount (int, optional): Inclusive upper bound.

    Returns:
        int: The amount as a plain ``int``.

    Raises:
        InvalidAmountError: For bools, floats, strings, zero, negatives
            or values above ``max_amount``.
    """
    if isinstance(amount, bool) or not isinstance(amount, Integral):
        raise InvalidAmountError()
    amount = int(amount)
    if amount <= 0:
        raise InvalidAmountError()
    if max_amount is not None and amount > max_amount:
        raise InvalidAmountError(f'Amount must not exceed {max_amount} minor units.')
    return amount


def unique_in_order(ids: Sequence[str]) -> List[str]:
    seen = set()
    result = []
    for item in ids:
        if item not in seen:
            seen.add(item)
            result.append(item)
    return result


def split(total: int, participants: Sequence) -> List[int]:
    """
    Split ``total`` among ``participants``.

    Args:
        total (int): Amount in minor units, must be positive.
        participants (Sequence): Ordered participants; only the count and
            order matter.

    Returns:
        list[int]: One share per participant, in the same order.

    Raises:
        InvalidAmountError: If ``total`` is not a positive integer.
        NoParticipantsError: If ``participants`` is empty.
        InvalidSplitError: If the shares do not add up (should never happen).
    """
    total = validate_amount(total)
    count = len(participants)
    if count == 0:
        raise NoParticipantsError()

    base = total // count
    remainder = total - base * count

    shares = []
    for index in range(count):
        # First 'remainder' participants get +1
        shares.append(base + 1 if index < remainder else base)

    if sum(shares) != total:
        raise InvalidSplitError(f'Split calculation error: {sum(shares)} != {total}')

    return shares


def allocate(total: int, participant_ids: Sequence[str]) -> List[Share]:
    """Same as ``split`` but pairs each amount with its member id."""
    amounts = split(total, participant_ids)
    return [Share(member_id=mid, amount=amt) for mid, amt in zip(participant_ids, amounts)]
