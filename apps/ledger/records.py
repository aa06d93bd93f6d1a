"""
Ledger records: members, groups and the tagged transaction variants.

All records are immutable dataclasses. Amounts are integers in minor
currency units (paisa, cents, haléře...), never floats.
"""

import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import ClassVar, Mapping, Optional, Tuple, Union

from .exceptions import (
    InvalidAmountError,
    InvalidPaymentMethodError,
    InvalidSplitError,
    NoParticipantsError,
    SelfPaymentError,
)


class DeletionCondition(str, Enum):
    SETTLED = 'SETTLED'
    TIME_LIMIT = 'TIME_LIMIT'


class PaymentMethod(str, Enum):
    CASH = 'cash'
    ONLINE = 'online'


class TransactionKind(str, Enum):
    EXPENSE = 'expense'
    PAYMENT = 'payment'
    WALLET_ADJUST = 'wallet_adjust'


def new_transaction_id() -> str:
    return uuid.uuid4().hex


def _is_whole(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


@dataclass(frozen=True)
class Member:
    """Identity of a person inside one group."""

    id: str
    name: str
    user_id: Optional[str] = None
    is_current_user: bool = False
    is_temporary: bool = False
    deletion_condition: Optional[DeletionCondition] = None
    expires_at: Optional[datetime] = None

    def is_expired(self, now: datetime) -> bool:
        return (
            self.deletion_condition == DeletionCondition.TIME_LIMIT
            and self.expires_at is not None
            and self.expires_at <= now
        )


@dataclass(frozen=True)
class Group:
    """
    Group snapshot as seen by the engine.

    ``balances`` is the materialized per-member cache. ``written_off`` is the
    running total of balances discarded when members were removed, so that
    ``sum(balances) + written_off == 0`` holds for every committed state.
    ``version`` increases with every committed append or removal.
    """

    id: str
    name: str
    members: Tuple[Member, ...] = ()
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    balances: Mapping[str, int] = field(default_factory=dict)
    written_off: int = 0
    version: int = 0

    def __post_init__(self):
        object.__setattr__(self, 'members', tuple(self.members))
        object.__setattr__(self, 'balances', dict(self.balances))

    @property
    def member_ids(self) -> Tuple[str, ...]:
        return tuple(m.id for m in self.members)

    def get_member(self, member_id: str) -> Optional[Member]:
        for member in self.members:
            if member.id == member_id:
                return member
        return None

    def has_member(self, member_id: str) -> bool:
        return self.get_member(member_id) is not None

    def balance_of(self, member_id: str) -> int:
        return self.balances.get(member_id, 0)

    @property
    def current_member(self) -> Optional[Member]:
        for member in self.members:
            if member.is_current_user:
                return member
        return None

    def viewed_by(self, user_id) -> 'Group':
        """Return a copy where exactly the member linked to ``user_id`` is current."""
        user_id = str(user_id) if user_id is not None else None
        members = tuple(
            replace(m, is_current_user=(user_id is not None and m.user_id == user_id))
            for m in self.members
        )
        return replace(self, members=members)


@dataclass(frozen=True)
class Share:
    member_id: str
    amount: int


@dataclass(frozen=True)
class Expense:
    """One member paid ``amount``; ``shares`` say who consumed how much."""

    kind: ClassVar[TransactionKind] = TransactionKind.EXPENSE

    id: str
    group_id: str
    amount: int
    paid_by: str
    shares: Tuple[Share, ...]
    created_at: datetime
    note: str = ''
    place: str = ''
    annotations: Tuple[str, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, 'shares', tuple(self.shares))
        object.__setattr__(self, 'annotations', tuple(self.annotations))
        if not _is_whole(self.amount) or self.amount <= 0:
            raise InvalidAmountError()
        if not self.shares:
            raise NoParticipantsError()
        total = sum(share.amount for share in self.shares)
        if total != self.amount:
            raise InvalidSplitError(
                f'Split calculation error: {total} != {self.amount}'
            )

    @property
    def participant_ids(self) -> Tuple[str, ...]:
        return tuple(share.member_id for share in self.shares)

    def share_of(self, member_id: str) -> Optional[int]:
        for share in self.shares:
            if share.member_id == member_id:
                return share.amount
        return None

    def references(self, member_id: str) -> bool:
        return self.paid_by == member_id or member_id in self.participant_ids

    def annotated(self, note: str) -> 'Expense':
        return replace(self, annotations=self.annotations + (note,))


@dataclass(frozen=True)
class Payment:
    """Direct settlement transfer from one member to another."""

    kind: ClassVar[TransactionKind] = TransactionKind.PAYMENT

    id: str
    group_id: str
    amount: int
    from_member: str
    to_member: str
    created_at: datetime
    method: PaymentMethod = PaymentMethod.CASH
    note: str = ''
    annotations: Tuple[str, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, 'annotations', tuple(self.annotations))
        try:
            object.__setattr__(self, 'method', PaymentMethod(self.method))
        except ValueError:
            raise InvalidPaymentMethodError()
        if not _is_whole(self.amount) or self.amount <= 0:
            raise InvalidAmountError()
        if self.from_member == self.to_member:
            raise SelfPaymentError()

    def references(self, member_id: str) -> bool:
        return member_id in (self.from_member, self.to_member)

    def annotated(self, note: str) -> 'Payment':
        return replace(self, annotations=self.annotations + (note,))


@dataclass(frozen=True)
class WalletAdjust:
    """Signed change to the acting user's personal wallet. No group involved."""

    kind: ClassVar[TransactionKind] = TransactionKind.WALLET_ADJUST

    id: str
    user_id: str
    amount: int
    created_at: datetime
    note: str = ''
    balance_before: Optional[int] = None
    balance_after: Optional[int] = None

    def __post_init__(self):
        if not _is_whole(self.amount) or self.amount == 0:
            raise InvalidAmountError('Wallet adjustment must be a non-zero whole number.')


Transaction = Union[Expense, Payment, WalletAdjust]
GroupTransaction = Union[Expense, Payment]
