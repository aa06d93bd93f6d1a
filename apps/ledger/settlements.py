"""
Settlement view and resolver.

The view is pairwise: for one counterparty it accumulates only the
transactions that directly link them with the current user, then splits the
signed result into two non-negative numbers, ``to_receive`` and ``to_pay``.
The product shows "X owes you" and "you owe X" as separate facts, so the
summary keeps both fields even though at most one is ever non-zero.
"""

from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional

from .exceptions import MemberNotInGroupError, UnknownMemberError
from .records import Expense, Group, Payment


@dataclass(frozen=True)
class SettlementSummary:
    counterparty_id: Optional[str]
    to_receive: int = 0
    to_pay: int = 0
    counterparty_name: str = ''

    @property
    def net(self) -> int:
        return self.to_receive - self.to_pay

    @property
    def has_outstanding(self) -> bool:
        return self.to_receive > 0 or self.to_pay > 0


@dataclass(frozen=True)
class SettlementOption:
    kind: str
    description: str
    amount: int
    counterparty_id: Optional[str] = None


@dataclass(frozen=True)
class Transfer:
    from_member: str
    to_member: str
    amount: int


RECEIVE = 'receive'
PAY = 'pay'


def pairwise_balance(current_id: str, counterparty_id: str, transactions: Iterable) -> int:
    """
    Signed amount the counterparty owes the current user.

    Positive means the counterparty owes the current user, negative means
    the current user owes the counterparty. Only transactions where one of
    the two paid and the other took part are counted.
    """
    value = 0
    for tx in transactions:
        if isinstance(tx, Expense):
            if tx.paid_by == current_id:
                share = tx.share_of(counterparty_id)
                if share is not None:
                    value += share
            elif tx.paid_by == counterparty_id:
                share = tx.share_of(current_id)
                if share is not None:
                    value -= share
        elif isinstance(tx, Payment):
            if tx.from_member == counterparty_id and tx.to_member == current_id:
                value -= tx.amount
            elif tx.from_member == current_id and tx.to_member == counterparty_id:
                value += tx.amount
    return value


def _summary(counterparty_id, value, name=''):
    return SettlementSummary(
        counterparty_id=counterparty_id,
        to_receive=max(value, 0),
        to_pay=max(-value, 0),
        counterparty_name=name,
    )


def _current_member(group: Group):
    current = group.current_member
    if current is None:
        raise MemberNotInGroupError()
    return current


def settlement_for(group: Group, transactions: Iterable, counterparty_id: str) -> SettlementSummary:
    """
    Settlement summary between the current-user member and one counterparty.

    Args:
        group (Group): Group viewed by the current user.
        transactions (Iterable): The group's transaction log.
        counterparty_id (str): Other member's id.

    Returns:
        SettlementSummary: ``to_receive`` / ``to_pay`` relative to the
        current user.

    Raises:
        MemberNotInGroupError: No member of the group is the current user.
        UnknownMemberError: Counterparty is not in the group, or is the
            current user.
    """
    current = _current_member(group)
    counterparty = group.get_member(counterparty_id)
    if counterparty is None:
        raise UnknownMemberError(f'Member {counterparty_id} not found in this group.')
    if counterparty.id == current.id:
        raise UnknownMemberError('Cannot settle with yourself.')
    value = pairwise_balance(current.id, counterparty_id, transactions)
    return _summary(counterparty_id, value, counterparty.name)


def settlements_by_member(group: Group, transactions: Iterable) -> Dict[str, SettlementSummary]:
    """Summary for every member except the current user, in member order."""
    current = _current_member(group)
    transactions = list(transactions)
    return {
        member.id: _summary(
            member.id,
            pairwise_balance(current.id, member.id, transactions),
            member.name,
        )
        for member in group.members
        if member.id != current.id
    }


def settlement_totals(summaries: Iterable[SettlementSummary]) -> SettlementSummary:
    """Group-level totals used to gate settlement actions."""
    to_receive = 0
    to_pay = 0
    for summary in summaries:
        to_receive += summary.to_receive
        to_pay += summary.to_pay
    return SettlementSummary(counterparty_id=None, to_receive=to_receive, to_pay=to_pay)


def propose_settlements(summary: SettlementSummary) -> List[SettlementOption]:
    """
    Settlement options for one counterparty.

    At most one "receive full amount" and one "pay full amount" option.
    No multi-party netting.
    """
    name = summary.counterparty_name or 'this member'
    options = []
    if summary.to_receive > 0:
        options.append(SettlementOption(
            kind=RECEIVE,
            description=f'Receive full amount from {name}',
            amount=summary.to_receive,
            counterparty_id=summary.counterparty_id,
        ))
    if summary.to_pay > 0:
        options.append(SettlementOption(
            kind=PAY,
            description=f'Pay full amount to {name}',
            amount=summary.to_pay,
            counterparty_id=summary.counterparty_id,
        ))
    return options


def suggest_group_transfers(balances: Mapping[str, int]) -> List[Transfer]:
    """
    Greedy netting over group balances: largest debtor pays largest creditor.

    Informational only. Ties are broken by member id so the output is stable.
    """
    creditors = sorted(
        ([mid, amount] for mid, amount in balances.items() if amount > 0),
        key=lambda item: (-item[1], item[0]),
    )
    debtors = sorted(
        ([mid, -amount] for mid, amount in balances.items() if amount < 0),
        key=lambda item: (-item[1], item[0]),
    )

    transfers = []
    i = j = 0
    while i < len(creditors) and j < len(debtors):
        creditor = creditors[i]
        debtor = debtors[j]
        amount = min(creditor[1], debtor[1])
        transfers.append(Transfer(from_member=debtor[0], to_member=creditor[0], amount=amount))
        creditor[1] -= amount
        debtor[1] -= amount
        if creditor[1] == 0:
            i += 1
        if debtor[1] == 0:
            j += 1
    return transfers
