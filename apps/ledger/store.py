"""
Persistence collaborator contract and an in-memory implementation.

``LedgerService`` only talks to a ``LedgerStore``. The Django-backed store
lives in ``apps.expenses.store``; ``InMemoryLedgerStore`` backs the engine
tests and scripts that do not need a database.
"""

import copy
from contextlib import contextmanager
from dataclasses import replace
from typing import Dict, List, Mapping, Optional, Protocol

from .exceptions import (
    ConcurrentModificationError,
    GroupNotFoundError,
    MemberNotInGroupError,
)
from .records import Group, Member, WalletAdjust


class LedgerStore(Protocol):

    def load_group(self, group_id: str) -> Optional[Group]:
        ...

    def load_transactions(self, group_id: str) -> List:
        ...

    def append_transaction(self, group_id: str, tx, expected_version: int) -> int:
        """Append ``tx`` if the group is still at ``expected_version``; return the new version."""
        ...

    def save_group_balances(self, group_id: str, balances: Mapping[str, int], written_off: int) -> None:
        ...

    def annotate_transactions(self, group_id: str, member_id: str, note: str) -> int:
        ...

    def remove_member(self, group_id: str, member_id: str, expected_version: int) -> int:
        ...

    def load_wallet_balance(self, user_id: str) -> int:
        ...

    def save_wallet_balance(self, user_id: str, balance: int) -> None:
        ...

    def append_wallet_entry(self, entry: WalletAdjust) -> None:
        ...

    def atomic(self):
        ...


class InMemoryLedgerStore:
    """
    Dict-backed store.

    ``atomic()`` snapshots the whole state and restores it if the block
    raises, so a failed operation leaves nothing behind. Nested blocks
    join the outermost one.
    """

    def __init__(self):
        self.groups: Dict[str, Group] = {}
        self.transactions: Dict[str, List] = {}
        self.wallets: Dict[str, int] = {}
        self.wallet_entries: List[WalletAdjust] = []
        self._depth = 0

    # Setup helpers

    def add_group(self, group: Group) -> Group:
        self.groups[group.id] = group
        self.transactions.setdefault(group.id, [])
        return group

    def add_member(self, group_id: str, member: Member) -> Group:
        group = self._get(group_id)
        balances = dict(group.balances)
        balances.setdefault(member.id, 0)
        group = replace(group, members=group.members + (member,), balances=balances)
        self.groups[group_id] = group
        return group

    def set_wallet(self, user_id: str, balance: int):
        self.wallets[str(user_id)] = balance

    # LedgerStore

    def _get(self, group_id) -> Group:
        group = self.groups.get(group_id)
        if group is None:
            raise GroupNotFoundError()
        return group

    def _check_version(self, group, expected_version):
        if group.version != expected_version:
            raise ConcurrentModificationError()

    def load_group(self, group_id):
        return self.groups.get(group_id)

    def load_transactions(self, group_id):
        return list(self.transactions.get(group_id, []))

    def append_transaction(self, group_id, tx, expected_version):
        group = self._get(group_id)
        self._check_version(group, expected_version)
        self.transactions.setdefault(group_id, []).append(tx)
        self.groups[group_id] = replace(group, version=group.version + 1)
        return group.version + 1

    def save_group_balances(self, group_id, balances, written_off):
        group = self._get(group_id)
        self.groups[group_id] = replace(group, balances=dict(balances), written_off=written_off)

    def annotate_transactions(self, group_id, member_id, note):
        count = 0
        updated = []
        for tx in self.transactions.get(group_id, []):
            if tx.references(member_id):
                tx = tx.annotated(note)
                count += 1
            updated.append(tx)
        self.transactions[group_id] = updated
        return count

    def remove_member(self, group_id, member_id, expected_version):
        group = self._get(group_id)
        self._check_version(group, expected_version)
        if not group.has_member(member_id):
            raise MemberNotInGroupError('Member is not part of this group.')
        members = tuple(m for m in group.members if m.id != member_id)
        balances = {k: v for k, v in group.balances.items() if k != member_id}
        self.groups[group_id] = replace(
            group, members=members, balances=balances, version=group.version + 1,
        )
        return group.version + 1

    def load_wallet_balance(self, user_id):
        return self.wallets.get(str(user_id), 0)

    def save_wallet_balance(self, user_id, balance):
        self.wallets[str(user_id)] = balance

    def append_wallet_entry(self, entry):
        self.wallet_entries.append(entry)

    @contextmanager
    def atomic(self):
        if self._depth:
            self._depth += 1
            try:
                yield self
            finally:
                self._depth -= 1
            return

        snapshot = copy.deepcopy(
            (self.groups, self.transactions, self.wallets, self.wallet_entries)
        )
        self._depth = 1
        try:
            yield self
        except BaseException:
            self.groups, self.transactions, self.wallets, self.wallet_entries = snapshot
            raise
        finally:
            self._depth = 0
