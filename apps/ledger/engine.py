"""
Ledger service: the caller surface of the engine.

Every write follows the same path: load and orient the group, validate,
split, run the guards, compute the new balances, and only then commit
everything inside ``store.atomic()``. Expected failures come back as
``Result.failure``; ``LedgerConsistencyError`` is always raised.

Example::

    service = LedgerService(store, current_user_id=user.id)
    result = service.add_expense(
        group_id=group.id,
        amount=30000,
        paid_by=me.id,
        participant_ids=[me.id, ali.id, sara.id],
        note='Dinner',
    )
    if not result.ok:
        print(result.code, result.message)
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional, Sequence

from .balances import apply_expense, apply_payment, check_zero_sum, discard_member, replay
from .duplicates import EXPENSE_DUPLICATE_WINDOW, PAYMENT_DUPLICATE_WINDOW, find_duplicate
from .exceptions import (
    DuplicateTransactionError,
    GroupNotFoundError,
    InvalidAmountError,
    LedgerConsistencyError,
    LedgerError,
    MemberNotInGroupError,
    NoParticipantsError,
    NotPaymentPartyError,
    UnknownMemberError,
)
from .records import (
    DeletionCondition,
    Expense,
    Group,
    Payment,
    PaymentMethod,
    WalletAdjust,
    new_transaction_id,
)
from .results import Result
from .settlements import (
    SettlementOption,
    SettlementSummary,
    propose_settlements,
    settlement_for,
    settlement_totals,
    settlements_by_member,
    suggest_group_transfers,
)
from .split import allocate, unique_in_order, validate_amount
from .wallet import credit, deduct, own_share_due

logger = logging.getLogger(__name__)

DEFAULT_MAX_AMOUNT = 100_000_000


def _utcnow():
    return datetime.now(timezone.utc)


class LedgerService:
    """
    Orchestrates validation, splitting, guards and store commits.

    Args:
        store (LedgerStore): Persistence collaborator.
        current_user_id: Identity the settlement views are oriented to.
            ``None`` runs as a system job (cleanup, reconcile) with no
            membership checks.
        clock (callable, optional): Returns the current aware datetime.
        expense_window (timedelta): Duplicate window for expenses.
        payment_window (timedelta): Duplicate window for payments.
        max_amount (int): Largest accepted amount in minor units.
    """

    def __init__(
        self,
        store,
        current_user_id=None,
        *,
        clock: Optional[Callable[[], datetime]] = None,
        expense_window: timedelta = EXPENSE_DUPLICATE_WINDOW,
        payment_window: timedelta = PAYMENT_DUPLICATE_WINDOW,
        max_amount: int = DEFAULT_MAX_AMOUNT,
        id_factory: Callable[[], str] = new_transaction_id,
    ):
        self.store = store
        self.current_user_id = str(current_user_id) if current_user_id is not None else None
        self.clock = clock or _utcnow
        self.expense_window = expense_window
        self.payment_window = payment_window
        self.max_amount = max_amount
        self.id_factory = id_factory

    def _run(self, operation: str, func, *args, **kwargs) -> Result:
        try:
            return Result.success(func(*args, **kwargs))
        except LedgerError as e:
            logger.info('%s rejected (%s): %s', operation, e.code, e.message)
            return Result.failure(e)

    def _load(self, group_id, *, require_member=True) -> Group:
        group = self.store.load_group(group_id)
        if group is None:
            raise GroupNotFoundError()
        group = group.viewed_by(self.current_user_id)
        if require_member and group.current_member is None:
            raise MemberNotInGroupError()
        return group

    def _require(self, group: Group, member_id):
        if not group.has_member(member_id):
            raise UnknownMemberError(f'Member {member_id} not found in this group.')

    # Reads

    def get_group(self, group_id) -> Result[Group]:
        return self._run('get_group', self._load, group_id)

    def get_transactions(self, group_id) -> Result[List]:
        def op():
            group = self._load(group_id)
            return self.store.load_transactions(group.id)
        return self._run('get_transactions', op)

    def get_settlements(self, group_id) -> Result[Dict[str, SettlementSummary]]:
        """Pairwise settlement summary for every other member of the group."""
        def op():
            group = self._load(group_id)
            return settlements_by_member(group, self.store.load_transactions(group.id))
        return self._run('get_settlements', op)

    def get_settlement_totals(self, group_id) -> Result[SettlementSummary]:
        def op():
            group = self._load(group_id)
            summaries = settlements_by_member(group, self.store.load_transactions(group.id))
            return settlement_totals(summaries.values())
        return self._run('get_settlement_totals', op)

    def propose_settlements(self, group_id, counterparty_id) -> Result[List[SettlementOption]]:
        def op():
            group = self._load(group_id)
            summary = settlement_for(group, self.store.load_transactions(group.id), counterparty_id)
            return propose_settlements(summary)
        return self._run('propose_settlements', op)

    def suggest_group_transfers(self, group_id) -> Result[list]:
        def op():
            group = self._load(group_id)
            return suggest_group_transfers(group.balances)
        return self._run('suggest_group_transfers', op)

    def get_wallet_balance(self) -> Result[int]:
        def op():
            self._require_user()
            return self.store.load_wallet_balance(self.current_user_id)
        return self._run('get_wallet_balance', op)

    # Writes

    def add_expense(
        self,
        group_id,
        amount,
        paid_by,
        participant_ids: Sequence[str],
        note: str = '',
        place: str = '',
    ) -> Result[Expense]:
        """
        Record an expense paid by one member and shared by several.

        Participants are split in the given order (duplicates dropped), so
        the first ``amount % N`` of them carry the extra unit. When the
        current user paid and participates, their own share is deducted
        from their wallet; if the wallet cannot cover it nothing is written.

        Returns:
            Result[Expense]: The appended expense, or a failure with one of
            ``invalid_amount``, ``no_participants``, ``unknown_member``,
            ``duplicate_transaction``, ``insufficient_wallet_balance``,
            ``member_not_in_group``, ``group_not_found``,
            ``concurrent_modification``.
        """
        return self._run(
            'add_expense', self._add_expense,
            group_id, amount, paid_by, participant_ids, note, place,
        )

    def _add_expense(self, group_id, amount, paid_by, participant_ids, note, place):
        amount = validate_amount(amount, self.max_amount)
        group = self._load(group_id)
        participants = unique_in_order(participant_ids or [])
        if not participants:
            raise NoParticipantsError()
        self._require(group, paid_by)
        for member_id in participants:
            self._require(group, member_id)

        now = self.clock()
        expense = Expense(
            id=self.id_factory(),
            group_id=group.id,
            amount=amount,
            paid_by=paid_by,
            shares=allocate(amount, participants),
            created_at=now,
            note=note or '',
            place=place or '',
        )

        log = self.store.load_transactions(group.id)
        duplicate = find_duplicate(expense, log, self.expense_window)
        if duplicate is not None:
            raise DuplicateTransactionError()

        current = group.current_member
        due = own_share_due(expense, current.id if current else None)
        wallet_entry = None
        if due:
            before = self.store.load_wallet_balance(self.current_user_id)
            after = deduct(before, due)
            wallet_entry = WalletAdjust(
                id=self.id_factory(),
                user_id=self.current_user_id,
                amount=-due,
                created_at=now,
                note=f'Own share of expense {expense.id}',
                balance_before=before,
                balance_after=after,
            )

        balances = apply_expense(group, expense)
        check_zero_sum(balances, group.written_off, group_id=group.id)

        with self.store.atomic():
            self.store.append_transaction(group.id, expense, group.version)
            self.store.save_group_balances(group.id, balances, group.written_off)
            if wallet_entry is not None:
                self.store.save_wallet_balance(self.current_user_id, wallet_entry.balance_after)
                self.store.append_wallet_entry(wallet_entry)

        logger.info(
            'Expense %s recorded in group %s: amount=%s paid_by=%s participants=%d',
            expense.id, group.id, amount, paid_by, len(participants),
        )
        return expense

    def record_payment(
        self,
        group_id,
        from_member,
        to_member,
        amount,
        method=PaymentMethod.CASH,
        note: str = '',
    ) -> Result[Payment]:
        """
        Record a direct settlement payment between two members.

        Returns:
            Result[Payment]: The appended payment, or a failure with one of
            ``invalid_amount``, ``self_payment``, ``unknown_member``,
            ``invalid_payment_method``, ``duplicate_transaction``,
            ``member_not_in_group``, ``not_payment_party``,
            ``group_not_found``, ``concurrent_modification``.
        """
        return self._run(
            'record_payment', self._record_payment,
            group_id, from_member, to_member, amount, method, note,
        )

    def _record_payment(self, group_id, from_member, to_member, amount, method, note):
        amount = validate_amount(amount, self.max_amount)
        group = self._load(group_id)
        payment = Payment(
            id=self.id_factory(),
            group_id=group.id,
            amount=amount,
            from_member=from_member,
            to_member=to_member,
            created_at=self.clock(),
            method=method,
            note=note or '',
        )
        self._require(group, from_member)
        self._require(group, to_member)
        if group.current_member.id not in (payment.from_member, payment.to_member):
            raise NotPaymentPartyError()

        log = self.store.load_transactions(group.id)
        if find_duplicate(payment, log, self.payment_window) is not None:
            raise DuplicateTransactionError()

        balances = apply_payment(group, payment)
        check_zero_sum(balances, group.written_off, group_id=group.id)

        with self.store.atomic():
            self.store.append_transaction(group.id, payment, group.version)
            self.store.save_group_balances(group.id, balances, group.written_off)

        logger.info(
            'Payment %s recorded in group %s: %s -> %s amount=%s method=%s',
            payment.id, group.id, from_member, to_member, amount, payment.method.value,
        )
        return payment

    def adjust_wallet(self, amount, note: str = '') -> Result[WalletAdjust]:
        """
        Top up (positive) or withdraw from (negative) the current user's wallet.
        """
        return self._run('adjust_wallet', self._adjust_wallet, amount, note)

    def _require_user(self):
        if self.current_user_id is None:
            raise MemberNotInGroupError('An authenticated user is required.')

    def _adjust_wallet(self, amount, note):
        self._require_user()
        if isinstance(amount, bool) or not isinstance(amount, int) or amount == 0:
            raise InvalidAmountError('Wallet adjustment must be a non-zero whole number.')
        validate_amount(abs(amount), self.max_amount)

        before = self.store.load_wallet_balance(self.current_user_id)
        after = credit(before, amount) if amount > 0 else deduct(before, -amount)
        entry = WalletAdjust(
            id=self.id_factory(),
            user_id=self.current_user_id,
            amount=amount,
            created_at=self.clock(),
            note=note or '',
            balance_before=before,
            balance_after=after,
        )
        with self.store.atomic():
            self.store.save_wallet_balance(self.current_user_id, after)
            self.store.append_wallet_entry(entry)

        logger.info('Wallet of user %s adjusted by %s (%s -> %s)', self.current_user_id, amount, before, after)
        return entry

    def remove_member(self, group_id, member_id) -> Result[int]:
        """
        Remove a member and discard their balance.

        Historical transactions that reference the member are annotated;
        amounts are untouched. The discarded balance is added to the
        group's ``written_off`` total.

        Returns:
            Result[int]: The discarded balance (zero for settled members).
        """
        def op():
            with self.store.atomic():
                return self._remove_member(group_id, member_id)
        return self._run('remove_member', op)

    def _remove_member(self, group_id, member_id):
        group = self._load(group_id, require_member=self.current_user_id is not None)
        member = group.get_member(member_id)
        if member is None:
            raise MemberNotInGroupError('Member is not part of this group.')

        remaining, discarded = discard_member(group.balances, member_id)
        written_off = group.written_off + discarded
        check_zero_sum(remaining, written_off, group_id=group.id)

        self.store.annotate_transactions(group.id, member_id, f'{member.name} was removed from the group')
        self.store.remove_member(group.id, member_id, group.version)
        self.store.save_group_balances(group.id, remaining, written_off)

        if discarded:
            logger.warning(
                'Member %s removed from group %s with non-zero balance %s written off',
                member_id, group.id, discarded,
            )
        else:
            logger.info('Member %s removed from group %s', member_id, group.id)
        return discarded

    def cleanup_temporary_members(self, group_id) -> Result[List[str]]:
        """
        Remove expired ``TIME_LIMIT`` members and settled ``SETTLED`` members.

        Returns:
            Result[list[str]]: Ids of removed members, in member order.
        """
        def op():
            group = self._load(group_id, require_member=self.current_user_id is not None)
            now = self.clock()
            due = []
            for member in group.members:
                if not member.is_temporary or member.is_current_user:
                    continue
                if member.is_expired(now):
                    due.append(member.id)
                elif (member.deletion_condition == DeletionCondition.SETTLED
                      and group.balance_of(member.id) == 0):
                    due.append(member.id)

            with self.store.atomic():
                for member_id in due:
                    self._remove_member(group.id, member_id)
            return due
        return self._run('cleanup_temporary_members', op)

    def reconcile(self, group_id) -> Result[dict]:
        """
        Replay the log and compare it with the cached balances.

        Raises:
            LedgerConsistencyError: Cache and replay differ, or the group
                does not balance to zero.
        """
        def op():
            group = self._load(group_id, require_member=self.current_user_id is not None)
            transactions = self.store.load_transactions(group.id)
            replayed = replay(group.member_ids, transactions)
            cached = {member_id: group.balance_of(member_id) for member_id in group.member_ids}
            if replayed != cached:
                mismatched = {
                    member_id: {'cached': cached[member_id], 'replayed': replayed[member_id]}
                    for member_id in group.member_ids
                    if cached[member_id] != replayed[member_id]
                }
                logger.error('Balance cache mismatch in group %s: %s', group.id, mismatched)
                raise LedgerConsistencyError(
                    'Cached balances do not match the transaction log.',
                    group_id=group.id,
                    details={'mismatched': mismatched},
                )
            check_zero_sum(replayed, group.written_off, group_id=group.id)
            return {
                'group_id': group.id,
                'balances': replayed,
                'written_off': group.written_off,
                'transactions': len(transactions),
                'version': group.version,
            }
        return self._run('reconcile', op)
