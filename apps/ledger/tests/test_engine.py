import pytest
from dataclasses import replace
from datetime import timedelta

from apps.ledger.engine import LedgerService
from apps.ledger.exceptions import ConcurrentModificationError, LedgerConsistencyError
from apps.ledger.records import Expense, Payment, PaymentMethod


def balances_of(store, group_id='g1'):
    return dict(store.load_group(group_id).balances)


class TestAddExpense:

    def test_even_split_scenario(self, service, store):
        result = service.add_expense('g1', 300, 'you', ['you', 'ali', 'sara'], note='Dinner')

        assert result.ok
        assert isinstance(result.value, Expense)
        assert [s.amount for s in result.value.shares] == [100, 100, 100]
        assert balances_of(store) == {'you': 200, 'ali': -100, 'sara': -100}
        assert store.load_group('g1').version == 1

    def test_payer_excluded_uneven_split(self, service, store, group_with_guest):
        result = service.add_expense('g1', 100, 'you', ['ali', 'sara', 'cem'])

        assert result.ok
        assert [s.amount for s in result.value.shares] == [34, 33, 33]
        assert balances_of(store) == {'you': 100, 'ali': -34, 'sara': -33, 'cem': -33}

    def test_duplicate_participants_collapsed(self, service):
        result = service.add_expense('g1', 300, 'you', ['ali', 'ali', 'sara'])

        assert result.ok
        assert result.value.participant_ids == ('ali', 'sara')

    def test_wallet_deducted_for_own_share(self, service, store):
        store.set_wallet('user-1', 500)
        service.add_expense('g1', 300, 'you', ['you', 'ali', 'sara'])

        assert store.load_wallet_balance('user-1') == 400
        entry = store.wallet_entries[-1]
        assert entry.amount == -100
        assert (entry.balance_before, entry.balance_after) == (500, 400)

    def test_wallet_guard_scenario(self, service, store):
        """Wallet 50, own share 100: nothing is written."""
        store.set_wallet('user-1', 50)
        result = service.add_expense('g1', 300, 'you', ['you', 'ali', 'sara'])

        assert not result.ok
        assert result.code == 'insufficient_wallet_balance'
        assert balances_of(store) == {'you': 0, 'ali': 0, 'sara': 0}
        assert store.load_transactions('g1') == []
        assert store.load_wallet_balance('user-1') == 50

    def test_wallet_untouched_when_other_member_pays(self, service, store):
        store.set_wallet('user-1', 0)
        result = service.add_expense('g1', 300, 'ali', ['you', 'ali', 'sara'])

        assert result.ok
        assert store.load_wallet_balance('user-1') == 0

    @pytest.mark.parametrize('amount', [0, -10, 10.5, float('nan'), '300', None, 100_000_001])
    def test_invalid_amount(self, service, store, amount):
        result = service.add_expense('g1', amount, 'you', ['you', 'ali'])

        assert result.code == 'invalid_amount'
        assert store.load_transactions('g1') == []

    def test_no_participants(self, service):
        assert service.add_expense('g1', 300, 'you', []).code == 'no_participants'

    def test_unknown_participant(self, service, store):
        result = service.add_expense('g1', 300, 'you', ['ali', 'ghost'])

        assert result.code == 'unknown_member'
        assert store.load_group('g1').version == 0

    def test_unknown_payer(self, service):
        assert service.add_expense('g1', 300, 'ghost', ['ali']).code == 'unknown_member'

    def test_group_not_found(self, service):
        assert service.add_expense('nope', 300, 'you', ['ali']).code == 'group_not_found'

    def test_non_member_rejected(self, store, group, clock):
        outsider = LedgerService(store, current_user_id='user-99', clock=clock)
        result = outsider.add_expense('g1', 300, 'you', ['ali'])

        assert result.code == 'member_not_in_group'

    def test_duplicate_within_window(self, service, clock):
        first = service.add_expense('g1', 300, 'you', ['you', 'ali', 'sara'])
        clock.advance(minutes=4)
        second = service.add_expense('g1', 300, 'you', ['sara', 'ali', 'you'])

        assert first.ok
        assert second.code == 'duplicate_transaction'

    def test_duplicate_allowed_after_window(self, service, store, clock):
        service.add_expense('g1', 300, 'you', ['you', 'ali', 'sara'])
        clock.advance(minutes=5, seconds=1)
        second = service.add_expense('g1', 300, 'you', ['you', 'ali', 'sara'])

        assert second.ok
        assert balances_of(store)['you'] == 400

    def test_custom_duplicate_window(self, store, group, clock):
        store.set_wallet('user-1', 1000)
        service = LedgerService(store, 'user-1', clock=clock, expense_window=timedelta(seconds=10))
        service.add_expense('g1', 300, 'you', ['you', 'ali'])
        clock.advance(seconds=11)

        assert service.add_expense('g1', 300, 'you', ['you', 'ali']).ok


class TestRecordPayment:

    def test_payment_settles_debt(self, service, ali_service, store, clock):
        service.add_expense('g1', 300, 'you', ['you', 'ali', 'sara'])
        result = ali_service.record_payment('g1', 'ali', 'you', 100, method='online')

        assert result.ok
        assert isinstance(result.value, Payment)
        assert result.value.method == PaymentMethod.ONLINE
        assert balances_of(store) == {'you': 100, 'ali': 0, 'sara': -100}

    def test_payment_does_not_touch_wallet(self, service, store):
        store.set_wallet('user-1', 10)
        service.record_payment('g1', 'you', 'ali', 500)

        assert store.load_wallet_balance('user-1') == 10

    def test_self_payment(self, service):
        assert service.record_payment('g1', 'ali', 'ali', 100).code == 'self_payment'

    def test_invalid_method(self, service):
        assert service.record_payment('g1', 'ali', 'you', 100, method='cheque').code == 'invalid_payment_method'

    def test_unknown_member(self, service):
        assert service.record_payment('g1', 'ali', 'ghost', 100).code == 'unknown_member'

    def test_only_payer_or_receiver_may_record(self, service, ali_service, store):
        assert ali_service.record_payment('g1', 'sara', 'you', 100).code == 'not_payment_party'
        assert store.load_transactions('g1') == []
        assert service.record_payment('g1', 'sara', 'you', 100).ok

    def test_duplicate_payment_window(self, service, clock):
        assert service.record_payment('g1', 'ali', 'you', 100).ok
        clock.advance(seconds=119)
        assert service.record_payment('g1', 'ali', 'you', 100).code == 'duplicate_transaction'
        clock.advance(seconds=2)
        assert service.record_payment('g1', 'ali', 'you', 100).ok


class TestSettlements:

    def test_settlements_and_options(self, service, ali_service):
        service.add_expense('g1', 300, 'you', ['you', 'ali', 'sara'])
        ali_service.add_expense('g1', 500, 'ali', ['you', 'ali'])

        summaries = service.get_settlements('g1').unwrap()
        assert summaries['ali'].to_pay == 150
        assert summaries['sara'].to_receive == 100

        totals = service.get_settlement_totals('g1').unwrap()
        assert (totals.to_receive, totals.to_pay) == (100, 150)

        options = service.propose_settlements('g1', 'ali').unwrap()
        assert [(o.kind, o.amount) for o in options] == [('pay', 150)]

    def test_settlements_oriented_to_acting_user(self, service, ali_service):
        service.add_expense('g1', 300, 'you', ['you', 'ali', 'sara'])

        summaries = ali_service.get_settlements('g1').unwrap()
        assert list(summaries) == ['you', 'sara']
        assert summaries['you'].to_pay == 100

    def test_unknown_counterparty(self, service):
        assert service.propose_settlements('g1', 'ghost').code == 'unknown_member'

    def test_no_options_against_yourself(self, service):
        service.add_expense('g1', 300, 'you', ['you', 'ali', 'sara'])
        assert service.propose_settlements('g1', 'you').code == 'unknown_member'

    def test_group_transfers(self, service):
        service.add_expense('g1', 300, 'you', ['you', 'ali', 'sara'])
        transfers = service.suggest_group_transfers('g1').unwrap()

        assert sum(t.amount for t in transfers) == 200
        assert {t.to_member for t in transfers} == {'you'}


class TestWalletAdjust:

    def test_top_up_and_withdraw(self, service, store):
        store.set_wallet('user-1', 0)
        top_up = service.adjust_wallet(5000, note='Salary').unwrap()
        withdraw = service.adjust_wallet(-2000).unwrap()

        assert (top_up.balance_before, top_up.balance_after) == (0, 5000)
        assert (withdraw.balance_before, withdraw.balance_after) == (5000, 3000)
        assert service.get_wallet_balance().unwrap() == 3000
        assert balances_of(store) == {'you': 0, 'ali': 0, 'sara': 0}

    def test_withdraw_beyond_balance(self, service, store):
        store.set_wallet('user-1', 100)
        result = service.adjust_wallet(-101)

        assert result.code == 'insufficient_wallet_balance'
        assert store.load_wallet_balance('user-1') == 100

    @pytest.mark.parametrize('amount', [0, 1.5, True])
    def test_invalid_adjustment(self, service, amount):
        assert service.adjust_wallet(amount).code == 'invalid_amount'


class TestRemoveMember:

    def test_remove_settled_member(self, service, store):
        assert service.remove_member('g1', 'sara').unwrap() == 0
        group = store.load_group('g1')

        assert not group.has_member('sara')
        assert group.written_off == 0

    def test_remove_with_balance_writes_off(self, service, store, system_service):
        service.add_expense('g1', 300, 'you', ['you', 'ali', 'sara'])
        discarded = service.remove_member('g1', 'sara').unwrap()
        group = store.load_group('g1')

        assert discarded == -100
        assert group.written_off == -100
        assert sum(group.balances.values()) + group.written_off == 0
        assert system_service.reconcile('g1').ok

    def test_removal_annotates_history(self, service, store):
        service.add_expense('g1', 300, 'you', ['you', 'ali', 'sara'])
        service.record_payment('g1', 'ali', 'you', 100)
        service.remove_member('g1', 'sara')

        expense, payment = store.load_transactions('g1')
        assert expense.annotations == ('Sara was removed from the group',)
        assert expense.amount == 300
        assert payment.annotations == ()

    def test_remove_unknown(self, service):
        assert service.remove_member('g1', 'ghost').code == 'member_not_in_group'

    def test_removed_member_cannot_transact(self, service):
        service.remove_member('g1', 'sara')
        assert service.add_expense('g1', 300, 'you', ['sara']).code == 'unknown_member'


class TestCleanupTemporaryMembers:

    def test_removes_expired_and_settled(self, system_service, store, temporary_members):
        removed = system_service.cleanup_temporary_members('g1').unwrap()

        assert removed == ['tmp-expired', 'tmp-settled']
        assert store.load_group('g1').has_member('tmp-active')

    def test_keeps_settled_member_with_balance(self, service, system_service, store, temporary_members):
        service.add_expense('g1', 200, 'you', ['you', 'tmp-settled'])
        removed = system_service.cleanup_temporary_members('g1').unwrap()

        assert removed == ['tmp-expired']
        assert store.load_group('g1').has_member('tmp-settled')

    def test_expired_member_balance_written_off(self, service, system_service, store, temporary_members):
        service.add_expense('g1', 200, 'you', ['you', 'tmp-expired'])
        system_service.cleanup_temporary_members('g1')
        group = store.load_group('g1')

        assert group.written_off == -100
        assert sum(group.balances.values()) + group.written_off == 0


class TestAtomicityAndConcurrency:

    def test_store_failure_rolls_back(self, service, store, monkeypatch):
        store.set_wallet('user-1', 500)

        def boom(*args, **kwargs):
            raise RuntimeError('disk full')

        monkeypatch.setattr(store, 'append_wallet_entry', boom)
        with pytest.raises(RuntimeError):
            service.add_expense('g1', 300, 'you', ['you', 'ali', 'sara'])

        assert store.load_transactions('g1') == []
        assert balances_of(store) == {'you': 0, 'ali': 0, 'sara': 0}
        assert store.load_wallet_balance('user-1') == 500
        assert store.load_group('g1').version == 0

    def test_stale_version_rejected(self, service, store, monkeypatch):
        original = store.load_group

        def stale_then_bump(group_id):
            group = original(group_id)
            # another writer commits between load and append
            store.groups[group_id] = replace(group, version=group.version + 1)
            return group

        monkeypatch.setattr(store, 'load_group', stale_then_bump)
        result = service.add_expense('g1', 300, 'you', ['you', 'ali'])

        assert result.code == 'concurrent_modification'
        assert isinstance(result.error, ConcurrentModificationError)
        assert store.load_transactions('g1') == []


class TestReconcile:

    def test_reconcile_clean_ledger(self, service, ali_service, system_service):
        service.add_expense('g1', 300, 'you', ['you', 'ali', 'sara'])
        ali_service.record_payment('g1', 'ali', 'you', 100)

        report = system_service.reconcile('g1').unwrap()
        assert report['balances'] == {'you': 100, 'ali': 0, 'sara': -100}
        assert report['transactions'] == 2

    def test_reconcile_detects_drift(self, service, store, system_service):
        service.add_expense('g1', 300, 'you', ['you', 'ali', 'sara'])
        store.save_group_balances('g1', {'you': 250, 'ali': -150, 'sara': -100}, 0)

        with pytest.raises(LedgerConsistencyError) as exc_info:
            system_service.reconcile('g1')
        assert 'ali' in exc_info.value.details['mismatched']

    def test_reconcile_missing_group(self, system_service):
        assert system_service.reconcile('nope').code == 'group_not_found'
