"""
Tests for the database-backed ledger store and the service wiring.
"""

import pytest
from datetime import timedelta
from django.utils import timezone

from apps.expenses.models import ExpenseShare, LedgerTransaction
from apps.expenses.services import build_ledger_service, reconcile_all
from apps.expenses.store import DjangoLedgerStore
from apps.groups.models import GroupMember
from apps.ledger.exceptions import ConcurrentModificationError, LedgerConsistencyError
from apps.ledger.records import Expense, Payment, Share


@pytest.mark.django_db
class TestDjangoLedgerStore:

    def test_load_group_has_no_current_member(self, group, me, ali, sara):
        loaded = DjangoLedgerStore().load_group(str(group.id))

        assert loaded.id == str(group.id)
        assert loaded.member_ids == (str(me.id), str(sara.id), str(ali.id))
        assert loaded.current_member is None
        assert loaded.version == 0

    def test_load_group_links_users(self, group, me, user):
        loaded = DjangoLedgerStore().load_group(str(group.id)).viewed_by(user.id)

        assert loaded.current_member.id == str(me.id)

    def test_load_group_skips_removed_members(self, group, sara):
        sara.removed_at = timezone.now()
        sara.save()

        loaded = DjangoLedgerStore().load_group(str(group.id))

        assert str(sara.id) not in loaded.member_ids

    @pytest.mark.parametrize('group_id', ['not-a-uuid', '00000000-0000-0000-0000-000000000000'])
    def test_load_missing_group(self, db, group_id):
        assert DjangoLedgerStore().load_group(group_id) is None

    def test_append_expense_keeps_share_order(self, group, me, ali, sara, user):
        store = DjangoLedgerStore(acting_user=user)
        expense = Expense(
            id='6f1c3f8e-8f0d-4a59-9d55-3c1f6a4d2b11',
            group_id=str(group.id),
            amount=100,
            paid_by=str(me.id),
            shares=[
                Share(str(sara.id), 34),
                Share(str(me.id), 33),
                Share(str(ali.id), 33),
            ],
            created_at=timezone.now(),
        )

        version = store.append_transaction(str(group.id), expense, 0)

        assert version == 1
        row = LedgerTransaction.objects.get(id=expense.id)
        assert row.sequence == 1
        assert row.created_by == user
        assert list(row.shares.values_list('member__name', flat=True)) == ['Sara', 'You', 'Ali']

        loaded = store.load_transactions(str(group.id))
        assert loaded == [expense]

    def test_append_with_stale_version(self, group, me, ali):
        store = DjangoLedgerStore()
        payment = Payment(
            id='0b6c1f26-2a8e-4d1e-8d7b-0f7b3c1f1a20',
            group_id=str(group.id),
            amount=500,
            from_member=str(ali.id),
            to_member=str(me.id),
            created_at=timezone.now(),
        )

        with pytest.raises(ConcurrentModificationError):
            store.append_transaction(str(group.id), payment, 3)

        assert not LedgerTransaction.objects.exists()

    def test_annotate_transactions(self, group, me, ali, sara, user):
        service = build_ledger_service(user)
        service.add_expense(str(group.id), 900, str(me.id), [str(ali.id), str(sara.id)]).unwrap()
        service.add_expense(str(group.id), 400, str(me.id), [str(ali.id)], note='Coffee').unwrap()

        count = DjangoLedgerStore().annotate_transactions(str(group.id), str(sara.id), 'Sara left')

        assert count == 1
        annotated = LedgerTransaction.objects.get(amount=900)
        assert annotated.annotations == ['Sara left']
        assert LedgerTransaction.objects.get(amount=400).annotations == []


@pytest.mark.django_db
class TestLedgerServiceOnDatabase:

    def test_version_conflict_is_reported(self, group, me, ali, user, monkeypatch):
        """A write racing with another writer fails without side effects."""
        service = build_ledger_service(user)
        original = DjangoLedgerStore.load_group

        def stale_load(self, group_id):
            loaded = original(self, group_id)
            # Someone else commits between our read and our write.
            type(group).objects.filter(id=group.id).update(ledger_version=5)
            return loaded

        monkeypatch.setattr(DjangoLedgerStore, 'load_group', stale_load)
        result = service.add_expense(str(group.id), 3000, str(me.id), [str(me.id), str(ali.id)])

        assert result.code == 'concurrent_modification'
        assert not LedgerTransaction.objects.exists()
        assert not ExpenseShare.objects.exists()
        user.refresh_from_db()
        assert user.wallet_balance == 1_000_000
        assert set(GroupMember.objects.values_list('balance', flat=True)) == {0}

    def test_reconcile_matches_after_writes(self, group, me, ali, sara, user):
        service = build_ledger_service(user)
        service.add_expense(str(group.id), 30000, str(me.id), [str(me.id), str(ali.id), str(sara.id)]).unwrap()
        service.record_payment(str(group.id), str(ali.id), str(me.id), 10000).unwrap()

        report = service.reconcile(str(group.id)).unwrap()

        assert report['transactions'] == 2
        assert report['balances'] == {str(me.id): 10000, str(sara.id): -10000, str(ali.id): 0}

    def test_reconcile_after_member_removal(self, group, me, ali, sara, user):
        service = build_ledger_service(user)
        service.add_expense(str(group.id), 30000, str(me.id), [str(me.id), str(ali.id), str(sara.id)]).unwrap()
        service.remove_member(str(group.id), str(sara.id)).unwrap()

        report = service.reconcile(str(group.id)).unwrap()

        assert report['written_off'] == -10000
        assert str(sara.id) not in report['balances']

    def test_tampered_cache_detected(self, group, me, ali, user):
        service = build_ledger_service(user)
        service.add_expense(str(group.id), 1000, str(me.id), [str(ali.id)]).unwrap()
        GroupMember.objects.filter(id=ali.id).update(balance=-999)

        with pytest.raises(LedgerConsistencyError) as excinfo:
            service.reconcile(str(group.id))

        assert excinfo.value.details['mismatched'][str(ali.id)] == {'cached': -999, 'replayed': -1000}

    def test_reconcile_all_collects_failures(self, group, me, ali, user):
        build_ledger_service(user).add_expense(str(group.id), 1000, str(me.id), [str(ali.id)]).unwrap()
        GroupMember.objects.filter(id=me.id).update(balance=1)

        reports, failures = reconcile_all()

        assert reports == []
        assert list(failures) == [str(group.id)]

    def test_expense_window_from_settings(self, group, me, ali, user, settings):
        settings.LEDGER_EXPENSE_DUPLICATE_WINDOW_SECONDS = 0
        service = build_ledger_service(user)

        service.add_expense(str(group.id), 1000, str(me.id), [str(ali.id)]).unwrap()
        second = service.add_expense(str(group.id), 1000, str(me.id), [str(ali.id)])

        assert second.ok
        assert service.expense_window == timedelta(0)
