import pytest
from datetime import timedelta
from io import StringIO
from django.core.management import call_command
from django.core.management.base import CommandError
from django.utils import timezone

from apps.expenses.services import build_ledger_service
from apps.groups.models import DeletionCondition, GroupMember


@pytest.fixture
def visitors(group):
    """One expired time-limit visitor, one active one, one settled guest."""
    now = timezone.now()
    expired = GroupMember.objects.create(
        group=group, name='Expired', is_temporary=True,
        deletion_condition=DeletionCondition.TIME_LIMIT, expires_at=now - timedelta(hours=1),
    )
    active = GroupMember.objects.create(
        group=group, name='Active', is_temporary=True,
        deletion_condition=DeletionCondition.TIME_LIMIT, expires_at=now + timedelta(days=1),
    )
    settled = GroupMember.objects.create(
        group=group, name='Settled', is_temporary=True,
        deletion_condition=DeletionCondition.SETTLED,
    )
    return expired, active, settled


def _is_removed(member):
    member.refresh_from_db()
    return member.removed_at is not None


@pytest.mark.django_db
class TestReconcileLedgersCommand:

    def test_all_groups_match(self, group, me, ali, user):
        build_ledger_service(user).add_expense(str(group.id), 1000, str(me.id), [str(ali.id)]).unwrap()
        out = StringIO()

        call_command('reconcile_ledgers', stdout=out)

        assert 'Reconciled 1 group(s)' in out.getvalue()
        assert '1 transaction(s)' in out.getvalue()

    def test_mismatch_fails(self, group, me, ali, user):
        build_ledger_service(user).add_expense(str(group.id), 1000, str(me.id), [str(ali.id)]).unwrap()
        GroupMember.objects.filter(id=ali.id).update(balance=0)

        with pytest.raises(CommandError):
            call_command('reconcile_ledgers', stdout=StringIO(), stderr=StringIO())

    def test_single_group(self, group):
        out = StringIO()

        call_command('reconcile_ledgers', '--group', str(group.id), stdout=out)

        assert str(group.id) in out.getvalue()


@pytest.mark.django_db
class TestCleanupTemporaryMembersCommand:

    def test_removes_due_members(self, group, visitors):
        expired, active, settled = visitors
        out = StringIO()

        call_command('cleanup_temporary_members', stdout=out)

        assert _is_removed(expired)
        assert _is_removed(settled)
        assert not _is_removed(active)
        assert 'Removed 2 temporary member(s)' in out.getvalue()

    def test_settled_member_with_balance_stays(self, group, me, user, visitors):
        expired, active, settled = visitors
        build_ledger_service(user).add_expense(str(group.id), 500, str(me.id), [str(settled.id)]).unwrap()

        call_command('cleanup_temporary_members', stdout=StringIO())

        assert not _is_removed(settled)
        assert _is_removed(expired)

    def test_expired_member_with_balance_is_written_off(self, group, me, user, visitors):
        expired, active, settled = visitors
        build_ledger_service(user).add_expense(str(group.id), 500, str(me.id), [str(expired.id)]).unwrap()

        call_command('cleanup_temporary_members', stdout=StringIO())

        group.refresh_from_db()
        assert _is_removed(expired)
        assert group.written_off == -500

    def test_dry_run_changes_nothing(self, group, visitors):
        out = StringIO()

        call_command('cleanup_temporary_members', '--dry-run', stdout=out)

        assert 'Found 2 temporary member(s)' in out.getvalue()
        assert not any(_is_removed(member) for member in visitors)

    def test_nothing_to_do(self, group):
        out = StringIO()

        call_command('cleanup_temporary_members', stdout=out)

        assert 'No temporary members are due for removal.' in out.getvalue()
