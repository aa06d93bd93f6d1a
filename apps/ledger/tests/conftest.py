import pytest
from datetime import datetime, timedelta, timezone

from apps.ledger.engine import LedgerService
from apps.ledger.records import DeletionCondition, Group, Member
from apps.ledger.store import InMemoryLedgerStore


class FakeClock:
    """Controllable clock for duplicate windows and expiry."""

    def __init__(self, start=None):
        self.now = start or datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return InMemoryLedgerStore()


@pytest.fixture
def group(store, clock):
    """Group with You (user-1), Ali (user-2) and Sara (user-3)."""
    return store.add_group(Group(
        id='g1',
        name='Flatmates',
        members=(
            Member(id='you', name='You', user_id='user-1'),
            Member(id='ali', name='Ali', user_id='user-2'),
            Member(id='sara', name='Sara', user_id='user-3'),
        ),
        created_by='user-1',
        created_at=clock(),
        balances={'you': 0, 'ali': 0, 'sara': 0},
    ))


@pytest.fixture
def group_with_guest(store, group):
    """Adds a fourth named member with no user account."""
    store.add_member(group.id, Member(id='cem', name='Cem'))
    return store.load_group(group.id)


@pytest.fixture
def temporary_members(store, group, clock):
    store.add_member(group.id, Member(
        id='tmp-expired', name='Visitor', is_temporary=True,
        deletion_condition=DeletionCondition.TIME_LIMIT,
        expires_at=clock() - timedelta(hours=1),
    ))
    store.add_member(group.id, Member(
        id='tmp-active', name='Cousin', is_temporary=True,
        deletion_condition=DeletionCondition.TIME_LIMIT,
        expires_at=clock() + timedelta(days=3),
    ))
    store.add_member(group.id, Member(
        id='tmp-settled', name='Neighbour', is_temporary=True,
        deletion_condition=DeletionCondition.SETTLED,
    ))
    return store.load_group(group.id)


@pytest.fixture
def service(store, group, clock):
    """Service acting as You, with a wallet large enough for most tests."""
    store.set_wallet('user-1', 1_000_000)
    return LedgerService(store, current_user_id='user-1', clock=clock)


@pytest.fixture
def ali_service(store, group, clock):
    store.set_wallet('user-2', 1_000_000)
    return LedgerService(store, current_user_id='user-2', clock=clock)


@pytest.fixture
def system_service(store, clock):
    return LedgerService(store, current_user_id=None, clock=clock)
