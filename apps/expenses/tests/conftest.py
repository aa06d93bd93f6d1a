import pytest
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken
from apps.accounts.models import User
from apps.groups.models import GroupMember
from apps.groups.services import create_group


@pytest.fixture
def api_client():
    """Return an unauthenticated API client."""
    return APIClient()


@pytest.fixture
def user(db):
    """Group creator with a funded wallet."""
    return User.objects.create_user(
        email='you@example.com',
        password='TestPass123!',
        display_name='You',
        wallet_balance=1_000_000,
    )


@pytest.fixture
def ali_user(db):
    return User.objects.create_user(
        email='ali@example.com',
        password='TestPass123!',
        display_name='Ali',
        wallet_balance=1_000_000,
    )


@pytest.fixture
def other_user(db):
    """User that is not in the group."""
    return User.objects.create_user(
        email='other@example.com',
        password='TestPass123!',
        display_name='Other User',
    )


@pytest.fixture
def group(user, ali_user):
    """Group with You (creator), Ali (registered) and Sara (guest)."""
    group = create_group(name='Flat', created_by=user, member_names=['Sara'])
    GroupMember.objects.create(group=group, user=ali_user, name='Ali')
    return group


@pytest.fixture
def me(group, user):
    return group.get_member_for(user)


@pytest.fixture
def ali(group, ali_user):
    return group.get_member_for(ali_user)


@pytest.fixture
def sara(group):
    return group.active_members.get(name='Sara')


def _client_for(user):
    client = APIClient()
    refresh = RefreshToken.for_user(user)
    client.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
    return client


@pytest.fixture
def authenticated_client(user):
    return _client_for(user)


@pytest.fixture
def ali_client(ali_user):
    return _client_for(ali_user)


@pytest.fixture
def other_client(other_user):
    return _client_for(other_user)


@pytest.fixture
def expense_payload(group, me, ali, sara):
    """Dinner of 300.00 paid by You, split three ways."""
    return {
        'group': str(group.id),
        'amount': 30000,
        'paid_by': str(me.id),
        'participants': [str(me.id), str(ali.id), str(sara.id)],
        'note': 'Dinner',
    }
