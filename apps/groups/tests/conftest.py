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
def creator(db):
    """Create and return the group creator."""
    return User.objects.create_user(
        email='creator@example.com',
        password='TestPass123!',
        display_name='Creator',
        wallet_balance=1_000_000,
    )


@pytest.fixture
def member_user(db):
    """Create and return a registered member."""
    return User.objects.create_user(
        email='member@example.com',
        password='TestPass123!',
        display_name='Member',
        wallet_balance=1_000_000,
    )


@pytest.fixture
def other_user(db):
    """Create and return a user not in any group."""
    return User.objects.create_user(
        email='other@example.com',
        password='TestPass123!',
        display_name='Other User',
    )


@pytest.fixture
def group(creator, member_user):
    """Group with the creator, a registered member and a guest named Ali."""
    group = create_group(name='Weekend Trip', created_by=creator, member_names=['Ali'])
    GroupMember.objects.create(group=group, user=member_user, name=member_user.display_name)
    return group


@pytest.fixture
def creator_member(group, creator):
    return group.get_member_for(creator)


@pytest.fixture
def registered_member(group, member_user):
    return group.get_member_for(member_user)


@pytest.fixture
def guest(group):
    return group.active_members.get(name='Ali')


def _client_for(user):
    client = APIClient()
    refresh = RefreshToken.for_user(user)
    client.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
    return client


@pytest.fixture
def authenticated_client(creator):
    """Return API client authenticated as the group creator."""
    return _client_for(creator)


@pytest.fixture
def member_client(member_user):
    """Return API client authenticated as a regular member."""
    return _client_for(member_user)


@pytest.fixture
def other_client(other_user):
    """Return API client authenticated as a non-member."""
    return _client_for(other_user)
