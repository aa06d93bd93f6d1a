"""
Group management service.

Handles group CRUD operations with proper transaction safety.
"""

import logging
from typing import Iterable
from uuid import UUID

from django.db import transaction
from django.db.models import Prefetch

from apps.accounts.models import User
from apps.groups.models import Group, GroupMember

from .exceptions import (
    GroupNotFoundError,
    InsufficientPermissionsError,
    PendingSettlementsError,
)
from .membership_management import validate_member_name

logger = logging.getLogger(__name__)


@transaction.atomic
def create_group(
    *,
    name: str,
    created_by: User,
    member_names: Iterable[str] = (),
) -> Group:
    """
    Create a new group and add the creator as its first member.

    Args:
        name: Group name
        created_by: User creating the group
        member_names: Optional named (guest) members to add right away

    Returns:
        Created Group instance

    Raises:
        InvalidMemberNameError: If a member name is empty or too long
        DuplicateMemberNameError: If two members share a name
    """
    group = Group.objects.create(name=name, created_by=created_by)

    creator_name = created_by.get_display_name()[:50]
    GroupMember.objects.create(group=group, user=created_by, name=creator_name)

    taken = {creator_name.casefold()}
    for raw_name in member_names:
        member_name = validate_member_name(raw_name, taken=taken)
        GroupMember.objects.create(group=group, name=member_name)
        taken.add(member_name.casefold())

    logger.info('Group %s created by %s with %d member(s)', group.id, created_by.id, len(taken))
    return group


def get_group_by_id(*, group_id: UUID) -> Group:
    """
    Get a group by ID with its active members prefetched.

    Raises:
        GroupNotFoundError: If group doesn't exist
    """
    try:
        return (
            Group.objects
            .select_related('created_by')
            .prefetch_related(
                Prefetch(
                    'members',
                    queryset=GroupMember.objects.filter(removed_at__isnull=True).select_related('user'),
                    to_attr='prefetched_active_members',
                )
            )
            .get(id=group_id)
        )
    except Group.DoesNotExist:
        raise GroupNotFoundError(f"Group with ID {group_id} not found")


@transaction.atomic
def delete_group(*, group_id: UUID, user: User) -> None:
    """
    Delete a group (creator only).

    Cascading deletes remove all members and the group's transaction log,
    so every active member has to be settled up first.

    Raises:
        GroupNotFoundError: If group doesn't exist
        InsufficientPermissionsError: If user is not the creator
        PendingSettlementsError: If any active member has a non-zero balance
    """
    try:
        group = (
            Group.objects
            .select_for_update()
            .get(id=group_id)
        )
    except Group.DoesNotExist:
        raise GroupNotFoundError(f"Group with ID {group_id} not found")

    if not group.is_creator(user):
        raise InsufficientPermissionsError("Only the group creator can delete the group")

    has_open_balances = (
        GroupMember.objects
        .filter(group=group, removed_at__isnull=True)
        .exclude(balance=0)
        .exists()
    )
    if has_open_balances:
        raise PendingSettlementsError(
            "Cannot delete group with pending settlements. Please settle all debts first."
        )

    group.delete()
    logger.info('Group %s deleted by %s', group_id, user.id)
