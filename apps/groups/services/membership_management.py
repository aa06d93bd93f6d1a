"""
Membership management service.

Adding members is plain ORM work. Removing a member goes through the
ledger so that their balance is written off and history is annotated in
the same transaction.
"""

from datetime import timedelta
from typing import Optional
from uuid import UUID

from django.conf import settings
from django.db import transaction, IntegrityError
from django.db.models import QuerySet
from django.utils import timezone

from apps.accounts.models import User
from apps.groups.models import DeletionCondition, Group, GroupMember

from .exceptions import (
    AlreadyMemberError,
    CannotRemoveCreatorError,
    DuplicateMemberNameError,
    GroupNotFoundError,
    InsufficientPermissionsError,
    InvalidMemberNameError,
    MemberNotFoundError,
    NotMemberError,
    UserNotFoundError,
)

MEMBER_NAME_MAX_LENGTH = 50


def validate_member_name(name: str, *, taken=()) -> str:
    """
    Normalize and validate a member name.

    Args:
        name: Raw name from the caller
        taken: Case-folded names already used in the group

    Returns:
        Stripped name

    Raises:
        InvalidMemberNameError: If the name is empty or longer than 50 characters
        DuplicateMemberNameError: If the name is already used (case-insensitive)
    """
    name = (name or '').strip()
    if not name:
        raise InvalidMemberNameError("Member name is required")
    if len(name) > MEMBER_NAME_MAX_LENGTH:
        raise InvalidMemberNameError(
            f"Member name must be at most {MEMBER_NAME_MAX_LENGTH} characters"
        )
    if name.casefold() in taken:
        raise DuplicateMemberNameError(f"A member named {name} already exists in this group")
    return name


def _get_group(group_id, *, lock=False) -> Group:
    queryset = Group.objects.select_for_update() if lock else Group.objects
    try:
        return queryset.get(id=group_id)
    except Group.DoesNotExist:
        raise GroupNotFoundError(f"Group with ID {group_id} not found")


@transaction.atomic
def add_member(
    *,
    group_id: UUID,
    added_by: User,
    name: str = '',
    email: Optional[str] = None,
    is_temporary: bool = False,
    deletion_condition: str = '',
) -> GroupMember:
    """
    Add a member to a group.

    With ``email`` the member is linked to that registered user and takes
    their display name unless ``name`` is given. Without it the member is a
    named guest. Temporary members default to the ``SETTLED`` condition;
    ``TIME_LIMIT`` members expire after ``LEDGER_TEMPORARY_MEMBER_DAYS``.

    Args:
        group_id: UUID of the group
        added_by: User adding the member (must be a member)
        name: Display name of the new member
        email: Email of a registered user to link
        is_temporary: Whether the member is removed automatically
        deletion_condition: SETTLED or TIME_LIMIT

    Returns:
        Created GroupMember instance

    Raises:
        GroupNotFoundError: If group doesn't exist
        NotMemberError: If added_by is not a member
        UserNotFoundError: If no user has the given email
        AlreadyMemberError: If the user is already an active member
        InvalidMemberNameError: If the name is empty or too long
        DuplicateMemberNameError: If the name is already taken
    """
    group = _get_group(group_id, lock=True)

    if not group.has_member(added_by):
        raise NotMemberError(f"You are not a member of {group.name}")

    user = None
    if email:
        user = User.objects.filter(email__iexact=email.strip()).first()
        if user is None:
            raise UserNotFoundError(f"No user registered with {email}")
        if group.has_member(user):
            raise AlreadyMemberError(f"User is already a member of {group.name}")
        name = name or user.get_display_name()[:MEMBER_NAME_MAX_LENGTH]

    taken = {n.casefold() for n in group.active_members.values_list('name', flat=True)}
    name = validate_member_name(name, taken=taken)

    expires_at = None
    if is_temporary:
        deletion_condition = deletion_condition or DeletionCondition.SETTLED
        if deletion_condition == DeletionCondition.TIME_LIMIT:
            days = getattr(settings, 'LEDGER_TEMPORARY_MEMBER_DAYS', 7)
            expires_at = timezone.now() + timedelta(days=days)
    else:
        deletion_condition = ''

    try:
        return GroupMember.objects.create(
            group=group,
            user=user,
            name=name,
            is_temporary=is_temporary,
            deletion_condition=deletion_condition,
            expires_at=expires_at,
        )
    except IntegrityError:
        raise AlreadyMemberError(f"User is already a member of {group.name}")


def remove_member(
    *,
    group_id: UUID,
    member_id: UUID,
    removed_by: User
) -> int:
    """
    Remove a member from a group (creator only).

    The member's balance is discarded and written off, and historical
    transactions that mention them are annotated.

    Args:
        group_id: UUID of the group
        member_id: UUID of the GroupMember to remove
        removed_by: User performing the removal (must be the creator)

    Returns:
        Discarded balance in minor units

    Raises:
        GroupNotFoundError: If group doesn't exist
        InsufficientPermissionsError: If removed_by is not the creator
        MemberNotFoundError: If member is not an active member of the group
        CannotRemoveCreatorError: If the creator tries to remove themself
        LedgerError: If the ledger rejects the removal
    """
    from apps.expenses.services import build_ledger_service

    group = _get_group(group_id)

    if not group.is_creator(removed_by):
        raise InsufficientPermissionsError("Only the group creator can remove members")

    member = group.active_members.filter(id=member_id).first()
    if member is None:
        raise MemberNotFoundError("Member is not part of this group")

    if member.user_id is not None and member.user_id == removed_by.id:
        raise CannotRemoveCreatorError("The group creator cannot remove themself")

    result = build_ledger_service(removed_by).remove_member(str(group.id), str(member.id))
    return result.unwrap()


def get_group_members(*, group_id: UUID, user: User) -> QuerySet[GroupMember]:
    """
    Get active members of a group.

    Raises:
        GroupNotFoundError: If group doesn't exist
        NotMemberError: If user is not a member
    """
    group = _get_group(group_id)
    if not group.has_member(user):
        raise NotMemberError(f"You are not a member of {group.name}")

    return (
        group.active_members
        .select_related('user')
        .order_by('joined_at')
    )
