"""
Groups app services layer.

Services contain business logic and orchestrate operations across models.
All state-changing operations use transactions.
"""

from .exceptions import (
    GroupsServiceError,
    GroupNotFoundError,
    NotMemberError,
    MemberNotFoundError,
    AlreadyMemberError,
    UserNotFoundError,
    InvalidMemberNameError,
    DuplicateMemberNameError,
    CannotRemoveCreatorError,
    InsufficientPermissionsError,
    PendingSettlementsError,
)

from .group_management import (
    create_group,
    delete_group,
    get_group_by_id,
)

from .membership_management import (
    add_member,
    remove_member,
    get_group_members,
    validate_member_name,
)


__all__ = [
    # Exceptions
    'GroupsServiceError',
    'GroupNotFoundError',
    'NotMemberError',
    'MemberNotFoundError',
    'AlreadyMemberError',
    'UserNotFoundError',
    'InvalidMemberNameError',
    'DuplicateMemberNameError',
    'CannotRemoveCreatorError',
    'InsufficientPermissionsError',
    'PendingSettlementsError',

    # Group Management
    'create_group',
    'delete_group',
    'get_group_by_id',

    # Membership Management
    'add_member',
    'remove_member',
    'get_group_members',
    'validate_member_name',
]
