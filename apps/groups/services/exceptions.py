"""
Domain-specific exceptions for groups app.

These exceptions represent business rule violations and should be
caught in views and converted to appropriate HTTP responses.
"""


class GroupsServiceError(Exception):
    """Base exception for all groups service errors."""
    pass


class GroupNotFoundError(GroupsServiceError):
    """Raised when a group does not exist or is inaccessible."""
    pass


class NotMemberError(GroupsServiceError):
    """Raised when a user tries to perform an action requiring membership."""
    pass


class MemberNotFoundError(GroupsServiceError):
    """Raised when a member id does not belong to the group."""
    pass


class AlreadyMemberError(GroupsServiceError):
    """Raised when a registered user is already an active member."""
    pass


class UserNotFoundError(GroupsServiceError):
    """Raised when no registered user matches the given email."""
    pass


class InvalidMemberNameError(GroupsServiceError):
    """Raised when a member name is empty or too long."""
    pass


class DuplicateMemberNameError(GroupsServiceError):
    """Raised when the group already has an active member with that name."""
    pass


class CannotRemoveCreatorError(GroupsServiceError):
    """Raised when the group creator tries to remove their own member."""
    pass


class InsufficientPermissionsError(GroupsServiceError):
    """Raised when a user lacks required permissions for an action."""
    pass


class PendingSettlementsError(GroupsServiceError):
    """Raised when a group with open balances is about to be deleted."""
    pass
