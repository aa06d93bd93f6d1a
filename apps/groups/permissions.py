from rest_framework import permissions


class IsGroupMember(permissions.BasePermission):
    """
    Permission: User must be an active member of the group.
    """

    def has_object_permission(self, request, view, obj):
        # obj is a Group instance
        return obj.has_member(request.user)


class IsGroupCreator(permissions.BasePermission):
    """
    Permission: User must be the group creator.
    """

    message = 'Only the group creator can do this.'

    def has_object_permission(self, request, view, obj):
        # obj is a Group instance
        return obj.is_creator(request.user)
