"""
Custom permission classes for the ledger API.
"""
from rest_framework.permissions import BasePermission


class IsGroupMemberForTransaction(BasePermission):
    """
    Permission to check if user is an active member of the transaction's group.

    Usage:
        @permission_classes([IsAuthenticated, IsGroupMemberForTransaction])
        class TransactionViewSet(viewsets.ReadOnlyModelViewSet):
            ...
    """

    message = 'You must be a member of this group to view this transaction.'

    def has_object_permission(self, request, view, obj):
        return obj.group.has_member(request.user)
