from django.db.models import Prefetch
from rest_framework import viewsets, status
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.pagination import PageNumberPagination
from drf_spectacular.utils import extend_schema

from .models import Group, GroupMember
from .serializers import (
    AddMemberSerializer,
    GroupCreateSerializer,
    GroupListSerializer,
    GroupMemberSerializer,
    GroupSerializer,
    RemoveMemberSerializer,
)
from .permissions import IsGroupCreator, IsGroupMember

from apps.expenses.exceptions import to_api_exception
from apps.ledger.exceptions import LedgerError
from apps.groups.services import (
    create_group,
    delete_group,
    get_group_by_id,
    add_member,
    remove_member,
    get_group_members,
    # Exceptions
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


class GroupPagination(PageNumberPagination):
    """Custom pagination for groups."""
    page_size = 20
    page_size_query_param = 'page_size'
    max_page_size = 100


class GroupViewSet(viewsets.ModelViewSet):
    """
    ViewSet for Group operations.

    All business logic is handled by services.
    Views are thin HTTP handlers only.

    list: Get all groups (user is member of)
    create: Create a new group
    retrieve: Get a specific group with members and balances
    destroy: Delete a group (creator only)
    """

    serializer_class = GroupSerializer
    permission_classes = [IsAuthenticated]
    pagination_class = GroupPagination
    http_method_names = ['get', 'post', 'delete', 'head', 'options']

    def get_queryset(self):
        """Return only groups where user is an active member."""
        user = self.request.user
        return (
            Group.objects
            .filter(members__user=user, members__removed_at__isnull=True)
            .select_related('created_by')
            .prefetch_related(
                Prefetch(
                    'members',
                    queryset=GroupMember.objects.filter(removed_at__isnull=True)
                    .select_related('user')
                    .order_by('joined_at'),
                    to_attr='prefetched_active_members',
                )
            )
            .distinct()
        )

    def get_serializer_class(self):
        """Use different serializers for different actions."""
        if self.action == 'list':
            return GroupListSerializer
        elif self.action == 'create':
            return GroupCreateSerializer
        return GroupSerializer

    def get_permissions(self):
        """Set permissions based on action."""
        if self.action == 'destroy':
            return [IsAuthenticated(), IsGroupCreator()]
        if self.action == 'retrieve':
            return [IsAuthenticated(), IsGroupMember()]
        return [IsAuthenticated()]

    def create(self, request, *args, **kwargs):
        """Create a new group with the creator as first member."""
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            group = create_group(
                name=serializer.validated_data['name'],
                created_by=request.user,
                member_names=serializer.validated_data.get('member_names', []),
            )
        except (InvalidMemberNameError, DuplicateMemberNameError) as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

        group = get_group_by_id(group_id=group.id)
        output_serializer = GroupSerializer(group, context={'request': request})
        return Response(output_serializer.data, status=status.HTTP_201_CREATED)

    def destroy(self, request, *args, **kwargs):
        """Delete a group."""
        self.get_object()
        try:
            delete_group(group_id=self.kwargs['pk'], user=request.user)
            return Response(status=status.HTTP_204_NO_CONTENT)
        except InsufficientPermissionsError as e:
            return Response({'error': str(e)}, status=status.HTTP_403_FORBIDDEN)
        except GroupNotFoundError as e:
            return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
        except PendingSettlementsError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    @extend_schema(responses={200: GroupMemberSerializer(many=True)})
    @action(detail=True, methods=['get'])
    def members(self, request, pk=None):
        """Get all active members of the group with their balances."""
        try:
            members = get_group_members(group_id=pk, user=request.user)
        except GroupNotFoundError as e:
            return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
        except NotMemberError as e:
            return Response({'error': str(e)}, status=status.HTTP_403_FORBIDDEN)

        serializer = GroupMemberSerializer(members, many=True, context={'request': request})
        return Response(serializer.data)

    @extend_schema(request=AddMemberSerializer, responses={201: GroupMemberSerializer})
    @action(detail=True, methods=['post'])
    def add_member(self, request, pk=None):
        """
        Add a guest or a registered user to the group.

        POST /api/groups/{id}/add_member/
        Body: {"name": "Ali"} or {"email": "ali@example.com"}
        """
        serializer = AddMemberSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            member = add_member(
                group_id=pk,
                added_by=request.user,
                name=serializer.validated_data.get('name', ''),
                email=serializer.validated_data.get('email'),
                is_temporary=serializer.validated_data.get('is_temporary', False),
                deletion_condition=serializer.validated_data.get('deletion_condition', ''),
            )
        except (GroupNotFoundError, UserNotFoundError) as e:
            return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
        except NotMemberError as e:
            return Response({'error': str(e)}, status=status.HTTP_403_FORBIDDEN)
        except (AlreadyMemberError, InvalidMemberNameError, DuplicateMemberNameError) as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

        output_serializer = GroupMemberSerializer(member, context={'request': request})
        return Response(output_serializer.data, status=status.HTTP_201_CREATED)

    @extend_schema(request=RemoveMemberSerializer)
    @action(detail=True, methods=['delete'])
    def remove_member(self, request, pk=None):
        """
        Remove a member from the group (creator only).

        Their balance is written off and history is annotated.

        DELETE /api/groups/{id}/remove_member/
        Body: {"member_id": "..."}
        """
        serializer = RemoveMemberSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            discarded = remove_member(
                group_id=pk,
                member_id=serializer.validated_data['member_id'],
                removed_by=request.user,
            )
        except GroupNotFoundError as e:
            return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
        except InsufficientPermissionsError as e:
            return Response({'error': str(e)}, status=status.HTTP_403_FORBIDDEN)
        except MemberNotFoundError as e:
            return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
        except CannotRemoveCreatorError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
        except LedgerError as e:
            raise to_api_exception(e)

        return Response({
            'message': 'Member removed successfully',
            'written_off': discarded,
        })
