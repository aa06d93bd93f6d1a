from rest_framework import serializers
from .models import DeletionCondition, Group, GroupMember
from apps.accounts.serializers import UserMinimalSerializer


class GroupMemberSerializer(serializers.ModelSerializer):
    """Member of a group with their cached balance."""

    user = UserMinimalSerializer(read_only=True)
    is_current_user = serializers.SerializerMethodField()

    class Meta:
        model = GroupMember
        fields = [
            'id',
            'name',
            'user',
            'balance',
            'is_temporary',
            'deletion_condition',
            'expires_at',
            'is_current_user',
            'joined_at',
        ]
        read_only_fields = fields

    def get_is_current_user(self, obj):
        request = self.context.get('request')
        if request and request.user.is_authenticated:
            return obj.user_id is not None and obj.user_id == request.user.id
        return False


def _active_members(group):
    members = getattr(group, 'prefetched_active_members', None)
    if members is None:
        members = group.active_members.select_related('user').order_by('joined_at')
    return members


class GroupSerializer(serializers.ModelSerializer):
    """Main serializer for groups, with active members."""

    created_by = UserMinimalSerializer(read_only=True)
    member_count = serializers.SerializerMethodField()
    members = serializers.SerializerMethodField()
    is_creator = serializers.SerializerMethodField()

    class Meta:
        model = Group
        fields = [
            'id',
            'name',
            'created_by',
            'member_count',
            'members',
            'is_creator',
            'written_off',
            'ledger_version',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields

    def get_member_count(self, obj):
        return len(_active_members(obj))

    def get_members(self, obj):
        return GroupMemberSerializer(_active_members(obj), many=True, context=self.context).data

    def get_is_creator(self, obj):
        request = self.context.get('request')
        if request and request.user.is_authenticated:
            return obj.is_creator(request.user)
        return False


class GroupCreateSerializer(serializers.ModelSerializer):
    """Serializer for creating groups."""

    member_names = serializers.ListField(
        child=serializers.CharField(max_length=50),
        required=False,
        default=list,
        help_text="Names of guest members to add right away"
    )

    class Meta:
        model = Group
        fields = ['name', 'member_names']


class GroupListSerializer(serializers.ModelSerializer):
    """Lightweight serializer for list views."""

    created_by = UserMinimalSerializer(read_only=True)
    member_count = serializers.SerializerMethodField()

    class Meta:
        model = Group
        fields = [
            'id',
            'name',
            'created_by',
            'member_count',
            'created_at',
        ]
        read_only_fields = fields

    def get_member_count(self, obj):
        return obj.active_members.count()


class AddMemberSerializer(serializers.Serializer):
    """
    Input for adding a member.

    Either ``name`` (a guest) or ``email`` (a registered user) is required.
    """

    name = serializers.CharField(max_length=50, required=False, allow_blank=True, default='')
    email = serializers.EmailField(required=False, allow_null=True, default=None)
    is_temporary = serializers.BooleanField(required=False, default=False)
    deletion_condition = serializers.ChoiceField(
        choices=DeletionCondition.choices,
        required=False,
        allow_blank=True,
        default='',
    )

    def validate(self, attrs):
        if not attrs.get('name', '').strip() and not attrs.get('email'):
            raise serializers.ValidationError("Either name or email is required")
        if attrs.get('deletion_condition') and not attrs.get('is_temporary'):
            raise serializers.ValidationError(
                {'deletion_condition': "Only temporary members have a deletion condition"}
            )
        return attrs


class RemoveMemberSerializer(serializers.Serializer):
    member_id = serializers.UUIDField()
