# ==========================================
# apps/groups/admin.py
# ==========================================

from django.contrib import admin
from apps.groups.models import Group, GroupMember


class GroupMemberInline(admin.TabularInline):
    """Inline admin for group members."""
    model = GroupMember
    extra = 0
    fields = ['name', 'user', 'balance', 'is_temporary', 'deletion_condition', 'expires_at', 'removed_at']
    readonly_fields = ['balance', 'removed_at']


@admin.register(Group)
class GroupAdmin(admin.ModelAdmin):
    """Admin interface for Groups."""

    list_display = [
        'name',
        'created_by',
        'member_count',
        'written_off',
        'ledger_version',
        'created_at'
    ]
    list_filter = ['created_at']
    search_fields = ['name', 'created_by__email']
    readonly_fields = ['written_off', 'ledger_version', 'created_at', 'updated_at']
    inlines = [GroupMemberInline]
    date_hierarchy = 'created_at'
    ordering = ['-created_at']

    fieldsets = (
        ('Basic Information', {
            'fields': ('name', 'created_by')
        }),
        ('Ledger', {
            'fields': ('written_off', 'ledger_version')
        }),
        ('Metadata', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )

    def member_count(self, obj):
        """Show number of active members."""
        return obj.active_members.count()
    member_count.short_description = 'Members'


@admin.register(GroupMember)
class GroupMemberAdmin(admin.ModelAdmin):
    """Admin interface for Group Members."""

    list_display = ['name', 'group', 'user', 'balance', 'is_temporary', 'joined_at', 'removed_at']
    list_filter = ['is_temporary', 'deletion_condition', 'joined_at']
    search_fields = ['name', 'user__email', 'group__name']
    readonly_fields = ['balance', 'joined_at', 'removed_at']
    date_hierarchy = 'joined_at'
    ordering = ['-joined_at']

    def get_queryset(self, request):
        """Optimize query."""
        qs = super().get_queryset(request)
        return qs.select_related('user', 'group')
