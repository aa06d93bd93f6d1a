from django.contrib import admin
from django.utils.html import format_html
from .models import ExpenseShare, LedgerTransaction, TransactionKind, WalletEntry


class ExpenseShareInline(admin.TabularInline):
    """Inline admin for the shares of an expense."""
    model = ExpenseShare
    extra = 0
    fields = ['position', 'member', 'amount']
    readonly_fields = fields
    ordering = ['position']

    def has_add_permission(self, request, obj=None):
        """Shares are created by the ledger only."""
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(LedgerTransaction)
class LedgerTransactionAdmin(admin.ModelAdmin):
    """
    Read-only admin for the transaction log.

    The log is append-only; editing a row here would desync the cached
    member balances, so everything is read-only.
    """

    list_display = ['sequence', 'group', 'kind_badge', 'amount', 'note', 'created_by', 'created_at']
    list_filter = ['kind', 'method', 'created_at']
    search_fields = ['note', 'place', 'group__name']
    ordering = ['-created_at']
    inlines = [ExpenseShareInline]
    readonly_fields = [
        'id', 'group', 'kind', 'amount', 'sequence', 'paid_by', 'place',
        'from_member', 'to_member', 'method', 'note', 'annotations',
        'created_by', 'created_at',
    ]

    def kind_badge(self, obj):
        colors = {
            TransactionKind.EXPENSE: '#A47449',
            TransactionKind.PAYMENT: '#6B8E5E',
        }
        return format_html(
            '<span style="background: {}; color: white; padding: 3px 8px; '
            'border-radius: 10px; font-size: 11px;">{}</span>',
            colors.get(obj.kind, '#999'), obj.get_kind_display()
        )
    kind_badge.short_description = 'Kind'

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(WalletEntry)
class WalletEntryAdmin(admin.ModelAdmin):
    list_display = ['user', 'amount', 'balance_before', 'balance_after', 'note', 'created_at']
    search_fields = ['user__email', 'note']
    ordering = ['-created_at']
    readonly_fields = ['id', 'user', 'amount', 'note', 'balance_before', 'balance_after', 'created_at']

    def has_add_permission(self, request):
        return False
