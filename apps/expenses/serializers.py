from rest_framework import serializers
from .models import ExpenseShare, LedgerTransaction, WalletEntry
from apps.accounts.serializers import UserMinimalSerializer


class ExpenseShareSerializer(serializers.ModelSerializer):
    """Serializer for one member's share of an expense."""

    member_name = serializers.CharField(source='member.name', read_only=True)

    class Meta:
        model = ExpenseShare
        fields = ['member', 'member_name', 'amount']
        read_only_fields = fields


class LedgerTransactionSerializer(serializers.ModelSerializer):
    """Read serializer for the transaction log."""

    shares = ExpenseShareSerializer(many=True, read_only=True)
    created_by = UserMinimalSerializer(read_only=True)
    paid_by_name = serializers.CharField(source='paid_by.name', read_only=True, default=None)
    from_member_name = serializers.CharField(source='from_member.name', read_only=True, default=None)
    to_member_name = serializers.CharField(source='to_member.name', read_only=True, default=None)

    class Meta:
        model = LedgerTransaction
        fields = [
            'id',
            'group',
            'kind',
            'amount',
            'sequence',
            'paid_by',
            'paid_by_name',
            'place',
            'shares',
            'from_member',
            'from_member_name',
            'to_member',
            'to_member_name',
            'method',
            'note',
            'annotations',
            'created_by',
            'created_at',
        ]
        read_only_fields = fields


class TransactionFilterSerializer(serializers.Serializer):
    """Query parameters for the transaction log."""

    group = serializers.UUIDField(required=False)
    kind = serializers.ChoiceField(choices=['expense', 'payment'], required=False)


class ExpenseCreateSerializer(serializers.Serializer):
    """
    Input for recording an expense.

    Amounts are integers in minor units. Positivity and the upper bound are
    checked by the ledger so that every amount error has the same code.
    """

    group = serializers.UUIDField()
    amount = serializers.IntegerField()
    paid_by = serializers.UUIDField()
    participants = serializers.ListField(
        child=serializers.UUIDField(),
        allow_empty=True,
        help_text="Member IDs to split among, in order. The first amount % N get one extra unit."
    )
    note = serializers.CharField(max_length=200, required=False, allow_blank=True, default='')
    place = serializers.CharField(max_length=200, required=False, allow_blank=True, default='')


class PaymentCreateSerializer(serializers.Serializer):
    """Input for recording a payment between two members."""

    group = serializers.UUIDField()
    from_member = serializers.UUIDField()
    to_member = serializers.UUIDField()
    amount = serializers.IntegerField()
    method = serializers.CharField(max_length=10, required=False, default='cash')
    note = serializers.CharField(max_length=200, required=False, allow_blank=True, default='')


class SettlementSummarySerializer(serializers.Serializer):
    counterparty_id = serializers.CharField()
    counterparty_name = serializers.CharField()
    to_receive = serializers.IntegerField()
    to_pay = serializers.IntegerField()
    has_outstanding = serializers.BooleanField()


class SettlementTotalsSerializer(serializers.Serializer):
    to_receive = serializers.IntegerField()
    to_pay = serializers.IntegerField()
    has_outstanding = serializers.BooleanField()


class SettlementOptionSerializer(serializers.Serializer):
    kind = serializers.CharField()
    description = serializers.CharField()
    amount = serializers.IntegerField()
    counterparty_id = serializers.CharField()


class TransferSerializer(serializers.Serializer):
    from_member = serializers.CharField()
    to_member = serializers.CharField()
    amount = serializers.IntegerField()


class GroupSettlementsSerializer(serializers.Serializer):
    """Response of the group settlements endpoint."""

    settlements = SettlementSummarySerializer(many=True)
    totals = SettlementTotalsSerializer()
    suggested_transfers = TransferSerializer(many=True)


class WalletAdjustSerializer(serializers.Serializer):
    """Positive amount tops up, negative withdraws."""

    amount = serializers.IntegerField()
    note = serializers.CharField(max_length=200, required=False, allow_blank=True, default='')


class WalletEntrySerializer(serializers.ModelSerializer):

    class Meta:
        model = WalletEntry
        fields = ['id', 'amount', 'note', 'balance_before', 'balance_after', 'created_at']
        read_only_fields = fields


class WalletSerializer(serializers.Serializer):
    balance = serializers.IntegerField()
    currency = serializers.CharField()
    entries = WalletEntrySerializer(many=True)
