from django.conf import settings
from drf_spectacular.utils import extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action, api_view, permission_classes
from rest_framework.pagination import PageNumberPagination
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from .exceptions import to_api_exception
from .models import LedgerTransaction, WalletEntry
from .permissions import IsGroupMemberForTransaction
from .serializers import (
    ExpenseCreateSerializer,
    GroupSettlementsSerializer,
    LedgerTransactionSerializer,
    PaymentCreateSerializer,
    SettlementOptionSerializer,
    SettlementSummarySerializer,
    SettlementTotalsSerializer,
    TransactionFilterSerializer,
    TransferSerializer,
    WalletAdjustSerializer,
    WalletEntrySerializer,
    WalletSerializer,
)
from .services import build_ledger_service


class TransactionPagination(PageNumberPagination):
    """Custom pagination for the transaction log."""
    page_size = 50
    page_size_query_param = 'page_size'
    max_page_size = 200


def _unwrap(result):
    """Return the result value or raise the matching API error."""
    if not result.ok:
        raise to_api_exception(result.error)
    return result.value


def _transaction_response(record, status_code=status.HTTP_201_CREATED):
    row = (
        LedgerTransaction.objects
        .select_related('paid_by', 'from_member', 'to_member', 'created_by')
        .prefetch_related('shares__member')
        .get(id=record.id)
    )
    return Response(LedgerTransactionSerializer(row).data, status=status_code)


class TransactionViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Group transaction log.

    Entries are created through the ``expense`` and ``payment`` actions,
    which go through the ledger so balances stay in step. Entries are never
    edited or deleted.

    list: Transactions of the user's groups (``?group=`` narrows to one)
    retrieve: One transaction with its shares
    expense: Record an expense
    payment: Record a payment between two members
    """

    serializer_class = LedgerTransactionSerializer
    permission_classes = [IsAuthenticated, IsGroupMemberForTransaction]
    pagination_class = TransactionPagination

    def get_queryset(self):
        """Only transactions of groups where the user is an active member."""
        filter_serializer = TransactionFilterSerializer(data=self.request.query_params)
        filter_serializer.is_valid(raise_exception=True)
        params = filter_serializer.validated_data

        queryset = (
            LedgerTransaction.objects
            .filter(
                group__members__user=self.request.user,
                group__members__removed_at__isnull=True,
            )
            .select_related('group', 'paid_by', 'from_member', 'to_member', 'created_by')
            .prefetch_related('shares__member')
            .distinct()
        )

        group_id = params.get('group')
        if group_id:
            queryset = queryset.filter(group_id=group_id).order_by('-sequence')
        else:
            queryset = queryset.order_by('-created_at', '-sequence')

        kind = params.get('kind')
        if kind:
            queryset = queryset.filter(kind=kind)
        return queryset

    @extend_schema(
        request=ExpenseCreateSerializer,
        responses={201: LedgerTransactionSerializer},
        description="Record an expense and split it equally among the participants."
    )
    @action(detail=False, methods=['post'])
    def expense(self, request):
        """
        POST /api/ledger/transactions/expense/
        Body: {"group": "...", "amount": 30000, "paid_by": "...", "participants": [...]}
        """
        serializer = ExpenseCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        service = build_ledger_service(request.user)
        expense = _unwrap(service.add_expense(
            group_id=str(data['group']),
            amount=data['amount'],
            paid_by=str(data['paid_by']),
            participant_ids=[str(member_id) for member_id in data['participants']],
            note=data.get('note', ''),
            place=data.get('place', ''),
        ))
        return _transaction_response(expense)

    @extend_schema(
        request=PaymentCreateSerializer,
        responses={201: LedgerTransactionSerializer},
        description="Record a direct payment from one member to another."
    )
    @action(detail=False, methods=['post'])
    def payment(self, request):
        """
        POST /api/ledger/transactions/payment/
        Body: {"group": "...", "from_member": "...", "to_member": "...", "amount": 10000}
        """
        serializer = PaymentCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        service = build_ledger_service(request.user)
        payment = _unwrap(service.record_payment(
            group_id=str(data['group']),
            from_member=str(data['from_member']),
            to_member=str(data['to_member']),
            amount=data['amount'],
            method=data.get('method', 'cash'),
            note=data.get('note', ''),
        ))
        return _transaction_response(payment)


@extend_schema(
    responses={200: GroupSettlementsSerializer},
    description="Pairwise settlements between you and every other member, with totals."
)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def group_settlements(request, group_id):
    """
    GET /api/ledger/groups/{group_id}/settlements/
    """
    service = build_ledger_service(request.user)
    summaries = _unwrap(service.get_settlements(str(group_id)))
    totals = _unwrap(service.get_settlement_totals(str(group_id)))
    transfers = _unwrap(service.suggest_group_transfers(str(group_id)))

    return Response({
        'settlements': SettlementSummarySerializer(summaries.values(), many=True).data,
        'totals': SettlementTotalsSerializer(totals).data,
        'suggested_transfers': TransferSerializer(transfers, many=True).data,
    })


@extend_schema(
    responses={200: SettlementOptionSerializer(many=True)},
    description="Settlement options between you and one member."
)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def settlement_options(request, group_id, member_id):
    """
    GET /api/ledger/groups/{group_id}/settlements/{member_id}/options/
    """
    service = build_ledger_service(request.user)
    options = _unwrap(service.propose_settlements(str(group_id), str(member_id)))
    return Response(SettlementOptionSerializer(options, many=True).data)


@extend_schema(
    responses={200: WalletSerializer},
    description="Your wallet balance and its most recent entries."
)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def wallet(request):
    """
    GET /api/ledger/wallet/
    """
    service = build_ledger_service(request.user)
    balance = _unwrap(service.get_wallet_balance())
    entries = WalletEntry.objects.filter(user=request.user)[:20]

    return Response({
        'balance': balance,
        'currency': getattr(settings, 'LEDGER_CURRENCY', 'PKR'),
        'entries': WalletEntrySerializer(entries, many=True).data,
    })


@extend_schema(
    request=WalletAdjustSerializer,
    responses={201: WalletEntrySerializer},
    description="Top up (positive amount) or withdraw from (negative amount) your wallet."
)
@api_view(['POST'])
@permission_classes([IsAuthenticated])
def wallet_adjust(request):
    """
    POST /api/ledger/wallet/adjust/
    Body: {"amount": 50000, "note": "Top up"}
    """
    serializer = WalletAdjustSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    service = build_ledger_service(request.user)
    entry = _unwrap(service.adjust_wallet(
        serializer.validated_data['amount'],
        note=serializer.validated_data.get('note', ''),
    ))
    row = WalletEntry.objects.get(id=entry.id)
    return Response(WalletEntrySerializer(row).data, status=status.HTTP_201_CREATED)
