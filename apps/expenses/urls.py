from django.urls import path, include
from rest_framework.routers import DefaultRouter
from . import views

app_name = 'expenses'

router = DefaultRouter()
router.register(r'transactions', views.TransactionViewSet, basename='transaction')

urlpatterns = [
    # Transaction routes
    # GET    /api/ledger/transactions/            - List transactions (?group=, ?kind=)
    # GET    /api/ledger/transactions/{id}/       - Get transaction details
    # POST   /api/ledger/transactions/expense/    - Record expense
    # POST   /api/ledger/transactions/payment/    - Record payment

    # Settlements
    path(
        'groups/<uuid:group_id>/settlements/',
        views.group_settlements,
        name='group-settlements',
    ),
    path(
        'groups/<uuid:group_id>/settlements/<uuid:member_id>/options/',
        views.settlement_options,
        name='settlement-options',
    ),

    # Wallet
    path('wallet/', views.wallet, name='wallet'),
    path('wallet/adjust/', views.wallet_adjust, name='wallet-adjust'),

    path('', include(router.urls)),
]
