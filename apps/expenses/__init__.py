"""
Expenses App - Group Expense and Payment Ledger

Django side of the ledger engine in ``apps.ledger``: ORM-backed store,
transaction log models and the REST API.

Key Features:
- Expenses split exactly among chosen members
- Direct payments between members
- Pairwise settlements and settlement options
- Personal wallet with top-ups, withdrawals and own-share deductions
- Reconciliation and temporary-member cleanup commands

Architecture:
- Models: LedgerTransaction, ExpenseShare, WalletEntry
- Store: DjangoLedgerStore (implements the ledger store protocol)
- Services: build_ledger_service, reconcile_all, cleanup_all
- Views: TransactionViewSet plus settlement and wallet function views
"""
