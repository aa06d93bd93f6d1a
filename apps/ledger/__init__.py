"""
Ledger - Shared-Expense Ledger and Settlement Engine

Pure-Python core with no Django imports. Amounts are integers in minor
currency units.

Key Features:
- Exact integer splitting of expenses among ordered participants
- Zero-sum per-member balances rebuilt from the transaction log
- Pairwise "who owes whom" view and settlement options
- Time-windowed duplicate detection
- Wallet guard for the current user's own share

Architecture:
- Records: Member, Group, Expense, Payment, WalletAdjust
- Pure functions: split, balances, settlements, duplicates, wallet
- Store: LedgerStore protocol, InMemoryLedgerStore
- Service: LedgerService (returns Result values)
"""

__version__ = '1.0.0'
