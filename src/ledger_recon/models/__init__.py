"""Data models for reconciliation."""

from .transaction import (
    Currency,
    MatchKind,
    Transaction,
    Statement,
    LedgerTransaction,
    Amount,
    Match,
    BankTransactionStatus,
    ReconciliationResult,
)

__all__ = [
    "Currency",
    "MatchKind",
    "Transaction",
    "Statement",
    "LedgerTransaction",
    "Amount",
    "Match",
    "BankTransactionStatus",
    "ReconciliationResult",
]
