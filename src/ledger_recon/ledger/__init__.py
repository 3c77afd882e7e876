"""Reading existing ledger postings, from file text or via ledger queries."""

from .extractor import parse_ledger_text, list_accounts
from .client import (
    LedgerClient,
    build_register_query,
    build_balance_query,
    parse_register_output,
    parse_balance_output,
)
from .runner import LedgerCliRunner

__all__ = [
    "parse_ledger_text",
    "list_accounts",
    "LedgerClient",
    "build_register_query",
    "build_balance_query",
    "parse_register_output",
    "parse_balance_output",
    "LedgerCliRunner",
]
