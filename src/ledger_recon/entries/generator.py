"""
Suggested ledger entries for bank transactions missing from the ledger.

Transactions whose counter-account is resolved through the account mappings
are grouped by date, bank account and counter-account into one entry each;
transactions that fall back to an unknown account get an entry of their own.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, Optional
import logging
import re

from ..config import AccountMappings
from ..models.transaction import Transaction
from ..parsers.amounts import format_amount

logger = logging.getLogger(__name__)

COMMENT_LENGTH = 30

_WHITESPACE = re.compile(r"\s+")


def normalize_description(text: str) -> str:
    """Upper-case with whitespace runs collapsed, for pattern matching."""
    return _WHITESPACE.sub(" ", text).strip().upper()


@dataclass
class _EntryGroup:
    date: date
    bank_account: str
    counter_account: str
    transactions: list[Transaction] = field(default_factory=list)


class EntryGenerator:
    """Builds ledger entry text for unmatched bank transactions."""

    def __init__(
        self,
        mappings: Optional[AccountMappings] = None,
        unknown_expense_account: str = "Expenses:Unknown",
        unknown_income_account: str = "Income:Unknown",
    ):
        """
        Initialize the generator.

        Args:
            mappings: Description-to-account rules, evaluated in order
            unknown_expense_account: Counter-account for unmapped outflows
            unknown_income_account: Counter-account for unmapped inflows
        """
        self.mappings = mappings or AccountMappings()
        self.unknown_expense_account = unknown_expense_account
        self.unknown_income_account = unknown_income_account

        # Patterns are normalized once
        self._rules = [
            ([normalize_description(p) for p in rule.patterns], rule.account)
            for rule in self.mappings.description_mappings
        ]

    def resolve_account(self, description: str, is_expense: bool) -> str:
        """
        Counter-account for a bank transaction description.

        Args:
            description: Bank transaction description
            is_expense: Whether money left the bank account

        Returns:
            Account of the first rule with a pattern contained in the
            description, otherwise the unknown expense or income account
        """
        normalized = normalize_description(description)
        for patterns, account in self._rules:
            for pattern in patterns:
                if pattern and pattern in normalized:
                    return account

        if is_expense:
            return self.unknown_expense_account
        return self.unknown_income_account

    def is_unknown(self, account: str) -> bool:
        return account in (self.unknown_expense_account, self.unknown_income_account)

    def generate(self, transactions: Iterable[Transaction]) -> list[str]:
        """
        Generate entry text for the given transactions.

        Returns:
            Entries for unknown-account transactions first, in input order,
            followed by one entry per group in first-seen order
        """
        ungrouped: list[Transaction] = []
        groups: dict[tuple[date, str, str], _EntryGroup] = {}

        for txn in transactions:
            counter_account = self.resolve_account(txn.description, txn.amount < 0)
            if self.is_unknown(counter_account):
                ungrouped.append(txn)
                continue

            key = (txn.date, txn.account, counter_account)
            if key not in groups:
                groups[key] = _EntryGroup(
                    date=txn.date,
                    bank_account=txn.account,
                    counter_account=counter_account,
                )
            groups[key].transactions.append(txn)

        entries = [self._single_entry(txn) for txn in ungrouped]
        entries.extend(self._group_entry(group) for group in groups.values())

        logger.info(
            f"Generated {len(entries)} suggested entries "
            f"({len(ungrouped)} unmapped, {len(groups)} grouped)"
        )
        return entries

    def _single_entry(self, txn: Transaction) -> str:
        counter_account = self.resolve_account(txn.description, txn.amount < 0)
        return (
            f"{_entry_date(txn.date)} {_header_description(txn)}\n"
            f"  {txn.account}  {format_amount(txn.amount, txn.currency.value)}\n"
            f"  {counter_account}\n"
        )

    def _group_entry(self, group: _EntryGroup) -> str:
        header = _header_description(group.transactions[0])
        extra = len(group.transactions) - 1
        if extra:
            header += f" (+{extra} more)"

        lines = [f"{_entry_date(group.date)} {header}"]
        for txn in group.transactions:
            line = f"  {group.bank_account}  {format_amount(txn.amount, txn.currency.value)}"
            if extra:
                line += f"  ; {_short_description(txn.description)}"
            lines.append(line)
        lines.append(f"  {group.counter_account}")

        return "\n".join(lines) + "\n"


def _entry_date(day: date) -> str:
    return day.strftime("%Y/%m/%d")


def _header_description(txn: Transaction) -> str:
    description = txn.description.strip()
    if txn.reference:
        description = f"{description} - {txn.reference}"
    return description


def _short_description(description: str) -> str:
    description = description.strip()
    if len(description) > COMMENT_LENGTH:
        return description[:COMMENT_LENGTH] + "..."
    return description
