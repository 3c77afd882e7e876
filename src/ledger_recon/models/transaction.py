"""Data models for bank statements, ledger transactions and reconciliation results."""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Iterable, Optional

ZERO = Decimal("0")


class Currency(Enum):
    """Commodity a statement is denominated in; the value is the ledger symbol."""

    LOCAL = "$"  # Uruguayan pesos
    FOREIGN = "US$"  # US dollars


class MatchKind(Enum):
    """How a bank transaction was paired with a ledger transaction."""

    EXACT = "exact"
    FUZZY = "fuzzy"


@dataclass(frozen=True)
class Transaction:
    """
    Canonical bank transaction produced by every statement reader.

    Debit and credit are both non-negative; for a single-currency row at
    most one of them is non-zero. Balance and reference are best effort.
    """

    date: date
    description: str
    debit: Decimal
    credit: Decimal
    account: str
    currency: Currency = Currency.LOCAL
    balance: Optional[Decimal] = None
    reference: str = ""

    @property
    def amount(self) -> Decimal:
        """Net amount from the account holder's perspective (credit - debit)."""
        return self.credit - self.debit


@dataclass(frozen=True)
class Statement:
    """A parsed bank statement for one account and currency."""

    account: str
    currency: Currency
    transactions: tuple[Transaction, ...] = ()
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    @classmethod
    def from_transactions(
        cls,
        account: str,
        currency: Currency,
        transactions: Iterable[Transaction],
    ) -> "Statement":
        """Build a statement, deriving the observed date span from its rows."""
        rows = tuple(transactions)
        dates = [t.date for t in rows]
        return cls(
            account=account,
            currency=currency,
            transactions=rows,
            start_date=min(dates) if dates else None,
            end_date=max(dates) if dates else None,
        )

    def __len__(self) -> int:
        return len(self.transactions)

    @property
    def total_debits(self) -> Decimal:
        return sum((t.debit for t in self.transactions), ZERO)

    @property
    def total_credits(self) -> Decimal:
        return sum((t.credit for t in self.transactions), ZERO)

    @property
    def date_range(self) -> str:
        if self.start_date is None or self.end_date is None:
            return ""
        return f"{self.start_date.isoformat()} to {self.end_date.isoformat()}"

    def covers(self, day: date) -> bool:
        """Whether a date falls inside the observed statement span."""
        if self.start_date is not None and day < self.start_date:
            return False
        if self.end_date is not None and day > self.end_date:
            return False
        return True


@dataclass(frozen=True)
class LedgerTransaction:
    """
    A posting to the reconciled account, read from the ledger.

    line_number and raw_entry are provenance only and never used for matching.
    """

    date: date
    description: str
    account: str
    amount: Decimal
    currency: Optional[str] = None
    line_number: Optional[int] = None
    raw_entry: str = ""


@dataclass(frozen=True)
class Amount:
    """A single-commodity balance reported by the ledger."""

    currency: str
    value: Decimal


@dataclass
class Match:
    """A bank transaction paired with a ledger transaction."""

    bank_transaction: Transaction
    ledger_transaction: LedgerTransaction
    kind: MatchKind
    score: float  # 0.0 to 1.0
    reason: str = ""

    amount_variance: Decimal = ZERO
    date_variance_days: int = 0

    @property
    def is_exact(self) -> bool:
        return self.kind is MatchKind.EXACT


@dataclass
class BankTransactionStatus:
    """A statement row together with the match it ended up in, if any."""

    transaction: Transaction
    match: Optional[Match] = None

    @property
    def matched(self) -> bool:
        return self.match is not None


@dataclass
class ReconciliationResult:
    """Partition of bank and ledger transactions produced by one reconciliation."""

    statement: Statement
    matches: list[Match] = field(default_factory=list)
    unmatched_bank: list[Transaction] = field(default_factory=list)
    unmatched_ledger: list[LedgerTransaction] = field(default_factory=list)

    # Unmatched ledger rows outside the statement span; not reconcilable
    out_of_period_ledger: list[LedgerTransaction] = field(default_factory=list)

    bank_statuses: list[BankTransactionStatus] = field(default_factory=list)

    total_bank_debits: Decimal = ZERO
    total_bank_credits: Decimal = ZERO
    total_ledger_debits: Decimal = ZERO
    total_ledger_credits: Decimal = ZERO

    @property
    def start_date(self) -> Optional[date]:
        return self.statement.start_date

    @property
    def end_date(self) -> Optional[date]:
        return self.statement.end_date

    @property
    def date_range(self) -> str:
        return self.statement.date_range

    @property
    def exact_count(self) -> int:
        return sum(1 for m in self.matches if m.kind is MatchKind.EXACT)

    @property
    def fuzzy_count(self) -> int:
        return sum(1 for m in self.matches if m.kind is MatchKind.FUZZY)

    @property
    def match_rate(self) -> float:
        """Percentage of bank transactions matched."""
        total = len(self.statement.transactions)
        if total == 0:
            return 0.0
        return (len(self.matches) / total) * 100

    @property
    def bank_net_change(self) -> Decimal:
        return self.total_bank_credits - self.total_bank_debits

    @property
    def ledger_net_change(self) -> Decimal:
        return self.total_ledger_credits - self.total_ledger_debits
