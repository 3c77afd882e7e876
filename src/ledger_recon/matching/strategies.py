"""
Matching strategies for bank-to-ledger reconciliation.
Each strategy implements one pass of the matcher.
"""

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Optional

from ..models.transaction import LedgerTransaction, Transaction


class MatchingStrategy(ABC):
    """Abstract base class for matching strategies."""

    @abstractmethod
    def find_match(
        self,
        bank_txn: Transaction,
        ledger_candidates: list[LedgerTransaction],
    ) -> Optional[int]:
        """
        Find the ledger transaction matching a bank transaction.

        Args:
            bank_txn: Bank transaction to match
            ledger_candidates: Unmatched ledger transactions, in ledger order

        Returns:
            Index into ledger_candidates of the match, or None
        """
        pass

    @abstractmethod
    def calculate_match_score(
        self,
        bank_txn: Transaction,
        ledger_txn: LedgerTransaction,
    ) -> tuple[float, str]:
        """
        Calculate the confidence score and reason for a match.

        Args:
            bank_txn: Bank transaction
            ledger_txn: Matched ledger transaction

        Returns:
            Tuple of (score 0.0-1.0, reason string)
        """
        pass


def _days_apart(bank_txn: Transaction, ledger_txn: LedgerTransaction) -> int:
    return abs((bank_txn.date - ledger_txn.date).days)


class ExactMatchStrategy(MatchingStrategy):
    """
    Exact match strategy - same signed amount within a date window.
    Highest confidence pass; the first qualifying candidate wins.
    """

    def __init__(self, window_days: int = 0, epsilon: float = 0.001):
        """
        Initialize with tolerances.

        Args:
            window_days: Maximum days difference (0 means same calendar day)
            epsilon: Amounts closer than this are considered equal
        """
        self.window_days = window_days
        self.epsilon = Decimal(str(epsilon))

    def find_match(
        self,
        bank_txn: Transaction,
        ledger_candidates: list[LedgerTransaction],
    ) -> Optional[int]:
        """Find the first candidate with the same amount inside the window."""
        bank_amount = bank_txn.amount
        for index, ledger_txn in enumerate(ledger_candidates):
            if _days_apart(bank_txn, ledger_txn) > self.window_days:
                continue
            if abs(bank_amount - ledger_txn.amount) < self.epsilon:
                return index
        return None

    def calculate_match_score(
        self,
        bank_txn: Transaction,
        ledger_txn: LedgerTransaction,
    ) -> tuple[float, str]:
        """Exact matches have perfect score."""
        if self.window_days == 0:
            return 1.0, "Exact match on amount and date"
        days = _days_apart(bank_txn, ledger_txn)
        return 1.0, f"Exact amount match, {days} day(s) date difference"


class WeightedFuzzyStrategy(MatchingStrategy):
    """
    Fuzzy matching - weighted blend of date proximity, amount closeness
    and description word overlap. Used after the exact pass.
    """

    def __init__(
        self,
        window_days: int = 5,
        amount_floor: Decimal = Decimal("10"),
        amount_percent: float = 5.0,
        date_weight: float = 0.3,
        amount_weight: float = 0.5,
        description_weight: float = 0.2,
        threshold: float = 0.6,
    ):
        """
        Initialize with tolerances and weights.

        Args:
            window_days: Maximum days difference
            amount_floor: Minimum absolute amount tolerance
            amount_percent: Amount tolerance as a percentage of the bank amount
            date_weight: Weight of the date component
            amount_weight: Weight of the amount component
            description_weight: Weight of the description component
            threshold: A candidate must score strictly above this to match
        """
        self.window_days = window_days
        self.amount_floor = Decimal(str(amount_floor))
        self.amount_percent = Decimal(str(amount_percent))
        self.date_weight = date_weight
        self.amount_weight = amount_weight
        self.description_weight = description_weight
        self.threshold = threshold

    def amount_tolerance(self, bank_txn: Transaction) -> Decimal:
        """Larger of the absolute floor and the percentage of the bank amount."""
        percent = abs(bank_txn.amount) * self.amount_percent / Decimal("100")
        return max(self.amount_floor, percent)

    def find_match(
        self,
        bank_txn: Transaction,
        ledger_candidates: list[LedgerTransaction],
    ) -> Optional[int]:
        """Find the highest-scoring candidate above the threshold."""
        tolerance = self.amount_tolerance(bank_txn)

        best_index: Optional[int] = None
        best_score = self.threshold

        for index, ledger_txn in enumerate(ledger_candidates):
            if _days_apart(bank_txn, ledger_txn) > self.window_days:
                continue
            if abs(bank_txn.amount - ledger_txn.amount) > tolerance:
                continue

            score = self._score(bank_txn, ledger_txn, tolerance)
            # Strictly greater keeps the first candidate on ties
            if score > best_score:
                best_index = index
                best_score = score

        return best_index

    def calculate_match_score(
        self,
        bank_txn: Transaction,
        ledger_txn: LedgerTransaction,
    ) -> tuple[float, str]:
        """Weighted score with a breakdown of the differences."""
        tolerance = self.amount_tolerance(bank_txn)
        score = self._score(bank_txn, ledger_txn, tolerance)

        days = _days_apart(bank_txn, ledger_txn)
        amount_diff = abs(bank_txn.amount - ledger_txn.amount)
        similarity = description_similarity(bank_txn.description, ledger_txn.description)
        reason = (
            f"{days} day(s) date difference, {amount_diff:.2f} amount variance, "
            f"description overlap {similarity:.0%}"
        )
        return score, reason

    def _score(
        self,
        bank_txn: Transaction,
        ledger_txn: LedgerTransaction,
        tolerance: Decimal,
    ) -> float:
        days = _days_apart(bank_txn, ledger_txn)
        if self.window_days > 0:
            date_score = 1.0 - days / self.window_days
        else:
            date_score = 1.0

        amount_diff = abs(bank_txn.amount - ledger_txn.amount)
        if tolerance > 0:
            amount_score = 1.0 - float(amount_diff / tolerance)
        else:
            amount_score = 1.0

        description_score = description_similarity(
            bank_txn.description, ledger_txn.description
        )

        return (
            self.date_weight * date_score
            + self.amount_weight * amount_score
            + self.description_weight * description_score
        )


def description_similarity(first: str, second: str) -> float:
    """
    Share of words two descriptions have in common.

    Words are case-insensitive and whitespace separated; the count of shared
    words is divided by the word count of the longer description.
    """
    first_words = set(first.lower().split())
    second_words = set(second.lower().split())
    longest = max(len(first_words), len(second_words))
    if longest == 0:
        return 0.0
    return len(first_words & second_words) / longest
