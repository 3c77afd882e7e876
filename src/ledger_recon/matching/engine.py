"""
Two-pass matching engine for bank statement reconciliation.
Runs an exact pass followed by a weighted fuzzy pass over whatever is left.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional
import logging

from ..models.transaction import (
    ZERO,
    BankTransactionStatus,
    LedgerTransaction,
    Match,
    MatchKind,
    ReconciliationResult,
    Statement,
    Transaction,
)
from ..config import ReconConfig
from ..utils.exceptions import ConfigurationError
from .strategies import (
    MatchingStrategy,
    ExactMatchStrategy,
    WeightedFuzzyStrategy,
)

logger = logging.getLogger(__name__)

_WEIGHT_TOLERANCE = 1e-6


class ReconciliationEngine:
    """
    Main reconciliation engine that orchestrates the matching process.

    Bank transactions are matched in statement order; every bank and ledger
    transaction takes part in at most one match.
    """

    def __init__(self, config: Optional[ReconConfig] = None):
        """
        Initialize the reconciliation engine.

        Args:
            config: Application configuration (defaults when omitted)

        Raises:
            ConfigurationError: If the matching settings are inconsistent
        """
        self.config = config or ReconConfig()
        self._validate()
        self.strategies = self._build_strategies()

    def _validate(self) -> None:
        exact = self.config.matching.exact
        fuzzy = self.config.matching.fuzzy

        total_weight = fuzzy.date_weight + fuzzy.amount_weight + fuzzy.description_weight
        if abs(total_weight - 1.0) > _WEIGHT_TOLERANCE:
            raise ConfigurationError(
                f"Fuzzy match weights must sum to 1.0, got {total_weight:.4f}"
            )
        if not 0.0 <= fuzzy.threshold < 1.0:
            raise ConfigurationError(
                f"Fuzzy match threshold must be in [0, 1), got {fuzzy.threshold}"
            )
        if exact.window_days < 0 or fuzzy.window_days < 0:
            raise ConfigurationError("Match date windows cannot be negative")
        if exact.epsilon <= 0:
            raise ConfigurationError("Exact match epsilon must be positive")

    def _build_strategies(self) -> list[tuple[MatchKind, MatchingStrategy]]:
        """
        Build matching strategies from configuration.

        Returns:
            List of (kind, strategy) tuples in pass order
        """
        exact = self.config.matching.exact
        fuzzy = self.config.matching.fuzzy

        return [
            (
                MatchKind.EXACT,
                ExactMatchStrategy(window_days=exact.window_days, epsilon=exact.epsilon),
            ),
            (
                MatchKind.FUZZY,
                WeightedFuzzyStrategy(
                    window_days=fuzzy.window_days,
                    amount_floor=Decimal(str(fuzzy.amount_floor)),
                    amount_percent=fuzzy.amount_percent,
                    date_weight=fuzzy.date_weight,
                    amount_weight=fuzzy.amount_weight,
                    description_weight=fuzzy.description_weight,
                    threshold=fuzzy.threshold,
                ),
            ),
        ]

    def reconcile(
        self,
        statement: Statement,
        ledger_transactions: list[LedgerTransaction],
    ) -> ReconciliationResult:
        """
        Reconcile a bank statement against ledger transactions.

        Args:
            statement: Parsed bank statement
            ledger_transactions: Ledger postings to the statement's account

        Returns:
            Reconciliation result partitioning both sides
        """
        start_time = datetime.now()
        logger.info(
            f"Starting reconciliation of {statement.account}: "
            f"{len(statement)} bank txns, {len(ledger_transactions)} ledger txns"
        )

        # Track unmatched transactions by position
        unmatched_bank = dict(enumerate(statement.transactions))
        unmatched_ledger = dict(enumerate(ledger_transactions))

        matches_by_bank: dict[int, Match] = {}

        for kind, strategy in self.strategies:
            pass_count = 0

            for bank_index in list(unmatched_bank):
                bank_txn = unmatched_bank[bank_index]
                ledger_indexes = list(unmatched_ledger)
                candidates = [unmatched_ledger[i] for i in ledger_indexes]

                found = strategy.find_match(bank_txn, candidates)
                if found is None:
                    continue

                ledger_index = ledger_indexes[found]
                ledger_txn = unmatched_ledger.pop(ledger_index)
                del unmatched_bank[bank_index]

                matches_by_bank[bank_index] = self._build_match(
                    bank_txn, ledger_txn, kind, strategy
                )
                pass_count += 1

            logger.debug(
                f"Pass {kind.value}: {pass_count} matches found, "
                f"{len(unmatched_bank)} bank and {len(unmatched_ledger)} "
                f"ledger remaining"
            )

        matches = [matches_by_bank[i] for i in sorted(matches_by_bank)]

        in_period: list[LedgerTransaction] = []
        out_of_period: list[LedgerTransaction] = []
        for ledger_txn in unmatched_ledger.values():
            if statement.covers(ledger_txn.date):
                in_period.append(ledger_txn)
            else:
                out_of_period.append(ledger_txn)

        bank_statuses = [
            BankTransactionStatus(transaction=txn, match=matches_by_bank.get(i))
            for i, txn in enumerate(statement.transactions)
        ]

        result = ReconciliationResult(
            statement=statement,
            matches=matches,
            unmatched_bank=list(unmatched_bank.values()),
            unmatched_ledger=in_period,
            out_of_period_ledger=out_of_period,
            bank_statuses=bank_statuses,
            total_bank_debits=statement.total_debits,
            total_bank_credits=statement.total_credits,
            total_ledger_debits=sum(
                (-t.amount for t in ledger_transactions if t.amount < 0), ZERO
            ),
            total_ledger_credits=sum(
                (t.amount for t in ledger_transactions if t.amount > 0), ZERO
            ),
        )

        elapsed = (datetime.now() - start_time).total_seconds()
        logger.info(
            f"Reconciliation complete in {elapsed:.2f}s: {len(matches)} matches "
            f"({result.exact_count} exact, {result.fuzzy_count} fuzzy), "
            f"{len(result.unmatched_bank)} bank-only, "
            f"{len(result.unmatched_ledger)} ledger-only"
        )

        return result

    @staticmethod
    def _build_match(
        bank_txn: Transaction,
        ledger_txn: LedgerTransaction,
        kind: MatchKind,
        strategy: MatchingStrategy,
    ) -> Match:
        score, reason = strategy.calculate_match_score(bank_txn, ledger_txn)
        return Match(
            bank_transaction=bank_txn,
            ledger_transaction=ledger_txn,
            kind=kind,
            score=score,
            reason=reason,
            amount_variance=bank_txn.amount - ledger_txn.amount,
            date_variance_days=abs((bank_txn.date - ledger_txn.date).days),
        )
