"""Matching engine and strategies for reconciliation."""

from .engine import ReconciliationEngine
from .strategies import (
    MatchingStrategy,
    ExactMatchStrategy,
    WeightedFuzzyStrategy,
    description_similarity,
)

__all__ = [
    "ReconciliationEngine",
    "MatchingStrategy",
    "ExactMatchStrategy",
    "WeightedFuzzyStrategy",
    "description_similarity",
]
