"""Utility modules."""

from .exceptions import (
    ReconciliationError,
    StatementParseError,
    FormatError,
    HeaderNotFoundError,
    RowParseError,
    DateParseError,
    AmountParseError,
    QueryError,
    ConfigurationError,
    ReportGenerationError,
)
from .logging_config import setup_logging, level_from_name

__all__ = [
    "ReconciliationError",
    "StatementParseError",
    "FormatError",
    "HeaderNotFoundError",
    "RowParseError",
    "DateParseError",
    "AmountParseError",
    "QueryError",
    "ConfigurationError",
    "ReportGenerationError",
    "setup_logging",
    "level_from_name",
]
