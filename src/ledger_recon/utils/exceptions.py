"""Custom exceptions for statement ingestion and ledger reconciliation."""


class ReconciliationError(Exception):
    """Base exception for reconciliation errors."""

    pass


class StatementParseError(ReconciliationError):
    """A bank document could not be turned into a statement."""

    pass


class FormatError(StatementParseError):
    """Document cannot be opened, decoded, or holds no usable data."""

    pass


class HeaderNotFoundError(StatementParseError):
    """No recognizable column layout in the document."""

    pass


class RowParseError(ReconciliationError):
    """A single row could not be parsed; the row is skipped."""

    pass


class DateParseError(RowParseError):
    """Date text matched none of the known formats."""

    pass


class AmountParseError(RowParseError):
    """Amount text could not be converted to a decimal value."""

    pass


class QueryError(ReconciliationError):
    """The ledger query collaborator failed or returned unparseable text."""

    pass


class ConfigurationError(ReconciliationError):
    """Error in configuration."""

    pass


class ReportGenerationError(ReconciliationError):
    """Error generating Excel report."""

    pass
