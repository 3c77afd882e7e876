"""Bank statement ingestion and reconciliation against a plain-text ledger."""

__version__ = "0.1.0"
