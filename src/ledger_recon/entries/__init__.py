"""Suggested ledger entries for unmatched bank transactions."""

from .generator import EntryGenerator, normalize_description

__all__ = ["EntryGenerator", "normalize_description"]
