"""
Statement ingestion: choose a reader from the file name and parse a document.

``StatementIngestor.read`` raises the typed parse errors; ``ingest`` turns
them into an ``IngestFailure`` value for callers that report problems
instead of aborting.
"""

from dataclasses import dataclass, field
from typing import Optional
import logging

from .config import ReconConfig
from .models.transaction import Statement
from .parsers.delimited import DelimitedStatementReader
from .parsers.detect import (
    CSV_SUFFIXES,
    PDF_SUFFIXES,
    SPREADSHEET_SUFFIXES,
    detect_bank,
    file_suffix,
)
from .parsers.layout import CreditCardStatementReader, LayoutSettings
from .parsers.tabular import BROU_LAYOUT, ITAU_LAYOUT, BankLayout, TabularStatementReader
from .parsers.workbook import load_workbook_grids
from .utils.exceptions import FormatError, StatementParseError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IngestFailure:
    """Why a document could not be ingested."""

    kind: str  # error class name, e.g. "HeaderNotFoundError"
    message: str


@dataclass
class IngestResult:
    """Statements read from one document, or the failure that prevented it."""

    statements: list[Statement] = field(default_factory=list)
    failure: Optional[IngestFailure] = None

    @property
    def ok(self) -> bool:
        return self.failure is None


class StatementIngestor:
    """Dispatches statement documents to the matching reader."""

    def __init__(self, config: Optional[ReconConfig] = None):
        self.config = config or ReconConfig()

    def read(self, filename: str, data: bytes, account: Optional[str] = None) -> list[Statement]:
        """
        Parse a statement document.

        Args:
            filename: Original file name, used for format and bank detection
            data: Raw document bytes
            account: Ledger account override

        Returns:
            Parsed statements (two for a dual-currency card statement)

        Raises:
            FormatError: Unsupported or unreadable document
            HeaderNotFoundError: No recognizable column layout
        """
        accounts = self.config.accounts
        readers = self.config.readers
        suffix = file_suffix(filename)
        detected = detect_bank(filename, accounts)

        logger.info(f"Reading {filename} ({len(data)} bytes)")

        if suffix in CSV_SUFFIXES:
            csv_account = account or detected
            if not csv_account:
                raise FormatError(
                    f"Cannot determine the account for {filename}; pass one explicitly"
                )
            reader = DelimitedStatementReader(csv_account, encoding=readers.csv_encoding)
            return [reader.parse_bytes(data)]

        if suffix in PDF_SUFFIXES:
            card_reader = CreditCardStatementReader(
                account=account or accounts.visa,
                settings=LayoutSettings.from_config(readers.layout),
            )
            return card_reader.parse_bytes(data)

        if suffix in SPREADSHEET_SUFFIXES:
            return [self._read_spreadsheet(filename, data, detected, account)]

        raise FormatError(f"Unsupported file type: {filename}")

    def ingest(self, filename: str, data: bytes, account: Optional[str] = None) -> IngestResult:
        """Like ``read``, but document problems are returned instead of raised."""
        try:
            statements = self.read(filename, data, account)
        except StatementParseError as e:
            logger.warning(f"Could not ingest {filename}: {e}")
            return IngestResult(failure=IngestFailure(kind=type(e).__name__, message=str(e)))

        for statement in statements:
            logger.info(
                f"{filename}: {len(statement)} transactions for "
                f"{statement.account} ({statement.currency.value}) {statement.date_range}"
            )
        return IngestResult(statements=statements)

    def _read_spreadsheet(
        self,
        filename: str,
        data: bytes,
        detected: Optional[str],
        account: Optional[str],
    ) -> Statement:
        accounts = self.config.accounts
        scan_rows = self.config.readers.header_scan_rows

        brou = (BROU_LAYOUT, accounts.brou)
        itau = (ITAU_LAYOUT, accounts.itau)
        if detected == accounts.brou:
            layouts: list[tuple[BankLayout, str]] = [brou]
        elif detected == accounts.itau:
            layouts = [itau]
        else:
            layouts = [brou, itau]

        grids = load_workbook_grids(data)
        readers = [
            TabularStatementReader(layout, account=account or layout_account, scan_rows=scan_rows)
            for layout, layout_account in layouts
        ]

        reader = readers[0]
        if len(readers) > 1:
            # Unrecognised name: the layout recognising the most header columns wins
            reader = max(readers, key=lambda r: r.header_score(grids))
            logger.info(f"{filename} read with the {reader.layout.name} layout")
        return reader.parse_workbook(grids)
