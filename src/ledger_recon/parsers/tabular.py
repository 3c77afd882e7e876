"""
Spreadsheet statement reader with heuristic header discovery.

Bank exports put their column header at an unpredictable row, below a block
of account metadata. Each bank is described by a ``BankLayout``: an ordered
keyword table per column plus the markers that end the movement list.
Supporting another bank means adding a layout, not new parsing logic.

Reading is two passes over a grid of text cells:

1. Header discovery scans the first rows for the date keyword and records the
   column of every keyword seen on the way, including the currency marker.
2. Row extraction walks the rows below the header until the list ends.
"""

from dataclasses import astuple, dataclass, field
from decimal import Decimal
from typing import Optional, Sequence
import logging
import unicodedata

from .amounts import parse_amount
from .dates import parse_date
from .workbook import Grid, load_workbook_grids
from ..models.transaction import Currency, Statement, Transaction
from ..utils.exceptions import DateParseError, FormatError, HeaderNotFoundError

logger = logging.getLogger(__name__)

DEFAULT_SCAN_ROWS = 100


def fold(text: str) -> str:
    """Lower-case and strip diacritics so "Débito" compares equal to "debito"."""
    decomposed = unicodedata.normalize("NFKD", text.strip().lower())
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def cell(row: Sequence[str], index: int) -> str:
    """Cell text at ``index``, or "" for a missing column or a short row."""
    if index < 0 or index >= len(row):
        return ""
    return (row[index] or "").strip()


@dataclass(frozen=True)
class Keyword:
    """A header keyword, compared against folded cell text."""

    text: str
    exact: bool = False

    def matches(self, folded: str) -> bool:
        if self.exact:
            return folded == self.text
        return self.text in folded


@dataclass
class ColumnMap:
    """Column indices discovered in the header; -1 means absent."""

    date: int = -1
    description: int = -1
    reference: int = -1
    debit: int = -1
    credit: int = -1
    balance: int = -1

    def mapped_count(self) -> int:
        return sum(1 for index in astuple(self) if index >= 0)


@dataclass(frozen=True)
class BankLayout:
    """Keyword tables and list markers for one bank's spreadsheet export."""

    name: str
    account: str

    # Ordered (field, keywords) pairs; the first field matching a cell wins
    columns: tuple[tuple[str, tuple[Keyword, ...]], ...]

    currency_keywords: tuple[Keyword, ...] = ()

    # True when the currency value sits in later rows of the marker column
    # instead of in the marker cell itself
    currency_value_below: bool = False

    termination_keywords: tuple[str, ...] = ()
    opening_balance_keywords: tuple[str, ...] = ()
    try_all_sheets: bool = False

    def field_for(self, folded: str) -> Optional[str]:
        for field_name, keywords in self.columns:
            if any(k.matches(folded) for k in keywords):
                return field_name
        return None

    def is_currency_marker(self, folded: str) -> bool:
        return any(k.matches(folded) for k in self.currency_keywords)


BROU_LAYOUT = BankLayout(
    name="BROU",
    account="Assets:Bank:BROU",
    columns=(
        ("date", (Keyword("fecha", exact=True),)),
        ("description", (Keyword("descripci"),)),
        ("reference", (Keyword("referencia"), Keyword("asunto"))),
        ("debit", (Keyword("debito"),)),
        ("credit", (Keyword("credito"),)),
    ),
    currency_keywords=(Keyword("moneda"),),
    termination_keywords=("total",),
    try_all_sheets=True,
)

ITAU_LAYOUT = BankLayout(
    name="Itau",
    account="Assets:Bank:Itau",
    columns=(
        ("date", (Keyword("fecha", exact=True),)),
        ("description", (Keyword("concepto", exact=True),)),
        ("debit", (Keyword("debito"),)),
        ("credit", (Keyword("credito"),)),
        ("balance", (Keyword("saldo", exact=True),)),
        ("reference", (Keyword("referencia", exact=True),)),
    ),
    currency_keywords=(Keyword("moneda", exact=True),),
    currency_value_below=True,
    termination_keywords=("saldo final",),
    opening_balance_keywords=("saldo anterior",),
)


@dataclass
class HeaderInfo:
    """Result of header discovery."""

    row_index: int
    columns: ColumnMap = field(default_factory=ColumnMap)
    currency: Currency = Currency.LOCAL


def detect_currency(text: str) -> Optional[Currency]:
    """Classify a currency marker such as "U$S", "Dólares" or "Pesos"."""
    folded = fold(text)
    if (
        "U$S" in text
        or "US$" in text
        or "dolar" in folded
        or "dollar" in folded
        or "usd" in folded
    ):
        return Currency.FOREIGN
    if "$" in text or "peso" in folded:
        return Currency.LOCAL
    return None


def find_header(
    grid: Grid, layout: BankLayout, scan_rows: int = DEFAULT_SCAN_ROWS
) -> HeaderInfo:
    """
    Locate the header row and column indices (pass 1).

    Args:
        grid: Sheet rows
        layout: Bank keyword tables
        scan_rows: Maximum number of leading rows to inspect

    Returns:
        Header row index, column map and detected currency

    Raises:
        HeaderNotFoundError: If no cell matches the date keyword
    """
    columns = ColumnMap()
    currency = Currency.LOCAL
    currency_col = -1

    for row_index, row in enumerate(grid[:scan_rows]):
        header_found = False

        for col_index, raw in enumerate(row):
            text = (raw or "").strip()
            if not text:
                continue
            folded = fold(text)

            if layout.is_currency_marker(folded):
                currency_col = col_index
                detected = detect_currency(text)
                if detected:
                    currency = detected
            elif layout.currency_value_below and col_index == currency_col:
                detected = detect_currency(text)
                if detected:
                    currency = detected

            field_name = layout.field_for(folded)
            if field_name is None:
                continue
            setattr(columns, field_name, col_index)
            if field_name == "date":
                header_found = True

        if header_found:
            logger.debug(f"{layout.name} header found at row {row_index}: {columns}")
            return HeaderInfo(row_index=row_index, columns=columns, currency=currency)

    raise HeaderNotFoundError(f"Could not find header row in {layout.name} statement")


def extract_statement(
    rows: Sequence[Sequence[str]],
    columns: ColumnMap,
    account: str,
    currency: Currency,
    termination_keywords: Sequence[str] = (),
    opening_balance_keywords: Sequence[str] = (),
    stop_on_blank_date: bool = True,
    first_row_number: int = 1,
) -> Statement:
    """
    Turn the rows under a header into a statement (pass 2).

    Fully empty rows are ignored. A row with an empty date cell ends the list
    when ``stop_on_blank_date`` is set and is skipped otherwise; a date cell
    containing a termination keyword always ends it. Opening-balance rows
    and rows whose date cannot be parsed are skipped.

    Args:
        rows: Data rows following the header
        columns: Column indices from header discovery
        account: Ledger account the statement belongs to
        currency: Statement currency
        termination_keywords: Folded markers that end the movement list
        opening_balance_keywords: Folded markers of carried-forward rows
        stop_on_blank_date: Whether an empty date cell ends the list
        first_row_number: Row number of ``rows[0]`` for log messages

    Returns:
        Statement with the extracted transactions
    """
    transactions: list[Transaction] = []

    for row_number, row in enumerate(rows, start=first_row_number):
        if not any((c or "").strip() for c in row):
            continue

        date_text = cell(row, columns.date)
        if not date_text:
            if stop_on_blank_date:
                break
            continue

        folded_date = fold(date_text)
        if any(k in folded_date for k in termination_keywords):
            break

        description = cell(row, columns.description)
        folded_description = fold(description)
        if any(k in folded_description for k in opening_balance_keywords):
            continue

        try:
            txn_date = parse_date(date_text)
        except DateParseError as e:
            logger.warning(f"Row {row_number}: {e}, skipping")
            continue

        balance: Optional[Decimal] = None
        balance_text = cell(row, columns.balance)
        if balance_text:
            balance = parse_amount(balance_text)

        transactions.append(
            Transaction(
                date=txn_date,
                description=description,
                debit=abs(parse_amount(cell(row, columns.debit))),
                credit=abs(parse_amount(cell(row, columns.credit))),
                balance=balance,
                reference=cell(row, columns.reference),
                account=account,
                currency=currency,
            )
        )

    return Statement.from_transactions(account, currency, transactions)


class TabularStatementReader:
    """
    Reader for bank spreadsheet exports described by a ``BankLayout``.

    Layouts with ``try_all_sheets`` are read sheet by sheet until one yields
    at least one transaction; otherwise only the first sheet is read.
    """

    def __init__(
        self,
        layout: BankLayout,
        account: Optional[str] = None,
        scan_rows: int = DEFAULT_SCAN_ROWS,
    ):
        """
        Initialize the reader.

        Args:
            layout: Bank keyword tables
            account: Ledger account override (defaults to the layout's)
            scan_rows: Header discovery row limit
        """
        self.layout = layout
        self.account = account or layout.account
        self.scan_rows = scan_rows

    def parse_bytes(self, data: bytes) -> Statement:
        """
        Parse raw workbook bytes.

        Raises:
            FormatError: If the workbook cannot be read or has no data
            HeaderNotFoundError: If no sheet has a recognizable header
        """
        logger.info(f"Parsing {self.layout.name} spreadsheet ({len(data)} bytes)")
        return self.parse_workbook(load_workbook_grids(data))

    def parse_workbook(self, grids: Sequence[Grid]) -> Statement:
        """Parse already-loaded sheets according to the layout's sheet policy."""
        if not grids:
            raise FormatError("No sheets found in spreadsheet")

        sheets = grids if self.layout.try_all_sheets else grids[:1]
        header_found = False

        for sheet_index, grid in enumerate(sheets):
            try:
                statement = self.parse_grid(grid)
            except HeaderNotFoundError as e:
                logger.debug(f"Sheet {sheet_index}: {e}")
                continue

            header_found = True
            if statement.transactions or not self.layout.try_all_sheets:
                logger.info(
                    f"Extracted {len(statement)} transactions from "
                    f"{self.layout.name} sheet {sheet_index}"
                )
                return statement

        if not header_found:
            raise HeaderNotFoundError(
                f"Could not find header row in {self.layout.name} statement"
            )
        raise FormatError("No transaction data found in any sheet")

    def parse_grid(self, grid: Grid) -> Statement:
        """Parse a single sheet."""
        header = find_header(grid, self.layout, self.scan_rows)
        return extract_statement(
            grid[header.row_index + 1:],
            header.columns,
            self.account,
            header.currency,
            termination_keywords=self.layout.termination_keywords,
            opening_balance_keywords=self.layout.opening_balance_keywords,
            stop_on_blank_date=True,
            first_row_number=header.row_index + 2,
        )

    def header_score(self, grids: Sequence[Grid]) -> int:
        """Columns recognised in the best sheet's header, or -1 when none has one."""
        sheets = grids if self.layout.try_all_sheets else grids[:1]
        best = -1
        for grid in sheets:
            try:
                header = find_header(grid, self.layout, self.scan_rows)
            except HeaderNotFoundError:
                continue
            best = max(best, header.columns.mapped_count())
        return best
