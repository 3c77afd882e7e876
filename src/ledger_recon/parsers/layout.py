"""
Credit-card statement reader for PDFs without tabular structure.

The statement only exposes positioned glyphs. Lines are rebuilt from their
coordinates, transaction lines are recognised by a leading "DD MM YY" date,
and the currency column is inferred from the length of the rebuilt line:
lines that reach the dollar column are long, peso-only lines are short.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional, Sequence
import io
import logging
import re

import pdfplumber

from .amounts import parse_comma_decimal_amount
from ..models.transaction import Currency, Statement, Transaction
from ..utils.exceptions import FormatError

logger = logging.getLogger(__name__)

DATE_PATTERN = re.compile(r"^\s*(\d{2})\s+(\d{2})\s+(\d{2})\s+")
AMOUNT_PATTERN = re.compile(r"-?\d+(?:\.\d{3})*,\d{2}")
REFERENCE_CODE_PATTERN = re.compile(r"^\d{4}$")


@dataclass(frozen=True)
class TextRun:
    """A positioned piece of text; y grows towards the top of the page."""

    x: float
    y: float
    text: str


@dataclass(frozen=True)
class LayoutSettings:
    """Template-specific thresholds, overridable from configuration."""

    # Maximum drop in y before a run starts a new line
    line_gap: float = 3.0

    # Rebuilt lines at least this long carry the dollar column
    dual_currency_line_length: int = 115

    # Payment lines may carry a peso and a dollar payment at once
    payment_keyword: str = "PAGOS"

    # Offset, after the date, where the peso column ends
    payment_column_boundary: int = 95

    @classmethod
    def from_config(cls, layout_config) -> "LayoutSettings":
        return cls(
            line_gap=layout_config.line_gap,
            dual_currency_line_length=layout_config.dual_currency_line_length,
            payment_keyword=layout_config.payment_keyword,
            payment_column_boundary=layout_config.payment_column_boundary,
        )


def reconstruct_lines(runs: Iterable[TextRun], line_gap: float = 3.0) -> list[str]:
    """
    Rebuild text lines from positioned runs.

    Runs are read top to bottom, left to right. A run more than ``line_gap``
    below the first run of the current line starts a new line; each line's
    runs are joined in x order.
    """
    ordered = sorted(runs, key=lambda r: (-r.y, r.x))

    lines: list[list[TextRun]] = []
    anchor_y: Optional[float] = None
    for run in ordered:
        if anchor_y is None or anchor_y - run.y > line_gap:
            lines.append([run])
            anchor_y = run.y
        else:
            lines[-1].append(run)

    return ["".join(r.text for r in sorted(line, key=lambda r: r.x)) for line in lines]


def _strip_reference_code(description: str) -> str:
    parts = description.split(" ", 1)
    if len(parts) == 2 and REFERENCE_CODE_PATTERN.match(parts[0]):
        return parts[1].strip()
    return description


class CreditCardStatementReader:
    """
    Parser for Visa Itaú credit-card statements.

    Produces one statement per currency. Amounts follow card conventions:
    positive values are charges (debits), negative values are payments
    (credits).
    """

    def __init__(
        self,
        account: str = "Assets:VisaItau",
        settings: Optional[LayoutSettings] = None,
    ):
        self.account = account
        self.settings = settings or LayoutSettings()

    def parse_bytes(self, data: bytes) -> list[Statement]:
        """
        Parse raw PDF bytes.

        Raises:
            FormatError: If the PDF cannot be opened or holds no transactions
        """
        logger.info(f"Parsing credit card PDF ({len(data)} bytes)")

        try:
            with pdfplumber.open(io.BytesIO(data)) as pdf:
                pages = [self._page_runs(page) for page in pdf.pages]
        except Exception as e:
            logger.error(f"Failed to open PDF file: {e}")
            raise FormatError(f"Error opening PDF file: {e}") from e

        return self.parse_pages(pages)

    @staticmethod
    def _page_runs(page) -> list[TextRun]:
        return [
            TextRun(x=float(ch["x0"]), y=float(ch["y0"]), text=ch["text"])
            for ch in page.chars
        ]

    def parse_pages(self, pages: Iterable[Sequence[TextRun]]) -> list[Statement]:
        """
        Parse pages given as lists of text runs.

        Returns:
            The peso statement and/or the dollar statement, empty ones omitted

        Raises:
            FormatError: If no transaction is found in either currency
        """
        by_currency: dict[Currency, list[Transaction]] = {
            Currency.LOCAL: [],
            Currency.FOREIGN: [],
        }

        for page_number, runs in enumerate(pages, start=1):
            lines = reconstruct_lines(runs, self.settings.line_gap)
            logger.debug(f"Page {page_number}: {len(lines)} lines")
            for line in lines:
                for txn in self.parse_line(line):
                    by_currency[txn.currency].append(txn)

        statements = [
            Statement.from_transactions(self.account, currency, rows)
            for currency, rows in by_currency.items()
            if rows
        ]
        if not statements:
            raise FormatError("No transactions found in PDF")

        for statement in statements:
            logger.info(
                f"Extracted {len(statement)} {statement.currency.value} transactions from PDF"
            )
        return statements

    def parse_line(self, line: str) -> list[Transaction]:
        """Parse one rebuilt line; non-transaction lines yield nothing."""
        match = DATE_PATTERN.match(line)
        if not match:
            return []

        day, month, year = (int(g) for g in match.groups())
        try:
            txn_date = date(2000 + year, month, day)
        except ValueError:
            logger.warning(f"Invalid date in card line, skipping: {line.strip()!r}")
            return []

        rest = line[match.end():]
        amounts = list(AMOUNT_PATTERN.finditer(rest))

        if amounts:
            description = rest[:amounts[0].start()].strip()
        else:
            description = rest.strip()
        description = _strip_reference_code(description)

        settings = self.settings
        if settings.payment_keyword.upper() in description.upper() and len(amounts) >= 2:
            if amounts[-2].end() < settings.payment_column_boundary:
                rows = []
                for currency, found in (
                    (Currency.LOCAL, amounts[-2]),
                    (Currency.FOREIGN, amounts[-1]),
                ):
                    value = parse_comma_decimal_amount(found.group())
                    if value != 0:
                        rows.append(self._transaction(txn_date, description, value, currency))
                return rows

        if not amounts:
            return []

        value = parse_comma_decimal_amount(amounts[-1].group())
        if value == 0:
            return []

        if len(line) >= settings.dual_currency_line_length:
            currency = Currency.FOREIGN
        else:
            currency = Currency.LOCAL
        return [self._transaction(txn_date, description, value, currency)]

    def _transaction(
        self, txn_date: date, description: str, value: Decimal, currency: Currency
    ) -> Transaction:
        if value < 0:
            debit, credit = Decimal("0"), -value
        else:
            debit, credit = value, Decimal("0")
        return Transaction(
            date=txn_date,
            description=description,
            debit=debit,
            credit=credit,
            account=self.account,
            currency=currency,
        )
