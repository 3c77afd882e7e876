"""
Generic CSV statement reader.

The first row is the header; columns are found by multilingual substring
synonyms and rows are extracted with the same logic as spreadsheets.
"""

from typing import Sequence
import io
import logging

import pandas as pd

from .tabular import (
    BankLayout,
    ColumnMap,
    Keyword,
    cell,
    detect_currency,
    extract_statement,
    fold,
)
from .workbook import frame_to_grid
from ..models.transaction import Currency, Statement
from ..utils.exceptions import FormatError, HeaderNotFoundError

logger = logging.getLogger(__name__)

CSV_LAYOUT = BankLayout(
    name="CSV",
    account="",
    columns=(
        ("date", (Keyword("fecha"), Keyword("date"))),
        ("description", (Keyword("descripci"), Keyword("description"), Keyword("concepto"))),
        ("debit", (Keyword("debito"), Keyword("debit"))),
        ("credit", (Keyword("credito"), Keyword("credit"))),
    ),
    currency_keywords=(Keyword("moneda"), Keyword("currency")),
)


class DelimitedStatementReader:
    """Parser for comma-separated bank exports with a header row."""

    def __init__(self, account: str, encoding: str = "utf-8", layout: BankLayout = CSV_LAYOUT):
        """
        Initialize the reader.

        Args:
            account: Ledger account the statement belongs to
            encoding: Text encoding of the file
            layout: Header synonym table
        """
        self.account = account
        self.encoding = encoding
        self.layout = layout

    def parse_bytes(self, data: bytes) -> Statement:
        """
        Parse raw CSV bytes.

        Raises:
            FormatError: If the bytes cannot be decoded or hold no data rows
            HeaderNotFoundError: If the header has no date column
        """
        logger.info(f"Parsing CSV statement ({len(data)} bytes)")

        try:
            df = pd.read_csv(
                io.BytesIO(data),
                header=None,
                dtype=str,
                keep_default_na=False,
                encoding=self.encoding,
                engine="python",
                skip_blank_lines=True,
                on_bad_lines=_keep_bad_line,
            )
        except Exception as e:
            logger.error(f"Failed to read CSV file: {e}")
            raise FormatError(f"Error reading CSV: {e}") from e

        statement = self.parse_rows(frame_to_grid(df))
        logger.info(f"Extracted {len(statement)} transactions from CSV")
        return statement

    def parse_rows(self, rows: Sequence[Sequence[str]]) -> Statement:
        """Parse already-split rows; ``rows[0]`` is the header."""
        if len(rows) < 2:
            raise FormatError("CSV file is empty or has no data rows")

        columns = ColumnMap()
        currency = Currency.LOCAL

        for index, raw in enumerate(rows[0]):
            folded = fold(raw or "")
            field_name = self.layout.field_for(folded)
            if field_name is not None:
                setattr(columns, field_name, index)
            elif self.layout.is_currency_marker(folded):
                detected = detect_currency(cell(rows[1], index))
                if detected is not None:
                    currency = detected

        if columns.date < 0:
            raise HeaderNotFoundError("CSV header has no date column")

        return extract_statement(
            rows[1:],
            columns,
            self.account,
            currency,
            stop_on_blank_date=False,
            first_row_number=2,
        )


def _keep_bad_line(bad_line: list[str]) -> list[str]:
    """Keep over-long rows; pandas drops the fields beyond the header width."""
    logger.warning(f"CSV row has {len(bad_line)} fields, extra fields dropped")
    return bad_line
