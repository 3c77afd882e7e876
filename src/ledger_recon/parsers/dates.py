"""Date parsing for bank documents, including spreadsheet serial dates."""

from datetime import date, datetime, timedelta
from decimal import Decimal, InvalidOperation
from typing import Any

import pandas as pd

from ..utils.exceptions import DateParseError

# Day first; strptime accepts one- or two-digit day and month for %d/%m
DATE_FORMATS = (
    "%d/%m/%Y",
    "%d/%m/%y",
    "%d-%m-%Y",
    "%d.%m.%Y",
    "%Y-%m-%d",
    "%Y/%m/%d",
)

EXCEL_EPOCH = date(1899, 12, 30)


def parse_date(text: str) -> date:
    """
    Parse a statement date.

    Literal day/month/year formats are tried first, then the text is read
    as a spreadsheet serial day count from 1899-12-30.

    Raises:
        DateParseError: If no format matches
    """
    value = (text or "").strip()
    if not value:
        raise DateParseError("Empty date")

    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(value, fmt).date()
        except ValueError:
            continue

    try:
        serial = Decimal(value)
    except InvalidOperation as e:
        raise DateParseError(f"Could not parse date: {value!r}") from e

    if not serial.is_finite() or serial < 0:
        raise DateParseError(f"Could not parse date: {value!r}")

    try:
        return EXCEL_EPOCH + timedelta(days=int(serial))
    except OverflowError as e:
        raise DateParseError(f"Serial date out of range: {value!r}") from e


def cell_text(value: Any) -> str:
    """
    Convert a raw spreadsheet or CSV cell to the text the readers work on.

    Empty cells and NaN become "", dates are rendered day first, and
    integral floats lose their ".0" so serial dates and codes stay clean.
    """
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return ""
    if isinstance(value, float):
        if value.is_integer():
            return str(int(value))
        return str(value)
    if isinstance(value, datetime):
        return value.strftime("%d/%m/%Y")
    if isinstance(value, date):
        return value.strftime("%d/%m/%Y")
    return str(value).strip()
