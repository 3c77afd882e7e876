"""
Amount parsing for bank documents and ledger output.

Bank exports mix separator conventions ("1.234,56", "1,234.56", "1234,5"),
so the shared normalizer infers the decimal separator from the text. The
credit-card PDF and the ledger each use one fixed convention and get their
own simpler variants.
"""

from decimal import Decimal, InvalidOperation
from typing import Optional
import logging
import re

from ..utils.exceptions import AmountParseError

logger = logging.getLogger(__name__)

ZERO = Decimal("0")

# Longest markers first so "US$" is not left behind as "US"
_CURRENCY_MARKERS = re.compile(r"U\$S|US\$|USD|UYU|\$|US", re.IGNORECASE)
_WHITESPACE = re.compile(r"\s+")


def _strip_markers(text: str) -> str:
    text = _CURRENCY_MARKERS.sub("", text)
    return _WHITESPACE.sub("", text)


def _to_decimal(text: str, original: str) -> Decimal:
    try:
        value = Decimal(text)
    except InvalidOperation as e:
        raise AmountParseError(f"Could not parse amount: {original!r}") from e
    if not value.is_finite():
        raise AmountParseError(f"Amount is not a finite number: {original!r}")
    return value


def normalize_amount(text: Optional[str]) -> Decimal:
    """
    Parse a locale-ambiguous amount string.

    Rules, in order: currency markers and whitespace are removed; when both
    "." and "," appear, whichever occurs last is the decimal separator; a
    lone comma is the decimal separator; repeated dots or repeated commas
    are thousands separators; parentheses negate the value.

    Raises:
        AmountParseError: If the cleaned text is not a number
    """
    if text is None:
        return ZERO

    cleaned = _strip_markers(str(text))
    if cleaned in ("", "-"):
        return ZERO

    dots = cleaned.count(".")
    commas = cleaned.count(",")

    if dots and commas:
        if cleaned.rfind(",") > cleaned.rfind("."):
            cleaned = cleaned.replace(".", "").replace(",", ".")
        else:
            cleaned = cleaned.replace(",", "")
    elif commas == 1:
        cleaned = cleaned.replace(",", ".")
    elif dots > 1:
        cleaned = cleaned.replace(".", "")
    elif commas > 1:
        cleaned = cleaned.replace(",", "")

    if cleaned.startswith("(") and cleaned.endswith(")"):
        cleaned = "-" + cleaned.strip("()")

    return _to_decimal(cleaned, str(text))


def parse_amount(text: Optional[str]) -> Decimal:
    """Lenient ``normalize_amount``: malformed input yields zero."""
    try:
        return normalize_amount(text)
    except AmountParseError as e:
        logger.debug(f"{e}, using 0")
        return ZERO


def parse_comma_decimal_amount(text: Optional[str]) -> Decimal:
    """
    Parse an amount that always uses "." for thousands and "," for decimals.

    Used for the credit-card PDF, e.g. "-1.234,56". Malformed input yields zero.
    """
    if not text:
        return ZERO

    value = text.strip()
    negative = value.startswith("-")
    value = value.lstrip("-").replace(".", "").replace(",", ".")

    try:
        amount = Decimal(value)
    except InvalidOperation:
        logger.debug(f"Could not parse card amount: {text!r}, using 0")
        return ZERO
    if not amount.is_finite():
        logger.debug(f"Card amount is not a finite number: {text!r}, using 0")
        return ZERO

    return -amount if negative else amount


def parse_ledger_amount(text: Optional[str]) -> Decimal:
    """
    Parse an amount printed by ledger, e.g. "$ 100,000.00" or "US$ -2,500.00".

    Ledger always uses "," for thousands and "." for decimals.

    Raises:
        AmountParseError: If no number remains after cleaning
    """
    if text is None:
        raise AmountParseError("Missing ledger amount")

    cleaned = _strip_markers(text).replace(",", "")
    if cleaned in ("", "-"):
        raise AmountParseError(f"Missing ledger amount: {text!r}")

    return _to_decimal(cleaned, text)


def detect_commodity(text: str) -> Optional[str]:
    """Return the ledger commodity symbol found in an amount string, if any."""
    upper = text.upper()
    if "US$" in upper or "U$S" in upper:
        return "US$"
    if "$" in upper:
        return "$"
    return None


def format_amount(value: Decimal, currency: str = "$") -> str:
    """Format a signed amount for a ledger posting, e.g. ``$-103.00``."""
    return f"{currency or '$'}{value:.2f}"
