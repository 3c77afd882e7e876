"""Parsers for bank spreadsheets, CSV exports and credit-card PDFs."""

from .amounts import normalize_amount, parse_amount, parse_comma_decimal_amount
from .dates import parse_date
from .tabular import BROU_LAYOUT, ITAU_LAYOUT, BankLayout, TabularStatementReader
from .delimited import DelimitedStatementReader
from .layout import CreditCardStatementReader, LayoutSettings, TextRun
from .detect import detect_bank

__all__ = [
    "normalize_amount",
    "parse_amount",
    "parse_comma_decimal_amount",
    "parse_date",
    "BROU_LAYOUT",
    "ITAU_LAYOUT",
    "BankLayout",
    "TabularStatementReader",
    "DelimitedStatementReader",
    "CreditCardStatementReader",
    "LayoutSettings",
    "TextRun",
    "detect_bank",
]
