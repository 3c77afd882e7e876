import io
from datetime import date, datetime
from decimal import Decimal

import pytest
from openpyxl import Workbook

from ledger_recon.config import ReconConfig
from ledger_recon.models.transaction import (
    Currency,
    LedgerTransaction,
    Statement,
    Transaction,
)

BROU = "Assets:Bank:BROU"

SAMPLE_LEDGER = """\
2024/03/09 * Saldo inicial
    Assets:Bank:BROU          $ 10,000.00
    Equity:Opening

2024/03/10 Cobro cliente
    Assets:Bank:BROU          $ 500.00
    Income:Sales

2024/03/12 super xyz compra
    Expenses:Groceries        $ 100.00
    Assets:Bank:BROU          $ -100.00

2024/03/15 Transferencia dolares
    Assets:Bank:BROU:USD      US$ -20.00
    Expenses:Travel

2024/03/20 Elided amount
    Expenses:Misc             $ 15.00
    Assets:Bank:BROU
"""


@pytest.fixture
def config():
    """Default configuration"""
    return ReconConfig()


@pytest.fixture
def make_txn():
    """Factory for bank transactions; negative amounts become debits"""
    def _make(day, amount, description="", account=BROU, currency=Currency.LOCAL, reference=""):
        value = Decimal(str(amount))
        return Transaction(
            date=day,
            description=description,
            debit=-value if value < 0 else Decimal("0"),
            credit=value if value > 0 else Decimal("0"),
            account=account,
            currency=currency,
            reference=reference,
        )
    return _make


@pytest.fixture
def make_ledger():
    """Factory for ledger transactions"""
    def _make(day, amount, description="", account=BROU):
        return LedgerTransaction(
            date=day,
            description=description,
            account=account,
            amount=Decimal(str(amount)),
        )
    return _make


@pytest.fixture
def make_statement():
    """Build a statement from bank transactions"""
    def _make(transactions, account=BROU, currency=Currency.LOCAL):
        return Statement.from_transactions(account, currency, transactions)
    return _make


@pytest.fixture
def xlsx_bytes():
    """Serialize lists of rows into .xlsx bytes, one list per sheet"""
    def _build(*sheets):
        wb = Workbook()
        wb.remove(wb.active)
        for index, rows in enumerate(sheets):
            ws = wb.create_sheet(f"Sheet{index + 1}")
            for row in rows:
                ws.append(list(row))
        buffer = io.BytesIO()
        wb.save(buffer)
        return buffer.getvalue()
    return _build


@pytest.fixture
def sample_ledger():
    return SAMPLE_LEDGER


@pytest.fixture
def march():
    """Shortcut for dates in March 2024"""
    return lambda day: date(2024, 3, day)


BROU_ROWS = [
    ["Banco República", None, None, None, None, None],
    ["Cuenta: 001234", "Moneda: U$S", None, None, None, None],
    [None, None, None, None, None, None],
    ["Fecha", "Descripción", "Número de documento", "Asunto", "Débito", "Crédito"],
    ["10/03/2024", "COMPRA SUPERMERCADO", None, "123", "1.500,00", None],
    [datetime(2024, 3, 11), "TRANSFERENCIA", None, None, None, "2.000,00"],
    ["Total", None, None, None, "1.500,00", "2.000,00"],
    ["12/03/2024", "AFTER TOTAL", None, None, "1,00", None],
]

ITAU_ROWS = [
    ["Estado de cuenta", None, None, None, None],
    ["Cuenta", "Moneda", None, None, None],
    ["12345", "U$S", None, None, None],
    ["Fecha", "Concepto", "Débito", "Crédito", "Saldo"],
    ["09/03/2024", "SALDO ANTERIOR", None, None, "1.000,00"],
    ["10/03/2024", "PAGO UTE", "200,00", None, "800,00"],
    ["12/03/2024", "DEPOSITO", None, "50,00", "850,00"],
    [None, "SALDO FINAL", None, None, "850,00"],
]


@pytest.fixture
def brou_rows():
    """BROU export: metadata block, header, two movements, totals"""
    return [list(row) for row in BROU_ROWS]


@pytest.fixture
def itau_rows():
    """Itaú export: currency under its marker, opening and closing balance rows"""
    return [list(row) for row in ITAU_ROWS]


def _pdf_string(text):
    return text.replace("\\", "\\\\").replace("(", "\\(").replace(")", "\\)")


@pytest.fixture
def pdf_bytes():
    """Single-page PDF drawing (x, y, text) lines in 5pt Courier, in the given order"""
    def _build(lines):
        content = "\n".join(
            f"BT /F1 5 Tf {x} {y} Td ({_pdf_string(text)}) Tj ET" for x, y, text in lines
        ).encode("latin-1")
        objects = [
            b"<< /Type /Catalog /Pages 2 0 R >>",
            b"<< /Type /Pages /Kids [3 0 R] /Count 1 >>",
            b"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] "
            b"/Resources << /Font << /F1 4 0 R >> >> /Contents 5 0 R >>",
            b"<< /Type /Font /Subtype /Type1 /BaseFont /Courier >>",
            b"<< /Length %d >>\nstream\n" % len(content) + content + b"\nendstream",
        ]

        out = bytearray(b"%PDF-1.4\n")
        offsets = []
        for number, body in enumerate(objects, start=1):
            offsets.append(len(out))
            out += b"%d 0 obj\n" % number + body + b"\nendobj\n"

        xref_offset = len(out)
        out += b"xref\n0 %d\n" % (len(objects) + 1)
        out += b"0000000000 65535 f \n"
        for offset in offsets:
            out += b"%010d 00000 n \n" % offset
        out += b"trailer\n<< /Size %d /Root 1 0 R >>\n" % (len(objects) + 1)
        out += b"startxref\n%d\n%%%%EOF\n" % xref_offset
        return bytes(out)
    return _build
