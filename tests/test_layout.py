from datetime import date
from decimal import Decimal

import pytest

from ledger_recon.models.transaction import Currency
from ledger_recon.parsers.layout import (
    CreditCardStatementReader,
    LayoutSettings,
    TextRun,
    reconstruct_lines,
)
from ledger_recon.utils.exceptions import FormatError


def runs_for(lines, top=700.0, spacing=12.0, char_width=5.0):
    """Explode text lines into one run per character"""
    runs = []
    for line_index, line in enumerate(lines):
        y = top - line_index * spacing
        runs.extend(
            TextRun(x=i * char_width, y=y, text=ch) for i, ch in enumerate(line)
        )
    return runs


@pytest.fixture
def reader():
    return CreditCardStatementReader()


class TestReconstructLines:
    """Rebuilding lines from positioned glyphs"""

    def test_groups_by_y_and_orders_by_x(self):
        runs = [
            TextRun(x=20, y=700, text="B"),
            TextRun(x=10, y=688, text="C"),
            TextRun(x=10, y=700, text="A"),
            TextRun(x=15, y=699, text="D"),
        ]
        assert reconstruct_lines(runs) == ["ADB", "C"]

    def test_line_gap_setting(self):
        runs = [TextRun(x=0, y=700, text="A"), TextRun(x=5, y=695, text="B")]
        assert reconstruct_lines(runs, line_gap=3.0) == ["A", "B"]
        assert reconstruct_lines(runs, line_gap=6.0) == ["AB"]


class TestParseLine:
    """Transaction line recognition"""

    def test_local_purchase(self, reader):
        txns = reader.parse_line("10 03 24 1234 SUPERMERCADO XYZ      1.234,56")
        assert len(txns) == 1
        txn = txns[0]
        assert txn.date == date(2024, 3, 10)
        assert txn.description == "SUPERMERCADO XYZ"
        assert txn.debit == Decimal("1234.56")
        assert txn.credit == Decimal("0")
        assert txn.currency is Currency.LOCAL
        assert txn.account == "Assets:VisaItau"

    def test_long_line_is_foreign(self, reader):
        line = "12 03 24 AMAZON WEB SERVICES".ljust(110) + "25,00"
        txn = reader.parse_line(line)[0]
        assert txn.currency is Currency.FOREIGN
        assert txn.description == "AMAZON WEB SERVICES"
        assert txn.debit == Decimal("25.00")

    def test_dual_payment(self, reader):
        txns = reader.parse_line("15 03 24 PAGOS   -5.000,00   -100,00")
        assert [(t.currency, t.credit) for t in txns] == [
            (Currency.LOCAL, Decimal("5000.00")),
            (Currency.FOREIGN, Decimal("100.00")),
        ]

    def test_single_payment(self, reader):
        txns = reader.parse_line("15 03 24 PAGOS   -5.000,00")
        assert len(txns) == 1
        assert txns[0].credit == Decimal("5000.00")
        assert txns[0].currency is Currency.LOCAL

    @pytest.mark.parametrize(
        "line",
        [
            "16 03 24 AJUSTE 0,00",
            "TOTAL A PAGAR 1.000,00",
            "32 13 24 INVALIDO 1,00",
            "17 03 24 SIN IMPORTE",
        ],
    )
    def test_ignored_lines(self, reader, line):
        assert reader.parse_line(line) == []

    def test_custom_threshold(self):
        reader = CreditCardStatementReader(settings=LayoutSettings(dual_currency_line_length=30))
        txn = reader.parse_line("12 03 24 AMAZON WEB SERVICES     25,00")[0]
        assert txn.currency is Currency.FOREIGN


class TestParsePages:
    """Whole statements"""

    def test_splits_by_currency(self, reader):
        pages = [
            runs_for(
                [
                    "ESTADO DE CUENTA VISA",
                    "10 03 24 1234 SUPERMERCADO XYZ      1.234,56",
                    "12 03 24 AMAZON WEB SERVICES".ljust(110) + "25,00",
                ]
            ),
            runs_for(["15 03 24 PAGOS   -5.000,00   -100,00"]),
        ]

        statements = reader.parse_pages(pages)

        assert [s.currency for s in statements] == [Currency.LOCAL, Currency.FOREIGN]
        local, foreign = statements
        assert len(local) == 2
        assert len(foreign) == 2
        assert local.total_debits == Decimal("1234.56")
        assert local.total_credits == Decimal("5000.00")
        assert foreign.start_date == date(2024, 3, 12)

    def test_no_transactions(self, reader):
        with pytest.raises(FormatError):
            reader.parse_pages([runs_for(["NOTHING HERE"])])

    def test_unreadable_pdf(self, reader):
        with pytest.raises(FormatError):
            reader.parse_bytes(b"not a pdf")


class TestParseBytes:
    """Glyphs read from a real PDF page"""

    def test_lines_read_top_to_bottom(self, reader, pdf_bytes):
        """Content stream order does not matter; page position does"""
        foreign_line = "12 03 24 AMAZON WEB SERVICES".ljust(110) + "25,00"
        data = pdf_bytes(
            [
                (50, 676, foreign_line),
                (50, 688, "11 03 24 FARMACIA   500,00"),
                (50, 700, "10 03 24 1234 SUPERMERCADO XYZ      1.234,56"),
            ]
        )

        statements = reader.parse_bytes(data)

        assert [s.currency for s in statements] == [Currency.LOCAL, Currency.FOREIGN]
        local, foreign = statements
        assert [t.description for t in local.transactions] == ["SUPERMERCADO XYZ", "FARMACIA"]
        assert [t.date for t in local.transactions] == [date(2024, 3, 10), date(2024, 3, 11)]
        assert local.transactions[0].debit == Decimal("1234.56")
        assert [t.description for t in foreign.transactions] == ["AMAZON WEB SERVICES"]
        assert foreign.transactions[0].debit == Decimal("25.00")
