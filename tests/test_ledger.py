import shlex
import subprocess
from datetime import date
from decimal import Decimal
from pathlib import Path

import pytest

from ledger_recon.ledger import runner as runner_module
from ledger_recon.ledger.client import (
    LedgerClient,
    build_balance_query,
    build_register_query,
    parse_balance_output,
    parse_register_output,
)
from ledger_recon.ledger.extractor import list_accounts, parse_ledger_text
from ledger_recon.ledger.runner import LedgerCliRunner
from ledger_recon.models.transaction import Amount
from ledger_recon.utils.exceptions import QueryError

BROU = "Assets:Bank:BROU"


class FakeRunner:
    """Records queries and replays canned output"""

    def __init__(self, output="", error=None):
        self.output = output
        self.error = error
        self.queries = []

    def __call__(self, query):
        self.queries.append(query)
        if self.error:
            raise self.error
        return self.output


class TestParseLedgerText:
    """Reading postings from journal text"""

    def test_extracts_account_postings(self, sample_ledger):
        txns = parse_ledger_text(sample_ledger, BROU)

        assert [t.amount for t in txns] == [
            Decimal("10000.00"),
            Decimal("500.00"),
            Decimal("-100.00"),
            Decimal("-20.00"),
        ]
        assert txns[0].description == "Saldo inicial"
        assert txns[0].date == date(2024, 3, 9)
        assert txns[2].description == "super xyz compra"
        assert txns[3].account == "Assets:Bank:BROU:USD"
        assert txns[3].currency == "US$"

    def test_provenance(self, sample_ledger):
        txns = parse_ledger_text(sample_ledger, BROU)
        assert [t.line_number for t in txns] == [1, 5, 9, 13]
        assert txns[2].raw_entry == (
            "2024/03/12 super xyz compra\n"
            "    Expenses:Groceries        $ 100.00\n"
            "    Assets:Bank:BROU          $ -100.00\n"
        )

    def test_commodity_filter(self, sample_ledger):
        pesos = parse_ledger_text(sample_ledger, BROU, currency="$")
        dollars = parse_ledger_text(sample_ledger, BROU, currency="US$")
        assert len(pesos) == 3
        assert [t.amount for t in dollars] == [Decimal("-20.00")]

    def test_elided_amount_skipped(self, sample_ledger):
        """The 2024/03/20 posting has no amount"""
        txns = parse_ledger_text(sample_ledger, BROU)
        assert all(t.date != date(2024, 3, 20) for t in txns)

    def test_posting_outside_entry_ignored(self):
        content = "    Assets:Bank:BROU   $ 5.00\n\n2024/03/01 X\n    Assets:Bank:BROU   $ 1.00\n"
        txns = parse_ledger_text(content, BROU)
        assert [t.amount for t in txns] == [Decimal("1.00")]

    def test_invalid_entry_date(self):
        content = "2024/02/30 Bad\n    Assets:Bank:BROU   $ 1.00\n"
        assert parse_ledger_text(content, BROU) == []

    def test_list_accounts(self, sample_ledger):
        assert list_accounts(sample_ledger) == [
            "Assets:Bank:BROU",
            "Equity:Opening",
            "Income:Sales",
            "Expenses:Groceries",
            "Assets:Bank:BROU:USD",
            "Expenses:Travel",
            "Expenses:Misc",
        ]


class TestQueries:
    """Ledger query text and output parsing"""

    def test_register_query(self):
        query = build_register_query(BROU, "$")
        args = shlex.split(query)
        assert args[:2] == ["reg", BROU]
        assert args[2:4] == ["-l", 'commodity == "\\$"']
        assert args[4] == "-F"
        assert args[5].startswith('%(format_date(date, "%Y-%m-%d"))')

    def test_register_query_without_currency(self):
        assert "-l" not in shlex.split(build_register_query(BROU))

    def test_balance_query(self):
        args = shlex.split(build_balance_query(BROU, date(2024, 3, 1)))
        assert args[:4] == ["bal", BROU, "-e", "2024-03-01"]

    def test_parse_register_output(self):
        output = "2024-03-10 $ 500.00\nnoise\n2024/03/12 $ -1,100.00\n2024-03-13 $\n2024-03-14 NaN\n"
        txns = parse_register_output(output, BROU)
        assert [(t.date, t.amount) for t in txns] == [
            (date(2024, 3, 10), Decimal("500.00")),
            (date(2024, 3, 12), Decimal("-1100.00")),
        ]
        assert all(t.account == BROU for t in txns)

    def test_parse_balance_output(self):
        output = "           $ 1,234.56\n         US$ -10.00\n"
        assert parse_balance_output(output) == [
            Amount(currency="$", value=Decimal("1234.56")),
            Amount(currency="US$", value=Decimal("-10.00")),
        ]


class TestLedgerClient:
    """Client over an injected runner"""

    def test_transactions(self):
        runner = FakeRunner("2024-03-10 $ 500.00\n")
        txns = LedgerClient(runner).transactions(BROU, "$")
        assert len(txns) == 1
        assert runner.queries == [build_register_query(BROU, "$")]

    def test_empty_output(self):
        assert LedgerClient(FakeRunner("")).transactions(BROU) == []

    def test_error_output(self):
        with pytest.raises(QueryError):
            LedgerClient(FakeRunner("Error: account not found")).transactions(BROU)

    def test_unparseable_output(self):
        with pytest.raises(QueryError):
            LedgerClient(FakeRunner("something unexpected")).transactions(BROU)

    def test_runner_failure(self):
        with pytest.raises(QueryError):
            LedgerClient(FakeRunner(error=RuntimeError("boom"))).transactions(BROU)

    def test_balances(self):
        client = LedgerClient(FakeRunner("$ 1,000.00\n"))
        assert client.balances(BROU, date(2024, 3, 1)) == [
            Amount(currency="$", value=Decimal("1000.00"))
        ]

    def test_zero_balance(self):
        assert LedgerClient(FakeRunner("0\n")).balances(BROU, date(2024, 3, 1)) == []


class TestLedgerCliRunner:
    """Subprocess execution"""

    def test_builds_command(self, monkeypatch):
        calls = []

        def fake_run(command, **kwargs):
            calls.append((command, kwargs))
            return subprocess.CompletedProcess(command, 0, stdout="ok\n", stderr="")

        monkeypatch.setattr(runner_module.subprocess, "run", fake_run)
        runner = LedgerCliRunner(Path("main.ledger"), binary="ledger", timeout=5)

        assert runner("bal 'Assets:Bank:BROU'") == "ok\n"
        command, kwargs = calls[0]
        assert command == ["ledger", "-f", "main.ledger", "bal", "Assets:Bank:BROU"]
        assert kwargs["timeout"] == 5

    def test_non_zero_exit(self, monkeypatch):
        monkeypatch.setattr(
            runner_module.subprocess,
            "run",
            lambda command, **kwargs: subprocess.CompletedProcess(
                command, 1, stdout="", stderr="syntax error"
            ),
        )
        with pytest.raises(QueryError, match="syntax error"):
            LedgerCliRunner(Path("main.ledger"))("bal")

    def test_timeout(self, monkeypatch):
        def fake_run(command, **kwargs):
            raise subprocess.TimeoutExpired(command, kwargs["timeout"])

        monkeypatch.setattr(runner_module.subprocess, "run", fake_run)
        with pytest.raises(QueryError, match="timed out"):
            LedgerCliRunner(Path("main.ledger"), timeout=1)("bal")

    def test_missing_binary(self):
        runner = LedgerCliRunner(Path("main.ledger"), binary="no-such-ledger-binary-xyz")
        with pytest.raises(QueryError, match="not found"):
            runner("bal")

    def test_invalid_query(self):
        with pytest.raises(QueryError):
            LedgerCliRunner(Path("main.ledger"))("bal 'unterminated")
