from datetime import date

import pytest
from openpyxl import load_workbook

from ledger_recon.config import ReconConfig
from ledger_recon.matching.engine import ReconciliationEngine
from ledger_recon.reports.excel_generator import ExcelReportGenerator
from ledger_recon.utils.exceptions import ReportGenerationError


@pytest.fixture
def result(make_txn, make_ledger, make_statement, march):
    statement = make_statement(
        [
            make_txn(march(10), 500, "Cobro cliente"),
            make_txn(march(12), -100, "super xyz compra"),
            make_txn(march(14), -30, "COMISION"),
        ]
    )
    ledger = [
        make_ledger(march(10), 500, "Cobro cliente"),
        make_ledger(march(11), 3, "Intereses"),
        make_ledger(march(12), -100, "super xyz compra"),
        make_ledger(march(25), -7, "Cargo fin de mes"),
    ]
    return ReconciliationEngine().reconcile(statement, ledger)


ENTRY = "2024/03/14 COMISION\n  Assets:Bank:BROU  $-30.00\n  Expenses:Unknown\n"


class TestExcelReportGenerator:
    """Workbook layout"""

    def test_sheets(self, result, tmp_path):
        path = ExcelReportGenerator().generate_report([result], [ENTRY], tmp_path / "report.xlsx")

        wb = load_workbook(path)
        assert wb.sheetnames == [
            "Summary",
            "Matched Transactions",
            "Bank Only",
            "Ledger Only",
            "Suggested Entries",
        ]

    def test_summary(self, result, tmp_path):
        path = ExcelReportGenerator().generate_report([result], [], tmp_path / "report.xlsx")

        ws = load_workbook(path)["Summary"]
        assert ws["A1"].value == "Bank Reconciliation Summary"
        assert ws["A4"].value == "Assets:Bank:BROU ($)"
        assert ws["B5"].value == "2024-03-10 to 2024-03-14"
        assert ws["A7"].value == "Matched Transactions:"
        assert ws["B7"].value == 2
        assert ws["B8"].value == 2
        assert ws["B10"].value == 1

    def test_matched_rows(self, result, tmp_path):
        path = ExcelReportGenerator().generate_report([result], [], tmp_path / "report.xlsx")

        ws = load_workbook(path)["Matched Transactions"]
        assert ws.max_row == 3
        assert ws["A1"].value == "Account"
        assert ws["B2"].value.date() == date(2024, 3, 10)
        assert ws["C2"].value == 500
        assert ws["I2"].value == "exact"
        assert ws["F3"].value == -100

    def test_bank_only(self, result, tmp_path):
        path = ExcelReportGenerator().generate_report([result], [], tmp_path / "report.xlsx")

        ws = load_workbook(path)["Bank Only"]
        assert ws.max_row == 2
        assert ws["D2"].value == 30
        assert ws["G2"].value == "COMISION"

    def test_ledger_only_flags_period(self, result, tmp_path):
        path = ExcelReportGenerator().generate_report([result], [], tmp_path / "report.xlsx")

        ws = load_workbook(path)["Ledger Only"]
        assert [ws.cell(row=r, column=4).value for r in (2, 3)] == ["Intereses", "Cargo fin de mes"]
        assert [ws.cell(row=r, column=6).value for r in (2, 3)] == ["in period", "outside period"]

    def test_entries_sheet(self, result, tmp_path):
        path = ExcelReportGenerator().generate_report([result], [ENTRY], tmp_path / "report.xlsx")

        ws = load_workbook(path)["Suggested Entries"]
        assert ws["A2"].value == ENTRY.rstrip("\n")

    def test_disabled_sheet(self, result, tmp_path):
        config = ReconConfig()
        config.output.sheets.entries.enabled = False
        config.output.sheets.summary.name = "Resumen"

        path = ExcelReportGenerator(config).generate_report([result], [], tmp_path / "out" / "r.xlsx")

        sheetnames = load_workbook(path).sheetnames
        assert sheetnames[0] == "Resumen"
        assert "Suggested Entries" not in sheetnames

    def test_unwritable_path(self, result, tmp_path):
        with pytest.raises(ReportGenerationError):
            ExcelReportGenerator().generate_report([result], [], tmp_path)

    def test_all_sheets_disabled(self, result, tmp_path):
        config = ReconConfig()
        sheets = config.output.sheets
        for sheet in (sheets.summary, sheets.matched, sheets.bank_only, sheets.ledger_only, sheets.entries):
            sheet.enabled = False

        with pytest.raises(ReportGenerationError):
            ExcelReportGenerator(config).generate_report([result], [], tmp_path / "report.xlsx")
        assert not (tmp_path / "report.xlsx").exists()
