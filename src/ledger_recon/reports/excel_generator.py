"""
Excel report generator for reconciliation results.
Creates multi-sheet workbooks with formatted output.
"""

from datetime import datetime
from pathlib import Path
from typing import Any, Iterable, Optional, Sequence
import logging

from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill, Alignment, Border, Side
from openpyxl.worksheet.worksheet import Worksheet

from ..models.transaction import ReconciliationResult
from ..config import ReconConfig
from ..utils.exceptions import ReportGenerationError

logger = logging.getLogger(__name__)

# Style definitions
HEADER_FILL = PatternFill(start_color="4472C4", end_color="4472C4", fill_type="solid")
HEADER_FONT = Font(color="FFFFFF", bold=True)
MATCH_FILL = PatternFill(start_color="C6EFCE", end_color="C6EFCE", fill_type="solid")
VARIANCE_FILL = PatternFill(start_color="FFEB9C", end_color="FFEB9C", fill_type="solid")
UNMATCHED_FILL = PatternFill(start_color="FFC7CE", end_color="FFC7CE", fill_type="solid")
THIN_BORDER = Border(
    left=Side(style="thin"),
    right=Side(style="thin"),
    top=Side(style="thin"),
    bottom=Side(style="thin"),
)


class ExcelReportGenerator:
    """Generates Excel reconciliation reports with multiple sheets."""

    def __init__(self, config: Optional[ReconConfig] = None):
        """
        Initialize the report generator.

        Args:
            config: Application configuration
        """
        self.config = config or ReconConfig()
        self.sheet_config = self.config.output.sheets

    def generate_report(
        self,
        results: Sequence[ReconciliationResult],
        entries: Sequence[str],
        output_path: Path,
    ) -> Path:
        """
        Generate the complete reconciliation report.

        Args:
            results: One reconciliation result per statement
            entries: Suggested ledger entries for unmatched bank transactions
            output_path: Path for output file

        Returns:
            Path to generated report

        Raises:
            ReportGenerationError: If the workbook cannot be written
        """
        logger.info(f"Generating Excel report: {output_path}")

        wb = Workbook()

        # Remove default sheet
        if wb.active:
            wb.remove(wb.active)

        sheets = self.sheet_config
        if sheets.summary.enabled:
            self._create_summary_sheet(wb, results)
        if sheets.matched.enabled:
            self._create_matched_sheet(wb, results)
        if sheets.bank_only.enabled:
            self._create_bank_only_sheet(wb, results)
        if sheets.ledger_only.enabled:
            self._create_ledger_only_sheet(wb, results)
        if sheets.entries.enabled:
            self._create_entries_sheet(wb, entries)

        if not wb.sheetnames:
            raise ReportGenerationError("All report sheets are disabled in the configuration")

        try:
            output_path.parent.mkdir(parents=True, exist_ok=True)
            wb.save(output_path)
        except OSError as e:
            logger.error(f"Failed to save report: {e}")
            raise ReportGenerationError(f"Cannot write report {output_path}: {e}") from e

        logger.info(f"Report saved: {output_path}")
        return output_path

    def _create_summary_sheet(
        self, wb: Workbook, results: Sequence[ReconciliationResult]
    ) -> None:
        """Create the summary sheet with one block of metrics per statement."""
        ws = wb.create_sheet(self.sheet_config.summary.name)

        # Title
        ws["A1"] = "Bank Reconciliation Summary"
        ws["A1"].font = Font(size=16, bold=True)
        ws["A2"] = f"Generated: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}"

        row = 4
        for result in results:
            statement = result.statement
            currency = statement.currency.value

            ws[f"A{row}"] = f"{statement.account} ({currency})"
            ws[f"A{row}"].font = Font(bold=True)
            row += 1

            block = [
                ("Period:", result.date_range or "n/a"),
                ("Bank Transactions:", len(statement)),
                ("Matched Transactions:", len(result.matches)),
                ("  Exact Matches:", result.exact_count),
                ("  Fuzzy Matches:", result.fuzzy_count),
                ("Bank Only (Unmatched):", len(result.unmatched_bank)),
                ("Ledger Only (Unmatched):", len(result.unmatched_ledger)),
                ("Ledger Outside Period:", len(result.out_of_period_ledger)),
                ("Match Rate:", f"{result.match_rate:.1f}%"),
                ("Bank Debits:", f"{currency}{result.total_bank_debits:,.2f}"),
                ("Bank Credits:", f"{currency}{result.total_bank_credits:,.2f}"),
                ("Ledger Debits:", f"{currency}{result.total_ledger_debits:,.2f}"),
                ("Ledger Credits:", f"{currency}{result.total_ledger_credits:,.2f}"),
            ]
            for label, value in block:
                ws[f"A{row}"] = label
                ws[f"B{row}"] = value
                ws[f"B{row}"].alignment = Alignment(horizontal="right")
                row += 1
            row += 1

        # Adjust column widths
        ws.column_dimensions["A"].width = 30
        ws.column_dimensions["B"].width = 40

    def _create_matched_sheet(
        self, wb: Workbook, results: Sequence[ReconciliationResult]
    ) -> None:
        """Create the matched transactions sheet."""
        ws = wb.create_sheet(self.sheet_config.matched.name)

        headers = [
            "Account",
            "Bank Date",
            "Bank Amount",
            "Bank Description",
            "Ledger Date",
            "Ledger Amount",
            "Ledger Description",
            "Ledger Line",
            "Match Type",
            "Match Score",
            "Match Reason",
            "Amount Variance",
            "Date Variance (Days)",
        ]
        self._write_headers(ws, headers)

        row_num = 2
        for result in results:
            for match in result.matches:
                bank_txn = match.bank_transaction
                ledger_txn = match.ledger_transaction

                row_data = [
                    result.statement.account,
                    bank_txn.date,
                    float(bank_txn.amount),
                    bank_txn.description,
                    ledger_txn.date,
                    float(ledger_txn.amount),
                    ledger_txn.description,
                    ledger_txn.line_number or "",
                    match.kind.value,
                    f"{match.score:.2f}",
                    match.reason,
                    float(match.amount_variance) if match.amount_variance else "",
                    match.date_variance_days or "",
                ]

                for col, value in enumerate(row_data, start=1):
                    cell = ws.cell(row=row_num, column=col, value=value)
                    cell.border = THIN_BORDER

                    # Highlight variances
                    if match.amount_variance and col in [12, 13]:
                        cell.fill = VARIANCE_FILL
                    elif match.is_exact:
                        cell.fill = MATCH_FILL
                row_num += 1

        self._auto_fit_columns(ws)

    def _create_bank_only_sheet(
        self, wb: Workbook, results: Sequence[ReconciliationResult]
    ) -> None:
        """Create the bank-only transactions sheet."""
        ws = wb.create_sheet(self.sheet_config.bank_only.name)

        headers = ["Account", "Date", "Reference", "Debit", "Credit", "Currency", "Description"]
        rows = (
            [
                txn.account,
                txn.date,
                txn.reference,
                float(txn.debit),
                float(txn.credit),
                txn.currency.value,
                txn.description,
            ]
            for result in results
            for txn in result.unmatched_bank
        )
        self._write_headers(ws, headers)
        self._write_rows(ws, rows, UNMATCHED_FILL)
        self._auto_fit_columns(ws)

    def _create_ledger_only_sheet(
        self, wb: Workbook, results: Sequence[ReconciliationResult]
    ) -> None:
        """Create the ledger-only sheet, flagging rows outside the statement period."""
        ws = wb.create_sheet(self.sheet_config.ledger_only.name)

        headers = ["Account", "Date", "Amount", "Description", "Ledger Line", "Period"]
        self._write_headers(ws, headers)

        rows: list[list[Any]] = []
        for result in results:
            labelled = [(t, "in period") for t in result.unmatched_ledger]
            labelled += [(t, "outside period") for t in result.out_of_period_ledger]
            for txn, period in labelled:
                rows.append(
                    [
                        txn.account,
                        txn.date,
                        float(txn.amount),
                        txn.description,
                        txn.line_number or "",
                        period,
                    ]
                )
        self._write_rows(ws, rows, UNMATCHED_FILL)
        self._auto_fit_columns(ws)

    def _create_entries_sheet(self, wb: Workbook, entries: Sequence[str]) -> None:
        """Create the suggested entries sheet, one entry per row."""
        ws = wb.create_sheet(self.sheet_config.entries.name)
        self._write_headers(ws, ["Suggested Entry"])

        for row_num, entry in enumerate(entries, start=2):
            cell = ws.cell(row=row_num, column=1, value=entry.rstrip("\n"))
            cell.alignment = Alignment(wrap_text=True, vertical="top")
            cell.border = THIN_BORDER

        ws.column_dimensions["A"].width = 80

    @staticmethod
    def _write_headers(ws: Worksheet, headers: list[str]) -> None:
        for col, header in enumerate(headers, start=1):
            cell = ws.cell(row=1, column=col, value=header)
            cell.fill = HEADER_FILL
            cell.font = HEADER_FONT
            cell.border = THIN_BORDER

    @staticmethod
    def _write_rows(ws: Worksheet, rows: Iterable[list[Any]], fill: PatternFill) -> None:
        for row_num, row_data in enumerate(rows, start=2):
            for col, value in enumerate(row_data, start=1):
                cell = ws.cell(row=row_num, column=col, value=value)
                cell.border = THIN_BORDER
                cell.fill = fill

    def _auto_fit_columns(self, ws: Worksheet) -> None:
        """Auto-fit column widths based on content."""
        for column_cells in ws.columns:
            max_length = 0
            column = column_cells[0].column_letter

            for cell in column_cells:
                if cell.value is not None:
                    max_length = max(max_length, len(str(cell.value)))

            adjusted_width = min(max_length + 2, 50)
            ws.column_dimensions[column].width = adjusted_width
