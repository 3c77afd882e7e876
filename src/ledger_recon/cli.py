"""
Command-line interface for the bank statement to ledger reconciliation tool.
"""

from datetime import datetime
from pathlib import Path
from typing import Optional
import logging
import sys

import click
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from . import __version__
from .config import load_config, load_account_mappings, generate_default_config, ReconConfig
from .entries.generator import EntryGenerator
from .ingest import StatementIngestor
from .ledger.client import LedgerClient
from .ledger.extractor import list_accounts, parse_ledger_text
from .ledger.runner import LedgerCliRunner
from .matching.engine import ReconciliationEngine
from .models.transaction import LedgerTransaction, ReconciliationResult, Statement
from .parsers.amounts import format_amount
from .reports.excel_generator import ExcelReportGenerator
from .utils.logging_config import setup_logging, level_from_name

console = Console()


@click.group()
@click.version_option(version=__version__)
def main():
    """Bank statement to ledger reconciliation tool."""
    pass


@main.command()
@click.argument("statement_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("ledger_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "-c",
    "--config",
    type=click.Path(exists=True, path_type=Path),
    help="Path to configuration file (YAML)",
)
@click.option(
    "-m",
    "--mappings",
    type=click.Path(path_type=Path),
    help="Path to account mappings (JSON)",
)
@click.option("-a", "--account", help="Ledger account of the statement (overrides detection)")
@click.option(
    "--use-ledger-cli",
    is_flag=True,
    help="Query the ledger binary instead of reading the ledger file directly",
)
@click.option("-o", "--output", type=click.Path(path_type=Path), help="Output Excel file path")
@click.option("--entries", "show_entries", is_flag=True, help="Print suggested ledger entries")
@click.option("--log-file", type=click.Path(path_type=Path), help="Also write logs to this file")
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose output")
@click.option(
    "--dry-run", is_flag=True, help="Reconcile and show summary without generating report"
)
def reconcile(
    statement_file: Path,
    ledger_file: Path,
    config: Optional[Path],
    mappings: Optional[Path],
    account: Optional[str],
    use_ledger_cli: bool,
    output: Optional[Path],
    show_entries: bool,
    log_file: Optional[Path],
    verbose: bool,
    dry_run: bool,
):
    """
    Reconcile a bank statement with an existing ledger.

    STATEMENT_FILE: Bank export (.xls/.xlsx, .csv or credit card .pdf)
    LEDGER_FILE: Ledger journal file
    """
    try:
        recon_config = load_config(config)

        log_level = logging.DEBUG if verbose else level_from_name(recon_config.logging.level)
        setup_logging(log_level, log_file, recon_config.logging.format)

        mappings_path = mappings or _default_mappings_path(recon_config)
        account_mappings = load_account_mappings(mappings_path)

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
            transient=True,
        ) as progress:
            task = progress.add_task("Parsing bank statement...", total=None)
            ingestor = StatementIngestor(recon_config)
            ingested = ingestor.ingest(statement_file.name, statement_file.read_bytes(), account)
            progress.update(task, completed=True)

            if ingested.failure:
                console.print(
                    f"[red]Could not read {statement_file.name} "
                    f"({ingested.failure.kind}): {ingested.failure.message}[/red]"
                )
                sys.exit(1)

            task = progress.add_task("Running reconciliation...", total=None)
            engine = ReconciliationEngine(recon_config)
            client = None
            ledger_text = ""
            if use_ledger_cli:
                client = LedgerClient(
                    LedgerCliRunner(
                        ledger_file,
                        binary=recon_config.ledger.binary,
                        timeout=recon_config.ledger.timeout_seconds,
                    )
                )
            else:
                ledger_text = ledger_file.read_text(encoding="utf-8")

            results: list[ReconciliationResult] = []
            opening_balances: list[str] = []
            for statement in ingested.statements:
                ledger_txns = _ledger_transactions(statement, client, ledger_text)
                results.append(engine.reconcile(statement, ledger_txns))
                if client is not None and statement.start_date is not None:
                    balances = client.balances(statement.account, statement.start_date)
                    opening_balances.append(
                        ", ".join(format_amount(b.value, b.currency) for b in balances) or "0"
                    )
                else:
                    opening_balances.append("")
            progress.update(task, completed=True)

        for result, opening in zip(results, opening_balances):
            _display_summary(result, opening)

        generator = EntryGenerator(
            account_mappings,
            unknown_expense_account=recon_config.accounts.unknown_expense,
            unknown_income_account=recon_config.accounts.unknown_income,
        )
        entries: list[str] = []
        for result in results:
            entries.extend(generator.generate(result.unmatched_bank))

        if show_entries:
            _display_entries(entries)

        if dry_run:
            console.print("\n[yellow]Dry run - no report generated[/yellow]")
            return

        if output is None:
            now = datetime.now()
            output = Path(
                recon_config.output.excel.filename_template.format(
                    date=now.strftime("%Y%m%d"), time=now.strftime("%H%M%S")
                )
            )

        report_generator = ExcelReportGenerator(recon_config)
        report_path = report_generator.generate_report(results, entries, output)

        console.print(f"\n[green]Report generated: {report_path}[/green]")

    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        if verbose:
            console.print_exception()
        sys.exit(1)


@main.command()
@click.argument("statement_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("-a", "--account", help="Ledger account of the statement (overrides detection)")
@click.option("-c", "--config", type=click.Path(exists=True, path_type=Path))
@click.option("--limit", type=int, default=20, show_default=True, help="Rows to show per statement")
def parse(statement_file: Path, account: Optional[str], config: Optional[Path], limit: int):
    """
    Parse a bank statement and display its transactions.

    STATEMENT_FILE: Bank export (.xls/.xlsx, .csv or credit card .pdf)
    """
    recon_config = load_config(config)
    ingestor = StatementIngestor(recon_config)
    ingested = ingestor.ingest(statement_file.name, statement_file.read_bytes(), account)

    if ingested.failure:
        console.print(
            f"[red]Error parsing file ({ingested.failure.kind}): {ingested.failure.message}[/red]"
        )
        sys.exit(1)

    for statement in ingested.statements:
        currency = statement.currency.value
        table = Table(title=f"{statement.account} ({currency}) {statement.date_range}")
        table.add_column("Date")
        table.add_column("Description")
        table.add_column("Debit", justify="right")
        table.add_column("Credit", justify="right")
        table.add_column("Balance", justify="right")

        for txn in statement.transactions[:limit]:
            table.add_row(
                str(txn.date),
                (
                    txn.description[:40] + "..."
                    if len(txn.description) > 40
                    else txn.description
                ),
                f"{txn.debit:,.2f}" if txn.debit else "",
                f"{txn.credit:,.2f}" if txn.credit else "",
                f"{txn.balance:,.2f}" if txn.balance is not None else "",
            )

        console.print(table)

        if len(statement) > limit:
            console.print(f"\n... and {len(statement) - limit} more transactions")

        console.print(f"\nTotal transactions: {len(statement)}")


@main.command()
@click.argument("ledger_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def accounts(ledger_file: Path):
    """
    List the accounts used by postings in a ledger file.

    LEDGER_FILE: Ledger journal file
    """
    names = list_accounts(ledger_file.read_text(encoding="utf-8"))
    for name in names:
        console.print(name, highlight=False)
    console.print(f"\nTotal accounts: {len(names)}")


@main.command("init-config")
@click.option(
    "-o", "--output", type=click.Path(path_type=Path), default=Path("config.yaml")
)
def init_config(output: Path):
    """Generate a sample configuration file."""
    generate_default_config(output)
    console.print(f"[green]Configuration file generated: {output}[/green]")


def _default_mappings_path(config: ReconConfig) -> Optional[Path]:
    if not config.account_mappings_file:
        return None
    path = Path(config.account_mappings_file)
    # Relative paths are resolved next to the configuration file
    if not path.is_absolute() and config.config_file_path:
        path = Path(config.config_file_path).parent / path
    return path


def _ledger_transactions(
    statement: Statement,
    client: Optional[LedgerClient],
    ledger_text: str,
) -> list[LedgerTransaction]:
    currency = statement.currency.value
    if client is not None:
        return client.transactions(statement.account, currency)
    return parse_ledger_text(ledger_text, statement.account, currency)


def _display_summary(result: ReconciliationResult, opening_balance: str = "") -> None:
    """Display reconciliation summary in console."""
    statement = result.statement
    currency = statement.currency.value

    table = Table(title=f"Reconciliation: {statement.account} ({currency})")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")

    table.add_row("Period", result.date_range or "-")
    if opening_balance:
        table.add_row("Ledger Opening Balance", opening_balance)
    table.add_row("Bank Transactions", str(len(statement)))
    table.add_row("Matched", str(len(result.matches)))
    table.add_row("  Exact", str(result.exact_count))
    table.add_row("  Fuzzy", str(result.fuzzy_count))
    table.add_row("Bank Only", str(len(result.unmatched_bank)))
    table.add_row("Ledger Only", str(len(result.unmatched_ledger)))
    table.add_row("Ledger Outside Period", str(len(result.out_of_period_ledger)))
    table.add_row("Match Rate", f"{result.match_rate:.1f}%")
    table.add_row("Bank Debits", f"{currency}{result.total_bank_debits:,.2f}")
    table.add_row("Bank Credits", f"{currency}{result.total_bank_credits:,.2f}")
    table.add_row("Ledger Debits", f"{currency}{result.total_ledger_debits:,.2f}")
    table.add_row("Ledger Credits", f"{currency}{result.total_ledger_credits:,.2f}")

    console.print(table)


def _display_entries(entries: list[str]) -> None:
    if not entries:
        console.print("\nNo suggested entries")
        return
    console.print(f"\n[bold]Suggested entries ({len(entries)})[/bold]\n")
    for entry in entries:
        console.print(entry, highlight=False, markup=False)


if __name__ == "__main__":
    main()
