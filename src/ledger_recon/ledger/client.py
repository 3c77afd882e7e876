"""
Queries against the external ledger tool.

The client only builds query strings and parses the text that comes back;
running the tool is delegated to an injected runner, a callable taking the
query and returning the tool's output.
"""

from datetime import date, datetime
from typing import Callable, Optional
import logging
import re
import shlex

from ..models.transaction import Amount, LedgerTransaction
from ..parsers.amounts import parse_ledger_amount
from ..utils.exceptions import AmountParseError, QueryError

logger = logging.getLogger(__name__)

LedgerRunner = Callable[[str], str]

REGISTER_LINE_PATTERN = re.compile(r"^(\d{4}[/-]\d{1,2}[/-]\d{1,2})\s+(.+)$")
BALANCE_LINE_PATTERN = re.compile(r"^\s*((?:US)?\$)\s*([\-\d,\.]+)\s*$")

REGISTER_FORMAT = '%(format_date(date, "%Y-%m-%d")) %t\\n'
BALANCE_FORMAT = "%T\\n"


def build_register_query(account: str, currency: Optional[str] = None) -> str:
    """Register query printing one ``date amount`` pair per posting."""
    query = f"reg {shlex.quote(account)}"
    if currency:
        # ledger reads the commodity as a regex, so "$" must be escaped
        query += f" -l 'commodity == \"\\{currency}\"'"
    return f"{query} -F '{REGISTER_FORMAT}'"


def build_balance_query(account: str, end_date: date) -> str:
    """Balance query as of ``end_date`` (exclusive), one commodity per line."""
    return (
        f"bal {shlex.quote(account)} -e '{end_date.isoformat()}' -F '{BALANCE_FORMAT}'"
    )


def parse_register_output(output: str, account: str) -> list[LedgerTransaction]:
    """Parse ``date amount`` lines; lines that do not parse are skipped."""
    transactions: list[LedgerTransaction] = []

    for line in output.splitlines():
        line = line.strip()
        if not line:
            continue

        match = REGISTER_LINE_PATTERN.match(line)
        if not match:
            logger.debug(f"Ignoring register line: {line!r}")
            continue

        date_text, amount_text = match.group(1), match.group(2).strip()
        txn_date = _parse_ledger_date(date_text)
        if txn_date is None:
            logger.warning(f"Invalid date in register line: {line!r}")
            continue

        try:
            amount = parse_ledger_amount(amount_text)
        except AmountParseError as e:
            logger.warning(f"{e} in register line: {line!r}")
            continue

        transactions.append(
            LedgerTransaction(date=txn_date, description="", account=account, amount=amount)
        )

    return transactions


def parse_balance_output(output: str) -> list[Amount]:
    """Parse one ``$ 1,234.56`` / ``US$ -10.00`` balance per line."""
    balances: list[Amount] = []
    for line in output.splitlines():
        match = BALANCE_LINE_PATTERN.match(line)
        if not match:
            continue
        try:
            value = parse_ledger_amount(match.group(2))
        except AmountParseError:
            continue
        balances.append(Amount(currency=match.group(1), value=value))
    return balances


def _parse_ledger_date(text: str) -> Optional[date]:
    for fmt in ("%Y/%m/%d", "%Y-%m-%d"):
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None


class LedgerClient:
    """Reads transactions and balances through the ledger query collaborator."""

    def __init__(self, runner: LedgerRunner):
        """
        Initialize the client.

        Args:
            runner: Callable that executes a ledger query and returns its output
        """
        self.runner = runner

    def transactions(self, account: str, currency: Optional[str] = None) -> list[LedgerTransaction]:
        """
        Register postings for an account, optionally for one commodity.

        Raises:
            QueryError: If the query fails or its output cannot be parsed
        """
        output = self._run(build_register_query(account, currency))
        if not output:
            return []

        transactions = parse_register_output(output, account)
        if not transactions:
            raise QueryError(f"Unparseable ledger register output: {output[:200]!r}")

        logger.info(f"Ledger returned {len(transactions)} postings for {account}")
        return transactions

    def balances(self, account: str, end_date: date) -> list[Amount]:
        """
        Account balance per commodity before ``end_date``.

        Raises:
            QueryError: If the query fails or its output cannot be parsed
        """
        output = self._run(build_balance_query(account, end_date))
        if not output or output == "0":
            return []

        balances = parse_balance_output(output)
        if not balances:
            raise QueryError(f"Unparseable ledger balance output: {output[:200]!r}")
        return balances

    def _run(self, query: str) -> str:
        logger.debug(f"ledger {query}")
        try:
            output = self.runner(query)
        except QueryError:
            raise
        except Exception as e:
            logger.error(f"Ledger query failed: {e}")
            raise QueryError(f"Ledger query failed: {e}") from e

        text = (output or "").strip()
        if text.lower().startswith("error"):
            raise QueryError(f"Ledger reported an error: {text.splitlines()[0]}")
        return text
