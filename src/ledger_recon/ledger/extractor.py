"""
Read postings for one account straight from ledger file text.

Entries start with a ``YYYY/MM/DD description`` line followed by indented
posting lines and end at a blank line.
"""

from datetime import date
from typing import Optional
import logging
import re

from ..models.transaction import LedgerTransaction
from ..parsers.amounts import detect_commodity, parse_ledger_amount
from ..utils.exceptions import AmountParseError

logger = logging.getLogger(__name__)

DATE_LINE_PATTERN = re.compile(r"^(\d{4})[/-](\d{1,2})[/-](\d{1,2})(?:\s+(.*))?$")
ACCOUNT_LINE_PATTERN = re.compile(r"(?m)^[ \t]+(\w.*?)([ \t]{2}.*?)?$")

# Cleared/pending marks in front of the payee
_STATE_MARK = re.compile(r"^[*!]\s*")


def _posting_pattern(account: str) -> re.Pattern:
    return re.compile(
        r"^\s+(" + re.escape(account) + r"(?::\w+)?)\s+([$US\-\d.,\s]+)"
    )


def _elided_pattern(account: str) -> re.Pattern:
    return re.compile(r"^\s+" + re.escape(account) + r"(?::\w+)?\s*(?:;.*)?$")


def parse_ledger_text(
    content: str, account: str, currency: Optional[str] = None
) -> list[LedgerTransaction]:
    """
    Extract the postings to ``account`` (or one sub-account level below it).

    Args:
        content: Ledger file text
        account: Account to reconcile, e.g. "Assets:Bank:BROU"
        currency: Optional commodity filter ("$" or "US$"); postings without
            an explicit commodity are always kept

    Returns:
        Ledger transactions in file order
    """
    posting_pattern = _posting_pattern(account)
    elided_pattern = _elided_pattern(account)
    transactions: list[LedgerTransaction] = []

    current_date: Optional[date] = None
    current_description = ""
    entry_start = 0
    entry_lines: list[str] = []

    for line_number, line in enumerate(content.splitlines(), start=1):
        entry_lines.append(line)

        date_match = DATE_LINE_PATTERN.match(line)
        if date_match:
            entry_lines = [line]
            entry_start = line_number
            year, month, day, description = date_match.groups()
            try:
                current_date = date(int(year), int(month), int(day))
            except ValueError:
                logger.warning(f"Line {line_number}: invalid entry date, skipping entry")
                current_date = None
                continue
            current_description = _STATE_MARK.sub("", (description or "").strip())
            continue

        if current_date is not None:
            posting = posting_pattern.match(line)
            if posting is None and elided_pattern.match(line):
                logger.debug(f"Line {line_number}: posting without an amount, skipped")
            if posting:
                amount_text = posting.group(2).strip()
                try:
                    amount = parse_ledger_amount(amount_text)
                except AmountParseError as e:
                    logger.debug(f"Line {line_number}: {e}, posting skipped")
                else:
                    commodity = detect_commodity(amount_text)
                    if currency is None or commodity is None or commodity == currency:
                        transactions.append(
                            LedgerTransaction(
                                date=current_date,
                                description=current_description,
                                account=posting.group(1),
                                amount=amount,
                                currency=commodity,
                                line_number=entry_start,
                                raw_entry="\n".join(entry_lines) + "\n",
                            )
                        )

        if not line.strip() and current_date is not None:
            current_date = None
            current_description = ""
            entry_lines = []

    logger.info(f"Found {len(transactions)} ledger postings for {account}")
    return transactions


def list_accounts(content: str) -> list[str]:
    """Distinct posting accounts in order of first appearance."""
    accounts: list[str] = []
    seen: set[str] = set()
    for match in ACCOUNT_LINE_PATTERN.finditer(content):
        account = match.group(1).strip()
        if account not in seen:
            seen.add(account)
            accounts.append(account)
    return accounts
