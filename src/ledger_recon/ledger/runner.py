"""Runs ledger queries with the ``ledger`` command-line tool."""

from pathlib import Path
import logging
import shlex
import subprocess

from ..utils.exceptions import QueryError

logger = logging.getLogger(__name__)


class LedgerCliRunner:
    """Callable runner executing ``ledger -f FILE <query>`` in a subprocess."""

    def __init__(self, ledger_file: Path, binary: str = "ledger", timeout: float = 30.0):
        self.ledger_file = ledger_file
        self.binary = binary
        self.timeout = timeout

    def __call__(self, query: str) -> str:
        try:
            args = shlex.split(query)
        except ValueError as e:
            raise QueryError(f"Invalid ledger query {query!r}: {e}") from e

        command = [self.binary, "-f", str(self.ledger_file), *args]
        logger.debug(f"Running: {' '.join(command)}")

        try:
            completed = subprocess.run(
                command,
                capture_output=True,
                text=True,
                timeout=self.timeout,
                check=False,
            )
        except FileNotFoundError as e:
            raise QueryError(f"Ledger binary not found: {self.binary}") from e
        except subprocess.TimeoutExpired as e:
            raise QueryError(f"Ledger query timed out after {self.timeout}s") from e

        if completed.returncode != 0:
            raise QueryError(
                f"Ledger exited with status {completed.returncode}: "
                f"{completed.stderr.strip()}"
            )
        return completed.stdout
