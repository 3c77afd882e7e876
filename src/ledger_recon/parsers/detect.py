"""Map uploaded file names to the ledger account of the issuing bank."""

from pathlib import PurePath
from typing import Optional

from ..config import AccountsConfig

BROU_FILENAME_KEYWORDS = ("brou", "detalle_movimiento")
ITAU_FILENAME_KEYWORDS = ("itau", "estado_de_cuenta")

SPREADSHEET_SUFFIXES = (".xls", ".xlsx")
CSV_SUFFIXES = (".csv",)
PDF_SUFFIXES = (".pdf",)


def detect_bank(filename: str, accounts: Optional[AccountsConfig] = None) -> Optional[str]:
    """
    Guess the statement's ledger account from its file name.

    Visa Itaú statements are PDFs with numeric names, so any PDF maps to the
    card account.

    Returns:
        Account identifier, or None when the name is not recognised
    """
    accounts = accounts or AccountsConfig()
    name = filename.lower()

    if any(k in name for k in BROU_FILENAME_KEYWORDS):
        return accounts.brou
    if any(k in name for k in ITAU_FILENAME_KEYWORDS):
        return accounts.itau
    if name.endswith(PDF_SUFFIXES):
        return accounts.visa
    return None


def file_suffix(filename: str) -> str:
    return PurePath(filename).suffix.lower()
