"""Configuration loader and validation for ingestion and reconciliation settings."""

from pathlib import Path
from typing import Any, Optional
import json
import logging

import yaml
from pydantic import BaseModel, Field, ValidationError

from .utils.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class AccountsConfig(BaseModel):
    """Ledger account identifiers assigned to each supported source."""

    brou: str = "Assets:Bank:BROU"
    itau: str = "Assets:Bank:Itau"
    visa: str = "Assets:VisaItau"
    unknown_expense: str = "Expenses:Unknown"
    unknown_income: str = "Income:Unknown"


class LayoutConfig(BaseModel):
    """Geometry thresholds for the credit-card PDF layout."""

    line_gap: float = 3.0
    dual_currency_line_length: int = 115
    payment_keyword: str = "PAGOS"
    payment_column_boundary: int = 95


class ReadersConfig(BaseModel):
    """Configuration for statement readers."""

    header_scan_rows: int = 100
    csv_encoding: str = "utf-8"
    layout: LayoutConfig = Field(default_factory=LayoutConfig)


class ExactMatchConfig(BaseModel):
    """Exact pass: date window in days and amount epsilon."""

    window_days: int = 0
    epsilon: float = 0.001


class FuzzyMatchConfig(BaseModel):
    """Fuzzy pass: windows, tolerances, score weights and acceptance threshold."""

    window_days: int = 5
    amount_floor: float = 10.0
    amount_percent: float = 5.0
    date_weight: float = 0.3
    amount_weight: float = 0.5
    description_weight: float = 0.2
    threshold: float = 0.6


class MatchingConfig(BaseModel):
    """Configuration for the matching engine."""

    exact: ExactMatchConfig = Field(default_factory=ExactMatchConfig)
    fuzzy: FuzzyMatchConfig = Field(default_factory=FuzzyMatchConfig)


class LedgerConfig(BaseModel):
    """How the command line invokes the ledger binary."""

    binary: str = "ledger"
    timeout_seconds: float = 30.0


class ExcelOutputConfig(BaseModel):
    """Configuration for Excel output."""

    filename_template: str = "reconciliation_report_{date}_{time}.xlsx"


class SheetConfig(BaseModel):
    """Configuration for a report sheet."""

    enabled: bool = True
    name: str


class SheetsConfig(BaseModel):
    """Configuration for all report sheets."""

    summary: SheetConfig = Field(default_factory=lambda: SheetConfig(name="Summary"))
    matched: SheetConfig = Field(default_factory=lambda: SheetConfig(name="Matched Transactions"))
    bank_only: SheetConfig = Field(default_factory=lambda: SheetConfig(name="Bank Only"))
    ledger_only: SheetConfig = Field(default_factory=lambda: SheetConfig(name="Ledger Only"))
    entries: SheetConfig = Field(default_factory=lambda: SheetConfig(name="Suggested Entries"))


class OutputConfig(BaseModel):
    """Configuration for output."""

    excel: ExcelOutputConfig = Field(default_factory=ExcelOutputConfig)
    sheets: SheetsConfig = Field(default_factory=SheetsConfig)


class LoggingConfig(BaseModel):
    """Configuration for logging."""

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class ReconConfig(BaseModel):
    """Main configuration model."""

    accounts: AccountsConfig = Field(default_factory=AccountsConfig)
    readers: ReadersConfig = Field(default_factory=ReadersConfig)
    matching: MatchingConfig = Field(default_factory=MatchingConfig)
    account_mappings_file: Optional[str] = "account_mappings.json"
    ledger: LedgerConfig = Field(default_factory=LedgerConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    config_file_path: Optional[str] = None


class AccountMapping(BaseModel):
    """Description substrings that route a bank transaction to a ledger account."""

    patterns: list[str]
    account: str


class AccountMappings(BaseModel):
    """Ordered account mapping rules; the first matching rule wins."""

    description_mappings: list[AccountMapping] = Field(default_factory=list)

    def __len__(self) -> int:
        return len(self.description_mappings)


def get_default_config() -> dict[str, Any]:
    """Return the default configuration as a dictionary."""
    return {
        "accounts": {
            "brou": "Assets:Bank:BROU",
            "itau": "Assets:Bank:Itau",
            "visa": "Assets:VisaItau",
            "unknown_expense": "Expenses:Unknown",
            "unknown_income": "Income:Unknown",
        },
        "readers": {
            "header_scan_rows": 100,
            "csv_encoding": "utf-8",
            "layout": {
                "line_gap": 3.0,
                "dual_currency_line_length": 115,
                "payment_keyword": "PAGOS",
                "payment_column_boundary": 95,
            },
        },
        "matching": {
            "exact": {
                "window_days": 0,
                "epsilon": 0.001,
            },
            "fuzzy": {
                "window_days": 5,
                "amount_floor": 10.0,
                "amount_percent": 5.0,
                "date_weight": 0.3,
                "amount_weight": 0.5,
                "description_weight": 0.2,
                "threshold": 0.6,
            },
        },
        "account_mappings_file": "account_mappings.json",
        "ledger": {
            "binary": "ledger",
            "timeout_seconds": 30.0,
        },
        "output": {
            "excel": {
                "filename_template": "reconciliation_report_{date}_{time}.xlsx",
            },
            "sheets": {
                "summary": {"enabled": True, "name": "Summary"},
                "matched": {"enabled": True, "name": "Matched Transactions"},
                "bank_only": {"enabled": True, "name": "Bank Only"},
                "ledger_only": {"enabled": True, "name": "Ledger Only"},
                "entries": {"enabled": True, "name": "Suggested Entries"},
            },
        },
        "logging": {
            "level": "INFO",
            "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        },
    }


def load_config(config_path: Optional[Path] = None) -> ReconConfig:
    """
    Load configuration from a YAML file or use defaults.

    Args:
        config_path: Path to YAML configuration file (optional)

    Returns:
        ReconConfig object with loaded or default settings

    Raises:
        ConfigurationError: If the file is not valid YAML or fails validation
    """
    config_dict = get_default_config()

    if config_path and config_path.exists():
        logger.info(f"Loading configuration from: {config_path}")
        try:
            with open(config_path, "r") as f:
                user_config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {config_path}: {e}") from e

        if not isinstance(user_config, dict):
            raise ConfigurationError(f"Configuration root must be a mapping: {config_path}")

        config_dict = _deep_merge(config_dict, user_config)
        config_dict["config_file_path"] = str(config_path)
    else:
        logger.info("Using default configuration")

    try:
        return ReconConfig(**config_dict)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e


def load_account_mappings(mappings_path: Optional[Path]) -> AccountMappings:
    """
    Load description-to-account rules from a JSON document.

    The document is either a list of ``{"patterns": [...], "account": "..."}``
    objects or an object holding that list under ``description_mappings``.
    A missing file is not an error: transactions then fall back to the
    unknown expense/income accounts.

    Args:
        mappings_path: Path to the JSON file (optional)

    Returns:
        AccountMappings, possibly empty

    Raises:
        ConfigurationError: If the file exists but is malformed
    """
    if mappings_path is None or not mappings_path.exists():
        logger.info("No account mappings file found, using default accounts")
        return AccountMappings()

    try:
        with open(mappings_path, "r", encoding="utf-8") as f:
            raw = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Invalid JSON in {mappings_path}: {e}") from e
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigurationError(f"Cannot read account mappings {mappings_path}: {e}") from e

    if isinstance(raw, dict):
        raw = raw.get("description_mappings", [])
    if not isinstance(raw, list):
        raise ConfigurationError(f"Account mappings must be a list: {mappings_path}")

    try:
        mappings = AccountMappings(
            description_mappings=[AccountMapping(**item) for item in raw]
        )
    except (ValidationError, TypeError) as e:
        raise ConfigurationError(f"Invalid account mapping in {mappings_path}: {e}") from e

    logger.info(f"Loaded {len(mappings)} account mappings from {mappings_path}")
    return mappings


def _deep_merge(base: dict, override: dict) -> dict:
    """
    Deep merge two dictionaries.

    Args:
        base: Base dictionary
        override: Dictionary to merge on top

    Returns:
        Merged dictionary
    """
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value

    return result


def generate_default_config(output_path: Path) -> None:
    """
    Generate a default configuration file.

    Args:
        output_path: Path to write the configuration file
    """
    config_dict = get_default_config()

    yaml_content = """# Bank statement to ledger reconciliation configuration
# Generated configuration file - customize as needed

"""
    yaml_content += yaml.dump(config_dict, default_flow_style=False, sort_keys=False)

    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w") as f:
        f.write(yaml_content)

    logger.info(f"Generated configuration file: {output_path}")
