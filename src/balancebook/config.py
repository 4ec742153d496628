"""Configuration loader and validation for ledger settings."""

from decimal import Decimal
from pathlib import Path
from typing import Any, Optional
import logging

import yaml
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class DatabaseConfig(BaseModel):
    """Configuration for the ledger store."""

    path: Optional[str] = None


class ReconciliationConfig(BaseModel):
    """Configuration for snapshot reconciliation."""

    tolerance: Decimal = Decimal("0.01")
    decimal_places: int = 2


class ImportColumns(BaseModel):
    """Header labels of the import file."""

    date: str = "Date"
    type: str = "Type"
    from_account: str = "From Account"
    amount: str = "Amount"
    to_account: str = "To Account"
    note: str = "Note"
    location: str = "Location"
    project: str = "Project"
    important: str = "Important"
    needs_review: str = "Needs Review"
    nature: str = "Nature"

    @property
    def required(self) -> list[str]:
        return [self.date, self.type, self.from_account, self.amount, self.to_account]


class ImportConfig(BaseModel):
    """Configuration for import file parsing."""

    encoding: str = "utf-8-sig"
    columns: ImportColumns = Field(default_factory=ImportColumns)
    truthy_tokens: list[str] = Field(default_factory=lambda: ["是", "yes", "true", "y", "1"])


class IngestionConfig(BaseModel):
    """Configuration for the chunked ingestion committer."""

    group_size: int = Field(default=5, ge=1)
    atomic_transfers: bool = False
    transfer_clearing_account: str = "Transfers in transit"


class LoggingConfig(BaseModel):
    """Configuration for logging."""

    level: str = "WARNING"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file: Optional[str] = None


class LedgerConfig(BaseModel):
    """Main configuration model for the ledger."""

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    reconciliation: ReconciliationConfig = Field(default_factory=ReconciliationConfig)
    imports: ImportConfig = Field(default_factory=ImportConfig)
    ingestion: IngestionConfig = Field(default_factory=IngestionConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    config_file_path: Optional[str] = None


def get_default_config() -> dict[str, Any]:
    """Return the default configuration as a dictionary."""
    return {
        "database": {"path": None},
        "reconciliation": {
            "tolerance": "0.01",
            "decimal_places": 2,
        },
        "imports": {
            "encoding": "utf-8-sig",
            "columns": {
                "date": "Date",
                "type": "Type",
                "from_account": "From Account",
                "amount": "Amount",
                "to_account": "To Account",
                "note": "Note",
                "location": "Location",
                "project": "Project",
                "important": "Important",
                "needs_review": "Needs Review",
                "nature": "Nature",
            },
            "truthy_tokens": ["是", "yes", "true", "y", "1"],
        },
        "ingestion": {
            "group_size": 5,
            "atomic_transfers": False,
            "transfer_clearing_account": "Transfers in transit",
        },
        "logging": {
            "level": "WARNING",
            "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            "file": None,
        },
    }


def load_config(config_path: Optional[Path] = None) -> LedgerConfig:
    """
    Load configuration from a YAML file or use defaults.

    Args:
        config_path: Path to YAML configuration file (optional)

    Returns:
        LedgerConfig object with loaded or default settings
    """
    config_dict = get_default_config()

    if config_path and config_path.exists():
        logger.info(f"Loading configuration from: {config_path}")
        with open(config_path, "r", encoding="utf-8") as f:
            user_config = yaml.safe_load(f) or {}

        config_dict = _deep_merge(config_dict, user_config)
        config_dict["config_file_path"] = str(config_path)
    else:
        logger.info("Using default configuration")

    return LedgerConfig(**config_dict)


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
