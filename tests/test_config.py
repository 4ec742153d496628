"""Tests for configuration loading and logging setup."""

import logging
from decimal import Decimal

import pytest
from pydantic import ValidationError as PydanticValidationError

from balancebook.config import LedgerConfig, load_config
from balancebook.utils.logging_config import get_logger, setup_logging


def test_defaults_without_file(tmp_path):
    config = load_config(tmp_path / "missing.yaml")

    assert config.reconciliation.tolerance == Decimal("0.01")
    assert config.ingestion.group_size == 5
    assert config.ingestion.atomic_transfers is False
    assert config.imports.columns.required == ["Date", "Type", "From Account", "Amount", "To Account"]
    assert config.logging.level == "WARNING"
    assert config.config_file_path is None


def test_yaml_overrides_are_merged(tmp_path):
    path = tmp_path / "balancebook.yaml"
    path.write_text(
        "reconciliation:\n"
        "  tolerance: '0.5'\n"
        "ingestion:\n"
        "  group_size: 10\n"
        "imports:\n"
        "  columns:\n"
        "    date: 日期\n",
        encoding="utf-8",
    )

    config = load_config(path)

    assert config.reconciliation.tolerance == Decimal("0.5")
    assert config.reconciliation.decimal_places == 2
    assert config.ingestion.group_size == 10
    assert config.imports.columns.date == "日期"
    assert config.imports.columns.amount == "Amount"
    assert config.config_file_path == str(path)


def test_empty_yaml_uses_defaults(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("", encoding="utf-8")

    assert load_config(path).ingestion.group_size == 5


def test_group_size_must_be_positive():
    with pytest.raises(PydanticValidationError):
        LedgerConfig(ingestion={"group_size": 0})


def test_setup_logging_replaces_handlers(tmp_path):
    log_file = tmp_path / "logs" / "balancebook.log"
    setup_logging(level=logging.INFO)
    logger = setup_logging(level=logging.INFO, log_file=log_file)

    assert len(logger.handlers) == 2
    get_logger("tests").info("hello")
    for handler in logger.handlers:
        handler.flush()
    assert "hello" in log_file.read_text(encoding="utf-8")

    setup_logging()
    assert len(logging.getLogger("balancebook").handlers) == 1


def test_get_logger_namespacing():
    assert get_logger("balancebook.domain").name == "balancebook.domain"
    assert get_logger("cli").name == "balancebook.cli"
