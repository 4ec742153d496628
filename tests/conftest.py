"""Shared pytest fixtures for balancebook tests."""

import tempfile
import os
from decimal import Decimal
from pathlib import Path
import pytest

from balancebook.config import LedgerConfig
from balancebook.database.factories import create_sqlite_database
from balancebook.domain.account import AccountService
from balancebook.domain.balance import BalanceService
from balancebook.domain.cache import LedgerCache
from balancebook.domain.csv_import import ImportService
from balancebook.domain.reconciliation import ReconciliationService
from balancebook.domain.snapshot import SnapshotService
from balancebook.domain.transaction import TransactionService


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    db = create_sqlite_database(database_path=db_path)
    # Store the path for tests that need it
    db.database_path = db_path
    db.connect()
    db.initialize_schema()

    yield db

    db.disconnect()
    if os.path.exists(db_path):
        os.unlink(db_path)


@pytest.fixture
def config():
    """Default ledger configuration."""
    return LedgerConfig()


@pytest.fixture
def cache(temp_db, config):
    """Create a LedgerCache over the temporary database."""
    return LedgerCache(temp_db, config)


@pytest.fixture
def account_service(temp_db):
    """Create an AccountService with a temporary database."""
    return AccountService(temp_db)


@pytest.fixture
def transaction_service(temp_db):
    """Create a TransactionService with a temporary database."""
    return TransactionService(temp_db)


@pytest.fixture
def balance_service(temp_db):
    """Create a BalanceService with a temporary database."""
    return BalanceService(temp_db)


@pytest.fixture
def reconciliation_service(temp_db, cache):
    """Create a ReconciliationService sharing the test cache."""
    return ReconciliationService(temp_db, cache)


@pytest.fixture
def snapshot_service(temp_db, cache):
    """Create a SnapshotService sharing the test cache."""
    return SnapshotService(temp_db, cache)


@pytest.fixture
def import_service(temp_db, cache):
    """Create an ImportService sharing the test cache."""
    return ImportService(temp_db, cache)


@pytest.fixture
def sample_accounts(account_service):
    """Create a small chart of accounts and return their IDs by name."""
    ids = {}
    ids["Wallet"] = account_service.create_account("Wallet", "asset", currency="CNY")
    ids["Bank"] = account_service.create_account("Bank", "asset", currency="CNY")
    ids["Brokerage"] = account_service.create_account("Brokerage", "asset", currency="USD")
    ids["Cards"] = account_service.create_account("Cards", "liability", is_group=True)
    ids["Visa"] = account_service.create_account(
        "Visa", "liability", currency="CNY", parent_id=ids["Cards"]
    )
    ids["Food"] = account_service.create_account("Food", "expense")
    ids["Rent"] = account_service.create_account("Rent", "expense")
    ids["Salary"] = account_service.create_account("Salary", "income")
    return ids


@pytest.fixture
def post(transaction_service):
    """Post a transaction with short arguments: post(from_id, to_id, amount, when)."""

    def _post(from_id, to_id, amount, when, **kwargs):
        return transaction_service.create_transaction(
            date=when,
            from_account_id=from_id,
            to_account_id=to_id,
            amount=Decimal(str(amount)),
            **kwargs,
        )

    return _post


@pytest.fixture
def write_csv(tmp_path):
    """Write rows to a CSV file with the standard import header."""

    def _write(rows, header=None, name="import.csv"):
        header = header or ["Date", "Type", "From Account", "Amount", "To Account", "Note"]
        path = tmp_path / name
        lines = [",".join(header)]
        for row in rows:
            lines.append(",".join(row))
        path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        return path

    return _write


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()


@pytest.fixture
def fixtures_dir():
    """Return the path to the test fixtures directory."""
    return Path(__file__).parent / "fixtures"
