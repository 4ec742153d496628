"""Integration tests for end-to-end workflows."""

import re
import subprocess
import sys
from datetime import datetime

import pytest
from balancebook.cli.main import cli


def run(cli_runner, db_path, *args, **kwargs):
    return cli_runner.invoke(cli, ["--db-path", db_path, *args], **kwargs)


def test_full_workflow(cli_runner, temp_db, fixtures_dir):
    """Test complete workflow: accounts → snapshot → import → reconcile → resolve."""
    db_path = temp_db.database_path

    # Step 1: Create accounts
    for args in (
        ["Wallet", "--currency", "CNY"],
        ["Bank", "--currency", "CNY"],
        ["Food", "--type", "expense"],
        ["Salary", "--type", "income"],
    ):
        result = run(cli_runner, db_path, "account", "create", *args)
        assert result.exit_code == 0

    # Step 2: First snapshot has nothing to compare against
    result = run(cli_runner, db_path, "snapshot", "create", "Wallet", "0", "--date", "2024-02-28")
    assert result.exit_code == 0
    assert "Recorded manual snapshot" in result.output
    assert "Insufficient calibration points" in result.output

    # Step 3: Import transactions
    result = run(cli_runner, db_path, "import", str(fixtures_dir / "sample_import.csv"), "--yes")
    assert result.exit_code == 0
    assert "Transactions created: 4" in result.output

    # Step 4: A snapshot that disagrees with the ledger by 35.50
    result = run(cli_runner, db_path, "snapshot", "create", "Wallet", "500", "--date", "2024-03-31")
    assert result.exit_code == 0
    assert "Reconciliation found 1 issue(s)" in result.output

    result = run(cli_runner, db_path, "issue", "list")
    assert result.exit_code == 0
    assert "diff -35.50" in result.output
    assert "expected 500.00, actual 464.50" in result.output

    # Step 5: Re-running reconciliation regenerates the same single issue
    result = run(cli_runner, db_path, "reconcile", "Wallet")
    assert result.exit_code == 0
    assert "Wallet: 1 segment(s) checked, 1 issue(s)" in result.output
    assert "Checked 1 account(s), found 1 issue(s)" in result.output

    result = run(cli_runner, db_path, "issue", "list", "--account", "Wallet")
    match = re.search(r"ID:\s+(\d+)", result.output)
    assert match is not None
    issue_id = match.group(1)

    # Step 6: Resolve it
    result = run(cli_runner, db_path, "issue", "resolve", issue_id)
    assert result.exit_code == 0
    assert f"Resolved issue {issue_id}" in result.output

    result = run(cli_runner, db_path, "issue", "list")
    assert "No issues found." in result.output

    result = run(cli_runner, db_path, "issue", "list", "--status", "resolved")
    assert "resolved" in result.output

    # Resolving twice is an error
    result = run(cli_runner, db_path, "issue", "resolve", issue_id)
    assert result.exit_code == 1
    assert "already resolved" in result.output

    # Step 7: Calibrate from the ledger and check all accounts
    result = run(cli_runner, db_path, "snapshot", "calibrate", "Wallet", "--date", "2024-04-01")
    assert result.exit_code == 0
    assert "Recorded auto snapshot" in result.output
    assert "500.00" in result.output

    result = run(cli_runner, db_path, "reconcile")
    assert result.exit_code == 0
    assert "Bank: Insufficient calibration points" in result.output
    assert "Checked 1 account(s)" in result.output

    result = run(cli_runner, db_path, "snapshot", "list", "Wallet")
    assert result.output.count("ID:") == 3


def test_reconcile_reversed_window(cli_runner, temp_db, sample_accounts, snapshot_service):
    from datetime import datetime
    from decimal import Decimal

    snapshot_service.create_snapshot(sample_accounts["Wallet"], Decimal("1"), when=datetime(2024, 1, 1))
    snapshot_service.create_snapshot(sample_accounts["Wallet"], Decimal("1"), when=datetime(2024, 1, 9))

    result = run(
        cli_runner, temp_db.database_path, "reconcile", "Wallet", "--start", "2024-02-01", "--end", "2024-01-01"
    )

    assert result.exit_code == 0
    assert "Start date cannot be later than end date" in result.output


def test_snapshot_on_nominal_account(cli_runner, temp_db, sample_accounts):
    result = run(cli_runner, temp_db.database_path, "snapshot", "create", "Food", "10")

    assert result.exit_code == 1
    assert "nominal account" in result.output


def test_issue_resolve_unknown(cli_runner, temp_db):
    result = run(cli_runner, temp_db.database_path, "issue", "resolve", "77")

    assert result.exit_code == 1
    assert "Reconciliation issue 77 not found" in result.output


def test_cli_imports_in_fresh_interpreter():
    """The CLI entry point loads without relying on prior imports."""
    result = subprocess.run(
        [sys.executable, "-c", "from balancebook.cli.main import main"],
        capture_output=True,
        text=True,
    )

    assert result.returncode == 0, result.stderr


def test_reconcile_status(cli_runner, temp_db, sample_accounts, post, snapshot_service):
    from decimal import Decimal

    post(sample_accounts["Salary"], sample_accounts["Wallet"], "100", datetime(2024, 1, 1))
    post(sample_accounts["Salary"], sample_accounts["Bank"], "300", datetime(2024, 1, 1))
    snapshot_service.create_snapshot(sample_accounts["Wallet"], Decimal("100"), when=datetime(2024, 1, 2))
    snapshot_service.create_snapshot(sample_accounts["Bank"], Decimal("250"), when=datetime(2024, 1, 2))

    result = run(
        cli_runner, temp_db.database_path, "reconcile", "Wallet", "Bank", "Visa", "--status", "--end", "2024-01-31"
    )

    assert result.exit_code == 0
    assert "Wallet: consistent | snapshot 100.00 on 2024-01-02 | ledger 100.00 CNY | diff +0.00" in result.output
    assert "Bank: has_difference" in result.output
    assert "diff +50.00" in result.output
    assert "Visa: no snapshot, ledger 0.00 CNY" in result.output
    temp_db.release_session()
    assert temp_db.list_issues() == []
