"""Tests for point-in-time balance reconstruction."""

import pytest
from datetime import datetime
from decimal import Decimal

from balancebook.domain.errors import NotFoundError


def test_balance_without_snapshot_sums_all_postings(balance_service, sample_accounts, post):
    """Without a snapshot the balance starts from zero."""
    wallet, food, salary = sample_accounts["Wallet"], sample_accounts["Food"], sample_accounts["Salary"]
    post(salary, wallet, "1000", datetime(2024, 1, 1, 9, 0))
    post(wallet, food, "30", datetime(2024, 1, 2, 12, 0))

    assert balance_service.balance_at(wallet, datetime(2024, 1, 31)) == Decimal("970")


def test_balance_before_first_posting_is_zero(balance_service, sample_accounts, post):
    wallet, salary = sample_accounts["Wallet"], sample_accounts["Salary"]
    post(salary, wallet, "1000", datetime(2024, 1, 10))

    assert balance_service.balance_at(wallet, datetime(2024, 1, 9)) == Decimal("0")


def test_balance_builds_on_latest_snapshot(balance_service, temp_db, sample_accounts, post):
    """Postings on or before the snapshot date are already part of the snapshot."""
    wallet, food = sample_accounts["Wallet"], sample_accounts["Food"]
    post(wallet, food, "999", datetime(2024, 1, 5))
    temp_db.upsert_daily_snapshot(wallet, Decimal("100"), datetime(2024, 1, 10))
    post(wallet, food, "25", datetime(2024, 1, 10))  # same instant as snapshot: excluded
    post(wallet, food, "40", datetime(2024, 1, 12))

    assert balance_service.balance_at(wallet, datetime(2024, 1, 11)) == Decimal("100")
    assert balance_service.balance_at(wallet, datetime(2024, 1, 12)) == Decimal("60")


def test_balance_includes_posting_at_instant(balance_service, sample_accounts, post):
    """The upper bound is inclusive."""
    wallet, salary = sample_accounts["Wallet"], sample_accounts["Salary"]
    post(salary, wallet, "50", datetime(2024, 2, 1, 8, 30))

    assert balance_service.balance_at(wallet, datetime(2024, 2, 1, 8, 30)) == Decimal("50")
    assert balance_service.balance_at(wallet, datetime(2024, 2, 1, 8, 29)) == Decimal("0")


def test_balance_uses_cross_currency_amounts(balance_service, sample_accounts, post):
    bank, brokerage = sample_accounts["Bank"], sample_accounts["Brokerage"]
    post(
        bank,
        brokerage,
        "720",
        datetime(2024, 3, 1),
        from_amount=Decimal("720"),
        to_amount=Decimal("100"),
    )

    assert balance_service.balance_at(bank, datetime(2024, 3, 2)) == Decimal("-720")
    assert balance_service.balance_at(brokerage, datetime(2024, 3, 2)) == Decimal("100")


def test_balance_includes_opening_balance(balance_service, transaction_service, sample_accounts):
    visa = sample_accounts["Visa"]
    transaction_service.post_opening_balance(visa, Decimal("-1200"), datetime(2024, 1, 1))

    assert balance_service.balance_at(visa, datetime(2024, 1, 2)) == Decimal("-1200")


def test_balance_is_a_pure_query(balance_service, temp_db, sample_accounts, post):
    """Reading a balance never writes snapshots."""
    wallet, salary = sample_accounts["Wallet"], sample_accounts["Salary"]
    post(salary, wallet, "10", datetime(2024, 1, 1))
    balance_service.balance_at(wallet, datetime(2024, 1, 2))

    assert temp_db.list_snapshots(wallet) == []


def test_balance_unknown_account(balance_service):
    with pytest.raises(NotFoundError):
        balance_service.balance_at(999, datetime(2024, 1, 1))
