"""Tests for TransactionService."""

import pytest
from datetime import datetime
from decimal import Decimal

from balancebook.domain.entities import TransactionKind
from balancebook.domain.errors import NotFoundError, ValidationError


def test_create_transaction(transaction_service, sample_accounts):
    """Test posting a transaction between two leaf accounts."""
    txn_id = transaction_service.create_transaction(
        date=datetime(2024, 1, 15, 12, 0),
        from_account_id=sample_accounts["Wallet"],
        to_account_id=sample_accounts["Food"],
        amount=Decimal("42.50"),
        note="Dinner",
    )

    txn = transaction_service.get_transaction(txn_id)
    assert txn.amount == Decimal("42.50")
    assert txn.note == "Dinner"
    assert transaction_service.transaction_kind(txn) is TransactionKind.EXPENSE


def test_same_account_rejected(transaction_service, sample_accounts):
    with pytest.raises(ValidationError, match="must differ"):
        transaction_service.create_transaction(
            date=datetime(2024, 1, 1),
            from_account_id=sample_accounts["Wallet"],
            to_account_id=sample_accounts["Wallet"],
            amount=Decimal("1"),
        )


@pytest.mark.parametrize("amount", ["0", "-5"])
def test_non_positive_amount_rejected(transaction_service, sample_accounts, amount):
    with pytest.raises(ValidationError, match="positive"):
        transaction_service.create_transaction(
            date=datetime(2024, 1, 1),
            from_account_id=sample_accounts["Wallet"],
            to_account_id=sample_accounts["Food"],
            amount=Decimal(amount),
        )


def test_group_endpoint_rejected(transaction_service, sample_accounts):
    with pytest.raises(ValidationError, match="group account"):
        transaction_service.create_transaction(
            date=datetime(2024, 1, 1),
            from_account_id=sample_accounts["Bank"],
            to_account_id=sample_accounts["Cards"],
            amount=Decimal("1"),
        )


def test_unknown_account_rejected(transaction_service, sample_accounts):
    with pytest.raises(NotFoundError):
        transaction_service.create_transaction(
            date=datetime(2024, 1, 1),
            from_account_id=999,
            to_account_id=sample_accounts["Food"],
            amount=Decimal("1"),
        )


def test_opening_balance(transaction_service, sample_accounts):
    txn_id = transaction_service.post_opening_balance(
        sample_accounts["Visa"], Decimal("-300"), datetime(2024, 1, 1), note="Card debt"
    )

    txn = transaction_service.get_transaction(txn_id)
    assert txn.is_opening
    assert txn.from_account_id is None
    assert transaction_service.transaction_kind(txn) is TransactionKind.OPENING


def test_zero_opening_balance_rejected(transaction_service, sample_accounts):
    with pytest.raises(ValidationError):
        transaction_service.post_opening_balance(sample_accounts["Wallet"], Decimal("0"), datetime(2024, 1, 1))


def test_list_transactions_for_account(transaction_service, sample_accounts, post):
    wallet, food, rent = sample_accounts["Wallet"], sample_accounts["Food"], sample_accounts["Rent"]
    first = post(wallet, food, "1", datetime(2024, 1, 2))
    post(sample_accounts["Bank"], rent, "900", datetime(2024, 1, 3))
    second = post(wallet, rent, "2", datetime(2024, 1, 4))

    listed = transaction_service.list_transactions(account_id=wallet)

    assert [t.id for t in listed] == [first, second]


def test_list_transactions_unknown_account(transaction_service):
    with pytest.raises(NotFoundError):
        transaction_service.list_transactions(account_id=999)
