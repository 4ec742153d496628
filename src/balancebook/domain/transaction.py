"""Transaction domain service."""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Optional

from balancebook.database.base import Database
from balancebook.domain.account import AccountService
from balancebook.domain.entities import (
    Transaction as TransactionEntity,
    TransactionKind,
    TransactionNature,
    derive_transaction_kind,
)
from balancebook.domain.errors import NotFoundError, ValidationError, account_not_found

logger = logging.getLogger(__name__)


class TransactionService:
    """Service for posting and reading transactions."""

    def __init__(self, db: Database):
        """Initialize transaction service.

        Args:
            db: Database instance
        """
        self.db = db
        self.accounts = AccountService(db)

    def create_transaction(
        self,
        date: datetime,
        from_account_id: int,
        to_account_id: int,
        amount: Decimal,
        from_amount: Optional[Decimal] = None,
        to_amount: Optional[Decimal] = None,
        note: Optional[str] = None,
        location: Optional[str] = None,
        project: Optional[str] = None,
        is_starred: bool = False,
        needs_review: bool = False,
        nature: TransactionNature = TransactionNature.REGULAR,
        transfer_group_id: Optional[str] = None,
    ) -> int:
        """Post a transaction between two leaf accounts.

        Args:
            date: Posting timestamp
            from_account_id: Account the money leaves
            to_account_id: Account the money enters
            amount: Positive amount
            from_amount: Optional amount in the from-account's currency
            to_amount: Optional amount in the to-account's currency

        Returns:
            Transaction ID

        Raises:
            NotFoundError: If either account doesn't exist
            ValidationError: If an endpoint is a group, both endpoints are the
                same account, or an amount is not positive
        """
        self.accounts.require_postable(from_account_id)
        self.accounts.require_postable(to_account_id)
        if from_account_id == to_account_id:
            raise ValidationError("From and to account must differ")
        for value in (amount, from_amount, to_amount):
            if value is not None and value <= 0:
                raise ValidationError(f"Amount must be positive, got {value}")

        return self.db.create_transaction(
            date=date,
            from_account_id=from_account_id,
            to_account_id=to_account_id,
            amount=amount,
            from_amount=from_amount,
            to_amount=to_amount,
            note=note,
            location=location,
            project=project,
            is_starred=is_starred,
            needs_review=needs_review,
            nature=nature,
            transfer_group_id=transfer_group_id,
        )

    def post_opening_balance(
        self, account_id: int, amount: Decimal, when: datetime, note: Optional[str] = None
    ) -> int:
        """Post an opening balance from the opening-balance pseudo-account.

        The amount may be negative, as for a liability that starts in debt.
        """
        self.accounts.require_postable(account_id)
        if amount == 0:
            raise ValidationError("Opening balance amount cannot be zero")
        transaction_id = self.db.create_transaction(
            date=when,
            from_account_id=None,
            to_account_id=account_id,
            amount=amount,
            note=note,
            is_opening=True,
        )
        logger.info("Posted opening balance %s to account %s", amount, account_id)
        return transaction_id

    def get_transaction(self, transaction_id: int) -> Optional[TransactionEntity]:
        """Get transaction by ID."""
        return self.db.get_transaction(transaction_id)

    def list_transactions(
        self,
        account_id: Optional[int] = None,
        after: Optional[datetime] = None,
        until: Optional[datetime] = None,
    ) -> list[TransactionEntity]:
        """List transactions oldest first.

        Args:
            account_id: Only transactions touching this account
            after: Exclusive lower bound
            until: Inclusive upper bound
        """
        if account_id is not None and self.db.get_account(account_id) is None:
            raise NotFoundError(account_not_found(account_id))
        return self.db.list_transactions(account_id=account_id, after=after, until=until)

    def transaction_kind(self, transaction: TransactionEntity) -> TransactionKind:
        """Derive the semantic type of a stored transaction from its endpoints."""
        from_account = (
            self.db.get_account(transaction.from_account_id)
            if transaction.from_account_id is not None
            else None
        )
        to_account = self.db.get_account(transaction.to_account_id)
        if to_account is None:
            raise NotFoundError(account_not_found(transaction.to_account_id))
        return derive_transaction_kind(from_account, to_account)
