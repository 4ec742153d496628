"""Account domain service."""

import logging
from decimal import Decimal
from typing import Optional

from balancebook.database.base import Database
from balancebook.domain.entities import Account as AccountEntity, AccountType
from balancebook.domain.errors import (
    ConflictError,
    NotFoundError,
    ValidationError,
    account_not_found,
    group_account_posting,
)

logger = logging.getLogger(__name__)


class AccountService:
    """Service for managing accounts."""

    def __init__(self, db: Database):
        """Initialize account service.

        Args:
            db: Database instance
        """
        self.db = db

    def create_account(
        self,
        name: str,
        account_type: AccountType | str,
        currency: Optional[str] = None,
        parent_id: Optional[int] = None,
        is_group: bool = False,
        reconciliation_tolerance: Optional[Decimal] = None,
    ) -> int:
        """Create a new account.

        Args:
            name: Account name
            account_type: asset, liability, income, expense or equity
            currency: Optional ISO currency code
            parent_id: Optional parent group account ID
            is_group: Create a group account that only organizes children
            reconciliation_tolerance: Optional per-account reconciliation tolerance

        Returns:
            Account ID

        Raises:
            ValidationError: If the name, type, parent or tolerance is invalid
            ConflictError: If a sibling account with the same name exists
        """
        name = (name or "").strip()
        if not name:
            raise ValidationError("Account name cannot be empty")

        try:
            account_type = AccountType(account_type)
        except ValueError:
            valid = ", ".join(t.value for t in AccountType)
            raise ValidationError(f"Invalid account type '{account_type}'. Must be one of: {valid}")

        if reconciliation_tolerance is not None and reconciliation_tolerance < 0:
            raise ValidationError("Reconciliation tolerance cannot be negative")

        if parent_id is not None:
            parent = self.db.get_account(parent_id)
            if parent is None:
                raise NotFoundError(account_not_found(parent_id))
            if not parent.is_group:
                raise ValidationError(f"Parent account '{parent.name}' is not a group account")
            if parent.account_type is not account_type:
                raise ValidationError(
                    f"Account type '{account_type.value}' does not match parent type "
                    f"'{parent.account_type.value}'"
                )

        for acc in self.db.list_accounts():
            if acc.parent_id == parent_id and acc.name == name:
                raise ConflictError(f"Account with name '{name}' already exists")

        account_id = self.db.create_account(
            name=name,
            account_type=account_type,
            currency=currency.upper() if currency else None,
            parent_id=parent_id,
            is_group=is_group,
            reconciliation_tolerance=reconciliation_tolerance,
        )
        logger.info("Created %s account %s (%s)", account_type.value, account_id, name)
        return account_id

    def get_account(self, account_id: int) -> Optional[AccountEntity]:
        """Get account by ID.

        Args:
            account_id: Account ID

        Returns:
            Account entity or None if not found
        """
        return self.db.get_account(account_id)

    def list_accounts(self) -> list[AccountEntity]:
        """List all accounts.

        Returns:
            List of account entities
        """
        return self.db.list_accounts()

    def require_postable(self, account_id: int) -> AccountEntity:
        """Return the account if it can be a posting endpoint.

        Raises:
            NotFoundError: If the account does not exist
            ValidationError: If the account is a group account
        """
        account = self.db.get_account(account_id)
        if account is None:
            raise NotFoundError(account_not_found(account_id))
        if account.is_group:
            raise ValidationError(group_account_posting(account.name))
        return account

    def ensure_transfer_clearing_account(self, name: str = "Transfers in transit") -> int:
        """Return the system account that links the legs of a transfer, creating it if needed."""
        for acc in self.db.list_accounts():
            if acc.is_system and acc.name == name:
                return acc.id
        account_id = self.db.create_account(
            name=name,
            account_type=AccountType.EQUITY,
            is_system=True,
        )
        logger.info("Created transfer clearing account %s", account_id)
        return account_id
