"""Read-through cache of accounts and ledger settings."""

import threading
from decimal import Decimal
from typing import Optional

from balancebook.config import LedgerConfig
from balancebook.database.base import Database
from balancebook.domain.entities import Account
from balancebook.utils.account_resolver import AccountDirectory


class LedgerCache:
    """Accounts and settings shared by one unit of work.

    Services receive the cache explicitly. It loads accounts once on first
    use; call ``invalidate`` after creating or changing accounts.
    """

    def __init__(self, db: Database, config: Optional[LedgerConfig] = None):
        self.db = db
        self.config = config or LedgerConfig()
        self._lock = threading.Lock()
        self._accounts: Optional[dict[int, Account]] = None
        self._directory: Optional[AccountDirectory] = None

    def _load(self) -> tuple[dict[int, Account], AccountDirectory]:
        with self._lock:
            if self._accounts is None or self._directory is None:
                accounts = self.db.list_accounts()
                self._accounts = {acc.id: acc for acc in accounts}
                self._directory = AccountDirectory(accounts)
            return self._accounts, self._directory

    def invalidate(self) -> None:
        with self._lock:
            self._accounts = None
            self._directory = None

    def accounts(self) -> list[Account]:
        accounts, _ = self._load()
        return list(accounts.values())

    def account(self, account_id: int) -> Optional[Account]:
        accounts, _ = self._load()
        return accounts.get(account_id)

    def directory(self) -> AccountDirectory:
        _, directory = self._load()
        return directory

    def tolerance_for(self, account_id: int) -> Decimal:
        """Account-level reconciliation tolerance, else the configured default."""
        account = self.account(account_id)
        if account is not None and account.reconciliation_tolerance is not None:
            return Decimal(account.reconciliation_tolerance)
        return Decimal(self.config.reconciliation.tolerance)

    @property
    def decimal_places(self) -> int:
        return self.config.reconciliation.decimal_places
