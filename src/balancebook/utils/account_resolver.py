"""Utilities for resolving account names to accounts."""

from typing import Iterable, Optional

from balancebook.domain.entities import Account
from balancebook.domain.errors import NotFoundError, account_name_not_found, account_not_found
from balancebook.utils.name_normalizer import normalize_name


class AccountDirectory:
    """Lookup of accounts by normalized name.

    Every account is reachable under its own normalized name and under the
    composite key of its parent's name followed by its own. Own names take
    precedence over composite keys; among accounts sharing a key, the
    earliest created one wins.
    """

    def __init__(self, accounts: Iterable[Account]):
        self._accounts = {acc.id: acc for acc in accounts}
        self._by_name: dict[str, Account] = {}
        self._by_composite: dict[str, Account] = {}

        for acc in sorted(self._accounts.values(), key=lambda a: a.id):
            self._by_name.setdefault(normalize_name(acc.name), acc)
            parent = self._accounts.get(acc.parent_id) if acc.parent_id else None
            if parent is not None:
                key = normalize_name(parent.name + acc.name)
                self._by_composite.setdefault(key, acc)

    def __len__(self) -> int:
        return len(self._accounts)

    def get(self, account_id: int) -> Optional[Account]:
        return self._accounts.get(account_id)

    def lookup(self, raw_name: str) -> Optional[Account]:
        """Find the account a user-typed name refers to, or None."""
        key = normalize_name(raw_name)
        if not key:
            return None
        return self._by_name.get(key) or self._by_composite.get(key)

    def accounts(self) -> list[Account]:
        return list(self._accounts.values())


def resolve_account(account_service, account: str | int) -> int:
    """Resolve account name or ID to account ID.

    Args:
        account_service: AccountService instance
        account: Account name (str) or ID (int or string representation of int)

    Returns:
        Account ID

    Raises:
        NotFoundError: If account is not found
    """
    if isinstance(account, int):
        if account_service.get_account(account) is None:
            raise NotFoundError(account_not_found(account))
        return account

    try:
        account_id = int(account)
    except (ValueError, TypeError):
        account_id = None

    if account_id is not None:
        if account_service.get_account(account_id) is None:
            raise NotFoundError(account_not_found(account_id))
        return account_id

    # Exact name first, then the normalized lookup
    accounts = account_service.list_accounts()
    for acc in accounts:
        if acc.name == account:
            return acc.id

    match = AccountDirectory(accounts).lookup(account)
    if match is not None:
        return match.id

    raise NotFoundError(account_name_not_found(account))
