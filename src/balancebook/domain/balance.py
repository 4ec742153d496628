"""Point-in-time balance reconstruction from snapshots and postings."""

from datetime import datetime
from decimal import Decimal
from typing import Iterable, Optional

from balancebook.database.base import Database
from balancebook.domain.entities import Transaction
from balancebook.domain.errors import NotFoundError, account_not_found


def signed_sum(transactions: Iterable[Transaction], account_id: int) -> Decimal:
    """Sum the signed contributions of ``transactions`` to one account."""
    total = Decimal("0")
    for txn in transactions:
        total += txn.contribution_to(account_id)
    return total


class BalanceService:
    """Reads account balances as of any instant.

    A balance is the latest snapshot at or before the instant plus every
    posting after that snapshot and up to the instant. Without a snapshot
    the base is zero and all postings up to the instant count.
    """

    def __init__(self, db: Database):
        """Initialize balance service.

        Args:
            db: Database instance
        """
        self.db = db

    def balance_at(self, account_id: int, instant: Optional[datetime] = None) -> Decimal:
        """Return the balance of ``account_id`` as of ``instant``.

        Args:
            account_id: Account ID
            instant: Point in time; defaults to now

        Returns:
            Balance as a Decimal

        Raises:
            NotFoundError: If the account does not exist
        """
        if self.db.get_account(account_id) is None:
            raise NotFoundError(account_not_found(account_id))
        if instant is None:
            instant = datetime.now()

        base = self.db.latest_snapshot_at_or_before(account_id, instant)
        base_amount = base.balance if base is not None else Decimal("0")
        after = base.date if base is not None else None

        delta, _ = self.segment(account_id, after, instant)
        return base_amount + delta

    def ledger_balance(self, account_id: int, instant: Optional[datetime] = None) -> Decimal:
        """Sum of every posting up to ``instant``, ignoring snapshots."""
        if self.db.get_account(account_id) is None:
            raise NotFoundError(account_not_found(account_id))
        if instant is None:
            instant = datetime.now()
        delta, _ = self.segment(account_id, None, instant)
        return delta

    def segment(
        self, account_id: int, after: Optional[datetime], until: datetime
    ) -> tuple[Decimal, list[int]]:
        """Signed sum and IDs of the postings in ``(after, until]``."""
        transactions = self.db.list_transactions(account_id=account_id, after=after, until=until)
        return signed_sum(transactions, account_id), [txn.id for txn in transactions]
