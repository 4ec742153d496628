"""Abstract database interface."""

from abc import ABC, abstractmethod
from typing import Optional, Any, Sequence
from datetime import datetime
from decimal import Decimal

from balancebook.domain.entities import (
    Account,
    AccountType,
    ImportBatch,
    IssueStatus,
    ReconciliationIssue,
    Snapshot,
    SnapshotSource,
    Transaction,
    TransactionNature,
)


class Database(ABC):
    """Abstract database interface for balancebook."""

    @abstractmethod
    def connect(self) -> None:
        """Connect to the database."""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Disconnect from the database."""
        pass

    @abstractmethod
    def initialize_schema(self) -> None:
        """Initialize database schema (create tables)."""
        pass

    @abstractmethod
    def release_session(self) -> None:
        """Release the session bound to the calling thread."""
        pass

    # Account operations
    @abstractmethod
    def create_account(
        self,
        name: str,
        account_type: AccountType,
        currency: Optional[str] = None,
        parent_id: Optional[int] = None,
        is_group: bool = False,
        is_system: bool = False,
        reconciliation_tolerance: Optional[Decimal] = None,
    ) -> int:
        """Create a new account. Returns account ID."""
        pass

    @abstractmethod
    def get_account(self, account_id: int) -> Optional[Account]:
        """Get account by ID."""
        pass

    @abstractmethod
    def list_accounts(self) -> list[Account]:
        """List all accounts."""
        pass

    # Transaction operations
    @abstractmethod
    def create_transaction(
        self,
        date: datetime,
        from_account_id: Optional[int],
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
        is_opening: bool = False,
    ) -> int:
        """Create a transaction. Returns transaction ID."""
        pass

    @abstractmethod
    def create_transfer_pair(
        self, out_leg: dict[str, Any], in_leg: dict[str, Any]
    ) -> tuple[int, int]:
        """Create both legs of a transfer in one commit.

        Args:
            out_leg: Keyword arguments for the outgoing leg, as for create_transaction
            in_leg: Keyword arguments for the incoming leg

        Returns:
            Tuple of (out_leg_id, in_leg_id)
        """
        pass

    @abstractmethod
    def get_transaction(self, transaction_id: int) -> Optional[Transaction]:
        """Get transaction by ID."""
        pass

    @abstractmethod
    def list_transactions(
        self,
        account_id: Optional[int] = None,
        after: Optional[datetime] = None,
        until: Optional[datetime] = None,
    ) -> list[Transaction]:
        """List transactions ordered by date.

        Args:
            account_id: Only transactions with this account on either side
            after: Exclusive lower bound on the transaction date
            until: Inclusive upper bound on the transaction date
        """
        pass

    @abstractmethod
    def delete_transactions(self, transaction_ids: Sequence[int]) -> int:
        """Delete transactions by ID, ignoring IDs that no longer exist.

        Returns:
            Number of transactions actually deleted
        """
        pass

    # Snapshot operations
    @abstractmethod
    def upsert_daily_snapshot(
        self,
        account_id: int,
        balance: Decimal,
        when: datetime,
        source: SnapshotSource = SnapshotSource.MANUAL,
        note: Optional[str] = None,
    ) -> int:
        """Write the snapshot for the calendar day of ``when``.

        An existing snapshot on that day is overwritten and any surplus
        same-day rows are removed. Returns snapshot ID.
        """
        pass

    @abstractmethod
    def get_snapshot(self, snapshot_id: int) -> Optional[Snapshot]:
        """Get snapshot by ID."""
        pass

    @abstractmethod
    def list_snapshots(self, account_id: int) -> list[Snapshot]:
        """List an account's snapshots in ascending date order."""
        pass

    @abstractmethod
    def latest_snapshot_at_or_before(
        self, account_id: int, instant: datetime
    ) -> Optional[Snapshot]:
        """Get the latest snapshot dated at or before ``instant``."""
        pass

    # Reconciliation issue operations
    @abstractmethod
    def replace_open_issues(
        self, account_id: int, issues: Sequence[dict[str, Any]]
    ) -> list[int]:
        """Delete the account's open issues and insert ``issues`` in one commit.

        Returns:
            IDs of the inserted issues
        """
        pass

    @abstractmethod
    def list_issues(
        self,
        status: Optional[IssueStatus] = None,
        account_id: Optional[int] = None,
    ) -> list[ReconciliationIssue]:
        """List reconciliation issues with optional filters."""
        pass

    @abstractmethod
    def get_issue(self, issue_id: int) -> Optional[ReconciliationIssue]:
        """Get reconciliation issue by ID."""
        pass

    @abstractmethod
    def update_issue_status(
        self, issue_id: int, status: IssueStatus, resolved_at: Optional[datetime] = None
    ) -> None:
        """Update the status of a reconciliation issue."""
        pass

    # Import batch operations
    @abstractmethod
    def create_import_batch(self, **fields: Any) -> int:
        """Write one import batch record. Returns batch ID."""
        pass

    @abstractmethod
    def get_import_batch(self, batch_id: int) -> Optional[ImportBatch]:
        """Get import batch by ID."""
        pass

    @abstractmethod
    def list_import_batches(self) -> list[ImportBatch]:
        """List import batches, newest first."""
        pass

    @abstractmethod
    def mark_batch_rolled_back(self, batch_id: int, rolled_back_at: datetime) -> None:
        """Transition an import batch to rolled_back."""
        pass
