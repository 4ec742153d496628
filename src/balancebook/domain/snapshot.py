"""Snapshot domain service."""

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional

from balancebook.database.base import Database
from balancebook.domain.balance import BalanceService
from balancebook.domain.cache import LedgerCache
from balancebook.domain.entities import IssueSource, Snapshot, SnapshotSource
from balancebook.domain.errors import NotFoundError, ValidationError, account_not_found
from balancebook.domain.reconciliation import ReconciliationResult, ReconciliationService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SnapshotOutcome:
    """A written snapshot and, when requested, the reconciliation it triggered."""

    snapshot: Snapshot
    reconciliation: Optional[ReconciliationResult] = None


class SnapshotService:
    """Service for recording observed account balances."""

    def __init__(self, db: Database, cache: Optional[LedgerCache] = None):
        """Initialize snapshot service.

        Args:
            db: Database instance
            cache: Shared ledger cache
        """
        self.db = db
        self.cache = cache or LedgerCache(db)
        self.balances = BalanceService(db)
        self.reconciliation = ReconciliationService(db, self.cache)

    def _require_snapshot_account(self, account_id: int) -> None:
        account = self.db.get_account(account_id)
        if account is None:
            raise NotFoundError(account_not_found(account_id))
        if account.is_group:
            raise ValidationError(f"Account '{account.name}' is a group account and has no balance of its own")
        if not account.is_real:
            raise ValidationError(f"Account '{account.name}' is a nominal account and cannot be snapshotted")

    def create_snapshot(
        self,
        account_id: int,
        balance: Decimal,
        when: Optional[datetime] = None,
        source: SnapshotSource = SnapshotSource.MANUAL,
        note: Optional[str] = None,
        reconcile: bool = False,
    ) -> SnapshotOutcome:
        """Record an observed balance.

        A snapshot already recorded on the same calendar day is overwritten.

        Args:
            account_id: Real leaf account
            balance: Observed balance
            when: Observation instant; defaults to now
            source: manual or auto
            note: Optional note
            reconcile: Re-run reconciliation for the account afterwards

        Returns:
            SnapshotOutcome with the stored snapshot

        Raises:
            NotFoundError: If the account does not exist
            ValidationError: If the account cannot hold a snapshot
        """
        self._require_snapshot_account(account_id)
        if when is None:
            when = datetime.now().replace(microsecond=0)

        snapshot_id = self.db.upsert_daily_snapshot(
            account_id=account_id,
            balance=balance,
            when=when,
            source=source,
            note=note,
        )
        logger.info("Recorded %s snapshot %s for account %s: %s", source.value, snapshot_id, account_id, balance)
        snapshot = self.db.get_snapshot(snapshot_id)

        result = None
        if reconcile:
            result = self.reconciliation.reconcile(account_id, source=IssueSource.SNAPSHOT)
        return SnapshotOutcome(snapshot=snapshot, reconciliation=result)

    def list_snapshots(self, account_id: int) -> list[Snapshot]:
        """List an account's snapshots, oldest first."""
        if self.db.get_account(account_id) is None:
            raise NotFoundError(account_not_found(account_id))
        return self.db.list_snapshots(account_id)

    def calibrate_from_ledger(
        self, account_id: int, when: Optional[datetime] = None, note: Optional[str] = None
    ) -> SnapshotOutcome:
        """Record an automatic snapshot equal to the ledger balance at ``when``."""
        self._require_snapshot_account(account_id)
        if when is None:
            when = datetime.now().replace(microsecond=0)
        balance = self.balances.balance_at(account_id, when)
        return self.create_snapshot(
            account_id,
            balance,
            when=when,
            source=SnapshotSource.AUTO,
            note=note,
        )
