"""Snapshot reconciliation.

Adjacent snapshots of an account bound a segment. The postings inside a
segment must move the balance by exactly the difference between the two
snapshots; any larger drift is recorded as an open reconciliation issue.
Issues are derived state: every run replaces the account's open issues.
"""

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Iterable, Optional

from balancebook.database.base import Database
from balancebook.domain.balance import BalanceService
from balancebook.domain.cache import LedgerCache
from balancebook.domain.entities import (
    IssueSource,
    IssueStatus,
    ReconciliationIssue,
    Snapshot,
)
from balancebook.domain.errors import (
    NotFoundError,
    ValidationError,
    account_not_found,
    issue_not_found,
)

logger = logging.getLogger(__name__)

INSUFFICIENT_SNAPSHOTS_MESSAGE = "Insufficient calibration points: at least two snapshots are required"
INVALID_WINDOW_MESSAGE = "Start date cannot be later than end date"


class ReconciliationStatus(str, Enum):
    CHECKED = "checked"
    INSUFFICIENT_SNAPSHOTS = "insufficient_snapshots"
    INVALID_WINDOW = "invalid_window"


@dataclass(frozen=True)
class SegmentCheck:
    """Comparison of one adjacent snapshot pair."""

    start: Snapshot
    end: Snapshot
    expected_delta: Decimal
    actual_delta: Decimal
    diff: Decimal
    transaction_ids: tuple[int, ...]
    within_tolerance: bool


@dataclass(frozen=True)
class ReconciliationResult:
    """Outcome of reconciling one account."""

    account_id: int
    status: ReconciliationStatus
    issues_found: int = 0
    issue_ids: tuple[int, ...] = ()
    segments: tuple[SegmentCheck, ...] = ()
    message: Optional[str] = None

    @property
    def checked(self) -> bool:
        return self.status is ReconciliationStatus.CHECKED


class CalibrationState(str, Enum):
    NO_CALIBRATION = "no_calibration"
    CONSISTENT = "consistent"
    HAS_DIFFERENCE = "has_difference"


@dataclass(frozen=True)
class AccountReconciliationStatus:
    """Latest snapshot of an account next to its ledger balance."""

    account_id: int
    state: CalibrationState
    ledger_balance: Decimal
    snapshot_balance: Optional[Decimal] = None
    diff: Optional[Decimal] = None
    snapshot_date: Optional[datetime] = None


@dataclass
class BatchReconciliationResult:
    """Aggregate outcome of reconciling several accounts."""

    results: list[ReconciliationResult] = field(default_factory=list)
    failures: dict[int, str] = field(default_factory=dict)

    @property
    def checked_accounts(self) -> int:
        return sum(1 for r in self.results if r.checked)

    @property
    def total_issues_found(self) -> int:
        return sum(r.issues_found for r in self.results)

    @property
    def insufficient_accounts(self) -> list[int]:
        return [
            r.account_id
            for r in self.results
            if r.status is ReconciliationStatus.INSUFFICIENT_SNAPSHOTS
        ]


def scope_snapshots(
    snapshots: list[Snapshot], start: datetime, end: datetime
) -> list[Snapshot]:
    """Snapshots inside ``[start, end]`` plus the nearest one on either side.

    ``snapshots`` must be sorted by date.
    """
    before: Optional[Snapshot] = None
    inside: list[Snapshot] = []
    after: Optional[Snapshot] = None
    for snap in snapshots:
        if snap.date < start:
            before = snap
        elif snap.date <= end:
            inside.append(snap)
        elif after is None:
            after = snap

    scoped = inside
    if before is not None:
        scoped = [before] + scoped
    if after is not None:
        scoped = scoped + [after]
    return scoped


class ReconciliationService:
    """Regenerates reconciliation issues from snapshots and postings."""

    def __init__(self, db: Database, cache: Optional[LedgerCache] = None):
        """Initialize reconciliation service.

        Args:
            db: Database instance
            cache: Shared ledger cache; a private one is created if omitted
        """
        self.db = db
        self.cache = cache or LedgerCache(db)
        self.balances = BalanceService(db)

    def _quantize(self, value: Decimal) -> Decimal:
        exponent = Decimal(1).scaleb(-self.cache.decimal_places)
        return value.quantize(exponent, rounding=ROUND_HALF_UP)

    def check_segment(
        self, account_id: int, start: Snapshot, end: Snapshot, tolerance: Decimal
    ) -> SegmentCheck:
        """Compare the postings between two snapshots with their balance delta."""
        actual_delta, transaction_ids = self.balances.segment(account_id, start.date, end.date)
        expected_delta = Decimal(end.balance) - Decimal(start.balance)
        diff = self._quantize(actual_delta - expected_delta)
        return SegmentCheck(
            start=start,
            end=end,
            expected_delta=expected_delta,
            actual_delta=actual_delta,
            diff=diff,
            transaction_ids=tuple(transaction_ids),
            within_tolerance=abs(diff) <= tolerance,
        )

    def reconcile(
        self,
        account_id: int,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        source: IssueSource = IssueSource.MANUAL,
    ) -> ReconciliationResult:
        """Regenerate the open reconciliation issues of one account.

        Args:
            account_id: Account to reconcile
            start: Window start; defaults to the first snapshot's date
            end: Window end; defaults to the last snapshot's date
            source: What triggered the run

        Returns:
            ReconciliationResult. Too few snapshots or a reversed window are
            reported through the result status and leave the issues untouched.

        Raises:
            NotFoundError: If the account does not exist
        """
        if self.cache.account(account_id) is None and self.db.get_account(account_id) is None:
            raise NotFoundError(account_not_found(account_id))

        snapshots = self.db.list_snapshots(account_id)
        if len(snapshots) < 2:
            logger.info("Account %s has %d snapshot(s); skipping reconciliation", account_id, len(snapshots))
            return ReconciliationResult(
                account_id=account_id,
                status=ReconciliationStatus.INSUFFICIENT_SNAPSHOTS,
                message=INSUFFICIENT_SNAPSHOTS_MESSAGE,
            )

        window_start = start if start is not None else snapshots[0].date
        window_end = end if end is not None else snapshots[-1].date
        if window_start > window_end:
            return ReconciliationResult(
                account_id=account_id,
                status=ReconciliationStatus.INVALID_WINDOW,
                message=INVALID_WINDOW_MESSAGE,
            )

        scoped = scope_snapshots(snapshots, window_start, window_end)
        tolerance = self.cache.tolerance_for(account_id)

        checks: list[SegmentCheck] = []
        for left, right in zip(scoped, scoped[1:]):
            check = self.check_segment(account_id, left, right, tolerance)
            logger.debug(
                "Account %s segment %s -> %s: expected %s, actual %s, diff %s",
                account_id,
                left.date,
                right.date,
                check.expected_delta,
                check.actual_delta,
                check.diff,
            )
            checks.append(check)

        payload = [
            {
                "start_snapshot_id": check.start.id,
                "end_snapshot_id": check.end.id,
                "period_start": check.start.date,
                "period_end": check.end.date,
                "expected_delta": check.expected_delta,
                "actual_delta": check.actual_delta,
                "diff": check.diff,
                "status": IssueStatus.OPEN,
                "source": source,
                "transaction_ids": list(check.transaction_ids),
            }
            for check in checks
            if not check.within_tolerance
        ]
        issue_ids = self.db.replace_open_issues(account_id, payload)

        logger.info(
            "Reconciled account %s: %d segment(s), %d issue(s)",
            account_id,
            len(checks),
            len(issue_ids),
        )
        return ReconciliationResult(
            account_id=account_id,
            status=ReconciliationStatus.CHECKED,
            issues_found=len(issue_ids),
            issue_ids=tuple(issue_ids),
            segments=tuple(checks),
        )

    def reconcilable_account_ids(self) -> list[int]:
        """IDs of every real leaf account the user can snapshot."""
        return [
            acc.id
            for acc in self.cache.accounts()
            if acc.is_real and acc.is_leaf and not acc.is_system
        ]

    def reconcile_many(
        self,
        account_ids: Optional[Iterable[int]] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        source: IssueSource = IssueSource.MANUAL,
    ) -> BatchReconciliationResult:
        """Reconcile several accounts independently.

        A failure on one account is recorded and the run moves on.

        Args:
            account_ids: Accounts to reconcile; defaults to every real leaf account
        """
        if account_ids is None:
            account_ids = self.reconcilable_account_ids()

        batch = BatchReconciliationResult()
        for account_id in account_ids:
            try:
                batch.results.append(self.reconcile(account_id, start, end, source))
            except Exception as e:
                logger.error("Reconciliation failed for account %s: %s", account_id, e)
                batch.failures[account_id] = str(e)
        return batch

    def reconciliation_status(
        self, account_id: int, at: Optional[datetime] = None
    ) -> AccountReconciliationStatus:
        """Compare the latest snapshot of an account with its ledger balance.

        The ledger balance is the sum of all postings up to ``at`` (default
        now). The diff is ledger minus snapshot; anything beyond the account's
        tolerance is a difference. Nothing is written.

        Raises:
            NotFoundError: If the account does not exist
        """
        if at is None:
            at = datetime.now()
        ledger = self.balances.ledger_balance(account_id, at)
        latest = self.db.latest_snapshot_at_or_before(account_id, at)
        if latest is None:
            return AccountReconciliationStatus(
                account_id=account_id,
                state=CalibrationState.NO_CALIBRATION,
                ledger_balance=ledger,
            )

        snapshot_balance = Decimal(latest.balance)
        diff = self._quantize(ledger - snapshot_balance)
        if abs(diff) <= self.cache.tolerance_for(account_id):
            state = CalibrationState.CONSISTENT
        else:
            state = CalibrationState.HAS_DIFFERENCE
        return AccountReconciliationStatus(
            account_id=account_id,
            state=state,
            ledger_balance=ledger,
            snapshot_balance=snapshot_balance,
            diff=diff,
            snapshot_date=latest.date,
        )

    def list_issues(
        self,
        status: Optional[IssueStatus] = None,
        account_id: Optional[int] = None,
    ) -> list[ReconciliationIssue]:
        """List reconciliation issues, optionally by status and account."""
        return self.db.list_issues(status=status, account_id=account_id)

    def resolve_issue(self, issue_id: int) -> None:
        """Mark an issue resolved. Resolved issues survive regeneration."""
        self._close_issue(issue_id, IssueStatus.RESOLVED)

    def ignore_issue(self, issue_id: int) -> None:
        """Mark an issue ignored. Ignored issues survive regeneration."""
        self._close_issue(issue_id, IssueStatus.IGNORED)

    def _close_issue(self, issue_id: int, status: IssueStatus) -> None:
        issue = self.db.get_issue(issue_id)
        if issue is None:
            raise NotFoundError(issue_not_found(issue_id))
        if issue.status is not IssueStatus.OPEN:
            raise ValidationError(f"Reconciliation issue {issue_id} is already {issue.status.value}")
        self.db.update_issue_status(issue_id, status, resolved_at=datetime.now(UTC).replace(tzinfo=None))
