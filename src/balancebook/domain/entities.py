"""Domain model entities for balancebook.

These are pure data classes representing ledger concepts, independent of
the database schema. Mappers in ``balancebook.database.mappers`` convert ORM
rows into these entities so business logic never touches SQLAlchemy objects.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional, Union


class AccountClass(str, Enum):
    """Real accounts hold money; nominal accounts only categorize it."""

    REAL = "real"
    NOMINAL = "nominal"


class AccountType(str, Enum):
    """Account type. The class follows from the type."""

    ASSET = "asset"
    LIABILITY = "liability"
    INCOME = "income"
    EXPENSE = "expense"
    EQUITY = "equity"

    @property
    def account_class(self) -> AccountClass:
        if self in (AccountType.ASSET, AccountType.LIABILITY):
            return AccountClass.REAL
        return AccountClass.NOMINAL


class TransactionKind(str, Enum):
    """Semantic transaction type, derived from the endpoint accounts."""

    EXPENSE = "expense"
    INCOME = "income"
    TRANSFER = "transfer"
    OPENING = "opening"


class TransactionNature(str, Enum):
    """Free classification of why a transaction happened."""

    REGULAR = "regular"
    UNEXPECTED = "unexpected"
    PERIODIC = "periodic"


class SnapshotSource(str, Enum):
    """Provenance of an observed balance."""

    MANUAL = "manual"
    AUTO = "auto"


class IssueStatus(str, Enum):
    OPEN = "open"
    RESOLVED = "resolved"
    IGNORED = "ignored"


class IssueSource(str, Enum):
    """What triggered the reconciliation run that produced an issue."""

    MANUAL = "manual"
    SNAPSHOT = "snapshot"


class BatchStatus(str, Enum):
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    ROLLED_BACK = "rolled_back"


@dataclass(frozen=True)
class RealAccount:
    """Reference to a stored, postable account."""

    account_id: int


@dataclass(frozen=True)
class OpeningBalance:
    """Synthetic counterparty of opening-balance postings.

    It has no row in the accounts table and can never be posted to directly.
    """


OPENING_BALANCE = OpeningBalance()

AccountRef = Union[RealAccount, OpeningBalance]


@dataclass(frozen=True)
class Account:
    """Ledger account domain entity."""

    id: int
    name: str
    account_type: AccountType
    currency: Optional[str]
    parent_id: Optional[int]
    is_group: bool
    is_system: bool
    reconciliation_tolerance: Optional[Decimal]
    created_at: datetime

    @property
    def account_class(self) -> AccountClass:
        return self.account_type.account_class

    @property
    def is_real(self) -> bool:
        return self.account_class is AccountClass.REAL

    @property
    def is_leaf(self) -> bool:
        return not self.is_group


@dataclass(frozen=True)
class Transaction:
    """Transaction domain entity.

    A posting moves ``amount`` from ``from_account_id`` to ``to_account_id``.
    ``from_account_id`` is ``None`` only for opening-balance postings.
    """

    id: int
    date: datetime
    from_account_id: Optional[int]
    to_account_id: int
    amount: Decimal
    from_amount: Optional[Decimal] = None
    to_amount: Optional[Decimal] = None
    note: Optional[str] = None
    location: Optional[str] = None
    project: Optional[str] = None
    is_starred: bool = False
    needs_review: bool = False
    nature: TransactionNature = TransactionNature.REGULAR
    transfer_group_id: Optional[str] = None
    is_opening: bool = False
    created_at: Optional[datetime] = None

    @property
    def from_ref(self) -> AccountRef:
        if self.from_account_id is None:
            return OPENING_BALANCE
        return RealAccount(self.from_account_id)

    @property
    def to_ref(self) -> AccountRef:
        return RealAccount(self.to_account_id)

    def touches(self, account_id: int) -> bool:
        return account_id in (self.from_account_id, self.to_account_id)

    def contribution_to(self, account_id: int) -> Decimal:
        """Signed effect of this posting on ``account_id``'s balance.

        The to-side gains ``to_amount`` (or ``amount``), the from-side loses
        ``from_amount`` (or ``amount``).
        """
        delta = Decimal("0")
        if self.to_account_id == account_id:
            delta += self.to_amount if self.to_amount is not None else self.amount
        if self.from_account_id == account_id:
            delta -= self.from_amount if self.from_amount is not None else self.amount
        return delta


def derive_transaction_kind(
    from_account: Optional[Account], to_account: Account
) -> TransactionKind:
    """Infer the semantic type of a posting from its endpoint accounts.

    ``from_account`` is ``None`` when the posting comes from the opening
    balance pseudo-account.
    """
    if from_account is None:
        return TransactionKind.OPENING
    if to_account.account_type is AccountType.EXPENSE:
        return TransactionKind.EXPENSE
    if from_account.account_type is AccountType.INCOME:
        return TransactionKind.INCOME
    return TransactionKind.TRANSFER


@dataclass(frozen=True)
class Snapshot:
    """Observed balance of one account at one instant."""

    id: int
    account_id: int
    balance: Decimal
    date: datetime
    source: SnapshotSource
    note: Optional[str]
    created_at: datetime


@dataclass(frozen=True)
class ReconciliationIssue:
    """Drift between two adjacent snapshots and the postings between them."""

    id: int
    account_id: int
    start_snapshot_id: Optional[int]
    end_snapshot_id: Optional[int]
    period_start: datetime
    period_end: datetime
    expected_delta: Decimal
    actual_delta: Decimal
    diff: Decimal
    status: IssueStatus
    source: IssueSource
    transaction_ids: tuple[int, ...]
    created_at: datetime
    resolved_at: Optional[datetime] = None


@dataclass(frozen=True)
class ImportBatch:
    """Write-once record of one ingestion run."""

    id: int
    filename: Optional[str]
    status: BatchStatus
    total_rows: int
    valid_count: int
    duplicate_count: int
    invalid_count: int
    uploaded_count: int
    transaction_ids: tuple[int, ...]
    rows_valid_uploaded: list[dict[str, Any]] = field(default_factory=list)
    rows_valid_skipped: list[dict[str, Any]] = field(default_factory=list)
    rows_duplicate_uploaded: list[dict[str, Any]] = field(default_factory=list)
    rows_duplicate_skipped: list[dict[str, Any]] = field(default_factory=list)
    rows_error: list[dict[str, Any]] = field(default_factory=list)
    duration_ms: Optional[int] = None
    created_at: Optional[datetime] = None
    rolled_back_at: Optional[datetime] = None
