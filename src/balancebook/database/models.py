"""SQLAlchemy models for balancebook database."""

from datetime import datetime, UTC
from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    create_engine,
)
from sqlalchemy.orm import declarative_base, relationship, sessionmaker, Session

Base = declarative_base()


class Account(Base):
    """Ledger account model. Groups organize accounts and never hold postings."""

    __tablename__ = "accounts"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    account_type = Column(String, nullable=False)
    currency = Column(String, nullable=True)
    parent_id = Column(Integer, ForeignKey("accounts.id"), nullable=True)
    is_group = Column(Boolean, default=False, nullable=False)
    is_system = Column(Boolean, default=False, nullable=False)
    reconciliation_tolerance = Column(Numeric(20, 4), nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)

    # Relationships
    parent = relationship("Account", remote_side=[id], backref="children")
    snapshots = relationship("Snapshot", back_populates="account", cascade="all, delete-orphan")


class Transaction(Base):
    """Transaction model. A NULL from_account_id marks an opening-balance posting."""

    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True)
    date = Column(DateTime, nullable=False, index=True)
    from_account_id = Column(Integer, ForeignKey("accounts.id"), nullable=True, index=True)
    to_account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False, index=True)
    amount = Column(Numeric(20, 4), nullable=False)
    from_amount = Column(Numeric(20, 4), nullable=True)
    to_amount = Column(Numeric(20, 4), nullable=True)
    note = Column(String, nullable=True)
    location = Column(String, nullable=True)
    project = Column(String, nullable=True)
    is_starred = Column(Boolean, default=False, nullable=False)
    needs_review = Column(Boolean, default=False, nullable=False)
    nature = Column(String, default="regular", nullable=False)
    transfer_group_id = Column(String, nullable=True, index=True)
    is_opening = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)


class Snapshot(Base):
    """Observed account balance at one instant."""

    __tablename__ = "snapshots"

    id = Column(Integer, primary_key=True)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False, index=True)
    balance = Column(Numeric(20, 4), nullable=False)
    date = Column(DateTime, nullable=False)
    source = Column(String, default="manual", nullable=False)
    note = Column(String, nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)

    # Relationships
    account = relationship("Account", back_populates="snapshots")


class ReconciliationIssue(Base):
    """Materialized drift between two adjacent snapshots."""

    __tablename__ = "reconciliation_issues"

    id = Column(Integer, primary_key=True)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False, index=True)
    start_snapshot_id = Column(
        Integer, ForeignKey("snapshots.id", ondelete="SET NULL"), nullable=True
    )
    end_snapshot_id = Column(
        Integer, ForeignKey("snapshots.id", ondelete="SET NULL"), nullable=True
    )
    period_start = Column(DateTime, nullable=False)
    period_end = Column(DateTime, nullable=False)
    expected_delta = Column(Numeric(20, 4), nullable=False)
    actual_delta = Column(Numeric(20, 4), nullable=False)
    diff = Column(Numeric(20, 4), nullable=False)
    status = Column(String, default="open", nullable=False)
    source = Column(String, default="manual", nullable=False)
    transaction_ids = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)
    resolved_at = Column(DateTime, nullable=True)


class ImportBatch(Base):
    """Operation log of one ingestion run."""

    __tablename__ = "import_batches"

    id = Column(Integer, primary_key=True)
    filename = Column(String, nullable=True)
    status = Column(String, default="completed", nullable=False)
    total_rows = Column(Integer, default=0, nullable=False)
    valid_count = Column(Integer, default=0, nullable=False)
    duplicate_count = Column(Integer, default=0, nullable=False)
    invalid_count = Column(Integer, default=0, nullable=False)
    uploaded_count = Column(Integer, default=0, nullable=False)
    transaction_ids = Column(JSON, nullable=False, default=list)
    rows_valid_uploaded = Column(JSON, nullable=False, default=list)
    rows_valid_skipped = Column(JSON, nullable=False, default=list)
    rows_duplicate_uploaded = Column(JSON, nullable=False, default=list)
    rows_duplicate_skipped = Column(JSON, nullable=False, default=list)
    rows_error = Column(JSON, nullable=False, default=list)
    duration_ms = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)
    rolled_back_at = Column(DateTime, nullable=True)


def create_session_factory(database_url: str) -> sessionmaker[Session]:
    """Create a SQLAlchemy session factory."""
    connect_args = {}
    if database_url.startswith("sqlite"):
        # Ingestion writes from worker threads; wait on the file lock instead of failing.
        connect_args = {"check_same_thread": False, "timeout": 30}
    engine = create_engine(database_url, echo=False, connect_args=connect_args)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine)
