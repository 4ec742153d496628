"""Tests for database mappers."""

from datetime import datetime, UTC
from decimal import Decimal

from balancebook.database.models import (
    Account as ORMAccount,
    Transaction as ORMTransaction,
    Snapshot as ORMSnapshot,
    ReconciliationIssue as ORMReconciliationIssue,
    ImportBatch as ORMImportBatch,
)
from balancebook.database.mappers import (
    account_to_domain,
    transaction_to_domain,
    snapshot_to_domain,
    issue_to_domain,
    import_batch_to_domain,
)
from balancebook.domain.entities import (
    Account,
    AccountType,
    BatchStatus,
    IssueSource,
    IssueStatus,
    SnapshotSource,
    Transaction,
    TransactionNature,
)


class TestAccountMapper:
    """Tests for Account mapper."""

    def test_account_to_domain(self):
        """Test converting ORM Account to domain Account."""
        orm_account = ORMAccount(
            id=1,
            name="Visa",
            account_type="liability",
            currency="CNY",
            parent_id=4,
            is_group=False,
            is_system=False,
            reconciliation_tolerance=Decimal("0.5"),
            created_at=datetime.now(UTC),
        )
        domain_account = account_to_domain(orm_account)

        assert isinstance(domain_account, Account)
        assert domain_account.account_type is AccountType.LIABILITY
        assert domain_account.parent_id == 4
        assert domain_account.reconciliation_tolerance == Decimal("0.5")
        assert domain_account.created_at == orm_account.created_at


class TestTransactionMapper:
    """Tests for Transaction mapper."""

    def test_transaction_to_domain(self):
        """Test converting ORM Transaction to domain Transaction."""
        orm_txn = ORMTransaction(
            id=1,
            date=datetime(2024, 1, 15, 8, 0),
            from_account_id=None,
            to_account_id=2,
            amount=Decimal("-50.00"),
            nature="periodic",
            is_starred=1,
            needs_review=0,
            is_opening=True,
            created_at=datetime.now(UTC),
        )
        domain_txn = transaction_to_domain(orm_txn)

        assert isinstance(domain_txn, Transaction)
        assert domain_txn.from_account_id is None
        assert domain_txn.amount == Decimal("-50.00")
        assert domain_txn.nature is TransactionNature.PERIODIC
        assert domain_txn.is_starred is True
        assert domain_txn.needs_review is False
        assert domain_txn.is_opening is True


class TestSnapshotMapper:
    """Tests for Snapshot mapper."""

    def test_snapshot_to_domain(self):
        orm_snapshot = ORMSnapshot(
            id=3,
            account_id=1,
            balance=Decimal("100"),
            date=datetime(2024, 1, 1),
            source="auto",
            note=None,
            created_at=datetime.now(UTC),
        )
        snapshot = snapshot_to_domain(orm_snapshot)

        assert snapshot.source is SnapshotSource.AUTO
        assert snapshot.balance == Decimal("100")


class TestIssueMapper:
    """Tests for ReconciliationIssue mapper."""

    def test_issue_to_domain(self):
        orm_issue = ORMReconciliationIssue(
            id=1,
            account_id=1,
            start_snapshot_id=None,
            end_snapshot_id=2,
            period_start=datetime(2024, 1, 1),
            period_end=datetime(2024, 1, 2),
            expected_delta=Decimal("10"),
            actual_delta=Decimal("8"),
            diff=Decimal("-2"),
            status="ignored",
            source="snapshot",
            transaction_ids=[5, 6],
            created_at=datetime.now(UTC),
        )
        issue = issue_to_domain(orm_issue)

        assert issue.status is IssueStatus.IGNORED
        assert issue.source is IssueSource.SNAPSHOT
        assert issue.transaction_ids == (5, 6)
        assert issue.start_snapshot_id is None
        assert issue.resolved_at is None


class TestImportBatchMapper:
    """Tests for ImportBatch mapper."""

    def test_import_batch_to_domain(self):
        orm_batch = ORMImportBatch(
            id=1,
            filename="a.csv",
            status="cancelled",
            total_rows=10,
            valid_count=8,
            duplicate_count=1,
            invalid_count=1,
            uploaded_count=4,
            transaction_ids=[1, 2, 3, 4],
            rows_valid_uploaded=[{"row": 2}],
            rows_valid_skipped=None,
            created_at=datetime.now(UTC),
        )
        batch = import_batch_to_domain(orm_batch)

        assert batch.status is BatchStatus.CANCELLED
        assert batch.transaction_ids == (1, 2, 3, 4)
        assert batch.rows_valid_uploaded == [{"row": 2}]
        assert batch.rows_valid_skipped == []
        assert batch.rows_error == []
