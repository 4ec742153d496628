"""Mapper functions to convert between domain models and SQLAlchemy models.

This layer isolates the conversion logic: enums, tuples of ids and JSON row
listings are produced here so domain code only ever sees entities.
"""

from balancebook.domain import entities as domain
from balancebook.database.models import (
    Account as ORMAccount,
    Transaction as ORMTransaction,
    Snapshot as ORMSnapshot,
    ReconciliationIssue as ORMReconciliationIssue,
    ImportBatch as ORMImportBatch,
)


def account_to_domain(orm_account: ORMAccount) -> domain.Account:
    """Convert SQLAlchemy Account model to domain Account entity."""
    return domain.Account(
        id=orm_account.id,
        name=orm_account.name,
        account_type=domain.AccountType(orm_account.account_type),
        currency=orm_account.currency,
        parent_id=orm_account.parent_id,
        is_group=bool(orm_account.is_group),
        is_system=bool(orm_account.is_system),
        reconciliation_tolerance=orm_account.reconciliation_tolerance,
        created_at=orm_account.created_at,
    )


def transaction_to_domain(orm_transaction: ORMTransaction) -> domain.Transaction:
    """Convert SQLAlchemy Transaction model to domain Transaction entity."""
    return domain.Transaction(
        id=orm_transaction.id,
        date=orm_transaction.date,
        from_account_id=orm_transaction.from_account_id,
        to_account_id=orm_transaction.to_account_id,
        amount=orm_transaction.amount,
        from_amount=orm_transaction.from_amount,
        to_amount=orm_transaction.to_amount,
        note=orm_transaction.note,
        location=orm_transaction.location,
        project=orm_transaction.project,
        is_starred=bool(orm_transaction.is_starred),
        needs_review=bool(orm_transaction.needs_review),
        nature=domain.TransactionNature(orm_transaction.nature),
        transfer_group_id=orm_transaction.transfer_group_id,
        is_opening=bool(orm_transaction.is_opening),
        created_at=orm_transaction.created_at,
    )


def snapshot_to_domain(orm_snapshot: ORMSnapshot) -> domain.Snapshot:
    """Convert SQLAlchemy Snapshot model to domain Snapshot entity."""
    return domain.Snapshot(
        id=orm_snapshot.id,
        account_id=orm_snapshot.account_id,
        balance=orm_snapshot.balance,
        date=orm_snapshot.date,
        source=domain.SnapshotSource(orm_snapshot.source),
        note=orm_snapshot.note,
        created_at=orm_snapshot.created_at,
    )


def issue_to_domain(orm_issue: ORMReconciliationIssue) -> domain.ReconciliationIssue:
    """Convert SQLAlchemy ReconciliationIssue model to domain entity."""
    return domain.ReconciliationIssue(
        id=orm_issue.id,
        account_id=orm_issue.account_id,
        start_snapshot_id=orm_issue.start_snapshot_id,
        end_snapshot_id=orm_issue.end_snapshot_id,
        period_start=orm_issue.period_start,
        period_end=orm_issue.period_end,
        expected_delta=orm_issue.expected_delta,
        actual_delta=orm_issue.actual_delta,
        diff=orm_issue.diff,
        status=domain.IssueStatus(orm_issue.status),
        source=domain.IssueSource(orm_issue.source),
        transaction_ids=tuple(orm_issue.transaction_ids or ()),
        created_at=orm_issue.created_at,
        resolved_at=orm_issue.resolved_at,
    )


def import_batch_to_domain(orm_batch: ORMImportBatch) -> domain.ImportBatch:
    """Convert SQLAlchemy ImportBatch model to domain ImportBatch entity."""
    return domain.ImportBatch(
        id=orm_batch.id,
        filename=orm_batch.filename,
        status=domain.BatchStatus(orm_batch.status),
        total_rows=orm_batch.total_rows,
        valid_count=orm_batch.valid_count,
        duplicate_count=orm_batch.duplicate_count,
        invalid_count=orm_batch.invalid_count,
        uploaded_count=orm_batch.uploaded_count,
        transaction_ids=tuple(orm_batch.transaction_ids or ()),
        rows_valid_uploaded=list(orm_batch.rows_valid_uploaded or []),
        rows_valid_skipped=list(orm_batch.rows_valid_skipped or []),
        rows_duplicate_uploaded=list(orm_batch.rows_duplicate_uploaded or []),
        rows_duplicate_skipped=list(orm_batch.rows_duplicate_skipped or []),
        rows_error=list(orm_batch.rows_error or []),
        duration_ms=orm_batch.duration_ms,
        created_at=orm_batch.created_at,
        rolled_back_at=orm_batch.rolled_back_at,
    )
