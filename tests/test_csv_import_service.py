"""Tests for ImportService."""

import csv
import threading
import pytest
from datetime import datetime
from decimal import Decimal

from balancebook.domain.duplicates import MatchSource
from balancebook.domain.entities import BatchStatus
from balancebook.domain.errors import ConflictError, NotFoundError, ValidationError


@pytest.fixture
def sample_file(fixtures_dir):
    return str(fixtures_dir / "sample_import.csv")


class TestPrepare:
    """Tests for reading and classifying a file."""

    def test_prepare_sample_file(self, import_service, sample_accounts, sample_file):
        prepared = import_service.prepare(sample_file)

        assert prepared.filename == "sample_import.csv"
        assert prepared.total_rows == 7
        assert [c.row for c in prepared.valid] == [2, 3, 4]
        assert sorted(d.row for d in prepared.duplicates) == [5, 6]
        assert [r.row for r in prepared.invalid] == [7, 8]

    def test_prepare_writes_nothing(self, import_service, temp_db, sample_accounts, sample_file):
        import_service.prepare(sample_file)

        assert temp_db.list_transactions() == []
        assert temp_db.list_import_batches() == []

    def test_prepare_marks_ledger_duplicates(self, import_service, sample_accounts, post, write_csv):
        post(sample_accounts["Wallet"], sample_accounts["Food"], "12", datetime(2024, 5, 1))
        path = write_csv([["2024-05-01", "expense", "Wallet", "12", "Food", "again"]])

        prepared = import_service.prepare(str(path))

        assert prepared.valid == []
        assert prepared.duplicates[0].matched_with is MatchSource.DATABASE

    def test_semicolon_delimiter(self, import_service, sample_accounts, tmp_path):
        path = tmp_path / "semi.csv"
        path.write_text(
            "Date;Type;From Account;Amount;To Account\n2024-05-01;expense;Wallet;12;Food\n",
            encoding="utf-8",
        )

        prepared = import_service.prepare(str(path))

        assert len(prepared.valid) == 1

    def test_missing_columns(self, import_service, sample_accounts, write_csv):
        path = write_csv([["2024-05-01", "12"]], header=["Date", "Amount"])

        with pytest.raises(ValidationError, match="missing required columns"):
            import_service.prepare(str(path))

    def test_missing_file(self, import_service):
        with pytest.raises(FileNotFoundError):
            import_service.prepare("/nonexistent/file.csv")


class TestCommit:
    """Tests for committing a prepared import."""

    def test_commit_valid_rows(self, import_service, balance_service, sample_accounts, sample_file):
        prepared = import_service.prepare(sample_file)

        result = import_service.commit(prepared)

        batch = result.batch
        assert batch.status is BatchStatus.COMPLETED
        assert batch.total_rows == 7
        assert (batch.valid_count, batch.duplicate_count, batch.invalid_count) == (3, 2, 2)
        # The transfer row produces two postings
        assert batch.uploaded_count == 4
        assert len(batch.transaction_ids) == 4
        assert [r["row"] for r in batch.rows_valid_uploaded] == [2, 3, 4]
        assert batch.rows_valid_skipped == []
        assert sorted(r["row"] for r in batch.rows_duplicate_skipped) == [5, 6]
        assert batch.rows_duplicate_uploaded == []
        assert len(batch.rows_error) == 2
        assert "Account 'Nowhere' not found" in batch.rows_error[0]["message"]

        when = datetime(2024, 3, 31)
        assert balance_service.balance_at(sample_accounts["Wallet"], when) == Decimal("464.50")
        assert balance_service.balance_at(sample_accounts["Bank"], when) == Decimal("7500")

    def test_commit_keeps_optional_fields(self, import_service, temp_db, sample_accounts, sample_file):
        result = import_service.commit(import_service.prepare(sample_file))

        lunch = next(
            t for t in map(temp_db.get_transaction, result.batch.transaction_ids) if t.note == "Lunch"
        )
        assert lunch.date == datetime(2024, 3, 1, 12, 30)
        assert lunch.location == "Canteen"
        assert lunch.is_starred is True

    def test_commit_selected_duplicates(self, import_service, sample_accounts, sample_file):
        prepared = import_service.prepare(sample_file)

        result = import_service.commit(prepared, include_duplicates=[6], exclude_rows=[2])

        batch = result.batch
        assert [r["row"] for r in batch.rows_valid_uploaded] == [3, 4]
        assert [r["row"] for r in batch.rows_valid_skipped] == [2]
        assert [r["row"] for r in batch.rows_duplicate_uploaded] == [6]
        assert [r["row"] for r in batch.rows_duplicate_skipped] == [5]
        assert batch.uploaded_count == 4

    def test_cancelled_before_start(self, import_service, sample_accounts, sample_file):
        prepared = import_service.prepare(sample_file)
        cancel = threading.Event()
        cancel.set()

        result = import_service.commit(prepared, cancel_event=cancel)

        assert result.batch.status is BatchStatus.CANCELLED
        assert result.nothing_committed
        assert [r["row"] for r in result.batch.rows_valid_skipped] == [2, 3, 4]

    def test_batches_are_listed_newest_first(self, import_service, sample_accounts, sample_file):
        first = import_service.commit(import_service.prepare(sample_file)).batch
        second = import_service.commit(import_service.prepare(sample_file)).batch

        assert [b.id for b in import_service.list_batches()] == [second.id, first.id]

    def test_get_unknown_batch(self, import_service):
        with pytest.raises(NotFoundError):
            import_service.get_batch(123)


class TestRollback:
    """Tests for rolling back a batch."""

    def test_rollback_deletes_batch_transactions(self, import_service, temp_db, sample_accounts, sample_file):
        batch = import_service.commit(import_service.prepare(sample_file)).batch

        result = import_service.rollback(batch.id)

        assert result.deleted_count == 4
        assert result.skipped_count == 0
        assert temp_db.list_transactions() == []
        assert import_service.get_batch(batch.id).status is BatchStatus.ROLLED_BACK

    def test_rollback_counts_already_deleted(self, import_service, temp_db, sample_accounts, sample_file):
        batch = import_service.commit(import_service.prepare(sample_file)).batch
        temp_db.delete_transactions([batch.transaction_ids[0]])

        result = import_service.rollback(batch.id)

        assert result.deleted_count == 3
        assert result.skipped_count == 1

    def test_rollback_twice(self, import_service, sample_accounts, sample_file):
        batch = import_service.commit(import_service.prepare(sample_file)).batch
        import_service.rollback(batch.id)

        with pytest.raises(ConflictError):
            import_service.rollback(batch.id)

    def test_rollback_leaves_other_transactions(self, import_service, temp_db, sample_accounts, sample_file, post):
        keep = post(sample_accounts["Salary"], sample_accounts["Bank"], "1", datetime(2020, 1, 1))
        batch = import_service.commit(import_service.prepare(sample_file)).batch

        import_service.rollback(batch.id)

        assert [t.id for t in temp_db.list_transactions()] == [keep]


def test_problem_rows_report(import_service, sample_accounts, sample_file, tmp_path):
    prepared = import_service.prepare(sample_file)
    problems = import_service.problem_rows(prepared)
    output = tmp_path / "problems.csv"

    import_service.write_problem_rows(problems, str(output))

    with open(output, encoding="utf-8-sig", newline="") as f:
        written = list(csv.DictReader(f))
    assert [(r["row"], r["problem"]) for r in written] == [
        ("5", "duplicate"),
        ("6", "duplicate"),
        ("7", "invalid"),
        ("8", "invalid"),
    ]
    assert written[2]["From Account"] == "Nowhere"
    assert "not found" in written[2]["details"]
