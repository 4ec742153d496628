"""CSV import domain service.

Import runs in two steps. ``prepare`` reads a file, validates every row and
classifies the candidates against the ledger; nothing is written. ``commit``
then ingests the rows the operator accepted and writes one batch record.
"""

import csv
import logging
import threading
import time
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Iterable, Optional, Union

from balancebook.config import ImportConfig
from balancebook.database.base import Database
from balancebook.domain.cache import LedgerCache
from balancebook.domain.duplicates import Classification, DuplicateRow, LedgerIndex, classify
from balancebook.domain.entities import BatchStatus, ImportBatch
from balancebook.domain.errors import (
    ConflictError,
    NotFoundError,
    ValidationError,
    batch_already_rolled_back,
    batch_not_found,
)
from balancebook.domain.ingestion import IngestionCommitter, IngestionOutcome
from balancebook.domain.row_parser import CandidateRow, InvalidRow, ParsedRows, RowParser

logger = logging.getLogger(__name__)


@dataclass
class PreparedImport:
    """A parsed and classified file awaiting confirmation."""

    filename: str
    parsed: ParsedRows
    classification: Classification

    @property
    def total_rows(self) -> int:
        return self.parsed.total_rows

    @property
    def valid(self) -> list[CandidateRow]:
        return self.classification.valid

    @property
    def duplicates(self) -> list[DuplicateRow]:
        return self.classification.duplicates

    @property
    def invalid(self) -> list[InvalidRow]:
        return self.parsed.invalid


@dataclass
class ImportResult:
    """Outcome of committing a prepared import."""

    batch: ImportBatch
    outcome: IngestionOutcome

    @property
    def nothing_committed(self) -> bool:
        return not self.outcome.anything_committed


@dataclass(frozen=True)
class RollbackResult:
    batch_id: int
    deleted_count: int
    skipped_count: int


def _invalid_to_error(row: InvalidRow) -> dict[str, Any]:
    reasons = "; ".join(f"{e.field}: {e.reason}" for e in row.errors)
    return {"message": reasons, "row": row.to_record()}


class ImportService:
    """Service for importing transaction files."""

    def __init__(self, db: Database, cache: Optional[LedgerCache] = None):
        """Initialize import service.

        Args:
            db: Database instance
            cache: Shared ledger cache
        """
        self.db = db
        self.cache = cache or LedgerCache(db)
        self.config: ImportConfig = self.cache.config.imports
        self.parser = RowParser(self.config)
        self.committer = IngestionCommitter(db, self.cache)

    def read_rows(self, csv_file_path: str) -> list[dict[str, Any]]:
        """Read the rows of an import file as header-to-cell mappings.

        Raises:
            FileNotFoundError: If the file doesn't exist
            ValidationError: If the header is missing required columns
        """
        csv_path = Path(csv_file_path)
        if not csv_path.exists():
            raise FileNotFoundError(f"CSV file not found: {csv_file_path}")

        with open(csv_path, "r", encoding=self.config.encoding, newline="") as f:
            # Try to detect delimiter
            sample = f.read(4096)
            f.seek(0)
            try:
                delimiter = csv.Sniffer().sniff(sample, delimiters=",;\t|").delimiter
            except csv.Error:
                delimiter = ","

            reader = csv.DictReader(f, delimiter=delimiter)
            if reader.fieldnames is None:
                raise ValidationError("CSV file has no columns")
            reader.fieldnames = [name.strip() for name in reader.fieldnames]

            missing = [col for col in self.config.columns.required if col not in reader.fieldnames]
            if missing:
                raise ValidationError(f"CSV file missing required columns: {', '.join(missing)}")

            return list(reader)

    def prepare(self, csv_file_path: str) -> PreparedImport:
        """Parse, validate and classify an import file without writing anything."""
        rows = self.read_rows(csv_file_path)
        self.cache.invalidate()
        parsed = self.parser.parse_rows(rows, self.cache.directory())

        accounts = {acc.id: acc for acc in self.cache.accounts()}
        index = LedgerIndex.from_transactions(self.db.list_transactions(), accounts)
        classification = classify(parsed.candidates, index)

        logger.info(
            "Prepared %s: %d row(s), %d valid, %d duplicate, %d invalid",
            csv_file_path,
            parsed.total_rows,
            len(classification.valid),
            len(classification.duplicates),
            len(parsed.invalid),
        )
        return PreparedImport(
            filename=Path(csv_file_path).name,
            parsed=parsed,
            classification=classification,
        )

    def commit(
        self,
        prepared: PreparedImport,
        include_duplicates: Union[bool, Iterable[int]] = False,
        exclude_rows: Iterable[int] = (),
        cancel_event: Optional[threading.Event] = None,
    ) -> ImportResult:
        """Ingest the accepted rows of a prepared import and log the batch.

        Args:
            prepared: Result of ``prepare``
            include_duplicates: True to upload every suspected duplicate, or
                the row numbers of the duplicates to upload
            exclude_rows: Row numbers of valid rows the operator deselected
            cancel_event: Event that aborts the run between groups

        Returns:
            ImportResult with the stored batch record
        """
        started = time.monotonic()
        excluded = set(exclude_rows)
        if include_duplicates is True:
            chosen_duplicates = {dup.row for dup in prepared.duplicates}
        elif include_duplicates is False:
            chosen_duplicates = set()
        else:
            chosen_duplicates = set(include_duplicates)

        selected_valid = [row for row in prepared.valid if row.row not in excluded]
        selected_duplicates = [dup for dup in prepared.duplicates if dup.row in chosen_duplicates]
        to_commit = sorted(
            selected_valid + [dup.candidate for dup in selected_duplicates],
            key=lambda row: row.row,
        )

        outcome = self.committer.commit(to_commit, cancel_event=cancel_event)
        committed = set(outcome.committed_rows)

        rows_error = [_invalid_to_error(row) for row in prepared.invalid]
        rows_error.extend(failure.to_dict() for failure in outcome.errors)

        batch_id = self.db.create_import_batch(
            filename=prepared.filename,
            status=BatchStatus.CANCELLED if outcome.cancelled else BatchStatus.COMPLETED,
            total_rows=prepared.total_rows,
            valid_count=len(prepared.valid),
            duplicate_count=len(prepared.duplicates),
            invalid_count=len(prepared.invalid),
            uploaded_count=len(outcome.inserted_ids),
            transaction_ids=outcome.inserted_ids,
            rows_valid_uploaded=[r.to_record() for r in prepared.valid if r.row in committed],
            rows_valid_skipped=[
                r.to_record()
                for r in prepared.valid
                if r.row in excluded or r.row not in outcome.attempted_rows
            ],
            rows_duplicate_uploaded=[d.to_record() for d in prepared.duplicates if d.row in committed],
            rows_duplicate_skipped=[
                d.to_record()
                for d in prepared.duplicates
                if d.row not in chosen_duplicates or d.row not in outcome.attempted_rows
            ],
            rows_error=rows_error,
            duration_ms=int((time.monotonic() - started) * 1000),
        )
        logger.info(
            "Import batch %s: %d transaction(s) from %s",
            batch_id,
            len(outcome.inserted_ids),
            prepared.filename,
        )
        return ImportResult(batch=self.db.get_import_batch(batch_id), outcome=outcome)

    def list_batches(self) -> list[ImportBatch]:
        """List import batches, newest first."""
        return self.db.list_import_batches()

    def get_batch(self, batch_id: int) -> ImportBatch:
        batch = self.db.get_import_batch(batch_id)
        if batch is None:
            raise NotFoundError(batch_not_found(batch_id))
        return batch

    def rollback(self, batch_id: int) -> RollbackResult:
        """Delete the transactions a batch produced and mark it rolled back.

        Transactions already deleted by other means are counted as skipped.

        Raises:
            NotFoundError: If the batch doesn't exist
            ConflictError: If the batch was already rolled back
        """
        batch = self.get_batch(batch_id)
        if batch.status is BatchStatus.ROLLED_BACK:
            raise ConflictError(batch_already_rolled_back(batch_id))

        ids = list(batch.transaction_ids)
        deleted = self.db.delete_transactions(ids)
        self.db.mark_batch_rolled_back(batch_id, datetime.now(UTC).replace(tzinfo=None))
        logger.info("Rolled back batch %s: %d deleted, %d already gone", batch_id, deleted, len(ids) - deleted)
        return RollbackResult(batch_id=batch_id, deleted_count=deleted, skipped_count=len(ids) - deleted)

    def problem_rows(
        self, prepared: PreparedImport, uploaded_duplicates: Iterable[int] = ()
    ) -> list[dict[str, Any]]:
        """Invalid rows and unselected duplicates, flattened for reporting."""
        uploaded = set(uploaded_duplicates)
        problems = []
        for row in prepared.invalid:
            record = {"row": row.row, "problem": "invalid"}
            record.update(row.raw)
            record["details"] = "; ".join(f"{e.field}: {e.reason}" for e in row.errors)
            problems.append(record)
        for dup in prepared.duplicates:
            if dup.row in uploaded:
                continue
            record = {"row": dup.row, "problem": "duplicate"}
            record.update(dup.candidate.raw)
            record["details"] = f"Suspected duplicate of a {dup.matched_with.value} record"
            problems.append(record)
        return sorted(problems, key=lambda r: r["row"])

    def write_problem_rows(self, rows: list[dict[str, Any]], output_path: str) -> None:
        """Write problem rows to a CSV file."""
        fieldnames: list[str] = []
        for record in rows:
            for key in record:
                if key not in fieldnames:
                    fieldnames.append(key)
        with open(output_path, "w", encoding="utf-8-sig", newline="") as f:
            writer = csv.DictWriter(f, fieldnames=fieldnames or ["row", "problem", "details"])
            writer.writeheader()
            writer.writerows(rows)
