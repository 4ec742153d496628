"""Chunked ingestion of accepted import rows.

Rows are committed in fixed-size concurrency groups. Every row is its own
unit of work: a failed row is reported and never undoes its siblings. A
transfer is written as two legs through the transfer clearing account; the
legs share a generated transfer group id.
"""

import logging
import threading
import uuid
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Optional, Sequence

from balancebook.database.base import Database
from balancebook.domain.account import AccountService
from balancebook.domain.cache import LedgerCache
from balancebook.domain.entities import TransactionKind
from balancebook.domain.row_parser import CandidateRow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RowFailure:
    """A row that could not be committed, or was only half committed."""

    message: str
    row: dict[str, Any]

    def to_dict(self) -> dict[str, Any]:
        return {"message": self.message, "row": self.row}


@dataclass
class ChunkResult:
    """Outcome of one concurrency group. Order of IDs is not significant."""

    inserted_ids: list[int] = field(default_factory=list)
    errors: list[RowFailure] = field(default_factory=list)
    committed_rows: list[int] = field(default_factory=list)


@dataclass
class IngestionOutcome:
    """Outcome of a whole ingestion run."""

    inserted_ids: list[int] = field(default_factory=list)
    errors: list[RowFailure] = field(default_factory=list)
    committed_rows: list[int] = field(default_factory=list)
    attempted_rows: list[int] = field(default_factory=list)
    groups_committed: int = 0
    cancelled: bool = False

    @property
    def anything_committed(self) -> bool:
        return bool(self.inserted_ids)

    def absorb(self, chunk: ChunkResult) -> None:
        self.inserted_ids.extend(chunk.inserted_ids)
        self.errors.extend(chunk.errors)
        self.committed_rows.extend(chunk.committed_rows)
        self.groups_committed += 1


@dataclass
class _RowResult:
    row: int
    inserted_ids: list[int] = field(default_factory=list)
    error: Optional[RowFailure] = None


class IngestionCommitter:
    """Commits candidate rows to the ledger in concurrent groups."""

    def __init__(
        self,
        db: Database,
        cache: Optional[LedgerCache] = None,
        group_size: Optional[int] = None,
        atomic_transfers: Optional[bool] = None,
    ):
        """Initialize the committer.

        Args:
            db: Database instance with thread-scoped sessions
            cache: Shared ledger cache providing the ingestion settings
            group_size: Rows per concurrency group; defaults to the configured size
            atomic_transfers: Write both transfer legs in one store commit
        """
        self.db = db
        self.cache = cache or LedgerCache(db)
        settings = self.cache.config.ingestion
        self.group_size = group_size or settings.group_size
        self.atomic_transfers = (
            settings.atomic_transfers if atomic_transfers is None else atomic_transfers
        )
        self.clearing_account_name = settings.transfer_clearing_account
        self.accounts = AccountService(db)
        self._clearing_account_id: Optional[int] = None

    def _clearing_account(self) -> int:
        if self._clearing_account_id is None:
            self._clearing_account_id = self.accounts.ensure_transfer_clearing_account(
                self.clearing_account_name
            )
            self.cache.invalidate()
        return self._clearing_account_id

    def commit(
        self,
        rows: Sequence[CandidateRow],
        cancel_event: Optional[threading.Event] = None,
    ) -> IngestionOutcome:
        """Commit ``rows`` group by group.

        Setting ``cancel_event`` stops the run before the next group starts;
        groups already committed stay committed.
        """
        outcome = IngestionOutcome()
        if not rows:
            return outcome

        if any(row.kind is TransactionKind.TRANSFER for row in rows):
            self._clearing_account()

        with ThreadPoolExecutor(max_workers=self.group_size) as executor:
            for start in range(0, len(rows), self.group_size):
                if cancel_event is not None and cancel_event.is_set():
                    logger.warning(
                        "Ingestion cancelled after %d group(s); %d row(s) not attempted",
                        outcome.groups_committed,
                        len(rows) - start,
                    )
                    outcome.cancelled = True
                    break
                group = rows[start : start + self.group_size]
                outcome.attempted_rows.extend(row.row for row in group)
                outcome.absorb(self._run_group(executor, group))

        logger.info(
            "Ingested %d row(s) as %d transaction(s); %d failure(s)",
            len(outcome.committed_rows),
            len(outcome.inserted_ids),
            len(outcome.errors),
        )
        return outcome

    def commit_chunk(self, rows: Sequence[CandidateRow]) -> ChunkResult:
        """Commit one group of rows concurrently."""
        if any(row.kind is TransactionKind.TRANSFER for row in rows):
            self._clearing_account()
        with ThreadPoolExecutor(max_workers=max(1, len(rows))) as executor:
            return self._run_group(executor, rows)

    def _run_group(self, executor: ThreadPoolExecutor, rows: Sequence[CandidateRow]) -> ChunkResult:
        chunk = ChunkResult()
        for result in executor.map(self._commit_row_in_worker, rows):
            chunk.inserted_ids.extend(result.inserted_ids)
            if result.error is not None:
                chunk.errors.append(result.error)
            else:
                chunk.committed_rows.append(result.row)
        return chunk

    def _commit_row_in_worker(self, row: CandidateRow) -> _RowResult:
        try:
            return self._commit_row(row)
        finally:
            self.db.release_session()

    def _commit_row(self, row: CandidateRow) -> _RowResult:
        result = _RowResult(row=row.row)
        if row.kind is TransactionKind.TRANSFER:
            self._commit_transfer(row, result)
            return result

        try:
            transaction_id = self.db.create_transaction(**self._posting_fields(row))
        except Exception as e:
            logger.warning("Row %d failed: %s", row.row, e)
            result.error = RowFailure(message=str(e), row=row.to_record())
        else:
            result.inserted_ids.append(transaction_id)
        return result

    def _posting_fields(self, row: CandidateRow) -> dict[str, Any]:
        return {
            "date": row.date,
            "from_account_id": row.from_account.id,
            "to_account_id": row.to_account.id,
            "amount": row.amount,
            "note": row.note,
            "location": row.location,
            "project": row.project,
            "is_starred": row.is_starred,
            "needs_review": row.needs_review,
            "nature": row.nature,
        }

    def _transfer_legs(self, row: CandidateRow) -> tuple[dict[str, Any], dict[str, Any]]:
        clearing_id = self._clearing_account()
        group_id = str(uuid.uuid4())
        common = self._posting_fields(row)
        received = row.to_amount if row.to_amount is not None else row.amount

        out_leg = dict(common, to_account_id=clearing_id, transfer_group_id=group_id)
        in_leg = dict(
            common,
            from_account_id=clearing_id,
            amount=received,
            transfer_group_id=group_id,
        )
        if row.to_amount is not None:
            # The clearing account nets to zero in the receiving currency
            out_leg.update(from_amount=row.amount, to_amount=received)
        return out_leg, in_leg

    def _commit_transfer(self, row: CandidateRow, result: _RowResult) -> None:
        out_leg, in_leg = self._transfer_legs(row)

        if self.atomic_transfers:
            try:
                result.inserted_ids.extend(self.db.create_transfer_pair(out_leg, in_leg))
            except Exception as e:
                logger.warning("Transfer row %d failed: %s", row.row, e)
                result.error = RowFailure(message=str(e), row=row.to_record())
            return

        try:
            out_id = self.db.create_transaction(**out_leg)
        except Exception as e:
            logger.warning("Transfer row %d failed: %s", row.row, e)
            result.error = RowFailure(message=str(e), row=row.to_record())
            return
        result.inserted_ids.append(out_id)

        try:
            in_id = self.db.create_transaction(**in_leg)
        except Exception as e:
            logger.warning(
                "Transfer row %d left outgoing leg %d without its incoming leg: %s",
                row.row,
                out_id,
                e,
            )
            record = row.to_record()
            record["orphan_transaction_id"] = out_id
            result.error = RowFailure(
                message=(
                    f"Incoming leg to '{row.to_account.name}' failed after outgoing leg "
                    f"{out_id} was recorded: {e}"
                ),
                row=record,
            )
            return
        result.inserted_ids.append(in_id)
