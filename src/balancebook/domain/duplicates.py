"""Fuzzy duplicate detection for imported rows.

Rows are compared on five fields: calendar date, time of day (empty for a
bare midnight), absolute amount, the real account involved, and the
category (the nominal side's name, empty for transfers). Two rows that agree
on at least four of the five are suspected duplicates.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Iterable, Mapping, Optional

from balancebook.database.base import Database
from balancebook.domain.entities import Account, Transaction, TransactionKind, derive_transaction_kind
from balancebook.domain.row_parser import CandidateRow
from balancebook.utils.date_parser import time_key

logger = logging.getLogger(__name__)

AMOUNT_EPSILON = Decimal("0.01")
MATCH_THRESHOLD = 4


class MatchSource(str, Enum):
    DATABASE = "database"
    FILE = "file"


@dataclass(frozen=True)
class FuzzyKey:
    """The five fields compared between rows."""

    date: str
    time: str
    amount: Decimal
    account_id: int
    category: str

    def agreement(self, other: "FuzzyKey") -> int:
        score = 0
        if self.date == other.date:
            score += 1
        if self.time == other.time:
            score += 1
        if abs(self.amount - other.amount) < AMOUNT_EPSILON:
            score += 1
        if self.account_id == other.account_id:
            score += 1
        if self.category == other.category:
            score += 1
        return score

    def matches(self, other: "FuzzyKey") -> bool:
        return self.agreement(other) >= MATCH_THRESHOLD


def key_for_candidate(candidate: CandidateRow) -> FuzzyKey:
    return FuzzyKey(
        date=candidate.date.strftime("%Y-%m-%d"),
        time=candidate.time_key,
        amount=abs(candidate.amount),
        account_id=candidate.main_account.id,
        category=candidate.category,
    )


def key_for_transaction(
    transaction: Transaction, accounts: Mapping[int, Account]
) -> Optional[FuzzyKey]:
    """Build the comparison key of a stored posting.

    The account is the real side of the posting: the from-side when it is a
    real account, otherwise the to-side. Returns None when an endpoint
    account is missing.
    """
    to_account = accounts.get(transaction.to_account_id)
    if to_account is None:
        return None
    from_account = None
    if transaction.from_account_id is not None:
        from_account = accounts.get(transaction.from_account_id)
        if from_account is None:
            return None

    if from_account is not None and from_account.is_real:
        account_id = from_account.id
    else:
        account_id = to_account.id

    kind = derive_transaction_kind(from_account, to_account)
    if kind is TransactionKind.EXPENSE:
        category = to_account.name
    elif kind is TransactionKind.INCOME:
        category = from_account.name
    else:
        category = ""

    return FuzzyKey(
        date=transaction.date.strftime("%Y-%m-%d"),
        time=time_key(transaction.date),
        amount=abs(Decimal(transaction.amount)),
        account_id=account_id,
        category=category,
    )


class LedgerIndex:
    """Comparison keys of the postings already in the ledger."""

    def __init__(self, entries: Iterable[tuple[int, FuzzyKey]] = ()):
        self._entries = list(entries)

    def __len__(self) -> int:
        return len(self._entries)

    @classmethod
    def from_transactions(
        cls, transactions: Iterable[Transaction], accounts: Mapping[int, Account]
    ) -> "LedgerIndex":
        entries = []
        for txn in transactions:
            key = key_for_transaction(txn, accounts)
            if key is not None:
                entries.append((txn.id, key))
        return cls(entries)

    @classmethod
    def from_database(cls, db: Database) -> "LedgerIndex":
        accounts = {acc.id: acc for acc in db.list_accounts()}
        return cls.from_transactions(db.list_transactions(), accounts)

    def find(self, key: FuzzyKey) -> Optional[int]:
        """ID of the first stored posting that matches ``key``."""
        for transaction_id, existing in self._entries:
            if key.matches(existing):
                return transaction_id
        return None


@dataclass(frozen=True)
class DuplicateRow:
    """A candidate held back as a suspected duplicate."""

    candidate: CandidateRow
    matched_with: MatchSource
    matched_transaction_id: Optional[int] = None
    matched_row: Optional[int] = None

    @property
    def row(self) -> int:
        return self.candidate.row

    def to_record(self) -> dict:
        record = self.candidate.to_record()
        record["matched_with"] = self.matched_with.value
        if self.matched_transaction_id is not None:
            record["matched_transaction_id"] = self.matched_transaction_id
        if self.matched_row is not None:
            record["matched_row"] = self.matched_row
        return record


@dataclass
class Classification:
    """Candidates split into valid rows and suspected duplicates."""

    valid: list[CandidateRow] = field(default_factory=list)
    duplicates: list[DuplicateRow] = field(default_factory=list)


def classify(
    candidates: Iterable[CandidateRow], existing_ledger_index: LedgerIndex
) -> Classification:
    """Split candidates into valid rows and suspected duplicates.

    Each candidate, in file order, is first checked against the ledger. If
    nothing there matches, it is compared with the earlier rows of the file
    and the first match wins: both the current row and the earlier one are
    marked as file duplicates.
    """
    result = Classification()
    # Earlier rows of the file that passed the ledger check
    seen: list[tuple[FuzzyKey, CandidateRow]] = []
    marked: set[int] = set()

    for candidate in candidates:
        key = key_for_candidate(candidate)

        transaction_id = existing_ledger_index.find(key)
        if transaction_id is not None:
            result.duplicates.append(
                DuplicateRow(candidate, MatchSource.DATABASE, matched_transaction_id=transaction_id)
            )
            continue

        earlier: Optional[CandidateRow] = None
        for prev_key, prev in seen:
            if key.matches(prev_key):
                earlier = prev
                break

        seen.append((key, candidate))

        if earlier is None:
            result.valid.append(candidate)
            continue

        if earlier.row not in marked:
            marked.add(earlier.row)
            for idx, row in enumerate(result.valid):
                if row.row == earlier.row:
                    del result.valid[idx]
                    result.duplicates.append(
                        DuplicateRow(earlier, MatchSource.FILE, matched_row=candidate.row)
                    )
                    break
        marked.add(candidate.row)
        result.duplicates.append(DuplicateRow(candidate, MatchSource.FILE, matched_row=earlier.row))

    logger.debug(
        "Classified %d valid row(s) and %d suspected duplicate(s)",
        len(result.valid),
        len(result.duplicates),
    )
    return result
