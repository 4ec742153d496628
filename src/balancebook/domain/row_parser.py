"""Parsing and validation of import rows.

A raw row is a mapping of header label to cell text. Each row either becomes
a fully resolved candidate (zero errors) or an invalid row that keeps every
raw value together with all the field errors found in it.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Iterable, Mapping, Optional, Union

from balancebook.config import ImportConfig
from balancebook.domain.entities import (
    Account,
    TransactionKind,
    TransactionNature,
    derive_transaction_kind,
)
from balancebook.domain.errors import group_account_posting
from balancebook.utils.account_resolver import AccountDirectory
from balancebook.utils.amount_parser import parse_amount_pair
from balancebook.utils.date_parser import parse_row_datetime, time_key

TYPE_LABELS = {
    "expense": TransactionKind.EXPENSE,
    "支出": TransactionKind.EXPENSE,
    "income": TransactionKind.INCOME,
    "收入": TransactionKind.INCOME,
    "transfer": TransactionKind.TRANSFER,
    "划转": TransactionKind.TRANSFER,
}

NATURE_LABELS = {
    "unexpected": TransactionNature.UNEXPECTED,
    "意外": TransactionNature.UNEXPECTED,
    "periodic": TransactionNature.PERIODIC,
    "周期": TransactionNature.PERIODIC,
}


@dataclass(frozen=True)
class FieldError:
    """One rejected field of one row."""

    row: int
    field: str
    value: str
    reason: str

    def to_dict(self) -> dict[str, Any]:
        return {"row": self.row, "field": self.field, "value": self.value, "reason": self.reason}


@dataclass(frozen=True)
class CandidateRow:
    """A fully validated row, ready for duplicate classification."""

    row: int
    date: datetime
    kind: TransactionKind
    from_account: Account
    to_account: Account
    amount: Decimal
    to_amount: Optional[Decimal] = None
    note: Optional[str] = None
    location: Optional[str] = None
    project: Optional[str] = None
    is_starred: bool = False
    needs_review: bool = False
    nature: TransactionNature = TransactionNature.REGULAR
    raw: dict[str, str] = field(default_factory=dict)

    @property
    def main_account(self) -> Account:
        """The real account the row moves money in or out of."""
        if self.kind is TransactionKind.INCOME:
            return self.to_account
        return self.from_account

    @property
    def category(self) -> str:
        """Name of the nominal side; empty for transfers."""
        if self.kind is TransactionKind.EXPENSE:
            return self.to_account.name
        if self.kind is TransactionKind.INCOME:
            return self.from_account.name
        return ""

    @property
    def time_key(self) -> str:
        return time_key(self.date)

    def to_record(self) -> dict[str, Any]:
        """JSON-safe form for batch logs and error reports."""
        return {
            "row": self.row,
            "date": self.date.isoformat(sep=" "),
            "type": self.kind.value,
            "from_account": self.from_account.name,
            "to_account": self.to_account.name,
            "amount": str(self.amount),
            "to_amount": str(self.to_amount) if self.to_amount is not None else None,
            "note": self.note,
            "location": self.location,
            "project": self.project,
            "is_starred": self.is_starred,
            "needs_review": self.needs_review,
            "nature": self.nature.value,
        }


@dataclass(frozen=True)
class InvalidRow:
    """A rejected row with its raw cells and every reason it was rejected."""

    row: int
    raw: dict[str, str]
    errors: tuple[FieldError, ...]

    def to_record(self) -> dict[str, Any]:
        return {
            "row": self.row,
            "raw": dict(self.raw),
            "errors": [e.to_dict() for e in self.errors],
        }


@dataclass
class ParsedRows:
    """Result of parsing a whole file."""

    candidates: list[CandidateRow] = field(default_factory=list)
    invalid: list[InvalidRow] = field(default_factory=list)
    total_rows: int = 0

    @property
    def errors(self) -> list[FieldError]:
        return [e for row in self.invalid for e in row.errors]


class RowParser:
    """Turns raw import rows into candidates or invalid rows."""

    def __init__(self, config: Optional[ImportConfig] = None):
        self.config = config or ImportConfig()
        self.columns = self.config.columns
        self._truthy = {token.strip().casefold() for token in self.config.truthy_tokens}

    def _cell(self, raw: Mapping[str, Any], label: str) -> str:
        value = raw.get(label)
        if value is None:
            return ""
        return str(value).strip()

    def _flag(self, raw: Mapping[str, Any], label: str) -> bool:
        return self._cell(raw, label).casefold() in self._truthy

    def _resolve(
        self,
        row: int,
        label: str,
        name: str,
        directory: AccountDirectory,
        errors: list[FieldError],
    ) -> Optional[Account]:
        if not name:
            errors.append(FieldError(row, label, "", f"{label} is required"))
            return None
        account = directory.lookup(name)
        if account is None:
            errors.append(FieldError(row, label, name, f"Account '{name}' not found"))
            return None
        if account.is_group:
            errors.append(FieldError(row, label, name, group_account_posting(account.name)))
            return None
        return account

    def parse_row(
        self, row: int, raw: Mapping[str, Any], directory: AccountDirectory
    ) -> Union[CandidateRow, InvalidRow]:
        """Parse and validate a single row."""
        cols = self.columns
        errors: list[FieldError] = []
        raw_cells = {str(k): ("" if v is None else str(v)) for k, v in raw.items() if k is not None}

        # Date
        date_text = self._cell(raw, cols.date)
        moment: Optional[datetime] = None
        if not date_text:
            errors.append(FieldError(row, cols.date, "", f"{cols.date} is required"))
        else:
            try:
                moment = parse_row_datetime(date_text)
            except ValueError:
                errors.append(
                    FieldError(
                        row,
                        cols.date,
                        date_text[:50],
                        "Unparseable date; expected YYYY-MM-DD, YYYY/MM/DD, YYYY.MM.DD "
                        "or YYYY年MM月DD日, optionally followed by HH:MM",
                    )
                )

        # Type
        type_text = self._cell(raw, cols.type)
        kind = TYPE_LABELS.get(type_text.casefold())
        if kind is None:
            errors.append(
                FieldError(
                    row,
                    cols.type,
                    type_text or "(empty)",
                    "Type must be one of: expense, income, transfer",
                )
            )

        # Accounts
        from_name = self._cell(raw, cols.from_account)
        to_name = self._cell(raw, cols.to_account)
        from_account = self._resolve(row, cols.from_account, from_name, directory, errors)
        to_account = self._resolve(row, cols.to_account, to_name, directory, errors)

        if from_account is not None and to_account is not None:
            if from_account.id == to_account.id:
                errors.append(
                    FieldError(row, cols.to_account, to_name, "From and to account must differ")
                )
            elif kind is not None:
                derived = derive_transaction_kind(from_account, to_account)
                if derived is not kind:
                    errors.append(
                        FieldError(
                            row,
                            cols.type,
                            type_text,
                            f"Accounts '{from_account.name}' -> '{to_account.name}' "
                            f"describe a {derived.value}, not a {kind.value}",
                        )
                    )

        # Amount
        amount_text = self._cell(raw, cols.amount)
        amount: Optional[Decimal] = None
        to_amount: Optional[Decimal] = None
        if not amount_text:
            errors.append(FieldError(row, cols.amount, "", f"{cols.amount} is required"))
        else:
            try:
                amount, to_amount = parse_amount_pair(amount_text)
            except ValueError:
                errors.append(
                    FieldError(row, cols.amount, amount_text[:30], "Amount is not a number")
                )
            else:
                if amount <= 0 or (to_amount is not None and to_amount <= 0):
                    errors.append(
                        FieldError(row, cols.amount, amount_text[:30], "Amount must be positive")
                    )
                errors.extend(
                    self._check_currency_pair(
                        row, amount_text, kind, from_account, to_account, to_amount
                    )
                )

        if errors:
            return InvalidRow(row=row, raw=raw_cells, errors=tuple(errors))

        return CandidateRow(
            row=row,
            date=moment,
            kind=kind,
            from_account=from_account,
            to_account=to_account,
            amount=amount,
            to_amount=to_amount,
            note=self._cell(raw, cols.note) or None,
            location=self._cell(raw, cols.location) or None,
            project=self._cell(raw, cols.project) or None,
            is_starred=self._flag(raw, cols.important),
            needs_review=self._flag(raw, cols.needs_review),
            nature=NATURE_LABELS.get(
                self._cell(raw, cols.nature).casefold(), TransactionNature.REGULAR
            ),
            raw=raw_cells,
        )

    def _check_currency_pair(
        self,
        row: int,
        amount_text: str,
        kind: Optional[TransactionKind],
        from_account: Optional[Account],
        to_account: Optional[Account],
        to_amount: Optional[Decimal],
    ) -> list[FieldError]:
        label = self.columns.amount
        is_pair = to_amount is not None
        if kind is not TransactionKind.TRANSFER:
            if is_pair and kind is not None:
                return [FieldError(row, label, amount_text, "Only transfers accept an amount pair")]
            return []
        if from_account is None or to_account is None:
            return []

        cross_currency = (
            from_account.currency is not None
            and to_account.currency is not None
            and from_account.currency != to_account.currency
        )
        if cross_currency and not is_pair:
            return [
                FieldError(
                    row,
                    label,
                    amount_text,
                    f"Transfer from {from_account.currency} to {to_account.currency} "
                    "needs an amount pair such as '100->720'",
                )
            ]
        if not cross_currency and is_pair:
            return [
                FieldError(
                    row, label, amount_text, "Amount pair is only allowed across currencies"
                )
            ]
        return []

    def parse_rows(
        self,
        raw_rows: Iterable[Mapping[str, Any]],
        account_directory: AccountDirectory,
        first_row_number: int = 2,
    ) -> ParsedRows:
        """Parse every non-empty row; row numbers count from ``first_row_number``."""
        result = ParsedRows()
        for offset, raw in enumerate(raw_rows):
            if all(v is None or not str(v).strip() for v in raw.values()):
                continue
            result.total_rows += 1
            parsed = self.parse_row(first_row_number + offset, raw, account_directory)
            if isinstance(parsed, CandidateRow):
                result.candidates.append(parsed)
            else:
                result.invalid.append(parsed)
        return result


def parse_rows(
    raw_rows: Iterable[Mapping[str, Any]],
    account_directory: AccountDirectory,
    config: Optional[ImportConfig] = None,
) -> ParsedRows:
    """Parse raw import rows against an account directory."""
    return RowParser(config).parse_rows(raw_rows, account_directory)
