"""Shared domain error messages and error types."""


class DomainError(ValueError):
    """Base class for domain-level errors.

    Subclasses provide semantic categories while preserving ValueError
    compatibility for existing error handling.
    """


class ValidationError(DomainError):
    """Invalid input or failed validation in domain logic."""


class NotFoundError(DomainError):
    """Requested domain entity does not exist."""


class ConflictError(DomainError):
    """Domain conflict, such as uniqueness violations or repeated rollbacks."""


def account_not_found(account_id: int) -> str:
    """Return message for missing account."""
    return f"Account {account_id} not found"


def account_name_not_found(name: str) -> str:
    """Return message for an account name that resolves to nothing."""
    return f"Account '{name}' not found"


def group_account_posting(name: str) -> str:
    """Return message when a group account is used as a posting endpoint."""
    return f"Account '{name}' is a group account and cannot receive postings"


def issue_not_found(issue_id: int) -> str:
    """Return message for missing reconciliation issue."""
    return f"Reconciliation issue {issue_id} not found"


def batch_not_found(batch_id: int) -> str:
    """Return message for missing import batch."""
    return f"Import batch {batch_id} not found"


def batch_already_rolled_back(batch_id: int) -> str:
    """Return message for a second rollback of the same batch."""
    return f"Import batch {batch_id} has already been rolled back"
