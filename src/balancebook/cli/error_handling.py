"""CLI error handling helpers."""

from decimal import Decimal

import click

from balancebook.domain.account import AccountService
from balancebook.domain.errors import DomainError
from balancebook.utils.account_resolver import resolve_account
from balancebook.utils.amount_parser import parse_amount
from balancebook.utils.date_parser import parse_instant


def handle_domain_error(ctx: click.Context, error: DomainError | ValueError) -> None:
    """Render a domain error and exit with failure."""
    click.echo(f"Error: {error}", err=True)
    ctx.exit(1)


def parse_amount_or_exit(ctx: click.Context, value: str, label: str = "amount") -> Decimal:
    """Parse a command-line amount, or exit with a CLI error."""
    try:
        return parse_amount(value)
    except ValueError as e:
        click.echo(f"Error: Invalid {label}: {e}", err=True)
        ctx.exit(1)


def parse_instant_or_exit(ctx: click.Context, value: str, label: str, end_of_day: bool = False):
    """Parse a command-line date, or exit with a CLI error."""
    try:
        return parse_instant(value, end_of_day=end_of_day)
    except ValueError as e:
        click.echo(f"Error: Invalid {label}: {e}", err=True)
        ctx.exit(1)


def resolve_account_or_exit(ctx: click.Context, account_service: AccountService, account: str | int) -> int:
    """Resolve an account name or ID, or exit with a CLI error."""
    try:
        return resolve_account(account_service, account)
    except ValueError as e:
        handle_domain_error(ctx, e)
