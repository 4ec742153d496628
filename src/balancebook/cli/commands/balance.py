"""Balance command."""

import click
from balancebook.cli.error_handling import handle_domain_error, parse_instant_or_exit, resolve_account_or_exit
from balancebook.domain.account import AccountService
from balancebook.domain.balance import BalanceService
from balancebook.domain.errors import DomainError


@click.command("balance")
@click.argument("account", metavar="ACCOUNT")
@click.option("--at", "at", help="Date or date-time to read the balance at (default: now)")
@click.pass_context
def show_balance(ctx, account: str, at: str | None):
    """Show the balance of ACCOUNT, now or at a past date.

    A date without a time reads the balance at the end of that day.

    Examples:
        balancebook balance Wallet
        balancebook balance Wallet --at 2024-01-31
        balancebook balance 3 --at "2024-01-31 12:00"
    """
    db = ctx.obj["db"]
    account_id = resolve_account_or_exit(ctx, AccountService(db), account)
    instant = parse_instant_or_exit(ctx, at, "date", end_of_day=True) if at else None

    try:
        amount = BalanceService(db).balance_at(account_id, instant)
    except DomainError as e:
        handle_domain_error(ctx, e)

    acc = db.get_account(account_id)
    suffix = f" {acc.currency}" if acc.currency else ""
    when = instant.strftime("%Y-%m-%d %H:%M") if instant else "now"
    click.echo(f"{acc.name} balance ({when}): {amount:.2f}{suffix}")


def register_commands(cli):
    """Register balance command with main CLI."""
    cli.add_command(show_balance)
