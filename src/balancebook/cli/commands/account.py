"""Account management commands."""

import click
from balancebook.cli.error_handling import (
    handle_domain_error,
    parse_amount_or_exit,
    parse_instant_or_exit,
    resolve_account_or_exit,
)
from balancebook.domain.account import AccountService
from balancebook.domain.entities import AccountType
from balancebook.domain.errors import DomainError
from balancebook.domain.transaction import TransactionService

ACCOUNT_TYPES = [t.value for t in AccountType]


@click.group()
def account_group():
    """Manage accounts."""
    pass


@account_group.command("create")
@click.argument("name", metavar="ACCOUNT_NAME")
@click.option(
    "--type",
    "account_type",
    type=click.Choice(ACCOUNT_TYPES, case_sensitive=False),
    default="asset",
    show_default=True,
    help="Account type",
)
@click.option("--currency", help="Currency code, e.g. CNY or USD")
@click.option("--parent", help="Parent group account name or ID")
@click.option("--group", "is_group", is_flag=True, help="Create a group account")
@click.option("--tolerance", help="Reconciliation tolerance for this account")
@click.option("--opening", help="Opening balance to post")
@click.option("--opening-date", default="today", show_default=True, help="Date of the opening balance")
@click.pass_context
def create_account(
    ctx,
    name: str,
    account_type: str,
    currency: str | None,
    parent: str | None,
    is_group: bool,
    tolerance: str | None,
    opening: str | None,
    opening_date: str,
):
    """Create a new account.

    Examples:
        balancebook account create "Wallet" --currency CNY
        balancebook account create "Cards" --type liability --group
        balancebook account create "Visa" --type liability --parent "Cards"
        balancebook account create "Groceries" --type expense
    """
    db = ctx.obj["db"]
    service = AccountService(db)

    parent_id = resolve_account_or_exit(ctx, service, parent) if parent else None
    tolerance_value = parse_amount_or_exit(ctx, tolerance, "tolerance") if tolerance else None

    try:
        account_id = service.create_account(
            name=name,
            account_type=account_type.lower(),
            currency=currency,
            parent_id=parent_id,
            is_group=is_group,
            reconciliation_tolerance=tolerance_value,
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
    ctx.obj["cache"].invalidate()
    click.echo(f"Created account '{name}' (ID: {account_id})")

    if opening:
        amount = parse_amount_or_exit(ctx, opening, "opening balance")
        when = parse_instant_or_exit(ctx, opening_date, "opening date")
        try:
            TransactionService(db).post_opening_balance(account_id, amount, when)
        except DomainError as e:
            handle_domain_error(ctx, e)
        click.echo(f"Posted opening balance {amount}")


@account_group.command("list")
@click.pass_context
def list_accounts(ctx):
    """List all accounts."""
    db = ctx.obj["db"]
    service = AccountService(db)

    accounts = service.list_accounts()
    if not accounts:
        click.echo("No accounts found.")
        return

    by_id = {acc.id: acc for acc in accounts}
    click.echo("\nAccounts:")
    click.echo("-" * 70)
    for acc in accounts:
        parent = by_id[acc.parent_id].name if acc.parent_id in by_id else ""
        kind = "group" if acc.is_group else acc.account_class.value
        click.echo(
            f"ID: {acc.id:3d} | {acc.name:20s} | {acc.account_type.value:9s} | "
            f"{kind:7s} | {acc.currency or '':3s} | {parent}"
        )


def register_commands(cli):
    """Register account commands with main CLI."""
    cli.add_command(account_group, name="account")
