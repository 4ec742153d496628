"""Snapshot commands."""

import click
from balancebook.cli.error_handling import (
    handle_domain_error,
    parse_amount_or_exit,
    parse_instant_or_exit,
    resolve_account_or_exit,
)
from balancebook.domain.account import AccountService
from balancebook.domain.errors import DomainError
from balancebook.domain.snapshot import SnapshotOutcome, SnapshotService


@click.group()
def snapshot_group():
    """Record and list observed balances."""
    pass


def _report(outcome: SnapshotOutcome) -> None:
    snap = outcome.snapshot
    click.echo(
        f"Recorded {snap.source.value} snapshot {snap.id}: "
        f"{snap.balance:.2f} at {snap.date:%Y-%m-%d %H:%M}"
    )
    result = outcome.reconciliation
    if result is None:
        return
    if not result.checked:
        click.echo(result.message)
    elif result.issues_found:
        click.echo(f"Reconciliation found {result.issues_found} issue(s). See 'balancebook issue list'.")
    else:
        click.echo("Reconciliation found no issues.")


@snapshot_group.command("create")
@click.argument("account", metavar="ACCOUNT")
@click.argument("balance", metavar="BALANCE")
@click.option("--date", "date_str", help="Date or date-time of the observation (default: now)")
@click.option("--note", help="Optional note")
@click.option("--no-reconcile", is_flag=True, help="Skip reconciliation after recording")
@click.pass_context
def create_snapshot(ctx, account: str, balance: str, date_str: str | None, note: str | None, no_reconcile: bool):
    """Record the observed BALANCE of ACCOUNT.

    A snapshot on a day that already has one replaces it.

    Examples:
        balancebook snapshot create Wallet 1520.30
        balancebook snapshot create Wallet 1500 --date 2024-01-31
    """
    db = ctx.obj["db"]
    account_id = resolve_account_or_exit(ctx, AccountService(db), account)
    amount = parse_amount_or_exit(ctx, balance, "balance")
    when = parse_instant_or_exit(ctx, date_str, "date") if date_str else None

    service = SnapshotService(db, ctx.obj["cache"])
    try:
        outcome = service.create_snapshot(
            account_id, amount, when=when, note=note, reconcile=not no_reconcile
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
    _report(outcome)


@snapshot_group.command("calibrate")
@click.argument("account", metavar="ACCOUNT")
@click.option("--date", "date_str", help="Date or date-time to calibrate at (default: now)")
@click.pass_context
def calibrate(ctx, account: str, date_str: str | None):
    """Record an automatic snapshot equal to the ledger balance."""
    db = ctx.obj["db"]
    account_id = resolve_account_or_exit(ctx, AccountService(db), account)
    when = parse_instant_or_exit(ctx, date_str, "date") if date_str else None

    try:
        outcome = SnapshotService(db, ctx.obj["cache"]).calibrate_from_ledger(account_id, when)
    except DomainError as e:
        handle_domain_error(ctx, e)
    _report(outcome)


@snapshot_group.command("list")
@click.argument("account", metavar="ACCOUNT")
@click.pass_context
def list_snapshots(ctx, account: str):
    """List the snapshots of ACCOUNT."""
    db = ctx.obj["db"]
    account_id = resolve_account_or_exit(ctx, AccountService(db), account)

    snapshots = SnapshotService(db, ctx.obj["cache"]).list_snapshots(account_id)
    if not snapshots:
        click.echo("No snapshots found.")
        return

    click.echo("\nSnapshots:")
    click.echo("-" * 60)
    for snap in snapshots:
        note = f" | {snap.note}" if snap.note else ""
        click.echo(
            f"ID: {snap.id:3d} | {snap.date:%Y-%m-%d %H:%M} | {snap.balance:>14.2f} | "
            f"{snap.source.value}{note}"
        )


def register_commands(cli):
    """Register snapshot commands with main CLI."""
    cli.add_command(snapshot_group, name="snapshot")
