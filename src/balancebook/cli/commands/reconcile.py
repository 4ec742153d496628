"""Reconciliation command."""

import click
from balancebook.cli.error_handling import parse_instant_or_exit, resolve_account_or_exit
from balancebook.domain.account import AccountService
from balancebook.domain.reconciliation import CalibrationState, ReconciliationService


@click.command("reconcile")
@click.argument("accounts", nargs=-1, metavar="[ACCOUNT]...")
@click.option("--start", help="Window start date (default: first snapshot)")
@click.option("--end", help="Window end date (default: last snapshot)")
@click.option("--status", "show_status", is_flag=True, help="Compare latest snapshots with ledger balances only")
@click.pass_context
def reconcile(ctx, accounts: tuple[str, ...], start: str | None, end: str | None, show_status: bool):
    """Check snapshots against recorded transactions.

    Without ACCOUNT arguments every asset and liability account is checked.
    Open issues of each checked account are regenerated.

    Examples:
        balancebook reconcile
        balancebook reconcile Wallet "Savings" --start 2024-01-01
        balancebook reconcile --status
    """
    db = ctx.obj["db"]
    account_service = AccountService(db)
    account_ids = [resolve_account_or_exit(ctx, account_service, a) for a in accounts] or None
    start_at = parse_instant_or_exit(ctx, start, "start date") if start else None
    end_at = parse_instant_or_exit(ctx, end, "end date", end_of_day=True) if end else None

    service = ReconciliationService(db, ctx.obj["cache"])
    if show_status:
        _show_status(service, account_service, account_ids, end_at)
        return

    batch = service.reconcile_many(account_ids, start_at, end_at)

    names = {acc.id: acc.name for acc in account_service.list_accounts()}
    for result in batch.results:
        name = names.get(result.account_id, str(result.account_id))
        if result.checked:
            click.echo(
                f"{name}: {len(result.segments)} segment(s) checked, "
                f"{result.issues_found} issue(s)"
            )
        else:
            click.echo(f"{name}: {result.message}")
    for account_id, message in batch.failures.items():
        click.echo(f"{names.get(account_id, account_id)}: failed: {message}", err=True)

    click.echo(
        f"\nChecked {batch.checked_accounts} account(s), "
        f"found {batch.total_issues_found} issue(s)"
    )
    if batch.failures:
        ctx.exit(1)


def _show_status(service, account_service, account_ids, at):
    by_id = {acc.id: acc for acc in account_service.list_accounts()}
    for account_id in account_ids or service.reconcilable_account_ids():
        status = service.reconciliation_status(account_id, at)
        account = by_id[account_id]
        currency = f" {account.currency}" if account.currency else ""
        if status.state is CalibrationState.NO_CALIBRATION:
            click.echo(f"{account.name}: no snapshot, ledger {status.ledger_balance:.2f}{currency}")
            continue
        click.echo(
            f"{account.name}: {status.state.value} | "
            f"snapshot {status.snapshot_balance:.2f} on {status.snapshot_date:%Y-%m-%d} | "
            f"ledger {status.ledger_balance:.2f}{currency} | diff {status.diff:+.2f}"
        )


def register_commands(cli):
    """Register reconcile command with main CLI."""
    cli.add_command(reconcile)
