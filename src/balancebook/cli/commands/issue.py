"""Reconciliation issue commands."""

import click
from balancebook.cli.error_handling import handle_domain_error, resolve_account_or_exit
from balancebook.domain.account import AccountService
from balancebook.domain.entities import IssueStatus
from balancebook.domain.errors import DomainError
from balancebook.domain.reconciliation import ReconciliationService


@click.group()
def issue_group():
    """Review reconciliation issues."""
    pass


@issue_group.command("list")
@click.option(
    "--status",
    type=click.Choice(["open", "resolved", "ignored", "all"]),
    default="open",
    show_default=True,
)
@click.option("--account", help="Only issues of this account")
@click.pass_context
def list_issues(ctx, status: str, account: str | None):
    """List reconciliation issues."""
    db = ctx.obj["db"]
    account_service = AccountService(db)
    account_id = resolve_account_or_exit(ctx, account_service, account) if account else None

    service = ReconciliationService(db, ctx.obj["cache"])
    issues = service.list_issues(
        status=None if status == "all" else IssueStatus(status),
        account_id=account_id,
    )
    if not issues:
        click.echo("No issues found.")
        return

    names = {acc.id: acc.name for acc in account_service.list_accounts()}
    click.echo("\nReconciliation issues:")
    click.echo("-" * 90)
    for item in issues:
        click.echo(
            f"ID: {item.id:3d} | {names.get(item.account_id, item.account_id)} | "
            f"{item.period_start:%Y-%m-%d} -> {item.period_end:%Y-%m-%d} | "
            f"expected {item.expected_delta:.2f}, actual {item.actual_delta:.2f}, "
            f"diff {item.diff:.2f} | {item.status.value} | "
            f"{len(item.transaction_ids)} transaction(s)"
        )


@issue_group.command("resolve")
@click.argument("issue_id", type=int)
@click.pass_context
def resolve_issue(ctx, issue_id: int):
    """Mark an issue as resolved."""
    try:
        ReconciliationService(ctx.obj["db"], ctx.obj["cache"]).resolve_issue(issue_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Resolved issue {issue_id}")


@issue_group.command("ignore")
@click.argument("issue_id", type=int)
@click.pass_context
def ignore_issue(ctx, issue_id: int):
    """Mark an issue as ignored."""
    try:
        ReconciliationService(ctx.obj["db"], ctx.obj["cache"]).ignore_issue(issue_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Ignored issue {issue_id}")


def register_commands(cli):
    """Register issue commands with main CLI."""
    cli.add_command(issue_group, name="issue")
