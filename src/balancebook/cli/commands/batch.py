"""Import batch commands."""

import click
from balancebook.cli.error_handling import handle_domain_error
from balancebook.domain.csv_import import ImportService
from balancebook.domain.errors import DomainError


@click.group()
def batch_group():
    """Inspect and roll back import batches."""
    pass


@batch_group.command("list")
@click.pass_context
def list_batches(ctx):
    """List import batches, newest first."""
    batches = ImportService(ctx.obj["db"], ctx.obj["cache"]).list_batches()
    if not batches:
        click.echo("No import batches found.")
        return

    click.echo("\nImport batches:")
    click.echo("-" * 90)
    for b in batches:
        created = f"{b.created_at:%Y-%m-%d %H:%M}" if b.created_at else ""
        click.echo(
            f"ID: {b.id:3d} | {created} | {b.filename or '':20s} | {b.status.value:11s} | "
            f"rows {b.total_rows}, valid {b.valid_count}, duplicate {b.duplicate_count}, "
            f"invalid {b.invalid_count}, uploaded {b.uploaded_count}"
        )


@batch_group.command("show")
@click.argument("batch_id", type=int)
@click.pass_context
def show_batch(ctx, batch_id: int):
    """Show the problem rows of a batch."""
    try:
        b = ImportService(ctx.obj["db"], ctx.obj["cache"]).get_batch(batch_id)
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo(f"Batch {b.id} ({b.status.value}): {b.filename or ''}")
    click.echo(f"  Transactions: {len(b.transaction_ids)}")
    click.echo(f"  Uploaded rows: {len(b.rows_valid_uploaded) + len(b.rows_duplicate_uploaded)}")
    click.echo(f"  Skipped rows: {len(b.rows_valid_skipped) + len(b.rows_duplicate_skipped)}")
    click.echo(f"  Error rows: {len(b.rows_error)}")
    for error in b.rows_error:
        click.echo(f"    Row {error['row'].get('row')}: {error['message']}")


@batch_group.command("rollback")
@click.argument("batch_id", type=int)
@click.option("--yes", "-y", is_flag=True, help="Roll back without asking for confirmation")
@click.pass_context
def rollback_batch(ctx, batch_id: int, yes: bool):
    """Delete every transaction an import batch created."""
    service = ImportService(ctx.obj["db"], ctx.obj["cache"])
    if not yes and not click.confirm(f"Roll back import batch {batch_id}?"):
        click.echo("Rollback cancelled.")
        return

    try:
        result = service.rollback(batch_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(
        f"Rolled back batch {batch_id}: {result.deleted_count} deleted, "
        f"{result.skipped_count} already gone"
    )


def register_commands(cli):
    """Register batch commands with main CLI."""
    cli.add_command(batch_group, name="batch")
