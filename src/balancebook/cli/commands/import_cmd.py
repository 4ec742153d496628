"""CSV import command."""

import click
from balancebook.cli.error_handling import handle_domain_error
from balancebook.domain.csv_import import ImportService
from balancebook.domain.errors import DomainError


@click.command("import")
@click.argument("csv_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--include-duplicates", is_flag=True, help="Also upload suspected duplicates")
@click.option("--yes", "-y", is_flag=True, help="Upload without asking for confirmation")
@click.option(
    "--problems-out",
    type=click.Path(dir_okay=False),
    help="Write invalid rows and skipped duplicates to this CSV file",
)
@click.pass_context
def import_csv(ctx, csv_file: str, include_duplicates: bool, yes: bool, problems_out: str | None):
    """Import transactions from a CSV file.

    Required columns: Date, Type, From Account, Amount, To Account.
    Optional columns: Note, Location, Project, Important, Needs Review, Nature.
    """
    db = ctx.obj["db"]
    service = ImportService(db, ctx.obj["cache"])

    try:
        prepared = service.prepare(csv_file)
    except (DomainError, FileNotFoundError) as e:
        handle_domain_error(ctx, e)

    click.echo(f"\nRows: {prepared.total_rows}")
    click.echo(f"  Valid: {len(prepared.valid)}")
    click.echo(f"  Suspected duplicates: {len(prepared.duplicates)}")
    click.echo(f"  Invalid: {len(prepared.invalid)}")
    for row in prepared.invalid:
        for error in row.errors:
            click.echo(f"    Row {error.row}: {error.field}: {error.reason} ({error.value})", err=True)
    for dup in prepared.duplicates:
        click.echo(f"    Row {dup.row}: possible duplicate of a {dup.matched_with.value} record")

    if problems_out:
        uploaded = [dup.row for dup in prepared.duplicates] if include_duplicates else []
        service.write_problem_rows(service.problem_rows(prepared, uploaded), problems_out)
        click.echo(f"Problem rows written to {problems_out}")

    upload_count = len(prepared.valid) + (len(prepared.duplicates) if include_duplicates else 0)
    if upload_count == 0:
        click.echo("Nothing to import.")
        return
    if not yes and not click.confirm(f"Upload {upload_count} row(s)?"):
        click.echo("Import cancelled.")
        return

    result = service.commit(prepared, include_duplicates=include_duplicates)
    batch = result.batch
    click.echo(f"\nImport complete (batch {batch.id}):")
    click.echo(f"  Transactions created: {batch.uploaded_count}")
    if result.outcome.errors:
        click.echo(f"  Failed rows: {len(result.outcome.errors)}")
        for failure in result.outcome.errors:
            click.echo(f"    Row {failure.row.get('row')}: {failure.message}", err=True)
    if result.nothing_committed:
        ctx.exit(1)


def register_commands(cli):
    """Register import command with main CLI."""
    cli.add_command(import_csv)
