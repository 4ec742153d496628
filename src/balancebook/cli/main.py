"""Main CLI entry point."""

import logging
from pathlib import Path

import click
from balancebook.config import load_config
from balancebook.database.factories import create_sqlite_database
from balancebook.domain.cache import LedgerCache
from balancebook.utils.logging_config import setup_logging

# Import and register all commands at module level
from balancebook.cli.commands import (
    account,
    balance,
    snapshot,
    reconcile,
    issue,
    import_cmd,
    batch,
)


@click.group()
@click.option(
    "--db-path",
    type=click.Path(),
    help="Path to database file (overrides BALANCEBOOK_DB_PATH environment variable)",
    envvar="BALANCEBOOK_DB_PATH",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False),
    help="Path to YAML configuration file",
    envvar="BALANCEBOOK_CONFIG",
)
@click.option("-v", "--verbose", is_flag=True, help="Log progress to stderr")
@click.pass_context
def cli(ctx, db_path: str | None, config_path: str | None, verbose: bool):
    """Balancebook - snapshot-reconciled personal ledger.

    Track account balances through periodic snapshots, find drift between
    snapshots and recorded transactions, and bulk-import transactions
    without duplicates.
    """
    ctx.ensure_object(dict)

    config = load_config(Path(config_path) if config_path else None)
    level = logging.DEBUG if verbose else getattr(logging, config.logging.level.upper(), logging.WARNING)
    setup_logging(
        level=level,
        log_file=Path(config.logging.file) if config.logging.file else None,
        log_format=config.logging.format,
    )
    ctx.obj["config"] = config

    # Initialize database connection only when actually running a command
    # (not when showing help)
    if ctx.invoked_subcommand is not None:
        db = create_sqlite_database(database_path=db_path or config.database.path)
        db.connect()
        db.initialize_schema()
        ctx.obj["db"] = db
        ctx.obj["cache"] = LedgerCache(db, config)
        ctx.call_on_close(db.disconnect)


# Register all commands
account.register_commands(cli)
balance.register_commands(cli)
snapshot.register_commands(cli)
reconcile.register_commands(cli)
issue.register_commands(cli)
import_cmd.register_commands(cli)
batch.register_commands(cli)


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
