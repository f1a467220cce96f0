"""Main CLI entry point."""

import logging

import click
from bankrec.database.factories import create_sqlite_store
from bankrec.domain.learning import DEFAULT_PROFILE

# Import and register all commands at module level
from bankrec.cli.commands import (
    reconcile,
    inspect,
    suggest,
    learning,
)


@click.group()
@click.option(
    "--db-path",
    type=click.Path(),
    help="Path to learning database file (overrides BANKREC_DB_PATH environment variable)",
    envvar="BANKREC_DB_PATH",
)
@click.option(
    "--profile",
    default=DEFAULT_PROFILE,
    show_default=True,
    envvar="BANKREC_PROFILE",
    help="Learning profile that smart match feedback is stored under",
)
@click.option("-v", "--verbose", count=True, help="Increase log output (-v info, -vv debug)")
@click.pass_context
def cli(ctx, db_path: str | None, profile: str, verbose: int):
    """Bankrec - Bank to general ledger reconciliation.

    Reads bank statements and GL exports in CSV or Excel form, matches them
    automatically and helps resolve the rest with smart match suggestions
    that learn from what you accept and deny.
    """
    level = logging.WARNING
    if verbose == 1:
        level = logging.INFO
    elif verbose > 1:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")

    ctx.ensure_object(dict)
    ctx.obj["profile"] = profile

    # Initialize learning store only when actually running a command
    # (not when showing help)
    if ctx.invoked_subcommand is not None:
        store = create_sqlite_store(database_path=db_path)
        store.connect()
        store.initialize_schema()
        ctx.obj["store"] = store


# Register all commands
reconcile.register_commands(cli)
inspect.register_commands(cli)
suggest.register_commands(cli)
learning.register_commands(cli)


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
