"""File inspection command."""

import click

from bankrec.cli.error_handling import handle_domain_error
from bankrec.cli.record_loading import format_record
from bankrec.domain.entities import BANK_SIDE, GL_SIDE
from bankrec.domain.errors import DomainError
from bankrec.domain.records import build_bank_transactions, build_gl_entries
from bankrec.domain.schema import detect_layout
from bankrec.io.readers import read_rows


@click.command("inspect")
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--kind",
    type=click.Choice([BANK_SIDE, GL_SIDE]),
    default=BANK_SIDE,
    show_default=True,
    help="Whether FILE is a bank statement or a GL export",
)
@click.option("--limit", type=int, default=5, show_default=True, help="Records to preview")
@click.pass_context
def inspect_file(ctx, file: str, kind: str, limit: int):
    """Show the layout detected in a bank or GL file.

    Examples:
        bankrec inspect statement.csv
        bankrec inspect ledger.xlsx --kind gl
    """
    try:
        rows = read_rows(file)
        layout = detect_layout(rows, kind)
    except (DomainError, OSError) as e:
        handle_domain_error(ctx, e)

    click.echo(f"\nFile: {file}")
    click.echo(f"Rows: {len(rows)}")
    click.echo(f"Layout: {layout.layout}")
    if layout.start_index:
        click.echo(f"Metadata rows skipped: {layout.start_index}")
    if layout.header_index >= 0:
        click.echo(f"Header row: {layout.header_index + 1}")
    if layout.column_map is not None:
        click.echo("\nColumns:")
        click.echo("-" * 40)
        for role, idx in layout.column_map.as_dict().items():
            if idx >= 0:
                click.echo(f"  {role:20s} -> {layout.headers[idx]} (column {idx + 1})")

    if kind == BANK_SIDE:
        records = build_bank_transactions(rows)
    else:
        records = build_gl_entries(rows)

    click.echo(f"\nRecords: {len(records)}")
    for record in records[:limit]:
        click.echo(f"  {format_record(record)}")


def register_commands(cli):
    """Register inspect command with main CLI."""
    cli.add_command(inspect_file)
