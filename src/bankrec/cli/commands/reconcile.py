"""Reconciliation command."""

import click

from bankrec.cli.error_handling import handle_domain_error
from bankrec.cli.record_loading import format_record, load_records
from bankrec.cli.settings_options import resolve_cli_settings, settings_options
from bankrec.cli.commands.suggest import echo_suggestions
from bankrec.domain.entities import BANK_SIDE
from bankrec.domain.errors import DomainError
from bankrec.domain.learning import LearningService
from bankrec.domain.session import ReconciliationSession
from bankrec.io.export import export_csv_reports, export_workbook
from bankrec.utils.amount_parser import format_currency


def review_unmatched_bank(session: ReconciliationSession) -> None:
    """Walk the unmatched bank transactions and act on smart match suggestions."""
    position = 0
    while position < len(session.unmatched_bank):
        suggestions = session.suggest(BANK_SIDE, position)
        if not suggestions:
            position += 1
            continue

        click.echo(f"\nUnmatched bank {position}: {format_record(session.unmatched_bank[position])}")
        echo_suggestions(suggestions)

        while True:
            choice = click.prompt(
                "Accept [N], deny [dN], skip [s] or quit [q]", default="s"
            ).strip().lower()
            if choice == "q":
                return
            if choice == "s":
                position += 1
                break
            try:
                if choice.isdigit():
                    match = session.accept_suggestion(int(choice))
                    click.echo(f"Accepted: {match.match_type}")
                    break
                if choice.startswith("d") and choice[1:].isdigit():
                    session.deny_suggestion(int(choice[1:]))
                    if not session.suggestions:
                        position += 1
                        break
                    echo_suggestions(session.suggestions)
                    continue
            except DomainError as e:
                click.echo(f"Error: {e}", err=True)
                continue
            click.echo(f"Unknown choice '{choice}'")


@click.command("reconcile")
@click.argument("bank_file", type=click.Path(exists=True, dir_okay=False))
@click.argument("gl_file", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--output-dir",
    type=click.Path(file_okay=False),
    help="Write matched / unmatched CSV files into this directory",
)
@click.option("--xlsx", "xlsx_path", type=click.Path(dir_okay=False), help="Write an Excel report")
@click.option(
    "--interactive",
    is_flag=True,
    help="Review smart match suggestions for unmatched bank transactions",
)
@settings_options
@click.pass_context
def reconcile(
    ctx,
    bank_file: str,
    gl_file: str,
    output_dir: str | None,
    xlsx_path: str | None,
    interactive: bool,
    date_range: int,
    tolerance: str,
):
    """Reconcile a bank statement against a GL export.

    Examples:
        bankrec reconcile statement.csv ledger.xlsx
        bankrec reconcile statement.csv ledger.csv --tolerance 0.01 --output-dir out
        bankrec reconcile statement.csv ledger.csv --interactive
    """
    settings = resolve_cli_settings(ctx, date_range=date_range, tolerance=tolerance)
    learning = LearningService(ctx.obj["store"], ctx.obj["profile"])
    bank_transactions, gl_entries = load_records(ctx, bank_file, gl_file)
    session = ReconciliationSession.from_records(
        bank_transactions, gl_entries, settings=settings, learning=learning
    )

    if interactive:
        review_unmatched_bank(session)

    summary = session.summary()
    click.echo("\nReconciliation complete:")
    click.echo(
        f"  Matched: {summary.total_matched} ({format_currency(summary.total_matched_amount)})"
    )
    click.echo(
        f"  Unmatched bank: {summary.total_unmatched_bank} "
        f"({format_currency(summary.total_unmatched_bank_amount)})"
    )
    click.echo(
        f"  Unmatched GL: {summary.total_unmatched_gl} "
        f"({format_currency(summary.total_unmatched_gl_amount)})"
    )

    if session.matched:
        click.echo("\nMatched:")
        click.echo("-" * 80)
        for match in session.matched:
            click.echo(
                f"  {format_record(match.bank_transaction)}  <->  "
                f"{match.gl_entry.account_number} [{match.match_type}, {match.match_score:.0%}]"
            )
    if session.unmatched_bank:
        click.echo("\nUnmatched bank:")
        click.echo("-" * 80)
        for idx, tx in enumerate(session.unmatched_bank):
            click.echo(f"  [{idx}] {format_record(tx)}")
    if session.unmatched_gl:
        click.echo("\nUnmatched GL:")
        click.echo("-" * 80)
        for idx, entry in enumerate(session.unmatched_gl):
            click.echo(f"  [{idx}] {format_record(entry)}")

    try:
        if output_dir:
            paths = export_csv_reports(session.result(), output_dir)
            click.echo(f"\nWrote {', '.join(p.name for p in paths)} to {output_dir}")
        if xlsx_path:
            export_workbook(session.result(), xlsx_path)
            click.echo(f"Wrote {xlsx_path}")
    except OSError as e:
        handle_domain_error(ctx, e)


def register_commands(cli):
    """Register reconcile command with main CLI."""
    cli.add_command(reconcile)
