"""Smart match suggestion command."""

import click

from bankrec.cli.error_handling import handle_domain_error
from bankrec.cli.record_loading import format_record, load_records
from bankrec.cli.settings_options import resolve_cli_settings, settings_options
from bankrec.domain.entities import BANK_SIDE, GL_SIDE, Suggestion
from bankrec.domain.errors import DomainError
from bankrec.domain.learning import LearningService
from bankrec.domain.session import ReconciliationSession


def echo_suggestions(suggestions: list[Suggestion]) -> None:
    """Print a numbered list of suggestions with their reason chips."""
    if not suggestions:
        click.echo("No suggestions found.")
        return

    click.echo("\nSuggestions:")
    click.echo("-" * 80)
    for idx, suggestion in enumerate(suggestions):
        label = "split" if suggestion.is_split else "match"
        click.echo(f"[{idx}] {suggestion.score:.0%} ({label})")
        for item in suggestion.target_items:
            click.echo(f"      {format_record(item)}")
        for reason in suggestion.reasons:
            click.echo(f"      {reason.icon} {reason.text} [{reason.strength}]")


@click.command("suggest")
@click.argument("bank_file", type=click.Path(exists=True, dir_okay=False))
@click.argument("gl_file", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--side",
    type=click.Choice([BANK_SIDE, GL_SIDE]),
    default=BANK_SIDE,
    show_default=True,
    help="Side of the unmatched record to find a partner for",
)
@click.option("--index", "item_index", type=int, required=True, help="Index of the unmatched record")
@click.option("--accept", "accept_index", type=int, help="Accept the suggestion with this number")
@click.option("--deny", "deny_index", type=int, help="Deny the suggestion with this number")
@settings_options
@click.pass_context
def suggest(
    ctx,
    bank_file: str,
    gl_file: str,
    side: str,
    item_index: int,
    accept_index: int | None,
    deny_index: int | None,
    date_range: int,
    tolerance: str,
):
    """Rank smart match candidates for one unmatched record.

    The automatic matcher runs first; INDEX refers to the unmatched list it
    leaves behind (as printed by "bankrec reconcile"). Accepting or denying a
    suggestion is remembered and biases future suggestions.

    Examples:
        bankrec suggest statement.csv ledger.csv --index 0
        bankrec suggest statement.csv ledger.csv --side gl --index 2 --accept 0
    """
    if accept_index is not None and deny_index is not None:
        click.echo("Error: --accept and --deny cannot be combined.", err=True)
        ctx.exit(1)

    settings = resolve_cli_settings(ctx, date_range=date_range, tolerance=tolerance)
    learning = LearningService(ctx.obj["store"], ctx.obj["profile"])
    bank_transactions, gl_entries = load_records(ctx, bank_file, gl_file)
    session = ReconciliationSession.from_records(
        bank_transactions, gl_entries, settings=settings, learning=learning
    )

    try:
        suggestions = session.suggest(side, item_index)
    except DomainError as e:
        handle_domain_error(ctx, e)

    unmatched = session.unmatched_bank if side == BANK_SIDE else session.unmatched_gl
    source = unmatched[item_index]
    click.echo(f"\nSource ({side} {item_index}): {format_record(source)}")
    echo_suggestions(suggestions)

    try:
        if accept_index is not None:
            match = session.accept_suggestion(accept_index)
            click.echo(f"\nAccepted: {match.match_type} ({match.match_score:.0%})")
        elif deny_index is not None:
            session.deny_suggestion(deny_index)
            click.echo(f"\nDenied suggestion {deny_index}")
    except DomainError as e:
        handle_domain_error(ctx, e)


def register_commands(cli):
    """Register suggest command with main CLI."""
    cli.add_command(suggest)
