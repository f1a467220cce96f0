"""Smart match learning commands."""

import click

from bankrec.domain.entities import PATTERN_DIMENSIONS
from bankrec.domain.learning import LearningService
from bankrec.utils.amount_parser import format_currency


@click.group()
def learning_group():
    """Inspect smart match learning."""
    pass


@learning_group.command("stats")
@click.option("--limit", type=int, default=10, show_default=True, help="Recent feedback entries to show")
@click.pass_context
def learning_stats(ctx, limit: int):
    """Show accept/deny totals, learned patterns and recent feedback."""
    service = LearningService(ctx.obj["store"], ctx.obj["profile"])
    record = service.load()

    click.echo(f"\nProfile: {service.identity}")
    click.echo(f"Accepted: {record.total_accepted}")
    click.echo(f"Denied: {record.total_denied}")
    if record.last_updated is not None:
        click.echo(f"Last updated: {record.last_updated:%Y-%m-%d %H:%M}")

    click.echo("\nPatterns:")
    for dimension in PATTERN_DIMENSIONS:
        count = sum(len(targets) for targets in record.patterns.get(dimension, {}).values())
        click.echo(f"  {dimension:20s} {count}")

    if not record.feedback_log:
        click.echo("\nNo feedback recorded yet.")
        return

    click.echo("\nRecent feedback:")
    click.echo("-" * 80)
    for entry in reversed(record.feedback_log[-limit:]):
        click.echo(
            f"  {entry.timestamp:%Y-%m-%d} | {entry.action:8s} | {entry.bank_description[:30]:30s} | "
            f"{format_currency(entry.bank_amount):>12s} -> {entry.gl_account} ({entry.score:.0%})"
        )


def register_commands(cli):
    """Register learning commands with main CLI."""
    cli.add_command(learning_group, name="learning")
