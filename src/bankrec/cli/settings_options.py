"""CLI helpers for scoring settings."""

from decimal import Decimal, InvalidOperation

import click

from bankrec.domain.entities import ReconcileSettings
from bankrec.domain.errors import ValidationError


def settings_options(command):
    """Add --date-range and --tolerance options to a command."""
    command = click.option(
        "--tolerance",
        default="0.00",
        show_default=True,
        envvar="BANKREC_AMOUNT_TOLERANCE",
        help="Amount difference still treated as an exact match",
    )(command)
    command = click.option(
        "--date-range",
        type=click.IntRange(0, 30),
        default=3,
        show_default=True,
        envvar="BANKREC_DATE_RANGE",
        help="Date window in days used when scoring matches (0-30)",
    )(command)
    return command


def resolve_cli_settings(ctx, *, date_range: int, tolerance: str) -> ReconcileSettings:
    """Build ReconcileSettings from CLI option values, exiting on bad input."""
    try:
        amount_tolerance = Decimal(tolerance)
    except InvalidOperation:
        click.echo(f"Error: Invalid tolerance '{tolerance}'", err=True)
        ctx.exit(1)

    try:
        return ReconcileSettings(date_range=date_range, amount_tolerance=amount_tolerance)
    except ValidationError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)
