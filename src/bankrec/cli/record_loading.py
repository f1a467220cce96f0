"""CLI helpers for loading bank and GL files into records."""

import click

from bankrec.cli.error_handling import handle_domain_error
from bankrec.domain.entities import BankTransaction, GLEntry, Record
from bankrec.domain.errors import DomainError
from bankrec.domain.records import build_bank_transactions, build_gl_entries
from bankrec.io.readers import read_rows
from bankrec.utils.amount_parser import format_currency
from bankrec.utils.date_parser import format_date


def load_records(ctx, bank_file: str, gl_file: str) -> tuple[list[BankTransaction], list[GLEntry]]:
    """Read both files and build canonical records, exiting on unreadable input."""
    try:
        bank_transactions = build_bank_transactions(read_rows(bank_file))
        gl_entries = build_gl_entries(read_rows(gl_file))
    except (DomainError, OSError) as e:
        handle_domain_error(ctx, e)

    if not bank_transactions:
        click.echo(f"Warning: no bank transactions found in {bank_file}", err=True)
    if not gl_entries:
        click.echo(f"Warning: no GL entries found in {gl_file}", err=True)
    return bank_transactions, gl_entries


def format_record(record: Record) -> str:
    """One-line rendering of a bank transaction or GL entry."""
    if isinstance(record, BankTransaction):
        reference = f" #{record.check_number}" if record.check_number else ""
        direction = "DR" if record.is_debit else "CR"
        return (
            f"{format_date(record.date) or '-':10s} | {record.description[:40]:40s} | "
            f"{format_currency(record.amount):>12s} {direction}{reference}"
        )
    return (
        f"{record.account_number[:14]:14s} | {record.description[:40]:40s} | "
        f"{format_currency(record.amount):>12s}"
    )
