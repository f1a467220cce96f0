"""Utility functions for bankrec."""

from bankrec.utils.date_parser import (
    parse_date,
    parse_excel_serial_date,
    is_valid_date,
    format_date,
)
from bankrec.utils.amount_parser import (
    parse_amount,
    parse_text_number,
    to_money,
    format_currency,
)

__all__ = [
    "parse_date",
    "parse_excel_serial_date",
    "is_valid_date",
    "format_date",
    "parse_amount",
    "parse_text_number",
    "to_money",
    "format_currency",
]
