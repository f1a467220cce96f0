"""Date parsing utilities."""

import logging
import re
from datetime import date, datetime, timedelta
from typing import Any, Optional

from dateutil import parser as date_parser

log = logging.getLogger(__name__)

# Excel's day zero; absorbs the phantom 1900-02-29 for every serial after it.
EXCEL_EPOCH = date(1899, 12, 30)
EXCEL_SERIAL_MIN = 30000
EXCEL_SERIAL_MAX = 60000

_SLASH_DATE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{2,4})$")
_ISO_DATE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")
_DASH_DATE = re.compile(r"^(\d{1,2})-(\d{1,2})-(\d{2,4})$")
_TIMESTAMP_DATE = re.compile(r"^(\d{4})(\d{2})(\d{2})")


def is_valid_date(value: Any) -> bool:
    """Check whether a cell holds a date in one of the accepted shapes.

    Accepts date objects and strings shaped like M/D/YY[YY], YYYY-MM-DD or
    M-D-YY[YY]. Everything else (including bare numbers) is rejected.
    """
    if isinstance(value, (date, datetime)):
        return True
    if value is None:
        return False
    text = str(value).strip()
    if not text:
        return False
    return any(p.match(text) for p in (_SLASH_DATE, _ISO_DATE, _DASH_DATE))


def _expand_year(year: str) -> int:
    """Expand two-digit years: 51-99 -> 19xx, 00-50 -> 20xx."""
    value = int(year)
    if len(year) <= 2:
        return value + 1900 if value > 50 else value + 2000
    return value


def _build_date(year: int, month: int, day: int, raw: Any) -> Optional[date]:
    try:
        return date(year, month, day)
    except ValueError:
        log.debug("Discarding impossible date %r", raw)
        return None


def parse_date(value: Any) -> Optional[date]:
    """Parse a date cell into a date object.

    Supports:
    - date/datetime objects (returned as a date)
    - "MM/DD/YYYY" and "M/D/YY"
    - "YYYY-MM-DD"
    - "MM-DD-YYYY"
    - anything else dateutil understands

    Args:
        value: Raw cell value

    Returns:
        Date object, or None if the value cannot be read as a date
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    text = str(value).strip()
    if not text:
        return None

    match = _SLASH_DATE.match(text) or _DASH_DATE.match(text)
    if match:
        month, day, year = match.groups()
        return _build_date(_expand_year(year), int(month), int(day), value)

    match = _ISO_DATE.match(text)
    if match:
        year, month, day = match.groups()
        return _build_date(int(year), int(month), int(day), value)

    try:
        return date_parser.parse(text).date()
    except (ValueError, OverflowError) as e:
        log.debug("Could not parse date %r: %s", value, e)
        return None


def parse_excel_serial_date(value: Any) -> Optional[date]:
    """Parse a cell that may hold an Excel serial day number.

    Date-shaped strings are parsed as dates. Numbers in [30000, 60000) are
    days since 1899-12-30; smaller numbers are amounts, not dates.

    Args:
        value: Raw cell value

    Returns:
        Date object or None
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (date, datetime)):
        return parse_date(value)

    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if is_valid_date(text):
            return parse_date(text)
        try:
            value = float(text)
        except ValueError:
            return None

    if isinstance(value, (int, float)) and EXCEL_SERIAL_MIN <= value < EXCEL_SERIAL_MAX:
        return EXCEL_EPOCH + timedelta(days=int(value))

    return None


def parse_timestamp_date(value: Any) -> Optional[date]:
    """Parse the date part of a bank timestamp such as "20251205000000[-5:EST]"."""
    match = _TIMESTAMP_DATE.match(str(value or "").strip())
    if not match:
        return None
    year, month, day = (int(part) for part in match.groups())
    return _build_date(year, month, day, value)


def format_date(value: Optional[date]) -> str:
    """Format a date as MM/DD/YYYY (empty string for None)."""
    if value is None:
        return ""
    return value.strftime("%m/%d/%Y")
