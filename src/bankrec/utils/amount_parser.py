"""Amount parsing utilities."""

import logging
import math
import re
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Optional

log = logging.getLogger(__name__)

ZERO = Decimal("0")
CENTS = Decimal("0.01")

# Cell values that mean "no amount"
EMPTY_AMOUNT_VALUES = {"", "zero", "none", "n/a", "na", "null", "-", "--"}

ONES = {
    "zero": 0,
    "one": 1,
    "two": 2,
    "three": 3,
    "four": 4,
    "five": 5,
    "six": 6,
    "seven": 7,
    "eight": 8,
    "nine": 9,
    "ten": 10,
    "eleven": 11,
    "twelve": 12,
    "thirteen": 13,
    "fourteen": 14,
    "fifteen": 15,
    "sixteen": 16,
    "seventeen": 17,
    "eighteen": 18,
    "nineteen": 19,
}

TENS = {
    "twenty": 20,
    "thirty": 30,
    "forty": 40,
    "fourty": 40,  # common misspelling
    "fifty": 50,
    "sixty": 60,
    "seventy": 70,
    "eighty": 80,
    "ninety": 90,
}

SCALES = {
    "hundred": 100,
    "thousand": 1_000,
    "million": 1_000_000,
    "billion": 1_000_000_000,
    "trillion": 1_000_000_000_000,
}

ORDINALS = {
    "first": 1,
    "second": 2,
    "third": 3,
    "fourth": 4,
    "fifth": 5,
    "sixth": 6,
    "seventh": 7,
    "eighth": 8,
    "ninth": 9,
    "tenth": 10,
    "eleventh": 11,
    "twelfth": 12,
    "thirteenth": 13,
    "fourteenth": 14,
    "fifteenth": 15,
    "sixteenth": 16,
    "seventeenth": 17,
    "eighteenth": 18,
    "nineteenth": 19,
    "twentieth": 20,
    "thirtieth": 30,
    "fortieth": 40,
    "fiftieth": 50,
    "sixtieth": 60,
    "seventieth": 70,
    "eightieth": 80,
    "ninetieth": 90,
    "hundredth": 100,
    "thousandth": 1_000,
    "millionth": 1_000_000,
}

_CURRENCY_SYMBOLS = re.compile(r"[$€£¥₹]")
_NUMBER_WORDS = tuple(ONES) + tuple(TENS) + tuple(SCALES)
_NUMERIC_ORDINAL = re.compile(r"^(\d+)(?:st|nd|rd|th)$")


def parse_text_number(text: Optional[str]) -> Optional[Decimal]:
    """Parse a spelled-out number into a Decimal.

    Handles:
    - "one thousand five hundred" -> 1500
    - "twenty-one" -> 21
    - "fifth", "21st" -> 5, 21
    - "negative forty two" / "minus ..." / "-..." -> negative values
    - "1,500" -> 1500 (plain numeric strings)

    Scale words above a hundred multiply the running subtotal and commit it
    to the result before parsing continues.

    Args:
        text: Text to parse

    Returns:
        Decimal value, or None if no number words were recognized
    """
    if not text or not isinstance(text, str):
        return None

    normalized = text.lower().strip()

    is_negative = normalized.startswith(("negative ", "minus ", "-"))
    if is_negative:
        normalized = re.sub(r"^(?:negative\s+|minus\s+|-\s*)", "", normalized)

    if re.fullmatch(r"[\d.,]+", normalized):
        try:
            value = Decimal(normalized.replace(",", ""))
        except InvalidOperation:
            return None
        return -value if is_negative else value

    # Filler words never change the value
    normalized = re.sub(r"\band\b|\bdollars?\b|\bcents?\b", "", normalized)
    normalized = re.sub(r"[,\-]", " ", normalized)
    normalized = re.sub(r"\s+", " ", normalized).strip()

    if normalized in ORDINALS:
        value = Decimal(ORDINALS[normalized])
        return -value if is_negative else value

    words = normalized.split()
    if not words:
        return None

    result = 0
    current = 0
    found_number = False

    for word in words:
        if word in ONES:
            current += ONES[word]
        elif word in TENS:
            current += TENS[word]
        elif word == "hundred":
            current = 100 if current == 0 else current * 100
        elif word in SCALES:
            if current == 0:
                current = 1
            result += current * SCALES[word]
            current = 0
        elif _NUMERIC_ORDINAL.match(word):
            current += int(_NUMERIC_ORDINAL.match(word).group(1))
        elif word.isdigit():
            current += int(word)
        else:
            continue
        found_number = True

    if not found_number:
        return None

    value = Decimal(result + current)
    return -value if is_negative else value


def contains_text_numbers(text: Optional[str]) -> bool:
    """Return True if the text contains any spelled-out number word."""
    if not text or not isinstance(text, str):
        return False
    lower = text.lower()
    return any(re.search(rf"\b{word}\b", lower) for word in _NUMBER_WORDS)


def _normalize_separators(text: str) -> str:
    """Reduce thousands/decimal separators to a plain dotted decimal string.

    Whichever of "." and "," occurs last is the decimal separator. A string
    with commas only treats a single comma followed by exactly two digits as
    a decimal comma, and every other comma as a thousands separator.
    Several dots and no comma mean dot thousands separators ("1.234.567").
    """
    dot_pos = text.rfind(".")
    comma_pos = text.rfind(",")

    if comma_pos > dot_pos:
        if dot_pos == -1:
            tail = text.rsplit(",", 1)[1]
            if text.count(",") == 1 and len(re.sub(r"\D", "", tail)) == 2:
                return text.replace(",", ".")
            return text.replace(",", "")
        return text.replace(".", "").replace(",", ".")
    if dot_pos > comma_pos:
        if comma_pos == -1 and text.count(".") > 1:
            return text.replace(".", "")
        return text.replace(",", "")
    return text


def parse_amount(value: Any) -> Decimal:
    """Parse an amount cell into a Decimal.

    Handles various formats:
    - "123.45", "$123.45", "-$123.45"
    - "1,234.56" (US) and "1.234,56" / "1 234,56" (European)
    - "(123.45)" (accounting negative)
    - "--123.45" (an odd number of minus signs is negative)
    - "one thousand two hundred" (spelled-out numbers)

    Unparseable input never raises; it logs a warning and returns zero so a
    single bad cell cannot abort a whole import.

    Args:
        value: Raw cell value (string, number, or blank)

    Returns:
        Decimal amount
    """
    if value is None or isinstance(value, bool):
        return ZERO
    if isinstance(value, Decimal):
        return value if value.is_finite() else ZERO
    if isinstance(value, (int, float)):
        if isinstance(value, float) and not math.isfinite(value):
            return ZERO
        return Decimal(str(value))

    text = str(value).strip()
    if text.lower() in EMPTY_AMOUNT_VALUES:
        return ZERO

    if contains_text_numbers(text):
        spelled = parse_text_number(text)
        if spelled is not None:
            return spelled

    cleaned = _CURRENCY_SYMBOLS.sub("", text)
    cleaned = re.sub(r"\s+", "", cleaned)

    has_parentheses = cleaned.startswith("(") and cleaned.endswith(")")
    if has_parentheses:
        cleaned = cleaned[1:-1]

    cleaned = _normalize_separators(cleaned)
    cleaned = re.sub(r"[^0-9.\-]", "", cleaned)

    is_negative = cleaned.count("-") % 2 == 1
    cleaned = cleaned.replace("-", "")

    try:
        amount = Decimal(cleaned)
    except InvalidOperation:
        log.warning("Could not parse amount %r (cleaned to %r)", value, cleaned)
        return ZERO

    if is_negative or has_parentheses:
        amount = -abs(amount)
    return amount


def to_money(value: Any) -> Decimal:
    """Parse a value and round it to whole cents."""
    return parse_amount(value).quantize(CENTS, rounding=ROUND_HALF_UP)


def format_currency(value: Any) -> str:
    """Format an amount as US currency, e.g. "$1,234.56" or "-$5.00"."""
    amount = to_money(value)
    sign = "-" if amount < 0 else ""
    return f"{sign}${abs(amount):,.2f}"
