"""Schema detection and column mapping for raw bank and GL rows.

Rows arrive as plain cell sequences with no assumed header. Detection skips
leading metadata lines, recognises the timestamp-coded headerless bank
export, looks for a header row, and classifies header cells into semantic
roles through ordered rule tables. The first rule that matches a header cell
wins, so rule order is part of the behaviour.
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Optional, Sequence

from bankrec.domain.entities import BANK_SIDE, GL_SIDE
from bankrec.domain.errors import ValidationError, invalid_side

log = logging.getLogger(__name__)

MAX_METADATA_ROWS = 10
MAX_HEADER_SCAN_ROWS = 20
METADATA_KEYWORDS = ("account", "date range", "report", "statement")

LAYOUT_HEADER = "header"
LAYOUT_CHECK_REGISTER = "check-register"
LAYOUT_TIMESTAMP = "timestamp-coded"
LAYOUT_DATA_ONLY = "data-only"
LAYOUT_NONE = "none"

_TIMESTAMP_CELL = re.compile(r"^\d{14}\[")

Row = Sequence[Any]


def _has(*words: str) -> Callable[[str], bool]:
    return lambda h: all(word in h for word in words)


def _is(*values: str) -> Callable[[str], bool]:
    return lambda h: h in values


def _either(*predicates: Callable[[str], bool]) -> Callable[[str], bool]:
    return lambda h: any(p(h) for p in predicates)


@dataclass(frozen=True)
class ColumnRule:
    """Assign ``role`` to a header cell for which ``matches`` is true.

    Attributes:
        role: Semantic role name
        matches: Predicate over the lowercased, stripped header text
        first_only: Skip this rule once the role is already assigned
        overflow_role: Role that receives later matches once ``role`` is taken
    """

    role: str
    matches: Callable[[str], bool]
    first_only: bool = False
    overflow_role: Optional[str] = None


BANK_COLUMN_RULES: tuple[ColumnRule, ...] = (
    ColumnRule("date", lambda h: "date" in h and "update" not in h),
    ColumnRule("transaction_number", _has("transaction", "number")),
    ColumnRule("description", _either(_is("description"), _has("desc"))),
    ColumnRule("memo", _either(_is("memo"), _has("note"), _has("comment"))),
    ColumnRule("debit", _either(_has("debit"), _is("dr"), _has("withdrawal"))),
    ColumnRule("credit", _either(_has("credit"), _is("cr"), _has("deposit"))),
    ColumnRule("amount", _is("amount", "amt")),
    ColumnRule("balance", _either(_has("balance"), _is("bal"))),
    ColumnRule("check_number", _has("check", "number")),
    ColumnRule("fees", _either(_has("fee"), _has("charge"))),
)

GL_COLUMN_RULES: tuple[ColumnRule, ...] = (
    ColumnRule(
        "account_number",
        _either(_has("account", "number"), _is("account no", "acct no", "account #")),
    ),
    ColumnRule(
        "account_description",
        _is("account description", "acct desc", "checking account", "account name"),
    ),
    ColumnRule("description", _is("description", "desc", "name"), overflow_role="gl_description"),
    ColumnRule("type", _is("type"), first_only=True),
    ColumnRule("transaction_type", _is("transaction type", "trans type", "txn type")),
    ColumnRule("date", _is("date", "trans date", "transaction date")),
    ColumnRule("ref_ledger", _is("ref ledger", "ledger")),
    ColumnRule("ref_number", _is("ref number", "ref num", "reference", "ref #")),
    ColumnRule("begin_balance", _has("begin", "balance")),
    ColumnRule("ending_balance", _either(_has("end", "balance"), _is("ending balance"))),
    ColumnRule("balance", _is("balance", "bal")),
    ColumnRule("debit", _is("debit", "dr", "debits")),
    ColumnRule("credit", _is("credit", "cr", "credits")),
    ColumnRule("adjustment", _is("adjustment", "adj", "adjustments")),
    ColumnRule("debit_minus_credit", _has("debit", "credit")),
    ColumnRule("amount", _is("amount", "amt")),
    ColumnRule("net_amount", _is("net amount", "net amt")),
    ColumnRule("check_number", _is("check #", "check number", "chk #", "check num")),
    ColumnRule("check_date", _is("check date", "chk date")),
    ColumnRule("vendor", _is("vendor", "vendor code", "vend")),
    ColumnRule("vendor_name", _is("vendor name", "payee", "pay to")),
    ColumnRule("void_amount", _is("void amount", "void amt")),
    ColumnRule("reconciled_date", _is("reconciled date", "recon date")),
)


def _roles(rules: Sequence[ColumnRule]) -> list[str]:
    roles = []
    for rule in rules:
        for role in (rule.role, rule.overflow_role):
            if role and role not in roles:
                roles.append(role)
    return roles


BANK_ROLES = _roles(BANK_COLUMN_RULES)
GL_ROLES = _roles(GL_COLUMN_RULES)


class ColumnMap:
    """Mapping from semantic role name to column index (-1 when absent)."""

    def __init__(self, roles: Sequence[str]):
        self._indices = {role: -1 for role in roles}

    def __getitem__(self, role: str) -> int:
        return self._indices.get(role, -1)

    def __setitem__(self, role: str, index: int) -> None:
        self._indices[role] = index

    def __repr__(self) -> str:
        found = {role: idx for role, idx in self._indices.items() if idx >= 0}
        return f"ColumnMap({found})"

    def has(self, role: str) -> bool:
        """Return True if the role was resolved to a column."""
        return self[role] >= 0

    def cell(self, row: Row, role: str) -> Any:
        """Return the raw cell for a role, or None if absent or out of range."""
        idx = self[role]
        if 0 <= idx < len(row):
            return row[idx]
        return None

    def text(self, row: Row, role: str) -> str:
        """Return the stripped text of a role's cell ("" when blank)."""
        value = self.cell(row, role)
        return "" if value is None else str(value).strip()

    def as_dict(self) -> dict[str, int]:
        """Return a copy of the role -> index mapping."""
        return dict(self._indices)


def classify_columns(headers: Sequence[Any], rules: Sequence[ColumnRule]) -> ColumnMap:
    """Classify header cells into semantic roles using an ordered rule table.

    Args:
        headers: Header row cells
        rules: Ordered rule table (BANK_COLUMN_RULES or GL_COLUMN_RULES)

    Returns:
        ColumnMap for the header row
    """
    column_map = ColumnMap(_roles(rules))
    for idx, header in enumerate(headers):
        h = cell_text(header).lower()
        for rule in rules:
            if not rule.matches(h):
                continue
            if rule.first_only and column_map.has(rule.role):
                continue
            if rule.overflow_role and column_map.has(rule.role):
                column_map[rule.overflow_role] = idx
            else:
                column_map[rule.role] = idx
            break
    return column_map


def detect_bank_columns(headers: Sequence[Any]) -> ColumnMap:
    """Classify a bank header row."""
    return classify_columns(headers, BANK_COLUMN_RULES)


def detect_gl_columns(headers: Sequence[Any]) -> ColumnMap:
    """Classify a GL header row."""
    return classify_columns(headers, GL_COLUMN_RULES)


def cell_text(value: Any) -> str:
    """Return a cell as stripped text ("" for None)."""
    return "" if value is None else str(value).strip()


def populated_count(row: Row) -> int:
    """Count cells holding something other than whitespace."""
    return sum(1 for cell in row if cell_text(cell))


def is_blank_row(row: Optional[Row]) -> bool:
    return not row or populated_count(row) == 0


def skip_metadata_rows(rows: Sequence[Row]) -> int:
    """Return the index of the first row after leading metadata lines.

    Only the first MAX_METADATA_ROWS rows are considered. A metadata line has
    at most one populated cell and a first cell that is blank or mentions an
    account, date range, report or statement.
    """
    start = 0
    for i, row in enumerate(rows[:MAX_METADATA_ROWS]):
        first = cell_text(row[0] if row else "").lower()
        if populated_count(row or ()) <= 1 and (
            first == "" or any(word in first for word in METADATA_KEYWORDS)
        ):
            start = i + 1
            continue
        break
    return start


def is_timestamp_coded(row: Optional[Row]) -> bool:
    """Return True for rows of the headerless timestamp-coded bank export."""
    if not row:
        return False
    return bool(_TIMESTAMP_CELL.match(cell_text(row[0])))


def _row_text(row: Row) -> str:
    return "|".join(cell_text(cell) for cell in row).lower()


def is_bank_header(row: Row) -> bool:
    """Bank header: mentions a date and an amount, debit or credit column."""
    text = _row_text(row)
    return "date" in text and any(word in text for word in ("amount", "debit", "credit"))


def gl_header_kind(row: Row) -> Optional[str]:
    """Return which GL header shape a row looks like, or None."""
    text = _row_text(row)
    if "account" in text and any(word in text for word in ("number", "no", "description")):
        return "account"
    if "check" in text and any(word in text for word in ("vendor", "amount", "payee")):
        return "check-register"
    if any(word in text for word in ("debit", "credit")) and any(
        word in text for word in ("date", "description")
    ):
        return "debit-credit"
    return None


def find_header_row(
    rows: Sequence[Row], start: int, is_header: Callable[[Row], Any]
) -> int:
    """Scan up to MAX_HEADER_SCAN_ROWS rows from ``start`` for a header.

    Rows with fewer than three cells or at most one populated cell are never
    headers.

    Returns:
        Absolute index of the header row, or -1
    """
    for i in range(start, min(len(rows), start + MAX_HEADER_SCAN_ROWS)):
        row = rows[i]
        if not row or len(row) < 3 or populated_count(row) <= 1:
            continue
        if is_header(row):
            return i
    return -1


@dataclass(frozen=True)
class DetectedLayout:
    """What schema detection found in a set of raw rows."""

    kind: str
    layout: str
    start_index: int
    header_index: int = -1
    headers: tuple[str, ...] = ()
    column_map: Optional[ColumnMap] = None

    @property
    def data_start(self) -> int:
        """Index of the first row that may hold data."""
        if self.header_index >= 0:
            return self.header_index + 1
        return self.start_index


def detect_layout(rows: Sequence[Row], kind: str) -> DetectedLayout:
    """Detect the structure of raw bank or GL rows.

    Args:
        rows: Raw rows
        kind: BANK_SIDE or GL_SIDE

    Returns:
        DetectedLayout describing the rows

    Raises:
        ValidationError: If kind is not a known side
    """
    if kind not in (BANK_SIDE, GL_SIDE):
        raise ValidationError(invalid_side(kind))

    start = skip_metadata_rows(rows)
    if start:
        log.debug("Skipped %d metadata rows", start)

    if kind == BANK_SIDE:
        if start < len(rows) and is_timestamp_coded(rows[start]):
            log.info("Detected headerless timestamp-coded bank export")
            return DetectedLayout(kind, LAYOUT_TIMESTAMP, start)
        header_index = find_header_row(rows, start, is_bank_header)
    else:
        header_index = find_header_row(rows, start, gl_header_kind)

    if header_index == -1:
        if kind == BANK_SIDE:
            log.info("No bank header found, falling back to data-only parsing")
            return DetectedLayout(kind, LAYOUT_DATA_ONLY, start)
        log.error("Could not find header row in GL rows")
        return DetectedLayout(kind, LAYOUT_NONE, start)

    headers = tuple(cell_text(cell) for cell in rows[header_index])
    if kind == BANK_SIDE:
        column_map = detect_bank_columns(headers)
        layout = LAYOUT_HEADER
    else:
        column_map = detect_gl_columns(headers)
        if column_map.has("check_number") and column_map.has("vendor_name"):
            layout = LAYOUT_CHECK_REGISTER
        else:
            layout = LAYOUT_HEADER

    log.info("Found %s header at row %d: %s", kind, header_index, column_map)
    return DetectedLayout(kind, layout, start, header_index, headers, column_map)
