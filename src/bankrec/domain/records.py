"""Build canonical bank and GL records from raw rows.

Per-row anomalies never abort a build: rows without a date, account number
or amount are skipped and logged, and unparseable cells fall back to safe
defaults.
"""

import logging
import re
from decimal import Decimal
from typing import Any, Iterable, Mapping, Optional, Sequence

from bankrec.domain.entities import ZERO, BANK_SIDE, GL_SIDE, BankTransaction, GLEntry
from bankrec.domain.schema import (
    LAYOUT_CHECK_REGISTER,
    LAYOUT_DATA_ONLY,
    LAYOUT_NONE,
    LAYOUT_TIMESTAMP,
    ColumnMap,
    cell_text,
    detect_layout,
    is_blank_row,
)
from bankrec.utils.amount_parser import parse_amount, to_money
from bankrec.utils.date_parser import (
    is_valid_date,
    parse_date,
    parse_excel_serial_date,
    parse_timestamp_date,
)

log = logging.getLogger(__name__)

# "20250131000000[-5:EST]*-18340.00*1*42144*Check Withdrawal"
EMBEDDED_CHECK_PATTERN = re.compile(r"\*(\d{4,})\*(?:Check|Chk)", re.IGNORECASE)
# "Chk: 42131", "Chk 42148", "Chk42148"
GL_CHECK_PATTERN = re.compile(r"Chk[:#]?\s*(\d+)", re.IGNORECASE)
# "PO 25-00029", "PO: 25-00029"
PO_PATTERN = re.compile(r"PO[:#]?\s*([\d-]+)", re.IGNORECASE)

EXCLUDED_GL_TRANSACTION_TYPES = {"opening balance", "expenditure"}
GL_SUMMARY_MARKERS = ("total", "report")

_NUMERIC_CELL = re.compile(r"^[\s$€£¥₹(),.\-\d]*\d[\s$€£¥₹(),.\-\d]*$")
_NON_TEXT_CELL = re.compile(r"^[\d.,$()\-\s]+$")

Row = Sequence[Any]


def extract_check_number(text: Any) -> str:
    """Extract a check number embedded in a bank reference field."""
    match = EMBEDDED_CHECK_PATTERN.search(cell_text(text))
    return match.group(1) if match else ""


def extract_gl_check_reference(text: Any) -> str:
    """Extract a "Chk" reference number from a GL description."""
    match = GL_CHECK_PATTERN.search(cell_text(text))
    return match.group(1) if match else ""


def extract_po_number(text: Any) -> str:
    """Extract a purchase order number from free text."""
    match = PO_PATTERN.search(cell_text(text))
    return match.group(1) if match else ""


def _cell(row: Row, idx: int) -> Any:
    if 0 <= idx < len(row):
        return row[idx]
    return None


def _row_date(value: Any):
    """Return the parsed date of a cell, or None when it is not a real date."""
    if not is_valid_date(value):
        return None
    return parse_date(value)


def _first_present(*values: Any) -> Any:
    """Return the first value that is not blank."""
    for value in values:
        if cell_text(value):
            return value
    return None


def _bank_transaction(
    net: Decimal,
    *,
    date,
    description: Any = "",
    memo: Any = "",
    balance: Any = None,
    check_number: Any = "",
    transaction_number: Any = "",
    raw_row: Any = None,
) -> BankTransaction:
    """Create a bank transaction from a signed net amount (negative = debit)."""
    magnitude = to_money(abs(net))
    is_debit = net < 0
    return BankTransaction(
        date=date,
        description=cell_text(description),
        memo=cell_text(memo),
        amount_credit=ZERO if is_debit else magnitude,
        amount_debit=magnitude if is_debit else ZERO,
        balance=to_money(balance),
        check_number=cell_text(check_number),
        transaction_number=cell_text(transaction_number),
        amount=magnitude,
        is_debit=is_debit,
        raw_row=raw_row,
    )


def build_bank_transactions(rows: Sequence[Row]) -> list[BankTransaction]:
    """Build bank transactions from raw rows of any supported layout.

    Args:
        rows: Raw rows as produced by a CSV/spreadsheet reader

    Returns:
        List of bank transactions in input order
    """
    layout = detect_layout(rows, BANK_SIDE)
    data_rows = rows[layout.data_start:]

    if layout.layout == LAYOUT_TIMESTAMP:
        transactions = _parse_timestamp_rows(data_rows)
    elif layout.layout == LAYOUT_DATA_ONLY:
        transactions = _parse_data_only_rows(data_rows)
    else:
        transactions = _parse_bank_header_rows(data_rows, layout.column_map)

    log.info("Extracted %d bank transactions (%s layout)", len(transactions), layout.layout)
    return transactions


def _parse_bank_header_rows(rows: Sequence[Row], column_map: ColumnMap) -> list[BankTransaction]:
    transactions = []
    for row_num, row in enumerate(rows):
        if is_blank_row(row):
            continue

        txn_date = _row_date(column_map.cell(row, "date"))
        if txn_date is None:
            log.debug("Skipping bank row %d: no valid date", row_num)
            continue

        # Some exports store debits as negative numbers
        credit = abs(parse_amount(column_map.cell(row, "credit")))
        debit = abs(parse_amount(column_map.cell(row, "debit")))

        if credit > 0 and debit > 0:
            net = credit - debit
        elif credit > 0:
            net = credit
        elif debit > 0:
            net = -debit
        elif column_map.has("amount"):
            net = parse_amount(column_map.cell(row, "amount"))
        else:
            net = ZERO

        if net == 0:
            log.debug("Skipping bank row %d: no amount", row_num)
            continue

        check_number = column_map.text(row, "check_number")
        if not check_number and column_map.has("transaction_number"):
            check_number = extract_check_number(column_map.cell(row, "transaction_number"))

        transactions.append(
            _bank_transaction(
                net,
                date=txn_date,
                description=column_map.cell(row, "description"),
                memo=column_map.cell(row, "memo"),
                balance=column_map.cell(row, "balance"),
                check_number=check_number,
                transaction_number=column_map.cell(row, "transaction_number"),
                raw_row=row,
            )
        )
    return transactions


def _parse_timestamp_rows(rows: Sequence[Row]) -> list[BankTransaction]:
    """Parse the headerless export whose first cell is
    ``timestamp*amount*flag*checknumber*description``."""
    transactions = []
    for row in rows:
        if not row or not cell_text(row[0]):
            continue
        first = cell_text(row[0])
        if first.startswith(","):
            continue

        parts = first.split("*")
        if len(parts) >= 4:
            amount = parse_amount(parts[1])
            check_number = parts[3].strip()
            description = parts[4].strip() if len(parts) > 4 else ""

            txn_date = parse_timestamp_date(parts[0])
            if txn_date is None:
                txn_date = _row_date(_cell(row, 1))

            if txn_date is None or amount == 0:
                log.debug("Skipping timestamp row %r", first)
                continue

            transactions.append(
                _bank_transaction(
                    amount,
                    date=txn_date,
                    description=description or _cell(row, 2),
                    memo=_cell(row, 3),
                    balance=_cell(row, 6),
                    check_number=check_number,
                    transaction_number=check_number,
                    raw_row=row,
                )
            )
            continue

        # Plain positional columns: date, description, memo, debit, credit, reference
        txn_date = _row_date(_first_present(_cell(row, 1), _cell(row, 0)))
        if txn_date is None:
            continue
        debit = abs(parse_amount(_cell(row, 4)))
        credit = abs(parse_amount(_cell(row, 5)))
        net = credit if credit > 0 else -debit
        if net == 0:
            continue
        reference = _first_present(_cell(row, 6), _cell(row, 7))
        transactions.append(
            _bank_transaction(
                net,
                date=txn_date,
                description=_cell(row, 2),
                memo=_cell(row, 3),
                check_number=reference,
                transaction_number=_cell(row, 6),
                raw_row=row,
            )
        )
    return transactions


def _looks_numeric(value: Any) -> bool:
    if isinstance(value, (int, float, Decimal)) and not isinstance(value, bool):
        return True
    return bool(_NUMERIC_CELL.match(cell_text(value)))


def _parse_data_only_rows(rows: Sequence[Row]) -> list[BankTransaction]:
    """Infer date, amount and description from rows without a header."""
    transactions = []
    for row in rows:
        if not row or len(row) < 3:
            continue

        date_idx = next((i for i in range(min(len(row), 5)) if _row_date(row[i])), -1)
        if date_idx == -1:
            continue

        amounts = []
        for i, value in enumerate(row):
            if i == date_idx or is_valid_date(value) or not _looks_numeric(value):
                continue
            parsed = parse_amount(value)
            if parsed != 0:
                amounts.append(parsed)
        if not amounts:
            continue
        main_amount = max(amounts, key=abs)

        description = ""
        for value in row:
            text = cell_text(value)
            if len(text) > len(description) and not _NON_TEXT_CELL.match(text) and not is_valid_date(text):
                description = text

        transactions.append(
            _bank_transaction(
                main_amount,
                date=_row_date(row[date_idx]),
                description=description,
                raw_row=row,
            )
        )
    return transactions


def build_gl_entries(rows: Sequence[Row]) -> list[GLEntry]:
    """Build GL entries from raw rows.

    Supports the account-based ledger export and the check register export.
    Returns an empty list when no header row can be found.

    Args:
        rows: Raw rows as produced by a CSV/spreadsheet reader

    Returns:
        List of GL entries in input order
    """
    layout = detect_layout(rows, GL_SIDE)
    if layout.layout == LAYOUT_NONE:
        return []

    entries = []
    for row_num, row in enumerate(rows[layout.data_start:]):
        if is_blank_row(row):
            continue
        if layout.layout == LAYOUT_CHECK_REGISTER:
            entry = _check_register_entry(row, layout.column_map)
        else:
            entry = _ledger_entry(row, layout.column_map)
        if entry is None:
            log.debug("Skipping GL row %d", row_num)
            continue
        entries.append(entry)

    log.info("Extracted %d GL entries (%s layout)", len(entries), layout.layout)
    return entries


def _check_register_entry(row: Row, column_map: ColumnMap) -> Optional[GLEntry]:
    check_number = column_map.text(row, "check_number")
    amount = abs(
        to_money(
            _first_present(column_map.cell(row, "amount"), column_map.cell(row, "net_amount"))
        )
    )
    if not check_number or amount == 0:
        return None

    return GLEntry(
        account_number=check_number,
        description=column_map.text(row, "vendor_name"),
        type="Check",
        transaction_type="check",
        date=parse_excel_serial_date(column_map.cell(row, "check_date")),
        credit=amount,
        amount=amount,
        check_number=check_number,
        vendor_code=column_map.text(row, "vendor"),
        raw_row=row,
    )


def _ledger_entry(row: Row, column_map: ColumnMap) -> Optional[GLEntry]:
    account_number = column_map.text(row, "account_number")
    if not account_number:
        return None

    # Fund and report totals are not movements
    if any(marker in account_number.lower() for marker in GL_SUMMARY_MARKERS):
        return None

    transaction_type = column_map.text(row, "transaction_type") or column_map.text(row, "type")
    if transaction_type.lower() in EXCLUDED_GL_TRANSACTION_TYPES:
        return None

    debit = abs(to_money(column_map.cell(row, "debit")))
    credit = abs(to_money(column_map.cell(row, "credit")))
    amount = debit if debit > 0 else credit
    if amount == 0:
        return None

    description = column_map.text(row, "gl_description") or column_map.text(row, "description")
    check_reference = extract_gl_check_reference(description)

    return GLEntry(
        account_number=account_number,
        description=description,
        account_description=column_map.text(row, "account_description"),
        type=transaction_type,
        transaction_type=transaction_type.lower(),
        date=parse_excel_serial_date(column_map.cell(row, "date")),
        debit=debit,
        credit=credit,
        amount=amount,
        check_number=check_reference,
        ref_number=column_map.text(row, "ref_number") or check_reference,
        po_number=extract_po_number(description),
        begin_balance=to_money(column_map.cell(row, "begin_balance")),
        ending_balance=to_money(
            _first_present(column_map.cell(row, "ending_balance"), column_map.cell(row, "balance"))
        ),
        is_debit=debit > 0,
        raw_row=row,
    )


def bank_from_parsed(items: Iterable[Mapping[str, Any]]) -> list[BankTransaction]:
    """Convert records from an external statement parser (OFX, QIF, PDF).

    Items are dicts shaped like ``{date, description, amount, checkNumber,
    amountCredit, amountDebit, memo, balance, fitId, name, payee}``.
    """
    transactions = []
    for item in items:
        credit = abs(parse_amount(item.get("amountCredit")))
        debit = abs(parse_amount(item.get("amountDebit")))
        if credit == 0 and debit == 0:
            net = parse_amount(item.get("amount"))
        else:
            net = credit - debit if credit and debit else (credit or -debit)

        check_number = item.get("checkNumber") or ""
        transactions.append(
            _bank_transaction(
                net,
                date=parse_date(item.get("date")),
                description=item.get("description") or item.get("name") or item.get("payee") or "",
                memo=item.get("memo") or "",
                balance=item.get("balance"),
                check_number=check_number,
                transaction_number=item.get("fitId") or check_number,
                raw_row=item.get("rawLine") or dict(item),
            )
        )
    return transactions


def gl_from_parsed(items: Iterable[Mapping[str, Any]]) -> list[GLEntry]:
    """Convert records from an external ledger parser.

    Items without an account number and bookkeeping-only transaction types
    are discarded, as for tabular GL rows.
    """
    entries = []
    for item in items:
        account_number = cell_text(item.get("accountNumber"))
        if not account_number:
            continue
        entry_type = cell_text(item.get("type"))
        if entry_type.lower() in EXCLUDED_GL_TRANSACTION_TYPES:
            continue

        debit = abs(to_money(item.get("debit") or item.get("amount")))
        credit = abs(to_money(item.get("credit")))
        description = cell_text(item.get("description"))
        check_reference = extract_gl_check_reference(description)
        entries.append(
            GLEntry(
                account_number=account_number,
                description=description,
                type=entry_type,
                transaction_type=entry_type.lower(),
                date=parse_date(item.get("date")),
                debit=debit,
                credit=credit,
                amount=debit if debit > 0 else credit,
                check_number=check_reference,
                ref_number=cell_text(item.get("refNumber")) or check_reference,
                po_number=extract_po_number(description),
                begin_balance=to_money(item.get("beginBalance")),
                ending_balance=to_money(item.get("endingBalance")),
                is_debit=debit > 0,
                raw_row=item.get("rawLine") or dict(item),
            )
        )
    return entries
