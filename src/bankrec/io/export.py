"""Export of reconciliation results as CSV files or an Excel workbook."""

import csv
import logging
from pathlib import Path
from typing import Any, Iterable, Union

from openpyxl import Workbook

from bankrec.domain.entities import BankTransaction, GLEntry, MatchResult, ReconciliationResult
from bankrec.utils.date_parser import format_date

log = logging.getLogger(__name__)

MATCHED_FIELDS = [
    "Bank Date",
    "Description",
    "Check Number",
    "Bank Amount",
    "GL Account",
    "GL Description",
    "GL Amount",
    "Match Type",
    "Manual",
]
UNMATCHED_BANK_FIELDS = ["Date", "Description", "Memo", "Check Number", "Debit", "Credit", "Balance"]
UNMATCHED_GL_FIELDS = [
    "Account Number",
    "Description",
    "Type",
    "Begin Balance",
    "Ending Balance",
    "Amount",
]

MATCHED_FILENAME = "matched.csv"
UNMATCHED_BANK_FILENAME = "unmatched_bank.csv"
UNMATCHED_GL_FILENAME = "unmatched_gl.csv"


def matched_rows(matches: Iterable[MatchResult]) -> list[list[Any]]:
    return [
        [
            format_date(m.bank_transaction.date),
            m.bank_transaction.description,
            m.bank_transaction.check_number,
            m.bank_transaction.amount,
            m.gl_entry.account_number,
            m.gl_entry.description,
            m.gl_entry.amount,
            m.match_type,
            "Yes" if m.is_manual else "No",
        ]
        for m in matches
    ]


def unmatched_bank_rows(transactions: Iterable[BankTransaction]) -> list[list[Any]]:
    return [
        [
            format_date(tx.date),
            tx.description,
            tx.memo,
            tx.check_number,
            tx.amount_debit,
            tx.amount_credit,
            tx.balance,
        ]
        for tx in transactions
    ]


def unmatched_gl_rows(entries: Iterable[GLEntry]) -> list[list[Any]]:
    return [
        [
            entry.account_number,
            entry.description,
            entry.type,
            entry.begin_balance,
            entry.ending_balance,
            entry.amount,
        ]
        for entry in entries
    ]


def _write_csv(path: Path, fields: list[str], rows: list[list[Any]]) -> None:
    with open(path, "w", encoding="utf-8", newline="") as f:
        writer = csv.writer(f)
        writer.writerow(fields)
        writer.writerows(rows)


def export_matched_csv(matches: Iterable[MatchResult], path: Union[str, Path]) -> int:
    """Write matched pairs to a CSV file and return the number of rows."""
    rows = matched_rows(matches)
    _write_csv(Path(path), MATCHED_FIELDS, rows)
    return len(rows)


def export_unmatched_bank_csv(
    transactions: Iterable[BankTransaction], path: Union[str, Path]
) -> int:
    """Write unmatched bank transactions to a CSV file and return the number of rows."""
    rows = unmatched_bank_rows(transactions)
    _write_csv(Path(path), UNMATCHED_BANK_FIELDS, rows)
    return len(rows)


def export_unmatched_gl_csv(entries: Iterable[GLEntry], path: Union[str, Path]) -> int:
    """Write unmatched GL entries to a CSV file and return the number of rows."""
    rows = unmatched_gl_rows(entries)
    _write_csv(Path(path), UNMATCHED_GL_FIELDS, rows)
    return len(rows)


def export_csv_reports(result: ReconciliationResult, output_dir: Union[str, Path]) -> list[Path]:
    """Write the three result lists as CSV files into a directory.

    Args:
        result: Reconciliation result to export
        output_dir: Target directory (created if missing)

    Returns:
        Paths of the written files
    """
    directory = Path(output_dir)
    directory.mkdir(parents=True, exist_ok=True)
    paths = [
        directory / MATCHED_FILENAME,
        directory / UNMATCHED_BANK_FILENAME,
        directory / UNMATCHED_GL_FILENAME,
    ]
    export_matched_csv(result.matched, paths[0])
    export_unmatched_bank_csv(result.unmatched_bank, paths[1])
    export_unmatched_gl_csv(result.unmatched_gl, paths[2])
    log.info("Wrote CSV reports to %s", directory)
    return paths


def export_workbook(result: ReconciliationResult, path: Union[str, Path]) -> Path:
    """Write the three result lists to a multi-sheet Excel workbook."""
    wb = Workbook()
    sheets = [
        ("Matched", MATCHED_FIELDS, matched_rows(result.matched)),
        ("Unmatched Bank", UNMATCHED_BANK_FIELDS, unmatched_bank_rows(result.unmatched_bank)),
        ("Unmatched GL", UNMATCHED_GL_FIELDS, unmatched_gl_rows(result.unmatched_gl)),
    ]

    for i, (name, fields, rows) in enumerate(sheets):
        ws = wb.active if i == 0 else wb.create_sheet()
        ws.title = name
        ws.append(fields)
        for row in rows:
            ws.append(row)

    target = Path(path)
    wb.save(str(target))
    log.info("Wrote workbook %s", target)
    return target
