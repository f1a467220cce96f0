"""Readers turning bank and GL exports into raw rows."""

import csv
import logging
from pathlib import Path
from typing import Any, Union

import openpyxl

from bankrec.domain.errors import ValidationError

log = logging.getLogger(__name__)

# Tried in order
CSV_ENCODINGS = ("utf-8-sig", "cp1252")

CSV_EXTENSIONS = {".csv", ".txt"}
EXCEL_EXTENSIONS = {".xlsx", ".xlsm"}

Row = list[Any]


def read_csv_rows(path: Path) -> list[Row]:
    """Read a delimited text file into rows of strings.

    The delimiter is sniffed from the first KB; when sniffing fails the file
    is read as comma separated. Empty lines are dropped. Files that are not
    UTF-8 are retried as Windows-1252.

    Raises:
        ValidationError: If the file cannot be decoded
    """
    for encoding in CSV_ENCODINGS:
        try:
            return _read_delimited(path, encoding)
        except UnicodeDecodeError:
            log.debug("%s is not valid %s", path, encoding)
    raise ValidationError(f"Could not decode {path.name}: expected UTF-8 or Windows-1252 text")


def _read_delimited(path: Path, encoding: str) -> list[Row]:
    with open(path, "r", encoding=encoding, newline="") as f:
        sample = f.read(1024)
        f.seek(0)
        try:
            dialect = csv.Sniffer().sniff(sample, delimiters=",;\t|")
        except csv.Error:
            log.debug("Could not sniff delimiter of %s, assuming comma", path)
            dialect = csv.excel
        return [row for row in csv.reader(f, dialect) if row]


def read_excel_rows(path: Path) -> list[Row]:
    """Read the first worksheet of a workbook into rows of cell values.

    Values are the cached results of formulas; dates come back as datetime
    objects and numbers as int/float, which the parsers accept as they are.
    """
    workbook = openpyxl.load_workbook(path, read_only=True, data_only=True)
    try:
        sheet = workbook.worksheets[0]
        rows = []
        for values in sheet.iter_rows(values_only=True):
            row = ["" if value is None else value for value in values]
            if any(cell != "" for cell in row):
                rows.append(row)
        return rows
    finally:
        workbook.close()


def read_rows(path: Union[str, Path]) -> list[Row]:
    """Read a CSV or Excel file into raw rows.

    Args:
        path: Path to a .csv/.txt or .xlsx/.xlsm file

    Returns:
        Rows as lists of cell values, without any header interpretation

    Raises:
        FileNotFoundError: If the file does not exist
        ValidationError: If the file type is not supported
    """
    file_path = Path(path)
    if not file_path.exists():
        raise FileNotFoundError(f"File not found: {file_path}")

    suffix = file_path.suffix.lower()
    if suffix in CSV_EXTENSIONS:
        rows = read_csv_rows(file_path)
    elif suffix in EXCEL_EXTENSIONS:
        rows = read_excel_rows(file_path)
    else:
        raise ValidationError(
            f"Unsupported file type '{file_path.suffix}': expected CSV or XLSX"
        )

    log.info("Read %d rows from %s", len(rows), file_path.name)
    return rows
