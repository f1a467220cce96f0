"""File readers and result exporters for bankrec."""

from bankrec.io.readers import read_rows
from bankrec.io.export import export_csv_reports, export_workbook

__all__ = ["read_rows", "export_csv_reports", "export_workbook"]
