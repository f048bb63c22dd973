"""CSV ingest for the expense-tracker export."""

from .expense_csv import EXPECTED_HEADERS, parse_expenses_csv
from .utils import CsvLoadError, load_expenses_from_csv

__all__ = ["EXPECTED_HEADERS", "CsvLoadError", "load_expenses_from_csv", "parse_expenses_csv"]
