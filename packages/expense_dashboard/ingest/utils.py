"""Ingest utilities shared by CLI commands and the dashboard controller.

Exposes a single helper that reads an expense CSV from disk and parses it.
Whole-file failures (missing file, permissions, undecodable bytes) surface as
:class:`CsvLoadError`; malformed individual rows never do.
"""

from __future__ import annotations

from os import PathLike
from pathlib import Path

from ..logging_setup import get_logger
from ..models import ExpenseRecord
from .expense_csv import parse_expenses_csv

_logger = get_logger("expense_dashboard.ingest")


class CsvLoadError(Exception):
    """The CSV document could not be read as a whole."""


def load_expenses_from_csv(csv_path: str | PathLike[str]) -> list[ExpenseRecord]:
    """Read a UTF-8 expense CSV (with or without a BOM) and return its records."""

    p = Path(csv_path)
    try:
        text = p.read_text(encoding="utf-8-sig")
    except FileNotFoundError as e:
        raise CsvLoadError(f"File not found: {csv_path}") from e
    except PermissionError as e:
        raise CsvLoadError(f"Permission denied: {csv_path}") from e
    except UnicodeDecodeError as e:
        raise CsvLoadError(f"File is not valid UTF-8: {csv_path}") from e
    except OSError as e:
        raise CsvLoadError(f"Could not load expense data from '{csv_path}': {e}") from e

    records = parse_expenses_csv(text)
    _logger.info("load_csv:done path=%s records=%d", p.name, len(records))
    return records


__all__ = ["CsvLoadError", "load_expenses_from_csv"]
