"""Parser for the expense-tracker CSV export.

Expected header labels (resolved by name, so column order is free)::

    Date, Year, Week, Description, Amount, Level 1, Level 2, Level 3,
    Transaction Type, Payment Mode

Rows are tokenized with the stdlib :mod:`csv` module, so double-quoted fields
may contain commas. A row is admitted only when its ``Amount`` is a finite
number written with ASCII digits and its ``Date`` is exactly ``DD/MM/YY``;
every other malformed row is dropped without failing the batch.
``Year``/``Week`` degrade to ``0``.
"""

from __future__ import annotations

import csv
import re
from datetime import UTC, date, datetime
from decimal import Decimal
from io import StringIO

from ..logging_setup import get_logger
from ..models import ExpenseRecord

EXPECTED_HEADERS: dict[str, str] = {
    "date": "Date",
    "year": "Year",
    "week": "Week",
    "description": "Description",
    "amount": "Amount",
    "level1": "Level 1",
    "level2": "Level 2",
    "level3": "Level 3",
    "transaction_type": "Transaction Type",
    "payment_mode": "Payment Mode",
}

_DATE_RE = re.compile(r"[0-9]{2}/[0-9]{2}/[0-9]{2}")
_AMOUNT_RE = re.compile(r"[+-]?(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")
_LEADING_INT_RE = re.compile(r"[+-]?[0-9]+")

_logger = get_logger("expense_dashboard.ingest.expense_csv")


def _clean_token(value: str) -> str:
    return value.replace('"', "").strip()


def _to_amount(raw: str | None) -> Decimal | None:
    if raw is None:
        return None
    s = raw.strip()
    if not _AMOUNT_RE.fullmatch(s):
        return None
    return Decimal(s)


def _to_date(raw: str | None) -> date | None:
    if raw is None or not _DATE_RE.fullmatch(raw):
        return None
    day, month, yy = (int(p) for p in raw.split("/"))
    try:
        return date(2000 + yy, month, day)
    except ValueError:
        # Pattern matched but the day/month is out of range (e.g. 31/02/24).
        return None


def _to_int_or_zero(raw: str | None) -> int:
    if raw is None:
        return 0
    m = _LEADING_INT_RE.match(raw.strip())
    return int(m.group(0)) if m else 0


def _record_id(d: date, row_index: int) -> str:
    epoch_ms = int(datetime(d.year, d.month, d.day, tzinfo=UTC).timestamp() * 1000)
    return f"{epoch_ms}-{row_index}"


def _resolve_columns(header: list[str]) -> dict[str, int | None]:
    positions = {label: i for i, label in reversed(list(enumerate(header)))}
    return {field: positions.get(label) for field, label in EXPECTED_HEADERS.items()}


def parse_expenses_csv(csv_text: str) -> list[ExpenseRecord]:
    """Parse the full text of one CSV document into expense records.

    Pure function: no I/O and no shared state, so the same text always yields
    the same list. A leading byte-order mark is ignored. Returns an empty list
    when the text has no header row.
    """

    with StringIO(csv_text.removeprefix("\ufeff").strip()) as f:
        rows = list(csv.reader(f, skipinitialspace=True))
    if not rows:
        return []

    header = [_clean_token(h) for h in rows[0]]
    columns = _resolve_columns(header)

    def _field(tokens: list[str], name: str) -> str | None:
        pos = columns[name]
        return tokens[pos] if pos is not None else None

    records: list[ExpenseRecord] = []
    rejected = 0
    for row_index, raw in enumerate(rows[1:]):
        tokens = [_clean_token(t) for t in raw]
        if len(tokens) < len(header):
            rejected += 1
            _logger.debug("parse_csv:row_rejected row=%d reason=column_count", row_index)
            continue

        amount = _to_amount(_field(tokens, "amount"))
        if amount is None:
            rejected += 1
            _logger.debug("parse_csv:row_rejected row=%d reason=amount", row_index)
            continue

        parsed_date = _to_date(_field(tokens, "date"))
        if parsed_date is None:
            rejected += 1
            _logger.debug("parse_csv:row_rejected row=%d reason=date", row_index)
            continue

        records.append(
            ExpenseRecord(
                id=_record_id(parsed_date, row_index),
                date=parsed_date,
                year=_to_int_or_zero(_field(tokens, "year")),
                week=_to_int_or_zero(_field(tokens, "week")),
                description=_field(tokens, "description") or "",
                amount=amount,
                level1=_field(tokens, "level1") or "",
                level2=_field(tokens, "level2") or "",
                level3=_field(tokens, "level3") or "",
                transaction_type=_field(tokens, "transaction_type") or "",
                payment_mode=_field(tokens, "payment_mode") or "",
            )
        )

    _logger.debug(
        "parse_csv:done rows=%d records=%d rejected=%d",
        len(rows) - 1,
        len(records),
        rejected,
    )
    return records


__all__ = ["EXPECTED_HEADERS", "parse_expenses_csv"]
