"""Filter and sort logic behind the all-expenses table."""

from __future__ import annotations

import locale
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Literal

from .models import ExpenseRecord, Expenses

type SortDirection = Literal["ascending", "descending"]

# Display order of the table; ``id`` and ``category`` are filterable/sortable
# but not shown as columns.
DISPLAY_COLUMNS: tuple[str, ...] = (
    "date",
    "year",
    "week",
    "description",
    "amount",
    "level1",
    "level2",
    "level3",
    "transaction_type",
    "payment_mode",
)
COLUMNS: tuple[str, ...] = ("id", *DISPLAY_COLUMNS, "category")

_NUMERIC_COLUMNS = frozenset({"amount", "year", "week"})


def _check_column(column: str) -> None:
    if column not in COLUMNS:
        raise ValueError(f"Unknown column {column!r}; expected one of: {', '.join(COLUMNS)}")


def column_value(record: ExpenseRecord, column: str) -> Any:
    _check_column(column)
    return getattr(record, column)


def column_text(record: ExpenseRecord, column: str) -> str:
    """String form of a cell as shown in the table (dates as ``DD/MM/YY``)."""

    value = column_value(record, column)
    if column == "date":
        return value.strftime("%d/%m/%y")
    return str(value)


@dataclass(frozen=True, slots=True)
class SortState:
    column: str = "date"
    direction: SortDirection = "descending"

    def __post_init__(self) -> None:
        _check_column(self.column)
        if self.direction not in ("ascending", "descending"):
            raise ValueError(
                f"direction must be 'ascending' or 'descending', got {self.direction!r}"
            )

    def toggle(self, column: str) -> SortState:
        """Header click on ``column``: flip direction if already sorted by it."""

        if column == self.column and self.direction == "ascending":
            return SortState(column=column, direction="descending")
        return SortState(column=column, direction="ascending")


def filter_records(records: Expenses, filters: Mapping[str, str]) -> list[ExpenseRecord]:
    """Keep records whose every filtered column contains the filter text.

    Matching is a case-insensitive substring test; blank filters are ignored.
    """

    active: list[tuple[str, str]] = []
    for column, text in filters.items():
        _check_column(column)
        if text:
            active.append((column, text.lower()))
    if not active:
        return list(records)
    return [
        r for r in records if all(needle in column_text(r, col).lower() for col, needle in active)
    ]


def _sort_key(column: str) -> Callable[[ExpenseRecord], Any]:
    if column == "date":
        return lambda r: r.date
    if column in _NUMERIC_COLUMNS:
        return lambda r: Decimal(column_value(r, column))
    return lambda r: locale.strxfrm(column_text(r, column).casefold())


def sort_records(records: Expenses, sort: SortState) -> list[ExpenseRecord]:
    """Stable sort by a single column in the requested direction."""

    return sorted(records, key=_sort_key(sort.column), reverse=sort.direction == "descending")


def table_rows(
    records: Expenses,
    filters: Mapping[str, str] | None = None,
    sort: SortState | None = None,
) -> list[ExpenseRecord]:
    """Filtered then sorted view of ``records`` for the table."""

    visible = filter_records(records, filters or {})
    return sort_records(visible, sort or SortState())


__all__ = [
    "COLUMNS",
    "DISPLAY_COLUMNS",
    "SortDirection",
    "SortState",
    "column_text",
    "column_value",
    "filter_records",
    "sort_records",
    "table_rows",
]
