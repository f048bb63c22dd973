"""Calendar-month bucketing with trailing moving averages.

:func:`bucket_by_month` turns a record set into a chronologically ordered,
dense matrix: one :class:`MonthBucket` per month that has at least one record,
and in every bucket an entry for every category name observed anywhere in the
input. A record contributes its signed amount to up to three names at once
(its Level1, Level2 and Level3 values).

Moving averages use a trailing window of up to three buckets that shrinks at
the start of the series, so the first bucket's average equals its raw value.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any

from .models import (
    BreakdownDetail,
    CategoryTotals,
    DetailPayload,
    Expenses,
    HierarchyLevel,
    SeriesSpec,
    SimpleDetail,
)

MA_WINDOW = 3
MA_SUFFIX = "_MA"
BREAKDOWN_SUFFIX = "_breakdown"

_ZERO = Decimal(0)
_MONTH_ABBR = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


def month_label(d: date) -> str:
    """Render ``d``'s month as ``Mon-YY`` (e.g. ``Jan-24``)."""

    return f"{_MONTH_ABBR[d.month - 1]}-{d.year % 100:02d}"


@dataclass(frozen=True, slots=True)
class MonthBucket:
    """Aggregates for one calendar month.

    ``totals`` and ``moving_averages`` are dense over every observed category.
    ``breakdowns`` maps a Level2 name to its Level3 subtotals and only has
    entries for Level2 names with Level3 activity in this month.
    """

    start: date
    label: str
    totals: CategoryTotals
    moving_averages: CategoryTotals
    breakdowns: dict[str, CategoryTotals]

    @property
    def key(self) -> tuple[int, int]:
        """``(month, two-digit year)``."""

        return (self.start.month, self.start.year % 100)


def moving_average(values: Sequence[Decimal], window: int = MA_WINDOW) -> list[Decimal]:
    """Trailing mean over ``[max(0, i - window + 1), i]`` for each index."""

    out: list[Decimal] = []
    for i in range(len(values)):
        span = values[max(0, i - window + 1) : i + 1]
        out.append(sum(span, _ZERO) / len(span))
    return out


def observed_categories(records: Expenses) -> list[str]:
    """Every non-blank Level1/Level2/Level3 name, in order of first occurrence."""

    seen: dict[str, None] = {}
    for r in records:
        for name in (r.level1, r.level2, r.level3):
            if name:
                seen.setdefault(name, None)
    return list(seen)


def bucket_by_month(records: Expenses) -> list[MonthBucket]:
    """Group ``records`` into month buckets ordered by first-of-month date."""

    if not records:
        return []

    categories = observed_categories(records)

    raw: dict[date, CategoryTotals] = {}
    breakdowns: dict[date, dict[str, CategoryTotals]] = {}
    for r in records:
        start = r.date.replace(day=1)
        month_totals = raw.setdefault(start, {})
        for name in (r.level1, r.level2, r.level3):
            if name:
                month_totals[name] = month_totals.get(name, _ZERO) + r.amount
        if r.level2 and r.level3:
            by_l2 = breakdowns.setdefault(start, {}).setdefault(r.level2, {})
            by_l2[r.level3] = by_l2.get(r.level3, _ZERO) + r.amount

    starts = sorted(raw)
    dense: list[CategoryTotals] = [
        {name: raw[start].get(name, _ZERO) for name in categories} for start in starts
    ]

    averages: list[CategoryTotals] = [{} for _ in starts]
    for name in categories:
        series = moving_average([month[name] for month in dense])
        for i, value in enumerate(series):
            averages[i][name] = value

    return [
        MonthBucket(
            start=start,
            label=month_label(start),
            totals=dense[i],
            moving_averages=averages[i],
            breakdowns=breakdowns.get(start, {}),
        )
        for i, start in enumerate(starts)
    ]


def chart_rows(buckets: Sequence[MonthBucket]) -> list[dict[str, Any]]:
    """Flatten buckets into renderer rows.

    Each row carries ``name`` (the month label), one key per category with the
    raw total, ``<category>_MA`` with the moving average, and
    ``<level2>_breakdown`` with the Level3 subtotals where present.
    """

    rows: list[dict[str, Any]] = []
    for b in buckets:
        row: dict[str, Any] = {"name": b.label}
        row.update(b.totals)
        for name, value in b.moving_averages.items():
            row[f"{name}{MA_SUFFIX}"] = value
        for name, children in b.breakdowns.items():
            row[f"{name}{BREAKDOWN_SUFFIX}"] = dict(children)
        rows.append(row)
    return rows


def detail_for(
    bucket: MonthBucket, series: Sequence[SeriesSpec], level: HierarchyLevel
) -> DetailPayload:
    """Build the hover/detail payload for one bucket.

    At Level2 the first plotted series is shown as a total with its Level3
    children (non-zero only, largest magnitude first) when the month has a
    breakdown for it. Every other case lists each plotted value, raw and MA.
    """

    if level == "level2" and series:
        category = series[0].key
        children = bucket.breakdowns.get(category)
        if children:
            ordered = sorted(
                ((name, v) for name, v in children.items() if v != 0),
                key=lambda kv: abs(kv[1]),
                reverse=True,
            )
            return BreakdownDetail(
                label=bucket.label,
                category=category,
                total=bucket.totals.get(category, _ZERO),
                children=tuple(ordered),
            )

    values: list[tuple[str, Decimal]] = []
    for s in series:
        values.append((s.name, bucket.totals.get(s.key, _ZERO)))
        values.append((s.ma_name, bucket.moving_averages.get(s.key, _ZERO)))
    return SimpleDetail(label=bucket.label, series_values=tuple(values))
