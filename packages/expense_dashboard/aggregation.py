"""Category aggregation over a record set.

All helpers are total functions over their inputs, including the empty
sequence, and return fresh insertion-ordered dicts. Two families exist:

- *net* views sum signed amounts as-is (refunds reduce totals);
- *spend* views keep only ``amount > 0`` before aggregating.

Blank category names are never keyed; the one exception is
:func:`transaction_highlights`, which reports blank Level3 values under the
literal ``"Uncategorized"``.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from decimal import Decimal

from .models import (
    UNCATEGORIZED,
    CategoryAggregate,
    CategorySummary,
    CategoryTotals,
    ExpenseRecord,
    Expenses,
    HierarchyLevel,
    RankedCategory,
)

_ZERO = Decimal(0)

REGULAR = "Regular"
ONE_TIME = "One-Time"


def _select(
    records: Iterable[ExpenseRecord],
    *,
    spend_only: bool,
    where: Callable[[ExpenseRecord], bool] | None,
) -> Iterable[ExpenseRecord]:
    for r in records:
        if spend_only and r.amount <= 0:
            continue
        if where is not None and not where(r):
            continue
        yield r


def category_totals(
    records: Expenses,
    level: HierarchyLevel,
    *,
    spend_only: bool = False,
    where: Callable[[ExpenseRecord], bool] | None = None,
) -> CategoryTotals:
    """Sum ``amount`` per category name at ``level``.

    Keys appear in order of first occurrence. Records whose category at
    ``level`` is blank are skipped.
    """

    totals: CategoryTotals = {}
    for r in _select(records, spend_only=spend_only, where=where):
        name = r.level_value(level)
        if not name.strip():
            continue
        totals[name] = totals.get(name, _ZERO) + r.amount
    return totals


def category_counts(
    records: Expenses,
    level: HierarchyLevel,
    *,
    spend_only: bool = True,
    blank_label: str | None = None,
) -> dict[str, int]:
    """Count records per category name at ``level`` (spend-only by default).

    Blank names are skipped unless ``blank_label`` is given, in which case
    they are counted under that label.
    """

    counts: dict[str, int] = {}
    for r in _select(records, spend_only=spend_only, where=None):
        name = r.level_value(level)
        if not name.strip():
            if blank_label is None:
                continue
            name = blank_label
        counts[name] = counts.get(name, 0) + 1
    return counts


def aggregate_by_category(
    records: Expenses, level: HierarchyLevel
) -> dict[str, CategoryAggregate]:
    """Net total and record count per non-blank category at ``level``."""

    totals = category_totals(records, level)
    counts = category_counts(records, level, spend_only=False)
    return {
        name: CategoryAggregate(total=total, count=counts[name]) for name, total in totals.items()
    }


def rank_categories(
    totals: CategoryTotals, n: int | None = None, *, by_absolute: bool = False
) -> list[RankedCategory]:
    """Rank ``totals`` descending (optionally by absolute value) and take ``n``.

    Sorting is stable, so equal totals keep the mapping's iteration order.
    """

    if by_absolute:
        ordered = sorted(totals.items(), key=lambda kv: abs(kv[1]), reverse=True)
    else:
        ordered = sorted(totals.items(), key=lambda kv: kv[1], reverse=True)
    if n is not None:
        ordered = ordered[: max(0, n)]

    top = ordered[0][1] if ordered else _ZERO
    out: list[RankedCategory] = []
    for name, total in ordered:
        share = (total / top * 100) if top > 0 else _ZERO
        out.append(RankedCategory(name=name, total=total, share=share))
    return out


def top_level1_categories(records: Expenses, n: int = 5) -> list[str]:
    """Most significant Level1 categories by absolute net total."""

    ranked = rank_categories(category_totals(records, "level1"), n, by_absolute=True)
    return [rc.name for rc in ranked]


def top_spend_categories(
    records: Expenses, level: HierarchyLevel = "level2", n: int = 5
) -> list[RankedCategory]:
    """Top-``n`` categories by positive spend, with share of the largest."""

    return rank_categories(category_totals(records, level, spend_only=True), n)


def hierarchy_rollup(
    records: Expenses, parent_level: HierarchyLevel, child_level: HierarchyLevel
) -> dict[str, CategoryTotals]:
    """Net totals of ``child_level`` categories grouped under their parent.

    Records with a blank parent or a blank child are left out, so the child
    totals under a parent only cover records where both names are present.
    """

    out: dict[str, CategoryTotals] = {}
    for r in records:
        parent = r.level_value(parent_level)
        child = r.level_value(child_level)
        if not parent.strip() or not child.strip():
            continue
        bucket = out.setdefault(parent, {})
        bucket[child] = bucket.get(child, _ZERO) + r.amount
    return out


# ---------------------------------------------------------------------------
# Catalogue of names for filter chips
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class CategoryCatalog:
    level1: list[str]
    level2: list[str]
    # Level2 → Level3 children in order of first occurrence
    children: dict[str, list[str]]
    all_names: list[str]

    def drillable_level2(self) -> list[str]:
        """Level2 names that have at least one Level3 child."""

        return [name for name in self.level2 if self.children.get(name)]


def category_catalog(records: Expenses) -> CategoryCatalog:
    l1: set[str] = set()
    l2: set[str] = set()
    children: dict[str, list[str]] = {}
    every: set[str] = set()
    for r in records:
        if r.level1:
            l1.add(r.level1)
            every.add(r.level1)
        if r.level2:
            l2.add(r.level2)
            every.add(r.level2)
        if r.level2 and r.level3:
            kids = children.setdefault(r.level2, [])
            if r.level3 not in kids:
                kids.append(r.level3)
            every.add(r.level3)
    return CategoryCatalog(
        level1=sorted(l1),
        level2=sorted(l2),
        children=children,
        all_names=sorted(every),
    )


# ---------------------------------------------------------------------------
# Stat cards and highlights
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class StatTotals:
    """Headline cards.

    ``total`` is ``|regular net| + |one-time net|``. When either net is
    negative (large refunds) this differs from the signed sum of all records.
    """

    regular: Decimal
    one_time: Decimal
    total: Decimal


def stat_totals(records: Expenses) -> StatTotals:
    nets = category_totals(records, "level1", where=lambda r: r.level1 in (REGULAR, ONE_TIME))
    regular = abs(nets.get(REGULAR, _ZERO))
    one_time = abs(nets.get(ONE_TIME, _ZERO))
    return StatTotals(regular=regular, one_time=one_time, total=regular + one_time)


@dataclass(frozen=True, slots=True)
class FrequentCategory:
    name: str
    count: int


@dataclass(frozen=True, slots=True)
class TransactionHighlights:
    largest_spend: ExpenseRecord | None
    most_frequent_category: FrequentCategory | None


def transaction_highlights(records: Expenses) -> TransactionHighlights:
    """Largest single spend and the most frequent Level3 category among spends."""

    spends = [r for r in records if r.amount > 0]
    if not spends:
        return TransactionHighlights(largest_spend=None, most_frequent_category=None)

    # max() keeps the first of equal amounts
    largest = max(spends, key=lambda r: r.amount)

    counts = category_counts(spends, "level3", blank_label=UNCATEGORIZED)
    frequent: FrequentCategory | None = None
    if counts:
        name, count = sorted(counts.items(), key=lambda kv: kv[1], reverse=True)[0]
        frequent = FrequentCategory(name=name, count=count)
    return TransactionHighlights(largest_spend=largest, most_frequent_category=frequent)


# ---------------------------------------------------------------------------
# Digest for whole-dataset LLM analysis
# ---------------------------------------------------------------------------


def build_category_summary(records: Expenses, *, max_examples: int = 3) -> list[CategorySummary]:
    """Aggregate records per derived ``category`` for the analysis prompt.

    Records with neither a Level2 nor a Level3 name are grouped under
    ``"Uncategorized"``. Totals are rounded to 2 decimals; up to
    ``max_examples`` descriptions are kept per category in input order.
    """

    acc: dict[str, tuple[Decimal, int, list[str]]] = {}
    for r in records:
        key = r.category if (r.level2 or r.level3) else UNCATEGORIZED
        total, count, examples = acc.get(key, (_ZERO, 0, []))
        if len(examples) < max_examples:
            examples = [*examples, r.description]
        acc[key] = (total + r.amount, count + 1, examples)

    return [
        CategorySummary(
            category=name,
            total_amount=float(round(total, 2)),
            transaction_count=count,
            example_descriptions=examples,
        )
        for name, (total, count, examples) in acc.items()
    ]
