"""Data models and type aliases for ``expense_dashboard``.

Records parsed from the CSV export are frozen dataclasses; everything derived
from them (aggregates, buckets, drill-down snapshots, tooltip payloads) is a
transient value recomputed from the current record set. Models exchanged with
the hosted LLM are Pydantic models so that response validation stays
declarative.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

# ---------------------------------------------------------------------------
# Category hierarchy
# ---------------------------------------------------------------------------

type HierarchyLevel = Literal["level1", "level2", "level3"]
"""One of the three tiers of the category hierarchy (coarse → specific)."""

LEVELS: tuple[HierarchyLevel, ...] = ("level1", "level2", "level3")

UNCATEGORIZED = "Uncategorized"


# ---------------------------------------------------------------------------
# Core record and collections
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ExpenseRecord:
    """A single validated transaction row from the expense CSV.

    Attributes
    ----------
    id:
        ``"<epoch-ms of date>-<row index>"``. Unique within one parse batch
        only; re-parsing a different file may reuse the same ids.
    date:
        Calendar date from the ``DD/MM/YY`` column (two-digit years are
        anchored to the 2000s).
    year / week:
        Taken verbatim from their own columns (``0`` when unparseable) and not
        cross-checked against ``date``.
    amount:
        Signed amount. Positive values are spends, negative values are
        refunds or cashbacks.
    """

    id: str
    date: date
    year: int
    week: int
    description: str
    amount: Decimal
    level1: str
    level2: str
    level3: str
    transaction_type: str
    payment_mode: str

    @property
    def category(self) -> str:
        """Derived ``"<level2> - <level3>"`` label."""

        return f"{self.level2} - {self.level3}"

    def level_value(self, level: HierarchyLevel) -> str:
        if level == "level1":
            return self.level1
        if level == "level2":
            return self.level2
        if level == "level3":
            return self.level3
        raise ValueError(f"unknown hierarchy level: {level!r}")


type Expenses = Sequence[ExpenseRecord]
"""An ordered, fully materialized record set."""

type CategoryTotals = dict[str, Decimal]
"""Insertion-ordered mapping of category name → signed total.

Iteration order is the order in which each category was first seen in the
input; ranking helpers rely on it to break ties deterministically.
"""


@dataclass(frozen=True, slots=True)
class CategoryAggregate:
    """Signed running total and record count for one category."""

    total: Decimal
    count: int


@dataclass(frozen=True, slots=True)
class RankedCategory:
    """One row of a ranked top-N list.

    ``share`` is the total as a percentage of the first (largest) entry, which
    is what proportional bars are drawn against. It is ``0`` when the largest
    total is not positive.
    """

    name: str
    total: Decimal
    share: Decimal = Decimal(0)


# ---------------------------------------------------------------------------
# Drill-down state
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class DrillDownState:
    """Read-only snapshot of the trend chart's drill-down selection.

    ``parent_category`` is set exactly when ``level == "level3"``; the
    orthogonal ``level1_filter`` narrows the record set the chart is computed
    over and is independent of the displayed level.
    """

    level: HierarchyLevel = "level1"
    categories: tuple[str, ...] = ()
    parent_category: str | None = None
    level1_filter: str | None = None

    def __post_init__(self) -> None:
        if self.level not in LEVELS:
            raise ValueError(f"DrillDownState.level must be one of {LEVELS}, got {self.level!r}")
        if self.level == "level3":
            if not self.parent_category:
                raise ValueError("DrillDownState at level3 requires a parent_category")
            if not self.categories:
                raise ValueError("DrillDownState at level3 requires at least one category")
        elif self.parent_category is not None:
            raise ValueError(f"parent_category must be None at {self.level}")
        if len(set(self.categories)) != len(self.categories):
            raise ValueError("DrillDownState.categories must not contain duplicates")


# ---------------------------------------------------------------------------
# Tooltip / detail payloads
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class SimpleDetail:
    """Detail payload listing every plotted series value for one bucket."""

    label: str
    series_values: tuple[tuple[str, Decimal], ...]
    kind: Literal["simple"] = "simple"


@dataclass(frozen=True, slots=True)
class BreakdownDetail:
    """Detail payload for a Level2 series: its total plus Level3 children.

    ``children`` holds non-zero subtotals ordered by absolute value,
    largest first.
    """

    label: str
    category: str
    total: Decimal
    children: tuple[tuple[str, Decimal], ...]
    kind: Literal["breakdown"] = "breakdown"


type DetailPayload = SimpleDetail | BreakdownDetail


@dataclass(frozen=True, slots=True)
class SeriesSpec:
    """Chart series for one active category: raw line plus 3-month MA line."""

    key: str
    name: str
    ma_key: str
    ma_name: str


# ---------------------------------------------------------------------------
# DTOs exchanged with the hosted LLM
# ---------------------------------------------------------------------------


class CategorySummary(BaseModel):
    """Per-category digest sent to the model for whole-dataset analysis."""

    model_config = ConfigDict(frozen=True)

    category: str
    total_amount: float = Field(serialization_alias="totalAmount")
    transaction_count: int = Field(serialization_alias="transactionCount")
    example_descriptions: list[str] = Field(serialization_alias="exampleDescriptions")


class CategoryTotal(BaseModel):
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    category: str
    total: float


class AnalysisResult(BaseModel):
    """Validated whole-dataset analysis returned by the model.

    Only the presence and basic shape of the required fields is enforced; the
    content itself is displayed as-is.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    category_totals: list[CategoryTotal] = Field(alias="categoryTotals")
    summary: str
    tips: list[str]

    @field_validator("summary")
    @classmethod
    def _summary_non_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("summary must be a non-empty string")
        return v.strip()


class ChatMessage(BaseModel):
    model_config = ConfigDict(frozen=True)

    sender: Literal["user", "ai"]
    text: str
    is_error: bool = False
