"""Drill-down selection state for the monthly trend chart.

:class:`DrillDownController` owns a :class:`~expense_dashboard.models.DrillDownState`
and is the only place it changes. Its public transitions are:

- :meth:`DrillDownController.select_level1`: toggle the Level1 filter chip;
- :meth:`DrillDownController.select_level2`: show one Level2 series;
- :meth:`DrillDownController.toggle_level3`: add/remove a Level3 leaf under a
  Level2 parent;

plus the two lifecycle hooks :meth:`~DrillDownController.replace_records` and
:meth:`~DrillDownController.clear_level1_filter`. Every transition swaps in a
new frozen snapshot, so readers never observe a half-applied update.
Derived chart data is recomputed from scratch on each read.
"""

from __future__ import annotations

from typing import Any

from .aggregation import CategoryCatalog, category_catalog, top_level1_categories
from .logging_setup import get_logger
from .models import DetailPayload, DrillDownState, ExpenseRecord, Expenses, SeriesSpec
from .timeseries import MA_SUFFIX, MonthBucket, bucket_by_month, chart_rows, detail_for

_logger = get_logger("expense_dashboard.drilldown")


class DrillDownController:
    """Holds the record set the chart is drawn from and the active selection."""

    def __init__(self, records: Expenses = (), *, top_n: int = 5) -> None:
        if top_n <= 0:
            raise ValueError("top_n must be a positive integer")
        self._records: tuple[ExpenseRecord, ...] = tuple(records)
        self._top_n = top_n
        self._state = DrillDownState()
        if self._records:
            self._state = self._initial_state()

    # ---- Read-only views ---------------------------------------------------

    @property
    def state(self) -> DrillDownState:
        return self._state

    @property
    def records(self) -> tuple[ExpenseRecord, ...]:
        return self._records

    def _initial_state(self) -> DrillDownState:
        return DrillDownState(
            level="level1",
            categories=tuple(top_level1_categories(self._records, self._top_n)),
        )

    def _set(self, new_state: DrillDownState, event: str) -> DrillDownState:
        self._state = new_state
        _logger.debug(
            "drilldown:%s level=%s categories=%d parent=%s level1_filter=%s",
            event,
            new_state.level,
            len(new_state.categories),
            new_state.parent_category,
            new_state.level1_filter,
        )
        return new_state

    # ---- Transitions -------------------------------------------------------

    def select_level1(self, category: str) -> DrillDownState:
        """Toggle the Level1 filter chip ``category``.

        Re-selecting the active chip clears the filter and resets the display
        to the default top Level1 categories of the full record set.
        """

        if self._state.level1_filter == category:
            return self._set(self._initial_state(), "level1_filter_off")
        return self._set(
            DrillDownState(level="level1", categories=(category,), level1_filter=category),
            "level1_filter_on",
        )

    def select_level2(self, category: str) -> DrillDownState:
        """Show the single Level2 series ``category``, replacing any selection."""

        return self._set(
            DrillDownState(
                level="level2",
                categories=(category,),
                level1_filter=self._state.level1_filter,
            ),
            "level2_select",
        )

    def toggle_level3(self, category: str, parent: str) -> DrillDownState:
        """Toggle Level3 leaf ``category`` under Level2 ``parent``.

        Switching parent (or coming from another level) starts from an empty
        selection. Removing the last leaf falls back to the parent's Level2
        view.
        """

        prev = self._state
        same_context = prev.level == "level3" and prev.parent_category == parent
        working = list(prev.categories) if same_context else []
        if category in working:
            working.remove(category)
        else:
            working.append(category)

        if not working:
            return self._set(
                DrillDownState(
                    level="level2", categories=(parent,), level1_filter=prev.level1_filter
                ),
                "level3_fallback",
            )
        return self._set(
            DrillDownState(
                level="level3",
                categories=tuple(working),
                parent_category=parent,
                level1_filter=prev.level1_filter,
            ),
            "level3_toggle",
        )

    def replace_records(self, records: Expenses) -> DrillDownState:
        """Swap in a new record set.

        An existing selection is kept even if its names no longer occur (they
        chart as zero series); an empty selection is re-initialized.
        """

        self._records = tuple(records)
        if not self._state.categories:
            return self._set(
                DrillDownState(
                    level="level1",
                    categories=tuple(top_level1_categories(self._records, self._top_n)),
                    level1_filter=self._state.level1_filter,
                ),
                "records_replaced_reset",
            )
        return self._set(self._state, "records_replaced")

    def clear_level1_filter(self) -> DrillDownState:
        prev = self._state
        if not prev.categories:
            return self._set(self._initial_state(), "level1_filter_cleared_reset")
        return self._set(
            DrillDownState(
                level=prev.level,
                categories=prev.categories,
                parent_category=prev.parent_category,
            ),
            "level1_filter_cleared",
        )

    # ---- Derived chart data ------------------------------------------------

    def contextual_records(self) -> list[ExpenseRecord]:
        """Records narrowed by the Level1 filter, if any."""

        level1 = self._state.level1_filter
        if not level1:
            return list(self._records)
        return [r for r in self._records if r.level1 == level1]

    def buckets(self) -> list[MonthBucket]:
        return bucket_by_month(self.contextual_records())

    def chart_rows(self) -> list[dict[str, Any]]:
        return chart_rows(self.buckets())

    def catalog(self) -> CategoryCatalog:
        """Chip/button names, computed over the unfiltered record set."""

        return category_catalog(self._records)

    def series(self) -> list[SeriesSpec]:
        state = self._state
        out: list[SeriesSpec] = []
        for category in state.categories:
            if state.level1_filter and state.level != "level1":
                name = f"{category} ({state.level1_filter})"
            else:
                name = category
            out.append(
                SeriesSpec(
                    key=category,
                    name=name,
                    ma_key=f"{category}{MA_SUFFIX}",
                    ma_name=f"{name} (3M MA)",
                )
            )
        return out

    def detail(self, bucket_index: int) -> DetailPayload:
        """Detail payload for the bucket at ``bucket_index`` (chronological)."""

        buckets = self.buckets()
        if not 0 <= bucket_index < len(buckets):
            raise IndexError(f"bucket index out of range: {bucket_index}")
        return detail_for(buckets[bucket_index], self.series(), self._state.level)


__all__ = ["DrillDownController"]
