from __future__ import annotations

from decimal import Decimal

import pytest

from expense_dashboard.drilldown import DrillDownController
from expense_dashboard.models import BreakdownDetail, DrillDownState, SimpleDetail
from tests.helpers.records import rec


def _records():
    return [
        rec("01/01/24", 100, "Regular", "Food", "Groceries"),
        rec("15/01/24", -20, "Regular", "Food", "Groceries"),
        rec("20/01/24", 40, "Regular", "Food", "Dining"),
        rec("02/02/24", 50, "One-Time", "Travel", "Flight"),
        rec("03/02/24", 500, "Investments", "Stocks", "Index"),
        rec("04/02/24", -300, "Cashback", "Card", "Reward"),
        rec("05/02/24", 10, "Gifts", "Family", "Birthday"),
        rec("06/02/24", 5, "Misc", "Other", "Other"),
    ]


def test_initial_state_is_top_five_level1_by_absolute_net():
    ctl = DrillDownController(_records())

    assert ctl.state == DrillDownState(
        level="level1",
        categories=("Investments", "Cashback", "Regular", "One-Time", "Gifts"),
    )


def test_top_n_is_configurable():
    ctl = DrillDownController(_records(), top_n=2)

    assert ctl.state.categories == ("Investments", "Cashback")


def test_empty_controller_starts_with_no_categories():
    ctl = DrillDownController([])

    assert ctl.state == DrillDownState()
    assert ctl.buckets() == []
    assert ctl.series() == []


def test_level1_chip_toggles_filter_on_and_off():
    ctl = DrillDownController(_records())
    initial = ctl.state

    on = ctl.select_level1("Regular")
    assert on == DrillDownState(level="level1", categories=("Regular",), level1_filter="Regular")
    assert {r.level1 for r in ctl.contextual_records()} == {"Regular"}

    off = ctl.select_level1("Regular")
    assert off == initial
    assert off.level1_filter is None


def test_selecting_another_level1_chip_switches_filter():
    ctl = DrillDownController(_records())
    ctl.select_level1("Regular")

    state = ctl.select_level1("One-Time")

    assert state.level1_filter == "One-Time"
    assert state.categories == ("One-Time",)


def test_level2_select_replaces_selection_and_keeps_level1_filter():
    ctl = DrillDownController(_records())
    ctl.select_level1("Regular")
    ctl.select_level2("Food")
    ctl.toggle_level3("Groceries", "Food")

    state = ctl.select_level2("Food")

    assert state == DrillDownState(level="level2", categories=("Food",), level1_filter="Regular")


def test_level3_toggle_round_trip_falls_back_to_level2():
    ctl = DrillDownController(_records())
    after_level2 = ctl.select_level2("Food")

    on = ctl.toggle_level3("Groceries", "Food")
    assert on == DrillDownState(level="level3", categories=("Groceries",), parent_category="Food")

    off = ctl.toggle_level3("Groceries", "Food")
    assert off == after_level2


def test_level3_toggles_accumulate_under_same_parent():
    ctl = DrillDownController(_records())
    ctl.toggle_level3("Groceries", "Food")
    ctl.toggle_level3("Dining", "Food")
    state = ctl.toggle_level3("Groceries", "Food")

    assert state.level == "level3"
    assert state.categories == ("Dining",)
    assert state.parent_category == "Food"


def test_level3_toggle_under_new_parent_starts_fresh():
    ctl = DrillDownController(_records())
    ctl.toggle_level3("Groceries", "Food")
    ctl.toggle_level3("Dining", "Food")

    state = ctl.toggle_level3("Flight", "Travel")

    assert state.categories == ("Flight",)
    assert state.parent_category == "Travel"


def test_replace_records_preserves_nonempty_selection():
    ctl = DrillDownController(_records())
    ctl.select_level2("Food")

    state = ctl.replace_records([rec("01/03/24", 7, "Regular", "Bills", "Power")])

    assert state == DrillDownState(level="level2", categories=("Food",))
    [bucket] = ctl.buckets()
    # Stale names chart as zero.
    assert bucket.totals.get("Food", Decimal(0)) == Decimal(0)


def test_replace_records_reinitializes_empty_selection():
    ctl = DrillDownController([])

    state = ctl.replace_records(_records()[:4])

    assert state.categories == ("Regular", "One-Time")


def test_clear_level1_filter_keeps_selection():
    ctl = DrillDownController(_records())
    ctl.select_level1("Regular")
    ctl.select_level2("Food")

    state = ctl.clear_level1_filter()

    assert state == DrillDownState(level="level2", categories=("Food",))


def test_series_names_include_level1_filter_below_level1():
    ctl = DrillDownController(_records())
    ctl.select_level1("Regular")
    assert [s.name for s in ctl.series()] == ["Regular"]

    ctl.select_level2("Food")
    [s] = ctl.series()

    assert (s.key, s.name, s.ma_key, s.ma_name) == (
        "Food",
        "Food (Regular)",
        "Food_MA",
        "Food (Regular) (3M MA)",
    )


def test_chart_is_computed_over_level1_filtered_records():
    ctl = DrillDownController(_records())
    ctl.select_level1("Regular")

    buckets = ctl.buckets()

    assert [b.label for b in buckets] == ["Jan-24"]
    assert "Travel" not in buckets[0].totals
    rows = ctl.chart_rows()
    assert rows[0]["Regular"] == Decimal(120)


def test_detail_payload_follows_level():
    ctl = DrillDownController(_records())
    ctl.select_level2("Food")

    detail = ctl.detail(0)
    assert isinstance(detail, BreakdownDetail)
    assert detail.children == (("Groceries", Decimal(80)), ("Dining", Decimal(40)))

    ctl.toggle_level3("Dining", "Food")
    assert isinstance(ctl.detail(0), SimpleDetail)

    with pytest.raises(IndexError):
        ctl.detail(99)


def test_catalog_uses_unfiltered_records():
    ctl = DrillDownController(_records())
    ctl.select_level1("Regular")

    assert "Travel" in ctl.catalog().level2


def test_invalid_states_are_rejected():
    with pytest.raises(ValueError):
        DrillDownState(level="level3", categories=("Groceries",))
    with pytest.raises(ValueError):
        DrillDownState(level="level2", categories=("Food",), parent_category="Food")
    with pytest.raises(ValueError):
        DrillDownState(level="level1", categories=("A", "A"))
    with pytest.raises(ValueError):
        DrillDownController([], top_n=0)
