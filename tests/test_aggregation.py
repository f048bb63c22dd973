from __future__ import annotations

from decimal import Decimal

from expense_dashboard.aggregation import (
    aggregate_by_category,
    build_category_summary,
    category_catalog,
    category_counts,
    category_totals,
    hierarchy_rollup,
    rank_categories,
    stat_totals,
    top_level1_categories,
    top_spend_categories,
    transaction_highlights,
)
from expense_dashboard.models import CategoryAggregate
from tests.helpers.records import rec

D = Decimal


def _sample():
    return [
        rec("01/01/24", 100, "Regular", "Food", "Groceries", description="Big Bazaar"),
        rec("15/01/24", -20, "Regular", "Food", "Groceries", description="Refund"),
        rec("20/01/24", 60, "Regular", "Food", "Dining", description="Cafe"),
        rec("02/02/24", 50, "One-Time", "Travel", "Flight", description="IndiGo"),
        rec("03/02/24", 10, "Regular", "", "", description="Misc"),
    ]


# ---- Totals and ranking ------------------------------------------------------


def test_category_totals_net_keeps_first_occurrence_order():
    totals = category_totals(_sample(), "level2")

    assert list(totals) == ["Food", "Travel"]
    assert totals == {"Food": D(140), "Travel": D(50)}


def test_category_totals_spend_only_ignores_refunds():
    totals = category_totals(_sample(), "level3", spend_only=True)

    assert totals == {"Groceries": D(100), "Dining": D(60), "Flight": D(50)}


def test_blank_category_names_are_not_keyed():
    totals = category_totals([rec("01/01/24", 5, "  ", "", "")], "level1")

    assert totals == {}


def test_rank_categories_ties_follow_insertion_order():
    ranked = rank_categories({"B": D(10), "A": D(10), "C": D(30)})

    assert [r.name for r in ranked] == ["C", "B", "A"]
    assert [r.share for r in ranked] == [D(100), D(10) / D(30) * 100, D(10) / D(30) * 100]


def test_rank_categories_by_absolute_value():
    ranked = rank_categories({"Refunds": D(-100), "Food": D(60)}, by_absolute=True)

    assert [r.name for r in ranked] == ["Refunds", "Food"]


def test_rank_categories_share_is_zero_when_top_not_positive():
    ranked = rank_categories({"A": D(0), "B": D(-5)})

    assert [r.share for r in ranked] == [D(0), D(0)]


def test_top_level1_categories_uses_absolute_net():
    records = [
        rec("01/01/24", -100, "Cashback"),
        rec("01/01/24", 60, "Regular"),
        rec("02/01/24", 20, "One-Time"),
    ]

    assert top_level1_categories(records, 2) == ["Cashback", "Regular"]


def test_top_spend_categories_shares_relative_to_largest():
    top = top_spend_categories(_sample(), "level2", n=5)

    assert [(t.name, t.total, t.share) for t in top] == [
        ("Food", D(160), D(100)),
        ("Travel", D(50), D(50) / D(160) * 100),
    ]


def test_aggregate_by_category_counts_every_record():
    aggs = aggregate_by_category(_sample(), "level1")

    assert aggs["Regular"] == CategoryAggregate(total=D(150), count=4)
    assert aggs["One-Time"] == CategoryAggregate(total=D(50), count=1)


def test_category_counts_default_to_spend_only():
    counts = category_counts(_sample(), "level2")

    assert counts == {"Food": 2, "Travel": 1}


def test_helpers_are_total_over_empty_input():
    assert category_totals([], "level1") == {}
    assert rank_categories({}) == []
    assert top_level1_categories([]) == []
    assert top_spend_categories([]) == []
    assert hierarchy_rollup([], "level2", "level3") == {}
    assert build_category_summary([]) == []
    stats = stat_totals([])
    assert (stats.regular, stats.one_time, stats.total) == (D(0), D(0), D(0))
    hl = transaction_highlights([])
    assert hl.largest_spend is None and hl.most_frequent_category is None


# ---- Hierarchy ---------------------------------------------------------------


def test_level3_totals_never_exceed_level2_parent():
    records = [
        rec("01/01/24", 100, "Regular", "Food", "Groceries"),
        rec("02/01/24", 40, "Regular", "Food", "Dining"),
        rec("03/01/24", 25, "Regular", "Food", ""),
        rec("04/01/24", 70, "Regular", "Travel", "Cab"),
    ]

    parents = category_totals(records, "level2")
    rollup = hierarchy_rollup(records, "level2", "level3")

    assert sum(rollup["Food"].values()) == D(140)
    assert abs(sum(rollup["Food"].values())) <= abs(parents["Food"])
    # Every Travel record has a Level3, so the children add up exactly.
    assert sum(rollup["Travel"].values()) == parents["Travel"]


# ---- Stat cards and highlights -----------------------------------------------


def test_stat_totals_sum_absolute_nets():
    records = [
        rec("01/01/24", 100, "Regular"),
        rec("02/01/24", -150, "Regular"),
        rec("03/01/24", 30, "One-Time"),
        rec("04/01/24", 999, "Other"),
    ]

    stats = stat_totals(records)

    assert stats.regular == D(50)
    assert stats.one_time == D(30)
    # |-50| + |30|, which differs from the signed sum of those records (-20)
    assert stats.total == D(80)


def test_transaction_highlights_largest_and_most_frequent():
    records = [
        rec("01/01/24", 500, "Regular", "Food", "Groceries", description="first"),
        rec("02/01/24", 500, "Regular", "Food", "Dining", description="second"),
        rec("03/01/24", 20, "Regular", "Food", "", description="a"),
        rec("04/01/24", 30, "Regular", "Food", "", description="b"),
        rec("05/01/24", -900, "Regular", "Food", "Refund", description="refund"),
        rec("06/01/24", -1, "Regular", "Food", "Refund", description="refund2"),
        rec("07/01/24", -2, "Regular", "Food", "Refund", description="refund3"),
    ]

    hl = transaction_highlights(records)

    assert hl.largest_spend is not None
    assert hl.largest_spend.description == "first"
    assert hl.most_frequent_category is not None
    assert (hl.most_frequent_category.name, hl.most_frequent_category.count) == (
        "Uncategorized",
        2,
    )


def test_transaction_highlights_without_spends():
    hl = transaction_highlights([rec("01/01/24", -5, "Regular", "Food", "Refund")])

    assert hl.largest_spend is None
    assert hl.most_frequent_category is None


# ---- Catalogue and analysis digest -------------------------------------------


def test_category_catalog_lists_and_children():
    records = [
        rec("01/01/24", 1, "Regular", "Food", "Groceries"),
        rec("01/01/24", 1, "Regular", "Food", "Dining"),
        rec("01/01/24", 1, "One-Time", "Travel", ""),
        rec("01/01/24", 1, "Regular", "Bills", "Power"),
        rec("01/01/24", 1, "Regular", "Food", "Groceries"),
    ]

    catalog = category_catalog(records)

    assert catalog.level1 == ["One-Time", "Regular"]
    assert catalog.level2 == ["Bills", "Food", "Travel"]
    assert catalog.children == {"Food": ["Groceries", "Dining"], "Bills": ["Power"]}
    assert catalog.drillable_level2() == ["Bills", "Food"]
    assert "Travel" in catalog.all_names and "Dining" in catalog.all_names


def test_build_category_summary_groups_by_derived_category():
    records = [
        rec("01/01/24", "10.005", "Regular", "Food", "Groceries", description="a"),
        rec("02/01/24", 20, "Regular", "Food", "Groceries", description="b"),
        rec("03/01/24", 30, "Regular", "Food", "Groceries", description="c"),
        rec("04/01/24", 40, "Regular", "Food", "Groceries", description="d"),
        rec("05/01/24", 5, "Regular", "", "", description="misc"),
    ]

    summary = build_category_summary(records)

    assert [s.category for s in summary] == ["Food - Groceries", "Uncategorized"]
    food = summary[0]
    assert food.transaction_count == 4
    assert food.example_descriptions == ["a", "b", "c"]
    assert food.total_amount == 100.0
    assert summary[1].model_dump(by_alias=True) == {
        "category": "Uncategorized",
        "totalAmount": 5.0,
        "transactionCount": 1,
        "exampleDescriptions": ["misc"],
    }
