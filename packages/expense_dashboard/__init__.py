"""Public interface for the ``expense_dashboard`` package.

This module exposes the pipeline entry points and public models/types as the
stable import surface. There is no runtime logic here, only symbol re-exports.
"""

from .aggregation import (
    category_catalog,
    category_totals,
    rank_categories,
    stat_totals,
    top_level1_categories,
    top_spend_categories,
    transaction_highlights,
)
from .analysis import AnalysisError, analyze_expenses, chat_about_expenses
from .dashboard import DashboardController
from .drilldown import DrillDownController
from .formatting import format_inr
from .ingest import CsvLoadError, load_expenses_from_csv, parse_expenses_csv
from .models import (
    AnalysisResult,
    DrillDownState,
    ExpenseRecord,
    Expenses,
    HierarchyLevel,
)
from .table_view import SortState, table_rows
from .timeseries import MonthBucket, bucket_by_month

__all__ = [
    # Ingest
    "parse_expenses_csv",
    "load_expenses_from_csv",
    "CsvLoadError",
    # Aggregation
    "category_totals",
    "rank_categories",
    "top_level1_categories",
    "top_spend_categories",
    "stat_totals",
    "transaction_highlights",
    "category_catalog",
    # Trends and drill-down
    "bucket_by_month",
    "MonthBucket",
    "DrillDownController",
    # Table
    "SortState",
    "table_rows",
    # Dashboard and LLM
    "DashboardController",
    "analyze_expenses",
    "chat_about_expenses",
    "AnalysisError",
    "format_inr",
    # Models / types
    "ExpenseRecord",
    "Expenses",
    "HierarchyLevel",
    "DrillDownState",
    "AnalysisResult",
]
