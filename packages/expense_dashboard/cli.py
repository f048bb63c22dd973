"""CLI for the ``expense_dashboard`` package.

This module exposes callable command handlers (``cmd_summary``,
``cmd_trends``, ``cmd_table``, ``cmd_analyze``, ``cmd_ask``) and a Typer-based
console interface. Environment variables (notably ``OPENAI_API_KEY``) are
loaded from a local ``.env`` using ``python-dotenv`` before any command runs.
Handlers write results to stdout, print ``Error: ...`` to stderr on failure
and return a process exit status.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Annotated

import typer
from dotenv import load_dotenv
from typer.models import OptionInfo

from .config import Settings, load_settings
from .dashboard import DashboardController
from .formatting import format_inr
from .ingest import EXPECTED_HEADERS
from .logging_setup import configure_logging
from .table_view import DISPLAY_COLUMNS, SortState, column_text, table_rows

# ---- Small module-level helpers used by CLI commands -------------------------


def _settings_or_none(*, require_api_key: bool = False) -> Settings | None:
    """Resolve settings and apply their log level; print the error and return None."""

    try:
        settings = load_settings()
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return None
    configure_logging(settings.log_level)
    if require_api_key and not settings.openai_api_key:
        print("Error: OPENAI_API_KEY is not set in the environment.", file=sys.stderr)
        return None
    return settings


def _open_dashboard(
    csv_path: str, year: int | None, settings: Settings
) -> DashboardController | None:
    """Load ``csv_path`` into a fresh controller and apply the year filter.

    An explicit ``year`` wins over ``EXPENSE_DASHBOARD_DEFAULT_YEAR``. Returns
    None after printing the load notice when the file could not be read.
    """

    controller = DashboardController(settings=settings)
    controller.load_file(csv_path)
    if controller.notice is not None:
        print(f"Error: {controller.notice.message}", file=sys.stderr)
        return None
    if year is not None:
        controller.select_year(year)
    return controller


def _apply_drilldown(
    controller: DashboardController,
    level1: str | None,
    level2: str | None,
    level3: list[str] | None,
) -> str | None:
    """Replay chart clicks on ``controller``; return an error message if invalid."""

    if level3 and not level2:
        return "--level3 requires --level2 (the parent category)."
    if level1:
        controller.drilldown.select_level1(level1)
    if level2:
        controller.drilldown.select_level2(level2)
    for leaf in level3 or []:
        controller.drilldown.toggle_level3(leaf, level2 or "")
    return None


# ---- Command handlers --------------------------------------------------------


def cmd_summary(csv_path: str, *, year: int | None = None) -> int:
    """Print the stat cards, transaction highlights and top spend categories."""

    settings = _settings_or_none()
    if settings is None:
        return 1
    controller = _open_dashboard(csv_path, year, settings)
    if controller is None:
        return 1

    years = controller.available_years()
    scope = str(controller.selected_year) if controller.selected_year is not None else "all"
    print(f"Year: {scope} (available: {', '.join(str(y) for y in years) or 'none'})")

    stats = controller.stats()
    print(f"Regular Expenses\t{format_inr(stats.regular)}")
    print(f"One-Time Expenses\t{format_inr(stats.one_time)}")
    print(f"Total Expenses\t{format_inr(stats.total)}")

    hl = controller.highlights()
    if hl.largest_spend is None:
        print("Largest Transaction\tNo transactions yet.")
    else:
        big = hl.largest_spend
        print(f"Largest Transaction\t{format_inr(big.amount)}\t{big.description}")
    if hl.most_frequent_category is None:
        print("Most Frequent Category\tNo transactions yet.")
    else:
        freq = hl.most_frequent_category
        print(f"Most Frequent Category\t{freq.name}\t{freq.count} transactions")

    print("Top Spending Categories")
    for rc in controller.top_categories():
        print(f"  {rc.name}\t{format_inr(rc.total)}\t{rc.share:.0f}%")
    return 0


def cmd_trends(
    csv_path: str,
    *,
    year: int | None = None,
    level1: str | None = None,
    level2: str | None = None,
    level3: list[str] | None = None,
) -> int:
    """Print the monthly series (raw and 3-month MA) for the active selection."""

    settings = _settings_or_none()
    if settings is None:
        return 1
    controller = _open_dashboard(csv_path, year, settings)
    if controller is None:
        return 1

    error = _apply_drilldown(controller, level1, level2, level3)
    if error:
        print(f"Error: {error}", file=sys.stderr)
        return 1

    state = controller.drilldown.state
    series = controller.drilldown.series()
    print(f"Level: {state.level}\tFilter: {state.level1_filter or 'all'}")
    header = ["Month"]
    for s in series:
        header.extend([s.name, s.ma_name])
    print("\t".join(header))
    for bucket in controller.drilldown.buckets():
        cells = [bucket.label]
        for s in series:
            cells.append(format_inr(bucket.totals.get(s.key, 0)))
            cells.append(format_inr(bucket.moving_averages.get(s.key, 0)))
        print("\t".join(cells))
    return 0


def _parse_filters(raw: list[str] | None) -> dict[str, str] | None:
    filters: dict[str, str] = {}
    for item in raw or []:
        column, sep, text = item.partition("=")
        if not sep:
            print(f"Error: Invalid --filter {item!r}; expected COLUMN=TEXT", file=sys.stderr)
            return None
        filters[column.strip()] = text
    return filters


def cmd_table(
    csv_path: str,
    *,
    filters: list[str] | None = None,
    sort: list[str] | None = None,
) -> int:
    """Print the filtered and sorted expense table (tab-separated)."""

    settings = _settings_or_none()
    if settings is None:
        return 1
    controller = _open_dashboard(csv_path, None, settings)
    if controller is None:
        return 1

    parsed = _parse_filters(filters)
    if parsed is None:
        return 1
    try:
        sort_state = SortState()
        for column in sort or []:
            sort_state = sort_state.toggle(column)
        rows = table_rows(controller.records, parsed, sort_state)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print("\t".join(EXPECTED_HEADERS[c] for c in DISPLAY_COLUMNS))
    for r in rows:
        print("\t".join(column_text(r, c) for c in DISPLAY_COLUMNS))
    return 0


def cmd_analyze(csv_path: str, *, year: int | None = None) -> int:
    """Run the whole-dataset LLM analysis and print totals, summary and tips."""

    settings = _settings_or_none(require_api_key=True)
    if settings is None:
        return 1
    controller = _open_dashboard(csv_path, year, settings)
    if controller is None:
        return 1

    state = controller.run_analysis()
    if state.status == "no-data":
        print("Error: No expenses to analyze.", file=sys.stderr)
        return 1
    if state.status == "error" or state.result is None:
        print(f"Error: {state.error}", file=sys.stderr)
        return 1

    result = state.result
    print("Spending by Category")
    for ct in result.category_totals:
        print(f"  {ct.category}\t{format_inr(ct.total)}")
    print("")
    print("Summary")
    print(result.summary)
    print("")
    print("Tips")
    for tip in result.tips:
        print(f"  - {tip}")
    return 0


def cmd_ask(
    csv_path: str,
    question: str,
    *,
    year: int | None = None,
    level1: str | None = None,
    level2: str | None = None,
    level3: list[str] | None = None,
) -> int:
    """Ask the chat assistant about the records in the current chart view."""

    if not question.strip():
        print("Error: --question must not be empty.", file=sys.stderr)
        return 1
    settings = _settings_or_none(require_api_key=True)
    if settings is None:
        return 1
    controller = _open_dashboard(csv_path, year, settings)
    if controller is None:
        return 1

    error = _apply_drilldown(controller, level1, level2, level3)
    if error:
        print(f"Error: {error}", file=sys.stderr)
        return 1

    reply = controller.ask(question)
    if reply is None or reply.is_error:
        print(reply.text if reply else "Error: No reply.", file=sys.stderr)
        return 1
    print(reply.text)
    return 0


# ---- Typer-based console interface -------------------------------------------


app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=(
        "Explore a personal expense CSV: stat cards, monthly trends with drill-down, "
        "a sortable table and OpenAI-powered analysis. Loads OPENAI_API_KEY from a "
        "local .env before running."
    ),
)


# Module-level option objects to satisfy ruff B008 (no calls in parameter
# defaults).
CSV_PATH_OPTION: OptionInfo = typer.Option(
    ...,  # required
    "--csv-path",
    help="Path to the expense CSV export",
    dir_okay=False,
    file_okay=True,
    exists=False,  # the handler reports missing files itself
    readable=True,
)
YEAR_OPTION: OptionInfo = typer.Option(
    "--year", help="Only include records whose Year column equals this value."
)
LEVEL1_OPTION: OptionInfo = typer.Option("--level1", help="Level 1 filter chip to select.")
LEVEL2_OPTION: OptionInfo = typer.Option("--level2", help="Level 2 category to show.")
LEVEL3_OPTION: OptionInfo = typer.Option(
    "--level3", help="Level 3 leaf under --level2 to toggle (repeatable)."
)


def _exit(code: int) -> None:
    if code:
        raise typer.Exit(code)


@app.command("summary")
def summary_cmd(
    csv_path: Annotated[Path, CSV_PATH_OPTION],
    year: Annotated[int | None, YEAR_OPTION] = None,
) -> None:
    """Stat cards, highlights and top spending categories."""

    _exit(cmd_summary(str(csv_path), year=year))


@app.command("trends")
def trends_cmd(
    csv_path: Annotated[Path, CSV_PATH_OPTION],
    year: Annotated[int | None, YEAR_OPTION] = None,
    level1: Annotated[str | None, LEVEL1_OPTION] = None,
    level2: Annotated[str | None, LEVEL2_OPTION] = None,
    level3: Annotated[list[str] | None, LEVEL3_OPTION] = None,
) -> None:
    """Monthly trend of the selected categories with a 3-month moving average."""

    _exit(cmd_trends(str(csv_path), year=year, level1=level1, level2=level2, level3=level3))


@app.command("table")
def table_cmd(
    csv_path: Annotated[Path, CSV_PATH_OPTION],
    filters: Annotated[
        list[str] | None,
        typer.Option("--filter", help="COLUMN=TEXT substring filter (repeatable)."),
    ] = None,
    sort: Annotated[
        list[str] | None,
        typer.Option("--sort", help="Column header click; repeat a column to flip direction."),
    ] = None,
) -> None:
    """All expenses, filtered per column and sorted by one column."""

    _exit(cmd_table(str(csv_path), filters=filters, sort=sort))


@app.command("analyze")
def analyze_cmd(
    csv_path: Annotated[Path, CSV_PATH_OPTION],
    year: Annotated[int | None, YEAR_OPTION] = None,
) -> None:
    """AI summary, consolidated category totals and saving tips."""

    _exit(cmd_analyze(str(csv_path), year=year))


@app.command("ask")
def ask_cmd(
    csv_path: Annotated[Path, CSV_PATH_OPTION],
    question: Annotated[str, typer.Option(..., "--question", help="Question for BudgetBot.")],
    year: Annotated[int | None, YEAR_OPTION] = None,
    level1: Annotated[str | None, LEVEL1_OPTION] = None,
    level2: Annotated[str | None, LEVEL2_OPTION] = None,
    level3: Annotated[list[str] | None, LEVEL3_OPTION] = None,
) -> None:
    """Ask BudgetBot about the transactions in the current chart view."""

    _exit(
        cmd_ask(
            str(csv_path), question, year=year, level1=level1, level2=level2, level3=level3
        )
    )


@app.callback()
def _root() -> None:
    """Root command.

    Loads ``.env`` from the current working directory (without overriding any
    already-set environment variables). Commands then resolve settings, which
    also sets the package log level.
    """

    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)


if __name__ == "__main__":  # pragma: no cover
    # Running as a module: `python -m expense_dashboard.cli`
    app()
