"""Dashboard controller tying the record set, filters and LLM panels together.

The controller owns the wholesale record set and the selected year. Every
view it exposes (stat cards, highlights, the drill-down chart and the chat
context) is derived from the year-filtered records on demand.

Loads and LLM calls are the only operations that can be superseded. Each one
takes a ticket from :class:`RequestTickets`; a result that arrives with a
ticket older than the latest one issued on its channel is discarded.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from .aggregation import (
    StatTotals,
    TransactionHighlights,
    stat_totals,
    top_spend_categories,
    transaction_highlights,
)
from .analysis import AnalysisError, analyze_expenses, chat_about_expenses
from .config import Settings
from .drilldown import DrillDownController
from .ingest import CsvLoadError, load_expenses_from_csv, parse_expenses_csv
from .logging_setup import get_logger
from .models import AnalysisResult, ChatMessage, ExpenseRecord, Expenses, RankedCategory

_logger = get_logger("expense_dashboard.dashboard")

GREETING = "Hello! I'm BudgetBot. Ask me anything about your spending."

type Analyzer = Callable[[Expenses], AnalysisResult]
type Responder = Callable[[Expenses, str], str]
type AnalysisStatus = Literal["idle", "loading", "ready", "error", "no-data"]
type Channel = Literal["load", "analysis"]


# ---- Request tickets ---------------------------------------------------------


class RequestTickets:
    """Monotonic per-channel counters implementing last-request-wins."""

    def __init__(self) -> None:
        self._latest: dict[str, int] = {}

    def issue(self, channel: Channel) -> int:
        ticket = self._latest.get(channel, 0) + 1
        self._latest[channel] = ticket
        return ticket

    def is_current(self, channel: Channel, ticket: int) -> bool:
        return self._latest.get(channel) == ticket


# ---- Panel states ------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class LoadNotice:
    """Non-fatal notice shown when the CSV could not be loaded."""

    message: str
    path: str | None = None


@dataclass(frozen=True, slots=True)
class AnalysisState:
    status: AnalysisStatus = "idle"
    result: AnalysisResult | None = None
    error: str | None = None


class ChatSession:
    """Message log for the chat panel.

    Starts with the assistant greeting. Blank prompts and prompts sent while a
    reply is pending are ignored. Failures become an ``"Error: ..."`` reply
    flagged with ``is_error`` so the conversation can continue.
    """

    def __init__(self, responder: Responder) -> None:
        self._responder = responder
        self._messages: list[ChatMessage] = [ChatMessage(sender="ai", text=GREETING)]
        self._pending = False

    @property
    def messages(self) -> tuple[ChatMessage, ...]:
        return tuple(self._messages)

    @property
    def pending(self) -> bool:
        return self._pending

    def ask(self, records: Expenses, prompt: str) -> ChatMessage | None:
        """Send ``prompt`` about ``records``; return the reply, or None if ignored."""

        text = prompt.strip()
        if not text or self._pending:
            return None

        self._messages.append(ChatMessage(sender="user", text=text))
        self._pending = True
        try:
            answer = self._responder(records, text)
            reply = ChatMessage(sender="ai", text=answer)
        except AnalysisError as e:
            _logger.warning("chat:failed error=%s", e)
            reply = ChatMessage(sender="ai", text=f"Error: {e}", is_error=True)
        finally:
            self._pending = False
        self._messages.append(reply)
        return reply


# ---- Controller --------------------------------------------------------------


class DashboardController:
    """Owns the loaded records, the year filter and the derived panels."""

    def __init__(
        self,
        records: Expenses = (),
        *,
        settings: Settings | None = None,
        analyzer: Analyzer | None = None,
        responder: Responder | None = None,
    ) -> None:
        self._settings = settings or Settings()
        self._records: tuple[ExpenseRecord, ...] = tuple(records)
        self._year: int | None = self._settings.default_year
        self._tickets = RequestTickets()
        self._notice: LoadNotice | None = None
        self._analysis = AnalysisState()
        self._analyzer: Analyzer = analyzer or (
            lambda recs: analyze_expenses(
                recs, model=self._settings.model, api_key=self._settings.openai_api_key
            )
        )
        self.drilldown = DrillDownController(self.year_records(), top_n=self._settings.top_n)
        self.chat = ChatSession(
            responder
            or (
                lambda recs, q: chat_about_expenses(
                    recs,
                    q,
                    limit=self._settings.chat_record_limit,
                    model=self._settings.model,
                    api_key=self._settings.openai_api_key,
                )
            )
        )

    # ---- Records and year filter -------------------------------------------

    @property
    def records(self) -> tuple[ExpenseRecord, ...]:
        return self._records

    @property
    def selected_year(self) -> int | None:
        return self._year

    @property
    def notice(self) -> LoadNotice | None:
        return self._notice

    def available_years(self) -> list[int]:
        """Distinct non-zero ``year`` values, ascending."""

        return sorted({r.year for r in self._records if r.year})

    def year_records(self) -> list[ExpenseRecord]:
        if self._year is None:
            return list(self._records)
        return [r for r in self._records if r.year == self._year]

    def select_year(self, year: int | None) -> None:
        """Restrict every view to ``year`` (``None`` shows all years)."""

        self._year = year
        self.drilldown.replace_records(self.year_records())
        _logger.debug("dashboard:select_year year=%s records=%d", year, len(self.drilldown.records))

    def _replace_records(self, records: Expenses) -> None:
        self._records = tuple(records)
        self.drilldown.replace_records(self.year_records())
        # Any analysis in flight or shown describes the previous data.
        self._tickets.issue("analysis")
        self._analysis = AnalysisState()

    # ---- Loading -----------------------------------------------------------

    def begin_load(self) -> int:
        return self._tickets.issue("load")

    def complete_load(self, ticket: int, records: Expenses) -> bool:
        """Apply a finished load. Returns False when the result was superseded."""

        if not self._tickets.is_current("load", ticket):
            _logger.info("dashboard:load_discarded ticket=%d", ticket)
            return False
        self._notice = None
        self._replace_records(records)
        _logger.info("dashboard:load_applied ticket=%d records=%d", ticket, len(self._records))
        return True

    def fail_load(self, ticket: int, message: str, *, path: str | None = None) -> bool:
        if not self._tickets.is_current("load", ticket):
            return False
        self._notice = LoadNotice(message=message, path=path)
        self._replace_records(())
        _logger.warning("dashboard:load_failed ticket=%d error=%s", ticket, message)
        return True

    def load_text(self, csv_text: str) -> bool:
        ticket = self.begin_load()
        return self.complete_load(ticket, parse_expenses_csv(csv_text))

    def load_file(self, path: Path | str) -> bool:
        ticket = self.begin_load()
        try:
            records = load_expenses_from_csv(path)
        except CsvLoadError as e:
            return self.fail_load(ticket, str(e), path=str(path))
        return self.complete_load(ticket, records)

    # ---- Derived panels ----------------------------------------------------

    def stats(self) -> StatTotals:
        return stat_totals(self.year_records())

    def highlights(self) -> TransactionHighlights:
        return transaction_highlights(self.year_records())

    def top_categories(self) -> list[RankedCategory]:
        return top_spend_categories(self.year_records(), n=self._settings.top_n)

    def chat_context_records(self) -> list[ExpenseRecord]:
        """Year-filtered records narrowed to what the chart currently shows."""

        records = self.year_records()
        state = self.drilldown.state
        if not state.categories:
            return records

        def _visible(r: ExpenseRecord) -> bool:
            if state.level1_filter and r.level1 != state.level1_filter:
                return False
            if state.level == "level1":
                return r.level1 in state.categories
            if state.level == "level2":
                return r.level2 in state.categories
            return r.level2 == state.parent_category and r.level3 in state.categories

        return [r for r in records if _visible(r)]

    # ---- LLM panels --------------------------------------------------------

    @property
    def analysis(self) -> AnalysisState:
        return self._analysis

    def begin_analysis(self) -> int | None:
        """Start an analysis request; None when there is nothing to analyze."""

        ticket = self._tickets.issue("analysis")
        if not self.year_records():
            self._analysis = AnalysisState(status="no-data")
            return None
        self._analysis = AnalysisState(status="loading")
        return ticket

    def complete_analysis(self, ticket: int, result: AnalysisResult) -> bool:
        if not self._tickets.is_current("analysis", ticket):
            _logger.info("dashboard:analysis_discarded ticket=%d", ticket)
            return False
        self._analysis = AnalysisState(status="ready", result=result)
        return True

    def fail_analysis(self, ticket: int, message: str) -> bool:
        if not self._tickets.is_current("analysis", ticket):
            return False
        self._analysis = AnalysisState(status="error", error=message)
        return True

    def run_analysis(self) -> AnalysisState:
        ticket = self.begin_analysis()
        if ticket is None:
            return self._analysis
        try:
            result = self._analyzer(self.year_records())
        except AnalysisError as e:
            self.fail_analysis(ticket, str(e))
        else:
            self.complete_analysis(ticket, result)
        return self._analysis

    def ask(self, prompt: str) -> ChatMessage | None:
        return self.chat.ask(self.chat_context_records(), prompt)


__all__ = [
    "GREETING",
    "AnalysisState",
    "ChatSession",
    "DashboardController",
    "LoadNotice",
    "RequestTickets",
]
