"""LLM-backed spending analysis and chat.

Public API:
    - :func:`analyze_expenses`
    - :func:`chat_about_expenses`
    - :class:`AnalysisError`

Both calls go through the OpenAI Responses API. Transport errors with HTTP
status 429 or 5xx are retried with a short jittered backoff; everything else
(other HTTP errors, empty output, invalid JSON, missing fields) fails at once
with :class:`AnalysisError`. No side effects occur at import time.
"""

from __future__ import annotations

import json
import random
import time
from collections.abc import Callable, Mapping
from typing import Any

from openai import OpenAI, OpenAIError
from openai.types.responses import ResponseTextConfigParam
from pydantic import ValidationError

from . import prompting
from .aggregation import build_category_summary
from .config import DEFAULT_MODEL
from .logging_setup import get_logger
from .models import AnalysisResult, Expenses

# ---- Tunables (private) ------------------------------------------------------

_MAX_ATTEMPTS: int = 3
_BACKOFF_SCHEDULE_SEC: tuple[float, ...] = (0.5, 2.0)
_JITTER_PCT: float = 0.20


_logger = get_logger("expense_dashboard.analysis")


class AnalysisError(Exception):
    """The hosted model could not produce a usable answer."""


# ---- Internal helpers --------------------------------------------------------


def _create_client(api_key: str | None = None) -> OpenAI:
    # ``None`` lets the SDK fall back to ``OPENAI_API_KEY``.
    try:
        return OpenAI(api_key=api_key)
    except OpenAIError as e:
        raise AnalysisError(f"Could not get a response from the model. {e}") from e


def _is_retryable(exc: BaseException) -> bool:
    """Return True only for HTTP 429 and 5xx errors."""

    sc = getattr(exc, "status_code", None)
    if isinstance(sc, int) and (sc == 429 or 500 <= sc < 600):
        return True
    return False


def _sleep_backoff(attempt_no: int) -> None:
    if attempt_no - 1 < len(_BACKOFF_SCHEDULE_SEC):
        base = _BACKOFF_SCHEDULE_SEC[attempt_no - 1]
    else:
        base = _BACKOFF_SCHEDULE_SEC[-1]
    jitter = base * _JITTER_PCT
    delay = base + random.uniform(-jitter, jitter)
    time.sleep(max(0.0, delay))


def _extract_response_text(resp: Any) -> str:
    """Locate the text output of a Responses SDK result.

    Prefers ``resp.output_text`` and falls back to
    ``resp.output[0].content[0].text``. Raises ``ValueError`` when neither
    yields a non-blank string.
    """

    text: str | None = getattr(resp, "output_text", None)
    if not text:
        output = getattr(resp, "output", None)
        first = output[0] if output else None
        content = getattr(first, "content", None)
        if content:
            txt_obj = getattr(content[0], "text", None)
            if isinstance(txt_obj, str):
                text = txt_obj
            else:
                maybe_val = getattr(txt_obj, "value", None)
                if isinstance(maybe_val, str):
                    text = maybe_val
    if not text or not isinstance(text, str) or not text.strip():
        raise ValueError("The AI model returned an empty response.")
    return text.strip()


def _extract_response_json_mapping(resp: Any) -> Mapping[str, Any]:
    text = _extract_response_text(resp)
    try:
        decoded = json.loads(text)
    except json.JSONDecodeError as e:
        raise ValueError("The model returned an invalid format.") from e
    if not isinstance(decoded, Mapping):
        raise ValueError("The model returned an invalid format.")
    return decoded


def _call_with_retries[T](
    op: str,
    request: Callable[[OpenAI], Any],
    parse: Callable[[Any], T],
    *,
    api_key: str | None = None,
) -> T:
    """Run ``request`` then ``parse`` with the 429/5xx retry policy.

    Terminal failures, including a client that cannot be constructed (no API
    key), are raised as :class:`AnalysisError`.
    """

    try:
        client = _create_client(api_key)
    except AnalysisError:
        _logger.error("%s:failed_terminal error=client_init", op)
        raise
    attempt = 1
    while True:
        t0 = time.perf_counter()
        try:
            result = parse(request(client))
            dt_ms = (time.perf_counter() - t0) * 1000.0
            _logger.info("%s:done latency_ms=%.2f attempt=%d", op, dt_ms, attempt)
            return result
        except Exception as e:  # noqa: BLE001
            dt_ms = (time.perf_counter() - t0) * 1000.0
            if attempt >= _MAX_ATTEMPTS or not _is_retryable(e):
                _logger.error(
                    "%s:failed_terminal latency_ms=%.2f error=%s attempt=%d",
                    op,
                    dt_ms,
                    e.__class__.__name__,
                    attempt,
                )
                if isinstance(e, ValidationError):
                    raise AnalysisError("Invalid analysis format received from the model.") from e
                raise AnalysisError(f"Could not get a response from the model. {e}") from e
            _logger.warning(
                "%s:retry latency_ms=%.2f error=%s attempt=%d",
                op,
                dt_ms,
                e.__class__.__name__,
                attempt,
            )
            _sleep_backoff(attempt)
            attempt += 1


# ---- Public API --------------------------------------------------------------


def analyze_expenses(
    records: Expenses,
    *,
    model: str = DEFAULT_MODEL,
    api_key: str | None = None,
) -> AnalysisResult:
    """Ask the model for consolidated totals, a summary and saving tips.

    The records are first reduced to a per-category digest so the prompt size
    depends on the number of categories, not the number of transactions.

    Raises
    ------
    ValueError
        If ``records`` is empty.
    AnalysisError
        On any terminal model or validation failure.
    """

    if not records:
        raise ValueError("records must not be empty")

    summary = build_category_summary(records)
    instructions = prompting.build_analysis_instructions()
    user_content = prompting.build_analysis_input(summary)
    text_cfg: ResponseTextConfigParam = {"format": prompting.build_analysis_response_format()}

    _logger.info(
        "analyze_expenses:llm records=%d categories=%d model=%s",
        len(records),
        len(summary),
        model,
    )

    def _request(client: OpenAI) -> Any:
        return client.responses.create(
            model=model,
            instructions=instructions,
            input=user_content,
            text=text_cfg,
        )

    def _parse(resp: Any) -> AnalysisResult:
        return AnalysisResult.model_validate(_extract_response_json_mapping(resp))

    return _call_with_retries("analyze_expenses", _request, _parse, api_key=api_key)


def chat_about_expenses(
    records: Expenses,
    question: str,
    *,
    limit: int = prompting.CHAT_RECORD_LIMIT_DEFAULT,
    model: str = DEFAULT_MODEL,
    api_key: str | None = None,
) -> str:
    """Answer ``question`` about the first ``limit`` of ``records``.

    Returns the model's free-text answer. Raises ``ValueError`` for a blank
    question and :class:`AnalysisError` when the model fails or answers with
    empty text.
    """

    if not question.strip():
        raise ValueError("question must be a non-empty string")

    instructions = prompting.build_chat_instructions()
    user_content = prompting.build_chat_input(records, question, limit=limit)

    _logger.info(
        "chat_about_expenses:llm records=%d sent=%d model=%s",
        len(records),
        min(len(records), limit),
        model,
    )

    def _request(client: OpenAI) -> Any:
        return client.responses.create(model=model, instructions=instructions, input=user_content)

    return _call_with_retries(
        "chat_about_expenses", _request, _extract_response_text, api_key=api_key
    )


__all__ = ["AnalysisError", "analyze_expenses", "chat_about_expenses"]
