"""Prompt construction for the spending analysis and chat features.

This module builds:
- The instructions and input for whole-dataset analysis over a per-category
  digest (see :func:`expense_dashboard.aggregation.build_category_summary`).
- The strict ``response_format`` (JSON Schema) object for the OpenAI
  Responses API analysis call.
- The instructions and input for free-text chat over a capped projection of
  the records currently in view.
"""

from __future__ import annotations

import json
from collections.abc import Sequence
from typing import Any

from openai.types.responses.response_format_text_json_schema_config_param import (
    ResponseFormatTextJSONSchemaConfigParam,
)

from .models import CategorySummary, Expenses

CHAT_RECORD_LIMIT_DEFAULT = 100


def serialize_category_summary(summary: Sequence[CategorySummary]) -> str:
    """JSON array of the digest using the camelCase wire names."""

    return json.dumps([s.model_dump(by_alias=True) for s in summary], ensure_ascii=False)


def build_analysis_instructions() -> str:
    return (
        "You are a friendly personal finance analyst. You receive an aggregated list of "
        "personal expenses with amounts in INR and reply with JSON only that conforms to "
        "the specified schema."
    )


def build_analysis_input(summary: Sequence[CategorySummary]) -> str:
    """User content for the analysis call.

    Asks for consolidated category totals (similar categories may be merged),
    a short summary quoting INR values, and 2-3 actionable tips with the INR
    amount each could save.
    """

    return (
        "Analyze the following aggregated list of personal expenses with amounts in INR.\n"
        "Based on this data, provide:\n"
        "1. A consolidated list of spending category totals. You can merge similar "
        "categories (e.g., 'Food - Swiggy' and 'Food - Zomato' into 'Food Delivery'). "
        "Each entry has 'category' and 'total'.\n"
        "2. A brief, insightful, and friendly summary of the spending habits. Mention total "
        "spending, percentage of spend and key areas. All monetary values must be in INR.\n"
        "3. A list of 2-3 actionable, concise financial tips including spends to stop, avoid "
        "or reduce based on the spending patterns. Always show the total INR value that can "
        "be saved by implementing the tips.\n\n"
        "BEGIN_AGGREGATED_EXPENSES\n"
        f"{serialize_category_summary(summary)}\n"
        "END_AGGREGATED_EXPENSES\n"
    )


def build_analysis_response_format() -> ResponseFormatTextJSONSchemaConfigParam:
    """Return the strict JSON Schema response_format for the analysis result.

    Schema shape:
    {
      "categoryTotals": [{"category": str, "total": number}],
      "summary": str,
      "tips": [str]
    }
    """

    result: ResponseFormatTextJSONSchemaConfigParam = {
        "type": "json_schema",
        "name": "expense_analysis",
        "schema": {
            "type": "object",
            "properties": {
                "categoryTotals": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "properties": {
                            "category": {"type": "string"},
                            "total": {"type": "number"},
                        },
                        "required": ["category", "total"],
                        "additionalProperties": False,
                    },
                },
                "summary": {"type": "string"},
                "tips": {"type": "array", "items": {"type": "string"}},
            },
            "required": ["categoryTotals", "summary", "tips"],
            "additionalProperties": False,
        },
        "strict": True,
    }
    return result


def project_records_for_chat(
    records: Expenses, limit: int = CHAT_RECORD_LIMIT_DEFAULT
) -> list[dict[str, Any]]:
    """First ``limit`` records reduced to the fields the chat model sees."""

    if limit <= 0:
        raise ValueError("limit must be a positive integer")
    out: list[dict[str, Any]] = []
    for r in records[:limit]:
        out.append(
            {
                "date": r.date.strftime("%d/%m/%y"),
                "description": r.description,
                "amount": float(round(r.amount, 2)),
                "level1": r.level1,
                "level2": r.level2,
                "level3": r.level3,
            }
        )
    return out


def build_chat_instructions() -> str:
    return (
        "You are a personal financial analyst chatbot. The user has already filtered their "
        "transactions to a specific view and you are given ONLY that filtered data (amounts "
        "in INR). Your response MUST be friendly, insightful, provide future actionable "
        "points, and be less than 100 words. Do not repeat the user's question."
    )


def build_chat_input(
    records: Expenses, question: str, *, limit: int = CHAT_RECORD_LIMIT_DEFAULT
) -> str:
    payload = json.dumps(project_records_for_chat(records, limit), ensure_ascii=False)
    return (
        f'The user\'s question is: "{question.strip()}"\n\n'
        "BEGIN_EXPENSE_DATA\n"
        f"{payload}\n"
        "END_EXPENSE_DATA\n"
    )


__all__ = [
    "CHAT_RECORD_LIMIT_DEFAULT",
    "build_analysis_input",
    "build_analysis_instructions",
    "build_analysis_response_format",
    "build_chat_input",
    "build_chat_instructions",
    "project_records_for_chat",
    "serialize_category_summary",
]
