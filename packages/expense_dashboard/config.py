"""Runtime settings resolved from the environment.

Entrypoints load a local ``.env`` with ``python-dotenv`` first (without
overriding variables that are already set) and then call
:func:`load_settings`. Library code receives explicit arguments (the API key,
model and log level included) and never reads the environment on its own;
only the OpenAI SDK falls back to ``OPENAI_API_KEY`` when no key is passed.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

_ENV_PREFIX = "EXPENSE_DASHBOARD_"

DEFAULT_MODEL = "gpt-5"


class Settings(BaseModel):
    """Validated settings for the dashboard and its LLM collaborator."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    openai_api_key: str | None = None
    model: str = DEFAULT_MODEL
    top_n: int = Field(default=5, gt=0)
    chat_record_limit: int = Field(default=100, gt=0)
    default_year: int | None = None
    log_level: int = logging.INFO

    @field_validator("log_level", mode="before")
    @classmethod
    def _coerce_log_level(cls, v: object) -> object:
        """Accept ``"debug"``-style level names and numeric strings."""

        if not isinstance(v, str):
            return v
        name = v.strip().upper()
        if name.isdigit():
            return int(name)
        level = logging.getLevelNamesMapping().get(name)
        if level is None:
            raise ValueError(f"unknown log level {v!r}")
        return level


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    """Build :class:`Settings` from ``environ`` (defaults to ``os.environ``).

    Blank values are treated as unset. Invalid values raise ``ValueError``
    naming the offending variable.
    """

    env = os.environ if environ is None else environ

    def _get(name: str) -> str | None:
        raw = env.get(name)
        if raw is None or not raw.strip():
            return None
        return raw.strip()

    mapping = {
        "openai_api_key": "OPENAI_API_KEY",
        "model": f"{_ENV_PREFIX}MODEL",
        "top_n": f"{_ENV_PREFIX}TOP_N",
        "chat_record_limit": f"{_ENV_PREFIX}CHAT_RECORD_LIMIT",
        "default_year": f"{_ENV_PREFIX}DEFAULT_YEAR",
        "log_level": f"{_ENV_PREFIX}LOG_LEVEL",
    }
    values = {field: _get(var) for field, var in mapping.items()}
    values = {k: v for k, v in values.items() if v is not None}

    try:
        return Settings.model_validate(values)
    except ValidationError as e:
        bad = sorted({mapping[str(err["loc"][0])] for err in e.errors() if err["loc"]})
        raise ValueError(f"Invalid configuration in {', '.join(bad)}: {e}") from e
