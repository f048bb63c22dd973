"""Pytest configuration for test isolation.

The package reads ``EXPENSE_DASHBOARD_*`` variables and ``OPENAI_API_KEY``
from the environment, and the CLI loads a ``.env`` from the current working
directory. A developer's shell or checkout could therefore leak settings (a
default year, a lower top-N) into assertions.

To keep tests hermetic, an autouse fixture clears those variables and runs
each test from its own temporary directory.
"""

from __future__ import annotations

import os
import sys
from collections.abc import Iterator
from pathlib import Path

import pytest

# Make sure the workspace `packages/` dir is on sys.path so `expense_dashboard` is importable
_ROOT = Path(__file__).resolve().parents[1]
_PKG_DIR = _ROOT / "packages"
sys.path[:0] = [p for p in [str(_PKG_DIR), str(_ROOT)] if p not in sys.path]


@pytest.fixture(autouse=True)
def _isolate_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    for name in list(os.environ):
        if name.startswith("EXPENSE_DASHBOARD_"):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    monkeypatch.chdir(tmp_path)
    yield
    # ``load_dotenv`` writes to ``os.environ`` directly, outside monkeypatch.
    os.environ.pop("OPENAI_API_KEY", None)
