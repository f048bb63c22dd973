"""Logging for the ``expense_dashboard`` package.

Library modules call ``get_logger("expense_dashboard.<module>")`` and never
attach handlers. The level is not read from the environment here: entrypoints
resolve it through :func:`expense_dashboard.config.load_settings`
(``EXPENSE_DASHBOARD_LOG_LEVEL``) and pass ``settings.log_level`` to
:func:`configure_logging`.
"""

from __future__ import annotations

import logging
import sys
from typing import IO

_PKG_LOGGER_NAME = "expense_dashboard"
_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"

_handler: logging.Handler | None = None


def configure_logging(level: int = logging.INFO, *, stream: IO[str] = sys.stderr) -> None:
    """Send package logs at ``level`` and above to ``stream``.

    The first call installs the package's single ``StreamHandler``; later calls
    only change the level, so running several commands in one process never
    duplicates output.
    """

    global _handler
    logger = logging.getLogger(_PKG_LOGGER_NAME)
    if _handler is None:
        for h in list(logger.handlers):
            if isinstance(h, logging.NullHandler):
                logger.removeHandler(h)
        _handler = logging.StreamHandler(stream)
        _handler.setFormatter(logging.Formatter(_FORMAT))
        logger.addHandler(_handler)
        logger.propagate = False

    _handler.setLevel(level)
    logger.setLevel(level)


def get_logger(name: str) -> logging.Logger:
    """Return ``name``'s logger; unconfigured, the package stays silent."""

    pkg_logger = logging.getLogger(_PKG_LOGGER_NAME)
    if _handler is None and not pkg_logger.handlers:
        pkg_logger.addHandler(logging.NullHandler())
    return logging.getLogger(name)
