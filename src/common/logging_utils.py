"""Centralised logging helpers.

All modules log through ``logging.getLogger(__name__)``; this module only
configures the root logger once and provides the structured ``extra`` payload
and timing helpers used around background work.
"""
from __future__ import annotations

import logging
import os
import time
from typing import Any, Dict, Optional

from constants import Constants

_CONFIGURED = False


def configure_logging(level: Optional[str] = None) -> None:
    """Configure the root logger.

    Precedence for the level is the ``level`` argument, then
    ``$CATALOG_SCOUT_LOG_LEVEL``, then ``Constants.LOG_LEVEL``. Calling this
    again only updates the level.
    """
    global _CONFIGURED  # pylint: disable=global-statement
    level_name = (level or os.environ.get(Constants.ENV_LOG_LEVEL) or Constants.LOG_LEVEL).upper()
    level_value = getattr(logging, level_name, logging.INFO)
    root = logging.getLogger()
    if not _CONFIGURED:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(Constants.LOG_FORMAT))
        root.addHandler(handler)
        _CONFIGURED = True
    root.setLevel(level_value)


def is_debug_enabled(logger: logging.Logger) -> bool:
    """Return True when DEBUG records from ``logger`` would be emitted."""
    return logger.isEnabledFor(logging.DEBUG)


def extra_context(**fields: Any) -> Dict[str, Any]:
    """Build an ``extra=`` mapping for structured log records.

    None values are dropped so formatters never see placeholder noise.
    """
    return {k: v for k, v in fields.items() if v is not None}


class Timer:
    """Context manager measuring wall-clock duration."""

    def __init__(self) -> None:
        self._start = 0.0
        self._end: Optional[float] = None

    def __enter__(self) -> "Timer":
        self._start = time.perf_counter()
        self._end = None
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self._end = time.perf_counter()

    def duration_ms(self) -> float:
        """Elapsed milliseconds; live while the block is still running."""
        end = self._end if self._end is not None else time.perf_counter()
        return round((end - self._start) * 1000.0, 2)
