"""
mermaid_describe/debug_trace.py

Debug instrumentation for following a diagram through the parse and
synthesis stages.

Trace lines go to the ``mermaid_describe.trace`` logger at DEBUG level.
Enable by setting DEBUG_TRACE = True below, or ``debug_trace = true`` in
the ``[logging]`` section of settings.toml.
"""

from __future__ import annotations

import logging
from functools import wraps
from typing import Iterable, Optional

# Set to True to force tracing regardless of settings
DEBUG_TRACE = False

# Categories to emit (empty = all)
TRACE_CATEGORIES: set = set()

_trace_log = logging.getLogger("mermaid_describe.trace")
_package_log = logging.getLogger("mermaid_describe")


def enable_trace(enabled: bool = True, categories: Optional[Iterable[str]] = None) -> None:
    """Switch tracing on or off at runtime.

    Args:
        enabled: New value for ``DEBUG_TRACE``.
        categories: Restrict output to these categories (None = all).
    """
    global DEBUG_TRACE, TRACE_CATEGORIES
    DEBUG_TRACE = enabled
    TRACE_CATEGORIES = set(categories or ())


def configure_logging(settings=None) -> None:
    """Apply the ``[logging]`` settings to the package logger.

    Only the ``mermaid_describe`` logger is touched; the root logger is
    left to the host application.
    """
    if settings is None:
        from mermaid_describe.settings import current_settings
        settings = current_settings()
    level = logging.getLevelName(settings.logging.level.upper())
    if not isinstance(level, int):
        level = logging.WARNING
    _package_log.setLevel(level)
    enable_trace(settings.logging.debug_trace, settings.logging.trace_categories)
    if DEBUG_TRACE:
        _trace_log.setLevel(logging.DEBUG)


def trace(msg: str, category: str = "INFO") -> None:
    """Emit a trace message tagged with *category*."""
    if not DEBUG_TRACE:
        return
    if TRACE_CATEGORIES and category not in TRACE_CATEGORIES:
        return
    _trace_log.debug("[%s] %s", category, msg)


def trace_call(category: str = "CALL"):
    """Decorator to trace function calls."""
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            if not DEBUG_TRACE:
                return func(*args, **kwargs)
            func_name = func.__qualname__
            trace(f">>> {func_name}", category)
            try:
                result = func(*args, **kwargs)
                trace(f"<<< {func_name}", category)
                return result
            except Exception as e:
                trace(f"!!! {func_name} raised {type(e).__name__}: {e}", "ERROR")
                raise
        return wrapper
    return decorator
