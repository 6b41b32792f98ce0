"""structlog setup for chartcore.

- One JSON line per event by default; `console` renders key=value for
  local runs of the CLI.
- Every logger is bound to a `component` (drawing_store, tool_state,
  indicator_engine, ...). Per-request fields go through contextvars.
"""

from __future__ import annotations

import logging
import sys
from contextlib import contextmanager
from typing import Any, Iterator, Optional, TextIO

import structlog

LOG_FORMATS = ("json", "console")


def _renderer(fmt: str) -> Any:
    if fmt == "console":
        return structlog.dev.ConsoleRenderer(colors=False)
    return structlog.processors.JSONRenderer()


def configure_logging(log_level: str = "INFO", fmt: str = "json", stream: Optional[TextIO] = None) -> None:
    if fmt not in LOG_FORMATS:
        raise ValueError(f"Unknown log format: {fmt}")
    level = getattr(logging, log_level.upper(), logging.INFO)

    # force: the CLI may reconfigure after uvicorn or pytest touched the root logger
    logging.basicConfig(format="%(message)s", stream=stream or sys.stdout, level=level, force=True)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            _renderer(fmt),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(component: str, **kwargs: Any) -> structlog.BoundLogger:
    return structlog.get_logger().bind(component=component, **kwargs)


@contextmanager
def log_context(**kwargs: Any) -> Iterator[None]:
    """Attach fields (request path, chart id) to every event logged inside."""
    tokens = structlog.contextvars.bind_contextvars(**kwargs)
    try:
        yield
    finally:
        structlog.contextvars.reset_contextvars(**tokens)
