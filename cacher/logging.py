"""
Structured logging for cacher.

The package only emits events through structlog's stdlib integration, so
records land wherever the host application's ``logging`` setup sends
them. Module loggers are lazy: importing cacher neither configures
structlog nor reads settings. Entry points that own the process (the CLI)
call configure_logging() to get console or JSON output on stderr.
"""

import logging
import sys
from collections.abc import Mapping, MutableMapping
from functools import lru_cache
from typing import Any

import structlog
from structlog.types import Processor


def _add_app_context(
    logger: Any, method_name: str, event_dict: MutableMapping[str, Any]
) -> Mapping[str, Any] | str | bytes | bytearray | tuple[Any, ...]:
    event_dict["app"] = "cacher"
    return event_dict


def _configure_structlog(renderer: Processor) -> None:
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            _add_app_context,
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


@lru_cache(maxsize=1)
def configure_logging(level: str = "INFO", development: bool = False) -> None:
    """Send cacher logs to stderr. Call once from an application entry point."""
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, level.upper(), logging.INFO),
    )
    if development:
        renderer: Processor = structlog.dev.ConsoleRenderer(
            colors=True, exception_formatter=structlog.dev.plain_traceback
        )
    else:
        renderer = structlog.processors.JSONRenderer()
    _configure_structlog(renderer)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger, routing through stdlib logging if nothing is configured yet."""
    if not structlog.is_configured():
        _configure_structlog(structlog.processors.JSONRenderer())
    return structlog.get_logger(name)  # type: ignore[no-any-return]


class LazyLogger:
    """Module-level logger that defers get_logger() until first use."""

    def __init__(self, name: str):
        self._name = name
        self._logger: structlog.stdlib.BoundLogger | None = None

    def __getattr__(self, name: str):
        if self._logger is None:
            self._logger = get_logger(self._name)
        return getattr(self._logger, name)


class LogContext:
    """
    Context manager binding log fields for the duration of a block.

    Usage:
        with LogContext(cache_key="user:1"):
            logger.warning("cache_fill_failed")  # Includes cache_key
    """

    def __init__(self, **kwargs: Any):
        self.kwargs = kwargs

    def __enter__(self):
        structlog.contextvars.bind_contextvars(**self.kwargs)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        structlog.contextvars.unbind_contextvars(*self.kwargs)
        return False


__all__ = ["configure_logging", "get_logger", "LazyLogger", "LogContext"]
