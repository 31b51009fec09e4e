# src/sinkspect/core/logging.py
"""Structured logging for verification runs.

Modules log through structlog.get_logger(__name__) with key/value fields.
configure_logging() sends structlog events and plain stdlib records
through one processor chain, rendered as JSON lines or console text.

The collector wraps each run in run_context(), which binds the run id
into structlog's contextvars. Everything logged on the collector thread
during that run (frame drops, producer open/close, the outcome) carries
the same run_id field.
"""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any, TextIO

import structlog
from structlog.stdlib import ProcessorFormatter

from sinkspect.core.config import LoggingSettings

# Applied to structlog events and to foreign (stdlib) records alike
_PRE_CHAIN: tuple[Any, ...] = (
    structlog.contextvars.merge_contextvars,
    structlog.processors.add_log_level,
    structlog.processors.TimeStamper(fmt="iso"),
    structlog.stdlib.PositionalArgumentsFormatter(),
    structlog.processors.StackInfoRenderer(),
)


def _strip_formatter_keys(
    logger: logging.Logger | None,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    # ProcessorFormatter bookkeeping, never part of the rendered event
    event_dict.pop("_record", None)
    event_dict.pop("_from_structlog", None)
    return event_dict


def _renderers(json_output: bool) -> list[Any]:
    if json_output:
        return [_strip_formatter_keys, structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    return [_strip_formatter_keys, structlog.dev.ConsoleRenderer(colors=False)]


def configure_logging(
    *,
    json_output: bool = False,
    level: str = "INFO",
    stream: TextIO | None = None,
) -> None:
    """Route all sinkspect logging to one handler on the root logger.

    Replaces any handlers already on the root logger, so it can be called
    again to switch format or level.

    Args:
        json_output: Render JSON lines instead of console text
        level: Root log level name
        stream: Destination (defaults to stdout)
    """
    structlog.configure(
        processors=[*_PRE_CHAIN, ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        # Reconfiguration must reach loggers created at import time
        cache_logger_on_first_use=False,
    )

    handler = logging.StreamHandler(stream if stream is not None else sys.stdout)
    handler.setFormatter(ProcessorFormatter(processors=_renderers(json_output), foreign_pre_chain=_PRE_CHAIN))

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level.upper())


def configure_from_settings(settings: LoggingSettings) -> None:
    """Apply the logging section of SinkspectSettings."""
    configure_logging(json_output=settings.json_output, level=settings.level)


@contextmanager
def run_context(run_id: str, **fields: Any) -> Iterator[None]:
    """Bind run_id (and any extra fields) to every event logged in the block.

    Bindings are per thread of execution; producer threads do not inherit them.
    """
    with structlog.contextvars.bound_contextvars(run_id=run_id, **fields):
        yield
