"""Structured logging for the control assurance engine.

Log lines emitted while an ingestion batch is previewed or committed carry
the context bound by ``batch_context`` (batch id, source, actor).
"""

import logging
import sys
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

import structlog

from control_assurance.core.config import EngineConfig


def configure_logging(
    level: Optional[str] = None,
    json_format: Optional[bool] = None,
    log_file: Optional[str] = None,
    config: Optional[EngineConfig] = None,
) -> None:
    """Configure structlog for the engine.

    Explicit arguments win over ``config``; without a config the
    CONTROL_ASSURANCE_* environment is read.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: Whether to render one JSON object per line
        log_file: Optional file path; lines are appended there instead of stdout
        config: Engine configuration supplying the defaults
    """
    config = config or EngineConfig.from_env()
    level = (level or config.log_level).upper()
    json_format = config.log_json if json_format is None else json_format

    processors: list = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]
    if json_format:
        processors += [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=False))

    if log_file:
        logger_factory = structlog.WriteLoggerFactory(
            file=Path(log_file).open("a", encoding="utf-8")
        )
    else:
        logger_factory = structlog.PrintLoggerFactory(file=sys.stdout)

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(getattr(logging, level)),
        context_class=dict,
        logger_factory=logger_factory,
        cache_logger_on_first_use=False,
    )


@contextmanager
def batch_context(batch_id: str, **context) -> Iterator[None]:
    """Bind an ingestion batch id (and extra keys) to every log line in the block."""
    with structlog.contextvars.bound_contextvars(batch_id=batch_id, **context):
        yield


def get_logger(name: str) -> structlog.BoundLogger:
    """Get a structured logger instance.

    Args:
        name: Logger name (typically module name)

    Returns:
        Configured structlog logger
    """
    return structlog.get_logger(name)
