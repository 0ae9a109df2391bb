# src/batchscan/core/logging.py
"""Structured logging for batch runs.

structlog carries the key/value context of a run (record type, batch size,
scan position, checkpoint counts). SQLAlchemy and dynaconf log through the
standard library; a ProcessorFormatter on the root handler renders their
records through the same processor chain, so one run produces one uniform
stream (console or JSON lines).

Run context:
    bind_run_context() binds fields into structlog's contextvars for the
    duration of a run. Every structlog line emitted inside it, from the
    driver, the collector or the cursor, carries those fields.
"""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import IO, TYPE_CHECKING, Any

import structlog
from structlog.stdlib import ProcessorFormatter

if TYPE_CHECKING:
    from batchscan.core.config import LoggingSettings

# A run issues one SELECT per record and one COMMIT per checkpoint.
# SQLAlchemy echoes each of them at INFO, so its loggers stay at WARNING
# or above even when batchscan is at DEBUG.
_QUIET_LOGGERS: tuple[str, ...] = (
    "sqlalchemy",
    "sqlalchemy.engine",
    "sqlalchemy.engine.Engine",
    "sqlalchemy.pool",
    "sqlalchemy.orm",
    "dynaconf",
)


def _drop_formatter_bookkeeping(
    logger: logging.Logger | None,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Strip the _record / _from_structlog keys ProcessorFormatter always adds."""
    del event_dict["_record"]
    del event_dict["_from_structlog"]
    return event_dict


def _shared_processors() -> list[Any]:
    """Processors applied to structlog and stdlib records alike."""
    return [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
    ]


def _render_chain(json_output: bool) -> list[Any]:
    if json_output:
        return [
            _drop_formatter_bookkeeping,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    return [
        _drop_formatter_bookkeeping,
        structlog.dev.ConsoleRenderer(colors=False),
    ]


def configure_logging(
    *,
    json_output: bool = False,
    level: str = "INFO",
    stream: IO[str] | None = None,
) -> None:
    """Configure structlog and stdlib logging for batchscan.

    Replaces any handlers on the root logger.

    Args:
        json_output: Emit JSON lines instead of console output
        level: Root level (DEBUG, INFO, WARNING, ERROR). DEBUG shows
            per-position and per-checkpoint detail.
        stream: Output stream, stdout by default
    """
    log_level = getattr(logging, level.upper())
    shared = _shared_processors()

    structlog.configure(
        processors=[*shared, ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        # Not cached, so tests can reconfigure between cases
        cache_logger_on_first_use=False,
    )

    handler = logging.StreamHandler(stream if stream is not None else sys.stdout)
    handler.setFormatter(ProcessorFormatter(processors=_render_chain(json_output), foreign_pre_chain=shared))

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(log_level)

    quiet_level = max(log_level, logging.WARNING)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(quiet_level)


def configure_from_settings(settings: "LoggingSettings", *, stream: IO[str] | None = None) -> None:
    """Configure logging from the logging section of BatchscanSettings."""
    configure_logging(json_output=settings.json_output, level=settings.level, stream=stream)


@contextmanager
def bind_run_context(**fields: Any) -> Iterator[None]:
    """Attach fields to every structlog line emitted inside the block.

    Example:
        with bind_run_context(record_type="Account", batch_size=100):
            logger.info("Batch run started")  # carries both fields
    """
    with structlog.contextvars.bound_contextvars(**fields):
        yield


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a bound logger for a module (typically __name__)."""
    logger: structlog.stdlib.BoundLogger = structlog.get_logger(name)
    return logger
