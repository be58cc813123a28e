"""
Logging for the Deal Sync engine.

Every line is a structlog event written to stderr: JSON when ``LOG_JSON`` is
set, key/value console output otherwise. While a deal syncs, its Pipedrive id
and a per-run ``trace_id`` are bound through structlog's contextvars, so every
event of that run (client retries and storage writes included) carries both.
"""

import logging
import sys
import time
import uuid
from contextlib import contextmanager
from typing import Any, Iterator

import structlog
from structlog.types import Processor

from .config import config


def configure_logging(json_output: bool | None = None, log_level: str | None = None) -> None:
    """
    Configure structlog (and stdlib logging for httpx / SQLAlchemy) on stderr.

    Args:
        json_output: JSON lines instead of console output. Defaults to config.LOG_JSON.
        log_level: Level name. Defaults to config.LOG_LEVEL.
    """
    if json_output is None:
        json_output = config.LOG_JSON
    level = getattr(logging, (log_level or config.LOG_LEVEL).upper(), logging.INFO)

    # stdout is reserved for CLI results
    logging.basicConfig(format='%(message)s', stream=sys.stderr, level=level)

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt='iso'),
    ]
    if json_output:
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def new_trace_id() -> str:
    """Opaque id correlating the log lines of one sync run."""
    return uuid.uuid4().hex


def current_log_context() -> dict[str, Any]:
    """Fields currently bound to every log line (``deal_id``, ``trace_id``)."""
    return structlog.contextvars.get_contextvars()


@contextmanager
def logging_context(**fields: Any) -> Iterator[None]:
    """
    Bind ``fields`` to every log line emitted inside the block.

    ``None`` values are skipped. Previously bound values come back on exit,
    so contexts nest.

    Usage:
        with logging_context(deal_id=123, trace_id=new_trace_id()):
            logger.info('pipeline.started')
    """
    bound = {key: value for key, value in fields.items() if value is not None}
    with structlog.contextvars.bound_contextvars(**bound):
        yield


class SyncTimer:
    """
    Wall-clock duration of each stage of one deal sync, in milliseconds.

    A stage that raises is still recorded.
    """

    def __init__(self):
        self.stages: dict[str, float] = {}
        self._started = time.perf_counter()

    @contextmanager
    def stage(self, name: str) -> Iterator[None]:
        started = time.perf_counter()
        try:
            yield
        finally:
            self.stages[name] = (time.perf_counter() - started) * 1000

    @property
    def total_ms(self) -> float:
        return (time.perf_counter() - self._started) * 1000

    def summary(self) -> dict[str, Any]:
        return {
            'total_ms': round(self.total_ms, 2),
            'stages': {name: round(ms, 2) for name, ms in self.stages.items()},
        }


# Environment defaults; the CLI reconfigures with its flags
configure_logging()
