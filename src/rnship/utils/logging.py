from __future__ import annotations

import logging
import re
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import cast

import structlog

_SECRET_FLAGS = frozenset({"-p", "-P"})
_SECRET_ASSIGNMENT = re.compile(r"^(-P)?([\w.]*password[\w.]*=)(.*)$", re.IGNORECASE)


def configure_logging(level: str = "INFO", json: bool = False) -> None:
    """Configure structlog for rnship.

    With ``json=True`` entries are rendered by JSONRenderer for CI log
    collectors; otherwise ConsoleRenderer gives human-readable output.

    Args:
        level: Standard logging level string, e.g. "DEBUG", "INFO", "WARNING".
        json: If True, render log entries as JSON. If False, use coloured console output.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=log_level,
    )

    if json:
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=_shared_processors()
        + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(_formatter(renderer))

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level)


class RunFilter(logging.Filter):
    """Passes only structlog entries bound to one ``run_id``."""

    def __init__(self, run_id: str) -> None:
        super().__init__()
        self.run_id = run_id

    def filter(self, record: logging.LogRecord) -> bool:
        event = record.msg
        return isinstance(event, dict) and event.get("run_id") == self.run_id


def add_log_file(
    directory: Path, filename: str = "build.log", run_id: str | None = None
) -> logging.Handler:
    """Mirror log entries into ``directory/filename`` as JSON lines.

    With *run_id* set, only entries carrying that ``run_id`` (usually bound
    through ``structlog.contextvars``) are written, so concurrent runs in one
    process keep separate files.

    The caller owns the returned handler and passes it to
    :func:`remove_log_file` when the run is over.
    """
    directory.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(directory / filename, encoding="utf-8")
    handler.setFormatter(_formatter(structlog.processors.JSONRenderer()))
    if run_id is not None:
        handler.addFilter(RunFilter(run_id))
    logging.getLogger().addHandler(handler)
    return handler


def remove_log_file(handler: logging.Handler) -> None:
    logging.getLogger().removeHandler(handler)
    handler.close()


def mask_secrets(argv: Sequence[str]) -> list[str]:
    """Return a copy of *argv* safe for logging.

    Values following ``-p``/``-P`` and the right-hand side of any
    ``...password...=value`` argument are replaced with ``***``.
    """
    masked: list[str] = []
    hide_next = False
    for arg in argv:
        if hide_next:
            masked.append("***")
            hide_next = False
            continue
        if arg in _SECRET_FLAGS:
            hide_next = True
            masked.append(arg)
            continue
        match = _SECRET_ASSIGNMENT.match(arg)
        if match:
            masked.append(f"{match.group(1) or ''}{match.group(2)}***")
            continue
        masked.append(arg)
    return masked


def get_logger(name: str) -> structlog.BoundLogger:
    """Return a named structlog logger.

    Args:
        name: Logger name, typically ``__name__`` of the calling module.
    """
    return cast(structlog.BoundLogger, structlog.get_logger(name))


def _shared_processors() -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]


def _formatter(renderer: structlog.types.Processor) -> structlog.stdlib.ProcessorFormatter:
    return structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
        foreign_pre_chain=_shared_processors(),
    )
