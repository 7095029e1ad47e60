"""
Structured application logging.

structlog is configured once per process by the CLI callback; every module
takes its logger with ``get_logger(__name__)`` and logs event names with
key/value fields::

    logger = get_logger(__name__)
    logger.info("slot.committed", slot="nexus-node-1", index=2)

Under cron or systemd (stdout not a TTY) records are JSON lines on stderr;
in a terminal they are rendered for humans. The plain-text rotation and
failure logs that operators tail are written separately by
:mod:`nexus_fleet.rotation.oplog`.

Tags:
    logging, structlog, observability
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

DEFAULT_SERVICE = "nexus-fleet"


def _service_processor(service: str) -> Processor:
    def add_service(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
        event_dict.setdefault("service", service)
        return event_dict

    return add_service


class _NamedPrintLogger(structlog.PrintLogger):
    """PrintLogger carrying the name it was requested under."""

    def __init__(self, file: Any, name: str | None = None) -> None:
        super().__init__(file)
        self.name = name


class _NamedPrintLoggerFactory:
    """Builds a :class:`_NamedPrintLogger` from ``get_logger(name)`` arguments."""

    def __init__(self, file: Any) -> None:
        self._file = file

    def __call__(self, *args: Any) -> _NamedPrintLogger:
        return _NamedPrintLogger(self._file, args[0] if args else None)


def _add_logger_name(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    name = getattr(logger, "name", None)
    if name:
        event_dict.setdefault("logger", name)
    return event_dict


def _level_number(level: str) -> int:
    number = logging.getLevelName(level.upper())
    if not isinstance(number, int):
        raise ValueError(f"Unknown log level: {level!r}")
    return number


def configure_logging(
    level: str = "INFO",
    json_format: bool | None = None,
    service: str = DEFAULT_SERVICE,
    add_timestamp: bool = True,
) -> None:
    """Configure structlog (and the stdlib root logger) for this process.

    Args:
        level: Minimum level name (``DEBUG`` ... ``CRITICAL``).
        json_format: Force JSON (True) or console (False) rendering; None
            picks JSON unless stdout is a terminal.
        service: Value of the ``service`` field on every record.
        add_timestamp: Prefix records with an ISO timestamp.
    """
    threshold = _level_number(level)
    if json_format is None:
        json_format = not sys.stdout.isatty()

    processors: list[Processor] = []
    if add_timestamp:
        processors.append(structlog.processors.TimeStamper(fmt="iso"))
    processors += [
        structlog.contextvars.merge_contextvars,
        _add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        _service_processor(service),
    ]
    if json_format:
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(threshold),
        context_class=dict,
        logger_factory=_NamedPrintLoggerFactory(sys.stderr),
        cache_logger_on_first_use=False,
    )
    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=threshold)


def get_logger(name: str | None = None) -> Any:
    """Lazy logger whose records carry ``name`` as their ``logger`` field."""
    if name is None:
        return structlog.get_logger()
    return structlog.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    """Attach fields to every record logged from this context (thread/task)."""
    structlog.contextvars.bind_contextvars(**kwargs)


def unbind_context(*keys: str) -> None:
    structlog.contextvars.unbind_contextvars(*keys)


class LogContext:
    """Fields bound for the duration of a ``with`` block.

    Example::

        with LogContext(run_id=cycle.run_id):
            engine.process(slot)    # records carry run_id
    """

    def __init__(self, **fields: Any) -> None:
        self.fields = fields

    def __enter__(self) -> LogContext:
        bind_context(**self.fields)
        return self

    def __exit__(self, *exc_info: object) -> None:
        unbind_context(*self.fields)
