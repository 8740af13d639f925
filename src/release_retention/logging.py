"""Structured logging configuration.

structlog events and stdlib records (uvicorn, starlette) share one handler
and one renderer, selected by ``Settings.json_logs``. Every line carries the
service's ``app_name`` so logs from several services can be merged.
"""

from __future__ import annotations

import logging
import sys
from typing import IO, TYPE_CHECKING, Any

import structlog
from structlog.stdlib import ProcessorFormatter

if TYPE_CHECKING:
    from structlog.typing import EventDict, Processor, WrappedLogger

    from release_retention.settings import Settings

# Third-party loggers and the floor they are held at
_QUIET_LOGGERS: dict[str, int] = {
    "uvicorn.access": logging.WARNING,
    "opentelemetry": logging.WARNING,
}


def resolve_level(settings: Settings) -> int:
    """``debug`` forces DEBUG; otherwise ``log_level``, falling back to INFO."""
    if settings.debug:
        return logging.DEBUG
    return logging.getLevelNamesMapping().get(settings.log_level.upper(), logging.INFO)


def _app_name_adder(app_name: str) -> Processor:
    def add_app_name(
        logger: WrappedLogger, method_name: str, event_dict: EventDict
    ) -> EventDict:
        event_dict.setdefault("app", app_name)
        return event_dict

    return add_app_name


def configure_logging(settings: Settings, stream: IO[str] | None = None) -> None:
    """Route structlog and stdlib logging through one formatter on ``stream``."""
    level = resolve_level(settings)

    pre_chain: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        _app_name_adder(settings.app_name),
    ]

    renderer: list[Any]
    if settings.json_logs:
        renderer = [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        renderer = [structlog.dev.ConsoleRenderer(colors=False)]

    structlog.configure(
        processors=[*pre_chain, ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        # create_app may run more than once per process (tests)
        cache_logger_on_first_use=False,
    )

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(
        ProcessorFormatter(
            processors=[ProcessorFormatter.remove_processors_meta, *renderer],
            foreign_pre_chain=pre_chain,
        )
    )

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level)

    for name, floor in _QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(max(level, floor))
