"""structlog setup for the product finder.

Every module logs through get_logger(__name__). Records from structlog and
from plain stdlib loggers (uvicorn, aiosqlite) share one root handler whose
ProcessorFormatter renders either human-readable console lines or one JSON
object per line. The scan orchestrator binds cycle_id via
structlog.contextvars, so it appears on every record emitted during a cycle.
"""

import logging

import structlog

# Third-party loggers that are chatty at INFO
_QUIET_LOGGERS = ("uvicorn.access", "aiosqlite")


def _shared_processors() -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]


def _renderer(log_format: str) -> structlog.types.Processor:
    if log_format == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer()


def build_handler(log_format: str = "console") -> logging.Handler:
    """Stream handler that renders records in the given format.

    Records from foreign (non-structlog) loggers get the same shared
    processors, so they carry level, logger name and timestamp too.
    """
    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=_shared_processors(),
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            _renderer(log_format),
        ],
    )
    handler = logging.StreamHandler()
    handler.setFormatter(formatter)
    return handler


def setup_logging(log_level: str = "INFO", log_format: str = "console") -> None:
    """Route structlog through stdlib logging and install the root handler.

    Args:
        log_level: Root level name; unknown names fall back to INFO.
        log_format: "console" or "json" (AppSettings.log_format).
    """
    structlog.configure(
        processors=[
            *_shared_processors(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(build_handler(log_format))
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
