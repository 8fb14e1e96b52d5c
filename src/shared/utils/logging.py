"""Logging configuration for the FoodSaver services.

stdlib logging carries the handlers; structlog renders structured events on
top of it. Every module gets its logger through ``structlog.get_logger``.

SQL statement logging is a logging concern too: with ``echo_sql`` the
``sqlalchemy.engine`` logger is raised to INFO and its lines go through the
same handlers (and the same log files) as the marketplace's own events.
"""

import logging
import logging.handlers
import os
import sys
from pathlib import Path
from typing import Any

import structlog

SERVICE_NAME = "foodsaver"

_LEVELS_BY_ENV = {
    "production": "INFO",
    "staging": "INFO",
    "development": "DEBUG",
    "test": "WARNING",
}

# Third-party loggers kept quiet regardless of the root level
_QUIET_LOGGERS = ("urllib3", "asyncio", "httpx", "uvicorn.access")

_MAX_LOG_BYTES = 10 * 1024 * 1024
_LOG_BACKUPS = 5


def get_log_level(env: str | None = None) -> str:
    """Level for ``env``; ``LOG_LEVEL`` overrides it."""
    env = (env or os.getenv("FOODSAVER_ENV") or "development").lower()
    return os.getenv("LOG_LEVEL", _LEVELS_BY_ENV.get(env, "INFO"))


def _rotating_handler(path: Path, level: str | int) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(
        filename=path,
        maxBytes=_MAX_LOG_BYTES,
        backupCount=_LOG_BACKUPS,
        encoding="utf-8",
    )
    handler.setLevel(level)
    return handler


def setup_stdlib_logging(
    level: str,
    log_dir: str = "logs",
    log_file_prefix: str = SERVICE_NAME,
    log_to_file: bool = True,
    echo_sql: bool = False,
) -> None:
    """Route everything through the root logger.

    Writes to stdout and, with ``log_to_file``, to ``<prefix>.log`` plus an
    errors-only ``<prefix>_error.log`` under ``log_dir``.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers = []

    # Logger levels filter the marketplace's own events; handlers must still
    # pass the engine's INFO statements when echoing.
    handler_level = min(root_logger.level, logging.INFO) if echo_sql else root_logger.level

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(handler_level)
    root_logger.addHandler(console_handler)

    if log_to_file:
        directory = Path(log_dir)
        directory.mkdir(parents=True, exist_ok=True)
        root_logger.addHandler(_rotating_handler(directory / f"{log_file_prefix}.log", handler_level))
        root_logger.addHandler(_rotating_handler(directory / f"{log_file_prefix}_error.log", logging.ERROR))

    bind_sql_logging(echo_sql)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def bind_sql_logging(echo_sql: bool) -> None:
    """Statements at INFO when echoing, otherwise only engine warnings."""
    logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO if echo_sql else logging.WARNING)


def add_service_info(env: str):
    """Processor stamping every event with the service name and environment."""

    def processor(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
        event_dict.setdefault("service", SERVICE_NAME)
        event_dict.setdefault("env", env)
        return event_dict

    return processor


def setup_structlog(env: str) -> None:
    """Configure structlog for structured logging.

    Production and staging emit JSON lines; elsewhere a console renderer
    with rich tracebacks, coloured only in development.
    """
    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.contextvars.merge_contextvars,
        structlog.processors.CallsiteParameterAdder(
            parameters=[
                structlog.processors.CallsiteParameter.FILENAME,
                structlog.processors.CallsiteParameter.LINENO,
                structlog.processors.CallsiteParameter.FUNC_NAME,
            ]
        ),
    ]

    if env in ("production", "staging"):
        processors.append(add_service_info(env))
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(
            structlog.dev.ConsoleRenderer(
                colors=env == "development",
                exception_formatter=structlog.dev.RichTracebackFormatter(
                    show_locals=env != "test",
                    max_frames=2,
                ),
            )
        )

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def configure_logging(
    env: str | None = None,
    level: str | None = None,
    log_dir: str = "logs",
    log_file_prefix: str = SERVICE_NAME,
    log_to_file: bool = True,
    echo_sql: bool = False,
) -> None:
    """Configure all logging for the marketplace process."""
    env = (env or os.getenv("FOODSAVER_ENV") or "development").lower()
    setup_stdlib_logging(
        level or get_log_level(env),
        log_dir=log_dir,
        log_file_prefix=log_file_prefix,
        log_to_file=log_to_file,
        echo_sql=echo_sql,
    )
    setup_structlog(env)


def add_context(**kwargs: Any) -> None:
    """Add context variables that will be included in all subsequent log messages."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    """Clear all context variables."""
    structlog.contextvars.clear_contextvars()
