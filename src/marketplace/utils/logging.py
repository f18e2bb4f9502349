"""Logging configuration for the marketplace.

Stdlib logging owns the handlers: stdout plus two size-rotated files, one of
which only receives errors. structlog runs on top of it and renders JSON in
production and staging, and a colourised console view everywhere else.

Settings come from the environment:

    LOG_LEVEL          explicit level, overrides the environment default
    LOG_DIR            directory for the rotating files (default ``logs``)
    ENVIRONMENT        deployment environment, falls back to PROTEAN_ENV
"""

import logging
import logging.handlers
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import structlog

_LEVEL_BY_ENVIRONMENT = {
    "production": "INFO",
    "staging": "INFO",
    "development": "DEBUG",
    "test": "WARNING",
}

_STRUCTURED_ENVIRONMENTS = ("production", "staging")

_QUIET_LOGGERS = ("protean", "urllib3", "asyncio", "httpx", "uvicorn.access")

_MAX_LOG_BYTES = 10 * 1024 * 1024
_LOG_BACKUPS = 5


@dataclass(frozen=True)
class LoggingSettings:
    environment: str
    level: str
    log_dir: str
    file_prefix: str = "marketplace"

    @property
    def structured(self) -> bool:
        return self.environment in _STRUCTURED_ENVIRONMENTS

    @classmethod
    def from_env(cls, log_dir: str | None = None, file_prefix: str = "marketplace") -> "LoggingSettings":
        environment = (os.getenv("ENVIRONMENT") or os.getenv("PROTEAN_ENV") or "development").lower()
        level = os.getenv("LOG_LEVEL") or _LEVEL_BY_ENVIRONMENT.get(environment, "INFO")
        return cls(
            environment=environment,
            level=level.upper(),
            log_dir=log_dir or os.getenv("LOG_DIR", "logs"),
            file_prefix=file_prefix,
        )


def _rotating_handler(path: Path, level: int | str) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(
        filename=path,
        maxBytes=_MAX_LOG_BYTES,
        backupCount=_LOG_BACKUPS,
        encoding="utf-8",
    )
    handler.setLevel(level)
    return handler


def setup_stdlib_logging(settings: LoggingSettings) -> None:
    log_path = Path(settings.log_dir)
    log_path.mkdir(parents=True, exist_ok=True)

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(settings.level)

    root = logging.getLogger()
    root.setLevel(settings.level)
    root.handlers = [
        console,
        _rotating_handler(log_path / f"{settings.file_prefix}.log", settings.level),
        _rotating_handler(log_path / f"{settings.file_prefix}_error.log", logging.ERROR),
    ]

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def _renderer(settings: LoggingSettings):
    if settings.structured:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(
        colors=True,
        exception_formatter=structlog.dev.RichTracebackFormatter(show_locals=True, max_frames=2),
    )


def setup_structlog(settings: LoggingSettings) -> None:
    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]
    if settings.structured:
        # Callsite fields only go into structured output
        processors.append(
            structlog.processors.CallsiteParameterAdder(
                parameters=[
                    structlog.processors.CallsiteParameter.MODULE,
                    structlog.processors.CallsiteParameter.FUNC_NAME,
                    structlog.processors.CallsiteParameter.LINENO,
                ]
            )
        )
    processors.append(_renderer(settings))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def configure_logging(log_dir: str | None = None, file_prefix: str = "marketplace") -> LoggingSettings:
    """Configure stdlib handlers and structlog rendering; returns the settings used."""
    settings = LoggingSettings.from_env(log_dir=log_dir, file_prefix=file_prefix)
    setup_stdlib_logging(settings)
    setup_structlog(settings)
    return settings


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def add_context(**kwargs: Any) -> None:
    """Bind values into every log line emitted later on this request or task."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()
