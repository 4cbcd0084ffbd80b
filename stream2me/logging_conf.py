"""Logging configuration built around structlog JSON logging."""

from __future__ import annotations

import logging
import logging.config
from pathlib import Path
from typing import Iterable

import structlog

from .config import default_home

_LOGGING_INITIALISED = False


def _default_log_dir() -> Path:
    return default_home() / "logs"


def configure_logging(verbose: bool = False) -> structlog.BoundLogger:
    """Configure structlog + stdlib handlers and return application logger."""

    global _LOGGING_INITIALISED
    log_dir = _default_log_dir()
    error_log = log_dir / "error.log"
    run_log = log_dir / "stream2me.log"
    log_dir.mkdir(parents=True, exist_ok=True)
    error_log.touch(exist_ok=True)
    run_log.touch(exist_ok=True)

    if not _LOGGING_INITIALISED:
        level = "DEBUG" if verbose else "INFO"
        logging.config.dictConfig(
            {
                "version": 1,
                "disable_existing_loggers": False,
                "formatters": {
                    "plain": {
                        "()": "pythonjsonlogger.jsonlogger.JsonFormatter",
                        "fmt": "%(asctime)s %(levelname)s %(name)s %(message)s",
                    }
                },
                "handlers": {
                    "console": {
                        "class": "logging.StreamHandler",
                        # Console stays quiet unless verbose; the progress bar owns the terminal.
                        "level": level if verbose else "WARNING",
                        "formatter": "plain",
                    },
                    "run_file": {
                        "class": "logging.FileHandler",
                        "level": level,
                        "filename": str(run_log),
                        "formatter": "plain",
                    },
                    "error_file": {
                        "class": "logging.FileHandler",
                        "level": "ERROR",
                        "filename": str(error_log),
                        "formatter": "plain",
                    },
                },
                "loggers": {
                    "stream2me": {
                        "handlers": ["console", "run_file", "error_file"],
                        "level": level,
                        "propagate": False,
                    },
                },
            }
        )

        structlog.configure(
            processors=[
                structlog.contextvars.merge_contextvars,
                structlog.processors.TimeStamper(fmt="iso"),
                structlog.stdlib.add_log_level,
                structlog.processors.StackInfoRenderer(),
                structlog.processors.format_exc_info,
                structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
            ],
            logger_factory=structlog.stdlib.LoggerFactory(),
            cache_logger_on_first_use=True,
        )
        _LOGGING_INITIALISED = True
    return structlog.get_logger("stream2me")


def tail_log(path: Path, line_count: int = 100) -> list[str]:
    """Return the last N lines from a log file."""

    if not path.exists():
        return []
    with path.open("r", encoding="utf-8", errors="ignore") as stream:
        lines = stream.readlines()
    return lines[-line_count:]


def available_logs() -> Iterable[Path]:
    """Yield available log file paths."""

    log_dir = _default_log_dir()
    if not log_dir.exists():
        return []
    return sorted(p for p in log_dir.glob("*.log"))


__all__ = ["available_logs", "configure_logging", "tail_log"]
