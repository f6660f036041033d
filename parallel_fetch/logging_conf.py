"""Logging configuration: structlog events rendered as JSON by stdlib handlers."""

from __future__ import annotations

import logging
import logging.config
from pathlib import Path
from typing import Any

import structlog

from .config.loader import resolve_home

FETCH_LOG_NAME = "fetch.log"
ERROR_LOG_NAME = "error.log"
JSON_FORMATTER = "pythonjsonlogger.json.JsonFormatter"

# (log_dir, verbose) of the handlers currently installed
_active_setup: tuple[Path, bool] | None = None
_structlog_ready = False


def default_log_dir() -> Path:
    return resolve_home() / "logs"


def _file_handler(path: Path, level: str) -> dict[str, Any]:
    return {"class": "logging.FileHandler", "level": level, "filename": str(path), "formatter": "json"}


def _dict_config(log_dir: Path, verbose: bool) -> dict[str, Any]:
    level = "DEBUG" if verbose else "INFO"
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "json": {"()": JSON_FORMATTER, "fmt": "%(asctime)s %(levelname)s %(name)s %(message)s"},
        },
        "handlers": {
            # stderr, so stdout stays clean for results
            "console": {
                "class": "logging.StreamHandler",
                "level": level if verbose else "WARNING",
                "formatter": "json",
            },
            "fetch_file": _file_handler(log_dir / FETCH_LOG_NAME, level),
            "error_file": _file_handler(log_dir / ERROR_LOG_NAME, "ERROR"),
        },
        "loggers": {
            "parallel_fetch": {
                "handlers": ["console", "fetch_file", "error_file"],
                "level": level,
                "propagate": False,
            },
        },
    }


def _configure_structlog() -> None:
    global _structlog_ready
    if _structlog_ready:
        return
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
    _structlog_ready = True


def configure_logging(verbose: bool = False, log_dir: Path | None = None) -> structlog.BoundLogger:
    """Install the log handlers and return the application logger.

    Calling again with another ``log_dir`` or ``verbose`` flag re-points the
    handlers; repeating the same call leaves them alone.
    """

    global _active_setup
    log_dir = (log_dir or default_log_dir()).resolve()
    log_dir.mkdir(parents=True, exist_ok=True)
    for name in (FETCH_LOG_NAME, ERROR_LOG_NAME):
        (log_dir / name).touch(exist_ok=True)

    if _active_setup != (log_dir, verbose):
        logging.config.dictConfig(_dict_config(log_dir, verbose))
        _active_setup = (log_dir, verbose)
    _configure_structlog()
    return structlog.get_logger("parallel_fetch")


def tail_log(path: Path, line_count: int = 100) -> list[str]:
    """Return the last N lines from a log file."""

    if not path.exists():
        return []
    with path.open("r", encoding="utf-8", errors="ignore") as stream:
        lines = stream.readlines()
    return lines[-line_count:]


__all__ = [
    "ERROR_LOG_NAME",
    "FETCH_LOG_NAME",
    "JSON_FORMATTER",
    "configure_logging",
    "default_log_dir",
    "tail_log",
]
