"""structlog setup: events are rendered as JSON lines by python-json-logger handlers."""

from __future__ import annotations

import logging
import logging.config
import os
import re
from pathlib import Path
from threading import Lock
from typing import Any, Iterable

import structlog

APP_LOGGER = "ingest_guard"
_JSON_FORMATTER = "pythonjsonlogger.jsonlogger.JsonFormatter"
_MAX_BYTES = 5 * 1024 * 1024
_BACKUPS = 3

_configured = False
_config_lock = Lock()


def default_log_dir() -> Path:
    env_root = os.environ.get("INGEST_GUARD_HOME")
    if env_root:
        return Path(env_root).expanduser().resolve() / "logs"
    return Path(__file__).resolve().parents[1] / "logs"


def _rotating(path: Path, level: str) -> dict[str, Any]:
    return {
        "class": "logging.handlers.RotatingFileHandler",
        "level": level,
        "filename": str(path),
        "maxBytes": _MAX_BYTES,
        "backupCount": _BACKUPS,
        "encoding": "utf-8",
        "formatter": "json",
    }


def _dict_config(log_dir: Path, verbose: bool) -> dict[str, Any]:
    level = "DEBUG" if verbose else "INFO"
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "json": {"()": _JSON_FORMATTER, "fmt": "%(asctime)s %(levelname)s %(name)s %(message)s"}
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": level if verbose else "WARNING",
                "formatter": "json",
            },
            "ingest_file": _rotating(log_dir / "ingest.log", level),
            "error_file": _rotating(log_dir / "error.log", "ERROR"),
        },
        "loggers": {
            APP_LOGGER: {
                "handlers": ["console", "ingest_file", "error_file"],
                "level": level,
                "propagate": False,
            }
        },
    }


def configure_logging(verbose: bool = False) -> structlog.BoundLogger:
    """Install handlers once per process and return the application logger."""

    global _configured
    with _config_lock:
        if not _configured:
            log_dir = default_log_dir()
            (log_dir / "sources").mkdir(parents=True, exist_ok=True)
            logging.config.dictConfig(_dict_config(log_dir, verbose))
            structlog.configure(
                processors=[
                    structlog.contextvars.merge_contextvars,
                    structlog.stdlib.add_log_level,
                    structlog.processors.TimeStamper(fmt="iso"),
                    structlog.processors.StackInfoRenderer(),
                    structlog.processors.format_exc_info,
                    structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
                ],
                logger_factory=structlog.stdlib.LoggerFactory(),
                cache_logger_on_first_use=True,
            )
            _configured = True
    return structlog.get_logger(APP_LOGGER)


def get_logger(component: str) -> structlog.BoundLogger:
    """Application logger bound to a component name."""

    return configure_logging().bind(component=component)


def _source_file_name(source_name: str) -> str:
    return re.sub(r"[^\w.-]+", "_", source_name).strip("_") or "source"


def _attach_source_handler(logger_name: str, path: Path) -> None:
    py_logger = logging.getLogger(logger_name)
    target = str(path)
    for handler in py_logger.handlers:
        if isinstance(handler, logging.FileHandler) and handler.baseFilename == target:
            return
    handler = logging.FileHandler(path, encoding="utf-8")
    app_handlers = logging.getLogger(APP_LOGGER).handlers
    if app_handlers:
        handler.setFormatter(app_handlers[0].formatter)
    handler.setLevel(logging.INFO)
    py_logger.addHandler(handler)


def source_logger(source_name: str, verbose: bool = False) -> structlog.BoundLogger:
    """Logger whose events also land in ``logs/sources/<source>.log``."""

    configure_logging(verbose)
    path = source_log_path(source_name)
    path.parent.mkdir(parents=True, exist_ok=True)
    logger_name = f"{APP_LOGGER}.source.{_source_file_name(source_name)}"
    _attach_source_handler(logger_name, path)
    return structlog.get_logger(logger_name).bind(source=source_name)


def source_log_path(source_name: str) -> Path:
    return default_log_dir() / "sources" / f"{_source_file_name(source_name)}.log"


def tail_log(path: Path, line_count: int = 100) -> list[str]:
    if not path.exists():
        return []
    with path.open("r", encoding="utf-8", errors="ignore") as stream:
        return stream.readlines()[-line_count:]


def available_source_logs() -> Iterable[Path]:
    sources_dir = default_log_dir() / "sources"
    if not sources_dir.exists():
        return []
    return sorted(sources_dir.glob("*.log"))


__all__ = [
    "APP_LOGGER",
    "available_source_logs",
    "configure_logging",
    "default_log_dir",
    "get_logger",
    "source_log_path",
    "source_logger",
    "tail_log",
]
