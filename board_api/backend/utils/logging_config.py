"""Logging Configuration for the Board Write API

Centralized structlog setup with JSON output. Every module obtains its logger
through get_logger(__name__) and logs snake_case event names with keyword
context, for example:

    >>> from board_api.backend.utils.logging_config import setup_logging, get_logger
    >>> setup_logging()
    >>> logger = get_logger(__name__)
    >>> logger.info("write_created", bo_table="free", wr_id=12, wr_num=-12)
    >>> logger.error("write_insert_failed", exc_info=True, bo_table="free")
"""

import logging
import os
import sys
from pathlib import Path
from typing import Optional

import structlog


DEFAULT_LOG_DIR = "logs"
DEFAULT_LOG_FILENAME = "backend.log"


def _console_level() -> int:
    """Resolve the console log level from LOG_LEVEL (default INFO)."""
    level_name = os.environ.get("LOG_LEVEL", "INFO").upper()
    level = logging.getLevelName(level_name)
    return level if isinstance(level, int) else logging.INFO


def setup_logging(
    log_dir: Optional[str] = None,
    log_filename: str = DEFAULT_LOG_FILENAME,
) -> None:
    """Configure structlog with a JSON renderer, a file handler and a console handler.

    Args:
        log_dir: Directory for log files. Falls back to the LOG_DIR environment
            variable, then to "logs". Created if missing.
        log_filename: Name of the log file (default: "backend.log")

    Log entry format (JSON):
        {
            "event": "write_created",
            "level": "info",
            "timestamp": "2026-10-19T12:34:56.789Z",
            "logger": "board_api.write_service",
            ...additional context fields...
        }

    The file handler records DEBUG and above; the console handler uses
    LOG_LEVEL. Entries logged with exc_info=True carry an "exception" field
    holding the formatted traceback.
    """
    if log_dir is None:
        log_dir = os.environ.get("LOG_DIR", DEFAULT_LOG_DIR)

    log_path = Path(log_dir)
    log_path.mkdir(parents=True, exist_ok=True)
    log_file = log_path / log_filename

    shared_processors = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.format_exc_info,
        structlog.processors.StackInfoRenderer(),
    ]

    structlog.configure(
        processors=shared_processors + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # Final JSON rendering happens in the stdlib formatter so that records
    # from third-party loggers (uvicorn, sqlite3 adapters) share the format.
    formatter = structlog.stdlib.ProcessorFormatter(
        processor=structlog.processors.JSONRenderer(),
        foreign_pre_chain=shared_processors,
    )

    file_handler = logging.FileHandler(str(log_file), encoding="utf-8")
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(formatter)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(_console_level())
    console_handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    root_logger.handlers.clear()
    root_logger.addHandler(file_handler)
    root_logger.addHandler(console_handler)


def get_logger(name: str = None):
    """Get a configured structlog logger instance.

    Args:
        name: Logger name (typically __name__). If None, returns root logger.

    Returns:
        Configured structlog logger (BoundLoggerLazyProxy)
    """
    return structlog.get_logger(name)
