"""
Logging configuration and utilities.
"""

import json
import logging
import logging.handlers
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

import structlog

from .config import LoggingConfig, get_config


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        context = getattr(record, "context", None)
        if isinstance(context, dict):
            log_data.update(context)

        return json.dumps(log_data, default=str)


class ColorFormatter(logging.Formatter):
    """Colored console formatter."""

    COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",   # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",   # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        """Format log record with colors."""
        color = self.COLORS.get(record.levelname, self.RESET)
        message = super().format(record)
        return f"{color}{message}{self.RESET}"


def setup_logging(config: Optional[LoggingConfig] = None) -> None:
    """
    Setup logging configuration.

    Configures the root logger for the stdlib ``logging`` calls made by the
    service modules and routes ``structlog`` output through the same handlers.

    Args:
        config: Logging configuration
    """
    if config is None:
        config = get_config().logging

    if config.json_format:
        formatter: logging.Formatter = JSONFormatter()
        console_formatter: logging.Formatter = formatter
    else:
        formatter = logging.Formatter(fmt=config.format, datefmt=config.date_format)
        console_formatter = ColorFormatter(fmt=config.format, datefmt=config.date_format)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(config.level.value)
    console_handler.setFormatter(console_formatter)

    handlers = [console_handler]

    if config.file_path:
        log_path = Path(config.file_path)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            file_handler = logging.handlers.RotatingFileHandler(
                filename=config.file_path,
                maxBytes=config.max_file_size,
                backupCount=config.backup_count,
                encoding="utf-8",
            )
        except OSError as e:
            logging.warning(f"Failed to setup file logging: {e}")
        else:
            file_handler.setLevel(config.level.value)
            file_handler.setFormatter(formatter)
            handlers.append(file_handler)

    logging.basicConfig(
        level=config.level.value,
        format=config.format,
        datefmt=config.date_format,
        handlers=handlers,
        force=True,
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.JSONRenderer() if config.json_format
            else structlog.dev.ConsoleRenderer(colors=False),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # Set levels for third-party libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)

    logging.info(f"Logging configured with level: {config.level.value}")


def get_logger(name: str, extra: Optional[Dict[str, Any]] = None) -> logging.Logger:
    """
    Get a logger with extra context.

    Args:
        name: Logger name
        extra: Extra context attached to every record as ``record.context``

    Returns:
        Configured logger
    """
    logger = logging.getLogger(name)

    if extra and not any(isinstance(f, ContextFilter) for f in logger.filters):
        logger.addFilter(ContextFilter(extra))

    return logger


class ContextFilter(logging.Filter):
    """Attach a fixed context dictionary to every record of a logger."""

    def __init__(self, extra: Dict[str, Any]):
        super().__init__()
        self.extra = extra

    def filter(self, record: logging.LogRecord) -> bool:
        record.context = {**getattr(record, "context", {}), **self.extra}
        return True


logger = get_logger("moderation_service")
