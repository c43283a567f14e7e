"""
Core module containing configuration, logging and error types for the service.
"""

from .config import Config, get_config, load_config
from .logging_config import setup_logging, get_logger
from .exceptions import (
    AppException,
    ValidationError,
    NotFoundError,
    StatePreconditionError,
    AuthenticationError,
    DatabaseError,
    EventPublishError,
)

__all__ = [
    # Config
    "Config",
    "get_config",
    "load_config",
    # Logging
    "setup_logging",
    "get_logger",
    # Exceptions
    "AppException",
    "ValidationError",
    "NotFoundError",
    "StatePreconditionError",
    "AuthenticationError",
    "DatabaseError",
    "EventPublishError",
]
