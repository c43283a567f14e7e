"""
Database package: engine, sessions, models and repositories.
"""

from .base import Base
from .session import get_async_db, get_session_factory, transaction

__all__ = [
    "Base",
    "get_async_db",
    "get_session_factory",
    "transaction",
]
