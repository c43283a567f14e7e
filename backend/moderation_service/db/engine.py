"""
Database engine configuration.
"""

import logging
from typing import Optional

from sqlalchemy import event, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import StaticPool

from ..core.config import DatabaseConfig, DatabaseType, get_config

logger = logging.getLogger(__name__)

# Global engine instance
_async_engine: Optional[AsyncEngine] = None


def build_async_engine(config: DatabaseConfig, application_name: str = "moderation-service") -> AsyncEngine:
    """
    Create an asynchronous SQLAlchemy engine for the configured database.

    Args:
        config: Database configuration
        application_name: Name reported to PostgreSQL for the connection

    Returns:
        AsyncEngine instance
    """
    database_url = config.async_connection_string

    if database_url.startswith("postgresql"):
        engine = create_async_engine(
            database_url,
            echo=config.echo,
            pool_size=config.pool_size,
            max_overflow=10,
            pool_pre_ping=True,
            pool_recycle=3600,
            connect_args={
                "command_timeout": 30,
                "server_settings": {
                    "application_name": application_name,
                },
            },
        )
    elif ":memory:" in database_url:
        # every connection to an in-memory database is a new database
        engine = create_async_engine(database_url, echo=config.echo, poolclass=StaticPool)
        _enable_sqlite_foreign_keys(engine)
    else:
        engine = create_async_engine(database_url, echo=config.echo)
        _enable_sqlite_foreign_keys(engine)

    return engine


def _enable_sqlite_foreign_keys(engine: AsyncEngine) -> None:
    @event.listens_for(engine.sync_engine, "connect")
    def _set_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def get_async_engine() -> AsyncEngine:
    """
    Get the process-wide asynchronous SQLAlchemy engine.

    Returns:
        AsyncEngine instance
    """
    global _async_engine

    if _async_engine is None:
        config = get_config()
        if config.database.type not in (DatabaseType.POSTGRESQL, DatabaseType.SQLITE):
            raise ValueError(f"Unsupported database type: {config.database.type}")
        _async_engine = build_async_engine(config.database, config.app_name)

    return _async_engine


async def check_async_connection(engine: Optional[AsyncEngine] = None) -> bool:
    """
    Test async database connection.

    Returns:
        True if connection successful
    """
    engine = engine or get_async_engine()
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except (SQLAlchemyError, OSError) as e:
        logger.error(f"Async database connection failed: {e}")
        return False


async def close_engine() -> None:
    """Dispose of the global engine."""
    global _async_engine

    if _async_engine is not None:
        await _async_engine.dispose()
        _async_engine = None
