"""
Database initialization and setup.
"""

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncEngine

from .base import Base
from .engine import get_async_engine
from . import models  # noqa: F401  registers the models with Base

logger = logging.getLogger(__name__)


async def create_tables_async(engine: Optional[AsyncEngine] = None) -> None:
    """
    Create all database tables asynchronously.
    """
    engine = engine or get_async_engine()

    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
    except Exception as e:
        logger.error(f"Failed to create tables: {e}")
        raise
    logger.info("Database tables created successfully (async)")


async def drop_tables_async(engine: Optional[AsyncEngine] = None) -> None:
    """
    Drop all database tables asynchronously.
    """
    engine = engine or get_async_engine()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    logger.warning("Database tables dropped")
