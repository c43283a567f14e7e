"""
Database session management.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..core.exceptions import DatabaseError
from .engine import get_async_engine

_session_factory: Optional[async_sessionmaker[AsyncSession]] = None


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """
    Get the async session factory bound to the global engine.

    Returns:
        async_sessionmaker producing AsyncSession instances
    """
    global _session_factory

    if _session_factory is None:
        _session_factory = async_sessionmaker(
            bind=get_async_engine(),
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
    return _session_factory


def reset_session_factory() -> None:
    """Forget the cached factory (used after the engine is disposed)."""
    global _session_factory
    _session_factory = None


@asynccontextmanager
async def get_async_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Get async database session context manager.

    The session does not commit on exit; services own their transaction
    boundaries through ``transaction()``.

    Yields:
        AsyncSession instance
    """
    async with get_session_factory()() as db:
        yield db


@asynccontextmanager
async def transaction(session: AsyncSession) -> AsyncGenerator[AsyncSession, None]:
    """
    Run a unit of work: commit when the block succeeds, roll back otherwise.

    Every write made inside the block becomes visible together or not at all.
    Integrity violations propagate unchanged so callers can map them to
    domain errors; other driver failures surface as DatabaseError.

    Yields:
        The same session

    Raises:
        DatabaseError: If the store fails for a reason other than a constraint
    """
    try:
        yield session
        await session.commit()
    except IntegrityError:
        await session.rollback()
        raise
    except SQLAlchemyError as e:
        await session.rollback()
        raise DatabaseError(f"Transaction failed: {e}", operation="transaction") from e
    except BaseException:
        await session.rollback()
        raise

