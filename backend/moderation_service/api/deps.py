"""
Common FastAPI dependencies used across the API.
"""
import uuid
from typing import AsyncGenerator, Optional

from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import Config, get_config
from ..core.exceptions import AuthenticationError
from ..db.session import get_async_db
from ..events import EventPublisher
from ..services import AIReviewService, AppealService, ModerationActionsService, ModerationQueueService


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Request-scoped session; services own their transactions."""
    async with get_async_db() as db:
        yield db


def get_settings() -> Config:
    return get_config()


def get_publisher(request: Request) -> Optional[EventPublisher]:
    """
    Event publisher attached to the application at startup, if any.
    """
    return getattr(request.app.state, "event_publisher", None)


async def get_current_user_id(
    x_user_id: Optional[str] = Header(None, alias="X-User-Id"),
) -> uuid.UUID:
    """
    Caller identity supplied by the authentication gateway.

    Raises:
        AuthenticationError: If the header is missing or not a UUID
    """
    if not x_user_id:
        raise AuthenticationError("Missing X-User-Id header")
    try:
        return uuid.UUID(x_user_id)
    except ValueError:
        raise AuthenticationError(f"Invalid user id: {x_user_id}")


def get_moderation_service(
    db: AsyncSession = Depends(get_db),
    publisher: Optional[EventPublisher] = Depends(get_publisher),
    config: Config = Depends(get_settings),
) -> ModerationActionsService:
    return ModerationActionsService(db, publisher, config)


def get_appeal_service(
    db: AsyncSession = Depends(get_db),
    publisher: Optional[EventPublisher] = Depends(get_publisher),
    config: Config = Depends(get_settings),
) -> AppealService:
    return AppealService(db, publisher, config)


def get_ai_review_service(
    db: AsyncSession = Depends(get_db),
    publisher: Optional[EventPublisher] = Depends(get_publisher),
    config: Config = Depends(get_settings),
) -> AIReviewService:
    return AIReviewService(db, publisher, config)


def get_queue_service(
    db: AsyncSession = Depends(get_db),
    config: Config = Depends(get_settings),
) -> ModerationQueueService:
    return ModerationQueueService(db, config)
