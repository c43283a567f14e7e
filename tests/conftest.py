"""
Pytest configuration and fixtures for the moderation service tests.

Every test gets its own file-backed SQLite database under ``tmp_path``, so
concurrent sessions behave like separate connections to a real store.
"""

import uuid

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from moderation_service.core.config import (
    Config,
    DatabaseConfig,
    DatabaseType,
    EventBusConfig,
    Environment,
)
from moderation_service.db.engine import build_async_engine
from moderation_service.db.init_db import create_tables_async
from moderation_service.db.models import User
from moderation_service.schemas import CreateAppealRequest, WireActionType, WireTargetType
from moderation_service.services import (
    AIReviewService,
    AppealService,
    ModerationActionsService,
    ModerationQueueService,
)

from .factories import APPEAL_REASON, RecordingPublisher, action_request


@pytest.fixture
def config(tmp_path) -> Config:
    return Config(
        environment=Environment.TESTING,
        database=DatabaseConfig(type=DatabaseType.SQLITE, name=str(tmp_path / "moderation.db")),
        event_bus=EventBusConfig(enabled=False),
    )


@pytest.fixture
async def engine(config):
    engine = build_async_engine(config.database)
    await create_tables_async(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=engine, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def publisher() -> RecordingPublisher:
    return RecordingPublisher()


async def add_user(
    session_factory: async_sessionmaker[AsyncSession],
    name: str,
    is_moderator: bool = False,
) -> User:
    """Commit a user from its own session, detached from the one the services use."""
    async with session_factory() as session:
        user = User(
            email=f"{uuid.uuid4().hex[:8]}@reasonbridge.test",
            display_name=name,
            is_moderator=is_moderator,
        )
        session.add(user)
        await session.commit()
    return user


@pytest.fixture
async def moderator(session_factory) -> User:
    return await add_user(session_factory, "Moderator X", is_moderator=True)


@pytest.fixture
async def other_moderator(session_factory) -> User:
    return await add_user(session_factory, "Moderator Y", is_moderator=True)


@pytest.fixture
async def appellant(session_factory) -> User:
    return await add_user(session_factory, "Appellant A")


@pytest.fixture
def moderation(session, publisher, config) -> ModerationActionsService:
    return ModerationActionsService(session, publisher, config)


@pytest.fixture
def appeals(session, publisher, config) -> AppealService:
    return AppealService(session, publisher, config)


@pytest.fixture
def ai_review(session, publisher, config) -> AIReviewService:
    return AIReviewService(session, publisher, config)


@pytest.fixture
def queue(session, config) -> ModerationQueueService:
    return ModerationQueueService(session, config)


@pytest.fixture
async def active_action(moderation, moderator, appellant):
    """An ACTIVE moderator-initiated action against the appellant."""
    return await moderation.create_action(
        action_request(WireActionType.SUSPEND, WireTargetType.USER, appellant.id),
        moderator.id,
    )


@pytest.fixture
async def pending_appeal(moderation, active_action, appellant):
    return await moderation.create_appeal(
        active_action.id, appellant.id, CreateAppealRequest(reason=APPEAL_REASON)
    )
