"""
Application factory for the moderation service.

Run with::

    uvicorn moderation_service.main:app --app-dir backend
"""
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI

from .api import router as api_router
from .api.middleware import setup_middleware
from .core.config import Config, get_config
from .core.logging_config import logger, setup_logging
from .db.engine import close_engine
from .db.init_db import create_tables_async
from .db.session import reset_session_factory
from .events import get_event_bus, reset_event_bus
from .events.subscribers import register_audit_subscriber


def create_app(config: Optional[Config] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        config: Configuration to use instead of the process-wide one

    Returns:
        Configured FastAPI instance
    """
    config = config or get_config()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        setup_logging(config.logging)
        await create_tables_async()

        app.state.event_publisher = None
        if config.event_bus.enabled:
            event_bus = get_event_bus()
            register_audit_subscriber(event_bus)
            await event_bus.initialize(num_workers=config.event_bus.num_workers)
            app.state.event_publisher = event_bus

        logger.info(f"{config.app_name} started ({config.environment.value})")
        try:
            yield
        finally:
            if app.state.event_publisher is not None:
                await app.state.event_publisher.shutdown(timeout=config.event_bus.shutdown_timeout)
                reset_event_bus()
            await close_engine()
            reset_session_factory()
            logger.info(f"{config.app_name} stopped")

    app = FastAPI(
        title=config.api.title,
        version=config.api.version,
        description=config.api.description,
        docs_url=config.api.docs_url,
        openapi_url=config.api.openapi_url,
        debug=config.debug,
        lifespan=lifespan,
    )

    setup_middleware(app)
    app.include_router(api_router, prefix=config.api.api_prefix)

    return app


app = create_app()
