"""
Health check endpoint for monitoring and uptime.
"""
from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Depends, Request

from ...core.config import Config
from ...db.engine import check_async_connection
from ..deps import get_settings

router = APIRouter()


@router.get("/health")
async def health_check(request: Request, config: Config = Depends(get_settings)) -> Dict[str, Any]:
    """
    Basic health check: database connectivity and event bus state.
    """
    db_ok = await check_async_connection()

    event_bus = getattr(request.app.state, "event_publisher", None)
    bus_running = bool(getattr(event_bus, "is_running", False))

    return {
        "status": "healthy" if db_ok else "degraded",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": config.api.version,
        "services": {
            "database": "healthy" if db_ok else "unhealthy",
            "event_bus": "running" if bus_running else "stopped",
        },
        "event_bus_metrics": event_bus.get_metrics() if bus_running else None,
    }
