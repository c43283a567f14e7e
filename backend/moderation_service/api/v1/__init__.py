"""
API Version 1 Router
"""
from fastapi import APIRouter

from . import appeals, health, moderation

router = APIRouter(prefix="/v1", tags=["v1"])

router.include_router(moderation.router, tags=["moderation"])
router.include_router(appeals.router, tags=["appeals"])
router.include_router(health.router, tags=["health"])
