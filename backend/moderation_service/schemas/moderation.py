"""
Request and response schemas for moderation actions.
"""

import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import Field

from .common import CamelModel
from .enums import (
    WireActionType,
    WireAppealStatus,
    WireModerationStatus,
    WireSeverity,
    WireTargetType,
)


# ============== Requests ==============

class CreateActionRequest(CamelModel):
    """Moderator-initiated action."""
    target_type: WireTargetType
    target_id: uuid.UUID
    action_type: WireActionType
    reasoning: str


class ApproveActionRequest(CamelModel):
    modified_reasoning: Optional[str] = None


class RejectActionRequest(CamelModel):
    reason: str


class AiRecommendationRequest(CamelModel):
    """Action recommended by the AI reviewer; consequential ones wait for approval."""
    target_type: WireTargetType
    target_id: uuid.UUID
    action_type: WireActionType
    reasoning: str
    confidence: float
    analysis_details: Optional[Dict[str, Any]] = None


class CoolingOffRequest(CamelModel):
    user_ids: List[uuid.UUID] = Field(default_factory=list)
    topic_id: Optional[uuid.UUID] = None
    prompt: str = ""


# ============== Responses ==============

class UserSummary(CamelModel):
    """Public identity projection of a user."""
    id: uuid.UUID
    display_name: str


class ModerationActionResponse(CamelModel):
    id: uuid.UUID
    target_type: WireTargetType
    target_id: uuid.UUID
    action_type: WireActionType
    severity: WireSeverity
    reasoning: str
    ai_recommended: bool
    ai_confidence: Optional[float] = None
    approved_by: Optional[UserSummary] = None
    approved_at: Optional[datetime] = None
    status: WireModerationStatus
    created_at: datetime
    executed_at: Optional[datetime] = None


class AppealSummary(CamelModel):
    id: uuid.UUID
    reason: str
    status: WireAppealStatus
    created_at: datetime


class ModerationActionDetailResponse(ModerationActionResponse):
    appeal: Optional[AppealSummary] = None
    related_actions: List[ModerationActionResponse] = Field(default_factory=list)


class ActionListResponse(CamelModel):
    actions: List[ModerationActionResponse]
    next_cursor: Optional[uuid.UUID] = None
    total_count: int


class RecommendationStatsResponse(CamelModel):
    total_pending: int
    by_action_type: Dict[WireActionType, int]
    avg_confidence: float
    approval_rate: float


class CoolingOffResponse(CamelModel):
    sent: int
