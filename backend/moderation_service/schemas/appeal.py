"""
Request and response schemas for appeals.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from .common import CamelModel
from .enums import AppealDecision, WireAppealStatus
from .moderation import ModerationActionResponse


class CreateAppealRequest(CamelModel):
    reason: str = ""


class ReviewAppealRequest(CamelModel):
    decision: AppealDecision
    reasoning: str = ""


class AppealResponse(CamelModel):
    id: uuid.UUID
    moderation_action_id: uuid.UUID
    appellant_id: uuid.UUID
    reason: str
    status: WireAppealStatus
    reviewer_id: Optional[uuid.UUID] = None
    decision_reasoning: Optional[str] = None
    created_at: datetime
    resolved_at: Optional[datetime] = None


class AppealWithActionResponse(AppealResponse):
    """Appeal enriched with the moderation action it contests."""
    moderation_action: Optional[ModerationActionResponse] = None


class AppealListResponse(CamelModel):
    appeals: List[AppealWithActionResponse]
    next_cursor: Optional[uuid.UUID] = None
    total_count: int


class AppealStatusCount(CamelModel):
    status: WireAppealStatus
    count: int


class AppealStatisticsResponse(CamelModel):
    total: int = 0
    pending: int = 0
    under_review: int = 0
    upheld: int = 0
    denied: int = 0
    by_status: List[AppealStatusCount]
