"""
Schemas for the moderator review queue and moderation analytics.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import Dict, List

from .common import CamelModel
from .enums import WireActionType, WireSeverity


class QueueItemType(str, Enum):
    ACTION = "action"
    APPEAL = "appeal"


class QueuePriority(str, Enum):
    HIGH = "high"
    NORMAL = "normal"
    LOW = "low"


class QueueItem(CamelModel):
    """
    One entry of the review queue.

    ``wait_time`` is an ISO 8601 duration at its largest whole unit
    (``P2D``, ``PT3H``, ``PT15M``, ``PT40S``).
    """
    type: QueueItemType
    id: uuid.UUID
    priority: QueuePriority
    wait_time: str
    summary: str
    created_at: datetime


class QueueResponse(CamelModel):
    items: List[QueueItem]
    total_count: int


class QueueStatsResponse(CamelModel):
    pending_actions: int
    pending_appeals: int
    avg_resolution_time_minutes: int
    oldest_item_age: str


class AnalyticsPeriod(CamelModel):
    start_date: datetime
    end_date: datetime


class AnalyticsSummary(CamelModel):
    total_actions: int
    approved_actions: int
    reversed_actions: int
    appealed_actions: int
    total_appeals: int


class AnalyticsRates(CamelModel):
    """Percentages of the period's actions, rounded to two decimals."""
    approval_rate: float
    reversal_rate: float
    appeal_rate: float


class AnalyticsTiming(CamelModel):
    avg_resolution_ms: float
    avg_resolution_minutes: int


class AnalyticsBreakdown(CamelModel):
    by_action_type: Dict[WireActionType, int]
    by_severity: Dict[WireSeverity, int]


class AnalyticsResponse(CamelModel):
    period: AnalyticsPeriod
    summary: AnalyticsSummary
    rates: AnalyticsRates
    timing: AnalyticsTiming
    breakdown: AnalyticsBreakdown
