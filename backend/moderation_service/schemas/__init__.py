"""
Pydantic wire schemas and entity-to-DTO mappers.
"""

from .enums import (
    AppealDecision,
    WireActionType,
    WireAppealStatus,
    WireModerationStatus,
    WireSeverity,
    WireTargetType,
)
from .moderation import (
    ActionListResponse,
    AiRecommendationRequest,
    ApproveActionRequest,
    CoolingOffRequest,
    CoolingOffResponse,
    CreateActionRequest,
    ModerationActionDetailResponse,
    ModerationActionResponse,
    RecommendationStatsResponse,
    RejectActionRequest,
    UserSummary,
)
from .appeal import (
    AppealListResponse,
    AppealResponse,
    AppealStatisticsResponse,
    AppealStatusCount,
    AppealWithActionResponse,
    CreateAppealRequest,
    ReviewAppealRequest,
)
from .queue import (
    AnalyticsBreakdown,
    AnalyticsPeriod,
    AnalyticsRates,
    AnalyticsResponse,
    AnalyticsSummary,
    AnalyticsTiming,
    QueueItem,
    QueueItemType,
    QueuePriority,
    QueueResponse,
    QueueStatsResponse,
)

__all__ = [
    "AppealDecision",
    "WireActionType",
    "WireAppealStatus",
    "WireModerationStatus",
    "WireSeverity",
    "WireTargetType",
    "ActionListResponse",
    "AiRecommendationRequest",
    "ApproveActionRequest",
    "CoolingOffRequest",
    "CoolingOffResponse",
    "CreateActionRequest",
    "ModerationActionDetailResponse",
    "ModerationActionResponse",
    "RecommendationStatsResponse",
    "RejectActionRequest",
    "UserSummary",
    "AppealListResponse",
    "AppealResponse",
    "AppealStatisticsResponse",
    "AppealStatusCount",
    "AppealWithActionResponse",
    "CreateAppealRequest",
    "ReviewAppealRequest",
    "AnalyticsBreakdown",
    "AnalyticsPeriod",
    "AnalyticsRates",
    "AnalyticsResponse",
    "AnalyticsSummary",
    "AnalyticsTiming",
    "QueueItem",
    "QueueItemType",
    "QueuePriority",
    "QueueResponse",
    "QueueStatsResponse",
]
