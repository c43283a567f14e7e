"""
Moderation action, review queue and analytics endpoints.
"""
import uuid
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Body, Depends, Query, status

from ...schemas import (
    ActionListResponse,
    AiRecommendationRequest,
    AnalyticsResponse,
    AppealResponse,
    ApproveActionRequest,
    CoolingOffRequest,
    CoolingOffResponse,
    CreateActionRequest,
    CreateAppealRequest,
    ModerationActionDetailResponse,
    ModerationActionResponse,
    QueueItemType,
    QueuePriority,
    QueueResponse,
    QueueStatsResponse,
    RecommendationStatsResponse,
    RejectActionRequest,
    WireModerationStatus,
    WireSeverity,
    WireTargetType,
)
from ...services import AIReviewService, ModerationActionsService, ModerationQueueService
from ..deps import (
    get_ai_review_service,
    get_current_user_id,
    get_moderation_service,
    get_queue_service,
)

router = APIRouter(prefix="/moderation")


@router.post(
    "/actions",
    response_model=ModerationActionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_action(
    request: CreateActionRequest,
    moderator_id: uuid.UUID = Depends(get_current_user_id),
    service: ModerationActionsService = Depends(get_moderation_service),
) -> ModerationActionResponse:
    """
    Create a moderator-initiated action. It takes effect immediately.
    """
    return await service.create_action(request, moderator_id)


@router.get("/actions", response_model=ActionListResponse)
async def list_actions(
    target_type: Optional[WireTargetType] = Query(None, alias="targetType"),
    action_status: Optional[WireModerationStatus] = Query(None, alias="status"),
    severity: Optional[WireSeverity] = Query(None),
    limit: int = Query(20, ge=1, le=100),
    cursor: Optional[uuid.UUID] = Query(None),
    service: ModerationActionsService = Depends(get_moderation_service),
) -> ActionListResponse:
    """
    List actions, newest first, with optional filters.
    """
    return await service.list_actions(target_type, action_status, severity, limit, cursor)


@router.get("/actions/{action_id}", response_model=ModerationActionDetailResponse)
async def get_action(
    action_id: uuid.UUID,
    service: ModerationActionsService = Depends(get_moderation_service),
) -> ModerationActionDetailResponse:
    return await service.get_action(action_id)


@router.post("/actions/{action_id}/approve", response_model=ModerationActionResponse)
async def approve_action(
    action_id: uuid.UUID,
    request: Optional[ApproveActionRequest] = Body(None),
    moderator_id: uuid.UUID = Depends(get_current_user_id),
    service: ModerationActionsService = Depends(get_moderation_service),
) -> ModerationActionResponse:
    return await service.approve_action(action_id, moderator_id, request)


@router.post("/actions/{action_id}/reject", response_model=ModerationActionResponse)
async def reject_action(
    action_id: uuid.UUID,
    request: RejectActionRequest,
    moderator_id: uuid.UUID = Depends(get_current_user_id),
    service: ModerationActionsService = Depends(get_moderation_service),
) -> ModerationActionResponse:
    return await service.reject_action(action_id, request)


@router.get("/users/{user_id}/actions", response_model=ActionListResponse)
async def get_user_actions(
    user_id: uuid.UUID,
    limit: int = Query(20, ge=1, le=100),
    cursor: Optional[uuid.UUID] = Query(None),
    service: ModerationActionsService = Depends(get_moderation_service),
) -> ActionListResponse:
    """
    Moderation history for one user.
    """
    return await service.get_user_actions(user_id, limit, cursor)


@router.post(
    "/actions/{action_id}/appeals",
    response_model=AppealResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_appeal(
    action_id: uuid.UUID,
    request: CreateAppealRequest,
    appellant_id: uuid.UUID = Depends(get_current_user_id),
    service: ModerationActionsService = Depends(get_moderation_service),
) -> AppealResponse:
    """
    Appeal an action on behalf of the caller.
    """
    return await service.create_appeal(action_id, appellant_id, request)


@router.post("/interventions/cooling-off", response_model=CoolingOffResponse)
async def send_cooling_off_prompt(
    request: CoolingOffRequest,
    moderator_id: uuid.UUID = Depends(get_current_user_id),
    service: ModerationActionsService = Depends(get_moderation_service),
) -> CoolingOffResponse:
    return await service.send_cooling_off_prompt(request.user_ids, request.topic_id, request.prompt)


# ============== AI recommendations ==============

@router.post(
    "/ai/recommendations",
    response_model=ModerationActionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def submit_ai_recommendation(
    request: AiRecommendationRequest,
    service: AIReviewService = Depends(get_ai_review_service),
) -> ModerationActionResponse:
    return await service.submit_ai_recommendation(request)


@router.get("/ai/recommendations", response_model=List[ModerationActionResponse])
async def get_pending_recommendations(
    limit: int = Query(20, ge=1, le=100),
    service: AIReviewService = Depends(get_ai_review_service),
) -> List[ModerationActionResponse]:
    """
    Pending AI recommendations, most confident first.
    """
    return await service.get_pending_recommendations(limit)


@router.get("/ai/stats", response_model=RecommendationStatsResponse)
async def get_recommendation_stats(
    service: AIReviewService = Depends(get_ai_review_service),
) -> RecommendationStatsResponse:
    return await service.get_recommendation_stats()


# ============== Review queue and analytics ==============

@router.get("/queue", response_model=QueueResponse)
async def get_queue(
    item_type: Optional[QueueItemType] = Query(None, alias="type"),
    priority: Optional[QueuePriority] = Query(None),
    limit: int = Query(20, ge=1, le=100),
    service: ModerationQueueService = Depends(get_queue_service),
) -> QueueResponse:
    """
    Pending actions and live appeals, most urgent first.
    """
    return await service.get_queue(item_type, priority, limit)


@router.get("/queue/stats", response_model=QueueStatsResponse)
async def get_queue_stats(
    service: ModerationQueueService = Depends(get_queue_service),
) -> QueueStatsResponse:
    return await service.get_queue_stats()


@router.get("/analytics", response_model=AnalyticsResponse)
async def get_analytics(
    start_date: datetime = Query(..., alias="startDate"),
    end_date: datetime = Query(..., alias="endDate"),
    service: ModerationQueueService = Depends(get_queue_service),
) -> AnalyticsResponse:
    return await service.get_analytics(start_date, end_date)
