"""
Appeal workflow endpoints: queue, statistics, assignment and review.
"""
import uuid
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query

from ...core.exceptions import raise_not_found
from ...schemas import (
    AppealListResponse,
    AppealResponse,
    AppealStatisticsResponse,
    AppealWithActionResponse,
    ReviewAppealRequest,
)
from ...services import AppealService
from ..deps import get_appeal_service, get_current_user_id

router = APIRouter(prefix="/appeals")


@router.get("/pending", response_model=AppealListResponse)
async def get_pending_appeals(
    limit: int = Query(20, ge=1, le=100),
    cursor: Optional[uuid.UUID] = Query(None),
    moderator_id: Optional[uuid.UUID] = Query(None, alias="moderatorId"),
    service: AppealService = Depends(get_appeal_service),
) -> AppealListResponse:
    """
    Oldest-first appeal queue. With ``moderatorId``, that moderator's assigned appeals.
    """
    return await service.get_pending_appeals(limit, cursor, moderator_id)


@router.get("/statistics", response_model=AppealStatisticsResponse)
async def get_appeal_statistics(
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    service: AppealService = Depends(get_appeal_service),
) -> AppealStatisticsResponse:
    return await service.get_appeal_statistics(start_date, end_date)


@router.get("/{appeal_id}", response_model=AppealWithActionResponse)
async def get_appeal(
    appeal_id: uuid.UUID,
    service: AppealService = Depends(get_appeal_service),
) -> AppealWithActionResponse:
    appeal = await service.get_appeal_by_id(appeal_id)
    if appeal is None:
        raise_not_found("Appeal", appeal_id)
    return appeal


@router.post("/{appeal_id}/assign", response_model=AppealResponse)
async def assign_appeal(
    appeal_id: uuid.UUID,
    moderator_id: uuid.UUID = Depends(get_current_user_id),
    service: AppealService = Depends(get_appeal_service),
) -> AppealResponse:
    """
    Assign the appeal to the calling moderator.
    """
    return await service.assign_appeal_to_moderator(appeal_id, moderator_id)


@router.post("/{appeal_id}/unassign", response_model=AppealResponse)
async def unassign_appeal(
    appeal_id: uuid.UUID,
    moderator_id: uuid.UUID = Depends(get_current_user_id),
    service: AppealService = Depends(get_appeal_service),
) -> AppealResponse:
    return await service.unassign_appeal(appeal_id)


@router.post("/{appeal_id}/review", response_model=AppealResponse)
async def review_appeal(
    appeal_id: uuid.UUID,
    request: ReviewAppealRequest,
    reviewer_id: uuid.UUID = Depends(get_current_user_id),
    service: AppealService = Depends(get_appeal_service),
) -> AppealResponse:
    """
    Uphold or deny the appeal. Upholding reverses the contested action.
    """
    return await service.review_appeal(appeal_id, reviewer_id, request)
