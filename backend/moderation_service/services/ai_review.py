"""
AI-recommended moderation actions.

The AI reviewer proposes actions with a confidence score. Consequential
proposals wait in PENDING for a moderator (see ``approve_action``); educational
ones take effect immediately, like every non-punitive action.
"""

from decimal import Decimal
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import Config, get_config
from ..core.exceptions import ValidationError
from ..core.logging_config import get_logger
from ..db.base import utcnow
from ..db.models import ModerationAction, ModerationStatus, Severity, severity_for
from ..db.repositories import ModerationActionRepository
from ..db.session import transaction
from ..events import EventPublisher, EventType, publish_safely
from ..schemas import AiRecommendationRequest, ModerationActionResponse, RecommendationStatsResponse
from ..schemas.mappers import ACTION_TYPE_FROM_WIRE, ACTION_TYPE_TO_WIRE, TARGET_TYPE_FROM_WIRE, action_to_response
from .moderation_actions import action_requested_payload
from .validation import require_limit, require_text

logger = get_logger(__name__)

SYSTEM_USER = "system"


class AIReviewService:
    """Intake and reporting for AI recommendations."""

    def __init__(
        self,
        session: AsyncSession,
        publisher: Optional[EventPublisher] = None,
        config: Optional[Config] = None,
    ):
        self.session = session
        self.publisher = publisher
        self.config = config or get_config()
        self.actions = ModerationActionRepository(session)

    async def submit_ai_recommendation(self, request: AiRecommendationRequest) -> ModerationActionResponse:
        """
        Record an AI-recommended action.

        Raises:
            ValidationError: If the confidence is outside [0, 1] or the
                reasoning is too short
        """
        if not 0 <= request.confidence <= 1:
            raise ValidationError(
                "Confidence must be between 0 and 1",
                field_errors={"confidence": ["must be between 0 and 1"]},
            )
        require_text(
            request.reasoning,
            "reasoning",
            "Reasoning",
            self.config.moderation.min_action_reasoning_length,
        )

        action_type = ACTION_TYPE_FROM_WIRE[request.action_type]
        severity = severity_for(action_type)
        immediate = severity == Severity.NON_PUNITIVE

        async with transaction(self.session):
            action = await self.actions.create(
                target_type=TARGET_TYPE_FROM_WIRE[request.target_type],
                target_id=request.target_id,
                action_type=action_type,
                severity=severity,
                reasoning=request.reasoning,
                ai_recommended=True,
                ai_confidence=Decimal(str(round(request.confidence, 2))),
                status=ModerationStatus.ACTIVE if immediate else ModerationStatus.PENDING,
                executed_at=utcnow() if immediate else None,
            )
            action = await self.actions.get_with_approver(action.id)

        logger.info(
            f"AI recommendation {action.id}: {action_type.value} "
            f"(confidence {request.confidence:.2f}, status {action.status.value})"
        )

        payload = action_requested_payload(action)
        if request.analysis_details:
            payload.violation_context = request.analysis_details

        await publish_safely(
            self.publisher,
            EventType.MODERATION_ACTION_REQUESTED,
            payload,
            source=self.config.event_bus.source_name,
            user_id=SYSTEM_USER,
        )
        return action_to_response(action)

    async def get_pending_recommendations(self, limit: int = 20) -> List[ModerationActionResponse]:
        require_limit(limit, self.config.api.max_page_size)
        actions = await self.actions.list_pending_recommendations(limit)
        return [action_to_response(a) for a in actions]

    async def get_recommendation_stats(self) -> RecommendationStatsResponse:
        """
        Pending volume, pending mix by action type, mean pending confidence and
        the share of AI recommendations that have left PENDING.
        """
        pending = (
            ModerationAction.ai_recommended.is_(True),
            ModerationAction.status == ModerationStatus.PENDING,
        )
        total_pending = await self.actions.count(*pending)
        decided = await self.actions.count(
            ModerationAction.ai_recommended.is_(True),
            ModerationAction.status != ModerationStatus.PENDING,
        )
        by_type = await self.actions.count_by_action_type(*pending)
        avg_confidence = await self.actions.average_confidence(*pending)

        total = total_pending + decided
        return RecommendationStatsResponse(
            total_pending=total_pending,
            by_action_type={
                ACTION_TYPE_TO_WIRE[action_type]: count
                for action_type, count in by_type.items()
            },
            avg_confidence=avg_confidence or 0.0,
            approval_rate=decided / total if total else 0.0,
        )
