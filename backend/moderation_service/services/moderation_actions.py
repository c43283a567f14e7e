"""
Moderation action lifecycle and appeal creation.

Actions move PENDING -> ACTIVE | REVERSED through approval or rejection,
ACTIVE -> APPEALED when their target appeals, and APPEALED -> REVERSED when an
appeal is upheld. REVERSED is terminal.
"""

import uuid
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import Config, get_config
from ..core.exceptions import StatePreconditionError, raise_not_found, raise_validation_error
from ..core.logging_config import get_logger
from ..db.base import as_utc, utcnow
from ..db.models import (
    ModerationAction,
    ModerationStatus,
    Severity,
    TargetType,
    severity_for,
)
from ..db.repositories import AppealRepository, ModerationActionRepository, UserRepository
from ..db.session import transaction
from ..events import EventPublisher, EventType, ModerationActionRequestedPayload, publish_safely
from ..schemas import (
    ActionListResponse,
    AppealResponse,
    ApproveActionRequest,
    CoolingOffResponse,
    CreateActionRequest,
    CreateAppealRequest,
    ModerationActionDetailResponse,
    ModerationActionResponse,
    RejectActionRequest,
    ReviewAppealRequest,
    WireModerationStatus,
    WireSeverity,
    WireTargetType,
)
from ..schemas.mappers import (
    ACTION_TYPE_FROM_WIRE,
    ACTION_TYPE_TO_WIRE,
    MODERATION_STATUS_FROM_WIRE,
    SEVERITY_FROM_WIRE,
    SEVERITY_TO_WIRE,
    TARGET_TYPE_FROM_WIRE,
    TARGET_TYPE_TO_WIRE,
    action_to_detail,
    action_to_response,
    appeal_to_response,
)
from .appeal_service import AppealService
from .validation import require_limit, require_text

logger = get_logger(__name__)

DUPLICATE_APPEAL_MESSAGE = "An appeal for this moderation action is already pending review"


def action_requested_payload(action: ModerationAction) -> ModerationActionRequestedPayload:
    """Event payload announcing a newly created action."""
    return ModerationActionRequestedPayload(
        action_id=str(action.id),
        target_type=TARGET_TYPE_TO_WIRE[action.target_type],
        target_id=str(action.target_id),
        action_type=ACTION_TYPE_TO_WIRE[action.action_type],
        severity=SEVERITY_TO_WIRE[action.severity],
        reasoning=action.reasoning,
        ai_confidence=float(action.ai_confidence) if action.ai_confidence is not None else None,
        requested_at=as_utc(action.created_at),
    )


class ModerationActionsService:
    """
    Create, list, approve and reject moderation actions; open appeals on them.
    """

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
        self.appeals = AppealRepository(session)
        self.users = UserRepository(session)

    async def _load(self, action_id: uuid.UUID) -> ModerationAction:
        action = await self.actions.get(action_id, for_update=True)
        if action is None:
            raise_not_found("Moderation action", action_id)
        return action

    async def _require_moderator(self, moderator_id: uuid.UUID) -> None:
        if await self.users.get(moderator_id) is None:
            raise_not_found("Moderator", moderator_id)

    async def _compare_and_set(
        self,
        action_id: uuid.UUID,
        expected: ModerationStatus,
        values: dict,
        verb: str,
    ) -> None:
        updated = await self.actions.update_where(
            [ModerationAction.id == action_id, ModerationAction.status == expected],
            values,
        )
        if updated == 0:
            current = await self.actions.get(action_id)
            raise _wrong_status(verb, expected, current.status if current else None)

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    async def create_action(
        self,
        request: CreateActionRequest,
        moderator_id: uuid.UUID,
    ) -> ModerationActionResponse:
        """
        Create a moderator-initiated action.

        The moderator's own action needs no further approval, so it is stored
        ACTIVE with the moderator as approver. The action-requested event is
        published after commit; failure to publish is only logged.

        Raises:
            ValidationError: If the reasoning is shorter than required
            NotFoundError: If the moderator does not exist
        """
        require_text(
            request.reasoning,
            "reasoning",
            "Reasoning",
            self.config.moderation.min_action_reasoning_length,
        )
        action_type = ACTION_TYPE_FROM_WIRE[request.action_type]
        now = utcnow()

        async with transaction(self.session):
            await self._require_moderator(moderator_id)
            action = await self.actions.create(
                target_type=TARGET_TYPE_FROM_WIRE[request.target_type],
                target_id=request.target_id,
                action_type=action_type,
                severity=severity_for(action_type),
                reasoning=request.reasoning,
                ai_recommended=False,
                approved_by_id=moderator_id,
                approved_at=now,
                status=ModerationStatus.ACTIVE,
                executed_at=now,
            )
            action = await self.actions.get_with_approver(action.id)

        logger.info(
            f"Moderation action {action.id} created: {action_type.value} on "
            f"{action.target_type.value} {action.target_id} by {moderator_id}"
        )

        await publish_safely(
            self.publisher,
            EventType.MODERATION_ACTION_REQUESTED,
            action_requested_payload(action),
            source=self.config.event_bus.source_name,
            user_id=str(moderator_id),
        )
        return action_to_response(action)

    async def list_actions(
        self,
        target_type: Optional[WireTargetType] = None,
        status: Optional[WireModerationStatus] = None,
        severity: Optional[WireSeverity] = None,
        limit: int = 20,
        cursor: Optional[uuid.UUID] = None,
    ) -> ActionListResponse:
        """Newest-first page of actions; every filter is optional and ANDed."""
        require_limit(limit, self.config.api.max_page_size)

        conditions = []
        if target_type is not None:
            conditions.append(ModerationAction.target_type == TARGET_TYPE_FROM_WIRE[target_type])
        if status is not None:
            conditions.append(ModerationAction.status == MODERATION_STATUS_FROM_WIRE[status])
        if severity is not None:
            conditions.append(ModerationAction.severity == SEVERITY_FROM_WIRE[severity])

        return await self._page(conditions, limit, cursor)

    async def get_user_actions(
        self,
        user_id: uuid.UUID,
        limit: int = 20,
        cursor: Optional[uuid.UUID] = None,
    ) -> ActionListResponse:
        """Moderation history of one user."""
        require_limit(limit, self.config.api.max_page_size)
        conditions = [
            ModerationAction.target_type == TargetType.USER,
            ModerationAction.target_id == user_id,
        ]
        return await self._page(conditions, limit, cursor)

    async def _page(self, conditions: list, limit: int, cursor: Optional[uuid.UUID]) -> ActionListResponse:
        page = await self.actions.paginate_with_approver(conditions, limit, cursor)
        return ActionListResponse(
            actions=[action_to_response(a) for a in page.items],
            next_cursor=page.next_cursor,
            total_count=page.total_count,
        )

    async def get_action(self, action_id: uuid.UUID) -> ModerationActionDetailResponse:
        action = await self.actions.get_with_appeals(action_id)
        if action is None:
            raise_not_found("Moderation action", action_id)
        return action_to_detail(action)

    async def approve_action(
        self,
        action_id: uuid.UUID,
        moderator_id: uuid.UUID,
        request: Optional[ApproveActionRequest] = None,
    ) -> ModerationActionResponse:
        """
        Approve a PENDING consequential action, making it ACTIVE.

        Raises:
            NotFoundError: If the action or moderator does not exist
            StatePreconditionError: If the action is not PENDING or is non-punitive
        """
        async with transaction(self.session):
            action = await self._load(action_id)
            if action.status != ModerationStatus.PENDING:
                raise _wrong_status("approve", ModerationStatus.PENDING, action.status)
            if action.severity == Severity.NON_PUNITIVE:
                raise StatePreconditionError(
                    "Non-punitive actions cannot be explicitly approved",
                    current_status=action.status.value,
                )
            await self._require_moderator(moderator_id)

            now = utcnow()
            values = {
                "status": ModerationStatus.ACTIVE,
                "approved_by_id": moderator_id,
                "approved_at": now,
                "executed_at": now,
            }
            if request is not None and request.modified_reasoning:
                values["reasoning"] = request.modified_reasoning

            await self._compare_and_set(action_id, ModerationStatus.PENDING, values, "approve")
            action = await self.actions.get_with_approver(action_id)

        logger.info(f"Moderation action {action_id} approved by {moderator_id}")
        return action_to_response(action)

    async def reject_action(
        self,
        action_id: uuid.UUID,
        request: RejectActionRequest,
    ) -> ModerationActionResponse:
        """
        Reject a PENDING action. The reason is appended to the reasoning so the
        original text is kept.
        """
        reason = require_text(request.reason, "reason", "Rejection reason", 1)

        async with transaction(self.session):
            action = await self._load(action_id)
            if action.status != ModerationStatus.PENDING:
                raise _wrong_status("reject", ModerationStatus.PENDING, action.status)

            await self._compare_and_set(
                action_id,
                ModerationStatus.PENDING,
                {
                    "status": ModerationStatus.REVERSED,
                    "reasoning": ModerationAction.reasoning + f"\n\n[REJECTED BY MODERATOR: {reason}]",
                },
                "reject",
            )
            action = await self.actions.get_with_approver(action_id)

        logger.info(f"Moderation action {action_id} rejected")
        return action_to_response(action)

    async def send_cooling_off_prompt(
        self,
        user_ids: List[uuid.UUID],
        topic_id: Optional[uuid.UUID],
        prompt: str,
    ) -> CoolingOffResponse:
        """
        Non-punitive intervention asking participants to pause.

        Delivery belongs to the notification service; this records the
        intervention and reports how many users it addressed.
        """
        if not user_ids:
            raise_validation_error("userIds must contain at least one user", "userIds")
        if not prompt or not prompt.strip():
            raise_validation_error("prompt is required", "prompt")

        logger.info(
            f"Cooling-off prompt sent to {len(user_ids)} users"
            + (f" in topic {topic_id}" if topic_id else "")
        )
        return CoolingOffResponse(sent=len(user_ids))

    # ------------------------------------------------------------------
    # Appeals
    # ------------------------------------------------------------------

    async def create_appeal(
        self,
        action_id: uuid.UUID,
        appellant_id: uuid.UUID,
        request: CreateAppealRequest,
    ) -> AppealResponse:
        """
        Open an appeal and mark the action APPEALED, as one unit of work.

        A second live appeal for the same (action, appellant) pair is refused.
        The lookup covers the common case; the partial unique index turns a
        concurrent duplicate into an IntegrityError reported the same way.

        Raises:
            ValidationError: If the reason is missing or out of bounds
            NotFoundError: If the action or appellant does not exist
            StatePreconditionError: If the action is REVERSED or a live appeal exists
        """
        moderation = self.config.moderation
        reason = require_text(
            request.reason,
            "reason",
            "Appeal reason",
            moderation.min_appeal_reason_length,
            moderation.max_appeal_reason_length,
        )

        try:
            async with transaction(self.session):
                action = await self._load(action_id)
                if action.status == ModerationStatus.REVERSED:
                    raise StatePreconditionError(
                        "Cannot appeal a moderation action that has already been reversed",
                        current_status=action.status.value,
                    )

                if await self.users.get(appellant_id) is None:
                    raise_not_found("User", appellant_id)

                if await self.appeals.find_live(action_id, appellant_id) is not None:
                    raise StatePreconditionError(DUPLICATE_APPEAL_MESSAGE)

                appeal = await self.appeals.create(
                    moderation_action_id=action_id,
                    appellant_id=appellant_id,
                    reason=reason,
                )
                await self.actions.update_where(
                    [ModerationAction.id == action_id],
                    {"status": ModerationStatus.APPEALED},
                )
        except IntegrityError as exc:
            logger.warning(f"Concurrent appeal on action {action_id} by {appellant_id} refused")
            raise StatePreconditionError(DUPLICATE_APPEAL_MESSAGE) from exc

        logger.info(f"Appeal {appeal.id} opened on action {action_id} by {appellant_id}")
        return appeal_to_response(appeal)

    async def review_appeal(
        self,
        appeal_id: uuid.UUID,
        reviewer_id: uuid.UUID,
        request: ReviewAppealRequest,
    ) -> AppealResponse:
        """Review an appeal directly, with or without a prior assignment."""
        return await AppealService(self.session, self.publisher, self.config).review_appeal(
            appeal_id, reviewer_id, request
        )


def _wrong_status(
    verb: str,
    expected: ModerationStatus,
    current: Optional[ModerationStatus],
) -> StatePreconditionError:
    current_label = current.value if current is not None else "DELETED"
    return StatePreconditionError(
        f"Action must be in {expected.value} status to {verb}, current status: {current_label}",
        current_status=current_label,
    )
