"""
Appeal workflow: moderator assignment, review, the pending queue and statistics.

State machine::

    PENDING --assign--> UNDER_REVIEW --unassign--> PENDING
    {PENDING, UNDER_REVIEW} --review--> UPHELD | DENIED

Every transition re-checks the expected status inside the UPDATE itself, so
two moderators racing on the same appeal get exactly one success.
"""

import uuid
from datetime import datetime
from typing import Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..core.config import Config, get_config
from ..core.exceptions import StatePreconditionError, raise_not_found
from ..core.logging_config import get_logger
from ..db.base import utcnow
from ..db.models import (
    LIVE_APPEAL_STATUSES,
    Appeal,
    AppealStatus,
    ModerationAction,
    ModerationStatus,
    User,
)
from ..db.repositories import AppealRepository, ModerationActionRepository, UserRepository
from ..db.session import transaction
from ..events import (
    EventPublisher,
    EventType,
    TrustScores,
    UserTrustUpdatedPayload,
    publish_safely,
)
from ..schemas import (
    AppealDecision,
    AppealListResponse,
    AppealResponse,
    AppealStatisticsResponse,
    AppealStatusCount,
    AppealWithActionResponse,
    ReviewAppealRequest,
)
from ..schemas.mappers import (
    APPEAL_STATUS_TO_WIRE,
    appeal_to_response,
    appeal_to_response_with_action,
)
from .validation import require_limit, require_text

logger = get_logger(__name__)

TRUST_UPDATE_REASON = "appeal_upheld"


class AppealService:
    """
    Moderator-facing operations on appeals.
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
        self.appeals = AppealRepository(session)
        self.actions = ModerationActionRepository(session)
        self.users = UserRepository(session)

    async def _load(self, appeal_id: uuid.UUID) -> Appeal:
        appeal = await self.appeals.get(appeal_id, for_update=True)
        if appeal is None:
            raise_not_found("Appeal", appeal_id)
        return appeal

    async def _transition(
        self,
        appeal_id: uuid.UUID,
        expected: Sequence[AppealStatus],
        values: dict,
        verb: str,
    ) -> None:
        updated = await self.appeals.update_where(
            [Appeal.id == appeal_id, Appeal.status.in_(expected)],
            values,
        )
        if updated == 0:
            # Lost a race: another request moved the appeal first
            current = await self.appeals.get(appeal_id)
            raise _wrong_status(verb, expected, current.status if current else None)

    async def assign_appeal_to_moderator(
        self,
        appeal_id: uuid.UUID,
        moderator_id: uuid.UUID,
    ) -> AppealResponse:
        """
        Take a PENDING appeal off the shared queue for one moderator.

        Raises:
            NotFoundError: If the appeal or the moderator does not exist
            StatePreconditionError: If the appeal is not PENDING
        """
        async with transaction(self.session):
            appeal = await self._load(appeal_id)
            if appeal.status != AppealStatus.PENDING:
                raise _wrong_status("assign", (AppealStatus.PENDING,), appeal.status)

            if await self.users.get(moderator_id) is None:
                raise_not_found("Moderator", moderator_id)

            await self._transition(
                appeal_id,
                (AppealStatus.PENDING,),
                {"status": AppealStatus.UNDER_REVIEW, "reviewer_id": moderator_id},
                "assign",
            )
            appeal = await self.appeals.get(appeal_id)

        logger.info(f"Appeal {appeal_id} assigned to moderator {moderator_id}")
        return appeal_to_response(appeal)

    async def unassign_appeal(self, appeal_id: uuid.UUID) -> AppealResponse:
        """Return an UNDER_REVIEW appeal to the shared queue."""
        async with transaction(self.session):
            appeal = await self._load(appeal_id)
            if appeal.status != AppealStatus.UNDER_REVIEW:
                raise _wrong_status("unassign", (AppealStatus.UNDER_REVIEW,), appeal.status)

            await self._transition(
                appeal_id,
                (AppealStatus.UNDER_REVIEW,),
                {"status": AppealStatus.PENDING, "reviewer_id": None},
                "unassign",
            )
            appeal = await self.appeals.get(appeal_id)

        logger.info(f"Appeal {appeal_id} returned to the queue")
        return appeal_to_response(appeal)

    async def review_appeal(
        self,
        appeal_id: uuid.UUID,
        reviewer_id: uuid.UUID,
        request: ReviewAppealRequest,
        require_assignment: bool = False,
    ) -> AppealResponse:
        """
        Resolve an appeal as upheld or denied.

        Upholding reverses the contested action in the same transaction and,
        once committed, publishes a trust update for the appellant. Denying
        leaves the action untouched and publishes nothing.

        Args:
            appeal_id: Appeal to resolve
            reviewer_id: Moderator issuing the decision
            request: Decision and its reasoning
            require_assignment: Only accept appeals already UNDER_REVIEW

        Raises:
            ValidationError: If the reasoning is missing or out of bounds
            NotFoundError: If the appeal or the reviewer does not exist
            StatePreconditionError: If the appeal is already resolved
        """
        moderation = self.config.moderation
        reasoning = require_text(
            request.reasoning,
            "reasoning",
            "Appeal decision reasoning",
            moderation.min_decision_reasoning_length,
            moderation.max_decision_reasoning_length,
        )
        upheld = request.decision == AppealDecision.UPHELD
        expected = (AppealStatus.UNDER_REVIEW,) if require_assignment else LIVE_APPEAL_STATUSES

        async with transaction(self.session):
            appeal = await self._load(appeal_id)
            if appeal.status not in expected:
                raise _wrong_status("review", expected, appeal.status)

            if await self.users.get(reviewer_id) is None:
                raise_not_found("Moderator", reviewer_id)

            now = utcnow()
            await self._transition(
                appeal_id,
                expected,
                {
                    "status": AppealStatus.UPHELD if upheld else AppealStatus.DENIED,
                    "reviewer_id": reviewer_id,
                    "decision_reasoning": reasoning,
                    "resolved_at": now,
                },
                "review",
            )

            appellant = None
            if upheld:
                await self.actions.update_where(
                    [ModerationAction.id == appeal.moderation_action_id],
                    {
                        "status": ModerationStatus.REVERSED,
                        "reasoning": ModerationAction.reasoning + f"\n\n[APPEAL UPHELD: {reasoning}]",
                    },
                )
                appellant = await self.users.get(appeal.appellant_id)

            appeal = await self.appeals.get(appeal_id)

        logger.info(
            f"Appeal {appeal_id} {'upheld' if upheld else 'denied'} by {reviewer_id}"
        )

        if upheld:
            await self._publish_trust_update(appeal, appellant, now)

        return appeal_to_response(appeal)

    async def _publish_trust_update(self, appeal: Appeal, appellant: User, updated_at: datetime) -> None:
        # Scores are recomputed by the user service on receipt
        scores = TrustScores(**appellant.trust_scores())
        await publish_safely(
            self.publisher,
            EventType.USER_TRUST_UPDATED,
            UserTrustUpdatedPayload(
                user_id=str(appeal.appellant_id),
                previous_scores=scores,
                new_scores=scores,
                reason=TRUST_UPDATE_REASON,
                moderation_action_id=str(appeal.moderation_action_id),
                updated_at=updated_at,
            ),
            source=self.config.event_bus.source_name,
            user_id=str(appeal.appellant_id),
        )

    async def get_pending_appeals(
        self,
        limit: int = 20,
        cursor: Optional[uuid.UUID] = None,
        moderator_id: Optional[uuid.UUID] = None,
    ) -> AppealListResponse:
        """
        Work queue of appeals, oldest first.

        Without a moderator the queue is every PENDING appeal. With one, it is
        the appeals that moderator has taken (UNDER_REVIEW, assigned to them).
        """
        require_limit(limit, self.config.api.max_page_size)

        if moderator_id is None:
            conditions = [Appeal.status == AppealStatus.PENDING]
        else:
            conditions = [
                Appeal.status == AppealStatus.UNDER_REVIEW,
                Appeal.reviewer_id == moderator_id,
            ]

        page = await self.appeals.paginate(
            conditions,
            limit,
            cursor,
            descending=False,
            options=(
                selectinload(Appeal.moderation_action).selectinload(ModerationAction.approved_by),
            ),
        )
        return AppealListResponse(
            appeals=[appeal_to_response_with_action(a) for a in page.items],
            next_cursor=page.next_cursor,
            total_count=page.total_count,
        )

    async def get_appeal_statistics(
        self,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> AppealStatisticsResponse:
        """Counts per status, zero-filled, within an inclusive creation window."""
        counts = await self.appeals.count_by_status(start_date, end_date)

        return AppealStatisticsResponse(
            total=sum(counts.values()),
            pending=counts.get(AppealStatus.PENDING, 0),
            under_review=counts.get(AppealStatus.UNDER_REVIEW, 0),
            upheld=counts.get(AppealStatus.UPHELD, 0),
            denied=counts.get(AppealStatus.DENIED, 0),
            by_status=[
                AppealStatusCount(status=APPEAL_STATUS_TO_WIRE[status], count=counts.get(status, 0))
                for status in AppealStatus
            ],
        )

    async def get_appeal_by_id(self, appeal_id: uuid.UUID) -> Optional[AppealWithActionResponse]:
        appeal = await self.appeals.get_with_action(appeal_id)
        if appeal is None:
            return None
        return appeal_to_response_with_action(appeal)


def _wrong_status(
    verb: str,
    expected: Sequence[AppealStatus],
    current: Optional[AppealStatus],
) -> StatePreconditionError:
    allowed = " or ".join(s.value for s in expected)
    current_label = current.value if current is not None else "DELETED"
    return StatePreconditionError(
        f"Appeal must be in {allowed} status to {verb}, current status: {current_label}",
        current_status=current_label,
    )
