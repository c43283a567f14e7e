"""
Moderator review queue, queue statistics and moderation analytics.

The queue merges PENDING actions with live appeals. Priority:

- action: high when consequential or recommended with confidence below 0.7,
  low otherwise
- appeal: high when the contested action is consequential, normal otherwise

Items are ordered high to low, then oldest first.
"""

from datetime import datetime, timedelta
from typing import List, Optional, Sequence, Tuple

from sqlalchemy import case, or_
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import Config, get_config
from ..core.exceptions import ValidationError
from ..core.logging_config import get_logger
from ..db.base import as_utc, utcnow
from ..db.models import (
    LIVE_APPEAL_STATUSES,
    Appeal,
    ModerationAction,
    ModerationStatus,
    Severity,
)
from ..db.repositories import AppealRepository, ModerationActionRepository
from ..schemas import (
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
from ..schemas.mappers import ACTION_TYPE_TO_WIRE, SEVERITY_TO_WIRE, TARGET_TYPE_TO_WIRE
from .validation import require_limit

logger = get_logger(__name__)

LOW_CONFIDENCE_THRESHOLD = 0.7
RESOLUTION_WINDOW = timedelta(days=30)
RESOLVED_STATUSES = (ModerationStatus.ACTIVE, ModerationStatus.REVERSED, ModerationStatus.APPEALED)

PRIORITY_RANKS = {
    QueuePriority.HIGH: 0,
    QueuePriority.NORMAL: 1,
    QueuePriority.LOW: 2,
}
PRIORITY_BY_RANK = {rank: priority for priority, rank in PRIORITY_RANKS.items()}


def _rank(high_when, otherwise: QueuePriority):
    return case(
        (high_when, PRIORITY_RANKS[QueuePriority.HIGH]),
        else_=PRIORITY_RANKS[otherwise],
    ).label("priority_rank")


# NULL confidence (moderator-initiated) never counts as low confidence
ACTION_RANK = _rank(
    or_(
        ModerationAction.severity == Severity.CONSEQUENTIAL,
        ModerationAction.ai_confidence < LOW_CONFIDENCE_THRESHOLD,
    ),
    QueuePriority.LOW,
)
APPEAL_RANK = _rank(ModerationAction.severity == Severity.CONSEQUENTIAL, QueuePriority.NORMAL)

PENDING_ACTION = ModerationAction.status == ModerationStatus.PENDING
LIVE_APPEAL = Appeal.status.in_(LIVE_APPEAL_STATUSES)


def format_wait_time(elapsed: timedelta) -> str:
    """ISO 8601 duration at the largest whole unit: days, hours, minutes or seconds."""
    seconds = max(int(elapsed.total_seconds()), 0)
    if seconds >= 86400:
        return f"P{seconds // 86400}D"
    if seconds >= 3600:
        return f"PT{seconds // 3600}H"
    if seconds >= 60:
        return f"PT{seconds // 60}M"
    return f"PT{seconds}S"


def _mean_seconds(pairs: Sequence[Tuple[datetime, datetime]]) -> float:
    if not pairs:
        return 0.0
    # approved_at can precede created_at by the flush delay of an immediate action
    total = sum(max((as_utc(end) - as_utc(start)).total_seconds(), 0.0) for start, end in pairs)
    return total / len(pairs)


def _percent(part: int, total: int) -> float:
    return round(part / total * 100, 2) if total else 0.0


def _describe(action: ModerationAction) -> str:
    return (
        f"{ACTION_TYPE_TO_WIRE[action.action_type].value} on "
        f"{TARGET_TYPE_TO_WIRE[action.target_type].value}"
    )


class ModerationQueueService:
    """Read-only views over the moderation workload."""

    def __init__(self, session: AsyncSession, config: Optional[Config] = None):
        self.session = session
        self.config = config or get_config()
        self.actions = ModerationActionRepository(session)
        self.appeals = AppealRepository(session)

    async def get_queue(
        self,
        item_type: Optional[QueueItemType] = None,
        priority: Optional[QueuePriority] = None,
        limit: int = 20,
    ) -> QueueResponse:
        """
        The most urgent ``limit`` items awaiting a moderator.

        Args:
            item_type: Only actions or only appeals
            priority: Only items of this priority
            limit: Maximum number of items returned

        Returns:
            QueueResponse whose total counts every matching item, not just
            the returned ones
        """
        require_limit(limit, self.config.api.max_page_size)
        now = utcnow()
        items: List[QueueItem] = []
        total_count = 0

        if item_type in (None, QueueItemType.ACTION):
            conditions = [PENDING_ACTION]
            if priority is not None:
                conditions.append(ACTION_RANK == PRIORITY_RANKS[priority])

            for action, rank in await self.actions.list_ranked(ACTION_RANK, limit, *conditions):
                items.append(QueueItem(
                    type=QueueItemType.ACTION,
                    id=action.id,
                    priority=PRIORITY_BY_RANK[rank],
                    wait_time=format_wait_time(now - as_utc(action.created_at)),
                    summary=f"{_describe(action)} {str(action.target_id)[:8]}",
                    created_at=as_utc(action.created_at),
                ))
            total_count += await self.actions.count(*conditions)

        if item_type in (None, QueueItemType.APPEAL):
            conditions = [LIVE_APPEAL]
            if priority is not None:
                conditions.append(APPEAL_RANK == PRIORITY_RANKS[priority])

            for appeal, rank in await self.appeals.list_ranked(APPEAL_RANK, limit, *conditions):
                items.append(QueueItem(
                    type=QueueItemType.APPEAL,
                    id=appeal.id,
                    priority=PRIORITY_BY_RANK[rank],
                    wait_time=format_wait_time(now - as_utc(appeal.created_at)),
                    summary=f"Appeal: {_describe(appeal.moderation_action)}",
                    created_at=as_utc(appeal.created_at),
                ))
            total_count += await self.appeals.count_with_action(*conditions)

        items.sort(key=lambda item: (PRIORITY_RANKS[item.priority], item.created_at, str(item.id)))
        return QueueResponse(items=items[:limit], total_count=total_count)

    async def get_queue_stats(self) -> QueueStatsResponse:
        """
        Queue depth, mean time to approval over the last 30 days and the
        age of the oldest waiting item.
        """
        now = utcnow()
        pending_actions = await self.actions.count(PENDING_ACTION)
        pending_appeals = await self.appeals.count(LIVE_APPEAL)

        resolved = await self.actions.resolution_times(
            ModerationAction.status.in_(RESOLVED_STATUSES),
            ModerationAction.created_at >= now - RESOLUTION_WINDOW,
        )

        oldest_action = await self.actions.oldest(PENDING_ACTION)
        oldest_appeal = await self.appeals.oldest(LIVE_APPEAL)
        waiting = [as_utc(t) for t in (oldest_action, oldest_appeal) if t is not None]

        return QueueStatsResponse(
            pending_actions=pending_actions,
            pending_appeals=pending_appeals,
            avg_resolution_time_minutes=int(_mean_seconds(resolved) // 60),
            oldest_item_age=format_wait_time(now - min(waiting)) if waiting else "PT0S",
        )

    async def get_analytics(self, start_date: datetime, end_date: datetime) -> AnalyticsResponse:
        """
        Outcome rates and mix of the actions created within an inclusive window.

        Raises:
            ValidationError: If the window ends before it starts
        """
        start, end = as_utc(start_date), as_utc(end_date)
        if start > end:
            raise ValidationError(
                "startDate must not be after endDate",
                field_errors={"startDate": ["must not be after endDate"]},
            )

        window = (ModerationAction.created_at >= start, ModerationAction.created_at <= end)
        total = await self.actions.count(*window)
        approved = await self.actions.resolution_times(*window)
        reversed_count = await self.actions.count(*window, ModerationAction.status == ModerationStatus.REVERSED)
        appealed_count = await self.actions.count(*window, ModerationAction.status == ModerationStatus.APPEALED)
        total_appeals = await self.appeals.count(Appeal.created_at >= start, Appeal.created_at <= end)
        by_type = await self.actions.count_by(ModerationAction.action_type, *window)
        by_severity = await self.actions.count_by(ModerationAction.severity, *window)

        avg_resolution_ms = _mean_seconds(approved) * 1000
        logger.debug(f"Analytics {start.isoformat()}..{end.isoformat()}: {total} actions")

        return AnalyticsResponse(
            period=AnalyticsPeriod(start_date=start, end_date=end),
            summary=AnalyticsSummary(
                total_actions=total,
                approved_actions=len(approved),
                reversed_actions=reversed_count,
                appealed_actions=appealed_count,
                total_appeals=total_appeals,
            ),
            rates=AnalyticsRates(
                approval_rate=_percent(len(approved), total),
                reversal_rate=_percent(reversed_count, total),
                appeal_rate=_percent(appealed_count, total),
            ),
            timing=AnalyticsTiming(
                avg_resolution_ms=avg_resolution_ms,
                avg_resolution_minutes=round(avg_resolution_ms / 60000),
            ),
            breakdown=AnalyticsBreakdown(
                by_action_type={ACTION_TYPE_TO_WIRE[k]: v for k, v in by_type.items()},
                by_severity={SEVERITY_TO_WIRE[k]: v for k, v in by_severity.items()},
            ),
        )
