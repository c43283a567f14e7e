"""
Tests for the review queue, queue statistics and moderation analytics.
"""

import re
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import update

from moderation_service.core.exceptions import ValidationError
from moderation_service.db.base import utcnow
from moderation_service.db.models import Appeal, ModerationAction
from moderation_service.schemas import (
    AppealDecision,
    CreateAppealRequest,
    QueueItemType,
    QueuePriority,
    RejectActionRequest,
    ReviewAppealRequest,
    WireActionType,
    WireSeverity,
    WireTargetType,
)
from moderation_service.services.moderation_queue import format_wait_time

from .factories import APPEAL_REASON, DECISION_REASONING, action_request, recommendation_request


async def backdate(session, model, record_id, **delta):
    await session.execute(
        update(model).where(model.id == record_id).values(created_at=utcnow() - timedelta(**delta))
    )
    await session.commit()
    session.expire_all()


async def appeal_on(moderation, moderator, appellant, action_type):
    action = await moderation.create_action(
        action_request(action_type, WireTargetType.USER, appellant.id), moderator.id
    )
    return await moderation.create_appeal(
        action.id, appellant.id, CreateAppealRequest(reason=APPEAL_REASON)
    )


@pytest.fixture
async def mixed_queue(moderation, ai_review, moderator, appellant):
    """A normal-priority appeal, then a pending recommendation, then a high-priority appeal."""
    normal = await appeal_on(moderation, moderator, appellant, WireActionType.WARN)
    recommendation = await ai_review.submit_ai_recommendation(recommendation_request(WireActionType.BAN))
    high = await appeal_on(moderation, moderator, appellant, WireActionType.SUSPEND)
    return normal, recommendation, high


@pytest.mark.parametrize(
    "elapsed, expected",
    [
        (timedelta(seconds=40), "PT40S"),
        (timedelta(minutes=15, seconds=59), "PT15M"),
        (timedelta(hours=3, minutes=30), "PT3H"),
        (timedelta(days=2, hours=23), "P2D"),
        (timedelta(seconds=-5), "PT0S"),
    ],
)
def test_format_wait_time(elapsed, expected):
    assert format_wait_time(elapsed) == expected


# ============== Queue ==============

async def test_empty_queue(queue):
    result = await queue.get_queue()

    assert result.items == []
    assert result.total_count == 0


async def test_queue_orders_by_priority_then_age(queue, mixed_queue):
    normal, recommendation, high = mixed_queue

    result = await queue.get_queue()

    assert [(i.type, i.id, i.priority) for i in result.items] == [
        (QueueItemType.ACTION, recommendation.id, QueuePriority.HIGH),
        (QueueItemType.APPEAL, high.id, QueuePriority.HIGH),
        (QueueItemType.APPEAL, normal.id, QueuePriority.NORMAL),
    ]
    assert result.total_count == 3
    assert result.items[0].summary == f"ban on user {str(recommendation.target_id)[:8]}"
    assert result.items[1].summary == "Appeal: suspend on user"
    assert all(re.fullmatch(r"PT\d+S", i.wait_time) for i in result.items)


async def test_queue_filters(queue, mixed_queue):
    normal, _, high = mixed_queue

    appeals_only = await queue.get_queue(item_type=QueueItemType.APPEAL)
    assert [i.id for i in appeals_only.items] == [high.id, normal.id]
    assert appeals_only.total_count == 2

    normal_only = await queue.get_queue(priority=QueuePriority.NORMAL)
    assert [i.id for i in normal_only.items] == [normal.id]
    assert normal_only.total_count == 1

    low_only = await queue.get_queue(priority=QueuePriority.LOW)
    assert low_only.items == []
    assert low_only.total_count == 0


async def test_queue_limit_keeps_total(queue, ai_review):
    for _ in range(3):
        await ai_review.submit_ai_recommendation(recommendation_request())

    result = await queue.get_queue(limit=2)

    assert len(result.items) == 2
    assert result.total_count == 3


async def test_limit_must_be_in_range(queue):
    with pytest.raises(ValidationError):
        await queue.get_queue(limit=0)


async def test_resolved_items_leave_the_queue(queue, moderation, appeals, mixed_queue, moderator):
    normal, recommendation, high = mixed_queue
    await appeals.assign_appeal_to_moderator(high.id, moderator.id)
    await appeals.review_appeal(
        normal.id, moderator.id, ReviewAppealRequest(decision=AppealDecision.DENIED, reasoning=DECISION_REASONING)
    )
    await moderation.reject_action(recommendation.id, RejectActionRequest(reason="Not a violation"))

    result = await queue.get_queue()

    assert [i.id for i in result.items] == [high.id]
    assert result.total_count == 1


async def test_wait_time_reflects_age(queue, session, ai_review):
    recommendation = await ai_review.submit_ai_recommendation(recommendation_request())
    await backdate(session, ModerationAction, recommendation.id, hours=5, minutes=10)

    [item] = (await queue.get_queue()).items

    assert item.wait_time == "PT5H"


# ============== Statistics ==============

async def test_empty_queue_stats(queue):
    stats = await queue.get_queue_stats()

    assert (stats.pending_actions, stats.pending_appeals) == (0, 0)
    assert stats.avg_resolution_time_minutes == 0
    assert stats.oldest_item_age == "PT0S"


async def test_queue_stats_counts_live_appeals(queue, appeals, mixed_queue, moderator, session):
    normal, _, high = mixed_queue
    await appeals.assign_appeal_to_moderator(high.id, moderator.id)
    await backdate(session, Appeal, normal.id, days=2, hours=1)

    stats = await queue.get_queue_stats()

    assert stats.pending_actions == 1
    assert stats.pending_appeals == 2
    assert stats.oldest_item_age == "P2D"


async def test_average_resolution_time(queue, moderation, ai_review, moderator, session):
    recommendation = await ai_review.submit_ai_recommendation(recommendation_request())
    await backdate(session, ModerationAction, recommendation.id, minutes=90)

    await moderation.approve_action(recommendation.id, moderator.id)
    # Immediate moderator actions resolve in no time
    await moderation.create_action(action_request(WireActionType.WARN), moderator.id)

    stats = await queue.get_queue_stats()

    assert stats.pending_actions == 0
    assert stats.avg_resolution_time_minutes == 45


async def test_resolution_time_ignores_old_actions(queue, moderation, ai_review, moderator, session):
    recommendation = await ai_review.submit_ai_recommendation(recommendation_request())
    await backdate(session, ModerationAction, recommendation.id, days=31)
    await moderation.approve_action(recommendation.id, moderator.id)

    stats = await queue.get_queue_stats()

    assert stats.avg_resolution_time_minutes == 0


# ============== Analytics ==============

async def test_analytics_rates_and_breakdown(queue, moderation, ai_review, moderator, appellant):
    await appeal_on(moderation, moderator, appellant, WireActionType.WARN)
    await moderation.create_action(action_request(WireActionType.HIDE), moderator.id)
    await ai_review.submit_ai_recommendation(recommendation_request(WireActionType.BAN))
    rejected = await ai_review.submit_ai_recommendation(recommendation_request(WireActionType.SUSPEND))
    await moderation.reject_action(rejected.id, RejectActionRequest(reason="Not a violation"))

    now = datetime.now(timezone(timedelta(hours=5)))
    analytics = await queue.get_analytics(now - timedelta(hours=1), now + timedelta(hours=1))

    summary = analytics.summary
    assert (summary.total_actions, summary.approved_actions) == (4, 2)
    assert (summary.reversed_actions, summary.appealed_actions, summary.total_appeals) == (1, 1, 1)
    assert (analytics.rates.approval_rate, analytics.rates.reversal_rate, analytics.rates.appeal_rate) == (
        50.0,
        25.0,
        25.0,
    )
    assert analytics.timing.avg_resolution_minutes == 0
    assert analytics.breakdown.by_action_type == {
        WireActionType.WARN: 1,
        WireActionType.HIDE: 1,
        WireActionType.BAN: 1,
        WireActionType.SUSPEND: 1,
    }
    assert analytics.breakdown.by_severity == {WireSeverity.NON_PUNITIVE: 1, WireSeverity.CONSEQUENTIAL: 3}
    assert analytics.period.start_date.utcoffset() == timedelta(0)


async def test_analytics_outside_window_is_zero(queue, moderation, moderator):
    await moderation.create_action(action_request(), moderator.id)
    now = datetime.now(timezone.utc)

    analytics = await queue.get_analytics(now + timedelta(days=1), now + timedelta(days=2))

    assert analytics.summary.total_actions == 0
    assert analytics.rates.approval_rate == 0.0
    assert analytics.timing.avg_resolution_ms == 0.0
    assert analytics.breakdown.by_action_type == {}


async def test_analytics_window_must_be_ordered(queue):
    now = datetime.now(timezone.utc)

    with pytest.raises(ValidationError, match="startDate must not be after endDate"):
        await queue.get_analytics(now, now - timedelta(seconds=1))
