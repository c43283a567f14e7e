"""
Tests for appeal creation, assignment, review, the pending queue and statistics.
"""

import asyncio
import uuid
from datetime import datetime, timedelta, timezone

import pytest

from moderation_service.core.exceptions import NotFoundError, StatePreconditionError, ValidationError
from moderation_service.events import EventType
from moderation_service.schemas import (
    AppealDecision,
    CreateAppealRequest,
    RejectActionRequest,
    ReviewAppealRequest,
    WireActionType,
    WireAppealStatus,
    WireModerationStatus,
    WireTargetType,
)
from moderation_service.services import ModerationActionsService

from .factories import APPEAL_REASON, DECISION_REASONING, action_request, recommendation_request


def upheld(reasoning: str = DECISION_REASONING) -> ReviewAppealRequest:
    return ReviewAppealRequest(decision=AppealDecision.UPHELD, reasoning=reasoning)


def denied(reasoning: str = DECISION_REASONING) -> ReviewAppealRequest:
    return ReviewAppealRequest(decision=AppealDecision.DENIED, reasoning=reasoning)


# ============== Creation ==============

async def test_appeal_marks_action_appealed(moderation, active_action, appellant):
    appeal = await moderation.create_appeal(
        active_action.id, appellant.id, CreateAppealRequest(reason=APPEAL_REASON)
    )

    assert appeal.status == WireAppealStatus.PENDING
    assert appeal.moderation_action_id == active_action.id
    assert appeal.appellant_id == appellant.id
    assert appeal.reviewer_id is None
    assert appeal.resolved_at is None

    action = await moderation.get_action(active_action.id)
    assert action.status == WireModerationStatus.APPEALED


async def test_short_appeal_reason_is_rejected_before_persistence(
    moderation, appeals, active_action, appellant
):
    with pytest.raises(ValidationError, match="must be at least 20 characters"):
        await moderation.create_appeal(
            active_action.id, appellant.id, CreateAppealRequest(reason="0123456789")
        )

    action = await moderation.get_action(active_action.id)
    assert action.status == WireModerationStatus.ACTIVE
    assert (await appeals.get_appeal_statistics()).total == 0


async def test_appeal_reason_upper_bound(moderation, active_action, appellant):
    with pytest.raises(ValidationError, match="cannot exceed 5000 characters"):
        await moderation.create_appeal(
            active_action.id, appellant.id, CreateAppealRequest(reason="x" * 5001)
        )


async def test_appeal_reason_required(moderation, active_action, appellant):
    with pytest.raises(ValidationError, match="reason is required"):
        await moderation.create_appeal(active_action.id, appellant.id, CreateAppealRequest())


async def test_appeal_on_missing_action(moderation, appellant):
    with pytest.raises(NotFoundError):
        await moderation.create_appeal(
            uuid.uuid4(), appellant.id, CreateAppealRequest(reason=APPEAL_REASON)
        )


async def test_reversed_action_cannot_be_appealed(moderation, ai_review, appellant):
    pending = await ai_review.submit_ai_recommendation(recommendation_request())
    await moderation.reject_action(pending.id, RejectActionRequest(reason="Not a violation"))

    with pytest.raises(StatePreconditionError, match="already been reversed"):
        await moderation.create_appeal(
            pending.id, appellant.id, CreateAppealRequest(reason=APPEAL_REASON)
        )


async def test_second_live_appeal_is_refused(moderation, appeals, pending_appeal, active_action, appellant, moderator):
    with pytest.raises(StatePreconditionError, match="already pending review"):
        await moderation.create_appeal(
            active_action.id, appellant.id, CreateAppealRequest(reason=APPEAL_REASON)
        )

    await appeals.assign_appeal_to_moderator(pending_appeal.id, moderator.id)

    with pytest.raises(StatePreconditionError, match="already pending review"):
        await moderation.create_appeal(
            active_action.id, appellant.id, CreateAppealRequest(reason=APPEAL_REASON)
        )


async def test_re_appeal_allowed_after_denial(moderation, appeals, pending_appeal, active_action, appellant, moderator):
    await appeals.review_appeal(pending_appeal.id, moderator.id, denied())

    again = await moderation.create_appeal(
        active_action.id, appellant.id, CreateAppealRequest(reason=APPEAL_REASON + " Again.")
    )

    assert again.id != pending_appeal.id
    assert again.status == WireAppealStatus.PENDING


async def test_upheld_action_cannot_be_re_appealed(moderation, appeals, pending_appeal, active_action, appellant, moderator):
    await appeals.review_appeal(pending_appeal.id, moderator.id, upheld())

    with pytest.raises(StatePreconditionError, match="already been reversed"):
        await moderation.create_appeal(
            active_action.id, appellant.id, CreateAppealRequest(reason=APPEAL_REASON)
        )


async def test_concurrent_duplicate_appeals_yield_one_success(
    session_factory, publisher, config, active_action, appellant
):
    async def submit():
        async with session_factory() as session:
            service = ModerationActionsService(session, publisher, config)
            return await service.create_appeal(
                active_action.id, appellant.id, CreateAppealRequest(reason=APPEAL_REASON)
            )

    results = await asyncio.gather(submit(), submit(), return_exceptions=True)

    successes = [r for r in results if not isinstance(r, Exception)]
    failures = [r for r in results if isinstance(r, Exception)]
    assert len(successes) == 1
    assert len(failures) == 1
    assert isinstance(failures[0], StatePreconditionError)
    assert "already pending review" in failures[0].message


# ============== Assignment ==============

async def test_assign_then_unassign_round_trip(appeals, pending_appeal, moderator):
    assigned = await appeals.assign_appeal_to_moderator(pending_appeal.id, moderator.id)
    assert assigned.status == WireAppealStatus.UNDER_REVIEW
    assert assigned.reviewer_id == moderator.id

    released = await appeals.unassign_appeal(pending_appeal.id)

    assert released.status == WireAppealStatus.PENDING
    assert released.reviewer_id is None
    assert released.model_dump(exclude={"created_at"}) == pending_appeal.model_dump(exclude={"created_at"})


async def test_assign_requires_pending(appeals, pending_appeal, moderator, other_moderator):
    await appeals.assign_appeal_to_moderator(pending_appeal.id, moderator.id)

    with pytest.raises(StatePreconditionError, match="current status: UNDER_REVIEW"):
        await appeals.assign_appeal_to_moderator(pending_appeal.id, other_moderator.id)


async def test_assign_unknown_moderator(appeals, pending_appeal):
    missing = uuid.uuid4()

    with pytest.raises(NotFoundError, match=f"Moderator {missing}"):
        await appeals.assign_appeal_to_moderator(pending_appeal.id, missing)


async def test_assign_unknown_appeal(appeals, moderator):
    with pytest.raises(NotFoundError, match="Appeal"):
        await appeals.assign_appeal_to_moderator(uuid.uuid4(), moderator.id)


async def test_concurrent_assignment_has_one_winner(
    session_factory, publisher, config, pending_appeal, moderator, other_moderator
):
    from moderation_service.services import AppealService

    async def assign(moderator_id):
        async with session_factory() as session:
            return await AppealService(session, publisher, config).assign_appeal_to_moderator(
                pending_appeal.id, moderator_id
            )

    results = await asyncio.gather(
        assign(moderator.id), assign(other_moderator.id), return_exceptions=True
    )

    winners = [r for r in results if not isinstance(r, Exception)]
    losers = [r for r in results if isinstance(r, Exception)]
    assert len(winners) == 1
    assert len(losers) == 1
    assert isinstance(losers[0], StatePreconditionError)


async def test_unassign_requires_under_review(appeals, pending_appeal):
    with pytest.raises(StatePreconditionError, match="UNDER_REVIEW status to unassign"):
        await appeals.unassign_appeal(pending_appeal.id)


# ============== Review ==============

async def test_upheld_after_assignment_reverses_action(
    moderation, appeals, publisher, pending_appeal, active_action, appellant, moderator
):
    await appeals.assign_appeal_to_moderator(pending_appeal.id, moderator.id)

    resolved = await appeals.review_appeal(pending_appeal.id, moderator.id, upheld())

    assert resolved.status == WireAppealStatus.UPHELD
    assert resolved.reviewer_id == moderator.id
    assert resolved.decision_reasoning == DECISION_REASONING
    assert resolved.resolved_at is not None

    action = await moderation.get_action(active_action.id)
    assert action.status == WireModerationStatus.REVERSED
    assert action.reasoning.endswith(f"\n\n[APPEAL UPHELD: {DECISION_REASONING}]")

    [event] = publisher.of_type(EventType.USER_TRUST_UPDATED)
    payload = event.payload
    assert payload["userId"] == str(appellant.id)
    assert payload["reason"] == "appeal_upheld"
    assert payload["moderationActionId"] == str(active_action.id)
    assert payload["previousScores"] == {"ability": 0.5, "benevolence": 0.5, "integrity": 0.5}
    assert set(payload) >= {"newScores", "updatedAt"}


async def test_direct_review_from_pending(moderation, publisher, pending_appeal, active_action, moderator):
    resolved = await moderation.review_appeal(pending_appeal.id, moderator.id, upheld())

    assert resolved.status == WireAppealStatus.UPHELD
    action = await moderation.get_action(active_action.id)
    assert action.status == WireModerationStatus.REVERSED


async def test_denied_leaves_action_and_publishes_nothing(
    moderation, appeals, publisher, pending_appeal, active_action, moderator
):
    resolved = await appeals.review_appeal(pending_appeal.id, moderator.id, denied())

    assert resolved.status == WireAppealStatus.DENIED
    assert resolved.resolved_at is not None

    action = await moderation.get_action(active_action.id)
    assert action.status == WireModerationStatus.APPEALED
    assert "[APPEAL UPHELD" not in action.reasoning
    assert publisher.of_type(EventType.USER_TRUST_UPDATED) == []


async def test_upheld_survives_publish_failure(moderation, appeals, publisher, pending_appeal, active_action, moderator):
    publisher.fail = True
    attempts_before = publisher.attempts

    resolved = await appeals.review_appeal(pending_appeal.id, moderator.id, upheld())

    assert resolved.status == WireAppealStatus.UPHELD
    assert publisher.attempts == attempts_before + 1
    action = await moderation.get_action(active_action.id)
    assert action.status == WireModerationStatus.REVERSED


async def test_resolved_appeal_cannot_be_reviewed_again(appeals, pending_appeal, moderator):
    await appeals.review_appeal(pending_appeal.id, moderator.id, denied())

    with pytest.raises(StatePreconditionError, match="current status: DENIED"):
        await appeals.review_appeal(pending_appeal.id, moderator.id, upheld())


async def test_review_can_require_assignment(appeals, pending_appeal, moderator):
    with pytest.raises(StatePreconditionError, match="UNDER_REVIEW status to review"):
        await appeals.review_appeal(pending_appeal.id, moderator.id, denied(), require_assignment=True)

    await appeals.assign_appeal_to_moderator(pending_appeal.id, moderator.id)
    resolved = await appeals.review_appeal(
        pending_appeal.id, moderator.id, denied(), require_assignment=True
    )
    assert resolved.status == WireAppealStatus.DENIED


@pytest.mark.parametrize(
    "reasoning, message",
    [
        ("", "reasoning is required"),
        ("Too short", "at least 20 characters"),
        ("x" * 2001, "cannot exceed 2000 characters"),
    ],
)
async def test_review_reasoning_bounds(appeals, pending_appeal, moderator, reasoning, message):
    with pytest.raises(ValidationError, match=message):
        await appeals.review_appeal(pending_appeal.id, moderator.id, upheld(reasoning))

    appeal = await appeals.get_appeal_by_id(pending_appeal.id)
    assert appeal.status == WireAppealStatus.PENDING


async def test_review_unknown_appeal(appeals, moderator):
    with pytest.raises(NotFoundError):
        await appeals.review_appeal(uuid.uuid4(), moderator.id, upheld())


async def test_review_by_unknown_moderator_is_not_found(moderation, appeals, pending_appeal, active_action):
    missing = uuid.uuid4()

    with pytest.raises(NotFoundError, match=f"Moderator {missing}"):
        await appeals.review_appeal(pending_appeal.id, missing, upheld())

    appeal = await appeals.get_appeal_by_id(pending_appeal.id)
    assert appeal.status == WireAppealStatus.PENDING
    assert appeal.reviewer_id is None
    action = await moderation.get_action(active_action.id)
    assert action.status == WireModerationStatus.APPEALED


# ============== Queue, statistics and lookup ==============

async def _appeal_on_new_action(moderation, moderator, appellant):
    action = await moderation.create_action(
        action_request(WireActionType.HIDE, WireTargetType.RESPONSE), moderator.id
    )
    return await moderation.create_appeal(
        action.id, appellant.id, CreateAppealRequest(reason=APPEAL_REASON)
    )


async def test_pending_queue_is_oldest_first_and_complete(moderation, appeals, moderator, appellant):
    created = [await _appeal_on_new_action(moderation, moderator, appellant) for _ in range(5)]
    await appeals.assign_appeal_to_moderator(created[2].id, moderator.id)

    seen = []
    cursor = None
    while True:
        page = await appeals.get_pending_appeals(limit=2, cursor=cursor)
        assert page.total_count == 4
        seen.extend(page.appeals)
        cursor = page.next_cursor
        if cursor is None:
            break

    assert [a.id for a in seen] == [a.id for a in created if a.id != created[2].id]
    assert all(a.moderation_action is not None for a in seen)
    assert seen[0].moderation_action.approved_by.id == moderator.id


async def test_pending_queue_for_one_moderator(moderation, appeals, moderator, other_moderator, appellant):
    first = await _appeal_on_new_action(moderation, moderator, appellant)
    second = await _appeal_on_new_action(moderation, moderator, appellant)
    await _appeal_on_new_action(moderation, moderator, appellant)
    await appeals.assign_appeal_to_moderator(first.id, moderator.id)
    await appeals.assign_appeal_to_moderator(second.id, other_moderator.id)

    mine = await appeals.get_pending_appeals(moderator_id=moderator.id)

    assert [a.id for a in mine.appeals] == [first.id]
    assert mine.total_count == 1
    assert mine.appeals[0].status == WireAppealStatus.UNDER_REVIEW


async def test_statistics_are_zero_filled(appeals):
    stats = await appeals.get_appeal_statistics()

    assert stats.total == stats.pending == stats.under_review == stats.upheld == stats.denied == 0
    assert [(s.status, s.count) for s in stats.by_status] == [
        (WireAppealStatus.PENDING, 0),
        (WireAppealStatus.UNDER_REVIEW, 0),
        (WireAppealStatus.UPHELD, 0),
        (WireAppealStatus.DENIED, 0),
    ]


async def test_statistics_count_each_status(moderation, appeals, moderator, appellant):
    a = await _appeal_on_new_action(moderation, moderator, appellant)
    b = await _appeal_on_new_action(moderation, moderator, appellant)
    c = await _appeal_on_new_action(moderation, moderator, appellant)
    await _appeal_on_new_action(moderation, moderator, appellant)
    await appeals.assign_appeal_to_moderator(a.id, moderator.id)
    await appeals.review_appeal(b.id, moderator.id, upheld())
    await appeals.review_appeal(c.id, moderator.id, denied())

    stats = await appeals.get_appeal_statistics()

    assert (stats.total, stats.pending, stats.under_review, stats.upheld, stats.denied) == (4, 1, 1, 1, 1)


async def test_statistics_window(moderation, appeals, moderator, appellant):
    await _appeal_on_new_action(moderation, moderator, appellant)
    now = datetime.now(timezone.utc)

    in_window = await appeals.get_appeal_statistics(now - timedelta(hours=1), now + timedelta(hours=1))
    future = await appeals.get_appeal_statistics(now + timedelta(days=1), now + timedelta(days=2))

    assert in_window.total == 1
    assert future.total == 0
    assert future.pending == 0


async def test_statistics_window_with_offset_bounds(moderation, appeals, moderator, appellant):
    await _appeal_on_new_action(moderation, moderator, appellant)
    now = datetime.now(timezone(timedelta(hours=5)))

    stats = await appeals.get_appeal_statistics(now - timedelta(minutes=1), now + timedelta(minutes=1))

    assert stats.total == 1
    assert stats.pending == 1


async def test_get_appeal_by_id(appeals, pending_appeal, active_action, moderator):
    found = await appeals.get_appeal_by_id(pending_appeal.id)

    assert found.id == pending_appeal.id
    assert found.moderation_action.id == active_action.id
    assert found.moderation_action.approved_by.display_name == moderator.display_name


async def test_get_appeal_by_id_absent_is_none(appeals):
    assert await appeals.get_appeal_by_id(uuid.uuid4()) is None
