"""
Tests for AI recommendation intake, the review queue and recommendation stats.
"""

import pytest

from moderation_service.core.exceptions import ValidationError
from moderation_service.events import EventType
from moderation_service.schemas import (
    RejectActionRequest,
    WireActionType,
    WireModerationStatus,
    WireSeverity,
)

from .factories import recommendation_request


async def test_consequential_recommendation_waits_for_approval(ai_review, publisher):
    action = await ai_review.submit_ai_recommendation(recommendation_request(WireActionType.SUSPEND, 0.87))

    assert action.ai_recommended is True
    assert action.ai_confidence == pytest.approx(0.87)
    assert action.severity == WireSeverity.CONSEQUENTIAL
    assert action.status == WireModerationStatus.PENDING
    assert action.approved_by is None
    assert action.executed_at is None

    [envelope] = publisher.of_type(EventType.MODERATION_ACTION_REQUESTED)
    assert envelope.metadata.user_id == "system"
    assert envelope.payload["aiConfidence"] == pytest.approx(0.87)


async def test_educational_recommendation_takes_effect(ai_review):
    action = await ai_review.submit_ai_recommendation(recommendation_request(WireActionType.EDUCATE, 0.6))

    assert action.severity == WireSeverity.NON_PUNITIVE
    assert action.status == WireModerationStatus.ACTIVE
    assert action.executed_at is not None


async def test_analysis_details_become_violation_context(ai_review, publisher):
    request = recommendation_request()
    request.analysis_details = {"toxicity": 0.93, "category": "harassment"}

    await ai_review.submit_ai_recommendation(request)

    [envelope] = publisher.envelopes
    assert envelope.payload["violationContext"] == {"toxicity": 0.93, "category": "harassment"}


@pytest.mark.parametrize("confidence", [-0.01, 1.01])
async def test_confidence_must_be_a_probability(ai_review, publisher, confidence):
    with pytest.raises(ValidationError, match="Confidence must be between 0 and 1"):
        await ai_review.submit_ai_recommendation(recommendation_request(confidence=confidence))

    assert publisher.attempts == 0
    assert await ai_review.get_pending_recommendations() == []


async def test_recommendation_needs_reasoning(ai_review):
    with pytest.raises(ValidationError, match="at least 20 characters"):
        await ai_review.submit_ai_recommendation(recommendation_request(reasoning="spam"))


async def test_queue_is_most_confident_first(ai_review):
    low = await ai_review.submit_ai_recommendation(recommendation_request(confidence=0.7))
    first_high = await ai_review.submit_ai_recommendation(recommendation_request(confidence=0.95))
    second_high = await ai_review.submit_ai_recommendation(recommendation_request(confidence=0.95))
    middle = await ai_review.submit_ai_recommendation(recommendation_request(confidence=0.8))
    await ai_review.submit_ai_recommendation(recommendation_request(WireActionType.WARN, 0.99))

    queue = await ai_review.get_pending_recommendations()

    assert [a.id for a in queue] == [first_high.id, second_high.id, middle.id, low.id]


async def test_queue_respects_limit(ai_review):
    for confidence in (0.5, 0.6, 0.7):
        await ai_review.submit_ai_recommendation(recommendation_request(confidence=confidence))

    queue = await ai_review.get_pending_recommendations(limit=2)

    assert [a.ai_confidence for a in queue] == pytest.approx([0.7, 0.6])


async def test_queue_drops_decided_recommendations(moderation, ai_review, moderator):
    approved = await ai_review.submit_ai_recommendation(recommendation_request())
    waiting = await ai_review.submit_ai_recommendation(recommendation_request(confidence=0.5))
    await moderation.approve_action(approved.id, moderator.id)

    queue = await ai_review.get_pending_recommendations()

    assert [a.id for a in queue] == [waiting.id]


async def test_stats_when_nothing_submitted(ai_review):
    stats = await ai_review.get_recommendation_stats()

    assert stats.total_pending == 0
    assert stats.by_action_type == {}
    assert stats.avg_confidence == 0.0
    assert stats.approval_rate == 0.0


async def test_stats_summarise_pending_and_decided(moderation, ai_review):
    await ai_review.submit_ai_recommendation(recommendation_request(WireActionType.BAN, 0.9))
    await ai_review.submit_ai_recommendation(recommendation_request(WireActionType.SUSPEND, 0.7))
    await ai_review.submit_ai_recommendation(recommendation_request(WireActionType.WARN, 0.6))
    rejected = await ai_review.submit_ai_recommendation(recommendation_request(WireActionType.BAN, 0.8))
    await moderation.reject_action(rejected.id, RejectActionRequest(reason="Sarcasm, not abuse"))

    stats = await ai_review.get_recommendation_stats()

    assert stats.total_pending == 2
    assert stats.by_action_type == {WireActionType.BAN: 1, WireActionType.SUSPEND: 1}
    assert stats.avg_confidence == pytest.approx(0.8)
    assert stats.approval_rate == pytest.approx(0.5)

    wire = stats.model_dump(mode="json", by_alias=True)
    assert wire["byActionType"] == {"ban": 1, "suspend": 1}
    assert set(wire) == {"totalPending", "byActionType", "avgConfidence", "approvalRate"}
