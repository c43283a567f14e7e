"""
Test doubles and request builders shared by the test modules.
"""

import uuid
from typing import List, Optional

from moderation_service.core.exceptions import EventPublishError
from moderation_service.events import EventEnvelope, EventType
from moderation_service.schemas import (
    AiRecommendationRequest,
    CreateActionRequest,
    WireActionType,
    WireTargetType,
)

ACTION_REASONING = "Repeated personal attacks against other participants"
APPEAL_REASON = "I was quoting the other user, not attacking."
DECISION_REASONING = "Context shows the remark was a quotation, not an attack."


class RecordingPublisher:
    """Event publisher double that keeps every envelope it is given."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.attempts = 0
        self.envelopes: List[EventEnvelope] = []

    async def publish(self, envelope: EventEnvelope) -> str:
        self.attempts += 1
        if self.fail:
            raise EventPublishError("Event bus unavailable", event_type=envelope.type.value)
        self.envelopes.append(envelope)
        return envelope.id

    def of_type(self, event_type: EventType) -> List[EventEnvelope]:
        return [e for e in self.envelopes if e.type == event_type]


def action_request(
    action_type: WireActionType = WireActionType.HIDE,
    target_type: WireTargetType = WireTargetType.RESPONSE,
    target_id: Optional[uuid.UUID] = None,
    reasoning: str = ACTION_REASONING,
) -> CreateActionRequest:
    return CreateActionRequest(
        target_type=target_type,
        target_id=target_id or uuid.uuid4(),
        action_type=action_type,
        reasoning=reasoning,
    )


def recommendation_request(
    action_type: WireActionType = WireActionType.BAN,
    confidence: float = 0.9,
    reasoning: str = ACTION_REASONING,
) -> AiRecommendationRequest:
    return AiRecommendationRequest(
        target_type=WireTargetType.USER,
        target_id=uuid.uuid4(),
        action_type=action_type,
        reasoning=reasoning,
        confidence=confidence,
    )
