"""
Pydantic schemas for event payloads.

These schemas define the structure of the payloads published by the
moderation service. Payloads are validated before they are wrapped in an
``EventEnvelope``.
"""
from datetime import datetime
from typing import Any, Dict, Literal, Optional

from pydantic import Field

from ..schemas.enums import WireActionType, WireSeverity, WireTargetType
from .event_types import EventEnvelope, EventMetadata, EventModel, EventType


# ============== Moderation Events ==============

class ModerationActionRequestedPayload(EventModel):
    """Published when a moderation action is created."""
    action_id: str
    target_type: WireTargetType
    target_id: str
    action_type: WireActionType
    severity: WireSeverity
    reasoning: str
    ai_confidence: Optional[float] = Field(default=None, ge=0, le=1)
    violation_context: Optional[Dict[str, Any]] = None
    requested_at: datetime


# ============== User Events ==============

class TrustScores(EventModel):
    ability: float = Field(ge=0, le=1)
    benevolence: float = Field(ge=0, le=1)
    integrity: float = Field(ge=0, le=1)


class UserTrustUpdatedPayload(EventModel):
    """Published when a moderation outcome should be reflected in a user's trust."""
    user_id: str
    previous_scores: TrustScores
    new_scores: TrustScores
    reason: Literal["appeal_upheld"]
    moderation_action_id: str
    updated_at: datetime


EVENT_PAYLOADS = {
    EventType.MODERATION_ACTION_REQUESTED: ModerationActionRequestedPayload,
    EventType.USER_TRUST_UPDATED: UserTrustUpdatedPayload,
}


def build_envelope(
    event_type: EventType,
    payload: EventModel,
    source: str,
    user_id: Optional[str] = None,
) -> EventEnvelope:
    """
    Wrap a validated payload in an envelope.

    Raises:
        TypeError: If the payload model does not match the event type
    """
    expected = EVENT_PAYLOADS[event_type]
    if not isinstance(payload, expected):
        raise TypeError(f"{event_type.value} expects {expected.__name__}, got {type(payload).__name__}")

    return EventEnvelope(
        type=event_type,
        payload=payload.to_wire(),
        metadata=EventMetadata(source=source, user_id=user_id),
    )
