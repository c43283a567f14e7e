"""
Event system for the moderation service.

Services publish domain events after their transaction commits. Events are
wrapped in a shared envelope and dispatched by the in-process ``EventBus``.
"""

from .event_bus import EventBus, get_event_bus, reset_event_bus
from .event_schemas import (
    ModerationActionRequestedPayload,
    TrustScores,
    UserTrustUpdatedPayload,
    build_envelope,
)
from .event_types import EventEnvelope, EventMetadata, EventType
from .publisher import EventPublisher, publish_safely

__all__ = [
    "EventBus",
    "get_event_bus",
    "reset_event_bus",
    "EventEnvelope",
    "EventMetadata",
    "EventType",
    "ModerationActionRequestedPayload",
    "TrustScores",
    "UserTrustUpdatedPayload",
    "build_envelope",
    "EventPublisher",
    "publish_safely",
]
