"""
Event type definitions and the event envelope shared with other services.

Every event travels in the same envelope:
``{id, type, timestamp, version, payload, metadata: {source, userId}}``.
"""
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class EventType(str, Enum):
    """
    Event types published by the moderation service.

    Naming Convention:
    - Use lowercase with dots as separators
    - Format: <domain>.<entity>.<action>
    """

    # ============== Moderation Events ==============
    MODERATION_ACTION_REQUESTED = "moderation.action.requested"

    # ============== User Events ==============
    USER_TRUST_UPDATED = "user.trust.updated"


class EventModel(BaseModel):
    """Base for event models: camelCase keys on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class EventMetadata(EventModel):
    source: str
    user_id: Optional[str] = None


class EventEnvelope(EventModel):
    """
    Envelope for a single domain event.
    """
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    type: EventType
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    version: int = 1
    payload: Dict[str, Any]
    metadata: EventMetadata
