"""
Event publishing seam used by the services.

Services publish after their transaction has committed. Publishing is best
effort: a failure is logged and never undoes or fails the committed change.
"""
from typing import Optional, Protocol, runtime_checkable

from ..core.logging_config import logger
from .event_schemas import build_envelope
from .event_types import EventEnvelope, EventModel, EventType


@runtime_checkable
class EventPublisher(Protocol):
    """Anything that accepts an envelope and returns its id."""

    async def publish(self, envelope: EventEnvelope) -> str:
        ...


async def publish_safely(
    publisher: Optional[EventPublisher],
    event_type: EventType,
    payload: EventModel,
    source: str,
    user_id: Optional[str] = None,
) -> Optional[str]:
    """
    Build and publish an event, swallowing failures.

    Returns:
        The envelope id, or None when nothing was published
    """
    if publisher is None:
        return None

    try:
        envelope = build_envelope(event_type, payload, source=source, user_id=user_id)
        return await publisher.publish(envelope)
    except Exception as exc:
        logger.error(
            f"Failed to publish {event_type.value}: {exc}",
            exc_info=True,
        )
        return None
