"""
Audit subscriber: writes every moderation event to the audit log channel.
"""

from typing import Any, Dict, List, Tuple

from ...core.logging_config import get_logger
from ..event_bus import EventBus
from ..event_types import EventEnvelope, EventType

audit_logger = get_logger("moderation_service.audit")


class AuditSubscriber:
    """
    Subscriber that records published events as structured audit log lines.
    """

    def __init__(self, event_bus: EventBus):
        self.event_bus = event_bus
        self._subscriptions: List[Tuple[EventType, str]] = []

    def initialize(self) -> None:
        """Subscribe to every event type the service publishes."""
        for event_type in EventType:
            handler_id = self.event_bus.subscribe(event_type, self.handle_event)
            self._subscriptions.append((event_type, handler_id))
        audit_logger.info("AuditSubscriber initialized and subscribed to events")

    def cleanup(self) -> None:
        for event_type, handler_id in self._subscriptions:
            self.event_bus.unsubscribe(event_type, handler_id)
        self._subscriptions.clear()
        audit_logger.info("AuditSubscriber cleaned up")

    async def handle_event(self, payload: Dict[str, Any], envelope: EventEnvelope) -> None:
        audit_logger.info(
            f"AUDIT {envelope.type.value} id={envelope.id} "
            f"source={envelope.metadata.source} user={envelope.metadata.user_id}",
            extra={
                "context": {
                    "event_id": envelope.id,
                    "event_type": envelope.type.value,
                    "user_id": envelope.metadata.user_id,
                    "payload": payload,
                }
            },
        )


def register_audit_subscriber(event_bus: EventBus) -> AuditSubscriber:
    subscriber = AuditSubscriber(event_bus)
    subscriber.initialize()
    return subscriber
