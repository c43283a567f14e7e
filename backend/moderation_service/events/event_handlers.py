"""
Event handler registry for managing event subscriptions and handlers.
"""
import asyncio
import inspect
import uuid
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Set, Tuple

from ..core.logging_config import logger
from .event_types import EventType


@dataclass
class HandlerInfo:
    """Information about an event handler."""
    id: str
    function: Callable
    name: str
    module: str
    is_async: bool
    registered_at: datetime
    call_count: int = 0
    error_count: int = 0
    last_called_at: Optional[datetime] = None
    last_error_at: Optional[datetime] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


class EventHandlerRegistry:
    """
    Registry for managing event handlers and their subscriptions.

    This class maintains a mapping between event types and their handlers,
    providing methods to register, unregister, and retrieve handlers.
    """

    def __init__(self):
        self._handlers: Dict[EventType, Dict[str, HandlerInfo]] = defaultdict(dict)
        self._handler_to_events: Dict[str, Set[EventType]] = defaultdict(set)
        self._lock: Optional[asyncio.Lock] = None

    def _get_async_lock(self) -> asyncio.Lock:
        if self._lock is None:
            self._lock = asyncio.Lock()
        return self._lock

    def register(self, event_type: EventType, handler: Callable, **metadata) -> str:
        """
        Register a handler for an event type.

        Args:
            event_type: Event type to register handler for
            handler: Callable (async or sync) taking ``(payload, envelope)``
            **metadata: Additional metadata to attach to the handler

        Returns:
            Handler ID for future reference

        Raises:
            ValueError: If handler is not callable
        """
        if not callable(handler):
            raise ValueError(f"Handler must be callable, got {type(handler)}")

        handler_id = str(uuid.uuid4())
        handler_info = HandlerInfo(
            id=handler_id,
            function=handler,
            name=getattr(handler, "__name__", type(handler).__name__),
            module=getattr(handler, "__module__", ""),
            is_async=inspect.iscoroutinefunction(handler),
            registered_at=datetime.now(timezone.utc),
            metadata=metadata,
        )

        self._handlers[event_type][handler_id] = handler_info
        self._handler_to_events[handler_id].add(event_type)

        logger.debug(
            f"Registered handler {handler_info.name} (ID: {handler_id}) "
            f"for event type {event_type.value}"
        )
        return handler_id

    def unregister(self, event_type: EventType, handler_id: str) -> bool:
        """
        Unregister a handler from an event type.

        Returns:
            True if handler was unregistered, False if not found
        """
        if event_type not in self._handlers or handler_id not in self._handlers[event_type]:
            return False

        del self._handlers[event_type][handler_id]
        if not self._handlers[event_type]:
            del self._handlers[event_type]

        if handler_id in self._handler_to_events:
            self._handler_to_events[handler_id].discard(event_type)
            if not self._handler_to_events[handler_id]:
                del self._handler_to_events[handler_id]

        logger.debug(f"Unregistered handler {handler_id} from event type {event_type.value}")
        return True

    def get_handlers(self, event_type: EventType) -> List[Tuple[str, Callable]]:
        """
        Get all handlers for an event type as ``(handler_id, function)`` tuples.
        """
        handlers = self._handlers.get(event_type, {})
        return [(handler_id, info.function) for handler_id, info in handlers.items()]

    def get_handler_info(self, event_type: EventType, handler_id: str) -> Optional[HandlerInfo]:
        return self._handlers.get(event_type, {}).get(handler_id)

    def count_handlers(self, event_type: Optional[EventType] = None) -> int:
        if event_type is None:
            return len(self._handler_to_events)
        return len(self._handlers.get(event_type, {}))

    async def record_handler_call(
        self,
        event_type: EventType,
        handler_id: str,
        success: bool = True,
        error: Optional[BaseException] = None,
    ) -> None:
        """
        Record a handler call for metrics and monitoring.
        """
        async with self._get_async_lock():
            handler_info = self.get_handler_info(event_type, handler_id)
            if not handler_info:
                logger.warning(f"Cannot record call for unknown handler {handler_id}")
                return

            now = datetime.now(timezone.utc)
            handler_info.call_count += 1
            handler_info.last_called_at = now

            if not success:
                handler_info.error_count += 1
                handler_info.last_error_at = now
                if error:
                    handler_info.metadata["last_error"] = str(error)
                    handler_info.metadata["last_error_type"] = type(error).__name__

    def get_handler_metrics(self) -> Dict[str, Any]:
        """Aggregate call and error counts per event type."""
        by_event_type: Dict[str, Dict[str, int]] = {}
        total_calls = 0
        total_errors = 0

        for event_type, handlers in self._handlers.items():
            calls = sum(h.call_count for h in handlers.values())
            errors = sum(h.error_count for h in handlers.values())
            by_event_type[event_type.value] = {
                "handler_count": len(handlers),
                "total_calls": calls,
                "total_errors": errors,
            }
            total_calls += calls
            total_errors += errors

        return {
            "total_handlers": self.count_handlers(),
            "total_calls": total_calls,
            "total_errors": total_errors,
            "error_rate": total_errors / total_calls if total_calls else 0.0,
            "by_event_type": by_event_type,
        }
