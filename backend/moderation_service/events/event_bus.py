"""
Event bus implementation for publish-subscribe pattern with async support.
"""
import asyncio
import inspect
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Set

from ..core.exceptions import EventPublishError
from ..core.logging_config import logger
from .event_handlers import EventHandlerRegistry
from .event_types import EventEnvelope, EventType


class EventBus:
    """
    In-process event bus. Envelopes are queued on publish and dispatched to
    subscribed handlers by a pool of worker tasks. Handlers that keep failing
    land in a dead-letter queue.
    """

    def __init__(self, queue_size: int = 10_000, dead_letter_queue_size: int = 1_000) -> None:
        self.registry = EventHandlerRegistry()
        self._event_queue: asyncio.Queue[EventEnvelope] = asyncio.Queue(maxsize=queue_size)
        self._dead_letter_queue: asyncio.Queue[Dict[str, Any]] = asyncio.Queue(
            maxsize=dead_letter_queue_size
        )

        self._is_running = False
        self._worker_tasks: List[asyncio.Task] = []
        self._dead_letter_worker: Optional[asyncio.Task] = None
        self._pending_tasks: Set[asyncio.Task] = set()

        self._executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix="event_bus")

        self._metrics = {
            "events_published": 0,
            "events_processed": 0,
            "events_failed": 0,
            "dead_letter_events": 0,
        }

    @property
    def is_running(self) -> bool:
        return self._is_running

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def initialize(self, num_workers: int = 3) -> None:
        if self._is_running:
            return

        self._is_running = True

        for i in range(num_workers):
            task = asyncio.create_task(self._process_events(), name=f"event_worker_{i}")
            self._worker_tasks.append(task)

        self._dead_letter_worker = asyncio.create_task(
            self._process_dead_letter_queue(),
            name="dead_letter_worker",
        )

        logger.info(f"EventBus initialized with {num_workers} workers")

    async def shutdown(self, timeout: float = 30) -> None:
        if not self._is_running:
            return

        self._is_running = False
        logger.info("Shutting down EventBus")

        tasks = list(self._worker_tasks)
        if self._dead_letter_worker:
            tasks.append(self._dead_letter_worker)
        for task in tasks:
            task.cancel()

        try:
            await asyncio.wait_for(asyncio.gather(*tasks, return_exceptions=True), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning("EventBus shutdown timed out")

        for task in list(self._pending_tasks):
            task.cancel()

        self._worker_tasks.clear()
        self._dead_letter_worker = None
        self._executor.shutdown(wait=True)

        logger.info(f"EventBus shutdown complete: {self._metrics}")

    # ------------------------------------------------------------------
    # Subscription
    # ------------------------------------------------------------------

    def subscribe(self, event_type: EventType, handler: Callable) -> str:
        handler_id = self.registry.register(event_type, handler)
        logger.debug(f"Subscribed handler {handler_id} to {event_type.value}")
        return handler_id

    def unsubscribe(self, event_type: EventType, handler_id: str) -> bool:
        return self.registry.unregister(event_type, handler_id)

    # ------------------------------------------------------------------
    # Publishing
    # ------------------------------------------------------------------

    async def publish(self, envelope: EventEnvelope) -> str:
        """
        Queue an envelope for dispatch.

        Returns:
            The envelope id

        Raises:
            EventPublishError: If the queue is full
        """
        try:
            self._event_queue.put_nowait(envelope)
        except asyncio.QueueFull as exc:
            raise EventPublishError("Event queue is full", event_type=envelope.type.value) from exc

        self._metrics["events_published"] += 1
        logger.debug(f"Published {envelope.type.value} ({envelope.id})")
        return envelope.id

    # ------------------------------------------------------------------
    # Workers
    # ------------------------------------------------------------------

    async def _process_events(self) -> None:
        worker_name = asyncio.current_task().get_name()
        logger.info(f"{worker_name} started")

        while self._is_running:
            try:
                envelope = await asyncio.wait_for(self._event_queue.get(), timeout=1.0)
            except asyncio.TimeoutError:
                continue
            except asyncio.CancelledError:
                break

            try:
                await self._process_event(envelope)
                self._metrics["events_processed"] += 1
            except Exception as exc:
                self._metrics["events_failed"] += 1
                await self._add_to_dead_letter(envelope, str(exc))
            finally:
                self._event_queue.task_done()

        logger.info(f"{worker_name} stopped")

    async def _process_event(self, envelope: EventEnvelope) -> None:
        handlers = self.registry.get_handlers(envelope.type)
        if not handlers:
            return

        tasks: List[asyncio.Task] = []
        for handler_id, handler in handlers:
            task = asyncio.create_task(
                self._execute_handler(handler_id, handler, envelope),
                name=f"handler_{handler_id[:8]}_{envelope.id[:8]}",
            )
            self._pending_tasks.add(task)
            tasks.append(task)

        results = await asyncio.gather(*tasks, return_exceptions=True)
        errors = [r for r in results if isinstance(r, Exception)]
        if errors:
            raise errors[0]

    async def _execute_handler(
        self,
        handler_id: str,
        handler: Callable,
        envelope: EventEnvelope,
    ) -> None:
        try:
            if inspect.iscoroutinefunction(handler):
                await handler(envelope.payload, envelope)
            else:
                loop = asyncio.get_running_loop()
                await loop.run_in_executor(self._executor, handler, envelope.payload, envelope)
        except Exception as exc:
            logger.error(f"Handler {handler_id} failed for {envelope.type.value}: {exc}")
            await self.registry.record_handler_call(envelope.type, handler_id, False, exc)
            raise
        else:
            await self.registry.record_handler_call(envelope.type, handler_id)
        finally:
            self._pending_tasks.discard(asyncio.current_task())

    # ------------------------------------------------------------------
    # Dead Letter Queue
    # ------------------------------------------------------------------

    async def _add_to_dead_letter(self, envelope: EventEnvelope, error: str) -> None:
        dead_event = {
            "event": envelope.to_wire(),
            "error": error,
            "failed_at": datetime.now(timezone.utc).isoformat(),
        }

        try:
            self._dead_letter_queue.put_nowait(dead_event)
            self._metrics["dead_letter_events"] += 1
            logger.error(f"Event {envelope.id} sent to DLQ: {error}")
        except asyncio.QueueFull:
            logger.critical(f"Dead-letter queue full, dropping event {envelope.id}")

    async def _process_dead_letter_queue(self) -> None:
        logger.info("Dead-letter worker started")

        while self._is_running:
            try:
                dead_event = await asyncio.wait_for(self._dead_letter_queue.get(), timeout=5.0)
            except asyncio.TimeoutError:
                continue
            except asyncio.CancelledError:
                break

            logger.error(
                f"Dead-letter event | id={dead_event['event']['id']} "
                f"type={dead_event['event']['type']} "
                f"error={dead_event['error']}"
            )
            self._dead_letter_queue.task_done()

        logger.info("Dead-letter worker stopped")

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    async def drain(self) -> None:
        """Wait until every queued envelope has been dispatched."""
        await self._event_queue.join()

    def get_metrics(self) -> Dict[str, Any]:
        return {
            **self._metrics,
            "queue_size": self._event_queue.qsize(),
            "dead_letter_queue_size": self._dead_letter_queue.qsize(),
            "handlers": self.registry.get_handler_metrics(),
        }


# ----------------------------------------------------------------------
# Process-wide access
# ----------------------------------------------------------------------

_event_bus: Optional[EventBus] = None


def get_event_bus() -> EventBus:
    global _event_bus
    if _event_bus is None:
        from ..core.config import get_config

        bus_config = get_config().event_bus
        _event_bus = EventBus(
            queue_size=bus_config.queue_size,
            dead_letter_queue_size=bus_config.dead_letter_queue_size,
        )
    return _event_bus


def reset_event_bus() -> None:
    global _event_bus
    _event_bus = None
