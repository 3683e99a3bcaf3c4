"""Post-commit event bus for quote transitions.

Quote operations hand a SystemEvent to `emit` once their write is committed.
`emit` only enqueues: it never waits on a subscriber and never raises, so a
failed notification cannot fail or roll back the request that caused it.
One worker delivers events in emit order; each subscriber call is bounded by
a timeout and its failures are logged, not propagated.

Usage:
    from scrapquote.notifications.events import emit, subscribe

    subscribe(on_accepted, event_types=[EventType.QUOTE_ACCEPTED])
    await emit(SystemEvent(event_type=EventType.QUOTE_ACCEPTED, quote_id=quote.id))
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable, Coroutine
from typing import Any

from scrapquote.config import NotificationSettings, settings
from scrapquote.schemas.events import EventType, SystemEvent

logger = logging.getLogger(__name__)

EventHandler = Callable[[SystemEvent], Coroutine[Any, Any, None]]


def _name(handler: EventHandler) -> str:
    return getattr(handler, "__qualname__", None) or repr(handler)


class EventBus:
    """Bounded queue plus a single delivery worker."""

    def __init__(self, config: NotificationSettings | None = None) -> None:
        config = config or settings.notifications
        self._max_pending = config.event_queue_size
        self._handler_timeout = config.event_handler_timeout
        self._drain_timeout = config.event_drain_timeout

        # None key holds subscribers for every event type
        self._subscribers: dict[EventType | None, list[EventHandler]] = {}
        self._queue: asyncio.Queue[SystemEvent] | None = None
        self._worker: asyncio.Task[None] | None = None
        self.dropped = 0

    @property
    def running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    @property
    def pending(self) -> int:
        return self._queue.qsize() if self._queue is not None else 0

    # ── Subscriptions ────────────────────────────────────────────────

    def subscribe(self, handler: EventHandler, event_types: list[EventType] | None = None) -> None:
        """Register `handler` for `event_types`, or for every event when None.

        Registering the same handler for the same type twice is a no-op, so a
        restarted lifespan does not send duplicate emails.
        """
        keys: list[EventType | None] = list(event_types) if event_types is not None else [None]
        for key in keys:
            handlers = self._subscribers.setdefault(key, [])
            if handler not in handlers:
                handlers.append(handler)
        logger.info(
            "Subscribed %s to %s",
            _name(handler),
            "all events" if event_types is None else [t.value for t in event_types],
        )

    def unsubscribe(self, handler: EventHandler) -> None:
        for handlers in self._subscribers.values():
            if handler in handlers:
                handlers.remove(handler)

    def handlers_for(self, event_type: EventType) -> list[EventHandler]:
        return [*self._subscribers.get(None, []), *self._subscribers.get(event_type, [])]

    # ── Publishing ───────────────────────────────────────────────────

    async def emit(self, event: SystemEvent) -> None:
        """Enqueue `event` without waiting. Dropped if the bus is stopped or full."""
        if self._queue is None or not self.running:
            logger.warning("Event bus not running, dropping %s (quote=%s)", event.event_type.value, event.quote_id)
            self.dropped += 1
            return
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            self.dropped += 1
            logger.error(
                "Event queue full (%d pending), dropping %s (quote=%s)",
                self._max_pending,
                event.event_type.value,
                event.quote_id,
            )
            return
        logger.debug("Event queued: %s (quote=%s)", event.event_type.value, event.quote_id)

    async def dispatch(self, event: SystemEvent) -> None:
        """Deliver one event to every matching subscriber concurrently."""
        handlers = self.handlers_for(event.event_type)
        if handlers:
            await asyncio.gather(*(self._deliver(handler, event) for handler in handlers))

    async def _deliver(self, handler: EventHandler, event: SystemEvent) -> None:
        try:
            await asyncio.wait_for(handler(event), timeout=self._handler_timeout)
        except TimeoutError:
            logger.error(
                "Subscriber %s timed out after %.1fs on %s (quote=%s)",
                _name(handler),
                self._handler_timeout,
                event.event_type.value,
                event.quote_id,
            )
        except Exception:
            logger.exception(
                "Subscriber %s failed on %s (quote=%s)", _name(handler), event.event_type.value, event.quote_id
            )

    async def _run(self, queue: asyncio.Queue[SystemEvent]) -> None:
        while True:
            event = await queue.get()
            try:
                await self.dispatch(event)
            finally:
                queue.task_done()

    # ── Lifecycle ────────────────────────────────────────────────────

    async def start(self) -> None:
        if self.running:
            return
        self._queue = asyncio.Queue(maxsize=self._max_pending)
        self._worker = asyncio.create_task(self._run(self._queue), name="event-bus-worker")
        logger.info(
            "Event bus started (%d subscriptions, queue size %d)",
            sum(len(h) for h in self._subscribers.values()),
            self._max_pending,
        )

    async def stop(self) -> None:
        """Deliver what is pending, waiting at most the drain timeout, then stop."""
        queue, worker = self._queue, self._worker
        self._queue = None
        if queue is not None and worker is not None and not worker.done():
            try:
                await asyncio.wait_for(queue.join(), timeout=self._drain_timeout)
            except TimeoutError:
                logger.warning(
                    "Event bus drain timed out after %.1fs, abandoning %d pending events",
                    self._drain_timeout,
                    queue.qsize(),
                )
        if worker is not None and not worker.done():
            worker.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await worker
        self._worker = None
        logger.info("Event bus stopped (%d events dropped)", self.dropped)


# Module-level singleton and the function-style API the rest of the app imports
event_bus = EventBus()

subscribe = event_bus.subscribe
unsubscribe = event_bus.unsubscribe
emit = event_bus.emit
dispatch = event_bus.dispatch
start_event_system = event_bus.start
stop_event_system = event_bus.stop
