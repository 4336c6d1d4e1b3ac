"""Event channel: typed subscriptions, batching and coalescing."""

import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager

from src.events.types import EditEvent, EditEventType

logger = logging.getLogger(__name__)

EventHandler = Callable[[EditEvent], None]


class EventChannel:
    """Delivers edit events to subscribers.

    While a batch is open, events are queued instead of delivered. When the
    outermost batch closes, coalescable events collapse to the latest one per
    key and the queue is flushed in order. If the batch body raises, the queue
    is dropped.
    """

    def __init__(self) -> None:
        """Initialize the channel."""
        self._handlers: dict[EditEventType | None, list[EventHandler]] = {}
        self._queue: list[EditEvent] = []
        self._batch_depth = 0

    def subscribe(self, event_type: EditEventType | None, handler: EventHandler) -> Callable[[], None]:
        """Register a handler for one event type, or all events when None.

        Returns a callable that removes the subscription.
        """
        self._handlers.setdefault(event_type, []).append(handler)

        def _unsubscribe() -> None:
            handlers = self._handlers.get(event_type, [])
            if handler in handlers:
                handlers.remove(handler)

        return _unsubscribe

    @property
    def is_batching(self) -> bool:
        return self._batch_depth > 0

    def emit(self, event: EditEvent) -> None:
        if self._batch_depth > 0:
            self._queue.append(event)
            return
        self._deliver(event)

    @contextmanager
    def batch(self) -> Iterator[None]:
        mark = len(self._queue)
        self._batch_depth += 1
        try:
            yield
        except BaseException:
            # Only this batch's events are dropped; an enclosing batch keeps its own
            self._batch_depth -= 1
            del self._queue[mark:]
            raise
        self._batch_depth -= 1
        if self._batch_depth == 0:
            self.flush()

    def flush(self) -> None:
        queued, self._queue = self._queue, []
        for event in coalesce(queued):
            self._deliver(event)

    def _deliver(self, event: EditEvent) -> None:
        handlers = [*self._handlers.get(event.event_type, []), *self._handlers.get(None, [])]
        for handler in handlers:
            try:
                handler(event)
            except Exception:
                logger.exception("[events] Handler failed for %s", event.event_type)


def coalesce(events: list[EditEvent]) -> list[EditEvent]:
    """Collapse coalescable events to the latest per key, keeping order of last occurrence."""
    merged: dict[tuple, EditEvent] = {}
    last_index: dict[tuple, int] = {}
    for index, event in enumerate(events):
        if not event.coalesce:
            continue
        key = event.coalesce_key()
        earlier = merged.get(key)
        merged[key] = event.absorb(earlier) if earlier is not None else event
        last_index[key] = index

    result: list[EditEvent] = []
    for index, event in enumerate(events):
        if not event.coalesce:
            result.append(event)
            continue
        key = event.coalesce_key()
        if last_index[key] == index:
            result.append(merged[key])
    return result
