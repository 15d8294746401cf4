"""EventBus for SSE (Server-Sent Events) broadcasting.

Fans hook notifications out to dashboard viewers.
Events: agent:tool:start, agent:tool:complete, agent:session:end,
agent:prompt:received, agent:alert, agent:stopped

Delivery is at-most-once with no replay: a client connecting late, or
one dropped for falling behind, must fetch current state from the REST API.
"""

import contextlib
import json
import logging
import queue
import threading
from collections.abc import Callable, Generator, Iterable
from dataclasses import dataclass, field
from datetime import datetime

logger = logging.getLogger(__name__)


@dataclass
class Event:
    """An event to be broadcast via SSE."""

    event_type: str
    data: dict
    room: str | None = None
    timestamp: datetime = field(default_factory=datetime.now)
    id: str | None = None

    def to_sse(self) -> str:
        """Format the event as an SSE message.

        SSE format:
        event: <event_type>
        data: <json_data>
        id: <optional_id>

        """
        lines = []
        if self.event_type:
            lines.append(f"event: {self.event_type}")
        lines.append(f"data: {json.dumps(self.data, default=str)}")
        if self.id:
            lines.append(f"id: {self.id}")
        lines.append("")  # Empty line to end the event
        return "\n".join(lines) + "\n"


@dataclass
class _Subscriber:
    queue: queue.Queue
    rooms: frozenset[str]
    dropped: threading.Event = field(default_factory=threading.Event)


# Pushed to a dropped subscriber's queue to wake its stream
_DROPPED = object()

RESYNC_MESSAGE = 'event: stream:dropped\ndata: {"reason": "slow_consumer"}\n\n'


class EventBus:
    """Central event bus for broadcasting events to SSE clients.

    Features:
    - Global broadcast and per-room delivery (one room per agent name,
      "users", "agents", ...)
    - In-process callbacks per event type
    - SSE stream generator for Flask routes
    - Thread-safe operation; emit never blocks on a slow client
    """

    def __init__(self, queue_size: int = 100):
        """Initialize the EventBus.

        Args:
            queue_size: Per-client queue size. A client whose queue fills
                up is disconnected.
        """
        self._queue_size = queue_size
        self._callbacks: dict[str, list[Callable[[Event], None]]] = {}
        self._sse_subscribers: list[_Subscriber] = []
        self._lock = threading.Lock()
        self._event_counter = 0

    def subscribe(self, event_type: str, callback: Callable[[Event], None]) -> None:
        """Subscribe a callback to an event type.

        Args:
            event_type: The event type to subscribe to, or "*" for all events.
            callback: Function to call when event occurs.
        """
        with self._lock:
            self._callbacks.setdefault(event_type, []).append(callback)

    def unsubscribe(self, event_type: str, callback: Callable[[Event], None]) -> None:
        """Unsubscribe a callback from an event type."""
        with self._lock:
            if event_type in self._callbacks:
                self._callbacks[event_type] = [
                    cb for cb in self._callbacks[event_type] if cb != callback
                ]

    def emit(self, event_type: str, data: dict, room: str | None = None) -> Event:
        """Emit an event to callbacks and SSE clients.

        Args:
            event_type: The type of event (e.g., "agent:tool:start").
            data: The event data.
            room: Deliver only to clients joined to this room.
                None broadcasts to every client.

        Returns:
            The created Event object.
        """
        with self._lock:
            self._event_counter += 1
            event = Event(
                event_type=event_type,
                data=data,
                room=room,
                id=str(self._event_counter),
            )
            callbacks = list(self._callbacks.get(event_type, []))
            callbacks += self._callbacks.get("*", [])
            targets = [
                s for s in self._sse_subscribers if room is None or room in s.rooms
            ]

        for callback in callbacks:
            try:
                callback(event)
            except Exception:
                logger.exception(f"Event callback failed for {event_type}")

        dead = []
        for subscriber in targets:
            try:
                subscriber.queue.put_nowait(event)
            except queue.Full:
                dead.append(subscriber)

        if dead:
            with self._lock:
                for subscriber in dead:
                    with contextlib.suppress(ValueError):
                        self._sse_subscribers.remove(subscriber)
            for subscriber in dead:
                self._mark_dropped(subscriber)
            logger.warning(f"Dropped {len(dead)} slow SSE subscriber(s)")

        return event

    @staticmethod
    def _mark_dropped(subscriber: _Subscriber) -> None:
        """Flag a removed subscriber and wake its stream."""
        subscriber.dropped.set()
        with contextlib.suppress(queue.Empty):
            while True:
                subscriber.queue.get_nowait()
        with contextlib.suppress(queue.Full):
            subscriber.queue.put_nowait(_DROPPED)

    def open_subscription(self, rooms: Iterable[str] = ()) -> queue.Queue:
        """Register an SSE client queue.

        Args:
            rooms: Rooms to join in addition to global broadcasts.

        Returns:
            The queue events will be pushed to.
        """
        return self._add_subscriber(rooms).queue

    def _add_subscriber(self, rooms: Iterable[str]) -> _Subscriber:
        subscriber = _Subscriber(
            queue=queue.Queue(maxsize=self._queue_size),
            rooms=frozenset(rooms),
        )
        with self._lock:
            self._sse_subscribers.append(subscriber)
        return subscriber

    def close_subscription(self, event_queue: queue.Queue) -> None:
        """Remove an SSE client queue."""
        with self._lock:
            self._sse_subscribers = [s for s in self._sse_subscribers if s.queue is not event_queue]

    def get_sse_stream(
        self,
        rooms: Iterable[str] = (),
        timeout: float = 30.0,
    ) -> Generator[str, None, None]:
        """Get an SSE event stream generator.

        This generator yields SSE-formatted events as they occur.
        Use this with Flask's streaming response.

        Args:
            rooms: Rooms to join in addition to global broadcasts.
            timeout: Seconds to wait for events before sending a keep-alive.

        Yields:
            SSE-formatted event strings. If the client falls too far behind
            it is dropped: the stream sends a stream:dropped event and ends,
            and the client must reload state from the REST API.
        """
        subscriber = self._add_subscriber(rooms)
        try:
            while not subscriber.dropped.is_set():
                try:
                    event = subscriber.queue.get(timeout=timeout)
                except queue.Empty:
                    # Send keep-alive comment to prevent timeout
                    yield ": keep-alive\n\n"
                    continue
                if event is _DROPPED:
                    break
                yield event.to_sse()
            yield RESYNC_MESSAGE
        finally:
            self.close_subscription(subscriber.queue)

    @property
    def subscriber_count(self) -> int:
        """Get the number of active SSE subscribers."""
        with self._lock:
            return len(self._sse_subscribers)
