from typing import List, Optional
import queue

from ..models import RunEvent


class EventChannel:
    """
    Unbounded one-directional channel from the worker to the caller.

    The worker only calls ``send``; the caller drains without blocking.
    """

    def __init__(self):
        self._queue: "queue.SimpleQueue[RunEvent]" = queue.SimpleQueue()

    def send(self, event: RunEvent) -> None:
        """Push an event. Never blocks."""
        self._queue.put(event)

    def try_recv(self) -> Optional[RunEvent]:
        """Return the next pending event, or None if nothing is waiting."""
        try:
            return self._queue.get_nowait()
        except queue.Empty:
            return None

    def drain(self, limit: Optional[int] = None) -> List[RunEvent]:
        """Return all pending events (up to ``limit``) without blocking."""
        events: List[RunEvent] = []
        while limit is None or len(events) < limit:
            event = self.try_recv()
            if event is None:
                break
            events.append(event)
        return events

    def __call__(self, event: RunEvent) -> None:
        self.send(event)
