"""
CiviSure - Real-time Alert Broadcasting

Fan-out of SOS events to connected admin observers. Delivery is
best-effort: publish() never blocks and never raises, and an observer
whose queue is full simply misses the event.
"""

import asyncio
import logging
from typing import Any, Set

logger = logging.getLogger(__name__)

# Event names pushed to the admin room
NEW_SOS_EVENT = "new-sos"
SOS_UPDATED_EVENT = "sos-updated"

ADMIN_ROOM = "admin"


class AlertBroadcaster:
    """In-process broadcast group with one bounded queue per subscriber."""

    def __init__(self, max_queue_size: int = 100):
        self.max_queue_size = max_queue_size
        self._subscribers: Set[asyncio.Queue] = set()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self) -> asyncio.Queue:
        """Join the broadcast group. Returns the queue events arrive on."""
        queue: asyncio.Queue = asyncio.Queue(maxsize=self.max_queue_size)
        self._subscribers.add(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue) -> None:
        self._subscribers.discard(queue)

    def publish(self, event: str, data: Any) -> None:
        """Push an event to every current subscriber without waiting."""
        message = {"event": event, "data": data}
        for queue in list(self._subscribers):
            try:
                queue.put_nowait(message)
            except asyncio.QueueFull:
                logger.warning(f"Dropped {event} event for a slow observer")


# Process-wide broadcaster used by the app
broadcaster = AlertBroadcaster()


def get_broadcaster() -> AlertBroadcaster:
    """Dependency that provides the alert broadcaster."""
    return broadcaster
