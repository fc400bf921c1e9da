"""In-process broadcast channel fanning events out to connected viewers.

Delivery is best effort: a subscriber whose send fails is dropped, nothing is
retried and no ordering is promised.  Viewers that miss an event catch up on
their next periodic reload.
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional

logger = logging.getLogger(__name__)

MESSAGE_NEW = "message:new"
MESSAGE_DELETED = "message:deleted"

SEND_TIMEOUT = 5.0  # seconds a single subscriber may take to accept an event

Sender = Callable[[dict[str, Any]], Awaitable[None]]


@dataclass(eq=False)
class Subscription:
    """A registered receiver of broadcast events."""

    send: Sender
    id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    queue: Optional[asyncio.Queue] = None


def make_event(type_: str, data: Optional[dict[str, Any]] = None) -> dict[str, Any]:
    return {
        "type": type_,
        "data": data or {},
        "ts": int(time.time() * 1000),
        "id": str(uuid.uuid4()),
    }


class BroadcastChannel:
    """Publish an event to every subscriber."""

    def __init__(self, send_timeout: float = SEND_TIMEOUT) -> None:
        self._subscribers: dict[str, Subscription] = {}
        self.send_timeout = send_timeout

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self, send: Sender) -> Subscription:
        sub = Subscription(send=send)
        self._subscribers[sub.id] = sub
        logger.debug("Subscriber %s connected (%d total)", sub.id, len(self._subscribers))
        return sub

    def subscribe_queue(self, maxsize: int = 100) -> Subscription:
        """Subscribe through a bounded queue; events for a full queue are dropped."""
        queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)

        async def _enqueue(event: dict[str, Any]) -> None:
            try:
                queue.put_nowait(event)
            except asyncio.QueueFull:
                logger.warning("Subscriber queue full, dropping %s", event.get("type"))

        sub = self.subscribe(_enqueue)
        sub.queue = queue
        return sub

    def unsubscribe(self, sub: Subscription) -> None:
        if self._subscribers.pop(sub.id, None) is not None:
            logger.debug("Subscriber %s disconnected (%d left)", sub.id, len(self._subscribers))

    async def _deliver(self, sub: Subscription, event: dict[str, Any]) -> bool:
        try:
            await asyncio.wait_for(sub.send(event), timeout=self.send_timeout)
        except Exception as exc:
            logger.warning("Broadcast to %s failed: %r", sub.id, exc)
            self.unsubscribe(sub)
            return False
        return True

    async def publish(self, type_: str, data: Optional[dict[str, Any]] = None) -> int:
        """Send an event to all subscribers concurrently.  Returns the delivery count.

        A subscriber that fails or takes longer than ``send_timeout`` is dropped.
        """
        event = make_event(type_, data)
        subscribers = list(self._subscribers.values())
        results = await asyncio.gather(*(self._deliver(sub, event) for sub in subscribers))
        return sum(results)

    def close(self) -> None:
        self._subscribers.clear()
