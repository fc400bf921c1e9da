"""Viewer-side display scheduler.

Keeps a bounded rotation of visible bubbles.  Messages wait in a backlog,
become visible when a slot frees up, stay for their display duration, and
return to the rotation when they expire, so the same message can be shown
again later under a fresh render id::

    queued -> visible -> expired (slot freed, message back in rotation)

The scheduler is driven by a single :meth:`DisplayScheduler.tick` call with
the current time in milliseconds; it never starts timers of its own.
"""

from __future__ import annotations

import itertools
import logging
import random
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Optional

from gratitude.display.placement import Rect, find_position
from gratitude.display.viewport import Viewport
from gratitude.messages.duration import SPAWN_INTERVAL_MS, normalize_duration, reading_time

logger = logging.getLogger(__name__)

READMIT_DELAY_MS = 1000
LIVE_GRACE_MS = 30_000


def display_duration_ms(text: str, duration: Optional[float] = None) -> int:
    """Milliseconds a bubble stays up, always within the normalized bounds."""
    seconds = duration if duration else reading_time(text)
    return int(normalize_duration(seconds) * 1000)


@dataclass
class ScheduledMessage:
    """A message waiting in (or cycling through) the backlog."""

    id: str
    text: str
    duration_ms: int
    slot: int = 0
    live: bool = False
    received_at: float = 0.0

    @classmethod
    def from_payload(cls, data: Mapping[str, Any]) -> ScheduledMessage:
        """Build from a listing item, broadcast payload or schedule entry."""
        text = str(data.get("text", ""))
        duration = data.get("duration")
        # Schedule entries carry milliseconds, everything else seconds.
        if "showTime" in data and duration:
            duration = float(duration) / 1000
        return cls(id=str(data["id"]), text=text, duration_ms=display_duration_ms(text, duration))


@dataclass
class ActiveDisplayMessage:
    """A scheduled message currently on screen."""

    message: ScheduledMessage
    render_id: str
    rect: Rect
    shown_at: float
    expires_at: float

    @property
    def id(self) -> str:
        return self.message.id

    @property
    def text(self) -> str:
        return self.message.text

    @property
    def x(self) -> float:
        return self.rect.x

    @property
    def y(self) -> float:
        return self.rect.y


@dataclass
class _Rotation:
    items: list[ScheduledMessage] = field(default_factory=list)
    cursor: int = 0

    def renumber(self) -> None:
        for index, item in enumerate(self.items):
            item.slot = index
        self.cursor = self.cursor % len(self.items) if self.items else 0

    def next_excluding(self, busy: set[str]) -> Optional[ScheduledMessage]:
        for step in range(len(self.items)):
            index = (self.cursor + step) % len(self.items)
            item = self.items[index]
            if item.id not in busy:
                self.cursor = (index + 1) % len(self.items)
                return item
        return None


class DisplayScheduler:
    """Bounded-concurrency rotation of on-screen messages."""

    def __init__(
        self,
        viewport: Viewport,
        rng: Optional[random.Random] = None,
        readmit_delay_ms: float = READMIT_DELAY_MS,
        spawn_interval_ms: float = SPAWN_INTERVAL_MS,
        live_grace_ms: float = LIVE_GRACE_MS,
        avoid_collisions: bool = True,
    ) -> None:
        self.viewport = viewport
        self.rng = rng or random.Random()
        self.readmit_delay_ms = readmit_delay_ms
        self.spawn_interval_ms = spawn_interval_ms
        self.live_grace_ms = live_grace_ms
        self.avoid_collisions = avoid_collisions

        self._backlog = _Rotation()
        self._fallback = _Rotation()
        self._visible: list[ActiveDisplayMessage] = []
        self._next_admission_at = 0.0
        self._render_seq = itertools.count(1)
        self._closed = False

    # -- state ---------------------------------------------------------------

    @property
    def capacity(self) -> int:
        return self.viewport.profile.max_concurrent

    @property
    def visible(self) -> list[ActiveDisplayMessage]:
        return list(self._visible)

    @property
    def backlog(self) -> list[ScheduledMessage]:
        return list(self._backlog.items)

    @property
    def cursor(self) -> int:
        return self._backlog.cursor

    @property
    def free_slots(self) -> int:
        return max(0, self.capacity - len(self._visible))

    @property
    def closed(self) -> bool:
        return self._closed

    def _visible_ids(self) -> set[str]:
        return {a.id for a in self._visible}

    # -- driving -------------------------------------------------------------

    def tick(self, now_ms: float) -> bool:
        """Expire and admit messages for time *now_ms*.  True if anything changed."""
        if self._closed:
            return False
        changed = self._expire(now_ms)
        while self.free_slots and now_ms >= self._next_admission_at:
            candidate = self._next_candidate()
            if candidate is None:
                break
            self._show(candidate, now_ms)
            self._next_admission_at = now_ms + self.spawn_interval_ms
            changed = True
        return changed

    def _expire(self, now_ms: float) -> bool:
        remaining = [a for a in self._visible if a.expires_at > now_ms]
        if len(remaining) == len(self._visible):
            return False
        self._visible = remaining
        self._next_admission_at = max(self._next_admission_at, now_ms + self.readmit_delay_ms)
        return True

    def _next_candidate(self) -> Optional[ScheduledMessage]:
        busy = self._visible_ids()
        if self._backlog.items:
            return self._backlog.next_excluding(busy)
        return self._fallback.next_excluding(busy)

    def _show(self, message: ScheduledMessage, now_ms: float) -> ActiveDisplayMessage:
        rect = find_position(
            self.viewport,
            message.text,
            [a.rect for a in self._visible],
            self.rng,
            avoid_collisions=self.avoid_collisions,
        )
        active = ActiveDisplayMessage(
            message=message,
            render_id=f"{message.id}#{next(self._render_seq)}",
            rect=rect,
            shown_at=now_ms,
            expires_at=now_ms + message.duration_ms,
        )
        self._visible.append(active)
        return active

    # -- backlog maintenance -------------------------------------------------

    def load_backlog(self, messages: Iterable[ScheduledMessage], now_ms: float = 0.0) -> None:
        """Replace the backlog with a fresh listing.

        Live-pushed messages younger than ``live_grace_ms`` survive even when
        the listing does not contain them yet.
        """
        if self._closed:
            return
        current = self._backlog.items[self._backlog.cursor] if self._backlog.items else None

        fresh: list[ScheduledMessage] = []
        seen: set[str] = set()
        for message in messages:
            if message.id in seen:
                continue
            seen.add(message.id)
            fresh.append(message)
        for message in self._backlog.items:
            if message.id in seen or not message.live:
                continue
            if now_ms - message.received_at < self.live_grace_ms:
                seen.add(message.id)
                fresh.append(message)

        cursor = self._backlog.cursor
        if current is not None and current.id in seen:
            cursor = next(i for i, m in enumerate(fresh) if m.id == current.id)
        self._backlog = _Rotation(items=fresh, cursor=cursor)
        self._backlog.renumber()

    def on_created(self, message: ScheduledMessage, now_ms: float) -> bool:
        """Handle a live "created" event.  True if the message went on screen."""
        if self._closed:
            return False
        if any(m.id == message.id for m in self._backlog.items):
            return False
        message.live = True
        message.received_at = now_ms
        self._backlog.items.append(message)
        self._backlog.renumber()
        if self.free_slots and message.id not in self._visible_ids():
            self._show(message, now_ms)
            return True
        return False

    def on_deleted(self, message_id: str) -> bool:
        """Remove a message from the backlog and the screen."""
        if self._closed:
            return False
        items = self._backlog.items
        index = next((i for i, m in enumerate(items) if m.id == message_id), None)
        removed = False
        if index is not None:
            del items[index]
            if index < self._backlog.cursor:
                self._backlog.cursor -= 1
            self._backlog.renumber()
            removed = True
        before = len(self._visible)
        self._visible = [a for a in self._visible if a.id != message_id]
        return removed or len(self._visible) != before

    def align_to(self, index: int) -> None:
        """Point the rotation at backlog entry *index*."""
        if self._backlog.items:
            self._backlog.cursor = index % len(self._backlog.items)

    def set_fallback(self, texts: Iterable[str]) -> None:
        """Static examples shown while the backlog is empty."""
        self._fallback = _Rotation(
            items=[
                ScheduledMessage(id=f"example-{i}", text=t, duration_ms=display_duration_ms(t))
                for i, t in enumerate(texts)
            ]
        )
        self._fallback.renumber()

    def set_viewport(self, viewport: Viewport) -> None:
        """Apply new screen dimensions; trims the oldest bubbles if the cap shrank."""
        self.viewport = viewport
        overflow = len(self._visible) - self.capacity
        if overflow > 0:
            logger.debug("Viewport tier %s: dropping %d bubble(s)", viewport.tier.value, overflow)
            self._visible = self._visible[overflow:]

    def teardown(self) -> None:
        self._closed = True
        self._visible.clear()
        self._backlog = _Rotation()
        self._fallback = _Rotation()
