"""Client/server clock offset estimation.

One sync round records the local time before (T0) and after (T1) fetching
the server time S and assumes the network delay is symmetric::

    offset = S + (T1 - T0) / 2 - T1

The offset is advisory.  A failed round keeps the previous estimate and
nothing ever blocks on a stale value.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Mapping, Optional

logger = logging.getLogger(__name__)

RESYNC_INTERVAL = 60.0  # seconds


def local_ms() -> float:
    return time.time() * 1000


class TimeSync:
    """Tracks the offset between the local clock and the server clock."""

    def __init__(
        self,
        fetch_server_time: Callable[[], Awaitable[float]],
        clock: Optional[Callable[[], float]] = None,
        resync_interval: float = RESYNC_INTERVAL,
    ) -> None:
        self._fetch = fetch_server_time
        self._clock = clock or local_ms
        self.resync_interval = resync_interval
        self.offset = 0.0
        self.last_synced_at: Optional[float] = None
        self.round_trip: Optional[float] = None

    @property
    def is_stale(self) -> bool:
        if self.last_synced_at is None:
            return True
        return self._clock() - self.last_synced_at > self.resync_interval * 2000

    async def sync(self) -> Optional[float]:
        """Run one sync round.  Returns the new offset, or None on failure."""
        t0 = self._clock()
        try:
            server_time = float(await self._fetch())
        except Exception as exc:
            logger.warning("Time sync failed, keeping offset %.0f ms: %s", self.offset, exc)
            return None
        t1 = self._clock()
        delay = (t1 - t0) / 2
        self.offset = server_time + delay - t1
        self.round_trip = t1 - t0
        self.last_synced_at = t1
        logger.debug("Clock offset %.1f ms (rtt %.1f ms)", self.offset, self.round_trip)
        return self.offset

    def now_ms(self) -> float:
        """Local time corrected by the last known offset."""
        return self._clock() + self.offset

    async def run(self) -> None:
        """Resynchronize forever; cancel the task to stop."""
        while True:
            await self.sync()
            await asyncio.sleep(self.resync_interval)


def cycle_entry_at(schedule_doc: Mapping[str, Any], synced_ms: float) -> Optional[int]:
    """Index of the schedule entry due at *synced_ms*, or None without a schedule.

    The cycle is anchored at the epoch, so every viewer computes the same
    phase from the same synced time.
    """
    entries = schedule_doc.get("schedule") or []
    cycle = schedule_doc.get("cycleDuration") or 0
    if not entries or cycle <= 0:
        return None
    phase = synced_ms % cycle
    due = 0
    for index, entry in enumerate(entries):
        if entry.get("showTime", 0) <= phase:
            due = index
        else:
            break
    return due
