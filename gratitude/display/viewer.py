"""Viewer session: feeds a :class:`DisplayScheduler` from a running server.

The session loads the shared schedule, reloads the message listing
periodically, follows live events over Server-Sent Events and keeps the
clock offset fresh.  One tick loop drives the scheduler; every background
task is cancelled by :meth:`ViewerSession.close`.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Callable, Optional

import httpx

from gratitude.broadcast.channel import MESSAGE_DELETED, MESSAGE_NEW
from gratitude.display.scheduler import ActiveDisplayMessage, DisplayScheduler, ScheduledMessage
from gratitude.display.timesync import TimeSync, cycle_entry_at
from gratitude.display.viewport import Viewport

logger = logging.getLogger(__name__)

EXAMPLE_TEXTS = ["За каждый день", "За родителей", "За Божью благодать"]

TICK_INTERVAL = 0.2
RELOAD_INTERVAL = 30.0
RECONNECT_DELAY = 5.0
LISTING_LIMIT = 100

RenderCallback = Callable[[list[ActiveDisplayMessage]], None]


class ViewerSession:
    """Connects one display to the gratitude server."""

    def __init__(
        self,
        base_url: str,
        viewport: Viewport,
        client: Optional[httpx.AsyncClient] = None,
        scheduler: Optional[DisplayScheduler] = None,
        on_render: Optional[RenderCallback] = None,
        tick_interval: float = TICK_INTERVAL,
        reload_interval: float = RELOAD_INTERVAL,
        fallback: Optional[list[str]] = None,
    ) -> None:
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(base_url=base_url, timeout=10.0)
        self.scheduler = scheduler or DisplayScheduler(viewport)
        self.scheduler.set_fallback(EXAMPLE_TEXTS if fallback is None else fallback)
        self.timesync = TimeSync(self.fetch_server_time)
        self.on_render = on_render
        self.tick_interval = tick_interval
        self.reload_interval = reload_interval
        self._tasks: list[asyncio.Task] = []

    # -- HTTP ----------------------------------------------------------------

    async def fetch_server_time(self) -> float:
        resp = await self.client.get("/time")
        resp.raise_for_status()
        return float(resp.json()["serverTime"])

    async def load_schedule(self) -> bool:
        """Seed the backlog from the shared cycle and align with it."""
        try:
            resp = await self.client.get("/schedule")
            resp.raise_for_status()
            doc = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Could not load schedule, keeping current backlog: %s", exc)
            return False
        entries = [ScheduledMessage.from_payload(e) for e in doc.get("schedule", [])]
        now = self.timesync.now_ms()
        self.scheduler.load_backlog(entries, now)
        index = cycle_entry_at(doc, now)
        if index is not None:
            self.scheduler.align_to(index)
        return True

    async def reload(self) -> bool:
        """Refresh the backlog from the listing endpoint."""
        try:
            resp = await self.client.get("/messages", params={"limit": LISTING_LIMIT})
            resp.raise_for_status()
            items = resp.json().get("messages", [])
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Could not reload messages, keeping current backlog: %s", exc)
            return False
        # The listing is newest first; the rotation runs oldest first.
        entries = [ScheduledMessage.from_payload(m) for m in reversed(items)]
        self.scheduler.load_backlog(entries, self.timesync.now_ms())
        return True

    # -- events --------------------------------------------------------------

    def handle_event(self, event: dict[str, Any]) -> None:
        """Apply one broadcast event to the scheduler."""
        kind = event.get("type")
        data = event.get("data") or {}
        if kind == MESSAGE_NEW and data.get("id"):
            self.scheduler.on_created(ScheduledMessage.from_payload(data), self.timesync.now_ms())
            self._render()
        elif kind == MESSAGE_DELETED and data.get("id"):
            if self.scheduler.on_deleted(str(data["id"])):
                self._render()

    async def listen(self) -> None:
        """Follow the SSE stream, reconnecting after failures."""
        while True:
            try:
                async with self.client.stream("GET", "/events", timeout=None) as resp:
                    resp.raise_for_status()
                    async for line in resp.aiter_lines():
                        if line.startswith("data:"):
                            try:
                                self.handle_event(json.loads(line[5:].strip()))
                            except json.JSONDecodeError:
                                logger.debug("Ignoring malformed event line")
            except httpx.HTTPError as exc:
                logger.warning("Event stream lost (%s); reconnecting in %.0fs", exc, RECONNECT_DELAY)
            await asyncio.sleep(RECONNECT_DELAY)

    # -- loops ---------------------------------------------------------------

    def _render(self) -> None:
        if self.on_render is not None:
            self.on_render(self.scheduler.visible)

    def tick(self) -> bool:
        changed = self.scheduler.tick(self.timesync.now_ms())
        if changed:
            self._render()
        return changed

    async def _tick_loop(self) -> None:
        while True:
            self.tick()
            await asyncio.sleep(self.tick_interval)

    async def _reload_loop(self) -> None:
        while True:
            await asyncio.sleep(self.reload_interval)
            await self.reload()

    def set_viewport(self, viewport: Viewport) -> None:
        self.scheduler.set_viewport(viewport)
        self._render()

    async def start(self) -> None:
        """Initial sync and load, then start the background tasks."""
        await self.timesync.sync()
        if not await self.load_schedule():
            await self.reload()
        self._tasks = [
            asyncio.create_task(self.timesync.run()),
            asyncio.create_task(self._tick_loop()),
            asyncio.create_task(self._reload_loop()),
            asyncio.create_task(self.listen()),
        ]

    async def run(self) -> None:
        await self.start()
        try:
            await asyncio.gather(*self._tasks)
        finally:
            await self.close()

    async def close(self) -> None:
        tasks, self._tasks = self._tasks, []
        for task in tasks:
            task.cancel()
        try:
            results = await asyncio.gather(*tasks, return_exceptions=True)
            for result in results:
                if isinstance(result, Exception):
                    logger.debug("Background task ended with %r", result)
        finally:
            self.scheduler.teardown()
            if self._owns_client:
                self._owns_client = False
                await self.client.aclose()
