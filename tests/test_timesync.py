"""Tests for clock offset estimation and cycle alignment."""

import asyncio

from gratitude.display.timesync import TimeSync, cycle_entry_at


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


def test_offset_assumes_symmetric_delay():
    clock = FakeClock(1000)

    async def fetch():
        clock.now += 100
        return 5000

    sync = TimeSync(fetch, clock=clock)
    assert sync.is_stale
    offset = asyncio.run(sync.sync())

    assert offset == 5000 + 50 - 1100
    assert sync.round_trip == 100
    assert not sync.is_stale
    clock.now = 2000
    assert sync.now_ms() == 2000 + offset


def test_failed_sync_keeps_previous_offset():
    clock = FakeClock(0)
    responses = [3000.0]

    async def fetch():
        if not responses:
            raise ConnectionError("server down")
        return responses.pop()

    sync = TimeSync(fetch, clock=clock)
    asyncio.run(sync.sync())
    assert sync.offset == 3000

    assert asyncio.run(sync.sync()) is None
    assert sync.offset == 3000


def test_stale_after_two_intervals():
    clock = FakeClock(0)

    async def fetch():
        return 0

    sync = TimeSync(fetch, clock=clock, resync_interval=1.0)
    asyncio.run(sync.sync())
    clock.now = 1500
    assert not sync.is_stale
    clock.now = 2500
    assert sync.is_stale


# --- Cycle alignment ---


def _doc(count: int, interval: int = 5000) -> dict:
    return {
        "schedule": [{"id": f"m{i}", "showTime": i * interval} for i in range(count)],
        "cycleDuration": count * interval,
    }


def test_cycle_entry_at():
    doc = _doc(3)
    assert cycle_entry_at(doc, 0) == 0
    assert cycle_entry_at(doc, 16000) == 0
    assert cycle_entry_at(doc, 20000) == 1
    assert cycle_entry_at(doc, 27000) == 2


def test_cycle_entry_same_for_same_synced_time():
    doc = _doc(4)
    assert cycle_entry_at(doc, 1_700_000_123_456) == cycle_entry_at(dict(doc), 1_700_000_123_456)


def test_cycle_entry_without_schedule():
    assert cycle_entry_at({"schedule": [], "cycleDuration": 0}, 1000) is None
    assert cycle_entry_at({}, 1000) is None
