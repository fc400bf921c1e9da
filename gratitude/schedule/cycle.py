"""Server-side cyclic schedule shared by every viewer.

Each active message gets a fixed slot in a repeating cycle.  Viewers combine
the schedule with their clock offset (see :mod:`gratitude.display.timesync`)
to show roughly the same message at the same time.
"""

from __future__ import annotations

import time
from typing import Any, Optional, Sequence

from gratitude.messages.duration import (
    MESSAGE_DURATION_MS,
    MESSAGE_INTERVAL_MS,
    normalize_duration,
)
from gratitude.messages.models import Message


def now_ms() -> int:
    return int(time.time() * 1000)


def build_schedule(
    messages: Sequence[Message],
    server_time: Optional[int] = None,
    interval_ms: int = MESSAGE_INTERVAL_MS,
) -> dict[str, Any]:
    """Lay *messages* out on a cycle, one every *interval_ms*."""
    server_time = now_ms() if server_time is None else server_time
    if not messages:
        return {
            "schedule": [],
            "totalMessages": 0,
            "cycleDuration": 0,
            "messageInterval": interval_ms,
            "messageDuration": MESSAGE_DURATION_MS,
            "serverTime": server_time,
        }

    schedule = [
        {
            "id": m.id,
            "text": m.text,
            "duration": int(normalize_duration(m.duration) * 1000),
            "showTime": index * interval_ms,
            "position": index,
        }
        for index, m in enumerate(messages)
    ]
    return {
        "schedule": schedule,
        "totalMessages": len(messages),
        "cycleDuration": len(messages) * interval_ms,
        "messageInterval": interval_ms,
        "messageDuration": MESSAGE_DURATION_MS,
        "serverTime": server_time,
    }
