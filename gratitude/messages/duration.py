"""Display duration rules and timing constants."""

from __future__ import annotations

import math
from typing import Any

# Seconds a bubble stays on screen.
MIN_DURATION = 3.0
MAX_DURATION = 10.0
DEFAULT_DURATION = 4.0

# Server-side cycle: one message every MESSAGE_INTERVAL_MS.
MESSAGE_INTERVAL_MS = 5000
MESSAGE_DURATION_MS = 4000

# Client-side gap between two bubbles appearing.
SPAWN_INTERVAL_MS = 2500

# Reading speed used to derive a duration from text length.
READING_BASE_SECONDS = 2.0
READING_CHARS_PER_SECOND = 50
READING_MAX_SECONDS = 8.0


def normalize_duration(value: Any = None) -> float:
    """Clamp *value* (seconds) into ``[MIN_DURATION, MAX_DURATION]``.

    Missing, non-numeric and non-positive values yield ``DEFAULT_DURATION``.
    """
    if value is None or isinstance(value, bool):
        return DEFAULT_DURATION
    try:
        seconds = float(value)
    except (TypeError, ValueError):
        return DEFAULT_DURATION
    if math.isnan(seconds) or seconds <= 0:
        return DEFAULT_DURATION
    return max(MIN_DURATION, min(seconds, MAX_DURATION))


def reading_time(text: str) -> float:
    """Seconds needed to read *text* comfortably."""
    extra = len(text or "") / READING_CHARS_PER_SECOND
    return max(READING_BASE_SECONDS, min(READING_BASE_SECONDS + extra, READING_MAX_SECONDS))
