"""Bubble footprint estimation and collision-avoiding placement."""

from __future__ import annotations

import math
import random
from dataclasses import dataclass
from typing import Iterable

from gratitude.display.viewport import Viewport

BUBBLE_PADDING = 24  # vertical padding inside a bubble
LINE_HEIGHT_RATIO = 1.4
CHAR_WIDTH_RATIO = 0.625  # ~10px per character at 16px
MIN_BUBBLE_HEIGHT = 60
COLLISION_PADDING = 30
VIEWPORT_MARGIN = 20
MAX_PLACEMENT_ATTEMPTS = 50


@dataclass(frozen=True)
class Rect:
    x: float
    y: float
    width: float
    height: float


def estimate_height(text: str, width: float, font_size: float) -> float:
    """Rough rendered height of a bubble holding *text*."""
    chars_per_line = max(1, math.floor(width / (font_size * CHAR_WIDTH_RATIO)))
    lines = max(1, math.ceil(len(text) / chars_per_line))
    return max(BUBBLE_PADDING + lines * font_size * LINE_HEIGHT_RATIO, MIN_BUBBLE_HEIGHT)


def collides(a: Rect, b: Rect, padding: float = COLLISION_PADDING) -> bool:
    """True when *a* and *b*, grown by *padding*, overlap."""
    return not (
        a.x + a.width + padding < b.x
        or b.x + b.width + padding < a.x
        or a.y + a.height + padding < b.y
        or b.y + b.height + padding < a.y
    )


def _sample(viewport: Viewport, width: float, height: float, rng: random.Random) -> tuple[float, float]:
    span_x = max(0.0, viewport.width - width - VIEWPORT_MARGIN * 2)
    span_y = max(0.0, viewport.height - height - VIEWPORT_MARGIN * 2)
    return rng.random() * span_x + VIEWPORT_MARGIN, rng.random() * span_y + VIEWPORT_MARGIN


def find_position(
    viewport: Viewport,
    text: str,
    occupied: Iterable[Rect],
    rng: random.Random,
    max_attempts: int = MAX_PLACEMENT_ATTEMPTS,
    avoid_collisions: bool = True,
) -> Rect:
    """Pick a spot for a bubble holding *text*.

    Samples random positions inside the viewport margins and rejects those
    overlapping *occupied*.  After *max_attempts* misses an unchecked random
    position is returned, so placement always succeeds.
    """
    profile = viewport.profile
    width = profile.bubble_width
    height = estimate_height(text, width, profile.font_size)
    others = list(occupied)

    if avoid_collisions and others:
        for _ in range(max_attempts):
            x, y = _sample(viewport, width, height, rng)
            candidate = Rect(x, y, width, height)
            if not any(collides(candidate, other) for other in others):
                return candidate

    x, y = _sample(viewport, width, height, rng)
    return Rect(x, y, width, height)
