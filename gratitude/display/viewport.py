"""Viewport classification into device tiers."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

MOBILE_MAX_WIDTH = 768
TOUCH_MOBILE_MAX_WIDTH = 1024
LARGE_MIN_WIDTH = 1920


class DeviceTier(Enum):
    """Presentation class of a viewer's screen."""

    MOBILE = "mobile"
    DESKTOP = "desktop"
    LARGE = "large"


@dataclass(frozen=True)
class TierProfile:
    """Per-tier tuning.  ``max_concurrent`` is a hard cap on visible bubbles."""

    max_concurrent: int
    font_size: int
    bubble_width: int


TIER_PROFILES: dict[DeviceTier, TierProfile] = {
    DeviceTier.MOBILE: TierProfile(max_concurrent=3, font_size=14, bubble_width=220),
    DeviceTier.DESKTOP: TierProfile(max_concurrent=6, font_size=16, bubble_width=280),
    DeviceTier.LARGE: TierProfile(max_concurrent=10, font_size=18, bubble_width=320),
}


def classify(width: float, touch: bool = False) -> DeviceTier:
    if width < MOBILE_MAX_WIDTH or (touch and width < TOUCH_MOBILE_MAX_WIDTH):
        return DeviceTier.MOBILE
    if width >= LARGE_MIN_WIDTH:
        return DeviceTier.LARGE
    return DeviceTier.DESKTOP


@dataclass(frozen=True)
class Viewport:
    """Screen dimensions as reported by the viewer.  Read-only input."""

    width: float
    height: float
    touch: bool = False

    @property
    def tier(self) -> DeviceTier:
        return classify(self.width, self.touch)

    @property
    def profile(self) -> TierProfile:
        return TIER_PROFILES[self.tier]
