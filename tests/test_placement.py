"""Tests for viewport tiers and bubble placement."""

import random

from gratitude.display.placement import Rect, collides, estimate_height, find_position
from gratitude.display.viewport import DeviceTier, Viewport, classify


# --- Viewport tiers ---


def test_classify():
    assert classify(400) is DeviceTier.MOBILE
    assert classify(900) is DeviceTier.DESKTOP
    assert classify(900, touch=True) is DeviceTier.MOBILE
    assert classify(1200, touch=True) is DeviceTier.DESKTOP
    assert classify(1920) is DeviceTier.LARGE


def test_tier_caps():
    assert Viewport(400, 800).profile.max_concurrent == 3
    assert Viewport(1440, 900).profile.max_concurrent == 6
    assert Viewport(2560, 1440).profile.max_concurrent == 10


# --- Geometry ---


def test_estimate_height():
    assert estimate_height("hi", 280, 16) == 60
    assert estimate_height("a" * 280, 280, 16) == 24 + 10 * 16 * 1.4


def test_collides_with_padding():
    a = Rect(0, 0, 100, 100)
    assert collides(a, Rect(120, 0, 100, 100))
    assert not collides(a, Rect(140, 0, 100, 100))
    assert not collides(a, Rect(0, 200, 100, 100))


def test_position_inside_margins():
    viewport = Viewport(1440, 900)
    rng = random.Random(7)
    for _ in range(100):
        rect = find_position(viewport, "Спасибо", [], rng)
        assert rect.x >= 20
        assert rect.y >= 20
        assert rect.x + rect.width <= 1420
        assert rect.y + rect.height <= 880


def test_positions_avoid_each_other():
    viewport = Viewport(2560, 1440)
    rng = random.Random(42)
    placed = []
    for i in range(5):
        placed.append(find_position(viewport, f"message {i}", placed, rng))
    for i, a in enumerate(placed):
        for b in placed[i + 1:]:
            assert not collides(a, b)


def test_placement_always_succeeds_on_tiny_screen():
    viewport = Viewport(100, 50)
    occupied = [Rect(0, 0, 100, 50)]
    rect = find_position(viewport, "hello", occupied, random.Random(1))
    assert rect.x == 20
    assert rect.y == 20
