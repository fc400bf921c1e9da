"""Tests for the server-side display cycle."""

from gratitude.messages.models import Message, utcnow
from gratitude.schedule.cycle import build_schedule


def _messages(*durations):
    return [Message(id=f"m{i}", text=f"text {i}", created_at=utcnow(), duration=d) for i, d in enumerate(durations)]


def test_empty_schedule():
    doc = build_schedule([], server_time=1000)
    assert doc["schedule"] == []
    assert doc["totalMessages"] == 0
    assert doc["cycleDuration"] == 0
    assert doc["messageInterval"] == 5000
    assert doc["messageDuration"] == 4000
    assert doc["serverTime"] == 1000


def test_entries_spaced_by_interval():
    doc = build_schedule(_messages(4, 6, None), server_time=0)
    assert doc["totalMessages"] == 3
    assert doc["cycleDuration"] == 15000
    assert [e["showTime"] for e in doc["schedule"]] == [0, 5000, 10000]
    assert [e["position"] for e in doc["schedule"]] == [0, 1, 2]
    assert [e["id"] for e in doc["schedule"]] == ["m0", "m1", "m2"]


def test_entry_durations_normalized_to_ms():
    doc = build_schedule(_messages(6, 50, None, 1))
    assert [e["duration"] for e in doc["schedule"]] == [6000, 10000, 4000, 3000]


def test_custom_interval():
    doc = build_schedule(_messages(4, 4), interval_ms=1000)
    assert doc["cycleDuration"] == 2000
    assert doc["schedule"][1]["showTime"] == 1000


def test_server_time_defaults_to_now():
    assert build_schedule([])["serverTime"] > 0
