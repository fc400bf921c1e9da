"""Tests for the SQLAlchemy message store."""

import tempfile
from datetime import timedelta
from pathlib import Path

from sqlalchemy import update

from gratitude.messages.models import MessageRow, utcnow
from gratitude.messages.store import MessageStore


def _store(tmpdir: str) -> MessageStore:
    store = MessageStore.from_url(f"sqlite:///{Path(tmpdir) / 'db' / 'messages.db'}")
    store.migrate()
    return store


def _backdate(store: MessageStore, message_id: str, age: timedelta) -> None:
    with store.engine.begin() as conn:
        conn.execute(
            update(MessageRow).where(MessageRow.id == message_id).values(created_at=utcnow() - age)
        )


def test_migrate_is_idempotent():
    with tempfile.TemporaryDirectory() as tmpdir:
        store = _store(tmpdir)
        store.migrate()
        assert store.ping()
        store.dispose()


def test_create_and_get():
    with tempfile.TemporaryDirectory() as tmpdir:
        store = _store(tmpdir)
        created = store.create("Спасибо за родителей", 10, 20, 6)

        fetched = store.get(created.id)
        assert fetched is not None
        assert fetched.text == "Спасибо за родителей"
        assert fetched.position_x == 10
        assert fetched.position_y == 20
        assert fetched.duration == 6.0
        assert fetched.is_active
        assert fetched.created_at.tzinfo is not None
        store.dispose()


def test_create_normalizes_duration():
    with tempfile.TemporaryDirectory() as tmpdir:
        store = _store(tmpdir)
        assert store.create("a", duration=None).duration == 4.0
        assert store.create("b", duration=50).duration == 10.0
        assert store.create("c", duration=-1).duration == 4.0
        store.dispose()


def test_ids_are_unique():
    with tempfile.TemporaryDirectory() as tmpdir:
        store = _store(tmpdir)
        ids = {store.create(f"m{i}").id for i in range(20)}
        assert len(ids) == 20
        store.dispose()


def test_list_recent_newest_first():
    with tempfile.TemporaryDirectory() as tmpdir:
        store = _store(tmpdir)
        old = store.create("old")
        new = store.create("new")
        _backdate(store, old.id, timedelta(minutes=5))

        listed = store.list_recent()
        assert [m.id for m in listed] == [new.id, old.id]
        assert [m.id for m in store.list_active()] == [old.id, new.id]
        assert len(store.list_recent(1)) == 1
        assert len(store.list_recent(0)) == 2
        store.dispose()


def test_delete():
    with tempfile.TemporaryDirectory() as tmpdir:
        store = _store(tmpdir)
        message = store.create("bye")
        assert store.delete(message.id)
        assert store.get(message.id) is None
        assert not store.delete(message.id)
        assert not store.delete("missing")
        store.dispose()


def test_deactivate_older_than():
    with tempfile.TemporaryDirectory() as tmpdir:
        store = _store(tmpdir)
        stale = store.create("stale")
        fresh = store.create("fresh")
        _backdate(store, stale.id, timedelta(hours=2))

        assert store.deactivate_older_than(timedelta(hours=1)) == 1
        assert [m.id for m in store.list_recent()] == [fresh.id]
        assert not store.get(stale.id).is_active
        assert store.deactivate_older_than(timedelta(hours=1)) == 0
        store.dispose()


def test_list_since_window():
    with tempfile.TemporaryDirectory() as tmpdir:
        store = _store(tmpdir)
        old = store.create("old")
        recent = store.create("recent")
        _backdate(store, old.id, timedelta(minutes=2))

        assert [m.id for m in store.list_since(30)] == [recent.id]
        store.dispose()


def test_listing_payload_shape():
    with tempfile.TemporaryDirectory() as tmpdir:
        store = _store(tmpdir)
        message = store.create("hi", 1, 2, 5)
        event = message.to_event()
        assert event == {"id": message.id, "text": "hi", "positionX": 1, "positionY": 2, "duration": 5.0}
        assert "createdAt" in message.to_listing()
        store.dispose()
