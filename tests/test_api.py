"""Tests for the HTTP and WebSocket API."""

import tempfile
from pathlib import Path

from fastapi.testclient import TestClient

from gratitude.moderation.models import REASON_PROFANITY
from gratitude.settings import Settings
from web.backend.app.main import create_app


def _client(tmpdir: str) -> TestClient:
    settings = Settings(database_url=f"sqlite:///{Path(tmpdir) / 'wall.db'}", sweep_interval=0)
    return TestClient(create_app(settings))


def _post(client: TestClient, text: str = "Спасибо за родителей", **extra):
    body = {"text": text, "positionX": 10.4, "positionY": 20, **extra}
    return client.post("/messages", json=body)


# --- Submission ---


def test_create_message():
    with tempfile.TemporaryDirectory() as tmpdir, _client(tmpdir) as client:
        resp = _post(client, duration=6)
        assert resp.status_code == 201
        data = resp.json()
        assert data["success"] is True
        assert data["message"]["text"] == "Спасибо за родителей"
        assert data["message"]["positionX"] == 10
        assert data["message"]["positionY"] == 20
        assert data["message"]["duration"] == 6.0


def test_create_trims_text_and_defaults_duration():
    with tempfile.TemporaryDirectory() as tmpdir, _client(tmpdir) as client:
        message = _post(client, "  Спасибо  ").json()["message"]
        assert message["text"] == "Спасибо"
        assert message["duration"] == 4.0


def test_create_requires_text_and_position():
    with tempfile.TemporaryDirectory() as tmpdir, _client(tmpdir) as client:
        resp = client.post("/messages", json={"positionX": 1, "positionY": 2})
        assert resp.status_code == 400
        assert resp.json() == {"error": "Текст сообщения обязателен"}

        resp = client.post("/messages", json={"text": "Спасибо", "positionX": 1})
        assert resp.status_code == 400
        assert resp.json() == {"error": "Позиции X и Y обязательны"}

        resp = client.post("/messages", json={"text": "Спасибо", "positionX": "1", "positionY": 2})
        assert resp.status_code == 400


def test_create_rejects_bad_json():
    with tempfile.TemporaryDirectory() as tmpdir, _client(tmpdir) as client:
        resp = client.post("/messages", content=b"{nope", headers={"content-type": "application/json"})
        assert resp.status_code == 400
        assert "error" in resp.json()


def test_create_rejects_profanity_and_stores_nothing():
    with tempfile.TemporaryDirectory() as tmpdir, _client(tmpdir) as client:
        resp = _post(client, "Ты дурак")
        assert resp.status_code == 400
        assert resp.json() == {"error": REASON_PROFANITY}
        assert client.get("/messages").json()["messages"] == []


def test_create_rejects_long_text():
    with tempfile.TemporaryDirectory() as tmpdir, _client(tmpdir) as client:
        resp = _post(client, "а" * 301)
        assert resp.status_code == 400
        assert "300" in resp.json()["error"]


def test_create_rejects_out_of_range_position():
    with tempfile.TemporaryDirectory() as tmpdir, _client(tmpdir) as client:
        resp = client.post("/messages", json={"text": "Спасибо", "positionX": 1e20, "positionY": 1})
        assert resp.status_code == 400
        assert resp.json() == {"error": "Позиции X и Y обязательны"}
        assert client.get("/messages").json()["messages"] == []


def test_create_unexpected_error_returns_json(monkeypatch):
    with tempfile.TemporaryDirectory() as tmpdir, _client(tmpdir) as client:
        def boom(*args, **kwargs):
            raise OverflowError("too large")

        monkeypatch.setattr(client.app.state.gratitude.store, "create", boom)
        resp = _post(client)
        assert resp.status_code == 500
        assert resp.json() == {"error": "Ошибка при создании сообщения"}


# --- Listing and deletion ---


def test_list_messages_round_trip():
    with tempfile.TemporaryDirectory() as tmpdir, _client(tmpdir) as client:
        created = _post(client, "  Спасибо за каждый день ", duration=50).json()["message"]
        assert created["duration"] == 10.0

        messages = client.get("/messages").json()["messages"]
        assert [m["id"] for m in messages] == [created["id"]]
        assert messages[0]["text"] == created["text"] == "Спасибо за каждый день"
        assert messages[0]["duration"] == created["duration"]
        assert messages[0]["positionX"] == created["positionX"]
        assert messages[0]["createdAt"]


def test_delete_message():
    with tempfile.TemporaryDirectory() as tmpdir, _client(tmpdir) as client:
        created = _post(client).json()["message"]

        assert client.delete("/messages").status_code == 400
        assert client.delete("/messages", params={"id": "missing"}).status_code == 404

        resp = client.delete("/messages", params={"id": created["id"]})
        assert resp.status_code == 200
        assert resp.json() == {"success": True}
        assert client.get("/messages").json()["messages"] == []


# --- Schedule, clock, health ---


def test_schedule():
    with tempfile.TemporaryDirectory() as tmpdir, _client(tmpdir) as client:
        empty = client.get("/schedule").json()
        assert empty["schedule"] == []
        assert empty["cycleDuration"] == 0

        _post(client, "Спасибо, мама")
        _post(client, "Спасибо, папа", duration=8)
        doc = client.get("/schedule").json()
        assert doc["totalMessages"] == 2
        assert doc["cycleDuration"] == 10000
        assert [e["showTime"] for e in doc["schedule"]] == [0, 5000]
        assert [e["duration"] for e in doc["schedule"]] == [4000, 8000]


def test_time():
    with tempfile.TemporaryDirectory() as tmpdir, _client(tmpdir) as client:
        data = client.get("/time").json()
        assert data["serverTime"] > 0
        assert data["timestamp"]


def test_health():
    with tempfile.TemporaryDirectory() as tmpdir, _client(tmpdir) as client:
        data = client.get("/health").json()
        assert data["status"] == "ok"
        assert data["database"] is True


# --- WebSocket ---


def test_socket_receives_broadcast():
    with tempfile.TemporaryDirectory() as tmpdir, _client(tmpdir) as client:
        with client.websocket_connect("/socket") as ws:
            created = _post(client).json()["message"]
            event = ws.receive_json()
            assert event["type"] == "message:new"
            assert event["data"]["id"] == created["id"]


def test_socket_sync_request():
    with tempfile.TemporaryDirectory() as tmpdir, _client(tmpdir) as client:
        created = _post(client).json()["message"]
        with client.websocket_connect("/socket") as ws:
            ws.send_json({"type": "sync:request"})
            reply = ws.receive_json()
            assert reply["type"] == "sync:response"
            assert [m["id"] for m in reply["data"]["messages"]] == [created["id"]]


def test_socket_submission_rejected():
    with tempfile.TemporaryDirectory() as tmpdir, _client(tmpdir) as client:
        with client.websocket_connect("/socket") as ws:
            ws.send_text("not json")
            ws.send_json({"type": "message:new", "data": {"text": "дурак", "positionX": 1, "positionY": 1}})
            reply = ws.receive_json()
            assert reply == {"type": "message:error", "data": {"error": REASON_PROFANITY}}


def test_socket_submission_broadcast():
    with tempfile.TemporaryDirectory() as tmpdir, _client(tmpdir) as client:
        with client.websocket_connect("/socket") as ws:
            ws.send_json({"type": "message:new", "data": {"text": "Спасибо", "positionX": 1, "positionY": 1}})
            event = ws.receive_json()
            assert event["type"] == "message:new"
            assert event["data"]["text"] == "Спасибо"
        assert len(client.get("/messages").json()["messages"]) == 1


def test_socket_out_of_range_position_keeps_connection():
    with tempfile.TemporaryDirectory() as tmpdir, _client(tmpdir) as client:
        with client.websocket_connect("/socket") as ws:
            ws.send_json({"type": "message:new", "data": {"text": "Спасибо", "positionX": 1e20, "positionY": 1}})
            reply = ws.receive_json()
            assert reply == {"type": "message:error", "data": {"error": "Позиции X и Y обязательны"}}

            ws.send_json({"type": "sync:request"})
            assert ws.receive_json()["type"] == "sync:response"


def test_socket_unexpected_error_reported(monkeypatch):
    with tempfile.TemporaryDirectory() as tmpdir, _client(tmpdir) as client:
        def boom(*args, **kwargs):
            raise OverflowError("too large")

        monkeypatch.setattr(client.app.state.gratitude.store, "create", boom)
        with client.websocket_connect("/socket") as ws:
            ws.send_json({"type": "message:new", "data": {"text": "Спасибо", "positionX": 1, "positionY": 1}})
            reply = ws.receive_json()
            assert reply == {"type": "message:error", "data": {"error": "Ошибка при отправке сообщения"}}
