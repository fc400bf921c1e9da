"""Live events router -- WebSocket and Server-Sent Events fan-out.

Both transports receive the same broadcast events (``message:new``,
``message:deleted``).  The WebSocket additionally accepts client requests:

* ``{"type": "sync:request"}`` answers ``sync:response`` with the messages
  created during the last ``sync_window`` seconds;
* ``{"type": "message:new", "data": {...}}`` submits a message through the
  same pipeline as ``POST /messages``; rejections go back to the sender only
  as ``message:error``.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from fastapi.responses import StreamingResponse
from sqlalchemy.exc import SQLAlchemyError

from gratitude.messages.service import SubmissionRejected
from web.backend.app.state import AppState, get_state

logger = logging.getLogger(__name__)

router = APIRouter(tags=["events"])

KEEPALIVE_SECONDS = 15.0

_SSE_HEADERS = {"Cache-Control": "no-cache", "Connection": "keep-alive", "X-Accel-Buffering": "no"}


def _sse(event: dict[str, Any]) -> str:
    return f"event: {event['type']}\ndata: {json.dumps(event, ensure_ascii=False)}\n\n"


@router.get("/events", summary="Server-Sent Events stream of broadcast events")
async def event_stream(state: AppState = Depends(get_state)):
    sub = state.channel.subscribe_queue()

    async def event_gen():
        try:
            yield ": connected\n\n"
            while True:
                try:
                    event = await asyncio.wait_for(sub.queue.get(), timeout=KEEPALIVE_SECONDS)
                except asyncio.TimeoutError:
                    yield ": ping\n\n"
                    continue
                yield _sse(event)
        finally:
            state.channel.unsubscribe(sub)

    return StreamingResponse(event_gen(), media_type="text/event-stream", headers=_SSE_HEADERS)


async def _handle_sync(websocket: WebSocket, state: AppState) -> None:
    try:
        messages = state.store.list_since(state.settings.sync_window)
    except SQLAlchemyError:
        logger.exception("Error syncing messages")
        await websocket.send_json({"type": "sync:error", "data": {"error": "Ошибка синхронизации"}})
        return
    await websocket.send_json(
        {"type": "sync:response", "data": {"messages": [m.to_event() for m in messages]}}
    )


async def _handle_submit(websocket: WebSocket, state: AppState, data: Any) -> None:
    try:
        await state.service.submit(data)
    except SubmissionRejected as exc:
        await websocket.send_json({"type": "message:error", "data": {"error": exc.reason}})
    except Exception:
        logger.exception("Error handling socket message")
        await websocket.send_json(
            {"type": "message:error", "data": {"error": "Ошибка при отправке сообщения"}}
        )


@router.websocket("/socket")
async def socket_endpoint(websocket: WebSocket, state: AppState = Depends(get_state)):
    await websocket.accept()
    sub = state.channel.subscribe(websocket.send_json)
    logger.info("Viewer connected: %s", sub.id)
    try:
        while True:
            raw = await websocket.receive_text()
            try:
                request = json.loads(raw)
            except json.JSONDecodeError:
                logger.debug("Ignoring malformed socket frame from %s", sub.id)
                continue
            if not isinstance(request, dict):
                continue
            kind = request.get("type")
            if kind == "sync:request":
                await _handle_sync(websocket, state)
            elif kind == "message:new":
                await _handle_submit(websocket, state, request.get("data"))
            else:
                logger.debug("Ignoring socket frame of type %r", kind)
    except WebSocketDisconnect:
        pass
    finally:
        state.channel.unsubscribe(sub)
        logger.info("Viewer disconnected: %s", sub.id)
