"""Messages router -- create, list and delete gratitude messages."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from gratitude.messages.service import SubmissionRejected
from gratitude.messages.store import DEFAULT_LIST_LIMIT
from web.backend.app.models.api import (
    ErrorResponse,
    MessageCreateResponse,
    MessageListItem,
    MessageListResponse,
    MessageOut,
    SuccessResponse,
)
from web.backend.app.state import AppState, get_state

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/messages", tags=["messages"])

_ERROR_CREATE = "Ошибка при создании сообщения"
_ERROR_LIST = "Ошибка при получении сообщений"
_ERROR_DELETE = "Ошибка при удалении сообщения"
_ERROR_BAD_JSON = "Некорректный формат запроса"
_ERROR_ID_REQUIRED = "Идентификатор сообщения обязателен"
_ERROR_NOT_FOUND = "Сообщение не найдено"


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


@router.post(
    "",
    status_code=201,
    response_model=MessageCreateResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    summary="Submit a gratitude message",
)
async def create_message(request: Request, state: AppState = Depends(get_state)):
    """Validate, moderate, store and broadcast a message.

    Body: ``{text, positionX, positionY, duration?}``.  Shape errors and
    moderation rejections return 400 with a user-facing reason.
    """
    try:
        payload = await request.json()
    except ValueError:
        return _error(400, _ERROR_BAD_JSON)

    try:
        message = await state.service.submit(payload)
    except SubmissionRejected as exc:
        return _error(400, exc.reason)
    except Exception:
        logger.exception("Error creating message")
        return _error(500, _ERROR_CREATE)

    return MessageCreateResponse(message=MessageOut.from_message(message))


@router.get(
    "",
    response_model=MessageListResponse,
    responses={500: {"model": ErrorResponse}},
    summary="List recent messages",
)
async def list_messages(
    limit: int = Query(DEFAULT_LIST_LIMIT, description="Maximum number of messages"),
    state: AppState = Depends(get_state),
):
    """Active messages, newest first."""
    try:
        messages = state.store.list_recent(limit)
    except SQLAlchemyError:
        logger.exception("Error fetching messages")
        return _error(500, _ERROR_LIST)
    return MessageListResponse(messages=[MessageListItem.from_message(m) for m in messages])


@router.delete(
    "",
    response_model=SuccessResponse,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
    summary="Delete a message by id",
)
async def delete_message(
    id: Optional[str] = Query(None, description="Message id"),
    state: AppState = Depends(get_state),
):
    """Hard-delete a message and tell every viewer to drop it."""
    if not id:
        return _error(400, _ERROR_ID_REQUIRED)
    try:
        deleted = await state.service.delete(id)
    except SQLAlchemyError:
        logger.exception("Error deleting message %s", id)
        return _error(500, _ERROR_DELETE)
    if not deleted:
        return _error(404, _ERROR_NOT_FOUND)
    return SuccessResponse()
