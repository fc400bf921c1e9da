"""Schedule and clock router -- the shared display cycle and server time."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from gratitude.schedule.cycle import build_schedule, now_ms
from web.backend.app.models.api import ErrorResponse, ScheduleResponse, TimeResponse
from web.backend.app.state import AppState, get_state

logger = logging.getLogger(__name__)

router = APIRouter(tags=["schedule"])


@router.get(
    "/schedule",
    response_model=ScheduleResponse,
    responses={500: {"model": ErrorResponse}},
    summary="Cyclic display schedule",
)
async def get_schedule(state: AppState = Depends(get_state)):
    """Every active message laid out on one repeating cycle."""
    try:
        messages = state.store.list_active()
    except SQLAlchemyError:
        logger.exception("Error fetching schedule")
        return JSONResponse({"error": "Ошибка при получении расписания"}, status_code=500)
    return build_schedule(messages)


@router.get("/time", response_model=TimeResponse, summary="Server clock")
async def get_time():
    """Server time for client clock-offset estimation."""
    server_time = now_ms()
    return TimeResponse(
        serverTime=server_time,
        timestamp=datetime.fromtimestamp(server_time / 1000, tz=timezone.utc).isoformat(),
    )
