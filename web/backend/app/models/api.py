"""Pydantic models for API request/response serialization.

These models mirror the gratitude dataclasses and provide proper JSON
serialization for the FastAPI endpoints.  Field names follow the wire
format used by the display clients (camelCase).
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from gratitude.messages.models import Message


# ---------------------------------------------------------------------------
# Generic envelopes
# ---------------------------------------------------------------------------


class ErrorResponse(BaseModel):
    """Body of every 4xx/5xx response."""

    error: str


class SuccessResponse(BaseModel):
    success: bool = True


# ---------------------------------------------------------------------------
# Message models
# ---------------------------------------------------------------------------


class MessageOut(BaseModel):
    """Mirrors gratitude.messages.models.Message (creation view)."""

    id: str
    text: str
    positionX: Optional[int] = None
    positionY: Optional[int] = None
    duration: Optional[float] = None

    @classmethod
    def from_message(cls, m: Message) -> MessageOut:
        return cls(**m.to_event())


class MessageListItem(MessageOut):
    createdAt: Optional[str] = None

    @classmethod
    def from_message(cls, m: Message) -> MessageListItem:
        return cls(**m.to_listing())


class MessageCreateResponse(BaseModel):
    success: bool = True
    message: MessageOut


class MessageListResponse(BaseModel):
    success: bool = True
    messages: list[MessageListItem] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Schedule / clock models
# ---------------------------------------------------------------------------


class ScheduleEntry(BaseModel):
    id: str
    text: str
    duration: int
    showTime: int
    position: int


class ScheduleResponse(BaseModel):
    """Mirrors gratitude.schedule.cycle.build_schedule output."""

    schedule: list[ScheduleEntry] = Field(default_factory=list)
    totalMessages: int = 0
    cycleDuration: int = 0
    messageInterval: int = 0
    messageDuration: int = 0
    serverTime: int


class TimeResponse(BaseModel):
    serverTime: int
    timestamp: str


class HealthResponse(BaseModel):
    status: str = "ok"
    timestamp: str
    database: bool = True
    subscribers: int = 0
