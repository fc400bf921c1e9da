"""Message entity and its table mapping."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import Boolean, DateTime, Float, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_message_id() -> str:
    return str(uuid.uuid4())


class Base(DeclarativeBase):
    pass


class MessageRow(Base):
    """One accepted gratitude message."""

    __tablename__ = "messages"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_message_id)
    text: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, index=True
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, index=True)
    # Advisory placement hint; every viewer recomputes its own layout.
    position_x: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    position_y: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    duration: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    def __repr__(self) -> str:
        return f"MessageRow(id={self.id!r}, text={self.text[:30]!r}, active={self.is_active})"


@dataclass
class Message:
    """Detached view of a stored message."""

    id: str
    text: str
    created_at: datetime
    is_active: bool = True
    position_x: Optional[int] = None
    position_y: Optional[int] = None
    duration: Optional[float] = None

    @classmethod
    def from_row(cls, row: MessageRow) -> Message:
        created = row.created_at
        # SQLite hands datetimes back without tzinfo; they are stored as UTC.
        if created is not None and created.tzinfo is None:
            created = created.replace(tzinfo=timezone.utc)
        return cls(
            id=row.id,
            text=row.text,
            created_at=created,
            is_active=row.is_active,
            position_x=row.position_x,
            position_y=row.position_y,
            duration=row.duration,
        )

    def to_event(self) -> dict[str, Any]:
        """Payload broadcast to viewers for a new message."""
        return {
            "id": self.id,
            "text": self.text,
            "positionX": self.position_x,
            "positionY": self.position_y,
            "duration": self.duration,
        }

    def to_listing(self) -> dict[str, Any]:
        """Payload returned by the listing endpoint."""
        data = self.to_event()
        data["createdAt"] = self.created_at.isoformat() if self.created_at else None
        return data
