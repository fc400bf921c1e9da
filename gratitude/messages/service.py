"""Submission pipeline shared by the HTTP endpoint and the socket handler."""

from __future__ import annotations

import logging
import math
from typing import Any

from gratitude.broadcast.channel import MESSAGE_DELETED, MESSAGE_NEW, BroadcastChannel
from gratitude.messages.models import Message
from gratitude.messages.store import MessageStore
from gratitude.moderation.moderator import Moderator

logger = logging.getLogger(__name__)

REASON_TEXT_REQUIRED = "Текст сообщения обязателен"
REASON_POSITION_REQUIRED = "Позиции X и Y обязательны"

# Positions must fit a 32-bit INTEGER column.
MAX_POSITION = 2**31 - 1


class SubmissionRejected(Exception):
    """A submission failed shape validation or moderation."""

    def __init__(self, reason: str, violation_type: str = "validation") -> None:
        super().__init__(reason)
        self.reason = reason
        self.violation_type = violation_type


def _is_position(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value) and abs(value) <= MAX_POSITION


class MessageService:
    """Validate, moderate, persist and broadcast messages."""

    def __init__(
        self,
        store: MessageStore,
        moderator: Moderator,
        channel: BroadcastChannel,
    ) -> None:
        self.store = store
        self.moderator = moderator
        self.channel = channel

    async def submit(self, payload: Any) -> Message:
        """Accept a raw submission payload.

        Raises :class:`SubmissionRejected` for user errors.  Storage errors
        propagate to the caller.
        """
        if not isinstance(payload, dict):
            raise SubmissionRejected(REASON_TEXT_REQUIRED)
        text = payload.get("text")
        if not text or not isinstance(text, str):
            raise SubmissionRejected(REASON_TEXT_REQUIRED)
        position_x = payload.get("positionX")
        position_y = payload.get("positionY")
        if not _is_position(position_x) or not _is_position(position_y):
            raise SubmissionRejected(REASON_POSITION_REQUIRED)

        verdict = self.moderator.validate(text)
        if not verdict.accepted:
            logger.info("Submission rejected (%s)", verdict.violation_type)
            raise SubmissionRejected(verdict.reason, verdict.violation_type)

        message = self.store.create(
            text.strip(),
            round(position_x),
            round(position_y),
            payload.get("duration"),
        )
        logger.info("Message %s created", message.id)
        await self.channel.publish(MESSAGE_NEW, message.to_event())
        return message

    async def delete(self, message_id: str) -> bool:
        if not self.store.delete(message_id):
            return False
        logger.info("Message %s deleted", message_id)
        await self.channel.publish(MESSAGE_DELETED, {"id": message_id})
        return True
