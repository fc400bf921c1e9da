"""Process-scoped application state and its FastAPI dependency.

Everything a request handler needs (store, moderator, broadcast channel,
submission service) is built once in the application lifespan and hung off
``app.state``; handlers reach it through :func:`get_state`.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import timedelta

from fastapi.requests import HTTPConnection
from sqlalchemy.exc import SQLAlchemyError

from gratitude.broadcast.channel import BroadcastChannel
from gratitude.messages.service import MessageService
from gratitude.messages.store import MessageStore
from gratitude.moderation.moderator import Moderator
from gratitude.settings import Settings

logger = logging.getLogger(__name__)


@dataclass
class AppState:
    settings: Settings
    store: MessageStore
    moderator: Moderator
    channel: BroadcastChannel
    service: MessageService

    def close(self) -> None:
        self.channel.close()
        self.store.dispose()


def build_state(settings: Settings) -> AppState:
    """Create the state objects and run the schema migration once."""
    store = MessageStore.from_url(settings.database_url)
    store.migrate()
    moderator = Moderator(max_length=settings.max_length)
    channel = BroadcastChannel()
    return AppState(
        settings=settings,
        store=store,
        moderator=moderator,
        channel=channel,
        service=MessageService(store, moderator, channel),
    )


def get_state(conn: HTTPConnection) -> AppState:
    """FastAPI dependency returning the running application's state."""
    return conn.app.state.gratitude


async def run_sweeper(state: AppState) -> None:
    """Deactivate old messages every ``sweep_interval`` seconds until cancelled."""
    interval = state.settings.sweep_interval
    max_age = timedelta(seconds=state.settings.max_age)
    while True:
        await asyncio.sleep(interval)
        try:
            state.store.deactivate_older_than(max_age)
        except SQLAlchemyError:
            logger.exception("Deactivation sweep failed")
