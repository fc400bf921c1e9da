"""Relational message store built on SQLAlchemy.

The store owns one table (``messages``).  The schema is created by
:meth:`MessageStore.migrate`, which the application runs once at startup
before any request is served.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from pathlib import Path
from typing import Optional

from sqlalchemy import create_engine, delete, select, text, update
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker

from gratitude.messages.duration import normalize_duration
from gratitude.messages.models import Base, Message, MessageRow, new_message_id, utcnow

logger = logging.getLogger(__name__)

DEFAULT_LIST_LIMIT = 100
MAX_LIST_LIMIT = 1000
DEFAULT_MAX_AGE = timedelta(hours=1)


def _engine_for(url: str) -> Engine:
    parsed = make_url(url)
    if parsed.get_backend_name() == "sqlite":
        if parsed.database and parsed.database != ":memory:":
            Path(parsed.database).parent.mkdir(parents=True, exist_ok=True)
        return create_engine(url, connect_args={"check_same_thread": False})
    return create_engine(
        url,
        pool_size=10,
        max_overflow=20,
        pool_timeout=30,
        pool_pre_ping=True,
        pool_recycle=1800,
    )


class MessageStore:
    """CRUD over the ``messages`` table."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        self._session_factory = sessionmaker(bind=engine, expire_on_commit=False)

    @classmethod
    def from_url(cls, url: str) -> MessageStore:
        return cls(_engine_for(url))

    def _session(self) -> Session:
        return self._session_factory()

    # -- lifecycle -----------------------------------------------------------

    def migrate(self) -> None:
        """Create the table and its indexes if they do not exist yet."""
        Base.metadata.create_all(bind=self.engine)
        logger.info("Message table ready (%s)", self.engine.url.render_as_string(hide_password=True))

    def ping(self) -> bool:
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except Exception:
            logger.warning("Database ping failed", exc_info=True)
            return False

    def dispose(self) -> None:
        self.engine.dispose()

    # -- writes --------------------------------------------------------------

    def create(
        self,
        text: str,
        position_x: Optional[int] = None,
        position_y: Optional[int] = None,
        duration: Optional[float] = None,
    ) -> Message:
        """Insert a message and return it.  *duration* is normalized."""
        row = MessageRow(
            id=new_message_id(),
            text=text,
            created_at=utcnow(),
            is_active=True,
            position_x=position_x,
            position_y=position_y,
            duration=normalize_duration(duration),
        )
        with self._session() as session, session.begin():
            session.add(row)
        return Message.from_row(row)

    def delete(self, message_id: str) -> bool:
        """Hard-delete a message.  Returns False when it does not exist."""
        with self._session() as session, session.begin():
            result = session.execute(delete(MessageRow).where(MessageRow.id == message_id))
            return result.rowcount > 0

    def deactivate_older_than(self, max_age: timedelta = DEFAULT_MAX_AGE) -> int:
        """Flip ``is_active`` off for messages older than *max_age*."""
        cutoff = utcnow() - max_age
        with self._session() as session, session.begin():
            result = session.execute(
                update(MessageRow)
                .where(MessageRow.is_active.is_(True), MessageRow.created_at < cutoff)
                .values(is_active=False)
            )
            count = result.rowcount or 0
        if count:
            logger.info("Deactivated %d message(s) older than %s", count, max_age)
        return count

    # -- reads ---------------------------------------------------------------

    def get(self, message_id: str) -> Optional[Message]:
        with self._session() as session:
            row = session.get(MessageRow, message_id)
            return Message.from_row(row) if row is not None else None

    def list_recent(self, limit: int = DEFAULT_LIST_LIMIT) -> list[Message]:
        """Active messages, newest first."""
        if limit < 1:
            limit = DEFAULT_LIST_LIMIT
        limit = min(limit, MAX_LIST_LIMIT)
        stmt = (
            select(MessageRow)
            .where(MessageRow.is_active.is_(True))
            .order_by(MessageRow.created_at.desc())
            .limit(limit)
        )
        with self._session() as session:
            return [Message.from_row(r) for r in session.scalars(stmt)]

    def list_active(self) -> list[Message]:
        """Active messages, oldest first (the display cycle order)."""
        stmt = (
            select(MessageRow)
            .where(MessageRow.is_active.is_(True))
            .order_by(MessageRow.created_at.asc(), MessageRow.id.asc())
        )
        with self._session() as session:
            return [Message.from_row(r) for r in session.scalars(stmt)]

    def list_since(self, seconds: float = 30) -> list[Message]:
        """Active messages created within the last *seconds*, newest first."""
        cutoff = utcnow() - timedelta(seconds=seconds)
        stmt = (
            select(MessageRow)
            .where(MessageRow.is_active.is_(True), MessageRow.created_at > cutoff)
            .order_by(MessageRow.created_at.desc())
        )
        with self._session() as session:
            return [Message.from_row(r) for r in session.scalars(stmt)]
