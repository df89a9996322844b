"""
Message storage.

Two interchangeable stores implement the same contract: SqlMessageStore keeps
messages in a SQL database through the async SQLAlchemy engine, and
MemoryMessageStore keeps them in a list for the lifetime of the process.
open_store() picks one at startup.
"""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import select, delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from messenger.config import Settings
from messenger.database import make_engine, make_session_factory, create_schema
from messenger.errors import StorageError
from messenger.models.message import Message
from messenger.schemas import StoredMessage

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class NewMessage:
    """A message that has not been persisted yet."""
    chat_id: str
    sender: str
    text: str
    time: str
    created_at: Optional[datetime] = None


class MessageStore(ABC):
    kind = "abstract"

    @abstractmethod
    async def save(self, message: NewMessage) -> StoredMessage:
        """Persist a message, assigning created_at if it is missing."""

    @abstractmethod
    async def list(self, chat_id: str) -> List[StoredMessage]:
        """Return the room's messages, oldest first."""

    @abstractmethod
    async def clear(self, chat_id: str) -> None:
        """Delete every message of the room. Clearing an empty room is a no-op."""

    async def close(self) -> None:
        pass


class MemoryMessageStore(MessageStore):
    kind = "memory"

    def __init__(self):
        self._messages: List[StoredMessage] = []
        self._next_id = 1
        self._last_created_at: Optional[datetime] = None

    async def save(self, message: NewMessage) -> StoredMessage:
        created_at = message.created_at or utcnow()
        # Keep creation times non-decreasing even if the clock steps back
        if self._last_created_at is not None and created_at < self._last_created_at:
            created_at = self._last_created_at
        self._last_created_at = created_at

        stored = StoredMessage(
            id=self._next_id,
            chat_id=message.chat_id,
            sender=message.sender,
            text=message.text,
            time=message.time,
            created_at=created_at,
        )
        self._next_id += 1
        self._messages.append(stored)
        logger.debug(f"Saved message {stored.id} to chat {stored.chat_id} (memory)")
        return stored

    async def list(self, chat_id: str) -> List[StoredMessage]:
        return [m for m in self._messages if m.chat_id == chat_id]

    async def clear(self, chat_id: str) -> None:
        self._messages = [m for m in self._messages if m.chat_id != chat_id]


class SqlMessageStore(MessageStore):
    kind = "sql"

    def __init__(self, engine: AsyncEngine):
        self.engine = engine
        self._sessions = make_session_factory(engine)

    @staticmethod
    def _to_stored(row: Message) -> StoredMessage:
        created_at = row.created_at
        # SQLite hands back naive datetimes; values are always written in UTC
        if created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=timezone.utc)
        return StoredMessage(
            id=row.id,
            chat_id=row.chat_id,
            sender=row.sender,
            text=row.text,
            time=row.time,
            created_at=created_at,
        )

    async def save(self, message: NewMessage) -> StoredMessage:
        row = Message(
            chat_id=message.chat_id,
            sender=message.sender,
            text=message.text,
            time=message.time,
            created_at=message.created_at or utcnow(),
        )
        try:
            async with self._sessions() as session:
                session.add(row)
                await session.commit()
                await session.refresh(row)
        except (SQLAlchemyError, OSError) as e:
            raise StorageError("save", str(e)) from e

        logger.debug(f"Saved message {row.id} to chat {row.chat_id}")
        return self._to_stored(row)

    async def list(self, chat_id: str) -> List[StoredMessage]:
        try:
            async with self._sessions() as session:
                result = await session.execute(
                    select(Message)
                    .where(Message.chat_id == chat_id)
                    .order_by(Message.created_at.asc(), Message.id.asc())
                )
                rows = result.scalars().all()
        except (SQLAlchemyError, OSError) as e:
            raise StorageError("list", str(e)) from e
        return [self._to_stored(row) for row in rows]

    async def clear(self, chat_id: str) -> None:
        try:
            async with self._sessions() as session:
                await session.execute(delete(Message).where(Message.chat_id == chat_id))
                await session.commit()
        except (SQLAlchemyError, OSError) as e:
            raise StorageError("clear", str(e)) from e

    async def close(self) -> None:
        await self.engine.dispose()


async def open_store(settings: Settings) -> MessageStore:
    """Pick the store for this process. Called once at startup."""
    if not settings.database_url:
        logger.warning("DATABASE_URL is not set. Using in-memory storage.")
        return MemoryMessageStore()

    try:
        engine = make_engine(settings.database_url, echo=settings.sql_echo)
    except Exception as e:
        logger.error(f"Cannot create database engine ({e}). Using in-memory storage.")
        return MemoryMessageStore()

    try:
        await create_schema(engine)
    except Exception:
        logger.exception("Database connection failed. Using in-memory storage.")
        await engine.dispose()
        return MemoryMessageStore()

    logger.info(f"Database connected ({engine.url.get_backend_name()})")
    return SqlMessageStore(engine)
