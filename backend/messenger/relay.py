"""
Room relay.

Push-channel frames are parsed into command values by parse_command() and
handed to RoomRelay.dispatch(), which persists through the message store and
fans results out to the room's subscribers. The HTTP handlers use
RoomRelay.submit() and RoomRelay.history() directly.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Union

from pydantic import ValidationError

from messenger.errors import StorageError
from messenger.schemas import Envelope, MessageIn, RoomRef, StoredMessage, TypingIn
from messenger.storage import MessageStore, NewMessage
from messenger.websocket_manager import Connection, ConnectionManager

logger = logging.getLogger(__name__)

# Inbound events
JOIN_CHAT = "join_chat"
SEND_MESSAGE = "send_message"
TYPING = "typing"
CLEAR_CHAT = "clear_chat"

# Outbound events
JOINED_CHAT = "joined_chat"
NEW_MESSAGE = "new_message"
USER_TYPING = "user_typing"
CHAT_CLEARED = "chat_cleared"
ERROR = "error"


@dataclass(frozen=True)
class JoinRoom:
    chat_id: str


@dataclass(frozen=True)
class SubmitMessage:
    message: MessageIn


@dataclass(frozen=True)
class Typing:
    chat_id: str
    # Original payload, relayed as-is
    payload: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ClearRoom:
    chat_id: str


Command = Union[JoinRoom, SubmitMessage, Typing, ClearRoom]


class InvalidCommand(Exception):
    def __init__(self, event: Any, reason: str):
        self.event = event
        self.reason = reason
        super().__init__(f"{reason}: {event!r}")


def _room_id(data: Any) -> str:
    # Rooms are sent either as a bare id or as {"chatId": ...}
    if isinstance(data, str) and data:
        return data
    return RoomRef.model_validate(data).chat_id


def parse_command(frame: Any) -> Command:
    """Turn a decoded {"event", "data"} frame into a command."""
    try:
        envelope = Envelope.model_validate(frame)
    except ValidationError as e:
        raise InvalidCommand(None, "Invalid payload") from e

    event = envelope.event
    data = envelope.data
    try:
        if event == JOIN_CHAT:
            return JoinRoom(_room_id(data))
        if event == SEND_MESSAGE:
            return SubmitMessage(MessageIn.model_validate(data))
        if event == TYPING:
            typing = TypingIn.model_validate(data)
            return Typing(typing.chat_id, dict(data))
        if event == CLEAR_CHAT:
            return ClearRoom(_room_id(data))
    except ValidationError as e:
        raise InvalidCommand(event, "Invalid payload") from e

    raise InvalidCommand(event, "Unknown event")


def current_time() -> str:
    """Local wall-clock time as HH:MM, the default display time."""
    return datetime.now().strftime("%H:%M")


class RoomRelay:
    def __init__(self, store: MessageStore, manager: ConnectionManager):
        self.store = store
        self.manager = manager
        self._handlers = {
            JoinRoom: self._join,
            SubmitMessage: self._submit,
            Typing: self._typing,
            ClearRoom: self._clear,
        }

    async def submit(self, message: MessageIn) -> StoredMessage:
        """Persist an inbound message and return the stored record."""
        return await self.store.save(NewMessage(
            chat_id=message.chat_id,
            sender=message.sender,
            text=message.text,
            time=message.time or current_time(),
        ))

    async def history(self, chat_id: str) -> List[StoredMessage]:
        return await self.store.list(chat_id)

    async def dispatch(self, connection: Connection, command: Command):
        handler = self._handlers[type(command)]
        await handler(connection, command)

    async def reject(self, connection: Connection, error: InvalidCommand):
        logger.info(f"Rejected frame from {connection.id}: {error}")
        await self.manager.send(connection, ERROR, {"error": error.reason, "event": error.event})

    async def _join(self, connection: Connection, command: JoinRoom):
        self.manager.join(connection, command.chat_id)
        await self.manager.send(connection, JOINED_CHAT, command.chat_id)

    async def _submit(self, connection: Connection, command: SubmitMessage):
        try:
            stored = await self.submit(command.message)
        except StorageError:
            logger.exception(f"Failed to save message for chat {command.message.chat_id}")
            await self.manager.send(connection, ERROR, {
                "error": "Failed to save message",
                "chatId": command.message.chat_id,
            })
            return
        await self.manager.broadcast(stored.chat_id, NEW_MESSAGE, stored.to_wire())

    async def _typing(self, connection: Connection, command: Typing):
        await self.manager.broadcast(command.chat_id, USER_TYPING, command.payload, exclude=connection)

    async def _clear(self, connection: Connection, command: ClearRoom):
        try:
            await self.store.clear(command.chat_id)
        except StorageError:
            logger.exception(f"Failed to clear chat {command.chat_id}")
            await self.manager.send(connection, ERROR, {
                "error": "Failed to clear messages",
                "chatId": command.chat_id,
            })
            return
        logger.info(f"Chat {command.chat_id} cleared by {connection.id}")
        await self.manager.broadcast(command.chat_id, CHAT_CLEARED, command.chat_id)
