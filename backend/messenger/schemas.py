from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class MessageIn(BaseModel):
    """Body of POST /messages and payload of the send_message event."""
    model_config = ConfigDict(populate_by_name=True)

    chat_id: str = Field(..., alias="chatId", min_length=1)
    sender: str
    text: str
    # Display time; filled with the server's local HH:MM when omitted
    time: Optional[str] = None


class StoredMessage(BaseModel):
    """A message after persistence, as returned to clients."""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: int
    chat_id: str = Field(..., alias="chatId")
    sender: str
    text: str
    time: str
    created_at: datetime = Field(..., alias="createdAt")

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class RoomRef(BaseModel):
    """Object form of the room id accepted by join_chat and clear_chat."""
    model_config = ConfigDict(populate_by_name=True)

    chat_id: str = Field(..., alias="chatId", min_length=1)


class TypingIn(BaseModel):
    """Typing indicator; keys other than chatId are relayed untouched."""
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    chat_id: str = Field(..., alias="chatId", min_length=1)


class Envelope(BaseModel):
    """Frame exchanged on the push channel in both directions."""
    event: str
    data: Any = None


class ErrorResponse(BaseModel):
    error: str
