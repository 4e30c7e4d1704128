"""Models for chat room handling."""
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class MessageType(str, Enum):
    """Kind of a chat message."""
    CHAT = "CHAT"
    ENTER = "ENTER"  # reserved for system notices
    LEAVE = "LEAVE"  # reserved for system notices


class ConnectionState(str, Enum):
    """Lifecycle state of a transport channel."""
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED = "closed"
    ERRORED = "errored"

    @property
    def is_terminal(self) -> bool:
        return self in (ConnectionState.CLOSED, ConnectionState.ERRORED)


def utc_timestamp() -> str:
    """Current UTC time as ISO-8601 with millisecond precision and a ``Z`` suffix."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class ChatMessage(BaseModel):
    """A single message in a chat room.

    Field names are snake_case in Python and camelCase on the wire
    (``chatRoomId``, ``messageType``, ``sendAt``, ``clientMessageId``).
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )

    chat_room_id: str
    sender: str
    message_type: MessageType = MessageType.CHAT
    message: str
    send_at: str = Field(default_factory=utc_timestamp, description="ISO-8601, assigned by the author")
    client_message_id: Optional[str] = Field(
        default=None, description="Client-generated id shared by both send paths"
    )

    @field_validator("chat_room_id", mode="before")
    @classmethod
    def _room_id_to_str(cls, value: Any) -> Any:
        if isinstance(value, int):
            return str(value)
        return value

    @classmethod
    def compose(
        cls,
        room_id: str,
        sender: str,
        text: str,
        sent_at: Optional[str] = None,
    ) -> "ChatMessage":
        """Build an outbound CHAT message with a fresh client message id."""
        return cls(
            chat_room_id=room_id,
            sender=sender,
            message_type=MessageType.CHAT,
            message=text,
            send_at=sent_at or utc_timestamp(),
            client_message_id=str(uuid4()),
        )

    @classmethod
    def from_wire(cls, data: Any) -> "ChatMessage":
        """Validate one decoded JSON frame or backlog entry."""
        return cls.model_validate(data)

    def to_wire(self) -> dict:
        """camelCase dict for JSON bodies and frames. Omits an unset client id."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    @property
    def sent_at_datetime(self) -> Optional[datetime]:
        """``send_at`` parsed as datetime, None if the peer sent something unparsable."""
        try:
            return datetime.fromisoformat(self.send_at)
        except ValueError:
            return None


class ChatUser(BaseModel):
    """Identity of the logged-in user as returned by the backend."""
    model_config = ConfigDict(extra="ignore")

    name: str


@dataclass
class SendOutcome:
    """Result of dispatching one authored message over both send paths."""
    message: ChatMessage
    persisted: bool = False
    broadcast: bool = False
    input_cleared: bool = False
    persist_error: Optional[str] = None
    broadcast_error: Optional[str] = None

    @property
    def delivered(self) -> bool:
        """True when at least one path accepted the message."""
        return self.persisted or self.broadcast
