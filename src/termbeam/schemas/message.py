"""
Message Schema Definitions

This module defines the message structures for chat message operations
including sending messages and receiving message notifications.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar, Dict

from .base import BaseRequest, BaseResponse

# Literal text frame the server sends as a keep-alive
HEARTBEAT_FRAME = "ping"


class MessageType(Enum):
    """Kind of message delivered over the room stream."""

    CHAT = "message"
    USER_JOINED = "userJoined"
    USER_LEFT = "userLeft"
    SYSTEM = "system"


@dataclass(frozen=True)
class Message(BaseRequest, BaseResponse):
    """
    A message received from a room.

    Messages are immutable once received.

    Attributes:
        id: Unique identifier for the message
        room_id: ID of the room the message belongs to
        user_id: ID of the sender
        username: Username of the sender
        content: The message content
        timestamp: ISO 8601 timestamp assigned by the server
        type: Kind of message (chat, join/leave notice, system)
    """

    id: str
    room_id: str
    user_id: str
    username: str
    content: str
    timestamp: str
    type: MessageType = MessageType.CHAT

    _WIRE_NAMES: ClassVar[Dict[str, str]] = {
        "room_id": "roomId",
        "user_id": "userId",
    }

    @classmethod
    def _from_data(cls, data: Dict[str, Any]) -> "Message":
        """Create from response data dictionary."""
        return cls(
            id=str(data["id"]),
            room_id=str(data["roomId"]),
            user_id=str(data["userId"]),
            username=str(data["username"]),
            content=str(data["content"]),
            timestamp=str(data["timestamp"]),
            type=MessageType(data["type"]),
        )


@dataclass
class SendMessageRequest(BaseRequest):
    """
    Outbound chat message written to the room stream.

    Attributes:
        content: The message content
    """

    content: str
