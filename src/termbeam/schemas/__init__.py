"""
Schemas Package

This package contains the wire schemas shared by the REST room directory and
the WebSocket room stream. Schemas are organized by category: room, member,
and message.

The package provides base classes (BaseRequest, BaseResponse) that eliminate
code duplication for serialization and deserialization methods.
"""

from .base import BaseRequest, BaseResponse, ErrorResponse
from .room import CreateRoomRequest, RoomInfo
from .member import JoinRoomRequest, JoinRoomResponse, UserInfo
from .message import (
    HEARTBEAT_FRAME,
    Message,
    MessageType,
    SendMessageRequest,
)

__all__ = [
    # Base classes
    "BaseRequest",
    "BaseResponse",
    "ErrorResponse",
    # Room schemas
    "CreateRoomRequest",
    "RoomInfo",
    # Member schemas
    "JoinRoomRequest",
    "JoinRoomResponse",
    "UserInfo",
    # Message schemas
    "HEARTBEAT_FRAME",
    "Message",
    "MessageType",
    "SendMessageRequest",
]
