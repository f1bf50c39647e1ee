"""
Member Schema Definitions

This module defines the message structures for room membership operations
including joining and listing the users of a room.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .base import BaseRequest, BaseResponse
from .room import RoomInfo


@dataclass
class JoinRoomRequest(BaseRequest):
    """
    Request to join an existing room.

    Attributes:
        username: Username of the joining user
        password: Room password, if the room has one
    """

    username: str
    password: Optional[str] = None


@dataclass
class UserInfo(BaseResponse):
    """
    A user present in a room.

    Attributes:
        id: Server-assigned user ID
        username: Display name
        joined_at: ISO 8601 timestamp of the join
    """

    id: str
    username: str
    joined_at: str = ""

    @classmethod
    def _from_data(cls, data: Dict[str, Any]) -> "UserInfo":
        """Create from response data dictionary."""
        return cls(
            id=data["id"],
            username=data["username"],
            joined_at=data.get("joinedAt", ""),
        )


@dataclass
class JoinRoomResponse(BaseResponse):
    """
    Response indicating successful room join.

    Attributes:
        user_id: ID assigned to this user for the room (used by the
                 WebSocket endpoint and by leave requests)
        room: The joined room
        users: Users in the room, including the one who just joined
    """

    user_id: str
    room: RoomInfo
    users: List[UserInfo] = field(default_factory=list)

    @classmethod
    def _from_data(cls, data: Dict[str, Any]) -> "JoinRoomResponse":
        """Create from response data dictionary."""
        return cls(
            user_id=data["userId"],
            room=RoomInfo.from_dict(data["room"]),
            users=UserInfo.list_from_data(data.get("users", [])),
        )
