"""
Room Schema Definitions

This module defines the message structures for room-related operations
including room creation, listing, and room information.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from .base import BaseRequest, BaseResponse


@dataclass
class CreateRoomRequest(BaseRequest):
    """
    Request to create a new room.

    Attributes:
        name: Name of the room to create
        password: Optional room password (omitted from the body when None)
    """

    name: str
    password: Optional[str] = None


@dataclass
class RoomInfo(BaseResponse):
    """
    Information about a chat room.

    Attributes:
        id: Unique identifier for the room
        name: Name of the room
        has_password: Whether joining requires a password
        user_count: Number of users currently in the room
        created_at: ISO 8601 timestamp when the room was created
    """

    id: str
    name: str
    has_password: bool
    user_count: int
    created_at: str

    @classmethod
    def _from_data(cls, data: Dict[str, Any]) -> "RoomInfo":
        """Create from response data dictionary."""
        return cls(
            id=data["id"],
            name=data["name"],
            has_password=bool(data.get("hasPassword", False)),
            user_count=int(data.get("userCount", 0)),
            created_at=data.get("createdAt", ""),
        )
