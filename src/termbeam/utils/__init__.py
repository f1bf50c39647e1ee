"""
Utility Functions

Input validation and server address helpers.
"""

from .validation import (
    MAX_MESSAGE_LENGTH,
    is_localhost,
    normalize_url,
    to_websocket_url,
    validate_message_content,
    validate_room_name,
    validate_username,
)

__all__ = [
    "MAX_MESSAGE_LENGTH",
    "is_localhost",
    "normalize_url",
    "to_websocket_url",
    "validate_message_content",
    "validate_room_name",
    "validate_username",
]
