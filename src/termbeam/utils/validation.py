"""
Validation Utilities

Contains utility functions for validating user input and normalising
server addresses.
"""

from typing import Optional, Tuple

# Message validation constants
MAX_MESSAGE_LENGTH = 5000
MIN_USERNAME_LENGTH = 2
MAX_USERNAME_LENGTH = 50
MIN_ROOM_NAME_LENGTH = 2
MAX_ROOM_NAME_LENGTH = 100

_USERNAME_EXTRA_CHARS = " -_"


def validate_message_content(content: str) -> Tuple[bool, Optional[str]]:
    """
    Validate message content.

    Args:
        content: The message content to validate

    Returns:
        tuple: (is_valid, error_message)
            - is_valid: True if content is valid, False otherwise
            - error_message: Error message if invalid, None if valid
    """
    if not content:
        return False, "Message content cannot be empty"

    if len(content) > MAX_MESSAGE_LENGTH:
        return (
            False,
            f"Message content too long (max {MAX_MESSAGE_LENGTH} characters)",
        )

    return True, None


def validate_username(username: str) -> Tuple[bool, Optional[str]]:
    """
    Validate a username.

    Letters, digits, spaces, dashes and underscores are accepted.

    Returns:
        tuple: (is_valid, error_message)
    """
    trimmed = username.strip()
    if not trimmed:
        return False, "Username cannot be empty"

    if not MIN_USERNAME_LENGTH <= len(trimmed) <= MAX_USERNAME_LENGTH:
        return (
            False,
            f"Username must be {MIN_USERNAME_LENGTH}-{MAX_USERNAME_LENGTH} "
            "characters",
        )

    if not all(ch.isalnum() or ch in _USERNAME_EXTRA_CHARS for ch in trimmed):
        return (
            False,
            "Username may only contain letters, digits, spaces, "
            "dashes and underscores",
        )

    return True, None


def validate_room_name(name: str) -> Tuple[bool, Optional[str]]:
    """
    Validate a room name.

    Returns:
        tuple: (is_valid, error_message)
    """
    trimmed = name.strip()
    if not trimmed:
        return False, "Room name cannot be empty"

    if not MIN_ROOM_NAME_LENGTH <= len(trimmed) <= MAX_ROOM_NAME_LENGTH:
        return (
            False,
            f"Room name must be {MIN_ROOM_NAME_LENGTH}-{MAX_ROOM_NAME_LENGTH} "
            "characters",
        )

    return True, None


def normalize_url(url: str) -> str:
    """Add an http:// scheme when missing and drop trailing slashes."""
    normalized = url.strip()
    if not normalized.startswith(("http://", "https://")):
        normalized = "http://" + normalized
    return normalized.rstrip("/")


def is_localhost(url: str) -> bool:
    """Check if the address points at this machine."""
    return "localhost" in url or "127.0.0.1" in url


def to_websocket_url(url: str) -> str:
    """Convert an http(s) base URL into the matching ws(s) URL."""
    if url.startswith("https://"):
        return "wss://" + url[len("https://"):]
    if url.startswith("http://"):
        return "ws://" + url[len("http://"):]
    return url
