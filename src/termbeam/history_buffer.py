"""
History Buffer for Session Message Replay

This module provides a bounded, insertion-ordered log of the messages a
session has received. It backs the /history command and is discarded when
the session ends.

Architecture:
    - Backed by collections.deque with a fixed maxlen (O(1) append)
    - Oldest messages are evicted first once capacity is exceeded
    - Snapshots are copies, so callers can iterate while messages arrive

Usage:
    history = HistoryBuffer()
    history.append(message)
    recent = history.snapshot()
"""

import logging
from collections import deque
from typing import Deque, List

from .config import MAX_MESSAGE_HISTORY
from .schemas import Message

logger = logging.getLogger(__name__)

# Maximum number of messages to keep per session
DEFAULT_HISTORY_CAPACITY = MAX_MESSAGE_HISTORY


class HistoryBuffer:
    """
    Fixed-capacity FIFO of received messages.

    Attributes:
        capacity: Maximum number of messages retained
    """

    def __init__(self, capacity: int = DEFAULT_HISTORY_CAPACITY):
        """
        Initialize the history buffer.

        Args:
            capacity: Maximum number of messages to keep. Older messages
                      are dropped when exceeded.

        Raises:
            ValueError: If capacity is not a positive integer
        """
        if capacity < 1:
            raise ValueError("capacity must be a positive integer")
        self._messages: Deque[Message] = deque(maxlen=capacity)

    @property
    def capacity(self) -> int:
        """Maximum number of messages retained."""
        return self._messages.maxlen

    def append(self, message: Message) -> None:
        """
        Add a message, evicting the oldest one when the buffer is full.

        Args:
            message: The received message
        """
        if len(self._messages) == self.capacity:
            logger.debug(
                "History full, evicting oldest message %s",
                self._messages[0].id,
            )
        self._messages.append(message)

    def snapshot(self) -> List[Message]:
        """
        Get the buffered messages, oldest first.

        Returns:
            List of messages in arrival order. Empty list if nothing has
            arrived yet.
        """
        return list(self._messages)

    def clear(self) -> None:
        """Drop every buffered message."""
        self._messages.clear()

    def __len__(self) -> int:
        return len(self._messages)
