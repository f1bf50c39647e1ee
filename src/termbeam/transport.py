"""
WebSocket Transport for the Room Stream

This module owns the raw WebSocket connection to a room. It never calls back
into the session: received frames and close notifications are pushed onto an
asyncio.Queue that the SessionEngine drains from its own task.

Architecture:
    - Uses WebSocket for real-time bidirectional communication
    - Supports dependency injection for the network layer (for testability)
    - One reader task per open connection feeds the event queue
"""

import asyncio
import logging
from enum import Enum
from typing import Any, Callable, Optional, Tuple

import websockets

from .errors import NotConnectedError, TransportError
from .utils.validation import to_websocket_url

logger = logging.getLogger(__name__)


class TransportEvent(Enum):
    """Kinds of events pushed onto the session's event queue."""

    FRAME = "frame"
    CLOSED = "closed"


# Items placed on the event queue: (event, payload). CLOSED carries None.
EventItem = Tuple[TransportEvent, Any]


class WebSocketTransport:
    """
    Streaming connection to one room on the chat server.

    Attributes:
        server_url: HTTP(S) base URL of the chat server
        websocket: Active WebSocket connection (None if not connected)
    """

    def __init__(
        self,
        server_url: str,
        websocket_factory: Optional[Callable] = None,
    ):
        """
        Initialize the transport.

        Args:
            server_url: HTTP(S) base URL of the chat server
            websocket_factory: Optional factory for creating WebSocket
                             connections (for dependency injection/testing)
        """
        self.server_url = server_url
        self.websocket: Optional[Any] = None
        self._websocket_factory = websocket_factory or websockets.connect
        self._reader_task: Optional[asyncio.Task] = None
        self._connected = False

    @property
    def is_connected(self) -> bool:
        """Check if the stream is currently writable."""
        return self._connected and self.websocket is not None

    def endpoint(self, room_id: str, user_id: str) -> str:
        """Build the WebSocket URL for a room membership."""
        return f"{to_websocket_url(self.server_url)}/ws/{room_id}/{user_id}"

    async def connect(
        self,
        room_id: str,
        user_id: str,
        events: "asyncio.Queue[EventItem]",
    ) -> None:
        """
        Open the room stream and start forwarding frames to ``events``.

        Args:
            room_id: ID of the joined room
            user_id: User ID returned by the join request
            events: Queue that receives (TransportEvent, payload) items

        Raises:
            TransportError: If the handshake fails
        """
        url = self.endpoint(room_id, user_id)
        try:
            logger.info("Connecting to %s...", url)
            self.websocket = await self._websocket_factory(url)
        except Exception as e:
            logger.error("Failed to connect to room stream: %s", e)
            raise TransportError(f"Failed to connect: {e}") from e

        self._connected = True
        self._reader_task = asyncio.create_task(
            self._read_frames(self.websocket, events)
        )
        logger.info("Room stream connected")

    async def _read_frames(
        self, websocket: Any, events: "asyncio.Queue[EventItem]"
    ) -> None:
        """
        Forward incoming frames until the connection closes.

        A CLOSED event is queued when the server or the network ends the
        connection. Cancellation (manual disconnect) queues nothing.
        """
        try:
            async for frame in websocket:
                events.put_nowait((TransportEvent.FRAME, frame))
        except websockets.exceptions.ConnectionClosed as e:
            logger.warning("Connection closed by server: %s", e)
        except Exception as e:
            logger.error("Error in frame reader: %s", e)

        self._connected = False
        if self.websocket is websocket:
            self.websocket = None
        events.put_nowait((TransportEvent.CLOSED, None))

    async def send(self, text: str) -> None:
        """
        Write a text frame.

        Raises:
            NotConnectedError: If the stream is not open
            TransportError: If the write fails; the transport is then
                            marked as not connected
        """
        if not self.is_connected:
            raise NotConnectedError()

        try:
            await self.websocket.send(text)
        except Exception as e:
            self._connected = False
            logger.error("Failed to send frame: %s", e)
            raise TransportError(f"Failed to send message: {e}") from e

    async def disconnect(self) -> None:
        """Stop the frame reader and close the connection."""
        self._connected = False

        if self._reader_task and not self._reader_task.done():
            self._reader_task.cancel()
            try:
                await self._reader_task
            except asyncio.CancelledError:
                pass
        self._reader_task = None

        if self.websocket is not None:
            websocket, self.websocket = self.websocket, None
            try:
                await websocket.close()
            except Exception as e:
                logger.debug("Ignoring error while closing stream: %s", e)
            logger.info("Disconnected from room stream")
