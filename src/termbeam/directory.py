"""
Room Directory REST Client

This module provides the RoomDirectoryClient class for the chat server's
HTTP API: listing, creating and joining rooms, listing users, fetching room
info and recent history, and leaving a room. It also provides the /health
probe used before any session exists.

Architecture:
    - Uses aiohttp with one lazily created ClientSession per client
    - Supports dependency injection for the HTTP session (for testability)
    - Non-2xx responses become ServerError with the server's reason;
      unreachable servers become NetworkError

Usage:
    directory = RoomDirectoryClient("http://localhost:8080")
    rooms = await directory.list_rooms()
    joined = await directory.join_room(rooms[0].id, "alice")
    await directory.close()
"""

import asyncio
import json
import logging
from typing import Any, Callable, List, Optional
from urllib.parse import quote

import aiohttp

from .config import REQUEST_TIMEOUT
from .errors import NetworkError, ServerError
from .schemas import (
    CreateRoomRequest,
    ErrorResponse,
    JoinRoomRequest,
    JoinRoomResponse,
    Message,
    RoomInfo,
    UserInfo,
)

logger = logging.getLogger(__name__)

HEALTH_TIMEOUT = 5.0


def _segment(value: str) -> str:
    return quote(str(value), safe="")


async def check_health(
    base_url: str,
    timeout: float = HEALTH_TIMEOUT,
    session: Optional[Any] = None,
) -> bool:
    """
    Probe the server's health endpoint.

    Args:
        base_url: HTTP(S) base URL of the chat server
        timeout: Total timeout for the probe in seconds
        session: Optional aiohttp session to reuse

    Returns:
        True if GET /health answered HTTP 200, False otherwise
    """
    url = f"{base_url}/health"
    client_timeout = aiohttp.ClientTimeout(total=timeout)
    try:
        if session is not None:
            async with session.get(url, timeout=client_timeout) as response:
                return response.status == 200
        async with aiohttp.ClientSession(timeout=client_timeout) as own:
            async with own.get(url) as response:
                return response.status == 200
    except (aiohttp.ClientError, asyncio.TimeoutError) as e:
        logger.info("Health check for %s failed: %s", base_url, e)
        return False


class RoomDirectoryClient:
    """
    HTTP client for the room directory.

    Attributes:
        base_url: HTTP(S) base URL of the chat server
        timeout: Total timeout for one request in seconds
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = REQUEST_TIMEOUT,
        session_factory: Optional[Callable[[], Any]] = None,
    ):
        """
        Initialize the directory client.

        Args:
            base_url: HTTP(S) base URL of the chat server
            timeout: Total timeout for one request in seconds
            session_factory: Optional factory returning an aiohttp-like
                           session (for dependency injection/testing)
        """
        self.base_url = base_url
        self.timeout = timeout
        self._session_factory = session_factory
        self._session: Optional[Any] = None

    def _get_session(self) -> Any:
        if self._session is None:
            if self._session_factory is not None:
                self._session = self._session_factory()
            else:
                self._session = aiohttp.ClientSession(
                    timeout=aiohttp.ClientTimeout(total=self.timeout)
                )
        return self._session

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        if self._session is not None:
            session, self._session = self._session, None
            await session.close()
            logger.debug("Directory session closed")

    async def _request(
        self,
        method: str,
        path: str,
        body: Optional[dict] = None,
        params: Optional[dict] = None,
    ) -> Any:
        """
        Perform one request and decode the JSON body.

        Returns:
            Decoded JSON body, or None for an empty 2xx body

        Raises:
            ServerError: On non-2xx status or an undecodable body
            NetworkError: If the server cannot be reached
        """
        url = f"{self.base_url}{path}"
        logger.debug("%s %s", method, url)
        try:
            async with self._get_session().request(
                method, url, json=body, params=params
            ) as response:
                status = response.status
                text = await response.text()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error("%s %s failed: %s", method, url, e)
            raise NetworkError(str(e) or type(e).__name__) from e

        if not 200 <= status < 300:
            raise ServerError(self._error_reason(status, text))

        if not text:
            return None
        try:
            return json.loads(text)
        except ValueError as e:
            logger.error("Invalid JSON from %s %s: %s", method, url, e)
            raise ServerError("Invalid server response") from e

    @staticmethod
    def _error_reason(status: int, text: str) -> str:
        try:
            return ErrorResponse.from_json(text).reason
        except (ValueError, KeyError, TypeError):
            return f"HTTP {status}"

    @staticmethod
    def _decode(decoder: Callable[[Any], Any], data: Any) -> Any:
        try:
            return decoder(data)
        except (ValueError, KeyError, TypeError) as e:
            logger.error("Unexpected response shape: %s", e)
            raise ServerError("Invalid server response") from e

    async def check_health(self) -> bool:
        """Check if the server answers GET /health with HTTP 200."""
        return await check_health(self.base_url, session=self._get_session())

    async def list_rooms(self) -> List[RoomInfo]:
        """List all rooms on the server."""
        data = await self._request("GET", "/api/rooms")
        return self._decode(RoomInfo.list_from_data, data)

    async def create_room(
        self, name: str, password: Optional[str] = None
    ) -> RoomInfo:
        """
        Create a room.

        Args:
            name: Room name
            password: Optional room password (None for an open room)
        """
        request = CreateRoomRequest(name=name, password=password)
        data = await self._request("POST", "/api/rooms", body=request.to_dict())
        room = self._decode(RoomInfo.from_dict, data)
        logger.info("Created room %s (%s)", room.name, room.id)
        return room

    async def join_room(
        self, room_id: str, username: str, password: Optional[str] = None
    ) -> JoinRoomResponse:
        """
        Join a room.

        Returns:
            JoinRoomResponse carrying the user ID for this membership

        Raises:
            ServerError: E.g. wrong password or username already taken
        """
        request = JoinRoomRequest(username=username, password=password)
        data = await self._request(
            "POST",
            f"/api/rooms/{_segment(room_id)}/join",
            body=request.to_dict(),
        )
        joined = self._decode(JoinRoomResponse.from_dict, data)
        logger.info("Joined room %s as %s", room_id, username)
        return joined

    async def leave_room(self, room_id: str, user_id: str) -> None:
        """Tell the server the user left the room."""
        await self._request(
            "DELETE",
            f"/api/rooms/{_segment(room_id)}/leave/{_segment(user_id)}",
        )
        logger.info("Left room %s", room_id)

    async def get_room_users(self, room_id: str) -> List[UserInfo]:
        """List the users currently in a room."""
        data = await self._request(
            "GET", f"/api/rooms/{_segment(room_id)}/users"
        )
        return self._decode(UserInfo.list_from_data, data)

    async def get_room_info(self, room_id: str) -> RoomInfo:
        """Fetch a single room's information."""
        data = await self._request("GET", f"/api/rooms/{_segment(room_id)}")
        return self._decode(RoomInfo.from_dict, data)

    async def get_message_history(
        self, room_id: str, limit: Optional[int] = None
    ) -> List[Message]:
        """
        Fetch recent messages for a room, oldest first.

        Args:
            room_id: Room to read
            limit: Maximum number of messages (server default if None)
        """
        params = {"limit": str(limit)} if limit is not None else None
        data = await self._request(
            "GET", f"/api/rooms/{_segment(room_id)}/messages", params=params
        )
        return self._decode(Message.list_from_data, data)
