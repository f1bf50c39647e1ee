"""
Tests for the Room Directory Client

Tests for the REST client using a mock aiohttp session including:
- Request methods, paths and bodies
- Response decoding
- ServerError and NetworkError mapping
"""

import asyncio
import json

import aiohttp
import pytest

from termbeam import NetworkError, RoomDirectoryClient, ServerError

ROOM = {
    "id": "room-1",
    "name": "general",
    "hasPassword": False,
    "userCount": 2,
    "createdAt": "2024-01-01T00:00:00Z",
}


class MockResponse:
    """Mock aiohttp response usable as an async context manager."""

    def __init__(self, status=200, body=None, raw=None):
        self.status = status
        if raw is not None:
            self._text = raw
        elif body is None:
            self._text = ""
        else:
            self._text = json.dumps(body)

    async def text(self):
        return self._text

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False


class MockSession:
    """Mock aiohttp.ClientSession returning queued responses."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests = []
        self.closed = False

    def request(self, method, url, json=None, params=None):
        self.requests.append(
            {"method": method, "url": url, "json": json, "params": params}
        )
        item = self.responses.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item

    def get(self, url, timeout=None):
        return self.request("GET", url)

    async def close(self):
        self.closed = True


def make_client(*responses):
    session = MockSession(*responses)
    client = RoomDirectoryClient(
        "http://localhost:8080", session_factory=lambda: session
    )
    return client, session


class TestRequests:
    """Tests for request construction and decoding."""

    @pytest.mark.asyncio
    async def test_list_rooms(self):
        """Test GET /api/rooms."""
        client, session = make_client(MockResponse(body=[ROOM]))

        rooms = await client.list_rooms()

        assert [room.name for room in rooms] == ["general"]
        assert session.requests[0]["method"] == "GET"
        assert session.requests[0]["url"] == "http://localhost:8080/api/rooms"

    @pytest.mark.asyncio
    async def test_create_room_without_password(self):
        """Test POST /api/rooms omits a missing password."""
        client, session = make_client(MockResponse(status=201, body=ROOM))

        room = await client.create_room("general")

        assert room.id == "room-1"
        assert session.requests[0]["method"] == "POST"
        assert session.requests[0]["json"] == {"name": "general"}

    @pytest.mark.asyncio
    async def test_join_room(self):
        """Test POST /api/rooms/{id}/join."""
        client, session = make_client(
            MockResponse(body={"userId": "user-7", "room": ROOM, "users": []})
        )

        joined = await client.join_room("room-1", "alice", "secret")

        assert joined.user_id == "user-7"
        request = session.requests[0]
        assert request["url"] == "http://localhost:8080/api/rooms/room-1/join"
        assert request["json"] == {"username": "alice", "password": "secret"}

    @pytest.mark.asyncio
    async def test_leave_room_accepts_empty_body(self):
        """Test DELETE /api/rooms/{id}/leave/{userId}."""
        client, session = make_client(MockResponse(status=204))

        await client.leave_room("room-1", "user-7")

        request = session.requests[0]
        assert request["method"] == "DELETE"
        assert request["url"] == (
            "http://localhost:8080/api/rooms/room-1/leave/user-7"
        )

    @pytest.mark.asyncio
    async def test_path_segments_are_quoted(self):
        """Test that IDs cannot escape their path segment."""
        client, session = make_client(MockResponse(body=ROOM))

        await client.get_room_info("a/b c")

        assert session.requests[0]["url"] == (
            "http://localhost:8080/api/rooms/a%2Fb%20c"
        )

    @pytest.mark.asyncio
    async def test_get_room_users(self):
        """Test GET /api/rooms/{id}/users."""
        client, _ = make_client(
            MockResponse(body=[{"id": "u1", "username": "bob"}])
        )

        users = await client.get_room_users("room-1")

        assert [user.username for user in users] == ["bob"]

    @pytest.mark.asyncio
    async def test_get_message_history_with_limit(self):
        """Test GET /api/rooms/{id}/messages?limit=n."""
        message = {
            "id": "m1",
            "roomId": "room-1",
            "userId": "u1",
            "username": "bob",
            "content": "hi",
            "timestamp": "2024-01-01T00:00:00Z",
            "type": "message",
        }
        client, session = make_client(MockResponse(body=[message]))

        messages = await client.get_message_history("room-1", 50)

        assert messages[0].content == "hi"
        assert session.requests[0]["params"] == {"limit": "50"}

    @pytest.mark.asyncio
    async def test_close_closes_session(self):
        """Test that close() closes the HTTP session once."""
        client, session = make_client(MockResponse(body=[]))
        await client.list_rooms()

        await client.close()
        await client.close()

        assert session.closed


class TestErrors:
    """Tests for error mapping."""

    @pytest.mark.asyncio
    async def test_error_body_reason(self):
        """Test that the server's reason becomes the ServerError reason."""
        client, _ = make_client(
            MockResponse(
                status=409,
                body={"error": True, "reason": "Username already exists"},
            )
        )

        with pytest.raises(ServerError) as exc_info:
            await client.join_room("room-1", "alice")

        assert exc_info.value.reason == "Username already exists"

    @pytest.mark.asyncio
    async def test_status_without_error_body(self):
        """Test the "HTTP <status>" fallback."""
        client, _ = make_client(MockResponse(status=500, raw="oops"))

        with pytest.raises(ServerError) as exc_info:
            await client.list_rooms()

        assert exc_info.value.reason == "HTTP 500"

    @pytest.mark.asyncio
    async def test_invalid_json(self):
        """Test that an undecodable body is an invalid response."""
        client, _ = make_client(MockResponse(raw="<html>"))

        with pytest.raises(ServerError) as exc_info:
            await client.list_rooms()

        assert exc_info.value.reason == "Invalid server response"

    @pytest.mark.asyncio
    async def test_unexpected_shape(self):
        """Test that a well-formed but wrong body is an invalid response."""
        client, _ = make_client(MockResponse(body={"rooms": []}))

        with pytest.raises(ServerError) as exc_info:
            await client.list_rooms()

        assert exc_info.value.reason == "Invalid server response"

    @pytest.mark.asyncio
    async def test_connection_error(self):
        """Test that aiohttp client errors become NetworkError."""
        client, _ = make_client(aiohttp.ClientConnectionError("refused"))

        with pytest.raises(NetworkError):
            await client.list_rooms()

    @pytest.mark.asyncio
    async def test_timeout(self):
        """Test that timeouts become NetworkError."""
        client, _ = make_client(asyncio.TimeoutError())

        with pytest.raises(NetworkError) as exc_info:
            await client.list_rooms()

        assert "TimeoutError" in str(exc_info.value)


class TestHealth:
    """Tests for the health probe."""

    @pytest.mark.asyncio
    async def test_healthy(self):
        """Test that HTTP 200 is healthy."""
        client, session = make_client(MockResponse(status=200))

        assert await client.check_health() is True
        assert session.requests[0]["url"] == "http://localhost:8080/health"

    @pytest.mark.asyncio
    async def test_unhealthy_status(self):
        """Test that any other status is unhealthy."""
        client, _ = make_client(MockResponse(status=503))

        assert await client.check_health() is False

    @pytest.mark.asyncio
    async def test_unreachable(self):
        """Test that connection errors are unhealthy, not raised."""
        client, _ = make_client(aiohttp.ClientConnectionError("refused"))

        assert await client.check_health() is False
