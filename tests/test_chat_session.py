"""
Tests for the Chat Session

Tests for one room visit including:
- History preload and the /history command
- Sending chat lines and showing send failures
- Room commands backed by the directory
- Leaving with /exit and the leave notification
- Returning without a keypress when reconnection is exhausted
"""

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from termbeam import (
    ChatSession,
    CommandRouter,
    ConnectionState,
    QuitRequested,
    ServerError,
    SessionIdentity,
    TransportError,
)
from termbeam.schemas import Message, MessageType, RoomInfo, UserInfo
from termbeam.transport import TransportEvent

IDENTITY = SessionIdentity(
    room_id="room-1", user_id="user-1", username="alice", room_name="general"
)


class FakeTransport:
    """In-memory transport driven by the test."""

    def __init__(self):
        self.connect_calls = []
        self.sent = []
        self.failures = 0
        self.fail_send = False
        self.events = None
        self._connected = False

    @property
    def is_connected(self):
        return self._connected

    async def connect(self, room_id, user_id, events):
        self.connect_calls.append((room_id, user_id))
        self.events = events
        if self.failures:
            self.failures -= 1
            raise TransportError("connection refused")
        self._connected = True

    async def send(self, text):
        if self.fail_send:
            self._connected = False
            raise TransportError("broken pipe")
        self.sent.append(json.loads(text))

    async def disconnect(self):
        self._connected = False

    def drop(self):
        self._connected = False
        self.events.put_nowait((TransportEvent.CLOSED, None))


class ScriptedInput:
    """Input reader returning queued lines, then blocking forever."""

    def __init__(self, *lines):
        self.lines = list(lines)
        self.prompts = []

    async def read_line(self, prompt):
        self.prompts.append(prompt)
        await asyncio.sleep(0)
        if not self.lines:
            await asyncio.Event().wait()
        line = self.lines.pop(0)
        if isinstance(line, BaseException):
            raise line
        return line


async def no_sleep(delay):
    return None


def make_message(message_id, content="hi", username="bob"):
    return Message(
        id=message_id,
        room_id="room-1",
        user_id="user-2",
        username=username,
        content=content,
        timestamp="2024-01-01T00:00:00Z",
        type=MessageType.CHAT,
    )


def make_directory(history=None):
    directory = MagicMock()
    directory.get_message_history = AsyncMock(return_value=history or [])
    directory.leave_room = AsyncMock(return_value=None)
    directory.get_room_users = AsyncMock(
        return_value=[UserInfo(id="user-1", username="alice")]
    )
    directory.list_rooms = AsyncMock(return_value=[])
    directory.get_room_info = AsyncMock(
        return_value=RoomInfo(
            id="room-1",
            name="general",
            has_password=False,
            user_count=1,
            created_at="",
        )
    )
    return directory


def make_session(*lines, directory=None, transport=None):
    presenter = MagicMock()
    router = CommandRouter(presenter)
    transport = transport or FakeTransport()
    directory = directory or make_directory()
    session = ChatSession(
        IDENTITY,
        transport,
        directory,
        router,
        presenter,
        ScriptedInput(*lines),
        sleep=no_sleep,
    )
    return session, transport, directory, presenter


class TestChatLoop:
    """Tests for the input loop."""

    @pytest.mark.asyncio
    async def test_send_then_exit(self):
        """Test that chat lines are sent and /exit ends the session."""
        session, transport, directory, presenter = make_session(
            "hello", "", "  second  ", "/exit"
        )

        await session.run()

        assert transport.sent == [{"content": "hello"}, {"content": "second"}]
        directory.leave_room.assert_awaited_once_with("room-1", "user-1")
        assert session.engine.state == ConnectionState.DISCONNECTED
        assert not session.router.in_session
        presenter.show_goodbye.assert_not_called()

    @pytest.mark.asyncio
    async def test_prompt_shows_username(self):
        """Test the chat prompt."""
        session, _, _, _ = make_session("/leave")

        await session.run()

        assert session.input_reader.prompts == ["alice > "]

    @pytest.mark.asyncio
    async def test_send_failure_is_shown_and_session_continues(self):
        """Test that a failed write does not end the session."""
        transport = FakeTransport()
        transport.fail_send = True
        session, _, _, presenter = make_session(
            "hello", "again", "/exit", transport=transport
        )

        await session.run()

        errors = [c.args[0] for c in presenter.show_error.call_args_list]
        assert any("Failed to send message" in e for e in errors)
        assert any("Not connected" in e for e in errors)

    @pytest.mark.asyncio
    async def test_quit_propagates_without_closing(self):
        """Test that /bye leaves cleanup to the application."""
        session, _, directory, presenter = make_session("/bye")

        with pytest.raises(QuitRequested):
            await session.run()

        presenter.show_goodbye.assert_called_once()
        directory.leave_room.assert_not_awaited()
        assert not session.router.in_session

        await session.close()
        directory.leave_room.assert_awaited_once_with("room-1", "user-1")

    @pytest.mark.asyncio
    async def test_eof_propagates(self):
        """Test that EOF on stdin leaves the session open for cleanup."""
        session, _, directory, _ = make_session(EOFError())

        with pytest.raises(EOFError):
            await session.run()

        directory.leave_room.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_close_is_idempotent(self):
        """Test that close() only notifies the directory once."""
        session, _, directory, _ = make_session("/exit")
        await session.run()

        await session.close()

        directory.leave_room.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_leave_failure_is_ignored(self):
        """Test that a failing leave notification is not raised."""
        directory = make_directory()
        directory.leave_room.side_effect = ServerError("gone")
        session, _, _, _ = make_session("/exit", directory=directory)

        await session.run()

        assert session.engine.state == ConnectionState.DISCONNECTED


class TestConnectFailure:
    """Tests for a room stream that cannot be opened."""

    @pytest.mark.asyncio
    async def test_connect_failure_raises_and_leaves(self):
        """Test that the error is raised after leaving the room."""
        transport = FakeTransport()
        transport.failures = 1
        session, _, directory, _ = make_session(transport=transport)

        with pytest.raises(TransportError):
            await session.run()

        directory.leave_room.assert_awaited_once_with("room-1", "user-1")
        assert session.engine.state == ConnectionState.FAILED


class TestLostConnection:
    """Tests for reconnection seen from the chat loop."""

    @pytest.mark.asyncio
    async def test_exhausted_reconnect_returns_without_input(self):
        """Test that FAILED ends the loop while input is pending."""
        session, transport, directory, presenter = make_session()
        task = asyncio.ensure_future(session.run())
        while session.engine.state != ConnectionState.CONNECTED:
            await asyncio.sleep(0)

        transport.failures = 10
        transport.drop()
        await asyncio.wait_for(task, timeout=1)

        assert session.engine.state == ConnectionState.FAILED
        presenter.show_disconnected.assert_called_once()
        assert [c.args for c in presenter.show_reconnecting.call_args_list] == [
            (1, 3),
            (2, 3),
            (3, 3),
        ]
        directory.leave_room.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_reconnect_is_announced(self):
        """Test the reconnecting and reconnected notices."""
        session, transport, _, presenter = make_session()
        task = asyncio.ensure_future(session.run())
        while session.engine.state != ConnectionState.CONNECTED:
            await asyncio.sleep(0)

        transport.drop()
        await session.engine.drain_events()

        presenter.show_reconnecting.assert_called_once_with(1, 3)
        presenter.show_reconnected.assert_called_once()
        assert session.engine.state == ConnectionState.CONNECTED

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        await session.close()


class TestRoomCommands:
    """Tests for the session-scoped commands."""

    @pytest.mark.asyncio
    async def test_history_preload_and_command(self):
        """Test that preloaded messages appear in /history."""
        history = [make_message("1", "earlier"), make_message("2", "later")]
        session, _, directory, presenter = make_session(
            "/history", "/exit", directory=make_directory(history)
        )

        await session.run()

        directory.get_message_history.assert_awaited_once_with("room-1", 50)
        assert presenter.show_message.call_count == 2
        shown, username = presenter.show_history.call_args[0]
        assert [m.content for m in shown] == ["earlier", "later"]
        assert username == "alice"

    @pytest.mark.asyncio
    async def test_history_load_failure_is_not_fatal(self):
        """Test that a missing history endpoint is ignored."""
        directory = make_directory()
        directory.get_message_history.side_effect = ServerError("HTTP 404")
        session, transport, _, presenter = make_session(
            "hello", "/exit", directory=directory
        )

        await session.run()

        assert transport.sent == [{"content": "hello"}]
        presenter.show_error.assert_not_called()

    @pytest.mark.asyncio
    async def test_users_command(self):
        """Test /users and its alias."""
        session, _, directory, presenter = make_session(
            "/users", "/list-users", "/exit"
        )

        await session.run()

        assert directory.get_room_users.await_count == 2
        assert presenter.show_users.call_count == 2

    @pytest.mark.asyncio
    async def test_rooms_and_info_commands(self):
        """Test /rooms and /info."""
        session, _, directory, presenter = make_session(
            "/rooms", "/info", "/exit"
        )

        await session.run()

        directory.list_rooms.assert_awaited_once()
        directory.get_room_info.assert_awaited_once_with("room-1")
        presenter.show_rooms.assert_called_once_with([])
        presenter.show_room_info.assert_called_once()

    @pytest.mark.asyncio
    async def test_command_failure_is_shown(self):
        """Test that a directory error is shown and the loop continues."""
        directory = make_directory()
        directory.get_room_users.side_effect = ServerError("HTTP 500")
        session, transport, _, presenter = make_session(
            "/users", "hello", "/exit", directory=directory
        )

        await session.run()

        message = presenter.show_error.call_args[0][0]
        assert message.startswith("Failed to fetch users")
        assert transport.sent == [{"content": "hello"}]

    @pytest.mark.asyncio
    async def test_unknown_command_in_session(self):
        """Test that unknown commands do not end the session."""
        session, _, _, presenter = make_session("/dance", "/exit")

        await session.run()

        presenter.show_unknown_command.assert_called_once_with("dance")
