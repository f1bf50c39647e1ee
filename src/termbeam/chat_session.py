"""
Chat Session for One Room Visit

This module provides the ChatSession class which binds one SessionIdentity
to one SessionEngine for the lifetime of a room visit. It preloads recent
history, connects the engine, registers the room's slash commands and runs
the chat input loop until the user leaves or the connection is lost for
good.

Usage:
    session = ChatSession(identity, transport, directory, router,
                          presenter, input_reader)
    await session.run()
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Optional

from .config import (
    HISTORY_FETCH_LIMIT,
    MAX_RECONNECT_ATTEMPTS,
    RECONNECT_DELAY_CAP,
    RECONNECT_DELAY_STEP,
)
from .commands import CommandHandler, CommandOutcome, ParsedCommand
from .errors import ChatError, InvalidInputError, TransportError
from .history_buffer import DEFAULT_HISTORY_CAPACITY, HistoryBuffer
from .schemas import Message
from .session import ConnectionState, SessionEngine, SessionIdentity

logger = logging.getLogger(__name__)


class ChatSession:
    """
    The in-room chat loop.

    Attributes:
        identity: Room membership this session runs for
        engine: SessionEngine owning the room stream
    """

    def __init__(
        self,
        identity: SessionIdentity,
        transport: Any,
        directory: Any,
        router: Any,
        presenter: Any,
        input_reader: Any,
        history_capacity: int = DEFAULT_HISTORY_CAPACITY,
        history_fetch_limit: int = HISTORY_FETCH_LIMIT,
        max_reconnect_attempts: int = MAX_RECONNECT_ATTEMPTS,
        reconnect_delay_step: float = RECONNECT_DELAY_STEP,
        reconnect_delay_cap: float = RECONNECT_DELAY_CAP,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        """
        Initialize the chat session.

        Args:
            identity: Room membership returned by the join request
            transport: Streaming transport for the engine
            directory: Room directory client for the room commands
            router: CommandRouter shared with the coordinator
            presenter: Presenter for all output
            input_reader: ConsoleInputReader (or compatible)
            history_capacity: Messages kept for /history
            history_fetch_limit: Messages preloaded from the server
            max_reconnect_attempts: Engine reconnect attempts
            reconnect_delay_step: Engine backoff step in seconds
            reconnect_delay_cap: Engine backoff cap in seconds
            sleep: Coroutine used for backoff waits
        """
        self.identity = identity
        self.directory = directory
        self.router = router
        self.presenter = presenter
        self.input_reader = input_reader
        self.history_fetch_limit = history_fetch_limit
        self.engine = SessionEngine(
            transport,
            history=HistoryBuffer(history_capacity),
            max_reconnect_attempts=max_reconnect_attempts,
            delay_step=reconnect_delay_step,
            delay_cap=reconnect_delay_cap,
            sleep=sleep,
            on_state_change=self._on_state_change,
        )
        self._closed = False
        self._lost_connection = False

    @property
    def prompt(self) -> str:
        return f"{self.identity.username} > "

    async def run(self) -> None:
        """
        Run the session until /exit, /leave or a lost connection.

        QuitRequested, EOFError and cancellation propagate without closing
        the session; the application's shutdown path closes it.

        Raises:
            TransportError: If the room stream cannot be opened
        """
        await self._load_history()

        try:
            await self.engine.connect(
                self.identity, self._on_message, self._on_disconnect
            )
        except TransportError:
            await self.close()
            raise

        try:
            with self.router.session_commands(self._command_handlers()):
                await self._input_loop()
        except (ChatError, OSError):
            await self.close()
            raise

        await self.close()

    async def close(self) -> None:
        """Disconnect and tell the directory the user left. Idempotent."""
        if self._closed:
            return
        self._closed = True

        await self.engine.disconnect()
        try:
            await self.directory.leave_room(
                self.identity.room_id, self.identity.user_id
            )
        except Exception as e:
            logger.warning(
                "Ignoring leave failure for room %s: %s",
                self.identity.room_id,
                e,
            )

    async def _load_history(self) -> None:
        try:
            messages = await self.directory.get_message_history(
                self.identity.room_id, self.history_fetch_limit
            )
        except ChatError as e:
            logger.info("Message history unavailable: %s", e)
            return

        if not messages:
            return

        self.presenter.show_info("Loading recent messages...")
        for message in messages:
            self.engine.history.append(message)
            self.presenter.show_message(message, self.identity.username)
        self.presenter.show_info("End of message history")

    async def _input_loop(self) -> None:
        while not self.engine.state.is_terminal:
            line = await self._next_line()
            if line is None:
                break
            if not line:
                continue

            outcome = await self.router.route(line)
            if outcome == CommandOutcome.END_SESSION:
                logger.info("Leaving room %s", self.identity.room_id)
                break
            if outcome == CommandOutcome.NOT_A_COMMAND:
                await self._send(line.strip())

    async def _next_line(self) -> Optional[str]:
        """Read a line, or return None once the engine has terminated."""
        read = asyncio.ensure_future(self.input_reader.read_line(self.prompt))
        terminated = asyncio.ensure_future(self.engine.wait_terminated())
        try:
            done, _ = await asyncio.wait(
                {read, terminated}, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            for task in (read, terminated):
                if not task.done():
                    task.cancel()

        if read in done:
            return read.result()
        return None

    async def _send(self, content: str) -> None:
        try:
            await self.engine.send(content)
        except (TransportError, InvalidInputError) as e:
            self.presenter.show_error(f"Failed to send message: {e}")

    def _on_message(self, message: Message) -> None:
        self.presenter.show_message(message, self.identity.username)

    def _on_disconnect(self) -> None:
        self.presenter.show_disconnected()

    def _on_state_change(
        self, state: ConnectionState, engine: SessionEngine
    ) -> None:
        if state == ConnectionState.RECONNECTING:
            self._lost_connection = True
            self.presenter.show_reconnecting(
                engine.reconnect_attempts, engine.max_reconnect_attempts
            )
        elif state == ConnectionState.CONNECTED and self._lost_connection:
            self._lost_connection = False
            self.presenter.show_reconnected()

    # Room commands

    def _command_handlers(self) -> Dict[str, CommandHandler]:
        return {
            "users": self._show_users,
            "list-users": self._show_users,
            "rooms": self._show_rooms,
            "list-rooms": self._show_rooms,
            "info": self._show_room_info,
            "room-info": self._show_room_info,
            "history": self._show_history,
            "exit": self._leave,
            "leave": self._leave,
        }

    async def _show_users(self, command: ParsedCommand) -> None:
        try:
            users = await self.directory.get_room_users(self.identity.room_id)
        except ChatError as e:
            self.presenter.show_error(f"Failed to fetch users: {e}")
            return
        self.presenter.show_users(users)

    async def _show_rooms(self, command: ParsedCommand) -> None:
        try:
            rooms = await self.directory.list_rooms()
        except ChatError as e:
            self.presenter.show_error(f"Failed to fetch rooms: {e}")
            return
        self.presenter.show_rooms(rooms)

    async def _show_room_info(self, command: ParsedCommand) -> None:
        try:
            room = await self.directory.get_room_info(self.identity.room_id)
        except ChatError as e:
            self.presenter.show_error(f"Failed to fetch room info: {e}")
            return
        self.presenter.show_room_info(room)

    async def _show_history(self, command: ParsedCommand) -> None:
        self.presenter.show_history(
            self.engine.history.snapshot(), self.identity.username
        )

    async def _leave(self, command: ParsedCommand) -> CommandOutcome:
        return CommandOutcome.END_SESSION
