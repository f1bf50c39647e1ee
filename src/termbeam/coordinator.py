"""
Coordinator for the Application Flow

This module provides the Coordinator class which drives the top-level loop:
resolve and probe the server, then repeatedly list rooms, collect the
create-or-join choice, the room details and a username, and run one
ChatSession per successful join.

Recoverable errors from the directory or the session are shown and the loop
goes back to room selection. Only a quit command (QuitRequested), EOF or
cancellation leave the loop.

Usage:
    coordinator = Coordinator(presenter, input_reader, config)
    await coordinator.prepare(server)
    await coordinator.start()
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional, Tuple

from .chat_session import ChatSession
from .commands import CommandOutcome, CommandRouter
from .config import ClientConfig
from .directory import RoomDirectoryClient
from .errors import (
    ChatError,
    ConnectionFailedError,
    QuitRequested,
    ServerError,
)
from .schemas import JoinRoomResponse
from .session import SessionIdentity
from .supervisor import ConnectionSupervisor
from .transport import WebSocketTransport
from .utils.validation import (
    normalize_url,
    validate_room_name,
    validate_username,
)

logger = logging.getLogger(__name__)

ERROR_PAUSE = 1.0  # seconds before retrying after an error

CHOICE_PROMPT = (
    "Do you want to (c)reate a new room or (j)oin an existing one? [c/j]: "
)
ROOM_NAME_PROMPT = "Enter room name: "
ROOM_PASSWORD_PROMPT = "Enter password (leave empty for no password): "
ROOM_ID_PROMPT = "Enter room ID: "
JOIN_PASSWORD_PROMPT = "Enter room password (if any): "
USERNAME_PROMPT = "Enter your username for this room: "
USERNAME_RETRY_PROMPT = (
    "That username is taken. Enter a different username for this room: "
)
RETRY_CHOICE_PROMPT = "Your choice [r/c/q]: "
NEW_SERVER_PROMPT = "Enter new server URL: "


def is_username_taken(error: ServerError) -> bool:
    """Check if a join failed because the username is in use."""
    reason = error.reason.lower()
    return "username" in reason and ("exists" in reason or "taken" in reason)


def _validate_room_id(room_id: str):
    if not room_id.strip():
        return False, "Room ID cannot be empty"
    return True, None


class Coordinator:
    """
    Top-level control loop.

    Attributes:
        presenter: Presenter for all output
        input_reader: ConsoleInputReader (or compatible)
        config: Client configuration
        router: CommandRouter shared with chat sessions
        server_url: Server chosen by prepare() (None before)
        directory: Room directory client for server_url (None before)
    """

    def __init__(
        self,
        presenter: Any,
        input_reader: Any,
        config: Optional[ClientConfig] = None,
        router: Optional[CommandRouter] = None,
        supervisor: Optional[ConnectionSupervisor] = None,
        directory_factory: Callable[..., Any] = RoomDirectoryClient,
        transport_factory: Callable[[str], Any] = WebSocketTransport,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.presenter = presenter
        self.input_reader = input_reader
        self.config = config or ClientConfig()
        self.router = router or CommandRouter(presenter)
        self.supervisor = supervisor or ConnectionSupervisor(
            presenter,
            retry_delay=self.config.connection_retry_delay,
            sleep=sleep,
        )
        self.server_url: Optional[str] = None
        self.directory: Optional[Any] = None
        self._directory_factory = directory_factory
        self._transport_factory = transport_factory
        self._sleep = sleep
        self._current_session: Optional[ChatSession] = None

    @property
    def current_session(self) -> Optional[ChatSession]:
        return self._current_session

    # Startup

    async def prepare(self, server: Optional[str] = None) -> str:
        """
        Resolve the server address and wait until it is reachable.

        Args:
            server: Address from the command line, if any

        Returns:
            The normalised server URL

        Raises:
            QuitRequested: If the user quits from a prompt or the retry menu
        """
        if server:
            url = normalize_url(server)
        else:
            default = self.config.default_server_url
            self.presenter.show_server_prompt()
            answer = await self._prompt(f"Server [{default}]: ")
            if answer:
                url = normalize_url(answer)
            else:
                self.presenter.show_info(f"Using default: {default}")
                url = normalize_url(default)

        url = await self.connect_to_server(url)
        self.server_url = url
        self.directory = self._directory_factory(
            url, timeout=self.config.request_timeout
        )
        self.presenter.show_server_online()
        logger.info("Using server %s", url)
        return url

    async def connect_to_server(self, url: str) -> str:
        """
        Probe ``url`` and run the retry / change-address / quit menu.

        Returns:
            The URL that answered the health check
        """
        self.presenter.show_connecting(url)
        while True:
            try:
                await self.supervisor.wait_for_server(
                    url, self.config.max_connection_retries
                )
                return url
            except ConnectionFailedError:
                pass

            self.presenter.show_retry_options()
            choice = (await self._prompt(RETRY_CHOICE_PROMPT)).lower()
            if choice in ("r", ""):
                self.presenter.show_info("Retrying connection...")
                await self._sleep(ERROR_PAUSE)
            elif choice == "c":
                new_url = await self._prompt(NEW_SERVER_PROMPT)
                if new_url:
                    url = normalize_url(new_url)
                    self.presenter.show_connecting(url)
            elif choice == "q":
                self.presenter.show_goodbye()
                raise QuitRequested("Server unreachable", exit_code=1)
            else:
                self.presenter.show_error(
                    "Invalid choice. Please enter 'r', 'c', or 'q'"
                )
                await self._sleep(ERROR_PAUSE)

    # Room loop

    async def start(self) -> None:
        """
        Run room selection and chat sessions until the user quits.

        Raises:
            QuitRequested: On /bye, /quit or /exit outside a room
            EOFError: If stdin is closed
        """
        if self.directory is None:
            raise RuntimeError("prepare() must run before start()")

        while True:
            try:
                await self.run_once()
            except (QuitRequested, EOFError):
                raise
            except ChatError as e:
                logger.warning("Room flow failed: %s", e)
                self._show_retry_notice(e)
                await self._sleep(ERROR_PAUSE)
            except Exception as e:
                logger.exception("Unexpected error in room flow")
                self._show_retry_notice(e)
                await self._sleep(ERROR_PAUSE)

    def _show_retry_notice(self, error: Exception) -> None:
        self.presenter.show_error(f"An error occurred: {error}")
        self.presenter.show_info("Let's try again...")

    async def run_once(self) -> None:
        """One pass: pick a room, join it and run the chat session."""
        self.presenter.show_info("Fetching available rooms...")
        try:
            rooms = await self.directory.list_rooms()
        except ChatError as e:
            self.presenter.show_error(f"Failed to fetch rooms: {e}")
            await self._sleep(ERROR_PAUSE)
            return
        self.presenter.show_rooms(rooms)

        choice = await self._choose_create_or_join()
        room_id, password = await self._room_details(choice)
        username, joined = await self._join_with_username(room_id, password)
        self.presenter.show_joined_room(joined, username)

        identity = SessionIdentity(
            room_id=room_id,
            user_id=joined.user_id,
            username=username,
            room_name=joined.room.name,
        )
        await self.run_session(identity)

    async def run_session(self, identity: SessionIdentity) -> None:
        """Run one ChatSession; only one is ever active."""
        session = ChatSession(
            identity,
            self._transport_factory(self.server_url),
            self.directory,
            self.router,
            self.presenter,
            self.input_reader,
            history_capacity=self.config.max_message_history,
            history_fetch_limit=self.config.history_fetch_limit,
            max_reconnect_attempts=self.config.max_reconnect_attempts,
            reconnect_delay_step=self.config.reconnect_delay_step,
            reconnect_delay_cap=self.config.reconnect_delay_cap,
            sleep=self._sleep,
        )
        self._current_session = session
        try:
            await session.run()
        except ChatError:
            self._current_session = None
            raise
        self._current_session = None

    async def cleanup(self) -> None:
        """Close the active session (if any) and the directory client."""
        session, self._current_session = self._current_session, None
        if session is not None:
            await session.close()
        if self.directory is not None:
            await self.directory.close()

    # Prompts

    async def _prompt(self, prompt: str) -> str:
        """Read a line, handling global commands until plain input arrives."""
        while True:
            line = await self.input_reader.read_line(prompt)
            outcome = await self.router.route(line)
            if outcome == CommandOutcome.NOT_A_COMMAND:
                return line

    async def _prompt_valid(self, prompt: str, validator) -> str:
        """Re-prompt the same field until the validator accepts it."""
        while True:
            value = (await self._prompt(prompt)).strip()
            is_valid, error = validator(value)
            if is_valid:
                return value
            self.presenter.show_error(error)

    async def _choose_create_or_join(self) -> str:
        while True:
            answer = (await self._prompt(CHOICE_PROMPT)).lower()
            if answer.startswith(("c", "j")):
                return answer[0]
            self.presenter.show_error(
                "Invalid choice. Please enter 'c' to create or 'j' to join."
            )

    async def _room_details(self, choice: str) -> Tuple[str, Optional[str]]:
        """
        Collect the room ID and password for the chosen action.

        Creating a room happens here; joining verifies the room exists
        before the password is asked for.

        Raises:
            ServerError: If the room can't be created or doesn't exist
        """
        if choice == "c":
            name = await self._prompt_valid(ROOM_NAME_PROMPT, validate_room_name)
            password = await self.input_reader.read_secure_line(
                ROOM_PASSWORD_PROMPT
            )
            password = password or None

            self.presenter.show_info("Creating room...")
            room = await self.directory.create_room(name, password)
            self.presenter.show_success(f"Room created: {room.name}")
            return room.id, password

        room_id = await self._prompt_valid(ROOM_ID_PROMPT, _validate_room_id)
        self.presenter.show_info("Verifying room...")
        try:
            await self.directory.get_room_info(room_id)
        except ChatError as e:
            self.presenter.show_error("Room not found or invalid room ID")
            raise ServerError("Invalid room ID") from e

        password = await self.input_reader.read_secure_line(
            JOIN_PASSWORD_PROMPT
        )
        return room_id, password or None

    async def _join_with_username(
        self, room_id: str, password: Optional[str]
    ) -> Tuple[str, JoinRoomResponse]:
        """
        Ask for a username and join, re-asking only the username while the
        server reports it as taken.
        """
        prompt = USERNAME_PROMPT
        while True:
            username = await self._prompt_valid(prompt, validate_username)
            self.presenter.show_info(f"Joining room as @{username}...")
            try:
                joined = await self.directory.join_room(
                    room_id, username, password
                )
            except ServerError as e:
                if not is_username_taken(e):
                    raise
                logger.info("Username %s taken in room %s", username, room_id)
                self.presenter.show_error(
                    f"Username '{username}' is already taken in this room."
                )
                prompt = USERNAME_RETRY_PROMPT
                continue
            return username, joined
