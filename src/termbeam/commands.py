"""
Slash Command Routing

This module parses slash-prefixed input and dispatches it to handlers in two
tiers:

    - Global commands (help, bye/quit/exit) work at every prompt
    - Session commands (users, rooms, info, history, exit/leave) are
      registered by the active chat session and consulted first, so
      "/exit" leaves the room inside a session and quits elsewhere

Usage:
    router = CommandRouter(presenter)
    outcome = await router.route("/help")

    with router.session_commands({"users": show_users}):
        outcome = await router.route("/users")
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Dict, Iterator, Optional

from .errors import QuitRequested

logger = logging.getLogger(__name__)

COMMAND_PREFIX = "/"

QUIT_COMMANDS = frozenset({"bye", "quit", "exit"})

# Every name a chat session may register, including aliases
SESSION_COMMAND_NAMES = frozenset(
    {
        "users",
        "list-users",
        "rooms",
        "list-rooms",
        "info",
        "room-info",
        "history",
        "exit",
        "leave",
    }
)


class CommandOutcome(Enum):
    """Result of routing one input line."""

    NOT_A_COMMAND = "not_a_command"
    HANDLED = "handled"
    UNKNOWN = "unknown"
    END_SESSION = "end_session"


@dataclass(frozen=True)
class ParsedCommand:
    """
    A slash command split into its parts.

    Attributes:
        name: Lower-cased command token without the prefix
        argument: Rest of the line after the first whitespace ("" if none)
        raw: The original input line
    """

    name: str
    argument: str
    raw: str


CommandHandler = Callable[[ParsedCommand], Awaitable[Optional[CommandOutcome]]]


def parse_command(line: str) -> Optional[ParsedCommand]:
    """
    Parse a slash command.

    Args:
        line: Raw input line

    Returns:
        ParsedCommand, or None if the line is not a command
    """
    stripped = line.strip()
    if not stripped.startswith(COMMAND_PREFIX):
        return None

    parts = stripped[len(COMMAND_PREFIX):].split(maxsplit=1)
    name = parts[0].lower() if parts else ""
    argument = parts[1] if len(parts) > 1 else ""
    return ParsedCommand(name=name, argument=argument, raw=line)


class CommandRouter:
    """
    Two-tier slash command dispatcher.

    Attributes:
        presenter: Presenter used for help, goodbye and notices
    """

    def __init__(self, presenter):
        self.presenter = presenter
        self._session_handlers: Dict[str, CommandHandler] = {}

    @property
    def in_session(self) -> bool:
        """Check if session commands are currently registered."""
        return bool(self._session_handlers)

    @contextmanager
    def session_commands(
        self, handlers: Dict[str, CommandHandler]
    ) -> Iterator["CommandRouter"]:
        """
        Register session-scoped handlers for the duration of a block.

        Args:
            handlers: Mapping of lower-case command name to handler

        Raises:
            RuntimeError: If another session's commands are registered
        """
        if self._session_handlers:
            raise RuntimeError("Session commands are already registered")

        self._session_handlers = {
            name.lower(): handler for name, handler in handlers.items()
        }
        try:
            yield self
        finally:
            self._session_handlers = {}

    async def route(self, line: str) -> CommandOutcome:
        """
        Dispatch one input line.

        Args:
            line: Raw input line

        Returns:
            CommandOutcome describing what happened

        Raises:
            QuitRequested: For bye/quit (and exit outside a session)
        """
        command = parse_command(line)
        if command is None:
            return CommandOutcome.NOT_A_COMMAND

        handler = self._session_handlers.get(command.name)
        if handler is not None:
            logger.debug("Session command: /%s", command.name)
            outcome = await handler(command)
            return outcome or CommandOutcome.HANDLED

        if command.name == "help":
            self.presenter.show_help()
            return CommandOutcome.HANDLED

        if command.name in QUIT_COMMANDS:
            logger.info("Quit requested via /%s", command.name)
            self.presenter.show_goodbye()
            raise QuitRequested()

        if command.name in SESSION_COMMAND_NAMES:
            self.presenter.show_error(
                f"/{command.name} is only available inside a room"
            )
            return CommandOutcome.HANDLED

        self.presenter.show_unknown_command(command.name)
        return CommandOutcome.UNKNOWN
