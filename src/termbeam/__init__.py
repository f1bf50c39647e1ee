"""
term-beam Package

This package provides a terminal chat client that joins a room on a chat
server and keeps a WebSocket connection open for real-time messages.

The session core is made of:
    - HistoryBuffer: bounded log of received messages
    - CommandRouter: global and room-scoped slash commands
    - ConnectionSupervisor: health-probe retry loop before any session
    - SessionEngine: connect/reconnect state machine for one room
    - Coordinator: room selection and the outer application loop
"""

__version__ = "1.0.0"

from .history_buffer import HistoryBuffer
from .commands import CommandOutcome, CommandRouter, ParsedCommand, parse_command
from .supervisor import ConnectionSupervisor
from .session import (
    ConnectionState,
    SessionEngine,
    SessionIdentity,
    reconnect_delay,
)
from .transport import TransportEvent, WebSocketTransport
from .directory import RoomDirectoryClient, check_health
from .chat_session import ChatSession
from .coordinator import Coordinator
from .config import ClientConfig
from .errors import (
    ChatError,
    ConnectionFailedError,
    InvalidInputError,
    NetworkError,
    NotConnectedError,
    QuitRequested,
    ServerError,
    SessionBusyError,
    TransportError,
)

__all__ = [
    "__version__",
    # Core
    "HistoryBuffer",
    "CommandOutcome",
    "CommandRouter",
    "ParsedCommand",
    "parse_command",
    "ConnectionSupervisor",
    "ConnectionState",
    "SessionEngine",
    "SessionIdentity",
    "reconnect_delay",
    "Coordinator",
    "ChatSession",
    # Collaborators
    "TransportEvent",
    "WebSocketTransport",
    "RoomDirectoryClient",
    "check_health",
    "ClientConfig",
    # Errors
    "ChatError",
    "ConnectionFailedError",
    "InvalidInputError",
    "NetworkError",
    "NotConnectedError",
    "QuitRequested",
    "ServerError",
    "SessionBusyError",
    "TransportError",
]
