"""
Error Types for the Chat Client

All recoverable failures raised by the client derive from ChatError so the
coordinator can catch them at a single boundary and turn them into a
"try again" prompt instead of a crash.

QuitRequested is deliberately NOT a ChatError: it is a control-flow signal
that must travel out of every nested prompt loop up to the application.
"""


class ChatError(Exception):
    """Base class for chat client errors."""


class InvalidInputError(ChatError):
    """A required field (room name, room ID, username, ...) was empty or invalid."""

    def __str__(self) -> str:
        return f"Invalid input: {self.args[0] if self.args else 'unknown'}"


class ServerError(ChatError):
    """
    The room directory rejected a request.

    Attributes:
        reason: Reason string reported by the server
    """

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason

    def __str__(self) -> str:
        return f"Server error: {self.reason}"


class NetworkError(ChatError):
    """The room directory could not be reached."""

    def __str__(self) -> str:
        return f"Network error: {self.args[0] if self.args else 'unknown'}"


class TransportError(ChatError):
    """
    Streaming transport failure (connect or send).

    Attributes:
        reason: Human readable failure description
    """

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason

    def __str__(self) -> str:
        return f"WebSocket error: {self.reason}"


class NotConnectedError(TransportError):
    """A send was attempted while the session is not connected."""

    def __init__(self, reason: str = "Not connected"):
        super().__init__(reason)


class ConnectionFailedError(ChatError):
    """The server health probe did not succeed within the quick attempts."""

    def __init__(self, url: str = ""):
        super().__init__(url)
        self.url = url

    def __str__(self) -> str:
        return "Connection failed"


class SessionBusyError(ChatError):
    """connect() was called on an engine that is busy or already used."""


class QuitRequested(Exception):
    """
    Raised when the user asks to leave the application.

    Attributes:
        exit_code: Process exit status to use once cleanup is done
    """

    def __init__(self, message: str = "Quit requested", exit_code: int = 0):
        super().__init__(message)
        self.exit_code = exit_code
