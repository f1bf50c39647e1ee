"""
Session Engine for a Single Room Connection

This module provides the SessionEngine class which owns one live connection
to one room. It runs the connect/reconnect state machine, feeds inbound
messages into the HistoryBuffer and a presentation sink, and accepts
outbound sends.

Architecture:
    - All session state lives on one asyncio event loop
    - The transport pushes (TransportEvent, payload) items onto an
      asyncio.Queue; a single pump task drains it, so inbound delivery
      and reconnection never race with each other
    - An asyncio.Lock serialises connection attempts
    - Reconnection uses a deterministic, capped backoff (no jitter)

State machine:
    IDLE -> CONNECTING -> CONNECTED
    CONNECTED -> RECONNECTING -> CONNECTING -> CONNECTED (on transport close)
    any -> DISCONNECTED (manual disconnect)
    RECONNECTING -> FAILED (attempts exhausted)

Usage:
    engine = SessionEngine(WebSocketTransport(server_url))
    await engine.connect(identity, on_message, on_disconnect)
    await engine.send("hello")
    await engine.disconnect()
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Optional

from .config import (
    MAX_RECONNECT_ATTEMPTS,
    RECONNECT_DELAY_CAP,
    RECONNECT_DELAY_STEP,
)
from .errors import (
    InvalidInputError,
    NotConnectedError,
    SessionBusyError,
    TransportError,
)
from .history_buffer import DEFAULT_HISTORY_CAPACITY, HistoryBuffer
from .schemas import HEARTBEAT_FRAME, Message, SendMessageRequest
from .transport import TransportEvent
from .utils.validation import validate_message_content

logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    """Lifecycle state of a SessionEngine."""

    IDLE = "idle"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"
    DISCONNECTED = "disconnected"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (ConnectionState.DISCONNECTED, ConnectionState.FAILED)


@dataclass(frozen=True)
class SessionIdentity:
    """
    Who is connected to which room.

    Fixed for the lifetime of one SessionEngine.

    Attributes:
        room_id: ID of the joined room
        user_id: User ID assigned by the join request
        username: Display name chosen for the room
        room_name: Human readable room name
    """

    room_id: str
    user_id: str
    username: str
    room_name: str


def reconnect_delay(
    attempt: int,
    step: float = RECONNECT_DELAY_STEP,
    cap: float = RECONNECT_DELAY_CAP,
) -> float:
    """
    Backoff before reconnect attempt number ``attempt`` (1-based).

    Returns:
        min(attempt * step, cap) seconds
    """
    return min(attempt * step, cap)


MessageSink = Callable[[Message], None]
DisconnectCallback = Callable[[], None]
StateListener = Callable[[ConnectionState, "SessionEngine"], None]


class SessionEngine:
    """
    Connection lifecycle and reconnection for one room session.

    Engines are single-use: once DISCONNECTED or FAILED they cannot be
    connected again.

    Attributes:
        identity: The SessionIdentity passed to connect()
        max_reconnect_attempts: Reconnect attempts before giving up
    """

    def __init__(
        self,
        transport: Any,
        history: Optional[HistoryBuffer] = None,
        max_reconnect_attempts: int = MAX_RECONNECT_ATTEMPTS,
        delay_step: float = RECONNECT_DELAY_STEP,
        delay_cap: float = RECONNECT_DELAY_CAP,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        on_state_change: Optional[StateListener] = None,
    ):
        """
        Initialize the session engine.

        Args:
            transport: Streaming transport (see WebSocketTransport)
            history: Buffer for received messages (a new one by default)
            max_reconnect_attempts: Attempts before moving to FAILED
            delay_step: Seconds of backoff added per attempt
            delay_cap: Upper bound for a single backoff delay
            sleep: Coroutine used for backoff waits (injectable for tests)
            on_state_change: Optional listener called on every transition
        """
        self.transport = transport
        self.identity: Optional[SessionIdentity] = None
        self.max_reconnect_attempts = max_reconnect_attempts
        self._history = (
            history
            if history is not None
            else HistoryBuffer(DEFAULT_HISTORY_CAPACITY)
        )
        self._delay_step = delay_step
        self._delay_cap = delay_cap
        self._sleep = sleep
        self._on_state_change = on_state_change

        self._state = ConnectionState.IDLE
        self._reconnect_attempts = 0
        self._manual_stop = False
        self._on_message: Optional[MessageSink] = None
        self._on_disconnect: Optional[DisconnectCallback] = None

        self._events: "asyncio.Queue" = asyncio.Queue()
        self._connect_lock = asyncio.Lock()
        self._terminated = asyncio.Event()
        self._pump_task: Optional[asyncio.Task] = None

    @property
    def state(self) -> ConnectionState:
        """Current connection state."""
        return self._state

    @property
    def reconnect_attempts(self) -> int:
        """Reconnect attempts made since the last successful connection."""
        return self._reconnect_attempts

    @property
    def history(self) -> HistoryBuffer:
        """Messages received during this session."""
        return self._history

    @property
    def is_connected(self) -> bool:
        return (
            self._state == ConnectionState.CONNECTED
            and self.transport.is_connected
        )

    def _set_state(self, state: ConnectionState) -> None:
        if state == self._state:
            return
        logger.debug("Session state %s -> %s", self._state.value, state.value)
        self._state = state
        if state.is_terminal:
            self._terminated.set()
        if self._on_state_change is not None:
            try:
                self._on_state_change(state, self)
            except Exception:
                logger.exception("State listener failed")

    async def connect(
        self,
        identity: SessionIdentity,
        on_message: MessageSink,
        on_disconnect: DisconnectCallback,
    ) -> None:
        """
        Open the room stream for ``identity``.

        The first handshake is not retried: a failure leaves the engine in
        FAILED and is raised to the caller. Reconnection only applies to a
        session that was established and later dropped.

        Args:
            identity: Room and user to connect as
            on_message: Sink for every decoded inbound message
            on_disconnect: Called once if reconnection is exhausted

        Raises:
            SessionBusyError: If the engine is not IDLE
            TransportError: If the handshake fails
        """
        if self._state != ConnectionState.IDLE or self._connect_lock.locked():
            raise SessionBusyError(
                f"Session is {self._state.value}, cannot connect"
            )

        async with self._connect_lock:
            self.identity = identity
            self._on_message = on_message
            self._on_disconnect = on_disconnect
            self._set_state(ConnectionState.CONNECTING)
            self._pump_task = asyncio.create_task(self._pump())

            try:
                await self.transport.connect(
                    identity.room_id, identity.user_id, self._events
                )
            except TransportError:
                logger.error(
                    "Initial connection to room %s failed", identity.room_id
                )
                await self._stop_pump()
                self._set_state(ConnectionState.FAILED)
                raise

            if self._manual_stop:
                # disconnect() ran while the handshake was in flight
                await self.transport.disconnect()
                return
            self._reconnect_attempts = 0
            self._set_state(ConnectionState.CONNECTED)
            logger.info(
                "Session connected to room %s as %s",
                identity.room_id,
                identity.username,
            )

    async def send(self, content: str) -> None:
        """
        Send a chat message to the room.

        Args:
            content: Message text

        Raises:
            NotConnectedError: If the session is not CONNECTED
            InvalidInputError: If the content is empty or too long
            TransportError: If the write fails
        """
        if not self.is_connected:
            raise NotConnectedError()

        is_valid, error = validate_message_content(content)
        if not is_valid:
            raise InvalidInputError(error)

        await self.transport.send(SendMessageRequest(content=content).to_json())

    async def disconnect(self) -> None:
        """
        End the session.

        Suppresses any pending or future reconnect, closes the transport and
        drops the stored callbacks. on_disconnect is not invoked.
        """
        self._manual_stop = True
        await self._stop_pump()
        await self.transport.disconnect()
        self._on_message = None
        self._on_disconnect = None
        if self._state != ConnectionState.FAILED:
            self._set_state(ConnectionState.DISCONNECTED)
        self._terminated.set()

    async def wait_terminated(self) -> ConnectionState:
        """Wait until the engine reaches DISCONNECTED or FAILED."""
        await self._terminated.wait()
        return self._state

    async def drain_events(self) -> None:
        """Wait until every queued transport event has been handled."""
        await self._events.join()

    async def _stop_pump(self) -> None:
        task, self._pump_task = self._pump_task, None
        if task is None or task is asyncio.current_task() or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _pump(self) -> None:
        """Drain transport events in arrival order."""
        while True:
            event, payload = await self._events.get()
            try:
                if event == TransportEvent.FRAME:
                    self._handle_frame(payload)
                elif event == TransportEvent.CLOSED:
                    await self._handle_closed()
            finally:
                self._events.task_done()

    def _handle_frame(self, frame: Any) -> None:
        if frame == HEARTBEAT_FRAME:
            return

        try:
            message = Message.from_json(frame)
        except (ValueError, KeyError, TypeError) as e:
            logger.debug("Dropping undecodable frame %r: %s", frame, e)
            return

        self._history.append(message)
        if self._on_message is not None:
            try:
                self._on_message(message)
            except Exception:
                logger.exception("Message sink failed")

    async def _handle_closed(self) -> None:
        if self._manual_stop or self._state != ConnectionState.CONNECTED:
            logger.debug("Ignoring close notification in %s", self._state)
            return

        logger.warning("Room stream closed, attempting to reconnect")
        async with self._connect_lock:
            await self._reconnect()

    async def _reconnect(self) -> None:
        """Sequential reconnect attempts with capped backoff."""
        while not self._manual_stop:
            if self._reconnect_attempts >= self.max_reconnect_attempts:
                logger.error(
                    "Giving up after %d reconnect attempts",
                    self._reconnect_attempts,
                )
                callback = self._on_disconnect
                self._set_state(ConnectionState.FAILED)
                if callback is not None:
                    try:
                        callback()
                    except Exception:
                        logger.exception("Disconnect callback failed")
                return

            self._reconnect_attempts += 1
            self._set_state(ConnectionState.RECONNECTING)
            delay = reconnect_delay(
                self._reconnect_attempts, self._delay_step, self._delay_cap
            )
            logger.info(
                "Reconnect attempt %d/%d in %.1fs",
                self._reconnect_attempts,
                self.max_reconnect_attempts,
                delay,
            )
            await self._sleep(delay)
            if self._manual_stop:
                return

            self._set_state(ConnectionState.CONNECTING)
            try:
                await self.transport.connect(
                    self.identity.room_id, self.identity.user_id, self._events
                )
            except TransportError as e:
                logger.warning(
                    "Reconnect attempt %d failed: %s",
                    self._reconnect_attempts,
                    e,
                )
                continue

            self._reconnect_attempts = 0
            self._set_state(ConnectionState.CONNECTED)
            logger.info("Reconnected to room %s", self.identity.room_id)
            return
