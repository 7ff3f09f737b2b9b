"""BridgeCore - session management for the CM64 bridge.

Owns the remote MCP session on behalf of a session-less stdio client:
- establishes the session on the client's initialize request
- attaches the session id to every subsequent exchange
- recovers from session loss with one reconnect-and-retry per message
- coalesces concurrent reconnects into a single handshake
- keeps the session alive while the client is idle
"""

import asyncio
import time
from enum import Enum
from typing import Any, Callable

import structlog

from .errors import (
    BridgeError,
    ConnectError,
    ProtocolError,
    ReconnectError,
    SessionLostError,
    is_session_lost,
)
from .keepalive import DEFAULT_IDLE_THRESHOLD, DEFAULT_KEEPALIVE_INTERVAL, KeepaliveScheduler
from .transport import RemoteTransport

logger = structlog.get_logger(__name__)

# Sent in the synthesized initialize request on reconnect
PROTOCOL_VERSION = "2024-11-05"
CLIENT_NAME = "cm64-cli"
CLIENT_VERSION = "1.0.0"


class BridgeState(str, Enum):
    """Lifecycle of the remote session."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"
    FAILED = "failed"
    CLOSED = "closed"


def _now_ms() -> int:
    return int(time.time() * 1000)


def _response_error(body: Any) -> dict[str, Any] | None:
    """Return the JSON-RPC error object of a response, if any."""
    if isinstance(body, dict) and body.get("error"):
        error = body["error"]
        return error if isinstance(error, dict) else {"message": str(error)}
    return None


class BridgeCore:
    """Dispatches client messages to the remote and owns its session.

    Session id, last activity and the reconnect guard are owned by this
    instance; nothing else mutates them.
    """

    def __init__(
        self,
        transport: RemoteTransport,
        keepalive_interval: float = DEFAULT_KEEPALIVE_INTERVAL,
        idle_threshold: float = DEFAULT_IDLE_THRESHOLD,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize BridgeCore.

        Args:
            transport: RemoteTransport used for every exchange
            keepalive_interval: Seconds between keepalive ticks
            idle_threshold: Idle seconds before a tick sends a ping
            clock: Monotonic time source for last-activity tracking
        """
        self.transport = transport
        self.clock = clock

        self._session_id: str | None = None
        self._state = BridgeState.DISCONNECTED
        self._last_activity = clock()
        # Set while a reconnect handshake is in flight; waiters block on it.
        self._reconnect_done: asyncio.Event | None = None

        self.keepalive = KeepaliveScheduler(
            ping=self.ping,
            last_activity=lambda: self._last_activity,
            interval=keepalive_interval,
            idle_threshold=idle_threshold,
            clock=clock,
        )

    @property
    def session_id(self) -> str | None:
        """Active remote session id, if any."""
        return self._session_id

    @property
    def state(self) -> BridgeState:
        """Current bridge state."""
        return self._state

    @property
    def last_activity(self) -> float:
        """Clock time of the last inbound message or successful exchange."""
        return self._last_activity

    @property
    def is_reconnecting(self) -> bool:
        """Whether a reconnect handshake is in flight."""
        return self._reconnect_done is not None

    async def handle_inbound(self, message: dict[str, Any]) -> dict[str, Any] | None:
        """Dispatch one client message and return the remote's response.

        Runs at most one reconnect-and-retry cycle for the message.

        Args:
            message: JSON-RPC message from the client

        Returns:
            JSON-RPC response body, or None when the remote sent no body

        Raises:
            BridgeError: If the exchange fails and cannot be recovered
        """
        self._last_activity = self.clock()

        if message.get("method") == "initialize" and self._session_id is None:
            return await self.connect(message)

        try:
            return await self.request(message)
        except BridgeError as e:
            if not is_session_lost(e):
                raise
            logger.warning("session_lost", session_id=self._session_id, error=e.message)

        await self.reconnect()

        try:
            return await self.request(message)
        except BridgeError as e:
            if is_session_lost(e):
                raise SessionLostError(
                    message=f"Session lost after reconnect: {e.message}",
                    data=e.data,
                ) from e
            raise

    async def connect(self, init_message: dict[str, Any]) -> dict[str, Any] | None:
        """Run the client's initialize handshake and start the keepalive.

        Args:
            init_message: The client's initialize request

        Returns:
            The remote's initialize response

        Raises:
            ConnectError: If the handshake fails; never retried
        """
        self._state = BridgeState.CONNECTING
        logger.info("connecting")

        try:
            response = await self.request(init_message)
        except BridgeError as e:
            self._connect_failed()
            raise ConnectError(message=f"Connection failed: {e.message}", data=e.data) from e

        error = _response_error(response)
        if error:
            self._connect_failed()
            raise ConnectError(
                message=f"Connection failed: Initialize failed: {error.get('message')}",
                data={"error": error},
            )

        self._state = BridgeState.CONNECTED
        logger.info("connected", session_id=self._session_id)
        self.keepalive.start()
        return response

    def _connect_failed(self) -> None:
        self._session_id = None
        self._state = BridgeState.DISCONNECTED

    async def reconnect(self) -> None:
        """Replace a lost session with a fresh one.

        Single-flight: if a reconnect is already running, wait for it to
        finish and return without a second handshake.

        Raises:
            ReconnectError: If the handshake fails; the session stays cleared
        """
        if self._reconnect_done is not None:
            logger.info("reconnect_in_progress")
            await self._reconnect_done.wait()
            return

        done = asyncio.Event()
        self._reconnect_done = done
        self._state = BridgeState.RECONNECTING
        old_session_id = self._session_id
        self._session_id = None
        logger.info("reconnecting", old_session_id=old_session_id)

        try:
            response = await self.request(self._handshake_message())
            error = _response_error(response)
            if error:
                raise ReconnectError(
                    message=f"Reconnect failed: {error.get('message')}",
                    data={"error": error},
                )
        except ReconnectError as e:
            self._reconnect_failed(e)
            raise
        except BridgeError as e:
            self._reconnect_failed(e)
            raise ReconnectError(message=f"Reconnect failed: {e.message}", data=e.data) from e
        finally:
            self._reconnect_done = None
            done.set()

        self._state = BridgeState.CONNECTED
        logger.info("reconnected", session_id=self._session_id)
        self.keepalive.start()

    def _reconnect_failed(self, error: BridgeError) -> None:
        self._session_id = None
        self._state = BridgeState.FAILED
        logger.error("reconnect_failed", error=error.message)

    def _handshake_message(self) -> dict[str, Any]:
        return {
            "jsonrpc": "2.0",
            "method": "initialize",
            "params": {
                "protocolVersion": PROTOCOL_VERSION,
                "capabilities": {},
                "clientInfo": {"name": CLIENT_NAME, "version": CLIENT_VERSION},
            },
            "id": f"reconnect-{_now_ms()}",
        }

    async def request(self, payload: dict[str, Any]) -> dict[str, Any] | None:
        """Perform one exchange carrying the current session id.

        Adopts the response's session id, from a success or an error
        response, when no session is held.

        Args:
            payload: JSON-RPC message to send

        Returns:
            Parsed response body, or None for an empty body

        Raises:
            ProtocolError: On non-2xx status (status and body verbatim)
            TransportError: On network failure
        """
        sent_session_id = self._session_id
        try:
            response = await self.transport.post(payload, session_id=sent_session_id)
        except ProtocolError as e:
            self._adopt_session(sent_session_id, e.session_id)
            raise

        self._adopt_session(sent_session_id, response.session_id)
        self._last_activity = self.clock()
        return response.body

    def _adopt_session(self, sent_session_id: str | None, session_id: str | None) -> None:
        # Only an exchange sent without a session may establish one; replies to
        # exchanges sent on an older session are stale.
        if not session_id or sent_session_id is not None or self._session_id is not None:
            return
        self._session_id = session_id
        logger.info("session_adopted", session_id=session_id)

    async def ping(self) -> dict[str, Any] | None:
        """Send a no-op ping on the current session.

        Skipped while no session is held or a reconnect is in flight.
        """
        if self._session_id is None or self.is_reconnecting:
            logger.debug("ping_skipped", state=self._state.value)
            return None
        return await self.request({"jsonrpc": "2.0", "method": "ping", "id": f"ping-{_now_ms()}"})

    async def disconnect(self) -> None:
        """Stop the keepalive and tear down the remote session.

        Best-effort: teardown failures are logged, never raised.
        """
        await self.keepalive.stop()

        if self._session_id:
            try:
                await self.transport.delete(self._session_id)
            except Exception as e:
                logger.warning("disconnect_failed", session_id=self._session_id, error=str(e))

        self._session_id = None
        self._state = BridgeState.CLOSED
        logger.info("disconnected")
