"""Error types for the CM64 bridge.

Maps transport failures and HTTP status codes to MCP-compliant JSON-RPC
errors that can be written back to the stdio client.
"""

from dataclasses import dataclass, field
from typing import Any

# JSON-RPC error codes
JSONRPC_INVALID_REQUEST = -32600
JSONRPC_SERVER_ERROR = -32000  # -32000 to -32099 reserved for implementation-defined server errors

# Custom error codes for bridge
BRIDGE_AUTH_ERROR = -32001
BRIDGE_CONNECTION_ERROR = -32002
BRIDGE_TIMEOUT_ERROR = -32003

# Server-reported text that means the remote no longer recognizes our session.
# Substring heuristic only: the remote does not expose a structured signal.
SESSION_LOST_MARKERS = (
    "Server not initialized",
    "Session not found",
    "Bad Request",
)


@dataclass
class BridgeError(Exception):
    """Base error class for bridge errors."""

    code: int = JSONRPC_SERVER_ERROR
    message: str = "Bridge error"
    retryable: bool = False
    data: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        return self.message

    def to_jsonrpc(self) -> dict[str, Any]:
        """Convert to JSON-RPC error object."""
        error: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.data:
            error["data"] = self.data
        return error


@dataclass
class TransportError(BridgeError):
    """The remote endpoint could not be reached (refused, DNS, timeout...)."""

    code: int = BRIDGE_CONNECTION_ERROR
    message: str = "Cannot reach remote endpoint"
    retryable: bool = True
    timeout: bool = False


@dataclass
class ProtocolError(BridgeError):
    """Non-2xx HTTP status or a response body that is not JSON."""

    code: int = JSONRPC_SERVER_ERROR
    message: str = "Protocol error"
    status_code: int | None = None
    body: str = ""
    session_id: str | None = None


@dataclass
class SessionLostError(BridgeError):
    """A failed exchange classified as loss of the remote session."""

    code: int = JSONRPC_SERVER_ERROR
    message: str = "Session lost"
    retryable: bool = True


@dataclass
class ConnectError(BridgeError):
    """The initial initialize handshake failed."""

    code: int = JSONRPC_SERVER_ERROR
    message: str = "Connection failed"


@dataclass
class ReconnectError(BridgeError):
    """The reconnect handshake failed; no further automatic retry."""

    code: int = JSONRPC_SERVER_ERROR
    message: str = "Reconnect failed"


def map_http_error(
    status_code: int, body: str, session_id: str | None = None
) -> ProtocolError:
    """Map a non-2xx HTTP response to a ProtocolError.

    The message keeps the status and body verbatim so that session-loss
    markers in the body remain detectable.

    Args:
        status_code: HTTP status code
        body: Raw response body text
        session_id: mcp-session-id header of the response, if any

    Returns:
        ProtocolError carrying status, body and session id
    """
    code = BRIDGE_AUTH_ERROR if status_code in (401, 403) else JSONRPC_SERVER_ERROR
    return ProtocolError(
        code=code,
        message=f"HTTP {status_code}: {body}",
        retryable=status_code in (502, 503, 504),
        data={"http_status": status_code},
        status_code=status_code,
        body=body,
        session_id=session_id,
    )


def map_connection_error(error_message: str, url: str, is_timeout: bool = False) -> TransportError:
    """Map a network-level failure to a TransportError.

    Args:
        error_message: Error message from exception
        url: URL that was being accessed
        is_timeout: Whether this was a timeout error

    Returns:
        TransportError
    """
    if is_timeout:
        return TransportError(
            code=BRIDGE_TIMEOUT_ERROR,
            message=f"Request timeout connecting to {url}",
            data={"url": url, "original_error": error_message},
            timeout=True,
        )

    # Extract host:port from URL for clearer message
    from urllib.parse import urlparse

    parsed = urlparse(url)
    host_port = f"{parsed.hostname}:{parsed.port}" if parsed.port else parsed.hostname

    return TransportError(
        message=f"Cannot reach {host_port}: {error_message}",
        data={"url": url, "original_error": error_message},
    )


def is_session_lost(error: BaseException) -> bool:
    """Whether a failed exchange means the remote session is gone.

    Matches the error text against SESSION_LOST_MARKERS. "Bad Request" is
    broad and may cause a spurious reconnect on an unrelated 400.

    Args:
        error: Exception raised by a request

    Returns:
        True if the error text contains any session-loss marker
    """
    if isinstance(error, SessionLostError):
        return True
    text = str(error)
    return any(marker in text for marker in SESSION_LOST_MARKERS)
