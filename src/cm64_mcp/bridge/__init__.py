"""Bridge module - MCP stdio-to-HTTP transport.

Connects stdio MCP clients (Claude Desktop, Claude Code, Cursor, etc.)
to the remote CM64 MCP server, managing the remote session for them.
"""

from .core import BridgeCore, BridgeState
from .errors import (
    BridgeError,
    ConnectError,
    ProtocolError,
    ReconnectError,
    SessionLostError,
    TransportError,
    is_session_lost,
    map_connection_error,
    map_http_error,
)
from .keepalive import KeepaliveScheduler
from .lifecycle import BridgeLifecycle
from .server import StdioChannel
from .transport import RemoteTransport, TransportResponse

__all__ = [
    "BridgeCore",
    "BridgeState",
    "BridgeError",
    "BridgeLifecycle",
    "ConnectError",
    "KeepaliveScheduler",
    "ProtocolError",
    "ReconnectError",
    "RemoteTransport",
    "SessionLostError",
    "StdioChannel",
    "TransportError",
    "TransportResponse",
    "is_session_lost",
    "map_connection_error",
    "map_http_error",
]
