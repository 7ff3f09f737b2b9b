"""StdioChannel - stdio MCP channel facing the agent.

Reads newline-delimited JSON-RPC messages from stdin, hands each to
BridgeCore, and writes the response to stdout. Errors become JSON-RPC
error responses; the loop only ends when stdin closes or shutdown is
requested.
"""

import asyncio
import json
import sys
from typing import Any, TextIO

import structlog

from .core import BridgeCore
from .errors import JSONRPC_INVALID_REQUEST, JSONRPC_SERVER_ERROR, BridgeError

logger = structlog.get_logger(__name__)

# How often the read loop wakes up to check for shutdown
READ_POLL_INTERVAL = 1.0


def make_error_response(request_id: Any, code: int, message: str) -> dict[str, Any]:
    """Create JSON-RPC error response."""
    return {
        "jsonrpc": "2.0",
        "id": request_id,
        "error": {"code": code, "message": message},
    }


async def open_stdin_reader() -> asyncio.StreamReader:
    """Attach an asyncio StreamReader to the process stdin."""
    reader = asyncio.StreamReader()
    protocol = asyncio.StreamReaderProtocol(reader)

    loop = asyncio.get_running_loop()
    await loop.connect_read_pipe(lambda: protocol, sys.stdin)
    return reader


class StdioChannel:
    """One-message-at-a-time stdio loop in front of BridgeCore."""

    def __init__(
        self,
        core: BridgeCore,
        reader: asyncio.StreamReader | None = None,
        writer: TextIO | None = None,
    ):
        """Initialize StdioChannel.

        Args:
            core: BridgeCore that dispatches every message
            reader: Source of input lines (stdin when omitted)
            writer: Destination for responses (stdout when omitted)
        """
        self.core = core
        self._reader = reader
        self._writer = writer or sys.stdout

    async def handle_message(self, message: dict[str, Any]) -> dict[str, Any] | None:
        """Handle one parsed client message.

        Args:
            message: JSON-RPC message from the client

        Returns:
            JSON-RPC response, or None when nothing should be written
        """
        method = message.get("method")
        request_id = message.get("id")
        # JSON-RPC notifications have no id and never receive a response
        is_notification = "id" not in message

        logger.debug("inbound", method=method, id=request_id, notification=is_notification)

        try:
            response = await self.core.handle_inbound(message)
        except BridgeError as e:
            if is_notification:
                logger.warning("notification_failed", method=method, error=e.message)
                return None
            logger.error("request_failed", method=method, id=request_id, error=e.message)
            return make_error_response(request_id, e.code, e.message)
        except Exception as e:
            if is_notification:
                logger.warning("notification_failed", method=method, error=str(e))
                return None
            logger.exception("unexpected_error", method=method, id=request_id)
            return make_error_response(
                request_id, JSONRPC_SERVER_ERROR, f"Internal bridge error: {e}"
            )

        if not isinstance(response, dict):
            return None

        if not is_notification and ("result" in response or "error" in response):
            # Correlate with the client's id, not whatever the remote echoed
            response["id"] = request_id
        return response

    async def handle_line(self, line: bytes | str) -> dict[str, Any] | None:
        """Decode one input line and handle it.

        Malformed lines are channel-level errors: logged and skipped.

        Args:
            line: Raw line read from the channel

        Returns:
            JSON-RPC response, or None when nothing should be written
        """
        try:
            text = line.decode("utf-8") if isinstance(line, bytes) else line
        except UnicodeDecodeError as e:
            logger.warning("channel_error", error=f"Invalid UTF-8: {e}")
            return None

        text = text.strip()
        if not text:
            return None

        try:
            message = json.loads(text)
        except json.JSONDecodeError as e:
            logger.warning("channel_error", error=f"Invalid JSON: {e}")
            return None

        if not isinstance(message, dict):
            logger.warning("channel_error", error="Message is not a JSON object")
            return make_error_response(None, JSONRPC_INVALID_REQUEST, "Invalid Request")

        return await self.handle_message(message)

    def write(self, response: dict[str, Any]) -> None:
        """Write one response line to the channel."""
        self._writer.write(json.dumps(response) + "\n")
        self._writer.flush()

    async def run(self, shutdown_event: asyncio.Event | None = None) -> None:
        """Read and answer messages until EOF or shutdown.

        Args:
            shutdown_event: Stops the loop when set
        """
        if self._reader is None:
            self._reader = await open_stdin_reader()
        shutdown_event = shutdown_event or asyncio.Event()

        while not shutdown_event.is_set():
            try:
                line = await asyncio.wait_for(self._reader.readline(), timeout=READ_POLL_INTERVAL)
            except asyncio.TimeoutError:
                # No input, check shutdown and continue
                continue
            except (OSError, ValueError) as e:
                # ValueError: line longer than the reader limit
                logger.warning("channel_error", error=str(e))
                continue

            if not line:
                logger.info("stdin_closed")
                break

            response = await self.handle_line(line)
            if response is not None:
                self.write(response)
