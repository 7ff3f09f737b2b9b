"""RemoteTransport - HTTP client for the CM64 MCP endpoint.

One HTTP exchange per call:
- POST <endpoint> for JSON-RPC messages
- DELETE <endpoint> for best-effort session teardown

The transport holds no session state; the caller passes the session id in
and reads the one returned by the server.
"""

import json
from dataclasses import dataclass
from typing import Any
from urllib.parse import urlparse

import httpx
import structlog

from ..shared.auth import auth_headers
from .errors import TransportError, map_connection_error, map_http_error

logger = structlog.get_logger(__name__)

SESSION_HEADER = "mcp-session-id"
DEFAULT_TIMEOUT = 30.0


@dataclass
class TransportResponse:
    """Result of a successful POST exchange."""

    status_code: int
    body: dict[str, Any] | None
    session_id: str | None = None


class RemoteTransport:
    """Stateless-per-call HTTP client for the remote MCP service."""

    def __init__(
        self,
        endpoint: str,
        token: str,
        timeout: float = DEFAULT_TIMEOUT,
        client: httpx.AsyncClient | None = None,
    ):
        """Initialize RemoteTransport.

        Args:
            endpoint: Full MCP endpoint URL (e.g., https://build.cm64.io/api/mcp)
            token: Bearer token sent on every request
            timeout: Per-request timeout in seconds (default: 30)
            client: Optional preconfigured httpx client (used by tests)

        Raises:
            ValueError: If endpoint is not a valid URL
        """
        parsed = urlparse(endpoint)
        if not parsed.scheme or not parsed.netloc:
            raise ValueError(f"Invalid URL: {endpoint}")

        self.endpoint = endpoint
        self.token = token
        self.timeout = timeout
        self._client = client
        self._closed = False

    def _get_headers(self, session_id: str | None = None) -> dict[str, str]:
        """Build request headers, with the session id when one is given."""
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
            **auth_headers(self.token),
        }
        if session_id:
            headers[SESSION_HEADER] = session_id
        return headers

    def _ensure_client(self) -> httpx.AsyncClient:
        """Ensure HTTP client is initialized."""
        if self._closed:
            raise TransportError(message="Transport is closed", retryable=False)
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(self.timeout))
        return self._client

    async def post(
        self, payload: dict[str, Any], session_id: str | None = None
    ) -> TransportResponse:
        """Send one JSON-RPC envelope via POST.

        Args:
            payload: JSON-RPC message to send
            session_id: Session id to attach, if any

        Returns:
            TransportResponse with parsed body and response session id

        Raises:
            ProtocolError: On non-2xx status or a non-JSON body
            TransportError: On network failure or timeout
        """
        client = self._ensure_client()

        try:
            response = await client.post(
                self.endpoint,
                json=payload,
                headers=self._get_headers(session_id),
            )
        except httpx.TimeoutException as e:
            raise map_connection_error(str(e), self.endpoint, is_timeout=True) from e
        except httpx.TransportError as e:
            raise map_connection_error(str(e), self.endpoint) from e

        new_session_id = response.headers.get(SESSION_HEADER)

        if not response.is_success:
            raise map_http_error(response.status_code, response.text, new_session_id)

        body = None
        if response.content:
            try:
                body = response.json()
            except (json.JSONDecodeError, UnicodeDecodeError) as e:
                error = map_http_error(response.status_code, response.text, new_session_id)
                error.message = f"Invalid JSON response: {e}"
                raise error from e

        return TransportResponse(
            status_code=response.status_code,
            body=body,
            session_id=new_session_id,
        )

    async def delete(self, session_id: str) -> None:
        """Ask the remote to drop a session.

        Args:
            session_id: Session to tear down

        Raises:
            ProtocolError: On non-2xx status
            TransportError: On network failure or timeout
        """
        client = self._ensure_client()

        headers = {**auth_headers(self.token), SESSION_HEADER: session_id}
        try:
            response = await client.delete(self.endpoint, headers=headers)
        except httpx.TimeoutException as e:
            raise map_connection_error(str(e), self.endpoint, is_timeout=True) from e
        except httpx.TransportError as e:
            raise map_connection_error(str(e), self.endpoint) from e

        if not response.is_success:
            raise map_http_error(response.status_code, response.text)

        logger.debug("session_deleted", session_id=session_id)

    async def close(self) -> None:
        """Close HTTP client and release resources."""
        self._closed = True
        if self._client:
            await self._client.aclose()
            self._client = None
