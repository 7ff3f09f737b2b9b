"""Test mocks for cm64-mcp.

Provides fake implementations for testing:
- FakeRemote: Simulates the remote MCP endpoint with sessions
- FakeClock: Hand-advanced monotonic clock
"""

from .fake_remote import (
    TEST_ENDPOINT,
    TEST_TOKEN,
    FakeClock,
    FakeRemote,
    RecordedRequest,
    make_initialize,
    make_request,
)

__all__ = [
    "TEST_ENDPOINT",
    "TEST_TOKEN",
    "FakeClock",
    "FakeRemote",
    "RecordedRequest",
    "make_initialize",
    "make_request",
]
