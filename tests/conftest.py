"""Shared test fixtures for cm64-mcp tests.

This module provides fixtures for testing the bridge:
- fake_remote: FakeRemote simulating the CM64 MCP endpoint
- transport: RemoteTransport talking to fake_remote via httpx.MockTransport
- clock / core: BridgeCore over transport with a hand-advanced clock
"""

import httpx
import pytest

from cm64_mcp.bridge.core import BridgeCore
from cm64_mcp.bridge.transport import RemoteTransport
from tests.mocks import TEST_ENDPOINT, TEST_TOKEN, FakeClock, FakeRemote


@pytest.fixture
def fake_remote() -> FakeRemote:
    """Fixture providing a FakeRemote."""
    return FakeRemote()


@pytest.fixture
def transport(fake_remote: FakeRemote) -> RemoteTransport:
    """RemoteTransport wired to the fake remote."""
    client = httpx.AsyncClient(transport=httpx.MockTransport(fake_remote.handle))
    return RemoteTransport(endpoint=TEST_ENDPOINT, token=TEST_TOKEN, client=client)


@pytest.fixture
def clock() -> FakeClock:
    """Fixture providing a FakeClock."""
    return FakeClock()


@pytest.fixture
def core(transport: RemoteTransport, clock: FakeClock) -> BridgeCore:
    """BridgeCore over the fake remote with a controllable clock."""
    return BridgeCore(transport=transport, clock=clock)


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    """Point config and token lookups at an empty temp directory."""
    cm64_dir = tmp_path / ".cm64"
    monkeypatch.setattr("cm64_mcp.shared.paths.TOKENS_DIR", cm64_dir / "tokens")
    monkeypatch.setattr("cm64_mcp.config.CONFIG_FILE", cm64_dir / "config.yaml")
    for var in (
        "CM64_TOKEN",
        "CM64_ENDPOINT",
        "CM64_TIMEOUT",
        "CM64_KEEPALIVE_INTERVAL",
        "CM64_IDLE_THRESHOLD",
        "CM64_LOG_LEVEL",
        "CM64_LOG_FILE",
        "CM64_LOG_FORMAT",
    ):
        monkeypatch.delenv(var, raising=False)
    return cm64_dir
