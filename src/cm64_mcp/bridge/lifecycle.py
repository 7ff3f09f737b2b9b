"""BridgeLifecycle - runs the bridge and tears it down.

Handles:
- SIGTERM/SIGINT handling
- Running the stdio channel until stdin closes
- Graceful shutdown: keepalive cancel, session DELETE, HTTP client close
"""

import asyncio
import signal
from typing import Optional

import structlog

from .core import BridgeCore
from .server import StdioChannel

logger = structlog.get_logger(__name__)


class BridgeLifecycle:
    """Owns startup and shutdown of one bridge instance."""

    def __init__(self, core: BridgeCore, channel: StdioChannel):
        """Initialize BridgeLifecycle.

        Args:
            core: BridgeCore holding the remote session
            channel: StdioChannel facing the agent
        """
        self.core = core
        self.channel = channel

        self._is_running = False
        self._is_shut_down = False
        self._received_signal: Optional[signal.Signals] = None
        self._shutdown_event = asyncio.Event()

    @property
    def is_running(self) -> bool:
        """Whether the channel loop is running."""
        return self._is_running

    @property
    def is_shut_down(self) -> bool:
        """Whether shutdown has completed."""
        return self._is_shut_down

    def request_shutdown(self, sig: Optional[signal.Signals] = None) -> None:
        """Ask the channel loop to stop (signal handler entry point)."""
        self._received_signal = sig
        self._shutdown_event.set()

    def _install_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            try:
                loop.add_signal_handler(sig, self.request_shutdown, sig)
            except (NotImplementedError, RuntimeError):
                # Not supported on this platform or outside the main thread
                logger.debug("signal_handler_unavailable", signal=sig.name)

    async def run(self) -> None:
        """Run the channel until stdin closes or a signal arrives, then shut down."""
        self._install_signal_handlers()
        self._is_running = True
        logger.info("bridge_started", endpoint=self.core.transport.endpoint)

        try:
            await self.channel.run(self._shutdown_event)
        finally:
            self._is_running = False
            if self._received_signal is not None:
                await self.shutdown(self._received_signal)
            else:
                await self.shutdown_on_stdin_close()

    async def shutdown(self, sig: Optional[signal.Signals] = None) -> None:
        """Perform graceful shutdown. Safe to call more than once."""
        if self._is_shut_down:
            return
        self._is_shut_down = True

        if sig:
            logger.info("shutting_down", signal=sig.name)
        else:
            logger.info("shutting_down")

        self._is_running = False
        self._shutdown_event.set()

        await self.core.disconnect()
        await self.core.transport.close()
        logger.info("shutdown_complete")

    async def shutdown_on_stdin_close(self) -> None:
        """Shutdown when stdin closes."""
        logger.info("stdin_closed_shutting_down")
        await self.shutdown()
