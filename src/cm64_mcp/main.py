"""CLI entry point - `cm64` stdio-to-HTTP bridge.

Translates between stdio MCP (agent-facing) and the CM64 MCP HTTP
endpoint. Logs go to stderr or a file; stdout carries the protocol.
"""

import asyncio
import sys

import click
import structlog

from .bridge.core import BridgeCore
from .bridge.lifecycle import BridgeLifecycle
from .bridge.server import StdioChannel
from .bridge.transport import RemoteTransport
from .config import DEFAULT_ENDPOINT, BridgeConfig, ConfigError, load_config
from .shared.logging import LOG_FORMATS, configure_logging

DEFAULT_LOG_LEVEL = "info"
TOKEN_URL = "https://build.cm64.io/settings/tokens"

logger = structlog.get_logger(__name__)

HELP_EPILOG = f"""
\b
Environment variables:
  CM64_TOKEN              Personal Access Token (alternative to --token)
  CM64_ENDPOINT           MCP endpoint URL (alternative to --endpoint)
  CM64_TIMEOUT            Request timeout in seconds
  CM64_KEEPALIVE_INTERVAL Seconds between keepalive checks
  CM64_IDLE_THRESHOLD     Idle seconds before a keepalive ping
  CM64_LOG_LEVEL          Log level
  CM64_LOG_FORMAT         Log line format (console or json)
  CM64_LOG_FILE           Log file path

\b
Examples:
  # Using command line args
  cm64 --token cm64_pat_abc123

\b
  # Using environment variables
  export CM64_TOKEN=cm64_pat_abc123
  cm64

\b
Claude Code configuration:
  {{
    "mcpServers": {{
      "cm64": {{
        "command": "cm64",
        "args": ["--token", "cm64_pat_abc123"]
      }}
    }}
  }}

Generate a token at: {TOKEN_URL}
"""


def build_bridge(config: BridgeConfig) -> BridgeLifecycle:
    """Wire transport, core and channel from a validated config."""
    transport = RemoteTransport(
        endpoint=config.endpoint,
        token=config.token or "",
        timeout=config.timeout,
    )
    core = BridgeCore(
        transport=transport,
        keepalive_interval=config.keepalive_interval,
        idle_threshold=config.idle_threshold,
    )
    channel = StdioChannel(core=core)
    return BridgeLifecycle(core=core, channel=channel)


async def run_bridge(config: BridgeConfig) -> None:
    """Run the bridge until stdin closes or a signal arrives."""
    lifecycle = build_bridge(config)
    await lifecycle.run()


@click.command(
    "cm64",
    epilog=HELP_EPILOG,
    context_settings={"help_option_names": ["-h", "--help"]},
)
@click.option("-t", "--token", help="CM64 Personal Access Token (required)")
@click.option(
    "-e",
    "--endpoint",
    help=f"MCP endpoint (default: {DEFAULT_ENDPOINT})",
)
@click.option("--timeout", type=float, help="Request timeout in seconds (default: 30)")
@click.option(
    "--keepalive-interval",
    type=float,
    help="Seconds between keepalive checks (default: 300)",
)
@click.option(
    "--idle-threshold",
    type=float,
    help="Idle seconds before a keepalive ping is sent (default: 240)",
)
@click.option(
    "--log-level",
    envvar="CM64_LOG_LEVEL",
    type=click.Choice(["debug", "info", "warning", "error"], case_sensitive=False),
    default=DEFAULT_LOG_LEVEL,
    help=f"Log level (default: {DEFAULT_LOG_LEVEL})",
)
@click.option(
    "--log-format",
    envvar="CM64_LOG_FORMAT",
    type=click.Choice(LOG_FORMATS),
    default="console",
    help="Log line format (default: console)",
)
@click.option(
    "--log-file",
    envvar="CM64_LOG_FILE",
    type=click.Path(dir_okay=False),
    help="Log to this file instead of stderr",
)
def cli(
    token: str | None,
    endpoint: str | None,
    timeout: float | None,
    keepalive_interval: float | None,
    idle_threshold: float | None,
    log_level: str,
    log_format: str,
    log_file: str | None,
) -> None:
    """CM64 MCP CLI - stdio-to-HTTP bridge.

    Connects Claude Code, Claude Desktop and other stdio MCP clients to the
    CM64 MCP server, keeping the remote session alive and recovering it
    when it is lost.
    """
    configure_logging(log_level, log_file, log_format)

    try:
        config = load_config(
            endpoint=endpoint,
            token=token,
            timeout=timeout,
            keepalive_interval=keepalive_interval,
            idle_threshold=idle_threshold,
        )
        config.validate()
    except ConfigError as e:
        click.echo(f"Error: {e}", err=True)
        click.echo("Run with --help for usage information", err=True)
        sys.exit(1)

    logger.info(
        "config_loaded",
        endpoint=config.endpoint,
        endpoint_source=config.get_source("endpoint"),
        token_source=config.get_source("token"),
    )
    click.echo(f"[cm64] Connecting to {config.endpoint}...", err=True)

    try:
        asyncio.run(run_bridge(config))
    except KeyboardInterrupt:
        logger.info("bridge_interrupted")
        sys.exit(0)
    except Exception as e:
        logger.exception("bridge_fatal_error")
        click.echo(f"[cm64] Fatal error: {e}", err=True)
        sys.exit(1)


def main() -> None:
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
