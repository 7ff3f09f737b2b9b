"""Logging configuration for cm64-mcp.

structlog renders through standard logging. Output always goes to stderr
or a file: stdout carries the MCP protocol and must stay clean.
"""

import logging
import sys
from pathlib import Path

import structlog

LOG_FORMATS = ("console", "json")


def _make_handler(log_file: str | Path | None) -> logging.Handler:
    if not log_file:
        return logging.StreamHandler(sys.stderr)
    path = Path(log_file).expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)
    return logging.FileHandler(str(path), encoding="utf-8")


def configure_logging(
    level: str = "info",
    log_file: str | Path | None = None,
    log_format: str = "console",
) -> None:
    """Configure standard logging and structlog for the bridge.

    Args:
        level: Log level (debug, info, warning, error)
        log_file: Write here instead of stderr
        log_format: "console" for key=value lines, "json" for one JSON object per line
    """
    log_level = logging.getLevelName(level.upper())
    if not isinstance(log_level, int):
        log_level = logging.INFO

    handler = _make_handler(log_file)
    handler.setLevel(log_level)
    logging.basicConfig(level=log_level, handlers=[handler], format="%(message)s", force=True)

    renderers: list[structlog.types.Processor]
    if log_format == "json":
        renderers = [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        renderers = [structlog.dev.ConsoleRenderer(colors=False)]

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            *renderers,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
