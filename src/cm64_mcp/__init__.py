"""CM64 MCP - stdio-to-HTTP bridge for the CM64 MCP server."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("cm64-mcp")
except PackageNotFoundError:
    __version__ = "0.0.0.dev0"  # Fallback for editable installs without metadata

from .main import main

__all__ = ["main", "__version__"]
