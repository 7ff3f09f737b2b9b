"""Shared modules for cm64-mcp: paths, token resolution and logging."""

from .auth import auth_headers, get_token
from .logging import configure_logging
from .paths import CM64_DIR, CONFIG_FILE, TOKENS_DIR, get_token_file

__all__ = [
    # Paths
    "CM64_DIR",
    "CONFIG_FILE",
    "TOKENS_DIR",
    "get_token_file",
    # Auth
    "get_token",
    "auth_headers",
    # Logging
    "configure_logging",
]
