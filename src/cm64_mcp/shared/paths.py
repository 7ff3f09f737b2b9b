"""Path management for cm64-mcp.

Manages the ~/.cm64/ directory used for config and tokens.
"""

from pathlib import Path

# Base directory for all cm64 data
CM64_DIR = Path.home() / ".cm64"

# YAML config file
CONFIG_FILE = CM64_DIR / "config.yaml"

# Token storage directory
TOKENS_DIR = CM64_DIR / "tokens"


def get_token_file(source: str) -> Path:
    """Get path to a token file.

    Args:
        source: Token source name (e.g., "bridge")

    Returns:
        Path to the token file
    """
    return TOKENS_DIR / f"{source}.token"
