"""Bridge configuration.

Resolves the endpoint, token and tunables for the bridge.

Precedence (highest to lowest):
1. CLI flags
2. Environment variables
3. Config file (~/.cm64/config.yaml); token from ~/.cm64/tokens/bridge.token
4. Defaults
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

import structlog
import yaml

from .bridge.keepalive import DEFAULT_IDLE_THRESHOLD, DEFAULT_KEEPALIVE_INTERVAL
from .bridge.transport import DEFAULT_TIMEOUT
from .shared.auth import get_token
from .shared.paths import CONFIG_FILE

logger = structlog.get_logger(__name__)

# Default values
DEFAULT_ENDPOINT = "https://build.cm64.io/api/mcp"

TOKEN_ENV_VAR = "CM64_TOKEN"

# Environment variable mappings
ENV_VARS = {
    "endpoint": "CM64_ENDPOINT",
    "timeout": "CM64_TIMEOUT",
    "keepalive_interval": "CM64_KEEPALIVE_INTERVAL",
    "idle_threshold": "CM64_IDLE_THRESHOLD",
}

FLOAT_KEYS = ("timeout", "keepalive_interval", "idle_threshold")


class ConfigError(ValueError):
    """Configuration is missing or invalid."""


@dataclass
class BridgeConfig:
    """Resolved bridge configuration."""

    endpoint: str = DEFAULT_ENDPOINT
    token: str | None = None
    timeout: float = DEFAULT_TIMEOUT
    keepalive_interval: float = DEFAULT_KEEPALIVE_INTERVAL
    idle_threshold: float = DEFAULT_IDLE_THRESHOLD

    # Track where each value came from
    _sources: dict[str, str] = field(default_factory=dict)

    def get_source(self, key: str) -> str:
        """Get the source of a config value."""
        return self._sources.get(key, "default")

    def validate(self) -> None:
        """Check the values the bridge cannot run without.

        Raises:
            ConfigError: On a missing token, a bad endpoint or a
                non-positive interval
        """
        if not self.token:
            raise ConfigError(f"--token required or set {TOKEN_ENV_VAR} environment variable")
        if not self.endpoint:
            raise ConfigError("Endpoint must not be empty")

        parsed = urlparse(self.endpoint)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ConfigError(f"Invalid endpoint URL: {self.endpoint}")

        for key in FLOAT_KEYS:
            if getattr(self, key) <= 0:
                raise ConfigError(f"{key} must be positive")


def get_config_path() -> Path:
    """Get the config file path.

    Returns:
        Path to ~/.cm64/config.yaml
    """
    return CONFIG_FILE


def _read_config_file(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.warning("config_file_ignored", path=str(path), error=str(e))
        return {}
    if not isinstance(data, dict):
        logger.warning("config_file_ignored", path=str(path), error="not a mapping")
        return {}
    return data


def _to_float(key: str, value: Any, source: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid {key} from {source}: {value!r}") from e


def load_config(
    endpoint: str | None = None,
    token: str | None = None,
    timeout: float | None = None,
    keepalive_interval: float | None = None,
    idle_threshold: float | None = None,
) -> BridgeConfig:
    """Load bridge configuration.

    Args:
        endpoint: --endpoint flag value
        token: --token flag value
        timeout: --timeout flag value
        keepalive_interval: --keepalive-interval flag value
        idle_threshold: --idle-threshold flag value

    Returns:
        BridgeConfig with values and sources (not yet validated)

    Raises:
        ConfigError: If a numeric value cannot be parsed
    """
    config = BridgeConfig()
    sources: dict[str, str] = {key: "default" for key in ENV_VARS}

    # Config file
    file_config = _read_config_file(get_config_path())
    if "endpoint" in file_config:
        config.endpoint = str(file_config["endpoint"])
        sources["endpoint"] = "config file"
    for key in FLOAT_KEYS:
        if key in file_config:
            setattr(config, key, _to_float(key, file_config[key], "config file"))
            sources[key] = "config file"

    # Environment variables
    if os.environ.get(ENV_VARS["endpoint"]):
        config.endpoint = os.environ[ENV_VARS["endpoint"]]
        sources["endpoint"] = "environment"
    for key in FLOAT_KEYS:
        env_value = os.environ.get(ENV_VARS[key])
        if env_value:
            setattr(config, key, _to_float(key, env_value, ENV_VARS[key]))
            sources[key] = "environment"

    # CLI flags
    flags = {
        "timeout": timeout,
        "keepalive_interval": keepalive_interval,
        "idle_threshold": idle_threshold,
    }
    if endpoint:
        config.endpoint = endpoint
        sources["endpoint"] = "cli"
    for key, value in flags.items():
        if value is not None:
            setattr(config, key, float(value))
            sources[key] = "cli"

    # Token: flag > env > stored token file
    config.token = get_token("bridge", token, TOKEN_ENV_VAR)
    if token:
        sources["token"] = "cli"
    elif os.environ.get(TOKEN_ENV_VAR):
        sources["token"] = "environment"
    elif config.token:
        sources["token"] = "token file"

    config._sources = sources
    return config
