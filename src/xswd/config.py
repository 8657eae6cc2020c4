"""Connection configuration and config file loading."""

from __future__ import annotations

import logging
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

from xswd.lib import oj

logger = logging.getLogger(__name__)

# Config file locations
CONFIG_FILENAME = "config.json"
GLOBAL_CONFIG = Path.home() / ".xswd" / CONFIG_FILENAME
LOCAL_CONFIG_DIR = ".xswd"

DEFAULT_HOST = "localhost"
DEFAULT_PORT = 44326
DEFAULT_PATH = "/xswd"


@dataclass
class ConnectionConfig:
    """Endpoint and timeout settings for one XSWD connection."""

    host: str = DEFAULT_HOST
    """Wallet host; the protocol is meant for loopback use."""

    port: int = DEFAULT_PORT
    """Wallet XSWD port."""

    path: str = DEFAULT_PATH
    """Sub-protocol path suffix."""

    auth_timeout: float = 30.0
    """Seconds to wait for the user to accept or refuse the application."""

    request_timeout: float = 20.0
    """Seconds to wait for the response to a request."""

    event_timeout: float = 20.0
    """Seconds to wait for a push event."""

    open_timeout: float = 10.0
    """Seconds to wait for the WebSocket opening handshake."""

    max_frame_size: int | None = None
    """Largest inbound frame accepted by the transport, None for no limit."""

    def __post_init__(self) -> None:
        """Validate configuration."""
        if not self.host:
            raise ValueError("host is required")
        if not 0 < self.port < 65536:
            raise ValueError("port must be between 1 and 65535")
        if not self.path.startswith("/"):
            raise ValueError("path must start with '/'")
        for name in ("auth_timeout", "request_timeout", "event_timeout", "open_timeout"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive")
        if self.max_frame_size is not None and self.max_frame_size < 1:
            raise ValueError("max_frame_size must be at least 1")

    @property
    def url(self) -> str:
        """WebSocket URL of the XSWD endpoint."""
        return f"ws://{self.host}:{self.port}{self.path}"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ConnectionConfig":
        """Create from config dict, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})


def _read_config_file(path: Path) -> dict[str, Any]:
    try:
        data = oj.loads(path.read_bytes())
    except (OSError, oj.JSONDecodeError) as e:
        logger.warning(f"Skipping unreadable config {path}: {e}")
        return {}
    if not isinstance(data, dict):
        logger.warning(f"Skipping config {path}: expected a JSON object")
        return {}
    return data


def load_config(working_dir: Path | None = None) -> ConnectionConfig:
    """Load connection config from global and local config files.

    Global config (~/.xswd/config.json) is loaded first.
    Local config ({working_dir}/.xswd/config.json) overrides global
    key by key.

    Returns:
        The merged configuration, defaults for anything unset.
    """
    merged: dict[str, Any] = {}

    if GLOBAL_CONFIG.exists():
        merged.update(_read_config_file(GLOBAL_CONFIG))

    if working_dir:
        local_config = working_dir / LOCAL_CONFIG_DIR / CONFIG_FILENAME
        if local_config.exists():
            merged.update(_read_config_file(local_config))

    return ConnectionConfig.from_dict(merged)
