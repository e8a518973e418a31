"""Path resolution for mcpchatd storage locations.

This module provides path resolution based on MCPCHATD_HOME environment variable,
following XDG-like directory structure within that root.

Contract:
- Inputs: Environment variables (MCPCHATD_HOME and per-directory overrides)
- Outputs: Resolved Path objects
- Side Effects: Creates directories if they don't exist
"""

import os
from pathlib import Path


def get_home_dir() -> Path:
    """Get MCPCHATD_HOME from environment.

    Returns:
        Path to root directory (default: .mcpchatd)
    """
    root = os.environ.get("MCPCHATD_HOME", ".mcpchatd")
    return Path(root).resolve()


def _resolve_dir(default: Path, env_var: str) -> Path:
    directory = default

    env_override: str | None = os.environ.get(env_var)
    if env_override is not None:
        directory = Path(env_override).resolve()

    directory.mkdir(parents=True, exist_ok=True)
    return directory


def get_config_dir() -> Path:
    """Get configuration directory.

    Returns:
        Path to config directory ($MCPCHATD_HOME/config)
    """
    return _resolve_dir(get_home_dir() / "config", "MCPCHATD_CONFIG_DIR")


def get_state_dir() -> Path:
    """Get state directory holding chat session documents.

    Returns:
        Path to state directory ($MCPCHATD_HOME/state)

    Environment Variables:
        MCPCHATD_STATE_DIR: Override state directory location
        (falls back to $MCPCHATD_HOME/state if not set)

    Example:
        >>> state_dir = get_state_dir()
        >>> assert state_dir.name == "state" or "MCPCHATD_STATE_DIR" in os.environ
    """
    return _resolve_dir(get_home_dir() / "state", "MCPCHATD_STATE_DIR")


def get_log_dir() -> Path:
    """Get log directory.

    Returns:
        Path to log directory ($MCPCHATD_HOME/logs/mcpchatd)
    """
    return _resolve_dir(get_home_dir() / "logs" / "mcpchatd", "MCPCHATD_LOG_DIR")
