"""Configuration loading for mcpchatd.

This module handles loading daemon configuration from YAML files
and environment variables.

Contract:
- Inputs: Config file paths, environment variables
- Outputs: ChatSettings objects
- Side Effects: Creates default config file if missing
"""

import logging
import os
from pathlib import Path

import yaml

from ..storage.paths import get_config_dir
from .settings import ChatSettings

logger = logging.getLogger(__name__)

ENV_PREFIX = "MCPCHATD_"

DEFAULT_CONFIG = """# mcpchatd daemon configuration
# Every key can be overridden with an MCPCHATD_<KEY> environment variable

# Server settings
host: "127.0.0.1"
port: 8430
log_level: "info"
workers: 1

# Conversation history
history_enabled: true
max_messages_per_session: 100
context_window: 10
retention_days: 30
retention_schedule: "1d"

# Per-user throttles (requests per window in seconds)
chat_rate_limit: 30
chat_rate_window: 60
tool_rate_limit: 120
tool_rate_window: 60

# Completion provider (OpenAI-compatible; base URL may point at a gateway)
openai_model: "gpt-4o"
# openai_api_key: set MCPCHATD_OPENAI_API_KEY instead of storing it here
# openai_base_url: "https://gateway.example.com/v1"

# Tool server (Model Context Protocol over streamable HTTP)
# mcp_server_url: "http://localhost:8000/mcp"
# mcp_headers:
#   Authorization: "Bearer ..."
"""


def get_config_path() -> Path:
    """Get path to config file.

    Returns:
        Path to daemon.yaml in config directory
    """
    return get_config_dir() / "daemon.yaml"


def create_default_config() -> None:
    """Create default config file if it doesn't exist."""
    config_path = get_config_path()

    if config_path.exists():
        logger.debug(f"Config file already exists: {config_path}")
        return

    config_path.write_text(DEFAULT_CONFIG, encoding="utf-8")
    logger.info(f"Created default config: {config_path}")


def load_config(config_path: Path | None = None) -> ChatSettings:
    """Load daemon configuration from YAML and environment.

    Environment variables take precedence over YAML settings.
    Variables should be prefixed with MCPCHATD_ (e.g., MCPCHATD_PORT).

    Args:
        config_path: Optional config file path (default: daemon.yaml in config dir)

    Returns:
        Validated chat settings

    Example:
        >>> settings = load_config()
        >>> assert isinstance(settings, ChatSettings)
    """
    if config_path is None:
        config_path = get_config_path()
        if not config_path.exists():
            create_default_config()

    yaml_settings = {}
    if config_path.exists():
        try:
            with open(config_path, encoding="utf-8") as f:
                yaml_settings = yaml.safe_load(f) or {}
            logger.debug(f"Loaded config from {config_path}")
        except (OSError, yaml.YAMLError) as e:
            logger.warning(f"Failed to load config from {config_path}: {e}")
            logger.info("Using default settings and environment variables")

    if not isinstance(yaml_settings, dict):
        logger.warning(f"Ignoring config {config_path}: top level is not a mapping")
        yaml_settings = {}

    # Only pass YAML values that don't have corresponding env vars,
    # so precedence is defaults < YAML < env vars
    filtered_yaml = {}
    for key, value in yaml_settings.items():
        env_key = f"{ENV_PREFIX}{str(key).upper()}"
        if env_key not in os.environ:
            filtered_yaml[key] = value

    settings = ChatSettings(**filtered_yaml)

    logger.info(
        f"Daemon configuration loaded: host={settings.host}, port={settings.port}, "
        f"history_enabled={settings.history_enabled}, model={settings.openai_model}"
    )

    return settings
