"""Settings model for the mcpchatd daemon.

Contract:
- Inputs: Environment variables, YAML files
- Outputs: Validated settings objects
- Side Effects: None (read-only)
"""

from pydantic import Field
from pydantic import field_validator
from pydantic_settings import BaseSettings
from pydantic_settings import SettingsConfigDict


class ChatSettings(BaseSettings):
    """Configuration for the chat daemon and its collaborators.

    Attributes:
        host: Listen address (default: 127.0.0.1)
        port: Listen port (default: 8430)
        history_enabled: Persist conversations (default: true)
        max_messages_per_session: Sliding window kept per session (10-500)
        context_window: Messages sent to the completion provider per turn
        retention_days: Age after which idle sessions are swept
        openai_api_key: Credential for the completion provider
        mcp_server_url: Streamable HTTP endpoint of the tool server

    Example:
        >>> settings = ChatSettings()
        >>> assert settings.max_messages_per_session == 100
    """

    model_config = SettingsConfigDict(
        env_prefix="MCPCHATD_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Server
    host: str = "127.0.0.1"
    port: int = 8430
    log_level: str = "info"
    workers: int = 1
    cors_origins: list[str] = Field(default_factory=lambda: ["http://localhost:5173"])

    # History
    history_enabled: bool = True
    max_messages_per_session: int = Field(default=100, ge=10, le=500)
    max_content_length: int = Field(default=50000, gt=0)
    context_window: int = Field(default=10, ge=1)
    history_default_limit: int = Field(default=50, ge=1)
    history_max_limit: int = Field(default=100, ge=1)

    # Retention
    retention_days: int = Field(default=30, ge=1)
    retention_schedule: str = "1d"

    # Rate limits
    chat_rate_limit: int = Field(default=30, ge=1)
    chat_rate_window: int = Field(default=60, ge=1)
    tool_rate_limit: int = Field(default=120, ge=1)
    tool_rate_window: int = Field(default=60, ge=1)

    # Completion provider
    openai_api_key: str | None = None
    openai_base_url: str | None = None
    openai_model: str = "gpt-4o"
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    max_tokens: int = Field(default=2000, gt=0)
    completion_timeout: float = Field(default=60.0, gt=0)
    system_prompt: str | None = None

    # Tool executor
    mcp_server_url: str | None = None
    mcp_headers: dict[str, str] = Field(default_factory=dict)
    mcp_timeout: float = Field(default=30.0, gt=0)
    tool_catalog_ttl: float = Field(default=300.0, ge=0)

    # Access
    allowed_users: list[str] = Field(default_factory=list)

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        return v.lower()

    @field_validator("openai_api_key", "openai_base_url", "mcp_server_url", "system_prompt")
    @classmethod
    def blank_to_none(cls, v: str | None) -> str | None:
        """Treat empty strings from env files as unset."""
        if v is not None and not v.strip():
            return None
        return v

    @property
    def completion_configured(self) -> bool:
        return self.openai_api_key is not None

    @property
    def tools_configured(self) -> bool:
        return self.mcp_server_url is not None
