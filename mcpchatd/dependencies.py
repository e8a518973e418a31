"""Shared dependency factories for FastAPI endpoints.

Collaborators are process-wide singletons built from the loaded settings;
tests replace them through ``app.dependency_overrides``.
"""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends
from fastapi import Header
from fastapi import HTTPException

from mcpchat_library.completion.provider import CompletionProvider
from mcpchat_library.completion.provider import OpenAICompletionProvider
from mcpchat_library.config.loader import load_config
from mcpchat_library.config.settings import ChatSettings
from mcpchat_library.identity import UserIdentity
from mcpchat_library.orchestration.engine import ChatEngine
from mcpchat_library.orchestration.engine import EngineConfig
from mcpchat_library.ratelimit.limiter import RateLimiter
from mcpchat_library.sessions.store import SessionStore
from mcpchat_library.storage import get_state_dir
from mcpchat_library.tools.executor import MCPToolExecutor
from mcpchat_library.tools.executor import ToolExecutor

USER_ID_HEADER = "X-User-Id"


@lru_cache(maxsize=1)
def get_settings() -> ChatSettings:
    """Get daemon settings singleton instance."""
    return load_config()


@lru_cache(maxsize=1)
def get_session_store() -> SessionStore:
    """Get session store singleton instance."""
    settings = get_settings()
    return SessionStore(
        storage_dir=get_state_dir(),
        max_messages=settings.max_messages_per_session,
        max_content_length=settings.max_content_length,
        history_enabled=settings.history_enabled,
    )


@lru_cache(maxsize=1)
def get_rate_limiter() -> RateLimiter:
    """Get rate limiter singleton instance."""
    return RateLimiter()


@lru_cache(maxsize=1)
def get_completion_provider() -> CompletionProvider | None:
    """Get completion provider, or None when no API key is configured."""
    settings = get_settings()
    if not settings.completion_configured:
        return None
    return OpenAICompletionProvider(
        api_key=settings.openai_api_key,
        base_url=settings.openai_base_url,
        model=settings.openai_model,
        temperature=settings.temperature,
        max_tokens=settings.max_tokens,
        timeout=settings.completion_timeout,
        system_prompt=settings.system_prompt,
    )


@lru_cache(maxsize=1)
def get_tool_executor() -> ToolExecutor | None:
    """Get tool executor, or None when no tool server is configured."""
    settings = get_settings()
    if not settings.tools_configured:
        return None
    return MCPToolExecutor(
        server_url=settings.mcp_server_url,
        headers=settings.mcp_headers,
        timeout=settings.mcp_timeout,
        catalog_ttl=settings.tool_catalog_ttl,
    )


def get_chat_engine(
    settings: Annotated[ChatSettings, Depends(get_settings)],
    store: Annotated[SessionStore, Depends(get_session_store)],
    rate_limiter: Annotated[RateLimiter, Depends(get_rate_limiter)],
    provider: Annotated[CompletionProvider | None, Depends(get_completion_provider)],
    executor: Annotated[ToolExecutor | None, Depends(get_tool_executor)],
) -> ChatEngine:
    """Build a chat engine over the shared collaborators."""
    return ChatEngine(
        store=store,
        rate_limiter=rate_limiter,
        provider=provider,
        executor=executor,
        config=EngineConfig(
            context_window=settings.context_window,
            chat_rate_limit=settings.chat_rate_limit,
            chat_rate_window=settings.chat_rate_window,
            tool_rate_limit=settings.tool_rate_limit,
            tool_rate_window=settings.tool_rate_window,
            history_default_limit=settings.history_default_limit,
            history_max_limit=settings.history_max_limit,
        ),
    )


def get_identity(
    settings: Annotated[ChatSettings, Depends(get_settings)],
    x_user_id: Annotated[str | None, Header(alias=USER_ID_HEADER)] = None,
) -> UserIdentity:
    """Resolve the caller from the identity header set by the host.

    Raises:
        HTTPException: 401 if the header is missing or blank
    """
    if x_user_id is None or not x_user_id.strip():
        raise HTTPException(status_code=401, detail=f"Missing {USER_ID_HEADER} header")
    user_id = x_user_id.strip()
    allowed = not settings.allowed_users or user_id in settings.allowed_users
    return UserIdentity(user_id=user_id, chat_allowed=allowed)
