"""
Shared pytest fixtures for mcpchatd test suite.

Provides fixtures for:
- Temporary storage directories
- Session stores with isolated storage
- Scripted completion providers and tool executors
- Caller identities
"""

import asyncio
import os
import tempfile
from collections.abc import Callable
from collections.abc import Generator
from datetime import UTC
from datetime import datetime
from datetime import timedelta
from pathlib import Path
from typing import Any

import pytest

# Keep import-time config creation (mcpchatd.main) out of the working tree
os.environ.setdefault("MCPCHATD_HOME", tempfile.mkdtemp(prefix="mcpchatd-test-"))

from mcpchat_library.errors import ExecutorError  # noqa: E402
from mcpchat_library.errors import ProviderError  # noqa: E402
from mcpchat_library.identity import UserIdentity  # noqa: E402
from mcpchat_library.models.chat import ChatMessage  # noqa: E402
from mcpchat_library.models.chat import CompletionResult  # noqa: E402
from mcpchat_library.models.chat import ToolOutput  # noqa: E402
from mcpchat_library.models.chat import ToolSpec  # noqa: E402
from mcpchat_library.ratelimit.limiter import ExpiringCounterStore  # noqa: E402
from mcpchat_library.ratelimit.limiter import RateLimiter  # noqa: E402
from mcpchat_library.sessions.store import SessionStore  # noqa: E402


class FakeClock:
    """Manually advanced clock usable for both wall and monotonic time."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2025, 1, 1, tzinfo=UTC)
        self.seconds = 1000.0

    def __call__(self) -> datetime:
        return self.now

    def monotonic(self) -> float:
        return self.seconds

    def advance(self, seconds: float = 0, **delta: Any) -> None:
        step = timedelta(seconds=seconds, **delta)
        self.now += step
        self.seconds += step.total_seconds()


class ScriptedProvider:
    """CompletionProvider returning queued replies in order.

    Queue entries are CompletionResult instances, exceptions to raise,
    or async callables producing a CompletionResult.
    """

    def __init__(self, *replies: Any) -> None:
        self.replies = list(replies)
        self.calls: list[tuple[list[ChatMessage], list[ToolSpec] | None]] = []

    async def complete(self, messages: list[ChatMessage], tools: list[ToolSpec] | None = None) -> CompletionResult:
        self.calls.append((list(messages), tools))
        if not self.replies:
            raise ProviderError("No scripted reply left")
        reply = self.replies.pop(0)
        if isinstance(reply, BaseException):
            raise reply
        if callable(reply):
            return await reply()
        return reply


class FakeExecutor:
    """ToolExecutor with in-memory tools.

    handlers maps tool name to a ToolOutput, an exception to raise, or an
    async callable taking the arguments.
    """

    def __init__(self, catalog: list[ToolSpec], handlers: dict[str, Any] | None = None) -> None:
        self.catalog = catalog
        self.handlers = handlers or {}
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.list_error: Exception | None = None

    async def list_tools(self) -> list[ToolSpec]:
        if self.list_error is not None:
            raise self.list_error
        return list(self.catalog)

    async def call(self, name: str, arguments: dict[str, Any]) -> ToolOutput:
        self.calls.append((name, arguments))
        handler = self.handlers.get(name)
        if handler is None:
            raise ExecutorError(f"Unknown tool {name}", tool_name=name)
        if isinstance(handler, BaseException):
            raise handler
        if callable(handler):
            return await handler(arguments)
        return handler


def delayed_output(delay: float, output: ToolOutput) -> Callable[[dict[str, Any]], Any]:
    async def handler(arguments: dict[str, Any]) -> ToolOutput:
        await asyncio.sleep(delay)
        return output

    return handler


@pytest.fixture
def temp_storage_dir(tmp_path: Path) -> Path:
    """Create temporary storage directory."""
    storage = tmp_path / "state"
    storage.mkdir()
    return storage


@pytest.fixture
def mock_storage_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Generator[Path, None, None]:
    """Point MCPCHATD_HOME at a temporary directory for the test."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("MCPCHATD_HOME", str(home))
    for var in ("MCPCHATD_CONFIG_DIR", "MCPCHATD_STATE_DIR", "MCPCHATD_LOG_DIR"):
        monkeypatch.delenv(var, raising=False)
    yield home


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(temp_storage_dir: Path, clock: FakeClock) -> SessionStore:
    """Create SessionStore with temporary storage and a controllable clock."""
    return SessionStore(storage_dir=temp_storage_dir, clock=clock)


@pytest.fixture
def rate_limiter(clock: FakeClock) -> RateLimiter:
    return RateLimiter(ExpiringCounterStore(clock=clock.monotonic))


@pytest.fixture
def alice() -> UserIdentity:
    return UserIdentity(user_id="alice")


@pytest.fixture
def bob() -> UserIdentity:
    return UserIdentity(user_id="bob")


@pytest.fixture
def weather_tool() -> ToolSpec:
    return ToolSpec(
        name="get_weather",
        description="Current weather for a city",
        input_schema={
            "type": "object",
            "properties": {"city": {"type": "string"}},
            "required": ["city"],
        },
    )


@pytest.fixture
def search_tool() -> ToolSpec:
    return ToolSpec(
        name="search_posts",
        description="Search blog posts",
        input_schema={
            "type": "object",
            "properties": {"query": {"type": "string"}, "limit": {"type": "integer", "minimum": 1}},
            "required": ["query"],
        },
    )


@pytest.fixture
def make_provider() -> type[ScriptedProvider]:
    """Factory for scripted completion providers."""
    return ScriptedProvider


@pytest.fixture
def make_executor() -> type[FakeExecutor]:
    """Factory for in-memory tool executors."""
    return FakeExecutor


@pytest.fixture
def slow_output() -> Callable[[float, ToolOutput], Callable[[dict[str, Any]], Any]]:
    """Build a tool handler that returns output after a delay."""
    return delayed_output
