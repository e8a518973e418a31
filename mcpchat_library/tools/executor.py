"""Tool executor adapters.

The engine only depends on the ToolExecutor protocol. MCPToolExecutor talks
to a Model Context Protocol server over streamable HTTP, opening a fresh
connection per operation and caching the catalog for a configurable TTL.
"""

import logging
import time
from collections.abc import AsyncIterator
from collections.abc import Callable
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import Any
from typing import Protocol

from mcp import ClientSession
from mcp.client.streamable_http import streamablehttp_client
from pydantic import JsonValue

from mcpchat_library.errors import ExecutorError
from mcpchat_library.models.chat import ToolOutput
from mcpchat_library.models.chat import ToolSpec

logger = logging.getLogger(__name__)


class ToolExecutor(Protocol):
    """Lists and invokes tools. Failures raise ExecutorError."""

    async def list_tools(self) -> list[ToolSpec]: ...

    async def call(self, name: str, arguments: dict[str, JsonValue]) -> ToolOutput: ...


def normalize_input_schema(schema: dict[str, Any] | None) -> dict[str, Any]:
    """Coerce a tool input schema into an object schema with properties."""
    normalized = dict(schema or {})
    normalized.setdefault("type", "object")
    if normalized["type"] == "object":
        normalized.setdefault("properties", {})
    return normalized


class MCPToolExecutor:
    """ToolExecutor backed by an MCP server over streamable HTTP."""

    def __init__(
        self,
        server_url: str,
        headers: dict[str, str] | None = None,
        timeout: float = 30.0,
        catalog_ttl: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize executor.

        Args:
            server_url: MCP endpoint URL (e.g. http://localhost:8000/mcp)
            headers: Extra HTTP headers, typically authorization
            timeout: Connection/request timeout in seconds
            catalog_ttl: Seconds a fetched catalog stays fresh (0 disables caching)
            clock: Monotonic clock (injectable for tests)
        """
        self.server_url = server_url
        self.headers = dict(headers or {})
        self.timeout = timeout
        self.catalog_ttl = catalog_ttl
        self._clock = clock
        self._catalog: list[ToolSpec] | None = None
        self._catalog_fetched_at = 0.0

    async def list_tools(self, refresh: bool = False) -> list[ToolSpec]:
        """Return the tool catalog, served from cache while fresh.

        Raises:
            ExecutorError: If the server cannot be reached or answers with an error
        """
        if not refresh and self._catalog is not None and self._clock() - self._catalog_fetched_at < self.catalog_ttl:
            return list(self._catalog)

        try:
            async with self._session() as session:
                result = await session.list_tools()
        except Exception as e:
            logger.error(f"Failed to list tools from {self.server_url}: {e}")
            raise ExecutorError(f"Failed to list tools: {e}") from e

        catalog = [
            ToolSpec(
                name=tool.name,
                description=tool.description or "",
                input_schema=normalize_input_schema(tool.inputSchema),
            )
            for tool in result.tools
        ]
        self._catalog = catalog
        self._catalog_fetched_at = self._clock()
        logger.info(f"Loaded {len(catalog)} tools from {self.server_url}")
        return list(catalog)

    async def call(self, name: str, arguments: dict[str, JsonValue]) -> ToolOutput:
        """Invoke a tool.

        Raises:
            ExecutorError: If the call cannot be delivered or the protocol fails
        """
        try:
            async with self._session() as session:
                result = await session.call_tool(name, arguments)
        except Exception as e:
            logger.error(f"Tool {name} call failed: {e}")
            raise ExecutorError(f"Tool {name} call failed: {e}", tool_name=name) from e

        content: JsonValue
        if result.structuredContent is not None and not result.isError:
            content = result.structuredContent
        else:
            content = [block.model_dump(mode="json", exclude_none=True) for block in result.content]
        return ToolOutput(content=content, is_error=bool(result.isError))

    def invalidate_catalog(self) -> None:
        self._catalog = None

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[ClientSession]:
        """Open a connection and yield an initialized ClientSession."""
        async with streamablehttp_client(
            self.server_url,
            headers=self.headers or None,
            timeout=timedelta(seconds=self.timeout),
        ) as (read, write, _):
            async with ClientSession(read, write) as session:
                await session.initialize()
                yield session
