"""Completion provider adapters.

The engine depends only on the CompletionProvider protocol.
OpenAICompletionProvider implements it on the Chat Completions API of any
OpenAI-compatible endpoint (a custom base URL routes through a gateway).
"""

import json
import logging
from typing import Any
from typing import Protocol

from openai import APIStatusError
from openai import AsyncOpenAI
from openai import OpenAIError

from mcpchat_library.errors import ProviderError
from mcpchat_library.models.chat import ChatMessage
from mcpchat_library.models.chat import CompletionResult
from mcpchat_library.models.chat import MessageRole
from mcpchat_library.models.chat import ToolCall
from mcpchat_library.models.chat import ToolSpec

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gpt-4o"
DEFAULT_TEMPERATURE = 0.7
DEFAULT_MAX_TOKENS = 2000
DEFAULT_TIMEOUT = 60.0


class CompletionProvider(Protocol):
    """Produces the next assistant reply. Failures raise ProviderError."""

    async def complete(self, messages: list[ChatMessage], tools: list[ToolSpec] | None = None) -> CompletionResult: ...


class OpenAICompletionProvider:
    """CompletionProvider backed by an OpenAI-compatible chat completions API."""

    def __init__(
        self,
        api_key: str | None = None,
        *,
        base_url: str | None = None,
        model: str = DEFAULT_MODEL,
        temperature: float = DEFAULT_TEMPERATURE,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        timeout: float = DEFAULT_TIMEOUT,
        system_prompt: str | None = None,
        client: AsyncOpenAI | None = None,
    ) -> None:
        """Initialize provider.

        Args:
            api_key: API key (required unless client is given)
            base_url: Custom endpoint, e.g. an AI gateway (None = OpenAI default)
            model: Model identifier
            temperature: Sampling temperature
            max_tokens: Maximum tokens in the reply
            timeout: Request timeout in seconds
            system_prompt: Optional system message prepended to every request
            client: Pre-built client (tests inject a mock here)
        """
        if client is None:
            if api_key is None:
                raise ValueError("api_key or client must be provided")
            client = AsyncOpenAI(api_key=api_key, base_url=base_url, timeout=timeout)
        self.client = client
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.system_prompt = system_prompt

    async def complete(self, messages: list[ChatMessage], tools: list[ToolSpec] | None = None) -> CompletionResult:
        """Request a completion for the conversation.

        Args:
            messages: Conversation in append order
            tools: Tool catalog; None or empty requests plain text

        Returns:
            Assistant text and any requested tool calls

        Raises:
            ProviderError: On transport/API failure or an unparseable reply
        """
        params: dict[str, Any] = {
            "model": self.model,
            "messages": self._convert_messages(messages),
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }
        if tools:
            params["tools"] = self._convert_tools(tools)
            params["tool_choice"] = "auto"

        logger.debug(f"Requesting completion: model={self.model} messages={len(messages)} tools={len(tools or [])}")

        try:
            response = await self.client.chat.completions.create(**params)
        except APIStatusError as e:
            logger.error(f"Completion API error {e.status_code}: {e.message}")
            raise ProviderError(e.message, status_code=e.status_code, code=getattr(e, "code", None)) from e
        except OpenAIError as e:
            logger.error(f"Completion request failed: {e}")
            raise ProviderError(str(e)) from e

        return self._parse_response(response)

    def _convert_messages(self, messages: list[ChatMessage]) -> list[dict[str, Any]]:
        """Convert chat messages to chat completions format.

        An assistant message that made tool calls becomes an assistant entry
        with ``tool_calls`` followed by one ``tool`` entry per result.
        """
        converted: list[dict[str, Any]] = []
        if self.system_prompt:
            converted.append({"role": "system", "content": self.system_prompt})

        for message in messages:
            if message.role == MessageRole.USER:
                converted.append({"role": "user", "content": message.content})
                continue

            if not message.tool_calls:
                converted.append({"role": "assistant", "content": message.content})
                continue

            converted.append(
                {
                    "role": "assistant",
                    "content": message.content or None,
                    "tool_calls": [
                        {
                            "id": call.id,
                            "type": "function",
                            "function": {"name": call.name, "arguments": json.dumps(call.arguments)},
                        }
                        for call in message.tool_calls
                    ],
                }
            )
            results = {result.id: result for result in message.tool_results or []}
            for call in message.tool_calls:
                result = results.get(call.id)
                if result is None:
                    content = "Error: no result recorded"
                elif result.is_error:
                    content = f"Error: {result.error}"
                else:
                    content = json.dumps(result.result, ensure_ascii=False)
                converted.append({"role": "tool", "tool_call_id": call.id, "content": content})

        return converted

    def _convert_tools(self, tools: list[ToolSpec]) -> list[dict[str, Any]]:
        return [
            {
                "type": "function",
                "function": {
                    "name": tool.name,
                    "description": tool.description,
                    "parameters": tool.input_schema,
                },
            }
            for tool in tools
        ]

    def _parse_response(self, response: Any) -> CompletionResult:
        if not response.choices:
            raise ProviderError("Completion response contained no choices")

        message = response.choices[0].message
        tool_calls = []
        for call in message.tool_calls or []:
            raw_arguments = call.function.arguments or "{}"
            try:
                arguments = json.loads(raw_arguments)
            except json.JSONDecodeError as e:
                raise ProviderError(f"Tool call {call.function.name} has malformed arguments: {e}") from e
            if not isinstance(arguments, dict):
                raise ProviderError(f"Tool call {call.function.name} arguments are not an object")
            tool_calls.append(ToolCall(id=call.id, name=call.function.name, arguments=arguments))

        return CompletionResult(text=message.content or "", tool_calls=tool_calls)
