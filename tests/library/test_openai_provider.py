"""Tests for the OpenAI-compatible completion provider."""

import json
from types import SimpleNamespace
from unittest.mock import AsyncMock

import httpx
import openai
import pytest

from mcpchat_library.completion.provider import OpenAICompletionProvider
from mcpchat_library.errors import ProviderError
from mcpchat_library.models.chat import ChatMessage
from mcpchat_library.models.chat import MessageRole
from mcpchat_library.models.chat import ToolCall
from mcpchat_library.models.chat import ToolResult
from mcpchat_library.models.chat import ToolSpec

REQUEST = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")


def _response(content: str | None = "Hi there", tool_calls: list | None = None) -> SimpleNamespace:
    message = SimpleNamespace(content=content, tool_calls=tool_calls)
    return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def _tool_call(call_id: str, name: str, arguments: str) -> SimpleNamespace:
    return SimpleNamespace(id=call_id, function=SimpleNamespace(name=name, arguments=arguments))


@pytest.fixture
def provider() -> OpenAICompletionProvider:
    provider = OpenAICompletionProvider(api_key="test-key", model="gpt-4o", temperature=0.2, max_tokens=256)
    provider.client.chat.completions.create = AsyncMock(return_value=_response())
    return provider


def _kwargs(provider: OpenAICompletionProvider) -> dict:
    return provider.client.chat.completions.create.await_args.kwargs


class TestRequestBuilding:
    async def test_plain_request_omits_tools(self, provider: OpenAICompletionProvider) -> None:
        result = await provider.complete([ChatMessage(role=MessageRole.USER, content="Hello")])

        kwargs = _kwargs(provider)
        assert kwargs["model"] == "gpt-4o"
        assert kwargs["temperature"] == 0.2
        assert kwargs["max_tokens"] == 256
        assert kwargs["messages"] == [{"role": "user", "content": "Hello"}]
        assert "tools" not in kwargs
        assert "tool_choice" not in kwargs
        assert result.text == "Hi there"
        assert result.tool_calls == []

    async def test_tools_are_sent_as_functions(self, provider: OpenAICompletionProvider, weather_tool: ToolSpec) -> None:
        await provider.complete([ChatMessage(role=MessageRole.USER, content="Weather?")], [weather_tool])

        kwargs = _kwargs(provider)
        assert kwargs["tool_choice"] == "auto"
        assert kwargs["tools"] == [
            {
                "type": "function",
                "function": {
                    "name": "get_weather",
                    "description": "Current weather for a city",
                    "parameters": weather_tool.input_schema,
                },
            }
        ]

    async def test_empty_tool_list_requests_plain_text(self, provider: OpenAICompletionProvider) -> None:
        await provider.complete([ChatMessage(role=MessageRole.USER, content="Sum up")], [])
        assert "tools" not in _kwargs(provider)

    async def test_system_prompt_is_prepended(self) -> None:
        provider = OpenAICompletionProvider(api_key="test-key", system_prompt="Be brief.")
        provider.client.chat.completions.create = AsyncMock(return_value=_response())

        await provider.complete([ChatMessage(role=MessageRole.USER, content="Hello")])

        assert _kwargs(provider)["messages"][0] == {"role": "system", "content": "Be brief."}

    async def test_assistant_tool_history_is_expanded(self, provider: OpenAICompletionProvider) -> None:
        history = [
            ChatMessage(role=MessageRole.USER, content="Weather in Oslo and Rome?"),
            ChatMessage(
                role=MessageRole.ASSISTANT,
                content="It is cold in Oslo.",
                tool_calls=[
                    ToolCall(id="c1", name="get_weather", arguments={"city": "Oslo"}),
                    ToolCall(id="c2", name="get_weather", arguments={"city": "Rome"}),
                ],
                tool_results=[
                    ToolResult(id="c1", result={"temp": -3}),
                    ToolResult(id="c2", error="timeout"),
                ],
            ),
            ChatMessage(role=MessageRole.USER, content="Thanks"),
        ]

        await provider.complete(history)

        messages = _kwargs(provider)["messages"]
        assert [m["role"] for m in messages] == ["user", "assistant", "tool", "tool", "user"]
        assistant = messages[1]
        assert assistant["tool_calls"][0]["function"] == {"name": "get_weather", "arguments": '{"city": "Oslo"}'}
        assert messages[2] == {"role": "tool", "tool_call_id": "c1", "content": '{"temp": -3}'}
        assert messages[3] == {"role": "tool", "tool_call_id": "c2", "content": "Error: timeout"}


class TestResponseParsing:
    async def test_tool_calls_are_decoded(self, provider: OpenAICompletionProvider) -> None:
        provider.client.chat.completions.create.return_value = _response(
            content=None,
            tool_calls=[
                _tool_call("call_1", "get_weather", json.dumps({"city": "Oslo"})),
                _tool_call("call_2", "list_posts", ""),
            ],
        )

        result = await provider.complete([ChatMessage(role=MessageRole.USER, content="Go")])

        assert result.text == ""
        assert [(c.id, c.name, c.arguments) for c in result.tool_calls] == [
            ("call_1", "get_weather", {"city": "Oslo"}),
            ("call_2", "list_posts", {}),
        ]

    async def test_malformed_arguments_raise(self, provider: OpenAICompletionProvider) -> None:
        provider.client.chat.completions.create.return_value = _response(
            tool_calls=[_tool_call("call_1", "get_weather", "{not json")]
        )

        with pytest.raises(ProviderError):
            await provider.complete([ChatMessage(role=MessageRole.USER, content="Go")])

    async def test_non_object_arguments_raise(self, provider: OpenAICompletionProvider) -> None:
        provider.client.chat.completions.create.return_value = _response(
            tool_calls=[_tool_call("call_1", "get_weather", "[1, 2]")]
        )

        with pytest.raises(ProviderError):
            await provider.complete([ChatMessage(role=MessageRole.USER, content="Go")])

    async def test_empty_choices_raise(self, provider: OpenAICompletionProvider) -> None:
        provider.client.chat.completions.create.return_value = SimpleNamespace(choices=[])

        with pytest.raises(ProviderError):
            await provider.complete([ChatMessage(role=MessageRole.USER, content="Go")])


class TestErrors:
    async def test_status_error_is_wrapped(self, provider: OpenAICompletionProvider) -> None:
        provider.client.chat.completions.create.side_effect = openai.RateLimitError(
            "quota exceeded",
            response=httpx.Response(429, request=REQUEST),
            body=None,
        )

        with pytest.raises(ProviderError) as exc_info:
            await provider.complete([ChatMessage(role=MessageRole.USER, content="Go")])

        assert exc_info.value.status_code == 429

    async def test_connection_error_is_wrapped(self, provider: OpenAICompletionProvider) -> None:
        provider.client.chat.completions.create.side_effect = openai.APIConnectionError(request=REQUEST)

        with pytest.raises(ProviderError) as exc_info:
            await provider.complete([ChatMessage(role=MessageRole.USER, content="Go")])

        assert exc_info.value.status_code is None

    def test_requires_key_or_client(self) -> None:
        with pytest.raises(ValueError):
            OpenAICompletionProvider()
