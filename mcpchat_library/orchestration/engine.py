"""Chat turn orchestration.

A turn moves through Drafting -> AwaitingCompletion -> (Finalizing |
ExecutingTools -> [AwaitingFollowUp] -> Finalizing). The engine holds no
state between turns: durable state lives in the SessionStore and per-turn
state lives in local variables.

Cancellation is cooperative. An asyncio.CancelledError raised at a
provider or executor await propagates unchanged; since store calls are
synchronous, the only message persisted for a cancelled turn is the user
message written while drafting.
"""

import asyncio
import logging
from dataclasses import dataclass

from mcpchat_library.completion.provider import CompletionProvider
from mcpchat_library.errors import CompletionUnavailableError
from mcpchat_library.errors import ExecutorError
from mcpchat_library.errors import ProviderError
from mcpchat_library.errors import RateLimitedError
from mcpchat_library.errors import UnauthorizedError
from mcpchat_library.identity import Identity
from mcpchat_library.models.chat import ChatMessage
from mcpchat_library.models.chat import CompletionResult
from mcpchat_library.models.chat import MessageRole
from mcpchat_library.models.chat import ToolCall
from mcpchat_library.models.chat import ToolResult
from mcpchat_library.models.chat import ToolSpec
from mcpchat_library.models.chat import TurnResult
from mcpchat_library.ratelimit.limiter import RateLimiter
from mcpchat_library.sessions.store import SessionStore
from mcpchat_library.tools.executor import ToolExecutor
from mcpchat_library.tools.validation import render_tool_output
from mcpchat_library.tools.validation import validate_arguments

logger = logging.getLogger(__name__)

CHAT_ACTION = "chat"
TOOL_ACTION = "tool"

FOLLOW_UP_TEMPLATE = (
    "Here are the results from the tool execution:\n\n{results}\n\n"
    "Please provide a helpful summary of these results for the user."
)


@dataclass
class EngineConfig:
    """Tunables for ChatEngine."""

    context_window: int = 10
    chat_rate_limit: int = 30
    chat_rate_window: float = 60
    tool_rate_limit: int = 120
    tool_rate_window: float = 60
    history_default_limit: int = 50
    history_max_limit: int = 100


class ChatEngine:
    """Runs chat turns against injected collaborators.

    Instances are cheap and independent; nothing is shared between them
    except what the collaborators themselves share.
    """

    def __init__(
        self,
        store: SessionStore,
        rate_limiter: RateLimiter,
        provider: CompletionProvider | None,
        executor: ToolExecutor | None = None,
        config: EngineConfig | None = None,
    ) -> None:
        """Initialize engine.

        Args:
            store: Session persistence
            rate_limiter: Per-user throttle for turns and tool calls
            provider: Completion provider; None means completions are unavailable
            executor: Tool executor; None means an empty tool catalog
            config: Engine tunables
        """
        self.store = store
        self.rate_limiter = rate_limiter
        self.provider = provider
        self.executor = executor
        self.config = config or EngineConfig()

    async def run_turn(self, identity: Identity, session_id: str, text: str) -> TurnResult:
        """Run one full turn for a user message.

        Args:
            identity: Caller identity
            session_id: Target session (created on first message)
            text: Raw user input

        Returns:
            The stored user message and the finalized assistant message

        Raises:
            UnauthorizedError: Caller may not use chat
            NotOwnerError: Session belongs to another user
            RateLimitedError: Chat throttle exceeded
            CompletionUnavailableError: First completion could not be obtained
            ValueError: Invalid session id
        """
        user_id = self._authorize(identity)
        self.rate_limiter.enforce(user_id, CHAT_ACTION, self.config.chat_rate_limit, self.config.chat_rate_window)

        # Drafting
        user_message = ChatMessage(role=MessageRole.USER, content=text)
        stored_user_message = self.store.append(session_id, user_id, user_message) or user_message
        context = self.store.read(session_id, user_id, self.config.context_window)
        if not context or context[-1].id != stored_user_message.id:
            context = [*context, stored_user_message][-self.config.context_window :]
        catalog = await self._load_catalog()

        # AwaitingCompletion
        completion = await self._complete(context, catalog)

        summarized = False
        if not completion.has_tool_calls:
            assistant_message = ChatMessage(role=MessageRole.ASSISTANT, content=completion.text)
        else:
            # ExecutingTools
            results = await self._execute_tools(user_id, completion.tool_calls, catalog)
            content = completion.text

            # AwaitingFollowUp
            if any(not result.is_error for result in results):
                summary = await self._summarize(user_id, context, completion.tool_calls, results)
                if summary is not None:
                    content = summary
                    summarized = True

            assistant_message = ChatMessage(
                role=MessageRole.ASSISTANT,
                content=content,
                tool_calls=completion.tool_calls,
                tool_results=results,
            )

        # Finalizing
        stored_assistant_message = self.store.append(session_id, user_id, assistant_message) or assistant_message
        logger.info(
            f"Completed turn in session {session_id}: tool_calls={len(completion.tool_calls)} summarized={summarized}"
        )
        return TurnResult(
            session_id=session_id,
            user_message=stored_user_message,
            assistant_message=stored_assistant_message,
            summarized=summarized,
        )

    def save_message(
        self, identity: Identity, session_id: str, content: str, role: str = MessageRole.USER.value
    ) -> ChatMessage:
        """Persist a single message without running a turn.

        Unknown roles are stored as user messages.

        Raises:
            UnauthorizedError: Caller may not use chat
            NotOwnerError: Session belongs to another user
        """
        user_id = self._authorize(identity)
        try:
            message_role = MessageRole(role)
        except ValueError:
            message_role = MessageRole.USER
        message = ChatMessage(role=message_role, content=content)
        return self.store.append(session_id, user_id, message) or message

    def get_history(self, identity: Identity, session_id: str, limit: int | None = None) -> list[ChatMessage]:
        """Return the most recent messages of a session owned by the caller.

        The limit is clamped to [1, history_max_limit].

        Raises:
            UnauthorizedError: Caller may not use chat
            NotOwnerError: Session belongs to another user
        """
        user_id = self._authorize(identity)
        if limit is None:
            limit = self.config.history_default_limit
        limit = max(1, min(limit, self.config.history_max_limit))
        return self.store.read(session_id, user_id, limit)

    # --- Turn steps ---

    def _authorize(self, identity: Identity) -> str:
        if not identity.can_use_chat():
            raise UnauthorizedError(f"User {identity.user_id or '<anonymous>'} is not permitted to use chat")
        return identity.user_id

    async def _load_catalog(self) -> list[ToolSpec]:
        if self.executor is None:
            return []
        try:
            return await self.executor.list_tools()
        except ExecutorError as e:
            logger.warning(f"Tool catalog unavailable, continuing without tools: {e}")
            return []

    async def _complete(self, context: list[ChatMessage], catalog: list[ToolSpec]) -> CompletionResult:
        if self.provider is None:
            raise CompletionUnavailableError("Completion provider is not configured")
        try:
            return await self.provider.complete(context, catalog or None)
        except ProviderError as e:
            logger.error(f"Completion failed: {e}")
            raise CompletionUnavailableError(str(e)) from e

    async def _execute_tools(self, user_id: str, calls: list[ToolCall], catalog: list[ToolSpec]) -> list[ToolResult]:
        specs = {spec.name: spec for spec in catalog}
        return list(await asyncio.gather(*[self._execute_tool(user_id, call, specs) for call in calls]))

    async def _execute_tool(self, user_id: str, call: ToolCall, specs: dict[str, ToolSpec]) -> ToolResult:
        """Execute one call. Never raises except for cancellation."""
        spec = specs.get(call.name)
        if spec is None or self.executor is None:
            return ToolResult(id=call.id, error=f"Tool '{call.name}' not found")

        validation = validate_arguments(spec.input_schema, call.arguments)
        if not validation.is_valid:
            return ToolResult(id=call.id, error="; ".join(validation.errors))

        try:
            self.rate_limiter.enforce(user_id, TOOL_ACTION, self.config.tool_rate_limit, self.config.tool_rate_window)
        except RateLimitedError as e:
            return ToolResult(id=call.id, error=f"{e} (retry after {e.retry_after:.0f}s)")

        try:
            output = await self.executor.call(call.name, call.arguments)
        except ExecutorError as e:
            return ToolResult(id=call.id, error=str(e))
        except Exception as e:
            logger.error(f"Tool {call.name} raised unexpectedly: {e}")
            return ToolResult(id=call.id, error=f"Error executing tool: {e}")

        if output.is_error:
            return ToolResult(id=call.id, error=render_tool_output(output.content) or "Tool reported an error")
        return ToolResult(id=call.id, result=output.content)

    async def _summarize(
        self, user_id: str, context: list[ChatMessage], calls: list[ToolCall], results: list[ToolResult]
    ) -> str | None:
        """Ask for a plain-text summary of tool results; None means keep the original text."""
        if not self.rate_limiter.allow(
            user_id, CHAT_ACTION, self.config.chat_rate_limit, self.config.chat_rate_window
        ):
            logger.warning(f"Follow-up summary skipped for user {user_id}: chat rate limit reached")
            return None

        prompt = ChatMessage(role=MessageRole.USER, content=render_results(calls, results))
        try:
            reply = await self.provider.complete([*context[:-1], prompt], None)
        except ProviderError as e:
            logger.warning(f"Follow-up summary failed, keeping original reply: {e}")
            return None
        except Exception as e:
            logger.warning(f"Follow-up summary raised unexpectedly, keeping original reply: {e}")
            return None

        if not reply.text.strip():
            logger.warning("Follow-up summary was empty, keeping original reply")
            return None
        return reply.text


def render_results(calls: list[ToolCall], results: list[ToolResult]) -> str:
    """Build the follow-up prompt describing every tool outcome in call order."""
    names = {call.id: call.name for call in calls}
    sections = []
    for result in results:
        if result.is_error:
            sections.append(f"Tool {names.get(result.id, result.id)} failed: {result.error}")
        else:
            sections.append(render_tool_output(result.result))
    return FOLLOW_UP_TEMPLATE.format(results="\n\n".join(sections))
