"""
Application Layer - Agent Executor Builder

Threads prompt and context state across successive asks against one agent.

Configuration (agent key, prompt context, options, interceptors) is changed
only through the with_* family, and every with_* call returns a fork: a new
builder sharing the configuration but starting a fresh conversation (no
accumulated prompt). The receiver is never touched, so a configured builder
can serve as a template for many independent conversations.

Conversation state is the one thing that changes in place: ask() and
continue_() store the resulting prompt on the builder they were called on,
and with_message() appends to the current prompt while a turn is still being
composed. A single builder is therefore not safe for concurrent ask/continue
calls; use independent forks for that.
"""

from typing import Any, Sequence

import structlog

from agent_chat.core.domain.exceptions import InvalidBuilderStateError
from agent_chat.core.domain.models import Execution
from agent_chat.core.domain.options import Option, Options
from agent_chat.core.domain.prompt import MessagePrompt, Prompt, PromptContext
from agent_chat.core.interfaces.executor import (
    AgentExecutorProtocol,
    InterceptorProtocol,
    StreamChunkCallbackProtocol,
)

logger = structlog.get_logger()


class AgentExecutorBuilder:
    """Copy-on-write builder issuing one agent execution per ask/continue."""

    def __init__(
        self,
        executor: AgentExecutorProtocol,
        options: Options | None = None,
        *,
        agent_key: str | None = None,
        prompt_context: PromptContext | None = None,
        interceptors: Sequence[InterceptorProtocol] = (),
        prompt: Prompt | None = None,
    ):
        """
        Args:
            executor: Performs the model call for each execution
            options: Base options, usually built from settings
            agent_key: Agent to talk to
            prompt_context: Context carried alongside the prompt
            interceptors: Middleware applied around every execution
            prompt: Initial conversation state
        """
        self._executor = executor
        self._options = options or Options()
        self._agent_key = agent_key
        self._prompt_context = prompt_context or PromptContext()
        self._interceptors: tuple[InterceptorProtocol, ...] = tuple(interceptors)
        self._prompt = prompt

    @property
    def prompt(self) -> Prompt | None:
        """Current conversation state."""
        return self._prompt

    @property
    def agent_key(self) -> str | None:
        return self._agent_key

    @property
    def prompt_context(self) -> PromptContext:
        return self._prompt_context

    @property
    def options(self) -> Options:
        return self._options

    @property
    def interceptors(self) -> tuple[InterceptorProtocol, ...]:
        return self._interceptors

    def fork(self, **changes: Any) -> "AgentExecutorBuilder":
        """
        Start a new conversational branch under the same configuration.

        Configuration fields are copied (or replaced by changes); the
        accumulated prompt is dropped unless changes supplies one.
        """
        config = {
            "options": self._options,
            "agent_key": self._agent_key,
            "prompt_context": self._prompt_context,
            "interceptors": self._interceptors,
            "prompt": None,
        }
        config.update(changes)
        return AgentExecutorBuilder(self._executor, **config)

    def with_prompt(self, prompt: Prompt) -> "AgentExecutorBuilder":
        return self.fork(prompt=prompt)

    def with_agent_key(self, agent_key: str) -> "AgentExecutorBuilder":
        return self.fork(agent_key=agent_key)

    def with_prompt_context(
        self, prompt_context: PromptContext | dict[str, Any]
    ) -> "AgentExecutorBuilder":
        if not isinstance(prompt_context, PromptContext):
            prompt_context = PromptContext(prompt_context)
        return self.fork(prompt_context=prompt_context)

    def with_stream_chunk_callback(
        self, callback: StreamChunkCallbackProtocol
    ) -> "AgentExecutorBuilder":
        return self.with_option(Option.STREAM_CHUNK_CALLBACK, callback)

    def with_option(self, option: Option | str, value: Any) -> "AgentExecutorBuilder":
        return self.fork(options=self._options.with_(option, value))

    def with_options(self, options: Options) -> "AgentExecutorBuilder":
        """Fork with options merged over the current ones (last write wins)."""
        return self.fork(options=self._options.merge(options))

    def with_interceptor(self, *interceptors: InterceptorProtocol) -> "AgentExecutorBuilder":
        return self.fork(interceptors=self._interceptors + tuple(interceptors))

    def with_message(self, message: MessagePrompt) -> "AgentExecutorBuilder":
        """
        Append a message to the current prompt of this builder.

        Unlike the with_* forks this does not copy the builder: it continues
        composing the same turn, e.g. adding tool results before continue_().

        Raises:
            InvalidBuilderStateError: If there is no prompt yet
        """
        if self._prompt is None:
            raise InvalidBuilderStateError("Cannot add message without a prompt")

        self._prompt = self._prompt.with_added_message(message)

        return self

    async def ask(self, prompt: Any) -> Execution:
        """
        Send a new user turn and record the resulting conversation.

        With an existing prompt the text is appended as a user message;
        otherwise the raw text is sent as the first turn and the executor
        builds the initial prompt.

        Raises:
            InvalidBuilderStateError: If no agent key is set
        """
        self._ensure_agent_key()

        request: Prompt | str = str(prompt)
        if self._prompt is not None:
            request = self._prompt.with_added_message(MessagePrompt.user(prompt))

        return await self._execute(request)

    async def continue_(self) -> Execution:
        """
        Resend the current prompt without a new user message.

        Used to resume after tool results were added or to retry a turn.

        Raises:
            InvalidBuilderStateError: If no agent key or no prompt is set
        """
        self._ensure_agent_key()

        if self._prompt is None:
            raise InvalidBuilderStateError("Cannot continue without a prompt")

        return await self._execute(self._prompt)

    async def _execute(self, prompt: Prompt | str) -> Execution:
        logger.debug(
            "builder.execute",
            agent=self._agent_key,
            prompt_messages=len(prompt) if isinstance(prompt, Prompt) else 1,
            interceptors=len(self._interceptors),
        )

        execution = await self._executor.execute(
            agent=self._agent_key,
            prompt=prompt,
            options=self._options,
            prompt_context=self._prompt_context,
            interceptors=self._interceptors,
        )

        self._prompt = execution.prompt

        return execution

    def _ensure_agent_key(self) -> None:
        if self._agent_key is None:
            raise InvalidBuilderStateError("Agent key is required")
