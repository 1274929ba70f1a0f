"""
Agent Executor Protocols

Contract between the executor builder and whatever performs the model call.
Interceptors wrap that call: each receives the execution input and the next
handler in the chain, and may rewrite the input or the resulting Execution.
"""

from dataclasses import dataclass, replace
from typing import Any, Awaitable, Callable, Protocol, Sequence

from agent_chat.core.domain.models import Execution
from agent_chat.core.domain.options import Options
from agent_chat.core.domain.prompt import Prompt, PromptContext


@dataclass(frozen=True)
class ExecutionInput:
    """Everything the executor needs for one call."""

    agent: str
    prompt: Prompt | str
    options: Options
    prompt_context: PromptContext

    def with_prompt(self, prompt: Prompt | str) -> "ExecutionInput":
        return replace(self, prompt=prompt)


ExecutionHandler = Callable[[ExecutionInput], Awaitable[Execution]]


class InterceptorProtocol(Protocol):
    """Middleware around a single execution."""

    async def __call__(
        self, execution_input: ExecutionInput, next_handler: ExecutionHandler
    ) -> Execution:
        ...


class StreamChunkCallbackProtocol(Protocol):
    """Receives streamed tokens: (chunk, stop, finish_reason)."""

    def __call__(
        self, chunk: str | None, stop: bool, finish_reason: str | None = None
    ) -> None:
        ...


class AgentExecutorProtocol(Protocol):
    """Performs one agent turn and returns the resulting Execution."""

    async def execute(
        self,
        agent: str,
        prompt: Prompt | str,
        options: Options,
        prompt_context: PromptContext,
        interceptors: Sequence[InterceptorProtocol] = (),
    ) -> Execution:
        ...


class ToolRunnerProtocol(Protocol):
    """Runs a tool requested by the model and returns its raw output."""

    async def run(self, tool: str, arguments: str) -> Any:
        ...
