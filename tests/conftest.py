"""Shared fixtures for agent chat tests."""

from typing import Any, List, Sequence

import pytest

from agent_chat.application.interceptors import run_interceptors
from agent_chat.core.domain.events import ChatEvent
from agent_chat.core.domain.models import Execution
from agent_chat.core.domain.options import Option, Options
from agent_chat.core.domain.prompt import MessagePrompt, Prompt, PromptContext
from agent_chat.core.interfaces.executor import ExecutionInput


class FakeExecutor:
    """
    Scripted agent executor.

    Each call pops the next (content, tool_calls) reply, streams the content
    in two chunks to the stream chunk callback and appends the assistant turn
    to the prompt it received.
    """

    def __init__(self, replies: Sequence[Any] = ()):
        self.replies: List[Any] = list(replies)
        self.calls: List[ExecutionInput] = []

    async def execute(
        self,
        agent: str,
        prompt: Prompt | str,
        options: Options,
        prompt_context: PromptContext,
        interceptors: Sequence[Any] = (),
    ) -> Execution:
        execution_input = ExecutionInput(
            agent=agent, prompt=prompt, options=options, prompt_context=prompt_context
        )
        return await run_interceptors(execution_input, tuple(interceptors), self._complete)

    async def _complete(self, execution_input: ExecutionInput) -> Execution:
        self.calls.append(execution_input)

        reply = self.replies.pop(0) if self.replies else f"reply {len(self.calls)}"
        if isinstance(reply, Exception):
            raise reply
        if isinstance(reply, str):
            content, tool_calls = reply, ()
        else:
            content, tool_calls = reply

        callback = execution_input.options.get(Option.STREAM_CHUNK_CALLBACK)
        if callback is not None and content:
            middle = len(content) // 2
            callback(content[:middle], False, None)
            callback(content[middle:], False, None)
            callback("", True, "tool_calls" if tool_calls else "stop")

        prompt = execution_input.prompt
        if isinstance(prompt, str):
            prompt = Prompt.from_text(prompt)

        return Execution(
            prompt=prompt.with_added_message(MessagePrompt.assistant(content, tuple(tool_calls))),
            content=content,
            tool_calls=tuple(tool_calls),
            finish_reason="tool_calls" if tool_calls else "stop",
        )


class RecordingRenderer:
    """Renderer recording every call as (kind, payload)."""

    def __init__(self):
        self.calls: List[tuple] = []

    def render(self, event: ChatEvent) -> None:
        self.calls.append(("render", event))

    def write(self, text: str) -> None:
        self.calls.append(("write", text))

    def new_line(self) -> None:
        self.calls.append(("new_line", None))

    @property
    def text(self) -> str:
        return "".join(payload for kind, payload in self.calls if kind == "write")

    def count(self, kind: str) -> int:
        return sum(1 for call_kind, _ in self.calls if call_kind == kind)


@pytest.fixture
def make_executor():
    """Build a FakeExecutor from scripted replies."""
    return FakeExecutor


@pytest.fixture
def recording_renderer():
    return RecordingRenderer()
