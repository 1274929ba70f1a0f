"""
Unit Tests for LiteLLMAgentExecutor

litellm.acompletion is replaced with a fake returning a stream of
SimpleNamespace chunks shaped like LiteLLM's streaming deltas.
"""

from types import SimpleNamespace
from unittest.mock import MagicMock

import litellm
import pytest

from agent_chat.core.domain.exceptions import AgentNotFoundError
from agent_chat.core.domain.models import AgentDefinition
from agent_chat.core.domain.options import Option, Options
from agent_chat.core.domain.prompt import MessagePrompt, Prompt, PromptContext, Role
from agent_chat.infrastructure.llm.litellm_executor import LiteLLMAgentExecutor


def delta_chunk(content=None, tool_calls=None, finish_reason=None):
    delta = SimpleNamespace(content=content, tool_calls=tool_calls)
    return SimpleNamespace(choices=[SimpleNamespace(delta=delta, finish_reason=finish_reason)])


def tool_delta(index, call_id=None, name=None, arguments=None):
    return SimpleNamespace(
        index=index,
        id=call_id,
        function=SimpleNamespace(name=name, arguments=arguments),
    )


@pytest.fixture
def agents():
    return {
        "support": AgentDefinition(
            key="support",
            name="Support",
            model="gpt-4o-mini",
            instructions="You help customers.",
        )
    }


@pytest.fixture
def fake_completion(monkeypatch):
    """Install a fake acompletion; set .chunks before executing."""
    calls = []

    async def acompletion(**kwargs):
        calls.append(kwargs)

        async def stream():
            for chunk in acompletion.chunks:
                yield chunk

        return stream()

    acompletion.chunks = []
    acompletion.calls = calls
    monkeypatch.setattr(litellm, "acompletion", acompletion)
    return acompletion


@pytest.fixture
def executor(agents):
    return LiteLLMAgentExecutor(agents=agents)


@pytest.mark.asyncio
async def test_first_turn_builds_prompt_from_instructions(executor, fake_completion):
    fake_completion.chunks = [delta_chunk("Hi"), delta_chunk(" there", finish_reason="stop")]

    execution = await executor.execute("support", "hello", Options(), PromptContext())

    sent = fake_completion.calls[0]
    assert sent["model"] == "gpt-4o-mini"
    assert sent["stream"] is True
    assert sent["messages"] == [
        {"role": "system", "content": "You help customers."},
        {"role": "user", "content": "hello"},
    ]
    assert execution.content == "Hi there"
    assert execution.finish_reason == "stop"
    assert [(m.role, m.content) for m in execution.prompt] == [
        (Role.SYSTEM, "You help customers."),
        (Role.USER, "hello"),
        (Role.ASSISTANT, "Hi there"),
    ]


@pytest.mark.asyncio
async def test_tokens_reach_stream_callback(executor, fake_completion):
    fake_completion.chunks = [delta_chunk("He"), delta_chunk("llo", finish_reason="stop")]
    callback = MagicMock()
    options = Options({Option.STREAM_CHUNK_CALLBACK: callback})

    await executor.execute("support", "hi", options, PromptContext())

    assert [call.args for call in callback.call_args_list] == [
        ("He", False, None),
        ("llo", False, None),
        ("", True, "stop"),
    ]


@pytest.mark.asyncio
async def test_sampling_options_and_model_override(executor, fake_completion):
    fake_completion.chunks = [delta_chunk("ok", finish_reason="stop")]
    options = Options(
        {
            Option.MODEL: "claude-3-haiku",
            Option.TEMPERATURE: 0.1,
            Option.MAX_TOKENS: 64,
            Option.STREAM_CHUNK_CALLBACK: MagicMock(),
        }
    )

    await executor.execute("support", "hi", options, PromptContext())

    sent = fake_completion.calls[0]
    assert sent["model"] == "claude-3-haiku"
    assert sent["temperature"] == 0.1
    assert sent["max_tokens"] == 64
    assert Option.STREAM_CHUNK_CALLBACK.value not in sent


@pytest.mark.asyncio
async def test_existing_prompt_is_sent_as_is(executor, fake_completion):
    fake_completion.chunks = [delta_chunk("fine", finish_reason="stop")]
    prompt = Prompt.from_text("hello").with_added_message(MessagePrompt.assistant("hi"))

    execution = await executor.execute("support", prompt, Options(), PromptContext())

    assert fake_completion.calls[0]["messages"][0] == {"role": "user", "content": "hello"}
    assert len(execution.prompt) == 3


@pytest.mark.asyncio
async def test_prompt_context_sent_after_instructions(executor, fake_completion):
    fake_completion.chunks = [delta_chunk("ok", finish_reason="stop")]

    await executor.execute("support", "hi", Options(), PromptContext({"tenant": "acme"}))

    messages = fake_completion.calls[0]["messages"]
    assert [m["role"] for m in messages] == ["system", "system", "user"]
    assert messages[1]["content"].startswith("Session context:")
    assert '"tenant": "acme"' in messages[1]["content"]


@pytest.mark.asyncio
async def test_streamed_tool_call_deltas_are_accumulated(executor, fake_completion):
    fake_completion.chunks = [
        delta_chunk(tool_calls=[tool_delta(0, "call_1", "search", '{"query":')]),
        delta_chunk(tool_calls=[tool_delta(0, arguments=' "status"}')]),
        delta_chunk(finish_reason="tool_calls"),
    ]

    execution = await executor.execute("support", "status?", Options(), PromptContext())

    assert execution.requires_tools
    assert execution.finish_reason == "tool_calls"
    call = execution.tool_calls[0]
    assert (call.id, call.name, call.arguments) == ("call_1", "search", '{"query": "status"}')
    assert execution.prompt.messages[-1].tool_calls == execution.tool_calls


@pytest.mark.asyncio
async def test_configured_tools_are_offered(agents, fake_completion):
    schema = {"type": "function", "function": {"name": "search", "parameters": {}}}
    executor = LiteLLMAgentExecutor(agents=agents, tools=[schema])
    fake_completion.chunks = [delta_chunk("ok", finish_reason="stop")]

    await executor.execute("support", "hi", Options(), PromptContext())

    assert fake_completion.calls[0]["tools"] == [schema]
    assert fake_completion.calls[0]["tool_choice"] == "auto"


@pytest.mark.asyncio
async def test_unknown_agent_raises(executor, fake_completion):
    with pytest.raises(AgentNotFoundError):
        await executor.execute("billing", "hi", Options(), PromptContext())

    assert fake_completion.calls == []


@pytest.mark.asyncio
async def test_interceptors_wrap_completion(executor, fake_completion):
    fake_completion.chunks = [delta_chunk("ok", finish_reason="stop")]
    seen = []

    async def interceptor(execution_input, next_handler):
        seen.append(execution_input.agent)
        return await next_handler(execution_input)

    await executor.execute("support", "hi", Options(), PromptContext(), interceptors=(interceptor,))

    assert seen == ["support"]


@pytest.mark.asyncio
async def test_broken_stream_still_closes_message(executor, monkeypatch):
    async def acompletion(**kwargs):
        async def stream():
            yield delta_chunk("Partial")
            raise ConnectionError("connection reset")

        return stream()

    monkeypatch.setattr(litellm, "acompletion", acompletion)
    callback = MagicMock()
    options = Options({Option.STREAM_CHUNK_CALLBACK: callback})

    with pytest.raises(ConnectionError, match="connection reset"):
        await executor.execute("support", "hi", options, PromptContext())

    assert [call.args for call in callback.call_args_list] == [
        ("Partial", False, None),
        ("", True, None),
    ]
