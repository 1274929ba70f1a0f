"""
Unit Tests for the chat history poller

The projection is tested as a pure function; the poller is driven one
cycle at a time with poll_once(), and run() with a zero poll interval.
"""

import asyncio
import uuid
from unittest.mock import AsyncMock

import pytest

from agent_chat.application.chat_history import ChatHistoryPoller, project_new_events
from agent_chat.core.domain.events import (
    Message,
    MessageChunk,
    Question,
    ToolCall,
    ToolCallResult,
    dedup_key,
)
from agent_chat.core.domain.exceptions import (
    SessionClosedError,
    SessionNotFoundError,
)
from agent_chat.core.domain.models import Session
from agent_chat.infrastructure.persistence.memory_history import InMemoryChatHistory


@pytest.fixture
def session_uuid():
    return uuid.uuid4()


@pytest.fixture
def chat_service(session_uuid):
    service = AsyncMock()
    service.get_session.return_value = Session(
        uuid=session_uuid, account_uuid=uuid.uuid4(), agent_name="support"
    )
    return service


@pytest.fixture
def history():
    return InMemoryChatHistory()


@pytest.fixture
def poller(chat_service, history, recording_renderer):
    return ChatHistoryPoller(
        chat_service=chat_service,
        chat_history=history,
        renderer=recording_renderer,
        poll_interval=0,
    )


def chunk(session_uuid, text, is_last=False):
    return MessageChunk(session_uuid=session_uuid, message=text, is_last=is_last)


# project_new_events


def test_projection_returns_unseen_events_in_order(session_uuid):
    question = Question(session_uuid=session_uuid, message_uuid=uuid.uuid4(), message="hi")
    reply = Message(session_uuid=session_uuid, message="hello")

    new_events, shown = project_new_events([question, reply], frozenset())

    assert new_events == [question, reply]
    assert shown == {dedup_key(question), dedup_key(reply)}


def test_projection_skips_shown_and_replayed_events(session_uuid):
    first = chunk(session_uuid, "a")
    second = chunk(session_uuid, "b")
    _, shown = project_new_events([first], frozenset())

    new_events, shown = project_new_events([first, second, first, second], shown)

    assert new_events == [second]
    assert shown == {dedup_key(first), dedup_key(second)}


def test_projection_is_pure(session_uuid):
    event = chunk(session_uuid, "a")
    shown = frozenset({"other"})

    project_new_events([event], shown)

    assert shown == {"other"}


def test_projection_keeps_tool_call_and_result_with_same_id(session_uuid):
    call = ToolCall(session_uuid=session_uuid, id="a1", tool="search", arguments="{}")
    result = ToolCallResult(session_uuid=session_uuid, id="a1", tool="search", result="ok")

    new_events, _ = project_new_events([call, result], frozenset())

    assert new_events == [call, result]


def test_projection_ignores_unknown_entries(session_uuid):
    event = chunk(session_uuid, "a")

    new_events, shown = project_new_events([object(), event], frozenset())

    assert new_events == [event]
    assert len(shown) == 1


def test_repeated_projection_never_repeats_a_key(session_uuid):
    log = [chunk(session_uuid, str(i)) for i in range(5)]
    shown = frozenset()
    emitted = []

    for size in range(len(log) + 1):
        new_events, shown = project_new_events(log[:size] + log[:size], shown)
        emitted.extend(dedup_key(event) for event in new_events)

    assert len(emitted) == len(set(emitted)) == 5


# ChatHistoryPoller


@pytest.mark.asyncio
async def test_chunks_coalesce_into_one_line(poller, history, session_uuid, recording_renderer):
    history.dispatch(chunk(session_uuid, "He"))
    history.dispatch(chunk(session_uuid, "llo", is_last=True))

    await poller.poll_once(session_uuid)

    assert recording_renderer.calls == [
        ("new_line", None),
        ("write", "He"),
        ("write", "llo"),
        ("new_line", None),
    ]
    assert recording_renderer.text == "Hello"


@pytest.mark.asyncio
async def test_line_spans_poll_cycles(poller, history, session_uuid, recording_renderer):
    history.dispatch(chunk(session_uuid, "He"))
    await poller.poll_once(session_uuid)

    history.dispatch(chunk(session_uuid, "llo"))
    history.dispatch(chunk(session_uuid, "", is_last=True))
    await poller.poll_once(session_uuid)

    assert recording_renderer.count("new_line") == 2
    assert recording_renderer.text == "Hello"
    assert recording_renderer.calls[-1] == ("new_line", None)


@pytest.mark.asyncio
async def test_empty_terminating_chunk_alone_renders_nothing(
    poller, history, session_uuid, recording_renderer
):
    history.dispatch(chunk(session_uuid, "", is_last=True))

    await poller.poll_once(session_uuid)

    assert recording_renderer.calls == []


@pytest.mark.asyncio
async def test_empty_first_chunk_opens_line_once(poller, history, session_uuid, recording_renderer):
    history.dispatch(chunk(session_uuid, ""))
    history.dispatch(chunk(session_uuid, "Hi"))
    history.dispatch(chunk(session_uuid, "", is_last=True))

    await poller.poll_once(session_uuid)

    assert recording_renderer.calls == [
        ("new_line", None),
        ("write", "Hi"),
        ("new_line", None),
    ]


@pytest.mark.asyncio
async def test_consecutive_messages_get_their_own_lines(
    poller, history, session_uuid, recording_renderer
):
    history.dispatch(chunk(session_uuid, "One", is_last=True))
    history.dispatch(chunk(session_uuid, "Two", is_last=True))

    await poller.poll_once(session_uuid)

    assert recording_renderer.calls == [
        ("new_line", None),
        ("write", "One"),
        ("new_line", None),
        ("new_line", None),
        ("write", "Two"),
        ("new_line", None),
    ]


@pytest.mark.asyncio
async def test_rescans_do_not_render_twice(poller, history, session_uuid, recording_renderer):
    question = Question(session_uuid=session_uuid, message_uuid=uuid.uuid4(), message="hi")
    await history.add_message(session_uuid, question)

    for _ in range(3):
        await poller.poll_once(session_uuid)

    assert recording_renderer.calls == [("render", question)]


@pytest.mark.asyncio
async def test_tool_call_and_result_both_rendered(poller, history, session_uuid, recording_renderer):
    call = ToolCall(session_uuid=session_uuid, id="a1", tool="search", arguments="{}")
    result = ToolCallResult(session_uuid=session_uuid, id="a1", tool="search", result="ok")
    history.dispatch(call)
    history.dispatch(result)

    rendered = await poller.poll_once(session_uuid)

    assert rendered == [call, result]
    assert recording_renderer.calls == [("render", call), ("render", result)]


@pytest.mark.asyncio
async def test_replayed_log_is_deduplicated(chat_service, session_uuid, recording_renderer):
    question = Question(session_uuid=session_uuid, message_uuid=uuid.uuid4(), message="hi")
    replayed = AsyncMock()
    replayed.get_messages.return_value = [question, question]
    poller = ChatHistoryPoller(chat_service, replayed, recording_renderer, poll_interval=0)

    await poller.poll_once(session_uuid)
    await poller.poll_once(session_uuid)

    assert recording_renderer.calls == [("render", question)]


@pytest.mark.asyncio
async def test_transient_read_failure_is_retried(chat_service, session_uuid, recording_renderer):
    question = Question(session_uuid=session_uuid, message_uuid=uuid.uuid4(), message="hi")
    flaky = AsyncMock()
    flaky.get_messages.side_effect = [OSError("connection reset"), [question]]
    poller = ChatHistoryPoller(chat_service, flaky, recording_renderer, poll_interval=0)

    assert await poller.poll_once(session_uuid) == []
    assert await poller.poll_once(session_uuid) == [question]


@pytest.mark.asyncio
async def test_transient_liveness_failure_is_retried(
    chat_service, history, session_uuid, recording_renderer
):
    question = Question(session_uuid=session_uuid, message_uuid=uuid.uuid4(), message="hi")
    await history.add_message(session_uuid, question)
    session = chat_service.get_session.return_value
    chat_service.get_session.side_effect = [
        OSError("timeout"),
        session,
        SessionNotFoundError(session_uuid),
    ]
    poller = ChatHistoryPoller(chat_service, history, recording_renderer, poll_interval=0)

    with pytest.raises(SessionClosedError):
        await asyncio.wait_for(poller.run(session_uuid), timeout=1)

    assert recording_renderer.calls == [("render", question)]


@pytest.mark.asyncio
async def test_interrupted_stream_line_is_closed_before_next_event(
    poller, history, session_uuid, recording_renderer
):
    failure = Message(session_uuid=session_uuid, message="Execution failed: connection reset")
    question = Question(session_uuid=session_uuid, message_uuid=uuid.uuid4(), message="two")
    history.dispatch(chunk(session_uuid, "Partial"))
    history.dispatch(failure)
    await poller.poll_once(session_uuid)

    await history.add_message(session_uuid, question)
    history.dispatch(chunk(session_uuid, "Next"))
    history.dispatch(chunk(session_uuid, "", is_last=True))
    await poller.poll_once(session_uuid)

    assert recording_renderer.calls == [
        ("new_line", None),
        ("write", "Partial"),
        ("new_line", None),
        ("render", failure),
        ("render", question),
        ("new_line", None),
        ("write", "Next"),
        ("new_line", None),
    ]


@pytest.mark.asyncio
async def test_missing_session_raises_session_closed(poller, chat_service, session_uuid):
    chat_service.get_session.side_effect = SessionNotFoundError(session_uuid)

    with pytest.raises(SessionClosedError):
        await poller.poll_once(session_uuid)


@pytest.mark.asyncio
async def test_run_stops_when_session_closes(
    poller, chat_service, history, session_uuid, recording_renderer
):
    history.dispatch(chunk(session_uuid, "bye", is_last=True))
    session = chat_service.get_session.return_value
    chat_service.get_session.side_effect = [session, SessionNotFoundError(session_uuid)]

    with pytest.raises(SessionClosedError):
        await asyncio.wait_for(poller.run(session_uuid), timeout=1)

    assert recording_renderer.text == "bye"
    assert poller.shown == frozenset()


@pytest.mark.asyncio
async def test_stop_ends_run_loop(poller, session_uuid):
    poller.poll_interval = 10
    task = asyncio.create_task(poller.run(session_uuid))
    await asyncio.sleep(0)

    poller.stop()
    await asyncio.wait_for(task, timeout=1)

    assert poller.stopped is True
