"""
Chat History Events

Immutable facts appended to a session's event log while a conversation runs:
- Question: a user message entered into the session
- Message: a finalized bot message
- MessageChunk: one streamed fragment of a bot message
- ToolCall: the agent invoking a tool
- ToolCallResult: the output returned by that tool

Question, Message and MessageChunk carry their own event uuid. ToolCall and
ToolCallResult carry the model's correlation id instead, which a call and its
result share.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Union
from uuid import UUID, uuid4


def _now() -> datetime:
    return datetime.now()


@dataclass(frozen=True)
class Question:
    """User-originated message."""

    session_uuid: UUID
    message_uuid: UUID
    message: str
    created_at: datetime = field(default_factory=_now)
    uuid: UUID = field(default_factory=uuid4)


@dataclass(frozen=True)
class Message:
    """Finalized bot message."""

    session_uuid: UUID
    message: str
    created_at: datetime = field(default_factory=_now)
    uuid: UUID = field(default_factory=uuid4)


@dataclass(frozen=True)
class MessageChunk(Message):
    """One streamed fragment of a bot message; is_last marks the final one."""

    is_last: bool = False


@dataclass(frozen=True)
class ToolCall:
    """Agent invoking a tool."""

    session_uuid: UUID
    id: str
    tool: str
    arguments: str
    created_at: datetime = field(default_factory=_now)


@dataclass(frozen=True)
class ToolCallResult:
    """Result returned by a tool."""

    session_uuid: UUID
    id: str
    tool: str
    result: str
    created_at: datetime = field(default_factory=_now)


ChatEvent = Union[Question, Message, MessageChunk, ToolCall, ToolCallResult]


def dedup_key(event: ChatEvent) -> str:
    """
    Key used to show an event at most once across repeated log scans.

    Tool calls and tool results share their correlation id, so each gets its
    own suffix to keep them from colliding.
    """
    if isinstance(event, ToolCall):
        return f"{event.id}call"
    if isinstance(event, ToolCallResult):
        return f"{event.id}result"
    if isinstance(event, (Question, Message)):
        return str(event.uuid)
    raise TypeError(f"Unsupported chat event: {type(event).__name__}")
