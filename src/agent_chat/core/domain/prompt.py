"""
Prompt Value Types

Immutable prompt values threaded through successive agent turns:
- MessagePrompt: a single chat message (role, content, optional tool data)
- Prompt: an ordered, immutable sequence of messages
- PromptContext: opaque key/value side-channel carried alongside a prompt

Adding a message to a Prompt always produces a new Prompt. Builder snapshots
and the chat service may hold references to earlier prompts concurrently, so
nothing here is ever mutated in place.
"""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Iterator, Mapping


class Role(str, Enum):
    """Role of a chat message author."""

    USER = "user"
    ASSISTANT = "assistant"
    AGENT = "agent"
    SYSTEM = "system"
    TOOL = "tool"


@dataclass(frozen=True)
class ToolCallRequest:
    """
    A tool invocation requested by the model.

    Attributes:
        id: Correlation id shared by the call and its result
        name: Tool name
        arguments: Raw JSON arguments as produced by the model
    """

    id: str
    name: str
    arguments: str = "{}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": "function",
            "function": {"name": self.name, "arguments": self.arguments},
        }


@dataclass(frozen=True)
class MessagePrompt:
    """
    One message of a chat prompt.

    Attributes:
        role: Author role
        content: Message text, may contain {placeholders}
        values: Values substituted into placeholders by format()
        tool_call_id: Correlation id for tool result messages
        tool_calls: Tool invocations requested by an assistant message
    """

    role: Role
    content: str
    values: Mapping[str, Any] = field(default_factory=dict)
    tool_call_id: str | None = None
    tool_calls: tuple[ToolCallRequest, ...] = ()

    @classmethod
    def user(cls, prompt: Any, **values: Any) -> "MessagePrompt":
        return cls(role=Role.USER, content=str(prompt), values=values)

    @classmethod
    def assistant(
        cls, content: str | None, tool_calls: tuple[ToolCallRequest, ...] = ()
    ) -> "MessagePrompt":
        return cls(role=Role.ASSISTANT, content=content or "", tool_calls=tuple(tool_calls))

    @classmethod
    def system(cls, prompt: Any, **values: Any) -> "MessagePrompt":
        return cls(role=Role.SYSTEM, content=str(prompt), values=values)

    @classmethod
    def tool(cls, content: str, tool_call_id: str) -> "MessagePrompt":
        return cls(role=Role.TOOL, content=content, tool_call_id=tool_call_id)

    def format(self) -> str:
        """Render content with its values substituted."""
        if not self.values:
            return self.content
        return self.content.format(**self.values)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a chat-completion message dict."""
        # Agent turns are sent as assistant turns on the wire
        role = Role.ASSISTANT if self.role == Role.AGENT else self.role
        message: dict[str, Any] = {"role": role.value, "content": self.format()}
        if self.tool_calls:
            message["tool_calls"] = [call.to_dict() for call in self.tool_calls]
        if self.tool_call_id is not None:
            message["tool_call_id"] = self.tool_call_id
        return message


@dataclass(frozen=True)
class Prompt:
    """Ordered, immutable sequence of chat messages."""

    messages: tuple[MessagePrompt, ...] = ()

    @classmethod
    def from_text(cls, text: Any) -> "Prompt":
        return cls(messages=(MessagePrompt.user(text),))

    def with_added_message(self, message: MessagePrompt) -> "Prompt":
        """Return a new prompt with message appended."""
        return Prompt(messages=self.messages + (message,))

    def to_messages(self) -> list[dict[str, Any]]:
        return [message.to_dict() for message in self.messages]

    def __len__(self) -> int:
        return len(self.messages)

    def __iter__(self) -> Iterator[MessagePrompt]:
        return iter(self.messages)


class PromptContext(Mapping[str, Any]):
    """
    Read-only key/value side-channel carried alongside a prompt.

    Context is replaced wholesale on the builder; with_values() returns a new
    context and never merges into an existing one in place.
    """

    __slots__ = ("_data",)

    def __init__(self, data: Mapping[str, Any] | None = None):
        self._data = MappingProxyType(dict(data or {}))

    def with_values(self, **values: Any) -> "PromptContext":
        return PromptContext({**self._data, **values})

    def to_dict(self) -> dict[str, Any]:
        return dict(self._data)

    def __getitem__(self, key: str) -> Any:
        return self._data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"PromptContext({dict(self._data)!r})"
