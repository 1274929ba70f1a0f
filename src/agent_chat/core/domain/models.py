"""
Core Domain Models

Results and entities exchanged between the builder, the executor and the
chat service.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import UUID

from agent_chat.core.domain.prompt import Prompt, ToolCallRequest


@dataclass(frozen=True)
class Execution:
    """
    Result of one ask/continue cycle against the agent executor.

    The returned prompt holds the full history including the new turn. The
    caller owns it and usually threads it back into the builder.

    Attributes:
        prompt: Conversation history after this turn
        content: Text produced by the model (may be empty for tool calls)
        tool_calls: Tools the model asked to run before it can answer
        finish_reason: Finish reason reported by the model
    """

    prompt: Prompt
    content: str = ""
    tool_calls: tuple[ToolCallRequest, ...] = ()
    finish_reason: str | None = None

    @property
    def requires_tools(self) -> bool:
        return bool(self.tool_calls)


@dataclass
class Session:
    """
    One continuous conversation between an account and one agent.

    Attributes:
        uuid: Session identifier
        account_uuid: Account that started the session
        agent_name: Key of the agent the session talks to
        is_finished: Set once the session is closed
        description: Optional human-set description
        history: Chat-completion messages of the conversation so far
        created_at: When the session was started
    """

    uuid: UUID
    account_uuid: UUID
    agent_name: str
    is_finished: bool = False
    description: str | None = None
    history: list[dict[str, Any]] = field(default_factory=list)
    created_at: datetime = field(default_factory=datetime.now)

    def update_history(self, messages: list[dict[str, Any]]) -> None:
        self.history = list(messages)


@dataclass(frozen=True)
class AgentDefinition:
    """
    Configured agent the chat can talk to.

    Attributes:
        key: Agent key used to select it
        name: Display name
        model: LiteLLM model identifier
        instructions: System prompt sent with the first turn
        description: Shown when listing agents
        prompts: Sample prompts offered in the chat
    """

    key: str
    name: str
    model: str
    instructions: str = "You are a helpful assistant."
    description: str = ""
    prompts: tuple[str, ...] = ()
