from agent_chat.core.domain.events import (
    ChatEvent,
    Message,
    MessageChunk,
    Question,
    ToolCall,
    ToolCallResult,
    dedup_key,
)
from agent_chat.core.domain.exceptions import (
    AgentChatError,
    AgentNotFoundError,
    InvalidBuilderStateError,
    SessionClosedError,
    SessionNotFoundError,
)
from agent_chat.core.domain.models import AgentDefinition, Execution, Session
from agent_chat.core.domain.options import Option, Options
from agent_chat.core.domain.prompt import (
    MessagePrompt,
    Prompt,
    PromptContext,
    Role,
    ToolCallRequest,
)

__all__ = [
    "AgentChatError",
    "AgentDefinition",
    "AgentNotFoundError",
    "ChatEvent",
    "Execution",
    "InvalidBuilderStateError",
    "Message",
    "MessageChunk",
    "MessagePrompt",
    "Option",
    "Options",
    "Prompt",
    "PromptContext",
    "Question",
    "Role",
    "Session",
    "SessionClosedError",
    "SessionNotFoundError",
    "ToolCall",
    "ToolCallRequest",
    "ToolCallResult",
    "dedup_key",
]
