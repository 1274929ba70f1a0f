from agent_chat.core.interfaces.chat import (
    ChatHistoryProtocol,
    ChatRendererProtocol,
    ChatServiceProtocol,
    EventDispatcherProtocol,
)
from agent_chat.core.interfaces.executor import (
    AgentExecutorProtocol,
    ExecutionHandler,
    ExecutionInput,
    InterceptorProtocol,
    StreamChunkCallbackProtocol,
    ToolRunnerProtocol,
)

__all__ = [
    "AgentExecutorProtocol",
    "ChatHistoryProtocol",
    "ChatRendererProtocol",
    "ChatServiceProtocol",
    "EventDispatcherProtocol",
    "ExecutionHandler",
    "ExecutionInput",
    "InterceptorProtocol",
    "StreamChunkCallbackProtocol",
    "ToolRunnerProtocol",
]
