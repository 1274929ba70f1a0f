"""
Application Layer - Chat Factory

Wires the chat core with infrastructure adapters based on ChatSettings:
- LiteLLM executor with the configured agents
- template AgentExecutorBuilder with base options and a logging interceptor
- in-memory chat history and chat service
- chat history poller for a renderer
"""

from typing import Optional

import structlog

from agent_chat.application.builder import AgentExecutorBuilder
from agent_chat.application.chat_history import ChatHistoryPoller
from agent_chat.application.interceptors import LoggingInterceptor
from agent_chat.config.settings import ChatSettings
from agent_chat.core.interfaces.chat import (
    ChatHistoryProtocol,
    ChatRendererProtocol,
    ChatServiceProtocol,
)
from agent_chat.core.interfaces.executor import AgentExecutorProtocol, ToolRunnerProtocol
from agent_chat.infrastructure.llm.litellm_executor import LiteLLMAgentExecutor
from agent_chat.infrastructure.persistence.memory_history import InMemoryChatHistory
from agent_chat.infrastructure.services.chat_service import InMemoryChatService


class ChatFactory:
    """Factory for creating chat components with dependency injection."""

    def __init__(self, settings: Optional[ChatSettings] = None):
        self.settings = settings or ChatSettings()
        self.logger = structlog.get_logger().bind(component="chat_factory")

    def create_executor(self) -> LiteLLMAgentExecutor:
        agents = self.settings.agent_definitions()
        self.logger.debug("creating_executor", agents=list(agents))
        return LiteLLMAgentExecutor(agents=agents)

    def create_builder(
        self, executor: Optional[AgentExecutorProtocol] = None
    ) -> AgentExecutorBuilder:
        """Template builder every session is forked from."""
        return AgentExecutorBuilder(
            executor or self.create_executor(),
            self.settings.execution_options(),
            interceptors=(LoggingInterceptor(),),
        )

    def create_chat_history(self) -> InMemoryChatHistory:
        return InMemoryChatHistory()

    def create_chat_service(
        self,
        chat_history: ChatHistoryProtocol,
        builder: Optional[AgentExecutorBuilder] = None,
        tool_runner: Optional[ToolRunnerProtocol] = None,
    ) -> InMemoryChatService:
        return InMemoryChatService(
            builder=builder or self.create_builder(),
            chat_history=chat_history,
            tool_runner=tool_runner,
            max_tool_rounds=self.settings.max_tool_rounds,
        )

    def create_poller(
        self,
        chat_service: ChatServiceProtocol,
        chat_history: ChatHistoryProtocol,
        renderer: ChatRendererProtocol,
    ) -> ChatHistoryPoller:
        return ChatHistoryPoller(
            chat_service=chat_service,
            chat_history=chat_history,
            renderer=renderer,
            poll_interval=self.settings.poll_interval,
            chunk_delay=self.settings.chunk_delay,
        )
