"""
Domain Exceptions

Error taxonomy shared by the builder, the chat service and the history poller:
- InvalidBuilderStateError: local precondition violation on the builder,
  surfaced to the immediate caller and never retried
- SessionNotFoundError: a session lookup failed (unknown, closed or evicted)
- SessionClosedError: terminal condition for the chat-history poll loop
"""


class AgentChatError(Exception):
    """Base class for all agent chat errors."""


class InvalidBuilderStateError(AgentChatError):
    """Raised when the executor builder is used in an invalid state."""


class SessionNotFoundError(AgentChatError):
    """Raised when a chat session does not exist or is already closed."""

    def __init__(self, session_uuid: object):
        super().__init__(f"Chat session [{session_uuid}] not found")
        self.session_uuid = session_uuid


class SessionClosedError(AgentChatError):
    """Raised by the history poller once its session is gone."""


class AgentNotFoundError(AgentChatError):
    """Raised when an agent key is not configured."""

    def __init__(self, agent_key: str):
        super().__init__(f"Agent [{agent_key}] is not configured")
        self.agent_key = agent_key
