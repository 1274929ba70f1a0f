"""
Chat Protocols

Collaborator contracts consumed by the chat core:
- EventDispatcherProtocol: fire-and-forget sink for chat events
- ChatHistoryProtocol: append-only per-session event log
- ChatServiceProtocol: session lifecycle
- ChatRendererProtocol: presentation sink for the history poller
"""

from typing import Iterable, Protocol
from uuid import UUID

from agent_chat.core.domain.events import ChatEvent
from agent_chat.core.domain.models import Session


class EventDispatcherProtocol(Protocol):
    def dispatch(self, event: ChatEvent) -> None:
        ...


class ChatHistoryProtocol(Protocol):
    """
    Append-only event log partitioned by session.

    get_messages() must be safe to call repeatedly and return events in
    append order.
    """

    async def get_messages(self, session_uuid: UUID) -> Iterable[ChatEvent]:
        ...

    async def add_message(self, session_uuid: UUID, event: ChatEvent) -> None:
        ...

    async def clear(self, session_uuid: UUID) -> None:
        ...


class ChatServiceProtocol(Protocol):
    async def get_session(self, session_uuid: UUID) -> Session:
        """Return the session or raise SessionNotFoundError."""
        ...

    async def update_session(self, session: Session) -> None:
        ...

    async def start_session(self, account_uuid: UUID, agent_name: str) -> UUID:
        ...

    async def ask(self, session_uuid: UUID, message: str) -> UUID:
        """Enqueue a question and return its message uuid."""
        ...

    async def close_session(self, session_uuid: UUID) -> None:
        ...


class ChatRendererProtocol(Protocol):
    """
    Presentation sink for the history poller.

    render() receives every non-chunk event; streamed chunks arrive through
    write() and new_line() so the poller controls line boundaries.
    """

    def render(self, event: ChatEvent) -> None:
        ...

    def write(self, text: str) -> None:
        ...

    def new_line(self) -> None:
        ...
