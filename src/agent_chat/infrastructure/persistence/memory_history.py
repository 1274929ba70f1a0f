"""
In-memory chat history.

Append-only event log partitioned by session. It doubles as the event
dispatcher for stream callbacks: dispatch() appends the event to the log of
its own session. Reads return snapshots so a reader can iterate while
producers keep appending.
"""

from collections import defaultdict
from typing import Iterable
from uuid import UUID

import structlog

from agent_chat.core.domain.events import ChatEvent


class InMemoryChatHistory:
    """Chat history kept in process memory."""

    def __init__(self):
        self._events: dict[UUID, list[ChatEvent]] = defaultdict(list)
        self.logger = structlog.get_logger().bind(component="chat_history_store")

    def dispatch(self, event: ChatEvent) -> None:
        """Append an event to its session log; never blocks."""
        self._events[event.session_uuid].append(event)

    async def add_message(self, session_uuid: UUID, event: ChatEvent) -> None:
        if event.session_uuid != session_uuid:
            raise ValueError(
                f"Event belongs to session [{event.session_uuid}], not [{session_uuid}]"
            )
        self._events[session_uuid].append(event)

    async def get_messages(self, session_uuid: UUID) -> Iterable[ChatEvent]:
        return tuple(self._events.get(session_uuid, ()))

    async def clear(self, session_uuid: UUID) -> None:
        removed = self._events.pop(session_uuid, [])
        self.logger.debug("history_cleared", session_uuid=str(session_uuid), events=len(removed))
