"""
Stream chunk callback bridging an in-flight token stream to the chat history.

Every token reported by the executor becomes a MessageChunk event for the
session. Dispatch is fire-and-forget and must stay cheap: the callback runs
inside the model's token stream.
"""

from datetime import datetime
from uuid import UUID

from agent_chat.core.domain.events import ChatEvent, MessageChunk
from agent_chat.core.interfaces.chat import EventDispatcherProtocol


def _discard(event: ChatEvent) -> None:
    return None


class StreamChunkCallback:
    """Turns (chunk, stop, finish_reason) callbacks into MessageChunk events."""

    __slots__ = ("session_uuid", "_dispatch")

    def __init__(
        self,
        session_uuid: UUID,
        event_dispatcher: EventDispatcherProtocol | None = None,
    ):
        self.session_uuid = session_uuid

        if event_dispatcher is None:
            self._dispatch = _discard
        elif callable(getattr(event_dispatcher, "dispatch", None)):
            self._dispatch = event_dispatcher.dispatch
        else:
            raise TypeError(
                f"{type(event_dispatcher).__name__} does not provide dispatch(event)"
            )

    def __call__(
        self, chunk: str | None, stop: bool, finish_reason: str | None = None
    ) -> None:
        self._dispatch(
            MessageChunk(
                session_uuid=self.session_uuid,
                created_at=datetime.now(),
                message=chunk or "",
                is_last=stop,
            )
        )
