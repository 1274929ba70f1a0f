"""
Application Layer - Chat History Poller

Displays a session's event log while another task (or process) appends to it.

Each poll cycle rescans the whole log and relies on dedup keys, not on read
precision, to show every logical event exactly once. The projection step is a
pure function so it can be tested without any timing; ChatHistoryPoller is the
thin driver that runs it on a fixed interval and renders the result.

Streamed MessageChunk events are coalesced into one display line: a line break
before the first fragment and a single trailing line break after the last.
"""

import asyncio
from typing import Iterable
from uuid import UUID

import structlog

from agent_chat.core.domain.events import ChatEvent, MessageChunk, dedup_key
from agent_chat.core.domain.exceptions import (
    SessionClosedError,
    SessionNotFoundError,
)
from agent_chat.core.interfaces.chat import (
    ChatHistoryProtocol,
    ChatRendererProtocol,
    ChatServiceProtocol,
)

DEFAULT_POLL_INTERVAL = 2.0

# Failures of the liveness check or log read that the next cycle retries
TRANSIENT_ERRORS = (OSError, asyncio.TimeoutError)


def project_new_events(
    log: Iterable[ChatEvent], shown: frozenset[str]
) -> tuple[list[ChatEvent], frozenset[str]]:
    """
    Select events not shown yet, in log order.

    Args:
        log: Full or partial event log, possibly replaying seen events
        shown: Dedup keys of events already shown

    Returns:
        Tuple of (new events, dedup keys including the new events)
    """
    seen = set(shown)
    new_events: list[ChatEvent] = []

    for event in log:
        try:
            key = dedup_key(event)
        except TypeError:
            continue

        if key in seen:
            continue

        seen.add(key)
        new_events.append(event)

    return new_events, frozenset(seen)


class ChatHistoryPoller:
    """
    Polls a session's history and forwards unseen events to a renderer.

    Not safe to share between sessions: the dedup state belongs to the one
    session passed to run().
    """

    def __init__(
        self,
        chat_service: ChatServiceProtocol,
        chat_history: ChatHistoryProtocol,
        renderer: ChatRendererProtocol,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        chunk_delay: float = 0.0,
    ):
        """
        Args:
            chat_service: Used to check that the session is still open
            chat_history: Event log to scan
            renderer: Presentation sink
            poll_interval: Fixed pause between poll cycles in seconds
            chunk_delay: Pause after each rendered chunk in seconds
        """
        self.chat_service = chat_service
        self.chat_history = chat_history
        self.renderer = renderer
        self.poll_interval = poll_interval
        self.chunk_delay = chunk_delay

        self._shown: frozenset[str] = frozenset()
        self._pending_line = ""
        self._line_open = False
        self._stop_event = asyncio.Event()
        self.logger = structlog.get_logger().bind(component="chat_history")

    @property
    def shown(self) -> frozenset[str]:
        return self._shown

    @property
    def stopped(self) -> bool:
        return self._stop_event.is_set()

    def stop(self) -> None:
        """Stop after the current cycle; an in-progress scan is not interrupted."""
        self._stop_event.set()

    async def run(self, session_uuid: UUID) -> None:
        """
        Poll until stop() is called or the session goes away.

        Raises:
            SessionClosedError: When the session is closed or unknown
        """
        self.logger.info("chat_history.polling.started", session_uuid=str(session_uuid))

        try:
            while not self.stopped:
                await self.poll_once(session_uuid)

                try:
                    await asyncio.wait_for(self._stop_event.wait(), timeout=self.poll_interval)
                except asyncio.TimeoutError:
                    pass
        except SessionClosedError:
            self.logger.info("chat_history.session.closed", session_uuid=str(session_uuid))
            self._reset()
            raise

        self.logger.info("chat_history.polling.stopped", session_uuid=str(session_uuid))

    async def poll_once(self, session_uuid: UUID) -> list[ChatEvent]:
        """
        Run a single poll cycle.

        A transient failure of the liveness check or the log read renders
        nothing; the next cycle rescans.

        Returns:
            Events rendered during this cycle

        Raises:
            SessionClosedError: When the session is closed or unknown
        """
        try:
            await self.chat_service.get_session(session_uuid)
            log = await self.chat_history.get_messages(session_uuid)
        except SessionNotFoundError as e:
            raise SessionClosedError("Session is closed.") from e
        except TRANSIENT_ERRORS as e:
            self.logger.warning(
                "chat_history.poll_failed",
                session_uuid=str(session_uuid),
                error=str(e),
                error_type=type(e).__name__,
            )
            return []

        new_events, self._shown = project_new_events(log, self._shown)

        for event in new_events:
            if isinstance(event, MessageChunk):
                await self._render_chunk(event)
            else:
                # A stream cut short never sends its last chunk
                self._close_line()
                self.renderer.render(event)

        if new_events:
            self.logger.debug(
                "chat_history.events.rendered",
                session_uuid=str(session_uuid),
                count=len(new_events),
            )

        return new_events

    async def _render_chunk(self, chunk: MessageChunk) -> None:
        text = chunk.message

        # An empty terminating chunk on its own does not open a line
        if not self._line_open and (text or not chunk.is_last):
            self.renderer.new_line()
            self._line_open = True

        if text:
            self._pending_line += text
            self.renderer.write(text)
            if self.chunk_delay > 0:
                await asyncio.sleep(self.chunk_delay)

        if chunk.is_last:
            self._close_line()

    def _close_line(self) -> None:
        if self._pending_line:
            self.renderer.new_line()
        self._pending_line = ""
        self._line_open = False

    def _reset(self) -> None:
        self._shown = frozenset()
        self._pending_line = ""
        self._line_open = False
