"""
In-memory chat service.

Owns the session lifecycle and runs agent turns out of band:
- start_session() forks the template builder per session
- ask() records the Question and runs the turn in a background task
- tool calls requested by the model are executed, logged as ToolCall and
  ToolCallResult events, and fed back to the model until it answers
- streamed tokens reach the history through the session's StreamChunkCallback

A failing turn is logged and surfaced into the history as a Message; the
session stays open for the next question.
"""

import asyncio
import json
from collections import defaultdict
from datetime import datetime
from typing import Any, Dict, Optional, Set
from uuid import UUID, uuid4

import structlog

from agent_chat.application.builder import AgentExecutorBuilder
from agent_chat.application.stream_callback import StreamChunkCallback
from agent_chat.core.domain.events import Message, Question, ToolCall, ToolCallResult
from agent_chat.core.domain.exceptions import SessionNotFoundError
from agent_chat.core.domain.models import Execution, Session
from agent_chat.core.domain.prompt import MessagePrompt, ToolCallRequest
from agent_chat.core.interfaces.chat import ChatHistoryProtocol, EventDispatcherProtocol
from agent_chat.core.interfaces.executor import ToolRunnerProtocol

DEFAULT_MAX_TOOL_ROUNDS = 8


class InMemoryChatService:
    """Chat service keeping sessions in process memory."""

    def __init__(
        self,
        builder: AgentExecutorBuilder,
        chat_history: ChatHistoryProtocol,
        event_dispatcher: Optional[EventDispatcherProtocol] = None,
        tool_runner: Optional[ToolRunnerProtocol] = None,
        max_tool_rounds: int = DEFAULT_MAX_TOOL_ROUNDS,
    ):
        """
        Args:
            builder: Template builder; each session gets its own fork
            chat_history: Event log questions are appended to
            event_dispatcher: Sink for streamed and tool events. Defaults to
                the chat history when it provides dispatch()
            tool_runner: Executes tools requested by the model
            max_tool_rounds: Tool call rounds allowed per question
        """
        if event_dispatcher is None and callable(getattr(chat_history, "dispatch", None)):
            event_dispatcher = chat_history

        self._template = builder
        self._chat_history = chat_history
        self._dispatcher = event_dispatcher
        self._tool_runner = tool_runner
        self.max_tool_rounds = max_tool_rounds

        self._sessions: Dict[UUID, Session] = {}
        self._builders: Dict[UUID, AgentExecutorBuilder] = {}
        self._locks: Dict[UUID, asyncio.Lock] = {}
        self._tasks: Dict[UUID, Set[asyncio.Task]] = defaultdict(set)
        self.logger = structlog.get_logger().bind(component="chat_service")

    def _get_lock(self, session_uuid: UUID) -> asyncio.Lock:
        """Get or create the turn lock of a session"""
        if session_uuid not in self._locks:
            self._locks[session_uuid] = asyncio.Lock()
        return self._locks[session_uuid]

    async def start_session(self, account_uuid: UUID, agent_name: str) -> UUID:
        session_uuid = uuid4()

        context = self._template.prompt_context.with_values(
            session_uuid=str(session_uuid),
            account_uuid=str(account_uuid),
        )
        self._builders[session_uuid] = (
            self._template.with_agent_key(agent_name)
            .with_prompt_context(context)
            .with_stream_chunk_callback(StreamChunkCallback(session_uuid, self._dispatcher))
        )
        self._sessions[session_uuid] = Session(
            uuid=session_uuid,
            account_uuid=account_uuid,
            agent_name=agent_name,
        )

        self.logger.info(
            "chat.session.started",
            session_uuid=str(session_uuid),
            account_uuid=str(account_uuid),
            agent=agent_name,
        )
        return session_uuid

    async def get_session(self, session_uuid: UUID) -> Session:
        session = self._sessions.get(session_uuid)
        if session is None or session.is_finished:
            raise SessionNotFoundError(session_uuid)
        return session

    async def update_session(self, session: Session) -> None:
        await self.get_session(session.uuid)
        self._sessions[session.uuid] = session

    async def ask(self, session_uuid: UUID, message: str) -> UUID:
        await self.get_session(session_uuid)

        message_uuid = uuid4()
        await self._chat_history.add_message(
            session_uuid,
            Question(
                session_uuid=session_uuid,
                message_uuid=message_uuid,
                message=str(message),
                created_at=datetime.now(),
            ),
        )

        task = asyncio.create_task(self._run_turn(session_uuid, str(message)))
        tasks = self._tasks[session_uuid]
        tasks.add(task)
        task.add_done_callback(tasks.discard)

        self.logger.info(
            "chat.question.enqueued",
            session_uuid=str(session_uuid),
            message_uuid=str(message_uuid),
        )
        return message_uuid

    async def close_session(self, session_uuid: UUID) -> None:
        session = await self.get_session(session_uuid)
        session.is_finished = True

        tasks = self._tasks.pop(session_uuid, set())
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

        self._sessions.pop(session_uuid, None)
        self._builders.pop(session_uuid, None)
        self._locks.pop(session_uuid, None)

        self.logger.info("chat.session.closed", session_uuid=str(session_uuid))

    async def wait_idle(self, session_uuid: UUID) -> None:
        """Wait until all running turns of a session have finished."""
        tasks = set(self._tasks.get(session_uuid, ()))
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    async def aclose(self) -> None:
        """Cancel every running turn."""
        tasks = [task for session_tasks in self._tasks.values() for task in session_tasks]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()

    async def _run_turn(self, session_uuid: UUID, message: str) -> None:
        async with self._get_lock(session_uuid):
            builder = self._builders.get(session_uuid)
            if builder is None:
                return

            try:
                execution = await builder.ask(message)
                execution = await self._resolve_tool_calls(session_uuid, builder, execution)

                session = self._sessions.get(session_uuid)
                if session is not None:
                    session.update_history(builder.prompt.to_messages())

                self.logger.info(
                    "chat.turn.completed",
                    session_uuid=str(session_uuid),
                    finish_reason=execution.finish_reason,
                    history_length=len(builder.prompt),
                )

            except asyncio.CancelledError:
                self.logger.info("chat.turn.cancelled", session_uuid=str(session_uuid))
                raise

            except Exception as e:
                self.logger.error(
                    "chat.turn.failed",
                    session_uuid=str(session_uuid),
                    error=str(e),
                    error_type=type(e).__name__,
                )
                self._dispatch(
                    Message(session_uuid=session_uuid, message=f"Execution failed: {e}")
                )

    async def _resolve_tool_calls(
        self, session_uuid: UUID, builder: AgentExecutorBuilder, execution: Execution
    ) -> Execution:
        rounds = 0
        while execution.requires_tools:
            if rounds >= self.max_tool_rounds:
                self.logger.warning(
                    "chat.turn.tool_rounds_exceeded",
                    session_uuid=str(session_uuid),
                    max_tool_rounds=self.max_tool_rounds,
                )
                self._dispatch(
                    Message(
                        session_uuid=session_uuid,
                        message=f"Stopped after {self.max_tool_rounds} tool call rounds.",
                    )
                )
                break

            rounds += 1
            for call in execution.tool_calls:
                self._dispatch(
                    ToolCall(
                        session_uuid=session_uuid,
                        id=call.id,
                        tool=call.name,
                        arguments=call.arguments,
                    )
                )
                result = await self._run_tool(session_uuid, call)
                self._dispatch(
                    ToolCallResult(
                        session_uuid=session_uuid,
                        id=call.id,
                        tool=call.name,
                        result=result,
                    )
                )
                builder.with_message(MessagePrompt.tool(result, tool_call_id=call.id))

            execution = await builder.continue_()

        return execution

    async def _run_tool(self, session_uuid: UUID, call: ToolCallRequest) -> str:
        if self._tool_runner is None:
            return json.dumps({"success": False, "error": f"Tool [{call.name}] is not available"})

        try:
            output: Any = await self._tool_runner.run(call.name, call.arguments)
        except Exception as e:
            self.logger.warning(
                "chat.tool.failed",
                session_uuid=str(session_uuid),
                tool=call.name,
                error=str(e),
                error_type=type(e).__name__,
            )
            return json.dumps({"success": False, "error": str(e)})

        if isinstance(output, str):
            return output
        return json.dumps(output, default=str)

    def _dispatch(self, event: Any) -> None:
        if self._dispatcher is not None:
            self._dispatcher.dispatch(event)
