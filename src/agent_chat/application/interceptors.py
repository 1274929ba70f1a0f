"""
Execution interceptors.

Interceptors wrap the executor's model call in registration order: the first
registered interceptor sees the call first and the result last.
"""

from datetime import datetime
from functools import partial
from typing import Sequence

import structlog

from agent_chat.core.domain.models import Execution
from agent_chat.core.interfaces.executor import (
    ExecutionHandler,
    ExecutionInput,
    InterceptorProtocol,
)


async def run_interceptors(
    execution_input: ExecutionInput,
    interceptors: Sequence[InterceptorProtocol],
    handler: ExecutionHandler,
) -> Execution:
    """Run handler behind the interceptor chain."""
    if not interceptors:
        return await handler(execution_input)

    first, rest = interceptors[0], interceptors[1:]
    next_handler = partial(run_interceptors, interceptors=rest, handler=handler)
    return await first(execution_input, next_handler)


class LoggingInterceptor:
    """Logs start, completion and failure of every execution."""

    def __init__(self):
        self.logger = structlog.get_logger().bind(component="execution")

    async def __call__(
        self, execution_input: ExecutionInput, next_handler: ExecutionHandler
    ) -> Execution:
        start_time = datetime.now()
        self.logger.info(
            "execution.started",
            agent=execution_input.agent,
            session_uuid=execution_input.prompt_context.get("session_uuid"),
        )

        try:
            execution = await next_handler(execution_input)
        except Exception as e:
            self.logger.error(
                "execution.failed",
                agent=execution_input.agent,
                error=str(e),
                error_type=type(e).__name__,
                duration_seconds=(datetime.now() - start_time).total_seconds(),
            )
            raise

        self.logger.info(
            "execution.completed",
            agent=execution_input.agent,
            finish_reason=execution.finish_reason,
            tool_calls=len(execution.tool_calls),
            duration_seconds=(datetime.now() - start_time).total_seconds(),
        )
        return execution
