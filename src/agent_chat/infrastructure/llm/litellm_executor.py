"""
LiteLLM-backed agent executor.

Runs one agent turn as a streamed chat completion:
- resolves the agent key against the configured agent definitions
- builds the initial prompt (agent instructions + user text) for a first turn
- sends the prompt context as a system note next to the conversation
- reports every content delta to the stream chunk callback option
- accumulates streamed tool-call deltas into ToolCallRequests
"""

import json
from typing import Any, Mapping, Sequence

import litellm
import structlog

from agent_chat.application.interceptors import run_interceptors
from agent_chat.core.domain.exceptions import AgentNotFoundError
from agent_chat.core.domain.models import AgentDefinition, Execution
from agent_chat.core.domain.options import Option, Options
from agent_chat.core.domain.prompt import (
    MessagePrompt,
    Prompt,
    PromptContext,
    ToolCallRequest,
)
from agent_chat.core.interfaces.executor import ExecutionInput, InterceptorProtocol


class LiteLLMAgentExecutor:
    """Agent executor streaming completions through LiteLLM."""

    def __init__(
        self,
        agents: Mapping[str, AgentDefinition],
        tools: Sequence[dict[str, Any]] | None = None,
        timeout: int = 60,
    ):
        """
        Args:
            agents: Agent definitions keyed by agent key
            tools: OpenAI function-calling tool schemas offered to the model
            timeout: Completion timeout in seconds
        """
        self.agents = dict(agents)
        self.tools = list(tools or [])
        self.timeout = timeout
        self.logger = structlog.get_logger().bind(component="litellm_executor")

    async def execute(
        self,
        agent: str,
        prompt: Prompt | str,
        options: Options,
        prompt_context: PromptContext,
        interceptors: Sequence[InterceptorProtocol] = (),
    ) -> Execution:
        execution_input = ExecutionInput(
            agent=agent,
            prompt=prompt,
            options=options,
            prompt_context=prompt_context,
        )
        return await run_interceptors(execution_input, tuple(interceptors), self._complete)

    def get_agent(self, agent_key: str) -> AgentDefinition:
        try:
            return self.agents[agent_key]
        except KeyError:
            raise AgentNotFoundError(agent_key) from None

    def build_prompt(self, agent: AgentDefinition, prompt: Prompt | str) -> Prompt:
        """Initial prompt for a raw-text first turn; prompts pass through."""
        if isinstance(prompt, Prompt):
            return prompt

        return Prompt(
            messages=(
                MessagePrompt.system(agent.instructions),
                MessagePrompt.user(prompt),
            )
        )

    async def _complete(self, execution_input: ExecutionInput) -> Execution:
        agent = self.get_agent(execution_input.agent)
        prompt = self.build_prompt(agent, execution_input.prompt)
        options = execution_input.options
        callback = options.get(Option.STREAM_CHUNK_CALLBACK)

        params: dict[str, Any] = options.to_completion_kwargs()
        if self.tools:
            params["tools"] = self.tools
            params["tool_choice"] = "auto"

        model = options.get(Option.MODEL) or agent.model

        self.logger.info(
            "llm_completion_started",
            agent=agent.key,
            model=model,
            message_count=len(prompt),
        )

        response = await litellm.acompletion(
            model=model,
            messages=self._to_messages(prompt, execution_input.prompt_context),
            stream=True,
            timeout=self.timeout,
            **params,
        )

        content = ""
        finish_reason = None
        tool_calls_accumulated: dict[int, dict[str, str]] = {}

        try:
            async for chunk in response:
                if not chunk.choices:
                    continue

                choice = chunk.choices[0]
                delta = choice.delta

                token = getattr(delta, "content", None)
                if token:
                    content += token
                    if callback is not None:
                        callback(token, False, None)

                for tool_call in getattr(delta, "tool_calls", None) or []:
                    entry = tool_calls_accumulated.setdefault(
                        tool_call.index or 0, {"id": "", "name": "", "arguments": ""}
                    )
                    if tool_call.id:
                        entry["id"] = tool_call.id
                    function = tool_call.function
                    if function is not None:
                        if function.name:
                            entry["name"] = function.name
                        if function.arguments:
                            entry["arguments"] += function.arguments

                if choice.finish_reason:
                    finish_reason = choice.finish_reason
        finally:
            # Close the streamed message even when the stream breaks off
            if callback is not None:
                callback("", True, finish_reason)

        tool_calls = tuple(
            ToolCallRequest(
                id=entry["id"],
                name=entry["name"],
                arguments=entry["arguments"] or "{}",
            )
            for _, entry in sorted(tool_calls_accumulated.items())
        )

        self.logger.info(
            "llm_completion_success",
            agent=agent.key,
            model=model,
            finish_reason=finish_reason,
            tool_calls=len(tool_calls),
        )

        return Execution(
            prompt=prompt.with_added_message(MessagePrompt.assistant(content, tool_calls)),
            content=content,
            tool_calls=tool_calls,
            finish_reason=finish_reason,
        )

    @staticmethod
    def _to_messages(prompt: Prompt, prompt_context: PromptContext) -> list[dict[str, Any]]:
        messages = prompt.to_messages()
        if not prompt_context:
            return messages

        note = {
            "role": "system",
            "content": "Session context:\n"
            + json.dumps(prompt_context.to_dict(), indent=2, default=str),
        }
        # Keep the agent instructions first when present
        insert_at = 1 if messages and messages[0]["role"] == "system" else 0
        return messages[:insert_at] + [note] + messages[insert_at:]
