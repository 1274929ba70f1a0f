"""
Rich console for the chat CLI.

Renders chat history events for the history poller and provides the
banner, agent table and status messages used by the commands.
"""

import json
from typing import Iterable, Optional

from rich.console import Console
from rich.padding import Padding
from rich.panel import Panel
from rich.prompt import Prompt
from rich.table import Table
from rich.text import Text
from rich.theme import Theme

from agent_chat.core.domain.events import (
    ChatEvent,
    Message,
    Question,
    ToolCall,
    ToolCallResult,
)
from agent_chat.core.domain.models import AgentDefinition

CHAT_THEME = Theme(
    {
        "muted": "grey50",
        "question": "bold white on green",
        "tool_call": "bold white on blue",
        "tool_result": "bold white on magenta",
        "response": "cyan",
        "info": "bold blue",
    }
)


def pretty_json(raw: str) -> str:
    """Pretty-print a JSON string; anything else is returned unchanged."""
    try:
        return json.dumps(json.loads(raw), indent=4, ensure_ascii=False)
    except (TypeError, ValueError):
        return raw


class ChatConsole:
    """Console renderer for chat sessions."""

    def __init__(self, console: Optional[Console] = None, verbose: bool = False):
        self.console = console or Console(theme=CHAT_THEME)
        if console is not None:
            self.console.push_theme(CHAT_THEME)
        self.verbose = verbose

    # Renderer for ChatHistoryPoller

    def render(self, event: ChatEvent) -> None:
        if isinstance(event, Question):
            self._block(f"> User: {event.message}", style="question")
        elif isinstance(event, Message):
            self._block(event.message, style="response", padding=False)
        elif isinstance(event, ToolCall):
            self._block(f"<-- Let me call [{event.tool}] tool", style="tool_call")
            if self.verbose:
                self._block(pretty_json(event.arguments), style="muted", padding=False)
        elif isinstance(event, ToolCallResult):
            self._block(f"--> [{event.tool}]", style="tool_result")
            if self.verbose:
                # Results often arrive with escaped quotes
                result = event.result.replace('\\"', '"')
                self._block(pretty_json(result), style="muted", padding=False)

    def write(self, text: str) -> None:
        self.console.print(Text(text, style="response"), end="")

    def new_line(self) -> None:
        self.console.line()

    # Command output

    def clear(self) -> None:
        self.console.clear()

    def print_banner(self, title: str = "Agent Chat") -> None:
        self.console.print(Panel.fit(Text(title, style="bold blue"), border_style="blue"))

    def print_agent(self, agent: AgentDefinition) -> None:
        self.console.rule(Text(agent.name, style="bold"))
        if agent.description:
            self.console.print(Text(agent.description))

    def print_agents(self, agents: Iterable[AgentDefinition]) -> None:
        table = Table(title="Available Agents")
        table.add_column("Key", style="cyan", no_wrap=True)
        table.add_column("Name", style="green")
        table.add_column("Model", style="yellow")
        table.add_column("Description", style="white")

        for agent in agents:
            description = agent.description
            if len(description) > 70:
                description = description[:67] + "..."
            table.add_row(agent.key, agent.name, agent.model, description)

        self.console.print(table)

    def print_info(self, *lines: str) -> None:
        self._block("\n".join(lines), style="info")

    def print_warning(self, message: str) -> None:
        self.console.print(Text(f"⚠ {message}", style="yellow"))

    def print_error(self, message: str, exception: Optional[BaseException] = None) -> None:
        self.console.print(Text(f"✗ {message}", style="bold red"))
        if exception is not None and self.verbose:
            self.console.print_exception()

    def choose_prompt(self, prompts: Iterable[str], default: str = "custom") -> str:
        """Offer sample prompts plus 'custom' and 'exit'; return the chosen text."""
        choices = ["custom", *prompts, "exit"]
        for index, choice in enumerate(choices, start=1):
            self.console.print(Text(f"  [{index}] {choice}", style="muted"))

        answer = Prompt.ask(
            "Choose a prompt",
            console=self.console,
            default=str(choices.index(default) + 1),
        )
        if answer.isdigit() and 1 <= int(answer) <= len(choices):
            answer = choices[int(answer) - 1]

        if answer == "custom":
            return Prompt.ask("You", console=self.console, default="")
        return answer

    def _block(self, message: str, style: str, padding: bool = True) -> None:
        text = Text(message, style=style)
        if padding:
            self.console.print(Padding(text, (1, 1), style=style, expand=False))
        else:
            self.console.print(text)
