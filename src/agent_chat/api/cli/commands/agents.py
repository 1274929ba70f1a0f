"""Agents command - List configured agents."""

import typer

from agent_chat.api.cli.chat_console import ChatConsole
from agent_chat.config.settings import ChatSettings

app = typer.Typer(help="Configured agents")


@app.command("list")
def list_agents(ctx: typer.Context):
    """
    List the agents available for chat.

    Examples:
        agent-chat agents list
        agent-chat --config agents.yaml agents list
    """
    settings: ChatSettings = (ctx.obj or {}).get("settings") or ChatSettings()
    ChatConsole().print_agents(settings.agent_definitions().values())
