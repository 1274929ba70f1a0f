"""Agent Chat CLI entry point."""

import sys
from pathlib import Path
from typing import Optional

import typer
from dotenv import load_dotenv
from rich.console import Console

from agent_chat.api.cli.commands import agents, chat
from agent_chat.config.settings import ChatSettings
from agent_chat.logging_config import setup_logging

# Load environment variables from .env file
load_dotenv()

console = Console()

app = typer.Typer(
    name="agent-chat",
    help="Agent Chat - converse with LLM agents and watch responses stream in",
    context_settings={"help_option_names": ["-h", "--help"]},
    no_args_is_help=True,
    rich_markup_mode="rich",
)

app.add_typer(chat.app, name="chat", help="Interactive chat session")
app.add_typer(agents.app, name="agents", help="Configured agents")


@app.callback()
def main_callback(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose output"),
    config: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Path to a YAML configuration file"
    ),
):
    """
    Agent Chat CLI.

    Use --help with any command to get detailed information and examples.
    """
    settings = ChatSettings.load_from_file(config) if config else ChatSettings()
    setup_logging(debug=verbose or settings.debug_mode, log_level=settings.log_level)
    ctx.obj = {"settings": settings, "verbose": verbose}


@app.command()
def version():
    """Show Agent Chat version."""
    from agent_chat import __version__

    console.print(f"[bold blue]Agent Chat[/bold blue] version [cyan]{__version__}[/cyan]")


def cli_main():
    """Main CLI entry point."""
    try:
        app()
    except KeyboardInterrupt:
        console.print("\n[yellow]Operation cancelled by user[/yellow]")
        sys.exit(1)
    except Exception as e:
        if "--verbose" in sys.argv or "-v" in sys.argv:
            console.print_exception()
        else:
            console.print(f"[red]Error: {e}[/red]")
            console.print("[dim]Use --verbose for detailed error information[/dim]")
        sys.exit(1)


if __name__ == "__main__":
    cli_main()
