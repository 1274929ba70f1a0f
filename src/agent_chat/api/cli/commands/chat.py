"""Chat command - Interactive chat session with an agent."""

import asyncio
import uuid
from typing import Callable, Optional

import structlog
import typer

from agent_chat.api.cli.chat_console import ChatConsole
from agent_chat.application.chat_history import ChatHistoryPoller
from agent_chat.application.factory import ChatFactory
from agent_chat.config.settings import ChatSettings
from agent_chat.core.domain.exceptions import SessionClosedError
from agent_chat.core.domain.models import AgentDefinition
from agent_chat.core.interfaces.chat import ChatHistoryProtocol, ChatServiceProtocol

app = typer.Typer(help="Interactive chat session")
logger = structlog.get_logger().bind(component="chat_cli")


@app.command()
def start(
    ctx: typer.Context,
    agent_key: Optional[str] = typer.Option(
        None, "--agent", "-a", help="Agent key (prompted when omitted)"
    ),
    account: Optional[str] = typer.Option(
        None, "--account", help="Account UUID the session belongs to"
    ),
):
    """
    Start an interactive chat session with an agent.

    Responses stream into the chat history view while you type. Type 'exit'
    to close the session, 'refresh' to keep watching without asking.

    Examples:
        agent-chat chat start
        agent-chat chat start --agent assistant
        agent-chat --verbose chat start --agent assistant
    """
    global_opts = ctx.obj or {}
    settings: ChatSettings = global_opts.get("settings") or ChatSettings()
    verbose = global_opts.get("verbose", False)

    chat_console = ChatConsole(verbose=verbose)
    agents = settings.agent_definitions()

    if agent_key is None:
        chat_console.print_agents(agents.values())
        agent_key = typer.prompt("Select an agent", default=next(iter(agents), ""))

    if agent_key not in agents:
        chat_console.print_error(f"Invalid agent [{agent_key}]")
        raise typer.Exit(code=1)

    try:
        account_uuid = uuid.UUID(account) if account else uuid.uuid4()
    except ValueError:
        chat_console.print_error(f"Invalid account UUID [{account}]")
        raise typer.Exit(code=1)

    factory = ChatFactory(settings)
    chat_history = factory.create_chat_history()
    chat_service = factory.create_chat_service(chat_history)
    poller = factory.create_poller(chat_service, chat_history, chat_console)

    chat_console.clear()
    chat_console.print_banner()
    chat_console.print_agent(agents[agent_key])

    async def run() -> None:
        try:
            await run_chat_loop(
                chat_service=chat_service,
                chat_history=chat_history,
                poller=poller,
                chat_console=chat_console,
                agent=agents[agent_key],
                account_uuid=account_uuid,
                read_input=lambda: chat_console.choose_prompt(agents[agent_key].prompts),
            )
        finally:
            await chat_service.aclose()

    asyncio.run(run())


async def run_chat_loop(
    chat_service: ChatServiceProtocol,
    chat_history: ChatHistoryProtocol,
    poller: ChatHistoryPoller,
    chat_console: ChatConsole,
    agent: AgentDefinition,
    account_uuid: uuid.UUID,
    read_input: Callable[[], str],
) -> uuid.UUID:
    """
    Run one chat session until the user exits.

    The history poller renders the session in the background while input is
    read on a worker thread. Failures of a single question are reported and
    the loop keeps waiting for the next input.

    Returns:
        The session UUID
    """
    session_uuid = await chat_service.start_session(account_uuid, agent.key)

    session_info = [
        f"Connecting to chat session [{session_uuid}]...",
        f"Chat session started with agent [{agent.key}]. Type 'exit' to quit.",
    ]
    chat_console.print_info(*session_info)

    poll_task = asyncio.create_task(poller.run(session_uuid))

    try:
        while True:
            try:
                message = await asyncio.to_thread(read_input)
            except (KeyboardInterrupt, EOFError):
                message = "exit"

            # The session was closed elsewhere
            if poll_task.done():
                break

            message = (message or "").strip()

            if message == "exit":
                chat_console.print_info("Goodbye! Closing chat session...")
                await chat_service.close_session(session_uuid)
                await chat_history.clear(session_uuid)
                break
            elif message == "refresh":
                continue

            if not message:
                chat_console.print_warning("Message cannot be empty")
                continue

            try:
                await chat_service.ask(session_uuid, message)
            except Exception as e:
                logger.error("chat.ask.failed", session_uuid=str(session_uuid), error=str(e))
                chat_console.print_error(f"Execution failed: {e}", exception=e)
    finally:
        poller.stop()
        try:
            await poll_task
        except SessionClosedError:
            chat_console.print_info("Session is closed.")

    return session_uuid
