"""Interactive REPL that routes each line to the shell or the AI assistant.

The REPL owns a single session: one shell subprocess (whose output goes
straight to the terminal) and one AI conversation rendered with Rich.
"""

import asyncio
import os

from rich.console import Console
from rich.text import Text

from termroute.cli.output import format_confidence, format_turn
from termroute.errors.formatter import format_error_summary
from termroute.services.ai_backend import AnthropicBackend
from termroute.services.dispatcher import Dispatcher
from termroute.services.session_context import SessionManager
from termroute.services.shell_channel import SubprocessShellChannel

console = Console()

REPL_SESSION_ID = "repl"
QUIT_COMMANDS = frozenset({":q", ":quit"})


async def run_repl(
    dispatcher: Dispatcher,
    shell_channel: SubprocessShellChannel,
    ai_backend: AnthropicBackend,
    working_directory: str | None = None,
    recent_command_limit: int = 50,
) -> None:
    """Run the interactive routing REPL until EOF or :quit.

    Args:
        dispatcher: Dispatcher wired to shell_channel and ai_backend.
        shell_channel: Channel that owns the session's shell process.
        ai_backend: Backend whose conversation memory is cleared on exit.
        working_directory: Shell working directory (defaults to cwd).
        recent_command_limit: Command history size for the session.
    """
    cwd = working_directory or os.getcwd()
    manager = SessionManager(recent_command_limit=recent_command_limit)
    session = manager.open_session(
        REPL_SESSION_ID, working_directory=cwd, shell_name=shell_channel.shell_name
    )
    handle = await shell_channel.open(REPL_SESSION_ID, cwd=cwd)
    manager.attach_shell(REPL_SESSION_ID, handle)

    console.print()
    console.print("[bold]TermRoute[/bold] — Interactive Mode")
    console.print(f"Shell: {shell_channel.executable}  Directory: {cwd}")
    console.print("Commands run in the shell; questions go to the AI. Ctrl+D to exit.")
    console.print()

    seen_turns = 0
    try:
        while session.is_alive:
            try:
                line = await asyncio.to_thread(console.input, "[bold green]> [/bold green]")
            except EOFError:
                break
            if line.strip() in QUIT_COMMANDS:
                break
            if not line.strip():
                continue

            try:
                result = await dispatcher.submit(line, session)
            except KeyboardInterrupt:
                console.print("\n[yellow]Interrupted[/yellow]")
                continue

            if result.decision is not None and result.decision.normalized_input:
                route = "shell" if result.decision.is_shell_command else "ai"
                note = " (fallback)" if result.used_fallback else ""
                console.print(
                    f"[dim]→ {route} {format_confidence(result.decision.confidence)}{note}[/dim]"
                )
            for turn in session.conversation[seen_turns:]:
                if turn.role == "assistant":
                    console.print(format_turn(turn))
            seen_turns = len(session.conversation)
            if result.decision is not None and result.decision.is_shell_command:
                # Let the shell flush before the next prompt is drawn.
                await asyncio.sleep(0.1)
    finally:
        await manager.close_session(REPL_SESSION_ID)
        ai_backend.forget(REPL_SESSION_ID)
        await shell_channel.close(handle)

    if session.pending_errors:
        console.print()
        console.print(Text(format_error_summary(session.pending_errors), style="red"))
    console.print("\n[dim]Session ended.[/dim]")
