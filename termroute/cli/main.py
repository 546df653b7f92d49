"""TermRoute CLI — route terminal input to the shell or an AI assistant.

Usage:
    termroute classify "git status"     Show how an input would be routed
    termroute analyze "build"           Explain a decision with alternatives
    termroute repl                      Start the interactive routing REPL
    termroute config show               Display resolved configuration
"""

import asyncio
import logging
from typing import Optional

import typer
from rich.console import Console

from termroute.cli.config import TermRouteConfig, load_config, resolve_config
from termroute.cli.factory import (
    build_ai_backend,
    build_classifier,
    build_dispatcher,
    configure_logging,
)
from termroute.cli.output import format_analysis, format_decision
from termroute.errors.domain import ClassificationServiceError
from termroute.routing.classifier import IntentClassifier
from termroute.routing.fallback import fallback_classify
from termroute.routing.models import RoutingDecision

_log = logging.getLogger(__name__)

app = typer.Typer(
    name="termroute",
    help="Route terminal input to the shell or to an AI assistant",
    no_args_is_help=True,
)
config_app = typer.Typer(help="Configuration management")
app.add_typer(config_app, name="config")

console = Console()

# --- Global state ---
_config_path: str | None = None


@app.callback()
def main(
    config: Optional[str] = typer.Option(
        None, "--config", help="Path to termroute.yaml config file"
    ),
):
    """TermRoute CLI — shell/AI intent routing."""
    global _config_path
    _config_path = config


def _load() -> TermRouteConfig:
    """Resolve config and configure logging, exiting on a bad config."""
    try:
        cfg = resolve_config(_config_path)
    except FileNotFoundError as e:
        console.print(f"[red]Config file not found:[/red] {e}")
        raise typer.Exit(1)
    except (ValueError, TypeError) as e:
        console.print(f"[red]Config validation failed:[/red] {e}")
        raise typer.Exit(1)
    configure_logging(cfg.logging)
    return cfg


async def _classify(classifier: IntentClassifier, text: str) -> RoutingDecision:
    """Async classification, degrading to the fallback heuristic on failure."""
    try:
        return await classifier.classify_async(text)
    except ClassificationServiceError as e:
        _log.warning("Classifier unavailable (%s); using fallback heuristic", e.message)
        return fallback_classify(text)


# --- Routing commands ---


@app.command()
def classify(
    text: str = typer.Argument(help="Input line to classify"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
    probe: Optional[bool] = typer.Option(
        None, "--probe/--no-probe", help="Consult PATH for unknown commands"
    ),
):
    """Show how an input line would be routed."""
    cfg = _load()
    classifier = build_classifier(cfg, probe=probe)
    if classifier.probe is None:
        decision = classifier.classify(text)
    else:
        decision = asyncio.run(_classify(classifier, text))

    output = format_decision(decision, as_json=json_output)
    if json_output:
        typer.echo(output)
    else:
        console.print(output)


@app.command()
def analyze(
    text: str = typer.Argument(help="Input line to analyze"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
    probe: Optional[bool] = typer.Option(
        None, "--probe/--no-probe", help="Consult PATH for unknown commands"
    ),
):
    """Explain a routing decision and suggest alternatives when unsure."""
    cfg = _load()
    classifier = build_classifier(cfg, probe=probe)
    try:
        analysis = asyncio.run(classifier.analyze(text))
    except ClassificationServiceError as e:
        console.print(f"[red]Classification failed:[/red] {e.message}")
        raise typer.Exit(1)

    output = format_analysis(analysis, as_json=json_output)
    if json_output:
        typer.echo(output)
    else:
        console.print(output)


@app.command()
def repl():
    """Start the interactive REPL (shell commands run, questions go to the AI)."""
    from termroute.cli.repl import run_repl
    from termroute.services.shell_channel import SubprocessShellChannel

    cfg = _load()
    classifier = build_classifier(cfg)
    shell_channel = SubprocessShellChannel(cfg.shell.executable)
    ai_backend = build_ai_backend(cfg)
    dispatcher = build_dispatcher(cfg, classifier, shell_channel, ai_backend)
    try:
        asyncio.run(
            run_repl(
                dispatcher,
                shell_channel,
                ai_backend,
                working_directory=cfg.shell.working_directory,
                recent_command_limit=cfg.dispatch.recent_command_limit,
            )
        )
    except KeyboardInterrupt:
        console.print("\n[dim]Session ended.[/dim]")


# --- Version ---


@app.command()
def version():
    """Show TermRoute version."""
    from importlib.metadata import PackageNotFoundError
    from importlib.metadata import version as pkg_version

    from termroute import __version__

    try:
        v = pkg_version("termroute")
    except PackageNotFoundError:
        v = __version__
    console.print(f"[bold]TermRoute[/bold] v{v}")


# --- Config commands ---


@config_app.command("show")
def config_show():
    """Display resolved configuration (secrets masked)."""
    cfg = _load()

    console.print("[bold]Routing:[/bold]")
    console.print(f"  probe_enabled: {cfg.routing.probe_enabled}")
    console.print(f"  probe_timeout_seconds: {cfg.routing.probe_timeout_seconds}")
    console.print(f"  classify_timeout_seconds: {cfg.routing.classify_timeout_seconds}")
    console.print(f"  high_confidence_threshold: {cfg.routing.high_confidence_threshold}")

    console.print("\n[bold]Dispatch:[/bold]")
    console.print(f"  ai_timeout_seconds: {cfg.dispatch.ai_timeout_seconds}")
    console.print(f"  line_terminator: {cfg.dispatch.line_terminator!r}")
    console.print(f"  recent_command_limit: {cfg.dispatch.recent_command_limit}")
    console.print(f"  prompt_history_limit: {cfg.dispatch.prompt_history_limit}")

    console.print("\n[bold]AI:[/bold]")
    console.print(f"  model: {cfg.ai.model}")
    console.print(f"  max_tokens: {cfg.ai.max_tokens}")
    key = cfg.ai.api_key
    if not key:
        masked = "(from ANTHROPIC_API_KEY)"
    else:
        masked = "***" + key[-4:] if len(key) > 4 else "***"
    console.print(f"  api_key: {masked}")
    console.print(f"  memory_turns: {cfg.ai.memory_turns}")

    console.print("\n[bold]Shell:[/bold]")
    console.print(f"  executable: {cfg.shell.executable or '(from $SHELL)'}")
    console.print(f"  working_directory: {cfg.shell.working_directory or '(current directory)'}")

    console.print("\n[bold]Logging:[/bold]")
    console.print(f"  level: {cfg.logging.level}")
    console.print(f"  file: {cfg.logging.file or '(stderr only)'}")


@config_app.command("validate")
def config_validate(
    config: Optional[str] = typer.Option(None, "--config", help="Config file path"),
):
    """Validate a config file without starting anything."""
    path = config or _config_path
    try:
        cfg = load_config(config_path=path)
        if cfg is None:
            console.print("[red]No config file found.[/red]")
            console.print("Searched: ./termroute.yaml, ~/.termroute/config.yaml")
            raise typer.Exit(1)
        console.print("[green]Config is valid.[/green]")
        console.print(f"  Probe: {'enabled' if cfg.routing.probe_enabled else 'disabled'}")
        console.print(f"  AI model: {cfg.ai.model}")
    except FileNotFoundError as e:
        console.print(f"[red]Config file not found:[/red] {e}")
        raise typer.Exit(1)
    except (ValueError, TypeError) as e:
        console.print(f"[red]Config validation failed:[/red] {e}")
        raise typer.Exit(1)
