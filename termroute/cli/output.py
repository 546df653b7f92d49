"""CLI output formatters for Rich tables and JSON.

Provides human-readable Rich output (default) and machine-parseable JSON
output (--json flag). All formatting goes through these functions so the
CLI commands stay clean.
"""

import json

from rich.console import Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from termroute.routing.models import RoutingAnalysis, RoutingDecision
from termroute.services.session_context import ConversationTurn

ROUTE_COLORS = {
    "execute_shell": "green",
    "send_to_ai": "cyan",
    "ask_user": "yellow",
}


def format_confidence(confidence: float) -> str:
    """Format a confidence as a percentage with one decimal, e.g. '95.0%'."""
    return f"{confidence * 100:.1f}%"


def format_decision(decision: RoutingDecision, as_json: bool = False) -> Table | str:
    """Format a routing decision as a Rich table or JSON.

    Args:
        decision: Decision to display.
        as_json: If True, return a JSON string instead of a table.
    """
    if as_json:
        return json.dumps(decision.model_dump(mode="json"), indent=2)

    color = ROUTE_COLORS.get(decision.suggested_action.value, "white")
    table = Table(title="Routing Decision", show_header=False)
    table.add_column("Field", style="bold")
    table.add_column("Value")
    table.add_row("Route", f"[{color}]{decision.suggested_action.value}[/{color}]")
    table.add_row("Confidence", format_confidence(decision.confidence))
    table.add_row("Tier", decision.tier.value)
    table.add_row("Rule", decision.rule_name or "—")
    table.add_row("Reason", decision.reason)
    table.add_row("Input", decision.normalized_input or "—")
    return table


def format_analysis(analysis: RoutingAnalysis, as_json: bool = False) -> Panel | str:
    """Format a routing analysis as a Rich panel or JSON."""
    if as_json:
        return json.dumps(analysis.model_dump(mode="json"), indent=2)

    parts: list = [Text(analysis.explanation.rstrip())]
    if analysis.alternatives:
        parts.append(Text("\nAlternatives:", style="bold"))
        for alternative in analysis.alternatives:
            parts.append(Text(f"  • {alternative}"))
    return Panel(Group(*parts), title="Routing Analysis")


def format_turn(turn: ConversationTurn) -> Text:
    """Format one conversation turn for the REPL."""
    if turn.role == "user":
        return Text(f"you → ai: {turn.content}", style="dim")
    style = "red" if turn.metadata.error_flag else "white"
    text = Text(turn.content, style=style)
    if turn.metadata.response_time_ms is not None and not turn.metadata.error_flag:
        text.append(f"  ({turn.metadata.response_time_ms} ms)", style="dim")
    return text
