"""Fallback heuristic used when the primary classifier is unavailable.

A reduced, synchronous classifier with no probe and no priorities: AI
triggers, then any known command name, then shell syntax, then the
input-shape heuristic. It agrees with the primary classifier's tier 1-4
outcomes (shell vs AI) but reports flatter confidence values.
"""

from functools import lru_cache

from termroute.routing.models import RoutingDecision, RoutingTier
from termroute.routing.rules import DEFAULT_RULE_TABLE, RuleTable, first_match

SHORT_INPUT_MAX_TOKENS = 3
SHORT_INPUT_MAX_CHARS = 40

SHORT_WITH_FLAGS_CONFIDENCE = 0.7
SHORT_INPUT_CONFIDENCE = 0.6
NATURAL_LANGUAGE_CONFIDENCE = 0.8

FALLBACK_AI_CONFIDENCE = 0.95
FALLBACK_COMMAND_CONFIDENCE = 0.8
FALLBACK_SYNTAX_CONFIDENCE = 0.75


def heuristic_decision(trimmed: str) -> RoutingDecision:
    """Input-shape heuristic shared with the primary classifier.

    Short inputs (few tokens, no question mark) look like commands;
    anything longer reads as natural language.
    """
    words = trimmed.split()
    is_short = (
        len(words) <= SHORT_INPUT_MAX_TOKENS
        and len(trimmed) < SHORT_INPUT_MAX_CHARS
        and "?" not in trimmed
    )
    if is_short:
        if any(word.startswith("-") for word in words):
            return RoutingDecision.shell(
                trimmed,
                SHORT_WITH_FLAGS_CONFIDENCE,
                "Short input with command flags detected",
                RoutingTier.HEURISTIC,
            )
        return RoutingDecision.shell(
            trimmed,
            SHORT_INPUT_CONFIDENCE,
            "Short command-like input",
            RoutingTier.HEURISTIC,
        )
    return RoutingDecision.ai(
        trimmed,
        NATURAL_LANGUAGE_CONFIDENCE,
        "Natural language query detected",
        RoutingTier.HEURISTIC,
    )


@lru_cache(maxsize=8)
def _known_commands(table: RuleTable) -> frozenset[str]:
    return table.known_commands()


def fallback_classify(text: str, rule_table: RuleTable = DEFAULT_RULE_TABLE) -> RoutingDecision:
    """Classify *text* without the primary classifier or its probe.

    Args:
        text: Raw user input.
        rule_table: Rule table supplying trigger, command and syntax data.

    Returns:
        RoutingDecision; tier is FALLBACK unless the shape heuristic decided.
    """
    trimmed = text.strip()
    if not trimmed:
        return RoutingDecision.ask_user()

    tokens = trimmed.split()
    first_token = tokens[0].lower()
    has_arguments = len(tokens) > 1

    rule = first_match(rule_table.ai_triggers, trimmed, first_token, has_arguments)
    if rule is not None:
        return RoutingDecision.ai(
            trimmed,
            FALLBACK_AI_CONFIDENCE,
            f"Fallback: AI trigger detected ({rule.description})",
            RoutingTier.FALLBACK,
            rule.name,
        )

    if first_token in _known_commands(rule_table):
        return RoutingDecision.shell(
            trimmed,
            FALLBACK_COMMAND_CONFIDENCE,
            f"Fallback: known shell command {first_token}",
            RoutingTier.FALLBACK,
        )

    rule = first_match(rule_table.shell_syntax, trimmed, first_token, has_arguments)
    if rule is not None:
        return RoutingDecision.shell(
            trimmed,
            FALLBACK_SYNTAX_CONFIDENCE,
            f"Fallback: shell pattern detected ({rule.description})",
            RoutingTier.FALLBACK,
            rule.name,
        )

    return heuristic_decision(trimmed)
