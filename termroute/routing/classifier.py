"""Intent classifier deciding between shell execution and the AI assistant.

Classification walks fixed tiers in precedence order; the first tier that
matches returns immediately:

1. AI triggers (question words, help phrases, question marks) -> AI, 0.95
2. High-priority shell commands and prefixes -> shell, 0.9 + priority/100
3. Categorized command vocabulary -> shell, 0.8 + priority/100
4. Generic shell syntax -> shell, 0.75
5. Capability probe (async path only) -> shell, 0.85
6. Heuristic: short inputs default to shell (0.6, or 0.7 with flags);
   everything else defaults to AI (0.8)

Blank input short-circuits before tier 1 with an ASK_USER decision.

Example:
    classifier = IntentClassifier(probe=PathCapabilityProbe())
    decision = classifier.classify("git status")
    decision = await classifier.classify_async("mytool --help")
"""

import asyncio
import logging

from termroute.errors.domain import ClassificationServiceError
from termroute.routing.fallback import heuristic_decision
from termroute.routing.models import (
    RoutingAnalysis,
    RoutingDecision,
    RoutingTier,
)
from termroute.routing.probe import CapabilityProbe, is_probeable
from termroute.routing.rules import DEFAULT_RULE_TABLE, RuleTable, first_match

logger = logging.getLogger(__name__)

AI_TRIGGER_CONFIDENCE = 0.95
HIGH_PRIORITY_BASE = 0.9
VOCABULARY_BASE = 0.8
SHELL_SYNTAX_CONFIDENCE = 0.75
PROBE_CONFIDENCE = 0.85


class IntentClassifier:
    """Stateless shell-vs-AI classifier over an immutable rule table.

    Attributes:
        rule_table: Rule groups consulted by tiers 1-4.
        probe: Optional capability probe for tier 5 (async path only).
        probe_timeout: Seconds to wait for the probe before failing.
    """

    def __init__(
        self,
        rule_table: RuleTable = DEFAULT_RULE_TABLE,
        probe: CapabilityProbe | None = None,
        probe_timeout: float = 0.5,
    ) -> None:
        """Initialize the classifier.

        Args:
            rule_table: Rule table to classify against.
            probe: Capability probe; None disables tier 5.
            probe_timeout: Timeout for a single probe call, in seconds.
        """
        self.rule_table = rule_table
        self.probe = probe
        self.probe_timeout = probe_timeout

    def classify(self, text: str) -> RoutingDecision:
        """Classify input synchronously (tiers 1-4 and 6, never suspends).

        Args:
            text: Raw user input.

        Returns:
            RoutingDecision for the input.
        """
        trimmed = text.strip()
        if not trimmed:
            return RoutingDecision.ask_user()

        decision = self._match_rules(trimmed) or heuristic_decision(trimmed)
        _log_decision(decision)
        return decision

    async def classify_async(self, text: str) -> RoutingDecision:
        """Classify input, consulting the capability probe after tier 4.

        Args:
            text: Raw user input.

        Returns:
            RoutingDecision for the input.

        Raises:
            ClassificationServiceError: If the capability probe fails or
                times out.
        """
        trimmed = text.strip()
        if not trimmed:
            return RoutingDecision.ask_user()

        decision = self._match_rules(trimmed)
        if decision is None:
            first_token = trimmed.split()[0]
            if await self._probe(first_token):
                decision = RoutingDecision.shell(
                    trimmed,
                    PROBE_CONFIDENCE,
                    f"Detected executable: {first_token}",
                    RoutingTier.CAPABILITY_PROBE,
                )
            else:
                decision = heuristic_decision(trimmed)

        _log_decision(decision)
        return decision

    def is_shell_command(self, text: str) -> bool:
        """Quick synchronous check: True if *text* routes to the shell."""
        return self.classify(text).is_shell_command

    async def analyze(self, text: str) -> RoutingAnalysis:
        """Explain the routing decision for *text*, with alternatives.

        Alternatives are only suggested when confidence falls below the
        high-confidence boundary.
        """
        decision = await self.classify_async(text)
        label = "Shell Command" if decision.is_shell_command else "AI Query"
        explanation = (
            f'Command: "{text}"\n'
            f"Decision: {label}\n"
            f"Confidence: {decision.confidence * 100:.1f}%\n"
            f"Reason: {decision.reason}\n"
        )

        alternatives: list[str] = []
        subject = decision.normalized_input or text
        if decision.normalized_input and not decision.is_high_confidence:
            if decision.is_shell_command:
                alternatives.append(f'Ask AI: "help me with {subject}"')
                alternatives.append(f'Ask AI: "explain {subject}"')
            else:
                alternatives.append(f"Execute as shell: {subject}")
                alternatives.append(f"Execute with confirmation: {subject}")

        return RoutingAnalysis(
            decision=decision,
            alternatives=alternatives,
            explanation=explanation,
        )

    def _match_rules(self, trimmed: str) -> RoutingDecision | None:
        """Tiers 1-4. Returns None when no rule matches."""
        tokens = trimmed.split()
        first_token = tokens[0].lower()
        has_arguments = len(tokens) > 1
        table = self.rule_table

        rule = first_match(table.ai_triggers, trimmed, first_token, has_arguments)
        if rule is not None:
            return RoutingDecision.ai(
                trimmed,
                AI_TRIGGER_CONFIDENCE,
                f"AI trigger pattern detected: {rule.description}",
                RoutingTier.AI_TRIGGER,
                rule.name,
            )

        rule = first_match(table.high_priority, trimmed, first_token, has_arguments)
        if rule is not None:
            return RoutingDecision.shell(
                trimmed,
                HIGH_PRIORITY_BASE + rule.priority / 100,
                f"High priority shell command detected: {rule.description}",
                RoutingTier.HIGH_PRIORITY_SHELL,
                rule.name,
            )

        rule = first_match(table.vocabulary, trimmed, first_token, has_arguments)
        if rule is not None:
            return RoutingDecision.shell(
                trimmed,
                VOCABULARY_BASE + rule.priority / 100,
                f"Known shell command from {rule.category.value}: {first_token}",
                RoutingTier.VOCABULARY,
                rule.name,
            )

        rule = first_match(table.shell_syntax, trimmed, first_token, has_arguments)
        if rule is not None:
            return RoutingDecision.shell(
                trimmed,
                SHELL_SYNTAX_CONFIDENCE,
                f"Shell pattern detected: {rule.description}",
                RoutingTier.SHELL_SYNTAX,
                rule.name,
            )

        return None

    async def _probe(self, token: str) -> bool:
        if self.probe is None or not is_probeable(token):
            return False
        try:
            return await asyncio.wait_for(
                self.probe.is_executable(token), timeout=self.probe_timeout
            )
        except asyncio.TimeoutError as e:
            raise ClassificationServiceError(
                f"capability probe timed out after {self.probe_timeout}s"
            ) from e
        except Exception as e:
            raise ClassificationServiceError(f"capability probe failed: {e}") from e


def _log_decision(decision: RoutingDecision) -> None:
    logger.debug(
        "Routed to %s via %s (confidence=%.2f): %s",
        "shell" if decision.is_shell_command else "ai",
        decision.tier.value,
        decision.confidence,
        decision.reason,
    )
