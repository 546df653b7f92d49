"""Routing decision models for terminal input classification.

These Pydantic models define the structured output of the intent
classifier: whether a line of input should run in the shell or be sent
to the AI assistant, how confident the classifier is, and why.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

# Decisions at or above this confidence are considered unambiguous.
HIGH_CONFIDENCE_THRESHOLD = 0.8


class SuggestedAction(str, Enum):
    """Action the dispatcher should take for a routed input."""

    EXECUTE_SHELL = "execute_shell"
    SEND_TO_AI = "send_to_ai"
    ASK_USER = "ask_user"


class RoutingTier(str, Enum):
    """Classifier tier that produced a decision, in precedence order."""

    EMPTY = "empty"
    AI_TRIGGER = "ai_trigger"
    HIGH_PRIORITY_SHELL = "high_priority_shell"
    VOCABULARY = "vocabulary"
    SHELL_SYNTAX = "shell_syntax"
    CAPABILITY_PROBE = "capability_probe"
    HEURISTIC = "heuristic"
    FALLBACK = "fallback"


class RoutingDecision(BaseModel):
    """Immutable result of classifying one line of terminal input.

    Attributes:
        is_shell_command: True when the input should be written to the shell.
        confidence: Classifier certainty in [0, 1]; used for thresholds only.
        reason: Human-readable justification for the decision.
        suggested_action: Dispatcher action (mirrors is_shell_command unless
            the input was blank, in which case it is ASK_USER).
        normalized_input: Trimmed input as it will be dispatched.
        tier: Classifier tier that matched.
        rule_name: Name of the matching rule, if a rule matched.
    """

    model_config = ConfigDict(frozen=True)

    is_shell_command: bool = Field(
        ...,
        description="Whether the input should be executed as a shell command",
    )
    confidence: float = Field(
        ...,
        ge=0.0,
        le=1.0,
        description="Classifier confidence in [0, 1]",
    )
    reason: str = Field(
        ...,
        min_length=1,
        description="Human-readable justification for the decision",
    )
    suggested_action: SuggestedAction = Field(
        ...,
        description="Action the dispatcher should take",
    )
    normalized_input: Optional[str] = Field(
        default=None,
        description="Trimmed input actually dispatched",
    )
    tier: RoutingTier = Field(
        default=RoutingTier.HEURISTIC,
        description="Classifier tier that produced the decision",
    )
    rule_name: Optional[str] = Field(
        default=None,
        description="Name of the rule that matched, if any",
    )

    @model_validator(mode="after")
    def action_mirrors_route(self) -> "RoutingDecision":
        """Keep suggested_action consistent with is_shell_command."""
        if self.suggested_action is SuggestedAction.ASK_USER:
            if self.is_shell_command or self.confidence != 0.0:
                raise ValueError("ask_user decisions must be non-shell with zero confidence")
            return self
        expected = (
            SuggestedAction.EXECUTE_SHELL
            if self.is_shell_command
            else SuggestedAction.SEND_TO_AI
        )
        if self.suggested_action is not expected:
            raise ValueError(
                f"suggested_action {self.suggested_action.value} does not match "
                f"is_shell_command={self.is_shell_command}"
            )
        return self

    @property
    def is_high_confidence(self) -> bool:
        """True when confidence clears the high-confidence boundary."""
        return self.confidence >= HIGH_CONFIDENCE_THRESHOLD

    @classmethod
    def ask_user(cls, reason: str = "Empty input") -> "RoutingDecision":
        """Decision for blank input: nothing to dispatch."""
        return cls(
            is_shell_command=False,
            confidence=0.0,
            reason=reason,
            suggested_action=SuggestedAction.ASK_USER,
            normalized_input=None,
            tier=RoutingTier.EMPTY,
        )

    @classmethod
    def shell(
        cls,
        text: str,
        confidence: float,
        reason: str,
        tier: RoutingTier,
        rule_name: str | None = None,
    ) -> "RoutingDecision":
        """Decision routing *text* to the shell."""
        return cls(
            is_shell_command=True,
            confidence=_clamp(confidence),
            reason=reason,
            suggested_action=SuggestedAction.EXECUTE_SHELL,
            normalized_input=text,
            tier=tier,
            rule_name=rule_name,
        )

    @classmethod
    def ai(
        cls,
        text: str,
        confidence: float,
        reason: str,
        tier: RoutingTier,
        rule_name: str | None = None,
    ) -> "RoutingDecision":
        """Decision routing *text* to the AI assistant."""
        return cls(
            is_shell_command=False,
            confidence=_clamp(confidence),
            reason=reason,
            suggested_action=SuggestedAction.SEND_TO_AI,
            normalized_input=text,
            tier=tier,
            rule_name=rule_name,
        )


class RoutingAnalysis(BaseModel):
    """Detailed explanation of a routing decision with alternatives.

    Attributes:
        decision: The routing decision being explained.
        alternatives: Suggested rephrasings when confidence is low.
        explanation: Multi-line summary for display.
    """

    model_config = ConfigDict(frozen=True)

    decision: RoutingDecision
    alternatives: list[str] = Field(default_factory=list)
    explanation: str


def _clamp(value: float) -> float:
    # Priority weights are folded in as hundredths; round away float noise.
    return min(1.0, max(0.0, round(value, 4)))
