"""Intent routing for TermRoute.

Classifies each line of terminal input as a shell command or a request
for the AI assistant.

Main Entry Points:
    IntentClassifier: Tiered classifier with sync and async paths.
    fallback_classify: Reduced classifier used when the primary path fails.

Supporting Models:
    RoutingDecision: Immutable classification result.
    RoutingAnalysis: Decision plus explanation and alternatives.
    RuleTable / PatternRule: Declarative rule data.
"""

from termroute.routing.classifier import IntentClassifier
from termroute.routing.fallback import fallback_classify
from termroute.routing.models import (
    HIGH_CONFIDENCE_THRESHOLD,
    RoutingAnalysis,
    RoutingDecision,
    RoutingTier,
    SuggestedAction,
)
from termroute.routing.probe import CapabilityProbe, PathCapabilityProbe
from termroute.routing.rules import (
    DEFAULT_RULE_TABLE,
    PatternRule,
    RuleCategory,
    RuleTable,
)

__all__ = [
    "IntentClassifier",
    "fallback_classify",
    "HIGH_CONFIDENCE_THRESHOLD",
    "RoutingAnalysis",
    "RoutingDecision",
    "RoutingTier",
    "SuggestedAction",
    "CapabilityProbe",
    "PathCapabilityProbe",
    "DEFAULT_RULE_TABLE",
    "PatternRule",
    "RuleCategory",
    "RuleTable",
]
