"""Tests for the fallback heuristic."""

import pytest

from termroute.routing.classifier import IntentClassifier
from termroute.routing.fallback import fallback_classify, heuristic_decision
from termroute.routing.models import RoutingTier, SuggestedAction


class TestFallbackClassify:
    """Tests for fallback_classify."""

    def test_git_status_is_shell(self):
        """Known commands route to the shell without the classifier."""
        decision = fallback_classify("git status")
        assert decision.is_shell_command is True
        assert decision.tier is RoutingTier.FALLBACK
        assert decision.confidence == 0.8
        assert decision.reason.startswith("Fallback:")

    def test_help_request_is_ai(self):
        """Conversational requests route to the AI."""
        decision = fallback_classify("please help me debug this")
        assert decision.is_shell_command is False
        assert decision.confidence == 0.95

    def test_shell_syntax(self):
        """Shell syntax routes to the shell."""
        decision = fallback_classify("FOO=bar ./run.sh")
        assert decision.is_shell_command is True
        assert decision.confidence == 0.75

    def test_blank_input(self):
        """Blank input asks the user."""
        decision = fallback_classify("  ")
        assert decision.suggested_action is SuggestedAction.ASK_USER

    def test_unknown_input_uses_heuristic(self):
        """Unmatched input uses the shared shape heuristic."""
        assert fallback_classify("deploy").tier is RoutingTier.HEURISTIC

    @pytest.mark.parametrize(
        "text",
        [
            "ls", "ls -la", "git status", "docker ps", "man ls", "history of git",
            "how do I use git?", "what is docker?", "review my configuration",
            "./script.sh", "command | grep x", "tar -xzf a.tgz", "help",
            "convert *.png out.pdf --quality 90", "sleep 5 & echo done now", "cat explain.txt",
        ],
    )
    def test_agrees_with_primary_classifier(self, text):
        """Shell-vs-AI outcome matches the primary classifier's rule tiers."""
        primary = IntentClassifier().classify(text)
        assert fallback_classify(text).is_shell_command is primary.is_shell_command


class TestHeuristicDecision:
    """Tests for the input-shape heuristic."""

    def test_short_with_flag(self):
        """A flag boosts short input to 0.7."""
        decision = heuristic_decision("frob -v")
        assert decision.is_shell_command is True
        assert decision.confidence == 0.7

    def test_short_plain(self):
        """Plain short input defaults to shell at 0.6."""
        decision = heuristic_decision("frob it now")
        assert decision.confidence == 0.6

    def test_question_mark_is_not_short(self):
        """A question mark disqualifies the short-input rule."""
        decision = heuristic_decision("frob?")
        assert decision.is_shell_command is False

    def test_many_tokens_is_ai(self):
        """Four or more tokens read as natural language."""
        decision = heuristic_decision("frob the widget please")
        assert decision.is_shell_command is False
        assert decision.confidence == 0.8

    def test_long_characters_is_ai(self):
        """Forty or more characters read as natural language."""
        decision = heuristic_decision("supercalifragilistic expialidocious-ness")
        assert len("supercalifragilistic expialidocious-ness") >= 40
        assert decision.is_shell_command is False
