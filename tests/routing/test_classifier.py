"""Tests for IntentClassifier.

Covers tier precedence, confidence values per tier, blank input, the
capability probe path and routing analysis.
"""

import asyncio
from unittest.mock import AsyncMock

import pytest

from termroute.errors.domain import ClassificationServiceError
from termroute.routing.classifier import IntentClassifier
from termroute.routing.models import RoutingDecision, RoutingTier, SuggestedAction

SHELL_COMMANDS = [
    # File operations
    "ls", "ls -la", "ll", "pwd", "cd ~", "cd /home/user", "mkdir test",
    "rmdir test", "rm file.txt", "cp file1 file2", "mv old new",
    # Text processing
    "cat file.txt", "grep pattern file.txt", "head -10 file.txt",
    "tail -f log.txt", "awk '{print $1}' file.txt", "sed 's/old/new/g' file.txt",
    # System
    "ps aux", "top", "htop", "kill 1234", "sudo systemctl restart nginx",
    "whoami", "date", "uptime",
    # Network
    "ping google.com", "curl https://api.example.com",
    "wget https://example.com/file.zip", "ssh user@server",
    # Packages
    "apt update", "yum install package", "npm install react",
    "pip install requests", "cargo build",
    # Dev tools
    "git status", 'git commit -m "message"', "docker ps",
    "docker run -it ubuntu", "kubectl get pods",
    # Syntax
    "./script.sh", "/usr/bin/command", "~/bin/mycommand",
    "command | grep pattern", "command && other", "command || fallback",
    "command > output.txt", "command >> output.txt", "command < input.txt",
    "export VAR=value", "VAR=value command",
    # Flags
    "ls -la --color=auto", "ps aux --sort=-%cpu", 'find . -name "*.js" -type f',
]

AI_QUERIES = [
    # Question words
    "what is docker?", "how do I use git?", "why is my server slow?",
    "when should I use kubernetes?", "where can I find documentation?",
    "who created Linux?",
    # Conversational
    "help me understand containers", "explain how git works",
    "show me how to deploy", "tell me about REST APIs",
    "can you help with debugging?", "could you explain the error?",
    "would you recommend a solution?",
    # Capitalized questions
    "How do I fix this error?", "What does this command do?",
    "Is there a better way?", "Can I automate this process?",
    # Requests
    "generate a Dockerfile", "create a bash script", "write a python function",
    "suggest improvements for this code", "analyze this log file",
    "review my configuration", "debug this issue", "optimize my workflow",
    # First person
    "i want to learn docker", "i need help with kubernetes",
    "i would like to optimize my code", "please help me understand",
    "can you help me fix this?", "how can i improve performance?",
    # Long prose
    "I'm having trouble connecting to my database and getting timeout errors",
    "My React application is running slowly and I think it might be a memory leak",
    "The CI/CD pipeline keeps failing at the deployment step with exit code 1",
    "I need to set up monitoring for my microservices architecture",
]

EDGE_CASES = [
    ("test", True),
    ("run", True),
    ("help", False),
    ("build", True),
    ("Git Status", True),
    ("HOW TO USE GIT", False),
    ("history", True),
    ("history of git", False),
    ("man ls", True),
    ("man please help", False),
    ('echo "hello world"', True),
    ('what does "hello world" mean?', False),
    ("/bin/bash", True),
    ("./configure --prefix=/usr", True),
    ("cd ~/Documents/project", True),
]


class TestShellDetection:
    """Inputs that must route to the shell."""

    @pytest.mark.parametrize("command", SHELL_COMMANDS)
    def test_detects_shell_command(self, classifier, command):
        """Known commands and shell syntax route to the shell."""
        decision = classifier.classify(command)
        assert decision.is_shell_command is True
        assert decision.suggested_action is SuggestedAction.EXECUTE_SHELL

    @pytest.mark.parametrize("command", ["ls -la", "git status", "docker ps", "npm install"])
    def test_obvious_commands_high_confidence(self, classifier, command):
        """Unambiguous commands clear the high-confidence boundary."""
        decision = classifier.classify(command)
        assert decision.is_shell_command is True
        assert decision.confidence > 0.8

    @pytest.mark.parametrize(
        "command",
        [
            'find /very/long/path -name "*.js" -type f -exec grep -l "pattern" {} \\; | head -20',
            'grep -E "^[0-9]+$" file.txt',
            "awk '/pattern/ {print $1}'",
            "sed 's/[[:space:]]\\+/ /g'",
            'find . -regex ".*\\.(js|ts)$"',
        ],
    )
    def test_special_characters(self, classifier, command):
        """Regex metacharacters in arguments do not confuse routing."""
        assert classifier.is_shell_command(command) is True


class TestAIDetection:
    """Inputs that must route to the AI assistant."""

    @pytest.mark.parametrize("query", AI_QUERIES)
    def test_detects_ai_query(self, classifier, query):
        """Natural language routes to the AI."""
        decision = classifier.classify(query)
        assert decision.is_shell_command is False
        assert decision.suggested_action is SuggestedAction.SEND_TO_AI
        assert decision.confidence >= 0.8

    @pytest.mark.parametrize(
        "query",
        ["what is docker?", "how do I use git?", "explain kubernetes to me", "help me debug this error"],
    )
    def test_obvious_queries_high_confidence(self, classifier, query):
        """Clear questions get the AI trigger confidence."""
        decision = classifier.classify(query)
        assert decision.confidence == 0.95
        assert decision.tier is RoutingTier.AI_TRIGGER

    def test_ai_trigger_beats_known_command(self, classifier):
        """Question framing wins even when a command name is present."""
        decision = classifier.classify("how do I use git?")
        assert decision.is_shell_command is False
        decision = classifier.classify("git status?")
        assert decision.is_shell_command is False

    def test_long_prose_is_ai(self, classifier):
        """Long prose with no triggers falls through to the AI heuristic."""
        text = (
            "I have a very complex issue with my distributed system where multiple "
            "microservices are failing to communicate properly"
        )
        decision = classifier.classify(text)
        assert decision.is_shell_command is False
        assert decision.tier is RoutingTier.HEURISTIC
        assert decision.confidence == 0.8


class TestEdgeCases:
    """Ambiguous inputs resolved by tier precedence."""

    @pytest.mark.parametrize("text,expected", EDGE_CASES)
    def test_edge_case(self, classifier, text, expected):
        """is_shell_command resolves each edge case."""
        assert classifier.is_shell_command(text) is expected

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text,expected", EDGE_CASES)
    async def test_edge_case_async(self, classifier, text, expected):
        """The async path matches the sync path when no probe is set."""
        decision = await classifier.classify_async(text)
        assert decision.is_shell_command is expected

    @pytest.mark.parametrize("text", ["", "   ", "\t\n"])
    def test_blank_input_asks_user(self, classifier, text):
        """Blank input short-circuits with ASK_USER and zero confidence."""
        decision = classifier.classify(text)
        assert decision.suggested_action is SuggestedAction.ASK_USER
        assert decision.confidence == 0.0
        assert decision.is_shell_command is False
        assert classifier.is_shell_command(text) is False

    def test_normalized_input_keeps_case(self, classifier):
        """Case is folded only for lookup."""
        decision = classifier.classify("  Git Status  ")
        assert decision.normalized_input == "Git Status"

    def test_idempotent(self, classifier):
        """Repeated sync calls return identical decisions."""
        for text in ["ls -la", "what is docker?", "test", "FOO=1 make"]:
            assert classifier.classify(text) == classifier.classify(text)


class TestConfidenceTiers:
    """Confidence values per tier."""

    def test_high_priority_adds_priority(self, classifier):
        """High-priority rules score 0.9 plus priority hundredths."""
        decision = classifier.classify("pwd")
        assert decision.tier is RoutingTier.HIGH_PRIORITY_SHELL
        assert decision.confidence == 1.0
        assert classifier.classify("git status").confidence == 0.99

    def test_vocabulary_adds_category_priority(self, classifier):
        """Vocabulary hits score 0.8 plus the category priority."""
        decision = classifier.classify("tar -xzf archive.tar.gz")
        assert decision.tier is RoutingTier.VOCABULARY
        assert decision.confidence == 0.86
        assert decision.reason == "Known shell command from archive_ops: tar"

    def test_shell_syntax(self, classifier):
        """Structural cues score 0.75."""
        decision = classifier.classify("./build.sh --release")
        assert decision.tier is RoutingTier.SHELL_SYNTAX
        assert decision.confidence == 0.75
        assert decision.rule_name == "executable_path"

    @pytest.mark.parametrize(
        "text,rule_name",
        [
            ("convert *.png out.pdf --quality 90", "glob"),
            ("rename photo[0-9].jpg archive", "glob"),
            ("sleep 5 & echo done now", "pipe_or_chain"),
        ],
    )
    def test_glob_and_background_syntax(self, classifier, text, rule_name):
        """Globs and a lone background '&' are shell syntax."""
        decision = classifier.classify(text)
        assert decision.is_shell_command is True
        assert decision.tier is RoutingTier.SHELL_SYNTAX
        assert decision.confidence == 0.75
        assert decision.rule_name == rule_name

    def test_conversational_word_inside_filename(self, classifier):
        """A conversational word that is part of a filename is not a request."""
        decision = classifier.classify("cat explain.txt")
        assert decision.is_shell_command is True
        assert decision.tier is not RoutingTier.AI_TRIGGER
        assert classifier.classify("mytool show me.log").tier is not RoutingTier.AI_TRIGGER
        assert classifier.classify("explain how git works").tier is RoutingTier.AI_TRIGGER

    @pytest.mark.parametrize("text,confidence", [("start", 0.6), ("mytool --fast", 0.7)])
    def test_short_input_heuristic(self, classifier, text, confidence):
        """Short unknown inputs default to the shell at reduced confidence."""
        decision = classifier.classify(text)
        assert decision.is_shell_command is True
        assert decision.tier is RoutingTier.HEURISTIC
        assert decision.confidence == confidence


class TestCapabilityProbe:
    """Tests for the async probe tier."""

    @pytest.mark.asyncio
    async def test_probe_hit_routes_to_shell(self):
        """An executable found by the probe routes to the shell at 0.85."""
        probe = AsyncMock()
        probe.is_executable.return_value = True
        classifier = IntentClassifier(probe=probe)

        decision = await classifier.classify_async("mytool do the thing now")
        assert decision.is_shell_command is True
        assert decision.tier is RoutingTier.CAPABILITY_PROBE
        assert decision.confidence == 0.85
        probe.is_executable.assert_awaited_once_with("mytool")

    @pytest.mark.asyncio
    async def test_probe_miss_uses_heuristic(self):
        """A probe miss falls through to the heuristic tier."""
        probe = AsyncMock()
        probe.is_executable.return_value = False
        classifier = IntentClassifier(probe=probe)

        decision = await classifier.classify_async("mytool do the thing now")
        assert decision.tier is RoutingTier.HEURISTIC
        assert decision.is_shell_command is False

    @pytest.mark.asyncio
    async def test_probe_skipped_when_rules_match(self):
        """Earlier tiers return before the probe is consulted."""
        probe = AsyncMock()
        classifier = IntentClassifier(probe=probe)

        await classifier.classify_async("git status")
        probe.is_executable.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_probe_skipped_for_unsafe_token(self):
        """Tokens with quotes are never sent to the probe."""
        probe = AsyncMock()
        classifier = IntentClassifier(probe=probe)

        await classifier.classify_async("it's fine")
        probe.is_executable.assert_not_awaited()

    def test_sync_path_never_probes(self):
        """classify() ignores the probe entirely."""
        probe = AsyncMock()
        classifier = IntentClassifier(probe=probe)

        classifier.classify("mytool do the thing now")
        probe.is_executable.assert_not_called()

    @pytest.mark.asyncio
    async def test_probe_failure_raises(self):
        """Probe errors surface as ClassificationServiceError."""
        probe = AsyncMock()
        probe.is_executable.side_effect = OSError("PATH unreadable")
        classifier = IntentClassifier(probe=probe)

        with pytest.raises(ClassificationServiceError, match="PATH unreadable"):
            await classifier.classify_async("mytool run")

    @pytest.mark.asyncio
    async def test_probe_timeout_raises(self):
        """A probe slower than probe_timeout raises ClassificationServiceError."""

        async def slow(token):
            await asyncio.sleep(1)
            return True

        probe = AsyncMock()
        probe.is_executable.side_effect = slow
        classifier = IntentClassifier(probe=probe, probe_timeout=0.01)

        with pytest.raises(ClassificationServiceError, match="timed out"):
            await classifier.classify_async("mytool run")


class TestAnalyze:
    """Tests for routing analysis."""

    @pytest.mark.asyncio
    async def test_low_confidence_shell_alternatives(self, classifier):
        """Uncertain shell decisions suggest asking the AI instead."""
        analysis = await classifier.analyze("test")
        assert analysis.decision.is_shell_command is True
        assert analysis.alternatives == [
            'Ask AI: "help me with test"',
            'Ask AI: "explain test"',
        ]
        assert 'Command: "test"' in analysis.explanation
        assert "Decision: Shell Command" in analysis.explanation
        assert "Confidence: 60.0%" in analysis.explanation

    @pytest.mark.asyncio
    async def test_confident_decision_has_no_alternatives(self, classifier):
        """High-confidence decisions carry no alternatives."""
        analysis = await classifier.analyze("what is docker?")
        assert analysis.alternatives == []
        assert "Decision: AI Query" in analysis.explanation
        assert "Reason: AI trigger pattern detected" in analysis.explanation

    @pytest.mark.asyncio
    async def test_boundary_confidence_has_no_alternatives(self, classifier):
        """Exactly 0.8 is confident enough to skip alternatives."""
        analysis = await classifier.analyze("the quick brown fox jumps over")
        assert analysis.decision.confidence == 0.8
        assert analysis.alternatives == []

    @pytest.mark.asyncio
    async def test_low_confidence_ai_alternatives(self, classifier, monkeypatch):
        """Uncertain AI decisions suggest running the text as a command."""
        decision = RoutingDecision.ai("deploy staging", 0.55, "custom", RoutingTier.HEURISTIC)
        monkeypatch.setattr(classifier, "classify_async", AsyncMock(return_value=decision))

        analysis = await classifier.analyze("deploy staging")
        assert analysis.alternatives == [
            "Execute as shell: deploy staging",
            "Execute with confirmation: deploy staging",
        ]
        assert "Confidence: 55.0%" in analysis.explanation

    @pytest.mark.asyncio
    async def test_blank_input_analysis(self, classifier):
        """Blank input yields no alternatives."""
        analysis = await classifier.analyze("  ")
        assert analysis.decision.suggested_action is SuggestedAction.ASK_USER
        assert analysis.alternatives == []
