"""Rule table for shell-vs-AI intent classification.

The table is declarative data: ordered groups of PatternRule entries, one
group per classifier tier. Tier precedence is fixed by the classifier and
never by rule priority; priority is only folded into confidence as a
tie-break weight.

Groups:
    ai_triggers:    natural-language framing (question words, help phrases,
                    question marks). Always wins over shell vocabulary.
    high_priority:  unambiguous command names and prefixes (listing,
                    navigation, process inspection, dev tools, sudo).
    vocabulary:     categorized command names looked up by first token, in
                    fixed category order.
    shell_syntax:   structural shell cues (paths, assignments, redirection,
                    pipes and chaining, substitution, globs).

The default table is built once at import and is immutable afterwards.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterable


class RuleCategory(str, Enum):
    """Category of a pattern rule."""

    AI_TRIGGER = "ai_trigger"
    HIGH_PRIORITY_SHELL = "high_priority_shell"
    SYSTEM_OPS = "system_ops"
    DEV_TOOLS = "dev_tools"
    FILE_OPS = "file_ops"
    PACKAGE_OPS = "package_ops"
    TEXT_OPS = "text_ops"
    NETWORK_OPS = "network_ops"
    ENV_OPS = "env_ops"
    ARCHIVE_OPS = "archive_ops"
    GENERIC_SYNTAX = "generic_syntax"


@dataclass(frozen=True)
class PatternRule:
    """One entry in the rule table.

    A rule matches on an exact first-token set, a structural regex, or
    both (all given conditions must hold).

    Attributes:
        name: Stable identifier, reported in routing decisions.
        category: Rule category.
        priority: Tie-break weight folded into confidence as hundredths.
        description: Human-readable description used in decision reasons.
        tokens: Lower-cased first tokens that match this rule.
        pattern: Compiled regex searched against the trimmed input.
        arguments: True if the first token must be followed by arguments,
            False if it must stand alone, None if either is accepted.
    """

    name: str
    category: RuleCategory
    priority: int
    description: str
    tokens: frozenset[str] = frozenset()
    pattern: re.Pattern[str] | None = None
    arguments: bool | None = None

    def matches(self, text: str, first_token: str, has_arguments: bool) -> bool:
        """Check whether this rule matches the given input.

        Args:
            text: Trimmed input, original case.
            first_token: Lower-cased first whitespace-delimited token.
            has_arguments: Whether any token follows the first one.

        Returns:
            True if every condition of the rule holds.
        """
        if not self.tokens and self.pattern is None:
            return False
        if self.arguments is not None and self.arguments != has_arguments:
            return False
        if self.tokens and first_token not in self.tokens:
            return False
        if self.pattern is not None and not self.pattern.search(text):
            return False
        return True


@dataclass(frozen=True)
class RuleTable:
    """Immutable, ordered collection of rule groups."""

    ai_triggers: tuple[PatternRule, ...]
    high_priority: tuple[PatternRule, ...]
    vocabulary: tuple[PatternRule, ...]
    shell_syntax: tuple[PatternRule, ...]

    def known_commands(self) -> frozenset[str]:
        """All command names known to the high-priority and vocabulary groups."""
        names: set[str] = set()
        for rule in (*self.high_priority, *self.vocabulary):
            names.update(rule.tokens)
        return frozenset(names)


def first_match(
    rules: Iterable[PatternRule],
    text: str,
    first_token: str,
    has_arguments: bool,
) -> PatternRule | None:
    """Return the first rule in iteration order that matches, or None."""
    for rule in rules:
        if rule.matches(text, first_token, has_arguments):
            return rule
    return None


def _regex(pattern: str, ignore_case: bool = True) -> re.Pattern[str]:
    return re.compile(pattern, re.IGNORECASE if ignore_case else 0)


# =============================================================================
# AI triggers
# =============================================================================

_QUESTION_WORDS = (
    "what|how|why|when|where|who|can|should|would|could|will|is|are|"
    "do|does|did|explain|help|show|tell|describe|please"
)

AI_TRIGGER_RULES: tuple[PatternRule, ...] = (
    PatternRule(
        name="question_word",
        category=RuleCategory.AI_TRIGGER,
        priority=10,
        description="Question or request word at start of input",
        pattern=_regex(rf"^(?:{_QUESTION_WORDS})\s+"),
    ),
    PatternRule(
        name="bare_request_word",
        category=RuleCategory.AI_TRIGGER,
        priority=10,
        description="Standalone request for help",
        pattern=_regex(r"^(?:help|explain|describe|please)$"),
    ),
    PatternRule(
        name="conversational_phrase",
        category=RuleCategory.AI_TRIGGER,
        priority=10,
        description="Conversational phrase",
        pattern=_regex(
            r"\b(?:help me|explain|show me|tell me|what is|how do|why does|"
            r"can you|could you|would you|help with|assist with|please help)(?=[\s,!]|$)"
        ),
    ),
    PatternRule(
        name="question_mark",
        category=RuleCategory.AI_TRIGGER,
        priority=10,
        description="Question mark",
        pattern=_regex(r"\?", ignore_case=False),
    ),
    PatternRule(
        name="request_verb",
        category=RuleCategory.AI_TRIGGER,
        priority=9,
        description="Request to generate or review something",
        pattern=_regex(
            r"^(?:generate|create|write|suggest|recommend|analyze|review|check|"
            r"debug|fix|optimize|improve)\s+(?:code|script|function|a|an|the|"
            r"my|this|some)\b"
        ),
    ),
    PatternRule(
        name="first_person_request",
        category=RuleCategory.AI_TRIGGER,
        priority=9,
        description="First-person request",
        pattern=_regex(
            r"^(?:i want to|i need to|i would like|please help|can you help|how can i)\b"
        ),
    ),
    PatternRule(
        name="prose_framing",
        category=RuleCategory.AI_TRIGGER,
        priority=8,
        description="Prose phrase about a topic",
        pattern=_regex(r"^[a-z]+\s+(?:of|about)\s+[a-z]+(?:\s+[a-z]+)*$"),
    ),
)


# =============================================================================
# High-priority shell commands
# =============================================================================

HIGH_PRIORITY_RULES: tuple[PatternRule, ...] = (
    PatternRule(
        name="directory_listing",
        category=RuleCategory.HIGH_PRIORITY_SHELL,
        priority=10,
        description="Directory listing commands",
        tokens=frozenset({"ls", "ll", "la", "dir"}),
        arguments=False,
    ),
    PatternRule(
        name="directory_navigation",
        category=RuleCategory.HIGH_PRIORITY_SHELL,
        priority=10,
        description="Directory navigation commands",
        tokens=frozenset({"pwd", "cd"}),
    ),
    PatternRule(
        name="process_management",
        category=RuleCategory.HIGH_PRIORITY_SHELL,
        priority=10,
        description="Process management commands",
        tokens=frozenset({"ps", "top", "htop", "kill", "killall"}),
    ),
    PatternRule(
        name="dev_tool_prefix",
        category=RuleCategory.HIGH_PRIORITY_SHELL,
        priority=9,
        description="Development tool commands",
        tokens=frozenset({"git", "docker", "kubectl", "npm", "yarn", "cargo", "pip"}),
        arguments=True,
    ),
    PatternRule(
        name="sudo_prefix",
        category=RuleCategory.HIGH_PRIORITY_SHELL,
        priority=9,
        description="Privileged command",
        tokens=frozenset({"sudo"}),
        arguments=True,
    ),
)


# =============================================================================
# Categorized vocabulary (lookup order is fixed)
# =============================================================================

SYSTEM_OPS = frozenset({
    "ps", "top", "htop", "kill", "killall", "jobs", "nohup", "screen", "tmux",
    "who", "w", "users", "id", "groups", "sudo", "su", "whoami", "date", "uptime",
    "uname", "hostname", "dmesg", "lscpu", "lsmem", "lsblk", "lsusb", "lspci",
    "systemctl", "service", "journalctl", "systemd-analyze",
})

DEV_TOOLS = frozenset({
    "git", "docker", "docker-compose", "kubectl", "helm", "terraform",
    "make", "cmake", "gcc", "g++", "clang", "rustc", "node", "python", "python3",
    "java", "javac", "mvn", "gradle", "vim", "nano", "emacs", "code", "nvim",
})

FILE_OPS = frozenset({
    "ls", "ll", "la", "dir", "pwd", "cd", "mkdir", "rmdir", "rm", "cp", "mv",
    "ln", "find", "locate", "touch", "chmod", "chown", "chgrp", "file",
    "stat", "du", "df", "tree", "rsync",
})

PACKAGE_OPS = frozenset({
    "apt", "yum", "dnf", "pacman", "yay", "paru", "brew", "pip", "pip3",
    "npm", "yarn", "pnpm", "cargo", "go", "gem", "composer", "conda",
    "snap", "flatpak",
})

TEXT_OPS = frozenset({
    "cat", "less", "more", "head", "tail", "grep", "awk", "sed", "sort",
    "uniq", "cut", "tr", "wc", "diff", "comm", "join", "paste", "split",
    "echo", "printf", "tee", "xargs",
})

NETWORK_OPS = frozenset({
    "ping", "curl", "wget", "ssh", "scp", "rsync", "netstat", "ss", "nmap",
    "iptables", "route", "ip", "ifconfig", "tcpdump", "nc", "ncat",
})

ENV_OPS = frozenset({
    "env", "export", "set", "unset", "alias", "unalias", "which", "type",
    "whereis", "history", "clear", "reset", "source", "exec", "eval", "man",
})

ARCHIVE_OPS = frozenset({
    "tar", "zip", "unzip", "gzip", "gunzip", "bzip2", "bunzip2", "7z",
})

VOCABULARY_RULES: tuple[PatternRule, ...] = (
    PatternRule("system_ops", RuleCategory.SYSTEM_OPS, 9, "system operations", tokens=SYSTEM_OPS),
    PatternRule("dev_tools", RuleCategory.DEV_TOOLS, 9, "development tools", tokens=DEV_TOOLS),
    PatternRule("file_ops", RuleCategory.FILE_OPS, 8, "file operations", tokens=FILE_OPS),
    PatternRule("package_ops", RuleCategory.PACKAGE_OPS, 8, "package management", tokens=PACKAGE_OPS),
    PatternRule("text_ops", RuleCategory.TEXT_OPS, 7, "text processing", tokens=TEXT_OPS),
    PatternRule("network_ops", RuleCategory.NETWORK_OPS, 7, "network operations", tokens=NETWORK_OPS),
    PatternRule("env_ops", RuleCategory.ENV_OPS, 7, "environment and shell", tokens=ENV_OPS),
    PatternRule("archive_ops", RuleCategory.ARCHIVE_OPS, 6, "archive operations", tokens=ARCHIVE_OPS),
)


# =============================================================================
# Generic shell syntax
# =============================================================================

SHELL_SYNTAX_RULES: tuple[PatternRule, ...] = (
    PatternRule(
        name="executable_path",
        category=RuleCategory.GENERIC_SYNTAX,
        priority=0,
        description="Leading path to an executable",
        pattern=_regex(r"^(?:\./|/|~/)", ignore_case=False),
    ),
    PatternRule(
        name="env_assignment",
        category=RuleCategory.GENERIC_SYNTAX,
        priority=0,
        description="Environment variable assignment",
        pattern=_regex(r"^[A-Z_][A-Z0-9_]*=", ignore_case=False),
    ),
    PatternRule(
        name="redirection",
        category=RuleCategory.GENERIC_SYNTAX,
        priority=0,
        description="Input/output redirection",
        pattern=_regex(r"[<>]", ignore_case=False),
    ),
    PatternRule(
        name="pipe_or_chain",
        category=RuleCategory.GENERIC_SYNTAX,
        priority=0,
        description="Pipe or command chaining",
        pattern=_regex(r"\||&|;", ignore_case=False),
    ),
    PatternRule(
        name="substitution",
        category=RuleCategory.GENERIC_SYNTAX,
        priority=0,
        description="Command substitution or variable expansion",
        pattern=_regex(r"\$\(|\$\{|`|\$[A-Za-z_]", ignore_case=False),
    ),
    PatternRule(
        name="glob",
        category=RuleCategory.GENERIC_SYNTAX,
        priority=0,
        description="Filename glob",
        pattern=_regex(r"[*\[\]]", ignore_case=False),
    ),
)


DEFAULT_RULE_TABLE = RuleTable(
    ai_triggers=AI_TRIGGER_RULES,
    high_priority=HIGH_PRIORITY_RULES,
    vocabulary=VOCABULARY_RULES,
    shell_syntax=SHELL_SYNTAX_RULES,
)
