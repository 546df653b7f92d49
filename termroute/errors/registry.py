"""Error code registry with E-XXXX format codes.

This module defines the error code system for TermRoute, organizing errors
into categories:
- E-1xxx: Classification errors
- E-2xxx: Shell channel errors
- E-3xxx: AI backend errors
- E-4xxx: Session/system errors

Each error includes a code, title, message template, and remediation steps.
No routing error is retried automatically; retries are always the user
resubmitting input.
"""

from dataclasses import dataclass
from enum import Enum


class ErrorCategory(str, Enum):
    """Categories for error codes."""

    CLASSIFICATION = "classification"  # E-1xxx
    SHELL = "shell"  # E-2xxx
    INFERENCE = "inference"  # E-3xxx
    SYSTEM = "system"  # E-4xxx


@dataclass
class ErrorCode:
    """Definition of an error code with metadata.

    Attributes:
        code: Error code in E-XXXX format.
        category: Error category for grouping.
        title: Short title for display.
        message_template: Message with {placeholders} for context.
        remediation: Action user should take to resolve.
        is_retryable: Whether the operation can be retried without user action.
    """

    code: str
    category: ErrorCategory
    title: str
    message_template: str
    remediation: str
    is_retryable: bool = False


ERROR_REGISTRY: dict[str, ErrorCode] = {
    # Classification errors (E-1xxx)
    "E-1001": ErrorCode(
        code="E-1001",
        category=ErrorCategory.CLASSIFICATION,
        title="Classifier Unavailable",
        message_template="Intent classification failed ({detail}); fallback heuristic used.",
        remediation="No action needed. Prefix natural-language requests with a question word if routing looks wrong.",
    ),
    # Shell errors (E-2xxx)
    "E-2001": ErrorCode(
        code="E-2001",
        category=ErrorCategory.SHELL,
        title="No Shell Available",
        message_template="Cannot run '{command}': no shell is attached to this session yet.",
        remediation="Wait for the terminal to finish starting, then resubmit the command.",
    ),
    "E-2002": ErrorCode(
        code="E-2002",
        category=ErrorCategory.SHELL,
        title="Shell Write Failed",
        message_template="Writing '{command}' to the shell failed: {detail}",
        remediation="Check that the shell process is still running, then resubmit the command.",
    ),
    # AI backend errors (E-3xxx)
    "E-3001": ErrorCode(
        code="E-3001",
        category=ErrorCategory.INFERENCE,
        title="AI Request Failed",
        message_template="The AI assistant could not answer: {detail}",
        remediation="Check the AI backend configuration and resubmit your question.",
    ),
    "E-3002": ErrorCode(
        code="E-3002",
        category=ErrorCategory.INFERENCE,
        title="AI Request Timed Out",
        message_template="The AI assistant did not answer within {timeout}s.",
        remediation="Resubmit your question, or raise dispatch.ai_timeout_seconds.",
    ),
    # Session/system errors (E-4xxx)
    "E-4000": ErrorCode(
        code="E-4000",
        category=ErrorCategory.SYSTEM,
        title="Routing Error",
        message_template="Unexpected routing error: {detail}",
        remediation="Resubmit the input.",
    ),
    "E-4001": ErrorCode(
        code="E-4001",
        category=ErrorCategory.SYSTEM,
        title="Session Closed",
        message_template="Session '{session_id}' was closed; pending input discarded.",
        remediation="Open a new terminal tab.",
    ),
}


def get_error(code: str) -> ErrorCode | None:
    """Look up error code definition.

    Args:
        code: Error code in E-XXXX format.

    Returns:
        ErrorCode if found, None otherwise.
    """
    return ERROR_REGISTRY.get(code)

