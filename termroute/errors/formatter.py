"""Error records and formatting utilities.

This module provides:
- ErrorRecord, the immutable entry appended to a session's pending errors
- Error formatting for user display
- Error grouping to combine repeated failures of the same kind
"""

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone

from termroute.errors.domain import RoutingEngineError
from termroute.errors.registry import get_error


@dataclass(frozen=True)
class ErrorRecord:
    """A routing failure recorded against a session.

    Attributes:
        code: Error code in E-XXXX format.
        title: Short title from the registry.
        message: Human-readable error message.
        remediation: Action user should take to resolve.
        input_text: The (redacted) input being dispatched, if any.
        is_retryable: Whether the operation can be retried without user action.
        timestamp: When the failure was recorded (UTC).
    """

    code: str
    title: str
    message: str
    remediation: str
    input_text: str | None = None
    is_retryable: bool = False
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __str__(self) -> str:
        """Return string representation of the error."""
        return f"{self.code}: {self.message}"

    @classmethod
    def from_code(
        cls, code: str, input_text: str | None = None, **context: object
    ) -> "ErrorRecord":
        """Create a record from a registry code with context substitution.

        Args:
            code: Error code in E-XXXX format.
            input_text: Input being dispatched when the failure occurred.
            **context: Values for message template placeholders.

        Returns:
            ErrorRecord with formatted message.
        """
        error_def = get_error(code)
        if not error_def:
            return cls(
                code=code,
                title="Unknown Error",
                message=f"Unknown error: {code}",
                remediation="Resubmit the input.",
                input_text=input_text,
            )

        message = error_def.message_template
        try:
            message = message.format(**context)
        except KeyError:
            # Keep template if some placeholders are missing
            pass

        return cls(
            code=error_def.code,
            title=error_def.title,
            message=message,
            remediation=error_def.remediation,
            input_text=input_text,
            is_retryable=error_def.is_retryable,
        )

    @classmethod
    def from_exception(
        cls, error: RoutingEngineError, input_text: str | None = None, **context: object
    ) -> "ErrorRecord":
        """Create a record from a domain exception, using its code."""
        context.setdefault("detail", error.message)
        context.setdefault("command", input_text or "")
        return cls.from_code(error.code, input_text=input_text, **context)


def format_error(error: ErrorRecord, include_remediation: bool = True) -> str:
    """Format error for display to user.

    Args:
        error: The ErrorRecord to format.
        include_remediation: Whether to include remediation steps.

    Returns:
        Multi-line formatted string suitable for user display.
    """
    lines = [f"{error.code}: {error.message}"]
    if include_remediation and error.remediation:
        lines.append(f"  Action: {error.remediation}")
    return "\n".join(lines)


def format_error_summary(errors: list[ErrorRecord]) -> str:
    """Format a list of errors for display, grouping repeats by code.

    Args:
        errors: List of ErrorRecord objects.

    Returns:
        User-friendly summary suitable for UI display.
    """
    if not errors:
        return "No errors."

    counts = Counter(error.code for error in errors)
    latest: dict[str, ErrorRecord] = {}
    for error in errors:
        latest[error.code] = error

    if len(latest) == 1:
        code, error = next(iter(latest.items()))
        suffix = f" (x{counts[code]})" if counts[code] > 1 else ""
        return format_error(error) + suffix

    lines = [f"{len(latest)} error type(s) recorded:\n"]
    for i, (code, error) in enumerate(latest.items(), 1):
        suffix = f" (x{counts[code]})" if counts[code] > 1 else ""
        lines.append(f"{i}. {format_error(error)}{suffix}")
        lines.append("")

    return "\n".join(lines)
