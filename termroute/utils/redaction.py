"""Secret redaction for terminal input before it reaches logs or error records.

Commands such as ``export GITHUB_TOKEN=ghp_...`` or
``mysql --password hunter2`` are routed like any other input, but their
secret values must never be written to log sinks or kept in ErrorRecord
messages. Matching is case-insensitive on the key or flag name.
"""

import re

_REDACTED = "***REDACTED***"

_SENSITIVE_KEYWORDS = (
    r"secret|token|password|passwd|api_key|apikey|access_key|"
    r"authorization|credential|private_key"
)

# NAME=value / name: value, keeping the name
_ASSIGNMENT_PATTERN = re.compile(
    r"(?i)(\b\w*(?:" + _SENSITIVE_KEYWORDS + r")\w*\s*[=:]\s*)(\"[^\"]*\"|'[^']*'|\S+)"
)

# --password value / --token=value, keeping the flag
_FLAG_PATTERN = re.compile(
    r"(?i)(--?[\w-]*(?:" + _SENSITIVE_KEYWORDS + r")[\w-]*(?:=|\s+))(\"[^\"]*\"|'[^']*'|[^\s-]\S*)"
)

# Authorization: Bearer <token>
_BEARER_PATTERN = re.compile(r"(?i)(bearer\s+)\S+")


def redact_command(text: str | None, max_length: int = 500) -> str | None:
    """Redact secret values from a command line and truncate it.

    Args:
        text: Command or message text (None passes through).
        max_length: Maximum length of the returned text.

    Returns:
        Text with secret values replaced by '***REDACTED***'.
    """
    if text is None:
        return None
    redacted = _BEARER_PATTERN.sub(rf"\g<1>{_REDACTED}", text)
    redacted = _FLAG_PATTERN.sub(rf"\g<1>{_REDACTED}", redacted)
    redacted = _ASSIGNMENT_PATTERN.sub(rf"\g<1>{_REDACTED}", redacted)
    if len(redacted) > max_length:
        redacted = redacted[:max_length - 3] + "..."
    return redacted
