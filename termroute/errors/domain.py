"""Typed domain exceptions for the intent routing engine.

Each exception carries the registry code describing it, so the
dispatcher can turn any failure into an ErrorRecord and a readable
assistant turn without string matching.

Usage:
    # In a collaborator adapter
    raise ShellWriteError("broken pipe", command="ls -la")

    # In the dispatcher
    try:
        await channel.write(handle, data)
    except ShellWriteError as e:
        record = ErrorRecord.from_exception(e, input_text=command)
"""


class RoutingEngineError(Exception):
    """Base exception for all routing engine errors."""

    code = "E-4000"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ClassificationServiceError(RoutingEngineError):
    """Primary classifier (or its probe) unavailable. Recovered via fallback."""

    code = "E-1001"


class ShellUnavailableError(RoutingEngineError):
    """No live shell channel for a shell-routed input."""

    code = "E-2001"

    def __init__(self, session_id: str) -> None:
        super().__init__(f"No shell available for session '{session_id}'")
        self.session_id = session_id


class ShellWriteError(RoutingEngineError):
    """Write to the shell channel was attempted but failed."""

    code = "E-2002"

    def __init__(self, message: str, command: str | None = None) -> None:
        super().__init__(message)
        self.command = command


class InferenceError(RoutingEngineError):
    """AI backend call failed or timed out."""

    code = "E-3001"

    def __init__(self, message: str, timed_out: bool = False) -> None:
        super().__init__(message)
        self.timed_out = timed_out
        if timed_out:
            self.code = "E-3002"


class SessionClosedError(RoutingEngineError):
    """Session was closed before a dispatch could apply its effects."""

    code = "E-4001"

    def __init__(self, session_id: str) -> None:
        super().__init__(f"Session '{session_id}' is closed")
        self.session_id = session_id
