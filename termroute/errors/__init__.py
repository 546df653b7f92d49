"""Error handling framework for TermRoute.

This package provides:
- Typed domain exceptions for each routing failure mode
- Error code registry with E-XXXX format codes
- ErrorRecord plus formatting and grouping utilities

Error categories:
- E-1xxx: Classification errors
- E-2xxx: Shell channel errors
- E-3xxx: AI backend errors
- E-4xxx: Session/system errors
"""

from termroute.errors.domain import (
    ClassificationServiceError,
    InferenceError,
    RoutingEngineError,
    SessionClosedError,
    ShellUnavailableError,
    ShellWriteError,
)
from termroute.errors.formatter import (
    ErrorRecord,
    format_error,
    format_error_summary,
)
from termroute.errors.registry import (
    ERROR_REGISTRY,
    ErrorCategory,
    ErrorCode,
    get_error,
)

__all__ = [
    # Domain exceptions
    "RoutingEngineError",
    "ClassificationServiceError",
    "ShellUnavailableError",
    "ShellWriteError",
    "InferenceError",
    "SessionClosedError",
    # Registry
    "ErrorCode",
    "ErrorCategory",
    "ERROR_REGISTRY",
    "get_error",
    # Formatter
    "ErrorRecord",
    "format_error",
    "format_error_summary",
]
