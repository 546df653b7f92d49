"""Service layer for TermRoute.

Provides per-tab session state, the dispatcher that applies routing
decisions, and the shell and AI collaborators it drives.
"""

from termroute.services.ai_backend import AIBackend, AnthropicBackend
from termroute.services.dispatcher import DispatchResult, Dispatcher, build_ai_context
from termroute.services.session_context import (
    ConversationTurn,
    SessionContext,
    SessionManager,
    TurnMetadata,
)
from termroute.services.shell_channel import ShellChannel, SubprocessShellChannel

__all__ = [
    "Dispatcher",
    "DispatchResult",
    "build_ai_context",
    "SessionContext",
    "SessionManager",
    "ConversationTurn",
    "TurnMetadata",
    "ShellChannel",
    "SubprocessShellChannel",
    "AIBackend",
    "AnthropicBackend",
]
