"""Per-tab session state and session lifecycle management.

Each open terminal tab owns one SessionContext: its shell handle, working
directory, bounded command history, AI conversation and recorded errors.
Sessions never share mutable state. All mutation of a session happens on
its own sequential dispatch queue, so no cross-session locking exists.

Example:
    mgr = SessionManager()
    session = mgr.open_session("tab-1", working_directory="/home/me")
    mgr.attach_shell("tab-1", handle)
    await mgr.close_session("tab-1")
"""

import asyncio
import logging
from collections import deque
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from termroute.errors.formatter import ErrorRecord

logger = logging.getLogger(__name__)

DEFAULT_RECENT_COMMAND_LIMIT = 50


class TurnMetadata(BaseModel):
    """Metadata attached to a conversation turn.

    Attributes:
        confidence: Routing confidence for the input that produced the turn.
        response_time_ms: Backend latency for assistant responses.
        error_flag: True if the turn reports a failure.
        failed_command: Shell command whose write failed, for recovery turns.
    """

    model_config = ConfigDict(frozen=True)

    confidence: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    response_time_ms: Optional[int] = Field(default=None, ge=0)
    error_flag: bool = False
    failed_command: Optional[str] = None


class ConversationTurn(BaseModel):
    """One message in a session's AI conversation. Never mutated."""

    model_config = ConfigDict(frozen=True)

    role: Literal["user", "assistant"]
    content: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    metadata: TurnMetadata = Field(default_factory=TurnMetadata)


@dataclass
class QueuedInput:
    """An input waiting on a session's dispatch queue."""

    text: str
    future: "asyncio.Future[Any]"


class SessionContext:
    """State for a single terminal tab.

    The shell handle is attached asynchronously once the underlying shell
    process is ready, so it may be None for a while after creation.
    Once closed, a session accepts no further mutation; in-flight dispatches
    must check ``is_alive`` before each side effect.

    Attributes:
        session_id: Unique tab identifier.
        shell_handle: Opaque reference to the live shell channel, or None.
        shell_name: Shell program name, reported to the AI for context.
        working_directory: Current working directory of the tab.
        recent_commands: Bounded command history, most recent last.
        conversation: Append-only AI conversation turns.
        pending_errors: Errors recorded by the dispatcher, oldest first.
        created_at: When the session was created.
        closed: Whether the tab has been closed.
        queue: FIFO of inputs awaiting dispatch (created on first submit).
        worker: Task draining the queue, if running.
        inflight: Dispatch tasks whose side effects are still completing.
    """

    def __init__(
        self,
        session_id: str,
        working_directory: str = "",
        shell_handle: Any = None,
        shell_name: str | None = None,
        recent_command_limit: int = DEFAULT_RECENT_COMMAND_LIMIT,
    ) -> None:
        """Initialize a new session.

        Args:
            session_id: Unique tab identifier.
            working_directory: Initial working directory.
            shell_handle: Shell handle, if the shell is already running.
            shell_name: Shell program name (e.g. "bash").
            recent_command_limit: Maximum commands kept in history.
        """
        self.session_id = session_id
        self.shell_handle = shell_handle
        self.shell_name = shell_name
        self.working_directory = working_directory
        self.recent_commands: deque[str] = deque(maxlen=recent_command_limit)
        self.conversation: list[ConversationTurn] = []
        self.pending_errors: list[ErrorRecord] = []
        self.created_at = datetime.now(timezone.utc)
        self.closed = False
        self.queue: asyncio.Queue[QueuedInput] | None = None
        self.worker: asyncio.Task[None] | None = None
        self.inflight: set[asyncio.Task[Any]] = set()

    @property
    def is_alive(self) -> bool:
        """True until the session is closed."""
        return not self.closed

    def append_turn(self, turn: ConversationTurn) -> bool:
        """Append a conversation turn if the session is still open.

        Returns:
            True if the turn was appended, False if the session is closed.
        """
        if self.closed:
            logger.debug("Discarding %s turn for closed session %s", turn.role, self.session_id)
            return False
        self.conversation.append(turn)
        return True

    def record_error(self, error: ErrorRecord) -> bool:
        """Record an error if the session is still open."""
        if self.closed:
            return False
        self.pending_errors.append(error)
        return True

    def remember_command(self, command: str) -> None:
        """Add a command to the bounded recent-command history."""
        if not self.closed:
            self.recent_commands.append(command)

    def close(self) -> None:
        """Mark the session closed and stop its dispatch queue.

        Later mutations become no-ops. The queue worker is cancelled and
        inputs still waiting on the queue have their futures cancelled.
        Dispatches already in flight keep running and discard their
        effects.
        """
        self.closed = True
        if self.worker is not None and not self.worker.done():
            self.worker.cancel()
        if self.queue is not None:
            while not self.queue.empty():
                item = self.queue.get_nowait()
                if not item.future.done():
                    item.future.cancel()


class SessionManager:
    """Manages terminal sessions keyed by session ID.

    Safe for single-process usage on one asyncio event loop.

    Attributes:
        _sessions: Dict of session_id -> SessionContext.
    """

    def __init__(self, recent_command_limit: int = DEFAULT_RECENT_COMMAND_LIMIT) -> None:
        """Initialize with no open sessions."""
        self._sessions: dict[str, SessionContext] = {}
        self._recent_command_limit = recent_command_limit

    def open_session(
        self,
        session_id: str,
        working_directory: str = "",
        shell_name: str | None = None,
    ) -> SessionContext:
        """Get an existing session or open a new one.

        Args:
            session_id: Unique tab identifier.
            working_directory: Initial working directory for a new session.
            shell_name: Shell program name for a new session.

        Returns:
            The SessionContext for this tab.
        """
        if session_id not in self._sessions:
            self._sessions[session_id] = SessionContext(
                session_id,
                working_directory=working_directory,
                shell_name=shell_name,
                recent_command_limit=self._recent_command_limit,
            )
            logger.info("Opened session: %s", session_id)
        return self._sessions[session_id]

    def get_session(self, session_id: str) -> SessionContext | None:
        """Get a session without auto-creating. Returns None if not found."""
        return self._sessions.get(session_id)

    def attach_shell(self, session_id: str, shell_handle: Any) -> None:
        """Attach a ready shell handle to an open session.

        Args:
            session_id: Target session.
            shell_handle: Opaque shell channel reference.

        Raises:
            KeyError: If the session does not exist.
        """
        session = self._sessions[session_id]
        session.shell_handle = shell_handle
        logger.info("Attached shell to session: %s", session_id)

    def list_sessions(self) -> list[str]:
        """List all open session IDs."""
        return list(self._sessions.keys())

    async def close_session(self, session_id: str) -> None:
        """Close a session and stop its dispatch queue.

        The session is closed first, which stops its queue worker and
        cancels queued inputs. In-flight dispatch tasks are then cancelled
        and awaited along with the worker. Idempotent.

        Args:
            session_id: Session to close.
        """
        session = self._sessions.pop(session_id, None)
        if session is None:
            return
        session.close()

        tasks = list(session.inflight)
        if session.worker is not None:
            tasks.append(session.worker)
            session.worker = None
        for task in tasks:
            if not task.done():
                task.cancel()
        for task in tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
            except Exception as e:
                logger.warning("Error while closing session %s: %s", session_id, e)
        session.inflight.clear()

        logger.info("Closed session: %s", session_id)
