"""Dispatcher: turns routed input into exactly one side effect.

For every non-empty input the dispatcher either writes the command to the
session's shell or runs one AI turn, never both. Failures at the three
collaborator seams (classifier, shell channel, AI backend) are converted
into conversation turns and ErrorRecords; nothing is raised to the caller.

Inputs for one session are processed in submission order. ``submit`` queues
an input on the session's FIFO and returns immediately; the queue worker
starts input n+1 as soon as input n's side effect has been initiated (the
shell write attempted, or the user turn appended), without waiting for the
AI response.

Example:
    dispatcher = Dispatcher(classifier, shell_channel, ai_backend)
    future = dispatcher.submit("ls -la", session)
    result = await future
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from functools import partial
from typing import Any, Callable

from termroute.errors.domain import (
    InferenceError,
    RoutingEngineError,
    SessionClosedError,
    ShellUnavailableError,
    ShellWriteError,
)
from termroute.errors.formatter import ErrorRecord, format_error
from termroute.routing.classifier import IntentClassifier
from termroute.routing.fallback import fallback_classify
from termroute.routing.models import (
    HIGH_CONFIDENCE_THRESHOLD,
    RoutingDecision,
    SuggestedAction,
)
from termroute.services.ai_backend import AIBackend
from termroute.services.session_context import (
    ConversationTurn,
    QueuedInput,
    SessionContext,
    TurnMetadata,
)
from termroute.services.shell_channel import ShellChannel
from termroute.utils.redaction import redact_command

logger = logging.getLogger(__name__)

DEFAULT_AI_TIMEOUT = 60.0
DEFAULT_CLASSIFY_TIMEOUT = 2.0
DEFAULT_PROMPT_HISTORY_LIMIT = 5
LINE_TERMINATORS = ("\n", "\r", "\r\n")


@dataclass(frozen=True)
class DispatchResult:
    """Outcome of dispatching one input.

    Attributes:
        decision: Routing decision used, or None if nothing was classified.
        used_fallback: True if the fallback heuristic replaced the classifier.
        error: ErrorRecord appended to the session if the side effect failed,
            or the E-4001 record when the input was discarded.
        discarded: True if the session closed before effects were applied.
    """

    decision: RoutingDecision | None = None
    used_fallback: bool = False
    error: ErrorRecord | None = None
    discarded: bool = False


def build_ai_context(
    decision: RoutingDecision,
    session: SessionContext,
    history_limit: int = DEFAULT_PROMPT_HISTORY_LIMIT,
) -> str:
    """Build the session context block sent alongside an AI-routed input.

    Includes the working directory, the shell, the last few commands and the
    routing confidence and reason, so the assistant can see why the input
    reached it.
    """
    directory = session.working_directory or "an unknown directory"
    shell = session.shell_name or "an unknown shell"
    lines = [f"Context: Terminal session in {directory} using {shell}"]

    recent = list(session.recent_commands)[-history_limit:] if history_limit > 0 else []
    if recent:
        lines.append("Recent commands: " + "; ".join(redact_command(c) for c in recent))

    lines.append(f"Routing confidence: {decision.confidence * 100:.1f}%")
    lines.append(f"Reason: {decision.reason}")
    return "\n".join(lines)


def shell_recovery_message(command: str) -> str:
    """Assistant message offered after a failed shell write."""
    return f'I had trouble executing "{command}". Let me help you troubleshoot this command.'


class Dispatcher:
    """Routes input for a session to the shell channel or the AI backend.

    The dispatcher holds no per-session state; everything it mutates lives
    on the SessionContext it is handed.

    Attributes:
        classifier: Primary intent classifier.
        shell_channel: Shell write transport.
        ai_backend: Inference collaborator.
        ai_timeout: Seconds before an AI call counts as failed.
        classify_timeout: Seconds before classification falls back.
        line_terminator: Appended to every shell write.
        prompt_history_limit: Recent commands included in AI context.
        advisory_threshold: Confidence below which advisories are logged.
        fallback: Synchronous classifier used when the primary one fails.
    """

    def __init__(
        self,
        classifier: IntentClassifier,
        shell_channel: ShellChannel,
        ai_backend: AIBackend,
        ai_timeout: float = DEFAULT_AI_TIMEOUT,
        classify_timeout: float = DEFAULT_CLASSIFY_TIMEOUT,
        line_terminator: str = "\n",
        prompt_history_limit: int = DEFAULT_PROMPT_HISTORY_LIMIT,
        advisory_threshold: float = HIGH_CONFIDENCE_THRESHOLD,
        fallback: Callable[[str], RoutingDecision] = fallback_classify,
    ) -> None:
        if line_terminator not in LINE_TERMINATORS:
            raise ValueError(f"Unsupported line terminator: {line_terminator!r}")
        self.classifier = classifier
        self.shell_channel = shell_channel
        self.ai_backend = ai_backend
        self.ai_timeout = ai_timeout
        self.classify_timeout = classify_timeout
        self.line_terminator = line_terminator
        self.prompt_history_limit = prompt_history_limit
        self.advisory_threshold = advisory_threshold
        self.fallback = fallback

    # ------------------------------------------------------------------
    # Queueing
    # ------------------------------------------------------------------

    def submit(self, text: str, session: SessionContext) -> "asyncio.Future[DispatchResult]":
        """Queue *text* for dispatch on *session* and return immediately.

        Must be called from a running event loop. The returned future
        resolves with the DispatchResult once the input's effects are
        complete (including any AI response). Awaiting it is optional.
        """
        loop = asyncio.get_running_loop()
        future: asyncio.Future[DispatchResult] = loop.create_future()
        if not session.is_alive:
            future.set_result(self._discarded(session, text))
            return future

        if session.queue is None:
            session.queue = asyncio.Queue()
        session.queue.put_nowait(QueuedInput(text=text, future=future))
        if session.worker is None or session.worker.done():
            session.worker = asyncio.create_task(self._drain(session, session.queue))
        return future

    async def _drain(self, session: SessionContext, queue: "asyncio.Queue[QueuedInput]") -> None:
        """Process a session's queue in order, one initiated effect at a time."""
        while session.is_alive:
            item = await queue.get()
            initiated = asyncio.Event()
            task = asyncio.create_task(self.dispatch(item.text, session, initiated))
            session.inflight.add(task)
            task.add_done_callback(lambda _, event=initiated: event.set())
            task.add_done_callback(partial(_settle, session, item.future))
            await initiated.wait()

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    async def dispatch(
        self,
        text: str,
        session: SessionContext,
        initiated: asyncio.Event | None = None,
    ) -> DispatchResult:
        """Classify and dispatch a single input.

        Args:
            text: Raw user input.
            session: Session receiving the effects.
            initiated: Set once the side effect has been initiated.

        Returns:
            DispatchResult describing what happened.
        """
        try:
            trimmed = text.strip()
            if not trimmed:
                return DispatchResult(decision=RoutingDecision.ask_user())
            if not session.is_alive:
                return self._discarded(session, trimmed)

            decision, used_fallback = await self._classify(trimmed, session)
            if not session.is_alive:
                return self._discarded(session, trimmed, decision, used_fallback)

            if decision.suggested_action is SuggestedAction.EXECUTE_SHELL:
                return await self._dispatch_shell(decision, session, used_fallback)
            if decision.suggested_action is SuggestedAction.SEND_TO_AI:
                return await self._dispatch_ai(decision, session, used_fallback, initiated)
            return DispatchResult(decision=decision, used_fallback=used_fallback)
        finally:
            if initiated is not None:
                initiated.set()

    async def _classify(self, trimmed: str, session: SessionContext) -> tuple[RoutingDecision, bool]:
        """Primary classification, falling back to the heuristic on any failure."""
        try:
            decision = await asyncio.wait_for(
                self.classifier.classify_async(trimmed), timeout=self.classify_timeout
            )
            return decision, False
        except Exception as e:
            detail = (
                f"timed out after {self.classify_timeout}s"
                if isinstance(e, asyncio.TimeoutError)
                else str(e) or type(e).__name__
            )
            record = ErrorRecord.from_code("E-1001", detail=detail)
            logger.warning(
                "%s (session=%s, input=%s)",
                record,
                session.session_id,
                redact_command(trimmed),
            )
            return self.fallback(trimmed), True

    async def _dispatch_shell(
        self,
        decision: RoutingDecision,
        session: SessionContext,
        used_fallback: bool,
    ) -> DispatchResult:
        command = decision.normalized_input or ""
        safe_command = redact_command(command)

        if session.shell_handle is None:
            record = ErrorRecord.from_exception(
                ShellUnavailableError(session.session_id), input_text=safe_command
            )
            logger.warning("No shell for session %s: %s", session.session_id, safe_command)
            return self._report_failure(
                session, decision, used_fallback, record, format_error(record)
            )

        if decision.confidence < self.advisory_threshold:
            logger.warning(
                "Low confidence shell routing (%.2f) for %s: %s",
                decision.confidence,
                safe_command,
                decision.reason,
            )

        data = (command + self.line_terminator).encode()
        logger.info("Shell write for session %s: %s", session.session_id, safe_command)
        try:
            await self.shell_channel.write(session.shell_handle, data)
        except Exception as e:
            error = e if isinstance(e, ShellWriteError) else ShellWriteError(str(e), command=command)
            record = ErrorRecord.from_exception(error, input_text=safe_command)
            logger.warning("Shell write failed for session %s: %s", session.session_id, record)
            return self._report_failure(
                session,
                decision,
                used_fallback,
                record,
                shell_recovery_message(command),
                failed_command=command,
            )

        if not session.is_alive:
            return self._discarded(session, command, decision, used_fallback)
        session.remember_command(command)
        return DispatchResult(decision=decision, used_fallback=used_fallback)

    async def _dispatch_ai(
        self,
        decision: RoutingDecision,
        session: SessionContext,
        used_fallback: bool,
        initiated: asyncio.Event | None,
    ) -> DispatchResult:
        message = decision.normalized_input or ""
        user_turn = ConversationTurn(
            role="user",
            content=message,
            metadata=TurnMetadata(confidence=decision.confidence),
        )
        if not session.append_turn(user_turn):
            return self._discarded(session, message, decision, used_fallback)
        if initiated is not None:
            initiated.set()

        if decision.confidence < self.advisory_threshold:
            logger.warning(
                "Low confidence AI routing (%.2f) for %s: type it as a command if it "
                "was meant for the shell",
                decision.confidence,
                redact_command(message),
            )

        context = build_ai_context(decision, session, self.prompt_history_limit)
        started = time.monotonic()
        try:
            reply = await asyncio.wait_for(
                self.ai_backend.chat(message, session.session_id, context),
                timeout=self.ai_timeout,
            )
        except asyncio.TimeoutError:
            error = InferenceError(f"no response within {self.ai_timeout}s", timed_out=True)
        except RoutingEngineError as e:
            error = e if isinstance(e, InferenceError) else InferenceError(e.message)
        except Exception as e:
            error = InferenceError(str(e) or type(e).__name__)
        else:
            elapsed_ms = int((time.monotonic() - started) * 1000)
            if not session.is_alive:
                return self._discarded(session, message, decision, used_fallback)
            session.append_turn(
                ConversationTurn(
                    role="assistant",
                    content=reply,
                    metadata=TurnMetadata(
                        confidence=decision.confidence,
                        response_time_ms=elapsed_ms,
                    ),
                )
            )
            return DispatchResult(decision=decision, used_fallback=used_fallback)

        elapsed_ms = int((time.monotonic() - started) * 1000)
        record = ErrorRecord.from_exception(
            error, input_text=redact_command(message), timeout=self.ai_timeout
        )
        logger.error("AI request failed for session %s: %s", session.session_id, record)
        return self._report_failure(
            session,
            decision,
            used_fallback,
            record,
            f"Sorry, I encountered an error: {error.message}",
            response_time_ms=elapsed_ms,
        )

    def _discarded(
        self,
        session: SessionContext,
        text: str,
        decision: RoutingDecision | None = None,
        used_fallback: bool = False,
    ) -> DispatchResult:
        """Result for an input whose session closed before its effects landed."""
        record = ErrorRecord.from_exception(
            SessionClosedError(session.session_id),
            input_text=redact_command(text),
            session_id=session.session_id,
        )
        logger.info("%s (input=%s)", record, record.input_text)
        return DispatchResult(
            decision=decision, used_fallback=used_fallback, error=record, discarded=True
        )

    def _report_failure(
        self,
        session: SessionContext,
        decision: RoutingDecision,
        used_fallback: bool,
        record: ErrorRecord,
        content: str,
        failed_command: str | None = None,
        response_time_ms: int | None = None,
    ) -> DispatchResult:
        """Append an error record and an error-flagged assistant turn."""
        if not session.is_alive:
            return DispatchResult(
                decision=decision, used_fallback=used_fallback, error=record, discarded=True
            )
        session.record_error(record)
        session.append_turn(
            ConversationTurn(
                role="assistant",
                content=content,
                metadata=TurnMetadata(
                    confidence=decision.confidence,
                    response_time_ms=response_time_ms,
                    error_flag=True,
                    failed_command=failed_command,
                ),
            )
        )
        return DispatchResult(decision=decision, used_fallback=used_fallback, error=record)


def _settle(
    session: SessionContext,
    future: "asyncio.Future[DispatchResult]",
    task: "asyncio.Task[Any]",
) -> None:
    """Resolve a submit() future from its finished dispatch task."""
    session.inflight.discard(task)
    if future.done():
        return
    if task.cancelled():
        future.cancel()
        return
    error = task.exception()
    if error is not None:
        logger.error("Dispatch crashed for session %s: %s", session.session_id, error)
        future.set_exception(error)
    else:
        future.set_result(task.result())
