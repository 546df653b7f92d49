"""AI backend: the inference service behind the assistant side channel.

The dispatcher depends only on the AIBackend protocol. AnthropicBackend is
the production implementation; it keeps a bounded message history per
conversation so follow-up questions in the same tab have memory.

Environment Variables:
    ANTHROPIC_API_KEY: API key used when none is configured explicitly.
    ANTHROPIC_MODEL: Claude model used when none is configured explicitly.
"""

import logging
import os
from collections import deque
from typing import Protocol

from anthropic import APIError, APITimeoutError, AsyncAnthropic

from termroute.errors.domain import InferenceError

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "claude-sonnet-4-20250514"
DEFAULT_MAX_TOKENS = 1024
DEFAULT_MEMORY_TURNS = 20

SYSTEM_PROMPT = """You are a terminal assistant embedded in a command-line session.
The user typed a line that was routed to you instead of the shell.

Answer concisely. When a shell command would solve the request, show it in a
fenced code block so the user can run it. If the routing looks wrong (the
input was meant to run as a command), say so and show the command."""


def get_model() -> str:
    """Claude model from ANTHROPIC_MODEL, falling back to the default."""
    return os.environ.get("ANTHROPIC_MODEL", DEFAULT_MODEL)


class AIBackend(Protocol):
    """Inference collaborator used for AI-routed input."""

    async def chat(self, message: str, conversation_id: str, context: str) -> str:
        """Send *message* with routing *context* and return the reply text.

        Raises:
            InferenceError: On backend failure.
        """
        ...


class AnthropicBackend:
    """AIBackend backed by the Anthropic Messages API.

    Attributes:
        model: Claude model identifier.
        max_tokens: Response token limit.
        memory_turns: Exchanges (user + assistant pairs) kept per conversation.
    """

    def __init__(
        self,
        model: str | None = None,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        api_key: str | None = None,
        memory_turns: int = DEFAULT_MEMORY_TURNS,
        client: AsyncAnthropic | None = None,
    ) -> None:
        """Initialize the backend.

        Args:
            model: Claude model; defaults to get_model().
            max_tokens: Response token limit.
            api_key: API key; empty or None lets the SDK read ANTHROPIC_API_KEY.
            memory_turns: Exchanges remembered per conversation.
            client: Pre-built client (tests inject a mock here).
        """
        self.model = model or get_model()
        self.max_tokens = max_tokens
        self.memory_turns = memory_turns
        self._api_key = api_key or None
        self._client = client
        self._memory: dict[str, deque[dict[str, str]]] = {}

    @property
    def client(self) -> AsyncAnthropic:
        """Lazily constructed Anthropic client."""
        if self._client is None:
            self._client = AsyncAnthropic(api_key=self._api_key)
        return self._client

    def history(self, conversation_id: str) -> list[dict[str, str]]:
        """Remembered messages for a conversation, oldest first."""
        return list(self._memory.get(conversation_id, ()))

    def forget(self, conversation_id: str) -> None:
        """Drop the remembered history for a conversation."""
        self._memory.pop(conversation_id, None)

    async def chat(self, message: str, conversation_id: str, context: str) -> str:
        memory = self._memory.setdefault(
            conversation_id, deque(maxlen=self.memory_turns * 2)
        )
        messages = [*memory, {"role": "user", "content": message}]
        system = f"{SYSTEM_PROMPT}\n\n{context}" if context else SYSTEM_PROMPT

        logger.info(
            "AI request for %s (model=%s, history=%d, prompt_chars=%d)",
            conversation_id,
            self.model,
            len(memory),
            len(message) + len(system),
        )
        try:
            response = await self.client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                system=system,
                messages=messages,
            )
        except APITimeoutError as e:
            raise InferenceError(f"Anthropic request timed out: {e}", timed_out=True) from e
        except APIError as e:
            raise InferenceError(f"Anthropic API call failed: {e}") from e

        text = "".join(
            block.text for block in response.content if getattr(block, "type", None) == "text"
        ).strip()
        if not text:
            raise InferenceError("Anthropic returned an empty response")

        memory.append({"role": "user", "content": message})
        memory.append({"role": "assistant", "content": text})
        return text
