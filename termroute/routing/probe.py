"""Capability probe: does a token name an executable on the host?

The probe is the only classifier dependency with external I/O. It is
injected into IntentClassifier so it can be disabled or replaced with a
mock without touching the rule tiers.
"""

import asyncio
import logging
import re
import shutil
from typing import Protocol

logger = logging.getLogger(__name__)

# Only plain command names are probed; anything with paths, quotes or
# shell metacharacters is rejected before reaching the host.
_PROBEABLE_TOKEN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._+-]{0,63}$")


class CapabilityProbe(Protocol):
    """Resolves whether a token names a runnable program."""

    async def is_executable(self, token: str) -> bool:
        """Return True if *token* resolves to an executable.

        May raise on host failure; the classifier reports that as a classification error.
        """
        ...


def is_probeable(token: str) -> bool:
    """True if *token* is safe and meaningful to look up on the host."""
    return bool(_PROBEABLE_TOKEN.match(token))


class PathCapabilityProbe:
    """Capability probe backed by a PATH lookup.

    The lookup runs in a worker thread so the event loop never blocks on
    filesystem access.

    Attributes:
        search_path: PATH string to search; None uses the process PATH.
    """

    def __init__(self, search_path: str | None = None) -> None:
        """Initialize the probe.

        Args:
            search_path: Optional PATH override (e.g. the session's shell PATH).
        """
        self.search_path = search_path

    async def is_executable(self, token: str) -> bool:
        """Return True if *token* resolves to an executable on the search path."""
        if not is_probeable(token):
            return False
        resolved = await asyncio.to_thread(shutil.which, token, path=self.search_path)
        logger.debug("Capability probe %s -> %s", token, resolved)
        return resolved is not None
