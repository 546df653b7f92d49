"""Root-level pytest fixtures for all tests.

Provides shared fixtures for routing and dispatch tests:
- A classifier with no capability probe
- Mock shell channel and AI backend collaborators
- A session with a live shell handle
"""

from unittest.mock import AsyncMock

import pytest

from termroute.routing.classifier import IntentClassifier
from termroute.services.session_context import SessionContext

# ============================================================================
# Pytest Markers
# ============================================================================


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "integration: marks tests requiring external services"
    )
    config.addinivalue_line(
        "markers", "slow: marks tests that take a long time to run"
    )


# ============================================================================
# Routing Fixtures
# ============================================================================


@pytest.fixture
def classifier() -> IntentClassifier:
    """Classifier with the default rule table and no probe."""
    return IntentClassifier()


@pytest.fixture
def shell_channel() -> AsyncMock:
    """Shell channel whose writes succeed."""
    channel = AsyncMock()
    channel.write.return_value = None
    return channel


@pytest.fixture
def ai_backend() -> AsyncMock:
    """AI backend returning a canned answer."""
    backend = AsyncMock()
    backend.chat.return_value = "Docker is a container runtime."
    return backend


@pytest.fixture
def session() -> SessionContext:
    """Session for tab-1 with a live shell."""
    return SessionContext(
        "tab-1",
        working_directory="/home/dev/project",
        shell_handle="tab-1",
        shell_name="bash",
    )
