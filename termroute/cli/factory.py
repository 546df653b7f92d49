"""Factories that build the routing stack from a loaded config.

CLI commands never construct classifiers, backends or dispatchers
directly; they go through these functions so config handling lives in
one place.
"""

import logging
import sys

from termroute.cli.config import LoggingConfig, TermRouteConfig
from termroute.routing.classifier import IntentClassifier
from termroute.routing.probe import PathCapabilityProbe
from termroute.services.ai_backend import AIBackend, AnthropicBackend
from termroute.services.dispatcher import Dispatcher
from termroute.services.shell_channel import ShellChannel

LOG_FORMAT = "%(levelname)s:%(name)s:%(message)s"


def configure_logging(config: LoggingConfig) -> None:
    """Configure root logging from the logging config section.

    Logs go to stderr so command output on stdout stays machine-readable.
    """
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if config.file:
        handlers.append(logging.FileHandler(config.file))
    logging.basicConfig(
        level=getattr(logging, config.level.upper()),
        format=LOG_FORMAT,
        handlers=handlers,
        force=True,
    )


def build_classifier(config: TermRouteConfig, probe: bool | None = None) -> IntentClassifier:
    """Create an IntentClassifier.

    Args:
        config: Loaded configuration.
        probe: Override for routing.probe_enabled (None keeps the config value).
    """
    enabled = config.routing.probe_enabled if probe is None else probe
    return IntentClassifier(
        probe=PathCapabilityProbe() if enabled else None,
        probe_timeout=config.routing.probe_timeout_seconds,
    )


def build_ai_backend(config: TermRouteConfig) -> AnthropicBackend:
    """Create the Anthropic backend from the ai config section."""
    return AnthropicBackend(
        model=config.ai.model,
        max_tokens=config.ai.max_tokens,
        api_key=config.ai.api_key,
        memory_turns=config.ai.memory_turns,
    )


def build_dispatcher(
    config: TermRouteConfig,
    classifier: IntentClassifier,
    shell_channel: ShellChannel,
    ai_backend: AIBackend,
) -> Dispatcher:
    """Create a Dispatcher wired to the given collaborators."""
    return Dispatcher(
        classifier,
        shell_channel,
        ai_backend,
        ai_timeout=config.dispatch.ai_timeout_seconds,
        classify_timeout=config.routing.classify_timeout_seconds,
        line_terminator=config.dispatch.line_terminator,
        prompt_history_limit=config.dispatch.prompt_history_limit,
        advisory_threshold=config.routing.high_confidence_threshold,
    )
