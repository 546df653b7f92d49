"""YAML configuration loader with env var resolution and Pydantic validation.

Loads config from (priority order):
1. --config <path> CLI flag
2. ./termroute.yaml (working directory)
3. ~/.termroute/config.yaml (user home)

Environment variables override YAML: TERMROUTE_<SECTION>_<KEY>.
${VAR} references in YAML values resolve from environment at load time.
"""

import logging
import os
import re
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, field_validator

from termroute.services.ai_backend import DEFAULT_MODEL

logger = logging.getLogger(__name__)

_ENV_VAR_PATTERN = re.compile(r"\$\{([^}]+)\}")

ENV_PREFIX = "TERMROUTE_"


def resolve_env_vars(value: str) -> str:
    """Resolve ${VAR} references in a string from environment variables.

    Args:
        value: String potentially containing ${VAR} references.

    Returns:
        String with all ${VAR} references replaced by their env values.
        Missing env vars resolve to empty string.
    """
    def _replace(match: re.Match) -> str:
        return os.environ.get(match.group(1), "")

    return _ENV_VAR_PATTERN.sub(_replace, value)


def _resolve_env_vars_recursive(data: Any) -> Any:
    """Recursively resolve ${VAR} references in a nested data structure."""
    if isinstance(data, str):
        return resolve_env_vars(data)
    elif isinstance(data, dict):
        return {k: _resolve_env_vars_recursive(v) for k, v in data.items()}
    elif isinstance(data, list):
        return [_resolve_env_vars_recursive(item) for item in data]
    return data


class RoutingConfig(BaseModel):
    """Classifier settings."""

    probe_enabled: bool = True
    probe_timeout_seconds: float = Field(default=0.5, gt=0)
    classify_timeout_seconds: float = Field(default=2.0, gt=0)
    high_confidence_threshold: float = Field(default=0.8, ge=0.0, le=1.0)


class DispatchConfig(BaseModel):
    """Dispatcher settings."""

    ai_timeout_seconds: float = Field(default=60.0, gt=0)
    line_terminator: Literal["\n", "\r", "\r\n"] = "\n"
    recent_command_limit: int = Field(default=50, ge=1)
    prompt_history_limit: int = Field(default=5, ge=0)

    @field_validator("line_terminator", mode="before")
    @classmethod
    def unescape_terminator(cls, value: Any) -> Any:
        """Accept escaped forms like "\\n" from env vars and YAML single quotes."""
        if isinstance(value, str):
            return value.replace("\\r", "\r").replace("\\n", "\n")
        return value


class AIConfig(BaseModel):
    """Anthropic backend settings.

    An empty api_key lets the SDK read ANTHROPIC_API_KEY.
    """

    model: str = DEFAULT_MODEL
    max_tokens: int = Field(default=1024, ge=1)
    api_key: str = ""
    memory_turns: int = Field(default=20, ge=0)


class ShellConfig(BaseModel):
    """Shell process settings."""

    executable: str | None = None
    working_directory: str | None = None


class LoggingConfig(BaseModel):
    """Log output settings."""

    level: Literal["debug", "info", "warning", "error"] = "info"
    file: str | None = None

    @field_validator("level", mode="before")
    @classmethod
    def lowercase_level(cls, value: Any) -> Any:
        """Accept upper-case level names."""
        return value.lower() if isinstance(value, str) else value


class TermRouteConfig(BaseModel):
    """Top-level configuration for TermRoute."""

    routing: RoutingConfig = RoutingConfig()
    dispatch: DispatchConfig = DispatchConfig()
    ai: AIConfig = AIConfig()
    shell: ShellConfig = ShellConfig()
    logging: LoggingConfig = LoggingConfig()


def _find_config_file() -> Path | None:
    """Search for config file in standard locations.

    Returns:
        Path to config file if found, None otherwise.
    """
    candidates = [
        Path.cwd() / "termroute.yaml",
        Path.cwd() / "termroute.yml",
        Path.home() / ".termroute" / "config.yaml",
        Path.home() / ".termroute" / "config.yml",
    ]
    for candidate in candidates:
        if candidate.exists():
            return candidate
    return None


def _coerce(value: str) -> Any:
    """Coerce an env var string to int, float or bool, else keep it."""
    for convert in (int, float):
        try:
            return convert(value)
        except ValueError:
            pass
    if value.lower() in ("true", "false"):
        return value.lower() == "true"
    return value


def _apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    """Apply TERMROUTE_<SECTION>_<KEY> env var overrides to config data.

    Matches section names by longest prefix first, so
    ``TERMROUTE_DISPATCH_AI_TIMEOUT_SECONDS`` maps to section ``dispatch``,
    field ``ai_timeout_seconds``.

    Args:
        data: Parsed YAML config dict.

    Returns:
        Config dict with env var overrides applied.
    """
    known_sections = sorted(
        TermRouteConfig.model_fields.keys(), key=len, reverse=True
    )
    for key, value in os.environ.items():
        if not key.startswith(ENV_PREFIX):
            continue
        suffix = key[len(ENV_PREFIX):].lower()
        matched_section = None
        matched_field = None
        for section in known_sections:
            section_prefix = section + "_"
            if suffix.startswith(section_prefix):
                matched_section = section
                matched_field = suffix[len(section_prefix):]
                break
        if matched_section is None or not matched_field:
            continue
        if data.get(matched_section) is None:
            data[matched_section] = {}
        if isinstance(data[matched_section], dict):
            data[matched_section][matched_field] = _coerce(value)
    return data


def load_config(config_path: str | None = None) -> TermRouteConfig | None:
    """Load TermRoute configuration from YAML file with env var resolution.

    Args:
        config_path: Explicit path to config file. If None, searches
            standard locations (cwd, then ~/.termroute/).

    Returns:
        Parsed and validated TermRouteConfig, or None if no config found.

    Raises:
        FileNotFoundError: If an explicit config_path does not exist.
    """
    if config_path:
        path = Path(config_path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
    else:
        path = _find_config_file()
        if path is None:
            return None

    logger.info("Loading config from %s", path)

    with open(path) as f:
        raw_data = yaml.safe_load(f) or {}

    data = _resolve_env_vars_recursive(raw_data)
    data = _apply_env_overrides(data)
    return TermRouteConfig(**data)


def resolve_config(config_path: str | None = None) -> TermRouteConfig:
    """Load config from file, or build defaults with env overrides applied."""
    config = load_config(config_path)
    if config is None:
        config = TermRouteConfig(**_apply_env_overrides({}))
    return config
