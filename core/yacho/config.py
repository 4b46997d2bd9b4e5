"""Shared Yacho configuration utilities.

Centralises reading of ~/.yacho/configuration.json so the agent, the CLI and
tests share one implementation. Every value has a default; a missing or
corrupt file, or a value of the wrong type, is never an error.

Example file:

    {
      "llm": {"model": "gpt-4.1", "fixing_model": "gpt-4o-mini", "temperature": 1.0},
      "agent": {"max_steps": 50, "structured_retries": 2},
      "credentials": {"api_key_env_var": "OPENAI_API_KEY", "properties_file": "local.properties"}
    }
"""

import json
import os
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

DEFAULT_MODEL = "gpt-4.1"
DEFAULT_FIXING_MODEL = "gpt-4o-mini"
DEFAULT_MAX_TOKENS = 2048
DEFAULT_API_KEY_ENV_VAR = "OPENAI_API_KEY"

# ---------------------------------------------------------------------------
# Low-level config file access
# ---------------------------------------------------------------------------

YACHO_CONFIG_FILE = Path.home() / ".yacho" / "configuration.json"


def get_yacho_config() -> dict[str, Any]:
    """Load configuration from ~/.yacho/configuration.json."""
    if not YACHO_CONFIG_FILE.exists():
        return {}
    try:
        with open(YACHO_CONFIG_FILE, encoding="utf-8-sig") as f:
            data = json.load(f)
    except (json.JSONDecodeError, OSError):
        return {}
    return data if isinstance(data, dict) else {}


# ---------------------------------------------------------------------------
# Derived helpers
# ---------------------------------------------------------------------------


def _section(name: str) -> dict[str, Any]:
    value = get_yacho_config().get(name, {})
    return value if isinstance(value, dict) else {}


def _coerce(value: Any, cast: Callable[[Any], Any], default: Any) -> Any:
    """Cast a config value, falling back to ``default`` when it has the wrong type."""
    if value is None or isinstance(value, bool):
        return default
    try:
        return cast(value)
    except (TypeError, ValueError):
        return default


def _text(value: Any, default: str) -> str:
    return value if isinstance(value, str) and value else default


def get_preferred_model() -> str:
    """Primary model; YACHO_MODEL wins over the config file."""
    return os.environ.get("YACHO_MODEL") or _text(_section("llm").get("model"), DEFAULT_MODEL)


def get_fixing_model() -> str:
    """Cheap model used to repair malformed structured output."""
    return os.environ.get("YACHO_FIXING_MODEL") or _text(
        _section("llm").get("fixing_model"), DEFAULT_FIXING_MODEL
    )


def get_temperature() -> float:
    return _coerce(_section("llm").get("temperature"), float, 1.0)


def get_max_tokens() -> int:
    return _coerce(_section("llm").get("max_tokens"), int, DEFAULT_MAX_TOKENS)


def get_api_base() -> str | None:
    value = _section("llm").get("api_base")
    return value if isinstance(value, str) and value else None


def get_max_steps() -> int:
    return _coerce(_section("agent").get("max_steps"), int, 50)


def get_structured_retries() -> int:
    return _coerce(_section("agent").get("structured_retries"), int, 2)


def get_preserve_candidate_history() -> bool:
    value = _section("agent").get("preserve_candidate_history")
    return value if isinstance(value, bool) else True


def get_api_key_env_var() -> str:
    return _text(_section("credentials").get("api_key_env_var"), DEFAULT_API_KEY_ENV_VAR)


def get_properties_file() -> Path:
    return Path(_text(_section("credentials").get("properties_file"), "local.properties"))


# ---------------------------------------------------------------------------
# RuntimeConfig
# ---------------------------------------------------------------------------


@dataclass
class RuntimeConfig:
    """Agent runtime configuration loaded from ~/.yacho/configuration.json."""

    model: str = field(default_factory=get_preferred_model)
    fixing_model: str = field(default_factory=get_fixing_model)
    temperature: float = field(default_factory=get_temperature)
    max_tokens: int = field(default_factory=get_max_tokens)
    api_base: str | None = field(default_factory=get_api_base)

    # Graph limits
    max_steps: int = field(default_factory=get_max_steps)
    structured_retries: int = field(default_factory=get_structured_retries)

    # When False, candidate listing only sees the accumulated user messages,
    # not the full prompt history
    preserve_candidate_history: bool = field(default_factory=get_preserve_candidate_history)

    api_key_env_var: str = field(default_factory=get_api_key_env_var)
    properties_file: Path = field(default_factory=get_properties_file)
