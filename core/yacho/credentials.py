"""API key providers.

Storage of secrets is out of scope; this module only answers "what is the key
right now". An empty answer means "not configured" and callers must fail with
ConfigurationError before touching the network.
"""

from __future__ import annotations

import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path

from yacho.config import RuntimeConfig
from yacho.errors import ConfigurationError

logger = logging.getLogger(__name__)


class ApiKeyProvider(ABC):
    """Source of the model API key."""

    @abstractmethod
    def get_api_key(self) -> str:
        """Return the key, or "" when it is not configured."""

    def require_api_key(self) -> str:
        """Return the key or raise ConfigurationError."""
        key = self.get_api_key()
        if not key:
            raise ConfigurationError(f"API key not configured ({self.describe()})")
        return key

    def describe(self) -> str:
        return type(self).__name__


class StaticApiKeyProvider(ApiKeyProvider):
    """Fixed key, for tests and embedding."""

    def __init__(self, api_key: str) -> None:
        self._api_key = api_key

    def get_api_key(self) -> str:
        return self._api_key


class EnvApiKeyProvider(ApiKeyProvider):
    def __init__(self, env_var: str) -> None:
        self.env_var = env_var

    def get_api_key(self) -> str:
        return os.environ.get(self.env_var, "").strip()

    def describe(self) -> str:
        return f"environment variable {self.env_var}"


class PropertiesFileApiKeyProvider(ApiKeyProvider):
    """
    Read ``KEY=value`` from a Java-style properties file, falling back to the
    environment variable of the same name.

    Unreadable files are skipped, not reported as errors.
    """

    def __init__(self, path: str | Path, key: str) -> None:
        self.path = Path(path)
        self.key = key

    def get_api_key(self) -> str:
        value = self._read_properties().get(self.key, "").strip()
        if value:
            return value
        return os.environ.get(self.key, "").strip()

    def describe(self) -> str:
        return f"{self.key} in {self.path} or the environment"

    def _read_properties(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            text = self.path.read_text(encoding="utf-8")
        except OSError as e:
            logger.debug("Could not read %s: %s", self.path, e)
            return {}

        properties: dict[str, str] = {}
        for raw_line in text.splitlines():
            line = raw_line.strip()
            if not line or line.startswith(("#", "!")):
                continue
            for sep in ("=", ":"):
                if sep in line:
                    name, value = line.split(sep, 1)
                    properties[name.strip()] = value.strip()
                    break
        return properties


def default_api_key_provider(config: RuntimeConfig | None = None) -> ApiKeyProvider:
    """Properties file first, then the environment, as configured."""
    config = config or RuntimeConfig()
    return PropertiesFileApiKeyProvider(config.properties_file, config.api_key_env_var)
