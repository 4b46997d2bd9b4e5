"""Tests for configuration loading and API key providers."""

import json

import pytest

from yacho import config as config_module
from yacho.config import RuntimeConfig
from yacho.credentials import (
    EnvApiKeyProvider,
    PropertiesFileApiKeyProvider,
    StaticApiKeyProvider,
    default_api_key_provider,
)
from yacho.errors import ConfigurationError


@pytest.fixture
def config_file(tmp_path, monkeypatch):
    path = tmp_path / "configuration.json"
    monkeypatch.setattr(config_module, "YACHO_CONFIG_FILE", path)
    monkeypatch.delenv("YACHO_MODEL", raising=False)
    monkeypatch.delenv("YACHO_FIXING_MODEL", raising=False)
    return path


class TestRuntimeConfig:
    def test_defaults_without_file(self, config_file):
        cfg = RuntimeConfig()
        assert cfg.model == "gpt-4.1"
        assert cfg.fixing_model == "gpt-4o-mini"
        assert cfg.temperature == 1.0
        assert cfg.max_steps == 50
        assert cfg.structured_retries == 2
        assert cfg.preserve_candidate_history is True
        assert cfg.api_key_env_var == "OPENAI_API_KEY"

    def test_values_from_file(self, config_file):
        config_file.write_text(
            json.dumps(
                {
                    "llm": {"model": "gpt-4o", "temperature": 0.2},
                    "agent": {"max_steps": 10, "preserve_candidate_history": False},
                }
            )
        )
        cfg = RuntimeConfig()
        assert cfg.model == "gpt-4o"
        assert cfg.temperature == 0.2
        assert cfg.max_steps == 10
        assert cfg.preserve_candidate_history is False

    def test_environment_overrides_file(self, config_file, monkeypatch):
        config_file.write_text(json.dumps({"llm": {"model": "gpt-4o"}}))
        monkeypatch.setenv("YACHO_MODEL", "gpt-4.1-mini")
        monkeypatch.setenv("YACHO_FIXING_MODEL", "gpt-4o-mini-2")
        cfg = RuntimeConfig()
        assert cfg.model == "gpt-4.1-mini"
        assert cfg.fixing_model == "gpt-4o-mini-2"

    def test_corrupt_file_yields_defaults(self, config_file):
        config_file.write_text("{not json")
        assert RuntimeConfig().model == "gpt-4.1"

    def test_wrong_typed_values_yield_defaults(self, config_file):
        config_file.write_text(
            json.dumps(
                {
                    "llm": {"model": 4, "temperature": "hot", "max_tokens": [1]},
                    "agent": {
                        "max_steps": None,
                        "structured_retries": "many",
                        "preserve_candidate_history": "no",
                    },
                    "credentials": {"api_key_env_var": 42, "properties_file": {}},
                }
            )
        )
        cfg = RuntimeConfig()
        assert cfg.model == "gpt-4.1"
        assert cfg.temperature == 1.0
        assert cfg.max_tokens == 2048
        assert cfg.max_steps == 50
        assert cfg.structured_retries == 2
        assert cfg.preserve_candidate_history is True
        assert cfg.api_key_env_var == "OPENAI_API_KEY"
        assert cfg.properties_file.name == "local.properties"

    def test_numeric_strings_are_accepted(self, config_file):
        config_file.write_text(json.dumps({"llm": {"temperature": "0.3"}, "agent": {"max_steps": "12"}}))
        cfg = RuntimeConfig()
        assert cfg.temperature == 0.3
        assert cfg.max_steps == 12


class TestApiKeyProviders:
    def test_static(self):
        assert StaticApiKeyProvider("sk-test").require_api_key() == "sk-test"

    def test_empty_key_raises_configuration_error(self):
        with pytest.raises(ConfigurationError) as exc_info:
            StaticApiKeyProvider("").require_api_key()
        assert "API key" in exc_info.value.user_message

    def test_env(self, monkeypatch):
        monkeypatch.setenv("YACHO_TEST_API_KEY", " sk-env ")
        assert EnvApiKeyProvider("YACHO_TEST_API_KEY").get_api_key() == "sk-env"

    def test_env_missing(self, monkeypatch):
        monkeypatch.delenv("YACHO_TEST_API_KEY", raising=False)
        provider = EnvApiKeyProvider("YACHO_TEST_API_KEY")
        assert provider.get_api_key() == ""
        with pytest.raises(ConfigurationError):
            provider.require_api_key()

    def test_properties_file_wins_over_environment(self, tmp_path, monkeypatch):
        props = tmp_path / "local.properties"
        props.write_text("# comment\nsdk.dir=/opt/android\nYACHO_TEST_API_KEY = sk-file\n")
        monkeypatch.setenv("YACHO_TEST_API_KEY", "sk-env")

        provider = PropertiesFileApiKeyProvider(props, "YACHO_TEST_API_KEY")

        assert provider.get_api_key() == "sk-file"

    def test_properties_file_falls_back_to_environment(self, tmp_path, monkeypatch):
        monkeypatch.setenv("YACHO_TEST_API_KEY", "sk-env")
        provider = PropertiesFileApiKeyProvider(tmp_path / "missing.properties", "YACHO_TEST_API_KEY")
        assert provider.get_api_key() == "sk-env"

    def test_default_provider_uses_config(self, config, monkeypatch):
        monkeypatch.delenv("YACHO_TEST_API_KEY", raising=False)
        config.properties_file.write_text("YACHO_TEST_API_KEY=sk-props\n")

        provider = default_api_key_provider(config)

        assert provider.require_api_key() == "sk-props"
