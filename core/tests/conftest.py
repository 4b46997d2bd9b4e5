"""Shared fixtures for yacho tests."""

import pytest

from yacho.config import RuntimeConfig
from yacho.graph.context import RunContext
from yacho.llm.mock import MockLLMProvider
from yacho.observability import clear_trace_context
from yacho.runner.tool_registry import ToolRegistry


@pytest.fixture
def config(tmp_path):
    # Every field explicit so ~/.yacho/configuration.json is never read
    return RuntimeConfig(
        model="test-model",
        fixing_model="test-fixer",
        temperature=1.0,
        max_tokens=256,
        api_base=None,
        max_steps=50,
        structured_retries=2,
        preserve_candidate_history=True,
        api_key_env_var="YACHO_TEST_API_KEY",
        properties_file=tmp_path / "local.properties",
    )


@pytest.fixture
def make_ctx(config):
    def _make(llm=None, tools=None, **kwargs):
        return RunContext(
            llm=llm if llm is not None else MockLLMProvider(),
            tools=tools if tools is not None else ToolRegistry(),
            config=kwargs.pop("config", config),
            **kwargs,
        )

    return _make


@pytest.fixture(autouse=True)
def _reset_trace_context():
    clear_trace_context()
    yield
    clear_trace_context()
