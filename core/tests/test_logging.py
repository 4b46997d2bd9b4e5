"""Tests for structured logging and trace context propagation."""

import asyncio
import json
import logging

import pytest

from yacho.observability import (
    clear_trace_context,
    configure_logging,
    get_trace_context,
    set_trace_context,
)
from yacho.observability.logging import HumanReadableFormatter, StructuredFormatter


def _record(message="hello", **extra):
    record = logging.LogRecord("yacho.test", logging.INFO, __file__, 1, message, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_set_trace_context_merges_fields():
    set_trace_context(run_id="run-1", graph_id="bird-identification")
    set_trace_context(node_id="evaluate_bird")
    assert get_trace_context() == {
        "run_id": "run-1",
        "graph_id": "bird-identification",
        "node_id": "evaluate_bird",
    }
    clear_trace_context()
    assert get_trace_context() == {}


def test_structured_formatter_includes_context_and_extras():
    set_trace_context(run_id="run-1", node_id="structured_extraction")

    line = StructuredFormatter().format(_record("\x1b[32mdone\x1b[0m", event="llm_call", tokens_used=12))
    data = json.loads(line)

    assert data["message"] == "done"
    assert data["level"] == "info"
    assert data["run_id"] == "run-1"
    assert data["node_id"] == "structured_extraction"
    assert data["event"] == "llm_call"
    assert data["tokens_used"] == 12
    assert "latency_ms" not in data


def test_human_formatter_prefixes_context():
    set_trace_context(run_id="20261019T000000_1a2b3c4d", graph_id="g", node_id="n")
    line = HumanReadableFormatter().format(_record("step", event="node_complete"))
    assert "[run:1a2b3c4d | graph:g | node:n]" in line
    assert line.rstrip().endswith("step [node_complete]")


@pytest.mark.asyncio
async def test_concurrent_tasks_keep_separate_context():
    async def run(run_id):
        set_trace_context(run_id=run_id)
        await asyncio.sleep(0)
        return get_trace_context()["run_id"]

    results = await asyncio.gather(run("a"), run("b"))

    assert results == ["a", "b"]


def test_configure_logging_installs_one_handler():
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    try:
        configure_logging(level="DEBUG", format="human")
        configure_logging(level="WARNING", format="human")
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, HumanReadableFormatter)
        assert root.level == logging.WARNING
    finally:
        root.handlers[:] = saved_handlers
        root.setLevel(saved_level)
