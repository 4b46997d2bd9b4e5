"""Tests for the yacho command line."""

import json
import logging

import pytest
from click.testing import CliRunner

from yacho import config as config_module
from yacho.identifier.__main__ import cli


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    monkeypatch.setattr(config_module, "YACHO_CONFIG_FILE", tmp_path / "configuration.json")
    monkeypatch.delenv("YACHO_MODEL", raising=False)
    monkeypatch.delenv("YACHO_FIXING_MODEL", raising=False)


@pytest.fixture
def restore_logging():
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    yield
    root.handlers[:] = saved_handlers
    root.setLevel(saved_level)


def test_info_json():
    result = CliRunner().invoke(cli, ["info", "--json"])

    assert result.exit_code == 0, result.output
    data = json.loads(result.output)
    assert data["name"] == "bird-identification"
    assert data["entry_node"] == "update_system_prompt"
    assert data["tools"] == ["__ask_user_in_ui__", "__exit__"]
    assert "evaluate_bird" in data["nodes"]


def test_info_text():
    result = CliRunner().invoke(cli, ["info"])

    assert result.exit_code == 0, result.output
    assert "Agent: bird-identification" in result.output
    assert "Tools: __ask_user_in_ui__, __exit__" in result.output


def test_run_mock_asks_and_answers(restore_logging):
    result = CliRunner().invoke(
        cli,
        ["run", "A small green bird with a white eye ring", "--mock"],
        input="Yes, white belly, on a plum tree\n",
    )

    assert result.exit_code == 0, result.output
    assert "Was the belly white" in result.output
    assert "reliabilityScore: 95" in result.output
    assert "Identified a wild bird. Chat finished" in result.output
