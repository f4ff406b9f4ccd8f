"""
Tests for the command line interface.

Tests:
- flatten: moddle dump to serialized context, with and without type resolution
- summary: text and JSON output
- info
"""

import json
import sys
import types

import pytest
from click.testing import CliRunner
from loguru import logger

from bpmn_context.core.observability import ObservabilityManager
from bpmn_context.tools.cli import cli

from conftest import BEHAVIOUR_TYPE_NAMES, definitions, element


@pytest.fixture(autouse=True)
def reset_observability():
    yield
    ObservabilityManager.reset()
    logger.remove()


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def moddle_file(tmp_path):
    """JSON dump of a small parsed document."""
    flow = {"$type": "bpmn:SequenceFlow", "id": "flow"}
    process = element(
        "bpmn:Process",
        "process",
        isExecutable=True,
        flowElements=[
            element("bpmn:StartEvent", "start"),
            element("bpmn:ScriptTask", "script", scriptFormat="python", script="print(1)"),
            flow,
        ],
    )
    data = {
        "rootHandler": {"element": definitions(process, name="CLI")},
        "references": [
            {"property": "bpmn:sourceRef", "id": "start", "element": flow},
            {"property": "bpmn:targetRef", "id": "script", "element": flow},
        ],
    }
    path = tmp_path / "moddle.json"
    path.write_text(json.dumps(data))
    return path


@pytest.fixture
def behaviour_module(monkeypatch):
    module = types.ModuleType("cli_behaviours")
    module.TYPES = {name: type(name, (), {}) for name in BEHAVIOUR_TYPE_NAMES}
    monkeypatch.setitem(sys.modules, "cli_behaviours", module)
    return module


class TestFlatten:
    def test_writes_serialized_context(self, runner, moddle_file, tmp_path):
        output = tmp_path / "context.json"

        result = runner.invoke(cli, ["flatten", str(moddle_file), "-o", str(output)])

        assert result.exit_code == 0, result.output
        snapshot = json.loads(output.read_text())
        assert snapshot["id"] == "Def_1"
        assert snapshot["name"] == "CLI"
        assert [a["id"] for a in snapshot["activities"]] == ["start", "script"]
        assert snapshot["sequence_flows"][0]["source_id"] == "start"
        assert snapshot["scripts"][0]["name"] == "script"

    def test_resolves_types(self, runner, moddle_file, tmp_path, behaviour_module):
        output = tmp_path / "context.json"

        result = runner.invoke(
            cli,
            ["flatten", str(moddle_file), "-o", str(output), "--types", "cli_behaviours:TYPES"],
        )

        assert result.exit_code == 0, result.output
        assert output.exists()

    def test_unknown_type_fails(self, runner, moddle_file, tmp_path, behaviour_module):
        del behaviour_module.TYPES["ScriptTask"]

        result = runner.invoke(
            cli, ["flatten", str(moddle_file), "--types", "cli_behaviours:TYPES"]
        )

        assert result.exit_code == 1
        assert "Unknown activity type bpmn:ScriptTask" in result.output

    def test_bad_types_reference(self, runner, moddle_file):
        result = runner.invoke(cli, ["flatten", str(moddle_file), "--types", "no_such_module_xyz"])

        assert result.exit_code != 0
        assert "Cannot import no_such_module_xyz" in result.output

    def test_missing_root_fails(self, runner, tmp_path):
        path = tmp_path / "empty.json"
        path.write_text(json.dumps({"references": []}))

        result = runner.invoke(cli, ["flatten", str(path)])

        assert result.exit_code == 1
        assert "no root element" in result.output


class TestSummary:
    @pytest.fixture
    def context_file(self, runner, moddle_file, tmp_path):
        output = tmp_path / "context.json"
        runner.invoke(cli, ["flatten", str(moddle_file), "-o", str(output)])
        return output

    def test_json_summary(self, runner, context_file):
        result = runner.invoke(cli, ["summary", str(context_file), "--format", "json"])

        assert result.exit_code == 0, result.output
        summary = json.loads(result.output)
        assert summary == {
            "id": "Def_1",
            "name": "CLI",
            "processes": 1,
            "executable_processes": ["process"],
            "activities": 2,
            "sequence_flows": 1,
            "message_flows": 0,
            "data_objects": 0,
            "scripts": 1,
        }

    def test_text_summary(self, runner, context_file):
        result = runner.invoke(cli, ["summary", str(context_file)])

        assert result.exit_code == 0, result.output
        assert "Definition: Def_1 (CLI)" in result.output
        assert "Executable: process" in result.output

    def test_invalid_context(self, runner, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{}")

        result = runner.invoke(cli, ["summary", str(path)])

        assert result.exit_code == 1
        assert "Error:" in result.output


def test_info(runner):
    result = runner.invoke(cli, ["info"])

    assert result.exit_code == 0
    info = json.loads(result.output)
    assert info["name"] == "BPMN Context"
    assert info["version"] == "0.1.0"
    assert "scripts" in info["entity_lists"]
