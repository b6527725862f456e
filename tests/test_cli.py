"""Tests for the command line interface."""

import json

import pytest
from click.testing import CliRunner

from toolgate import __version__
from toolgate.cli.main import cli
from toolgate.config import Config


@pytest.fixture
def runner(workspace, monkeypatch):
    """A CliRunner with no global config and no inherited environment overrides."""
    monkeypatch.setattr(Config, "GLOBAL_CONFIG_DIR", workspace / ".global")
    for var in ("WORKSPACE_PATH", "TOOLGATE_LOG_LEVEL", "GITHUB_TOKEN", "GITHUB_API_KEY", "GITLAB_API_KEY"):
        monkeypatch.delenv(var, raising=False)
    return CliRunner()


def invoke(runner, workspace, *args):
    return runner.invoke(cli, ["--workspace", str(workspace), "--log-level", "WARNING", *args], obj={})


class TestCli:
    """Tests for the toolgate command group."""

    def test_version(self, runner):
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_tools_json(self, runner, workspace):
        result = invoke(runner, workspace, "tools", "--json")
        assert result.exit_code == 0, result.output
        names = [entry["name"] for entry in json.loads(result.output)]
        assert "read_file" in names
        assert "github_get_job_logs" not in names

    def test_tools_gitops_profile(self, runner, workspace):
        result = invoke(runner, workspace, "tools", "--json", "--profile", "gitops")
        names = [entry["name"] for entry in json.loads(result.output)]
        assert names[0].startswith("github_")

    def test_tools_table(self, runner, workspace):
        result = invoke(runner, workspace, "tools")
        assert result.exit_code == 0
        assert "read_file" in result.output
        assert "37 tools" in result.output

    def test_tools_plain(self, runner, workspace):
        result = invoke(runner, workspace, "tools", "--plain")
        assert result.exit_code == 0, result.output
        lines = result.output.splitlines()
        assert lines[0] == "Available tools:"
        assert "- read_file: Read the contents of a file" in lines
        assert len(lines) == 38

    def test_call_round_trip(self, runner, workspace):
        result = invoke(runner, workspace, "call", "write_file", "--args", '{"path": "a.txt", "content": "hi"}')
        assert result.exit_code == 0, result.output
        assert (workspace / "a.txt").read_text() == "hi"

        result = invoke(runner, workspace, "call", "read_file", "-a", '{"path": "a.txt"}')
        assert result.exit_code == 0
        assert json.loads(result.output)["content"] == "hi"

    def test_call_failure_exits_1(self, runner, workspace):
        result = invoke(runner, workspace, "call", "read_file", "--args", '{"path": "missing.txt"}')
        assert result.exit_code == 1
        assert "operational" in result.output

    def test_call_unknown_tool(self, runner, workspace):
        result = invoke(runner, workspace, "call", "no_such_tool")
        assert result.exit_code == 1
        assert "unknown_tool" in result.output

    def test_call_bad_json_args(self, runner, workspace):
        result = invoke(runner, workspace, "call", "read_file", "--args", "{path:")
        assert result.exit_code == 2
        assert "not valid JSON" in result.output

    def test_bad_config_exits_1(self, runner, workspace):
        config_dir = workspace / ".toolgate"
        config_dir.mkdir()
        (config_dir / "config.yaml").write_text("max_workers: 0\n")

        result = invoke(runner, workspace, "tools")
        assert result.exit_code == 1
        assert "Invalid configuration" in result.output

    def test_init(self, runner, workspace):
        result = invoke(runner, workspace, "init")
        assert result.exit_code == 0
        assert (workspace / ".toolgate" / "config.yaml").exists()
