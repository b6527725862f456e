"""Tests for the npm, Python and test-runner tool groups."""

import json
import os
import stat
import sys

import pytest

from toolgate.gateway.errors import FailureCategory
from toolgate.tools import python as python_tools
from toolgate.tools.nodejs import NodeTools
from toolgate.tools.python import PythonTools
from toolgate.tools.testing import TestingTools as RunnerTools

posix_only = pytest.mark.skipif(os.name != "posix", reason="POSIX shell scripts")


def payload(result):
    assert result.success, result.text
    return json.loads(result.text)


def fake_executable(path, script):
    """Write an executable shell script at ``path``."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("#!/bin/sh\n" + script + "\n")
    path.chmod(path.stat().st_mode | stat.S_IEXEC)


# ═══════════════════════════════════════════════════════════════════════════════
# npm
# ═══════════════════════════════════════════════════════════════════════════════

class TestNodeTools:
    """Tests for the package.json tools (no npm required)."""

    @pytest.fixture
    def node(self, dispatcher_for):
        return dispatcher_for(NodeTools)

    def test_init_then_read(self, node, workspace):
        out = payload(node.call("npm_init", {"name": "demo", "description": "A demo"}))
        assert out["content"]["name"] == "demo"
        assert out["content"]["version"] == "1.0.0"

        package = json.loads((workspace / "package.json").read_text())
        assert package["description"] == "A demo"
        assert "test" in package["scripts"]

        read = payload(node.call("read_package_json", {}))
        assert read["packageJson"] == package
        assert read["dependencies"] == {}

    def test_init_defaults_to_workspace_name(self, node, workspace):
        out = payload(node.call("npm_init", {}))
        assert out["content"]["name"] == workspace.name

    def test_init_refuses_to_overwrite(self, node, workspace):
        (workspace / "package.json").write_text('{"name": "keep"}')
        result = node.call("npm_init", {"name": "other"})
        assert result.error.category == FailureCategory.OPERATIONAL
        assert json.loads((workspace / "package.json").read_text()) == {"name": "keep"}

        payload(node.call("npm_init", {"name": "other", "force": True}))
        assert json.loads((workspace / "package.json").read_text())["name"] == "other"

    def test_read_package_json_sections(self, node, workspace):
        (workspace / "package.json").write_text(json.dumps({
            "dependencies": {"express": "^4"},
            "devDependencies": {"jest": "^29"},
            "scripts": {"test": "jest"},
        }))
        out = payload(node.call("read_package_json", {}))
        assert out["dependencies"] == {"express": "^4"}
        assert out["devDependencies"] == {"jest": "^29"}
        assert out["scripts"] == {"test": "jest"}

    def test_read_missing_package_json(self, node):
        result = node.call("read_package_json", {})
        assert result.error.category == FailureCategory.OPERATIONAL

    def test_read_broken_package_json(self, node, workspace):
        (workspace / "package.json").write_text("{broken")
        result = node.call("read_package_json", {})
        assert "not valid JSON" in result.error.message

    def test_run_script_requires_name(self, node):
        result = node.call("npm_run_script", {})
        assert result.error.category == FailureCategory.INVALID_ARGUMENTS
        assert result.error.details["field"] == "script"


# ═══════════════════════════════════════════════════════════════════════════════
# Python
# ═══════════════════════════════════════════════════════════════════════════════

class TestPythonTools:
    """Tests for the Python tools, using the running interpreter."""

    @pytest.fixture
    def py(self, dispatcher_for, monkeypatch):
        monkeypatch.setattr(python_tools, "DEFAULT_PYTHON", sys.executable)
        return dispatcher_for(PythonTools)

    def test_run_script_with_args(self, py, workspace):
        (workspace / "hello.py").write_text("import sys\nprint('hello', *sys.argv[1:])\n")
        out = payload(py.call("python_run_script", {"script": "hello.py", "args": ["a", "b"]}))
        assert out["stdout"] == "hello a b"

    def test_run_script_failure(self, py, workspace):
        (workspace / "bad.py").write_text("raise SystemExit(3)\n")
        result = py.call("python_run_script", {"script": "bad.py"})
        assert result.error.category == FailureCategory.OPERATIONAL
        assert result.error.details["exit_code"] == 3

    def test_run_script_outside_workspace(self, py):
        result = py.call("python_run_script", {"script": "../evil.py"})
        assert "outside the workspace" in result.error.message

    def test_version(self, py):
        out = payload(py.call("python_version", {}))
        assert out["version"].startswith("Python 3")

    def test_missing_venv(self, py):
        result = py.call("python_version", {"venv": "nope"})
        assert result.error.category == FailureCategory.OPERATIONAL
        assert "not found in virtual environment 'nope'" in result.error.message

    def test_pip_install_needs_something(self, py):
        result = py.call("pip_install", {})
        assert result.error.category == FailureCategory.INVALID_ARGUMENTS
        assert result.error.details["field"] == "packages"

    @posix_only
    def test_pip_install_uses_venv_pip(self, py, workspace):
        fake_executable(workspace / "venv" / "bin" / "pip", 'echo "pip $@"')
        out = payload(py.call("pip_install", {"packages": ["requests", "rich"]}))
        assert out["stdout"] == "pip install requests rich"
        assert out["packages"] == ["requests", "rich"]

    @posix_only
    def test_pip_freeze_writes_requirements(self, py, workspace):
        fake_executable(workspace / "venv" / "bin" / "pip", 'echo "requests==2.31.0"; echo "rich==13.7.0"')
        out = payload(py.call("pip_freeze", {"output": "reqs/requirements.txt"}))
        assert out["packages"] == ["requests==2.31.0", "rich==13.7.0"]
        assert (workspace / "reqs" / "requirements.txt").read_text() == "requests==2.31.0\nrich==13.7.0\n"


# ═══════════════════════════════════════════════════════════════════════════════
# Test runners, build and dev server
# ═══════════════════════════════════════════════════════════════════════════════

class TestFrameworkDetection:
    """Tests for framework detection and test command assembly."""

    @pytest.fixture
    def testing(self, settings):
        return RunnerTools(settings)

    def test_empty_workspace_defaults_to_npm(self, testing):
        assert testing.detect_framework() == "npm"

    def test_python_project(self, testing, workspace):
        (workspace / "pyproject.toml").write_text("[project]\nname = 'x'\n")
        assert testing.detect_framework() == "pytest"

    def test_js_framework_wins(self, testing, workspace):
        (workspace / "pyproject.toml").write_text("")
        (workspace / "package.json").write_text(json.dumps({"devDependencies": {"vitest": "^1"}}))
        assert testing.detect_framework() == "npm"

    def test_package_json_without_tests(self, testing, workspace):
        (workspace / "setup.py").write_text("")
        (workspace / "package.json").write_text(json.dumps({"dependencies": {"express": "^4"}}))
        assert testing.detect_framework() == "pytest"

    def test_commands(self, testing):
        assert testing.test_command("jest", "", False) == ["npx", "jest"]
        assert testing.test_command("vitest", "src/a.test.ts", True) == ["npx", "vitest", "run", "src/a.test.ts", "--coverage"]
        assert testing.test_command("pytest", "-k slow", True) == ["pytest", "-k", "slow", "--cov"]

    def test_auto_npm_passes_pattern_through(self, testing):
        assert testing.test_command("auto", "", False) == ["npm", "test"]
        assert testing.test_command("auto", "unit", False) == ["npm", "test", "--", "unit"]


class TestTestingTools:
    """Tests for the testing tool handlers via the dispatcher."""

    @pytest.fixture
    def testing(self, dispatcher_for):
        return dispatcher_for(RunnerTools)

    def test_build_project(self, testing, workspace):
        out = payload(testing.call("build_project", {"command": "echo built > out.txt && echo done"}))
        assert out["stdout"] == "done"
        assert (workspace / "out.txt").read_text().strip() == "built"

    def test_build_failure(self, testing):
        result = testing.call("build_project", {"command": "echo nope >&2; exit 2"})
        assert result.error.category == FailureCategory.OPERATIONAL
        assert result.error.details["exit_code"] == 2

    def test_unknown_framework(self, testing):
        result = testing.call("run_tests", {"framework": "nose"})
        assert result.error.category == FailureCategory.INVALID_ARGUMENTS

    @posix_only
    def test_dev_server_in_foreground_stops_at_timeout(self, dispatcher_for, settings):
        quick = RunnerTools(settings.model_copy(update={"command_timeout": 1}))
        out = payload(dispatcher_for(quick).call("start_dev_server", {"command": "echo ready; sleep 30"}))
        assert out["background"] is False
        assert out["stdout"] == "ready"
        assert "timeout" in out["message"]

    def test_dev_server_in_foreground_that_exits(self, testing):
        out = payload(testing.call("start_dev_server", {"command": "echo done"}))
        assert out["background"] is False
        assert out["exit_code"] == 0
        assert out["stdout"] == "done"

    @posix_only
    def test_dev_server_in_background(self, testing):
        out = payload(testing.call("start_dev_server", {"command": "sleep 1", "background": True}))
        assert out["background"] is True
        assert out["pid"] > 0
