"""Tests for shell tools and subprocess handling."""

import json
import os
import sys
import time
from pathlib import Path

import pytest

from toolgate.gateway.errors import CommandFailedError, CommandTimeoutError, FailureCategory, ToolError
from toolgate.tools.process import run_command, truncate
from toolgate.tools.shell import ShellTools

posix_only = pytest.mark.skipif(os.name != "posix", reason="POSIX process groups")


def payload(result):
    assert result.success, result.text
    return json.loads(result.text)


def alive(pid: int) -> bool:
    """True while ``pid`` is a running (non-zombie) process."""
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    stat = Path(f"/proc/{pid}/stat")
    if stat.exists():
        try:
            return stat.read_text().rsplit(")", 1)[1].split()[0] != "Z"
        except (OSError, IndexError):
            return False
    return True


def wait_dead(pid: int, timeout: float = 3.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if not alive(pid):
            return True
        time.sleep(0.05)
    return not alive(pid)


@pytest.fixture
def shell(dispatcher_for):
    return dispatcher_for(ShellTools)


# ═══════════════════════════════════════════════════════════════════════════════
# run_command
# ═══════════════════════════════════════════════════════════════════════════════

class TestRunCommand:
    """Tests for run_command()."""

    def test_captures_output(self, workspace):
        result = run_command([sys.executable, "-c", "print('out')"], cwd=workspace, timeout=10)
        assert result.ok
        assert result.stdout == "out"

    def test_non_zero_exit_raises(self, workspace):
        with pytest.raises(CommandFailedError) as exc:
            run_command("echo boom >&2; exit 3", cwd=workspace, timeout=10)
        assert exc.value.exit_code == 3
        assert exc.value.stderr == "boom"

    def test_non_zero_exit_without_check(self, workspace):
        result = run_command("exit 4", cwd=workspace, timeout=10, check=False)
        assert result.exit_code == 4

    def test_missing_binary(self, workspace):
        with pytest.raises(ToolError, match="Command not found"):
            run_command(["definitely-not-a-real-binary-xyz"], cwd=workspace, timeout=10)

    def test_missing_cwd(self, workspace):
        with pytest.raises(ToolError, match="does not exist"):
            run_command("true", cwd=workspace / "missing", timeout=10)

    def test_env_merged(self, workspace):
        result = run_command("echo $TOOLGATE_PROBE", cwd=workspace, timeout=10, env={"TOOLGATE_PROBE": "42"})
        assert result.stdout == "42"

    @posix_only
    def test_timeout_kills_process_group(self, workspace):
        # the background sleep is a grandchild; it must die with the shell
        command = "sleep 30 & echo $! > child.pid; wait"
        started = time.monotonic()
        with pytest.raises(CommandTimeoutError) as exc:
            run_command(command, cwd=workspace, timeout=1)
        assert time.monotonic() - started < 10

        assert wait_dead(exc.value.pid)
        child = int((workspace / "child.pid").read_text().strip())
        assert wait_dead(child)

    @posix_only
    def test_timeout_keeps_partial_output(self, workspace):
        with pytest.raises(CommandTimeoutError) as exc:
            run_command("echo started; echo warming >&2; sleep 30", cwd=workspace, timeout=1)
        assert exc.value.stdout == "started"
        assert exc.value.stderr == "warming"

    def test_truncate(self):
        assert truncate("short", 100) == "short"
        text = "a" * 50 + "b" * 50
        clipped = truncate(text, 20)
        assert clipped.startswith("a" * 10)
        assert clipped.endswith("b" * 10)
        assert "80 chars omitted" in clipped


# ═══════════════════════════════════════════════════════════════════════════════
# Shell tools
# ═══════════════════════════════════════════════════════════════════════════════

class TestShellTools:
    """Tests for the shell tool handlers via the dispatcher."""

    def test_execute_command(self, shell, workspace):
        (workspace / "sub").mkdir()
        out = payload(shell.call("execute_command", {"command": "pwd", "cwd": "sub"}))
        assert Path(out["stdout"]).resolve() == workspace / "sub"
        assert out["exit_code"] == 0

    def test_execute_command_failure(self, shell):
        result = shell.call("execute_command", {"command": "echo nope >&2; exit 2"})
        assert result.error.category == FailureCategory.OPERATIONAL
        assert result.error.details["exit_code"] == 2
        assert result.error.details["stderr"] == "nope"

    def test_cwd_outside_workspace(self, shell):
        result = shell.call("execute_command", {"command": "ls", "cwd": ".."})
        assert "outside the workspace" in result.error.message

    @posix_only
    def test_timeout_reports_and_kills(self, shell):
        started = time.monotonic()
        result = shell.call("execute_command", {"command": "sleep 5", "timeout": 1})
        elapsed = time.monotonic() - started

        assert result.error.category == FailureCategory.OPERATIONAL
        assert "timed out" in result.error.message
        assert elapsed < 4
        assert wait_dead(result.error.details["pid"])

    def test_non_positive_timeout(self, shell):
        result = shell.call("execute_command", {"command": "true", "timeout": 0})
        assert not result.success

    def test_timeout_must_be_a_number(self, shell):
        result = shell.call("execute_command", {"command": "true", "timeout": "soon"})
        assert result.error.category == FailureCategory.INVALID_ARGUMENTS
        assert result.error.details["field"] == "timeout"

    def test_get_environment(self, shell, monkeypatch):
        monkeypatch.setenv("TOOLGATE_TEST_VAR", "yes")
        out = payload(shell.call("get_environment", {"variable": "TOOLGATE_TEST_VAR"}))
        assert out["value"] == "yes"
        everything = payload(shell.call("get_environment", {}))
        assert everything["environment"]["TOOLGATE_TEST_VAR"] == "yes"

    def test_which_command(self, shell):
        out = payload(shell.call("which_command", {"command": "sh"}))
        assert out["path"].endswith("sh")
        missing = shell.call("which_command", {"command": "definitely-not-a-real-binary-xyz"})
        assert missing.error.category == FailureCategory.OPERATIONAL
