"""Subprocess execution with timeouts that actually stop the process."""

from __future__ import annotations

import logging
import os
import shlex
import signal
import subprocess
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple, Union

from toolgate.gateway.errors import CommandFailedError, CommandTimeoutError, ToolError

logger = logging.getLogger(__name__)

Command = Union[str, Sequence[str]]


@dataclass
class CommandResult:
    """Outcome of a finished subprocess."""

    command: str
    exit_code: int
    stdout: str
    stderr: str
    duration_ms: int = 0

    @property
    def ok(self) -> bool:
        return self.exit_code == 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "command": self.command,
            "exit_code": self.exit_code,
            "stdout": self.stdout,
            "stderr": self.stderr,
        }


def display_command(command: Command) -> str:
    return command if isinstance(command, str) else shlex.join(list(command))


def run_command(
    command: Command,
    cwd: Path,
    timeout: float,
    *,
    shell: Optional[bool] = None,
    check: bool = True,
    env: Optional[Mapping[str, str]] = None,
    max_output_chars: int = 200_000,
) -> CommandResult:
    """
    Run ``command`` in ``cwd`` and wait at most ``timeout`` seconds.

    A string runs through the shell, a sequence runs directly unless
    ``shell`` says otherwise. The child gets its own session so that on
    timeout the whole process group is killed, not just the shell.

    Raises:
        CommandTimeoutError: the deadline passed; the process group is gone.
        CommandFailedError: non-zero exit and ``check`` is true.
        ToolError: the executable does not exist.
    """
    if shell is None:
        shell = isinstance(command, str)
    shown = display_command(command)
    merged_env = {**os.environ, **env} if env else None
    if not Path(cwd).is_dir():
        raise ToolError(f"Working directory does not exist: {cwd}", details={"cwd": str(cwd)})

    logger.debug("running %r in %s (timeout %ss)", shown, cwd, timeout)
    t0 = time.perf_counter()
    try:
        process = subprocess.Popen(
            command,
            cwd=str(cwd),
            shell=shell,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            errors="replace",
            env=merged_env,
            start_new_session=(os.name == "posix"),
        )
    except FileNotFoundError:
        name = command if isinstance(command, str) else command[0]
        raise ToolError(f"Command not found: {name}", details={"command": shown})

    try:
        stdout, stderr = process.communicate(timeout=timeout)
    except subprocess.TimeoutExpired:
        stdout, stderr = terminate_process_tree(process)
        raise CommandTimeoutError(
            shown,
            timeout,
            process.pid,
            stdout=truncate(stdout.strip(), max_output_chars),
            stderr=truncate(stderr.strip(), max_output_chars),
        )

    result = CommandResult(
        command=shown,
        exit_code=process.returncode,
        stdout=truncate(stdout.strip(), max_output_chars),
        stderr=truncate(stderr.strip(), max_output_chars),
        duration_ms=int((time.perf_counter() - t0) * 1000),
    )
    if check and not result.ok:
        raise CommandFailedError(shown, result.exit_code, result.stdout, result.stderr)
    return result


def terminate_process_tree(process: subprocess.Popen) -> Tuple[str, str]:
    """Kill ``process`` and everything in its process group, reap it and return its output."""
    if process.poll() is None:
        try:
            if os.name == "posix":
                os.killpg(process.pid, signal.SIGKILL)
            else:
                process.kill()
        except ProcessLookupError:
            pass
    try:
        stdout, stderr = process.communicate(timeout=5)
    except subprocess.TimeoutExpired:
        # A grandchild left the group and still holds our pipes.
        logger.warning("process %s killed but its pipes are still open", process.pid)
        process.kill()
        process.wait(timeout=5)
        return "", ""
    return stdout or "", stderr or ""


def spawn_detached(command: str, cwd: Path) -> int:
    """Start ``command`` in the background, detached from the server. Returns the pid."""
    try:
        process = subprocess.Popen(
            command,
            cwd=str(cwd),
            shell=True,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            start_new_session=(os.name == "posix"),
        )
    except FileNotFoundError:
        raise ToolError(f"Command not found: {command}")
    # reaper
    threading.Thread(target=process.wait, daemon=True).start()
    logger.info("started background process pid=%s: %s", process.pid, command)
    return process.pid


def truncate(text: str, limit: int) -> str:
    if limit <= 0 or len(text) <= limit:
        return text
    omitted = len(text) - limit
    return f"{text[: limit // 2]}\n... [{omitted} chars omitted] ...\n{text[-(limit // 2):]}"
