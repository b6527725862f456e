"""Error taxonomy for the dispatch gateway and the tools behind it."""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional


class FailureCategory(str, Enum):
    """Why a call produced a failure envelope."""

    UNKNOWN_TOOL = "unknown_tool"
    INVALID_ARGUMENTS = "invalid_arguments"
    OPERATIONAL = "operational"
    INTERNAL = "internal"
    TRANSPORT = "transport"


class ToolgateError(Exception):
    """Base class for every error raised by toolgate itself."""


# ── Startup ───────────────────────────────────────────────────────────────


class ConfigurationError(ToolgateError):
    """Raised while assembling the server. Fatal at startup."""


class DuplicateToolError(ConfigurationError):
    """Raised when two descriptors share a name."""

    def __init__(self, name: str):
        super().__init__(f"Tool '{name}' is already registered")
        self.name = name


# ── Per-call ──────────────────────────────────────────────────────────────


class ToolNotFoundError(ToolgateError):
    """Raised by a registry lookup for a name it does not hold."""

    def __init__(self, name: str):
        super().__init__(f"Unknown tool: {name}")
        self.name = name


class ArgumentError(ToolgateError):
    """Raised when call arguments do not satisfy a tool's contract."""

    def __init__(
        self,
        field: str,
        reason: str,
        expected: Optional[str] = None,
        actual: Any = None,
    ):
        message = f"Invalid argument '{field}': {reason}"
        if expected:
            message += f" (expected {expected})"
        super().__init__(message)
        self.field = field
        self.reason = reason
        self.expected = expected
        self.actual = actual

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"field": self.field, "reason": self.reason}
        if self.expected:
            data["expected"] = self.expected
        if self.actual is not None:
            data["actual"] = repr(self.actual)[:200]
        return data


class ToolError(ToolgateError):
    """
    An expected, operational failure reported by a tool handler.

    Raised when the external collaborator (filesystem, subprocess, remote
    API) reports a problem. The message is passed to the caller verbatim.
    """

    def __init__(self, message: str, *, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = dict(details or {})


class PathOutsideWorkspaceError(ToolError):
    """Raised when a requested path resolves outside the workspace root."""

    def __init__(self, path: str):
        super().__init__(
            f"Access denied: path '{path}' is outside the workspace",
            details={"path": path},
        )


class CommandFailedError(ToolError):
    """Raised when a subprocess exits with a non-zero status."""

    def __init__(self, command: str, exit_code: int, stdout: str = "", stderr: str = ""):
        tail = (stderr or stdout).strip()
        message = f"Command failed with exit code {exit_code}: {command}"
        if tail:
            message += f"\n{tail}"
        super().__init__(
            message,
            details={
                "command": command,
                "exit_code": exit_code,
                "stdout": stdout,
                "stderr": stderr,
            },
        )
        self.exit_code = exit_code
        self.stdout = stdout
        self.stderr = stderr


class CommandTimeoutError(ToolError):
    """Raised when a subprocess outlives its timeout and is killed."""

    def __init__(
        self,
        command: str,
        timeout: float,
        pid: Optional[int] = None,
        stdout: str = "",
        stderr: str = "",
    ):
        super().__init__(
            f"Command timed out after {timeout:g}s and was terminated: {command}",
            details={"command": command, "timeout": timeout, "pid": pid},
        )
        self.timeout = timeout
        self.pid = pid
        self.stdout = stdout
        self.stderr = stderr


class MissingCredentialError(ToolError):
    """Raised when a remote tool runs without its API token configured."""

    def __init__(self, env_var: str, service: str):
        super().__init__(
            f"{env_var} environment variable is not set. "
            f"Please set it to use {service} tools.",
            details={"env_var": env_var},
        )


class RemoteAPIError(ToolError):
    """Raised when a remote API answers with an error status."""

    def __init__(self, service: str, status_code: int, body: str):
        super().__init__(
            f"{service} API error ({status_code}): {body[:2000]}",
            details={"status_code": status_code},
        )
        self.status_code = status_code
        self.body = body
