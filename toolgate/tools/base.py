"""
toolgate tool groups - Base class for capability modules.

Each capability module (filesystem, git, GitHub, ...) is a ToolGroup bound
to the process Settings. ``tools()`` returns the descriptors it contributes
to the registry; handlers are bound methods, so they see the settings
without reading global state.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

from toolgate.config import Settings
from toolgate.gateway.schema import ArgumentContract, FieldSpec, ToolDef
from toolgate.tools.paths import relative_to_workspace, resolve_in_workspace
from toolgate.tools.process import Command, CommandResult, run_command


class ToolGroup(ABC):
    """
    Abstract base class for a group of related tools.

    Example:
        >>> class EchoTools(ToolGroup):
        ...     name = "echo"
        ...     def tools(self):
        ...         return [self.tool("echo", "Echo text", {"msg": string(required=True)}, self.echo)]
        ...     def echo(self, args):
        ...         return args["msg"]
    """

    name: str = ""

    def __init__(self, settings: Settings):
        """
        Initialize the group.

        Args:
            settings: Process-wide settings.
        """
        self.settings = settings

    @abstractmethod
    def tools(self) -> List[ToolDef]:
        """Return the descriptors this group contributes."""
        pass

    def close(self) -> None:
        """Release resources held by the group. Called once when the server stops."""

    # ── Helpers for subclasses ────────────────────────────────────────────

    def tool(
        self,
        name: str,
        description: str,
        fields: Optional[Dict[str, FieldSpec]] = None,
        handler: Optional[Callable[[Dict[str, Any]], Any]] = None,
    ) -> ToolDef:
        """Build a ToolDef tagged with this group's name."""
        return ToolDef(
            name=name,
            description=description,
            contract=ArgumentContract(fields=fields or {}),
            handler=handler,
            group=self.name,
        )

    @property
    def workspace(self) -> Path:
        return self.settings.workspace_root

    def resolve(self, path: Union[str, Path] = ".") -> Path:
        """Workspace-confined absolute path. Raises before any I/O."""
        return resolve_in_workspace(self.workspace, path)

    def relative(self, path: Path) -> str:
        return relative_to_workspace(self.workspace, path)

    def run(
        self,
        command: Command,
        *,
        cwd: Optional[Path] = None,
        timeout: Optional[float] = None,
        check: bool = True,
        shell: Optional[bool] = None,
        env: Optional[Dict[str, str]] = None,
    ) -> CommandResult:
        """Run a command in the workspace with the configured default timeout."""
        return run_command(
            command,
            cwd=cwd or self.workspace,
            timeout=timeout if timeout is not None else self.settings.command_timeout,
            shell=shell,
            check=check,
            env=env,
            max_output_chars=self.settings.max_output_chars,
        )
