"""Shell command execution and environment inspection."""

import os
import shutil
from typing import Any, Dict

from toolgate.gateway.errors import ToolError
from toolgate.gateway.schema import number, string
from toolgate.tools.base import ToolGroup


class ShellTools(ToolGroup):
    """execute_command, get_environment, which_command."""

    name = "shell"

    def tools(self):
        return [
            self.tool(
                "execute_command",
                "Execute a shell command in the workspace directory",
                {
                    "command": string("The command to execute", required=True),
                    "cwd": string("Working directory (relative to workspace)", default="."),
                    "timeout": number(
                        "Timeout in seconds (default: 30); the process is killed when it expires",
                        default=self.settings.command_timeout,
                    ),
                },
                self.execute_command,
            ),
            self.tool(
                "get_environment",
                "Get environment variables",
                {"variable": string("Specific variable to get (or all if not specified)")},
                self.get_environment,
            ),
            self.tool(
                "which_command",
                "Find the path to an executable command",
                {"command": string("The command to locate", required=True)},
                self.which_command,
            ),
        ]

    def execute_command(self, args: Dict[str, Any]) -> Dict[str, Any]:
        if args["timeout"] <= 0:
            raise ToolError("timeout must be positive")
        cwd = self.resolve(args["cwd"])
        result = self.run(args["command"], cwd=cwd, timeout=args["timeout"], shell=True)
        return {"success": True, **result.to_dict()}

    def get_environment(self, args: Dict[str, Any]) -> Dict[str, Any]:
        variable = args.get("variable")
        if variable:
            return {"success": True, "variable": variable, "value": os.environ.get(variable)}
        return {"success": True, "environment": dict(os.environ)}

    def which_command(self, args: Dict[str, Any]) -> Dict[str, Any]:
        path = shutil.which(args["command"])
        if path is None:
            raise ToolError(f"Command not found: {args['command']}", details={"command": args["command"]})
        return {"success": True, "command": args["command"], "path": path}
