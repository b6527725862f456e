"""Python virtualenv and pip tools."""

import os
from pathlib import Path
from typing import Any, Dict, Optional

from toolgate.gateway.errors import ArgumentError, ToolError
from toolgate.gateway.schema import array, string
from toolgate.tools.base import ToolGroup

DEFAULT_PYTHON = "python3"


class PythonTools(ToolGroup):
    """python_create_venv, pip_install, pip_freeze, python_run_script, python_version."""

    name = "python"

    def tools(self):
        return [
            self.tool(
                "python_create_venv",
                "Create a Python virtual environment",
                {"name": string("Virtual environment name", default="venv")},
                self.python_create_venv,
            ),
            self.tool(
                "pip_install",
                "Install Python packages using pip",
                {
                    "packages": array(string(), "Package names to install"),
                    "requirements": string("Path to requirements.txt file"),
                    "venv": string("Virtual environment to use", default="venv"),
                },
                self.pip_install,
            ),
            self.tool(
                "pip_freeze",
                "Generate requirements.txt from installed packages",
                {
                    "venv": string("Virtual environment to use", default="venv"),
                    "output": string("Output file path", default="requirements.txt"),
                },
                self.pip_freeze,
            ),
            self.tool(
                "python_run_script",
                "Run a Python script",
                {
                    "script": string("Path to Python script", required=True),
                    "args": array(string(), "Arguments to pass to the script", default=[]),
                    "venv": string("Virtual environment to use"),
                },
                self.python_run_script,
            ),
            self.tool(
                "python_version",
                "Get Python version information",
                {"venv": string("Virtual environment to check")},
                self.python_version,
            ),
        ]

    def venv_executable(self, venv: str, program: str) -> Path:
        """Path of ``program`` inside the workspace virtualenv ``venv``."""
        bin_dir = "Scripts" if os.name == "nt" else "bin"
        executable = self.resolve(venv) / bin_dir / program
        if not executable.exists() and not executable.with_suffix(".exe").exists():
            raise ToolError(
                f"{program} not found in virtual environment '{venv}'",
                details={"venv": venv, "path": str(executable)},
            )
        return executable

    def interpreter(self, venv: Optional[str]) -> str:
        return str(self.venv_executable(venv, "python")) if venv else DEFAULT_PYTHON

    # ── Handlers ──────────────────────────────────────────────────────────

    def python_create_venv(self, args: Dict[str, Any]) -> Dict[str, Any]:
        target = self.resolve(args["name"])
        result = self.run([DEFAULT_PYTHON, "-m", "venv", str(target)], timeout=self.settings.install_timeout)
        return {
            "success": True,
            "venv": args["name"],
            "path": str(target),
            "stdout": result.stdout,
            "stderr": result.stderr,
        }

    def pip_install(self, args: Dict[str, Any]) -> Dict[str, Any]:
        if not args.get("requirements") and not args.get("packages"):
            raise ArgumentError("packages", "either packages or requirements must be specified")
        pip = str(self.venv_executable(args["venv"], "pip"))
        if args.get("requirements"):
            requirements = self.resolve(args["requirements"])
            argv = [pip, "install", "-r", str(requirements)]
            packages = [f"from {args['requirements']}"]
        else:
            argv = [pip, "install", *args["packages"]]
            packages = args["packages"]

        result = self.run(argv, timeout=self.settings.install_timeout)
        return {
            "success": True,
            "command": result.command,
            "packages": packages,
            "stdout": result.stdout,
            "stderr": result.stderr,
        }

    def pip_freeze(self, args: Dict[str, Any]) -> Dict[str, Any]:
        output = self.resolve(args["output"])
        pip = str(self.venv_executable(args["venv"], "pip"))
        result = self.run([pip, "freeze"])
        output.write_text(result.stdout + "\n" if result.stdout else "", encoding="utf-8")
        return {
            "success": True,
            "output": args["output"],
            "packages": result.stdout.splitlines(),
        }

    def python_run_script(self, args: Dict[str, Any]) -> Dict[str, Any]:
        script = self.resolve(args["script"])
        argv = [self.interpreter(args.get("venv")), str(script), *args["args"]]
        result = self.run(argv, timeout=self.settings.install_timeout)
        return {
            "success": True,
            "script": args["script"],
            "stdout": result.stdout,
            "stderr": result.stderr,
        }

    def python_version(self, args: Dict[str, Any]) -> Dict[str, Any]:
        result = self.run([self.interpreter(args.get("venv")), "--version"])
        # Python 2 prints the version on stderr.
        return {"success": True, "version": result.stdout or result.stderr}
