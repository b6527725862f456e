"""Test, build, lint and dev-server tools."""

import json
import shlex
from typing import Any, Dict, List

from toolgate.gateway.errors import CommandTimeoutError
from toolgate.gateway.schema import boolean, enum, string
from toolgate.tools.base import ToolGroup
from toolgate.tools.process import spawn_detached

LINT_TIMEOUT = 60

FRAMEWORK_COMMANDS = {
    "jest": ["npx", "jest"],
    "vitest": ["npx", "vitest", "run"],
    "pytest": ["pytest"],
    "mocha": ["npx", "mocha"],
}
JS_FRAMEWORKS = ("jest", "vitest", "mocha")
PYTHON_MARKERS = ("pyproject.toml", "setup.py", "setup.cfg", "pytest.ini", "tox.ini")


class TestingTools(ToolGroup):
    """run_tests, build_project, start_dev_server, lint_code."""

    name = "testing"

    def tools(self):
        return [
            self.tool(
                "run_tests",
                "Run test suite (automatically detects test framework)",
                {
                    "framework": enum(
                        ["jest", "vitest", "pytest", "mocha", "auto"],
                        "Test framework to use (default: auto-detect)",
                        default="auto",
                    ),
                    "pattern": string("Test file pattern to run"),
                    "coverage": boolean("Generate coverage report", default=False),
                },
                self.run_tests,
            ),
            self.tool(
                "build_project",
                "Build the project",
                {"command": string("Build command (default: npm run build)", default="npm run build")},
                self.build_project,
            ),
            self.tool(
                "start_dev_server",
                "Start development server",
                {
                    "command": string("Server command (default: npm run dev)", default="npm run dev"),
                    "background": boolean("Run in background", default=False),
                },
                self.start_dev_server,
            ),
            self.tool(
                "lint_code",
                "Run code linter",
                {"fix": boolean("Automatically fix issues", default=False)},
                self.lint_code,
            ),
        ]

    def detect_framework(self) -> str:
        """
        Pick a test runner for the workspace.

        Returns ``"npm"`` when package.json names a JS test framework or a
        test script, ``"pytest"`` for Python projects, and ``"npm"`` otherwise.
        """
        package_path = self.workspace / "package.json"
        if package_path.is_file():
            try:
                package = json.loads(package_path.read_text(encoding="utf-8"))
            except json.JSONDecodeError:
                package = {}
            deps = {**package.get("dependencies", {}), **package.get("devDependencies", {})}
            if any(name in deps for name in JS_FRAMEWORKS) or "test" in package.get("scripts", {}):
                return "npm"
        if any((self.workspace / marker).exists() for marker in PYTHON_MARKERS):
            return "pytest"
        return "npm"

    def test_command(self, framework: str, pattern: str, coverage: bool) -> List[str]:
        if framework == "auto":
            framework = self.detect_framework()
        extra = shlex.split(pattern) if pattern else []
        if framework == "npm":
            argv = ["npm", "test"]
            if extra:
                argv += ["--", *extra]
            return argv

        argv = FRAMEWORK_COMMANDS[framework] + extra
        if coverage:
            argv.append("--cov" if framework == "pytest" else "--coverage")
        return argv

    # ── Handlers ──────────────────────────────────────────────────────────

    def run_tests(self, args: Dict[str, Any]) -> Dict[str, Any]:
        argv = self.test_command(args["framework"], args.get("pattern", ""), args["coverage"])
        result = self.run(argv, timeout=self.settings.install_timeout)
        return {"success": True, **result.to_dict()}

    def build_project(self, args: Dict[str, Any]) -> Dict[str, Any]:
        result = self.run(args["command"], timeout=self.settings.build_timeout, shell=True)
        return {"success": True, **result.to_dict()}

    def start_dev_server(self, args: Dict[str, Any]) -> Dict[str, Any]:
        if not args["background"]:
            return self.run_dev_server_once(args["command"])
        pid = spawn_detached(args["command"], self.workspace)
        return {
            "success": True,
            "command": args["command"],
            "pid": pid,
            "background": True,
            "message": "Server started in background",
        }

    def run_dev_server_once(self, command: str) -> Dict[str, Any]:
        """Run the server in the foreground until it exits or the command timeout stops it."""
        try:
            result = self.run(command, timeout=self.settings.command_timeout, shell=True)
        except CommandTimeoutError as exc:
            return {
                "success": True,
                "command": command,
                "background": False,
                "stdout": exc.stdout,
                "stderr": exc.stderr,
                "message": f"Server ran until the {exc.timeout:g}s timeout and was stopped",
            }
        return {"success": True, "background": False, **result.to_dict()}

    def lint_code(self, args: Dict[str, Any]) -> Dict[str, Any]:
        argv = ["npm", "run", "lint"]
        if args["fix"]:
            argv += ["--", "--fix"]
        result = self.run(argv, timeout=LINT_TIMEOUT)
        return {"success": True, **result.to_dict()}
