"""npm and package.json tools."""

import json
from typing import Any, Dict

from toolgate.gateway.errors import ToolError
from toolgate.gateway.schema import array, boolean, string
from toolgate.tools.base import ToolGroup

INIT_SCRIPTS = {"test": 'echo "Error: no test specified" && exit 1'}


class NodeTools(ToolGroup):
    """npm_install, npm_run_script, npm_outdated, npm_init, read_package_json."""

    name = "nodejs"

    def tools(self):
        return [
            self.tool(
                "npm_install",
                "Install npm packages",
                {
                    "packages": array(string(), "Package names to install (all dependencies if omitted)"),
                    "dev": boolean("Install as dev dependencies", default=False),
                    "global": boolean("Install globally", default=False),
                },
                self.npm_install,
            ),
            self.tool(
                "npm_run_script",
                "Run an npm script from package.json",
                {"script": string("Script name to run", required=True)},
                self.npm_run_script,
            ),
            self.tool("npm_outdated", "Check for outdated packages", {}, self.npm_outdated),
            self.tool(
                "npm_init",
                "Initialize a new npm project",
                {
                    "name": string("Project name (default: workspace directory name)"),
                    "version": string("Initial version", default="1.0.0"),
                    "description": string("Project description", default=""),
                    "force": boolean("Overwrite an existing package.json", default=False),
                },
                self.npm_init,
            ),
            self.tool("read_package_json", "Read and parse package.json", {}, self.read_package_json),
        ]

    def npm_install(self, args: Dict[str, Any]) -> Dict[str, Any]:
        argv = ["npm", "install"]
        if args["global"]:
            argv.append("-g")
        if args["dev"]:
            argv.append("--save-dev")
        packages = args.get("packages") or []
        argv += packages
        result = self.run(argv, timeout=self.settings.install_timeout)
        return {
            "success": True,
            "command": result.command,
            "packages": packages or ["all dependencies"],
            "stdout": result.stdout,
            "stderr": result.stderr,
        }

    def npm_run_script(self, args: Dict[str, Any]) -> Dict[str, Any]:
        result = self.run(["npm", "run", args["script"]], timeout=self.settings.install_timeout)
        return {
            "success": True,
            "script": args["script"],
            "stdout": result.stdout,
            "stderr": result.stderr,
        }

    def npm_outdated(self, args: Dict[str, Any]) -> Dict[str, Any]:
        # npm exits 1 when something is outdated; the JSON report is still valid.
        result = self.run(["npm", "outdated", "--json"], check=False)
        if result.exit_code not in (0, 1):
            raise ToolError(
                f"npm outdated failed with exit code {result.exit_code}",
                details=result.to_dict(),
            )
        try:
            outdated = json.loads(result.stdout) if result.stdout else {}
        except json.JSONDecodeError:
            if result.exit_code:
                raise ToolError("npm outdated failed", details=result.to_dict())
            outdated = {}
        return {"success": True, "outdated": outdated, "count": len(outdated)}

    def npm_init(self, args: Dict[str, Any]) -> Dict[str, Any]:
        target = self.resolve("package.json")
        if target.exists() and not args["force"]:
            raise ToolError("package.json already exists (pass force to overwrite)")
        package = {
            "name": args.get("name") or self.workspace.name,
            "version": args["version"],
            "description": args["description"],
            "main": "index.js",
            "scripts": dict(INIT_SCRIPTS),
            "keywords": [],
            "author": "",
            "license": "ISC",
        }
        target.write_text(json.dumps(package, indent=2) + "\n", encoding="utf-8")
        return {"success": True, "path": "package.json", "content": package}

    def read_package_json(self, args: Dict[str, Any]) -> Dict[str, Any]:
        target = self.resolve("package.json")
        try:
            package = json.loads(target.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise ToolError(f"package.json is not valid JSON: {e}")
        return {
            "success": True,
            "packageJson": package,
            "dependencies": package.get("dependencies", {}),
            "devDependencies": package.get("devDependencies", {}),
            "scripts": package.get("scripts", {}),
        }
