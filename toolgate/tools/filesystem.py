"""Filesystem tools confined to the workspace root."""

import fnmatch
import os
import stat as stat_mod
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List

from toolgate.gateway.errors import ToolError
from toolgate.gateway.schema import array, boolean, string
from toolgate.tools.base import ToolGroup

DEFAULT_IGNORE = ["node_modules/**", ".git/**"]


def _iso(timestamp: float) -> str:
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).isoformat()


def match_glob(relative: str, pattern: str) -> bool:
    """
    Glob match where ``**/`` may also match zero directories.

    ``**/*.ts`` matches both ``a.ts`` and ``src/a.ts``.
    """
    if fnmatch.fnmatchcase(relative, pattern):
        return True
    if pattern.startswith("**/"):
        return match_glob(relative, pattern[3:])
    return False


def walk_glob(root: Path, pattern: str, ignore: List[str]) -> List[str]:
    """Workspace-relative files under ``root`` matching ``pattern``, sorted."""
    matches = []
    for dirpath, dirnames, filenames in os.walk(root):
        rel_dir = Path(dirpath).relative_to(root).as_posix()
        rel_dir = "" if rel_dir == "." else rel_dir + "/"
        dirnames[:] = sorted(
            d for d in dirnames if not any(match_glob(f"{rel_dir}{d}/", p) for p in ignore)
        )
        for filename in filenames:
            relative = f"{rel_dir}{filename}"
            if any(match_glob(relative, p) for p in ignore):
                continue
            if match_glob(relative, pattern):
                matches.append(relative)
    return sorted(matches)


class FilesystemTools(ToolGroup):
    """read_file, write_file, list_directory, search_files, file_info, create_directory."""

    name = "filesystem"

    def tools(self):
        return [
            self.tool(
                "read_file",
                "Read the contents of a file",
                {
                    "path": string("Path to the file relative to workspace", required=True),
                    "encoding": string("File encoding (default: utf-8)", default="utf-8"),
                },
                self.read_file,
            ),
            self.tool(
                "write_file",
                "Write content to a file (creates or overwrites)",
                {
                    "path": string("Path to the file relative to workspace", required=True),
                    "content": string("Content to write to the file", required=True),
                    "encoding": string("File encoding (default: utf-8)", default="utf-8"),
                },
                self.write_file,
            ),
            self.tool(
                "list_directory",
                "List contents of a directory",
                {
                    "path": string("Path to the directory relative to workspace (default: .)", default="."),
                    "recursive": boolean("List subdirectories recursively", default=False),
                },
                self.list_directory,
            ),
            self.tool(
                "search_files",
                "Search for files using glob patterns",
                {
                    "pattern": string("Glob pattern to search for (e.g., '**/*.ts')", required=True),
                    "ignore": array(string(), "Patterns to ignore", default=list(DEFAULT_IGNORE)),
                },
                self.search_files,
            ),
            self.tool(
                "file_info",
                "Get detailed information about a file or directory",
                {"path": string("Path to the file or directory", required=True)},
                self.file_info,
            ),
            self.tool(
                "create_directory",
                "Create a new directory (and parent directories if needed)",
                {"path": string("Path to the directory to create", required=True)},
                self.create_directory,
            ),
        ]

    # ── Handlers ──────────────────────────────────────────────────────────

    def read_file(self, args: Dict[str, Any]) -> Dict[str, Any]:
        target = self.resolve(args["path"])
        try:
            content = target.read_text(encoding=args["encoding"])
        except LookupError:
            raise ToolError(f"Unknown encoding: {args['encoding']}")
        return {
            "success": True,
            "path": args["path"],
            "content": content,
            "size": len(content),
        }

    def write_file(self, args: Dict[str, Any]) -> Dict[str, Any]:
        target = self.resolve(args["path"])
        target.parent.mkdir(parents=True, exist_ok=True)
        try:
            target.write_text(args["content"], encoding=args["encoding"])
        except LookupError:
            raise ToolError(f"Unknown encoding: {args['encoding']}")
        return {"success": True, "path": args["path"], "size": len(args["content"])}

    def list_directory(self, args: Dict[str, Any]) -> Dict[str, Any]:
        target = self.resolve(args["path"])
        if not target.is_dir():
            raise ToolError(f"Not a directory: {args['path']}")
        return {
            "success": True,
            "path": args["path"],
            "items": self._list(target, target, args["recursive"]),
        }

    def _list(self, base: Path, directory: Path, recursive: bool) -> List[Dict[str, Any]]:
        items = []
        for entry in sorted(directory.iterdir(), key=lambda p: p.name):
            info = entry.lstat()
            is_dir = stat_mod.S_ISDIR(info.st_mode)
            items.append({
                "name": entry.relative_to(base).as_posix(),
                "type": "directory" if is_dir else "file",
                "size": info.st_size,
                "modified": _iso(info.st_mtime),
            })
            if recursive and is_dir:
                items.extend(self._list(base, entry, recursive))
        return items

    def search_files(self, args: Dict[str, Any]) -> Dict[str, Any]:
        files = walk_glob(self.workspace, args["pattern"], args["ignore"])
        return {
            "success": True,
            "pattern": args["pattern"],
            "files": files,
            "count": len(files),
        }

    def file_info(self, args: Dict[str, Any]) -> Dict[str, Any]:
        target = self.resolve(args["path"])
        info = target.stat()
        return {
            "success": True,
            "path": args["path"],
            "type": "directory" if target.is_dir() else "file",
            "size": info.st_size,
            "created": _iso(getattr(info, "st_birthtime", info.st_ctime)),
            "modified": _iso(info.st_mtime),
            "accessed": _iso(info.st_atime),
            "permissions": oct(stat_mod.S_IMODE(info.st_mode))[2:],
        }

    def create_directory(self, args: Dict[str, Any]) -> Dict[str, Any]:
        target = self.resolve(args["path"])
        target.mkdir(parents=True, exist_ok=True)
        return {"success": True, "path": args["path"]}
