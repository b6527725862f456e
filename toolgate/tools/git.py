"""Git tools driven through the git CLI."""

from typing import Any, Dict, List, Optional

from toolgate.gateway.errors import ArgumentError
from toolgate.gateway.schema import array, boolean, enum, integer, string
from toolgate.tools.base import ToolGroup

# Never block on a credential prompt; stdin is closed anyway.
GIT_ENV = {"GIT_TERMINAL_PROMPT": "0"}

_FIELD_SEP = "\x1f"
_RECORD_SEP = "\x1e"


def parse_status(output: str) -> Dict[str, Any]:
    """
    Parse ``git status --porcelain=v1 --branch`` output.

    Returns the current branch, tracking info and files grouped by state.
    """
    status: Dict[str, Any] = {
        "current": None,
        "tracking": None,
        "ahead": 0,
        "behind": 0,
        "staged": [],
        "modified": [],
        "created": [],
        "deleted": [],
        "renamed": [],
        "conflicted": [],
        "not_added": [],
    }
    for line in output.splitlines():
        if line.startswith("## "):
            _parse_branch_line(line[3:], status)
            continue
        if len(line) < 4:
            continue
        x, y, path = line[0], line[1], line[3:]
        code = x + y
        if code == "??":
            status["not_added"].append(path)
            continue
        if "U" in code or code in ("AA", "DD"):
            status["conflicted"].append(path)
            continue
        if x == "R":
            old, _, new = path.partition(" -> ")
            status["renamed"].append({"from": old, "to": new})
            path = new
        elif x == "A":
            status["created"].append(path)
        elif "D" in code:
            status["deleted"].append(path)
        if "M" in code:
            status["modified"].append(path)
        if x not in (" ", "?"):
            status["staged"].append(path)
    status["is_clean"] = not any(
        status[k] for k in ("modified", "created", "deleted", "renamed", "conflicted", "not_added")
    )
    return status


def _parse_branch_line(header: str, status: Dict[str, Any]) -> None:
    for prefix in ("No commits yet on ", "Initial commit on "):
        if header.startswith(prefix):
            status["current"] = header[len(prefix):]
            return
    if header.startswith("HEAD (no branch)"):
        return

    branch, _, rest = header.partition("...")
    status["current"] = branch.split(" ")[0]
    if not rest:
        return
    tracking, _, counts = rest.partition(" ")
    status["tracking"] = tracking
    for part in counts.strip("[]").split(","):
        part = part.strip()
        if part.startswith("ahead "):
            status["ahead"] = int(part[6:])
        elif part.startswith("behind "):
            status["behind"] = int(part[7:])


def repo_name_from_url(url: str) -> str:
    """Directory name ``git clone`` would pick for ``url``."""
    name = url.rstrip("/").replace(":", "/").split("/")[-1]
    if name.endswith(".git"):
        name = name[:-4]
    return name or "repo"


class GitTools(ToolGroup):
    """Repository status, history, branches, commits and remotes."""

    name = "git"

    def tools(self):
        return [
            self.tool("git_status", "Get the current git repository status", {}, self.git_status),
            self.tool(
                "git_log",
                "Get git commit history",
                {
                    "maxCount": integer("Maximum number of commits to retrieve (default: 10)", default=10),
                    "file": string("Filter commits by file path"),
                },
                self.git_log,
            ),
            self.tool(
                "git_diff",
                "Show differences in files",
                {
                    "file": string("Specific file to diff (or all if not specified)"),
                    "staged": boolean("Show staged changes (--cached)", default=False),
                },
                self.git_diff,
            ),
            self.tool(
                "git_branch",
                "List, create, switch, or delete branches",
                {
                    "action": enum(["list", "create", "switch", "delete"], "Action to perform", required=True),
                    "name": string("Branch name (for create/switch/delete)"),
                },
                self.git_branch,
            ),
            self.tool(
                "git_commit",
                "Create a git commit",
                {
                    "message": string("Commit message", required=True),
                    "files": array(string(), "Files to add (or all if not specified)"),
                },
                self.git_commit,
            ),
            self.tool(
                "git_push",
                "Push commits to remote repository",
                {
                    "remote": string("Remote name (default: origin)", default="origin"),
                    "branch": string("Branch to push (default: current)"),
                },
                self.git_push,
            ),
            self.tool(
                "git_pull",
                "Pull changes from remote repository",
                {
                    "remote": string("Remote name (default: origin)", default="origin"),
                    "branch": string("Branch to pull (default: current)"),
                },
                self.git_pull,
            ),
            self.tool(
                "git_clone",
                "Clone a git repository into the workspace",
                {
                    "url": string("Repository URL to clone", required=True),
                    "directory": string("Target directory name"),
                },
                self.git_clone,
            ),
            self.tool(
                "git_stash",
                "Stash or apply stashed changes",
                {
                    "action": enum(["save", "pop", "list"], "Stash action to perform", required=True),
                    "message": string("Stash message (for save)"),
                },
                self.git_stash,
            ),
        ]

    def git(self, *argv: str, timeout: Optional[float] = None) -> str:
        result = self.run(["git", *argv], timeout=timeout, env=GIT_ENV)
        return result.stdout

    def current_branch(self) -> str:
        return self.git("branch", "--show-current")

    # ── Handlers ──────────────────────────────────────────────────────────

    def git_status(self, args: Dict[str, Any]) -> Dict[str, Any]:
        output = self.git("status", "--porcelain=v1", "--branch")
        return {"success": True, **parse_status(output)}

    def git_log(self, args: Dict[str, Any]) -> Dict[str, Any]:
        argv = [
            "log",
            f"--max-count={args['maxCount']}",
            f"--format=%H{_FIELD_SEP}%aI{_FIELD_SEP}%s{_FIELD_SEP}%an{_FIELD_SEP}%ae{_RECORD_SEP}",
        ]
        if args.get("file"):
            argv += ["--", args["file"]]
        commits = []
        for record in self.git(*argv).split(_RECORD_SEP):
            record = record.strip()
            if not record:
                continue
            hash_, date, message, author, email = record.split(_FIELD_SEP)
            commits.append({
                "hash": hash_,
                "date": date,
                "message": message,
                "author": author,
                "email": email,
            })
        return {"success": True, "total": len(commits), "commits": commits}

    def git_diff(self, args: Dict[str, Any]) -> Dict[str, Any]:
        argv = ["diff"]
        if args["staged"]:
            argv.append("--cached")
        if args.get("file"):
            argv += ["--", args["file"]]
        return {"success": True, "diff": self.git(*argv)}

    def git_branch(self, args: Dict[str, Any]) -> Dict[str, Any]:
        action = args["action"]
        if action == "list":
            branches = [
                b for b in self.git("branch", "--format=%(refname:short)").splitlines() if b
            ]
            return {"success": True, "current": self.current_branch(), "branches": branches}

        name = args.get("name")
        if not name:
            raise ArgumentError("name", f"branch name required for '{action}'")
        if action == "create":
            self.git("checkout", "-b", name)
            message = f"Created and switched to branch: {name}"
        elif action == "switch":
            self.git("checkout", name)
            message = f"Switched to branch: {name}"
        else:
            self.git("branch", "-d", name)
            message = f"Deleted branch: {name}"
        return {"success": True, "message": message}

    def git_commit(self, args: Dict[str, Any]) -> Dict[str, Any]:
        files: List[str] = args.get("files") or []
        if files:
            for f in files:
                self.resolve(f)
            self.git("add", "--", *files)
        else:
            self.git("add", "-A")
        summary = self.git("commit", "-m", args["message"])
        return {
            "success": True,
            "commit": self.git("rev-parse", "HEAD"),
            "branch": self.current_branch(),
            "summary": summary,
        }

    def git_push(self, args: Dict[str, Any]) -> Dict[str, Any]:
        branch = args.get("branch") or self.current_branch()
        output = self.git("push", args["remote"], branch, timeout=self.settings.install_timeout)
        return {"success": True, "message": f"Pushed to {args['remote']}/{branch}", "output": output}

    def git_pull(self, args: Dict[str, Any]) -> Dict[str, Any]:
        branch = args.get("branch") or self.current_branch()
        output = self.git("pull", args["remote"], branch, timeout=self.settings.install_timeout)
        return {"success": True, "message": f"Pulled from {args['remote']}/{branch}", "output": output}

    def git_clone(self, args: Dict[str, Any]) -> Dict[str, Any]:
        target = self.resolve(args.get("directory") or repo_name_from_url(args["url"]))
        self.git("clone", "--", args["url"], str(target), timeout=self.settings.install_timeout)
        return {
            "success": True,
            "message": f"Cloned {args['url']}",
            "directory": self.relative(target),
        }

    def git_stash(self, args: Dict[str, Any]) -> Dict[str, Any]:
        action = args["action"]
        if action == "save":
            argv = ["stash", "push"]
            if args.get("message"):
                argv += ["-m", args["message"]]
            return {"success": True, "message": "Changes stashed", "output": self.git(*argv)}
        if action == "pop":
            return {"success": True, "message": "Stash applied", "output": self.git("stash", "pop")}

        stashes = []
        for line in self.git("stash", "list", f"--format=%gd{_FIELD_SEP}%s").splitlines():
            ref, _, message = line.partition(_FIELD_SEP)
            stashes.append({"ref": ref, "message": message})
        return {"success": True, "stashes": stashes}
