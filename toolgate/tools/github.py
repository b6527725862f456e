"""GitHub Actions tools over the REST API."""

import base64
from typing import Any, Dict, Optional

from toolgate.gateway.schema import enum, integer, string
from toolgate.tools.remote import RemoteTools

RUN_STATUSES = [
    "completed", "action_required", "cancelled", "failure", "neutral", "skipped", "stale",
    "success", "timed_out", "in_progress", "queued", "requested", "waiting", "pending",
]


def _repo_fields() -> Dict[str, Any]:
    return {
        "owner": string("Repository owner", required=True),
        "repo": string("Repository name", required=True),
    }


class GitHubTools(RemoteTools):
    """Workflow runs, jobs and their logs."""

    name = "github"
    service = "GitHub"
    token_env = "GITHUB_API_KEY"

    @property
    def token(self) -> Optional[str]:
        return self.settings.github_token

    @property
    def base_url(self) -> str:
        return self.settings.github_api_base

    def auth_headers(self, token: str) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }

    def tools(self):
        return [
            self.tool(
                "github_list_workflow_runs",
                "List workflow runs for a repository with optional filters",
                {
                    **_repo_fields(),
                    "branch": string("Filter by branch name"),
                    "status": enum(RUN_STATUSES, "Filter by status"),
                    "event": string("Filter by event (e.g., push, pull_request)"),
                    "actor": string("Filter by actor (username)"),
                    "per_page": integer("Results per page (max 100)", default=30),
                },
                self.list_workflow_runs,
            ),
            self.tool(
                "github_get_workflow_run",
                "Get detailed information about a specific workflow run",
                {**_repo_fields(), "run_id": integer("Workflow run ID", required=True)},
                self.get_workflow_run,
            ),
            self.tool(
                "github_list_workflow_jobs",
                "List jobs for a workflow run",
                {
                    **_repo_fields(),
                    "run_id": integer("Workflow run ID", required=True),
                    "filter": enum(["latest", "all"], "Filter jobs to latest or all attempts", default="latest"),
                },
                self.list_workflow_jobs,
            ),
            self.tool(
                "github_get_job_logs",
                "Get the complete logs for a specific job as text",
                {**_repo_fields(), "job_id": integer("Job ID", required=True)},
                self.get_job_logs,
            ),
            self.tool(
                "github_list_workflows",
                "List all workflows in a repository",
                {**_repo_fields(), "per_page": integer("Results per page (max 100)", default=30)},
                self.list_workflows,
            ),
            self.tool(
                "github_get_workflow_run_logs",
                "Download the complete logs archive for a workflow run as base64-encoded zip file",
                {**_repo_fields(), "run_id": integer("Workflow run ID", required=True)},
                self.get_workflow_run_logs,
            ),
        ]

    @staticmethod
    def repo_path(args: Dict[str, Any]) -> str:
        return f"/repos/{args['owner']}/{args['repo']}"

    # ── Handlers ──────────────────────────────────────────────────────────

    def list_workflow_runs(self, args: Dict[str, Any]) -> Any:
        params = {k: args.get(k) for k in ("branch", "status", "event", "actor", "per_page")}
        return self.get_json(f"{self.repo_path(args)}/actions/runs", params)

    def get_workflow_run(self, args: Dict[str, Any]) -> Any:
        return self.get_json(f"{self.repo_path(args)}/actions/runs/{args['run_id']}")

    def list_workflow_jobs(self, args: Dict[str, Any]) -> Any:
        return self.get_json(
            f"{self.repo_path(args)}/actions/runs/{args['run_id']}/jobs",
            {"filter": args["filter"]},
        )

    def get_job_logs(self, args: Dict[str, Any]) -> Dict[str, Any]:
        response = self.request("GET", f"{self.repo_path(args)}/actions/jobs/{args['job_id']}/logs")
        return {"logs": response.text}

    def list_workflows(self, args: Dict[str, Any]) -> Any:
        return self.get_json(f"{self.repo_path(args)}/actions/workflows", {"per_page": args["per_page"]})

    def get_workflow_run_logs(self, args: Dict[str, Any]) -> Dict[str, Any]:
        response = self.request("GET", f"{self.repo_path(args)}/actions/runs/{args['run_id']}/logs")
        archive = response.content
        return {
            "logs_archive_base64": base64.b64encode(archive).decode("ascii"),
            "size_bytes": len(archive),
            "note": "Decode base64 and extract ZIP to access logs",
        }
