"""GitLab CI and project API tools."""

from typing import Any, Dict, Iterable, Optional
from urllib.parse import quote

from toolgate.gateway.schema import array, boolean, enum, integer, string
from toolgate.tools.remote import RemoteTools

PIPELINE_STATUSES = [
    "created", "waiting_for_resource", "preparing", "pending", "running", "success",
    "failed", "canceled", "skipped", "manual", "scheduled",
]
JOB_SCOPES = ["created", "pending", "running", "failed", "success", "canceled", "skipped", "manual"]
VISIBILITY = ["public", "internal", "private"]


def pick(args: Dict[str, Any], keys: Iterable[str]) -> Dict[str, Any]:
    """Subset of ``args`` holding only the given keys that were supplied."""
    return {k: args[k] for k in keys if args.get(k) is not None}


def project_id() -> Any:
    return string("Project ID or URL-encoded project path (e.g., 'namespace/project')", required=True)


def per_page() -> Any:
    return integer("Results per page (max 100)", default=20)


class GitLabTools(RemoteTools):
    """Pipelines, jobs, projects, issues and merge requests."""

    name = "gitlab"
    service = "GitLab"
    token_env = "GITLAB_API_KEY"

    @property
    def token(self) -> Optional[str]:
        return self.settings.gitlab_token

    @property
    def base_url(self) -> str:
        return self.settings.gitlab_api_base

    def auth_headers(self, token: str) -> Dict[str, str]:
        return {"PRIVATE-TOKEN": token}

    @staticmethod
    def project_path(args: Dict[str, Any]) -> str:
        return f"/projects/{quote(str(args['project_id']), safe='')}"

    def tools(self):
        return self.ci_tools() + self.project_tools() + self.issue_tools() + self.merge_request_tools()

    def ci_tools(self):
        return [
            self.tool(
                "gitlab_list_pipelines",
                "List pipelines for a GitLab project with optional filters",
                {
                    "project_id": project_id(),
                    "status": enum(PIPELINE_STATUSES, "Filter by pipeline status"),
                    "ref": string("Filter by git reference (branch/tag)"),
                    "username": string("Filter by username who triggered the pipeline"),
                    "per_page": per_page(),
                },
                lambda a: self.get_json(
                    f"{self.project_path(a)}/pipelines", pick(a, ["status", "ref", "username", "per_page"])
                ),
            ),
            self.tool(
                "gitlab_get_pipeline",
                "Get detailed information about a specific pipeline",
                {"project_id": project_id(), "pipeline_id": integer("Pipeline ID", required=True)},
                lambda a: self.get_json(f"{self.project_path(a)}/pipelines/{a['pipeline_id']}"),
            ),
            self.tool(
                "gitlab_list_pipeline_jobs",
                "List jobs for a specific pipeline",
                {
                    "project_id": project_id(),
                    "pipeline_id": integer("Pipeline ID", required=True),
                    "scope": array(enum(JOB_SCOPES), "Filter jobs by scope (can specify multiple)"),
                },
                lambda a: self.get_json(
                    f"{self.project_path(a)}/pipelines/{a['pipeline_id']}/jobs",
                    {"scope[]": a.get("scope")},
                ),
            ),
            self.tool(
                "gitlab_get_job",
                "Get detailed information about a specific job",
                {"project_id": project_id(), "job_id": integer("Job ID", required=True)},
                lambda a: self.get_json(f"{self.project_path(a)}/jobs/{a['job_id']}"),
            ),
            self.tool(
                "gitlab_get_job_trace",
                "Get the complete trace (logs) of a job as text",
                {"project_id": project_id(), "job_id": integer("Job ID", required=True)},
                self.get_job_trace,
            ),
            self.tool(
                "gitlab_list_project_jobs",
                "List all jobs for a project",
                {
                    "project_id": project_id(),
                    "scope": array(enum(JOB_SCOPES), "Filter jobs by scope (can specify multiple)"),
                    "per_page": per_page(),
                },
                lambda a: self.get_json(
                    f"{self.project_path(a)}/jobs",
                    {"scope[]": a.get("scope"), "per_page": a["per_page"]},
                ),
            ),
            self.tool(
                "gitlab_get_pipeline_variables",
                "Get variables for a specific pipeline",
                {"project_id": project_id(), "pipeline_id": integer("Pipeline ID", required=True)},
                lambda a: self.get_json(f"{self.project_path(a)}/pipelines/{a['pipeline_id']}/variables"),
            ),
        ]

    def project_tools(self):
        return [
            self.tool(
                "gitlab_list_projects",
                "List projects accessible to the authenticated user",
                {
                    "search": string("Search projects by name"),
                    "owned": boolean("Only show owned projects", default=False),
                    "membership": boolean("Only show projects user is member of", default=False),
                    "archived": boolean("Filter by archived status"),
                    "visibility": enum(VISIBILITY, "Filter by visibility"),
                    "per_page": per_page(),
                },
                self.list_projects,
            ),
            self.tool(
                "gitlab_get_project",
                "Get details of a specific project",
                {"project_id": project_id()},
                lambda a: self.get_json(self.project_path(a)),
            ),
        ]

    def issue_tools(self):
        iid = integer("Issue IID (internal ID within the project)", required=True)
        return [
            self.tool(
                "gitlab_list_issues",
                "List issues for a project",
                {
                    "project_id": project_id(),
                    "state": enum(["opened", "closed", "all"], "Filter by issue state", default="opened"),
                    "labels": string("Comma-separated list of label names"),
                    "milestone": string("Milestone title"),
                    "assignee_username": string("Filter by assignee username"),
                    "author_username": string("Filter by author username"),
                    "search": string("Search in title and description"),
                    "per_page": per_page(),
                },
                lambda a: self.get_json(
                    f"{self.project_path(a)}/issues",
                    pick(a, ["state", "labels", "milestone", "assignee_username",
                             "author_username", "search", "per_page"]),
                ),
            ),
            self.tool(
                "gitlab_get_issue",
                "Get details of a specific issue",
                {"project_id": project_id(), "issue_iid": iid},
                lambda a: self.get_json(f"{self.project_path(a)}/issues/{a['issue_iid']}"),
            ),
            self.tool(
                "gitlab_create_issue",
                "Create a new issue in a project",
                {
                    "project_id": project_id(),
                    "title": string("Issue title", required=True),
                    "description": string("Issue description (supports Markdown)"),
                    "labels": string("Comma-separated list of label names"),
                    "milestone_id": integer("Milestone ID to assign"),
                    "assignee_ids": array(integer(), "Array of user IDs to assign"),
                    "due_date": string("Due date in YYYY-MM-DD format"),
                    "confidential": boolean("Make issue confidential", default=False),
                },
                lambda a: self.send_json(
                    "POST",
                    f"{self.project_path(a)}/issues",
                    pick(a, ["title", "description", "labels", "milestone_id",
                             "assignee_ids", "due_date", "confidential"]),
                ),
            ),
            self.tool(
                "gitlab_update_issue",
                "Update an existing issue",
                {
                    "project_id": project_id(),
                    "issue_iid": iid,
                    "title": string("New issue title"),
                    "description": string("New issue description"),
                    "labels": string("Comma-separated list of label names (replaces existing)"),
                    "milestone_id": integer("Milestone ID to assign"),
                    "assignee_ids": array(integer(), "Array of user IDs to assign"),
                    "state_event": enum(["close", "reopen"], "Close or reopen the issue"),
                    "due_date": string("Due date in YYYY-MM-DD format"),
                    "confidential": boolean("Make issue confidential"),
                },
                lambda a: self.send_json(
                    "PUT",
                    f"{self.project_path(a)}/issues/{a['issue_iid']}",
                    pick(a, ["title", "description", "labels", "milestone_id", "assignee_ids",
                             "state_event", "due_date", "confidential"]),
                ),
            ),
            self.tool(
                "gitlab_create_issue_note",
                "Add a comment to an issue",
                {
                    "project_id": project_id(),
                    "issue_iid": iid,
                    "body": string("Comment body (supports Markdown)", required=True),
                },
                lambda a: self.send_json(
                    "POST", f"{self.project_path(a)}/issues/{a['issue_iid']}/notes", {"body": a["body"]}
                ),
            ),
        ]

    def merge_request_tools(self):
        iid = integer("Merge request IID (internal ID within the project)", required=True)
        return [
            self.tool(
                "gitlab_list_merge_requests",
                "List merge requests for a project",
                {
                    "project_id": project_id(),
                    "state": enum(["opened", "closed", "merged", "all"], "Filter by MR state", default="opened"),
                    "labels": string("Comma-separated list of label names"),
                    "milestone": string("Milestone title"),
                    "assignee_username": string("Filter by assignee username"),
                    "author_username": string("Filter by author username"),
                    "reviewer_username": string("Filter by reviewer username"),
                    "source_branch": string("Filter by source branch"),
                    "target_branch": string("Filter by target branch"),
                    "search": string("Search in title and description"),
                    "per_page": per_page(),
                },
                lambda a: self.get_json(
                    f"{self.project_path(a)}/merge_requests",
                    pick(a, ["state", "labels", "milestone", "assignee_username", "author_username",
                             "reviewer_username", "source_branch", "target_branch", "search", "per_page"]),
                ),
            ),
            self.tool(
                "gitlab_get_merge_request",
                "Get details of a specific merge request",
                {
                    "project_id": project_id(),
                    "merge_request_iid": iid,
                    "include_diverged_commits_count": boolean("Include diverged commits count", default=False),
                    "include_rebase_in_progress": boolean("Include rebase in progress status", default=False),
                },
                lambda a: self.get_json(
                    f"{self.project_path(a)}/merge_requests/{a['merge_request_iid']}",
                    {
                        "include_diverged_commits_count": a["include_diverged_commits_count"] or None,
                        "include_rebase_in_progress": a["include_rebase_in_progress"] or None,
                    },
                ),
            ),
            self.tool(
                "gitlab_create_merge_request",
                "Create a new merge request",
                {
                    "project_id": project_id(),
                    "source_branch": string("Source branch name", required=True),
                    "target_branch": string("Target branch name", required=True),
                    "title": string("Merge request title", required=True),
                    "description": string("MR description (supports Markdown)"),
                    "labels": string("Comma-separated list of label names"),
                    "milestone_id": integer("Milestone ID to assign"),
                    "assignee_ids": array(integer(), "Array of user IDs to assign"),
                    "reviewer_ids": array(integer(), "Array of user IDs to request review from"),
                    "remove_source_branch": boolean("Remove source branch after merge", default=False),
                    "squash": boolean("Squash commits on merge", default=False),
                    "draft": boolean("Create as draft MR", default=False),
                },
                self.create_merge_request,
            ),
            self.tool(
                "gitlab_list_mr_changes",
                "Get the changes (diffs) of a merge request",
                {"project_id": project_id(), "merge_request_iid": iid},
                lambda a: self.get_json(f"{self.project_path(a)}/merge_requests/{a['merge_request_iid']}/changes"),
            ),
            self.tool(
                "gitlab_create_mr_note",
                "Add a comment to a merge request",
                {
                    "project_id": project_id(),
                    "merge_request_iid": iid,
                    "body": string("Comment body (supports Markdown)", required=True),
                },
                lambda a: self.send_json(
                    "POST",
                    f"{self.project_path(a)}/merge_requests/{a['merge_request_iid']}/notes",
                    {"body": a["body"]},
                ),
            ),
            self.tool(
                "gitlab_approve_merge_request",
                "Approve a merge request",
                {"project_id": project_id(), "merge_request_iid": iid},
                lambda a: self.send_json(
                    "POST", f"{self.project_path(a)}/merge_requests/{a['merge_request_iid']}/approve"
                ),
            ),
            self.tool(
                "gitlab_merge_merge_request",
                "Merge a merge request",
                {
                    "project_id": project_id(),
                    "merge_request_iid": iid,
                    "merge_commit_message": string("Custom merge commit message"),
                    "squash_commit_message": string("Custom squash commit message"),
                    "squash": boolean("Squash commits"),
                    "should_remove_source_branch": boolean("Remove source branch after merge"),
                    "merge_when_pipeline_succeeds": boolean("Merge when pipeline succeeds", default=False),
                },
                lambda a: self.send_json(
                    "PUT",
                    f"{self.project_path(a)}/merge_requests/{a['merge_request_iid']}/merge",
                    pick(a, ["merge_commit_message", "squash_commit_message", "squash",
                             "should_remove_source_branch", "merge_when_pipeline_succeeds"]),
                ),
            ),
        ]

    # ── Handlers ──────────────────────────────────────────────────────────

    def get_job_trace(self, args: Dict[str, Any]) -> Dict[str, Any]:
        response = self.request("GET", f"{self.project_path(args)}/jobs/{args['job_id']}/trace")
        return {"trace": response.text}

    def list_projects(self, args: Dict[str, Any]) -> Any:
        params = pick(args, ["search", "archived", "visibility", "per_page"])
        # false means "no filter" for these two
        for flag in ("owned", "membership"):
            if args[flag]:
                params[flag] = True
        return self.get_json("/projects", params)

    def create_merge_request(self, args: Dict[str, Any]) -> Any:
        body = pick(args, ["source_branch", "target_branch", "title", "description", "labels",
                           "milestone_id", "assignee_ids", "reviewer_ids"])
        for flag in ("remove_source_branch", "squash"):
            if args[flag]:
                body[flag] = True
        if args["draft"]:
            body["title"] = f"Draft: {args['title']}"
        return self.send_json("POST", f"{self.project_path(args)}/merge_requests", body)
