"""
GitLab Client
=============
Synchronous httpx client for the GitLab v4 REST API.

One client is bound to one project: the burn-in repository holding the
"request" and "run" files, or the project that builds the node binary.

Conventions:
    - Authentication uses the PRIVATE-TOKEN header
    - Files are created, updated and deleted through single-action commits
      authored by the burn-in bot
    - Runners are matched to hosts by their description, which holds the
      hostname and nothing else
    - /runners/all is paginated; the page count comes from x-total-pages
"""
import logging
from typing import Any, Dict, List, Optional

import httpx

from burnin.core import config
from burnin.core.constants import (
    CLEANUP_PREFIX,
    COMMIT_AUTHOR_EMAIL,
    COMMIT_AUTHOR_NAME,
    SKIP_CI_PREFIX,
    UPDATE_DEPLOYMENT_PREFIX,
)
from burnin.core.errors import APIError, PipelineNotFoundError
from burnin.models.gitlab import CommitDiff, FileInfo, Job, MergeRequest, Pipeline, Runner
from burnin.models.request import NodeType
from burnin.services.http_utils import send
from burnin.utils.url_utils import add_paths_to_url

logger = logging.getLogger(__name__)

SERVICE = "GitLab"


class GitlabClient:
    """GitLab API access scoped to a single project."""

    def __init__(
        self,
        server_url: str,
        project_id: int,
        access_token: str,
        timeout: Optional[float] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.server_url = server_url
        self.project_id = project_id
        self.project_url = add_paths_to_url(server_url, "api/v4/projects", str(project_id))
        self.path_with_namespace = ""
        self.http = httpx.Client(
            headers={"PRIVATE-TOKEN": access_token},
            timeout=timeout if timeout is not None else config.HTTP_TIMEOUT_SECONDS,
            transport=transport,
        )

    def close(self) -> None:
        self.http.close()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _project_url(self, *paths: str) -> str:
        return add_paths_to_url(self.project_url, *paths)

    def _api_url(self, *paths: str) -> str:
        return add_paths_to_url(self.server_url, "api/v4", *paths)

    def _get(self, url: str, params: Optional[Dict[str, Any]] = None) -> httpx.Response:
        return send(self.http, SERVICE, "GET", url, params=params)

    def authenticate(self) -> None:
        """Verify the token and remember the project's path for web URLs."""
        project = self._get(self.project_url).json()
        self.path_with_namespace = project.get("path_with_namespace", "")
        logger.info("Authenticated against GitLab project %s", self.path_with_namespace or self.project_id)

    # ------------------------------------------------------------------
    # Commits and pipelines
    # ------------------------------------------------------------------
    def get_last_commit_diffs(self, ref: str) -> List[CommitDiff]:
        response = self._get(self._project_url("repository/commits", ref, "diff"))
        diffs = [CommitDiff.model_validate(d) for d in response.json()]
        if not diffs:
            raise APIError(SERVICE, "GET", str(response.request.url), response.status_code,
                           f"GitLab API returned no diffs for '{ref}'")
        return diffs

    def get_pipelines_for_branch(self, branch: str) -> List[Pipeline]:
        """An empty list is not an error: the pipeline may not exist yet."""
        response = self._get(self._project_url("pipelines"), {"ref": branch, "order_by": "updated_at"})
        return [Pipeline.model_validate(p) for p in response.json()]

    def get_pipeline_for_commit(self, sha: str) -> Pipeline:
        response = self._get(self._project_url("pipelines"), {"sha": sha, "order_by": "updated_at"})
        pipelines = response.json()
        if not pipelines:
            raise PipelineNotFoundError(f"no matching pipeline found for commit '{sha}'")
        return Pipeline.model_validate(pipelines[0])

    def get_pipeline(self, pipeline_id: int) -> Pipeline:
        return Pipeline.model_validate(self._get(self._project_url("pipelines", str(pipeline_id))).json())

    def get_pipeline_jobs(self, pipeline_id: int) -> List[Job]:
        response = self._get(self._project_url("pipelines", str(pipeline_id), "jobs"), {"per_page": 100})
        jobs = [Job.model_validate(j) for j in response.json()]
        if not jobs:
            raise APIError(SERVICE, "GET", str(response.request.url), response.status_code,
                           f"GitLab API returned no jobs for pipeline '{pipeline_id}'")
        return jobs

    def get_job(self, job_id: int) -> Job:
        return Job.model_validate(self._get(self._project_url("jobs", str(job_id))).json())

    def start_job(self, job_id: int) -> None:
        send(self.http, SERVICE, "POST", self._project_url("jobs", str(job_id), "play"))

    # ------------------------------------------------------------------
    # Repository
    # ------------------------------------------------------------------
    def create_branch(self, name: str, from_branch: str) -> None:
        send(
            self.http, SERVICE, "POST", self._project_url("repository/branches"),
            expected_status=201, params={"branch": name, "ref": from_branch},
        )

    def list_directory(self, path: str, branch: str) -> List[FileInfo]:
        response = self._get(
            self._project_url("repository/tree"),
            {"path": path, "ref": branch, "recursive": "false", "per_page": 1000},
        )
        return [FileInfo.model_validate(f) for f in response.json()]

    def create_file(self, path: str, branch: str, commit_msg: str, content: str) -> None:
        self._commit_file("create", path, branch, commit_msg, content)

    def update_file(self, path: str, branch: str, commit_msg: str, content: str) -> None:
        self._commit_file("update", path, branch, commit_msg, content)

    def delete_file(self, path: str, branch: str, commit_msg: str) -> None:
        self._commit_file("delete", path, branch, commit_msg, "")

    def _commit_file(self, action: str, path: str, branch: str, commit_msg: str, content: str) -> None:
        payload = {
            "branch": branch,
            "commit_message": commit_msg,
            "author_name": COMMIT_AUTHOR_NAME,
            "author_email": COMMIT_AUTHOR_EMAIL,
            "actions": [{"action": action, "file_path": path, "content": content}],
        }
        logger.debug("Committing '%s' (%s %s) on branch '%s'", commit_msg, action, path, branch)
        send(self.http, SERVICE, "POST", self._project_url("repository/commits"),
             expected_status=201, json_body=payload)

    def create_merge_request(self, title: str, source_branch: str, target_branch: str) -> MergeRequest:
        payload = {
            "id": self.project_id,
            "source_branch": source_branch,
            "target_branch": target_branch,
            "title": title,
            "remove_source_branch": True,
            "allow_collaboration": True,
            "squash": True,
        }
        response = send(self.http, SERVICE, "POST", self._project_url("merge_requests"),
                        expected_status=201, json_body=payload)
        return MergeRequest.model_validate(response.json())

    # ------------------------------------------------------------------
    # Runners
    # ------------------------------------------------------------------
    def get_runners(self) -> List[Runner]:
        runners: List[Runner] = []
        page = 1
        total_pages = 1

        while page <= total_pages:
            response = self._get(self._api_url("runners/all"), {"page": page})
            runners.extend(Runner.model_validate(r) for r in response.json())
            if page == 1:
                total_pages = int(response.headers.get("x-total-pages") or 1)
            page += 1

        return runners

    def get_runner_tags(self, runner_id: int) -> List[str]:
        return self._get(self._api_url("runners", str(runner_id))).json().get("tag_list") or []

    def pause_runner(self, hostname: str) -> None:
        self._set_runner_active_flag(hostname, False)

    def unpause_runner(self, hostname: str) -> None:
        self._set_runner_active_flag(hostname, True)

    def _set_runner_active_flag(self, hostname: str, active: bool) -> None:
        runner_id = next((r.id for r in self.get_runners() if r.description == hostname), None)
        if runner_id is None:
            raise APIError(SERVICE, "GET", self._api_url("runners/all"), 200,
                           f"could not find runner ID for hostname {hostname}")

        send(self.http, SERVICE, "PUT", self._api_url("runners", str(runner_id)),
             json_body={"active": active})

    # ------------------------------------------------------------------
    # Web URLs and commit messages
    # ------------------------------------------------------------------
    def web_url_for_branch(self, branch: str) -> str:
        return add_paths_to_url(self.server_url, self.path_with_namespace, "-/tree", branch)

    def web_url_for_job(self, job_id: int) -> str:
        return add_paths_to_url(self.server_url, self.path_with_namespace, "-/jobs", str(job_id))

    def prefix_skip_ci(self, msg: str) -> str:
        return f"{SKIP_CI_PREFIX} {msg}"

    def prefix_deploy(self, network: str, node_type: NodeType, msg: str) -> str:
        return f"[deploy-{network}-{NodeType(node_type).value}] {msg}"

    def prefix_update_deployment(self, msg: str) -> str:
        return f"{UPDATE_DEPLOYMENT_PREFIX} {msg}"

    def prefix_cleanup(self, msg: str) -> str:
        return f"{CLEANUP_PREFIX} {msg}"
