"""
Build Resolver
==============
Finds the upstream CI build of a pull request (or a single commit) and
returns the URL of the node binary it produced.

Resolution States:
    locating-pipeline → pipeline-found → locating-job → job-found
    → {polling-job | starting-job} → resolved | failed | timed-out

Pipeline Lookup:
    - With a commit SHA the pipeline of that commit is polled for; a missing
      pipeline is the wait status "nonexistent".
    - Without one, the branch is the trailing path segment of the pull
      request URL (".../pull/2013" → "2013"). An empty pipeline list is
      "nonexistent" and the first pipeline (most recently updated) wins.
    - Both lookups give up after PIPELINE_LOOKUP_TIMEOUT_SECONDS.
    - A failed pipeline is still usable: the build job may have succeeded.

Build Job:
    - success                         → accepted, no polling
    - failed                          → BuildError
    - created ... running             → polled for BUILD_JOB_TIMEOUT_SECONDS
    - manual / canceled / skipped     → started once, then polled
    Any final status other than success is a BuildError.

The artifact URL is <job web_url>/artifacts/raw/artifacts/<binary>. The
returned commit SHA is the pipeline's, which may differ from the requested
one when resolving by branch.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from urllib.parse import urlsplit

from burnin.core import config
from burnin.core.constants import (
    ARTIFACT_SUBPATH,
    BUILD_JOB_TIMEOUT_SECONDS,
    CONTINUABLE_PIPELINE_STATUSES,
    PENDING_JOB_STATUSES,
    PIPELINE_LOOKUP_TIMEOUT_SECONDS,
    PIPELINE_MISSING_STATUS,
    STARTABLE_JOB_STATUSES,
)
from burnin.core.errors import APIError, BuildError, PipelineNotFoundError, PollTimeoutError
from burnin.core.interfaces import Gitlab, Poller
from burnin.models.gitlab import Job, Pipeline
from burnin.utils.url_utils import add_paths_to_url

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedBuild:
    binary_url: str
    commit_sha: str


class BuildResolver:
    """Resolves pull requests and commits to downloadable node binaries."""

    def __init__(
        self,
        gitlab: Gitlab,
        poller: Poller,
        job_name: Optional[str] = None,
        binary_name: Optional[str] = None,
    ) -> None:
        self.gitlab = gitlab
        self.poller = poller
        self.job_name = job_name or config.BUILD_JOB_NAME
        self.binary_name = binary_name or config.BUILD_BINARY_NAME
        self.timeline: List[Dict[str, Any]] = []

    def _add_timeline_event(self, state: str, detail: str = "") -> None:
        self.timeline.append({
            "state": state,
            "detail": detail,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        })

    def get_timeline(self) -> List[Dict[str, Any]]:
        return self.timeline

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------
    def resolve(self, pull_request_url: str, commit_sha: str = "") -> ResolvedBuild:
        try:
            return self._resolve(pull_request_url, commit_sha)
        except PollTimeoutError as e:
            self._add_timeline_event("timed-out", str(e))
            raise
        except BuildError as e:
            self._add_timeline_event("failed", str(e))
            raise

    def _resolve(self, pull_request_url: str, commit_sha: str) -> ResolvedBuild:
        self._add_timeline_event("locating-pipeline", commit_sha or pull_request_url)
        pipeline = self.find_pipeline(pull_request_url, commit_sha)
        logger.info("Found %s (status: %s)", pipeline.web_url, pipeline.status)
        self._add_timeline_event("pipeline-found", f"{pipeline.id}:{pipeline.status}")

        if pipeline.status not in CONTINUABLE_PIPELINE_STATUSES:
            raise BuildError(f"cannot continue with pipeline status: '{pipeline.status}'")

        logger.info("Looking for '%s' job...", self.job_name)
        self._add_timeline_event("locating-job", self.job_name)
        job = self.find_build_job(pipeline.id)
        logger.info("Found %s (status: %s)", job.web_url, job.status)
        self._add_timeline_event("job-found", f"{job.id}:{job.status}")

        if job.status == "failed":
            raise BuildError(f"'{self.job_name}' job failed")

        if job.status in PENDING_JOB_STATUSES:
            job = self.poll_job(job)

        if job.status in STARTABLE_JOB_STATUSES:
            logger.info("Starting job %d...", job.id)
            self._add_timeline_event("starting-job", str(job.id))
            try:
                self.gitlab.start_job(job.id)
            except APIError as e:
                raise BuildError(f"failed to start '{self.job_name}' job: {e}") from e
            logger.info("'%s' job started", self.job_name)
            job = self.poll_job(job)

        if job.status != "success":
            raise BuildError(f"'{self.job_name}' job ended with status '{job.status}'")

        binary_url = add_paths_to_url(job.web_url, ARTIFACT_SUBPATH, self.binary_name)
        self._add_timeline_event("resolved", binary_url)
        return ResolvedBuild(binary_url=binary_url, commit_sha=pipeline.sha)

    # ------------------------------------------------------------------
    # Pipelines
    # ------------------------------------------------------------------
    def find_pipeline(self, pull_request_url: str, commit_sha: str = "") -> Pipeline:
        if commit_sha:
            logger.info("Searching for CI pipeline for commit '%s'", commit_sha)
            return self.find_pipeline_for_commit(commit_sha)

        branch = pull_request_branch(pull_request_url)
        logger.info(
            "Searching for CI pipeline for branch '%s' (%s)",
            branch, self.gitlab.web_url_for_branch(branch),
        )
        return self.find_pipeline_for_branch(branch)

    def find_pipeline_for_commit(self, commit_sha: str) -> Pipeline:
        found: Dict[str, Pipeline] = {}

        # Any existing pipeline ends the lookup, whatever its status
        def update_status() -> str:
            try:
                found["pipeline"] = self.gitlab.get_pipeline_for_commit(commit_sha)
            except PipelineNotFoundError:
                return PIPELINE_MISSING_STATUS
            return ""

        self.poller.poll(
            PIPELINE_LOOKUP_TIMEOUT_SECONDS,
            PIPELINE_MISSING_STATUS,
            update_status,
            PIPELINE_MISSING_STATUS,
        )
        return found["pipeline"]

    def find_pipeline_for_branch(self, branch: str) -> Pipeline:
        found: Dict[str, Pipeline] = {}

        def update_status() -> str:
            pipelines = self.gitlab.get_pipelines_for_branch(branch)
            if not pipelines:
                return PIPELINE_MISSING_STATUS
            # ordered by 'updated_at'
            found["pipeline"] = pipelines[0]
            return pipelines[0].status

        self.poller.poll(
            PIPELINE_LOOKUP_TIMEOUT_SECONDS,
            PIPELINE_MISSING_STATUS,
            update_status,
            PIPELINE_MISSING_STATUS,
        )
        return found["pipeline"]

    # ------------------------------------------------------------------
    # Jobs
    # ------------------------------------------------------------------
    def find_build_job(self, pipeline_id: int) -> Job:
        for job in self.gitlab.get_pipeline_jobs(pipeline_id):
            if job.name == self.job_name:
                return job
        raise BuildError(f"no job named '{self.job_name}' found in pipeline '{pipeline_id}'")

    def poll_job(self, job: Job) -> Job:
        self._add_timeline_event("polling-job", f"{job.id}:{job.status}")
        latest = {"job": job}

        def update_status() -> str:
            latest["job"] = self.gitlab.get_job(job.id)
            logger.info("Polling job %d (status: %s)", job.id, latest["job"].status)
            return latest["job"].status

        self.poller.poll(BUILD_JOB_TIMEOUT_SECONDS, job.status, update_status, "running")
        return latest["job"]


def pull_request_branch(pull_request_url: str) -> str:
    """'https://github.com/paritytech/polkadot/pull/2013' -> '2013'"""
    return urlsplit(pull_request_url).path.rstrip("/").split("/")[-1]
