"""
Collaborator Interfaces
=======================
Capabilities the lifecycle jobs and the build resolver depend on.

The concrete HTTP and subprocess implementations live in burnin/services;
tests substitute in-memory fakes. Method failures are reported by raising
BurninError subclasses (usually APIError or PlaybookError).
"""
from datetime import datetime
from typing import Callable, List, Optional, Protocol, Sequence

from burnin.models.deployment import Deployment
from burnin.models.gitlab import CommitDiff, FileInfo, Job, MergeRequest, Pipeline, Runner
from burnin.models.request import NodeType, Request
from burnin.models.silence import AlertMatcher


class Gitlab(Protocol):
    def get_last_commit_diffs(self, ref: str) -> List[CommitDiff]: ...

    def get_pipelines_for_branch(self, branch: str) -> List[Pipeline]: ...

    def get_pipeline_for_commit(self, sha: str) -> Pipeline: ...

    def get_pipeline(self, pipeline_id: int) -> Pipeline: ...

    def get_pipeline_jobs(self, pipeline_id: int) -> List[Job]: ...

    def get_job(self, job_id: int) -> Job: ...

    def start_job(self, job_id: int) -> None: ...

    def create_branch(self, name: str, from_branch: str) -> None: ...

    def list_directory(self, path: str, branch: str) -> List[FileInfo]: ...

    def create_file(self, path: str, branch: str, commit_msg: str, content: str) -> None: ...

    def update_file(self, path: str, branch: str, commit_msg: str, content: str) -> None: ...

    def delete_file(self, path: str, branch: str, commit_msg: str) -> None: ...

    def create_merge_request(self, title: str, source_branch: str, target_branch: str) -> MergeRequest: ...

    def get_runners(self) -> List[Runner]: ...

    def get_runner_tags(self, runner_id: int) -> List[str]: ...

    def pause_runner(self, hostname: str) -> None: ...

    def unpause_runner(self, hostname: str) -> None: ...

    def web_url_for_branch(self, branch: str) -> str: ...

    def web_url_for_job(self, job_id: int) -> str: ...

    def prefix_skip_ci(self, msg: str) -> str: ...

    def prefix_deploy(self, network: str, node_type: NodeType, msg: str) -> str: ...

    def prefix_update_deployment(self, msg: str) -> str: ...

    def prefix_cleanup(self, msg: str) -> str: ...


class Alertmanager(Protocol):
    def create_silence(
        self,
        matchers: Sequence[AlertMatcher],
        starts_at: datetime,
        ends_at: datetime,
        created_by: str,
        comment: str,
    ) -> str: ...

    def delete_silence(self, silence_id: str) -> None: ...


class AnsibleDriver(Protocol):
    def run_playbook(
        self,
        name: str,
        run_on: str,
        node_binary: Optional[str],
        wipe_chain_db: bool,
        node_public_name: str,
        custom_options: Optional[List[str]],
    ) -> None: ...


class Poller(Protocol):
    def poll(
        self,
        timeout: float,
        initial_status: str,
        update_status: Callable[[], str],
        *additional_wait_statuses: str,
    ) -> str: ...


class Notifier(Protocol):
    def send_request_notification(self, request: Request) -> None: ...

    def send_deployment_notification(self, deployment: Deployment) -> None: ...

    def send_update_notification(self, deployment: Deployment) -> None: ...

    def send_cleanup_notification(self, deployment: Deployment) -> None: ...

    def send_error_notification(self, error: BaseException) -> None: ...
