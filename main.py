"""
Burn-in Job Runner
==================
Entry point of every burn-in CI job:

    python main.py <request|deploy|update|cleanup|refresh>

The working directory is the checkout of the burn-in repository and the
machine's hostname is the deploy target. On failure the error is logged,
sent to the Matrix room when a client was already created, and the process
exits with status 1.
"""
import argparse
import logging
import os
import socket
import sys
from typing import Callable, Dict, Optional

from burnin.agents.poller import Poller
from burnin.core import config
from burnin.core.errors import BurninError
from burnin.jobs.cleanup_job import process_cleanup
from burnin.jobs.deploy_job import process_deploy
from burnin.jobs.refresh_job import process_refresh
from burnin.jobs.request_job import process_request
from burnin.jobs.update_job import process_update
from burnin.services.alertmanager_client import AlertmanagerClient
from burnin.services.ansible_driver import AnsibleDriver
from burnin.services.gitlab_client import GitlabClient
from burnin.services.matrix_client import MatrixClient
from burnin.utils.logging_config import setup_logging

logger = logging.getLogger("main")

MODES = ("request", "deploy", "update", "cleanup", "refresh")


class JobContext:
    """Builds the collaborators a job needs from the environment."""

    def __init__(self, base_directory: str, target_hostname: str) -> None:
        self.base_directory = base_directory
        self.target_hostname = target_hostname
        self.base_branch = config.CI_COMMIT_BRANCH
        self.matrix: Optional[MatrixClient] = None

    def gitlab(self, project_id: Optional[int] = None) -> GitlabClient:
        client = GitlabClient(
            config.CI_SERVER_URL,
            project_id if project_id is not None else config.CI_PROJECT_ID,
            config.GITLAB_TOKEN,
        )
        client.authenticate()
        return client

    def notifier(self, burnin_gitlab: GitlabClient) -> MatrixClient:
        matrix = MatrixClient(
            config.MATRIX_HOMESERVER_URL,
            config.MATRIX_ROOM_ID,
            config.MATRIX_TOKEN,
            burnin_gitlab.web_url_for_job(config.CI_JOB_ID),
        )
        matrix.authenticate()
        self.matrix = matrix
        return matrix

    def alertmanager(self) -> AlertmanagerClient:
        return AlertmanagerClient(config.ALERTMANAGER_API_URL)

    def ansible(self) -> AnsibleDriver:
        return AnsibleDriver(self.base_directory)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------
def cmd_request(ctx: JobContext) -> None:
    burnin_gitlab = ctx.gitlab()
    build_gitlab = ctx.gitlab(config.BUILD_GITLAB_PROJECT_ID)
    process_request(
        ctx.base_directory,
        ctx.base_branch,
        burnin_gitlab,
        build_gitlab,
        Poller(),
        ctx.notifier(burnin_gitlab),
    )


def cmd_deploy(ctx: JobContext) -> None:
    gitlab = ctx.gitlab()
    process_deploy(
        ctx.base_directory,
        ctx.base_branch,
        ctx.target_hostname,
        gitlab,
        ctx.alertmanager(),
        ctx.ansible(),
        ctx.notifier(gitlab),
    )


def cmd_update(ctx: JobContext) -> None:
    gitlab = ctx.gitlab()
    process_update(
        ctx.base_directory,
        ctx.base_branch,
        gitlab,
        ctx.alertmanager(),
        ctx.ansible(),
        ctx.notifier(gitlab),
    )


def cmd_cleanup(ctx: JobContext) -> None:
    gitlab = ctx.gitlab()
    process_cleanup(ctx.base_branch, gitlab, ctx.alertmanager(), ctx.ansible(), ctx.notifier(gitlab))


def cmd_refresh(ctx: JobContext) -> None:
    gitlab = ctx.gitlab()
    ctx.notifier(gitlab)
    process_refresh(gitlab, ctx.alertmanager(), ctx.ansible())


COMMANDS: Dict[str, Callable[[JobContext], None]] = {
    "request": cmd_request,
    "deploy": cmd_deploy,
    "update": cmd_update,
    "cleanup": cmd_cleanup,
    "refresh": cmd_refresh,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="burnin-job", description="Run a burn-in CI job.")
    parser.add_argument("mode", choices=MODES, help="job to run")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    setup_logging(level=logging.INFO)
    ctx = JobContext(os.getcwd(), socket.gethostname())

    try:
        COMMANDS[args.mode](ctx)
    except Exception as e:
        logger.error("Job '%s' failed: %s", args.mode, e, exc_info=not isinstance(e, BurninError))
        if ctx.matrix is not None:
            try:
                ctx.matrix.send_error_notification(e)
            except BurninError as notify_err:
                logger.error("Sending error notification to Matrix failed: %s", notify_err)
        return 1

    logger.info("Done")
    return 0


if __name__ == "__main__":
    sys.exit(main())
