"""
Cleanup Job
===========
Tears down a burn-in after its "run" file was deleted.

The deleted file no longer exists in the checkout, so the record is rebuilt
from the all-removed diff. If the run was deployed, the host is silenced,
put back on the nightly build and its runner unpaused. Once the last run
file of a request is gone, the request file is deleted as well.

Two cleanup jobs for the same request can race on that last step; a failed
delete is therefore only logged.
"""
import logging

from burnin.core import config
from burnin.core.constants import RUNS_DIR
from burnin.core.errors import APIError, InvalidCommitError
from burnin.core.interfaces import Alertmanager, AnsibleDriver, Gitlab, Notifier
from burnin.jobs.common import create_silence, fetch_last_commit_diffs, playbook_for
from burnin.models.deployment import Deployment
from burnin.parser.diff_classifier import DeletedRecord, Invalid, Namespace, classify
from burnin.parser.record_codec import (
    is_run_file_for_request,
    parse_deployment,
    parse_run_id,
    request_path,
)

logger = logging.getLogger(__name__)


def process_cleanup(
    base_branch: str,
    gitlab: Gitlab,
    alertmanager: Alertmanager,
    ansible: AnsibleDriver,
    notifier: Notifier,
) -> None:
    diffs = fetch_last_commit_diffs(gitlab, base_branch)

    intent = classify(diffs)
    if not isinstance(intent, DeletedRecord) or intent.namespace != Namespace.RUNS:
        reason = f" ({intent.reason})" if isinstance(intent, Invalid) else ""
        raise InvalidCommitError(
            f"this CI job requires the last commit on branch '{base_branch}' to remove exactly one "
            f"file from folder 'runs'{reason}"
        )

    deployment = parse_deployment(intent.removed_text)

    if deployment.is_deployed:
        tear_down(deployment, gitlab, alertmanager, ansible)

    request_id = parse_run_id(intent.path)
    if request_needs_cleaning_up(request_id, base_branch, gitlab):
        path = request_path(request_id)
        logger.info("Deleting file %s on branch '%s'", path, base_branch)
        try:
            gitlab.delete_file(path, base_branch, gitlab.prefix_skip_ci(f"Delete {path}"))
        except APIError as e:
            logger.warning(
                "Deleting file %s on branch '%s' failed: %s. It was probably deleted by a concurrent cleanup job",
                path, base_branch, e,
            )

    if deployment.is_deployed:
        notifier.send_cleanup_notification(deployment)


def tear_down(
    deployment: Deployment,
    gitlab: Gitlab,
    alertmanager: Alertmanager,
    ansible: AnsibleDriver,
) -> None:
    create_silence(
        alertmanager,
        deployment.deployed_on,
        f"Cleaning up burn-in test for {deployment.pull_request} on {deployment.deployed_on}",
    )

    playbook = playbook_for(deployment.network)
    logger.info(
        "Running ansible playbook %s on host %s with 'node_binary' %s",
        playbook, deployment.public_fqdn, config.NIGHTLY_BUILD_URL,
    )
    ansible.run_playbook(
        playbook,
        deployment.public_fqdn,
        config.NIGHTLY_BUILD_URL,
        False,
        deployment.deployed_on,
        None,
    )

    logger.info("Unpausing gitlab runner on %s", deployment.deployed_on)
    gitlab.unpause_runner(deployment.deployed_on)


def request_needs_cleaning_up(request_id: str, base_branch: str, gitlab: Gitlab) -> bool:
    """True if no run file of `request_id` is left on `base_branch`."""
    for f in gitlab.list_directory(RUNS_DIR, base_branch):
        if f.type == "blob" and is_run_file_for_request(f.name, request_id):
            logger.info("Run file %s still references request %s", f.name, request_id)
            return False
    return True
