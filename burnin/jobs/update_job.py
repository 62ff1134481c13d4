"""
Update Job
==========
Re-applies an edited "run" file to the host it is already deployed on.

Only commits that change commit_sha, custom_binary or custom_options in an
existing run file are accepted; a commit that merely adds one of them, or
touches anything else, is rejected. The node is redeployed over SSH on its
public FQDN and never wiped. updated_at is bumped with a "[skip ci]" commit.
"""
import logging
import os

from burnin.core.errors import InvalidCommitError, PreconditionError
from burnin.core.interfaces import Alertmanager, AnsibleDriver, Gitlab, Notifier
from burnin.jobs.common import create_silence, dump_diffs, fetch_last_commit_diffs, playbook_for, utcnow
from burnin.parser.diff_classifier import Invalid, Namespace, UpdatedFields, classify
from burnin.parser.record_codec import dump_deployment, parse_run_file

logger = logging.getLogger(__name__)


def process_update(
    base_directory: str,
    base_branch: str,
    gitlab: Gitlab,
    alertmanager: Alertmanager,
    ansible: AnsibleDriver,
    notifier: Notifier,
) -> None:
    diffs = fetch_last_commit_diffs(gitlab, base_branch)

    intent = classify(diffs)
    if not isinstance(intent, UpdatedFields) or intent.namespace != Namespace.RUNS:
        logger.debug("Diff received from GitLab API: %s", dump_diffs(diffs))
        reason = f" ({intent.reason})" if isinstance(intent, Invalid) else ""
        raise InvalidCommitError(
            f"this CI job requires the last commit on branch '{base_branch}' to update exactly one "
            f"file in folder 'runs'{reason}"
        )

    local_run_path = os.path.join(base_directory, intent.path)
    logger.info("Parsing file %s", local_run_path)
    deployment = parse_run_file(local_run_path)

    if not deployment.is_deployed:
        raise PreconditionError(
            "seems like this has not been deployed yet. maybe the request was updated too soon. please consult a human"
        )
    logger.info(
        "Updating ongoing burn-in test for '%s' on host '%s' (changed: %s)",
        deployment.pull_request, deployment.deployed_on, ", ".join(sorted(intent.fields)),
    )

    create_silence(
        alertmanager,
        deployment.deployed_on,
        f"Updating burn-in test for {deployment.pull_request} on {deployment.deployed_on}",
    )

    playbook = playbook_for(deployment.network)
    logger.info("Running ansible playbook %s on host %s", playbook, deployment.deployed_on)
    ansible.run_playbook(
        playbook,
        deployment.public_fqdn,
        deployment.custom_binary,
        False,
        deployment.deployed_on,
        deployment.custom_options,
    )

    deployment.updated_at = utcnow()
    gitlab.update_file(
        intent.path,
        base_branch,
        gitlab.prefix_skip_ci(f"Update 'updated_at' for current burn-in on {deployment.deployed_on}"),
        dump_deployment(deployment),
    )

    notifier.send_update_notification(deployment)
