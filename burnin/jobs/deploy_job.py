"""
Deploy Job
==========
Runs on the burn-in host itself after a new "run" file was committed.

Steps:
    1. Silence alerts for the host
    2. Run <network>-nodes.yml locally; the chain db is wiped only for a
       fullnode that asked to sync from scratch
    3. Record deployed_at, deployed_on, FQDNs, log viewer and dashboards in
       the run file ("[skip ci]" commit)
    4. Pause the host's GitLab runner so no other burn-in lands on it
    5. Send the deployment notification
"""
import logging
import os

from burnin.core.errors import InvalidCommitError
from burnin.core.interfaces import Alertmanager, AnsibleDriver, Gitlab, Notifier
from burnin.jobs.common import create_silence, fetch_last_commit_diffs, playbook_for, utcnow
from burnin.models.deployment import Deployment
from burnin.models.request import NodeType
from burnin.parser.diff_classifier import Namespace, NewRecord, classify
from burnin.parser.record_codec import dump_deployment, parse_run_file
from burnin.utils.url_utils import dashboard_urls, hostname_to_fqdns, log_viewer_url

logger = logging.getLogger(__name__)

LOCALHOST = "localhost"


def process_deploy(
    base_directory: str,
    base_branch: str,
    target_hostname: str,
    gitlab: Gitlab,
    alertmanager: Alertmanager,
    ansible: AnsibleDriver,
    notifier: Notifier,
) -> None:
    diffs = fetch_last_commit_diffs(gitlab, base_branch)

    intent = classify(diffs)
    if not isinstance(intent, NewRecord) or intent.namespace != Namespace.RUNS:
        raise InvalidCommitError(
            f"this CI job requires the last commit on branch '{base_branch}' to add exactly one file in folder 'runs'"
        )

    local_run_path = os.path.join(base_directory, intent.path)
    logger.info("Parsing file %s", local_run_path)
    deployment = parse_run_file(local_run_path)

    create_silence(
        alertmanager,
        target_hostname,
        f"Deploying burn-in test for {deployment.pull_request} on {target_hostname}",
    )

    playbook = playbook_for(deployment.network)
    wipe_chain_db = deployment.node_type == NodeType.FULLNODE and deployment.sync_from_scratch
    logger.info(
        "Running ansible playbook %s on host %s with 'node_binary' %s%s",
        playbook, target_hostname, deployment.custom_binary,
        " and 'node_force_wipe'" if wipe_chain_db else "",
    )
    ansible.run_playbook(
        playbook,
        LOCALHOST,
        deployment.custom_binary,
        wipe_chain_db,
        target_hostname,
        deployment.custom_options,
    )

    logger.info("Adding 'deployed_at' and 'deployed_on' to file %s", intent.path)
    add_deployment_info(deployment, target_hostname)
    gitlab.update_file(
        intent.path,
        base_branch,
        gitlab.prefix_skip_ci(f"deployed_on: {target_hostname}"),
        dump_deployment(deployment),
    )

    logger.info("Pausing gitlab runner on host %s", target_hostname)
    gitlab.pause_runner(target_hostname)

    notifier.send_deployment_notification(deployment)


def add_deployment_info(deployment: Deployment, target_hostname: str) -> Deployment:
    deployment.deployed_at = utcnow()
    deployment.deployed_on = target_hostname
    deployment.public_fqdn, deployment.internal_fqdn = hostname_to_fqdns(target_hostname)
    deployment.log_viewer = log_viewer_url(deployment.network, target_hostname)
    deployment.dashboards = dashboard_urls(deployment.network, target_hostname, deployment.internal_fqdn)
    return deployment
