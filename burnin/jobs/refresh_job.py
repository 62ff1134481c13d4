"""
Refresh Job
===========
Redeploys the nightly build to every idle burn-in host.

Hosts are discovered from GitLab runners: the runner description is the
hostname, and a tag "<network>-<role>" with role fullnode or sentry names the
network it syncs. Validators are never touched. The runners API sometimes
returns duplicates, so each hostname is handled once.

Each host gets its own 20 minute silence (with an extra chain matcher) and
its own playbook run, so one failing host does not hide the others' state.
"""
import logging
from typing import Dict, List

from burnin.core import config
from burnin.core.constants import REFRESH_SILENCE_COMMENT
from burnin.core.interfaces import Alertmanager, AnsibleDriver, Gitlab
from burnin.jobs.common import create_silence, playbook_for
from burnin.models.request import NodeType
from burnin.models.silence import AlertMatcher
from burnin.utils.url_utils import hostname_to_fqdns

logger = logging.getLogger(__name__)

_REFRESHED_ROLES = {NodeType.FULLNODE.value, NodeType.SENTRY.value}


def process_refresh(gitlab: Gitlab, alertmanager: Alertmanager, ansible: AnsibleDriver) -> None:
    hostnames_by_network = get_runner_hostnames_by_network(gitlab)

    for network, hostnames in hostnames_by_network.items():
        playbook = playbook_for(network)

        for hostname in hostnames:
            create_silence(
                alertmanager,
                hostname,
                REFRESH_SILENCE_COMMENT,
                duration_minutes=config.REFRESH_SILENCE_DURATION_MINUTES,
                extra_matchers=[AlertMatcher(name="chain", value=network, is_regex=False)],
            )

            public_fqdn, _ = hostname_to_fqdns(hostname)
            logger.info(
                "Running ansible playbook %s on host %s with 'node_binary' %s",
                playbook, public_fqdn, config.NIGHTLY_BUILD_URL,
            )
            ansible.run_playbook(playbook, public_fqdn, config.NIGHTLY_BUILD_URL, False, hostname, None)


def get_runner_hostnames_by_network(gitlab: Gitlab) -> Dict[str, List[str]]:
    hostnames_by_network: Dict[str, List[str]] = {}
    seen = set()

    for runner in gitlab.get_runners():
        if not runner.active:
            continue

        for tag in gitlab.get_runner_tags(runner.id):
            parts = tag.split("-")
            if len(parts) != 2 or parts[1] not in _REFRESHED_ROLES:
                continue
            if runner.description in seen:
                continue
            hostnames_by_network.setdefault(parts[0], []).append(runner.description)
            seen.add(runner.description)

    logger.info("Found idle burn-in hosts: %s", hostnames_by_network)
    return hostnames_by_network
