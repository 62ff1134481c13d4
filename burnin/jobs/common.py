"""
Job Helpers
===========
Steps shared by the lifecycle jobs: fetching the commit under inspection,
silencing alerts for a host and naming its playbook.
"""
import json
import logging
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Sequence

from burnin.core import config
from burnin.core.constants import SILENCE_CREATED_BY
from burnin.core.interfaces import Alertmanager, Gitlab
from burnin.models.gitlab import CommitDiff
from burnin.models.silence import AlertMatcher

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def fetch_last_commit_diffs(gitlab: Gitlab, base_branch: str) -> List[CommitDiff]:
    """Diffs of CI_COMMIT_SHA, or of the head of `base_branch` when it is unset."""
    current_commit = config.CI_COMMIT_SHA
    if current_commit:
        logger.info(
            "Fetching most recent commit diffs for branch '%s' (commit: '%s')",
            base_branch, current_commit,
        )
        return gitlab.get_last_commit_diffs(current_commit)

    logger.info("Fetching most recent commit diffs for branch '%s'", base_branch)
    return gitlab.get_last_commit_diffs(base_branch)


def dump_diffs(diffs: Sequence[CommitDiff]) -> str:
    return json.dumps([d.model_dump() for d in diffs], indent=4)


def host_matcher(hostname: str) -> AlertMatcher:
    return AlertMatcher(name="instance", value=f".*{hostname}.*", is_regex=True)


def create_silence(
    alertmanager: Alertmanager,
    target_hostname: str,
    comment: str,
    duration_minutes: Optional[int] = None,
    extra_matchers: Sequence[AlertMatcher] = (),
) -> str:
    if duration_minutes is None:
        duration_minutes = config.SILENCE_DURATION_MINUTES

    logger.info("Creating silence for host %s (%d minutes)", target_hostname, duration_minutes)
    starts_at = utcnow()
    silence_id = alertmanager.create_silence(
        [host_matcher(target_hostname), *extra_matchers],
        starts_at,
        starts_at + timedelta(minutes=duration_minutes),
        SILENCE_CREATED_BY,
        comment,
    )
    logger.info("Silence id: %s", silence_id)
    return silence_id


def playbook_for(network: str) -> str:
    return f"{network}-nodes.yml"
