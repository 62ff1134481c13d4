"""
Message Templates
=================
Centralised store for the HTML chat notifications sent to the burn-in room.

Formatting Rules:
    - Every message links back to the CI job that produced it
    - Pull requests of the upstream repository are shortened to polkadot#<n>
    - Commit links are only rendered for upstream pull requests
    - All interpolated values are HTML-escaped
"""
import html
from typing import Optional

from burnin.core import config
from burnin.models.deployment import Deployment
from burnin.models.request import Request

UPSTREAM_REPOSITORY_URL = "https://github.com/paritytech/polkadot"
NETWORKING_DASHBOARD = "substrate_networking"


# ---------------------------------------------------------------------------
# Templates
# ---------------------------------------------------------------------------
REQUEST_TEMPLATE = (
    '<a href="{job_url}">Processed burn-in request</a> for <a href="{pr_url}">{pr}</a>\n'
    "(requested by {requested_by})"
)

_DEPLOYMENT_DETAILS = (
    "<ul>\n"
    '<li><a href="{overview_url}">Burn-in Test Overview</a></li>\n'
    "{commit_item}"
    '<li><a href="{binary_url}">Client Binary</a></li>\n'
    '<li><a href="{log_viewer}">Logs</a></li>\n'
    "{dashboard_item}"
    "</ul>\n"
)

DEPLOY_TEMPLATE = (
    '<a href="{job_url}">Deployed burn-in</a> for <a href="{pr_url}">{pr}</a>\n'
    "(requested by {requested_by}) on {deployed_on}<br />\n" + _DEPLOYMENT_DETAILS
)

UPDATE_TEMPLATE = (
    '<a href="{job_url}">Updated burn-in</a> for <a href="{pr_url}">{pr}</a>\n'
    "(requested by {requested_by}) on {deployed_on}<br />\n" + _DEPLOYMENT_DETAILS
)

CLEANUP_TEMPLATE = (
    '<a href="{job_url}">Removed burn-in</a> for <a href="{pr_url}">{pr}</a>\n'
    "(requested by {requested_by}) from {deployed_on}"
)

ERROR_TEMPLATE = '<a href="{job_url}">Burn-in CI job failed</a> with the following error:<br /><pre>{error}</pre>'


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def format_pull_request(pull_request: str) -> str:
    """'https://github.com/paritytech/polkadot/pull/2398' -> 'polkadot#2398'"""
    if pull_request.startswith(UPSTREAM_REPOSITORY_URL):
        return "polkadot#" + pull_request.replace(UPSTREAM_REPOSITORY_URL + "/pull/", "", 1)
    return pull_request


def build_commit_url(commit_sha: str, pull_request: str) -> str:
    if not commit_sha or not pull_request.startswith(UPSTREAM_REPOSITORY_URL):
        return ""
    return f"{UPSTREAM_REPOSITORY_URL}/tree/{commit_sha}"


def _e(value: Optional[str]) -> str:
    return html.escape(value or "", quote=True)


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------
def render_request(request: Request, job_url: str) -> str:
    return REQUEST_TEMPLATE.format(
        job_url=_e(job_url),
        pr_url=_e(request.pull_request),
        pr=_e(format_pull_request(request.pull_request)),
        requested_by=_e(request.requested_by),
    )


def _render_deployment(template: str, deployment: Deployment, job_url: str) -> str:
    commit_url = build_commit_url(deployment.commit_sha, deployment.pull_request)
    commit_item = ""
    if commit_url:
        commit_item = (
            f'<li>Commit SHA: <a href="{_e(commit_url)}"><code>{_e(deployment.commit_sha)}</code></a></li>\n'
        )

    dashboard_url = deployment.dashboards.get(NETWORKING_DASHBOARD, "")
    dashboard_item = ""
    if dashboard_url:
        dashboard_item = f'<li><a href="{_e(dashboard_url)}">Substrate Networking Dashboard</a></li>\n'

    return template.format(
        job_url=_e(job_url),
        pr_url=_e(deployment.pull_request),
        pr=_e(format_pull_request(deployment.pull_request)),
        requested_by=_e(deployment.requested_by),
        deployed_on=_e(deployment.deployed_on),
        overview_url=_e(config.BURNIN_OVERVIEW_URL),
        commit_item=commit_item,
        binary_url=_e(deployment.custom_binary),
        log_viewer=_e(deployment.log_viewer),
        dashboard_item=dashboard_item,
    )


def render_deployment(deployment: Deployment, job_url: str) -> str:
    return _render_deployment(DEPLOY_TEMPLATE, deployment, job_url)


def render_update(deployment: Deployment, job_url: str) -> str:
    return _render_deployment(UPDATE_TEMPLATE, deployment, job_url)


def render_cleanup(deployment: Deployment, job_url: str) -> str:
    return CLEANUP_TEMPLATE.format(
        job_url=_e(job_url),
        pr_url=_e(deployment.pull_request),
        pr=_e(format_pull_request(deployment.pull_request)),
        requested_by=_e(deployment.requested_by),
        deployed_on=_e(deployment.deployed_on),
    )


def render_error(error: BaseException, job_url: str) -> str:
    return ERROR_TEMPLATE.format(job_url=_e(job_url), error=_e(str(error)))
