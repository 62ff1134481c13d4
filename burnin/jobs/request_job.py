"""
Request Job
===========
Turns a committed "request" file into one "run" file per node instance, or
propagates an edited request to its existing run files.

New Request:
    1. Resolve the binary through the build resolver unless custom_binary is set
    2. Commit runs/run-<network>-<node_type>-<i>-<id>.toml for every instance,
       each with "[deploy-<network>-<node_type>] <pull_request>" so that the
       commit triggers the deploy job on a matching runner
    3. Send a single request notification

Updated Request:
    commit_sha only             → rebuild, run files get the new binary and SHA
    custom_binary only          → run files get the binary, commit_sha cleared
    commit_sha + custom_binary  → run files copy both from the request
    custom_options only         → run files copy options and commit_sha

    Run files are found in the local checkout, not through the GitLab API.
    Each is rewritten with an "[update-deployment]" commit, which triggers the
    update job. No notification is sent.
"""
import logging
import os
from typing import List, Optional

from burnin.agents.build_resolver import BuildResolver
from burnin.core.constants import RUNS_DIR
from burnin.core.errors import InvalidCommitError, PreconditionError
from burnin.core.interfaces import Gitlab, Notifier, Poller
from burnin.jobs.common import fetch_last_commit_diffs
from burnin.models.deployment import Deployment
from burnin.models.request import Request
from burnin.parser.diff_classifier import (
    Namespace,
    NewRecord,
    UpdatedFields,
    UpdateKind,
    classify,
)
from burnin.parser.record_codec import (
    dump_deployment,
    load_run_files,
    parse_request_file,
    parse_request_id,
    run_path,
)

logger = logging.getLogger(__name__)


def process_request(
    base_directory: str,
    base_branch: str,
    burnin_gitlab: Gitlab,
    build_gitlab: Gitlab,
    poller: Poller,
    notifier: Notifier,
) -> None:
    diffs = fetch_last_commit_diffs(burnin_gitlab, base_branch)

    intent = classify(diffs)
    if not isinstance(intent, (NewRecord, UpdatedFields)) or intent.namespace != Namespace.REQUESTS:
        raise InvalidCommitError(
            f"this CI job requires the last commit on branch '{base_branch}' to add or update exactly one "
            "file in folder 'requests'. in case of an update, only changes to 'commit_sha', "
            "'custom_binary' or 'custom_options' are currently supported"
        )

    request_id = parse_request_id(intent.path)
    local_request_path = os.path.join(base_directory, intent.path)
    logger.info("Parsing file %s", local_request_path)
    request = parse_request_file(local_request_path)

    resolver = BuildResolver(build_gitlab, poller)

    if isinstance(intent, NewRecord):
        process_new_request(request_id, request, base_branch, burnin_gitlab, resolver, notifier)
    else:
        process_updated_request(
            request_id, request, intent.kind, base_directory, base_branch, burnin_gitlab, resolver,
        )


def process_new_request(
    request_id: str,
    request: Request,
    branch: str,
    gitlab: Gitlab,
    resolver: BuildResolver,
    notifier: Notifier,
) -> None:
    logger.info("Processing new burn-in request %s (%d instances)", request_id, request.instance_count())
    template = Deployment.from_request(request)

    if request.custom_binary is None:
        logger.info("No 'custom_binary' provided. Trying to retrieve it...")
        build = resolver.resolve(request.pull_request, request.commit_sha)
        template.commit_sha = build.commit_sha
        template.custom_binary = build.binary_url

    for network, node_types in request.nodes.items():
        for node_type, count in node_types.items():
            for i in range(count):
                deployment = template.model_copy(update={"network": network, "node_type": node_type})
                path = run_path(network, node_type, i, request_id)
                logger.info("Committing file %s on branch '%s'", path, branch)
                gitlab.create_file(
                    path,
                    branch,
                    gitlab.prefix_deploy(network, node_type, request.pull_request),
                    dump_deployment(deployment),
                )

    notifier.send_request_notification(request)


def process_updated_request(
    request_id: str,
    request: Request,
    kind: UpdateKind,
    base_directory: str,
    branch: str,
    gitlab: Gitlab,
    resolver: BuildResolver,
) -> None:
    logger.info("Processing update (%s) to burn-in request %s", kind.value, request_id)

    custom_binary: Optional[str] = None
    commit_sha = ""

    if kind == UpdateKind.COMMIT_SHA:
        build = resolver.resolve(request.pull_request, request.commit_sha)
        custom_binary = build.binary_url
        commit_sha = build.commit_sha
    elif kind == UpdateKind.CUSTOM_BINARY and request.commit_sha:
        logger.info("'custom_binary' was updated, but 'commit_sha' was not. Removing 'commit_sha' from \"run\" files")
    elif kind in (UpdateKind.COMMIT_SHA_AND_CUSTOM_BINARY, UpdateKind.CUSTOM_OPTIONS_ONLY):
        commit_sha = request.commit_sha

    # Run files always need a binary, whether it was just added or already present
    if custom_binary is None and request.custom_binary is not None:
        custom_binary = request.custom_binary

    deployments = load_run_files(base_directory, request_id)
    if not deployments:
        raise PreconditionError(f"no \"run\" files found for burn-in request '{request_id}'")

    for deployment in deployments:
        update_deployment(deployment, commit_sha, custom_binary, request.custom_options, branch, gitlab)


def update_deployment(
    deployment: Deployment,
    commit_sha: str,
    custom_binary: Optional[str],
    custom_options: Optional[List[str]],
    branch: str,
    gitlab: Gitlab,
) -> None:
    deployment.commit_sha = commit_sha
    if custom_binary is not None:
        deployment.custom_binary = custom_binary
    deployment.custom_options = list(custom_options or [])

    path = f"{RUNS_DIR}/{deployment.filename}"
    logger.info("Updating file %s on branch '%s'", path, branch)
    gitlab.update_file(
        path,
        branch,
        gitlab.prefix_update_deployment(f"Update commit_sha and custom_binary in {path}"),
        dump_deployment(deployment),
    )
