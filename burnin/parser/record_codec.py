"""
Record Codec
============
Parses, validates and serialises "request" and "run" files, and maps record
identities to and from repository paths.

Path conventions (relative to the repository root, case-sensitive):
    requests/request-<request_id>.toml
    runs/run-<network>-<node_type>-<seq>-<request_id>.toml

Validation Rules:
    - pull_request must start with the allowed upstream repository prefix
    - custom_binary, when present, must be an absolute URL
    - every per-network per-node-type count must lie in [0, MAX_NODES_PER_TYPE]
    - node types outside {fullnode, sentry, validator} are rejected

Violations raise InvalidRecordError and are never clamped: the count limit
guards the shared burn-in machines.
"""
import glob
import json
import logging
import os
import re
import tomllib
from dataclasses import dataclass
from typing import List, Optional
from urllib.parse import urlsplit

import tomli_w
from pydantic import ValidationError

from burnin.core import config
from burnin.core.constants import (
    CUSTOM_OPTIONS_FIELD,
    MAX_NODES_PER_TYPE,
    RECORD_SUFFIX,
    REQUEST_PATH_PREFIX,
    RUN_PATH_PREFIX,
    RUNS_DIR,
)
from burnin.core.errors import InvalidRecordError
from burnin.models.deployment import Deployment
from burnin.models.request import NodeType, Request

logger = logging.getLogger(__name__)

# Deployment fields left out of the TOML output while they are empty
_OMIT_WHEN_EMPTY = frozenset({
    "deployed_at",
    "updated_at",
    "deployed_on",
    "public_fqdn",
    "internal_fqdn",
    "log_viewer",
    "dashboards",
})

_RUN_KEY_PATTERN = re.compile(
    r"(?P<network>.+)-(?P<node_type>fullnode|sentry|validator)-(?P<seq>\d+)-(?P<request_id>\d+)"
)


# ---------------------------------------------------------------------------
# Paths
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class RunKey:
    """Identity of a run file: <network>-<node_type>-<seq>-<request_id>."""
    network: str
    node_type: NodeType
    seq: int
    request_id: str

    def __str__(self) -> str:
        return f"{self.network}-{self.node_type.value}-{self.seq}-{self.request_id}"


def is_request_path(path: Optional[str]) -> bool:
    return bool(path) and path.startswith(REQUEST_PATH_PREFIX) and path.endswith(RECORD_SUFFIX)


def is_run_path(path: Optional[str]) -> bool:
    return bool(path) and path.startswith(RUN_PATH_PREFIX) and path.endswith(RECORD_SUFFIX)


def request_path(request_id: str) -> str:
    return f"{REQUEST_PATH_PREFIX}{request_id}{RECORD_SUFFIX}"


def run_path(network: str, node_type: NodeType, seq: int, request_id: str) -> str:
    return f"{RUN_PATH_PREFIX}{RunKey(network, node_type, seq, request_id)}{RECORD_SUFFIX}"


def _strip(path: str, prefix: str) -> str:
    stripped = path[len(prefix):] if path.startswith(prefix) else path
    if stripped.endswith(RECORD_SUFFIX):
        stripped = stripped[:-len(RECORD_SUFFIX)]
    return stripped


def parse_request_id(path: str) -> str:
    """'requests/request-1602856340.toml' -> '1602856340'"""
    request_id = _strip(path, REQUEST_PATH_PREFIX)
    if not request_id or not request_id.isdigit():
        raise InvalidRecordError(
            f"invalid path '{path}' (must be 'requests/request-<unix timestamp>.toml')"
        )
    return request_id


def parse_run_suffix(path: str) -> str:
    """'runs/run-kusama-fullnode-0-1602856340.toml' -> 'kusama-fullnode-0-1602856340'"""
    suffix = _strip(path, RUN_PATH_PREFIX)
    if not suffix:
        raise InvalidRecordError(
            f"invalid path '{path}' (must be 'runs/run-<network>-<node type>-<seq num>-<unix timestamp>.toml')"
        )
    return suffix


def parse_run_key(path: str) -> RunKey:
    suffix = parse_run_suffix(path)
    match = _RUN_KEY_PATTERN.fullmatch(suffix)
    if not match:
        raise InvalidRecordError(
            f"invalid path '{path}' (must be 'runs/run-<network>-<node type>-<seq num>-<unix timestamp>.toml')"
        )
    return RunKey(
        network=match.group("network"),
        node_type=NodeType(match.group("node_type")),
        seq=int(match.group("seq")),
        request_id=match.group("request_id"),
    )


def parse_run_id(path: str) -> str:
    """'runs/run-kusama-fullnode-0-1602856340.toml' -> '1602856340'"""
    return parse_run_key(path).request_id


def is_run_file_for_request(filename: str, request_id: str) -> bool:
    """True if `filename` (without directory) names a run file of `request_id`."""
    try:
        return parse_run_key(f"{RUNS_DIR}/{filename}").request_id == request_id
    except InvalidRecordError:
        return False


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------
def is_absolute_url(value: str) -> bool:
    parts = urlsplit(value)
    return bool(parts.scheme) and bool(parts.netloc)


def validate_request(request: Request, upstream_prefix: Optional[str] = None) -> None:
    prefix = upstream_prefix if upstream_prefix is not None else config.UPSTREAM_REPOSITORY_PREFIX
    if not request.pull_request.startswith(prefix):
        raise InvalidRecordError(
            f"invalid pull request URL: '{request.pull_request}'. only {prefix} is currently supported"
        )

    for network, node_types in request.nodes.items():
        for node_type, count in node_types.items():
            if count < 0 or count > MAX_NODES_PER_TYPE:
                raise InvalidRecordError(
                    f"using {count} {node_type.value} nodes on {network} for a burn-in seems a bit much. aborting"
                )

    if request.custom_binary is not None and not is_absolute_url(request.custom_binary):
        raise InvalidRecordError(f"invalid custom binary URL '{request.custom_binary}'")


# ---------------------------------------------------------------------------
# TOML
# ---------------------------------------------------------------------------
def _inline_array(key: str, values: List[str]) -> str:
    items = ", ".join(json.dumps(v, ensure_ascii=False) for v in values)
    return f"{key} = [{items}]\n"


def _dumps(data: dict, field_order: List[str]) -> str:
    """
    tomli_w.dumps with custom_options kept on a single line.

    tomli_w spreads non-empty arrays over several lines; an edited option
    must change the `custom_options = [...]` line itself to be recognised
    as an update.
    """
    if CUSTOM_OPTIONS_FIELD not in data:
        return tomli_w.dumps(data)

    options = data.pop(CUSTOM_OPTIONS_FIELD)
    position = field_order.index(CUSTOM_OPTIONS_FIELD)
    head = {k: v for k, v in data.items() if field_order.index(k) < position}
    tail = {k: v for k, v in data.items() if field_order.index(k) > position}
    return tomli_w.dumps(head) + _inline_array(CUSTOM_OPTIONS_FIELD, options) + tomli_w.dumps(tail)


def _load_toml(text: str, what: str) -> dict:
    try:
        return tomllib.loads(text)
    except tomllib.TOMLDecodeError as e:
        raise InvalidRecordError(f"invalid {what}: {e}") from e


def parse_request(text: str, upstream_prefix: Optional[str] = None) -> Request:
    data = _load_toml(text, "request file")
    try:
        request = Request.model_validate(data)
    except ValidationError as e:
        raise InvalidRecordError(f"invalid request file: {e}") from e

    validate_request(request, upstream_prefix)
    return request


def parse_request_file(path: str, upstream_prefix: Optional[str] = None) -> Request:
    with open(path, "r", encoding="utf-8") as f:
        return parse_request(f.read(), upstream_prefix)


def dump_request(request: Request) -> str:
    data = request.model_dump(exclude_none=True)
    data["nodes"] = {
        network: {node_type.value: count for node_type, count in node_types.items()}
        for network, node_types in request.nodes.items()
    }
    return _dumps(data, list(Request.model_fields))


def parse_deployment(text: str) -> Deployment:
    """Parse a run file body without validating it."""
    data = _load_toml(text, "run file")
    try:
        return Deployment.model_validate(data)
    except ValidationError as e:
        raise InvalidRecordError(f"invalid run file: {e}") from e


def parse_run_file(path: str) -> Deployment:
    with open(path, "r", encoding="utf-8") as f:
        deployment = parse_deployment(f.read())

    if not is_absolute_url(deployment.custom_binary):
        raise InvalidRecordError(f"invalid custom binary URL '{deployment.custom_binary}'")

    deployment.filename = os.path.basename(path)
    return deployment


def dump_deployment(deployment: Deployment) -> str:
    data = deployment.model_dump(exclude_none=True)
    if deployment.node_type is not None:
        data["node_type"] = deployment.node_type.value

    for field in _OMIT_WHEN_EMPTY:
        if field in data and not data[field]:
            del data[field]

    return _dumps(data, list(Deployment.model_fields))


def load_run_files(base_directory: str, request_id: str) -> List[Deployment]:
    """Load every run file of `request_id` from the local checkout."""
    pattern = os.path.join(base_directory, RUNS_DIR, f"run-*-{request_id}{RECORD_SUFFIX}")
    deployments = []
    for run_file in sorted(glob.glob(pattern)):
        logger.debug("Loading run file %s", run_file)
        deployments.append(parse_run_file(run_file))
    return deployments
