"""
Request Model
=============
Pydantic model for a burn-in request ("request" file).

Fields:
    pull_request        — e.g. https://github.com/paritytech/polkadot/pull/2013
    commit_sha          — optional, only considered if 'custom_binary' is not provided
    custom_binary       — optional URL to the node binary, usually a CI artifact
    custom_options      — optional extra CLI flags passed on to Ansible
    requested_by        — github/matrix handle or email address
    sync_from_scratch   — if true, the chain db is wiped before updating the binary
    nodes               — e.g. nodes["kusama"][NodeType.FULLNODE] = 2

The request ID is not a field: it is the timestamp embedded in the file path
(requests/request-<id>.toml).
"""
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class NodeType(str, Enum):
    FULLNODE = "fullnode"
    SENTRY = "sentry"
    VALIDATOR = "validator"


NodesPerNetwork = Dict[str, Dict[NodeType, int]]


class Request(BaseModel):
    pull_request: str
    commit_sha: str = ""
    custom_binary: Optional[str] = None
    custom_options: Optional[List[str]] = None
    requested_by: str = ""
    sync_from_scratch: bool = False
    nodes: NodesPerNetwork = Field(default_factory=dict)

    def instance_count(self) -> int:
        return sum(count for node_types in self.nodes.values() for count in node_types.values())
