"""
Deployment Model
================
Pydantic model for one node instance materialised from a Request ("run" file).

The identity key <network>-<node_type>-<seq>-<request_id> is encoded in the
file name, which is tracked in `filename` but never serialised.

A deployment is pending until `deployed_on` is set by the deploy job.
"""
from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from burnin.models.request import NodeType, Request


class Deployment(BaseModel):
    pull_request: str = ""
    commit_sha: str = ""
    custom_binary: str = ""
    custom_options: List[str] = Field(default_factory=list)
    requested_by: str = ""
    sync_from_scratch: bool = False
    network: str = ""
    node_type: Optional[NodeType] = None
    deployed_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    deployed_on: str = ""
    public_fqdn: str = ""
    internal_fqdn: str = ""
    log_viewer: str = ""
    dashboards: Dict[str, str] = Field(default_factory=dict)

    filename: str = Field(default="", exclude=True)

    @property
    def is_deployed(self) -> bool:
        return self.deployed_on != ""

    @classmethod
    def from_request(cls, request: Request) -> "Deployment":
        """Copy the fields a run file inherits from its request."""
        return cls(
            pull_request=request.pull_request,
            commit_sha=request.commit_sha,
            custom_binary=request.custom_binary or "",
            custom_options=list(request.custom_options or []),
            requested_by=request.requested_by,
            sync_from_scratch=request.sync_from_scratch,
        )
