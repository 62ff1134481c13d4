"""
GitLab Models
Pydantic models for the GitLab API objects the jobs consume read-only.
Field names follow the GitLab v4 JSON payloads.
"""
from typing import Optional

from pydantic import BaseModel


class CommitDiff(BaseModel):
    diff: str = ""
    new_path: Optional[str] = None
    old_path: Optional[str] = None
    a_mode: Optional[str] = None
    b_mode: Optional[str] = None
    new_file: bool = False
    renamed_file: bool = False
    deleted_file: bool = False


class Pipeline(BaseModel):
    id: int
    status: str
    ref: str = ""
    sha: str = ""
    web_url: str = ""
    created_at: Optional[str] = None


class Job(BaseModel):
    id: int
    name: str
    status: str
    web_url: str = ""
    created_at: Optional[str] = None


class Runner(BaseModel):
    id: int
    description: str = ""
    active: bool = False
    ip_address: Optional[str] = None
    is_shared: bool = False
    online: Optional[bool] = None
    status: str = ""


class FileInfo(BaseModel):
    id: str
    name: str
    type: str
    path: str
    mode: str = ""


class MergeRequest(BaseModel):
    id: int
    project_id: int
    web_url: str
