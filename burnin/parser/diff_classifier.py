"""
Diff Classifier
===============
Maps the diff of the last commit to the lifecycle intent it expresses.

Accepted Shapes:
    Exactly one changed file, not renamed, whose path matches
    requests/request-*.toml or runs/run-*.toml. Anything else is Invalid.

Requests Namespace:
    - added file                     → NewRecord
    - modified file with added lines → UpdatedFields (commit_sha, custom_binary,
                                       custom_options; see UpdateKind)
    - anything else                  → Invalid

Runs Namespace:
    - added file                     → NewRecord      (deploy)
    - deleted file                   → DeletedRecord  (cleanup)
    - modified file                  → UpdatedFields  (update), only when a
      tracked field has both a removed and an added line. Whitespace-only or
      cosmetic edits are rejected.

Deleted Files:
    GitLab keeps the full content of a deleted file in its diff. Every line
    after the hunk header must be a removal (empty lines are kept verbatim);
    the markers are stripped and the remainder is the last-known TOML of the
    record, so the cleanup job still knows which host to tear down.

The classifier performs no I/O and never raises.
"""
from dataclasses import dataclass
from enum import Enum
from typing import FrozenSet, Optional, Sequence, Union

from burnin.core.constants import (
    COMMIT_SHA_FIELD,
    CUSTOM_BINARY_FIELD,
    REQUEST_PATH_PREFIX,
    RUN_PATH_PREFIX,
    TRACKED_FIELDS,
)
from burnin.models.gitlab import CommitDiff
from burnin.parser.record_codec import is_request_path, is_run_path


class Namespace(str, Enum):
    REQUESTS = "requests"
    RUNS = "runs"


class UpdateKind(str, Enum):
    COMMIT_SHA = "commit_sha"
    CUSTOM_BINARY = "custom_binary"
    COMMIT_SHA_AND_CUSTOM_BINARY = "commit_sha_and_custom_binary"
    CUSTOM_OPTIONS_ONLY = "custom_options_only"


# ---------------------------------------------------------------------------
# Intent variants
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class Invalid:
    reason: str
    namespace: Optional[Namespace] = None


@dataclass(frozen=True)
class NewRecord:
    namespace: Namespace
    path: str


@dataclass(frozen=True)
class UpdatedFields:
    namespace: Namespace
    path: str
    fields: FrozenSet[str]

    @property
    def kind(self) -> UpdateKind:
        commit_sha = COMMIT_SHA_FIELD in self.fields
        custom_binary = CUSTOM_BINARY_FIELD in self.fields
        if commit_sha and custom_binary:
            return UpdateKind.COMMIT_SHA_AND_CUSTOM_BINARY
        if commit_sha:
            return UpdateKind.COMMIT_SHA
        if custom_binary:
            return UpdateKind.CUSTOM_BINARY
        return UpdateKind.CUSTOM_OPTIONS_ONLY


@dataclass(frozen=True)
class DeletedRecord:
    namespace: Namespace
    path: str
    removed_text: str


Intent = Union[Invalid, NewRecord, UpdatedFields, DeletedRecord]

INVALID_DELETION_REASON = "invalid diff, expected all lines to be removed"


# ---------------------------------------------------------------------------
# Line scanning
# ---------------------------------------------------------------------------
def _changed_fields(diff: str, marker: str) -> FrozenSet[str]:
    """Tracked fields that appear on lines starting with `marker` ('+' or '-')."""
    found = set()
    for line in diff.split("\n"):
        if not line.startswith(marker) or line.startswith(marker * 3):
            continue
        content = line[1:].lstrip()
        for field in TRACKED_FIELDS:
            if content.startswith(field):
                found.add(field)
    return frozenset(found)


def added_fields(diff: str) -> FrozenSet[str]:
    return _changed_fields(diff, "+")


def edited_fields(diff: str) -> FrozenSet[str]:
    """Tracked fields with both a removed and an added line."""
    return _changed_fields(diff, "+") & _changed_fields(diff, "-")


def strip_removed_lines(diff: str) -> Optional[str]:
    """
    Turn an all-removed diff back into the file content.

    Returns None if any line after the hunk header is not a removal.
    """
    lines = diff.split("\n")
    if len(lines) < 2:
        return None

    content = []
    for line in lines[1:]:
        if line == "":
            content.append("")
            continue
        if line[0] != "-":
            return None
        content.append(line[1:])
    return "\n".join(content)


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------
def classify_request_diff(diff: CommitDiff) -> Intent:
    if diff.deleted_file or diff.renamed_file or not is_request_path(diff.new_path):
        return Invalid(f"expected an added or updated file matching '{REQUEST_PATH_PREFIX}*.toml'", Namespace.REQUESTS)

    if diff.new_file:
        return NewRecord(Namespace.REQUESTS, diff.new_path)

    fields = added_fields(diff.diff)
    if not fields:
        return Invalid(
            f"no change to {', '.join(TRACKED_FIELDS)} found in {diff.new_path}",
            Namespace.REQUESTS,
        )
    return UpdatedFields(Namespace.REQUESTS, diff.new_path, fields)


def classify_run_diff(diff: CommitDiff) -> Intent:
    if diff.renamed_file:
        return Invalid("renamed run files are not supported", Namespace.RUNS)

    if diff.deleted_file:
        if diff.new_file or not is_run_path(diff.old_path) or diff.diff == "":
            return Invalid(f"expected a removed file matching '{RUN_PATH_PREFIX}*.toml'", Namespace.RUNS)
        removed_text = strip_removed_lines(diff.diff)
        if removed_text is None:
            return Invalid(INVALID_DELETION_REASON, Namespace.RUNS)
        return DeletedRecord(Namespace.RUNS, diff.old_path, removed_text)

    if not is_run_path(diff.new_path):
        return Invalid(f"expected a file matching '{RUN_PATH_PREFIX}*.toml'", Namespace.RUNS)

    if diff.new_file:
        return NewRecord(Namespace.RUNS, diff.new_path)

    if diff.new_path != diff.old_path:
        return Invalid("run file path changed", Namespace.RUNS)

    fields = edited_fields(diff.diff)
    if not fields:
        return Invalid(
            f"no edited {', '.join(TRACKED_FIELDS)} line pair found in {diff.new_path}",
            Namespace.RUNS,
        )
    return UpdatedFields(Namespace.RUNS, diff.new_path, fields)


def classify(diffs: Sequence[CommitDiff]) -> Intent:
    """Classify the diffs of one commit into a lifecycle intent."""
    if len(diffs) != 1:
        return Invalid(f"expected exactly one changed file, got {len(diffs)}")

    diff = diffs[0]
    path = diff.old_path if diff.deleted_file else diff.new_path
    path = path or ""

    if path.startswith(REQUEST_PATH_PREFIX):
        return classify_request_diff(diff)
    if path.startswith(RUN_PATH_PREFIX):
        return classify_run_diff(diff)
    return Invalid(f"'{path}' is neither a request nor a run file")
