import difflib

import pytest

from burnin.models.deployment import Deployment
from burnin.models.request import NodeType
from burnin.parser.diff_classifier import (
    INVALID_DELETION_REASON,
    DeletedRecord,
    Invalid,
    Namespace,
    NewRecord,
    UpdatedFields,
    UpdateKind,
    classify,
    strip_removed_lines,
)
from burnin.parser.record_codec import dump_deployment
from tests.fakes import make_diff

REQUEST = "requests/request-1609342845.toml"
RUN = "runs/run-kusama-fullnode-0-1609842266.toml"

COMMIT_SHA_UPDATE = (
    "@@ -1,5 +1,5 @@\n"
    ' pull_request = "https://github.com/paritytech/polkadot/pull/2013"\n'
    '-commit_sha = "ec52cc79cc774f1b9b8960ea0fbdbc3ad51dc461"\n'
    '+commit_sha = "6c7d5ffe7c9b88e1c8d3ffbea5f93f2387cca110"\n'
    ' requested_by = "mxinden"\n'
)

BINARY_AND_SHA_UPDATE = (
    "@@ -1,5 +1,5 @@\n"
    '-commit_sha = "ec52cc79cc774f1b9b8960ea0fbdbc3ad51dc461"\n'
    '+commit_sha = "6c7d5ffe7c9b88e1c8d3ffbea5f93f2387cca110"\n'
    '-custom_binary = "https://gitlab.example.com/mocks/mockproject/-/jobs/752482/artifacts/raw/artifacts/polkadot"\n'
    '+custom_binary = "https://gitlab.example.com/mocks/mockproject/-/jobs/760569/artifacts/raw/artifacts/polkadot"\n'
)

DELETED_RUN = (
    "@@ -1,4 +0,0 @@\n"
    '-pull_request = "https://github.com/paritytech/polkadot/pull/2013"\n'
    "\n"
    '-deployed_on = "kusama-unit-test-hostname"\n'
    '-network = "kusama"'
)


def test_more_than_one_file_is_invalid():
    intent = classify([make_diff(REQUEST, new_file=True), make_diff(RUN, new_file=True)])
    assert isinstance(intent, Invalid)
    assert "expected exactly one changed file, got 2" in intent.reason


def test_no_file_is_invalid():
    assert isinstance(classify([]), Invalid)


def test_unrelated_path_is_invalid():
    intent = classify([make_diff("README.md", new_file=True)])
    assert isinstance(intent, Invalid)
    assert intent.namespace is None


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------
def test_new_request():
    assert classify([make_diff(REQUEST, new_file=True)]) == NewRecord(Namespace.REQUESTS, REQUEST)


def test_deleted_request_is_invalid():
    intent = classify([make_diff(REQUEST, deleted_file=True, diff="@@ -1 +0,0 @@\n-a = 1")])
    assert isinstance(intent, Invalid)
    assert intent.namespace == Namespace.REQUESTS


def test_renamed_request_is_invalid():
    assert isinstance(classify([make_diff(REQUEST, renamed_file=True)]), Invalid)


def test_request_path_without_toml_suffix_is_invalid():
    assert isinstance(classify([make_diff("requests/request-1609342845.txt", new_file=True)]), Invalid)


def test_request_commit_sha_update():
    intent = classify([make_diff(REQUEST, diff=COMMIT_SHA_UPDATE)])

    assert isinstance(intent, UpdatedFields)
    assert intent.namespace == Namespace.REQUESTS
    assert intent.fields == {"commit_sha"}
    assert intent.kind == UpdateKind.COMMIT_SHA


def test_request_commit_sha_and_binary_update():
    intent = classify([make_diff(REQUEST, diff=BINARY_AND_SHA_UPDATE)])
    assert intent.kind == UpdateKind.COMMIT_SHA_AND_CUSTOM_BINARY


def test_request_binary_added():
    diff = (
        "@@ -1,3 +1,4 @@\n"
        ' pull_request = "https://github.com/paritytech/polkadot/pull/2013"\n'
        '+custom_binary = "https://gitlab.example.com/mocks/mockproject/-/jobs/760569/artifacts/raw/artifacts/polkadot"\n'
    )
    assert classify([make_diff(REQUEST, diff=diff)]).kind == UpdateKind.CUSTOM_BINARY


def test_request_options_only_update():
    diff = '@@ -2,1 +2,1 @@\n-custom_options = []\n+custom_options = ["--rpc-methods Unsafe"]\n'
    assert classify([make_diff(REQUEST, diff=diff)]).kind == UpdateKind.CUSTOM_OPTIONS_ONLY


def test_request_update_without_tracked_field_is_invalid():
    diff = '@@ -2,1 +2,1 @@\n-requested_by = "mxinden"\n+requested_by = "someone"\n'
    intent = classify([make_diff(REQUEST, diff=diff)])
    assert isinstance(intent, Invalid)
    assert intent.namespace == Namespace.REQUESTS


def test_tracked_field_in_value_is_not_a_change():
    diff = '@@ -2,1 +2,1 @@\n-requested_by = "commit_sha"\n+requested_by = "custom_binary"\n'
    assert isinstance(classify([make_diff(REQUEST, diff=diff)]), Invalid)


# ---------------------------------------------------------------------------
# Runs
# ---------------------------------------------------------------------------
def test_new_run():
    assert classify([make_diff(RUN, new_file=True)]) == NewRecord(Namespace.RUNS, RUN)


def test_run_commit_sha_update():
    intent = classify([make_diff(RUN, diff=COMMIT_SHA_UPDATE)])

    assert isinstance(intent, UpdatedFields)
    assert intent.namespace == Namespace.RUNS
    assert intent.kind == UpdateKind.COMMIT_SHA


def test_run_update_needs_removed_and_added_line():
    # An added line alone is not an edit. Whether add-only changes should count as
    # updates is still an open question; until settled they are rejected.
    diff = (
        "@@ -1,3 +1,4 @@\n"
        ' pull_request = "https://github.com/paritytech/polkadot/pull/2013"\n'
        '+custom_binary = "https://gitlab.example.com/mocks/mockproject/-/jobs/760569/artifacts/raw/artifacts/polkadot"\n'
    )
    intent = classify([make_diff(RUN, diff=diff)])
    assert isinstance(intent, Invalid)
    assert intent.namespace == Namespace.RUNS


def test_run_whitespace_edit_is_invalid():
    diff = '@@ -1,1 +1,1 @@\n-network = "kusama" \n+network = "kusama"\n'
    assert isinstance(classify([make_diff(RUN, diff=diff)]), Invalid)


def test_renamed_run_is_invalid():
    intent = classify([make_diff(RUN, renamed_file=True)])
    assert intent == Invalid("renamed run files are not supported", Namespace.RUNS)


def test_deleted_run_keeps_removed_text():
    intent = classify([make_diff(RUN, deleted_file=True, diff=DELETED_RUN)])

    assert isinstance(intent, DeletedRecord)
    assert intent.path == RUN
    assert intent.removed_text == (
        'pull_request = "https://github.com/paritytech/polkadot/pull/2013"\n'
        "\n"
        'deployed_on = "kusama-unit-test-hostname"\n'
        'network = "kusama"'
    )


def test_deleted_run_with_kept_line_is_invalid():
    diff = DELETED_RUN.replace('-network = "kusama"', ' network = "kusama"')
    intent = classify([make_diff(RUN, deleted_file=True, diff=diff)])
    assert intent == Invalid(INVALID_DELETION_REASON, Namespace.RUNS)


def test_deleted_run_with_empty_diff_is_invalid():
    assert isinstance(classify([make_diff(RUN, deleted_file=True, diff="")]), Invalid)


@pytest.mark.parametrize("diff", ["", "@@ -1 +0,0 @@"])
def test_strip_removed_lines_without_body(diff):
    assert strip_removed_lines(diff) is None


def test_strip_removed_lines_rejects_additions():
    assert strip_removed_lines("@@ -1 +1 @@\n-a = 1\n+a = 2") is None


def _unified_diff(before: str, after: str) -> str:
    lines = difflib.unified_diff(before.splitlines(), after.splitlines(), lineterm="")
    return "\n".join(list(lines)[2:])


def test_rewritten_run_file_with_new_options_is_an_options_update():
    deployment = Deployment(
        pull_request="https://github.com/paritytech/polkadot/pull/2013",
        commit_sha="a7810560c0f62dd6d347e710a5e2a64da465c109",
        custom_options=["--rpc-methods Unsafe"],
        requested_by="mxinden",
        network="kusama",
        node_type=NodeType.FULLNODE,
        deployed_on="kusama-unit-test-hostname",
        dashboards={"grandpa": "http://grafana.example.com/d/EzEZ60fMz/grandpa"},
    )
    before = dump_deployment(deployment)
    deployment.custom_options = ["--rpc-methods Safe", "--wasm-execution Compiled"]
    after = dump_deployment(deployment)

    intent = classify([make_diff(RUN, diff=_unified_diff(before, after))])

    assert isinstance(intent, UpdatedFields)
    assert intent.fields == frozenset({"custom_options"})
    assert intent.kind == UpdateKind.CUSTOM_OPTIONS_ONLY


def test_rewritten_run_file_with_cleared_options_is_an_options_update():
    deployment = Deployment(
        pull_request="https://github.com/paritytech/polkadot/pull/2013",
        custom_options=["--rpc-methods Unsafe"],
        network="kusama",
        node_type=NodeType.FULLNODE,
    )
    before = dump_deployment(deployment)
    deployment.custom_options = []
    after = dump_deployment(deployment)

    intent = classify([make_diff(RUN, diff=_unified_diff(before, after))])

    assert isinstance(intent, UpdatedFields)
    assert intent.kind == UpdateKind.CUSTOM_OPTIONS_ONLY
