import os

import pytest

from burnin.core import config
from burnin.core.errors import InvalidCommitError, PreconditionError
from burnin.jobs.update_job import process_update
from burnin.parser.record_codec import parse_deployment
from tests.fakes import MOCK_BINARY_URL, FakeAlertmanager, FakeAnsible, FakeGitlab, FakeNotifier, make_diff

TESTDATA = os.path.join(os.path.dirname(__file__), "testdata")
HOST = "kusama-unit-test-hostname"

COMMIT_SHA_EDIT = (
    "@@ -2 +2 @@\n"
    '-commit_sha = "6c7d5ffe7c9b88e1c8d3ffbea5f93f2387cca110"\n'
    '+commit_sha = "a7810560c0f62dd6d347e710a5e2a64da465c109"\n'
)


@pytest.fixture(autouse=True)
def no_ci_commit(monkeypatch):
    monkeypatch.setattr(config, "CI_COMMIT_SHA", "")


def update(diff):
    gitlab = FakeGitlab(diffs=[diff])
    alertmanager = FakeAlertmanager()
    ansible = FakeAnsible()
    notifier = FakeNotifier()
    process_update(TESTDATA, "master", gitlab, alertmanager, ansible, notifier)
    return gitlab, alertmanager, ansible, notifier


def test_update_redeploys_over_ssh():
    gitlab, alertmanager, ansible, notifier = update(
        make_diff("runs/run-kusama-fullnode-0-1609842266.toml", diff=COMMIT_SHA_EDIT)
    )

    assert alertmanager.silences[0].matchers[0].value == f".*{HOST}.*"
    assert alertmanager.silences[0].comment == (
        f"Updating burn-in test for https://github.com/paritytech/polkadot/pull/2013 on {HOST}"
    )

    call = ansible.calls[0]
    assert call.name == "kusama-nodes.yml"
    assert call.run_on == "kusama-unit-test-hostname.foo-chains.example.com"
    assert call.node_binary == MOCK_BINARY_URL
    assert call.wipe_chain_db is False
    assert call.node_public_name == HOST

    assert len(gitlab.update_file_calls) == 1
    commit = gitlab.update_file_calls[0]
    assert commit.path == "runs/run-kusama-fullnode-0-1609842266.toml"
    assert commit.commit_msg == f"[skip ci] Update 'updated_at' for current burn-in on {HOST}"
    deployment = parse_deployment(commit.content)
    assert deployment.updated_at is not None
    assert deployment.updated_at > deployment.deployed_at

    assert len(notifier.updates) == 1
    assert notifier.total == 1


def test_update_before_deploy_is_rejected():
    with pytest.raises(PreconditionError, match="has not been deployed yet"):
        update(make_diff("runs/run-kusama-fullnode-0-1602856340.toml", diff=COMMIT_SHA_EDIT))


def test_added_field_without_removal_is_rejected():
    # Add-only edits are rejected for now; whether they should be accepted as
    # updates is still an open question.
    diff = make_diff(
        "runs/run-kusama-fullnode-0-1609842266.toml",
        diff='@@ -3 +3,2 @@\n+custom_options = ["--rpc-methods Unsafe"]\n',
    )
    with pytest.raises(InvalidCommitError, match="no edited"):
        update(diff)


def test_new_run_file_is_rejected():
    with pytest.raises(InvalidCommitError, match="update exactly one file in folder 'runs'"):
        update(make_diff("runs/run-kusama-fullnode-0-1609842266.toml", new_file=True))
