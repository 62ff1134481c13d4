import pytest

from burnin.agents.build_resolver import BuildResolver, pull_request_branch
from burnin.core.errors import BuildError, PipelineNotFoundError, PollTimeoutError
from burnin.utils.url_utils import add_paths_to_url
from tests.fakes import (
    MOCK_BINARY_URL,
    UPSTREAM_PR,
    FakeGitlab,
    make_job,
    make_pipeline,
    no_sleep_poller,
)


def resolver_for(gitlab):
    return BuildResolver(gitlab, no_sleep_poller(), job_name="build-linux-stable", binary_name="polkadot")


def sequence(*values):
    """Return each value once, then fail the test if called again."""
    remaining = list(values)

    def next_value(*_):
        assert remaining, "called after a final status was returned"
        return remaining.pop(0)

    return next_value


def test_pull_request_branch():
    assert pull_request_branch(UPSTREAM_PR) == "2013"
    assert pull_request_branch(UPSTREAM_PR + "/") == "2013"


def test_add_paths_to_url_keeps_query():
    assert add_paths_to_url("https://gitlab.example.com/foo/bar?spam=eggs", "more", "path") == \
        "https://gitlab.example.com/foo/bar/more/path?spam=eggs"


def test_successful_job_is_accepted_without_polling():
    gitlab = FakeGitlab(
        pipelines_for_branch=lambda _: [make_pipeline("running")],
        pipeline_jobs=lambda _: [make_job("success")],
    )

    build = resolver_for(gitlab).resolve(UPSTREAM_PR)

    assert build.binary_url == MOCK_BINARY_URL
    assert build.commit_sha == "a7810560c0f62dd6d347e710a5e2a64da465c109"
    assert gitlab.get_job_calls == []
    assert gitlab.start_job_calls == []
    assert gitlab.pipelines_for_branch_calls == ["2013"]


def test_branch_lookup_stops_at_first_non_wait_status():
    gitlab = FakeGitlab(
        pipelines_for_branch=sequence([], [make_pipeline("pending")], [make_pipeline("running")]),
        pipeline_jobs=lambda _: [make_job("success")],
    )

    resolver_for(gitlab).resolve(UPSTREAM_PR)

    assert len(gitlab.pipelines_for_branch_calls) == 3
    assert gitlab.pipeline_jobs_calls == [1]


def test_manual_job_is_started_once():
    gitlab = FakeGitlab(
        pipelines_for_branch=lambda _: [make_pipeline("running")],
        pipeline_jobs=lambda _: [make_job("success", 752481, "test-linux-stable"), make_job("manual")],
        job=sequence(make_job("running"), make_job("running"), make_job("running"), make_job("success")),
    )

    build = resolver_for(gitlab).resolve(UPSTREAM_PR)

    assert gitlab.start_job_calls == [752482]
    assert len(gitlab.get_job_calls) == 4
    assert build.binary_url == MOCK_BINARY_URL


def test_created_job_turning_manual_is_started_once():
    gitlab = FakeGitlab(
        pipelines_for_branch=lambda _: [make_pipeline("running")],
        pipeline_jobs=lambda _: [make_job("created")],
        job=sequence(
            make_job("created"), make_job("manual"),
            make_job("running"), make_job("running"), make_job("success"),
        ),
    )

    resolver = resolver_for(gitlab)
    resolver.resolve(UPSTREAM_PR)

    assert gitlab.start_job_calls == [752482]
    states = [e["state"] for e in resolver.get_timeline()]
    assert states == [
        "locating-pipeline", "pipeline-found", "locating-job", "job-found",
        "polling-job", "starting-job", "polling-job", "resolved",
    ]


def test_commit_lookup_waits_for_pipeline():
    calls = {"n": 0}

    def pipeline_for_commit(sha):
        assert sha == "6c7d5ffe7c9b88e1c8d3ffbea5f93f2387cca110"
        calls["n"] += 1
        if calls["n"] < 3:
            raise PipelineNotFoundError("no matching pipeline found")
        return make_pipeline("running", 837459, sha)

    gitlab = FakeGitlab(
        pipeline_for_commit=pipeline_for_commit,
        pipeline_jobs=lambda _: [make_job("success", 760569)],
    )

    build = resolver_for(gitlab).resolve(UPSTREAM_PR, "6c7d5ffe7c9b88e1c8d3ffbea5f93f2387cca110")

    assert calls["n"] == 3
    assert gitlab.pipelines_for_branch_calls == []
    assert gitlab.pipeline_jobs_calls == [837459]
    assert build.commit_sha == "6c7d5ffe7c9b88e1c8d3ffbea5f93f2387cca110"
    assert build.binary_url.endswith("/jobs/760569/artifacts/raw/artifacts/polkadot")


def test_missing_pipeline_times_out():
    gitlab = FakeGitlab(pipelines_for_branch=lambda _: [])
    resolver = resolver_for(gitlab)

    with pytest.raises(PollTimeoutError):
        resolver.resolve(UPSTREAM_PR)

    # 5 minutes at 5 second intervals
    assert len(gitlab.pipelines_for_branch_calls) == 60
    assert resolver.get_timeline()[-1]["state"] == "timed-out"


def test_failed_job_is_fatal():
    gitlab = FakeGitlab(
        pipelines_for_branch=lambda _: [make_pipeline("failed")],
        pipeline_jobs=lambda _: [make_job("failed")],
    )

    with pytest.raises(BuildError, match="'build-linux-stable' job failed"):
        resolver_for(gitlab).resolve(UPSTREAM_PR)


def test_job_failing_while_polled_is_fatal():
    gitlab = FakeGitlab(
        pipelines_for_branch=lambda _: [make_pipeline("running")],
        pipeline_jobs=lambda _: [make_job("running")],
        job=sequence(make_job("running"), make_job("failed")),
    )

    with pytest.raises(BuildError):
        resolver_for(gitlab).resolve(UPSTREAM_PR)
    assert gitlab.start_job_calls == []


def test_canceled_pipeline_is_rejected():
    gitlab = FakeGitlab(pipelines_for_branch=lambda _: [make_pipeline("canceled")])

    with pytest.raises(BuildError, match="cannot continue with pipeline status: 'canceled'"):
        resolver_for(gitlab).resolve(UPSTREAM_PR)
    assert gitlab.pipeline_jobs_calls == []


def test_missing_build_job_is_fatal():
    gitlab = FakeGitlab(
        pipelines_for_branch=lambda _: [make_pipeline("success")],
        pipeline_jobs=lambda _: [make_job("success", 1, "test-linux-stable")],
    )

    with pytest.raises(BuildError, match="no job named 'build-linux-stable' found in pipeline '1'"):
        resolver_for(gitlab).resolve(UPSTREAM_PR)
