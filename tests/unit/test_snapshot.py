"""Unit tests for snapshot collection."""

from __future__ import annotations

import pytest

from runwatch.github.errors import GitHubAPIError
from runwatch.monitor.snapshot import collect_snapshot
from tests.unit.monitor_test_helpers import FakeSnapshotProvider, make_job, make_run

_REPO = "octo/reef"


@pytest.mark.asyncio
async def test_collect_snapshot_attaches_jobs_per_run() -> None:
    """Each run is paired with the jobs fetched for it."""
    build = make_job(10, name="build")
    deploy = make_job(20, name="deploy")
    provider = FakeSnapshotProvider(
        [make_run(1), make_run(2)], {1: (build,), 2: (deploy,)}
    )

    snapshot = await collect_snapshot(provider, _REPO)

    assert snapshot.resource_key == _REPO
    assert [(entry.run.id, entry.jobs) for entry in snapshot.runs] == [
        (1, (build,)),
        (2, (deploy,)),
    ]
    assert snapshot.runs_without_jobs == ()
    assert provider.jobs_calls == [1, 2]


@pytest.mark.asyncio
async def test_collect_snapshot_isolates_job_fetch_failures() -> None:
    """A failing job listing marks only that run as lacking job detail."""
    provider = FakeSnapshotProvider(
        [make_run(1), make_run(2)],
        {2: (make_job(20),)},
        failing_job_runs={1},
    )

    snapshot = await collect_snapshot(provider, _REPO)

    broken, healthy = snapshot.runs
    assert broken.jobs is None
    assert broken.jobs_available is False
    assert broken.jobs_error is not None
    assert "timed out" in broken.jobs_error
    assert healthy.jobs_available is True
    assert snapshot.runs_without_jobs == (broken,)


@pytest.mark.asyncio
async def test_collect_snapshot_propagates_run_listing_failure() -> None:
    """A failed run listing aborts the whole snapshot."""
    provider = FakeSnapshotProvider([make_run(1)])
    provider.fail_next_runs_fetch()

    with pytest.raises(GitHubAPIError) as excinfo:
        await collect_snapshot(provider, _REPO)

    assert excinfo.value.status_code == 502
    assert provider.jobs_calls == []
