"""Snapshot model and the provider boundary consumed by the loop.

A snapshot is the current hierarchical state of one monitored resource: the
bounded window of most recently updated workflow runs, each with the jobs and
steps GitHub reported for it at fetch time. Providers expose current state
only, never a change feed, and only the most recent ``run_window`` runs;
anything outside that window is invisible to the monitor.
"""

from __future__ import annotations

import dataclasses
import typing as typ

from .errors import SnapshotFetchError

if typ.TYPE_CHECKING:
    from runwatch.github.models import WorkflowJob, WorkflowRun


class SnapshotProvider(typ.Protocol):
    """Interface for fetching the current state of a monitored resource."""

    async def fetch_runs_snapshot(
        self, resource_key: str
    ) -> tuple[WorkflowRun, ...]:
        """Return the bounded window of most recently updated runs."""
        ...

    async def fetch_jobs_snapshot(
        self,
        resource_key: str,
        run_id: int,
        *,
        jobs_url: str | None = None,
    ) -> tuple[WorkflowJob, ...]:
        """Return the jobs, with nested steps, of a single run."""
        ...


@dataclasses.dataclass(frozen=True, slots=True)
class RunSnapshot:
    """A run together with its job detail, when that could be fetched."""

    run: WorkflowRun
    jobs: tuple[WorkflowJob, ...] | None = None
    jobs_error: str | None = None

    @property
    def jobs_available(self) -> bool:
        """Return whether job detail was fetched for this run."""
        return self.jobs is not None


@dataclasses.dataclass(frozen=True, slots=True)
class Snapshot:
    """Point-in-time view of a resource, scoped to one reconciliation cycle."""

    resource_key: str
    runs: tuple[RunSnapshot, ...] = ()

    @property
    def runs_without_jobs(self) -> tuple[RunSnapshot, ...]:
        """Return the runs whose job detail could not be fetched."""
        return tuple(run for run in self.runs if not run.jobs_available)


async def collect_snapshot(
    provider: SnapshotProvider, resource_key: str
) -> Snapshot:
    """Fetch the run window and each run's job detail.

    A failure listing runs propagates as :class:`SnapshotFetchError`. A
    failure fetching one run's jobs is recorded on that run's
    :class:`RunSnapshot` and does not affect the other runs.
    """
    runs = await provider.fetch_runs_snapshot(resource_key)
    collected: list[RunSnapshot] = []
    for run in runs:
        try:
            jobs = await provider.fetch_jobs_snapshot(
                resource_key, run.id, jobs_url=run.jobs_url
            )
        except SnapshotFetchError as exc:
            collected.append(RunSnapshot(run=run, jobs=None, jobs_error=str(exc)))
            continue
        collected.append(RunSnapshot(run=run, jobs=jobs))
    return Snapshot(resource_key=resource_key, runs=tuple(collected))
