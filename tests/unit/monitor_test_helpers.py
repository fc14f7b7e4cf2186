"""Test doubles and builders for reconciliation loop tests."""

from __future__ import annotations

import asyncio
import dataclasses
import datetime as dt
import typing as typ
from pathlib import Path

from runwatch.github.errors import GitHubAPIError
from runwatch.github.models import WorkflowJob, WorkflowRun, WorkflowStep
from runwatch.monitor.errors import CheckpointNotFoundError, CheckpointSaveError

if typ.TYPE_CHECKING:
    from runwatch.monitor.events import Event

_MEMORY_PATH = Path("<memory>")

BASE_TIME = dt.datetime(2026, 3, 1, 12, 0, tzinfo=dt.UTC)


def at(seconds: float) -> dt.datetime:
    """Return ``BASE_TIME`` shifted by ``seconds``."""
    return BASE_TIME + dt.timedelta(seconds=seconds)


Stamp: typ.TypeAlias = dt.datetime | str | None


def wire_timestamp(value: Stamp) -> str | None:
    """Render ``value`` the way GitHub sends it; strings pass through as-is."""
    if isinstance(value, dt.datetime):
        return value.isoformat()
    return value


def make_run(  # noqa: PLR0913
    run_id: int = 1,
    *,
    name: str = "CI",
    status: str | None = "in_progress",
    created_at: Stamp = None,
    run_started_at: Stamp = None,
    updated_at: Stamp = None,
    head_branch: str | None = "main",
    head_sha: str | None = "1a2b3c4d5e6f",
) -> WorkflowRun:
    """Build a workflow run with only the given timestamps populated."""
    return WorkflowRun(
        id=run_id,
        name=name,
        head_branch=head_branch,
        head_sha=head_sha,
        status=status,
        created_at_raw=wire_timestamp(created_at),
        run_started_at_raw=wire_timestamp(run_started_at),
        updated_at_raw=wire_timestamp(updated_at),
    )


def make_job(  # noqa: PLR0913
    job_id: int = 10,
    *,
    name: str = "build",
    conclusion: str | None = None,
    started_at: Stamp = None,
    completed_at: Stamp = None,
    steps: tuple[WorkflowStep, ...] = (),
) -> WorkflowJob:
    """Build a workflow job."""
    return WorkflowJob(
        id=job_id,
        name=name,
        status="completed" if completed_at else "in_progress",
        conclusion=conclusion,
        started_at_raw=wire_timestamp(started_at),
        completed_at_raw=wire_timestamp(completed_at),
        steps=steps,
    )


def make_step(
    name: str = "Checkout",
    *,
    conclusion: str | None = None,
    started_at: Stamp = None,
    completed_at: Stamp = None,
) -> WorkflowStep:
    """Build a workflow step."""
    return WorkflowStep(
        name=name,
        conclusion=conclusion,
        started_at_raw=wire_timestamp(started_at),
        completed_at_raw=wire_timestamp(completed_at),
    )


class FakeSnapshotProvider:
    """Deterministic ``SnapshotProvider`` backed by in-memory runs."""

    def __init__(
        self,
        runs: typ.Sequence[WorkflowRun] = (),
        jobs: dict[int, tuple[WorkflowJob, ...]] | None = None,
        *,
        failing_job_runs: typ.Collection[int] = (),
    ) -> None:
        """Store the runs, per-run jobs, and runs whose jobs fail to load."""
        self.runs = tuple(runs)
        self.jobs = dict(jobs or {})
        self.failing_job_runs = set(failing_job_runs)
        self.runs_failures: list[BaseException] = []
        self.runs_calls = 0
        self.jobs_calls: list[int] = []

    def fail_next_runs_fetch(self, exc: BaseException | None = None) -> None:
        """Queue an error for the next run listing request."""
        failure = exc or GitHubAPIError.http_error(502, "bad gateway")
        self.runs_failures.append(failure)

    async def fetch_runs_snapshot(
        self, resource_key: str
    ) -> tuple[WorkflowRun, ...]:
        """Return the configured runs or raise a queued failure."""
        del resource_key
        self.runs_calls += 1
        if self.runs_failures:
            raise self.runs_failures.pop(0)
        return self.runs

    async def fetch_jobs_snapshot(
        self,
        resource_key: str,
        run_id: int,
        *,
        jobs_url: str | None = None,
    ) -> tuple[WorkflowJob, ...]:
        """Return the configured jobs, or fail for runs marked as failing."""
        del resource_key, jobs_url
        self.jobs_calls.append(run_id)
        if run_id in self.failing_job_runs:
            msg = f"jobs for run {run_id}"
            raise GitHubAPIError.request_failed(msg, TimeoutError("timed out"))
        return self.jobs.get(run_id, ())


class BlockingSnapshotProvider(FakeSnapshotProvider):
    """Provider whose run listing never returns until cancelled."""

    def __init__(self) -> None:
        """Track whether the blocked fetch was started and cancelled."""
        super().__init__()
        self.started = asyncio.Event()
        self.cancelled = False

    async def fetch_runs_snapshot(
        self, resource_key: str
    ) -> tuple[WorkflowRun, ...]:
        """Block forever, recording cancellation."""
        del resource_key
        self.runs_calls += 1
        self.started.set()
        try:
            await asyncio.Event().wait()
        except asyncio.CancelledError:
            self.cancelled = True
            raise
        return ()


class RecordingSink:
    """``EventSink`` that keeps every delivered batch."""

    def __init__(self) -> None:
        """Start with no deliveries."""
        self.batches: list[list[Event]] = []

    @property
    def events(self) -> list[Event]:
        """Return all delivered events in delivery order."""
        return [event for batch in self.batches for event in batch]

    async def deliver(self, events: typ.Sequence[Event]) -> None:
        """Record a delivered batch."""
        self.batches.append(list(events))


@dataclasses.dataclass(slots=True)
class MemoryCheckpointStore:
    """In-memory ``CheckpointStore`` with optional write failures."""

    watermarks: dict[str, dt.datetime] = dataclasses.field(default_factory=dict)
    fail_saves: bool = False
    saves: list[tuple[str, dt.datetime]] = dataclasses.field(default_factory=list)

    def load(self, resource_key: str) -> dt.datetime:
        """Return the stored watermark or raise ``CheckpointNotFoundError``."""
        try:
            return self.watermarks[resource_key]
        except KeyError as exc:
            raise CheckpointNotFoundError(resource_key) from exc

    def save(self, resource_key: str, watermark: dt.datetime) -> None:
        """Store the watermark unless saves are configured to fail."""
        if self.fail_saves:
            raise CheckpointSaveError.write_failed(
                _MEMORY_PATH, PermissionError("read-only")
            )
        self.saves.append((resource_key, watermark))
        self.watermarks[resource_key] = watermark


class FakeClock:
    """Clock returning scripted instants, repeating the last one."""

    def __init__(self, *instants: dt.datetime) -> None:
        """Store the instants to hand out in order."""
        self._instants = list(instants)
        self.calls = 0

    def __call__(self) -> dt.datetime:
        """Return the next scripted instant."""
        self.calls += 1
        if len(self._instants) > 1:
            return self._instants.pop(0)
        return self._instants[0]


class FakeLogger:
    """Collects femtologging-style log calls for assertions."""

    def __init__(self) -> None:
        """Start with no calls."""
        self.calls: list[tuple[str, str, object | None]] = []

    def log(
        self,
        level: str,
        message: str,
        /,
        *,
        exc_info: object | None = None,
        stack_info: bool = False,
    ) -> str:
        """Record the call."""
        del stack_info
        self.calls.append((level, message, exc_info))
        return message

    def messages(self, marker: str) -> list[str]:
        """Return logged messages containing ``marker``."""
        return [message for _, message, _ in self.calls if marker in message]
