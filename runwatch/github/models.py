"""Typed GitHub Actions payloads decoded with msgspec.

Only the fields the monitor reads are declared; msgspec ignores the rest of
the REST payload. Timestamps are kept as the strings GitHub sent, under a
``*_raw`` attribute mapped to the wire name, and exposed as timezone-aware
datetimes through properties of the wire name. ``null``, missing and empty
timestamps all read as ``None``. Anything else that is not an ISO 8601
instant with an offset fails validation when the struct is built, so a
malformed payload surfaces as ``msgspec.ValidationError`` during decoding.
"""

from __future__ import annotations

import typing as typ

import msgspec

from runwatch.common.time import parse_timestamp

if typ.TYPE_CHECKING:
    import datetime as dt


class _StartedCompleted(msgspec.Struct, kw_only=True, frozen=True):
    """Shared start/completion timestamps of jobs and steps."""

    started_at_raw: str | None = msgspec.field(default=None, name="started_at")
    completed_at_raw: str | None = msgspec.field(default=None, name="completed_at")

    def __post_init__(self) -> None:
        """Reject timestamps that cannot be parsed."""
        _ = self.started_at, self.completed_at

    @property
    def started_at(self) -> dt.datetime | None:
        """Return when the entity started, if reported."""
        return parse_timestamp(self.started_at_raw, field="started_at")

    @property
    def completed_at(self) -> dt.datetime | None:
        """Return when the entity completed, if reported."""
        return parse_timestamp(self.completed_at_raw, field="completed_at")


class WorkflowStep(_StartedCompleted, kw_only=True, frozen=True):
    """A single step inside a workflow job.

    Attributes
    ----------
    name : str
        Step name as shown in the GitHub UI.
    number : int, optional
        One-based position within the job.
    status : str, optional
        Lifecycle status (``queued``, ``in_progress``, ``completed``).
    conclusion : str, optional
        Outcome once completed (``success``, ``failure``, ``skipped``...).
    started_at, completed_at : datetime, optional
        Transition timestamps reported by GitHub.

    """

    name: str
    number: int | None = None
    status: str | None = None
    conclusion: str | None = None


class WorkflowJob(_StartedCompleted, kw_only=True, frozen=True):
    """A job within a workflow run, carrying its steps."""

    id: int
    name: str
    status: str | None = None
    conclusion: str | None = None
    steps: tuple[WorkflowStep, ...] = ()


class WorkflowRun(msgspec.Struct, kw_only=True, frozen=True):
    """A workflow run as listed by ``/actions/runs``.

    Attributes
    ----------
    id : int
        GitHub database identifier for the run.
    name : str, optional
        Workflow name.
    head_branch, head_sha : str, optional
        Branch and commit the run was triggered for.
    status : str, optional
        Current run status; reported on the ``updated_at`` event.
    conclusion : str, optional
        Outcome once completed.
    created_at, run_started_at, updated_at : datetime, optional
        Run-level transition timestamps.
    jobs_url : str, optional
        Link to the run's job listing.

    """

    id: int
    name: str | None = None
    head_branch: str | None = None
    head_sha: str | None = None
    status: str | None = None
    conclusion: str | None = None
    created_at_raw: str | None = msgspec.field(default=None, name="created_at")
    run_started_at_raw: str | None = msgspec.field(
        default=None, name="run_started_at"
    )
    updated_at_raw: str | None = msgspec.field(default=None, name="updated_at")
    jobs_url: str | None = None

    def __post_init__(self) -> None:
        """Reject timestamps that cannot be parsed."""
        _ = self.created_at, self.run_started_at, self.updated_at

    @property
    def created_at(self) -> dt.datetime | None:
        """Return when the run was queued, if reported."""
        return parse_timestamp(self.created_at_raw, field="created_at")

    @property
    def run_started_at(self) -> dt.datetime | None:
        """Return when the run started executing, if reported."""
        return parse_timestamp(self.run_started_at_raw, field="run_started_at")

    @property
    def updated_at(self) -> dt.datetime | None:
        """Return when the run last changed, if reported."""
        return parse_timestamp(self.updated_at_raw, field="updated_at")


class WorkflowRunsPage(msgspec.Struct, kw_only=True, frozen=True):
    """Response body of ``GET /repos/{owner}/{repo}/actions/runs``."""

    workflow_runs: tuple[WorkflowRun, ...] = ()
    total_count: int | None = None


class WorkflowJobsPage(msgspec.Struct, kw_only=True, frozen=True):
    """Response body of ``GET /repos/{owner}/{repo}/actions/runs/{id}/jobs``."""

    jobs: tuple[WorkflowJob, ...] = ()
    total_count: int | None = None
