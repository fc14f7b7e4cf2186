"""Convert snapshots into flat event lists.

Extraction is pure: the same snapshot always yields the same events in the
same discovery order (run, then each job followed by its steps). It knows
nothing about what has already been delivered; the reconciliation loop owns
deduplication through the watermark.
"""

from __future__ import annotations

import typing as typ

from .events import EntityType, Event

if typ.TYPE_CHECKING:
    import datetime as dt

    from runwatch.github.models import WorkflowJob, WorkflowRun, WorkflowStep

    from .snapshot import Snapshot

_STARTED = "in_progress"
_CREATED = "queued"


def _transitions(
    entity_type: EntityType,
    name: str | None,
    run: WorkflowRun,
    fields: typ.Iterable[tuple[dt.datetime | None, str | None]],
) -> typ.Iterator[Event]:
    for timestamp, raw_status in fields:
        if timestamp is None:
            continue
        yield Event.observed(
            timestamp,
            entity_type,
            raw_status,
            name=name,
            branch=run.head_branch,
            commit_sha=run.head_sha,
        )


def _run_events(run: WorkflowRun) -> typ.Iterator[Event]:
    return _transitions(
        EntityType.WORKFLOW,
        run.name,
        run,
        (
            (run.created_at, _CREATED),
            (run.run_started_at, _STARTED),
            (run.updated_at, run.status),
        ),
    )


def _job_events(run: WorkflowRun, job: WorkflowJob) -> typ.Iterator[Event]:
    yield from _transitions(
        EntityType.JOB,
        job.name,
        run,
        ((job.started_at, _STARTED), (job.completed_at, job.conclusion)),
    )
    for step in job.steps:
        yield from _step_events(run, step)


def _step_events(run: WorkflowRun, step: WorkflowStep) -> typ.Iterator[Event]:
    return _transitions(
        EntityType.STEP,
        step.name,
        run,
        ((step.started_at, _STARTED), (step.completed_at, step.conclusion)),
    )


def extract_events(snapshot: Snapshot) -> list[Event]:
    """Return one event per populated transition timestamp in ``snapshot``.

    Runs emit ``created_at`` (queued), ``run_started_at`` (in progress) and
    ``updated_at`` (the run's current status). Jobs and steps emit
    ``started_at`` (in progress) and ``completed_at`` (their conclusion).
    Missing timestamps produce no event, and a run without job detail still
    yields its own events.
    """
    events: list[Event] = []
    for entry in snapshot.runs:
        events.extend(_run_events(entry.run))
        for job in entry.jobs or ():
            events.extend(_job_events(entry.run, job))
    return events
