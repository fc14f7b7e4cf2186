"""Event records delivered by the reconciliation loop.

An :class:`Event` is one observed state transition of a workflow run, job, or
step. Source status strings are folded into the closed :class:`EventStatus`
taxonomy so sinks never need to know the data source's raw vocabulary.
"""

from __future__ import annotations

import dataclasses
import enum
import typing as typ

if typ.TYPE_CHECKING:
    import datetime as dt


class EntityType(enum.StrEnum):
    """Hierarchy level an event was observed at."""

    WORKFLOW = "Workflow"
    JOB = "Job"
    STEP = "Step"


class EventStatus(enum.StrEnum):
    """Normalised status tokens delivered to sinks."""

    DONE = "done"
    FAIL = "fail"
    RUNNING = "running"
    QUEUED = "queued"
    SKIPPED = "skipped"
    UNKNOWN = "unknown"


_STATUS_ALIASES: dict[str, EventStatus] = {
    "success": EventStatus.DONE,
    "completed": EventStatus.DONE,
    "failure": EventStatus.FAIL,
    "timed_out": EventStatus.FAIL,
    "in_progress": EventStatus.RUNNING,
    "running": EventStatus.RUNNING,
    "queued": EventStatus.QUEUED,
    "skipped": EventStatus.SKIPPED,
    "cancelled": EventStatus.SKIPPED,
}

_STATUS_CODE_LENGTH = 4


def normalize_status(raw: str | None) -> EventStatus:
    """Map a source status string onto :class:`EventStatus`.

    Matching is case-insensitive. Missing and unrecognised values map to
    :attr:`EventStatus.UNKNOWN`.
    """
    if raw is None:
        return EventStatus.UNKNOWN
    return _STATUS_ALIASES.get(raw.strip().lower(), EventStatus.UNKNOWN)


@dataclasses.dataclass(frozen=True, slots=True)
class Event:
    """An immutable observation of one state transition."""

    timestamp: dt.datetime
    entity_type: EntityType
    status: EventStatus
    raw_status: str | None
    name: str | None
    branch: str | None = None
    commit_sha: str | None = None

    @classmethod
    def observed(  # noqa: PLR0913
        cls,
        timestamp: dt.datetime,
        entity_type: EntityType,
        raw_status: str | None,
        *,
        name: str | None,
        branch: str | None = None,
        commit_sha: str | None = None,
    ) -> Event:
        """Build an event, normalising ``raw_status`` into the taxonomy."""
        return cls(
            timestamp=timestamp,
            entity_type=entity_type,
            status=normalize_status(raw_status),
            raw_status=raw_status,
            name=name,
            branch=branch,
            commit_sha=commit_sha,
        )

    @property
    def status_code(self) -> str:
        """Return a short upper-case code for display.

        Known tokens use their own name; unknown statuses pass the source
        value through verbatim, truncated to four characters.
        """
        if self.status is EventStatus.UNKNOWN:
            source = self.raw_status or EventStatus.UNKNOWN.value
            return source.upper()[:_STATUS_CODE_LENGTH]
        return self.status.value.upper()[:_STATUS_CODE_LENGTH]
