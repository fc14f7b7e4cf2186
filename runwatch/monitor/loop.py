"""Incremental reconciliation loop.

Each cycle fetches the current snapshot of a resource, extracts one event per
observed transition timestamp, keeps the events newer than the watermark,
delivers them oldest first, and then advances the watermark to the instant
the cycle *started* before persisting it. Anchoring the watermark to the
cycle start rather than the newest delivered event keeps it independent of
the data source's clock, at the cost of skipping an event the source stamps
earlier than a watermark already persisted.

Cancellation is cooperative: :meth:`ReconciliationLoop.run` watches an
``asyncio.Event`` at the top of each cycle, during the fetch, and during the
inter-cycle sleep, and persists the watermark once more on the way out.
"""

from __future__ import annotations

import asyncio
import contextlib
import dataclasses
import enum
import operator
import typing as typ

from runwatch.common.time import ensure_utc, utcnow

from .config import MonitorConfig
from .errors import (
    CheckpointLoadError,
    CheckpointNotFoundError,
    CheckpointSaveError,
    SnapshotFetchError,
)
from .extract import extract_events
from .observability import MonitorEventLogger, MonitorRunContext
from .snapshot import Snapshot, SnapshotProvider, collect_snapshot

if typ.TYPE_CHECKING:
    import collections.abc as cabc
    import datetime as dt

    from .checkpoint import CheckpointStore
    from .events import Event

    Clock: typ.TypeAlias = cabc.Callable[[], dt.datetime]


class EventSink(typ.Protocol):
    """Receives delivered events, oldest first."""

    async def deliver(self, events: typ.Sequence[Event]) -> None:
        """Render or forward ``events`` in the order given."""
        ...


class LoopState(enum.StrEnum):
    """Phases of the reconciliation state machine."""

    IDLE = "idle"
    FETCHING = "fetching"
    EXTRACTING = "extracting"
    FILTERING = "filtering"
    DELIVERING = "delivering"
    CHECKPOINTING = "checkpointing"
    SLEEPING = "sleeping"
    STOPPED = "stopped"


@dataclasses.dataclass(frozen=True, slots=True)
class CycleResult:
    """Summary of one completed reconciliation cycle."""

    started_at: dt.datetime
    events_seen: int
    events_delivered: int
    watermark: dt.datetime
    persisted: bool
    runs_without_jobs: int = 0


def select_pending(events: typ.Iterable[Event], watermark: dt.datetime) -> list[Event]:
    """Return events strictly newer than ``watermark``, oldest first.

    ``sorted`` is stable, so events sharing a timestamp keep the order they
    were discovered in.
    """
    pending = [event for event in events if event.timestamp > watermark]
    return sorted(pending, key=operator.attrgetter("timestamp"))


class _CycleCancelledError(Exception):
    """Internal signal that a stop request interrupted an awaited step."""


class ReconciliationLoop:
    """Poll one resource and deliver each state transition once."""

    def __init__(  # noqa: PLR0913
        self,
        resource_key: str,
        provider: SnapshotProvider,
        sink: EventSink,
        store: CheckpointStore,
        *,
        config: MonitorConfig | None = None,
        clock: Clock = utcnow,
        event_logger: MonitorEventLogger | None = None,
    ) -> None:
        """Bind the loop to its collaborators; no I/O happens here."""
        self._resource_key = resource_key
        self._provider = provider
        self._sink = sink
        self._store = store
        self._config = config or MonitorConfig()
        self._clock = clock
        self._event_logger = event_logger or MonitorEventLogger()
        self._context = MonitorRunContext(resource_key=resource_key)
        self._watermark: dt.datetime | None = None
        self._state = LoopState.IDLE

    @property
    def resource_key(self) -> str:
        """Return the monitored resource key."""
        return self._resource_key

    @property
    def state(self) -> LoopState:
        """Return the current state machine phase."""
        return self._state

    @property
    def watermark(self) -> dt.datetime | None:
        """Return the in-memory watermark, ``None`` before initialisation."""
        return self._watermark

    def initialise_watermark(self) -> dt.datetime:
        """Restore the persisted watermark, or start live from ``now``.

        A missing or unreadable checkpoint is not fatal: the loop starts from
        the current time and delivers nothing retroactively.
        """
        try:
            watermark = ensure_utc(
                self._store.load(self._resource_key), field="watermark"
            )
        except CheckpointNotFoundError:
            watermark = self._now()
            self._event_logger.log_checkpoint_missing(self._context, watermark)
        except CheckpointLoadError as exc:
            watermark = self._now()
            self._event_logger.log_checkpoint_load_failed(
                self._context, exc, watermark
            )
        else:
            self._event_logger.log_checkpoint_loaded(self._context, watermark)
        self._watermark = watermark
        return watermark

    async def run_cycle(self) -> CycleResult:
        """Run one fetch, extract, filter, deliver, checkpoint pass.

        Raises
        ------
        SnapshotFetchError
            If the run listing cannot be fetched. The watermark is left
            untouched.

        """
        return await self._run_cycle(cancel=None)

    async def run(self, cancel: asyncio.Event) -> None:
        """Reconcile until ``cancel`` is set, then persist and return.

        Fetch failures are logged and retried after ``error_backoff``.
        Unexpected exceptions propagate, but only after the final watermark
        persist.
        """
        if self._watermark is None:
            self.initialise_watermark()
        self._event_logger.log_started(self._context, self._current_watermark())
        try:
            await self._run_until_cancelled(cancel)
        finally:
            await self._persist_on_shutdown()
            self._state = LoopState.STOPPED
            self._event_logger.log_stopped(self._context, self._watermark)

    async def _run_until_cancelled(self, cancel: asyncio.Event) -> None:
        while not cancel.is_set():
            try:
                await self._run_cycle(cancel=cancel)
            except _CycleCancelledError:
                return
            except SnapshotFetchError as exc:
                self._event_logger.log_cycle_failed(
                    self._context, exc, self._config.error_backoff
                )
                await self._sleep(self._config.error_backoff, cancel)
                continue
            await self._sleep(self._config.poll_interval, cancel)

    async def _run_cycle(self, *, cancel: asyncio.Event | None) -> CycleResult:
        watermark = self._current_watermark()
        cycle_start = self._now()

        self._state = LoopState.FETCHING
        try:
            snapshot = await self._fetch(cancel)
        except BaseException:
            self._state = LoopState.IDLE
            raise
        for run in snapshot.runs_without_jobs:
            self._event_logger.log_jobs_unavailable(self._context, run)

        self._state = LoopState.EXTRACTING
        events = extract_events(snapshot)

        self._state = LoopState.FILTERING
        pending = select_pending(events, watermark)

        self._state = LoopState.DELIVERING
        if pending:
            await self._sink.deliver(pending)

        self._state = LoopState.CHECKPOINTING
        self._watermark = max(watermark, cycle_start)
        persisted = await self._persist(self._watermark)

        result = CycleResult(
            started_at=cycle_start,
            events_seen=len(events),
            events_delivered=len(pending),
            watermark=self._watermark,
            persisted=persisted,
            runs_without_jobs=len(snapshot.runs_without_jobs),
        )
        self._event_logger.log_cycle_completed(self._context, result)
        self._state = LoopState.IDLE
        return result

    async def _fetch(self, cancel: asyncio.Event | None) -> Snapshot:
        """Collect a snapshot, abandoning it if ``cancel`` fires first."""
        fetch = collect_snapshot(self._provider, self._resource_key)
        if cancel is None:
            return await fetch

        fetch_task = asyncio.ensure_future(fetch)
        cancel_task = asyncio.ensure_future(cancel.wait())
        try:
            await asyncio.wait(
                {fetch_task, cancel_task}, return_when=asyncio.FIRST_COMPLETED
            )
        except BaseException:
            fetch_task.cancel()
            raise
        finally:
            cancel_task.cancel()
        if not fetch_task.done():
            fetch_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await fetch_task
            raise _CycleCancelledError
        return fetch_task.result()

    async def _sleep(self, delay: dt.timedelta, cancel: asyncio.Event) -> None:
        """Sleep for ``delay``, waking immediately when ``cancel`` is set."""
        self._state = LoopState.SLEEPING
        with contextlib.suppress(TimeoutError):
            await asyncio.wait_for(cancel.wait(), timeout=delay.total_seconds())

    async def _persist(self, watermark: dt.datetime) -> bool:
        try:
            await asyncio.to_thread(self._store.save, self._resource_key, watermark)
        except CheckpointSaveError as exc:
            self._event_logger.log_checkpoint_save_failed(self._context, exc)
            return False
        return True

    async def _persist_on_shutdown(self) -> None:
        if self._watermark is None:
            return
        self._state = LoopState.CHECKPOINTING
        await self._persist(self._watermark)

    def _current_watermark(self) -> dt.datetime:
        if self._watermark is None:
            return self.initialise_watermark()
        return self._watermark

    def _now(self) -> dt.datetime:
        return ensure_utc(self._clock(), field="clock")
