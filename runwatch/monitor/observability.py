"""Structured logging and error categorisation for the monitor.

Every record is a single line of the form ``[monitor.<event>] key=value ...``
so it stays greppable on a terminal and parseable by log aggregators.
"""

from __future__ import annotations

import dataclasses
import enum
import typing as typ

from runwatch.logging import get_logger, log_info, log_warning

from .errors import (
    CheckpointError,
    MonitorConfigError,
    SnapshotFetchError,
    SnapshotShapeError,
)

if typ.TYPE_CHECKING:
    import datetime as dt

    from runwatch.logging import _SupportsLog

    from .loop import CycleResult
    from .snapshot import RunSnapshot

_HTTP_SERVER_ERROR_THRESHOLD = 500
_HTTP_TOO_MANY_REQUESTS = 429


class MonitorEventType(enum.StrEnum):
    """Structured log event types emitted by the reconciliation loop."""

    STARTED = "monitor.started"
    CHECKPOINT_LOADED = "monitor.checkpoint.loaded"
    CHECKPOINT_MISSING = "monitor.checkpoint.missing"
    CHECKPOINT_LOAD_FAILED = "monitor.checkpoint.load_failed"
    CHECKPOINT_SAVE_FAILED = "monitor.checkpoint.save_failed"
    JOBS_UNAVAILABLE = "monitor.jobs.unavailable"
    CYCLE_COMPLETED = "monitor.cycle.completed"
    CYCLE_FAILED = "monitor.cycle.failed"
    STOPPED = "monitor.stopped"


class ErrorCategory(enum.StrEnum):
    """Categories used to classify monitor failures."""

    TRANSIENT = "transient"
    CLIENT_ERROR = "client_error"
    SCHEMA_DRIFT = "schema_drift"
    CONFIGURATION = "configuration"
    CHECKPOINT_IO = "checkpoint_io"
    UNKNOWN = "unknown"


_EXCEPTION_CATEGORY_MAP: tuple[tuple[type[BaseException], ErrorCategory], ...] = (
    (MonitorConfigError, ErrorCategory.CONFIGURATION),
    (CheckpointError, ErrorCategory.CHECKPOINT_IO),
)


def categorize_error(exc: BaseException) -> ErrorCategory:
    """Categorize an exception for log routing.

    Fetch errors without a status code are transport failures (timeouts,
    refused connections) and count as transient, as do 5xx and 429
    responses.
    """
    if isinstance(exc, SnapshotShapeError):
        return ErrorCategory.SCHEMA_DRIFT
    if isinstance(exc, SnapshotFetchError):
        status = exc.status_code
        if (
            status is None
            or status >= _HTTP_SERVER_ERROR_THRESHOLD
            or status == _HTTP_TOO_MANY_REQUESTS
        ):
            return ErrorCategory.TRANSIENT
        return ErrorCategory.CLIENT_ERROR

    for exc_type, category in _EXCEPTION_CATEGORY_MAP:
        if isinstance(exc, exc_type):
            return category

    return ErrorCategory.UNKNOWN


@dataclasses.dataclass(frozen=True, slots=True)
class MonitorRunContext:
    """Shared context for one monitored resource."""

    resource_key: str


class MonitorEventLogger:
    """Emit structured monitor events through femtologging.

    Successful progress is logged at INFO; recoverable failures (fetch
    errors, unavailable job detail, checkpoint I/O) at WARNING.
    """

    def __init__(self, logger: _SupportsLog | None = None) -> None:
        """Bind to ``logger``, defaulting to this module's logger."""
        self._logger = logger or get_logger(__name__)

    def log_started(
        self, context: MonitorRunContext, watermark: dt.datetime
    ) -> None:
        """Log loop start with the initial watermark."""
        log_info(
            self._logger,
            "[%s] resource=%s watermark=%s",
            MonitorEventType.STARTED,
            context.resource_key,
            watermark.isoformat(),
        )

    def log_checkpoint_loaded(
        self, context: MonitorRunContext, watermark: dt.datetime
    ) -> None:
        """Log a watermark restored from the checkpoint store."""
        log_info(
            self._logger,
            "[%s] resource=%s watermark=%s",
            MonitorEventType.CHECKPOINT_LOADED,
            context.resource_key,
            watermark.isoformat(),
        )

    def log_checkpoint_missing(
        self, context: MonitorRunContext, watermark: dt.datetime
    ) -> None:
        """Log a fresh start because no checkpoint exists."""
        log_info(
            self._logger,
            "[%s] resource=%s watermark=%s",
            MonitorEventType.CHECKPOINT_MISSING,
            context.resource_key,
            watermark.isoformat(),
        )

    def log_checkpoint_load_failed(
        self,
        context: MonitorRunContext,
        error: BaseException,
        watermark: dt.datetime,
    ) -> None:
        """Log an unreadable checkpoint and the fallback watermark."""
        log_warning(
            self._logger,
            "[%s] resource=%s error_type=%s error_message=%s watermark=%s",
            MonitorEventType.CHECKPOINT_LOAD_FAILED,
            context.resource_key,
            type(error).__name__,
            str(error),
            watermark.isoformat(),
        )

    def log_checkpoint_save_failed(
        self, context: MonitorRunContext, error: BaseException
    ) -> None:
        """Log a failed watermark write."""
        log_warning(
            self._logger,
            "[%s] resource=%s error_category=%s error_message=%s",
            MonitorEventType.CHECKPOINT_SAVE_FAILED,
            context.resource_key,
            categorize_error(error),
            str(error),
        )

    def log_jobs_unavailable(
        self, context: MonitorRunContext, run: RunSnapshot
    ) -> None:
        """Log a run whose job detail could not be fetched."""
        log_warning(
            self._logger,
            "[%s] resource=%s run_id=%d run_name=%s error_message=%s",
            MonitorEventType.JOBS_UNAVAILABLE,
            context.resource_key,
            run.run.id,
            run.run.name,
            run.jobs_error,
        )

    def log_cycle_completed(
        self, context: MonitorRunContext, result: CycleResult
    ) -> None:
        """Log a finished cycle with its counters."""
        log_info(
            self._logger,
            "[%s] resource=%s events_seen=%d events_delivered=%d "
            "runs_without_jobs=%d watermark=%s persisted=%s",
            MonitorEventType.CYCLE_COMPLETED,
            context.resource_key,
            result.events_seen,
            result.events_delivered,
            result.runs_without_jobs,
            result.watermark.isoformat(),
            result.persisted,
        )

    def log_cycle_failed(
        self,
        context: MonitorRunContext,
        error: BaseException,
        backoff: dt.timedelta,
    ) -> None:
        """Log a cycle voided by a fetch failure."""
        log_warning(
            self._logger,
            "[%s] resource=%s error_type=%s error_category=%s "
            "error_message=%s retry_in_seconds=%.1f",
            MonitorEventType.CYCLE_FAILED,
            context.resource_key,
            type(error).__name__,
            categorize_error(error),
            str(error),
            backoff.total_seconds(),
        )

    def log_stopped(
        self, context: MonitorRunContext, watermark: dt.datetime | None
    ) -> None:
        """Log loop shutdown and the final watermark."""
        log_info(
            self._logger,
            "[%s] resource=%s watermark=%s",
            MonitorEventType.STOPPED,
            context.resource_key,
            watermark.isoformat() if watermark is not None else None,
        )
