"""Incremental event reconciliation for GitHub Actions runs."""

from __future__ import annotations

from .checkpoint import CheckpointStore, FileCheckpointStore
from .config import MonitorConfig
from .errors import (
    CheckpointError,
    CheckpointLoadError,
    CheckpointNotFoundError,
    CheckpointSaveError,
    MonitorConfigError,
    SnapshotFetchError,
    SnapshotShapeError,
)
from .events import EntityType, Event, EventStatus, normalize_status
from .extract import extract_events
from .loop import (
    CycleResult,
    EventSink,
    LoopState,
    ReconciliationLoop,
    select_pending,
)
from .observability import (
    ErrorCategory,
    MonitorEventLogger,
    MonitorEventType,
    MonitorRunContext,
    categorize_error,
)
from .snapshot import RunSnapshot, Snapshot, SnapshotProvider, collect_snapshot

__all__ = [
    "CheckpointError",
    "CheckpointLoadError",
    "CheckpointNotFoundError",
    "CheckpointSaveError",
    "CheckpointStore",
    "CycleResult",
    "EntityType",
    "ErrorCategory",
    "Event",
    "EventSink",
    "EventStatus",
    "FileCheckpointStore",
    "LoopState",
    "MonitorConfig",
    "MonitorConfigError",
    "MonitorEventLogger",
    "MonitorEventType",
    "MonitorRunContext",
    "ReconciliationLoop",
    "RunSnapshot",
    "Snapshot",
    "SnapshotFetchError",
    "SnapshotProvider",
    "SnapshotShapeError",
    "categorize_error",
    "collect_snapshot",
    "extract_events",
    "normalize_status",
    "select_pending",
]
