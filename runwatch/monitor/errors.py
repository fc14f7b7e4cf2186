"""Error taxonomy for the reconciliation engine."""

from __future__ import annotations

import typing as typ

if typ.TYPE_CHECKING:
    from pathlib import Path


class SnapshotFetchError(RuntimeError):
    """Raised when a snapshot (or part of one) cannot be fetched.

    Snapshot providers raise subclasses of this error for network failures,
    timeouts, non-success responses, and payloads that fail validation. The
    reconciliation loop treats it as transient.
    """

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        """Initialise with a message and the HTTP status code, if any."""
        self.status_code = status_code
        super().__init__(message)


class SnapshotShapeError(SnapshotFetchError):
    """Raised when a provider response does not match the expected schema."""


class MonitorConfigError(RuntimeError):
    """Raised when startup configuration is invalid."""


class CheckpointError(RuntimeError):
    """Base class for checkpoint store failures."""

    def __init__(self, message: str, *, path: Path | None = None) -> None:
        """Initialise with a message and the checkpoint path involved."""
        self.path = path
        super().__init__(message)


class CheckpointNotFoundError(CheckpointError):
    """Raised when no watermark is persisted for a resource."""

    @classmethod
    def for_key(cls, resource_key: str, path: Path) -> CheckpointNotFoundError:
        """Return an error for a resource key absent from the store."""
        return cls(f"no checkpoint for {resource_key} in {path}", path=path)


class CheckpointLoadError(CheckpointError):
    """Raised when the persisted checkpoint state cannot be read."""

    @classmethod
    def unreadable(cls, path: Path, detail: object) -> CheckpointLoadError:
        """Return an error for a checkpoint file that cannot be decoded."""
        return cls(f"checkpoint file {path} is unreadable: {detail}", path=path)

    @classmethod
    def naive_timestamp(cls, resource_key: str, path: Path) -> CheckpointLoadError:
        """Return an error for a stored watermark without a timezone."""
        return cls(
            f"checkpoint for {resource_key} in {path} has no timezone", path=path
        )


class CheckpointSaveError(CheckpointError):
    """Raised when a watermark cannot be written to the store."""

    @classmethod
    def write_failed(cls, path: Path, detail: object) -> CheckpointSaveError:
        """Return an error for a failed checkpoint write."""
        return cls(f"failed to write checkpoint file {path}: {detail}", path=path)
