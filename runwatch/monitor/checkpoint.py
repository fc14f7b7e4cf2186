"""Durable per-resource watermark storage.

Watermarks live in one JSON object keyed by resource (``owner/name``), each
value an RFC 3339 instant::

    {"octo/reef": "2026-10-18T09:15:02.118000Z"}

The file is read fully and rewritten fully on every save, via a temporary
sibling and ``os.replace``, so a crash mid-write leaves the previous state
intact. The store assumes a single writer.
"""

from __future__ import annotations

import datetime as dt
import os
import tempfile
import typing as typ
from pathlib import Path

import msgspec

from runwatch.logging import get_logger, log_warning

from .errors import (
    CheckpointLoadError,
    CheckpointNotFoundError,
    CheckpointSaveError,
)

logger = get_logger(__name__)

DEFAULT_STATE_PATH = Path(".runwatch_state")

_STATE_TYPE = dict[str, dt.datetime]


class CheckpointStore(typ.Protocol):
    """Interface for persisting watermarks keyed by resource."""

    def load(self, resource_key: str) -> dt.datetime:
        """Return the persisted watermark or raise ``CheckpointNotFoundError``."""
        ...

    def save(self, resource_key: str, watermark: dt.datetime) -> None:
        """Persist ``watermark`` for ``resource_key``."""
        ...


class FileCheckpointStore:
    """File-backed :class:`CheckpointStore` shared across resource keys."""

    def __init__(self, path: Path = DEFAULT_STATE_PATH) -> None:
        """Bind the store to a state file; the file is created on first save."""
        self._path = Path(path)

    @property
    def path(self) -> Path:
        """Return the backing state file path."""
        return self._path

    def load(self, resource_key: str) -> dt.datetime:
        """Return the watermark stored for ``resource_key``.

        Raises
        ------
        CheckpointNotFoundError
            If the state file does not exist or has no entry for the key.
        CheckpointLoadError
            If the file cannot be read or decoded, or the stored value has no
            timezone.

        """
        state = self._read_state()
        watermark = None if state is None else state.get(resource_key)
        if watermark is None:
            raise CheckpointNotFoundError.for_key(resource_key, self._path)
        if watermark.tzinfo is None:
            raise CheckpointLoadError.naive_timestamp(resource_key, self._path)
        return watermark.astimezone(dt.UTC)

    def load_all(self) -> dict[str, dt.datetime]:
        """Return every stored watermark; an absent file yields ``{}``."""
        return self._read_state() or {}

    def save(self, resource_key: str, watermark: dt.datetime) -> None:
        """Persist ``watermark`` while preserving entries for other keys.

        An existing file that cannot be decoded is replaced by a mapping that
        holds only ``resource_key``.

        Raises
        ------
        ValueError
            If ``watermark`` is naive.
        CheckpointSaveError
            If the state file cannot be written.

        """
        if watermark.tzinfo is None:
            msg = "watermark must be timezone-aware"
            raise ValueError(msg)

        try:
            state = self.load_all()
        except CheckpointLoadError as exc:
            log_warning(
                logger,
                "Discarding unreadable checkpoint file %s: %s",
                self._path,
                exc,
            )
            state = {}

        state[resource_key] = watermark.astimezone(dt.UTC)
        encoded = msgspec.json.encode(dict(sorted(state.items())))
        try:
            self._replace(encoded)
        except OSError as exc:
            raise CheckpointSaveError.write_failed(self._path, exc) from exc

    def _read_state(self) -> dict[str, dt.datetime] | None:
        try:
            raw = self._path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise CheckpointLoadError.unreadable(self._path, exc) from exc
        if not raw.strip():
            return {}
        try:
            return msgspec.json.decode(raw, type=_STATE_TYPE)
        except msgspec.DecodeError as exc:
            raise CheckpointLoadError.unreadable(self._path, exc) from exc

    def _replace(self, encoded: bytes) -> None:
        directory = self._path.parent
        directory.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self._path.name}.", suffix=".tmp", dir=directory
        )
        tmp_path = Path(tmp_name)
        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(encoded)
                handle.flush()
                os.fsync(handle.fileno())
            tmp_path.replace(self._path)
        except BaseException:
            tmp_path.unlink(missing_ok=True)
            raise
