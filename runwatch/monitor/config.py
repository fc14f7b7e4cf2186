"""Configuration for the reconciliation loop.

Usage
-----
Create a configuration with defaults:

>>> config = MonitorConfig()
>>> config.poll_interval.total_seconds()
10.0

Or load from environment variables:

>>> import os
>>> from unittest import mock
>>> with mock.patch.dict(os.environ, {"RUNWATCH_POLL_INTERVAL_SECONDS": "30"}):
...     MonitorConfig.from_env().poll_interval.total_seconds()
30.0

"""

from __future__ import annotations

import dataclasses as dc
import datetime as dt
import os
from pathlib import Path

from .checkpoint import DEFAULT_STATE_PATH


@dc.dataclass(frozen=True, slots=True)
class MonitorConfig:
    """Runtime knobs for the polling loop.

    Attributes
    ----------
    poll_interval
        Sleep between successful cycles. Default is 10 seconds.
    error_backoff
        Sleep after a cycle whose snapshot fetch failed. Default is 5
        seconds.
    state_path
        Checkpoint file shared by every monitored resource.

    """

    poll_interval: dt.timedelta = dc.field(
        default_factory=lambda: dt.timedelta(seconds=10)
    )
    error_backoff: dt.timedelta = dc.field(
        default_factory=lambda: dt.timedelta(seconds=5)
    )
    state_path: Path = DEFAULT_STATE_PATH

    @staticmethod
    def _parse_positive_seconds(env_var: str, default: float) -> dt.timedelta:
        """Read a positive number of seconds, falling back to a default."""
        raw = os.environ.get(env_var, "")
        if not raw.strip():
            return dt.timedelta(seconds=default)
        try:
            value = float(raw)
        except ValueError as exc:
            msg = f"{env_var} must be a number of seconds, got: {raw!r}"
            raise ValueError(msg) from exc
        if value <= 0:
            msg = f"{env_var} must be positive, got: {value}"
            raise ValueError(msg)
        return dt.timedelta(seconds=value)

    @classmethod
    def from_env(cls) -> MonitorConfig:
        """Create configuration from environment variables.

        Reads ``RUNWATCH_POLL_INTERVAL_SECONDS``,
        ``RUNWATCH_ERROR_BACKOFF_SECONDS`` and ``RUNWATCH_STATE_FILE``.

        Raises
        ------
        ValueError
            If an interval is not a positive number.

        """
        state_path = DEFAULT_STATE_PATH
        raw_state_path = os.environ.get("RUNWATCH_STATE_FILE", "")
        if raw_state_path.strip():
            state_path = Path(raw_state_path.strip())

        return cls(
            poll_interval=cls._parse_positive_seconds(
                "RUNWATCH_POLL_INTERVAL_SECONDS", 10
            ),
            error_backoff=cls._parse_positive_seconds(
                "RUNWATCH_ERROR_BACKOFF_SECONDS", 5
            ),
            state_path=state_path,
        )
