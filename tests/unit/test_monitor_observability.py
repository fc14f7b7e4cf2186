"""Unit tests for monitor error categorisation and structured log lines."""

from __future__ import annotations

import datetime as dt
from pathlib import Path

import pytest

from runwatch.github.errors import (
    GitHubAPIError,
    GitHubConfigError,
    GitHubResponseShapeError,
)
from runwatch.monitor import (
    CycleResult,
    ErrorCategory,
    MonitorEventLogger,
    MonitorEventType,
    MonitorRunContext,
    RunSnapshot,
    categorize_error,
)
from runwatch.monitor.errors import CheckpointSaveError
from tests.unit.monitor_test_helpers import FakeLogger, at, make_run

_CONTEXT = MonitorRunContext(resource_key="octo/reef")


@pytest.mark.parametrize(
    ("error", "expected"),
    [
        (GitHubAPIError.http_error(502), ErrorCategory.TRANSIENT),
        (GitHubAPIError.http_error(429), ErrorCategory.TRANSIENT),
        (
            GitHubAPIError.request_failed("https://x", TimeoutError()),
            ErrorCategory.TRANSIENT,
        ),
        (GitHubAPIError.http_error(401), ErrorCategory.CLIENT_ERROR),
        (GitHubAPIError.http_error(404), ErrorCategory.CLIENT_ERROR),
        (GitHubResponseShapeError.invalid("runs", "bad"), ErrorCategory.SCHEMA_DRIFT),
        (GitHubConfigError.missing_token(), ErrorCategory.CONFIGURATION),
        (
            CheckpointSaveError.write_failed(Path("s"), "disk full"),
            ErrorCategory.CHECKPOINT_IO,
        ),
        (KeyError("x"), ErrorCategory.UNKNOWN),
    ],
)
def test_categorize_error(error: BaseException, expected: ErrorCategory) -> None:
    """Errors map onto their log routing category."""
    assert categorize_error(error) is expected


def test_request_failed_names_the_exception_type_when_message_is_empty() -> None:
    """Transport errors without a message still say what went wrong."""
    error = GitHubAPIError.request_failed("https://x", TimeoutError())

    assert str(error).endswith("TimeoutError")


def test_cycle_completed_line_carries_counters() -> None:
    """The cycle summary reports counters, watermark and persistence."""
    logger = FakeLogger()
    result = CycleResult(
        started_at=at(0),
        events_seen=7,
        events_delivered=2,
        watermark=at(0),
        persisted=True,
        runs_without_jobs=1,
    )

    MonitorEventLogger(logger).log_cycle_completed(_CONTEXT, result)

    assert logger.calls == [
        (
            "INFO",
            "[monitor.cycle.completed] resource=octo/reef events_seen=7 "
            "events_delivered=2 runs_without_jobs=1 "
            "watermark=2026-03-01T12:00:00+00:00 persisted=True",
            None,
        )
    ]


def test_cycle_failed_is_a_warning_with_retry_delay() -> None:
    """Fetch failures are logged at WARNING with their category."""
    logger = FakeLogger()

    MonitorEventLogger(logger).log_cycle_failed(
        _CONTEXT, GitHubAPIError.http_error(503), dt.timedelta(seconds=5)
    )

    ((level, message, _),) = logger.calls
    assert level == "WARNING"
    assert message.startswith(f"[{MonitorEventType.CYCLE_FAILED}]")
    assert "error_type=GitHubAPIError" in message
    assert "error_category=transient" in message
    assert "retry_in_seconds=5.0" in message


def test_jobs_unavailable_names_the_run() -> None:
    """Missing job detail is logged with the run identity and reason."""
    logger = FakeLogger()
    entry = RunSnapshot(run=make_run(99, name="Nightly"), jobs_error="boom")

    MonitorEventLogger(logger).log_jobs_unavailable(_CONTEXT, entry)

    ((level, message, _),) = logger.calls
    assert level == "WARNING"
    assert "run_id=99" in message
    assert "run_name=Nightly" in message
    assert "error_message=boom" in message


def test_stopped_without_watermark() -> None:
    """A loop stopped before initialisation logs watermark=None."""
    logger = FakeLogger()

    MonitorEventLogger(logger).log_stopped(_CONTEXT, None)

    assert logger.messages("watermark=None")
