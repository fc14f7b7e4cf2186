"""Unit tests for shared time helpers."""

from __future__ import annotations

import datetime as dt

import pytest

from runwatch.common.time import ensure_utc, parse_timestamp


@pytest.mark.parametrize("raw", [None, "", "   "])
def test_parse_timestamp_treats_blank_values_as_absent(raw: str | None) -> None:
    """None, empty and whitespace-only strings carry no timestamp."""
    assert parse_timestamp(raw, field="started_at") is None


def test_parse_timestamp_normalizes_offsets_to_utc() -> None:
    """Offsets other than Z are converted to UTC."""
    parsed = parse_timestamp("2026-03-01T14:00:00+02:00", field="started_at")

    assert parsed == dt.datetime(2026, 3, 1, 12, 0, tzinfo=dt.UTC)
    assert parsed is not None
    assert parsed.tzinfo is dt.UTC


@pytest.mark.parametrize("raw", ["yesterday", "2026-03-01T12:00:00"])
def test_parse_timestamp_rejects_unusable_values(raw: str) -> None:
    """Garbage and offset-less values raise ValueError naming the field."""
    with pytest.raises(ValueError, match="completed_at"):
        parse_timestamp(raw, field="completed_at")


def test_ensure_utc_rejects_naive_datetimes() -> None:
    """Naive datetimes cannot be placed on the UTC timeline."""
    with pytest.raises(ValueError, match="must be timezone-aware"):
        ensure_utc(dt.datetime(2026, 3, 1, 12, 0), field="watermark")  # noqa: DTZ001
