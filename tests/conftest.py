"""Shared fixtures for unit and feature tests."""

from __future__ import annotations

import os

import pytest


@pytest.fixture(autouse=True)
def _isolate_runwatch_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep a developer's RUNWATCH_* settings out of the test session."""
    for name in list(os.environ):
        if name.startswith("RUNWATCH_"):
            monkeypatch.delenv(name)
