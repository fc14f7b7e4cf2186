"""Event sinks that present delivered events."""

from __future__ import annotations

from .terminal import TerminalSink

__all__ = ["TerminalSink"]
