"""Terminal sink rendering events as a coloured table.

Each event becomes one line::

    09:15:02 🟢 DONE  [Job ] main            (1a2b3c4) build

The time column uses the local timezone unless a ``tz`` is supplied.
"""

from __future__ import annotations

import dataclasses
import sys
import typing as typ

from runwatch.monitor.events import EventStatus

if typ.TYPE_CHECKING:
    import datetime as dt

    from runwatch.monitor.events import Event

_RESET = "\033[0m"
_RULE = "-" * 85
_HEADER = "TIME     | STATUS | TYPE | BRANCH       | SHA     | NAME"
_TIME_FORMAT = "%H:%M:%S"

_BRANCH_WIDTH = 15
_BRANCH_KEEP = 12
_SHA_LENGTH = 7
_TYPE_WIDTH = 4


@dataclasses.dataclass(frozen=True, slots=True)
class _StatusStyle:
    icon: str
    color: str


_STATUS_STYLES: dict[EventStatus, _StatusStyle] = {
    EventStatus.DONE: _StatusStyle("🟢 DONE ", "\033[32m"),
    EventStatus.FAIL: _StatusStyle("🔴 FAIL ", "\033[31m"),
    EventStatus.RUNNING: _StatusStyle("🟡 RUN  ", "\033[33m"),
    EventStatus.QUEUED: _StatusStyle("⚪ QUEUE", "\033[37m"),
    EventStatus.SKIPPED: _StatusStyle("🚫 SKIP ", "\033[90m"),
}


def _branch_label(branch: str | None) -> str:
    label = branch or "HEAD"
    if len(label) > _BRANCH_WIDTH:
        label = f"{label[:_BRANCH_KEEP]}..."
    return label


def _sha_label(sha: str | None) -> str:
    if sha is None or len(sha) < _SHA_LENGTH:
        return "unknown"
    return sha[:_SHA_LENGTH]


class TerminalSink:
    """Write banner, table header, and event lines to a text stream."""

    def __init__(
        self,
        stream: typ.TextIO | None = None,
        *,
        color: bool = True,
        tz: dt.tzinfo | None = None,
    ) -> None:
        """Bind the sink to ``stream`` (stdout by default)."""
        self._stream = stream or sys.stdout
        self._color = color
        self._tz = tz

    def _clock_label(self, timestamp: dt.datetime) -> str:
        return timestamp.astimezone(self._tz).strftime(_TIME_FORMAT)

    def _write(self, line: str) -> None:
        self._stream.write(f"{line}\n")
        self._stream.flush()

    def format_event(self, event: Event) -> str:
        """Render one event as a table row."""
        style = _STATUS_STYLES.get(event.status)
        if style is None:
            icon, color = f"🔹 {event.status_code}", ""
        else:
            icon, color = style.icon, style.color
        status = f"{color}{icon}{_RESET}" if self._color else icon
        entity = event.entity_type.value[:_TYPE_WIDTH]
        return (
            f"{self._clock_label(event.timestamp)} {status} "
            f"[{entity:<{_TYPE_WIDTH}}] {_branch_label(event.branch):<{_BRANCH_WIDTH}} "
            f"({_sha_label(event.commit_sha)}) {event.name or ''}"
        ).rstrip()

    def print_banner(self, resource_key: str, watermark: dt.datetime) -> None:
        """Print the startup banner followed by the table header."""
        self._write(f"🚀 Starting monitoring for {resource_key}")
        self._write(f"🕒 Monitoring events after: {self._clock_label(watermark)}")
        self._write(_RULE)
        self._write(_HEADER)
        self._write(_RULE)

    async def deliver(self, events: typ.Sequence[Event]) -> None:
        """Print each event on its own line, in the order given."""
        for event in events:
            self._write(self.format_event(event))

    def print_stopping(self) -> None:
        """Announce that shutdown has begun."""
        self._write("\n🛑 Stopping monitor... Saving state.")

    def print_farewell(self) -> None:
        """Print the final line after the watermark is saved."""
        self._write("👋 Bye!")
