"""Progress sinks: the three consumers of the poller's event stream.

- ``TerminalSink``: human-readable lines for an interactive terminal.
- ``LoggingSink``: one log record per event.
- ``BufferingSink``: collects ``ReportedEvent`` models for a final
  structured report (AI tool responses; no partial streaming).

``fanout`` combines several sinks into one.
"""

from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING, TextIO

from redisops.models.payloads import ReportedEvent
from redisops.models.progress import (
    Cancelled,
    Completed,
    Failed,
    Polling,
    RateLimited,
    Started,
    TimedOut,
    event_name,
)

if TYPE_CHECKING:
    from redisops.models.progress import ProgressEvent, ProgressSink

logger = logging.getLogger(__name__)

STATE_ICONS: dict[str, str] = {
    "started": "▶",
    "polling": "⏳",
    "rate_limited": "⏸",
    "completed": "✓",
    "failed": "✗",
    "timed_out": "⏱",
    "cancelled": "⊘",
}


def describe(event: ProgressEvent) -> str:
    """Return a one-line human description of *event* (without icon)."""
    if isinstance(event, Started):
        return f"Waiting for {event.platform} operation {event.handle_id}"
    if isinstance(event, Polling):
        if event.note:
            return f"{event.handle_id}: retrying after error ({event.note}) [{event.elapsed:.0f}s]"
        text = f"{event.handle_id}: {event.state or 'unknown'} [{event.elapsed:.0f}s]"
        if event.progress is not None:
            text = f"{text} {event.progress:.0f}%"
        return text
    if isinstance(event, RateLimited):
        return f"{event.handle_id}: rate limited, retrying in {event.retry_after:.0f}s"
    if isinstance(event, Completed):
        return f"{event.handle_id}: completed in {event.elapsed:.0f}s"
    if isinstance(event, Failed):
        return f"{event.handle_id}: failed: {event.reason}"
    if isinstance(event, TimedOut):
        return f"{event.handle_id}: timed out after {event.elapsed:.0f}s"
    if isinstance(event, Cancelled):
        return f"{event.handle_id}: cancelled after {event.elapsed:.0f}s"
    return str(event)


class TerminalSink:
    """Write one line per event to *stream* (stderr by default).

    Consecutive ``Polling`` events with an unchanged state are collapsed
    so a long wait does not flood the terminal.
    """

    def __init__(self, stream: TextIO | None = None, *, icons: bool = True) -> None:
        self._stream = stream
        self._icons = icons
        self._last_state: str | None = None

    @property
    def stream(self) -> TextIO:
        return self._stream or sys.stderr

    def __call__(self, event: ProgressEvent) -> None:
        if isinstance(event, Polling) and not event.note:
            if event.state == self._last_state and event.progress is None:
                return
            self._last_state = event.state
        text = describe(event)
        if self._icons:
            text = f"{STATE_ICONS[event_name(event)]} {text}"
        self.stream.write(text + "\n")
        self.stream.flush()


class LoggingSink:
    """Log each event through the standard library logger."""

    def __init__(self, log: logging.Logger | None = None) -> None:
        self._log = log or logger

    def __call__(self, event: ProgressEvent) -> None:
        name = event_name(event)
        if isinstance(event, Failed | TimedOut):
            level = logging.WARNING
        elif isinstance(event, Polling):
            level = logging.DEBUG
        else:
            level = logging.INFO
        self._log.log(level, "Progress | event=%s | id=%s | %s", name, event.handle_id, describe(event))


class BufferingSink:
    """Accumulate events as ``ReportedEvent`` models."""

    def __init__(self) -> None:
        self.events: list[ReportedEvent] = []

    def __call__(self, event: ProgressEvent) -> None:
        self.events.append(to_reported_event(event))


def to_reported_event(event: ProgressEvent) -> ReportedEvent:
    """Convert a progress event into its report model."""
    elapsed = float(getattr(event, "elapsed", 0.0))
    state = ""
    detail = ""
    if isinstance(event, Started):
        detail = event.platform
    elif isinstance(event, Polling):
        state = event.state
        detail = event.note or ("" if event.progress is None else f"{event.progress:.0f}%")
    elif isinstance(event, RateLimited):
        detail = f"retry_after={event.retry_after:.1f}s"
    elif isinstance(event, Failed):
        detail = event.reason
    return ReportedEvent(event=event_name(event), elapsed_seconds=elapsed, state=state, detail=detail)


def fanout(*sinks: ProgressSink | None) -> ProgressSink:
    """Return a sink forwarding every event to each non-``None`` sink."""
    active = [s for s in sinks if s is not None]

    def _sink(event: ProgressEvent) -> None:
        for sink in active:
            sink(event)

    return _sink
