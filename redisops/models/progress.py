"""Progress events emitted by the poller.

The poller pushes one event at each well-defined transition point to a
caller-supplied sink.  It never formats output itself: the CLI renders
events as human text, a logger records them, and AI tool handlers buffer
them into a structured final report.

Events
------
- ``Started``: the wait began (once per handle).
- ``Polling``: a non-terminal reading, or a transient fetch failure.
- ``RateLimited``: the platform answered HTTP 429.
- ``Completed``: terminal success with the result payload.
- ``Failed``: terminal failure with a reason.
- ``TimedOut``: the wait budget ran out.
- ``Cancelled``: the caller cancelled the wait.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True, slots=True)
class Started:
    handle_id: str
    platform: str


@dataclass(frozen=True, slots=True)
class Polling:
    """A non-terminal tick.

    Attributes:
        handle_id: Handle being polled.
        state: Raw platform state (``""`` when the fetch itself failed).
        elapsed: Seconds since the wait started.
        progress: Completion percentage, when the platform reports one.
        note: Transient error description for retried fetches.
    """

    handle_id: str
    state: str
    elapsed: float
    progress: float | None = None
    note: str = ""


@dataclass(frozen=True, slots=True)
class RateLimited:
    handle_id: str
    retry_after: float
    elapsed: float = 0.0


@dataclass(frozen=True, slots=True)
class Completed:
    handle_id: str
    result: Any
    elapsed: float = 0.0


@dataclass(frozen=True, slots=True)
class Failed:
    handle_id: str
    reason: str
    elapsed: float = 0.0


@dataclass(frozen=True, slots=True)
class TimedOut:
    handle_id: str
    elapsed: float


@dataclass(frozen=True, slots=True)
class Cancelled:
    handle_id: str
    elapsed: float


ProgressEvent = Started | Polling | RateLimited | Completed | Failed | TimedOut | Cancelled

#: Push-based callback receiving every event of one wait.
ProgressSink = Callable[[ProgressEvent], None]

TERMINAL_EVENTS: tuple[type, ...] = (Completed, Failed, TimedOut, Cancelled)


def event_name(event: ProgressEvent) -> str:
    """Return the snake_case name used in structured reports and logs."""
    return {
        Started: "started",
        Polling: "polling",
        RateLimited: "rate_limited",
        Completed: "completed",
        Failed: "failed",
        TimedOut: "timed_out",
        Cancelled: "cancelled",
    }[type(event)]
