"""Poller: drives one handle to a terminal state.

State machine::

    Idle ──poll()──► Polling ──► Completed | Failed | TimedOut | Cancelled

Per tick, in this order:

1. Cancellation requested → ``CANCELLED`` without fetching.
2. ``elapsed >= timeout`` → ``TIMED_OUT`` without fetching.
3. One ``fetch``.  A ``TransientFetchError`` emits ``RateLimited`` (429)
   or ``Polling`` and sleeps ``max(retry_after, backoff)``; backoff is
   ``interval * 2**(n-1)`` capped at ``interval * backoff_ceiling`` for
   the n-th consecutive transient error.  When ``max_retries`` is set
   and exceeded the wait ends ``FAILED``.
4. Any other ``PlatformError`` → ``FAILED``.
5. The snapshot is stamped with the elapsed time and normalized.
   Terminal states emit the matching event and stop.  Non-terminal
   states emit ``Polling``, reset the backoff and sleep
   ``max(retry_after, interval)``.

Every sleep is clipped to the remaining timeout budget, so the timeout
fires on time rather than one interval late.  The default sleep waits
on the cancel token and wakes immediately when it is set.  Tests inject
a fake ``clock`` and ``sleep``.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Any, Protocol

from redisops.core.exceptions import (
    OperationCancelled,
    PlatformError,
    RedisOpsError,
    TaskFailed,
    TaskTimeout,
    ValidationError,
)
from redisops.models.operation import NormalizedState, PollConfig, StateKind
from redisops.models.progress import (
    Cancelled,
    Completed,
    Failed,
    Polling,
    ProgressEvent,
    ProgressSink,
    RateLimited,
    Started,
    TimedOut,
)
from redisops.orchestrators.normalizer import normalize
from redisops.providers.base import TransientFetchError

if TYPE_CHECKING:
    from redisops.models.operation import OperationHandle, StatusSnapshot

logger = logging.getLogger(__name__)


class StatusFetcher(Protocol):
    """Anything with a one-shot ``fetch``; providers satisfy this."""

    def fetch(self, handle: OperationHandle) -> StatusSnapshot: ...


# ---------------------------------------------------------------------------
# Loop state
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class BackoffState:
    """Transient-error backoff carried between ticks.

    Attributes:
        interval: Base poll interval in seconds.
        ceiling: Backoff never exceeds ``interval * ceiling``.
        consecutive: Consecutive transient errors seen so far.
    """

    interval: float
    ceiling: int
    consecutive: int = 0

    @property
    def delay(self) -> float:
        if self.consecutive == 0:
            return self.interval
        factor = min(2 ** (self.consecutive - 1), self.ceiling)
        return self.interval * factor

    def record_transient(self) -> float:
        """Count one more transient error and return the next delay."""
        self.consecutive += 1
        return self.delay

    def reset(self) -> None:
        self.consecutive = 0


@dataclass(frozen=True, slots=True)
class PollResult:
    """Outcome of one ``Poller.poll`` call.

    Attributes:
        state: Terminal normalized state.
        elapsed: Seconds from the first tick to the terminal transition.
        poll_count: Fetches issued (transient failures included).
        error: Unified error for every outcome except ``COMPLETED``.
        raw_state: Last raw platform state seen, if any.
    """

    state: NormalizedState
    elapsed: float
    poll_count: int
    error: RedisOpsError | None = None
    raw_state: str = ""

    @property
    def succeeded(self) -> bool:
        return self.state.kind is StateKind.COMPLETED

    @property
    def result(self) -> Any:
        return self.state.result


def _discard(_event: ProgressEvent) -> None:
    return None


# ---------------------------------------------------------------------------
# Poller
# ---------------------------------------------------------------------------


class Poller:
    """Polls handles through *fetcher* under one ``PollConfig``.

    Args:
        fetcher: Status fetcher (usually a ``PlatformProvider``).
        config: Interval, timeout and retry budget.
        sink: Receives every progress event; defaults to discarding them.
        cancel_token: Set to request cooperative cancellation.
        clock: Monotonic clock in seconds.
        sleep: Sleep function; defaults to waiting on ``cancel_token``.
    """

    def __init__(
        self,
        fetcher: StatusFetcher,
        config: PollConfig | None = None,
        sink: ProgressSink | None = None,
        cancel_token: threading.Event | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Any] | None = None,
    ) -> None:
        self._fetcher = fetcher
        self.config = config or PollConfig()
        self._sink = sink or _discard
        self.cancel_token = cancel_token or threading.Event()
        self._clock = clock
        self._sleep = sleep or self.cancel_token.wait
        self._polled: set[OperationHandle] = set()

    def poll(self, handle: OperationHandle) -> PollResult:
        """Poll *handle* until a terminal state.

        Raises:
            ValidationError: If *handle* was already polled by this Poller.
        """
        if handle in self._polled:
            msg = f"Handle {handle.id!r} has already been polled to a terminal state"
            raise ValidationError(msg, platform=handle.platform.value)
        self._polled.add(handle)

        config = self.config
        platform = handle.platform.value
        backoff = BackoffState(interval=config.interval, ceiling=config.backoff_ceiling)
        start = self._clock()
        poll_count = 0
        raw_state = ""

        self._emit(Started(handle_id=handle.id, platform=platform))
        logger.info(
            "Wait started | platform=%s | id=%s | interval=%.1fs | timeout=%.1fs",
            platform,
            handle.id,
            config.interval,
            config.timeout,
        )

        while True:
            elapsed = self._clock() - start

            if self.cancel_token.is_set():
                logger.info(
                    "Wait cancelled | platform=%s | id=%s | elapsed=%.1fs | polls=%d",
                    platform,
                    handle.id,
                    elapsed,
                    poll_count,
                )
                self._emit(Cancelled(handle_id=handle.id, elapsed=elapsed))
                return PollResult(
                    state=NormalizedState(StateKind.CANCELLED),
                    elapsed=elapsed,
                    poll_count=poll_count,
                    error=OperationCancelled(
                        platform=platform, handle_id=handle.id, elapsed=elapsed
                    ),
                    raw_state=raw_state,
                )

            if elapsed >= config.timeout:
                logger.warning(
                    "Wait timed out | platform=%s | id=%s | elapsed=%.1fs | timeout=%.1fs | polls=%d",
                    platform,
                    handle.id,
                    elapsed,
                    config.timeout,
                    poll_count,
                )
                self._emit(TimedOut(handle_id=handle.id, elapsed=elapsed))
                return PollResult(
                    state=NormalizedState(StateKind.TIMED_OUT),
                    elapsed=elapsed,
                    poll_count=poll_count,
                    error=TaskTimeout(
                        elapsed, config.timeout, platform=platform, handle_id=handle.id
                    ),
                    raw_state=raw_state,
                )

            poll_count += 1
            try:
                snapshot = self._fetcher.fetch(handle)
            except TransientFetchError as exc:
                delay = backoff.record_transient()
                elapsed = self._clock() - start
                if config.max_retries is not None and backoff.consecutive > config.max_retries:
                    logger.error(
                        "Poll retries exhausted | platform=%s | id=%s | retries=%d | error=%s",
                        platform,
                        handle.id,
                        backoff.consecutive,
                        exc,
                    )
                    self._emit(Failed(handle_id=handle.id, reason=str(exc), elapsed=elapsed))
                    return PollResult(
                        state=NormalizedState.failed(str(exc)),
                        elapsed=elapsed,
                        poll_count=poll_count,
                        error=exc,
                        raw_state=raw_state,
                    )

                if exc.retry_after is not None:
                    delay = max(exc.retry_after, delay)
                logger.warning(
                    "Transient poll error | platform=%s | id=%s | attempt=%d | backoff=%.1fs | error=%s",
                    platform,
                    handle.id,
                    backoff.consecutive,
                    delay,
                    exc,
                )
                if exc.is_rate_limited:
                    self._emit(
                        RateLimited(handle_id=handle.id, retry_after=delay, elapsed=elapsed)
                    )
                else:
                    self._emit(
                        Polling(
                            handle_id=handle.id,
                            state=raw_state,
                            elapsed=elapsed,
                            note=str(exc),
                        )
                    )
                self._sleep_within(delay, start)
                continue
            except PlatformError as exc:
                elapsed = self._clock() - start
                logger.error(
                    "Poll failed | platform=%s | id=%s | status_code=%s | error=%s",
                    platform,
                    handle.id,
                    exc.status_code,
                    exc,
                )
                self._emit(Failed(handle_id=handle.id, reason=str(exc), elapsed=elapsed))
                return PollResult(
                    state=NormalizedState.failed(str(exc)),
                    elapsed=elapsed,
                    poll_count=poll_count,
                    error=exc,
                    raw_state=raw_state,
                )

            snapshot = replace(snapshot, elapsed=self._clock() - start)
            elapsed = snapshot.elapsed
            raw_state = snapshot.raw_state
            state = normalize(
                handle.platform,
                snapshot.raw_state,
                snapshot.error_payload,
                snapshot.result_payload,
            )
            logger.debug(
                "Poll tick | platform=%s | id=%s | raw_state=%s | state=%s | poll=%d",
                platform,
                handle.id,
                raw_state,
                state.kind.value,
                poll_count,
            )

            if state.kind is StateKind.COMPLETED:
                logger.info(
                    "Operation completed | platform=%s | id=%s | elapsed=%.1fs | polls=%d",
                    platform,
                    handle.id,
                    elapsed,
                    poll_count,
                )
                self._emit(Completed(handle_id=handle.id, result=state.result, elapsed=elapsed))
                return PollResult(
                    state=state, elapsed=elapsed, poll_count=poll_count, raw_state=raw_state
                )

            if state.kind is StateKind.FAILED:
                logger.info(
                    "Operation failed | platform=%s | id=%s | raw_state=%s | reason=%s",
                    platform,
                    handle.id,
                    raw_state,
                    state.reason,
                )
                self._emit(Failed(handle_id=handle.id, reason=state.reason, elapsed=elapsed))
                return PollResult(
                    state=state,
                    elapsed=elapsed,
                    poll_count=poll_count,
                    error=TaskFailed(state.reason, platform=platform, raw_state=raw_state),
                    raw_state=raw_state,
                )

            backoff.reset()
            self._emit(
                Polling(
                    handle_id=handle.id,
                    state=raw_state,
                    elapsed=elapsed,
                    progress=snapshot.progress,
                )
            )
            delay = config.interval
            if snapshot.retry_after is not None:
                delay = max(snapshot.retry_after, delay)
            self._sleep_within(delay, start)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _sleep_within(self, delay: float, start: float) -> None:
        remaining = self.config.timeout - (self._clock() - start)
        wait_for = min(delay, remaining)
        if wait_for > 0:
            self._sleep(wait_for)

    def _emit(self, event: ProgressEvent) -> None:
        self._sink(event)
