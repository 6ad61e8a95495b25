"""Workflow composer: sequential submit → poll → extract → submit-next.

Steps run strictly in order on the calling thread.  Each step's
``submit`` receives the outcomes of the steps already completed.  The
first step that fails, times out, is cancelled, or whose ``submit`` or
``finalize`` raises a ``RedisOpsError`` stops the workflow: its error is
recorded on the result and no later ``submit`` is invoked.  Completed
steps are never rolled back.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Sequence
from typing import TYPE_CHECKING, Any

from redisops.core.exceptions import OperationCancelled, RedisOpsError
from redisops.models.operation import PollConfig
from redisops.models.workflow import StepOutcome, WorkflowResult
from redisops.orchestrators.poller import Poller

if TYPE_CHECKING:
    from redisops.models.operation import OperationHandle
    from redisops.models.progress import ProgressSink
    from redisops.models.workflow import WorkflowStep
    from redisops.orchestrators.poller import StatusFetcher

logger = logging.getLogger(__name__)

#: A fetcher, or a callable choosing the fetcher for a handle.
FetcherSource = Any


def _resolve_fetcher(source: FetcherSource, handle: OperationHandle) -> StatusFetcher:
    if hasattr(source, "fetch"):
        return source
    return source(handle)


def run_workflow(
    steps: Sequence[WorkflowStep],
    fetcher_for: FetcherSource,
    sink: ProgressSink | None = None,
    cancel_token: threading.Event | None = None,
    *,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], Any] | None = None,
) -> WorkflowResult:
    """Run *steps* in order and return the (possibly truncated) result.

    Args:
        steps: Ordered workflow steps.
        fetcher_for: A status fetcher shared by all steps, or a callable
            ``handle -> fetcher`` for workflows spanning platforms.
        sink: Receives the progress events of every step.
        cancel_token: Cooperative cancellation shared by all steps.
        clock: Clock forwarded to each step's ``Poller``.
        sleep: Sleep forwarded to each step's ``Poller``.

    Returns:
        ``WorkflowResult`` with the completed steps and, on failure, the
        error and the failing step's name.
    """
    token = cancel_token or threading.Event()
    result = WorkflowResult(total_steps=len(steps))
    workflow_start = clock()

    for index, step in enumerate(steps, start=1):
        if token.is_set():
            result.error = OperationCancelled(elapsed=clock() - workflow_start)
            result.failed_step = step.name
            logger.info("Workflow cancelled | step=%s | completed=%d", step.name, len(result.steps))
            return result

        logger.info("Workflow step started | step=%d/%d | name=%s", index, len(steps), step.name)
        try:
            handle = step.submit(tuple(result.steps))
        except RedisOpsError as exc:
            return _stop(result, step.name, exc)

        config = step.config or PollConfig.for_platform(handle.platform)
        poller = Poller(
            _resolve_fetcher(fetcher_for, handle),
            config,
            sink,
            token,
            clock=clock,
            sleep=sleep,
        )
        outcome = poller.poll(handle)
        if outcome.error is not None:
            return _stop(result, step.name, outcome.error)

        step_result = outcome.result
        if step.finalize is not None:
            try:
                step_result = step.finalize(step_result)
            except RedisOpsError as exc:
                return _stop(result, step.name, exc)

        result.steps.append(
            StepOutcome(
                name=step.name,
                handle=handle,
                result=step_result,
                elapsed=outcome.elapsed,
                poll_count=outcome.poll_count,
            )
        )
        logger.info(
            "Workflow step completed | step=%d/%d | name=%s | elapsed=%.1fs",
            index,
            len(steps),
            step.name,
            outcome.elapsed,
        )

    logger.info(
        "Workflow completed | steps=%d | duration=%.1fs",
        len(result.steps),
        clock() - workflow_start,
    )
    return result


def _stop(result: WorkflowResult, step_name: str, error: RedisOpsError) -> WorkflowResult:
    result.error = error
    result.failed_step = step_name
    logger.error(
        "Workflow stopped | step=%s | completed=%d/%d | error=%s",
        step_name,
        len(result.steps),
        result.total_steps,
        error,
    )
    return result
