"""Public entry points of the orchestration core.

Every function takes an explicit provider (built from an explicit
``SessionContext``); nothing reads a process-wide default profile.

- ``submit_no_wait``: submit and return the handle immediately.
- ``wait``: poll an existing handle to completion.
- ``submit_and_wait``: both, in one call.
- ``run_workflow``: sequential multi-step provisioning.

``wait`` and ``submit_and_wait`` return the completed result payload
and raise the unified ``RedisOpsError`` for every other outcome.
``poll_handle`` is the non-raising variant returning the ``PollResult``.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from redisops.core.exceptions import ValidationError
from redisops.models.operation import OperationRequest, PollConfig
from redisops.orchestrators.poller import Poller, PollResult
from redisops.orchestrators.workflow import run_workflow

if TYPE_CHECKING:
    from redisops.models.operation import OperationHandle
    from redisops.models.progress import ProgressSink
    from redisops.providers.base import PlatformProvider

logger = logging.getLogger(__name__)


def submit_no_wait(provider: PlatformProvider, request: OperationRequest) -> OperationHandle:
    """Submit *request* and return its handle without polling.

    Raises:
        ValidationError: If *request* is not an ``OperationRequest``.
        PlatformError: If the platform rejects the request.
    """
    if not isinstance(request, OperationRequest):
        msg = f"Expected OperationRequest, got {type(request).__name__}"
        raise ValidationError(msg, platform=provider.name)
    return provider.submit(request)


def poll_handle(
    provider: PlatformProvider,
    handle: OperationHandle,
    config: PollConfig | None = None,
    sink: ProgressSink | None = None,
    cancel_token: threading.Event | None = None,
    *,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], Any] | None = None,
) -> PollResult:
    """Poll *handle* and return the ``PollResult`` without raising on failure.

    Raises:
        ValidationError: If *handle* belongs to another platform.
    """
    if handle.platform is not provider.platform:
        msg = (
            f"Handle {handle.id!r} belongs to {handle.platform.value}, "
            f"provider serves {provider.name}"
        )
        raise ValidationError(msg, platform=provider.name)
    poller = Poller(
        provider,
        config or PollConfig.for_platform(handle.platform),
        sink,
        cancel_token,
        clock=clock,
        sleep=sleep,
    )
    return poller.poll(handle)


def wait(
    provider: PlatformProvider,
    handle: OperationHandle,
    config: PollConfig | None = None,
    sink: ProgressSink | None = None,
    cancel_token: threading.Event | None = None,
    *,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], Any] | None = None,
) -> Any:
    """Poll *handle* to completion and return the result payload.

    Raises:
        TaskFailed: The platform reported the operation failed.
        TaskTimeout: The wait budget ran out.
        OperationCancelled: *cancel_token* was set.
        PlatformError: A fatal fetch error, or transient retries exhausted.
    """
    outcome = poll_handle(
        provider, handle, config, sink, cancel_token, clock=clock, sleep=sleep
    )
    if outcome.error is not None:
        raise outcome.error
    return outcome.result


def submit_and_wait(
    provider: PlatformProvider,
    request: OperationRequest,
    config: PollConfig | None = None,
    sink: ProgressSink | None = None,
    cancel_token: threading.Event | None = None,
    *,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], Any] | None = None,
) -> Any:
    """Submit *request*, poll the handle, and return the result payload.

    Raises:
        RedisOpsError: Any submission or wait failure (see ``wait``).
    """
    handle = submit_no_wait(provider, request)
    logger.info(
        "Submit and wait | platform=%s | id=%s | %s %s",
        provider.name,
        handle.id,
        request.method,
        request.path,
    )
    return wait(provider, handle, config, sink, cancel_token, clock=clock, sleep=sleep)


__all__ = [
    "poll_handle",
    "run_workflow",
    "submit_and_wait",
    "submit_no_wait",
    "wait",
]
