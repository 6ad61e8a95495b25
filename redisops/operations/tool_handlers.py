"""AI tool handlers.

Tool invocations cannot stream partial progress, so each handler runs
the wait with a ``BufferingSink`` and answers with one final
``OperationReport`` dict: status, result, structured error and the
buffered events.  Handlers never raise; every failure is reported in
the ``error`` field with the unified taxonomy's ``to_error_dict()``.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from redisops.core.config import PollSettings
from redisops.core.exceptions import RedisOpsError, ValidationError
from redisops.models.operation import (
    OperationHandle,
    OperationRequest,
    PollTarget,
)
from redisops.models.payloads import (
    OperationReport,
    SubmitAndWaitInput,
    WaitForOperationInput,
    validate_payload,
)
from redisops.operations.async_ops import poll_handle, submit_no_wait
from redisops.utils.sinks import BufferingSink

if TYPE_CHECKING:
    from redisops.models.operation import PollConfig
    from redisops.orchestrators.poller import PollResult
    from redisops.providers.base import PlatformProvider

logger = logging.getLogger(__name__)


def wait_for_operation(
    provider: PlatformProvider,
    raw: dict[str, Any],
    *,
    settings: PollSettings | None = None,
    cancel_token: threading.Event | None = None,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], Any] | None = None,
) -> dict[str, Any]:
    """Poll an existing handle and return the final report.

    Payload keys: ``platform``, ``id``, optional ``target``,
    ``timeout_seconds``, ``interval_seconds``.
    """
    sink = BufferingSink()
    handle: OperationHandle | None = None
    try:
        validate_payload(raw, WaitForOperationInput, tool="wait_for_operation")
        handle = OperationHandle.from_dict(
            {"platform": raw["platform"], "id": raw["id"], "target": raw.get("target", "")}
        )
        config = _poll_config(provider, raw, settings)
        outcome = poll_handle(
            provider, handle, config, sink, cancel_token, clock=clock, sleep=sleep
        )
    except RedisOpsError as exc:
        return _error_report(provider, handle, exc, sink).to_dict()
    except Exception as exc:
        logger.exception("wait_for_operation failed unexpectedly | platform=%s", provider.name)
        return _unexpected_report(provider, handle, exc, sink).to_dict()
    return _outcome_report(provider, handle, outcome, sink).to_dict()


def submit_and_wait_tool(
    provider: PlatformProvider,
    raw: dict[str, Any],
    *,
    settings: PollSettings | None = None,
    cancel_token: threading.Event | None = None,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], Any] | None = None,
) -> dict[str, Any]:
    """Submit a request and (unless ``wait`` is false) poll it.

    Payload keys: ``method``, ``path``, optional ``body``, ``target``,
    ``wait`` (default true), ``timeout_seconds``, ``interval_seconds``.
    """
    sink = BufferingSink()
    handle: OperationHandle | None = None
    try:
        validate_payload(raw, SubmitAndWaitInput, tool="submit_and_wait")
        target_raw = str(raw.get("target") or "")
        try:
            target = PollTarget(target_raw) if target_raw else None
        except ValueError as exc:
            msg = f"submit_and_wait: unknown target {target_raw!r}"
            raise ValidationError(msg, platform=provider.name) from exc
        request = OperationRequest(
            str(raw["method"]), str(raw["path"]), raw.get("body"), target=target
        )
        config = _poll_config(provider, raw, settings)
        handle = submit_no_wait(provider, request)
        if not raw.get("wait", True):
            return OperationReport(
                status="submitted", platform=provider.name, handle=handle.to_dict()
            ).to_dict()
        outcome = poll_handle(
            provider, handle, config, sink, cancel_token, clock=clock, sleep=sleep
        )
    except RedisOpsError as exc:
        return _error_report(provider, handle, exc, sink).to_dict()
    except Exception as exc:
        logger.exception("submit_and_wait failed unexpectedly | platform=%s", provider.name)
        return _unexpected_report(provider, handle, exc, sink).to_dict()
    return _outcome_report(provider, handle, outcome, sink).to_dict()


# ---------------------------------------------------------------------------
# Report builders
# ---------------------------------------------------------------------------


def _poll_config(
    provider: PlatformProvider, raw: dict[str, Any], settings: PollSettings | None
) -> PollConfig:
    settings = settings or PollSettings()
    return settings.poll_config(
        provider.platform,
        interval=_optional_float(raw, "interval_seconds"),
        timeout=_optional_float(raw, "timeout_seconds"),
    )


def _optional_float(raw: dict[str, Any], key: str) -> float | None:
    value = raw.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int | float | str):
        raise ValidationError(f"{key} must be a number, got {value!r}")
    try:
        return float(value)
    except ValueError as exc:
        raise ValidationError(f"{key} must be a number, got {value!r}") from exc


def _outcome_report(
    provider: PlatformProvider,
    handle: OperationHandle,
    outcome: PollResult,
    sink: BufferingSink,
) -> OperationReport:
    return OperationReport(
        status=outcome.state.kind.value,
        platform=provider.name,
        handle=handle.to_dict(),
        elapsed_seconds=outcome.elapsed,
        poll_count=outcome.poll_count,
        result=outcome.result,
        error=outcome.error.to_error_dict() if outcome.error else None,
        events=sink.events,
    )


def _error_report(
    provider: PlatformProvider,
    handle: OperationHandle | None,
    error: RedisOpsError,
    sink: BufferingSink,
) -> OperationReport:
    return OperationReport(
        status="failed",
        platform=provider.name,
        handle=handle.to_dict() if handle else {},
        error=error.to_error_dict(),
        events=sink.events,
    )


def _unexpected_report(
    provider: PlatformProvider,
    handle: OperationHandle | None,
    error: Exception,
    sink: BufferingSink,
) -> OperationReport:
    return OperationReport(
        status="failed",
        platform=provider.name,
        handle=handle.to_dict() if handle else {},
        error={
            "category": "internal",
            "code": "UNEXPECTED_ERROR",
            "platform": provider.name,
            "message": f"{type(error).__name__}: {error}",
            "retryable": False,
            "exit_code": 1,
        },
        events=sink.events,
    )
