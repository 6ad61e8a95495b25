"""State normalizer: per-platform raw status vocabulary → ``NormalizedState``.

Pure functions only.  Lookups are case-insensitive.  States not in a
platform's table normalize to ``PROCESSING`` so that a benign state
introduced by a future API revision keeps the poller polling.  A
non-empty error payload always forces ``FAILED``: platforms sometimes
report a failure alongside a stale non-terminal status string.
"""

from __future__ import annotations

from typing import Any

from redisops.models.operation import NormalizedState, Platform, StateKind
from redisops.utils.helpers import error_reason, is_error_payload

_CLOUD_STATES: dict[str, StateKind] = {
    "received": StateKind.QUEUED,
    "initialized": StateKind.QUEUED,
    "pending": StateKind.QUEUED,
    "queued": StateKind.QUEUED,
    "processing": StateKind.PROCESSING,
    "processing-in-progress": StateKind.PROCESSING,
    "in-progress": StateKind.PROCESSING,
    "running": StateKind.PROCESSING,
    "processing-completed": StateKind.COMPLETED,
    "completed": StateKind.COMPLETED,
    "complete": StateKind.COMPLETED,
    "succeeded": StateKind.COMPLETED,
    "success": StateKind.COMPLETED,
    "processing-error": StateKind.FAILED,
    "failed": StateKind.FAILED,
    "error": StateKind.FAILED,
    "cancelled": StateKind.FAILED,
}

_ENTERPRISE_STATES: dict[str, StateKind] = {
    "queued": StateKind.QUEUED,
    "starting": StateKind.PROCESSING,
    "running": StateKind.PROCESSING,
    "cancelling": StateKind.PROCESSING,
    "pending": StateKind.PROCESSING,
    "active-change-pending": StateKind.PROCESSING,
    "import-pending": StateKind.PROCESSING,
    "delete-pending": StateKind.PROCESSING,
    "recovery": StateKind.PROCESSING,
    "provisioning": StateKind.PROCESSING,
    "completed": StateKind.COMPLETED,
    "active": StateKind.COMPLETED,
    "failed": StateKind.FAILED,
    "creation-failed": StateKind.FAILED,
    "error": StateKind.FAILED,
    "cancelled": StateKind.FAILED,
}

_TABLES: dict[Platform, dict[str, StateKind]] = {
    Platform.CLOUD: _CLOUD_STATES,
    Platform.ENTERPRISE: _ENTERPRISE_STATES,
}

_CANCELLED_REASONS: dict[Platform, str] = {
    Platform.CLOUD: "Task was cancelled",
    Platform.ENTERPRISE: "Action cancelled",
}


def normalize(
    platform: Platform,
    raw_state: str,
    error_payload: Any = None,
    result_payload: Any = None,
) -> NormalizedState:
    """Map a raw platform state onto the shared state model.

    Args:
        platform: Platform that produced the reading.
        raw_state: Status string as returned by the API.
        error_payload: Error object or message, if any.
        result_payload: Payload attached to ``COMPLETED``.

    Returns:
        A ``NormalizedState``; never ``TIMED_OUT`` or ``CANCELLED``,
        which only the poller produces.
    """
    if is_error_payload(error_payload):
        reason = error_reason(error_payload) or _default_failure(raw_state)
        return NormalizedState.failed(reason)

    key = raw_state.strip().lower()
    kind = _TABLES[platform].get(key, StateKind.PROCESSING)

    if kind is StateKind.COMPLETED:
        return NormalizedState.completed(result_payload)
    if kind is StateKind.FAILED:
        if key == "cancelled":
            return NormalizedState.failed(_CANCELLED_REASONS[platform])
        return NormalizedState.failed(_default_failure(raw_state))
    if kind is StateKind.QUEUED:
        return NormalizedState.queued()
    return NormalizedState.processing()


def _default_failure(raw_state: str) -> str:
    state = raw_state.strip() or "unknown"
    return f"Operation failed (state: {state})"
