"""Shared helper functions for response parsing.

Centralises the lookups that the providers, the normalizer, and the
workflows all need: where each platform puts its async identifiers,
how a ``Retry-After`` header is read, and how a human reason is pulled
out of an error payload.
"""

from __future__ import annotations

import math
from datetime import UTC, datetime
from email.utils import parsedate_to_datetime
from typing import Any


def parse_retry_after(value: str | None, *, now: datetime | None = None) -> float | None:
    """Parse a ``Retry-After`` header into seconds.

    Accepts delta-seconds (``"30"``) or an HTTP-date.  Returns ``None``
    for missing or unparseable values; negative delays clamp to ``0``.
    """
    if value is None or not value.strip():
        return None
    raw = value.strip()
    try:
        return max(0.0, float(raw))
    except ValueError:
        pass
    try:
        when = parsedate_to_datetime(raw)
    except (TypeError, ValueError):
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=UTC)
    reference = now or datetime.now(UTC)
    return max(0.0, (when - reference).total_seconds())


def extract_task_id(response: Any) -> str:
    """Return the Cloud task id from a submit response, or ``""``.

    Looks at ``taskId``, then ``task_id``, then ``response.id``.
    """
    if not isinstance(response, dict):
        return ""
    for key in ("taskId", "task_id"):
        value = response.get(key)
        if value not in (None, ""):
            return str(value)
    nested = response.get("response")
    if isinstance(nested, dict) and nested.get("id") not in (None, ""):
        return str(nested["id"])
    return ""


def extract_action_uid(response: Any) -> str:
    """Return the Enterprise ``action_uid`` from a submit response, or ``""``."""
    if isinstance(response, dict) and response.get("action_uid") not in (None, ""):
        return str(response["action_uid"])
    return ""


def extract_resource_uid(response: Any) -> str:
    """Return the ``uid`` of a resource body (Enterprise bdb / node), or ``""``."""
    if isinstance(response, dict) and response.get("uid") not in (None, ""):
        return str(response["uid"])
    return ""


def extract_resource_id(result: Any) -> int | None:
    """Return the Cloud ``resourceId`` from a completed task result."""
    if not isinstance(result, dict):
        return None
    for key in ("resourceId", "resource_id", "id"):
        value = result.get(key)
        if isinstance(value, bool):
            continue
        if isinstance(value, int):
            return value
        if isinstance(value, str) and value.isdigit():
            return int(value)
    return None


def error_reason(payload: Any) -> str:
    """Return a human-readable reason from an error payload.

    Handles plain strings and objects shaped like
    ``{"type": ..., "status": ..., "description": ...}`` or
    ``{"message": ...}``.  Returns ``""`` for empty payloads.
    """
    if payload is None:
        return ""
    if isinstance(payload, str):
        return payload.strip()
    if isinstance(payload, dict):
        for key in ("description", "message", "error_message", "error", "detail"):
            value = payload.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
            if isinstance(value, dict):
                nested = error_reason(value)
                if nested:
                    return nested
        for key in ("type", "status", "code"):
            value = payload.get(key)
            if value not in (None, ""):
                return str(value)
        return str(payload) if payload else ""
    return str(payload)


def is_error_payload(payload: Any) -> bool:
    """Whether *payload* carries an actual error (not ``None``/``""``/``{}``)."""
    if payload is None:
        return False
    if isinstance(payload, str | dict | list):
        return bool(payload)
    return True


def parse_progress(raw: Any) -> float | None:
    """Return a completion percentage from a status body, or ``None``.

    Accepts numbers and numeric strings (``"42.5"``); booleans and
    non-finite values are ignored.
    """
    if raw is None or isinstance(raw, bool):
        return None
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return None
    return value if math.isfinite(value) else None
