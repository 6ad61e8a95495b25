"""Tool payload contracts and the structured operation report.

AI tool handlers receive plain JSON dicts.  The ``TypedDict`` definitions
make the accepted keys explicit and ``validate_payload`` rejects missing
keys before any network call.  Every handler answers with an
``OperationReport``: the final status, the buffered progress events, the
result payload, and the structured error, serialised with pydantic.

Usage::

    from redisops.models.payloads import WaitForOperationInput, validate_payload

    validate_payload(raw, WaitForOperationInput, tool="wait_for_operation")
"""

from __future__ import annotations

from typing import Any, NotRequired, TypedDict

from pydantic import BaseModel, Field

from redisops.core.exceptions import ValidationError

REPORT_SCHEMA_VERSION = "operation-report-v1"

# ---------------------------------------------------------------------------
# Tool inputs
# ---------------------------------------------------------------------------


class WaitForOperationInput(TypedDict):
    """Tool → ``wait_for_operation``: poll an existing handle."""

    platform: str
    id: str
    target: NotRequired[str]
    timeout_seconds: NotRequired[float]
    interval_seconds: NotRequired[float]


class SubmitAndWaitInput(TypedDict):
    """Tool → ``submit_and_wait``: submit a request then poll it."""

    method: str
    path: str
    body: NotRequired[dict[str, Any] | list[Any] | None]
    target: NotRequired[str]
    wait: NotRequired[bool]
    timeout_seconds: NotRequired[float]
    interval_seconds: NotRequired[float]


_REQUIRED_KEYS: dict[type, frozenset[str]] = {
    WaitForOperationInput: frozenset({"platform", "id"}),
    SubmitAndWaitInput: frozenset({"method", "path"}),
}


def validate_payload(raw: dict[str, Any], schema: type, *, tool: str) -> None:
    """Validate that *raw* contains the required keys for *schema*.

    Raises:
        ValidationError: If *raw* is not a dict or required keys are missing.
    """
    if not isinstance(raw, dict):
        msg = f"{tool}: payload must be an object, got {type(raw).__name__}"
        raise ValidationError(msg, code="PAYLOAD_NOT_OBJECT")

    required = _REQUIRED_KEYS.get(schema)
    if required is None:
        return

    missing = required - raw.keys()
    if missing:
        msg = f"{tool}: missing required payload key(s): {', '.join(sorted(missing))}"
        raise ValidationError(msg, code="PAYLOAD_MISSING_KEYS")


# ---------------------------------------------------------------------------
# Structured report
# ---------------------------------------------------------------------------


class ReportedEvent(BaseModel):
    """One buffered progress event.

    Attributes:
        event: Event name (``"polling"``, ``"rate_limited"``, ...).
        elapsed_seconds: Seconds since the wait started.
        state: Raw platform state, for polling events.
        detail: Reason, note, or retry delay rendered as text.
    """

    event: str
    elapsed_seconds: float = 0.0
    state: str = ""
    detail: str = ""


class OperationReport(BaseModel):
    """Final status of one submit/wait, returned to AI tools and ``--output json``.

    Attributes:
        schema_version: Report schema identifier.
        status: ``"submitted"``, ``"completed"``, ``"failed"``,
            ``"timed_out"``, or ``"cancelled"``.
        platform: Platform the handle belongs to.
        handle: Serialised ``OperationHandle`` (empty if submission failed).
        elapsed_seconds: Total wait time.
        poll_count: Number of status fetches issued.
        result: Completed result payload.
        error: ``to_error_dict()`` of the terminating error.
        events: Buffered progress events, in order.
    """

    schema_version: str = Field(default=REPORT_SCHEMA_VERSION, alias="$schema")
    status: str
    platform: str = ""
    handle: dict[str, str] = Field(default_factory=dict)
    elapsed_seconds: float = 0.0
    poll_count: int = 0
    result: Any = None
    error: dict[str, Any] | None = None
    events: list[ReportedEvent] = Field(default_factory=list)

    model_config = {"populate_by_name": True}

    def to_json(self, *, indent: int = 2) -> str:
        return self.model_dump_json(indent=indent, by_alias=True)

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)
