"""Typed models for the async operation orchestration core.

Defines the values exchanged between the REST layer, the status
fetchers, the state normalizer, and the poller:

- ``Platform`` / ``PollTarget``: which control plane and which status shape
- ``OperationHandle``: "a mutating request has been accepted"
- ``OperationRequest``: a mutating request, validated before submission
- ``StatusSnapshot``: one raw status reading
- ``NormalizedState``: the shared terminal / non-terminal state model
- ``PollConfig``: interval, timeout, and retry budget for one wait

Design notes:
- All models are frozen dataclasses; a snapshot is superseded, never mutated.
- Units are seconds throughout.
- Status vocabulary is an enum (``StateKind``), not free strings.
"""

from __future__ import annotations

import enum
import math
from dataclasses import dataclass
from typing import Any

from redisops.core.constants import (
    CLOUD,
    DEFAULT_BACKOFF_CEILING,
    DEFAULT_CLOUD_POLL_INTERVAL_S,
    DEFAULT_CLOUD_WAIT_TIMEOUT_S,
    DEFAULT_ENTERPRISE_POLL_INTERVAL_S,
    DEFAULT_ENTERPRISE_WAIT_TIMEOUT_S,
    ENTERPRISE,
)
from redisops.core.exceptions import ValidationError

# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


class ModelValidationError(ValueError, ValidationError):
    """Raised when a model is constructed with invalid field values.

    Attributes:
        model: Name of the model class that failed validation.
        field_name: The field that violated the invariant.
        value: The invalid value.
    """

    default_code = "MODEL_VALIDATION_FAILED"

    def __init__(self, model: str, field_name: str, value: object, message: str) -> None:
        self.model = model
        self.field_name = field_name
        self.value = value
        ValidationError.__init__(self, f"{model}.{field_name}={value!r}: {message}")


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class Platform(enum.Enum):
    """Control plane that issued a handle."""

    CLOUD = CLOUD
    ENTERPRISE = ENTERPRISE


class PollTarget(enum.Enum):
    """Which status shape a handle is polled through.

    Values:
        TASK:     Cloud generic ``/tasks/{id}`` endpoint.
        ACTION:   Enterprise ``/v1/actions/{uid}`` endpoint.
        DATABASE: Enterprise ``/v1/bdbs/{uid}`` ``status`` field.
        NODE:     Enterprise ``/v1/nodes/{uid}`` ``status`` field.
    """

    TASK = "task"
    ACTION = "action"
    DATABASE = "database"
    NODE = "node"


_DEFAULT_TARGETS: dict[Platform, PollTarget] = {
    Platform.CLOUD: PollTarget.TASK,
    Platform.ENTERPRISE: PollTarget.ACTION,
}

_ALLOWED_TARGETS: dict[Platform, frozenset[PollTarget]] = {
    Platform.CLOUD: frozenset({PollTarget.TASK}),
    Platform.ENTERPRISE: frozenset({PollTarget.ACTION, PollTarget.DATABASE, PollTarget.NODE}),
}


def resolve_target(
    platform: Platform,
    target: PollTarget | None,
    *,
    model: str = "OperationHandle",
) -> PollTarget:
    """Return *target*, or the platform default when ``None``.

    Raises:
        ModelValidationError: If *platform* cannot be polled through *target*.
    """
    if target is None:
        return _DEFAULT_TARGETS[platform]
    if target not in _ALLOWED_TARGETS[platform]:
        raise ModelValidationError(
            model,
            "target",
            target.value,
            f"is not a valid poll target for platform {platform.value!r}",
        )
    return target


class StateKind(enum.Enum):
    """Normalized lifecycle state shared by both platforms.

    Values:
        QUEUED:     Accepted, not yet started.
        PROCESSING: In progress (also used for unrecognised states).
        COMPLETED:  Finished successfully; carries a result payload.
        FAILED:     Remote reported failure, or the poll hit a fatal error.
        TIMED_OUT:  The caller's wait budget was exhausted.
        CANCELLED:  The caller cancelled the wait.
    """

    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL_KINDS


_TERMINAL_KINDS = frozenset(
    {StateKind.COMPLETED, StateKind.FAILED, StateKind.TIMED_OUT, StateKind.CANCELLED}
)


# ---------------------------------------------------------------------------
# Handles and requests
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class OperationHandle:
    """Opaque reference to an accepted, not-yet-complete mutating request.

    Attributes:
        platform: Control plane that issued the handle.
        id: Task id, action uid, or resource uid depending on ``target``.
        target: Status shape to poll; defaults per platform.
    """

    platform: Platform
    id: str
    target: PollTarget | None = None

    def __post_init__(self) -> None:
        _check_non_empty("OperationHandle", "id", self.id)
        object.__setattr__(self, "target", resolve_target(self.platform, self.target))

    def to_dict(self) -> dict[str, str]:
        """Serialise for printing and later ``task wait`` invocations."""
        return {
            "platform": self.platform.value,
            "id": self.id,
            "target": self.target.value if self.target else "",
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> OperationHandle:
        """Rebuild a handle from ``to_dict()`` output.

        Raises:
            ModelValidationError: On unknown platform or target values.
        """
        platform_raw = str(data.get("platform", ""))
        try:
            platform = Platform(platform_raw)
        except ValueError as exc:
            raise ModelValidationError(
                "OperationHandle", "platform", platform_raw, "unknown platform"
            ) from exc

        target_raw = str(data.get("target", "") or "")
        target: PollTarget | None = None
        if target_raw:
            try:
                target = PollTarget(target_raw)
            except ValueError as exc:
                raise ModelValidationError(
                    "OperationHandle", "target", target_raw, "unknown poll target"
                ) from exc
        return cls(platform=platform, id=str(data.get("id", "")), target=target)


_MUTATING_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})


@dataclass(frozen=True, slots=True)
class OperationRequest:
    """A mutating REST request that returns an async handle.

    Attributes:
        method: HTTP method (``POST``, ``PUT``, ``PATCH`` or ``DELETE``).
        path: Path relative to the session base URL, starting with ``/``.
        body: JSON body, if any.
        target: How the resulting handle is polled; ``None`` uses the
            platform default (task for Cloud, action for Enterprise).
    """

    method: str
    path: str
    body: dict[str, Any] | list[Any] | None = None
    target: PollTarget | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "method", self.method.upper())
        if self.method not in _MUTATING_METHODS:
            raise ModelValidationError(
                "OperationRequest",
                "method",
                self.method,
                f"must be one of {sorted(_MUTATING_METHODS)}",
            )
        _check_non_empty("OperationRequest", "path", self.path)
        if not self.path.startswith("/"):
            raise ModelValidationError("OperationRequest", "path", self.path, "must start with '/'")


# ---------------------------------------------------------------------------
# Status readings
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class StatusSnapshot:
    """One raw status reading for a handle.

    Attributes:
        raw_state: Platform status string as returned by the API.
        elapsed: Seconds since the wait started when this was read.
        result_payload: Resource or response payload, if any.
        error_payload: Error object or message, if the platform reported one.
        retry_after: Server-suggested delay before the next poll, in seconds.
        progress: Completion percentage when the platform reports one.
    """

    raw_state: str
    elapsed: float = 0.0
    result_payload: Any = None
    error_payload: Any = None
    retry_after: float | None = None
    progress: float | None = None


@dataclass(frozen=True, slots=True)
class NormalizedState:
    """A platform-independent state with its payload.

    Attributes:
        kind: The normalized lifecycle state.
        result: Result payload (``COMPLETED`` only).
        reason: Failure reason (``FAILED`` only).
    """

    kind: StateKind
    result: Any = None
    reason: str = ""

    @property
    def is_terminal(self) -> bool:
        return self.kind.is_terminal

    @classmethod
    def queued(cls) -> NormalizedState:
        return cls(StateKind.QUEUED)

    @classmethod
    def processing(cls) -> NormalizedState:
        return cls(StateKind.PROCESSING)

    @classmethod
    def completed(cls, result: Any = None) -> NormalizedState:
        return cls(StateKind.COMPLETED, result=result)

    @classmethod
    def failed(cls, reason: str) -> NormalizedState:
        return cls(StateKind.FAILED, reason=reason)


# ---------------------------------------------------------------------------
# Poll configuration
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class PollConfig:
    """Interval, timeout, and retry budget for one wait.

    Attributes:
        interval: Seconds between polls while the operation is in progress.
        timeout: Wall-clock wait budget in seconds, measured from the first tick.
        max_retries: Consecutive transient errors tolerated; ``None`` keeps
            retrying until the timeout.
        backoff_ceiling: Transient backoff grows to at most
            ``interval * backoff_ceiling``.
    """

    interval: float = DEFAULT_CLOUD_POLL_INTERVAL_S
    timeout: float = DEFAULT_CLOUD_WAIT_TIMEOUT_S
    max_retries: int | None = None
    backoff_ceiling: int = DEFAULT_BACKOFF_CEILING

    def __post_init__(self) -> None:
        _check_positive("PollConfig", "interval", self.interval)
        _check_positive("PollConfig", "timeout", self.timeout)
        if self.max_retries is not None and self.max_retries < 0:
            raise ModelValidationError("PollConfig", "max_retries", self.max_retries, "must be >= 0")
        if self.backoff_ceiling < 1:
            raise ModelValidationError(
                "PollConfig", "backoff_ceiling", self.backoff_ceiling, "must be >= 1"
            )

    @classmethod
    def for_platform(cls, platform: Platform, **overrides: Any) -> PollConfig:
        """Return the built-in defaults for *platform* with optional overrides."""
        if platform is Platform.CLOUD:
            base: dict[str, Any] = {
                "interval": DEFAULT_CLOUD_POLL_INTERVAL_S,
                "timeout": DEFAULT_CLOUD_WAIT_TIMEOUT_S,
            }
        else:
            base = {
                "interval": DEFAULT_ENTERPRISE_POLL_INTERVAL_S,
                "timeout": DEFAULT_ENTERPRISE_WAIT_TIMEOUT_S,
            }
        base.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**base)


# ---------------------------------------------------------------------------
# Validation helpers (module-private)
# ---------------------------------------------------------------------------


def _check_positive(model: str, field_name: str, value: float) -> None:
    if not math.isfinite(value) or value <= 0:
        raise ModelValidationError(model, field_name, value, "must be a finite number > 0")


def _check_non_empty(model: str, field_name: str, value: str) -> None:
    if not value or not value.strip():
        raise ModelValidationError(model, field_name, value, "must not be empty")

