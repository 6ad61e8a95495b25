"""Unified error taxonomy.

Every failure that leaves the orchestration core is one of a closed set
of exception classes, independent of which platform produced the
underlying fault.  The CLI, scripts, and AI tool handlers render and
branch on these without knowing whether Cloud or Enterprise was involved.

Closed set
----------
- ``PlatformError``: the remote API returned a hard error.
- ``TaskTimeout``: the wait exceeded the caller's budget.
- ``TaskFailed``: the remote reported the operation itself failed.
- ``ValidationError``: malformed request, caught before any network call.
- ``ConfigError``: missing or invalid credentials / settings.
- ``OperationCancelled``: the caller cancelled the wait.

Every exception exposes ``to_error_dict()`` for a stable structured
error payload suitable for tool responses and logging, and an
``exit_code`` for the process-level contract.
"""

from __future__ import annotations

from redisops.core.constants import (
    EXIT_CANCELLED,
    EXIT_CONFIG,
    EXIT_PLATFORM_ERROR,
    EXIT_TASK_FAILED,
    EXIT_TIMED_OUT,
    EXIT_VALIDATION,
)


class RedisOpsError(Exception):
    """Base exception for all orchestration errors.

    Attributes:
        message: Human-readable error description.
        platform: Platform involved (``"cloud"``, ``"enterprise"``) or ``""``.
        code: Machine-readable error code (e.g. ``"TASK_FAILED"``).
        retryable: Whether re-running the whole operation may succeed.
    """

    #: Default code for subclasses (override via class attribute or kwarg).
    default_code: str = "REDISOPS_ERROR"
    #: Process exit code used by the CLI.
    exit_code: int = EXIT_PLATFORM_ERROR
    #: Category reported in ``to_error_dict()``.
    category: str = "platform"

    def __init__(
        self,
        message: str = "",
        *,
        platform: str = "",
        code: str = "",
        retryable: bool = False,
    ) -> None:
        self.message = message
        self.platform = platform
        self.code = code or self.default_code
        self.retryable = retryable
        super().__init__(message)

    def to_error_dict(self) -> dict[str, object]:
        """Return a structured error payload with stable keys."""
        return {
            "category": self.category,
            "code": self.code,
            "platform": self.platform,
            "message": self.message,
            "retryable": self.retryable,
            "exit_code": self.exit_code,
        }


class PlatformError(RedisOpsError):
    """The remote API returned a hard error.

    Attributes:
        status_code: HTTP status code, or ``None`` for transport failures.
        body: Raw response body (decoded JSON or text) when available.
    """

    default_code = "PLATFORM_ERROR"

    def __init__(
        self,
        platform: str,
        message: str,
        *,
        status_code: int | None = None,
        body: object = None,
        retryable: bool = False,
    ) -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(message, platform=platform, retryable=retryable)

    def __str__(self) -> str:
        prefix = f"[{self.platform}]" if self.platform else ""
        if self.status_code is not None:
            prefix = f"{prefix} HTTP {self.status_code}:"
        return f"{prefix} {self.message}".strip()

    @property
    def is_not_found(self) -> bool:
        return self.status_code == 404

    @property
    def is_unauthorized(self) -> bool:
        return self.status_code in (401, 403)

    @property
    def is_rate_limited(self) -> bool:
        return self.status_code == 429

    @property
    def is_conflict(self) -> bool:
        return self.status_code in (409, 412)

    @property
    def is_bad_request(self) -> bool:
        return self.status_code == 400

    @property
    def is_server_error(self) -> bool:
        return self.status_code is not None and 500 <= self.status_code < 600

    def to_error_dict(self) -> dict[str, object]:
        payload = super().to_error_dict()
        payload["status_code"] = self.status_code
        return payload


class TaskTimeout(RedisOpsError):
    """The wait exceeded its configured budget.

    Retryable: the operation may still complete remotely, and a re-run
    with a longer ``--wait-timeout`` can pick it up.
    """

    default_code = "TASK_TIMEOUT"
    exit_code = EXIT_TIMED_OUT
    category = "timeout"

    def __init__(
        self,
        elapsed: float,
        timeout: float,
        *,
        platform: str = "",
        handle_id: str = "",
    ) -> None:
        self.elapsed = elapsed
        self.timeout = timeout
        self.handle_id = handle_id
        target = f"Operation {handle_id}" if handle_id else "Operation"
        message = f"{target} timed out after {elapsed:.0f}s (timeout {timeout:.0f}s)"
        super().__init__(message, platform=platform, retryable=True)

    def to_error_dict(self) -> dict[str, object]:
        payload = super().to_error_dict()
        payload["elapsed_seconds"] = self.elapsed
        payload["timeout_seconds"] = self.timeout
        return payload


class TaskFailed(RedisOpsError):
    """The remote reported that the operation itself failed."""

    default_code = "TASK_FAILED"
    exit_code = EXIT_TASK_FAILED
    category = "task"

    def __init__(self, reason: str, *, platform: str = "", raw_state: str = "") -> None:
        self.reason = reason
        self.raw_state = raw_state
        super().__init__(reason, platform=platform, retryable=False)

    def to_error_dict(self) -> dict[str, object]:
        payload = super().to_error_dict()
        payload["raw_state"] = self.raw_state
        return payload


class ValidationError(RedisOpsError):
    """Malformed request or model. Never retryable, raised before any I/O."""

    default_code = "VALIDATION_FAILED"
    exit_code = EXIT_VALIDATION
    category = "validation"

    def __init__(self, message: str = "", **kwargs: object) -> None:
        kwargs.setdefault("retryable", False)
        super().__init__(message, **kwargs)  # type: ignore[arg-type]


class ConfigError(RedisOpsError):
    """Missing or invalid credentials, profile, or settings."""

    default_code = "CONFIG_INVALID"
    exit_code = EXIT_CONFIG
    category = "config"

    def __init__(self, message: str = "", **kwargs: object) -> None:
        kwargs.setdefault("retryable", False)
        super().__init__(message, **kwargs)  # type: ignore[arg-type]


class OperationCancelled(RedisOpsError):
    """The caller cancelled the wait before a terminal state was reached."""

    default_code = "CANCELLED"
    exit_code = EXIT_CANCELLED
    category = "cancelled"

    def __init__(self, *, platform: str = "", handle_id: str = "", elapsed: float = 0.0) -> None:
        self.handle_id = handle_id
        self.elapsed = elapsed
        target = f"Wait for {handle_id}" if handle_id else "Wait"
        super().__init__(f"{target} cancelled after {elapsed:.0f}s", platform=platform)
