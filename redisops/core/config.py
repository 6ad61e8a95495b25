"""Polling configuration loaded from environment variables.

All values have defaults matching the platform behaviour: Cloud tasks
settle within minutes, Enterprise actions (upgrades, imports) can run
for ten.  Environment variables override the defaults.

``from_env()`` raises ``ConfigValidationError`` if any value is out of
its valid range, so bad configuration is caught at startup rather than
halfway through a wait.
"""

from __future__ import annotations

import math
import os
from dataclasses import dataclass

from redisops.core.constants import (
    CLOUD,
    DEFAULT_BACKOFF_CEILING,
    DEFAULT_CLOUD_POLL_INTERVAL_S,
    DEFAULT_CLOUD_WAIT_TIMEOUT_S,
    DEFAULT_ENTERPRISE_POLL_INTERVAL_S,
    DEFAULT_ENTERPRISE_WAIT_TIMEOUT_S,
    DEFAULT_HTTP_TIMEOUT_S,
)
from redisops.core.exceptions import ConfigError
from redisops.models.operation import Platform, PollConfig


class ConfigValidationError(ConfigError):
    """Raised when configuration values are out of valid range.

    Attributes:
        key: The configuration key that failed validation.
        value: The invalid value.
    """

    default_code = "CONFIG_VALIDATION_FAILED"

    def __init__(self, key: str, value: object, message: str) -> None:
        self.key = key
        self.value = value
        super().__init__(f"Invalid configuration {key}={value!r}: {message}")


@dataclass(frozen=True, slots=True)
class PollSettings:
    """Immutable polling settings.

    Loaded once at process start and threaded explicitly into every
    wait; nothing reads these from global state afterwards.

    Attributes:
        cloud_poll_interval_s: Seconds between Cloud task polls.
        cloud_wait_timeout_s: Default Cloud wait budget in seconds.
        enterprise_poll_interval_s: Seconds between Enterprise polls.
        enterprise_wait_timeout_s: Default Enterprise wait budget in seconds.
        backoff_ceiling: Max multiple of the interval used as transient backoff.
        max_transient_retries: Consecutive transient errors tolerated
            before giving up (``None`` = until timeout).
        http_timeout_s: Per-request HTTP timeout in seconds.
    """

    cloud_poll_interval_s: float = DEFAULT_CLOUD_POLL_INTERVAL_S
    cloud_wait_timeout_s: float = DEFAULT_CLOUD_WAIT_TIMEOUT_S
    enterprise_poll_interval_s: float = DEFAULT_ENTERPRISE_POLL_INTERVAL_S
    enterprise_wait_timeout_s: float = DEFAULT_ENTERPRISE_WAIT_TIMEOUT_S
    backoff_ceiling: int = DEFAULT_BACKOFF_CEILING
    max_transient_retries: int | None = None
    http_timeout_s: float = DEFAULT_HTTP_TIMEOUT_S

    @classmethod
    def from_env(cls) -> PollSettings:
        """Load and validate settings from environment variables.

        Raises:
            ConfigValidationError: If a value is out of range or cannot
                be parsed as a number.
        """
        settings = cls(
            cloud_poll_interval_s=_float_env(
                "REDISOPS_CLOUD_POLL_INTERVAL_S", DEFAULT_CLOUD_POLL_INTERVAL_S
            ),
            cloud_wait_timeout_s=_float_env(
                "REDISOPS_CLOUD_WAIT_TIMEOUT_S", DEFAULT_CLOUD_WAIT_TIMEOUT_S
            ),
            enterprise_poll_interval_s=_float_env(
                "REDISOPS_ENTERPRISE_POLL_INTERVAL_S", DEFAULT_ENTERPRISE_POLL_INTERVAL_S
            ),
            enterprise_wait_timeout_s=_float_env(
                "REDISOPS_ENTERPRISE_WAIT_TIMEOUT_S", DEFAULT_ENTERPRISE_WAIT_TIMEOUT_S
            ),
            backoff_ceiling=_int_env("REDISOPS_BACKOFF_CEILING", DEFAULT_BACKOFF_CEILING),
            max_transient_retries=_int_env("REDISOPS_MAX_TRANSIENT_RETRIES", None),
            http_timeout_s=_float_env("REDISOPS_HTTP_TIMEOUT_S", DEFAULT_HTTP_TIMEOUT_S),
        )
        _validate(settings)
        return settings

    def poll_config(
        self,
        platform: Platform,
        *,
        interval: float | None = None,
        timeout: float | None = None,
    ) -> PollConfig:
        """Build a ``PollConfig`` for *platform*, applying caller overrides."""
        if platform.value == CLOUD:
            default_interval = self.cloud_poll_interval_s
            default_timeout = self.cloud_wait_timeout_s
        else:
            default_interval = self.enterprise_poll_interval_s
            default_timeout = self.enterprise_wait_timeout_s
        return PollConfig(
            interval=interval if interval is not None else default_interval,
            timeout=timeout if timeout is not None else default_timeout,
            max_retries=self.max_transient_retries,
            backoff_ceiling=self.backoff_ceiling,
        )


def _float_env(key: str, default: float) -> float:
    raw = os.getenv(key)
    if raw is None or not raw.strip():
        return float(default)
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigValidationError(key, raw, "must be a number") from exc


def _int_env(key: str, default: int | None) -> int | None:
    raw = os.getenv(key)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigValidationError(key, raw, "must be an integer") from exc


def _validate(settings: PollSettings) -> None:
    """Validate setting ranges.  Raises ``ConfigValidationError``."""
    positive = {
        "REDISOPS_CLOUD_POLL_INTERVAL_S": settings.cloud_poll_interval_s,
        "REDISOPS_CLOUD_WAIT_TIMEOUT_S": settings.cloud_wait_timeout_s,
        "REDISOPS_ENTERPRISE_POLL_INTERVAL_S": settings.enterprise_poll_interval_s,
        "REDISOPS_ENTERPRISE_WAIT_TIMEOUT_S": settings.enterprise_wait_timeout_s,
        "REDISOPS_HTTP_TIMEOUT_S": settings.http_timeout_s,
    }
    for key, value in positive.items():
        if not math.isfinite(value) or value <= 0:
            raise ConfigValidationError(key, value, "must be a finite number > 0 (seconds)")

    if settings.backoff_ceiling < 1:
        raise ConfigValidationError(
            "REDISOPS_BACKOFF_CEILING",
            settings.backoff_ceiling,
            "must be >= 1 (multiple of the poll interval)",
        )

    if settings.max_transient_retries is not None and settings.max_transient_retries < 0:
        raise ConfigValidationError(
            "REDISOPS_MAX_TRANSIENT_RETRIES",
            settings.max_transient_retries,
            "must be >= 0",
        )
