"""Explicit session context for one platform connection.

Every entry point of the orchestration core receives a resolved
``SessionContext`` (via the provider built from it).  There is no
process-wide "current profile": successive calls can target different
clusters simply by passing different sessions.

``resolve_session`` is the environment-backed resolver used by the CLI.
A named *profile* selects prefixed variables, e.g. profile ``prod``
reads ``REDISOPS_PROD_ENTERPRISE_URL`` instead of
``REDISOPS_ENTERPRISE_URL``.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field

from redisops.core.constants import DEFAULT_CLOUD_URL, DEFAULT_HTTP_TIMEOUT_S
from redisops.core.exceptions import ConfigError
from redisops.models.operation import Platform

logger = logging.getLogger(__name__)

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})


@dataclass(frozen=True, slots=True)
class SessionContext:
    """Resolved connection settings for one platform.

    Attributes:
        platform: Which control plane this session talks to.
        base_url: API root (``https://api.example.com/v1`` or
            ``https://cluster:9443``).
        api_key: Cloud account key (Cloud only).
        api_secret: Cloud user secret (Cloud only).
        username: Enterprise admin user (Enterprise only).
        password: Enterprise admin password (Enterprise only).
        verify_tls: Whether to verify the server certificate.
        timeout_s: Per-request HTTP timeout in seconds.
        profile: Name of the profile this session was resolved from.
    """

    platform: Platform
    base_url: str
    api_key: str = field(default="", repr=False)
    api_secret: str = field(default="", repr=False)
    username: str = ""
    password: str = field(default="", repr=False)
    verify_tls: bool = True
    timeout_s: float = DEFAULT_HTTP_TIMEOUT_S
    profile: str = ""

    def __post_init__(self) -> None:
        if not self.base_url:
            raise ConfigError(
                f"{self.platform.value} session requires a base URL",
                platform=self.platform.value,
            )
        if self.platform is Platform.CLOUD and not (self.api_key and self.api_secret):
            raise ConfigError(
                "cloud session requires an API key and API secret",
                platform=self.platform.value,
            )
        if self.platform is Platform.ENTERPRISE and not (self.username and self.password):
            raise ConfigError(
                "enterprise session requires a username and password",
                platform=self.platform.value,
            )


def resolve_session(
    platform: Platform,
    profile: str = "",
    *,
    timeout_s: float = DEFAULT_HTTP_TIMEOUT_S,
) -> SessionContext:
    """Resolve a ``SessionContext`` for *platform* from the environment.

    Args:
        platform: Target platform.
        profile: Optional profile name selecting prefixed variables.
        timeout_s: Per-request HTTP timeout.

    Raises:
        ConfigError: If required variables are missing.
    """
    prefix = f"REDISOPS_{profile.upper()}_" if profile else "REDISOPS_"

    def _get(name: str, default: str = "") -> str:
        return os.getenv(f"{prefix}{name}", default).strip()

    if platform is Platform.CLOUD:
        session = SessionContext(
            platform=platform,
            base_url=_get("CLOUD_URL", DEFAULT_CLOUD_URL),
            api_key=_get("CLOUD_API_KEY"),
            api_secret=_get("CLOUD_API_SECRET"),
            timeout_s=timeout_s,
            profile=profile,
        )
    else:
        session = SessionContext(
            platform=platform,
            base_url=_get("ENTERPRISE_URL"),
            username=_get("ENTERPRISE_USER"),
            password=_get("ENTERPRISE_PASSWORD"),
            verify_tls=_get("ENTERPRISE_INSECURE").lower() not in _TRUE_VALUES,
            timeout_s=timeout_s,
            profile=profile,
        )

    logger.debug(
        "Session resolved | platform=%s | profile=%s | base_url=%s",
        platform.value,
        profile or "<default>",
        session.base_url,
    )
    return session
