"""Provider factory: selects the adapter for a session's platform.

The factory maintains a registry of known adapters keyed by platform
name.  Built-in adapters are registered lazily on first use.

Usage::

    from redisops.providers.factory import get_provider

    with get_provider(session) as provider:
        handle = provider.submit(request)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from redisops.core.constants import CLOUD, ENTERPRISE
from redisops.core.exceptions import ConfigError

if TYPE_CHECKING:
    from collections.abc import Callable

    import httpx

    from redisops.core.session import SessionContext
    from redisops.providers.base import PlatformProvider

logger = logging.getLogger(__name__)

# Each entry maps a platform name to a callable returning the adapter class.
_ADAPTER_REGISTRY: dict[str, Callable[[], type[PlatformProvider]]] = {}


def _register_builtin_adapters() -> None:
    def _cloud() -> type[PlatformProvider]:
        from redisops.providers.cloud import CloudProvider

        return CloudProvider

    def _enterprise() -> type[PlatformProvider]:
        from redisops.providers.enterprise import EnterpriseProvider

        return EnterpriseProvider

    _ADAPTER_REGISTRY[CLOUD] = _cloud
    _ADAPTER_REGISTRY[ENTERPRISE] = _enterprise


def _ensure_registry() -> None:
    if not _ADAPTER_REGISTRY:
        _register_builtin_adapters()


def register_provider(name: str, loader: Callable[[], type[PlatformProvider]]) -> None:
    """Register (or replace) the adapter loader for platform *name*.

    Raises:
        ValueError: If the name is empty.
    """
    if not name:
        msg = "Provider name must be non-empty"
        raise ValueError(msg)
    _ensure_registry()
    _ADAPTER_REGISTRY[name] = loader
    logger.debug("Registered provider adapter | name=%s", name)


def get_provider(
    session: SessionContext,
    *,
    transport: httpx.BaseTransport | None = None,
) -> PlatformProvider:
    """Create the adapter for ``session.platform``.

    Args:
        session: Resolved connection settings.
        transport: Optional httpx transport (tests pass ``MockTransport``).

    Raises:
        ConfigError: If no adapter is registered for the platform.
    """
    _ensure_registry()
    name = session.platform.value
    loader = _ADAPTER_REGISTRY.get(name)
    if loader is None:
        available = ", ".join(sorted(_ADAPTER_REGISTRY))
        msg = f"Unknown platform: {name!r}. Available: {available}"
        raise ConfigError(msg, platform=name)

    adapter_cls = loader()
    logger.info(
        "Creating provider | platform=%s | profile=%s",
        name,
        session.profile or "<default>",
    )
    return adapter_cls(session, transport=transport)


def list_providers() -> list[str]:
    """Return the names of all registered adapters."""
    _ensure_registry()
    return sorted(_ADAPTER_REGISTRY)
