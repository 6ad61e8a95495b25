"""Control-plane adapters.

Implements the per-platform status fetchers behind one interface:
- PlatformProvider: abstract base class (submit, fetch, get)
- CloudProvider: task-id protocol (``/tasks/{id}``)
- EnterpriseProvider: action-uid and resource-status protocols

The adapter is selected by the session's platform.
"""

from redisops.providers.base import PlatformProvider, TransientFetchError
from redisops.providers.factory import get_provider, list_providers, register_provider

__all__ = [
    "PlatformProvider",
    "TransientFetchError",
    "get_provider",
    "list_providers",
    "register_provider",
]
