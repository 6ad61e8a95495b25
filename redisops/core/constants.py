"""Shared constants: single source of truth.

Centralises platform names, polling defaults, and the CLI exit-code
contract so the poller, the operations layer, and the CLI agree.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Platform names
# ---------------------------------------------------------------------------

CLOUD: str = "cloud"
"""Hosted database-as-a-service control plane."""

ENTERPRISE: str = "enterprise"
"""Self-managed cluster REST API."""

# ---------------------------------------------------------------------------
# Polling defaults (seconds)
# ---------------------------------------------------------------------------

DEFAULT_CLOUD_POLL_INTERVAL_S: float = 5.0
DEFAULT_CLOUD_WAIT_TIMEOUT_S: float = 300.0

DEFAULT_ENTERPRISE_POLL_INTERVAL_S: float = 5.0
DEFAULT_ENTERPRISE_WAIT_TIMEOUT_S: float = 600.0

#: Subscriptions provision slowly; poll less often and wait longer.
SUBSCRIPTION_POLL_INTERVAL_S: float = 15.0
SUBSCRIPTION_WAIT_TIMEOUT_S: float = 1800.0

#: Cloud database and backup tasks.
DATABASE_POLL_INTERVAL_S: float = 10.0

#: Imports can take much longer than other database tasks.
IMPORT_WAIT_TIMEOUT_S: float = 1800.0

#: Transient-error backoff grows to at most ``interval * DEFAULT_BACKOFF_CEILING``.
DEFAULT_BACKOFF_CEILING: int = 8

DEFAULT_HTTP_TIMEOUT_S: float = 30.0

DEFAULT_CLOUD_URL: str = "https://api.redislabs.com/v1"

# ---------------------------------------------------------------------------
# Exit codes
# ---------------------------------------------------------------------------

EXIT_OK: int = 0
EXIT_PLATFORM_ERROR: int = 1
EXIT_VALIDATION: int = 2
EXIT_TASK_FAILED: int = 3
EXIT_TIMED_OUT: int = 4
EXIT_CONFIG: int = 5
EXIT_CANCELLED: int = 130
