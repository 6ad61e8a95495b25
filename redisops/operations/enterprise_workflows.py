"""Enterprise submit-and-wait workflows.

Database creation is polled through the new database's own ``status``
field (``pending`` → ``active``).  Upgrades, backups and imports are
polled through ``/v1/actions/{uid}``; backups and imports only poll
when the cluster answers with an ``action_uid`` (older clusters run
them synchronously).

``settings`` supplies the interval, default timeout, retry budget and
backoff ceiling (defaults when omitted).  ``wait_options`` are forwarded to ``wait`` / ``submit_and_wait``
(``sink``, ``cancel_token``, ``clock``, ``sleep``).
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from redisops.core.config import PollSettings
from redisops.models.operation import (
    OperationHandle,
    OperationRequest,
    Platform,
    PollTarget,
)
from redisops.operations.async_ops import submit_and_wait, wait
from redisops.utils.helpers import extract_action_uid

if TYPE_CHECKING:
    from redisops.models.operation import PollConfig
    from redisops.providers.base import PlatformProvider

logger = logging.getLogger(__name__)


def _config(timeout: float | None, settings: PollSettings | None) -> PollConfig:
    return (settings or PollSettings()).poll_config(Platform.ENTERPRISE, timeout=timeout)


def create_database_and_wait(
    provider: PlatformProvider,
    body: dict[str, Any],
    *,
    timeout: float | None = None,
    settings: PollSettings | None = None,
    **wait_options: Any,
) -> Any:
    """Create a database and wait until its status is ``active``.

    Returns the database object from the final status read.
    """
    request = OperationRequest("POST", "/v1/bdbs", body, target=PollTarget.DATABASE)
    return submit_and_wait(provider, request, _config(timeout, settings), **wait_options)


def upgrade_database_and_wait(
    provider: PlatformProvider,
    bdb_uid: int,
    body: dict[str, Any],
    *,
    timeout: float | None = None,
    settings: PollSettings | None = None,
    **wait_options: Any,
) -> Any:
    """Upgrade a database's Redis version and return the updated database."""
    submit_and_wait(
        provider,
        OperationRequest("POST", f"/v1/bdbs/{bdb_uid}/upgrade", body),
        _config(timeout, settings),
        **wait_options,
    )
    return provider.get(f"/v1/bdbs/{bdb_uid}")


def upgrade_module_and_wait(
    provider: PlatformProvider,
    bdb_uid: int,
    module_name: str,
    new_version: str,
    *,
    timeout: float | None = None,
    settings: PollSettings | None = None,
    **wait_options: Any,
) -> Any:
    """Upgrade one module of a database and return the updated database."""
    body = {"modules": [{"module_name": module_name, "new_version": new_version}]}
    submit_and_wait(
        provider,
        OperationRequest("POST", f"/v1/bdbs/{bdb_uid}/modules/upgrade", body),
        _config(timeout, settings),
        **wait_options,
    )
    return provider.get(f"/v1/bdbs/{bdb_uid}")


def _run_optional_action(
    provider: PlatformProvider,
    method: str,
    path: str,
    body: Any,
    timeout: float | None,
    settings: PollSettings | None,
    wait_options: dict[str, Any],
) -> Any:
    response = provider.request(method, path, body)
    action_uid = extract_action_uid(response)
    if not action_uid:
        logger.info("Action finished synchronously | %s %s", method, path)
        return response
    handle = OperationHandle(Platform.ENTERPRISE, action_uid, PollTarget.ACTION)
    return wait(provider, handle, _config(timeout, settings), **wait_options)


def backup_database_and_wait(
    provider: PlatformProvider,
    bdb_uid: int,
    *,
    timeout: float | None = None,
    settings: PollSettings | None = None,
    **wait_options: Any,
) -> Any:
    """Back up a database, polling the action when one is returned."""
    return _run_optional_action(
        provider, "POST", f"/v1/bdbs/{bdb_uid}/backup", None, timeout, settings, wait_options
    )


def import_database_and_wait(
    provider: PlatformProvider,
    bdb_uid: int,
    import_location: str,
    *,
    flush: bool = False,
    timeout: float | None = None,
    settings: PollSettings | None = None,
    **wait_options: Any,
) -> Any:
    """Import data into a database.  ``flush=True`` deletes existing data first."""
    body: dict[str, Any] = {"import_location": import_location}
    if flush:
        body["flush"] = True
    return _run_optional_action(
        provider, "POST", f"/v1/bdbs/{bdb_uid}/import", body, timeout, settings, wait_options
    )
