"""Cloud submit-and-wait workflows.

Each helper issues one mutating request against the Cloud API, polls the
returned task to completion, and for create / update operations fetches
the resulting resource so callers receive the materialised object rather
than the task payload.

``settings`` supplies the retry budget and backoff ceiling (defaults when
omitted).  ``wait_options`` are forwarded to ``submit_and_wait`` (``sink``,
``cancel_token``, ``clock``, ``sleep``).
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

from redisops.core.config import PollSettings
from redisops.core.constants import (
    DATABASE_POLL_INTERVAL_S,
    DEFAULT_CLOUD_WAIT_TIMEOUT_S,
    IMPORT_WAIT_TIMEOUT_S,
    SUBSCRIPTION_POLL_INTERVAL_S,
    SUBSCRIPTION_WAIT_TIMEOUT_S,
)
from redisops.core.exceptions import TaskFailed
from redisops.models.operation import OperationRequest, PollConfig
from redisops.models.workflow import StepOutcome, WorkflowStep
from redisops.operations.async_ops import run_workflow, submit_and_wait
from redisops.utils.helpers import extract_resource_id

if TYPE_CHECKING:
    import threading

    from redisops.models.progress import ProgressSink
    from redisops.models.workflow import WorkflowResult
    from redisops.providers.base import PlatformProvider

logger = logging.getLogger(__name__)


def _config(
    default_interval: float,
    default_timeout: float,
    timeout: float | None,
    settings: PollSettings | None,
) -> PollConfig:
    settings = settings or PollSettings()
    return PollConfig(
        interval=default_interval,
        timeout=timeout if timeout is not None else default_timeout,
        max_retries=settings.max_transient_retries,
        backoff_ceiling=settings.backoff_ceiling,
    )


def _require_resource_id(result: Any, what: str) -> int:
    resource_id = extract_resource_id(result)
    if resource_id is None:
        msg = f"{what} task completed without a resourceId"
        raise TaskFailed(msg, platform="cloud", raw_state="processing-completed")
    return resource_id


# ---------------------------------------------------------------------------
# Databases
# ---------------------------------------------------------------------------


def create_database_and_wait(
    provider: PlatformProvider,
    subscription_id: int,
    body: dict[str, Any],
    *,
    timeout: float | None = None,
    settings: PollSettings | None = None,
    **wait_options: Any,
) -> Any:
    """Create a database, wait for its task, and return the database."""
    request = OperationRequest("POST", f"/subscriptions/{subscription_id}/databases", body)
    result = submit_and_wait(
        provider,
        request,
        _config(DATABASE_POLL_INTERVAL_S, DEFAULT_CLOUD_WAIT_TIMEOUT_S, timeout, settings),
        **wait_options,
    )
    database_id = _require_resource_id(result, "Create database")
    logger.info(
        "Database created | subscription=%s | database=%s", subscription_id, database_id
    )
    return provider.get(f"/subscriptions/{subscription_id}/databases/{database_id}")


def update_database_and_wait(
    provider: PlatformProvider,
    subscription_id: int,
    database_id: int,
    body: dict[str, Any],
    *,
    timeout: float | None = None,
    settings: PollSettings | None = None,
    **wait_options: Any,
) -> Any:
    """Update a database, wait for its task, and return the updated database."""
    path = f"/subscriptions/{subscription_id}/databases/{database_id}"
    submit_and_wait(
        provider,
        OperationRequest("PUT", path, body),
        _config(DATABASE_POLL_INTERVAL_S, DEFAULT_CLOUD_WAIT_TIMEOUT_S, timeout, settings),
        **wait_options,
    )
    return provider.get(path)


def delete_database_and_wait(
    provider: PlatformProvider,
    subscription_id: int,
    database_id: int,
    *,
    timeout: float | None = None,
    settings: PollSettings | None = None,
    **wait_options: Any,
) -> None:
    """Delete a database and wait until the deletion task completes."""
    path = f"/subscriptions/{subscription_id}/databases/{database_id}"
    submit_and_wait(
        provider,
        OperationRequest("DELETE", path),
        _config(DATABASE_POLL_INTERVAL_S, DEFAULT_CLOUD_WAIT_TIMEOUT_S, timeout, settings),
        **wait_options,
    )


def backup_database_and_wait(
    provider: PlatformProvider,
    subscription_id: int,
    database_id: int,
    *,
    region_name: str | None = None,
    timeout: float | None = None,
    settings: PollSettings | None = None,
    **wait_options: Any,
) -> None:
    """Trigger a backup and wait for it.

    *region_name* is required for Active-Active databases.
    """
    body = {"regionName": region_name} if region_name else {}
    submit_and_wait(
        provider,
        OperationRequest(
            "POST", f"/subscriptions/{subscription_id}/databases/{database_id}/backup", body
        ),
        _config(DATABASE_POLL_INTERVAL_S, DEFAULT_CLOUD_WAIT_TIMEOUT_S, timeout, settings),
        **wait_options,
    )


def import_database_and_wait(
    provider: PlatformProvider,
    subscription_id: int,
    database_id: int,
    body: dict[str, Any],
    *,
    timeout: float | None = None,
    settings: PollSettings | None = None,
    **wait_options: Any,
) -> None:
    """Import data into a database and wait.  Defaults to a 30 minute budget."""
    submit_and_wait(
        provider,
        OperationRequest(
            "POST", f"/subscriptions/{subscription_id}/databases/{database_id}/import", body
        ),
        _config(DATABASE_POLL_INTERVAL_S, IMPORT_WAIT_TIMEOUT_S, timeout, settings),
        **wait_options,
    )


# ---------------------------------------------------------------------------
# Subscriptions
# ---------------------------------------------------------------------------


def create_subscription_and_wait(
    provider: PlatformProvider,
    body: dict[str, Any],
    *,
    timeout: float | None = None,
    settings: PollSettings | None = None,
    **wait_options: Any,
) -> Any:
    """Create a subscription, wait (up to 30 minutes by default), and return it."""
    result = submit_and_wait(
        provider,
        OperationRequest("POST", "/subscriptions", body),
        _config(SUBSCRIPTION_POLL_INTERVAL_S, SUBSCRIPTION_WAIT_TIMEOUT_S, timeout, settings),
        **wait_options,
    )
    subscription_id = _require_resource_id(result, "Create subscription")
    logger.info("Subscription created | subscription=%s", subscription_id)
    return provider.get(f"/subscriptions/{subscription_id}")


def update_subscription_and_wait(
    provider: PlatformProvider,
    subscription_id: int,
    body: dict[str, Any],
    *,
    timeout: float | None = None,
    settings: PollSettings | None = None,
    **wait_options: Any,
) -> Any:
    path = f"/subscriptions/{subscription_id}"
    submit_and_wait(
        provider,
        OperationRequest("PUT", path, body),
        _config(DATABASE_POLL_INTERVAL_S, DEFAULT_CLOUD_WAIT_TIMEOUT_S, timeout, settings),
        **wait_options,
    )
    return provider.get(path)


def delete_subscription_and_wait(
    provider: PlatformProvider,
    subscription_id: int,
    *,
    timeout: float | None = None,
    settings: PollSettings | None = None,
    **wait_options: Any,
) -> None:
    """Delete a subscription and wait.

    The platform rejects the deletion while the subscription still holds
    databases.
    """
    submit_and_wait(
        provider,
        OperationRequest("DELETE", f"/subscriptions/{subscription_id}"),
        _config(DATABASE_POLL_INTERVAL_S, DEFAULT_CLOUD_WAIT_TIMEOUT_S, timeout, settings),
        **wait_options,
    )


# ---------------------------------------------------------------------------
# Multi-step provisioning
# ---------------------------------------------------------------------------


def provision_subscription_with_database(
    provider: PlatformProvider,
    subscription_body: dict[str, Any],
    database_body: dict[str, Any],
    *,
    subscription_timeout: float | None = None,
    database_timeout: float | None = None,
    settings: PollSettings | None = None,
    sink: ProgressSink | None = None,
    cancel_token: threading.Event | None = None,
    **poller_options: Any,
) -> WorkflowResult:
    """Create a subscription, then a database inside it.

    The new subscription id produced by the first step feeds the second
    step's request path.  If the database step fails the subscription is
    left in place and reported as the one completed step.
    """

    def _submit_subscription(_previous: Sequence[StepOutcome]) -> Any:
        return provider.submit(OperationRequest("POST", "/subscriptions", subscription_body))

    def _submit_database(previous: Sequence[StepOutcome]) -> Any:
        subscription_id = _require_resource_id(previous[-1].result, "Create subscription")
        return provider.submit(
            OperationRequest("POST", f"/subscriptions/{subscription_id}/databases", database_body)
        )

    steps = [
        WorkflowStep(
            name="create-subscription",
            submit=_submit_subscription,
            config=_config(
                SUBSCRIPTION_POLL_INTERVAL_S,
                SUBSCRIPTION_WAIT_TIMEOUT_S,
                subscription_timeout,
                settings,
            ),
        ),
        WorkflowStep(
            name="create-database",
            submit=_submit_database,
            config=_config(
                DATABASE_POLL_INTERVAL_S, DEFAULT_CLOUD_WAIT_TIMEOUT_S, database_timeout, settings
            ),
        ),
    ]
    return run_workflow(steps, provider, sink, cancel_token, **poller_options)
