"""Cloud control-plane adapter.

Every mutating Cloud call answers ``202 Accepted`` with a task id.  The
task is polled through the generic ``GET /tasks/{taskId}`` endpoint:

    {
      "taskId": "…",
      "status": "processing-completed",
      "description": "Create database",
      "response": {"resourceId": 51, "resource": {...}, "error": {...}}
    }

On success the result payload is ``response.resource`` when present,
otherwise the ``response`` object without its ``error`` key (which
carries ``resourceId`` for create operations).
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import httpx

from redisops.core.exceptions import PlatformError
from redisops.models.operation import (
    OperationHandle,
    Platform,
    StatusSnapshot,
    resolve_target,
)
from redisops.providers.base import PlatformProvider
from redisops.utils.helpers import extract_task_id, parse_progress

if TYPE_CHECKING:
    from redisops.models.operation import OperationRequest

logger = logging.getLogger(__name__)


class CloudProvider(PlatformProvider):
    """Cloud adapter authenticating with an account key and user secret."""

    platform = Platform.CLOUD

    def _build_client(self) -> httpx.Client:
        session = self.session
        return httpx.Client(
            base_url=session.base_url.rstrip("/"),
            headers={
                "x-api-key": session.api_key,
                "x-api-secret-key": session.api_secret,
                "Accept": "application/json",
            },
            timeout=session.timeout_s,
            verify=session.verify_tls,
            transport=self._transport,
        )

    def submit(self, request: OperationRequest) -> OperationHandle:
        """Send *request* and return the task handle from its response.

        Raises:
            ModelValidationError: If *request* asks for a non-task target;
                nothing is sent.
        """
        target = resolve_target(Platform.CLOUD, request.target, model="OperationRequest")
        response = self._send(request.method, request.path, request.body)
        task_id = extract_task_id(response)
        if not task_id:
            msg = f"{request.method} {request.path} returned no task id"
            raise PlatformError(self.name, msg, body=response)

        logger.info(
            "Cloud task submitted | task_id=%s | %s %s",
            task_id,
            request.method,
            request.path,
        )
        return OperationHandle(platform=Platform.CLOUD, id=task_id, target=target)

    def fetch(self, handle: OperationHandle) -> StatusSnapshot:
        """Read ``/tasks/{id}`` once."""
        if handle.platform is not Platform.CLOUD:
            msg = f"Cannot poll {handle.platform.value} handle {handle.id!r} through Cloud"
            raise PlatformError(self.name, msg)

        task, retry_after = self.read_status(f"/tasks/{handle.id}")
        if not isinstance(task, dict):
            raise PlatformError(self.name, f"Task {handle.id!r} returned a non-object body")

        raw_state = str(task.get("status") or "")
        nested = task.get("response")
        result, error = _split_response(nested)
        if error is None:
            error = task.get("error") or task.get("errorMessage")

        logger.debug(
            "Cloud task read | task_id=%s | status=%s | has_error=%s",
            handle.id,
            raw_state,
            error is not None,
        )
        return StatusSnapshot(
            raw_state=raw_state,
            result_payload=result,
            error_payload=error,
            retry_after=retry_after,
            progress=parse_progress(task.get("progress")),
        )


def _split_response(nested: Any) -> tuple[Any, Any]:
    """Return ``(result, error)`` from a task's ``response`` object."""
    if not isinstance(nested, dict):
        return None, None
    error = nested.get("error") or None
    if nested.get("resource"):
        return nested["resource"], error
    remainder = {k: v for k, v in nested.items() if k != "error"}
    return (remainder or None), error

