"""Enterprise cluster adapter.

The cluster REST API exposes two status shapes:

- Long-running actions (upgrade, backup, import) return an
  ``action_uid`` polled through ``GET /v1/actions/{uid}``:
  ``{"action_uid": "…", "status": "running", "progress": 42.0}``.
- Resource creation returns the resource body with a ``uid`` whose own
  ``status`` field (``pending`` → ``active``) is polled through
  ``GET /v1/bdbs/{uid}`` or ``GET /v1/nodes/{uid}``.

Which one a handle uses is decided at submit time by
``OperationRequest.target`` and carried on the handle as ``PollTarget``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import httpx

from redisops.core.exceptions import PlatformError
from redisops.models.operation import (
    OperationHandle,
    Platform,
    PollTarget,
    StatusSnapshot,
    resolve_target,
)
from redisops.providers.base import PlatformProvider
from redisops.utils.helpers import extract_action_uid, extract_resource_uid, parse_progress

if TYPE_CHECKING:
    from redisops.models.operation import OperationRequest

logger = logging.getLogger(__name__)

_STATUS_PATHS: dict[PollTarget, str] = {
    PollTarget.ACTION: "/v1/actions/{id}",
    PollTarget.DATABASE: "/v1/bdbs/{id}",
    PollTarget.NODE: "/v1/nodes/{id}",
}


class EnterpriseProvider(PlatformProvider):
    """Enterprise adapter using HTTP basic auth against the cluster API."""

    platform = Platform.ENTERPRISE

    def _build_client(self) -> httpx.Client:
        session = self.session
        return httpx.Client(
            base_url=session.base_url.rstrip("/"),
            auth=httpx.BasicAuth(session.username, session.password),
            headers={"Accept": "application/json"},
            timeout=session.timeout_s,
            verify=session.verify_tls,
            transport=self._transport,
        )

    def submit(self, request: OperationRequest) -> OperationHandle:
        """Send *request* and build a handle for the requested poll target.

        ``ACTION`` (default) reads ``action_uid`` from the response;
        ``DATABASE`` and ``NODE`` read the created resource's ``uid``.

        Raises:
            ModelValidationError: If the target cannot be polled on Enterprise;
                nothing is sent.
        """
        target = resolve_target(Platform.ENTERPRISE, request.target, model="OperationRequest")

        response = self._send(request.method, request.path, request.body)
        if target is PollTarget.ACTION:
            handle_id = extract_action_uid(response)
            missing = "action_uid"
        else:
            handle_id = extract_resource_uid(response)
            missing = "uid"
        if not handle_id:
            msg = f"{request.method} {request.path} returned no {missing}"
            raise PlatformError(self.name, msg, body=response)

        logger.info(
            "Enterprise operation submitted | target=%s | id=%s | %s %s",
            target.value,
            handle_id,
            request.method,
            request.path,
        )
        return OperationHandle(platform=Platform.ENTERPRISE, id=handle_id, target=target)

    def fetch(self, handle: OperationHandle) -> StatusSnapshot:
        """Read the action or resource status once."""
        if handle.platform is not Platform.ENTERPRISE:
            msg = f"Cannot poll {handle.platform.value} handle {handle.id!r} through Enterprise"
            raise PlatformError(self.name, msg)

        path = _STATUS_PATHS[handle.target].format(id=handle.id)  # type: ignore[index]
        body, retry_after = self.read_status(path)
        if not isinstance(body, dict):
            raise PlatformError(self.name, f"{path} returned a non-object body")

        raw_state = str(body.get("status") or "")
        error = body.get("error") or body.get("error_message") or None

        logger.debug(
            "Enterprise status read | target=%s | id=%s | status=%s | progress=%s",
            handle.target.value if handle.target else "",
            handle.id,
            raw_state,
            body.get("progress"),
        )
        return StatusSnapshot(
            raw_state=raw_state,
            result_payload=body,
            error_payload=error,
            retry_after=retry_after,
            progress=parse_progress(body.get("progress")),
        )

