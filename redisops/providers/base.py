"""PlatformProvider abstract base class.

Defines the contract every control-plane adapter implements.  The poller
and the workflow composer interact exclusively with this interface;
they never branch on which platform is behind it.

Lifecycle:
    1. ``submit(request)``: issue a mutating request, return an ``OperationHandle``.
    2. ``fetch(handle)``: one status query, return a ``StatusSnapshot``.
    3. ``get(path)``: plain read, used to materialise created resources.

HTTP classification (shared by all adapters, applied in ``_send``):
    - 429                         → ``TransientFetchError`` with ``retry_after``
    - 5xx, transport errors       → ``TransientFetchError``
    - other 4xx, undecodable body → ``PlatformError`` (fatal)

``fetch`` performs exactly one HTTP request and never retries; retry
policy lives in the poller.
"""

from __future__ import annotations

import abc
import logging
from typing import TYPE_CHECKING, Any

import httpx

from redisops.core.exceptions import PlatformError
from redisops.utils.helpers import parse_retry_after

if TYPE_CHECKING:
    from redisops.core.session import SessionContext
    from redisops.models.operation import (
        OperationHandle,
        OperationRequest,
        Platform,
        StatusSnapshot,
    )

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Fetch exceptions
# ---------------------------------------------------------------------------


class TransientFetchError(PlatformError):
    """A fetch failure that should be retried (rate limit, 5xx, network blip).

    Only escapes the poller when ``PollConfig.max_retries`` is exhausted.

    Attributes:
        retry_after: Server-suggested delay in seconds, if any.
    """

    default_code = "PLATFORM_TRANSIENT"

    def __init__(
        self,
        platform: str,
        message: str,
        *,
        status_code: int | None = None,
        retry_after: float | None = None,
        body: object = None,
    ) -> None:
        self.retry_after = retry_after
        super().__init__(
            platform,
            message,
            status_code=status_code,
            body=body,
            retryable=True,
        )


# ---------------------------------------------------------------------------
# Provider base class
# ---------------------------------------------------------------------------


class PlatformProvider(abc.ABC):
    """Abstract base class for control-plane adapters.

    Concrete implementations override ``_build_client``, ``submit`` and
    ``fetch``.  The HTTP client is created lazily and owned by the
    provider; use the provider as a context manager (or call ``close``)
    to release connections.

    Example usage::

        with get_provider(session) as provider:
            handle = provider.submit(request)
            snapshot = provider.fetch(handle)
    """

    #: Platform this adapter serves (set by subclasses).
    platform: Platform

    def __init__(
        self,
        session: SessionContext,
        *,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._session = session
        self._transport = transport
        self._client: httpx.Client | None = None

    @property
    def name(self) -> str:
        return self.platform.value

    @property
    def session(self) -> SessionContext:
        return self._session

    @property
    def client(self) -> httpx.Client:
        if self._client is None:
            self._client = self._build_client()
        return self._client

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    def __enter__(self) -> PlatformProvider:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Abstract methods
    # ------------------------------------------------------------------

    @abc.abstractmethod
    def _build_client(self) -> httpx.Client:
        """Create the authenticated ``httpx.Client`` for this platform."""

    @abc.abstractmethod
    def submit(self, request: OperationRequest) -> OperationHandle:
        """Issue a mutating request and return its async handle.

        Raises:
            PlatformError: On any non-2xx answer (429/5xx flagged retryable)
                or when the response carries no usable handle.
        """

    @abc.abstractmethod
    def fetch(self, handle: OperationHandle) -> StatusSnapshot:
        """Perform one status query for *handle*.

        Raises:
            TransientFetchError: Rate limited, server error, or network failure.
            PlatformError: Any other hard failure.
        """

    # ------------------------------------------------------------------
    # Shared HTTP helpers
    # ------------------------------------------------------------------

    def get(self, path: str) -> Any:
        """GET *path* and return the decoded JSON body.

        Transient failures are re-raised as ``TransientFetchError`` so that
        callers inside the poller can retry them.
        """
        return self._send("GET", path)

    def request(self, method: str, path: str, body: Any = None) -> Any:
        """Send any request and return the decoded JSON body, without a handle."""
        return self._send(method.upper(), path, body)

    def read_status(self, path: str) -> tuple[Any, float | None]:
        """GET a status document and the ``Retry-After`` hint sent with it."""
        response = self._exchange("GET", path)
        return (
            _decode(self.name, "GET", path, response),
            parse_retry_after(response.headers.get("Retry-After")),
        )

    def _send(self, method: str, path: str, body: Any = None) -> Any:
        """Send one request, classify the outcome and decode the body."""
        return _decode(self.name, method, path, self._exchange(method, path, body))

    def _exchange(self, method: str, path: str, body: Any = None) -> httpx.Response:
        """Send one request and raise on any non-2xx answer."""
        try:
            response = self.client.request(method, path, json=body)
        except httpx.TimeoutException as exc:
            msg = f"{method} {path} timed out: {exc}"
            raise TransientFetchError(self.name, msg) from exc
        except httpx.TransportError as exc:
            msg = f"{method} {path} failed: {exc}"
            raise TransientFetchError(self.name, msg) from exc

        status = response.status_code
        if status == 429:
            retry_after = parse_retry_after(response.headers.get("Retry-After"))
            logger.warning(
                "Rate limited | platform=%s | %s %s | retry_after=%s",
                self.name,
                method,
                path,
                retry_after,
            )
            raise TransientFetchError(
                self.name,
                "Too many requests",
                status_code=status,
                retry_after=retry_after,
                body=_safe_body(response),
            )
        if status >= 500:
            raise TransientFetchError(
                self.name,
                f"{method} {path} returned server error",
                status_code=status,
                body=_safe_body(response),
            )
        if status >= 400:
            body_obj = _safe_body(response)
            raise PlatformError(
                self.name,
                _describe_error(method, path, body_obj),
                status_code=status,
                body=body_obj,
            )

        return response


def _decode(platform: str, method: str, path: str, response: httpx.Response) -> Any:
    if response.status_code == 204 or not response.content:
        return {}
    try:
        return response.json()
    except ValueError as exc:
        msg = f"{method} {path} returned a non-JSON body"
        raise PlatformError(platform, msg, status_code=response.status_code) from exc


def _safe_body(response: httpx.Response) -> object:
    try:
        return response.json()
    except ValueError:
        return response.text


def _describe_error(method: str, path: str, body: object) -> str:
    if isinstance(body, dict):
        for key in ("description", "message", "error", "detail"):
            value = body.get(key)
            if isinstance(value, str) and value:
                return f"{method} {path}: {value}"
    if isinstance(body, str) and body.strip():
        return f"{method} {path}: {body.strip()[:200]}"
    return f"{method} {path} was rejected"
