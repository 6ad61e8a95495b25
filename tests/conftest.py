"""Shared pytest fixtures for the redisops test suite."""

from __future__ import annotations

import json
from collections.abc import Callable, Iterator
from typing import Any

import httpx
import pytest

from redisops.core.session import SessionContext
from redisops.models.operation import OperationHandle, Platform, StatusSnapshot
from redisops.providers.cloud import CloudProvider
from redisops.providers.enterprise import EnterpriseProvider

# ---------------------------------------------------------------------------
# Fake time
# ---------------------------------------------------------------------------


class FakeClock:
    """Monotonic clock advanced only by ``sleep``."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds

    def advance(self, seconds: float) -> None:
        self.now += seconds


class ScriptedFetcher:
    """Status fetcher replaying a script of snapshots and exceptions.

    The last entry repeats once the script is exhausted.  Every call is
    recorded with the clock time it was made at.
    """

    def __init__(self, script: list[Any], clock: FakeClock | None = None) -> None:
        if not script:
            msg = "script must not be empty"
            raise ValueError(msg)
        self._script = list(script)
        self._clock = clock
        self.calls: list[OperationHandle] = []
        self.call_times: list[float] = []

    def fetch(self, handle: OperationHandle) -> StatusSnapshot:
        self.calls.append(handle)
        if self._clock is not None:
            self.call_times.append(self._clock())
        item = self._script.pop(0) if len(self._script) > 1 else self._script[0]
        if isinstance(item, BaseException):
            raise item
        if isinstance(item, str):
            return StatusSnapshot(raw_state=item)
        return item


@pytest.fixture()
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def scripted_fetcher(fake_clock: FakeClock) -> Callable[[list[Any]], ScriptedFetcher]:
    """Factory: ``scripted_fetcher([...])`` bound to ``fake_clock``."""

    def _make(script: list[Any]) -> ScriptedFetcher:
        return ScriptedFetcher(script, fake_clock)

    return _make


@pytest.fixture()
def collected_events() -> list[Any]:
    return []


# ---------------------------------------------------------------------------
# Sessions and HTTP
# ---------------------------------------------------------------------------


@pytest.fixture()
def cloud_session() -> SessionContext:
    return SessionContext(
        platform=Platform.CLOUD,
        base_url="https://cloud.test/v1",
        api_key="key-123",
        api_secret="secret-456",
    )


@pytest.fixture()
def enterprise_session() -> SessionContext:
    return SessionContext(
        platform=Platform.ENTERPRISE,
        base_url="https://cluster.test:9443",
        username="admin@example.com",
        password="hunter2",
        verify_tls=False,
    )


class Router:
    """Route table for ``httpx.MockTransport``.

    Register ``(method, path)`` → response (dict, ``httpx.Response``, a
    list consumed in order, or a callable taking the request).  Every
    request is recorded.
    """

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], Any] = {}
        self.requests: list[httpx.Request] = []

    def add(self, method: str, path: str, response: Any) -> None:
        self.routes[(method.upper(), path)] = response

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        key = (request.method, request.url.path)
        if key not in self.routes:
            return httpx.Response(404, json={"description": f"no route {key}"})
        entry = self.routes[key]
        if isinstance(entry, list):
            entry = entry.pop(0) if len(entry) > 1 else entry[0]
        if callable(entry) and not isinstance(entry, httpx.Response):
            entry = entry(request)
        if isinstance(entry, httpx.Response):
            return entry
        return httpx.Response(200, json=entry)

    def bodies(self, method: str, path: str) -> list[Any]:
        return [
            json.loads(r.content) if r.content else None
            for r in self.requests
            if r.method == method and r.url.path == path
        ]

    def count(self, method: str, path: str) -> int:
        return sum(1 for r in self.requests if r.method == method and r.url.path == path)


@pytest.fixture()
def router() -> Router:
    return Router()


@pytest.fixture()
def cloud_provider(cloud_session: SessionContext, router: Router) -> Iterator[CloudProvider]:
    provider = CloudProvider(cloud_session, transport=httpx.MockTransport(router))
    yield provider
    provider.close()


@pytest.fixture()
def enterprise_provider(enterprise_session: SessionContext, router: Router) -> Iterator[EnterpriseProvider]:
    provider = EnterpriseProvider(enterprise_session, transport=httpx.MockTransport(router))
    yield provider
    provider.close()
