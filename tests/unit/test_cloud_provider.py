"""Tests for the Cloud adapter (submit, fetch, HTTP classification)."""

from __future__ import annotations

import httpx
import pytest

from redisops.core.exceptions import PlatformError, ValidationError
from redisops.models.operation import (
    OperationHandle,
    OperationRequest,
    Platform,
    PollTarget,
)
from redisops.providers.base import TransientFetchError

HANDLE = OperationHandle(Platform.CLOUD, "task-abc")


class TestSubmit:
    def test_returns_task_handle(self, cloud_provider, router) -> None:
        router.add("POST", "/v1/subscriptions/12/databases", {"taskId": "task-abc"})
        handle = cloud_provider.submit(
            OperationRequest("POST", "/subscriptions/12/databases", {"name": "cache"})
        )

        assert handle == OperationHandle(Platform.CLOUD, "task-abc", PollTarget.TASK)
        assert router.bodies("POST", "/v1/subscriptions/12/databases") == [{"name": "cache"}]

    def test_sends_api_key_headers(self, cloud_provider, router) -> None:
        router.add("DELETE", "/v1/subscriptions/12", {"taskId": "t"})
        cloud_provider.submit(OperationRequest("DELETE", "/subscriptions/12"))

        request = router.requests[0]
        assert request.headers["x-api-key"] == "key-123"
        assert request.headers["x-api-secret-key"] == "secret-456"

    @pytest.mark.parametrize(
        "body",
        [{"task_id": "task-abc"}, {"response": {"id": "task-abc"}}],
    )
    def test_task_id_fallbacks(self, cloud_provider, router, body) -> None:
        router.add("POST", "/v1/subscriptions", body)
        handle = cloud_provider.submit(OperationRequest("POST", "/subscriptions", {}))
        assert handle.id == "task-abc"

    def test_missing_task_id_is_platform_error(self, cloud_provider, router) -> None:
        router.add("POST", "/v1/subscriptions", {"status": "ok"})
        with pytest.raises(PlatformError, match="no task id"):
            cloud_provider.submit(OperationRequest("POST", "/subscriptions", {}))

    def test_bad_request_is_fatal(self, cloud_provider, router) -> None:
        router.add(
            "POST",
            "/v1/subscriptions",
            httpx.Response(400, json={"description": "Invalid memory limit"}),
        )
        with pytest.raises(PlatformError) as ctx:
            cloud_provider.submit(OperationRequest("POST", "/subscriptions", {}))

        assert ctx.value.is_bad_request
        assert not ctx.value.retryable
        assert "Invalid memory limit" in str(ctx.value)

    @pytest.mark.parametrize("target", [PollTarget.ACTION, PollTarget.DATABASE, PollTarget.NODE])
    def test_enterprise_target_rejected_before_send(self, cloud_provider, router, target) -> None:
        router.add("POST", "/v1/subscriptions", {"taskId": "t-1"})
        with pytest.raises(ValidationError, match="target"):
            cloud_provider.submit(OperationRequest("POST", "/subscriptions", {}, target=target))
        assert router.requests == []


class TestFetch:
    def test_completed_task_returns_resource(self, cloud_provider, router) -> None:
        router.add(
            "GET",
            "/v1/tasks/task-abc",
            {
                "taskId": "task-abc",
                "status": "processing-completed",
                "response": {"resourceId": 51, "resource": {"databaseId": 51, "name": "cache"}},
            },
        )
        snapshot = cloud_provider.fetch(HANDLE)

        assert snapshot.raw_state == "processing-completed"
        assert snapshot.result_payload == {"databaseId": 51, "name": "cache"}
        assert snapshot.error_payload is None

    def test_result_falls_back_to_response_without_error(self, cloud_provider, router) -> None:
        router.add(
            "GET",
            "/v1/tasks/task-abc",
            {"status": "processing-completed", "response": {"resourceId": 51, "error": None}},
        )
        snapshot = cloud_provider.fetch(HANDLE)
        assert snapshot.result_payload == {"resourceId": 51}

    def test_error_payload_extracted(self, cloud_provider, router) -> None:
        error = {"type": "SUBSCRIPTION_ERROR", "status": "400", "description": "No capacity"}
        router.add(
            "GET", "/v1/tasks/task-abc", {"status": "processing-error", "response": {"error": error}}
        )
        snapshot = cloud_provider.fetch(HANDLE)
        assert snapshot.error_payload == error

    def test_in_progress_task(self, cloud_provider, router) -> None:
        router.add("GET", "/v1/tasks/task-abc", {"status": "processing-in-progress"})
        snapshot = cloud_provider.fetch(HANDLE)
        assert snapshot.raw_state == "processing-in-progress"
        assert snapshot.result_payload is None

    def test_retry_after_header_on_success(self, cloud_provider, router) -> None:
        router.add(
            "GET",
            "/v1/tasks/task-abc",
            httpx.Response(
                200,
                json={"status": "processing-in-progress", "progress": "35"},
                headers={"Retry-After": "20"},
            ),
        )
        snapshot = cloud_provider.fetch(HANDLE)

        assert snapshot.retry_after == 20
        assert snapshot.progress == 35.0

    def test_no_retry_after_header(self, cloud_provider, router) -> None:
        router.add("GET", "/v1/tasks/task-abc", {"status": "processing-in-progress"})
        assert cloud_provider.fetch(HANDLE).retry_after is None

    def test_rate_limit_is_transient_with_retry_after(self, cloud_provider, router) -> None:
        router.add("GET", "/v1/tasks/task-abc", httpx.Response(429, headers={"Retry-After": "12"}))
        with pytest.raises(TransientFetchError) as ctx:
            cloud_provider.fetch(HANDLE)

        assert ctx.value.is_rate_limited
        assert ctx.value.retry_after == 12.0
        assert ctx.value.retryable

    def test_server_error_is_transient(self, cloud_provider, router) -> None:
        router.add("GET", "/v1/tasks/task-abc", httpx.Response(502, text="bad gateway"))
        with pytest.raises(TransientFetchError) as ctx:
            cloud_provider.fetch(HANDLE)
        assert ctx.value.is_server_error
        assert ctx.value.retry_after is None

    def test_connection_error_is_transient(self, cloud_session) -> None:
        from redisops.providers.cloud import CloudProvider

        def boom(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with CloudProvider(cloud_session, transport=httpx.MockTransport(boom)) as provider:
            with pytest.raises(TransientFetchError) as ctx:
                provider.fetch(HANDLE)
        assert ctx.value.status_code is None

    def test_not_found_is_fatal(self, cloud_provider, router) -> None:
        with pytest.raises(PlatformError) as ctx:
            cloud_provider.fetch(HANDLE)
        assert not isinstance(ctx.value, TransientFetchError)
        assert ctx.value.is_not_found

    def test_non_json_body_is_fatal(self, cloud_provider, router) -> None:
        router.add("GET", "/v1/tasks/task-abc", httpx.Response(200, text="<html>"))
        with pytest.raises(PlatformError, match="non-JSON"):
            cloud_provider.fetch(HANDLE)

    def test_rejects_enterprise_handle(self, cloud_provider, router) -> None:
        with pytest.raises(PlatformError, match="through Cloud"):
            cloud_provider.fetch(OperationHandle(Platform.ENTERPRISE, "1"))
        assert router.requests == []

    def test_one_request_per_fetch(self, cloud_provider, router) -> None:
        router.add("GET", "/v1/tasks/task-abc", httpx.Response(503))
        with pytest.raises(TransientFetchError):
            cloud_provider.fetch(HANDLE)
        assert router.count("GET", "/v1/tasks/task-abc") == 1
