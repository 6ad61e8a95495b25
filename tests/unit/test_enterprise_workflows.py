"""Tests for the Enterprise submit-and-wait workflows."""

from __future__ import annotations

import httpx
import pytest

from redisops.core.config import PollSettings
from redisops.core.exceptions import PlatformError, TaskFailed, TaskTimeout
from redisops.operations import enterprise_workflows
from redisops.providers.base import TransientFetchError


def _opts(fake_clock) -> dict:
    return {"clock": fake_clock, "sleep": fake_clock.sleep}


class TestCreateDatabase:
    def test_polls_database_status_until_active(self, enterprise_provider, router, fake_clock) -> None:
        router.add("POST", "/v1/bdbs", {"uid": 3, "status": "pending"})
        router.add(
            "GET",
            "/v1/bdbs/3",
            [{"uid": 3, "status": "pending"}, {"uid": 3, "status": "active", "name": "orders"}],
        )

        database = enterprise_workflows.create_database_and_wait(
            enterprise_provider, {"name": "orders", "memory_size": 1073741824}, **_opts(fake_clock)
        )

        assert database == {"uid": 3, "status": "active", "name": "orders"}
        assert fake_clock.sleeps == [5]
        assert router.count("GET", "/v1/actions/3") == 0

    def test_creation_failed(self, enterprise_provider, router, fake_clock) -> None:
        router.add("POST", "/v1/bdbs", {"uid": 3})
        router.add("GET", "/v1/bdbs/3", {"uid": 3, "status": "creation-failed"})

        with pytest.raises(TaskFailed, match="creation-failed"):
            enterprise_workflows.create_database_and_wait(enterprise_provider, {}, **_opts(fake_clock))

    def test_response_without_uid(self, enterprise_provider, router, fake_clock) -> None:
        router.add("POST", "/v1/bdbs", {"status": "pending"})

        with pytest.raises(PlatformError, match="uid"):
            enterprise_workflows.create_database_and_wait(enterprise_provider, {}, **_opts(fake_clock))


class TestUpgrades:
    def test_upgrade_database_polls_action(self, enterprise_provider, router, fake_clock) -> None:
        router.add("POST", "/v1/bdbs/3/upgrade", {"action_uid": "a-1"})
        router.add(
            "GET",
            "/v1/actions/a-1",
            [{"status": "running", "progress": "40"}, {"status": "completed"}],
        )
        router.add("GET", "/v1/bdbs/3", {"uid": 3, "redis_version": "7.4"})

        database = enterprise_workflows.upgrade_database_and_wait(
            enterprise_provider, 3, {"redis_version": "7.4"}, **_opts(fake_clock)
        )

        assert database["redis_version"] == "7.4"
        assert router.count("GET", "/v1/actions/a-1") == 2

    def test_upgrade_module_body(self, enterprise_provider, router, fake_clock) -> None:
        router.add("POST", "/v1/bdbs/3/modules/upgrade", {"action_uid": "a-2"})
        router.add("GET", "/v1/actions/a-2", {"status": "completed"})
        router.add("GET", "/v1/bdbs/3", {"uid": 3})

        enterprise_workflows.upgrade_module_and_wait(
            enterprise_provider, 3, "search", "2.10.5", **_opts(fake_clock)
        )

        assert router.bodies("POST", "/v1/bdbs/3/modules/upgrade") == [
            {"modules": [{"module_name": "search", "new_version": "2.10.5"}]}
        ]

    def test_failed_action(self, enterprise_provider, router, fake_clock) -> None:
        router.add("POST", "/v1/bdbs/3/upgrade", {"action_uid": "a-1"})
        router.add("GET", "/v1/actions/a-1", {"status": "failed", "error": "Shard migration failed"})

        with pytest.raises(TaskFailed, match="Shard migration failed"):
            enterprise_workflows.upgrade_database_and_wait(enterprise_provider, 3, {}, **_opts(fake_clock))


class TestOptionalActions:
    def test_backup_without_action_returns_response(self, enterprise_provider, router, fake_clock) -> None:
        router.add("POST", "/v1/bdbs/3/backup", {})

        assert enterprise_workflows.backup_database_and_wait(enterprise_provider, 3, **_opts(fake_clock)) == {}
        assert fake_clock.sleeps == []

    def test_backup_with_action_polls(self, enterprise_provider, router, fake_clock) -> None:
        router.add("POST", "/v1/bdbs/3/backup", {"action_uid": "b-1"})
        router.add("GET", "/v1/actions/b-1", {"status": "completed", "name": "backup"})

        result = enterprise_workflows.backup_database_and_wait(enterprise_provider, 3, **_opts(fake_clock))

        assert result == {"status": "completed", "name": "backup"}

    def test_import_with_flush(self, enterprise_provider, router, fake_clock) -> None:
        router.add("POST", "/v1/bdbs/3/import", {"action_uid": "i-1"})
        router.add("GET", "/v1/actions/i-1", {"status": "completed"})

        enterprise_workflows.import_database_and_wait(
            enterprise_provider, 3, "s3://bucket/dump.rdb", flush=True, **_opts(fake_clock)
        )

        assert router.bodies("POST", "/v1/bdbs/3/import") == [
            {"import_location": "s3://bucket/dump.rdb", "flush": True}
        ]


class TestSettings:
    def test_max_transient_retries(self, enterprise_provider, router, fake_clock) -> None:
        router.add("POST", "/v1/bdbs/3/upgrade", {"action_uid": "a-1"})
        router.add("GET", "/v1/actions/a-1", httpx.Response(503, text="busy"))

        with pytest.raises(TransientFetchError):
            enterprise_workflows.upgrade_database_and_wait(
                enterprise_provider,
                3,
                {},
                settings=PollSettings(max_transient_retries=0),
                **_opts(fake_clock),
            )
        assert router.count("GET", "/v1/actions/a-1") == 1

    def test_interval_and_timeout_from_settings(self, enterprise_provider, router, fake_clock) -> None:
        router.add("POST", "/v1/bdbs", {"uid": 3})
        router.add("GET", "/v1/bdbs/3", {"uid": 3, "status": "pending"})
        settings = PollSettings(enterprise_poll_interval_s=2, enterprise_wait_timeout_s=6)

        with pytest.raises(TaskTimeout):
            enterprise_workflows.create_database_and_wait(
                enterprise_provider, {}, settings=settings, **_opts(fake_clock)
            )
        assert fake_clock.sleeps == [2, 2, 2]
