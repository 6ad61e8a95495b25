"""Tests for the command line front-end: parsing, output, exit codes."""

from __future__ import annotations

import json
import os
from unittest.mock import patch

import httpx
import pytest

from redisops.cli import build_parser, main, render_error
from redisops.core.exceptions import PlatformError, TaskFailed, TaskTimeout
from redisops.models.operation import OperationHandle, Platform, PollTarget
from redisops.providers.cloud import CloudProvider
from redisops.providers.enterprise import EnterpriseProvider

CLOUD_ENV = {"REDISOPS_CLOUD_API_KEY": "k", "REDISOPS_CLOUD_API_SECRET": "s"}
ENTERPRISE_ENV = {
    "REDISOPS_ENTERPRISE_URL": "https://cluster.test:9443",
    "REDISOPS_ENTERPRISE_USER": "admin",
    "REDISOPS_ENTERPRISE_PASSWORD": "pw",
}


@pytest.fixture()
def mocked_providers(router):
    """Route every provider the CLI builds through the shared router."""
    adapters = {Platform.CLOUD: CloudProvider, Platform.ENTERPRISE: EnterpriseProvider}

    def _build(session):
        return adapters[session.platform](session, transport=httpx.MockTransport(router))

    env = {**CLOUD_ENV, **ENTERPRISE_ENV}
    with (
        patch.dict(os.environ, env, clear=True),
        patch("redisops.cli.get_provider", side_effect=_build),
    ):
        yield router


class TestParser:
    def test_poll_interval_alias(self) -> None:
        args = build_parser().parse_args(
            ["task", "wait", "t-1", "--platform", "cloud", "--poll-interval", "2"]
        )
        assert args.wait_interval == 2.0

    def test_submit_defaults(self) -> None:
        args = build_parser().parse_args(["enterprise", "submit", "POST", "/v1/bdbs"])
        assert args.platform == "enterprise"
        assert args.wait is False
        assert args.output == "text"

    def test_platform_required_for_task(self) -> None:
        with pytest.raises(SystemExit):
            build_parser().parse_args(["task", "get", "t-1"])


class TestSubmit:
    def test_no_wait_prints_handle(self, mocked_providers, capsys) -> None:
        mocked_providers.add("POST", "/v1/subscriptions", {"taskId": "t-1"})

        code = main(["cloud", "submit", "POST", "/subscriptions", "--data", '{"name": "prod"}'])

        out, err = capsys.readouterr()
        assert code == 0
        assert json.loads(out) == {"platform": "cloud", "id": "t-1", "target": "task"}
        assert "redisops task wait t-1 --platform cloud --target task" in err
        assert mocked_providers.bodies("POST", "/v1/subscriptions") == [{"name": "prod"}]

    def test_data_from_file(self, mocked_providers, capsys, tmp_path) -> None:
        body = tmp_path / "db.json"
        body.write_text('{"name": "cache"}', encoding="utf-8")
        mocked_providers.add("POST", "/v1/subscriptions/12/databases", {"taskId": "t-2"})

        code = main(["cloud", "submit", "POST", "/subscriptions/12/databases", "-d", f"@{body}"])

        assert code == 0
        assert mocked_providers.bodies("POST", "/v1/subscriptions/12/databases") == [{"name": "cache"}]

    def test_wait_json_report(self, mocked_providers, capsys) -> None:
        mocked_providers.add("POST", "/v1/subscriptions", {"taskId": "t-1"})
        mocked_providers.add(
            "GET",
            "/v1/tasks/t-1",
            {"status": "processing-completed", "response": {"resourceId": 12}},
        )

        code = main(["cloud", "submit", "POST", "/subscriptions", "--wait", "-o", "json"])

        report = json.loads(capsys.readouterr().out)
        assert code == 0
        assert report["status"] == "completed"
        assert report["result"] == {"resourceId": 12}
        assert [e["event"] for e in report["events"]] == ["started", "completed"]

    def test_enterprise_database_target(self, mocked_providers, capsys) -> None:
        mocked_providers.add("POST", "/v1/bdbs", {"uid": 4})
        mocked_providers.add("GET", "/v1/bdbs/4", {"uid": 4, "status": "active"})

        code = main(["enterprise", "submit", "POST", "/v1/bdbs", "--target", "database", "--wait"])

        out, err = capsys.readouterr()
        assert code == 0
        assert json.loads(out) == {"uid": 4, "status": "active"}
        assert "completed" in err

    def test_task_failure_exit_code(self, mocked_providers, capsys) -> None:
        mocked_providers.add("POST", "/v1/subscriptions", {"taskId": "t-1"})
        mocked_providers.add(
            "GET",
            "/v1/tasks/t-1",
            {"status": "processing-error", "response": {"error": {"description": "Quota exceeded"}}},
        )

        code = main(["cloud", "submit", "POST", "/subscriptions", "--wait"])

        err = capsys.readouterr().err
        assert code == 3
        assert "Error: [cloud] Quota exceeded" in err
        assert "state: processing-error" in err

    def test_rejected_request_exit_code(self, mocked_providers, capsys) -> None:
        mocked_providers.add(
            "POST", "/v1/subscriptions", httpx.Response(400, json={"description": "Invalid plan"})
        )

        assert main(["cloud", "submit", "POST", "/subscriptions"]) == 1
        assert "Invalid plan" in capsys.readouterr().err

    def test_invalid_json_is_validation_error(self, mocked_providers, capsys) -> None:
        code = main(["cloud", "submit", "POST", "/subscriptions", "--data", "{name"])

        assert code == 2
        assert "--data is not valid JSON" in capsys.readouterr().err
        assert mocked_providers.requests == []

    def test_read_only_method_rejected(self, mocked_providers) -> None:
        assert main(["cloud", "submit", "GET", "/subscriptions"]) == 2
        assert mocked_providers.requests == []

    @pytest.mark.parametrize("timeout", ["-1", "0", "nan", "inf"])
    def test_bad_wait_timeout_sends_nothing(self, mocked_providers, capsys, timeout) -> None:
        mocked_providers.add("POST", "/v1/subscriptions", {"taskId": "t-1"})

        code = main(["cloud", "submit", "POST", "/subscriptions", "--wait", "--wait-timeout", timeout])

        assert code == 2
        assert "timeout" in capsys.readouterr().err
        assert mocked_providers.count("POST", "/v1/subscriptions") == 0

    def test_enterprise_target_on_cloud(self, mocked_providers, capsys) -> None:
        mocked_providers.add("POST", "/v1/subscriptions", {"taskId": "t-1"})

        code = main(["cloud", "submit", "POST", "/subscriptions", "--target", "database"])

        assert code == 2
        assert "target" in capsys.readouterr().err
        assert mocked_providers.requests == []

    def test_missing_credentials(self, capsys) -> None:
        with patch.dict(os.environ, {}, clear=True):
            code = main(["enterprise", "submit", "POST", "/v1/bdbs"])
        assert code == 5


class TestTaskCommands:
    def test_get_text(self, mocked_providers, capsys) -> None:
        mocked_providers.add("GET", "/v1/tasks/t-1", {"status": "processing-in-progress", "progress": 40})

        code = main(["task", "get", "t-1", "--platform", "cloud"])

        out = capsys.readouterr().out
        assert code == 0
        assert "task t-1" in out
        assert "status:   processing-in-progress (processing)" in out
        assert "progress: 40%" in out

    def test_get_json(self, mocked_providers, capsys) -> None:
        mocked_providers.add("GET", "/v1/actions/a-1", {"status": "failed", "error": "no space"})

        code = main(["task", "get", "a-1", "--platform", "enterprise", "-o", "json"])

        data = json.loads(capsys.readouterr().out)
        assert code == 0
        assert data["state"] == "failed"
        assert data["reason"] == "no space"

    def test_bad_wait_interval(self, mocked_providers) -> None:
        code = main(["task", "wait", "t-1", "--platform", "cloud", "--wait-interval", "nan"])

        assert code == 2
        assert mocked_providers.requests == []

    @pytest.mark.parametrize("value", ["inf", "nan", "2.7"])
    def test_bad_integer_setting(self, mocked_providers, capsys, value) -> None:
        with patch.dict(os.environ, {"REDISOPS_BACKOFF_CEILING": value}):
            code = main(["task", "wait", "t-1", "--platform", "cloud"])

        assert code == 5
        assert "REDISOPS_BACKOFF_CEILING" in capsys.readouterr().err
        assert mocked_providers.requests == []

    def test_wait_timeout(self, mocked_providers, capsys) -> None:
        mocked_providers.add("GET", "/v1/tasks/t-1", {"status": "processing-in-progress"})

        code = main(
            [
                "task", "wait", "t-1", "--platform", "cloud",
                "--wait-timeout", "0.05", "--wait-interval", "0.01",
            ]
        )

        err = capsys.readouterr().err
        assert code == 4
        assert "redisops task wait t-1 --platform cloud --target task" in err


class TestRenderError:
    def test_platform_error(self) -> None:
        err = PlatformError("cloud", "Not found", status_code=404)
        assert render_error(err) == "Error: [cloud] HTTP 404: Not found"

    def test_task_failed(self) -> None:
        err = TaskFailed("Disk full", platform="enterprise", raw_state="failed")
        assert render_error(err).splitlines() == ["Error: [enterprise] Disk full", "  state: failed"]

    def test_timeout_hint_without_handle(self) -> None:
        text = render_error(TaskTimeout(61, 60, platform="cloud"))
        assert "elapsed: 61s, timeout: 60s" in text
        assert "--wait-timeout" in text
        assert "resume with" not in text

    def test_timeout_hint_with_handle(self) -> None:
        handle = OperationHandle(Platform.ENTERPRISE, "3", PollTarget.DATABASE)
        text = render_error(TaskTimeout(61, 60, platform="enterprise"), handle=handle)
        assert "redisops task wait 3 --platform enterprise --target database" in text
