"""Command line front-end.

Usage::

    redisops cloud submit POST /subscriptions/12/databases --data @db.json --wait
    redisops enterprise submit POST /v1/bdbs --data '{"name": "cache"}' --target database --wait
    redisops task get 5f3a... --platform cloud
    redisops task wait 5f3a... --platform cloud --wait-timeout 900

Exit codes: 0 completed, 1 platform error, 2 validation / usage,
3 task failed, 4 timed out, 5 configuration, 130 cancelled.
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import signal
import sys
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Any

from redisops import __version__
from redisops.core.config import PollSettings
from redisops.core.constants import EXIT_CANCELLED, EXIT_OK
from redisops.core.exceptions import RedisOpsError, TaskFailed, TaskTimeout, ValidationError
from redisops.core.session import resolve_session
from redisops.models.operation import (
    OperationHandle,
    OperationRequest,
    Platform,
    PollConfig,
    PollTarget,
)
from redisops.models.payloads import OperationReport
from redisops.operations.async_ops import poll_handle, submit_no_wait
from redisops.orchestrators.normalizer import normalize
from redisops.providers.factory import get_provider
from redisops.utils.sinks import STATE_ICONS, BufferingSink, TerminalSink, fanout

if TYPE_CHECKING:
    from collections.abc import Iterator

    from redisops.orchestrators.poller import PollResult
    from redisops.providers.base import PlatformProvider

logger = logging.getLogger("redisops.cli")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _configure_logging(verbose: int) -> None:
    if verbose >= 2:
        level = logging.DEBUG
    elif verbose == 1:
        level = logging.INFO
    else:
        level = getattr(logging, os.getenv("REDISOPS_LOG_LEVEL", "WARNING").upper(), logging.WARNING)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def _parse_data(raw: str | None) -> Any:
    """Parse ``--data`` as inline JSON or ``@path`` to a JSON file."""
    if raw is None:
        return None
    text = raw
    if raw.startswith("@"):
        path = Path(raw[1:])
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise ValidationError(f"Cannot read --data file {path}: {exc}") from exc
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise ValidationError(f"--data is not valid JSON: {exc.msg} (line {exc.lineno})") from exc


def _parse_target(raw: str | None) -> PollTarget | None:
    return PollTarget(raw) if raw else None


@contextmanager
def _interrupt_cancels(token: threading.Event) -> Iterator[None]:
    """Turn Ctrl-C into cooperative cancellation for the duration of a wait."""
    if threading.current_thread() is not threading.main_thread():
        yield
        return

    def _handler(_signum: int, _frame: object) -> None:
        token.set()

    previous = signal.signal(signal.SIGINT, _handler)
    try:
        yield
    finally:
        signal.signal(signal.SIGINT, previous)


def _print_json(payload: Any) -> None:
    sys.stdout.write(json.dumps(payload, indent=2, default=str) + "\n")


def render_error(error: RedisOpsError, *, handle: OperationHandle | None = None) -> str:
    """Render *error* for the terminal (platform, raw state, timeout hint)."""
    lines = [f"Error: {error}"]
    if error.platform and not str(error).startswith("["):
        lines[0] = f"Error: [{error.platform}] {error}"
    if isinstance(error, TaskFailed) and error.raw_state:
        lines.append(f"  state: {error.raw_state}")
    if isinstance(error, TaskTimeout):
        lines.append(f"  elapsed: {error.elapsed:.0f}s, timeout: {error.timeout:.0f}s")
        hint = "  The operation may still complete. Re-run with a larger --wait-timeout"
        if handle is not None:
            hint += (
                f", or resume with: redisops task wait {handle.id} "
                f"--platform {handle.platform.value} --target {handle.target.value}"  # type: ignore[union-attr]
            )
        lines.append(hint)
    return "\n".join(lines)


def _build_provider(args: argparse.Namespace, platform: Platform) -> tuple[PlatformProvider, PollSettings]:
    settings = PollSettings.from_env()
    session = resolve_session(platform, args.profile or "", timeout_s=settings.http_timeout_s)
    return get_provider(session), settings


def _wait_config(args: argparse.Namespace, settings: PollSettings, platform: Platform) -> PollConfig:
    """Resolve the wait flags into a ``PollConfig`` before any request is sent."""
    return settings.poll_config(platform, interval=args.wait_interval, timeout=args.wait_timeout)


def _wait_and_report(
    args: argparse.Namespace,
    provider: PlatformProvider,
    handle: OperationHandle,
    config: PollConfig,
) -> int:
    token = threading.Event()
    buffer = BufferingSink()
    sink = buffer if args.output == "json" else fanout(buffer, TerminalSink())
    with _interrupt_cancels(token):
        outcome = poll_handle(provider, handle, config, sink, token)

    if args.output == "json":
        _print_json(_report(provider, handle, outcome, buffer).to_dict())
    elif outcome.error is None:
        _print_json(outcome.result)

    if outcome.error is not None:
        if args.output != "json":
            sys.stderr.write(render_error(outcome.error, handle=handle) + "\n")
        return outcome.error.exit_code
    return EXIT_OK


def _report(
    provider: PlatformProvider,
    handle: OperationHandle,
    outcome: PollResult,
    buffer: BufferingSink,
) -> OperationReport:
    return OperationReport(
        status=outcome.state.kind.value,
        platform=provider.name,
        handle=handle.to_dict(),
        elapsed_seconds=outcome.elapsed,
        poll_count=outcome.poll_count,
        result=outcome.result,
        error=outcome.error.to_error_dict() if outcome.error else None,
        events=buffer.events,
    )


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def cmd_submit(args: argparse.Namespace) -> int:
    platform = Platform(args.platform)
    request = OperationRequest(
        args.method, args.path, _parse_data(args.data), target=_parse_target(args.target)
    )
    provider, settings = _build_provider(args, platform)
    with provider:
        config = _wait_config(args, settings, platform) if args.wait else None
        handle = submit_no_wait(provider, request)
        if config is None:
            if args.output == "json":
                _print_json(
                    OperationReport(
                        status="submitted", platform=provider.name, handle=handle.to_dict()
                    ).to_dict()
                )
            else:
                _print_json(handle.to_dict())
                sys.stderr.write(
                    f"Submitted. Follow with: redisops task wait {handle.id} "
                    f"--platform {platform.value} --target {handle.target.value}\n"  # type: ignore[union-attr]
                )
            return EXIT_OK
        return _wait_and_report(args, provider, handle, config)


def cmd_task_get(args: argparse.Namespace) -> int:
    platform = Platform(args.platform)
    handle = OperationHandle(platform, args.id, _parse_target(args.target))
    provider, _settings = _build_provider(args, platform)
    with provider:
        snapshot = provider.fetch(handle)
    state = normalize(platform, snapshot.raw_state, snapshot.error_payload, snapshot.result_payload)

    if args.output == "json":
        _print_json(
            {
                "handle": handle.to_dict(),
                "raw_state": snapshot.raw_state,
                "state": state.kind.value,
                "progress": snapshot.progress,
                "reason": state.reason,
                "result": snapshot.result_payload,
                "error": snapshot.error_payload,
            }
        )
        return EXIT_OK

    icon = STATE_ICONS.get(state.kind.value, "•")
    lines = [
        f"{icon} {handle.target.value} {handle.id}",  # type: ignore[union-attr]
        f"  platform: {platform.value}",
        f"  status:   {snapshot.raw_state or 'unknown'} ({state.kind.value})",
    ]
    if snapshot.progress is not None:
        lines.append(f"  progress: {snapshot.progress:.0f}%")
    if state.reason:
        lines.append(f"  reason:   {state.reason}")
    sys.stdout.write("\n".join(lines) + "\n")
    if snapshot.result_payload is not None and state.is_terminal:
        _print_json(snapshot.result_payload)
    return EXIT_OK


def cmd_task_wait(args: argparse.Namespace) -> int:
    platform = Platform(args.platform)
    handle = OperationHandle(platform, args.id, _parse_target(args.target))
    provider, settings = _build_provider(args, platform)
    with provider:
        config = _wait_config(args, settings, platform)
        return _wait_and_report(args, provider, handle, config)


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


def _add_common(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--profile", default=None, help="Credential profile name")
    parser.add_argument(
        "--output", "-o", choices=("text", "json"), default="text", help="Output format"
    )


def _add_wait_flags(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--wait-timeout", type=float, default=None, help="Maximum seconds to wait"
    )
    parser.add_argument(
        "--wait-interval",
        "--poll-interval",
        dest="wait_interval",
        type=float,
        default=None,
        help="Seconds between status polls",
    )


def _add_target(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--target",
        choices=[t.value for t in PollTarget],
        default=None,
        help="Status shape to poll (default: task for cloud, action for enterprise)",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="redisops", description="Submit and wait on Cloud / Enterprise async operations"
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "-v", "--verbose", action="count", default=0, help="Increase log verbosity (-vv for debug)"
    )
    sub = parser.add_subparsers(dest="command", required=True)

    for platform in Platform:
        plat = sub.add_parser(platform.value, help=f"{platform.value} operations")
        plat_sub = plat.add_subparsers(dest="action", required=True)
        submit = plat_sub.add_parser("submit", help="Submit a mutating request")
        submit.add_argument("method", help="HTTP method (POST, PUT, PATCH, DELETE)")
        submit.add_argument("path", help="API path, e.g. /subscriptions")
        submit.add_argument("--data", "-d", default=None, help="JSON body, or @file")
        submit.add_argument("--wait", action="store_true", help="Wait for completion")
        _add_target(submit)
        _add_wait_flags(submit)
        _add_common(submit)
        submit.set_defaults(func=cmd_submit, platform=platform.value)

    task = sub.add_parser("task", help="Inspect or wait on an existing operation")
    task_sub = task.add_subparsers(dest="action", required=True)

    get = task_sub.add_parser("get", help="Show the current status once")
    get.add_argument("id", help="Task id, action uid, or resource uid")
    get.add_argument("--platform", choices=[p.value for p in Platform], required=True)
    _add_target(get)
    _add_common(get)
    get.set_defaults(func=cmd_task_get)

    wait_cmd = task_sub.add_parser("wait", help="Poll until a terminal state")
    wait_cmd.add_argument("id", help="Task id, action uid, or resource uid")
    wait_cmd.add_argument("--platform", choices=[p.value for p in Platform], required=True)
    _add_target(wait_cmd)
    _add_wait_flags(wait_cmd)
    _add_common(wait_cmd)
    wait_cmd.set_defaults(func=cmd_task_wait)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)
    try:
        return args.func(args)
    except RedisOpsError as exc:
        logger.debug("Command failed | code=%s | error=%s", exc.code, exc)
        sys.stderr.write(render_error(exc) + "\n")
        return exc.exit_code
    except KeyboardInterrupt:
        sys.stderr.write("Error: interrupted\n")
        return EXIT_CANCELLED


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
