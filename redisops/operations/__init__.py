"""Entry points used by the CLI and AI tool handlers.

- async_ops: submit_no_wait / wait / submit_and_wait / run_workflow
- cloud_workflows: Cloud database and subscription helpers
- enterprise_workflows: Enterprise database, upgrade, backup, import helpers
- tool_handlers: buffered, never-raising tool responses
"""

from redisops.operations.async_ops import (
    poll_handle,
    run_workflow,
    submit_and_wait,
    submit_no_wait,
    wait,
)

__all__ = [
    "poll_handle",
    "run_workflow",
    "submit_and_wait",
    "submit_no_wait",
    "wait",
]
