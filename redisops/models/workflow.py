"""Workflow step and result models.

A workflow is an ordered list of submit-and-wait steps.  Each step's
``submit`` callable receives the outcomes of the steps already completed,
so a newly created subscription id can feed the next step's request.
The result is truncated at the first failure and is never rolled back:
operators decide on manual cleanup from the steps that did complete.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from redisops.core.exceptions import RedisOpsError
    from redisops.models.operation import OperationHandle, PollConfig


@dataclass(frozen=True, slots=True)
class StepOutcome:
    """A step that reached ``Completed``.

    Attributes:
        name: Step name.
        handle: Handle the step's submit returned.
        result: Completed result payload.
        elapsed: Seconds spent waiting on this step.
        poll_count: Fetches issued for this step.
    """

    name: str
    handle: OperationHandle
    result: Any
    elapsed: float = 0.0
    poll_count: int = 0


#: ``submit`` receives the outcomes of earlier steps and returns a handle.
SubmitFn = Callable[[Sequence[StepOutcome]], "OperationHandle"]


@dataclass(frozen=True, slots=True)
class WorkflowStep:
    """One submit-and-wait unit.

    Attributes:
        name: Human-readable step name (used in logs and reports).
        submit: Callable issuing the mutating request.
        config: Poll budget for this step; ``None`` uses the platform default.
        finalize: Optional callable turning the completed result into the
            step's recorded result (e.g. fetching the created resource).
    """

    name: str
    submit: SubmitFn
    config: PollConfig | None = None
    finalize: Callable[[Any], Any] | None = None


@dataclass(slots=True)
class WorkflowResult:
    """Ordered outcomes, truncated at the first failing step.

    Attributes:
        steps: Outcomes of the steps that completed, in order.
        error: The error that stopped the workflow, if any.
        failed_step: Name of the step that failed, if any.
        total_steps: Number of steps the workflow was given.
    """

    steps: list[StepOutcome] = field(default_factory=list)
    error: RedisOpsError | None = None
    failed_step: str = ""
    total_steps: int = 0

    @property
    def succeeded(self) -> bool:
        return self.error is None and len(self.steps) == self.total_steps

    @property
    def last_result(self) -> Any:
        return self.steps[-1].result if self.steps else None

    def to_dict(self) -> dict[str, Any]:
        return {
            "succeeded": self.succeeded,
            "completed_steps": [
                {
                    "name": s.name,
                    "handle": s.handle.to_dict(),
                    "result": s.result,
                    "elapsed_seconds": s.elapsed,
                    "poll_count": s.poll_count,
                }
                for s in self.steps
            ],
            "failed_step": self.failed_step,
            "error": self.error.to_error_dict() if self.error else None,
            "total_steps": self.total_steps,
        }
