"""Data models.

Defines the values that flow through the orchestration core:
- OperationHandle / OperationRequest: accepted and pending mutating requests
- StatusSnapshot / NormalizedState: raw and normalized status readings
- PollConfig: interval, timeout, and retry budget for one wait
- Progress events: push notifications from the poller
- WorkflowStep / WorkflowResult: multi-step provisioning
"""

from redisops.models.operation import (
    ModelValidationError,
    NormalizedState,
    OperationHandle,
    OperationRequest,
    Platform,
    PollConfig,
    PollTarget,
    StateKind,
    StatusSnapshot,
)
from redisops.models.workflow import StepOutcome, WorkflowResult, WorkflowStep

__all__ = [
    "ModelValidationError",
    "NormalizedState",
    "OperationHandle",
    "OperationRequest",
    "Platform",
    "PollConfig",
    "PollTarget",
    "StateKind",
    "StatusSnapshot",
    "StepOutcome",
    "WorkflowResult",
    "WorkflowStep",
]
