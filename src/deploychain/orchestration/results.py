"""Result types for plan runs."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List

from deploychain.core.errors import (
    Cancelled,
    DeployChainError,
    ExitCode,
    ProvisioningFailed,
    describe_error,
)
from deploychain.plan.models import Identity, Plan, Step


class RunOutcome(str, Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"


class StepStatus(str, Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass
class StepRecord:
    """What happened to one attempted step."""

    name: str
    descriptor: str
    status: StepStatus
    identity: Identity = None
    duration_seconds: float = 0.0
    error: str | None = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "descriptor": self.descriptor,
            "status": self.status.value,
            "identity": self.identity,
            "duration_seconds": round(self.duration_seconds, 3),
            "error": self.error,
        }


@dataclass
class RunResult:
    """Result of running a plan: the registry so far plus the first failure, if any."""

    plan_name: str
    run_id: str
    outcome: RunOutcome
    registry: Dict[str, Identity] = field(default_factory=dict)
    failed_step: str | None = None
    error: DeployChainError | None = None
    steps: List[StepRecord] = field(default_factory=list)
    not_started: List[str] = field(default_factory=list)
    duration_seconds: float = 0.0

    @property
    def success(self) -> bool:
        """Whether every step was provisioned."""
        return self.outcome is RunOutcome.SUCCEEDED

    @property
    def exit_code(self) -> ExitCode:
        if self.error is not None:
            return self.error.exit_code
        return ExitCode.SUCCESS

    def to_dict(self) -> Dict[str, Any]:
        return {
            "plan": self.plan_name,
            "run_id": self.run_id,
            "outcome": self.outcome.value,
            "registry": dict(self.registry),
            "failed_step": self.failed_step,
            "error": describe_error(self.error),
            "steps": [record.to_dict() for record in self.steps],
            "not_started": list(self.not_started),
            "duration_seconds": round(self.duration_seconds, 3),
        }


class ResultCollector:
    """Aggregates step outcomes while a plan executes."""

    def __init__(self, plan: Plan, run_id: str) -> None:
        self._plan = plan
        self._run_id = run_id
        self._records: Dict[str, StepRecord] = {}
        self._started: Dict[str, float] = {}
        self._failure: ProvisioningFailed | None = None
        self._cancellation: Cancelled | None = None

    @property
    def halted(self) -> bool:
        """Whether a failure or cancellation has been recorded."""
        return self._failure is not None or self._cancellation is not None

    def record_started(self, step: Step) -> None:
        self._started[step.name] = time.monotonic()

    def record_success(self, step: Step, identity: Identity) -> None:
        self._records[step.name] = StepRecord(
            name=step.name,
            descriptor=step.descriptor.kind,
            status=StepStatus.SUCCEEDED,
            identity=identity,
            duration_seconds=self._elapsed(step),
        )

    def record_failure(self, step: Step, error: ProvisioningFailed) -> None:
        """Record a failed step; only the first failure becomes the run's failure."""
        self._records[step.name] = StepRecord(
            name=step.name,
            descriptor=step.descriptor.kind,
            status=StepStatus.FAILED,
            duration_seconds=self._elapsed(step),
            error=str(error.cause),
        )
        if self._failure is None:
            self._failure = error

    def record_cancelled(self, error: Cancelled) -> None:
        if self._cancellation is None and self._failure is None:
            self._cancellation = error

    def finalize(self, registry: Dict[str, Identity], duration: float) -> RunResult:
        """Return the final result for the registry as it stands."""
        if self._failure is not None:
            outcome = RunOutcome.FAILED
            error: DeployChainError | None = self._failure
        elif self._cancellation is not None:
            outcome = RunOutcome.CANCELLED
            error = self._cancellation
        else:
            outcome = RunOutcome.SUCCEEDED
            error = None

        attempted = [self._records[n] for n in self._plan.step_names if n in self._records]
        return RunResult(
            plan_name=self._plan.name,
            run_id=self._run_id,
            outcome=outcome,
            registry=registry,
            failed_step=self._failure.step_name if self._failure else None,
            error=error,
            steps=attempted,
            not_started=[n for n in self._plan.step_names if n not in self._records],
            duration_seconds=duration,
        )

    def _elapsed(self, step: Step) -> float:
        started = self._started.pop(step.name, None)
        return time.monotonic() - started if started is not None else 0.0
