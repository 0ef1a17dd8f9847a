"""Dependency-ordered provisioning: engine, identity registry, run results."""

from deploychain.orchestration.cancellation import CancellationToken
from deploychain.orchestration.engine import Orchestrator, resolve_args, run_plan
from deploychain.orchestration.registry import IdentityRegistry
from deploychain.orchestration.results import (
    ResultCollector,
    RunOutcome,
    RunResult,
    StepRecord,
    StepStatus,
)
from deploychain.orchestration.state import load_registry, load_run_record, save_run_result

__all__ = [
    "CancellationToken",
    "IdentityRegistry",
    "Orchestrator",
    "ResultCollector",
    "RunOutcome",
    "RunResult",
    "StepRecord",
    "StepStatus",
    "load_registry",
    "load_run_record",
    "resolve_args",
    "run_plan",
    "save_run_result",
]
