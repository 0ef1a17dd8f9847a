"""Execution engine for provisioning plans."""

from __future__ import annotations

import asyncio
import inspect
import time
import uuid
from typing import Any, Dict, List

from deploychain.core.errors import (
    Cancelled,
    ProvisioningClientError,
    ProvisioningFailed,
    UnresolvedReference,
)
from deploychain.logging import bind_context
from deploychain.orchestration.cancellation import CancellationToken
from deploychain.orchestration.registry import IdentityRegistry
from deploychain.orchestration.results import ResultCollector, RunResult
from deploychain.plan.models import Identity, LiteralArg, Plan, Step
from deploychain.plan.validator import validate_plan
from deploychain.provisioning.base import ProvisioningClient


class Orchestrator:
    """Runs a plan's steps in dependency order against a provisioning client.

    With ``max_concurrency=1`` steps run strictly one after another. A higher
    value lets steps with no dependency relation run side by side; a step
    still never starts before every step it references has committed.
    """

    def __init__(
        self,
        client: ProvisioningClient,
        *,
        max_concurrency: int = 1,
        run_id: str | None = None,
    ) -> None:
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self._client = client
        self._max_concurrency = max_concurrency
        self._run_id = run_id

    async def execute(
        self,
        plan: Plan,
        *,
        cancel_token: CancellationToken | None = None,
    ) -> RunResult:
        """Validate, then provision every step, stopping at the first failure."""
        validate_plan(plan)

        run_id = self._run_id or uuid.uuid4().hex[:12]
        log = bind_context(plan=plan.name, run_id=run_id)
        registry = IdentityRegistry()
        collector = ResultCollector(plan, run_id)
        started = time.monotonic()

        log.info(
            "run_started",
            steps=len(plan),
            max_concurrency=self._max_concurrency,
        )

        if self._max_concurrency == 1:
            await self._run_sequential(plan, registry, collector, cancel_token, run_id, log)
        else:
            await self._run_concurrent(plan, registry, collector, cancel_token, run_id, log)

        result = collector.finalize(registry.snapshot(), time.monotonic() - started)
        log.info(
            "run_finished",
            outcome=result.outcome.value,
            provisioned=len(result.registry),
            failed_step=result.failed_step,
            duration_seconds=round(result.duration_seconds, 3),
        )
        return result

    async def _run_sequential(
        self,
        plan: Plan,
        registry: IdentityRegistry,
        collector: ResultCollector,
        cancel_token: CancellationToken | None,
        run_id: str,
        log: Any,
    ) -> None:
        for step in plan.steps:
            if cancel_token is not None and cancel_token.cancelled:
                self._cancel(collector, cancel_token, step, log)
                return

            collector.record_started(step)
            try:
                identity = await self._provision(step, registry, run_id, log)
            except ProvisioningFailed as exc:
                collector.record_failure(step, exc)
                return

            registry.put(step.name, identity)
            collector.record_success(step, identity)

    async def _run_concurrent(
        self,
        plan: Plan,
        registry: IdentityRegistry,
        collector: ResultCollector,
        cancel_token: CancellationToken | None,
        run_id: str,
        log: Any,
    ) -> None:
        order = {name: index for index, name in enumerate(plan.step_names)}
        pending: List[Step] = list(plan.steps)
        running: Dict[asyncio.Task, Step] = {}
        fatal: BaseException | None = None

        while pending or running:
            if pending and not collector.halted and fatal is None:
                if cancel_token is not None and cancel_token.cancelled:
                    self._cancel(collector, cancel_token, pending[0], log)
                else:
                    for step in list(pending):
                        if len(running) >= self._max_concurrency:
                            break
                        if all(ref in registry for ref in step.references):
                            pending.remove(step)
                            collector.record_started(step)
                            task = asyncio.create_task(
                                self._provision(step, registry, run_id, log)
                            )
                            running[task] = step

            if not running:
                if pending and not collector.halted and fatal is None:
                    # Validation guarantees progress; getting here is a defect.
                    step = pending[0]
                    missing = next(ref for ref in step.references if ref not in registry)
                    raise UnresolvedReference(step.name, missing)
                break

            done, _ = await asyncio.wait(running, return_when=asyncio.FIRST_COMPLETED)
            for task in sorted(done, key=lambda t: order[running[t].name]):
                step = running.pop(task)
                exc = task.exception()
                if exc is None:
                    identity = task.result()
                    registry.put(step.name, identity)
                    collector.record_success(step, identity)
                elif isinstance(exc, ProvisioningFailed):
                    collector.record_failure(step, exc)
                elif fatal is None:
                    fatal = exc

        if fatal is not None:
            raise fatal

    async def _provision(
        self,
        step: Step,
        registry: IdentityRegistry,
        run_id: str,
        log: Any,
    ) -> Identity:
        args = resolve_args(step, registry)
        key = f"{run_id}:{step.name}"
        log.info("step_started", step=step.name, descriptor=step.descriptor.kind)

        try:
            identity = await self._call_client(step, args, key)
            if identity is None or identity == "":
                raise ProvisioningClientError(
                    f"Client returned no identity for '{step.descriptor.kind}'"
                )
        except Exception as exc:
            log.error(
                "step_failed",
                step=step.name,
                descriptor=step.descriptor.kind,
                error_type=type(exc).__name__,
                error=str(exc),
            )
            raise ProvisioningFailed(step.name, exc) from exc

        log.info("step_succeeded", step=step.name, identity=str(identity))
        return identity

    async def _call_client(self, step: Step, args: List[Any], key: str) -> Identity:
        provision = self._client.provision
        if inspect.iscoroutinefunction(provision):
            return await provision(step.descriptor, args, idempotency_key=key)

        result = await asyncio.to_thread(provision, step.descriptor, args, idempotency_key=key)
        if inspect.isawaitable(result):
            result = await result
        return result

    def _cancel(
        self,
        collector: ResultCollector,
        cancel_token: CancellationToken,
        next_step: Step,
        log: Any,
    ) -> None:
        log.warning("run_cancelled", reason=cancel_token.reason, next_step=next_step.name)
        collector.record_cancelled(Cancelled(cancel_token.reason, next_step=next_step.name))


def resolve_args(step: Step, registry: IdentityRegistry) -> List[Any]:
    """Replace every reference with the identity recorded for it."""
    resolved: List[Any] = []
    for arg in step.args:
        if isinstance(arg, LiteralArg):
            resolved.append(arg.value)
        elif arg.step in registry:
            resolved.append(registry.get(arg.step))
        else:
            raise UnresolvedReference(step.name, arg.step)
    return resolved


def run_plan(
    plan: Plan,
    client: ProvisioningClient,
    *,
    max_concurrency: int = 1,
    cancel_token: CancellationToken | None = None,
    run_id: str | None = None,
) -> RunResult:
    """Synchronous entry point: run a plan to completion."""
    orchestrator = Orchestrator(client, max_concurrency=max_concurrency, run_id=run_id)
    return asyncio.run(orchestrator.execute(plan, cancel_token=cancel_token))
