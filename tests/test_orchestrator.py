"""Tests for orchestration/engine.py.

Tests for dependency-ordered provisioning: identity propagation, fail-fast
behaviour, validation before side effects, cancellation, and bounded
concurrency across independent steps.
"""

import threading

import pytest
from deploychain.core.errors import (
    Cancelled,
    ExitCode,
    InvalidPlan,
    ProvisioningClientError,
    ProvisioningFailed,
    UnresolvedReference,
)
from deploychain.orchestration.cancellation import CancellationToken
from deploychain.orchestration.engine import Orchestrator, resolve_args, run_plan
from deploychain.orchestration.registry import IdentityRegistry
from deploychain.orchestration.results import RunOutcome, StepStatus
from deploychain.plan.loader import load_plan
from deploychain.plan.models import Plan, Reference, Step


def _plan(*steps, name="test-plan"):
    return Plan(steps=tuple(steps), name=name)


@pytest.fixture
def abc_plan():
    """A, then B using A, then C using A and B."""
    return _plan(
        Step.of("A"),
        Step.of("B", Reference("A")),
        Step.of("C", Reference("A"), Reference("B")),
    )


class TestSequentialRun:
    """Tests for the default one-step-at-a-time mode."""

    @pytest.mark.asyncio
    async def test_identities_flow_to_dependents(self, make_client, abc_plan):
        client = make_client()

        result = await Orchestrator(client).execute(abc_plan)

        assert result.success
        assert result.outcome == RunOutcome.SUCCEEDED
        assert result.registry == {"A": "0xA", "B": "0xB", "C": "0xC"}
        assert [call.args for call in client.calls] == [
            (),
            ("0xA",),
            ("0xA", "0xB"),
        ]
        assert result.failed_step is None
        assert result.error is None
        assert result.exit_code == ExitCode.SUCCESS

    @pytest.mark.asyncio
    async def test_literals_and_references_keep_argument_order(self, make_client):
        plan = _plan(
            Step.of("Token"),
            Step.of("Registry", 1000, Reference("Token"), "label", True),
        )
        client = make_client()

        await Orchestrator(client).execute(plan)

        assert client.calls[1].args == (1000, "0xToken", "label", True)

    @pytest.mark.asyncio
    async def test_descriptor_is_passed_not_step_name(self, make_client):
        plan = _plan(Step.of("fee-registry", 10, descriptor="SmartFundRegistry"))
        client = make_client()

        result = await Orchestrator(client).execute(plan)

        assert client.called == ["SmartFundRegistry"]
        assert result.registry == {"fee-registry": "0xSmartFundRegistry"}

    @pytest.mark.asyncio
    async def test_registry_preserves_commit_order(self, make_client, abc_plan):
        result = await Orchestrator(make_client()).execute(abc_plan)

        assert list(result.registry) == ["A", "B", "C"]
        assert [record.name for record in result.steps] == ["A", "B", "C"]
        assert all(record.status == StepStatus.SUCCEEDED for record in result.steps)

    @pytest.mark.asyncio
    async def test_empty_plan_succeeds(self, make_client):
        client = make_client()

        result = await Orchestrator(client).execute(_plan())

        assert result.success
        assert result.registry == {}
        assert client.calls == []

    @pytest.mark.asyncio
    async def test_idempotency_key_per_step(self, make_client, abc_plan):
        client = make_client()

        result = await Orchestrator(client, run_id="run-1").execute(abc_plan)

        assert result.run_id == "run-1"
        assert [call.idempotency_key for call in client.calls] == [
            "run-1:A",
            "run-1:B",
            "run-1:C",
        ]

    @pytest.mark.asyncio
    async def test_generated_run_id(self, make_client, abc_plan):
        client = make_client()

        result = await Orchestrator(client).execute(abc_plan)

        assert result.run_id
        assert client.calls[0].idempotency_key == f"{result.run_id}:A"

    @pytest.mark.asyncio
    async def test_blocking_client_runs_in_worker_thread(self, abc_plan):
        class BlockingClient:
            def __init__(self):
                self.threads = []

            def provision(self, descriptor, args, *, idempotency_key=None):
                self.threads.append(threading.get_ident())
                return f"sync-{descriptor.kind}"

        client = BlockingClient()

        result = await Orchestrator(client).execute(abc_plan)

        assert result.registry == {"A": "sync-A", "B": "sync-B", "C": "sync-C"}
        assert threading.get_ident() not in client.threads

    def test_run_plan_sync_entry_point(self, make_client, abc_plan):
        result = run_plan(abc_plan, make_client(), run_id="sync-run")

        assert result.success
        assert result.run_id == "sync-run"

    @pytest.mark.asyncio
    async def test_migration_plan(self, make_client, migration_plan_yaml):
        plan = load_plan(migration_plan_yaml)
        client = make_client()

        result = await Orchestrator(client).execute(plan)

        assert result.success
        assert len(result.registry) == 6
        assert client.calls[-1].args == (1000, "0xExchangePortal", "0xPermittedExchanges")
        assert client.calls[3].args == ("0x1111", "0x6666", "0xParaswapParams", "0xPoolPortal")


class TestFailFast:
    """A failed step halts the run and keeps what was already provisioned."""

    @pytest.mark.asyncio
    async def test_failure_stops_run(self, make_client, abc_plan):
        boom = RuntimeError("out of gas")
        client = make_client(failures={"B": boom})

        result = await Orchestrator(client).execute(abc_plan)

        assert not result.success
        assert result.outcome == RunOutcome.FAILED
        assert result.registry == {"A": "0xA"}
        assert result.failed_step == "B"
        assert client.called == ["A", "B"]
        assert result.not_started == ["C"]
        assert result.exit_code == ExitCode.PROVISIONING_FAILED

    @pytest.mark.asyncio
    async def test_failure_carries_cause(self, make_client, abc_plan):
        boom = RuntimeError("out of gas")
        client = make_client(failures={"B": boom})

        result = await Orchestrator(client).execute(abc_plan)

        assert isinstance(result.error, ProvisioningFailed)
        assert result.error.step_name == "B"
        assert result.error.cause is boom
        failed = result.steps[-1]
        assert failed.status == StepStatus.FAILED
        assert failed.error == "out of gas"

    @pytest.mark.asyncio
    async def test_first_step_failure_leaves_empty_registry(self, make_client, abc_plan):
        client = make_client(failures={"A": ConnectionError("node down")})

        result = await Orchestrator(client).execute(abc_plan)

        assert result.registry == {}
        assert result.failed_step == "A"
        assert result.not_started == ["B", "C"]

    @pytest.mark.asyncio
    async def test_missing_identity_is_a_failure(self, make_client, abc_plan):
        client = make_client(identities={"B": None})

        result = await Orchestrator(client).execute(abc_plan)

        assert result.failed_step == "B"
        assert isinstance(result.error.cause, ProvisioningClientError)
        assert client.called == ["A", "B"]

    @pytest.mark.asyncio
    async def test_empty_identity_is_a_failure(self, make_client, abc_plan):
        client = make_client(identities={"A": ""})

        result = await Orchestrator(client).execute(abc_plan)

        assert result.failed_step == "A"
        assert result.registry == {}


class TestValidationBeforeSideEffects:
    """Invalid plans are rejected before the client is ever called."""

    @pytest.mark.asyncio
    async def test_self_reference(self, make_client):
        client = make_client()
        plan = _plan(Step.of("A"), Step.of("B", Reference("B")))

        with pytest.raises(InvalidPlan):
            await Orchestrator(client).execute(plan)

        assert client.calls == []

    @pytest.mark.asyncio
    async def test_duplicate_name(self, make_client):
        client = make_client()
        plan = _plan(Step.of("A"), Step.of("A"))

        with pytest.raises(InvalidPlan):
            await Orchestrator(client).execute(plan)

        assert client.calls == []

    @pytest.mark.asyncio
    async def test_forward_reference(self, make_client):
        client = make_client()
        plan = _plan(Step.of("A"), Step.of("B", Reference("C")), Step.of("C"))

        with pytest.raises(InvalidPlan) as exc_info:
            await Orchestrator(client).execute(plan)

        assert exc_info.value.step == "B"
        assert client.calls == []

    @pytest.mark.asyncio
    async def test_unknown_reference_in_concurrent_mode(self, make_client):
        client = make_client()
        plan = _plan(Step.of("A"), Step.of("B", Reference("Nope")))

        with pytest.raises(InvalidPlan):
            await Orchestrator(client, max_concurrency=4).execute(plan)

        assert client.calls == []

    def test_invalid_concurrency(self, make_client):
        with pytest.raises(ValueError):
            Orchestrator(make_client(), max_concurrency=0)


class TestCancellation:
    """Cancellation is observed between steps, never mid-call."""

    @pytest.mark.asyncio
    async def test_cancel_before_start(self, make_client, abc_plan):
        client = make_client()
        token = CancellationToken()
        token.cancel()

        result = await Orchestrator(client).execute(abc_plan, cancel_token=token)

        assert result.outcome == RunOutcome.CANCELLED
        assert result.registry == {}
        assert client.calls == []

    @pytest.mark.asyncio
    async def test_cancel_during_step_lets_it_finish(self, make_client, abc_plan):
        token = CancellationToken()

        def cancel_after_a(kind):
            if kind == "A":
                token.cancel("operator pressed Ctrl+C")

        client = make_client(on_call=cancel_after_a)

        result = await Orchestrator(client).execute(abc_plan, cancel_token=token)

        assert result.outcome == RunOutcome.CANCELLED
        assert result.registry == {"A": "0xA"}
        assert client.called == ["A"]
        assert isinstance(result.error, Cancelled)
        assert result.error.next_step == "B"
        assert result.error.reason == "operator pressed Ctrl+C"
        assert result.failed_step is None
        assert result.exit_code == ExitCode.CANCELLED

    @pytest.mark.asyncio
    async def test_cancel_after_last_step_is_success(self, make_client, abc_plan):
        token = CancellationToken()

        def cancel_on_last(kind):
            if kind == "C":
                token.cancel()

        client = make_client(on_call=cancel_on_last)

        result = await Orchestrator(client).execute(abc_plan, cancel_token=token)

        assert result.success

    @pytest.mark.asyncio
    async def test_cancel_in_concurrent_mode(self, make_client, abc_plan):
        token = CancellationToken()

        def cancel_after_a(kind):
            if kind == "A":
                token.cancel()

        client = make_client(on_call=cancel_after_a)

        result = await Orchestrator(client, max_concurrency=3).execute(
            abc_plan, cancel_token=token
        )

        assert result.outcome == RunOutcome.CANCELLED
        assert result.registry == {"A": "0xA"}
        assert result.error.next_step == "B"


class TestConcurrentRun:
    """Independent steps may overlap; dependents still wait for their inputs."""

    @pytest.mark.asyncio
    async def test_independent_steps_overlap(self, make_client):
        plan = _plan(
            Step.of("A"),
            Step.of("B"),
            Step.of("C"),
            Step.of("D", Reference("A"), Reference("B"), Reference("C")),
        )
        client = make_client(delays={"A": 0.05, "B": 0.05, "C": 0.05})

        result = await Orchestrator(client, max_concurrency=3).execute(plan)

        assert result.success
        assert client.max_in_flight == 3
        start_d = client.events.index(("start", "D"))
        for kind in ("A", "B", "C"):
            assert client.events.index(("end", kind)) < start_d
        assert client.calls[-1].args == ("0xA", "0xB", "0xC")

    @pytest.mark.asyncio
    async def test_concurrency_is_bounded(self, make_client):
        plan = _plan(*(Step.of(name) for name in "ABCDE"))
        client = make_client(delays={name: 0.02 for name in "ABCDE"})

        result = await Orchestrator(client, max_concurrency=2).execute(plan)

        assert result.success
        assert client.max_in_flight == 2

    @pytest.mark.asyncio
    async def test_registry_in_plan_order_despite_overlap(self, make_client):
        plan = _plan(Step.of("Slow"), Step.of("Fast"))
        client = make_client(delays={"Slow": 0.05})

        result = await Orchestrator(client, max_concurrency=2).execute(plan)

        assert result.registry == {"Slow": "0xSlow", "Fast": "0xFast"}
        assert [record.name for record in result.steps] == ["Slow", "Fast"]

    @pytest.mark.asyncio
    async def test_failure_stops_new_starts(self, make_client):
        plan = _plan(
            Step.of("A"),
            Step.of("B"),
            Step.of("C", Reference("A")),
        )
        client = make_client(
            failures={"B": RuntimeError("reverted")},
            delays={"A": 0.05},
        )

        result = await Orchestrator(client, max_concurrency=2).execute(plan)

        assert result.outcome == RunOutcome.FAILED
        assert result.failed_step == "B"
        # A was already in flight and is kept.
        assert result.registry == {"A": "0xA"}
        assert "C" not in client.called
        assert result.not_started == ["C"]

    @pytest.mark.asyncio
    async def test_dependent_never_starts_after_dependency_fails(self, make_client, abc_plan):
        client = make_client(failures={"A": RuntimeError("reverted")})

        result = await Orchestrator(client, max_concurrency=3).execute(abc_plan)

        assert client.called == ["A"]
        assert result.registry == {}


class TestResolveArgs:
    """Tests for reference resolution."""

    def test_resolves_in_order(self):
        registry = IdentityRegistry()
        registry.put("A", "0xA")
        step = Step.of("B", 1, Reference("A"), "x")

        assert resolve_args(step, registry) == [1, "0xA", "x"]

    def test_missing_identity_raises(self):
        step = Step.of("B", Reference("A"))

        with pytest.raises(UnresolvedReference) as exc_info:
            resolve_args(step, IdentityRegistry())

        assert exc_info.value.step_name == "B"
        assert exc_info.value.ref_name == "A"
