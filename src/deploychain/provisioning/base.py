from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol, Sequence, runtime_checkable

from deploychain.plan.models import ComponentDescriptor, Identity


@dataclass(frozen=True)
class ProvisionCall:
    """A provisioning request as a client received it."""

    descriptor: ComponentDescriptor
    args: tuple[Any, ...]
    idempotency_key: str | None = None


@runtime_checkable
class ProvisioningClient(Protocol):
    """Contract between the orchestrator and whatever actually provisions components.

    ``provision`` may be a coroutine function or a plain blocking callable.
    It returns the new component's identity or raises; the orchestrator
    calls it at most once per step and never retries.
    """

    def provision(
        self,
        descriptor: ComponentDescriptor,
        args: Sequence[Any],
        *,
        idempotency_key: str | None = None,
    ) -> Identity:
        ...
