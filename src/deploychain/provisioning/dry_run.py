"""Rehearsal client that provisions nothing and hands back fake addresses."""

from __future__ import annotations

import hashlib
from typing import Any, List, Sequence

from deploychain.plan.models import ComponentDescriptor
from deploychain.provisioning.base import ProvisionCall
from deploychain.provisioning.registry import register_client


class DryRunProvisioningClient:
    """Records every request and returns a deterministic 20-byte hex address."""

    name = "dry-run"

    def __init__(self, *, seed: str = "deploychain") -> None:
        self._seed = seed
        self.calls: List[ProvisionCall] = []

    async def provision(
        self,
        descriptor: ComponentDescriptor,
        args: Sequence[Any],
        *,
        idempotency_key: str | None = None,
    ) -> str:
        call = ProvisionCall(descriptor, tuple(args), idempotency_key)
        self.calls.append(call)
        material = f"{self._seed}:{len(self.calls)}:{descriptor.kind}:{call.args!r}"
        return "0x" + hashlib.sha256(material.encode()).hexdigest()[:40]


register_client(
    DryRunProvisioningClient.name,
    DryRunProvisioningClient,
    description="Rehearse a plan without provisioning anything",
)
