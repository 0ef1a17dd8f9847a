"""Run-scoped identity registry."""

from __future__ import annotations

from typing import Dict, Iterator

from deploychain.core.errors import DuplicateIdentity, UnknownIdentity
from deploychain.plan.models import Identity


class IdentityRegistry:
    """Write-once mapping from step name to provisioned identity.

    Grows monotonically during one run and is never shared across runs.
    Insertion order is commit order.
    """

    def __init__(self) -> None:
        self._identities: Dict[str, Identity] = {}

    def put(self, name: str, identity: Identity) -> None:
        """Record an identity; fails if the name is already recorded."""
        if name in self._identities:
            raise DuplicateIdentity(name)
        self._identities[name] = identity

    def get(self, name: str) -> Identity:
        """Get a recorded identity; fails with UnknownIdentity if absent."""
        try:
            return self._identities[name]
        except KeyError:
            raise UnknownIdentity(name) from None

    def __contains__(self, name: object) -> bool:
        return name in self._identities

    def __len__(self) -> int:
        return len(self._identities)

    def __iter__(self) -> Iterator[str]:
        return iter(self._identities)

    def snapshot(self) -> Dict[str, Identity]:
        """Copy of the current contents."""
        return dict(self._identities)
