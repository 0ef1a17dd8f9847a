from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, List

from deploychain.core.errors import ConfigurationError

ClientFactory = Callable[..., Any]


@dataclass(frozen=True)
class ClientSpec:
    """Metadata describing a registered provisioning client."""

    name: str
    factory: ClientFactory
    description: str | None = None


class ClientRegistry:
    """Simple in-memory registry of provisioning client factories."""

    def __init__(self) -> None:
        self._clients: Dict[str, ClientSpec] = {}

    def register(
        self,
        name: str,
        factory: ClientFactory,
        *,
        description: str | None = None,
    ) -> None:
        if not name:
            raise ValueError("Client name is required")
        self._clients[name] = ClientSpec(name=name, factory=factory, description=description)

    def create(self, name: str, **kwargs: Any) -> Any:
        spec = self._clients.get(name)
        if spec is None:
            known = ", ".join(sorted(self._clients)) or "none"
            raise ConfigurationError(
                f"Provisioning client '{name}' is not registered (known: {known})",
                {"client": name},
            )
        try:
            return spec.factory(**kwargs)
        except TypeError as exc:
            raise ConfigurationError(
                f"Invalid options for provisioning client '{name}': {exc}",
                {"client": name},
            ) from exc

    def list(self) -> List[ClientSpec]:
        return list(self._clients.values())


client_registry = ClientRegistry()


def register_client(
    name: str,
    factory: ClientFactory,
    *,
    description: str | None = None,
) -> None:
    client_registry.register(name, factory, description=description)


def create_client(name: str, **kwargs: Any) -> Any:
    return client_registry.create(name, **kwargs)


def list_clients() -> List[ClientSpec]:
    return client_registry.list()
