"""Provisioning client for an HTTP provisioning gateway."""

from __future__ import annotations

from typing import Any, Mapping, Sequence

import structlog
from circuitbreaker import CircuitBreakerError

from deploychain.core.errors import ProvisioningClientError
from deploychain.plan.models import ComponentDescriptor
from deploychain.provisioning.registry import register_client
from deploychain.provisioning.transport import (
    GatewayRejected,
    GatewayTransport,
    TransientGatewayError,
)

logger = structlog.get_logger()

DEFAULT_PROVISION_PATH = "/v1/provision"
DEFAULT_USER_AGENT = "deploychain-http-client/0.1.0"


def _identity_from(body: Any) -> str | None:
    if not isinstance(body, Mapping):
        return None
    identity = body.get("identity") or body.get("address")
    return str(identity) if identity else None


class HTTPProvisioningClient:
    """POSTs each provisioning request to a gateway and reads back the identity.

    Request body: {"descriptor": "<kind>", "args": [...]}
    Response body: {"identity": "..."} (or {"address": "..."})

    A 409 carrying an identity means the gateway already provisioned this
    idempotency key; that identity is returned as the result.
    """

    name = "http"

    def __init__(
        self,
        url: str,
        token: str | None = None,
        *,
        timeout: float = 300.0,
        path: str = DEFAULT_PROVISION_PATH,
        user_agent: str = DEFAULT_USER_AGENT,
    ) -> None:
        headers = {"User-Agent": user_agent}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._transport = GatewayTransport(url, timeout=timeout, headers=headers)
        self._path = path if path.startswith("/") else f"/{path}"

    @property
    def url(self) -> str:
        return f"{self._transport.base_url}{self._path}"

    async def provision(
        self,
        descriptor: ComponentDescriptor,
        args: Sequence[Any],
        *,
        idempotency_key: str | None = None,
    ) -> str:
        payload = {"descriptor": descriptor.kind, "args": list(args)}

        try:
            data = await self._transport.submit(
                self._path, payload, idempotency_key=idempotency_key
            )
        except GatewayRejected as exc:
            replayed = _identity_from(exc.body) if exc.status_code == 409 else None
            if replayed is None:
                raise ProvisioningClientError(
                    f"Provisioning gateway rejected {descriptor.kind}: {exc}",
                    {"descriptor": descriptor.kind, "status": exc.status_code},
                ) from exc
            logger.info(
                "gateway_replayed",
                descriptor=descriptor.kind,
                idempotency_key=idempotency_key,
                identity=replayed,
            )
            return replayed
        except (TransientGatewayError, CircuitBreakerError) as exc:
            raise ProvisioningClientError(
                f"Provisioning gateway unavailable for {descriptor.kind}: {exc}",
                {"descriptor": descriptor.kind},
            ) from exc

        identity = _identity_from(data)
        if identity is None:
            raise ProvisioningClientError(
                f"Provisioning gateway returned no identity for {descriptor.kind}",
                {"descriptor": descriptor.kind},
            )

        logger.debug("gateway_provisioned", descriptor=descriptor.kind, identity=identity)
        return identity


register_client(
    HTTPProvisioningClient.name,
    HTTPProvisioningClient,
    description="Submit provisioning requests to an HTTP gateway",
)
