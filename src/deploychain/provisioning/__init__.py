"""Provisioning clients and built-in registrations."""

# Import built-in clients for side effects (registration)
from deploychain.provisioning import dry_run as _dry_run  # noqa: F401
from deploychain.provisioning import http as _http  # noqa: F401
from deploychain.provisioning.base import ProvisionCall, ProvisioningClient
from deploychain.provisioning.dry_run import DryRunProvisioningClient
from deploychain.provisioning.http import HTTPProvisioningClient
from deploychain.provisioning.registry import (
    create_client,
    list_clients,
    register_client,
)

__all__ = [
    "DryRunProvisioningClient",
    "HTTPProvisioningClient",
    "ProvisionCall",
    "ProvisioningClient",
    "create_client",
    "list_clients",
    "register_client",
]
