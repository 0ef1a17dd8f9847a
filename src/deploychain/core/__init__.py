"""Core modules for deploychain - error taxonomy and exit codes."""

from deploychain.core.errors import (
    Cancelled,
    ConfigurationError,
    DeployChainError,
    DuplicateIdentity,
    ExitCode,
    InvalidPlan,
    PlanViolation,
    ProvisioningClientError,
    ProvisioningFailed,
    UnknownIdentity,
    UnresolvedReference,
    ViolationKind,
    describe_error,
    format_error_message,
    main_with_error_handling,
)

__all__ = [
    "ExitCode",
    "DeployChainError",
    "ConfigurationError",
    "InvalidPlan",
    "PlanViolation",
    "ViolationKind",
    "ProvisioningClientError",
    "ProvisioningFailed",
    "Cancelled",
    "UnresolvedReference",
    "UnknownIdentity",
    "DuplicateIdentity",
    "main_with_error_handling",
    "format_error_message",
    "describe_error",
]
