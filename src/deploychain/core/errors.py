"""
Unified error handling for deploychain.

Every failure a run can surface is a DeployChainError subclass carrying
the exit code the CLI reports for it.

Exit Codes:
- 0: Success (every step provisioned)
- 10: Configuration error (unknown environment or client)
- 11: Provisioning failed (partial side effects exist)
- 12: Invalid plan (rejected before any provisioning call)
- 127: Internal error (invariant breach, should never happen)
- 130: Cancelled (operator abort between steps)
"""

from __future__ import annotations

import functools
import sys
import traceback
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Any, Callable, Sequence, TypeVar

import structlog

logger = structlog.get_logger()


class ExitCode(IntEnum):
    """Standardized exit codes for CLI commands."""

    SUCCESS = 0
    CONFIG_ERROR = 10
    PROVISIONING_FAILED = 11
    INVALID_PLAN = 12
    INTERNAL_ERROR = 127
    CANCELLED = 130


class DeployChainError(Exception):
    """Base exception for deploychain errors with exit code support."""

    exit_code: ExitCode = ExitCode.INTERNAL_ERROR
    show_traceback: bool = False

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(DeployChainError):
    """Raised for configuration-related errors."""

    exit_code = ExitCode.CONFIG_ERROR


class ViolationKind(str, Enum):
    """Structural defects a plan can carry."""

    DUPLICATE_NAME = "duplicate_name"
    SELF_REFERENCE = "self_reference"
    FORWARD_REFERENCE = "forward_reference"
    UNKNOWN_REFERENCE = "unknown_reference"
    MISSING_NAME = "missing_name"
    MISSING_DESCRIPTOR = "missing_descriptor"
    INVALID_ARGUMENT = "invalid_argument"
    UNKNOWN_CONSTANT = "unknown_constant"
    MALFORMED = "malformed"


@dataclass(frozen=True)
class PlanViolation:
    """A single defect found in a plan."""

    kind: ViolationKind
    message: str
    step: str | None = None


class InvalidPlan(DeployChainError):
    """Raised when a plan is structurally defective. No side effects occurred."""

    exit_code = ExitCode.INVALID_PLAN

    def __init__(
        self,
        reason: str,
        *,
        step: str | None = None,
        kind: ViolationKind = ViolationKind.MALFORMED,
        violations: Sequence[PlanViolation] = (),
    ):
        self.step = step
        self.kind = kind
        self.violations = list(violations) or [PlanViolation(kind, reason, step)]
        details: dict[str, Any] = {"violation": kind.value}
        if step is not None:
            details["step"] = step
        super().__init__(reason, details)

    @classmethod
    def from_violations(cls, violations: Sequence[PlanViolation]) -> "InvalidPlan":
        first = violations[0]
        reason = first.message
        if len(violations) > 1:
            reason = f"{reason} (and {len(violations) - 1} more)"
        return cls(reason, step=first.step, kind=first.kind, violations=violations)


class ProvisioningClientError(DeployChainError):
    """Raised by provisioning clients when a request cannot be completed."""

    exit_code = ExitCode.PROVISIONING_FAILED


class ProvisioningFailed(DeployChainError):
    """A step's provisioning call failed; earlier steps remain provisioned."""

    exit_code = ExitCode.PROVISIONING_FAILED

    def __init__(self, step_name: str, cause: BaseException):
        self.step_name = step_name
        self.cause = cause
        super().__init__(
            f"Provisioning step '{step_name}' failed: {cause}",
            {"step": step_name, "cause_type": type(cause).__name__},
        )


class Cancelled(DeployChainError):
    """The operator aborted the run between steps."""

    exit_code = ExitCode.CANCELLED

    def __init__(self, reason: str = "cancelled by operator", next_step: str | None = None):
        self.reason = reason
        self.next_step = next_step
        details = {"next_step": next_step} if next_step else {}
        super().__init__(f"Run cancelled: {reason}", details)


class UnresolvedReference(DeployChainError):
    """A reference had no identity at resolution time. Validation should prevent this."""

    exit_code = ExitCode.INTERNAL_ERROR
    show_traceback = True

    def __init__(self, step_name: str, ref_name: str):
        self.step_name = step_name
        self.ref_name = ref_name
        super().__init__(
            f"Step '{step_name}' references '{ref_name}' which has no recorded identity",
            {"step": step_name, "reference": ref_name},
        )


class UnknownIdentity(DeployChainError):
    """Raised when reading a name the identity registry does not hold."""

    exit_code = ExitCode.INTERNAL_ERROR

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"No identity recorded for '{name}'", {"name": name})


class DuplicateIdentity(DeployChainError):
    """Raised when writing a name the identity registry already holds."""

    exit_code = ExitCode.INTERNAL_ERROR
    show_traceback = True

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Identity for '{name}' is already recorded", {"name": name})


# Type variable for decorated functions
F = TypeVar("F", bound=Callable[..., int])


def main_with_error_handling(
    *,
    show_traceback: bool = False,
    log_errors: bool = True,
) -> Callable[[F], F]:
    """
    Decorator for CLI commands that converts exceptions to exit codes.

    Args:
        show_traceback: If True, show full traceback for unexpected errors
        log_errors: If True, log errors to structlog

    Exit codes:
        - DeployChainError subclasses: Uses the error's exit_code
        - KeyboardInterrupt: Returns 130 (standard for SIGINT)
        - Other exceptions: Returns 127
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> int:
            try:
                return func(*args, **kwargs)
            except DeployChainError as e:
                if log_errors:
                    logger.error(
                        "command_error",
                        error_type=type(e).__name__,
                        message=e.message,
                        exit_code=int(e.exit_code),
                        **e.details,
                    )
                print(f"Error: {format_error_message(e)}", file=sys.stderr)
                if e.show_traceback or show_traceback:
                    traceback.print_exc(file=sys.stderr)
                return e.exit_code
            except KeyboardInterrupt:
                if log_errors:
                    logger.info("command_interrupted")
                return ExitCode.CANCELLED
            except Exception as e:
                if log_errors:
                    logger.error(
                        "unexpected_error",
                        error_type=type(e).__name__,
                        message=str(e),
                        exit_code=int(ExitCode.INTERNAL_ERROR),
                    )
                if show_traceback:
                    traceback.print_exc(file=sys.stderr)
                return ExitCode.INTERNAL_ERROR

        return wrapper  # type: ignore[return-value]

    return decorator


def format_error_message(error: DeployChainError) -> str:
    """Format an error message for display to users."""
    msg = error.message
    if error.details:
        detail_str = ", ".join(f"{k}={v}" for k, v in error.details.items())
        msg = f"{msg} ({detail_str})"
    return msg


def describe_error(error: BaseException | None) -> dict[str, Any] | None:
    """Serializable descriptor for an error, as carried by run results."""
    if error is None:
        return None
    descriptor: dict[str, Any] = {
        "type": type(error).__name__,
        "message": getattr(error, "message", str(error)),
    }
    if isinstance(error, ProvisioningFailed):
        descriptor["step"] = error.step_name
        descriptor["cause"] = str(error.cause)
        descriptor["cause_type"] = type(error.cause).__name__
    elif isinstance(error, Cancelled):
        descriptor["reason"] = error.reason
        descriptor["next_step"] = error.next_step
    return descriptor
