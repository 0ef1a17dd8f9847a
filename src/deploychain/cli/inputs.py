"""Shared plan-input handling for CLI commands."""

from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Optional

from deploychain.core.errors import ConfigurationError
from deploychain.orchestration.state import load_registry
from deploychain.plan.loader import load_plan, parse_overrides
from deploychain.plan.models import LiteralArg, Plan, Reference, Scalar


def load_plan_input(
    plan_file: str,
    set_values: Optional[List[str]] = None,
    import_registry: Optional[str] = None,
) -> Plan:
    """Load a plan with constants from a previous run and --set overrides applied.

    --set wins over imported identities, which win over the plan's own constants.
    """
    overrides: Dict[str, Scalar] = {}
    if import_registry:
        for name, identity in load_registry(Path(import_registry)).items():
            if not isinstance(identity, (str, int, float, bool)):
                raise ConfigurationError(
                    f"Imported identity for '{name}' is not a scalar value",
                )
            overrides[name] = identity
    overrides.update(parse_overrides(set_values))
    return load_plan(plan_file, overrides=overrides)


def format_arg(arg: object) -> str:
    """Short display form of a step argument."""
    if isinstance(arg, Reference):
        return f"→{arg.step}"
    if isinstance(arg, LiteralArg):
        return repr(arg.value)
    return str(arg)
