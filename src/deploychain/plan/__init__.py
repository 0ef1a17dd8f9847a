"""Plans: steps, tagged arguments, validation and loading."""

from deploychain.plan.graph import dependencies, dependents, execution_waves
from deploychain.plan.loader import load_plan, parse_overrides, parse_plan
from deploychain.plan.models import (
    Arg,
    ComponentDescriptor,
    Identity,
    LiteralArg,
    Plan,
    Reference,
    Scalar,
    Step,
)
from deploychain.plan.validator import find_violations, validate_plan

__all__ = [
    "Arg",
    "ComponentDescriptor",
    "Identity",
    "LiteralArg",
    "Plan",
    "Reference",
    "Scalar",
    "Step",
    "dependencies",
    "dependents",
    "execution_waves",
    "find_violations",
    "load_plan",
    "parse_overrides",
    "parse_plan",
    "validate_plan",
]
