"""
Plan validation.

Checks that a plan can be executed in its literal order: step names are
unique and every reference points at a step that appears strictly
earlier. Validation is pure; it never touches a provisioning client.
"""

from __future__ import annotations

from typing import List

from deploychain.core.errors import InvalidPlan, PlanViolation, ViolationKind
from deploychain.plan.models import LiteralArg, Plan, Reference

_SCALAR_TYPES = (str, int, float, bool)


def find_violations(plan: Plan) -> List[PlanViolation]:
    """Return every structural defect in the plan, in plan order."""
    violations: List[PlanViolation] = []
    all_names = {step.name for step in plan.steps}
    seen: set[str] = set()

    for position, step in enumerate(plan.steps, 1):
        label = step.name or f"#{position}"

        if not step.name:
            violations.append(
                PlanViolation(
                    ViolationKind.MISSING_NAME,
                    f"Step #{position} has no name",
                    None,
                )
            )
        elif step.name in seen:
            violations.append(
                PlanViolation(
                    ViolationKind.DUPLICATE_NAME,
                    f"Step name '{step.name}' is declared more than once",
                    step.name,
                )
            )

        if not step.descriptor.kind:
            violations.append(
                PlanViolation(
                    ViolationKind.MISSING_DESCRIPTOR,
                    f"Step '{label}' has no component descriptor",
                    step.name or None,
                )
            )

        for arg_position, arg in enumerate(step.args, 1):
            if isinstance(arg, Reference):
                violation = _check_reference(step.name, label, arg.step, seen, all_names)
                if violation is not None:
                    violations.append(violation)
            elif isinstance(arg, LiteralArg):
                if not isinstance(arg.value, _SCALAR_TYPES):
                    violations.append(
                        PlanViolation(
                            ViolationKind.INVALID_ARGUMENT,
                            f"Step '{label}' argument {arg_position} is not a scalar literal "
                            f"({type(arg.value).__name__})",
                            step.name or None,
                        )
                    )
            else:
                violations.append(
                    PlanViolation(
                        ViolationKind.INVALID_ARGUMENT,
                        f"Step '{label}' argument {arg_position} is neither a literal "
                        "nor a reference",
                        step.name or None,
                    )
                )

        if step.name:
            seen.add(step.name)

    return violations


def _check_reference(
    step_name: str,
    label: str,
    ref: str,
    seen: set[str],
    all_names: set[str],
) -> PlanViolation | None:
    if ref == step_name:
        return PlanViolation(
            ViolationKind.SELF_REFERENCE,
            f"Step '{label}' references itself",
            step_name,
        )
    if ref in seen:
        return None
    if ref in all_names:
        return PlanViolation(
            ViolationKind.FORWARD_REFERENCE,
            f"Step '{label}' references '{ref}' which is declared later in the plan",
            step_name or None,
        )
    return PlanViolation(
        ViolationKind.UNKNOWN_REFERENCE,
        f"Step '{label}' references unknown step '{ref}'",
        step_name or None,
    )


def validate_plan(plan: Plan) -> Plan:
    """Return the plan unchanged, or raise InvalidPlan naming the first defect."""
    violations = find_violations(plan)
    if violations:
        raise InvalidPlan.from_violations(violations)
    return plan
