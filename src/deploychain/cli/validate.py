"""
CLI command for validating a plan without provisioning anything.
"""

from __future__ import annotations

import json
from typing import List, Optional

from deploychain.cli.inputs import load_plan_input
from deploychain.cli.ux import console, error, header, success
from deploychain.core.errors import ExitCode, InvalidPlan, PlanViolation, main_with_error_handling
from deploychain.plan.validator import find_violations


def print_violations(violations: List[PlanViolation]) -> None:
    """Print plan violations, one per line."""
    error(f"Plan is invalid ({len(violations)} problem{'s' if len(violations) != 1 else ''})")
    for violation in violations:
        step = f"[highlight]{violation.step}[/highlight] " if violation.step else ""
        console.print(f"   [error]•[/error] {step}[muted]{violation.kind.value}:[/muted] {violation.message}")
    console.print()


def violations_to_dict(violations: List[PlanViolation]) -> List[dict]:
    return [
        {"step": v.step, "kind": v.kind.value, "message": v.message} for v in violations
    ]


@main_with_error_handling()
def validate_command(
    plan_file: str,
    set_values: Optional[List[str]] = None,
    import_registry: Optional[str] = None,
    output_format: str = "text",
) -> int:
    """
    Validate a plan file.

    Exit codes: 0 = valid, 12 = invalid, 10 = unreadable run record
    """
    plan_name = None
    steps = 0
    try:
        plan = load_plan_input(plan_file, set_values, import_registry)
        plan_name = plan.name
        steps = len(plan)
        violations = find_violations(plan)
    except InvalidPlan as exc:
        violations = exc.violations

    if output_format == "json":
        print(
            json.dumps(
                {
                    "plan": plan_name,
                    "steps": steps,
                    "valid": not violations,
                    "violations": violations_to_dict(violations),
                },
                indent=2,
            )
        )
    else:
        header(f"Validate: {plan_name or plan_file}")
        console.print()
        if violations:
            print_violations(violations)
        else:
            success(f"Plan is valid ({steps} steps)")
            console.print()

    return ExitCode.INVALID_PLAN if violations else ExitCode.SUCCESS
