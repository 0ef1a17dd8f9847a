"""
CLI command for previewing a plan's execution order.
"""

from __future__ import annotations

import json
from typing import List, Optional

from deploychain.cli.inputs import format_arg, load_plan_input
from deploychain.cli.ux import console, header, print_table, warning
from deploychain.cli.validate import print_violations, violations_to_dict
from deploychain.core.errors import ExitCode, InvalidPlan, main_with_error_handling
from deploychain.plan.graph import dependencies, dependents, execution_waves
from deploychain.plan.models import Plan
from deploychain.plan.validator import validate_plan


def plan_to_dict(plan: Plan) -> dict:
    waves = execution_waves(plan)
    wave_of = {name: index for index, wave in enumerate(waves, 1) for name in wave}
    depends_on = dependencies(plan)
    used_by = dependents(plan)
    return {
        "plan": plan.name,
        "description": plan.description,
        "steps": [
            {
                "name": step.name,
                "descriptor": step.descriptor.kind,
                "args": [format_arg(arg) for arg in step.args],
                "references": list(depends_on[step.name]),
                "used_by": used_by[step.name],
                "wave": wave_of[step.name],
            }
            for step in plan.steps
        ],
        "waves": waves,
    }


def print_plan_summary(plan: Plan) -> None:
    summary = plan_to_dict(plan)
    header(f"Plan: {plan.name}")
    if plan.description:
        console.print(f"[muted]{plan.description}[/muted]")
    console.print()

    if not plan.steps:
        warning("Plan has no steps; nothing would be provisioned")
        console.print()
        return

    rows = [
        [
            str(position),
            step["name"],
            step["descriptor"],
            ", ".join(step["args"]) or "-",
            str(step["wave"]),
        ]
        for position, step in enumerate(summary["steps"], 1)
    ]
    print_table("Execution order", ["#", "Step", "Descriptor", "Args", "Wave"], rows)
    console.print()

    console.print(f"[bold]{len(plan)} steps in {len(summary['waves'])} dependency waves[/bold]")
    for index, wave in enumerate(summary["waves"], 1):
        console.print(f"  [muted]{index}.[/muted] {', '.join(wave)}")
    console.print()


@main_with_error_handling()
def plan_command(
    plan_file: str,
    set_values: Optional[List[str]] = None,
    import_registry: Optional[str] = None,
    output_format: str = "text",
) -> int:
    """
    Show the order a plan would run in, without provisioning anything.

    Exit codes: 0 = valid, 12 = invalid, 10 = unreadable run record
    """
    try:
        plan = validate_plan(load_plan_input(plan_file, set_values, import_registry))
    except InvalidPlan as exc:
        if output_format == "json":
            print(json.dumps({"valid": False, "violations": violations_to_dict(exc.violations)}, indent=2))
        else:
            print_violations(exc.violations)
        return ExitCode.INVALID_PLAN

    if output_format == "json":
        print(json.dumps(plan_to_dict(plan), indent=2, default=str))
    else:
        print_plan_summary(plan)
    return ExitCode.SUCCESS
