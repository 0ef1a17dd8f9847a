"""Dependency graph helpers over a validated plan."""

from __future__ import annotations

from typing import Dict, List, Tuple

from deploychain.plan.models import Plan


def dependencies(plan: Plan) -> Dict[str, Tuple[str, ...]]:
    """Map each step name to the distinct step names it references."""
    return {step.name: tuple(dict.fromkeys(step.references)) for step in plan.steps}


def dependents(plan: Plan) -> Dict[str, List[str]]:
    """Map each step name to the steps that reference it, in plan order."""
    result: Dict[str, List[str]] = {step.name: [] for step in plan.steps}
    for step in plan.steps:
        for ref in dict.fromkeys(step.references):
            if ref in result:
                result[ref].append(step.name)
    return result


def execution_waves(plan: Plan) -> List[List[str]]:
    """Group steps into waves; every step's references sit in earlier waves.

    Steps inside one wave have no dependency relation and may be provisioned
    concurrently. Assumes the plan has been validated.
    """
    level: Dict[str, int] = {}
    waves: List[List[str]] = []
    for step in plan.steps:
        depth = 1 + max((level[ref] for ref in step.references), default=-1)
        level[step.name] = depth
        if depth == len(waves):
            waves.append([])
        waves[depth].append(step.name)
    return waves
