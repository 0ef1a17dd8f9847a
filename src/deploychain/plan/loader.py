"""
Plan document loading.

Plans are YAML (or JSON) documents:

    name: smartfund-migration
    constants:
      PLATFORM_FEE: 1000
    steps:
      - name: ParaswapParams
      - name: ExchangePortal
        args: [{const: PRICE_FEED_ADDRESS}, {ref: ParaswapParams}]

Argument tags:
- bare scalar or {literal: value}: passed through unchanged
- {ref: step}: the identity recorded for an earlier step
- {const: NAME}: a value from `constants` (or caller overrides)

Constants are resolved here, so the engine only sees literals and
references. Hex addresses must be quoted; YAML reads bare 0x... as int.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Mapping

import structlog
import yaml

from deploychain.core.errors import InvalidPlan, ViolationKind
from deploychain.plan.models import (
    Arg,
    ComponentDescriptor,
    LiteralArg,
    Plan,
    Reference,
    Scalar,
    Step,
)

logger = structlog.get_logger()

_SCALAR_TYPES = (str, int, float, bool)
_ARG_TAGS = ("ref", "const", "literal")


def load_plan(
    path: str | Path,
    overrides: Mapping[str, Scalar] | None = None,
) -> Plan:
    """Load and parse a plan file."""
    plan_path = Path(path)
    if not plan_path.exists():
        raise InvalidPlan(f"Plan file not found: {plan_path}")

    try:
        with open(plan_path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as exc:
        raise InvalidPlan(f"Plan file {plan_path} is not valid YAML: {exc}") from exc
    except UnicodeDecodeError as exc:
        raise InvalidPlan(f"Plan file {plan_path} is not valid UTF-8: {exc}") from exc
    except OSError as exc:
        raise InvalidPlan(f"Plan file {plan_path} cannot be read: {exc}") from exc

    plan = parse_plan(data, overrides=overrides, default_name=plan_path.stem)
    logger.debug("loaded_plan", path=str(plan_path), plan=plan.name, steps=len(plan))
    return plan


def parse_plan(
    data: Any,
    overrides: Mapping[str, Scalar] | None = None,
    default_name: str = "plan",
) -> Plan:
    """Build a Plan from a parsed document."""
    if not isinstance(data, dict):
        raise InvalidPlan("Plan document must be a mapping with a 'steps' list")

    raw_steps = data.get("steps")
    if not isinstance(raw_steps, list):
        raise InvalidPlan("Plan document must contain a 'steps' list")

    constants = _parse_constants(data.get("constants") or {})
    if overrides:
        constants.update(overrides)

    steps = tuple(
        _parse_step(raw, position, constants) for position, raw in enumerate(raw_steps, 1)
    )
    return Plan(
        steps=steps,
        name=str(data.get("name") or default_name),
        description=data.get("description"),
        constants=constants,
    )


def _parse_constants(raw: Any) -> Dict[str, Scalar]:
    if not isinstance(raw, dict):
        raise InvalidPlan("'constants' must be a mapping of names to scalar values")
    constants: Dict[str, Scalar] = {}
    for key, value in raw.items():
        if not isinstance(value, _SCALAR_TYPES):
            raise InvalidPlan(
                f"Constant '{key}' must be a scalar value",
                kind=ViolationKind.INVALID_ARGUMENT,
            )
        constants[str(key)] = value
    return constants


def _parse_step(raw: Any, position: int, constants: Mapping[str, Scalar]) -> Step:
    if isinstance(raw, str):
        raw = {"name": raw}
    if not isinstance(raw, dict):
        raise InvalidPlan(f"Step #{position} must be a mapping")

    name = raw.get("name")
    name = "" if name is None else str(name)
    descriptor = raw.get("descriptor")
    descriptor = name if descriptor is None else str(descriptor)

    raw_args = raw.get("args") or []
    if not isinstance(raw_args, list):
        raise InvalidPlan(
            f"Step '{name or position}' args must be a list",
            step=name or None,
        )

    args = tuple(
        _parse_arg(value, name or f"#{position}", index, constants)
        for index, value in enumerate(raw_args, 1)
    )
    return Step(name=name, descriptor=ComponentDescriptor(descriptor), args=args)


def _parse_arg(value: Any, step: str, index: int, constants: Mapping[str, Scalar]) -> Arg:
    if isinstance(value, _SCALAR_TYPES):
        return LiteralArg(value)

    if not isinstance(value, dict) or len(value) != 1:
        raise InvalidPlan(
            f"Step '{step}' argument {index} must be a scalar or a single-key "
            f"mapping tagged with one of {', '.join(_ARG_TAGS)}",
            step=step,
            kind=ViolationKind.INVALID_ARGUMENT,
        )

    tag, payload = next(iter(value.items()))
    if tag == "ref":
        return Reference(str(payload))
    if tag == "literal":
        if not isinstance(payload, _SCALAR_TYPES):
            raise InvalidPlan(
                f"Step '{step}' argument {index} literal must be a scalar",
                step=step,
                kind=ViolationKind.INVALID_ARGUMENT,
            )
        return LiteralArg(payload)
    if tag == "const":
        key = str(payload)
        if key not in constants:
            raise InvalidPlan(
                f"Step '{step}' argument {index} uses undefined constant '{key}'",
                step=step,
                kind=ViolationKind.UNKNOWN_CONSTANT,
            )
        return LiteralArg(constants[key])

    raise InvalidPlan(
        f"Step '{step}' argument {index} has unknown tag '{tag}'",
        step=step,
        kind=ViolationKind.INVALID_ARGUMENT,
    )


def parse_overrides(pairs: list[str] | None) -> Dict[str, Scalar]:
    """Parse NAME=VALUE pairs from the command line, typing values like YAML does."""
    overrides: Dict[str, Scalar] = {}
    for pair in pairs or []:
        key, sep, raw_value = pair.partition("=")
        if not sep or not key:
            raise InvalidPlan(f"Constant override '{pair}' must look like NAME=VALUE")
        overrides[key] = _coerce_scalar(raw_value)
    return overrides


def _coerce_scalar(raw_value: str) -> Scalar:
    # Hex-looking values stay text; YAML would turn them into ints.
    if not raw_value or raw_value.lower().startswith("0x"):
        return raw_value
    try:
        value = yaml.safe_load(raw_value)
    except yaml.YAMLError:
        return raw_value
    return value if isinstance(value, _SCALAR_TYPES) else raw_value
