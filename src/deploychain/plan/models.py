"""Plan data model: descriptors, tagged arguments, steps and plans."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterator, Tuple, Union

# Scalar literal values a plan may pass to a constructor.
Scalar = Union[str, int, float, bool]

# Opaque result of a successful provisioning call (e.g. an address).
Identity = Any


@dataclass(frozen=True)
class ComponentDescriptor:
    """Kind of provisionable unit, e.g. the contract or service type name."""

    kind: str

    def __str__(self) -> str:
        return self.kind


@dataclass(frozen=True)
class LiteralArg:
    """A constructor argument passed through as-is."""

    value: Scalar


@dataclass(frozen=True)
class Reference:
    """A constructor argument standing for another step's identity."""

    step: str


Arg = Union[LiteralArg, Reference]


def as_arg(value: Any) -> Arg:
    """Wrap a raw value as a literal unless it already is a tagged argument."""
    if isinstance(value, (LiteralArg, Reference)):
        return value
    return LiteralArg(value)


@dataclass(frozen=True)
class Step:
    """One provisioning action."""

    name: str
    descriptor: ComponentDescriptor
    args: Tuple[Arg, ...] = ()

    @classmethod
    def of(cls, name: str, *args: Any, descriptor: str | None = None) -> "Step":
        """Build a step; raw args become literals and the descriptor defaults to the name."""
        return cls(
            name=name,
            descriptor=ComponentDescriptor(descriptor or name),
            args=tuple(as_arg(a) for a in args),
        )

    @property
    def references(self) -> Tuple[str, ...]:
        """Names of the steps this step depends on, in argument order."""
        return tuple(arg.step for arg in self.args if isinstance(arg, Reference))


@dataclass(frozen=True)
class Plan:
    """Ordered sequence of steps, presumed to already be in dependency order."""

    steps: Tuple[Step, ...]
    name: str = "plan"
    description: str | None = None
    constants: dict[str, Scalar] = field(default_factory=dict, compare=False)

    def __iter__(self) -> Iterator[Step]:
        return iter(self.steps)

    def __len__(self) -> int:
        return len(self.steps)

    @property
    def step_names(self) -> list[str]:
        return [step.name for step in self.steps]
