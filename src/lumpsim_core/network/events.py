# src/lumpsim_core/network/events.py
"""
Discrete event registrations exchanged with the solver runtime.

Templates never detect events themselves. They declare *what* the solver should
watch (a zero crossing, a boolean input changing, a fixed time instant) together
with a callback, and the solver calls back with an `EventContext` holding the event
time and the values of the unknowns at that instant.
"""
import copy
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Mapping, Optional

import sympy as sp
from sympy.core.function import AppliedUndef

from .exceptions import EventEvaluationError
from .symbols import TIME

logger = logging.getLogger(__name__)


class EventKind(Enum):
    CROSSING = "crossing"
    BOOLEAN_CHANGE = "boolean_change"
    TIME = "time"


class CrossingDirection(Enum):
    RISING = "rising"
    FALLING = "falling"
    EITHER = "either"


@dataclass(frozen=True)
class BooleanInput:
    """An externally driven discrete boolean, such as a switch control or a thyristor gate."""
    name: str
    initial: bool = False

    @property
    def symbol(self) -> sp.Symbol:
        return sp.Symbol(self.name)

    def __str__(self) -> str:
        return f"BooleanInput('{self.name}', initial={self.initial})"


@dataclass
class EventContext:
    """
    The state handed to event callbacks: the event time and a mapping from unknowns
    (or `BooleanInput`s and their symbols) to their values at that time.
    """
    time: float
    values: Mapping[Any, Any] = field(default_factory=dict)
    owner: str = ""
    _substitutions: Dict[sp.Basic, sp.Basic] = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        normalized: Dict[Any, Any] = {}
        for key, value in dict(self.values).items():
            if isinstance(key, BooleanInput):
                key = key.symbol
            normalized[sp.sympify(key)] = value
        self.values = normalized
        self._substitutions = {k: sp.sympify(v) for k, v in normalized.items()}

    @property
    def substitutions(self) -> Dict[sp.Basic, sp.Basic]:
        """The supplied values as sympy objects, keyed like `values`."""
        return self._substitutions

    def for_owner(self, owner: str) -> "EventContext":
        """The same time and values, reported on behalf of `owner`."""
        ctx = copy.copy(self)
        ctx.owner = owner
        return ctx

    def value_of(self, key: Any) -> Any:
        """Raw value supplied for an unknown or a boolean input."""
        if isinstance(key, BooleanInput):
            key = key.symbol
        try:
            return self.values[sp.sympify(key)]
        except KeyError:
            raise EventEvaluationError(
                component_fqn=self.owner or "<network>",
                details=f"No value was supplied for '{key}' at t={self.time}."
            ) from None

    def evaluate(self, expr: Any) -> sp.Basic:
        """Substitutes the supplied values and the event time into `expr`."""
        result = sp.sympify(expr)
        if self._substitutions:
            result = result.subs(self._substitutions)
        result = result.subs(TIME, self.time)
        unresolved = set(result.free_symbols) | set(result.atoms(AppliedUndef))
        if unresolved:
            names = sorted(str(s) for s in unresolved)
            raise EventEvaluationError(
                component_fqn=self.owner or "<network>",
                details=f"Expression '{expr}' still depends on {names} after substitution at t={self.time}."
            )
        return result

    def holds(self, condition: Any) -> bool:
        """Evaluates a boolean condition (a sympy relational or boolean expression)."""
        return bool(self.evaluate(condition))


@dataclass(frozen=True, eq=False)
class EventRegistration:
    """
    One request to the solver's event facility.

    - `CROSSING`: watch `predicate` for a zero crossing in `direction`.
    - `BOOLEAN_CHANGE`: call back whenever `discrete` changes value.
    - `TIME`: restart integration exactly at `predicate` (a time instant).
    """
    owner: str
    kind: EventKind
    callback: Optional[Callable[[EventContext], None]] = None
    predicate: Any = None
    direction: CrossingDirection = CrossingDirection.EITHER
    discrete: Optional[BooleanInput] = None
    label: str = ""

    def __str__(self) -> str:
        if self.kind is EventKind.BOOLEAN_CHANGE:
            target = self.discrete.name if self.discrete else "?"
        else:
            target = str(self.predicate)
        return f"Event[{self.owner}:{self.label or self.kind.value}]({self.kind.value} {target}, {self.direction.value})"
