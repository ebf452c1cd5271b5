# src/lumpsim_core/network/symbols.py
"""
The unknown and equation model shared by every template.

Unknowns are sympy functions applied to the global time symbol `TIME`, which lets
the solver runtime take time derivatives with `der` and substitute numeric values
for any unknown without knowing which component created it.
"""
import logging
from dataclasses import dataclass
from typing import Any, Optional

import sympy as sp

logger = logging.getLogger(__name__)

#: The independent variable of every network.
TIME = sp.Symbol("t", real=True)


def new_unknown(name: str) -> sp.Expr:
    """Creates a fresh solver-tracked unknown named `name`."""
    return sp.Function(name)(TIME)


def der(expr: Any) -> sp.Expr:
    """Time derivative of a branch variable or any expression built from unknowns."""
    return sp.diff(sp.sympify(expr), TIME)


@dataclass(frozen=True)
class Unknown:
    """A solver-tracked variable registered in the unknown pool."""
    name: str
    expr: sp.Expr
    initial: Optional[float] = None
    owner: str = ""

    def __str__(self) -> str:
        init = f", x0={self.initial}" if self.initial is not None else ""
        return f"Unknown({self.name}{init})"


@dataclass(frozen=True)
class Equation:
    """A single `lhs = rhs` relation contributed by `owner`."""
    lhs: Any
    rhs: Any
    owner: str = ""

    @property
    def residual(self) -> sp.Expr:
        """The residual form `lhs - rhs`, which the solver drives to zero."""
        return sp.sympify(self.lhs) - sp.sympify(self.rhs)

    def as_sympy(self) -> sp.Eq:
        return sp.Eq(sp.sympify(self.lhs), sp.sympify(self.rhs), evaluate=False)

    def __str__(self) -> str:
        return f"{self.lhs} = {self.rhs}"
