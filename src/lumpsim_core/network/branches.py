# src/lumpsim_core/network/branches.py
"""
The branch constraint emitter.

Every template connects itself to the network exclusively through `make_branch`
(or `make_branch_with_heat_port`). The emitter creates the branch voltage/current
pair, defines the voltage as the potential difference of the two endpoints, and
records the current as leaving `n1` and entering `n2`. Because every template goes
through here, collecting all contributions at a non-literal node yields Kirchhoff's
current law for that node.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional, Tuple, TYPE_CHECKING

import sympy as sp

from .nodes import NodeRef, Shape, as_node, broadcast_elements, potential, resolve_shape

if TYPE_CHECKING:
    from .assembly import Contribution

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Branch:
    """A (voltage, current) pair associated with exactly one two-terminal connection."""
    v: Tuple[sp.Expr, ...]
    i: Tuple[sp.Expr, ...]
    n1: NodeRef
    n2: NodeRef
    shape: Shape
    power: Tuple[sp.Expr, ...] = ()

    @property
    def length(self) -> int:
        return self.shape.length


def make_branch(
    out: Contribution,
    n1: Any,
    n2: Any,
    shape: Optional[Shape] = None,
    suffix: str = "",
    names: Tuple[str, str] = ("v", "i"),
) -> Branch:
    """
    Creates a branch between `n1` and `n2` and wires it into the network.

    Emits `v = potential(n1) - potential(n2)` elementwise, adds `+i` to the
    conservation sum of `n1` and `-i` to that of `n2`. Literal endpoints receive
    no conservation contribution.

    Args:
        out: The contribution of the component creating the branch.
        n1: Positive terminal.
        n2: Negative terminal.
        shape: Shape to use instead of resolving it from the two terminals.
        suffix: Appended to the variable names, for templates with several branches.
        names: Base names of the across and through variables.

    Returns:
        The created `Branch`.
    """
    n1, n2 = as_node(n1), as_node(n2)
    if shape is None:
        shape = resolve_shape([n1, n2], owner=out.owner)
    p1 = potential(n1, shape, owner=out.owner)
    p2 = potential(n2, shape, owner=out.owner)

    v_name, i_name = names
    v = out.new_unknowns(f"{v_name}{suffix}", shape)
    i = out.new_unknowns(f"{i_name}{suffix}", shape)

    for v_k, a, b in zip(v, p1, p2):
        out.add_equation(v_k, a - b)

    out.add_flow(n1, i)
    out.add_flow(n2, tuple(-i_k for i_k in i))

    branch = Branch(v=v, i=i, n1=n1, n2=n2, shape=shape)
    out.branches.append(branch)
    logger.debug(f"Branch '{out.owner}.{v_name}{suffix}' created between {n1} and {n2} with shape {shape}.")
    return branch


def make_branch_with_heat_port(
    out: Contribution,
    n1: Any,
    n2: Any,
    heat_port: Any,
    shape: Optional[Shape] = None,
    suffix: str = "",
) -> Branch:
    """
    As `make_branch`, and additionally emits the dissipated power
    `power = v * i` (elementwise) and injects it as heat into `heat_port`.

    The heat port is a thermal node reference; a literal heat port models an
    isothermal reservoir and receives no conservation contribution.
    """
    branch = make_branch(out, n1, n2, shape=shape, suffix=suffix)
    power = out.new_unknowns(f"power{suffix}", branch.shape)
    for p_k, v_k, i_k in broadcast_elements(branch.length, power, branch.v, branch.i, owner=out.owner):
        out.add_equation(p_k, v_k * i_k)

    # Dissipated heat flows into the thermal node, i.e. out of it with a negative sign.
    out.add_flow(heat_port, tuple(-p_k for p_k in power))

    heated = Branch(v=branch.v, i=branch.i, n1=branch.n1, n2=branch.n2, shape=branch.shape, power=power)
    out.branches[-1] = heated
    return heated
