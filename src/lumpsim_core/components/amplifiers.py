# src/lumpsim_core/components/amplifiers.py
"""
Ideal operational amplifiers as nullator-norator pairs.

The input port is a nullator (`0 = v_in` and `0 = i_in`); the output port is a
norator, i.e. only its branch definition is emitted and its voltage and current are
left for the rest of the network to determine. The equations of the op-amp itself
therefore never depend on how the output is loaded.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple, TYPE_CHECKING

import sympy as sp

from ..network.branches import make_branch
from ..network.nodes import GROUND, broadcast_elements, resolve_shape
from .base import ComponentBase, register_component
from .capabilities import IConnectivityProvider, IEquationContributor, provides

if TYPE_CHECKING:
    from ..network.assembly import Contribution


logger = logging.getLogger(__name__)


def _nullator_norator(out: "Contribution", p1: Any, n1: Any, p2: Any, n2: Any) -> None:
    shape = resolve_shape([p1, n1, p2, n2], owner=out.owner)
    nullator = make_branch(out, p1, n1, shape=shape, suffix="1")
    make_branch(out, p2, n2, shape=shape, suffix="2")
    for v_in, i_in in broadcast_elements(shape.length, nullator.v, nullator.i, owner=out.owner):
        out.add_equation(sp.Integer(0), v_in)
        out.add_equation(sp.Integer(0), i_in)


@register_component("IdealOpAmp")
class IdealOpAmp(ComponentBase):
    """Ideal op-amp with input port p1-n1 (nullator) and output port p2-n2 (norator)."""

    def __init__(self, p1: Any, n1: Any, p2: Any, n2: Any, *, name: Optional[str] = None,
                 parent_hierarchical_id: str = "top"):
        super().__init__(ports={"p1": p1, "n1": n1, "p2": p2, "n2": n2}, parameters={},
                         name=name, parent_hierarchical_id=parent_hierarchical_id)

    @classmethod
    def declare_ports(cls) -> List[str]:
        return ["p1", "n1", "p2", "n2"]

    @classmethod
    def declare_parameters(cls) -> Dict[str, str]:
        return {}

    @provides(IConnectivityProvider)
    class ConnectivityProvider:
        def get_connectivity(self, component: "IdealOpAmp") -> List[Tuple[str, str]]:
            return [("p1", "n1"), ("p2", "n2")]

    @provides(IEquationContributor)
    class EquationContributor:
        def contribute(self, component: "IdealOpAmp", out: "Contribution") -> None:
            _nullator_norator(out, *(component.port(p) for p in ("p1", "n1", "p2", "n2")))


@register_component("IdealOpAmp3Pin")
class IdealOpAmp3Pin(ComponentBase):
    """Ideal op-amp with inputs `in_p`/`in_n` and an output `out` referenced to ground."""

    def __init__(self, in_p: Any, in_n: Any, out: Any, *, name: Optional[str] = None,
                 parent_hierarchical_id: str = "top"):
        super().__init__(ports={"in_p": in_p, "in_n": in_n, "out": out}, parameters={},
                         name=name, parent_hierarchical_id=parent_hierarchical_id)

    @classmethod
    def declare_ports(cls) -> List[str]:
        return ["in_p", "in_n", "out"]

    @classmethod
    def declare_parameters(cls) -> Dict[str, str]:
        return {}

    @provides(IConnectivityProvider)
    class ConnectivityProvider:
        def get_connectivity(self, component: "IdealOpAmp3Pin") -> List[Tuple[str, str]]:
            return [("in_p", "in_n")]

    @provides(IEquationContributor)
    class EquationContributor:
        def contribute(self, component: "IdealOpAmp3Pin", out: "Contribution") -> None:
            _nullator_norator(out, component.port("in_p"), component.port("in_n"), component.port("out"), GROUND)
