# src/lumpsim_core/components/elements.py
"""
This module provides the equation templates for the passive elements: Resistor,
HeatingResistor, Conductor, Capacitor, Inductor, Transformer and EMF.

All of them are vectorizable: array node references produce the elementwise
equivalent of independent scalar instances, because every equation is written per
branch element with scalar (or per-element) parameters.

Singular configurations (a resistance signal crossing zero, a transformer with
`L1*L2 == M**2`) are not detected here; they surface as a singular Jacobian in the
solver.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple, TYPE_CHECKING

from ..constants import DEFAULT_REFERENCE_TEMPERATURE
from ..network.branches import Branch, make_branch, make_branch_with_heat_port
from ..network.nodes import broadcast_elements, potential, resolve_shape
from ..network.symbols import der
from .base import ComponentBase, register_component
from .capabilities import IConnectivityProvider, IEquationContributor, provides

if TYPE_CHECKING:
    from ..network.assembly import Contribution


logger = logging.getLogger(__name__)


def _branch_for(component: ComponentBase, out: "Contribution") -> Branch:
    """Creates the n1-n2 branch, with heat-port coupling when a heat port is connected."""
    heat_port = component.optional_port("heat_port")
    if heat_port is None:
        return make_branch(out, component.port("n1"), component.port("n2"))
    return make_branch_with_heat_port(out, component.port("n1"), component.port("n2"), heat_port)


@register_component("Resistor")
class Resistor(ComponentBase):
    """
    Linear resistor, optionally temperature dependent.

    `v = R_eff * i` with `R_eff = R * (1 + alpha * (T - T_ref))` when a temperature `T`
    or a heat port is supplied, else `R_eff = R`. A connected heat port receives the
    dissipated power and supplies the temperature (it takes precedence over `T`).

    Zero and negative constant resistances are accepted with a logged warning.
    """
    degenerate_parameters = ("R",)

    def __init__(self, n1: Any, n2: Any, R: Any = 1.0, *, T: Any = None,
                 T_ref: Any = DEFAULT_REFERENCE_TEMPERATURE, alpha: Any = 0.0,
                 heat_port: Any = None, name: Optional[str] = None,
                 parent_hierarchical_id: str = "top"):
        super().__init__(
            ports={"n1": n1, "n2": n2, "heat_port": heat_port},
            parameters={"R": R, "T": T, "T_ref": T_ref, "alpha": alpha},
            name=name,
            parent_hierarchical_id=parent_hierarchical_id,
        )

    @classmethod
    def declare_ports(cls) -> List[str]:
        return ["n1", "n2"]

    @classmethod
    def declare_optional_ports(cls) -> List[str]:
        return ["heat_port"]

    @classmethod
    def declare_parameters(cls) -> Dict[str, str]:
        return {"R": "ohm", "T": "kelvin", "T_ref": "kelvin", "alpha": "1/kelvin"}

    def temperature(self, branch: Branch) -> Optional[Tuple[Any, ...]]:
        """Per-element temperature: the heat port potential, else `T`, else `None`."""
        heat_port = self.optional_port("heat_port")
        if heat_port is not None:
            return potential(heat_port, branch.shape, owner=self.fqn)
        if self.has_param("T"):
            return self.param("T").elements
        return None

    @provides(IEquationContributor)
    class EquationContributor:
        def contribute(self, component: "Resistor", out: "Contribution") -> None:
            branch = _branch_for(component, out)
            temperature = component.temperature(branch)
            R = component.param_value("R")
            if temperature is None:
                for v, i, r in broadcast_elements(branch.length, branch.v, branch.i, R, owner=out.owner):
                    out.add_equation(v, r * i)
                return
            T_ref = component.param_value("T_ref")
            alpha = component.param_value("alpha")
            for v, i, r, t, t_ref, a in broadcast_elements(
                branch.length, branch.v, branch.i, R, temperature, T_ref, alpha, owner=out.owner
            ):
                out.add_equation(v, r * (1 + a * (t - t_ref)) * i)


@register_component("HeatingResistor")
class HeatingResistor(Resistor):
    """The temperature-dependent resistor with a mandatory heat port."""

    def __init__(self, n1: Any, n2: Any, heat_port: Any, R: Any = 1.0, *,
                 T_ref: Any = DEFAULT_REFERENCE_TEMPERATURE, alpha: Any = 0.0,
                 name: Optional[str] = None, parent_hierarchical_id: str = "top"):
        super().__init__(n1, n2, R, T_ref=T_ref, alpha=alpha, heat_port=heat_port,
                         name=name, parent_hierarchical_id=parent_hierarchical_id)

    @classmethod
    def declare_ports(cls) -> List[str]:
        return ["n1", "n2", "heat_port"]

    @classmethod
    def declare_optional_ports(cls) -> List[str]:
        return []

    @provides(IConnectivityProvider)
    class ConnectivityProvider:
        def get_connectivity(self, component: "HeatingResistor") -> List[Tuple[str, str]]:
            return [("n1", "n2")]


@register_component("Conductor")
class Conductor(ComponentBase):
    """Linear conductor: `i = G * v`."""

    def __init__(self, n1: Any, n2: Any, G: Any = 1.0, *, name: Optional[str] = None,
                 parent_hierarchical_id: str = "top"):
        super().__init__(ports={"n1": n1, "n2": n2}, parameters={"G": G},
                         name=name, parent_hierarchical_id=parent_hierarchical_id)

    @classmethod
    def declare_ports(cls) -> List[str]:
        return ["n1", "n2"]

    @classmethod
    def declare_parameters(cls) -> Dict[str, str]:
        return {"G": "siemens"}

    @provides(IEquationContributor)
    class EquationContributor:
        def contribute(self, component: "Conductor", out: "Contribution") -> None:
            branch = make_branch(out, component.port("n1"), component.port("n2"))
            for v, i, g in broadcast_elements(branch.length, branch.v, branch.i, component.param_value("G"), owner=out.owner):
                out.add_equation(i, g * v)


@register_component("Capacitor")
class Capacitor(ComponentBase):
    """
    Ideal capacitor: `i = C * der(v)`.

    A signal-valued `C` must stay strictly positive; violations are reported at
    evaluation time as `InvalidParameterWarning`.
    """
    positive_signal_parameters = ("C",)
    degenerate_parameters = ("C",)

    def __init__(self, n1: Any, n2: Any, C: Any = 1.0, *, name: Optional[str] = None,
                 parent_hierarchical_id: str = "top"):
        super().__init__(ports={"n1": n1, "n2": n2}, parameters={"C": C},
                         name=name, parent_hierarchical_id=parent_hierarchical_id)

    @classmethod
    def declare_ports(cls) -> List[str]:
        return ["n1", "n2"]

    @classmethod
    def declare_parameters(cls) -> Dict[str, str]:
        return {"C": "farad"}

    @provides(IEquationContributor)
    class EquationContributor:
        def contribute(self, component: "Capacitor", out: "Contribution") -> None:
            branch = make_branch(out, component.port("n1"), component.port("n2"))
            for v, i, c in broadcast_elements(branch.length, branch.v, branch.i, component.param_value("C"), owner=out.owner):
                out.add_equation(i, c * der(v))


@register_component("Inductor")
class Inductor(ComponentBase):
    """
    Ideal inductor: `v = L * der(i)`.

    A signal-valued `L` must stay strictly positive; violations are reported at
    evaluation time as `InvalidParameterWarning`.
    """
    positive_signal_parameters = ("L",)
    degenerate_parameters = ("L",)

    def __init__(self, n1: Any, n2: Any, L: Any = 1.0, *, name: Optional[str] = None,
                 parent_hierarchical_id: str = "top"):
        super().__init__(ports={"n1": n1, "n2": n2}, parameters={"L": L},
                         name=name, parent_hierarchical_id=parent_hierarchical_id)

    @classmethod
    def declare_ports(cls) -> List[str]:
        return ["n1", "n2"]

    @classmethod
    def declare_parameters(cls) -> Dict[str, str]:
        return {"L": "henry"}

    @provides(IEquationContributor)
    class EquationContributor:
        def contribute(self, component: "Inductor", out: "Contribution") -> None:
            branch = make_branch(out, component.port("n1"), component.port("n2"))
            for v, i, l in broadcast_elements(branch.length, branch.v, branch.i, component.param_value("L"), owner=out.owner):
                out.add_equation(v, l * der(i))


@register_component("Transformer")
class Transformer(ComponentBase):
    """
    Two inductively coupled windings (primary p1-n1, secondary p2-n2):

        v1 = L1 * der(i1) + M * der(i2)
        v2 = M * der(i1) + L2 * der(i2)

    Both branches share the shape resolved from all four ports.
    """
    positive_signal_parameters = ("L1", "L2")
    degenerate_parameters = ("L1", "L2")

    def __init__(self, p1: Any, n1: Any, p2: Any, n2: Any, L1: Any = 1.0, M: Any = 1.0, L2: Any = 1.0, *,
                 name: Optional[str] = None, parent_hierarchical_id: str = "top"):
        super().__init__(ports={"p1": p1, "n1": n1, "p2": p2, "n2": n2},
                         parameters={"L1": L1, "M": M, "L2": L2},
                         name=name, parent_hierarchical_id=parent_hierarchical_id)

    @classmethod
    def declare_ports(cls) -> List[str]:
        return ["p1", "n1", "p2", "n2"]

    @classmethod
    def declare_parameters(cls) -> Dict[str, str]:
        return {"L1": "henry", "M": "henry", "L2": "henry"}

    @provides(IConnectivityProvider)
    class ConnectivityProvider:
        def get_connectivity(self, component: "Transformer") -> List[Tuple[str, str]]:
            return [("p1", "n1"), ("p2", "n2")]

    @provides(IEquationContributor)
    class EquationContributor:
        def contribute(self, component: "Transformer", out: "Contribution") -> None:
            ports = [component.port(p) for p in ("p1", "n1", "p2", "n2")]
            shape = resolve_shape(ports, owner=out.owner)
            primary = make_branch(out, ports[0], ports[1], shape=shape, suffix="1")
            secondary = make_branch(out, ports[2], ports[3], shape=shape, suffix="2")
            for v1, i1, v2, i2, l1, m, l2 in broadcast_elements(
                shape.length, primary.v, primary.i, secondary.v, secondary.i,
                component.param_value("L1"), component.param_value("M"), component.param_value("L2"),
                owner=out.owner,
            ):
                out.add_equation(v1, l1 * der(i1) + m * der(i2))
                out.add_equation(v2, m * der(i1) + l2 * der(i2))


@register_component("EMF")
class EMF(ComponentBase):
    """
    Electromotoric force: an ideal electro-mechanical converter.

    The rotational side is a plain node reference pair (flange, support) whose
    potential is the angle `phi` and whose flow is the torque `tau`:

        w = der(phi),  v = k * w,  tau = -k * i
    """

    def __init__(self, n1: Any, n2: Any, flange: Any, support: Any = 0.0, k: Any = 1.0, *,
                 name: Optional[str] = None, parent_hierarchical_id: str = "top"):
        super().__init__(ports={"n1": n1, "n2": n2, "flange": flange, "support": support},
                         parameters={"k": k},
                         name=name, parent_hierarchical_id=parent_hierarchical_id)

    @classmethod
    def declare_ports(cls) -> List[str]:
        return ["n1", "n2", "flange"]

    @classmethod
    def declare_optional_ports(cls) -> List[str]:
        return ["support"]

    @classmethod
    def declare_parameters(cls) -> Dict[str, str]:
        return {"k": "newton * meter / ampere"}

    @provides(IConnectivityProvider)
    class ConnectivityProvider:
        def get_connectivity(self, component: "EMF") -> List[Tuple[str, str]]:
            return [("n1", "n2"), ("flange", "support")]

    @provides(IEquationContributor)
    class EquationContributor:
        def contribute(self, component: "EMF", out: "Contribution") -> None:
            support = component.optional_port("support")
            if support is None:
                support = 0.0
            ports = [component.port("n1"), component.port("n2"), component.port("flange"), support]
            shape = resolve_shape(ports, owner=out.owner)
            electrical = make_branch(out, ports[0], ports[1], shape=shape)
            rotational = make_branch(out, ports[2], ports[3], shape=shape, names=("phi", "tau"))
            w = out.new_unknowns("w", shape)
            for v, i, phi, tau, w_k, k in broadcast_elements(
                shape.length, electrical.v, electrical.i, rotational.v, rotational.i, w,
                component.param_value("k"), owner=out.owner,
            ):
                out.add_equation(w_k, der(phi))
                out.add_equation(v, k * w_k)
                out.add_equation(tau, -k * i)
