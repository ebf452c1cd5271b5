# src/lumpsim_core/components/semiconductors.py
"""
Diode templates and the numeric helpers of their exponential characteristic.

Above the exponent limit `Maxexp` the exponential is replaced by its first-order
Taylor expansion around `Maxexp`:

    exlin(x, m) = exp(x)                   for x <= m
                = exp(m) * (1 + x - m)     for x >  m

which has the same value and slope at `x = m` and grows only linearly for large
forward voltages.
"""

import logging
from typing import Any, Dict, List, Optional, TYPE_CHECKING

import numpy as np
import sympy as sp

from ..constants import (
    BOLTZMANN_CONSTANT, ELEMENTARY_CHARGE, DEFAULT_REFERENCE_TEMPERATURE,
    DEFAULT_DIODE_IDS, DEFAULT_DIODE_VT, DEFAULT_DIODE_MAXEXP, DEFAULT_DIODE_R,
)
from ..network.branches import make_branch, make_branch_with_heat_port
from ..network.exceptions import ShapeMismatchError
from ..network.nodes import broadcast_elements, potential, resolve_shape
from .base import ComponentBase, register_component
from .capabilities import IConnectivityProvider, IEquationContributor, provides

if TYPE_CHECKING:
    from ..network.assembly import Contribution


logger = logging.getLogger(__name__)


# --- Numeric helpers ---

def _as_result(values: np.ndarray):
    return values.item() if values.ndim == 0 else values


def exlin(x, maxexp: float = DEFAULT_DIODE_MAXEXP):
    """The exponential with linear continuation above `maxexp`."""
    x = np.asarray(x, dtype=float)
    linear = np.exp(maxexp) * (1.0 + x - maxexp)
    return _as_result(np.where(x > maxexp, linear, np.exp(np.minimum(x, maxexp))))


def exlin_slope(x, maxexp: float = DEFAULT_DIODE_MAXEXP):
    """Derivative of `exlin` with respect to `x`."""
    x = np.asarray(x, dtype=float)
    return _as_result(np.where(x > maxexp, np.exp(maxexp), np.exp(np.minimum(x, maxexp))))


def diode_current(v, Ids: float = DEFAULT_DIODE_IDS, Vt: float = DEFAULT_DIODE_VT,
                  Maxexp: float = DEFAULT_DIODE_MAXEXP, R: float = DEFAULT_DIODE_R):
    """`Ids * (exlin(v / Vt, Maxexp) - 1) + v / R`"""
    v = np.asarray(v, dtype=float)
    return _as_result(Ids * (np.asarray(exlin(v / Vt, Maxexp)) - 1.0) + v / R)


def diode_conductance(v, Ids: float = DEFAULT_DIODE_IDS, Vt: float = DEFAULT_DIODE_VT,
                      Maxexp: float = DEFAULT_DIODE_MAXEXP, R: float = DEFAULT_DIODE_R):
    """Small-signal conductance `d(diode_current)/dv`."""
    v = np.asarray(v, dtype=float)
    return _as_result(Ids / Vt * np.asarray(exlin_slope(v / Vt, Maxexp)) + 1.0 / R)


# --- Symbolic forms used in the equations ---

def exlin_expr(x: Any, maxexp: Any) -> sp.Expr:
    x, maxexp = sp.sympify(x), sp.sympify(maxexp)
    return sp.Piecewise((sp.exp(maxexp) * (1 + x - maxexp), x > maxexp), (sp.exp(x), True))


def diode_current_expr(v: Any, Ids: Any, Vt: Any, Maxexp: Any, R: Any) -> sp.Expr:
    return Ids * (exlin_expr(v / Vt, Maxexp) - 1) + v / R


def _require_real(shape, owner: str) -> None:
    if shape.is_complex:
        raise ShapeMismatchError(
            component_fqn=owner,
            details="The diode characteristic is only defined for real-valued branches.",
            shapes=[str(shape)],
        )


@register_component("Diode")
class Diode(ComponentBase):
    """
    Exponential diode with parallel leakage resistance, anode `n1`, cathode `n2`:

        i = Ids * (exlin(v / Vt, Maxexp) - 1) + v / R
    """

    def __init__(self, n1: Any, n2: Any, Ids: Any = DEFAULT_DIODE_IDS, Vt: Any = DEFAULT_DIODE_VT,
                 Maxexp: Any = DEFAULT_DIODE_MAXEXP, R: Any = DEFAULT_DIODE_R, *,
                 name: Optional[str] = None, parent_hierarchical_id: str = "top"):
        super().__init__(ports={"n1": n1, "n2": n2},
                         parameters={"Ids": Ids, "Vt": Vt, "Maxexp": Maxexp, "R": R},
                         name=name, parent_hierarchical_id=parent_hierarchical_id)

    @classmethod
    def declare_ports(cls) -> List[str]:
        return ["n1", "n2"]

    @classmethod
    def declare_parameters(cls) -> Dict[str, str]:
        return {"Ids": "ampere", "Vt": "volt", "Maxexp": "dimensionless", "R": "ohm"}

    @provides(IEquationContributor)
    class EquationContributor:
        def contribute(self, component: "Diode", out: "Contribution") -> None:
            n1, n2 = component.port("n1"), component.port("n2")
            shape = resolve_shape([n1, n2], owner=out.owner)
            _require_real(shape, out.owner)
            branch = make_branch(out, n1, n2, shape=shape)
            for v, i, ids, vt, maxexp, r in broadcast_elements(
                branch.length, branch.v, branch.i,
                component.param_value("Ids"), component.param_value("Vt"),
                component.param_value("Maxexp"), component.param_value("R"),
                owner=out.owner,
            ):
                out.add_equation(i, diode_current_expr(v, ids, vt, maxexp, r))


@register_component("HeatingDiode")
class HeatingDiode(ComponentBase):
    """
    Diode with temperature-dependent thermal voltage and saturation current. The
    temperature is the heat port potential; the dissipated power flows into it.

        vt_T = k * T / q
        i = Ids * (exlin(v / (N * vt_T), Maxexp) - 1)
                * (T / TNOM)**(XTI / N) * exlin((T / TNOM - 1) * EG / (N * vt_T), Maxexp)
            + v / R
    """

    def __init__(self, n1: Any, n2: Any, heat_port: Any, Ids: Any = DEFAULT_DIODE_IDS,
                 Maxexp: Any = DEFAULT_DIODE_MAXEXP, R: Any = DEFAULT_DIODE_R, EG: Any = 1.11,
                 N: Any = 1.0, TNOM: Any = DEFAULT_REFERENCE_TEMPERATURE, XTI: Any = 3.0, *,
                 name: Optional[str] = None, parent_hierarchical_id: str = "top"):
        super().__init__(ports={"n1": n1, "n2": n2, "heat_port": heat_port},
                         parameters={"Ids": Ids, "Maxexp": Maxexp, "R": R, "EG": EG,
                                     "N": N, "TNOM": TNOM, "XTI": XTI},
                         name=name, parent_hierarchical_id=parent_hierarchical_id)

    @classmethod
    def declare_ports(cls) -> List[str]:
        return ["n1", "n2", "heat_port"]

    @classmethod
    def declare_parameters(cls) -> Dict[str, str]:
        return {"Ids": "ampere", "Maxexp": "dimensionless", "R": "ohm", "EG": "volt",
                "N": "dimensionless", "TNOM": "kelvin", "XTI": "dimensionless"}

    @provides(IConnectivityProvider)
    class ConnectivityProvider:
        def get_connectivity(self, component: "HeatingDiode") -> List[tuple]:
            return [("n1", "n2")]

    @provides(IEquationContributor)
    class EquationContributor:
        def contribute(self, component: "HeatingDiode", out: "Contribution") -> None:
            n1, n2, heat_port = component.port("n1"), component.port("n2"), component.port("heat_port")
            shape = resolve_shape([n1, n2], owner=out.owner)
            _require_real(shape, out.owner)
            branch = make_branch_with_heat_port(out, n1, n2, heat_port, shape=shape)
            temperature = potential(heat_port, shape, owner=out.owner)
            names = ("Ids", "Maxexp", "R", "EG", "N", "TNOM", "XTI")
            for v, i, t, ids, maxexp, r, eg, n, tnom, xti in broadcast_elements(
                branch.length, branch.v, branch.i, temperature,
                *(component.param_value(p) for p in names), owner=out.owner,
            ):
                vt_t = BOLTZMANN_CONSTANT * t / ELEMENTARY_CHARGE
                scaling = (t / tnom) ** (xti / n) * exlin_expr((t / tnom - 1) * eg / (n * vt_t), maxexp)
                out.add_equation(i, ids * (exlin_expr(v / (n * vt_t), maxexp) - 1) * scaling + v / r)
