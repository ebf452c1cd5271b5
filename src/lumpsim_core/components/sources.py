# src/lumpsim_core/components/sources.py
"""
Ideal voltage and current sources.

Each source contributes one branch whose voltage (or current) is an explicit function
of time and of its parameters, which may themselves be signals (expressions of the
time symbol or of other unknowns). Step sources additionally register a time event
at the step, so the solver restarts integration exactly at the discontinuity.
"""

import logging
from typing import Any, Dict, List, Optional, TYPE_CHECKING

import sympy as sp

from ..network.branches import Branch, make_branch
from ..network.nodes import broadcast_elements
from ..network.symbols import TIME
from .base import ComponentBase, register_component
from .capabilities import IEquationContributor, provides

if TYPE_CHECKING:
    from ..network.assembly import Contribution


logger = logging.getLogger(__name__)


def sine_expr(amplitude: Any, f: Any, ang: Any, offset: Any) -> sp.Expr:
    """`offset + amplitude * sin(2*pi*f*t + ang)`"""
    return offset + amplitude * sp.sin(2 * sp.pi * f * TIME + ang)


def step_expr(height: Any, start: Any, offset: Any) -> sp.Expr:
    """`offset` before `start`, `offset + height` from `start` on."""
    return offset + sp.Piecewise((0, TIME < start), (height, True))


class _Source(ComponentBase):
    """Common base: one n1-n2 branch whose voltage or current is imposed."""
    drives_voltage: bool = True
    amplitude_name: str = "V"
    #: Further parameters passed, per element, to `waveform` after the amplitude.
    waveform_parameters: tuple = ()

    @classmethod
    def declare_ports(cls) -> List[str]:
        return ["n1", "n2"]

    def waveform(self, amplitude: Any, *args: Any) -> Any:
        return amplitude

    def imposed(self, branch: Branch):
        return branch.v if self.drives_voltage else branch.i

    @provides(IEquationContributor)
    class EquationContributor:
        def contribute(self, component: "_Source", out: "Contribution") -> None:
            branch = make_branch(out, component.port("n1"), component.port("n2"))
            names = (component.amplitude_name,) + component.waveform_parameters
            values = [component.param_value(p) for p in names]
            for target, *args in broadcast_elements(branch.length, component.imposed(branch), *values, owner=out.owner):
                out.add_equation(target, component.waveform(*args))
            component.register_events(out)

    def register_events(self, out: "Contribution") -> None:
        pass


@register_component("SignalVoltage")
class SignalVoltage(_Source):
    """Voltage source `v = V`, where `V` is typically a signal."""

    def __init__(self, n1: Any, n2: Any, V: Any, *, name: Optional[str] = None,
                 parent_hierarchical_id: str = "top"):
        super().__init__(ports={"n1": n1, "n2": n2}, parameters={"V": V},
                         name=name, parent_hierarchical_id=parent_hierarchical_id)

    @classmethod
    def declare_parameters(cls) -> Dict[str, str]:
        return {"V": "volt"}


@register_component("SignalCurrent")
class SignalCurrent(_Source):
    """Current source `i = I`, where `I` is typically a signal."""
    drives_voltage = False
    amplitude_name = "I"

    def __init__(self, n1: Any, n2: Any, I: Any, *, name: Optional[str] = None,
                 parent_hierarchical_id: str = "top"):
        super().__init__(ports={"n1": n1, "n2": n2}, parameters={"I": I},
                         name=name, parent_hierarchical_id=parent_hierarchical_id)

    @classmethod
    def declare_parameters(cls) -> Dict[str, str]:
        return {"I": "ampere"}


class _SineSource(_Source):
    waveform_parameters = ("f", "ang", "offset")

    def waveform(self, amplitude: Any, f: Any, ang: Any, offset: Any) -> Any:
        return sine_expr(amplitude, f, ang, offset)


@register_component("SineVoltage")
class SineVoltage(_SineSource):
    """Sine voltage `v = offset + V * sin(2*pi*f*t + ang)`."""

    def __init__(self, n1: Any, n2: Any, V: Any = 1.0, f: Any = 1.0, ang: Any = 0.0, offset: Any = 0.0, *,
                 name: Optional[str] = None, parent_hierarchical_id: str = "top"):
        super().__init__(ports={"n1": n1, "n2": n2},
                         parameters={"V": V, "f": f, "ang": ang, "offset": offset},
                         name=name, parent_hierarchical_id=parent_hierarchical_id)

    @classmethod
    def declare_parameters(cls) -> Dict[str, str]:
        return {"V": "volt", "f": "hertz", "ang": "radian", "offset": "volt"}


@register_component("SineCurrent")
class SineCurrent(_SineSource):
    """Sine current `i = offset + I * sin(2*pi*f*t + ang)`."""
    drives_voltage = False
    amplitude_name = "I"

    def __init__(self, n1: Any, n2: Any, I: Any = 1.0, f: Any = 1.0, ang: Any = 0.0, offset: Any = 0.0, *,
                 name: Optional[str] = None, parent_hierarchical_id: str = "top"):
        super().__init__(ports={"n1": n1, "n2": n2},
                         parameters={"I": I, "f": f, "ang": ang, "offset": offset},
                         name=name, parent_hierarchical_id=parent_hierarchical_id)

    @classmethod
    def declare_parameters(cls) -> Dict[str, str]:
        return {"I": "ampere", "f": "hertz", "ang": "radian", "offset": "ampere"}


class _StepSource(_Source):
    # A single step instant has to be registered once, not once per element.
    vectorizable = False
    waveform_parameters = ("start", "offset")

    def waveform(self, amplitude: Any, start: Any, offset: Any) -> Any:
        return step_expr(amplitude, start, offset)

    def register_events(self, out: "Contribution") -> None:
        out.at_time(self.param_value("start"), label="step")


@register_component("StepVoltage")
class StepVoltage(_StepSource):
    """Step voltage: `offset` before `start`, `offset + V` afterwards."""

    def __init__(self, n1: Any, n2: Any, V: Any = 1.0, start: Any = 0.0, offset: Any = 0.0, *,
                 name: Optional[str] = None, parent_hierarchical_id: str = "top"):
        super().__init__(ports={"n1": n1, "n2": n2},
                         parameters={"V": V, "start": start, "offset": offset},
                         name=name, parent_hierarchical_id=parent_hierarchical_id)

    @classmethod
    def declare_parameters(cls) -> Dict[str, str]:
        return {"V": "volt", "start": "second", "offset": "volt"}


@register_component("StepCurrent")
class StepCurrent(_StepSource):
    """Step current: `offset` before `start`, `offset + I` afterwards."""
    drives_voltage = False
    amplitude_name = "I"

    def __init__(self, n1: Any, n2: Any, I: Any = 1.0, start: Any = 0.0, offset: Any = 0.0, *,
                 name: Optional[str] = None, parent_hierarchical_id: str = "top"):
        super().__init__(ports={"n1": n1, "n2": n2},
                         parameters={"I": I, "start": start, "offset": offset},
                         name=name, parent_hierarchical_id=parent_hierarchical_id)

    @classmethod
    def declare_parameters(cls) -> Dict[str, str]:
        return {"I": "ampere", "start": "second", "offset": "ampere"}
