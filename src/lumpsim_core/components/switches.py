# src/lumpsim_core/components/switches.py
"""
Ideal switching devices: opening/closing switches, thyristors and switches with arc.

Every device here owns one `HybridController`. The continuous equations of each mode
are fixed at assembly time; the controller only selects which set is active:

    closed / conducting:  v = Ron * i
    open / blocking:      i = Goff * v

`Ron` and `Goff` are small but non-zero so that neither mode leaves the branch
structurally singular. None of the devices is vectorizable: one controller drives
the whole branch.
"""

import logging
from abc import abstractmethod
from dataclasses import dataclass
from typing import Any, ClassVar, Dict, List, Optional, Tuple, TYPE_CHECKING

import numpy as np
import sympy as sp

from ..constants import (
    DEFAULT_SWITCH_RON, DEFAULT_SWITCH_GOFF, DEFAULT_SWITCH_LEVEL,
    DEFAULT_ARC_V0, DEFAULT_ARC_DVDT, DEFAULT_ARC_VMAX,
)
from ..hybrid.controller import Guard, HybridController, Transition
from ..network.branches import Branch, make_branch
from ..network.events import BooleanInput, CrossingDirection, EventContext
from ..network.exceptions import ShapeMismatchError
from ..network.nodes import SCALAR_SHAPE, broadcast_elements, potential, resolve_shape
from ..network.symbols import TIME, Equation
from .base import ComponentBase, DiscreteControl, register_component
from .base_enums import ArcState, SwitchState, ThyristorState
from .capabilities import IConnectivityProvider, IEquationContributor, provides

if TYPE_CHECKING:
    from ..network.assembly import Contribution


logger = logging.getLogger(__name__)


def arc_voltage(elapsed, V0: float = DEFAULT_ARC_V0, dVdt: float = DEFAULT_ARC_DVDT, Vmax: float = DEFAULT_ARC_VMAX):
    """Arc voltage `min(V0 + dVdt * elapsed, Vmax)` after `elapsed` seconds of arcing."""
    values = np.minimum(V0 + dVdt * np.asarray(elapsed, dtype=float), Vmax)
    return values.item() if values.ndim == 0 else values


# --- Control commands ---

@dataclass(frozen=True)
class SwitchCommands:
    """The guards that command a switch to open or to close, and its initial state."""
    open_command: Optional[Guard]
    close_command: Optional[Guard]
    initially_open: bool


def boolean_commands(control: DiscreteControl, opens_on_high: bool) -> SwitchCommands:
    """Commands from a boolean control. A fixed bool never changes, so it yields no guards."""
    if isinstance(control, BooleanInput):
        rising, falling = Guard.boolean_edge(control, rising=True), Guard.boolean_edge(control, rising=False)
        is_high = control.initial
    else:
        rising = falling = None
        is_high = bool(control)
    open_command, close_command = (rising, falling) if opens_on_high else (falling, rising)
    return SwitchCommands(open_command, close_command, initially_open=(is_high == opens_on_high))


def level_commands(signal: Any, level: Any, opens_on_high: bool) -> SwitchCommands:
    """
    Commands from crossings of `signal` through `level`. The control value at the
    start is not known before the solver initializes, so openers start closed and
    closers start open.
    """
    rising = Guard.level_crossing(signal, level, CrossingDirection.RISING)
    falling = Guard.level_crossing(signal, level, CrossingDirection.FALLING)
    open_command, close_command = (rising, falling) if opens_on_high else (falling, rising)
    return SwitchCommands(open_command, close_command, initially_open=not opens_on_high)


class _CommandedSwitch(ComponentBase):
    """A switch whose opening and closing commands come from a control mixin."""
    opens_on_high: ClassVar[bool] = True

    @abstractmethod
    def commands(self) -> SwitchCommands:
        """The guards that open and close this switch."""


class _BooleanControlled:
    """Mixin: the switch is driven by the discrete input `control`."""
    opens_on_high: ClassVar[bool] = True

    @classmethod
    def declare_inputs(cls) -> List[str]:
        return ["control"]

    def commands(self) -> SwitchCommands:
        return boolean_commands(self.discrete_input("control"), self.opens_on_high)


class _LevelControlled:
    """Mixin: the switch is driven by the potential of the `control` node crossing `level`."""
    opens_on_high: ClassVar[bool] = True

    @classmethod
    def declare_ports(cls) -> List[str]:
        return ["n1", "n2", "control"]

    @classmethod
    def declare_parameters(cls) -> Dict[str, str]:
        params = dict(super().declare_parameters())
        params["level"] = "volt"
        return params

    def commands(self) -> SwitchCommands:
        control = potential(self.port("control"), SCALAR_SHAPE, owner=self.fqn)[0]
        return level_commands(control, self.param_value("level"), self.opens_on_high)

    @provides(IConnectivityProvider)
    class ConnectivityProvider:
        def get_connectivity(self, component: ComponentBase) -> List[Tuple[str, str]]:
            return [("n1", "n2")]


def _command_transitions(commands: SwitchCommands, opening_target: Any, closed: Any, open_states: Tuple[Any, ...]) -> List[Transition]:
    transitions: List[Transition] = []
    if commands.open_command is not None:
        transitions.append(Transition(closed, opening_target, commands.open_command, label="open command"))
    if commands.close_command is not None:
        for state in open_states:
            transitions.append(Transition(state, closed, commands.close_command, label="close command"))
    return transitions


def _scalar_branch(component: ComponentBase, out: "Contribution") -> Branch:
    n1, n2 = component.port("n1"), component.port("n2")
    shape = resolve_shape([n1, n2], owner=out.owner)
    if shape != SCALAR_SHAPE:
        raise ShapeMismatchError(
            component_fqn=out.owner,
            details=f"{type(component).__name__} requires scalar real terminals, got {shape}.",
            shapes=[str(n1.shape), str(n2.shape)],
        )
    return make_branch(out, n1, n2, shape=shape)


def _closed_equations(branch: Branch, Ron: Any, owner: str) -> List[Equation]:
    return [Equation(v, r * i, owner) for v, i, r in broadcast_elements(branch.length, branch.v, branch.i, Ron, owner=owner)]


def _open_equations(branch: Branch, Goff: Any, owner: str) -> List[Equation]:
    return [Equation(i, g * v, owner) for v, i, g in broadcast_elements(branch.length, branch.v, branch.i, Goff, owner=owner)]


# --- Ideal switches ---

class _IdealSwitch(_CommandedSwitch):
    vectorizable = False

    @classmethod
    def declare_ports(cls) -> List[str]:
        return ["n1", "n2"]

    @classmethod
    def declare_parameters(cls) -> Dict[str, str]:
        return {"Ron": "ohm", "Goff": "siemens"}

    @provides(IEquationContributor)
    class EquationContributor:
        def contribute(self, component: "_IdealSwitch", out: "Contribution") -> None:
            branch = make_branch(out, component.port("n1"), component.port("n2"))
            commands = component.commands()
            controller = HybridController(
                owner=out.owner,
                initial=SwitchState.OPEN if commands.initially_open else SwitchState.CLOSED,
                mode_equations={
                    SwitchState.CLOSED: _closed_equations(branch, component.param_value("Ron"), out.owner),
                    SwitchState.OPEN: _open_equations(branch, component.param_value("Goff"), out.owner),
                },
                transitions=_command_transitions(commands, SwitchState.OPEN, SwitchState.CLOSED, (SwitchState.OPEN,)),
            )
            controller.register_events(out)


@register_component("IdealOpeningSwitch")
class IdealOpeningSwitch(_BooleanControlled, _IdealSwitch):
    """Ideal switch that is open while `control` is true and closed otherwise."""
    opens_on_high = True

    def __init__(self, n1: Any, n2: Any, control: DiscreteControl, Ron: Any = DEFAULT_SWITCH_RON,
                 Goff: Any = DEFAULT_SWITCH_GOFF, *, name: Optional[str] = None,
                 parent_hierarchical_id: str = "top"):
        super().__init__(ports={"n1": n1, "n2": n2}, parameters={"Ron": Ron, "Goff": Goff},
                         inputs={"control": control}, name=name, parent_hierarchical_id=parent_hierarchical_id)


@register_component("IdealClosingSwitch")
class IdealClosingSwitch(IdealOpeningSwitch):
    """Ideal switch that is closed while `control` is true and open otherwise."""
    opens_on_high = False


@register_component("ControlledIdealOpeningSwitch")
class ControlledIdealOpeningSwitch(_LevelControlled, _IdealSwitch):
    """Ideal switch that opens when `potential(control)` rises above `level` and closes when it falls below."""
    opens_on_high = True

    def __init__(self, n1: Any, n2: Any, control: Any, level: Any = DEFAULT_SWITCH_LEVEL,
                 Ron: Any = DEFAULT_SWITCH_RON, Goff: Any = DEFAULT_SWITCH_GOFF, *,
                 name: Optional[str] = None, parent_hierarchical_id: str = "top"):
        super().__init__(ports={"n1": n1, "n2": n2, "control": control},
                         parameters={"level": level, "Ron": Ron, "Goff": Goff},
                         name=name, parent_hierarchical_id=parent_hierarchical_id)


@register_component("ControlledIdealClosingSwitch")
class ControlledIdealClosingSwitch(ControlledIdealOpeningSwitch):
    """Ideal switch that closes when `potential(control)` rises above `level` and opens when it falls below."""
    opens_on_high = False


# --- Thyristors ---

@register_component("IdealThyristor")
class IdealThyristor(ComponentBase):
    """
    Ideal thyristor, anode `n1`, cathode `n2`, gate input `fire`.

    - blocking:   i = Goff * v
    - conducting: v = Ron * (i - Goff * Vknee) + Vknee

    Both characteristic lines meet at the knee point `(Vknee, Goff * Vknee)` on the
    open-state line. The device starts blocking and turns on when `fire` rises while
    `v >= Vknee`, or when `v` rises through `Vknee` while `fire` is true. It turns off
    only when the current falls through zero; the control cannot force it off.
    The current-zero transition has priority over every fire-driven transition.
    """
    vectorizable = False

    def __init__(self, n1: Any, n2: Any, fire: DiscreteControl, Vknee: Any = 0.0,
                 Ron: Any = DEFAULT_SWITCH_RON, Goff: Any = DEFAULT_SWITCH_GOFF, *,
                 name: Optional[str] = None, parent_hierarchical_id: str = "top"):
        super().__init__(ports={"n1": n1, "n2": n2},
                         parameters={"Vknee": Vknee, "Ron": Ron, "Goff": Goff},
                         inputs={"fire": fire}, name=name, parent_hierarchical_id=parent_hierarchical_id)

    @classmethod
    def declare_ports(cls) -> List[str]:
        return ["n1", "n2"]

    @classmethod
    def declare_inputs(cls) -> List[str]:
        return ["fire"]

    @classmethod
    def declare_parameters(cls) -> Dict[str, str]:
        return {"Vknee": "volt", "Ron": "ohm", "Goff": "siemens"}

    def transitions(self, v: sp.Expr, i: sp.Expr) -> List[Transition]:
        fire = self.discrete_input("fire")
        vknee = self.param_value("Vknee")
        transitions = [
            Transition(ThyristorState.CONDUCTING, ThyristorState.BLOCKING,
                       Guard.zero_crossing(i, CrossingDirection.FALLING), priority=1, label="current zero"),
        ]
        forward_bias = Guard.level_crossing(v, vknee, CrossingDirection.RISING)
        if isinstance(fire, BooleanInput):
            transitions.append(Transition(ThyristorState.BLOCKING, ThyristorState.CONDUCTING,
                                          Guard.boolean_edge(fire, rising=True), condition=v >= vknee, label="fire"))
            transitions.append(Transition(ThyristorState.BLOCKING, ThyristorState.CONDUCTING,
                                          forward_bias, condition=fire.symbol, label="forward bias while fired"))
        elif fire:
            transitions.append(Transition(ThyristorState.BLOCKING, ThyristorState.CONDUCTING,
                                          forward_bias, label="forward bias while fired"))
        return transitions

    @provides(IEquationContributor)
    class EquationContributor:
        def contribute(self, component: "IdealThyristor", out: "Contribution") -> None:
            branch = _scalar_branch(component, out)
            v, i = branch.v[0], branch.i[0]
            ron, goff = component.param_value("Ron"), component.param_value("Goff")
            vknee = component.param_value("Vknee")
            controller = HybridController(
                owner=out.owner,
                initial=ThyristorState.BLOCKING,
                mode_equations={
                    ThyristorState.BLOCKING: [Equation(i, goff * v, out.owner)],
                    ThyristorState.CONDUCTING: [Equation(v, ron * (i - goff * vknee) + vknee, out.owner)],
                },
                transitions=component.transitions(v, i),
            )
            controller.register_events(out)


@register_component("IdealGTOThyristor")
class IdealGTOThyristor(IdealThyristor):
    """
    Gate turn-off thyristor: as `IdealThyristor`, and additionally turns off when
    `fire` falls while conducting.
    """

    def transitions(self, v: sp.Expr, i: sp.Expr) -> List[Transition]:
        transitions = super().transitions(v, i)
        fire = self.discrete_input("fire")
        if isinstance(fire, BooleanInput):
            transitions.append(Transition(ThyristorState.CONDUCTING, ThyristorState.BLOCKING,
                                          Guard.boolean_edge(fire, rising=False), label="gate turn-off"))
        return transitions


# --- Switches with arc ---

def _latch_opening_time(controller: HybridController, ctx: EventContext) -> None:
    controller.set_discrete("t_open", ctx.time)


class _ArcSwitch(_CommandedSwitch):
    """
    Three-state switch: closed, arcing, open.

    - closed:  v = Ron * i
    - arcing:  v = min(V0 + dVdt * (t - t_open), Vmax)
    - open:    i = Goff * v

    The opening command moves closed -> arcing and latches `t_open` to the event time,
    so the ramp restarts every time the arc is freshly ignited. The arc quenches
    (arcing -> open) when the current crosses zero. A closing command returns to
    closed from either arcing or open.

    A closing command at the same instant as the quench is contradictory and raises
    `EventOrderingViolation`.
    """
    vectorizable = False

    @classmethod
    def declare_ports(cls) -> List[str]:
        return ["n1", "n2"]

    @classmethod
    def declare_parameters(cls) -> Dict[str, str]:
        return {"Ron": "ohm", "Goff": "siemens", "V0": "volt", "dVdt": "volt / second", "Vmax": "volt"}

    @provides(IEquationContributor)
    class EquationContributor:
        def contribute(self, component: "_ArcSwitch", out: "Contribution") -> None:
            branch = _scalar_branch(component, out)
            v, i = branch.v[0], branch.i[0]
            commands = component.commands()
            t_open = HybridController.symbol_for(out.owner, "t_open")
            V0, dVdt, Vmax = (component.param_value(p) for p in ("V0", "dVdt", "Vmax"))

            transitions = _command_transitions(commands, ArcState.ARCING, ArcState.CLOSED, (ArcState.ARCING, ArcState.OPEN))
            transitions.append(Transition(ArcState.ARCING, ArcState.OPEN, Guard.zero_crossing(i), label="arc quench"))

            controller = HybridController(
                owner=out.owner,
                initial=ArcState.OPEN if commands.initially_open else ArcState.CLOSED,
                mode_equations={
                    ArcState.CLOSED: [Equation(v, component.param_value("Ron") * i, out.owner)],
                    ArcState.ARCING: [Equation(v, sp.Min(V0 + dVdt * (TIME - t_open), Vmax), out.owner)],
                    ArcState.OPEN: [Equation(i, component.param_value("Goff") * v, out.owner)],
                },
                transitions=transitions,
                entry_actions={ArcState.ARCING: _latch_opening_time},
                discrete_values={"t_open": 0.0},
            )
            controller.register_events(out)


@register_component("OpenerWithArc")
class OpenerWithArc(_BooleanControlled, _ArcSwitch):
    """Switch with arc that opens while `control` is true."""
    opens_on_high = True

    def __init__(self, n1: Any, n2: Any, control: DiscreteControl, Ron: Any = DEFAULT_SWITCH_RON,
                 Goff: Any = DEFAULT_SWITCH_GOFF, V0: Any = DEFAULT_ARC_V0, dVdt: Any = DEFAULT_ARC_DVDT,
                 Vmax: Any = DEFAULT_ARC_VMAX, *, name: Optional[str] = None,
                 parent_hierarchical_id: str = "top"):
        super().__init__(ports={"n1": n1, "n2": n2},
                         parameters={"Ron": Ron, "Goff": Goff, "V0": V0, "dVdt": dVdt, "Vmax": Vmax},
                         inputs={"control": control}, name=name, parent_hierarchical_id=parent_hierarchical_id)


@register_component("CloserWithArc")
class CloserWithArc(OpenerWithArc):
    """Switch with arc that is closed while `control` is true."""
    opens_on_high = False


@register_component("ControlledOpenerWithArc")
class ControlledOpenerWithArc(_LevelControlled, _ArcSwitch):
    """Switch with arc that opens when `potential(control)` rises above `level`."""
    opens_on_high = True

    def __init__(self, n1: Any, n2: Any, control: Any, level: Any = DEFAULT_SWITCH_LEVEL,
                 Ron: Any = DEFAULT_SWITCH_RON, Goff: Any = DEFAULT_SWITCH_GOFF, V0: Any = DEFAULT_ARC_V0,
                 dVdt: Any = DEFAULT_ARC_DVDT, Vmax: Any = DEFAULT_ARC_VMAX, *,
                 name: Optional[str] = None, parent_hierarchical_id: str = "top"):
        super().__init__(ports={"n1": n1, "n2": n2, "control": control},
                         parameters={"level": level, "Ron": Ron, "Goff": Goff, "V0": V0, "dVdt": dVdt, "Vmax": Vmax},
                         name=name, parent_hierarchical_id=parent_hierarchical_id)


@register_component("ControlledCloserWithArc")
class ControlledCloserWithArc(ControlledOpenerWithArc):
    """Switch with arc that closes when `potential(control)` rises above `level`."""
    opens_on_high = False
