# src/lumpsim_core/components/__init__.py
import logging
logger = logging.getLogger(__name__)

# Import base first to define registry and decorator
from .base import ComponentBase, COMPONENT_REGISTRY, register_component
from .base_enums import SwitchState, ThyristorState, ArcState
from .capabilities import IEquationContributor, IConnectivityProvider, provides
from .exceptions import ComponentError
# Import concrete templates to trigger registration
from .elements import Resistor, HeatingResistor, Conductor, Capacitor, Inductor, Transformer, EMF
from .semiconductors import (
    Diode, HeatingDiode, exlin, exlin_slope, diode_current, diode_conductance,
)
from .switches import (
    IdealOpeningSwitch, IdealClosingSwitch,
    ControlledIdealOpeningSwitch, ControlledIdealClosingSwitch,
    IdealThyristor, IdealGTOThyristor,
    OpenerWithArc, CloserWithArc, ControlledOpenerWithArc, ControlledCloserWithArc,
    arc_voltage,
)
from .amplifiers import IdealOpAmp, IdealOpAmp3Pin
from .sources import (
    SignalVoltage, SignalCurrent, SineVoltage, SineCurrent, StepVoltage, StepCurrent,
)

logger.info(f"Available component types: {list(COMPONENT_REGISTRY.keys())}")

__all__ = [
    "ComponentBase",
    "COMPONENT_REGISTRY",
    "register_component",
    "IEquationContributor",
    "IConnectivityProvider",
    "provides",
    "ComponentError",
    "SwitchState",
    "ThyristorState",
    "ArcState",
    # Passive
    "Resistor", "HeatingResistor", "Conductor", "Capacitor", "Inductor", "Transformer", "EMF",
    # Semiconductors
    "Diode", "HeatingDiode", "exlin", "exlin_slope", "diode_current", "diode_conductance",
    # Switches
    "IdealOpeningSwitch", "IdealClosingSwitch",
    "ControlledIdealOpeningSwitch", "ControlledIdealClosingSwitch",
    "IdealThyristor", "IdealGTOThyristor",
    "OpenerWithArc", "CloserWithArc", "ControlledOpenerWithArc", "ControlledCloserWithArc",
    "arc_voltage",
    # Amplifiers
    "IdealOpAmp", "IdealOpAmp3Pin",
    # Sources
    "SignalVoltage", "SignalCurrent", "SineVoltage", "SineCurrent", "StepVoltage", "StepCurrent",
]
