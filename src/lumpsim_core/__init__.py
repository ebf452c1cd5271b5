# src/lumpsim_core/__init__.py
import logging
from .log_config import setup_logging

setup_logging()
logger = logging.getLogger(__name__)
logger.info("LumpSim Core package initialized.")

from .units import ureg, pint, Quantity
from .network import (
    Assembly, Contribution, EquationSystem, Equation, Unknown, TIME, der,
    NodeKind, NodeRef, Shape, SCALAR_SHAPE, GROUND,
    scalar_node, array_node, complex_node, literal, as_node, resolve_shape,
    Branch, make_branch, make_branch_with_heat_port,
    BooleanInput, CrossingDirection, EventContext, EventKind, EventRegistration,
    ShapeMismatchError,
)
from .hybrid import HybridController, Guard, Transition, EventOrderingViolation, HybridStateError
from .parameters import Parameter, ParamKind, Temperature, InvalidParameterWarning
from .components import COMPONENT_REGISTRY, ComponentBase, ComponentError, register_component
from .data_structures import Circuit
from .parser import NetlistParser
from .circuit_builder import CircuitBuilder
from .validation import NetworkValidator, ValidationIssue, ValidationIssueLevel
from .errors import LumpSimError, NetworkBuildError, DiagnosableError

__all__ = [
    # Units
    "ureg", "pint", "Quantity",
    # Network model
    "Assembly", "Contribution", "EquationSystem", "Equation", "Unknown", "TIME", "der",
    "NodeKind", "NodeRef", "Shape", "SCALAR_SHAPE", "GROUND",
    "scalar_node", "array_node", "complex_node", "literal", "as_node", "resolve_shape",
    "Branch", "make_branch", "make_branch_with_heat_port",
    "BooleanInput", "CrossingDirection", "EventContext", "EventKind", "EventRegistration",
    # Hybrid devices
    "HybridController", "Guard", "Transition",
    # Parameters
    "Parameter", "ParamKind", "Temperature",
    # Components
    "COMPONENT_REGISTRY", "ComponentBase", "register_component",
    # Data Structures
    "Circuit",
    # Parser
    "NetlistParser",
    # Builder
    "CircuitBuilder",
    # Validation
    "NetworkValidator", "ValidationIssue", "ValidationIssueLevel",
    # Errors and warnings (actionable diagnostics)
    "LumpSimError", "NetworkBuildError", "DiagnosableError", "ShapeMismatchError",
    "ComponentError", "EventOrderingViolation", "HybridStateError", "InvalidParameterWarning",
]
