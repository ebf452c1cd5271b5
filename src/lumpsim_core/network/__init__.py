# src/lumpsim_core/network/__init__.py
import logging
logger = logging.getLogger(__name__)

from .symbols import TIME, Unknown, Equation, der, new_unknown
from .exceptions import ShapeMismatchError, EventEvaluationError
from .nodes import (
    NodeKind, Shape, SCALAR_SHAPE, NodeRef, GROUND,
    scalar_node, array_node, complex_node, literal, as_node,
    resolve_shape, check_node_shape, potential, broadcast_elements,
)
from .events import (
    EventKind, CrossingDirection, BooleanInput, EventContext, EventRegistration
)
from .branches import Branch, make_branch, make_branch_with_heat_port
# The assembly pulls in the component capabilities, so it is imported last.
from .assembly import Flow, Contribution, EquationSystem, Assembly, REFERENCE_NODE

__all__ = [
    # Unknowns and equations
    "TIME", "Unknown", "Equation", "der", "new_unknown",
    # Errors
    "ShapeMismatchError", "EventEvaluationError",
    # Node values and the shape resolver
    "NodeKind", "Shape", "SCALAR_SHAPE", "NodeRef", "GROUND",
    "scalar_node", "array_node", "complex_node", "literal", "as_node",
    "resolve_shape", "check_node_shape", "potential", "broadcast_elements",
    # Events
    "EventKind", "CrossingDirection", "BooleanInput", "EventContext", "EventRegistration",
    # Branch emitter
    "Branch", "make_branch", "make_branch_with_heat_port",
    # Assembly
    "Flow", "Contribution", "EquationSystem", "Assembly", "REFERENCE_NODE",
]
