# src/lumpsim_core/network/exceptions.py
"""
Diagnosable exceptions raised while wiring components into a network and while
evaluating expressions at solver event points.
"""
from dataclasses import dataclass, field
from typing import List

from ..errors import DiagnosableError, format_diagnostic_report


@dataclass()
class ShapeMismatchError(DiagnosableError):
    """
    Raised at assembly time when node references that must share a shape resolve to
    incompatible array lengths or to incompatible complex/real kinds.
    """
    component_fqn: str
    details: str
    shapes: List[str] = field(default_factory=list)

    def __str__(self):
        return f"Shape mismatch in '{self.component_fqn}': {self.details}"

    def get_diagnostic_report(self) -> str:
        details = self.details
        if self.shapes:
            details += "\nResolved shapes: " + ", ".join(self.shapes)
        return format_diagnostic_report(
            error_type="Shape Mismatch",
            details=details,
            suggestion="Connect array nodes only to nodes of the same length (or to scalar nodes and literals), and do not force complex nodes into real-valued branches.",
            context={'fqn': self.component_fqn}
        )


@dataclass()
class EventEvaluationError(DiagnosableError):
    """
    Raised when an event condition cannot be evaluated because the solver did not
    supply a value for one of the unknowns or inputs it depends on.
    """
    component_fqn: str
    details: str

    def __str__(self):
        return f"Event evaluation failed for '{self.component_fqn}': {self.details}"

    def get_diagnostic_report(self) -> str:
        return format_diagnostic_report(
            error_type="Event Evaluation Error",
            details=self.details,
            suggestion="Pass the values of every unknown and boolean input referenced by the event condition to the dispatch call.",
            context={'fqn': self.component_fqn}
        )
