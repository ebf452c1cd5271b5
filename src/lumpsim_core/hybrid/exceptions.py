# src/lumpsim_core/hybrid/exceptions.py
"""
Diagnosable exceptions raised by hybrid (discrete mode) controllers at solver event
points.
"""
from dataclasses import dataclass, field
from typing import List, Optional

from ..errors import DiagnosableError, format_diagnostic_report


@dataclass()
class EventOrderingViolation(DiagnosableError):
    """
    Raised when one event evaluation requests contradictory mode transitions for the
    same component, i.e. two or more different target modes at the same priority.

    Guards of one component must be mutually exclusive; picking one of the targets
    silently would hide a modelling error.
    """
    component_fqn: str
    event_time: Optional[float]
    current_mode: str
    requested: List[str] = field(default_factory=list)

    def __str__(self):
        return (f"Contradictory transitions for '{self.component_fqn}' in mode '{self.current_mode}' "
                f"at t={self.event_time}: {', '.join(self.requested)}")

    def get_diagnostic_report(self) -> str:
        details = (
            f"The component is in mode '{self.current_mode}' and the same event evaluation "
            f"requested {len(self.requested)} transitions to different modes:\n"
            + "\n".join(f"  - {r}" for r in self.requested)
        )
        return format_diagnostic_report(
            error_type="Event Ordering Violation",
            details=details,
            suggestion="Make the control signals of this component mutually exclusive (e.g., do not command a re-close at the exact instant the arc quenches), or give one transition a higher priority.",
            context={'fqn': self.component_fqn, 'event_time': self.event_time}
        )


@dataclass()
class HybridStateError(DiagnosableError):
    """
    Raised when a controller is asked to evaluate or commit while another evaluation
    for the same controller (or assembly) is still in flight.
    """
    component_fqn: str
    details: str

    def __str__(self):
        return f"Invalid hybrid state operation on '{self.component_fqn}': {self.details}"

    def get_diagnostic_report(self) -> str:
        return format_diagnostic_report(
            error_type="Hybrid State Error",
            details=self.details,
            suggestion="Event callbacks must not dispatch further events. Let the current dispatch commit before handling the next event point.",
            context={'fqn': self.component_fqn}
        )
