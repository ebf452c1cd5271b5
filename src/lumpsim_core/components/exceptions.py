# src/lumpsim_core/components/exceptions.py
"""
Defines the custom, diagnosable exceptions for the components subsystem.
This is the single source of truth for component-related, diagnosable errors.
"""
from dataclasses import dataclass

from ..errors import DiagnosableError, format_diagnostic_report


@dataclass()
class ComponentError(DiagnosableError):
    """
    The canonical, diagnosable exception for component-related errors.

    Raised when a component is constructed with unconnected or undeclared ports,
    invalid parameters, or cannot contribute to an assembly (missing capability,
    duplicate FQN).
    """
    component_fqn: str
    details: str

    def __str__(self):
        return f"Component '{self.component_fqn}': {self.details}"

    def get_diagnostic_report(self) -> str:
        """Generates the diagnostic report for a component error."""
        return format_diagnostic_report(
            error_type="Component Error",
            details=self.details,
            suggestion="Check the component's port connections, discrete inputs and parameters against its documented signature, and give every instance a unique name.",
            context={'fqn': self.component_fqn}
        )
