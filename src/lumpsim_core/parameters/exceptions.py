# src/lumpsim_core/parameters/exceptions.py
"""
Defines the custom, diagnosable exceptions and warnings for the parameter subsystem.

Parameter errors found while a component is being constructed (wrong units, values
that are neither numbers, quantities nor expressions) are hard, assembly-time
failures. Signal-valued parameters that must stay strictly positive can only be
judged once the solver supplies values, so those violations are reported as
`InvalidParameterWarning`s instead.
"""
from dataclasses import dataclass

from ..errors import DiagnosableError, format_diagnostic_report


class ParameterError(DiagnosableError):
    """
    A concrete base class for all parameter-related errors, catchable with a single
    `except ParameterError:` block.
    """
    def get_diagnostic_report(self) -> str:
        return format_diagnostic_report(
            error_type="Generic Parameter Error",
            details=str(self),
            suggestion="Review the parameters passed to the component.",
            context={}
        )


@dataclass()
class ParameterValueError(ParameterError):
    """Raised when a parameter value cannot be interpreted in its declared unit."""
    owner_fqn: str
    parameter_name: str
    user_input: str
    details: str

    def __str__(self):
        return (f"Parameter '{self.owner_fqn}.{self.parameter_name}': {self.details} "
                f"(input: '{self.user_input}')")

    def get_diagnostic_report(self) -> str:
        return format_diagnostic_report(
            error_type="Invalid Parameter Value",
            details=self.details,
            suggestion="Pass a plain number in SI units, a pint Quantity or unit string with a compatible dimension, or a sympy expression for time-varying parameters.",
            context={
                'fqn': f"{self.owner_fqn}.{self.parameter_name}",
                'user_input': self.user_input,
            }
        )


class InvalidParameterWarning(UserWarning):
    """
    Emitted when a signal-valued parameter that must be strictly positive (for
    example a time-varying capacitance) evaluates to zero or a negative value.
    """
    pass
