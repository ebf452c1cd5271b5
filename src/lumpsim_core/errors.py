# src/lumpsim_core/errors.py
import logging
from typing import Any, Dict, Protocol, abstractmethod
from typing import runtime_checkable

logger = logging.getLogger(__name__)

# --- User-Facing Exception Hierarchy ---

class LumpSimError(Exception):
    """Base class of the errors LumpSim Core raises to its users."""

class NetworkBuildError(LumpSimError):
    """
    Raised when building a network from a description fails for any reason, from
    netlist parsing to equation assembly. The message is a pre-formatted,
    user-friendly diagnostic report.
    """
    pass


# --- Diagnostic Protocol & Base Exception ---

@runtime_checkable
class Diagnosable(Protocol):
    """Anything that can explain itself as a multi-line diagnostic report."""
    def get_diagnostic_report(self) -> str:
        """The full report, ready to show to the person who wrote the network."""
        ...

class DiagnosableError(Exception, Diagnosable):
    """
    A common, concrete base class for all internal exceptions that are diagnosable.

    It inherits from `Exception`, so it is usable in `except` clauses, and declares
    `get_diagnostic_report` abstract so every subclass has to provide a report.
    """
    @abstractmethod
    def get_diagnostic_report(self) -> str:
        raise NotImplementedError


# --- Stateless Formatting Utility ---

def format_diagnostic_report(
    error_type: str,
    details: str,
    suggestion: str,
    context: Dict[str, Any]
) -> str:
    """
    A stateless helper to format the final multi-line report string, ensuring a
    consistent look and feel for all user-facing diagnostics.

    Args:
        error_type: The high-level category of the error (e.g., "Shape Mismatch").
        details: A detailed, potentially multi-line description of the problem.
        suggestion: Actionable advice for the user to resolve the issue.
        context: A dictionary of contextual information (FQN, file path, event time, etc.).

    Returns:
        A formatted, user-friendly diagnostic report string ready for display.
    """
    lines = [
        "\n",
        "=============== LumpSim Core: Actionable Diagnostic Report ===============",
        f"Error Type:     {error_type}",
    ]
    if fqn := context.get('fqn'):
        lines.append(f"FQN:            {fqn}")
    if source_file := context.get('source_file'):
        lines.append(f"Source File:    {source_file}")
    if user_input := context.get('user_input'):
        lines.append(f"User Input:     '{user_input}'")
    if (event_time := context.get('event_time')) is not None:
        lines.append(f"Event Time:     {event_time}")

    lines.append("\nDetails:")
    for line in details.splitlines():
        lines.append(f"  {line}")

    if suggestion:
        lines.append("\nSuggestion:")
        for line in suggestion.splitlines():
            lines.append(f"  {line}")

    lines.append("========================================================================")
    return "\n".join(lines)
