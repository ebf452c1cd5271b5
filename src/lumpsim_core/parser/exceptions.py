# src/lumpsim_core/parser/exceptions.py
"""
Diagnosable exceptions for the netlist parsing and schema validation stage.

`ParsingError` covers file-level problems (missing file, unreadable file, invalid
YAML), `SchemaValidationError` covers structural violations of the cerberus schema.
Both derive from `DiagnosableError` so the `CircuitBuilder` can wrap them into a
single user-facing report.
"""
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Any

from ..errors import DiagnosableError, format_diagnostic_report


class BaseParsingError(DiagnosableError):
    """Common base for all netlist loading errors."""
    def get_diagnostic_report(self) -> str:
        return format_diagnostic_report(
            error_type="Generic Parsing Error",
            details=str(self),
            suggestion="Please check the format and content of the netlist file.",
            context={}
        )


@dataclass()
class ParsingError(BaseParsingError):
    """A netlist file that is missing, unreadable, empty or not valid YAML."""
    details: str
    file_path: Path

    def __str__(self):
        return f"Parsing error in file '{self.file_path}': {self.details}"

    def get_diagnostic_report(self) -> str:
        return format_diagnostic_report(
            error_type="YAML Parsing or File Error",
            details=self.details,
            suggestion="Ensure the file exists, is readable, and contains a YAML mapping at its root.",
            context={'source_file': self.file_path}
        )


@dataclass()
class SchemaValidationError(BaseParsingError):
    """Valid YAML that does not have the structure of a LumpSim netlist."""
    errors: Dict[str, Any]
    file_path: Path

    def _error_lines(self, prefix: str) -> str:
        return "\n".join(
            f"{prefix} '{field_name}': {messages}"
            for field_name, messages in sorted(self.errors.items(), key=lambda item: str(item[0]))
        )

    def __str__(self):
        return f"Netlist schema validation failed for file '{self.file_path}':\n" + self._error_lines("  - In field")

    def get_diagnostic_report(self) -> str:
        details = (
            "The structure of the netlist does not conform to the required schema.\n"
            f"See details for {len(self.errors)} issue(s) below:\n\n" + self._error_lines("  - Field")
        )
        return format_diagnostic_report(
            error_type="YAML Schema Validation Error",
            details=details,
            suggestion="Correct the listed fields. Identifiers may only contain letters, digits and underscores, "
                       "component and node ids must be unique, and a 'components' list is required.",
            context={'source_file': self.file_path}
        )
