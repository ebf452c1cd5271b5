# src/lumpsim_core/validation/issues.py
import logging
from enum import Enum
from dataclasses import dataclass, field
from typing import Optional, Dict, Any

logger = logging.getLogger(__name__)


class ValidationIssueLevel(Enum):
    """Severity level of a validation issue."""
    ERROR = "ERROR"
    WARNING = "WARNING"
    INFO = "INFO"

    def __str__(self):
        return self.value


@dataclass
class ValidationIssue:
    """
    A single finding of the network validator or of a runtime parameter check.
    `node_name` is set for topology findings that concern a node rather than a component.
    """
    level: ValidationIssueLevel
    code: str
    message: str
    component_fqn: Optional[str] = None
    node_name: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        parts = [f"[{self.level.name} - {self.code}]"]
        if self.node_name:
            parts.append(f"Node: {self.node_name}")
        if self.component_fqn:
            parts.append(f"Component: {self.component_fqn}")
        parts.append(f"Message: {self.message}")

        filtered_details = {
            k: v for k, v in self.details.items()
            if k not in ('component_fqn', 'node_name')
        }
        if filtered_details:
            details_str = ", ".join(f"{k}={v}" for k, v in sorted(filtered_details.items()))
            parts.append(f"Details: ({details_str})")

        return " ".join(parts)
