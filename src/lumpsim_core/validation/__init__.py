# src/lumpsim_core/validation/__init__.py
import logging
logger = logging.getLogger(__name__)

from .issues import ValidationIssue, ValidationIssueLevel
from .issue_codes import SemanticIssueCode
from .network_validator import NetworkValidator
from .exceptions import NetworkValidationError

__all__ = [
    "ValidationIssue",
    "ValidationIssueLevel",
    "SemanticIssueCode",
    "NetworkValidator",
    "NetworkValidationError",
]
