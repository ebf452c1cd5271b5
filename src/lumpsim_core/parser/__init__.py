# src/lumpsim_core/parser/__init__.py
from .raw_data import (
    ParsedCircuitNode,
    ParsedComponentData,
    ParsedInputData,
    ParsedNodeData,
)
from .parser import NetlistParser
from .exceptions import ParsingError, SchemaValidationError

__all__ = [
    # IR Data Structures
    "ParsedCircuitNode",
    "ParsedComponentData",
    "ParsedInputData",
    "ParsedNodeData",
    # Parser and Exceptions
    "NetlistParser",
    "ParsingError",
    "SchemaValidationError",
]
