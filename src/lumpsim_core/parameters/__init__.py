# src/lumpsim_core/parameters/__init__.py
from .exceptions import (
    ParameterError,
    ParameterValueError,
    InvalidParameterWarning,
)
from .parameters import (
    ParamKind,
    Parameter,
    Temperature,
    ParameterCheck,
    resolve_parameter,
    parse_signal,
)

__all__ = [
    # Exceptions and warnings
    "ParameterError",
    "ParameterValueError",
    "InvalidParameterWarning",
    # Core Types
    "ParamKind",
    "Parameter",
    "Temperature",
    "ParameterCheck",
    "resolve_parameter",
    "parse_signal",
]
