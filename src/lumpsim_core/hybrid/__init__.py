# src/lumpsim_core/hybrid/__init__.py
import logging
logger = logging.getLogger(__name__)

from .controller import GuardKind, Guard, Transition, ModeChange, HybridController
from .exceptions import EventOrderingViolation, HybridStateError

__all__ = [
    "GuardKind",
    "Guard",
    "Transition",
    "ModeChange",
    "HybridController",
    "EventOrderingViolation",
    "HybridStateError",
]
