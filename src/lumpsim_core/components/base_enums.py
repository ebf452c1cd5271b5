# src/lumpsim_core/components/base_enums.py
from enum import Enum


class SwitchState(Enum):
    """Modes of the ideal opening and closing switches."""
    CLOSED = "closed"   # v = Ron * i
    OPEN = "open"       # i = Goff * v

    def __str__(self):
        return self.value


class ThyristorState(Enum):
    """Modes of the ideal thyristor and GTO thyristor."""
    BLOCKING = "blocking"       # i = Goff * v
    CONDUCTING = "conducting"   # v = Ron * (i - Goff * Vknee) + Vknee

    def __str__(self):
        return self.value


class ArcState(Enum):
    """Modes of the switches with arc."""
    CLOSED = "closed"   # v = Ron * i
    ARCING = "arcing"   # v = min(V0 + dVdt * (t - t_open), Vmax)
    OPEN = "open"       # i = Goff * v

    def __str__(self):
        return self.value
