# --- src/lumpsim_core/constants.py ---
import logging

logger = logging.getLogger(__name__)

# --- Physical Constants (SI) ---

#: Boltzmann constant in J/K.
BOLTZMANN_CONSTANT: float = 1.380649e-23

#: Elementary charge in C.
ELEMENTARY_CHARGE: float = 1.602176634e-19

# --- Template Defaults ---

#: Reference temperature for temperature-dependent resistance and saturation current (K).
DEFAULT_REFERENCE_TEMPERATURE: float = 300.15

#: Closed-state resistance and open-state conductance of ideal switching devices.
#: Both are small but non-zero so that neither state yields a structurally singular branch.
DEFAULT_SWITCH_RON: float = 1.0e-5   # ohm
DEFAULT_SWITCH_GOFF: float = 1.0e-5  # siemens

#: Default control threshold of level-controlled switches (V).
DEFAULT_SWITCH_LEVEL: float = 0.5

#: Diode defaults: saturation current (A), thermal voltage (V), exponent limit, parallel resistance (ohm).
DEFAULT_DIODE_IDS: float = 1.0e-6
DEFAULT_DIODE_VT: float = 0.04
DEFAULT_DIODE_MAXEXP: float = 15.0
DEFAULT_DIODE_R: float = 1.0e8

#: Arc model defaults: ignition voltage (V), ramp (V/s), clamp (V).
DEFAULT_ARC_V0: float = 30.0
DEFAULT_ARC_DVDT: float = 1.0e4
DEFAULT_ARC_VMAX: float = 60.0

logger.debug("Defined core constants and template defaults.")
