# --- src/lumpsim_core/units.py ---
import pint
import logging

logger = logging.getLogger(__name__)

# One registry for the whole package: quantities from different registries cannot be combined.
ureg = pint.UnitRegistry()
Quantity = ureg.Quantity
logger.info("Pint Unit Registry initialized.")
