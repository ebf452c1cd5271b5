# src/lumpsim_core/data_structures.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, TYPE_CHECKING
from pathlib import Path

logger = logging.getLogger(__name__)

# Type-only imports; the builder supplies the concrete objects.
if TYPE_CHECKING:
    from .components.base import ComponentBase
    from .network.assembly import Assembly, EquationSystem
    from .network.events import BooleanInput
    from .network.nodes import NodeRef
    from .parser.raw_data import ParsedCircuitNode
    from .validation.issues import ValidationIssue


@dataclass(frozen=True)
class Circuit:
    """
    A network synthesized from a netlist by the CircuitBuilder.

    It bundles the node references, boolean inputs and component instances created
    from the netlist with the `Assembly` they were contributed to. It holds no
    imperative logic of its own.
    """
    name: str
    source_file_path: Path
    ground_net_name: str

    # Node id -> node reference. The ground net maps to the literal 0 reference.
    nodes: Dict[str, NodeRef]

    # Input id -> externally driven boolean input.
    inputs: Dict[str, BooleanInput]

    # Instance id -> component template instance.
    components: Dict[str, ComponentBase]

    assembly: Assembly

    # The IR the circuit was synthesized from, kept for diagnostics.
    raw_ir_root: ParsedCircuitNode

    # Warnings and info findings of the network validator.
    issues: List[ValidationIssue] = field(default_factory=list)

    def system(self) -> EquationSystem:
        """Shortcut for `assembly.system()`."""
        return self.assembly.system()
