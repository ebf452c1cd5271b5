# src/lumpsim_core/parser/raw_data.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union
from pathlib import Path

# The Intermediate Representation (IR) handed from the NetlistParser to the
# CircuitBuilder. The builder never sees raw YAML dictionaries.


@dataclass(frozen=True)
class ParsedNodeData:
    """IR for an explicitly declared node. Undeclared nets become scalar nodes."""
    node_id: str
    kind: str  # "scalar", "array" or "complex"
    length: Optional[int] = None
    initial: Optional[Union[float, List[float]]] = None


@dataclass(frozen=True)
class ParsedInputData:
    """IR for an externally driven boolean input (switch control, thyristor fire)."""
    input_id: str
    initial: bool = False


@dataclass(frozen=True)
class ParsedComponentData:
    """IR for one component instance."""
    instance_id: str
    component_type: str
    raw_ports_dict: Dict[str, Union[str, float]]
    raw_inputs_dict: Dict[str, Union[str, bool]]
    raw_parameters_dict: Dict[str, Any]
    source_yaml_path: Path


@dataclass(frozen=True)
class ParsedCircuitNode:
    """Top-level IR node representing a single parsed netlist file."""
    circuit_name: str
    ground_net_name: str
    source_yaml_path: Path
    components: List[ParsedComponentData]
    nodes: List[ParsedNodeData] = field(default_factory=list)
    inputs: List[ParsedInputData] = field(default_factory=list)
