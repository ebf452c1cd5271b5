# src/lumpsim_core/validation/network_validator.py
import logging
from typing import Dict, List, Tuple, TYPE_CHECKING

import networkx as nx

from .issues import ValidationIssue, ValidationIssueLevel
from .issue_codes import SemanticIssueCode

if TYPE_CHECKING:
    from ..network.assembly import Assembly


logger = logging.getLogger(__name__)

PARAMETER_PORT = "<parameter>"


class NetworkValidator:
    """
    Checks an assembled network for topological and parameter problems that the
    equation templates cannot see on their own.

    The checks operate on the assembly's node pool and on its networkx topology
    graph, after every component has contributed:

    - nodes that no component touches, or that only one component terminal touches;
    - connected subnetworks without a path to a fixed reference potential;
    - constant parameters that are legal but degenerate (zero or negative).

    All findings are warnings or info; the caller decides whether to act on them.
    """

    def __init__(self, assembly: "Assembly"):
        self.assembly = assembly
        self.issues: List[ValidationIssue] = []

    def validate(self) -> List[ValidationIssue]:
        """
        Runs all checks.

        Returns:
            The `ValidationIssue`s found, grouped by check.
        """
        self.issues = []
        logger.info(f"Starting network validation for '{self.assembly.name}'...")
        connections = self._get_node_connections()
        self._check_node_connections(connections)
        self._check_reference_paths()
        self._check_degenerate_parameters()

        if self.issues:
            warnings = sum(1 for i in self.issues if i.level == ValidationIssueLevel.WARNING)
            infos = sum(1 for i in self.issues if i.level == ValidationIssueLevel.INFO)
            logger.info(f"Validation complete. Found: {warnings} warnings, {infos} info messages.")
        else:
            logger.info("Validation complete with no issues found.")
        return self.issues

    def _add_issue(self, level: ValidationIssueLevel, code_enum: SemanticIssueCode, **kwargs):
        message = code_enum.format_message(**kwargs)
        self.issues.append(ValidationIssue(
            level=level, code=code_enum.code, message=message,
            component_fqn=kwargs.get('component_fqn'), node_name=kwargs.get('node_name'), details=kwargs
        ))

    def _get_node_connections(self) -> Dict[str, List[Tuple[str, str]]]:
        """Maps node name -> list of (component_fqn, port) pairs touching it."""
        connections: Dict[str, List[Tuple[str, str]]] = {node.name: [] for node in self.assembly.nodes}
        for component in self.assembly.components:
            port_nodes = set()
            for port_name, node in component.ports.items():
                if node.is_literal:
                    continue
                port_nodes.add(node.name)
                connections.setdefault(node.name, []).append((component.fqn, port_name))
            # Nodes read through parameters (e.g. a heat port temperature) count as a connection.
            for node in component.nodes():
                if node.name not in port_nodes:
                    connections.setdefault(node.name, []).append((component.fqn, PARAMETER_PORT))
        return connections

    def _check_node_connections(self, connections: Dict[str, List[Tuple[str, str]]]) -> None:
        for node_name in sorted(connections):
            users = connections[node_name]
            if not users:
                self._add_issue(ValidationIssueLevel.WARNING, SemanticIssueCode.NET_CONN_001, node_name=node_name)
            elif len(users) == 1:
                component_fqn, port_name = users[0]
                self._add_issue(
                    ValidationIssueLevel.WARNING, SemanticIssueCode.NET_CONN_002,
                    node_name=node_name, connected_to_component=component_fqn, connected_to_port=port_name
                )

    def _check_reference_paths(self) -> None:
        graph = self.assembly.topology_graph()
        reference = graph.graph["reference"]
        for subnetwork in nx.connected_components(graph):
            if reference in subnetwork:
                continue
            if all(graph.degree(vertex) == 0 for vertex in subnetwork):
                # Isolated nodes are reported by the connection checks.
                continue
            node_names = sorted(subnetwork)
            self._add_issue(ValidationIssueLevel.WARNING, SemanticIssueCode.NET_REF_001,
                            node_name=node_names[0], node_names=node_names)

    def _check_degenerate_parameters(self) -> None:
        for component in self.assembly.components:
            for param_name in type(component).degenerate_parameters:
                if not component.has_param(param_name):
                    continue
                param = component.param(param_name)
                if not param.is_constant or all(value > 0 for value in param.elements):
                    continue
                self._add_issue(
                    ValidationIssueLevel.INFO, SemanticIssueCode.PARAM_DEGENERATE,
                    component_fqn=component.fqn, component_type=component.component_type,
                    parameter_name=param_name, value_str=str(param.value)
                )
