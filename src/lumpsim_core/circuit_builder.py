# src/lumpsim_core/circuit_builder.py

"""
Defines the CircuitBuilder, which synthesizes an assembled network from the
Intermediate Representation (IR) produced by the NetlistParser.

The builder:

1.  **Creates the nodes.** Declared nodes become scalar, array or complex node
    references; nets that are only mentioned in component ports become scalar
    nodes; the ground net becomes the literal reference potential 0.

2.  **Resolves parameter values.** Unit strings and numbers are passed to the
    component templates, which convert them with pint. `{signal: ...}` entries are
    parsed with sympy in a scope where `t` is the network time, node ids stand for
    their potentials and input ids for their boolean symbols. `{temperature: ...}`
    entries read a node's potential as a temperature.

3.  **Instantiates and assembles the components** through the component registry,
    then runs the `NetworkValidator` on the result.

4.  **Reports errors.** Any `DiagnosableError` raised on the way is re-raised as a
    single `NetworkBuildError` carrying the formatted diagnostic report.
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Union

import sympy as sp

from .data_structures import Circuit
from .components import COMPONENT_REGISTRY, ComponentBase, ComponentError
from .network.assembly import Assembly
from .network.events import BooleanInput
from .network.nodes import GROUND, NodeRef
from .network.symbols import TIME
from .parameters.exceptions import ParameterValueError
from .parameters.parameters import Temperature, parse_signal
from .parser.parser import NetlistParser
from .parser.raw_data import ParsedCircuitNode, ParsedComponentData, ParsedNodeData
from .validation import (
    NetworkValidationError,
    NetworkValidator,
    SemanticIssueCode,
    ValidationIssue,
    ValidationIssueLevel,
)
from .errors import NetworkBuildError, DiagnosableError, format_diagnostic_report


logger = logging.getLogger(__name__)

TOP_LEVEL_ID = "top"


class CircuitBuilder:
    """Synthesizes an assembled `Circuit` from a parsed netlist."""

    def build_from_file(self, yaml_path: Union[str, Path]) -> Circuit:
        """Parses `yaml_path` and builds it. Parsing errors are reported like build errors."""
        try:
            parsed = NetlistParser().parse(yaml_path)
        except DiagnosableError as e:
            raise NetworkBuildError(e.get_diagnostic_report()) from e
        return self.build_network(parsed)

    def build_network(self, parsed: ParsedCircuitNode) -> Circuit:
        """
        The main build-time entry point.

        Raises:
            NetworkBuildError: With a diagnostic report, for any error found while
                creating nodes, resolving parameters, instantiating or assembling
                components, or validating the result.
        """
        logger.info(f"--- Starting network synthesis for '{parsed.circuit_name}' ---")
        try:
            circuit = self._synthesize(parsed)
            logger.info(f"--- Network synthesis for '{circuit.name}' successful. ---")
            return circuit

        except DiagnosableError as e:
            raise NetworkBuildError(e.get_diagnostic_report()) from e

        except Exception as e:
            report = format_diagnostic_report(
                error_type=f"An Unexpected Error Occurred ({type(e).__name__})",
                details=f"The circuit builder encountered an unexpected internal error: {e}",
                suggestion="This may indicate a bug in LumpSim Core. Please review the traceback.",
                context={'source_file': parsed.source_yaml_path}
            )
            raise NetworkBuildError(report) from e

    def _synthesize(self, parsed: ParsedCircuitNode) -> Circuit:
        self._check_component_types(parsed)
        assembly = Assembly(name=parsed.circuit_name)

        nodes = self._create_nodes(parsed, assembly)
        inputs: Dict[str, BooleanInput] = {
            raw.input_id: assembly.new_input(raw.input_id, raw.initial) for raw in parsed.inputs
        }
        logger.debug(f"Created {len(nodes)} node(s) and {len(inputs)} input(s).")

        scope = self._signal_scope(nodes, inputs)
        components: Dict[str, ComponentBase] = {}
        for comp_ir in parsed.components:
            component = self._instantiate(comp_ir, nodes, inputs, scope)
            assembly.add(component)
            components[comp_ir.instance_id] = component

        issues = NetworkValidator(assembly).validate()
        for issue in issues:
            if issue.level == ValidationIssueLevel.WARNING:
                logger.warning(str(issue))
        if any(issue.level == ValidationIssueLevel.ERROR for issue in issues):
            raise NetworkValidationError(issues)

        return Circuit(
            name=parsed.circuit_name,
            source_file_path=parsed.source_yaml_path,
            ground_net_name=parsed.ground_net_name,
            nodes=nodes,
            inputs=inputs,
            components=components,
            assembly=assembly,
            raw_ir_root=parsed,
            issues=issues,
        )

    def _check_component_types(self, parsed: ParsedCircuitNode) -> None:
        """Reports every unregistered component type at once."""
        available = sorted(COMPONENT_REGISTRY)
        issues: List[ValidationIssue] = []
        for comp_ir in parsed.components:
            if comp_ir.component_type in COMPONENT_REGISTRY:
                continue
            code = SemanticIssueCode.COMP_TYPE_001
            component_fqn = f"{TOP_LEVEL_ID}.{comp_ir.instance_id}"
            issues.append(ValidationIssue(
                level=ValidationIssueLevel.ERROR, code=code.code,
                message=code.format_message(component_fqn=component_fqn, component_type=comp_ir.component_type,
                                            available_types=available),
                component_fqn=component_fqn,
                details={'source_yaml_path': comp_ir.source_yaml_path},
            ))
        if issues:
            raise NetworkValidationError(issues)

    # --- Nodes and scope ---

    def _create_nodes(self, parsed: ParsedCircuitNode, assembly: Assembly) -> Dict[str, NodeRef]:
        nodes: Dict[str, NodeRef] = {parsed.ground_net_name: GROUND}
        for raw in parsed.nodes:
            nodes[raw.node_id] = self._create_declared_node(raw, assembly)

        mentioned = {
            net
            for comp_ir in parsed.components
            for net in comp_ir.raw_ports_dict.values()
            if isinstance(net, str)
        }
        mentioned.update(
            value["temperature"]
            for comp_ir in parsed.components
            for value in comp_ir.raw_parameters_dict.values()
            if isinstance(value, dict) and "temperature" in value
        )
        for net in sorted(mentioned - set(nodes)):
            nodes[net] = assembly.new_scalar(net)
        return nodes

    @staticmethod
    def _create_declared_node(raw: ParsedNodeData, assembly: Assembly) -> NodeRef:
        if raw.kind == "array":
            return assembly.new_array(raw.length, raw.node_id, raw.initial)
        if raw.kind == "complex":
            return assembly.new_complex(raw.node_id, raw.initial, raw.length)
        return assembly.new_scalar(raw.node_id, raw.initial)

    @staticmethod
    def _signal_scope(nodes: Dict[str, NodeRef], inputs: Dict[str, BooleanInput]) -> Dict[str, Any]:
        """Names usable inside signal expressions. Only single-element nodes can be referenced."""
        scope: Dict[str, Any] = {
            node_id: node.potentials[0] for node_id, node in nodes.items() if node.length == 1
        }
        scope.update({input_id: discrete.symbol for input_id, discrete in inputs.items()})
        return scope

    # --- Components ---

    def _instantiate(
        self,
        comp_ir: ParsedComponentData,
        nodes: Dict[str, NodeRef],
        inputs: Dict[str, BooleanInput],
        scope: Dict[str, Any],
    ) -> ComponentBase:
        component_class = COMPONENT_REGISTRY[comp_ir.component_type]
        component_fqn = f"{TOP_LEVEL_ID}.{comp_ir.instance_id}"

        declared = {
            "port": component_class.declare_ports() + component_class.declare_optional_ports(),
            "input": component_class.declare_inputs(),
            "parameter": list(component_class.declare_parameters()),
        }
        supplied = {
            "port": comp_ir.raw_ports_dict,
            "input": comp_ir.raw_inputs_dict,
            "parameter": comp_ir.raw_parameters_dict,
        }
        for category, names in supplied.items():
            undeclared = sorted(set(names) - set(declared[category]))
            if undeclared:
                raise ComponentError(
                    component_fqn=component_fqn,
                    details=f"{comp_ir.component_type} has no {category}(s) {undeclared}. "
                            f"Declared {category}s are: {declared[category]}."
                )

        kwargs: Dict[str, Any] = {}
        for port_name, net in comp_ir.raw_ports_dict.items():
            kwargs[port_name] = nodes[net] if isinstance(net, str) else net
        for input_name, ref in comp_ir.raw_inputs_dict.items():
            kwargs[input_name] = inputs[ref] if isinstance(ref, str) else ref
        for param_name, raw in comp_ir.raw_parameters_dict.items():
            kwargs[param_name] = self._parameter_value(component_fqn, param_name, raw, nodes, inputs, scope)

        try:
            component = component_class(name=comp_ir.instance_id, parent_hierarchical_id=TOP_LEVEL_ID, **kwargs)
        except TypeError as e:
            raise ComponentError(
                component_fqn=component_fqn,
                details=f"Could not instantiate {comp_ir.component_type} from the netlist: {e}"
            ) from e
        logger.debug(f"Instantiated {component} from '{comp_ir.source_yaml_path}'.")
        return component

    @staticmethod
    def _parameter_value(
        component_fqn: str,
        param_name: str,
        raw: Any,
        nodes: Dict[str, NodeRef],
        inputs: Dict[str, BooleanInput],
        scope: Dict[str, Any],
    ) -> Any:
        if not isinstance(raw, dict):
            return raw
        if "temperature" in raw:
            return Temperature(nodes[raw["temperature"]])

        expression_str = raw["signal"]
        try:
            expr = parse_signal(expression_str, scope)
        except ParameterValueError as e:
            raise ParameterValueError(
                owner_fqn=component_fqn, parameter_name=param_name,
                user_input=expression_str, details=e.details
            ) from e

        allowed = {TIME} | {discrete.symbol for discrete in inputs.values()}
        unknown_names = sorted(str(s) for s in sp.sympify(expr).free_symbols - allowed)
        if unknown_names:
            raise ParameterValueError(
                owner_fqn=component_fqn, parameter_name=param_name, user_input=expression_str,
                details=f"The signal refers to unknown name(s) {unknown_names}. "
                        f"Usable names are 't', the node ids {sorted(n for n in scope if n not in inputs)} "
                        f"and the input ids {sorted(inputs)}."
            )
        return expr
