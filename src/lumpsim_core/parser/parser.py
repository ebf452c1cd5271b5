# src/lumpsim_core/parser/parser.py
import logging
import re
import string
from pathlib import Path
from typing import Any, Dict, List, Union

import cerberus
import yaml

from .raw_data import (
    ParsedCircuitNode,
    ParsedComponentData,
    ParsedInputData,
    ParsedNodeData,
)
from .exceptions import ParsingError, SchemaValidationError

logger = logging.getLogger(__name__)

ID_REGEX_FRAGMENT = r"[a-zA-Z_][a-zA-Z0-9_]*"

# A single identifier token. '.' is reserved for FQNs and '-' would clash with expressions.
ID_REGEX = f"^{ID_REGEX_FRAGMENT}$"
ALLOWED_ID_CHARS = set(string.ascii_letters + string.digits + "_")

NODE_KINDS = ["scalar", "array", "complex"]


class EnhancedValidator(cerberus.Validator):
    """Custom Cerberus validator enforcing the netlist naming conventions."""
    def __init__(self, *args, **kwargs):
        super(EnhancedValidator, self).__init__(*args, **kwargs)
        self.rules['id_regex'] = {'schema': {'type': 'boolean'}}
        self.rules['unique_elements_by_key'] = {'schema': {'type': 'string'}}

    def _validate_id_regex(self, constraint: bool, field: str, value: Any):
        if not constraint: return
        if not isinstance(value, str):
            self._error(field, "must be a string to be validated by id_regex.")
            return

        if not re.match(ID_REGEX, value):
            invalid_chars = sorted(set(value) - ALLOWED_ID_CHARS)
            message = (
                f"Identifier '{value}' is invalid. Identifiers must start with a letter or underscore, "
                "and can only contain letters, numbers, and underscores. "
                f"This identifier contains the following forbidden character(s): {invalid_chars}"
            )
            self._error(field, message)

    def _validate_unique_elements_by_key(self, key_for_uniqueness: str, field: str, value: List[Dict]):
        """
        Validates that all dictionaries in a list have a unique value for a given key.
        The rule's arguments are validated against this schema:
        {'type': 'string'}
        """
        if not isinstance(value, list):
            return

        seen_keys = set()
        duplicates = set()
        for item in value:
            if not isinstance(item, dict):
                continue
            item_key = item.get(key_for_uniqueness)
            if item_key is None:
                continue
            if item_key in seen_keys:
                duplicates.add(item_key)
            seen_keys.add(item_key)

        if duplicates:
            self._error(field, f"Duplicate values found for key '{key_for_uniqueness}': {sorted(duplicates)}")


class NetlistParser:
    """
    Parses and validates a YAML netlist into the Intermediate Representation (IR).

    A netlist looks like::

        circuit_name: rc_step
        ground_net: gnd
        nodes:
          - {id: bus, kind: array, length: 3}
        inputs:
          - {id: trigger, initial: false}
        components:
          - type: StepVoltage
            id: V1
            ports: {n1: in, n2: gnd}
            parameters: {V: 5 V, start: 1 ms}
          - type: IdealClosingSwitch
            id: S1
            ports: {n1: in, n2: out}
            inputs: {control: trigger}
          - type: Resistor
            id: R1
            ports: {n1: out, n2: gnd}
            parameters: {R: {signal: "100 + 10*sin(t)"}}

    Nets that are not declared under `nodes` become scalar nodes; the ground net
    is the fixed reference potential 0.
    """
    _id_rule = {"type": "string", "required": True, "empty": False, "id_regex": True}
    _net_name_rule = {"type": "string", "empty": False, "id_regex": True}

    _param_value_schema = {
        "oneof": [
            {"type": ["string", "number"]},
            {"type": "list", "minlength": 1, "schema": {"type": ["string", "number"]}},
            {"type": "dict", "schema": {"signal": {"type": "string", "required": True, "empty": False}}},
            {"type": "dict", "schema": {"temperature": {"type": "string", "required": True, "id_regex": True}}},
        ]
    }

    _node_schema = {
        "id": _id_rule,
        "kind": {"type": "string", "required": False, "allowed": NODE_KINDS, "default": "scalar"},
        "length": {"type": "integer", "required": False, "min": 1},
        "initial": {"required": False, "oneof": [
            {"type": "number"},
            {"type": "list", "minlength": 1, "schema": {"type": "number"}},
        ]},
    }

    _input_schema = {
        "id": _id_rule,
        "initial": {"type": "boolean", "required": False, "default": False},
    }

    _component_schema = {
        "type": {"type": "string", "required": True, "id_regex": True},
        "id": _id_rule,
        "ports": {"type": "dict", "required": True, "minlength": 1,
                  "keysrules": {"type": "string", "id_regex": True},
                  "valuesrules": {"oneof": [_net_name_rule, {"type": "number"}]}},
        "inputs": {"type": "dict", "required": False,
                   "keysrules": {"type": "string", "id_regex": True},
                   "valuesrules": {"oneof": [_net_name_rule, {"type": "boolean"}]}},
        "parameters": {"type": "dict", "required": False,
                       "keysrules": {"type": "string", "id_regex": True},
                       "valuesrules": _param_value_schema},
    }

    _schema = {
        "circuit_name": {"type": "string", "required": False, "id_regex": True},
        "ground_net": {"type": "string", "required": False, "id_regex": True, "default": "gnd"},
        "nodes": {"type": "list", "required": False, "unique_elements_by_key": "id",
                  "schema": {"type": "dict", "schema": _node_schema}},
        "inputs": {"type": "list", "required": False, "unique_elements_by_key": "id",
                   "schema": {"type": "dict", "schema": _input_schema}},
        "components": {"type": "list", "required": True, "minlength": 1, "unique_elements_by_key": "id",
                       "schema": {"type": "dict", "schema": _component_schema}},
    }

    def __init__(self):
        self._validator = EnhancedValidator(self._schema)
        self._validator.allow_unknown = False
        logger.info("NetlistParser initialized with strict structural validation rules.")

    def parse(self, yaml_path: Union[str, Path]) -> ParsedCircuitNode:
        """Parses one netlist file and returns its IR."""
        resolved_path = Path(yaml_path).resolve()
        logger.info(f"Parsing netlist file: {resolved_path}")
        return self.parse_content(self._load_yaml(resolved_path), resolved_path)

    def parse_content(self, yaml_content: Dict[str, Any], source_path: Path) -> ParsedCircuitNode:
        """Validates an already loaded netlist mapping; `source_path` is used for diagnostics."""
        if not self._validator.validate(yaml_content):
            raise SchemaValidationError(self._validator.errors, source_path)
        validated_data = self._validator.document

        nodes = [
            ParsedNodeData(
                node_id=raw["id"],
                kind=raw.get("kind", "scalar"),
                length=raw.get("length"),
                initial=raw.get("initial"),
            )
            for raw in validated_data.get("nodes", [])
        ]
        inputs = [
            ParsedInputData(input_id=raw["id"], initial=raw.get("initial", False))
            for raw in validated_data.get("inputs", [])
        ]
        components = [
            ParsedComponentData(
                instance_id=raw["id"],
                component_type=raw["type"],
                raw_ports_dict=raw["ports"],
                raw_inputs_dict=raw.get("inputs", {}),
                raw_parameters_dict=raw.get("parameters", {}),
                source_yaml_path=source_path,
            )
            for raw in validated_data["components"]
        ]

        circuit = ParsedCircuitNode(
            circuit_name=validated_data.get("circuit_name", source_path.stem),
            ground_net_name=validated_data["ground_net"],
            source_yaml_path=source_path,
            components=components,
            nodes=nodes,
            inputs=inputs,
        )
        self._check_cross_references(circuit)
        logger.debug(f"Parsed '{circuit.circuit_name}': {len(nodes)} node(s), {len(inputs)} input(s), {len(components)} component(s).")
        return circuit

    def _check_cross_references(self, circuit: ParsedCircuitNode) -> None:
        """Checks the relations between sections that the schema cannot express."""
        errors: Dict[str, List[str]] = {}
        node_ids = {node.node_id for node in circuit.nodes}
        input_ids = {inp.input_id for inp in circuit.inputs}

        for node in circuit.nodes:
            if node.node_id == circuit.ground_net_name:
                errors.setdefault(f"nodes.{node.node_id}", []).append(
                    f"The ground net '{circuit.ground_net_name}' cannot be declared as a node.")
            if node.kind == "array" and node.length is None:
                errors.setdefault(f"nodes.{node.node_id}", []).append("An array node requires a 'length'.")
            if node.kind == "scalar" and node.length is not None:
                errors.setdefault(f"nodes.{node.node_id}", []).append("A scalar node cannot have a 'length'.")
            if isinstance(node.initial, list) and len(node.initial) != (node.length or 1):
                errors.setdefault(f"nodes.{node.node_id}", []).append(
                    f"'initial' has {len(node.initial)} element(s) but the node has length {node.length or 1}.")

        for name in sorted(node_ids & input_ids):
            errors.setdefault(f"inputs.{name}", []).append("The id is used for both a node and an input.")

        for comp in circuit.components:
            for input_name, ref in comp.raw_inputs_dict.items():
                if isinstance(ref, str) and ref not in input_ids:
                    errors.setdefault(f"components.{comp.instance_id}.inputs.{input_name}", []).append(
                        f"'{ref}' is not a declared input. Declared inputs are: {sorted(input_ids)}.")
            for port_name, net in comp.raw_ports_dict.items():
                if isinstance(net, str) and net in input_ids:
                    errors.setdefault(f"components.{comp.instance_id}.ports.{port_name}", []).append(
                        f"'{net}' is a boolean input and cannot be connected to a port.")
            for param_name, value in comp.raw_parameters_dict.items():
                if isinstance(value, dict) and value.get("temperature") in input_ids:
                    errors.setdefault(f"components.{comp.instance_id}.parameters.{param_name}", []).append(
                        f"'{value['temperature']}' is a boolean input, not a thermal node.")

        if errors:
            raise SchemaValidationError(errors, circuit.source_yaml_path)

    def _load_yaml(self, source: Path) -> Dict[str, Any]:
        """Loads and performs basic sanity checks on a YAML file."""
        if not source.is_file():
            raise ParsingError(details=f"Netlist file not found at path: {source}", file_path=source)
        try:
            with source.open("r", encoding="utf-8") as f:
                content = yaml.safe_load(f)
        except PermissionError as e:
            raise ParsingError(details=f"Permission denied when trying to read file: {e}", file_path=source) from e
        except yaml.YAMLError as e:
            raise ParsingError(details=f"Invalid YAML syntax: {e}", file_path=source) from e
        if content is None:
            raise ParsingError(details="The YAML file is empty or contains no valid content.", file_path=source)
        if not isinstance(content, dict):
            raise ParsingError(details="The root of the YAML file must be a dictionary (mapping).", file_path=source)
        return content
