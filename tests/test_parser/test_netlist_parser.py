# tests/test_parser/test_netlist_parser.py

import pytest
from pathlib import Path

from lumpsim_core.parser import (
    NetlistParser,
    ParsingError,
    SchemaValidationError,
    ParsedComponentData,
    ParsedNodeData,
)


FULL_NETLIST = """
circuit_name: rectifier
ground_net: gnd
nodes:
  - {id: bus, kind: array, length: 3, initial: [0, 0, 0]}
  - {id: phasor, kind: complex}
  - {id: hot, initial: 300.15}
inputs:
  - {id: gate, initial: false}
components:
  - id: V1
    type: SineVoltage
    ports: {n1: ac, n2: gnd}
    parameters: {V: 10 V, f: 50 Hz}
  - id: D1
    type: Diode
    ports: {n1: ac, n2: out}
  - id: S1
    type: IdealClosingSwitch
    ports: {n1: out, n2: load}
    inputs: {control: gate}
  - id: R1
    type: Resistor
    ports: {n1: load, n2: 0}
    parameters:
      R: {signal: "100 + 10*sin(t)"}
      T: {temperature: hot}
      alpha: 0.004
"""


def write_netlist(tmp_path: Path, content: str, name: str = "netlist.yaml") -> Path:
    path = tmp_path / name
    path.write_text(content)
    return path


@pytest.fixture
def parser():
    return NetlistParser()


class TestValidNetlists:

    def test_full_netlist_ir(self, parser, tmp_path):
        parsed = parser.parse(write_netlist(tmp_path, FULL_NETLIST))
        assert parsed.circuit_name == "rectifier"
        assert parsed.ground_net_name == "gnd"
        assert parsed.source_yaml_path == (tmp_path / "netlist.yaml").resolve()

        assert parsed.nodes == [
            ParsedNodeData("bus", "array", 3, [0, 0, 0]),
            ParsedNodeData("phasor", "complex"),
            ParsedNodeData("hot", "scalar", None, 300.15),
        ]
        assert [(i.input_id, i.initial) for i in parsed.inputs] == [("gate", False)]

        assert [c.instance_id for c in parsed.components] == ["V1", "D1", "S1", "R1"]
        resistor = parsed.components[3]
        assert isinstance(resistor, ParsedComponentData)
        assert resistor.component_type == "Resistor"
        assert resistor.raw_ports_dict == {"n1": "load", "n2": 0}
        assert resistor.raw_parameters_dict["R"] == {"signal": "100 + 10*sin(t)"}
        assert resistor.raw_parameters_dict["T"] == {"temperature": "hot"}
        assert parsed.components[2].raw_inputs_dict == {"control": "gate"}
        assert parsed.components[1].raw_parameters_dict == {}

    def test_defaults(self, parser, tmp_path):
        parsed = parser.parse(write_netlist(tmp_path, """
components:
  - {id: R1, type: Resistor, ports: {n1: a, n2: gnd}, parameters: {R: [1, 2 ohm]}}
""", name="minimal.yaml"))
        assert parsed.circuit_name == "minimal"
        assert parsed.ground_net_name == "gnd"
        assert parsed.nodes == []
        assert parsed.inputs == []
        assert parsed.components[0].raw_parameters_dict == {"R": [1, "2 ohm"]}

    def test_parse_content(self, parser):
        parsed = parser.parse_content(
            {"components": [{"id": "C1", "type": "Capacitor", "ports": {"n1": "a", "n2": "gnd"}}]},
            Path("inline.yaml"),
        )
        assert parsed.circuit_name == "inline"
        assert parsed.components[0].source_yaml_path == Path("inline.yaml")


class TestFileErrors:

    def test_missing_file(self, parser, tmp_path):
        with pytest.raises(ParsingError, match="not found"):
            parser.parse(tmp_path / "missing.yaml")

    def test_empty_file(self, parser, tmp_path):
        with pytest.raises(ParsingError, match="empty"):
            parser.parse(write_netlist(tmp_path, ""))

    def test_invalid_yaml(self, parser, tmp_path):
        with pytest.raises(ParsingError, match="Invalid YAML"):
            parser.parse(write_netlist(tmp_path, "components: [unclosed"))

    def test_root_must_be_a_mapping(self, parser, tmp_path):
        with pytest.raises(ParsingError) as exc_info:
            parser.parse(write_netlist(tmp_path, "- a\n- b\n"))
        assert "YAML Parsing or File Error" in exc_info.value.get_diagnostic_report()


class TestSchemaErrors:

    @pytest.mark.parametrize("content", [
        # Forbidden character in an identifier.
        "components:\n  - {id: R-1, type: Resistor, ports: {n1: a, n2: gnd}}\n",
        # Duplicate component ids.
        "components:\n  - {id: R1, type: Resistor, ports: {n1: a, n2: gnd}}\n"
        "  - {id: R1, type: Resistor, ports: {n1: a, n2: gnd}}\n",
        # No components.
        "circuit_name: empty\n",
        "components: []\n",
        # Unknown top-level section.
        "parameters: {}\ncomponents:\n  - {id: R1, type: Resistor, ports: {n1: a, n2: gnd}}\n",
        # Unknown node kind.
        "nodes:\n  - {id: a, kind: matrix}\ncomponents:\n  - {id: R1, type: Resistor, ports: {n1: a, n2: gnd}}\n",
        # A parameter mapping that is neither a signal nor a temperature.
        "components:\n  - {id: R1, type: Resistor, ports: {n1: a, n2: gnd}, parameters: {R: {expression: x}}}\n",
        # A boolean is not a net.
        "components:\n  - {id: R1, type: Resistor, ports: {n1: true, n2: gnd}}\n",
    ])
    def test_structural_errors(self, parser, tmp_path, content):
        with pytest.raises(SchemaValidationError) as exc_info:
            parser.parse(write_netlist(tmp_path, content))
        report = exc_info.value.get_diagnostic_report()
        assert "YAML Schema Validation Error" in report
        assert "netlist.yaml" in report

    def test_invalid_identifier_lists_the_forbidden_characters(self, parser, tmp_path):
        with pytest.raises(SchemaValidationError) as exc_info:
            parser.parse(write_netlist(tmp_path, "components:\n  - {id: R.1, type: Resistor, ports: {n1: a, n2: gnd}}\n"))
        assert "['.']" in str(exc_info.value)


class TestCrossReferences:

    @pytest.mark.parametrize("content, field", [
        ("nodes:\n  - {id: gnd}\n", "nodes.gnd"),
        ("nodes:\n  - {id: bus, kind: array}\n", "nodes.bus"),
        ("nodes:\n  - {id: a, length: 2}\n", "nodes.a"),
        ("nodes:\n  - {id: bus, kind: array, length: 2, initial: [1, 2, 3]}\n", "nodes.bus"),
        ("nodes:\n  - {id: a}\ninputs:\n  - {id: a}\n", "inputs.a"),
        ("inputs:\n  - {id: gate}\n", None),
    ])
    def test_node_section(self, parser, tmp_path, content, field):
        netlist = content + "components:\n  - {id: R1, type: Resistor, ports: {n1: a, n2: gnd}}\n"
        if field is None:
            parser.parse(write_netlist(tmp_path, netlist))
            return
        with pytest.raises(SchemaValidationError) as exc_info:
            parser.parse(write_netlist(tmp_path, netlist))
        assert field in exc_info.value.errors

    def test_undeclared_input(self, parser, tmp_path):
        with pytest.raises(SchemaValidationError) as exc_info:
            parser.parse(write_netlist(tmp_path, """
components:
  - {id: S1, type: IdealOpeningSwitch, ports: {n1: a, n2: gnd}, inputs: {control: gate}}
"""))
        assert "components.S1.inputs.control" in exc_info.value.errors

    def test_fixed_boolean_input_needs_no_declaration(self, parser, tmp_path):
        parsed = parser.parse(write_netlist(tmp_path, """
components:
  - {id: S1, type: IdealOpeningSwitch, ports: {n1: a, n2: gnd}, inputs: {control: true}}
"""))
        assert parsed.components[0].raw_inputs_dict == {"control": True}

    def test_input_cannot_be_a_port_or_temperature(self, parser, tmp_path):
        with pytest.raises(SchemaValidationError) as exc_info:
            parser.parse(write_netlist(tmp_path, """
inputs:
  - {id: gate}
components:
  - {id: R1, type: Resistor, ports: {n1: gate, n2: gnd}, parameters: {T: {temperature: gate}}}
"""))
        assert set(exc_info.value.errors) == {"components.R1.ports.n1", "components.R1.parameters.T"}
