# tests/test_integration/test_build_process.py

"""
Integration tests for the circuit build process.

These tests write YAML netlists to disk and run them through the complete
parse -> build -> assemble -> validate pipeline. They also verify that every
diagnosable error raised by a subsystem reaches the user as a single
`NetworkBuildError` carrying the formatted report.
"""

from pathlib import Path

import pytest

from lumpsim_core import (
    GROUND, CircuitBuilder, EventKind, NetworkBuildError, NodeKind, ParamKind, TIME, ValidationIssueLevel,
)
from lumpsim_core.components.base_enums import SwitchState


@pytest.fixture(scope="module")
def netlists_dir(tmp_path_factory):
    """Creates a temporary directory holding the netlists used by this module."""
    root = tmp_path_factory.mktemp("build_tests")

    (root / "rc_step.yaml").write_text("""
circuit_name: rc_step
ground_net: gnd
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
  - type: Capacitor
    id: C1
    ports: {n1: out, n2: gnd}
    parameters: {C: 10 uF}
""")

    (root / "shaped.yaml").write_text("""
nodes:
  - {id: bus, kind: array, length: 3}
  - {id: phasor, kind: complex}
  - {id: hot, initial: 300.0}
components:
  - type: Resistor
    id: R_bus
    ports: {n1: bus, n2: gnd}
    parameters: {R: [1 ohm, 2 ohm, 3 ohm]}
  - type: Capacitor
    id: C_bus
    ports: {n1: bus, n2: gnd}
    parameters: {C: 1 uF}
  - type: Resistor
    id: R_ph
    ports: {n1: phasor, n2: gnd}
  - type: Inductor
    id: L_ph
    ports: {n1: phasor, n2: gnd}
    parameters: {L: 1 mH}
  - type: HeatingResistor
    id: RH
    ports: {n1: drive, n2: gnd, heat_port: hot}
    parameters: {R: 50 ohm, alpha: 0.004 / K}
  - type: Resistor
    id: R_T
    ports: {n1: drive, n2: gnd}
    parameters: {R: 10 ohm, T: {temperature: hot}, alpha: 0.004 / K}
  - type: SignalVoltage
    id: E1
    ports: {n1: follower, n2: gnd}
    parameters: {V: {signal: "2*drive"}}
  - type: Resistor
    id: R_load
    ports: {n1: follower, n2: gnd}
""")

    (root / "floating.yaml").write_text("""
circuit_name: floating
nodes:
  - {id: spare}
components:
  - type: Resistor
    id: R1
    ports: {n1: a, n2: gnd}
  - type: Resistor
    id: R2
    ports: {n1: a, n2: stub}
""")

    (root / "unknown_type.yaml").write_text("""
components:
  - {type: Memristor, id: M1, ports: {n1: a, n2: gnd}}
  - {type: Resistor, id: R1, ports: {n1: a, n2: gnd}}
""")

    (root / "bad_signal_syntax.yaml").write_text("""
components:
  - type: Resistor
    id: R1
    ports: {n1: a, n2: gnd}
    parameters: {R: {signal: "5 + * 3"}}
""")

    (root / "unsafe_signal.yaml").write_text("""
components:
  - type: Resistor
    id: R1
    ports: {n1: a, n2: gnd}
    parameters: {R: {signal: "__import__('os').getpid() + 100"}}
""")

    (root / "unknown_signal_name.yaml").write_text("""
components:
  - type: Resistor
    id: R1
    ports: {n1: a, n2: gnd}
    parameters: {R: {signal: "100 + nowhere"}}
""")

    (root / "undeclared_parameter.yaml").write_text("""
components:
  - type: Capacitor
    id: C1
    ports: {n1: a, n2: gnd}
    parameters: {Q: 1}
""")

    (root / "bad_unit.yaml").write_text("""
components:
  - type: Resistor
    id: R1
    ports: {n1: a, n2: gnd}
    parameters: {R: 10 F}
""")

    (root / "missing_port.yaml").write_text("""
components:
  - type: Resistor
    id: R1
    ports: {n1: a}
""")

    (root / "bad_schema.yaml").write_text("""
components:
  - type: Resistor
    id: R-1
    ports: {n1: a, n2: gnd}
""")

    return root


class TestSuccessfulBuild:

    def test_rc_step_is_assembled(self, netlists_dir: Path):
        circuit = CircuitBuilder().build_from_file(netlists_dir / "rc_step.yaml")

        assert circuit.name == "rc_step"
        assert circuit.ground_net_name == "gnd"
        assert circuit.nodes["gnd"] is GROUND
        assert {name for name, node in circuit.nodes.items() if not node.is_literal} == {"in", "out"}
        assert set(circuit.components) == {"V1", "S1", "R1", "C1"}
        assert circuit.components["R1"].fqn == "top.R1"
        assert circuit.components["R1"].param("R").kind is ParamKind.SIGNAL
        assert circuit.components["R1"].param("R").value.has(TIME)
        assert circuit.components["C1"].param("C").value == pytest.approx(1e-5)
        assert circuit.raw_ir_root.source_yaml_path == (netlists_dir / "rc_step.yaml").resolve()
        assert not [issue for issue in circuit.issues if issue.level is not ValidationIssueLevel.INFO]

    def test_rc_step_system(self, netlists_dir: Path):
        circuit = CircuitBuilder().build_from_file(netlists_dir / "rc_step.yaml")
        system = circuit.system()

        kinds = sorted(registration.kind.name for registration in system.events)
        assert kinds == [EventKind.BOOLEAN_CHANGE.name, EventKind.TIME.name]
        assert set(system.controllers) == {"top.S1"}
        assert system.discrete_inputs == [circuit.inputs["trigger"]]

        conservation = circuit.assembly.conservation_equations()
        assert sorted(eq.owner for eq in conservation) == ["in", "out"]
        assert len(system.equations) == len(circuit.assembly.equations) + 1 + len(conservation)

    def test_input_drives_the_switch(self, netlists_dir: Path):
        circuit = CircuitBuilder().build_from_file(netlists_dir / "rc_step.yaml")
        assembly = circuit.assembly
        trigger = circuit.inputs["trigger"]
        assert assembly.controller("top.S1").mode is SwitchState.OPEN

        (change,) = [r for r in assembly.contribution("top.S1").events if r.kind is EventKind.BOOLEAN_CHANGE]
        assert assembly.dispatch_events([change], 0.002, {trigger: True}) == {
            "top.S1": (SwitchState.OPEN, SwitchState.CLOSED)
        }

    def test_shaped_nodes_and_signal_scope(self, netlists_dir: Path):
        circuit = CircuitBuilder().build_from_file(netlists_dir / "shaped.yaml")
        assembly = circuit.assembly

        assert circuit.name == "shaped"
        assert circuit.nodes["bus"].kind is NodeKind.ARRAY
        assert circuit.nodes["bus"].length == 3
        assert circuit.nodes["phasor"].is_complex
        assert circuit.nodes["drive"].kind is NodeKind.SCALAR

        (bus_branch,) = assembly.contribution("top.R_bus").branches
        assert bus_branch.length == 3
        assert len([eq for eq in assembly.conservation_equations() if eq.owner == "bus"]) == 3

        (phasor_branch,) = assembly.contribution("top.R_ph").branches
        assert phasor_branch.shape.is_complex

        follower_voltage = circuit.components["E1"].param("V")
        assert follower_voltage.kind is ParamKind.SIGNAL
        assert follower_voltage.value.has(circuit.nodes["drive"].potentials[0])

    def test_temperature_parameter_reads_the_thermal_node(self, netlists_dir: Path):
        circuit = CircuitBuilder().build_from_file(netlists_dir / "shaped.yaml")
        hot = circuit.nodes["hot"]

        assert circuit.components["R_T"].param("T").kind is ParamKind.TEMPERATURE
        (equation,) = circuit.assembly.contribution("top.R_T").equations[-1:]
        assert equation.rhs.has(hot.potentials[0])
        assert circuit.assembly.flows_at(hot)

    def test_validator_findings_are_kept(self, netlists_dir: Path):
        circuit = CircuitBuilder().build_from_file(netlists_dir / "floating.yaml")
        codes = {issue.code for issue in circuit.issues if issue.level is ValidationIssueLevel.WARNING}
        assert codes == {"NET_CONN_001", "NET_CONN_002"}
        (floating,) = [issue for issue in circuit.issues if issue.code == "NET_CONN_001"]
        assert floating.node_name == "spare"


class TestBuildErrors:

    @pytest.mark.parametrize("netlist, expected", [
        ("unknown_type.yaml", ["COMP_TYPE_001", "unregistered type 'Memristor'", "top.M1"]),
        ("bad_signal_syntax.yaml", ["Invalid Parameter Value", "top.R1.R", "5 + * 3"]),
        ("unsafe_signal.yaml", ["Invalid Parameter Value", "top.R1.R", "not allowed"]),
        ("unknown_signal_name.yaml", ["unknown name(s) ['nowhere']"]),
        ("undeclared_parameter.yaml", ["Component Error", "has no parameter(s) ['Q']"]),
        ("bad_unit.yaml", ["Invalid Parameter Value", "top.R1.R"]),
        ("missing_port.yaml", ["Component Error", "top.R1"]),
        ("bad_schema.yaml", ["R-1"]),
    ])
    def test_errors_are_reported_as_build_errors(self, netlists_dir: Path, netlist, expected):
        with pytest.raises(NetworkBuildError) as exc_info:
            CircuitBuilder().build_from_file(netlists_dir / netlist)
        report = str(exc_info.value)
        assert "Actionable Diagnostic Report" in report
        for fragment in expected:
            assert fragment in report

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(NetworkBuildError, match="YAML Parsing or File Error"):
            CircuitBuilder().build_from_file(tmp_path / "does_not_exist.yaml")

    def test_build_error_keeps_the_cause(self, netlists_dir: Path):
        from lumpsim_core.validation import NetworkValidationError
        with pytest.raises(NetworkBuildError) as exc_info:
            CircuitBuilder().build_from_file(netlists_dir / "unknown_type.yaml")
        assert isinstance(exc_info.value.__cause__, NetworkValidationError)
        assert [issue.component_fqn for issue in exc_info.value.__cause__.issues] == ["top.M1"]
