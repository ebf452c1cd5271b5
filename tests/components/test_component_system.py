# tests/components/test_component_system.py
from typing import Dict, List

import pytest

from lumpsim_core.components import (
    COMPONENT_REGISTRY, Capacitor, ComponentBase, ComponentError, IConnectivityProvider,
    IEquationContributor, IdealOpAmp, IdealOpeningSwitch, Resistor, Transformer,
    provides, register_component,
)
from lumpsim_core.network.nodes import GROUND, scalar_node
from lumpsim_core.parameters import Temperature


@pytest.fixture
def clean_registry():
    snapshot = dict(COMPONENT_REGISTRY)
    yield COMPONENT_REGISTRY
    COMPONENT_REGISTRY.clear()
    COMPONENT_REGISTRY.update(snapshot)


class TestRegistry:

    def test_all_templates_are_registered(self):
        expected = {
            "Resistor", "HeatingResistor", "Conductor", "Capacitor", "Inductor", "Transformer", "EMF",
            "Diode", "HeatingDiode",
            "IdealOpeningSwitch", "IdealClosingSwitch",
            "ControlledIdealOpeningSwitch", "ControlledIdealClosingSwitch",
            "IdealThyristor", "IdealGTOThyristor",
            "OpenerWithArc", "CloserWithArc", "ControlledOpenerWithArc", "ControlledCloserWithArc",
            "IdealOpAmp", "IdealOpAmp3Pin",
            "SignalVoltage", "SignalCurrent", "SineVoltage", "SineCurrent", "StepVoltage", "StepCurrent",
        }
        assert expected <= set(COMPONENT_REGISTRY)
        assert COMPONENT_REGISTRY["Resistor"] is Resistor

    def test_registering_a_new_template(self, clean_registry):
        @register_component("TestShunt")
        class TestShunt(ComponentBase):
            def __init__(self, n1, n2, *, name=None):
                super().__init__(ports={"n1": n1, "n2": n2}, parameters={}, name=name)

            @classmethod
            def declare_ports(cls) -> List[str]:
                return ["n1", "n2"]

            @classmethod
            def declare_parameters(cls) -> Dict[str, str]:
                return {}

            @provides(IEquationContributor)
            class EquationContributor:
                def contribute(self, component, out):
                    pass

        assert clean_registry["TestShunt"] is TestShunt
        assert TestShunt.component_type_str == "TestShunt"
        assert TestShunt(1.0, GROUND, name="X").component_type == "TestShunt"

    def test_bad_port_declaration_is_rejected(self, clean_registry):
        with pytest.raises(TypeError, match="declare_ports"):
            @register_component("TestBroken")
            class TestBroken(ComponentBase):
                @classmethod
                def declare_ports(cls):
                    return ["n1", "n1"]

                @classmethod
                def declare_parameters(cls):
                    return {}
        assert "TestBroken" not in clean_registry

    def test_unknown_parameter_unit_is_rejected(self, clean_registry):
        with pytest.raises(TypeError, match="declare_parameters"):
            @register_component("TestBadUnit")
            class TestBadUnit(ComponentBase):
                @classmethod
                def declare_ports(cls):
                    return ["n1", "n2"]

                @classmethod
                def declare_parameters(cls):
                    return {"X": "not_a_unit"}


class TestCapabilities:

    def test_two_port_default_connectivity(self):
        resistor = Resistor(scalar_node("a"), GROUND, name="R1")
        assert resistor.get_capability(IConnectivityProvider).get_connectivity(resistor) == [("n1", "n2")]

    def test_capability_instances_are_cached(self):
        resistor = Resistor(scalar_node("a"), GROUND, name="R1")
        assert resistor.get_capability(IEquationContributor) is resistor.get_capability(IEquationContributor)

    def test_multi_port_templates_declare_their_connectivity(self):
        transformer = Transformer(scalar_node("a"), GROUND, scalar_node("b"), GROUND, name="T1")
        assert transformer.get_capability(IConnectivityProvider).get_connectivity(transformer) == [
            ("p1", "n1"), ("p2", "n2"),
        ]
        opamp = IdealOpAmp(scalar_node("a"), GROUND, scalar_node("b"), GROUND, name="U1")
        assert opamp.get_capability(IConnectivityProvider).get_connectivity(opamp) == [
            ("p1", "n1"), ("p2", "n2"),
        ]


class TestInstances:

    def test_auto_naming(self):
        first = Capacitor(1.0, GROUND)
        second = Capacitor(1.0, GROUND)
        assert first.instance_id.startswith("Capacitor_")
        assert first.instance_id != second.instance_id
        assert first.fqn == f"top.{first.instance_id}"

    def test_fqn_and_parameter_fqns(self):
        resistor = Resistor(1.0, GROUND, R=5.0, name="R1", parent_hierarchical_id="top.sub")
        assert resistor.fqn == "top.sub.R1"
        assert "top.sub.R1.R" in resistor.parameter_fqns

    def test_numbers_become_literal_ports(self):
        resistor = Resistor(5.0, GROUND, name="R1")
        assert resistor.port("n1").is_literal
        assert resistor.port("n1").value == 5.0
        assert resistor.nodes() == []

    def test_missing_port_is_reported(self):
        with pytest.raises(ComponentError) as exc_info:
            Resistor(None, GROUND, name="R1")
        assert "n1" in exc_info.value.details
        assert "Component Error" in exc_info.value.get_diagnostic_report()

    def test_control_must_be_boolean(self):
        with pytest.raises(ComponentError, match="BooleanInput or a bool"):
            IdealOpeningSwitch(scalar_node("a"), GROUND, control="on", name="S1")

    def test_temperature_parameter_adds_a_node(self):
        heat = scalar_node("heat")
        resistor = Resistor(scalar_node("a"), GROUND, T=Temperature(heat), name="R1")
        assert [node.name for node in resistor.nodes()] == ["a", "heat"]

    def test_missing_parameter_is_reported(self):
        resistor = Resistor(1.0, GROUND, name="R1")
        assert not resistor.has_param("T")
        with pytest.raises(ComponentError, match="was not supplied"):
            resistor.param("T")
