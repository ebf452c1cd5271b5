# tests/components/test_passive_templates.py
import logging

import pytest
import sympy as sp

from lumpsim_core.components import (
    Capacitor, Conductor, EMF, HeatingResistor, Inductor, Resistor, Transformer,
)
from lumpsim_core.network.exceptions import ShapeMismatchError
from lumpsim_core.network.nodes import GROUND
from lumpsim_core.network.symbols import TIME, der, new_unknown
from lumpsim_core.parameters import ParameterValueError

from conftest import equations_mentioning


def u(name):
    return new_unknown(name)


def law_for(assembly, fqn, lhs):
    """The single equation of `fqn` whose left-hand side is `lhs` and that is not a branch definition."""
    matches = [eq for eq in assembly.contribution(fqn).equations
               if eq.lhs == lhs and not _is_potential_difference(eq)]
    assert len(matches) == 1, matches
    return matches[0]


def _is_potential_difference(eq):
    return not any(str(f.func).startswith("top.") for f in sp.sympify(eq.rhs).atoms(sp.Function))


class TestResistor:

    def test_ohms_law_with_unit_string(self, assembly):
        a = assembly.new_scalar("a")
        assembly.add(Resistor(a, GROUND, R="1 kohm", name="R1"))
        (law,) = equations_mentioning(assembly.equations, u("top.R1.i"))
        assert law.lhs == u("top.R1.v")
        assert sp.simplify(law.rhs - 1000 * u("top.R1.i")) == 0

    def test_vectorized_resistor_matches_scalar_instances(self, assembly):
        resistances = (1.0, 2.0, 4.0)
        bus = assembly.new_array(3, "bus")
        assembly.add(Resistor(bus, GROUND, R=list(resistances), name="RV"))
        for k, r in enumerate(resistances):
            assembly.add(Resistor(assembly.new_scalar(f"s{k}"), GROUND, R=r, name=f"RS{k}"))

        for k in range(3):
            renaming = {
                u(f"top.RV.v[{k}]"): u(f"top.RS{k}.v"),
                u(f"top.RV.i[{k}]"): u(f"top.RS{k}.i"),
                u(f"bus[{k}]"): u(f"s{k}"),
            }
            vector_eqs = {sp.simplify(eq.residual.subs(renaming))
                          for eq in assembly.contribution("top.RV").equations
                          if eq.residual.has(u(f"top.RV.v[{k}]"))}
            scalar_eqs = {sp.simplify(eq.residual) for eq in assembly.contribution(f"top.RS{k}").equations}
            assert vector_eqs == scalar_eqs

    def test_resistance_list_must_match_the_array_length(self, assembly):
        bus = assembly.new_array(3, "bus")
        with pytest.raises(ShapeMismatchError):
            assembly.add(Resistor(bus, GROUND, R=[1.0, 2.0], name="R1"))

    def test_fixed_temperature_scales_the_resistance(self, assembly):
        a = assembly.new_scalar("a")
        assembly.add(Resistor(a, GROUND, R=10.0, T="400 K", T_ref="300 K", alpha=0.01, name="R1"))
        law = law_for(assembly, "top.R1", u("top.R1.v"))
        assert sp.simplify(law.rhs - 20 * u("top.R1.i")) == 0

    def test_heat_port_takes_precedence_over_fixed_temperature(self, assembly):
        a, heat = assembly.new_scalar("a"), assembly.new_scalar("heat")
        assembly.add(Resistor(a, GROUND, R=10.0, T=400.0, T_ref=300.0, alpha=0.01, heat_port=heat, name="R1"))
        law = law_for(assembly, "top.R1", u("top.R1.v"))
        assert law.rhs.has(u("heat"))
        assert sp.simplify(law.rhs.subs(u("heat"), 300.0) - 10 * u("top.R1.i")) == 0

    def test_heating_resistor_injects_its_power(self, assembly):
        a, heat = assembly.new_scalar("a"), assembly.new_scalar("heat")
        assembly.add(HeatingResistor(a, GROUND, heat, R=10.0, alpha=0.004, name="RH"))
        assert [flow.value for flow in assembly.flows_at(heat)] == [-u("top.RH.power")]
        power = law_for(assembly, "top.RH", u("top.RH.power"))
        assert power.rhs == u("top.RH.v") * u("top.RH.i")
        (kcl,) = [eq for eq in assembly.conservation_equations() if eq.owner == "heat"]
        assert kcl.residual.has(u("top.RH.power"))

    def test_heating_resistor_requires_a_heat_port(self):
        with pytest.raises(TypeError):
            HeatingResistor(1.0, GROUND, R=10.0)

    def test_zero_resistance_is_accepted_with_a_warning(self, assembly, caplog):
        a = assembly.new_scalar("a")
        with caplog.at_level(logging.WARNING, logger="lumpsim_core.components.base"):
            assembly.add(Resistor(a, GROUND, R=0.0, name="R0"))
        assert "zero or negative" in caplog.text
        (law,) = [eq for eq in assembly.contribution("top.R0").equations
                  if eq.lhs == u("top.R0.v") and not sp.sympify(eq.rhs).has(u("a"))]
        assert not sp.sympify(law.rhs).has(sp.zoo, sp.nan, sp.oo)
        assert sp.simplify(law.rhs) == 0
        assert law.residual.subs(u("top.R0.v"), 0) == 0

    def test_negative_resistance_keeps_the_same_law(self, assembly):
        a = assembly.new_scalar("a")
        assembly.add(Resistor(a, GROUND, R=-5.0, name="RN"))
        law = law_for(assembly, "top.RN", u("top.RN.v"))
        assert sp.simplify(law.rhs + 5 * u("top.RN.i")) == 0

    def test_wrong_dimension_is_rejected(self):
        with pytest.raises(ParameterValueError) as exc_info:
            Resistor(1.0, GROUND, R="10 F", name="RBAD")
        assert exc_info.value.parameter_name == "R"
        assert "ohm" in exc_info.value.get_diagnostic_report()


class TestReactiveElements:

    def test_conductor(self, assembly):
        a = assembly.new_scalar("a")
        assembly.add(Conductor(a, GROUND, G="2 mS", name="G1"))
        law = law_for(assembly, "top.G1", u("top.G1.i"))
        assert float(law.rhs / u("top.G1.v")) == pytest.approx(2e-3)

    def test_capacitor(self, assembly):
        a = assembly.new_scalar("a")
        assembly.add(Capacitor(a, GROUND, C="10 uF", name="C1"))
        law = law_for(assembly, "top.C1", u("top.C1.i"))
        assert float(law.rhs / der(u("top.C1.v"))) == pytest.approx(1e-5)

    def test_inductor(self, assembly):
        a = assembly.new_scalar("a")
        assembly.add(Inductor(a, GROUND, L="1 mH", name="L1"))
        law = law_for(assembly, "top.L1", u("top.L1.v"))
        assert float(law.rhs / der(u("top.L1.i"))) == pytest.approx(1e-3)

    def test_time_varying_capacitance_registers_a_runtime_check(self, assembly):
        a = assembly.new_scalar("a")
        capacitor = Capacitor(a, GROUND, C=1e-6 * (2 + sp.sin(TIME)), name="C1")
        assembly.add(capacitor)
        assert not capacitor.param("C").is_constant
        assert [check.parameter.name for check in assembly.contribution("top.C1").checks] == ["C"]
        law = law_for(assembly, "top.C1", u("top.C1.i"))
        assert law.rhs.has(sp.sin(TIME))

    def test_transformer_couples_two_branches(self, assembly):
        p1, p2 = assembly.new_scalar("p1"), assembly.new_scalar("p2")
        assembly.add(Transformer(p1, GROUND, p2, GROUND, L1=1.0, M=0.5, L2=2.0, name="T1"))
        i1, i2 = u("top.T1.i1"), u("top.T1.i2")
        primary = law_for(assembly, "top.T1", u("top.T1.v1"))
        secondary = law_for(assembly, "top.T1", u("top.T1.v2"))
        assert sp.simplify(primary.rhs - (der(i1) + 0.5 * der(i2))) == 0
        assert sp.simplify(secondary.rhs - (0.5 * der(i1) + 2 * der(i2))) == 0
        assert len(assembly.conservation_equations()) == 2

    def test_emf_converts_between_domains(self, assembly):
        a, flange = assembly.new_scalar("a"), assembly.new_scalar("flange")
        assembly.add(EMF(a, GROUND, flange, k=0.5, name="M1"))
        w = u("top.M1.w")
        assert law_for(assembly, "top.M1", w).rhs == der(u("top.M1.phi"))
        assert sp.simplify(law_for(assembly, "top.M1", u("top.M1.v")).rhs - 0.5 * w) == 0
        assert sp.simplify(law_for(assembly, "top.M1", u("top.M1.tau")).rhs + 0.5 * u("top.M1.i")) == 0
        assert [flow.value for flow in assembly.flows_at(flange)] == [u("top.M1.tau")]

    def test_emf_support_defaults_to_the_reference(self, assembly):
        a, flange = assembly.new_scalar("a"), assembly.new_scalar("flange")
        assembly.add(EMF(a, GROUND, flange, name="M1"))
        graph = assembly.topology_graph()
        assert graph.number_of_edges() == 2
