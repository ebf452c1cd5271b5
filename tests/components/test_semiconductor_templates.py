# tests/components/test_semiconductor_templates.py
import math

import numpy as np
import pytest

from lumpsim_core.components import Diode, HeatingDiode, diode_conductance, diode_current, exlin, exlin_slope
from lumpsim_core.constants import BOLTZMANN_CONSTANT, ELEMENTARY_CHARGE
from lumpsim_core.network.exceptions import ShapeMismatchError
from lumpsim_core.network.nodes import GROUND
from lumpsim_core.network.symbols import new_unknown


def diode_law(assembly, fqn):
    i = new_unknown(f"{fqn}.i")
    (law,) = [eq for eq in assembly.contribution(fqn).equations if eq.lhs == i]
    return law


class TestExponentialContinuation:

    def test_exlin_matches_exp_below_the_limit(self):
        assert exlin(2.0, 15.0) == pytest.approx(math.exp(2.0))

    def test_exlin_is_linear_above_the_limit(self):
        assert exlin(17.0, 15.0) == pytest.approx(math.exp(15.0) * 3.0)
        assert exlin_slope(17.0, 15.0) == pytest.approx(math.exp(15.0))

    def test_value_and_slope_are_continuous_at_the_limit(self):
        eps = 1e-9
        assert exlin(15.0 - eps) == pytest.approx(exlin(15.0 + eps), rel=1e-8)
        assert exlin_slope(15.0 - eps) == pytest.approx(exlin_slope(15.0 + eps), rel=1e-8)

    def test_helpers_accept_arrays(self):
        values = exlin(np.array([0.0, 15.0, 16.0]), 15.0)
        assert values.shape == (3,)
        assert values[2] == pytest.approx(2 * math.exp(15.0))


class TestDiode:

    def test_current_is_continuous_at_the_knee(self):
        # The exponent limit is reached at v = Maxexp * Vt = 0.6 V.
        below, above = diode_current(0.6 - 1e-9), diode_current(0.6 + 1e-9)
        assert below == pytest.approx(above, rel=1e-6)
        assert diode_conductance(0.6 - 1e-9) == pytest.approx(diode_conductance(0.6 + 1e-9), rel=1e-6)

    def test_reverse_bias_saturates(self):
        assert diode_current(-5.0) == pytest.approx(-1e-6 - 5.0 / 1e8)

    def test_equation_matches_numeric_characteristic(self, assembly):
        a = assembly.new_scalar("a")
        assembly.add(Diode(a, GROUND, name="D1"))
        law = diode_law(assembly, "top.D1")
        v = new_unknown("top.D1.v")
        for voltage in (-1.0, 0.3, 0.6, 0.9):
            assert float(law.rhs.subs(v, voltage)) == pytest.approx(diode_current(voltage), rel=1e-9)

    def test_vectorized_diode(self, assembly):
        bus = assembly.new_array(2, "bus")
        assembly.add(Diode(bus, GROUND, Ids=[1e-6, 2e-6], name="D1"))
        laws = [eq for eq in assembly.contribution("top.D1").equations
                if str(eq.lhs.func).startswith("top.D1.i")]
        assert len(laws) == 2
        v1 = new_unknown("top.D1.v[1]")
        assert float(laws[1].rhs.subs(v1, 0.3)) == pytest.approx(diode_current(0.3, Ids=2e-6))

    def test_complex_nodes_are_rejected(self, assembly):
        phasor = assembly.new_complex("phasor")
        with pytest.raises(ShapeMismatchError):
            assembly.add(Diode(phasor, GROUND, name="D1"))


class TestHeatingDiode:

    def test_reduces_to_plain_diode_at_nominal_temperature(self, assembly):
        a, heat = assembly.new_scalar("a"), assembly.new_scalar("heat")
        assembly.add(HeatingDiode(a, GROUND, heat, TNOM=300.15, name="DH"))
        law = diode_law(assembly, "top.DH")
        vt = BOLTZMANN_CONSTANT * 300.15 / ELEMENTARY_CHARGE
        value = law.rhs.subs({new_unknown("top.DH.v"): 0.3, new_unknown("heat"): 300.15})
        assert float(value) == pytest.approx(diode_current(0.3, Vt=vt), rel=1e-9)

    def test_saturation_current_grows_with_temperature(self, assembly):
        a, heat = assembly.new_scalar("a"), assembly.new_scalar("heat")
        assembly.add(HeatingDiode(a, GROUND, heat, name="DH"))
        law = diode_law(assembly, "top.DH")
        v, t = new_unknown("top.DH.v"), new_unknown("heat")
        cold = float(law.rhs.subs({v: -1.0, t: 300.0}))
        hot = float(law.rhs.subs({v: -1.0, t: 350.0}))
        assert hot < cold < 0

    def test_dissipated_power_flows_into_the_heat_port(self, assembly):
        a, heat = assembly.new_scalar("a"), assembly.new_scalar("heat")
        assembly.add(HeatingDiode(a, GROUND, heat, name="DH"))
        assert [flow.value for flow in assembly.flows_at(heat)] == [-new_unknown("top.DH.power")]
        assert set(assembly.topology_graph().nodes) == {"a", "heat", "<reference>"}
