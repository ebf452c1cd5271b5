# tests/conftest.py
import pytest
import sympy as sp

from lumpsim_core import Assembly, TIME


@pytest.fixture
def assembly():
    return Assembly(name="test_network")


def solve_for(equations, unknowns):
    """Solves the (algebraic) residuals of `equations` for `unknowns`; returns one solution dict."""
    solutions = sp.solve([eq.residual for eq in equations], list(unknowns), dict=True)
    assert len(solutions) == 1, f"Expected exactly one solution, got {solutions}"
    return solutions[0]


def residual_at(equation, values, time=0.0):
    """Numeric residual of `equation` after substituting `values` and `t = time`."""
    expr = equation.residual.subs(values).subs(TIME, time)
    return complex(sp.N(expr))


def equations_mentioning(equations, expr):
    return [eq for eq in equations if eq.residual.has(expr)]
