# src/lumpsim_core/parameters/parameters.py

"""
Component parameters as a small tagged variant.

A template parameter is one of:

1.  **Constant**: a real number (or one per element, for array-valued networks)
    expressed in the SI unit the template declares. Plain numbers are taken as SI;
    pint quantities and unit strings (e.g. ``"4.7 kohm"``) are converted, and a
    dimensionally incompatible value is rejected at assembly time.

2.  **Signal**: a sympy expression, typically depending on the time symbol or on
    other unknowns of the network. Its value is only known to the solver.

3.  **Temperature**: the temperature of a thermal node (a heat port), consumed by
    temperature-dependent templates.

Reading a parameter never has side effects; the solver may evaluate the equations
that use it any number of times per step.

Parameter contracts: a resistance signal that crosses zero, or any other degenerate
combination, is not detected here. It shows up as a singular Jacobian in the solver.
"""

import ast
import logging
import numbers
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple

import numpy as np
import pint
import sympy as sp

from ..units import ureg, Quantity
from ..network.nodes import NodeRef
from ..network.symbols import TIME
from .exceptions import ParameterValueError

logger = logging.getLogger(__name__)


class ParamKind(Enum):
    """The variants of a template parameter."""
    CONSTANT = "constant"
    SIGNAL = "signal"
    TEMPERATURE = "temperature"

    def __str__(self):
        return self.value


@dataclass(frozen=True)
class Temperature:
    """Marks a parameter value as the temperature of a thermal node."""
    node: NodeRef


@dataclass(frozen=True)
class Parameter:
    """The explicit contract object representing one resolved parameter."""
    name: str
    kind: ParamKind
    value: Any
    unit: str = "dimensionless"

    @property
    def is_constant(self) -> bool:
        return self.kind is ParamKind.CONSTANT

    @property
    def elements(self) -> Tuple[Any, ...]:
        """The value as a tuple with one entry per element."""
        return self.value if isinstance(self.value, tuple) else (self.value,)

    def __str__(self) -> str:
        return f"{self.name}={self.value} [{self.unit}] ({self.kind})"


def _convert_quantity(qty: Quantity, name: str, unit: str, owner_fqn: str, user_input: str) -> Any:
    try:
        if qty.unitless:
            magnitude = qty.magnitude
        else:
            expected_unit = ureg.Unit(unit)
            if not qty.is_compatible_with(expected_unit):
                raise pint.DimensionalityError(qty.units, expected_unit)
            magnitude = qty.to(expected_unit).magnitude
    except (pint.DimensionalityError, pint.UndefinedUnitError) as e:
        raise ParameterValueError(
            owner_fqn=owner_fqn,
            parameter_name=name,
            user_input=user_input,
            details=f"Value is not compatible with the declared unit '{unit}': {e}"
        ) from e

    magnitude = np.asarray(magnitude)
    if np.iscomplexobj(magnitude):
        raise ParameterValueError(
            owner_fqn=owner_fqn, parameter_name=name, user_input=user_input,
            details="Parameters must be real-valued."
        )
    if magnitude.ndim == 0:
        return float(magnitude)
    return tuple(float(m) for m in magnitude.ravel())


def resolve_parameter(name: str, raw: Any, unit: str, owner_fqn: str) -> Parameter:
    """
    Interprets a user-supplied parameter value.

    Args:
        name: The parameter's base name (e.g. 'R').
        raw: The value as given by the circuit description.
        unit: The declared SI unit string (e.g. 'ohm').
        owner_fqn: The FQN of the owning component, for diagnostics.

    Returns:
        A resolved `Parameter`.

    Raises:
        ParameterValueError: If the value cannot be interpreted.
    """
    if isinstance(raw, Parameter):
        return Parameter(name=name, kind=raw.kind, value=raw.value, unit=unit)

    if isinstance(raw, Temperature):
        return Parameter(name=name, kind=ParamKind.TEMPERATURE, value=_node_value(raw.node), unit=unit)

    if isinstance(raw, NodeRef):
        kind = ParamKind.CONSTANT if raw.is_literal else ParamKind.SIGNAL
        value = raw.value if raw.is_literal else _node_value(raw)
        return Parameter(name=name, kind=kind, value=value, unit=unit)

    if isinstance(raw, bool):
        raise ParameterValueError(
            owner_fqn=owner_fqn, parameter_name=name, user_input=repr(raw),
            details="A boolean is not a valid numeric parameter."
        )

    if isinstance(raw, numbers.Real):
        return Parameter(name=name, kind=ParamKind.CONSTANT, value=float(raw), unit=unit)

    if isinstance(raw, Quantity):
        value = _convert_quantity(raw, name, unit, owner_fqn, f"{raw}")
        return Parameter(name=name, kind=ParamKind.CONSTANT, value=value, unit=unit)

    if isinstance(raw, str):
        try:
            qty = Quantity(raw)
        except (pint.UndefinedUnitError, pint.errors.DefinitionSyntaxError, pint.OffsetUnitCalculusError,
                AttributeError, TypeError, ValueError, SyntaxError) as e:
            raise ParameterValueError(
                owner_fqn=owner_fqn, parameter_name=name, user_input=raw,
                details=f"Could not parse the value as a quantity: {e}"
            ) from e
        value = _convert_quantity(qty, name, unit, owner_fqn, raw)
        return Parameter(name=name, kind=ParamKind.CONSTANT, value=value, unit=unit)

    if isinstance(raw, (list, tuple, np.ndarray)):
        parts = [resolve_parameter(name, item, unit, owner_fqn) for item in np.asarray(raw, dtype=object).ravel()]
        if not parts:
            raise ParameterValueError(
                owner_fqn=owner_fqn, parameter_name=name, user_input=repr(raw),
                details="An array-valued parameter needs at least one element."
            )
        kind = ParamKind.CONSTANT if all(p.is_constant for p in parts) else ParamKind.SIGNAL
        values = tuple(p.value for p in parts)
        return Parameter(name=name, kind=kind, value=values[0] if len(values) == 1 else values, unit=unit)

    if isinstance(raw, sp.Basic):
        if raw.is_number:
            if not raw.is_real:
                raise ParameterValueError(
                    owner_fqn=owner_fqn, parameter_name=name, user_input=str(raw),
                    details="Parameters must be real-valued."
                )
            return Parameter(name=name, kind=ParamKind.CONSTANT, value=float(raw), unit=unit)
        return Parameter(name=name, kind=ParamKind.SIGNAL, value=raw, unit=unit)

    raise ParameterValueError(
        owner_fqn=owner_fqn, parameter_name=name, user_input=repr(raw),
        details=f"Unsupported parameter type '{type(raw).__name__}'."
    )


def _node_value(node: NodeRef) -> Any:
    return node.potentials[0] if node.length == 1 else node.potentials


# Functions and constants a signal expression may use. Everything else is rejected
# before the expression is handed to sympy.
SIGNAL_FUNCTIONS = {
    func.__name__: func for func in (
        sp.Abs, sp.sqrt, sp.exp, sp.log,
        sp.sin, sp.cos, sp.tan, sp.asin, sp.acos, sp.atan, sp.atan2,
        sp.sinh, sp.cosh, sp.tanh,
        sp.Min, sp.Max, sp.sign, sp.Heaviside,
    )
}
SIGNAL_CONSTANTS = {"pi": sp.pi, "E": sp.E}

_PARSE_GLOBALS = {
    "Symbol": sp.Symbol, "Integer": sp.Integer, "Float": sp.Float, "Rational": sp.Rational,
    **SIGNAL_FUNCTIONS,
    **SIGNAL_CONSTANTS,
}

_ALLOWED_OPERATORS = (ast.Add, ast.Sub, ast.Mult, ast.Div, ast.Pow, ast.USub, ast.UAdd)


class _SignalTransformer(ast.NodeTransformer):
    """
    Checks a parsed signal against the allowed grammar and replaces every identifier
    that is not a function or constant with a placeholder bound in `symbol_map`.
    """
    def __init__(self, expression_str: str, scope: Mapping[str, Any]):
        self.expression_str = expression_str
        self.scope = scope
        self.symbol_map: Dict[str, Any] = {}

    def _reject(self, what: str) -> None:
        raise ParameterValueError(
            owner_fqn="<netlist>", parameter_name="<signal>", user_input=self.expression_str,
            details=f"Invalid signal expression: {what} is not allowed. Signals may only use numbers, "
                    f"names, + - * / **, and the functions {sorted(SIGNAL_FUNCTIONS)}."
        )

    def generic_visit(self, node: ast.AST) -> ast.AST:
        if not isinstance(node, (ast.Expression, ast.BinOp, ast.UnaryOp, ast.Load) + _ALLOWED_OPERATORS):
            self._reject(f"'{type(node).__name__}'")
        return super().generic_visit(node)

    def visit_Constant(self, node: ast.Constant) -> ast.Constant:
        if isinstance(node.value, bool) or not isinstance(node.value, (int, float)):
            self._reject(f"the literal {node.value!r}")
        return node

    def visit_Call(self, node: ast.Call) -> ast.Call:
        if not isinstance(node.func, ast.Name) or node.func.id not in SIGNAL_FUNCTIONS:
            self._reject(f"calling '{ast.unparse(node.func)}'")
        if node.keywords:
            self._reject("a keyword argument")
        node.args = [self.visit(arg) for arg in node.args]
        return node

    def visit_Name(self, node: ast.Name) -> ast.Name:
        if node.id in SIGNAL_FUNCTIONS or node.id in SIGNAL_CONSTANTS:
            return node
        if node.id.startswith("_"):
            self._reject(f"the name '{node.id}'")
        placeholder = f"_signal_ref_{len(self.symbol_map)}"
        self.symbol_map[placeholder] = self.scope.get(node.id, sp.Symbol(node.id))
        return ast.Name(id=placeholder, ctx=ast.Load())


def parse_signal(expression_str: str, scope: Optional[Mapping[str, Any]] = None) -> sp.Expr:
    """
    Parses a signal expression such as ``"1e-6*(1 + 0.1*sin(2*pi*50*t))"``.

    The symbol ``t`` is the network time; `scope` maps further names (node ids,
    input ids) to the sympy objects they stand for. Names found in neither become
    plain symbols, for the caller to report.

    The expression is checked with `ast` first: only arithmetic, numbers, names and
    calls of `SIGNAL_FUNCTIONS` are accepted, so nothing else is ever evaluated.
    """
    local_scope: Dict[str, Any] = {"t": TIME}
    if scope:
        local_scope.update(scope)
    try:
        tree = ast.parse(expression_str.strip(), mode="eval")
    except SyntaxError as e:
        raise ParameterValueError(
            owner_fqn="<netlist>", parameter_name="<signal>", user_input=expression_str,
            details=f"Invalid signal expression: {e}"
        ) from e

    transformer = _SignalTransformer(expression_str, local_scope)
    safe_tree = transformer.visit(tree)
    try:
        return sp.parse_expr(ast.unparse(safe_tree), local_dict=transformer.symbol_map, global_dict=_PARSE_GLOBALS)
    except (sp.SympifyError, SyntaxError, TypeError, ValueError) as e:
        raise ParameterValueError(
            owner_fqn="<netlist>", parameter_name="<signal>", user_input=expression_str,
            details=f"Invalid signal expression: {e}"
        ) from e


@dataclass(frozen=True)
class ParameterCheck:
    """
    A runtime requirement on a signal-valued parameter, evaluated by the assembly
    whenever the solver asks for parameter diagnostics.
    """
    owner: str
    parameter: Parameter
    requirement: str = "strictly positive"

    def is_satisfied_by(self, value: float) -> bool:
        if self.requirement == "strictly positive":
            return value > 0
        raise ValueError(f"Unknown parameter requirement '{self.requirement}'.")
