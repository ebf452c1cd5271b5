# src/lumpsim_core/network/nodes.py
"""
Node references and the value compatibility resolver.

A node reference is a tagged variant (`NodeKind`) over scalar, array, complex and
literal potentials. All shape decisions are made here, by explicit dispatch on the
tag, so that every template sizes its branch variables by the same rules:

(a) if any reference is complex, the shape is complex with the largest array
    length among the references (1 if there are no arrays);
(b) otherwise, if any reference is an array, the shape is an array of that length
    and all arrays must agree on it;
(c) otherwise the shape is a real scalar.

Literals never constrain the shape.
"""
import logging
import numbers
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Iterator, List, Optional, Sequence, Tuple

import numpy as np
import sympy as sp

from .exceptions import ShapeMismatchError
from .symbols import Unknown, new_unknown

logger = logging.getLogger(__name__)


class NodeKind(Enum):
    """The variants of a node reference."""
    SCALAR = "scalar"
    ARRAY = "array"
    COMPLEX = "complex"
    LITERAL = "literal"

    def __str__(self):
        return self.value


@dataclass(frozen=True)
class Shape:
    """The common shape of a set of branch variables."""
    length: int = 1
    is_array: bool = False
    is_complex: bool = False

    def __str__(self) -> str:
        if self.is_complex:
            return f"Complex array length {self.length}" if self.is_array else "Complex"
        if self.is_array:
            return f"Array length {self.length}"
        return "Scalar"


SCALAR_SHAPE = Shape()


@dataclass(frozen=True)
class NodeRef:
    """
    An electrical (or thermal, or rotational) potential.

    `potentials` holds one sympy expression per element. For a literal it holds the
    constant itself and `unknowns` is empty.
    """
    name: str
    kind: NodeKind
    potentials: Tuple[sp.Expr, ...]
    unknowns: Tuple[Unknown, ...] = ()
    value: Optional[float] = None
    is_array: bool = False

    @property
    def length(self) -> int:
        return len(self.potentials)

    @property
    def is_literal(self) -> bool:
        return self.kind is NodeKind.LITERAL

    @property
    def is_complex(self) -> bool:
        return self.kind is NodeKind.COMPLEX

    @property
    def shape(self) -> Shape:
        return Shape(length=self.length, is_array=self.is_array, is_complex=self.is_complex)

    def __str__(self) -> str:
        if self.is_literal:
            return f"Literal({self.value:g})"
        return f"{self.kind.value.capitalize()}Node('{self.name}', {self.shape})"


# --- Constructors (the unknown-creation interface of the solver runtime) ---

def create_unknowns(
    name: str,
    shape: Shape,
    initial: Any = None,
    owner: str = ""
) -> Tuple[Tuple[sp.Expr, ...], Tuple[Unknown, ...]]:
    """
    Creates the unknowns backing a value of the given shape.

    Array elements are named `name[k]`; complex elements are split into `.re` and
    `.im` real unknowns and exposed as `re + I*im`.

    Returns:
        A tuple `(elements, unknowns)`.
    """
    initials = _broadcast_initial(name, initial, shape.length, owner)
    elements: List[sp.Expr] = []
    unknowns: List[Unknown] = []
    for k in range(shape.length):
        base = f"{name}[{k}]" if shape.is_array else name
        init = initials[k]
        if shape.is_complex:
            c_init = complex(init) if init is not None else None
            re_part, im_part = new_unknown(f"{base}.re"), new_unknown(f"{base}.im")
            unknowns.append(Unknown(f"{base}.re", re_part, c_init.real if c_init is not None else None, owner))
            unknowns.append(Unknown(f"{base}.im", im_part, c_init.imag if c_init is not None else None, owner))
            elements.append(re_part + sp.I * im_part)
        else:
            element = new_unknown(base)
            unknowns.append(Unknown(base, element, float(init) if init is not None else None, owner))
            elements.append(element)
    return tuple(elements), tuple(unknowns)


def _broadcast_initial(name: str, initial: Any, length: int, owner: str) -> List[Any]:
    if initial is None:
        return [None] * length
    if isinstance(initial, (list, tuple, np.ndarray)):
        values = list(np.asarray(initial, dtype=object).ravel())
        if len(values) == 1:
            return values * length
        if len(values) != length:
            raise ShapeMismatchError(
                component_fqn=owner or name,
                details=f"Initial value for '{name}' has {len(values)} elements but the value has {length}."
            )
        return values
    return [initial] * length


def scalar_node(name: str, initial: Optional[float] = None) -> NodeRef:
    """A fresh real scalar potential."""
    potentials, unknowns = create_unknowns(name, SCALAR_SHAPE, initial)
    return NodeRef(name=name, kind=NodeKind.SCALAR, potentials=potentials, unknowns=unknowns)


def array_node(name: str, length: int, initial: Any = None) -> NodeRef:
    """A fixed-length sequence of real potentials (multiphase or multi-position nodes)."""
    if length < 1:
        raise ValueError(f"Array node '{name}' must have a length of at least 1, got {length}.")
    potentials, unknowns = create_unknowns(name, Shape(length=length, is_array=True), initial)
    return NodeRef(name=name, kind=NodeKind.ARRAY, potentials=potentials, unknowns=unknowns, is_array=True)


def complex_node(name: str, initial: Any = None, length: Optional[int] = None) -> NodeRef:
    """A phasor-valued potential. Passing `length` makes it a complex array."""
    is_array = length is not None
    shape = Shape(length=length if is_array else 1, is_array=is_array, is_complex=True)
    potentials, unknowns = create_unknowns(name, shape, initial)
    return NodeRef(name=name, kind=NodeKind.COMPLEX, potentials=potentials, unknowns=unknowns, is_array=is_array)


def literal(value: float = 0.0) -> NodeRef:
    """A fixed real potential carrying no solver state; `literal(0.0)` is ground."""
    value = float(value)
    return NodeRef(name=f"{value:g}", kind=NodeKind.LITERAL, potentials=(sp.Float(value),), value=value)


GROUND = literal(0.0)


def as_node(ref: Any) -> NodeRef:
    """Coerces a plain real number to a literal node; node references pass through."""
    if isinstance(ref, NodeRef):
        return ref
    if isinstance(ref, bool):
        raise TypeError("A boolean cannot be used as a node reference.")
    if isinstance(ref, numbers.Real):
        return literal(float(ref))
    raise TypeError(f"Expected a node reference or a real number, got {type(ref).__name__}: {ref!r}")


# --- Value Compatibility Resolver ---

def resolve_shape(refs: Iterable[Any], owner: Optional[str] = None) -> Shape:
    """
    Determines the common shape new branch variables must take for `refs`.

    Raises:
        ShapeMismatchError: If two array references disagree on their length.
    """
    nodes = [as_node(ref) for ref in refs]
    complex_found = False
    array_lengths: List[int] = []
    for node in nodes:
        if node.kind is NodeKind.LITERAL:
            continue
        elif node.kind is NodeKind.COMPLEX:
            complex_found = True
            if node.is_array:
                array_lengths.append(node.length)
        elif node.kind is NodeKind.ARRAY:
            array_lengths.append(node.length)
        elif node.kind is NodeKind.SCALAR:
            pass
        else:
            raise TypeError(f"Unhandled node kind {node.kind!r}")

    if complex_found:
        return Shape(length=max(array_lengths, default=1), is_array=bool(array_lengths), is_complex=True)
    if array_lengths:
        if len(set(array_lengths)) > 1:
            raise ShapeMismatchError(
                component_fqn=owner or "<unassigned>",
                details=f"Array node references have different lengths: {sorted(set(array_lengths))}.",
                shapes=[str(node.shape) for node in nodes if not node.is_literal],
            )
        return Shape(length=array_lengths[0], is_array=True)
    return SCALAR_SHAPE


def check_node_shape(ref: Any, shape: Shape, owner: Optional[str] = None) -> NodeRef:
    """Verifies that `ref` can be read as a value of `shape` and returns it as a node."""
    node = as_node(ref)
    if node.is_literal:
        return node
    if node.is_complex and not shape.is_complex:
        raise ShapeMismatchError(
            component_fqn=owner or "<unassigned>",
            details=f"Complex node '{node.name}' cannot be connected to a real-valued {shape} branch.",
            shapes=[str(node.shape), str(shape)],
        )
    if node.length not in (1, shape.length):
        raise ShapeMismatchError(
            component_fqn=owner or "<unassigned>",
            details=f"Node '{node.name}' has {node.length} elements but the branch has {shape.length}.",
            shapes=[str(node.shape), str(shape)],
        )
    return node


def potential(ref: Any, shape: Shape = SCALAR_SHAPE, owner: Optional[str] = None) -> Tuple[sp.Expr, ...]:
    """The potentials of `ref`, broadcast to `shape`. For a literal this is the constant."""
    node = check_node_shape(ref, shape, owner)
    if node.length == shape.length:
        return node.potentials
    return node.potentials * shape.length


def _as_elements(value: Any) -> Tuple[Any, ...]:
    if isinstance(value, tuple):
        return value
    if isinstance(value, (list, np.ndarray)):
        return tuple(np.asarray(value, dtype=object).ravel())
    return (value,)


def broadcast_elements(length: int, *values: Any, owner: Optional[str] = None) -> Iterator[Tuple[Any, ...]]:
    """
    Iterates over `values` elementwise. Scalars (and 1-element sequences) are
    repeated; sequences must otherwise have exactly `length` elements.
    """
    columns: List[Sequence[Any]] = []
    for value in values:
        elements = _as_elements(value)
        if len(elements) == 1:
            elements = elements * length
        elif len(elements) != length:
            raise ShapeMismatchError(
                component_fqn=owner or "<unassigned>",
                details=f"A value with {len(elements)} elements cannot be combined with a branch of {length} elements.",
            )
        columns.append(elements)
    return zip(*columns)
