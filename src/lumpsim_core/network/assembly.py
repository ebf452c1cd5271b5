# src/lumpsim_core/network/assembly.py
"""
The shared unknown/equation pool and the per-component registration object.

Components never touch global state. `Assembly.add` hands each component a fresh
`Contribution`, the component's `IEquationContributor` capability fills it (unknowns,
equations, conservation flows, event registrations, runtime parameter checks and at
most one hybrid controller), and the finished contribution is merged into the pool
under a single lock. Unknown names are derived from component FQNs, so the resulting
equation set does not depend on the order in which components are added.
"""
import logging
import threading
import warnings
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple, TYPE_CHECKING

import networkx as nx
import sympy as sp

from ..components.capabilities import IConnectivityProvider, IEquationContributor
from ..components.exceptions import ComponentError
from ..hybrid.controller import HybridController
from ..hybrid.exceptions import HybridStateError
from ..parameters.exceptions import InvalidParameterWarning
from ..validation.issues import ValidationIssue, ValidationIssueLevel
from ..validation.issue_codes import SemanticIssueCode
from .branches import Branch
from .events import BooleanInput, CrossingDirection, EventContext, EventKind, EventRegistration
from .exceptions import ShapeMismatchError
from .nodes import (
    NodeRef, Shape, SCALAR_SHAPE, array_node, as_node, broadcast_elements, complex_node, create_unknowns, scalar_node
)
from .symbols import Equation, Unknown

if TYPE_CHECKING:
    from ..components.base import ComponentBase
    from ..parameters.parameters import ParameterCheck

logger = logging.getLogger(__name__)

#: Name of the single vertex all literal nodes are merged into in the topology graph.
REFERENCE_NODE = "<reference>"


@dataclass(frozen=True)
class Flow:
    """One term of the conservation sum at element `index` of `node`."""
    node: NodeRef
    index: int
    value: sp.Expr
    owner: str

    @property
    def key(self) -> sp.Expr:
        return self.node.potentials[self.index]


class Contribution:
    """Everything one component adds to the network, collected before the merge."""

    def __init__(self, owner: str):
        self.owner = owner
        self.unknowns: List[Unknown] = []
        self.equations: List[Equation] = []
        self.flows: List[Flow] = []
        self.events: List[EventRegistration] = []
        self.checks: List["ParameterCheck"] = []
        self.branches: List[Branch] = []
        self.controller: Optional[HybridController] = None

    def new_unknowns(self, suffix: str, shape: Shape = SCALAR_SHAPE, initial: Any = None) -> Tuple[sp.Expr, ...]:
        """Creates unknowns named `<owner>.<suffix>` of the given shape."""
        elements, unknowns = create_unknowns(f"{self.owner}.{suffix}", shape, initial, owner=self.owner)
        self.unknowns.extend(unknowns)
        return elements

    def add_equation(self, lhs: Any, rhs: Any) -> Equation:
        equation = Equation(lhs, rhs, self.owner)
        self.equations.append(equation)
        return equation

    def equate(self, lhs: Any, rhs: Any, length: int) -> List[Equation]:
        """Adds `lhs[k] = rhs[k]` for every element, broadcasting scalars."""
        return [self.add_equation(a, b) for a, b in broadcast_elements(length, lhs, rhs, owner=self.owner)]

    def add_flow(self, node: Any, values: Sequence[sp.Expr]) -> None:
        """
        Adds `values` to the conservation sum of `node`. Literal nodes are skipped; a
        one-element node receives every value (the sum over the elements).
        """
        node = as_node(node)
        if node.is_literal:
            return
        values = tuple(values)
        if node.length == len(values):
            indices = range(len(values))
        elif node.length == 1:
            indices = [0] * len(values)
        else:
            raise ShapeMismatchError(
                component_fqn=self.owner,
                details=f"Cannot add {len(values)} flow terms to node '{node.name}' with {node.length} elements.",
                shapes=[str(node.shape)],
            )
        for index, value in zip(indices, values):
            self.flows.append(Flow(node=node, index=index, value=value, owner=self.owner))

    def on_crossing(
        self,
        predicate: Any,
        callback: Callable[[EventContext], None],
        direction: CrossingDirection = CrossingDirection.EITHER,
        label: str = "",
    ) -> EventRegistration:
        registration = EventRegistration(
            owner=self.owner, kind=EventKind.CROSSING, callback=callback,
            predicate=sp.sympify(predicate), direction=direction, label=label,
        )
        self.events.append(registration)
        return registration

    def on_boolean_change(
        self, discrete: BooleanInput, callback: Callable[[EventContext], None], label: str = ""
    ) -> EventRegistration:
        registration = EventRegistration(
            owner=self.owner, kind=EventKind.BOOLEAN_CHANGE, callback=callback, discrete=discrete, label=label,
        )
        self.events.append(registration)
        return registration

    def at_time(self, time: Any, callback: Optional[Callable[[EventContext], None]] = None, label: str = "") -> EventRegistration:
        """Asks the solver to restart integration exactly at `time`."""
        registration = EventRegistration(
            owner=self.owner, kind=EventKind.TIME, callback=callback, predicate=sp.sympify(time), label=label,
        )
        self.events.append(registration)
        return registration

    def add_check(self, check: "ParameterCheck") -> None:
        self.checks.append(check)

    def attach_controller(self, controller: HybridController) -> None:
        if self.controller is not None and self.controller is not controller:
            raise HybridStateError(
                component_fqn=self.owner,
                details="A component can own at most one hybrid controller."
            )
        self.controller = controller


@dataclass
class EquationSystem:
    """The snapshot handed to the external flattening and solving stage."""
    name: str
    unknowns: List[Unknown]
    equations: List[Equation]
    events: List[EventRegistration]
    controllers: Dict[str, HybridController] = field(default_factory=dict)
    discrete_inputs: List[BooleanInput] = field(default_factory=list)

    @property
    def residuals(self) -> List[sp.Expr]:
        return [eq.residual for eq in self.equations]

    def __str__(self) -> str:
        return (f"EquationSystem('{self.name}': {len(self.unknowns)} unknowns, "
                f"{len(self.equations)} equations, {len(self.events)} events)")


class Assembly:
    """
    An independent network: the append-only pool of unknowns, equations, conservation
    flows and event registrations of a set of components.
    """

    def __init__(self, name: str = "network"):
        self.name = name
        self._lock = threading.Lock()
        self._nodes: "OrderedDict[str, NodeRef]" = OrderedDict()
        self._inputs: "OrderedDict[str, BooleanInput]" = OrderedDict()
        self._components: "OrderedDict[str, ComponentBase]" = OrderedDict()
        self._contributions: Dict[str, Contribution] = {}
        self._dispatching = False

    # --- Unknown creation ---

    def new_scalar(self, name: str, initial: Optional[float] = None) -> NodeRef:
        return self.register_node(scalar_node(name, initial))

    def new_array(self, length: int, name: str, initial: Any = None) -> NodeRef:
        return self.register_node(array_node(name, length, initial))

    def new_complex(self, name: str, initial: Any = None, length: Optional[int] = None) -> NodeRef:
        return self.register_node(complex_node(name, initial, length))

    def new_input(self, name: str, initial: bool = False) -> BooleanInput:
        discrete = BooleanInput(name, initial)
        with self._lock:
            self._register_input(discrete)
        return discrete

    def register_node(self, node: NodeRef) -> NodeRef:
        """Adds a node's unknowns to the pool. Literals carry no state and are ignored."""
        with self._lock:
            self._register_node(node)
        return node

    def _register_node(self, node: NodeRef) -> None:
        if node.is_literal:
            return
        existing = self._nodes.get(node.name)
        if existing is None:
            self._nodes[node.name] = node
            logger.debug(f"Registered node {node} in assembly '{self.name}'.")
        elif existing != node:
            raise ComponentError(
                component_fqn=node.name,
                details=f"Two different nodes named '{node.name}' were used in assembly '{self.name}': {existing} and {node}."
            )

    def _register_input(self, discrete: BooleanInput) -> None:
        existing = self._inputs.get(discrete.name)
        if existing is None:
            self._inputs[discrete.name] = discrete
        elif existing != discrete:
            raise ComponentError(
                component_fqn=discrete.name,
                details=f"Two different boolean inputs named '{discrete.name}' were used in assembly '{self.name}'."
            )

    # --- Components ---

    def add(self, component: "ComponentBase") -> Contribution:
        """
        Asks `component` for its equations and merges them into the pool.

        Raises:
            ComponentError: If the component cannot contribute equations or its FQN is
                already taken.
            ShapeMismatchError: If the component's node references are incompatible.
        """
        contributor = component.get_capability(IEquationContributor)
        if contributor is None:
            raise ComponentError(
                component_fqn=component.fqn,
                details=f"Component type '{type(component).__name__}' does not provide the IEquationContributor capability."
            )

        out = Contribution(component.fqn)
        contributor.contribute(component, out)
        for check in component.parameter_checks():
            out.add_check(check)

        with self._lock:
            if component.fqn in self._contributions:
                raise ComponentError(
                    component_fqn=component.fqn,
                    details=f"A component named '{component.fqn}' was already added to assembly '{self.name}'."
                )
            for node in component.nodes():
                self._register_node(node)
            for discrete in component.boolean_inputs():
                self._register_input(discrete)
            self._components[component.fqn] = component
            self._contributions[component.fqn] = out

        logger.info(
            f"Added '{component.fqn}' to '{self.name}': {len(out.unknowns)} unknowns, "
            f"{len(out.equations)} equations, {len(out.events)} events."
        )
        return out

    def add_all(self, components: Iterable["ComponentBase"]) -> "Assembly":
        for component in components:
            self.add(component)
        return self

    @property
    def components(self) -> List["ComponentBase"]:
        return list(self._components.values())

    @property
    def nodes(self) -> List[NodeRef]:
        return list(self._nodes.values())

    @property
    def inputs(self) -> List[BooleanInput]:
        return list(self._inputs.values())

    def contribution(self, fqn: str) -> Contribution:
        return self._contributions[fqn]

    def controller(self, fqn: str) -> Optional[HybridController]:
        return self._contributions[fqn].controller

    @property
    def controllers(self) -> Dict[str, HybridController]:
        return {fqn: c.controller for fqn, c in sorted(self._contributions.items()) if c.controller is not None}

    def _sorted_contributions(self) -> List[Contribution]:
        return [self._contributions[fqn] for fqn in sorted(self._contributions)]

    # --- Pool views ---

    @property
    def unknowns(self) -> List[Unknown]:
        """Node unknowns (by node name) followed by component unknowns (by owner)."""
        result: List[Unknown] = []
        for name in sorted(self._nodes):
            result.extend(self._nodes[name].unknowns)
        for contribution in self._sorted_contributions():
            result.extend(contribution.unknowns)
        return result

    @property
    def equations(self) -> List[Equation]:
        """The unconditional equations of all components, grouped by owner."""
        result: List[Equation] = []
        for contribution in self._sorted_contributions():
            result.extend(contribution.equations)
        return result

    @property
    def events(self) -> List[EventRegistration]:
        result: List[EventRegistration] = []
        for contribution in self._sorted_contributions():
            result.extend(contribution.events)
        return result

    @property
    def branches(self) -> List[Branch]:
        result: List[Branch] = []
        for contribution in self._sorted_contributions():
            result.extend(contribution.branches)
        return result

    def flows_at(self, node: Any) -> List[Flow]:
        """All conservation terms contributed at `node` (any element)."""
        node = as_node(node)
        return [
            flow for contribution in self._sorted_contributions()
            for flow in contribution.flows if flow.node.name == node.name and not node.is_literal
        ]

    def conservation_equations(self) -> List[Equation]:
        """Kirchhoff's current law: `0 = sum of flows` at every element of every non-literal node."""
        sums: "OrderedDict[sp.Expr, List[sp.Expr]]" = OrderedDict()
        owners: Dict[sp.Expr, str] = {}
        for contribution in self._sorted_contributions():
            for flow in contribution.flows:
                sums.setdefault(flow.key, []).append(flow.value)
                owners[flow.key] = flow.node.name
        equations = [
            Equation(sp.Integer(0), sp.Add(*terms), owners[key])
            for key, terms in sorted(sums.items(), key=lambda item: str(item[0]))
        ]
        return equations

    def active_equations(self, substitute_discrete: bool = False) -> List[Equation]:
        """
        The equation set currently in force: unconditional equations, the active mode
        equations of every hybrid controller, and the conservation equations.
        """
        result = list(self.equations)
        for controller in self.controllers.values():
            mode_equations = controller.active_equations()
            if substitute_discrete:
                substitutions = controller.discrete_substitutions()
                mode_equations = [
                    Equation(sp.sympify(eq.lhs).subs(substitutions), sp.sympify(eq.rhs).subs(substitutions), eq.owner)
                    for eq in mode_equations
                ]
            result.extend(mode_equations)
        result.extend(self.conservation_equations())
        return result

    def system(self, substitute_discrete: bool = True) -> EquationSystem:
        """Snapshot of the current network for the external solver."""
        system = EquationSystem(
            name=self.name,
            unknowns=self.unknowns,
            equations=self.active_equations(substitute_discrete=substitute_discrete),
            events=self.events,
            controllers=self.controllers,
            discrete_inputs=self.inputs,
        )
        logger.info(f"Assembled {system}.")
        return system

    # --- Events ---

    def dispatch_events(
        self,
        registrations: Iterable[EventRegistration],
        time: float,
        values: Optional[Dict[Any, Any]] = None,
    ) -> Dict[str, Tuple[Any, Any]]:
        """
        Runs the callbacks of the triggered `registrations` and commits at most one
        mode transition per controller.

        Args:
            registrations: The registrations the solver found triggered at `time`.
            time: The event time.
            values: Values of unknowns and boolean inputs at the event time.

        Returns:
            `{component_fqn: (old_mode, new_mode)}` for every controller that switched.

        Raises:
            HybridStateError: If called again from inside an event callback.
            EventOrderingViolation: If a controller received contradictory requests.
                No controller switches in that case.
        """
        if self._dispatching:
            raise HybridStateError(
                component_fqn=self.name,
                details=f"dispatch_events() was called while another dispatch at t={time} is in flight."
            )
        self._dispatching = True
        ctx = EventContext(time=time, values=values or {}, owner=self.name)
        controllers = self.controllers
        changes: Dict[str, Tuple[Any, Any]] = {}
        try:
            for registration in registrations:
                if registration.callback is None:
                    continue
                logger.debug(f"Dispatching {registration} at t={time}.")
                registration.callback(ctx.for_owner(registration.owner))
            # Every controller is resolved before any of them switches.
            winners = {}
            for fqn, controller in controllers.items():
                winner = controller.resolve(ctx.for_owner(fqn))
                if winner is not None:
                    winners[fqn] = winner
            for fqn, winner in winners.items():
                changes[fqn] = controllers[fqn].apply(winner, ctx.for_owner(fqn))
        finally:
            for controller in controllers.values():
                controller.discard_pending()
            self._dispatching = False
        return changes

    def reset(self) -> None:
        """Returns every hybrid controller to its initial mode."""
        for controller in self.controllers.values():
            controller.reset()

    # --- Diagnostics ---

    def check_parameters(self, values: Optional[Dict[Any, Any]] = None, time: float = 0.0) -> List[ValidationIssue]:
        """
        Evaluates the runtime requirements on signal-valued parameters.

        Violations are reported as `InvalidParameterWarning`s (and returned as WARNING
        issues); they never raise.
        """
        issues: List[ValidationIssue] = []
        for contribution in self._sorted_contributions():
            if not contribution.checks:
                continue
            ctx = EventContext(time=time, values=values or {}, owner=contribution.owner)
            for check in contribution.checks:
                for index, element in enumerate(check.parameter.elements):
                    value = float(ctx.evaluate(element))
                    if check.is_satisfied_by(value):
                        continue
                    code = SemanticIssueCode.PARAM_SIGNAL_NOT_POSITIVE
                    message = code.format_message(
                        component_fqn=check.owner, parameter_name=check.parameter.name,
                        value=f"{value:g}", time=f"{time:g}",
                    )
                    warnings.warn(message, InvalidParameterWarning, stacklevel=2)
                    logger.warning(message)
                    issues.append(ValidationIssue(
                        level=ValidationIssueLevel.WARNING, code=code.code, message=message,
                        component_fqn=check.owner,
                        details={'parameter': check.parameter.name, 'element': index, 'value': value, 'time': time},
                    ))
        return issues

    def topology_graph(self) -> nx.MultiGraph:
        """
        The connectivity graph: one vertex per node element, all literals merged into
        `REFERENCE_NODE`, one edge per internally connected port pair of a component.
        """
        graph = nx.MultiGraph(reference=REFERENCE_NODE)
        for name, node in self._nodes.items():
            graph.add_node(name, kind=str(node.kind), length=node.length)
        for component in self.components:
            connectivity = component.get_capability(IConnectivityProvider)
            if connectivity is None:
                continue
            for port_a, port_b in connectivity.get_connectivity(component):
                node_a, node_b = component.optional_port(port_a), component.optional_port(port_b)
                if node_a is None or node_b is None:
                    continue
                graph.add_edge(self._vertex_for(node_a), self._vertex_for(node_b),
                               component=component.fqn, ports=(port_a, port_b))
        return graph

    @staticmethod
    def _vertex_for(node: NodeRef) -> str:
        return REFERENCE_NODE if node.is_literal else node.name

    def __str__(self) -> str:
        return f"Assembly('{self.name}', {len(self._components)} components, {len(self._nodes)} nodes)"
