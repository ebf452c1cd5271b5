# src/lumpsim_core/hybrid/controller.py
"""
The discrete-mode finite-state machine embedded in switching devices.

A `HybridController` owns one discrete mode variable and a set of mutually exclusive
continuous equation sets, one per mode. It only *declares* which predicate guards
which transition; the solver's root finder detects the crossings and calls back
through the `Assembly`. Transitions requested by those callbacks are buffered and
committed in one step, so at most one mode change per controller happens per event
evaluation and the new equation set is fully installed before integration resumes.
"""
from __future__ import annotations

import functools
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, FrozenSet, Hashable, Iterable, List, Mapping, Optional, Sequence, Tuple, TYPE_CHECKING

import sympy as sp

from ..network.events import BooleanInput, CrossingDirection, EventContext
from ..network.symbols import Equation
from .exceptions import EventOrderingViolation, HybridStateError

if TYPE_CHECKING:
    from ..network.assembly import Contribution

logger = logging.getLogger(__name__)


class GuardKind(Enum):
    """The predicates a transition can be guarded by."""
    BOOLEAN_EDGE = "boolean_edge"
    LEVEL_CROSSING = "level_crossing"
    ZERO_CROSSING = "zero_crossing"


@dataclass(frozen=True)
class Guard:
    """
    Which external predicate governs a transition.

    - `BOOLEAN_EDGE`: `signal` is a `BooleanInput`; `direction` is `RISING` or `FALLING`.
    - `LEVEL_CROSSING`: `signal` (an expression) crosses `level`.
    - `ZERO_CROSSING`: `signal` (usually a branch current) crosses zero.
    """
    kind: GuardKind
    signal: Any
    direction: CrossingDirection = CrossingDirection.EITHER
    level: Any = 0

    @classmethod
    def boolean_edge(cls, control: BooleanInput, rising: bool = True) -> Guard:
        direction = CrossingDirection.RISING if rising else CrossingDirection.FALLING
        return cls(kind=GuardKind.BOOLEAN_EDGE, signal=control, direction=direction)

    @classmethod
    def level_crossing(cls, signal: Any, level: Any, direction: CrossingDirection = CrossingDirection.EITHER) -> Guard:
        return cls(kind=GuardKind.LEVEL_CROSSING, signal=sp.sympify(signal), direction=direction, level=sp.sympify(level))

    @classmethod
    def zero_crossing(cls, signal: Any, direction: CrossingDirection = CrossingDirection.EITHER) -> Guard:
        return cls(kind=GuardKind.ZERO_CROSSING, signal=sp.sympify(signal), direction=direction)

    @property
    def predicate(self) -> sp.Expr:
        """The expression handed to the solver: a boolean symbol, or a function whose zero is watched."""
        if self.kind is GuardKind.BOOLEAN_EDGE:
            return self.signal.symbol
        return sp.sympify(self.signal) - self.level

    @property
    def registration_key(self) -> Hashable:
        # Both edges of one boolean input share a single change registration.
        if self.kind is GuardKind.BOOLEAN_EDGE:
            return (GuardKind.BOOLEAN_EDGE, self.signal.name)
        return (self.kind, self.predicate, self.direction)

    def __str__(self) -> str:
        if self.kind is GuardKind.BOOLEAN_EDGE:
            return f"{self.direction.value} edge of '{self.signal.name}'"
        return f"{self.direction.value} crossing of {self.predicate}"


@dataclass(frozen=True)
class Transition:
    """A guarded mode change. Among simultaneous requests, the highest `priority` wins."""
    source: Enum
    target: Enum
    guard: Guard
    condition: Any = None
    priority: int = 0
    label: str = ""

    def __str__(self) -> str:
        name = self.label or str(self.guard)
        return f"{name}: {self.source.name} -> {self.target.name} (priority {self.priority})"


@dataclass(frozen=True)
class ModeChange:
    """One committed transition, kept in the controller history."""
    time: float
    source: Enum
    target: Enum
    label: str = ""


EntryAction = Callable[["HybridController", EventContext], None]


class HybridController:
    """
    A finite-state machine selecting one of several continuous equation sets.

    Args:
        owner: FQN of the owning component.
        initial: The mode active before the first event.
        mode_equations: The equations active in each mode. Every mode reachable by a
            transition must have an entry.
        transitions: The guarded transitions.
        entry_actions: Callbacks run when a mode is freshly entered, e.g. to latch the
            event time into a discrete value.
        discrete_values: Auxiliary discrete variables and their initial values. Their
            symbols (see `discrete_symbol`) may appear in the mode equations.
    """

    def __init__(
        self,
        owner: str,
        initial: Enum,
        mode_equations: Mapping[Enum, Sequence[Equation]],
        transitions: Iterable[Transition],
        entry_actions: Optional[Mapping[Enum, EntryAction]] = None,
        discrete_values: Optional[Mapping[str, float]] = None,
    ):
        self.owner = owner
        self.initial = initial
        self._mode_equations: Dict[Enum, List[Equation]] = {m: list(eqs) for m, eqs in mode_equations.items()}
        self.transitions: List[Transition] = list(transitions)
        self._entry_actions: Dict[Enum, EntryAction] = dict(entry_actions or {})
        self._initial_discrete: Dict[str, float] = dict(discrete_values or {})

        if initial not in self._mode_equations:
            raise ValueError(f"Controller '{owner}': initial mode {initial} has no equation set.")
        for transition in self.transitions:
            for mode in (transition.source, transition.target):
                if mode not in self._mode_equations:
                    raise ValueError(f"Controller '{owner}': transition '{transition}' refers to mode {mode} without an equation set.")
            if transition.source == transition.target:
                raise ValueError(f"Controller '{owner}': transition '{transition}' does not change the mode.")

        self._mode: Enum = initial
        self._discrete: Dict[str, float] = dict(self._initial_discrete)
        self._pending: List[Transition] = []
        self._committing = False
        self.history: List[ModeChange] = []

    # --- Mode state ---

    @property
    def mode(self) -> Enum:
        return self._mode

    @property
    def modes(self) -> Tuple[Enum, ...]:
        return tuple(self._mode_equations)

    @property
    def guards(self) -> List[Guard]:
        """The distinct guards of all transitions, in declaration order."""
        seen: List[Guard] = []
        for transition in self.transitions:
            if transition.guard not in seen:
                seen.append(transition.guard)
        return seen

    def equations_for(self, mode: Enum) -> List[Equation]:
        return list(self._mode_equations[mode])

    def active_equations(self) -> List[Equation]:
        """The continuous equations of the current mode."""
        return self.equations_for(self._mode)

    # --- Discrete values ---

    @staticmethod
    def symbol_for(owner: str, name: str) -> sp.Symbol:
        """The symbol of discrete value `name` of the controller owned by `owner`."""
        return sp.Symbol(f"{owner}.{name}", real=True)

    def discrete_symbol(self, name: str) -> sp.Symbol:
        return self.symbol_for(self.owner, name)

    @property
    def discrete_values(self) -> Dict[str, float]:
        return dict(self._discrete)

    def set_discrete(self, name: str, value: float) -> None:
        if name not in self._discrete:
            raise KeyError(f"Controller '{self.owner}' has no discrete value '{name}'.")
        self._discrete[name] = value

    def discrete_substitutions(self) -> Dict[sp.Symbol, float]:
        return {self.discrete_symbol(name): value for name, value in self._discrete.items()}

    # --- Event plumbing ---

    def register_events(self, out: Contribution) -> None:
        """Declares one event registration per distinct guard and attaches the controller to `out`."""
        groups: Dict[Hashable, List[Guard]] = {}
        for guard in self.guards:
            groups.setdefault(guard.registration_key, []).append(guard)

        for guards in groups.values():
            guard = guards[0]
            callback = functools.partial(self._on_event, frozenset(guards))
            if guard.kind is GuardKind.BOOLEAN_EDGE:
                out.on_boolean_change(guard.signal, callback, label=f"{guard.signal.name} change")
            else:
                out.on_crossing(guard.predicate, callback, direction=guard.direction, label=str(guard))
        out.attach_controller(self)

    def _on_event(self, guards: FrozenSet[Guard], ctx: EventContext) -> None:
        for transition in self.transitions:
            guard = transition.guard
            if guard not in guards or transition.source != self._mode:
                continue
            if guard.kind is GuardKind.BOOLEAN_EDGE:
                is_high = bool(ctx.value_of(guard.signal))
                if is_high != (guard.direction is CrossingDirection.RISING):
                    continue
            if transition.condition is not None and not ctx.holds(transition.condition):
                continue
            self.request(transition)

    def request(self, transition: Transition) -> None:
        """Buffers a transition until the next `commit`."""
        if self._committing:
            raise HybridStateError(
                component_fqn=self.owner,
                details=f"Transition '{transition}' was requested while a commit is in progress."
            )
        if transition.source != self._mode:
            raise HybridStateError(
                component_fqn=self.owner,
                details=f"Transition '{transition}' does not start from the current mode {self._mode.name}."
            )
        logger.debug(f"Controller '{self.owner}' requested {transition}.")
        self._pending.append(transition)

    @property
    def has_pending(self) -> bool:
        return bool(self._pending)

    def resolve(self, ctx: EventContext) -> Optional[Transition]:
        """
        Picks the winning transition among the pending requests without changing any
        state, so that several controllers can be checked before any of them switches.

        Returns:
            The winning transition, or `None` if nothing was requested.

        Raises:
            EventOrderingViolation: If different target modes are requested at the
                winning priority.
        """
        if not self._pending:
            return None
        top_priority = max(t.priority for t in self._pending)
        winners = [t for t in self._pending if t.priority == top_priority]
        if len({t.target for t in winners}) > 1:
            raise EventOrderingViolation(
                component_fqn=self.owner,
                event_time=ctx.time,
                current_mode=self._mode.name,
                requested=[str(t) for t in winners],
            )
        return winners[0]

    def apply(self, winner: Transition, ctx: EventContext) -> Tuple[Enum, Enum]:
        """
        Installs `winner` (as returned by `resolve`), runs the entry action of the new
        mode and clears the pending requests.

        Raises:
            HybridStateError: If called while another commit is in progress, or if
                `winner` does not start from the current mode.
        """
        if self._committing:
            raise HybridStateError(component_fqn=self.owner, details="commit() was re-entered.")
        if winner.source != self._mode:
            raise HybridStateError(
                component_fqn=self.owner,
                details=f"Transition '{winner}' does not start from the current mode {self._mode.name}."
            )
        self._committing = True
        try:
            previous = self._mode
            self._mode = winner.target
            action = self._entry_actions.get(winner.target)
            if action is not None:
                action(self, ctx)
            self.history.append(ModeChange(time=ctx.time, source=previous, target=winner.target, label=winner.label))
            logger.info(f"'{self.owner}' switched {previous.name} -> {winner.target.name} at t={ctx.time} ({winner.label or winner.guard}).")
            return previous, winner.target
        finally:
            self._pending.clear()
            self._committing = False

    def commit(self, ctx: EventContext) -> Optional[Tuple[Enum, Enum]]:
        """
        `resolve` followed by `apply`: installs the single winning transition among
        the pending requests.

        Returns:
            `(old_mode, new_mode)`, or `None` if nothing was requested.

        Raises:
            EventOrderingViolation: If different target modes are requested at the
                winning priority. The pending requests are dropped and the mode is
                left unchanged.
            HybridStateError: If called while another commit is in progress.
        """
        if self._committing:
            raise HybridStateError(component_fqn=self.owner, details="commit() was re-entered.")
        try:
            winner = self.resolve(ctx)
        except EventOrderingViolation:
            self._pending.clear()
            raise
        if winner is None:
            return None
        return self.apply(winner, ctx)

    def discard_pending(self) -> None:
        self._pending.clear()

    def reset(self) -> None:
        """Restores the initial mode and discrete values, e.g. before a new simulation run."""
        self._mode = self.initial
        self._discrete = dict(self._initial_discrete)
        self._pending.clear()
        self._committing = False
        self.history.clear()

    def __str__(self) -> str:
        return f"HybridController('{self.owner}', mode={self._mode.name})"
