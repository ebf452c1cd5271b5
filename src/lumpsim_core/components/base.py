# src/lumpsim_core/components/base.py

import itertools
import logging
import inspect
from abc import ABC, abstractmethod
from typing import Any, ClassVar, Dict, List, Mapping, Optional, Tuple, Type, Union

import numpy as np

from ..units import ureg
from ..network.events import BooleanInput
from ..network.nodes import NodeRef, as_node
from ..parameters.parameters import Parameter, ParamKind, ParameterCheck, Temperature, resolve_parameter
from .capabilities import ComponentCapability, TCapability, IConnectivityProvider, provides
from .exceptions import ComponentError


logger = logging.getLogger(__name__)

#: A discrete control is either an externally driven input or a fixed boolean.
DiscreteControl = Union[BooleanInput, bool]

_INSTANCE_COUNTERS: Dict[str, "itertools.count[int]"] = {}


class ComponentBase(ABC):
    """
    The abstract base class for all component equation templates in LumpSim Core.

    This class establishes the contract for component identity (instance id and FQN),
    port and parameter declaration, and provides the queryable capability system that
    decouples components from the assembly. A component instance is created once per
    network description with concrete node references and parameters, and is never
    mutated afterwards; discrete state lives in the hybrid controller an assembly
    creates for it.
    """
    component_type_str: ClassVar[str] = "BaseComponent"

    #: True if array node references give the elementwise equivalent of independent scalar instances.
    vectorizable: ClassVar[bool] = True
    #: Parameters that, when given as signals, must stay strictly positive at runtime.
    positive_signal_parameters: ClassVar[Tuple[str, ...]] = ()
    #: Constant parameters for which a zero or negative value is legal but suspicious.
    degenerate_parameters: ClassVar[Tuple[str, ...]] = ()

    def __init__(
        self,
        ports: Mapping[str, Any],
        parameters: Mapping[str, Any],
        inputs: Optional[Mapping[str, DiscreteControl]] = None,
        name: Optional[str] = None,
        parent_hierarchical_id: str = "top",
    ):
        """
        Initializes the base attributes of a component instance.

        Args:
            ports: Maps port names to node references. Plain numbers become literal nodes;
                optional ports may be omitted or set to `None`.
            parameters: Maps declared parameter names to raw values (numbers, unit strings,
                pint quantities, sympy expressions, node references or `Temperature`).
                `None` marks an absent optional parameter.
            inputs: Maps declared discrete inputs to a `BooleanInput` or a fixed bool.
            name: The instance id (e.g. 'R1'). A unique id is generated when omitted.
            parent_hierarchical_id: The FQN of the network containing this component.
        """
        cls = type(self)
        self.instance_id: str = name or cls._next_instance_id()
        self.parent_hierarchical_id: str = parent_hierarchical_id
        self.component_type: str = cls.component_type_str
        self.ureg = ureg

        self._ports: Dict[str, NodeRef] = self._bind_ports(ports)
        self._inputs: Dict[str, DiscreteControl] = self._bind_inputs(inputs or {})
        self._params: Dict[str, Parameter] = {}
        self._parameter_nodes: List[NodeRef] = []
        self._bind_parameters(parameters)

        # Each capability object is created only once per instance, on first request.
        self._capability_cache: Dict[Type[ComponentCapability], ComponentCapability] = {}
        self._warn_on_degenerate_constants()
        logger.debug(f"Initialized {cls.__name__} '{self.fqn}'")

    @classmethod
    def _next_instance_id(cls) -> str:
        counter = _INSTANCE_COUNTERS.setdefault(cls.component_type_str, itertools.count(1))
        return f"{cls.component_type_str}_{next(counter)}"

    def _bind_ports(self, ports: Mapping[str, Any]) -> Dict[str, NodeRef]:
        cls = type(self)
        required = cls.declare_ports()
        optional = cls.declare_optional_ports()
        unknown = sorted(set(ports) - set(required) - set(optional))
        if unknown:
            raise ComponentError(
                component_fqn=self.fqn,
                details=f"Undeclared port(s) {unknown}. Declared ports are: {required + optional}."
            )
        bound: Dict[str, NodeRef] = {}
        for port_name in required + optional:
            ref = ports.get(port_name)
            if ref is None:
                if port_name in required:
                    raise ComponentError(component_fqn=self.fqn, details=f"Port '{port_name}' is not connected.")
                continue
            try:
                bound[port_name] = as_node(ref)
            except TypeError as e:
                raise ComponentError(component_fqn=self.fqn, details=f"Port '{port_name}': {e}") from e
        return bound

    def _bind_inputs(self, inputs: Mapping[str, DiscreteControl]) -> Dict[str, DiscreteControl]:
        declared = type(self).declare_inputs()
        unknown = sorted(set(inputs) - set(declared))
        if unknown:
            raise ComponentError(
                component_fqn=self.fqn,
                details=f"Undeclared discrete input(s) {unknown}. Declared inputs are: {declared}."
            )
        bound: Dict[str, DiscreteControl] = {}
        for input_name in declared:
            control = inputs.get(input_name)
            if not isinstance(control, (BooleanInput, bool, np.bool_)):
                raise ComponentError(
                    component_fqn=self.fqn,
                    details=f"Discrete input '{input_name}' must be a BooleanInput or a bool, got {control!r}."
                )
            bound[input_name] = control if isinstance(control, BooleanInput) else bool(control)
        return bound

    def _bind_parameters(self, parameters: Mapping[str, Any]) -> None:
        declared = type(self).declare_parameters()
        unknown = sorted(set(parameters) - set(declared))
        if unknown:
            raise ComponentError(
                component_fqn=self.fqn,
                details=f"Undeclared parameter(s) {unknown}. Declared parameters are: {sorted(declared)}."
            )
        for param_name, unit in declared.items():
            raw = parameters.get(param_name)
            if raw is None:
                continue
            if isinstance(raw, Temperature):
                self._parameter_nodes.append(raw.node)
            elif isinstance(raw, NodeRef) and not raw.is_literal:
                self._parameter_nodes.append(raw)
            self._params[param_name] = resolve_parameter(param_name, raw, unit, self.fqn)

    def _warn_on_degenerate_constants(self) -> None:
        for param_name in type(self).degenerate_parameters:
            param = self._params.get(param_name)
            if param is None or not param.is_constant:
                continue
            if any(value <= 0 for value in param.elements):
                logger.warning(
                    f"Component '{self.fqn}': parameter {param_name}={param.value} is zero or negative. "
                    f"This is allowed but may make the network singular."
                )

    @property
    def fqn(self) -> str:
        """The canonical, fully qualified name (FQN) of this component instance."""
        return f"{self.parent_hierarchical_id}.{self.instance_id}"

    @property
    def parameter_fqns(self) -> List[str]:
        """A list of the fully qualified names for this component's parameters."""
        return [f"{self.fqn}.{base_name}" for base_name in self.declare_parameters()]

    # --- Accessors used by the equation contributors ---

    @property
    def ports(self) -> Dict[str, NodeRef]:
        return dict(self._ports)

    def port(self, port_name: str) -> NodeRef:
        try:
            return self._ports[port_name]
        except KeyError:
            raise ComponentError(component_fqn=self.fqn, details=f"Port '{port_name}' is not connected.") from None

    def optional_port(self, port_name: str) -> Optional[NodeRef]:
        return self._ports.get(port_name)

    def has_param(self, param_name: str) -> bool:
        return param_name in self._params

    def param(self, param_name: str) -> Parameter:
        try:
            return self._params[param_name]
        except KeyError:
            raise ComponentError(component_fqn=self.fqn, details=f"Parameter '{param_name}' was not supplied.") from None

    def param_value(self, param_name: str) -> Any:
        """The parameter's value: a float, a sympy expression, or a per-element tuple."""
        return self.param(param_name).value

    def discrete_input(self, input_name: str) -> DiscreteControl:
        return self._inputs[input_name]

    def nodes(self) -> List[NodeRef]:
        """All non-literal node references the component touches (ports and node-valued parameters)."""
        seen: Dict[str, NodeRef] = {}
        for node in list(self._ports.values()) + self._parameter_nodes:
            if not node.is_literal:
                seen.setdefault(node.name, node)
        return list(seen.values())

    def boolean_inputs(self) -> List[BooleanInput]:
        return [control for control in self._inputs.values() if isinstance(control, BooleanInput)]

    def parameter_checks(self) -> List[ParameterCheck]:
        """Runtime checks for the signal-valued parameters that must stay strictly positive."""
        return [
            ParameterCheck(owner=self.fqn, parameter=self._params[param_name])
            for param_name in type(self).positive_signal_parameters
            if param_name in self._params and self._params[param_name].kind is ParamKind.SIGNAL
        ]

    @provides(IConnectivityProvider)
    class ConnectivityProvider:
        """
        Two-terminal templates conduct between their two required ports. Optional
        ports (heat ports) never carry electrical current and are left out.

        Templates with more terminals have to describe their own internal paths;
        without one they contribute no edges and an error is logged.
        """
        def get_connectivity(self, component: "ComponentBase") -> List[Tuple[str, str]]:
            ports = type(component).declare_ports()
            if len(ports) == 2:
                return [tuple(ports)]
            logger.error(
                f"'{component.fqn}' ({type(component).component_type_str}) has {len(ports)} port(s) "
                f"but no connectivity of its own; it adds no edges to the topology graph."
            )
            return []

    @classmethod
    def declare_capabilities(cls) -> Dict[Type[ComponentCapability], Type]:
        """
        Discovers the capabilities map by inspecting the class hierarchy (MRO) for
        nested classes decorated with `@provides`. Capabilities defined on a subclass
        take precedence over those inherited from a parent.

        Returns:
            A dictionary mapping a capability Protocol (e.g., IEquationContributor) to the
            nested class that provides its implementation.
        """
        discovered_capabilities = {}
        for base_class in cls.__mro__:
            for _, member_obj in inspect.getmembers(base_class):
                if hasattr(member_obj, '_implements_capability'):
                    protocol = member_obj._implements_capability
                    if protocol not in discovered_capabilities:
                        discovered_capabilities[protocol] = member_obj
        return discovered_capabilities

    def get_capability(self, capability_type: Type[TCapability]) -> Optional[TCapability]:
        """
        Queries the component instance for a specific capability.

        Args:
            capability_type: The Protocol class representing the desired capability
                             (e.g., `IEquationContributor`).

        Returns:
            An instance of the capability implementation if supported, otherwise `None`.
        """
        if capability_type in self._capability_cache:
            return self._capability_cache[capability_type]

        declared = type(self).declare_capabilities()
        impl_class = declared.get(capability_type)

        if impl_class:
            instance = impl_class()
            self._capability_cache[capability_type] = instance
            return instance

        return None

    @classmethod
    @abstractmethod
    def declare_parameters(cls) -> Dict[str, str]:
        """Declare parameter names and their SI units as strings."""
        pass

    @classmethod
    @abstractmethod
    def declare_ports(cls) -> List[str]:
        """
        Declare the names of the component's required node ports, in positional order.

        For a two-terminal element this returns, for example, `['n1', 'n2']`.
        """
        pass

    @classmethod
    def declare_optional_ports(cls) -> List[str]:
        """Ports that may be left unconnected (e.g. an optional heat port)."""
        return []

    @classmethod
    def declare_inputs(cls) -> List[str]:
        """Names of the discrete boolean controls the component reads."""
        return []

    def __str__(self) -> str:
        return f"{type(self).__name__}('{self.fqn}')"

    def __repr__(self) -> str:
        return f"{type(self).__name__}(fqn='{self.fqn}')"


# --- Global Component Registry and Decorator ---

COMPONENT_REGISTRY: Dict[str, type[ComponentBase]] = {}


def _validate_name_list(cls: type, method_name: str, names: Any) -> None:
    if not isinstance(names, list) or not all(isinstance(p, str) and p for p in names):
        raise TypeError(
            f"Component class '{cls.__name__}' violates API contract. "
            f"{method_name}() must return a list of non-empty strings, but returned: {names}."
        )
    if len(set(names)) != len(names):
        raise TypeError(
            f"Component class '{cls.__name__}' violates API contract. "
            f"{method_name}() must return a list of unique strings, but found duplicates in: {names}."
        )


def register_component(type_str: str):
    """
    A class decorator to register a component class in the global component registry,
    making it available to the netlist parser and the circuit builder.
    """
    def decorator(cls: type[ComponentBase]):
        if not issubclass(cls, ComponentBase):
            raise TypeError(f"Class {cls.__name__} must inherit from ComponentBase.")

        try:
            ports = cls.declare_ports()
            optional_ports = cls.declare_optional_ports()
            _validate_name_list(cls, "declare_ports", ports)
            _validate_name_list(cls, "declare_optional_ports", optional_ports)
            _validate_name_list(cls, "declare_ports/declare_optional_ports", ports + optional_ports)
            _validate_name_list(cls, "declare_inputs", cls.declare_inputs())
        except Exception as e:
            raise TypeError(
                f"A failure occurred while attempting to validate the API contract of "
                f"component class '{cls.__name__}'. Error during port declaration: {e}"
            ) from e

        try:
            params = cls.declare_parameters()
            if not isinstance(params, dict) or not all(isinstance(k, str) and isinstance(v, str) for k, v in params.items()):
                raise TypeError(
                    f"Component class '{cls.__name__}' violates API contract. "
                    f"declare_parameters() must return a Dict[str, str], but returned a value of type '{type(params).__name__}'."
                )
            for unit in params.values():
                ureg.Unit(unit)
        except Exception as e:
            raise TypeError(
                f"A failure occurred while attempting to validate the API contract of "
                f"component class '{cls.__name__}'. Error during call to declare_parameters(): {e}"
            ) from e

        if type_str in COMPONENT_REGISTRY:
            logger.warning(f"Component type '{type_str}' is being redefined/overwritten.")
        cls.component_type_str = type_str
        COMPONENT_REGISTRY[type_str] = cls
        logger.info(f"Registered component type '{type_str}' -> {cls.__name__}")
        return cls
    return decorator
