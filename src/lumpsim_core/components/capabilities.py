# src/lumpsim_core/components/capabilities.py
"""
Defines the capability architecture for LumpSim Core components.

Capabilities are `typing.Protocol`s. The assembly does not require components to
inherit a monolithic interface; it queries a component instance for the capability
it needs (e.g., `IEquationContributor`) and works with whatever object comes back.
New consumers of the component model (netlist validation, documentation tools) add
their own capabilities without breaking the existing templates.

Key elements:
- ComponentCapability: A marker protocol for all capabilities.
- IEquationContributor: The contract for contributing branch unknowns, equations,
  conservation flows, events and hybrid controllers to an assembly.
- IConnectivityProvider: The contract for reporting internal port-to-port
  connectivity, used to build the topology graph.
- @provides: A class decorator registering a nested class as the implementation of
  a capability, discovered automatically by `ComponentBase.declare_capabilities`.
- TCapability: A TypeVar for precise type-hinting of capability queries.
"""

import logging
from typing import (
    List,
    Protocol,
    Tuple,
    Type,
    TypeVar,
    TYPE_CHECKING,
    runtime_checkable,
)

# Imported for type analysis only, preventing a circular import at runtime.
if TYPE_CHECKING:
    from .base import ComponentBase
    from ..network.assembly import Contribution

logger = logging.getLogger(__name__)


@runtime_checkable
class ComponentCapability(Protocol):
    """
    A marker protocol for all component capabilities. Any class that provides
    a specific functionality to a consumer of the component model should conform
    to a protocol that inherits from this one.
    """

    pass


# A request for `IEquationContributor` is known by the type checker to return an
# `IEquationContributor`.
TCapability = TypeVar("TCapability", bound=ComponentCapability)


@runtime_checkable
class IEquationContributor(ComponentCapability, Protocol):
    """
    Defines the capability of a component to contribute to an equation assembly.

    ARCHITECTURAL CONTRACT:
    1.  **Emitter only:** Every two-terminal connection MUST be created through
        `make_branch` or `make_branch_with_heat_port`, so that the conservation sums
        collected by the assembly form Kirchhoff's current law.
    2.  **No side effects:** The method MUST only write to `out`. It may be called
        from any thread and in any order relative to other components.
    3.  **Hybrid devices:** A component with discrete modes creates exactly one
        `HybridController` and registers it through `controller.register_events(out)`.
    """

    def contribute(
        self,
        component: "ComponentBase",
        out: "Contribution",
    ) -> None:
        """
        Fills `out` with the component's unknowns, equations and event registrations.

        Args:
            component: The component instance, providing ports and parameters.
            out: The per-component registration object created by the assembly.
        """
        ...


@runtime_checkable
class IConnectivityProvider(ComponentCapability, Protocol):
    """
    Defines the capability of a component to report its port-to-port connectivity
    as a list of string pairs.
    """
    def get_connectivity(
        self,
        component: "ComponentBase",
    ) -> List[Tuple[str, str]]:
        """
        Returns a list of tuples, where each tuple represents a pair of the
        component's port names that are connected by a branch.
        For a resistor, this would be [('n1', 'n2')].
        """
        ...


def provides(capability_protocol: Type[ComponentCapability]):
    """
    A class decorator to register a class as an implementation for a capability.

    This decorator attaches a private attribute, `_implements_capability`, to the
    decorated class. The `ComponentBase.declare_capabilities` method uses this
    attribute for automatic discovery.

    Args:
        capability_protocol: The capability Protocol (e.g., IEquationContributor)
                             that this class implements.
    """

    def decorator(cls: Type) -> Type:
        if not issubclass(capability_protocol, ComponentCapability):
            raise TypeError(
                f"Decorator argument for @provides must be a ComponentCapability "
                f"Protocol, but got {capability_protocol}."
            )
        cls._implements_capability = capability_protocol
        logger.debug(
            f"Class '{cls.__name__}' registered as providing capability '{capability_protocol.__name__}'."
        )
        return cls

    return decorator
