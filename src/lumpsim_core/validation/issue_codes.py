# src/lumpsim_core/validation/issue_codes.py
import logging
from enum import Enum

logger = logging.getLogger(__name__)


class SemanticIssueCode(Enum):
    """
    Registry of validation issue codes and their message templates.
    Each enum member's value is a tuple: (code_str, message_template_str).
    """

    # --- Node Connectivity Issues (NET_...) ---
    NET_CONN_001 = ("NET_CONN_001", "Node '{node_name}' is defined but has no component connections (completely floating).")
    NET_CONN_002 = ("NET_CONN_002", "Node '{node_name}' has only a single connection to component '{connected_to_component}' port '{connected_to_port}'.")
    NET_REF_001 = ("NET_REF_001", "Subnetwork {node_names} has no path to a fixed reference potential (ground or literal node); its potentials are undetermined.")

    # --- Component Type Issues (COMP_...) ---
    COMP_TYPE_001 = ("COMP_TYPE_001", "Component '{component_fqn}' specifies an unregistered type '{component_type}'. Available types: {available_types}.")

    # --- Parameter Issues (PARAM_...) ---
    PARAM_DEGENERATE = ("PARAM_DEGENERATE", "Component '{component_fqn}' ({component_type}) has parameter {parameter_name}={value_str}, which is zero or negative and may make the network singular.")
    PARAM_SIGNAL_NOT_POSITIVE = ("PARAM_SIGNAL_NOT_POSITIVE", "Signal parameter '{parameter_name}' of component '{component_fqn}' evaluated to {value} at t={time}, but it must be strictly positive.")

    @property
    def code(self) -> str:
        return self.value[0]

    @property
    def template(self) -> str:
        return self.value[1]

    def format_message(self, **kwargs) -> str:
        """Formats the message template with provided keyword arguments."""
        try:
            return self.template.format(**kwargs)
        except KeyError as e:
            logger.error(f"Missing key {e} for formatting message template of {self.name} (code: {self.code}): '{self.template}'. Provided args: {kwargs}")
            return f"Error formatting message for {self.code}: Missing key {e}. Template: '{self.template}' Args: {kwargs}"
