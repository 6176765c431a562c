"""Capability toolkit: descriptors, registry and the tool-call bridge.

Exposes capabilities as function-calling schemas for the model and
executes the tool calls it requests.
"""

from toolplan.toolkit.bridge import ToolCallBridge
from toolplan.toolkit.models import Capability, Parameter, ParameterType
from toolplan.toolkit.registry import CapabilityRegistry

__all__ = [
    "Capability",
    "CapabilityRegistry",
    "Parameter",
    "ParameterType",
    "ToolCallBridge",
]
