"""Resource definitions."""

from automation_provisioner.resources.base import Resource
from automation_provisioner.resources.variable import (
    VARIABLE_MODELS,
    AutomationVariableResource,
    BoolVariableResource,
    DateTimeVariableResource,
    IntVariableResource,
    StringVariableResource,
)

__all__ = [
    "VARIABLE_MODELS",
    "AutomationVariableResource",
    "BoolVariableResource",
    "DateTimeVariableResource",
    "IntVariableResource",
    "Resource",
    "StringVariableResource",
]
