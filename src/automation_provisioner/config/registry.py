"""Default resource type registry factory."""

from __future__ import annotations

from automation_provisioner.engine.registry import ResourceTypeRegistry
from automation_provisioner.engine.variable_handler import AutomationVariableHandler
from automation_provisioner.resources.variable import VARIABLE_MODELS


def default_registry() -> ResourceTypeRegistry:
    """Create a fresh registry with all built-in resource types and handlers."""
    registry = ResourceTypeRegistry()
    for model in VARIABLE_MODELS:
        registry.register(model, AutomationVariableHandler(model))
    return registry
