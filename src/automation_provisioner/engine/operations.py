"""Apply operations.

Each planned change becomes one operation that knows how to apply itself and
how to record the outcome in state.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol

from automation_provisioner.core.state import ResourceInstance, State

if TYPE_CHECKING:
    from automation_provisioner.engine.handlers import EngineContext
    from automation_provisioner.engine.registry import ResourceTypeRegistry
    from automation_provisioner.engine.types import ResourceChange


class Operation(Protocol):
    change: ResourceChange

    def run(self, *, ctx: EngineContext, state: State, registry: ResourceTypeRegistry) -> None:
        """Execute this operation and record the result in *state*."""


def _desired_object(change: ResourceChange, reg: Any) -> Any:
    if change.desired is None:
        raise ValueError(f"Missing desired config for {change.action.value}: {change.address}")

    desired_obj = reg.model.model_validate(change.desired)
    if desired_obj.address != change.address:
        raise ValueError(
            f"Desired address mismatch for {change.action.value}: "
            f"{change.address} != {desired_obj.address}"
        )
    return desired_obj


def _track(state: State, change: ResourceChange, name: str, attrs: dict[str, Any]) -> None:
    inst = ResourceInstance(address=change.address, resource_type=change.resource_type, name=name)
    inst.set_attributes(attrs)
    state.resources[change.address] = inst


@dataclass
class CreateOperation:
    change: ResourceChange

    def run(self, *, ctx: EngineContext, state: State, registry: ResourceTypeRegistry) -> None:
        reg = registry.get(self.change.resource_type)
        desired_obj = _desired_object(self.change, reg)
        attrs = reg.handler.create(ctx, desired_obj)
        _track(state, self.change, desired_obj.name, attrs)


@dataclass
class UpdateOperation:
    change: ResourceChange

    def run(self, *, ctx: EngineContext, state: State, registry: ResourceTypeRegistry) -> None:
        reg = registry.get(self.change.resource_type)
        desired_obj = _desired_object(self.change, reg)
        prior_inst = state.resources[self.change.address]
        attrs = reg.handler.update(ctx, desired_obj, prior_inst)
        prior_inst.set_attributes(attrs)


@dataclass
class ReplaceOperation:
    """Destroy the tracked object, then create the desired one."""

    change: ResourceChange

    def run(self, *, ctx: EngineContext, state: State, registry: ResourceTypeRegistry) -> None:
        reg = registry.get(self.change.resource_type)
        desired_obj = _desired_object(self.change, reg)
        prior_inst = state.resources[self.change.address]
        reg.handler.delete(ctx, prior_inst)
        del state.resources[self.change.address]
        attrs = reg.handler.create(ctx, desired_obj)
        _track(state, self.change, desired_obj.name, attrs)


@dataclass
class DeleteOperation:
    change: ResourceChange

    def run(self, *, ctx: EngineContext, state: State, registry: ResourceTypeRegistry) -> None:
        reg = registry.get(self.change.resource_type)
        prior_inst = state.resources[self.change.address]
        reg.handler.delete(ctx, prior_inst)
        del state.resources[self.change.address]
