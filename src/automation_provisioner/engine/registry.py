"""Which model and handler serve each variable resource type."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from automation_provisioner.engine.errors import UnknownResourceTypeError

if TYPE_CHECKING:
    from automation_provisioner.engine.handlers import ResourceHandler
    from automation_provisioner.resources.base import Resource


@dataclass(frozen=True)
class ResourceTypeRegistration:
    """A variable model paired with the handler that reconciles it."""

    model: type[Resource]
    handler: ResourceHandler[Any]

    @property
    def resource_type(self) -> str:
        return self.model.resource_type


class ResourceTypeRegistry:
    def __init__(self) -> None:
        self._by_type: dict[str, ResourceTypeRegistration] = {}

    def register(
        self, model: type[Resource], handler: ResourceHandler[Any]
    ) -> ResourceTypeRegistration:
        resource_type = getattr(model, "resource_type", None)
        if not isinstance(resource_type, str) or not resource_type:
            raise ValueError(f"{model.__name__} does not declare a resource_type")
        existing = self._by_type.get(resource_type)
        if existing is not None:
            raise ValueError(f"{resource_type} is already served by {existing.model.__name__}")

        registration = ResourceTypeRegistration(model=model, handler=handler)
        self._by_type[resource_type] = registration
        return registration

    def get(self, resource_type: str) -> ResourceTypeRegistration:
        registration = self._by_type.get(resource_type)
        if registration is None:
            raise UnknownResourceTypeError(resource_type)
        return registration

    def resolve_address(self, address: str) -> tuple[ResourceTypeRegistration, str]:
        """Split ``<resource_type>.<name>`` into its registration and variable name."""
        resource_type, _, name = address.partition(".")
        if not resource_type or not name:
            raise ValueError(f"Invalid resource address {address!r}: expected <type>.<name>")
        return self.get(resource_type), name

    def resource_types(self) -> list[str]:
        return sorted(self._by_type)
