"""Engine-facing handler interfaces."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from automation_provisioner.resources.base import Resource

if TYPE_CHECKING:
    from automation_provisioner.core import AutomationProvider
    from automation_provisioner.core.state import ResourceInstance

R = TypeVar("R", bound=Resource)


@dataclass(frozen=True)
class EngineContext:
    """Context passed to handlers.

    ``require_import`` turns on the import guard: creating a variable that
    already exists remotely fails instead of adopting it. ``timeout`` is the
    per-call deadline handed to the Azure SDK.
    """

    provider: AutomationProvider
    subscription_id: str
    require_import: bool = False
    timeout: float | None = None

    def call_options(self) -> dict[str, Any]:
        return {} if self.timeout is None else {"timeout": self.timeout}


class ResourceHandler(Generic[R]):
    """Base class for resource handlers.

    Handlers translate resources into Azure API calls. Subclass and override
    the CRUD methods; ``validate`` is optional.
    """

    def validate(self, ctx: EngineContext, desired: R) -> list[str]:
        """Single-resource validation. Return list of error messages (empty = valid)."""
        _ = ctx, desired
        return []

    def read(self, ctx: EngineContext, prior: ResourceInstance) -> dict[str, Any] | None:
        """Read the resource from Azure. Return None if it no longer exists."""
        raise NotImplementedError

    def create(self, ctx: EngineContext, desired: R) -> dict[str, Any]:
        """Create the resource in Azure. Return stored attributes."""
        raise NotImplementedError

    def update(self, ctx: EngineContext, desired: R, prior: ResourceInstance) -> dict[str, Any]:
        """Update the resource in Azure. Return stored attributes."""
        raise NotImplementedError

    def delete(self, ctx: EngineContext, prior: ResourceInstance) -> None:
        """Delete the resource from Azure. Deleting an absent resource is not an error."""
        raise NotImplementedError

    def import_state(self, ctx: EngineContext, resource_id: str) -> dict[str, Any] | None:
        """Read an existing remote object by ID. Return None if it does not exist."""
        raise NotImplementedError
