"""Configuration models for YAML-based provisioning."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, Discriminator, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict

from automation_provisioner.resources.base import Resource  # noqa: TC001
from automation_provisioner.resources.variable import (
    BoolVariableResource,
    DateTimeVariableResource,
    IntVariableResource,
    StringVariableResource,
)


class ProviderConfig(BaseSettings):
    """Azure Automation provider settings.

    Fields can be set via YAML (constructor kwargs) or environment variables
    with the ``AZURE_`` prefix.  Constructor kwargs take precedence.

    ``resource_group`` and ``automation_account`` are defaults for variables
    that do not name their own. Service principal credentials
    (``tenant_id``, ``client_id``, ``client_secret``) belong in the
    environment; without them ``DefaultAzureCredential`` is used.
    """

    model_config = SettingsConfigDict(env_prefix="AZURE_")

    subscription_id: str
    resource_group: str | None = None
    automation_account: str | None = None
    require_import: bool = False
    timeout: float | None = None
    tenant_id: str | None = None
    client_id: str | None = None
    client_secret: str | None = None


def _none_to_list(v: Any) -> Any:
    return v if v is not None else []


_VariableEntry = Annotated[
    IntVariableResource | BoolVariableResource | DateTimeVariableResource | StringVariableResource,
    Discriminator("type"),
]


class Config(BaseModel):
    """Provisioning configuration, validated straight from YAML."""

    provider: ProviderConfig
    state_path: Path = Path(".automation-state.json")
    variables: Annotated[list[_VariableEntry], BeforeValidator(_none_to_list)] = []
    config_dir: Path = Path()

    @computed_field  # type: ignore[prop-decorator]
    @property
    def resources(self) -> list[Resource]:
        """All declared resources. Ordering is not significant."""
        return list(self.variables)
