"""Automation provider - credentials and client construction for one subscription."""

from functools import cached_property
from typing import TYPE_CHECKING, Self

from azure.identity import ClientSecretCredential, DefaultAzureCredential
from azure.mgmt.automation import AutomationClient
from pydantic import BaseModel, ConfigDict, SecretStr

if TYPE_CHECKING:
    from azure.core.credentials import TokenCredential

    from automation_provisioner.core.client import VariableClient


class ClientSecretAuth(BaseModel):
    """Service principal authentication."""

    tenant_id: str
    client_id: str
    client_secret: SecretStr


class AutomationProvider(BaseModel):
    """Connection configuration for Azure Automation in one subscription.

    Without ``auth`` the provider falls back to ``DefaultAzureCredential``
    (environment, managed identity, Azure CLI login, ...). For tests or hosted
    runbooks, inject a ready-made client with ``from_client``.

    Examples:
        # Service principal
        provider = AutomationProvider(
            subscription_id="00000000-0000-0000-0000-000000000000",
            auth=ClientSecretAuth(tenant_id="...", client_id="...", client_secret="..."),
        )

        # Whatever `az login` / managed identity provides
        provider = AutomationProvider(subscription_id="00000000-...")
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    subscription_id: str
    auth: ClientSecretAuth | None = None

    # Injected client (for testing)
    _injected_client: AutomationClient | None = None

    @classmethod
    def from_client(cls, client: AutomationClient, subscription_id: str) -> Self:
        """Create a provider around an existing ``AutomationClient``."""
        provider = cls.model_construct(subscription_id=subscription_id)
        provider._injected_client = client
        return provider

    def credential(self) -> "TokenCredential":
        if self.auth is not None:
            return ClientSecretCredential(
                tenant_id=self.auth.tenant_id,
                client_id=self.auth.client_id,
                client_secret=self.auth.client_secret.get_secret_value(),
            )
        return DefaultAzureCredential()

    @cached_property
    def client(self) -> AutomationClient:
        """Get the Automation management client."""
        if self._injected_client is not None:
            return self._injected_client
        if not self.subscription_id:
            raise ValueError(
                "Either provide subscription_id, or use AutomationProvider.from_client() "
                "to inject a client"
            )
        return AutomationClient(self.credential(), self.subscription_id)

    @cached_property
    def variables(self) -> "VariableClient":
        from automation_provisioner.core.client import VariableClient

        return VariableClient(self.client)
