"""Thin adapter over the Azure Automation variable operations.

Everything is keyed by ``(resource_group, account_name, name)``. Not-found is
reported as a return value; every other SDK error propagates unchanged so the
SDK's own retry policy stays the only retry policy.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from azure.core.exceptions import ResourceNotFoundError
from azure.mgmt.automation.models import VariableCreateOrUpdateParameters
from pydantic import BaseModel

if TYPE_CHECKING:
    from azure.mgmt.automation import AutomationClient
    from azure.mgmt.automation.models import Variable

logger = logging.getLogger(__name__)


class RemoteVariableRecord(BaseModel):
    """A variable as the service reports it.

    ``encoded_value`` is ``None`` for encrypted variables.
    """

    resource_id: str | None = None
    name: str
    resource_group: str
    account_name: str
    description: str = ""
    encrypted: bool = False
    encoded_value: str | None = None

    @classmethod
    def from_sdk(
        cls, variable: Variable, resource_group: str, account_name: str
    ) -> RemoteVariableRecord:
        return cls(
            resource_id=variable.id,
            name=variable.name,
            resource_group=resource_group,
            account_name=account_name,
            description=variable.description or "",
            encrypted=bool(variable.is_encrypted),
            encoded_value=variable.value,
        )


class VariableClient:
    """Get / CreateOrUpdate / Delete for automation variables.

    ``call_options`` (e.g. ``timeout``) are passed straight to the SDK call so
    the caller's deadline applies to the request pipeline.
    """

    def __init__(self, client: AutomationClient) -> None:
        self._client = client

    def get(
        self, resource_group: str, account_name: str, name: str, **call_options: Any
    ) -> RemoteVariableRecord | None:
        """Return the variable, or ``None`` if it does not exist."""
        try:
            variable = self._client.variable.get(resource_group, account_name, name, **call_options)
        except ResourceNotFoundError:
            logger.debug("Variable %s/%s/%s not found", resource_group, account_name, name)
            return None
        return RemoteVariableRecord.from_sdk(variable, resource_group, account_name)

    def create_or_update(
        self,
        resource_group: str,
        account_name: str,
        name: str,
        *,
        description: str,
        encrypted: bool,
        encoded_value: str,
        **call_options: Any,
    ) -> RemoteVariableRecord:
        parameters = VariableCreateOrUpdateParameters(
            name=name,
            description=description,
            is_encrypted=encrypted,
            value=encoded_value,
        )
        variable = self._client.variable.create_or_update(
            resource_group, account_name, name, parameters, **call_options
        )
        return RemoteVariableRecord.from_sdk(variable, resource_group, account_name)

    def delete(
        self, resource_group: str, account_name: str, name: str, **call_options: Any
    ) -> bool:
        """Delete the variable. Returns ``False`` if it was already gone."""
        try:
            self._client.variable.delete(resource_group, account_name, name, **call_options)
        except ResourceNotFoundError:
            return False
        return True
