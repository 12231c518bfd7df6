"""Lifecycle operations for a single automation variable.

The reconciler holds no state between calls. Every operation talks to the
service through the injected ``VariableClient`` and returns what the service
reports; the local state file is the engine's concern.

- ``create_or_update``: optional import guard, encode, write, re-read for the ID
- ``read``: fetch and decode; ``None`` means the variable was removed remotely
- ``delete``: idempotent, absent is success
- ``import_``: parse a canonical ID, then read
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from azure.core.exceptions import AzureError

from automation_provisioner.core.codec import ValueKind, codec_for
from automation_provisioner.core.errors import (
    AlreadyExistsError,
    DeleteFailedError,
    IncompleteWriteError,
    InvalidIdentityError,
    ValueDecodeError,
    describe,
)
from automation_provisioner.core.identity import VariableIdentity, parse_canonical

if TYPE_CHECKING:
    from automation_provisioner.core.client import RemoteVariableRecord, VariableClient
    from automation_provisioner.resources.variable import AutomationVariableResource

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VariableState:
    """Refreshed view of a variable. ``value`` is ``None`` when encrypted."""

    identity: VariableIdentity
    resource_id: str
    kind: ValueKind
    description: str
    encrypted: bool
    value: Any = None


class VariableReconciler:
    def __init__(self, client: VariableClient, subscription_id: str) -> None:
        self._client = client
        self._subscription_id = subscription_id

    def create_or_update(
        self,
        desired: AutomationVariableResource,
        *,
        import_guard: bool = False,
        **call_options: Any,
    ) -> VariableState:
        """Write *desired* and return the variable as the service now reports it.

        Raises:
            AlreadyExistsError: ``import_guard`` is set and the variable exists.
            InvalidTimeFormatError: A datetime value is not RFC 3339.
            IncompleteWriteError: The write succeeded but no ID came back.
        """
        identity = desired.identity(self._subscription_id)
        rg, account, name = identity.resource_group, identity.account_name, identity.name

        if import_guard:
            existing = self._client.get(rg, account, name, **call_options)
            if existing is not None:
                raise AlreadyExistsError(
                    desired.resource_type, existing.resource_id or identity.canonical_id, identity
                )

        encoded = codec_for(desired.value_kind).encode(desired.value)

        logger.info("Writing %s variable %s", desired.value_kind.value, describe(identity))
        self._client.create_or_update(
            rg,
            account,
            name,
            description=desired.description,
            encrypted=desired.encrypted,
            encoded_value=encoded,
            **call_options,
        )

        record = self._client.get(rg, account, name, **call_options)
        if record is None or not record.resource_id:
            raise IncompleteWriteError(
                f"Cannot read ID of automation variable {describe(identity)} after writing it",
                identity=identity,
                operation="create_or_update",
            )
        return self._to_state(record, identity, desired.value_kind, operation="create_or_update")

    def read(
        self, identity: VariableIdentity, kind: ValueKind, **call_options: Any
    ) -> VariableState | None:
        """Fetch and decode the variable. ``None`` if it no longer exists.

        Raises:
            ValueDecodeError: The stored value is not encoded as *kind*.
        """
        record = self._client.get(
            identity.resource_group, identity.account_name, identity.name, **call_options
        )
        if record is None:
            logger.info("Automation variable %s does not exist", describe(identity))
            return None
        return self._to_state(record, identity, kind, operation="read")

    def delete(self, identity: VariableIdentity, **call_options: Any) -> bool:
        """Delete the variable. Returns ``False`` if it was already absent.

        Raises:
            DeleteFailedError: Any service error other than not-found.
        """
        try:
            deleted = self._client.delete(
                identity.resource_group, identity.account_name, identity.name, **call_options
            )
        except AzureError as e:
            raise DeleteFailedError(
                f"Error deleting automation variable {describe(identity)}: {e}",
                identity=identity,
                operation="delete",
            ) from e

        if deleted:
            logger.info("Deleted automation variable %s", describe(identity))
        else:
            logger.info("Automation variable %s was already absent", describe(identity))
        return deleted

    def import_(
        self, resource_id: str, kind: ValueKind, **call_options: Any
    ) -> VariableState | None:
        """Bring an existing variable under management by its canonical ID."""
        identity = parse_canonical(resource_id)
        if identity.subscription_id.lower() != self._subscription_id.lower():
            raise InvalidIdentityError(
                f"{resource_id!r} belongs to subscription {identity.subscription_id}, "
                f"but the provider is configured for {self._subscription_id}",
                identity=identity,
                operation="import",
            )
        return self.read(identity, kind, **call_options)

    def _to_state(
        self,
        record: RemoteVariableRecord,
        identity: VariableIdentity,
        kind: ValueKind,
        *,
        operation: str,
    ) -> VariableState:
        if record.name and record.name != identity.name:
            identity = VariableIdentity(
                subscription_id=identity.subscription_id,
                resource_group=identity.resource_group,
                account_name=identity.account_name,
                name=record.name,
            )

        value: Any = None
        if not record.encrypted:
            try:
                if record.encoded_value is None:
                    raise ValueDecodeError("null", expected=kind.value, actual="null")
                value = codec_for(kind).decode(record.encoded_value)
            except ValueDecodeError as e:
                e.identity = identity
                e.operation = operation
                raise

        return VariableState(
            identity=identity,
            resource_id=record.resource_id or identity.canonical_id,
            kind=kind,
            description=record.description,
            encrypted=record.encrypted,
            value=value,
        )
