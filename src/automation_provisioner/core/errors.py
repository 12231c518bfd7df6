"""Error taxonomy for automation variable lifecycle operations.

Every error is fatal for the operation that raised it; nothing here is retried
by the library. Transport failures from the Azure SDK are not wrapped, except
on delete where they surface as ``DeleteFailedError`` with the SDK error chained.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from automation_provisioner.core.identity import VariableIdentity


def describe(identity: VariableIdentity) -> str:
    """Human-readable identity used in error and log messages."""
    return (
        f"{identity.name!r} (Automation Account {identity.account_name!r} / "
        f"Resource Group {identity.resource_group!r})"
    )


class VariableError(Exception):
    """Base exception for automation variable operations."""

    def __init__(
        self,
        message: str,
        *,
        identity: VariableIdentity | None = None,
        operation: str | None = None,
    ) -> None:
        super().__init__(message)
        self.identity = identity
        self.operation = operation


class InvalidIdentityError(VariableError, ValueError):
    """A key field needed to address a variable is missing or empty."""


class MalformedIdentifierError(VariableError, ValueError):
    """A canonical resource ID could not be parsed into a variable identity."""

    def __init__(self, resource_id: str, reason: str) -> None:
        super().__init__(f"Malformed automation variable ID {resource_id!r}: {reason}")
        self.resource_id = resource_id


class AlreadyExistsError(VariableError):
    """A variable already exists remotely but is not tracked in state."""

    def __init__(self, resource_type: str, resource_id: str, identity: VariableIdentity) -> None:
        super().__init__(
            f"A resource with the ID {resource_id!r} already exists - to be managed "
            f"it needs to be imported into the state. Run "
            f"`automation-provisioner import {resource_type}.{identity.name} {resource_id}`.",
            identity=identity,
            operation="create",
        )
        self.resource_type = resource_type
        self.resource_id = resource_id


class InvalidTimeFormatError(VariableError, ValueError):
    """A datetime value is not a valid RFC 3339 timestamp."""

    def __init__(self, value: object) -> None:
        super().__init__(f"Invalid time format: {value!r} is not an RFC 3339 timestamp")
        self.value = value


class ValueDecodeError(VariableError, ValueError):
    """A stored value is not encoded the way its declared kind expects."""

    def __init__(self, value: str, expected: str, actual: str) -> None:
        super().__init__(f"Expected value {value!r} to be {expected!r}, actual type is {actual!r}")
        self.value = value
        self.expected = expected
        self.actual = actual


class IncompleteWriteError(VariableError):
    """A write succeeded but the service did not report the resource ID."""


class DeleteFailedError(VariableError):
    """Deleting a variable failed for a reason other than it being absent."""
