"""Addressing for automation variables.

A variable lives at an ARM resource ID of the form::

    /subscriptions/{sub}/resourceGroups/{rg}/providers/Microsoft.Automation/
        automationAccounts/{account}/variables/{name}

The same identity is produced from user-supplied key fields on the write path
and from the canonical ID on the import/read path.
"""

from __future__ import annotations

from dataclasses import dataclass

from automation_provisioner.core.errors import InvalidIdentityError, MalformedIdentifierError

PROVIDER_NAMESPACE = "Microsoft.Automation"


@dataclass(frozen=True)
class VariableIdentity:
    """Key fields of an automation variable. ``name`` never changes in place."""

    subscription_id: str
    resource_group: str
    account_name: str
    name: str

    @property
    def canonical_id(self) -> str:
        return (
            f"/subscriptions/{self.subscription_id}"
            f"/resourceGroups/{self.resource_group}"
            f"/providers/{PROVIDER_NAMESPACE}"
            f"/automationAccounts/{self.account_name}"
            f"/variables/{self.name}"
        )


def resolve_for_write(
    subscription_id: str, resource_group: str, account_name: str, name: str
) -> VariableIdentity:
    """Build an identity from key fields, rejecting empty or non-string parts."""
    fields = {
        "subscription_id": subscription_id,
        "resource_group_name": resource_group,
        "automation_account_name": account_name,
        "name": name,
    }
    for field, value in fields.items():
        if not isinstance(value, str) or not value.strip():
            raise InvalidIdentityError(f"{field} must be a non-empty string, got {value!r}")
    return VariableIdentity(
        subscription_id=subscription_id,
        resource_group=resource_group,
        account_name=account_name,
        name=name,
    )


def _segments(resource_id: str) -> list[str]:
    if not resource_id.startswith("/"):
        raise MalformedIdentifierError(resource_id, "must start with '/'")
    parts = resource_id.strip("/").split("/")
    if len(parts) % 2 != 0:
        raise MalformedIdentifierError(resource_id, "expected key/value segment pairs")
    if any(not p for p in parts):
        raise MalformedIdentifierError(resource_id, "contains an empty segment")
    return parts


def parse_canonical(resource_id: str) -> VariableIdentity:
    """Parse a canonical ARM ID into a ``VariableIdentity``.

    Raises:
        MalformedIdentifierError: If any of the subscription, resource group,
            ``automationAccounts`` or ``variables`` segments is missing.
    """
    if not isinstance(resource_id, str) or not resource_id:
        raise MalformedIdentifierError(str(resource_id), "resource ID is empty")

    parts = _segments(resource_id)
    pairs = list(zip(parts[::2], parts[1::2], strict=True))

    subscription_id: str | None = None
    resource_group: str | None = None
    path: dict[str, str] = {}
    for key, value in pairs:
        lowered = key.lower()
        if lowered == "subscriptions" and subscription_id is None:
            subscription_id = value
        # ARM accepts any casing of resourceGroups (e.g. "resourcegroups").
        elif lowered == "resourcegroups" and resource_group is None:
            resource_group = value
        elif lowered == "providers":
            continue
        else:
            path[key] = value

    if subscription_id is None:
        raise MalformedIdentifierError(resource_id, "missing 'subscriptions' segment")
    if resource_group is None:
        raise MalformedIdentifierError(resource_id, "missing 'resourceGroups' segment")
    account_name = path.get("automationAccounts")
    if account_name is None:
        raise MalformedIdentifierError(resource_id, "missing 'automationAccounts' segment")
    name = path.get("variables")
    if name is None:
        raise MalformedIdentifierError(resource_id, "missing 'variables' segment")

    return VariableIdentity(
        subscription_id=subscription_id,
        resource_group=resource_group,
        account_name=account_name,
        name=name,
    )
