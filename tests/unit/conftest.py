"""Shared fixtures for unit tests."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import pytest
from azure.core.exceptions import ResourceNotFoundError

from automation_provisioner.config import load
from automation_provisioner.core import AutomationProvider
from automation_provisioner.engine.handlers import EngineContext

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

    from automation_provisioner.config.schema import Config

SUBSCRIPTION_ID = "00000000-0000-0000-0000-000000000000"

_AZURE_ENV_VARS = (
    "AZURE_SUBSCRIPTION_ID",
    "AZURE_RESOURCE_GROUP",
    "AZURE_AUTOMATION_ACCOUNT",
    "AZURE_REQUIRE_IMPORT",
    "AZURE_TIMEOUT",
    "AZURE_TENANT_ID",
    "AZURE_CLIENT_ID",
    "AZURE_CLIENT_SECRET",
    "AUTOMATION_LOG",
)


def variable_id(resource_group: str, account: str, name: str, sub: str = SUBSCRIPTION_ID) -> str:
    return (
        f"/subscriptions/{sub}/resourceGroups/{resource_group}"
        f"/providers/Microsoft.Automation/automationAccounts/{account}/variables/{name}"
    )


@dataclass
class FakeVariable:
    """Shape of ``azure.mgmt.automation.models.Variable`` as the client reads it."""

    id: str | None
    name: str
    value: str | None
    is_encrypted: bool
    description: str | None = None


def _key(resource_group: str, account: str, name: str) -> tuple[str, str, str]:
    return (resource_group.lower(), account.lower(), name.lower())


@dataclass
class FakeVariableOperations:
    """In-memory stand-in for ``AutomationClient.variable``.

    Missing variables raise the real ``ResourceNotFoundError``. Encrypted
    values are stored but never returned, like the service. Names match
    case-insensitively; ``store`` is keyed by the lowercased triple.
    """

    subscription_id: str = SUBSCRIPTION_ID
    store: dict[tuple[str, str, str], FakeVariable] = field(default_factory=dict)
    calls: list[tuple[str, str, dict[str, Any]]] = field(default_factory=list)
    # Make ``get`` report no ID for these names (a write the service half-acknowledged).
    hide_ids: set[str] = field(default_factory=set)
    # Raised by ``delete`` instead of deleting.
    delete_error: Exception | None = None
    # Names whose delete reports success but leaves the variable in place.
    sticky: set[str] = field(default_factory=set)

    def seed(
        self,
        resource_group: str,
        account: str,
        name: str,
        value: str | None,
        *,
        encrypted: bool = False,
        description: str = "",
    ) -> FakeVariable:
        var = FakeVariable(
            id=variable_id(resource_group, account, name, self.subscription_id),
            name=name,
            value=value,
            is_encrypted=encrypted,
            description=description,
        )
        self.store[_key(resource_group, account, name)] = var
        return var

    def _view(self, var: FakeVariable) -> FakeVariable:
        return FakeVariable(
            id=None if var.name in self.hide_ids else var.id,
            name=var.name,
            value=None if var.is_encrypted else var.value,
            is_encrypted=var.is_encrypted,
            description=var.description,
        )

    def get(
        self, resource_group_name: str, automation_account_name: str, variable_name: str, **kw: Any
    ) -> FakeVariable:
        self.calls.append(("get", variable_name, kw))
        var = self.store.get(_key(resource_group_name, automation_account_name, variable_name))
        if var is None:
            raise ResourceNotFoundError(f"Variable {variable_name} not found")
        return self._view(var)

    def create_or_update(
        self,
        resource_group_name: str,
        automation_account_name: str,
        variable_name: str,
        parameters: Any,
        **kw: Any,
    ) -> FakeVariable:
        self.calls.append(("create_or_update", variable_name, kw))
        var = self.seed(
            resource_group_name,
            automation_account_name,
            variable_name,
            parameters.value,
            encrypted=bool(parameters.is_encrypted),
            description=parameters.description or "",
        )
        return self._view(var)

    def delete(
        self, resource_group_name: str, automation_account_name: str, variable_name: str, **kw: Any
    ) -> None:
        self.calls.append(("delete", variable_name, kw))
        if self.delete_error is not None:
            raise self.delete_error
        key = _key(resource_group_name, automation_account_name, variable_name)
        if key not in self.store:
            raise ResourceNotFoundError(f"Variable {variable_name} not found")
        if variable_name not in self.sticky:
            del self.store[key]

    def call_names(self, op: str) -> list[str]:
        return [name for o, name, _ in self.calls if o == op]


@dataclass
class FakeAutomationClient:
    variable: FakeVariableOperations = field(default_factory=FakeVariableOperations)


@pytest.fixture(autouse=True)
def _clean_azure_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove AZURE_* env vars so unit tests don't leak real subscription config."""
    for var in _AZURE_ENV_VARS:
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def fake_ops() -> FakeVariableOperations:
    return FakeVariableOperations()


@pytest.fixture
def provider(fake_ops: FakeVariableOperations) -> AutomationProvider:
    return AutomationProvider.from_client(
        FakeAutomationClient(variable=fake_ops),  # type: ignore[arg-type]
        SUBSCRIPTION_ID,
    )


@pytest.fixture
def ctx(provider: AutomationProvider) -> EngineContext:
    return EngineContext(provider=provider, subscription_id=SUBSCRIPTION_ID)


@pytest.fixture
def make_config(tmp_path: Path) -> Callable[..., Config]:
    """Factory fixture: write YAML + optional .env, return loaded Config."""

    def _make(yaml_str: str, *, dotenv: str | None = None) -> Config:
        (tmp_path / "config.yaml").write_text(yaml_str)
        if dotenv is not None:
            (tmp_path / ".env").write_text(dotenv)
        return load(tmp_path / "config.yaml")

    return _make
