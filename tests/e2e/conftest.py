"""Shared fixtures for e2e tests against a live Azure Automation account.

Required environment:

- ``AZURE_SUBSCRIPTION_ID``
- ``AZURE_E2E_RESOURCE_GROUP``
- ``AZURE_E2E_AUTOMATION_ACCOUNT``

Credentials come from the usual ``AZURE_TENANT_ID`` / ``AZURE_CLIENT_ID`` /
``AZURE_CLIENT_SECRET`` variables or whatever ``DefaultAzureCredential`` finds.
"""

from __future__ import annotations

import contextlib
import logging
import os
import uuid
from typing import TYPE_CHECKING, Any

import pytest
from azure.core.exceptions import AzureError, ClientAuthenticationError

from automation_provisioner.config.schema import Config, ProviderConfig
from automation_provisioner.core.provider import AutomationProvider

if TYPE_CHECKING:
    from collections.abc import Callable, Generator
    from pathlib import Path

    from automation_provisioner.core.client import VariableClient

logger = logging.getLogger(__name__)

_REQUIRED_ENV = (
    "AZURE_SUBSCRIPTION_ID",
    "AZURE_E2E_RESOURCE_GROUP",
    "AZURE_E2E_AUTOMATION_ACCOUNT",
)


# ---------------------------------------------------------------------------
# pytest CLI options
# ---------------------------------------------------------------------------


def pytest_addoption(parser: pytest.Parser) -> None:
    group = parser.getgroup("e2e", "Azure Automation e2e test options")
    group.addoption(
        "--e2e-resource-group",
        default=None,
        help="Resource group of the test account (default: AZURE_E2E_RESOURCE_GROUP env)",
    )
    group.addoption(
        "--e2e-automation-account",
        default=None,
        help="Automation account to test against (default: AZURE_E2E_AUTOMATION_ACCOUNT env)",
    )


# ---------------------------------------------------------------------------
# Session-scoped fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session")
def azure_env(request: pytest.FixtureRequest) -> dict[str, str]:
    env = {key: os.environ.get(key, "") for key in _REQUIRED_ENV}
    env["AZURE_E2E_RESOURCE_GROUP"] = (
        request.config.getoption("--e2e-resource-group", default=None)
        or env["AZURE_E2E_RESOURCE_GROUP"]
    )
    env["AZURE_E2E_AUTOMATION_ACCOUNT"] = (
        request.config.getoption("--e2e-automation-account", default=None)
        or env["AZURE_E2E_AUTOMATION_ACCOUNT"]
    )
    missing = [key for key, value in env.items() if not value]
    if missing:
        pytest.skip(f"Azure e2e environment not configured: {', '.join(missing)}")
    return env


@pytest.fixture(scope="session")
def subscription_id(azure_env: dict[str, str]) -> str:
    return azure_env["AZURE_SUBSCRIPTION_ID"]


@pytest.fixture(scope="session")
def resource_group(azure_env: dict[str, str]) -> str:
    return azure_env["AZURE_E2E_RESOURCE_GROUP"]


@pytest.fixture(scope="session")
def automation_account(azure_env: dict[str, str]) -> str:
    return azure_env["AZURE_E2E_AUTOMATION_ACCOUNT"]


@pytest.fixture(scope="session")
def variable_client(
    subscription_id: str, resource_group: str, automation_account: str
) -> VariableClient:
    client = AutomationProvider(subscription_id=subscription_id).variables
    try:
        client.get(resource_group, automation_account, f"reachability-{uuid.uuid4().hex[:8]}")
    except ClientAuthenticationError as exc:
        pytest.skip(f"Azure credentials rejected: {exc.message}")
    except AzureError as exc:
        pytest.skip(f"Automation account {automation_account} not reachable: {exc}")
    return client


# ---------------------------------------------------------------------------
# Cleanup fixtures (function-scoped)
# ---------------------------------------------------------------------------


@pytest.fixture()
def unique_name() -> Callable[[str], str]:
    """Variable names unique to this run, so parallel runs do not collide."""
    run = uuid.uuid4().hex[:8]
    return lambda base: f"e2e-{base}-{run}"


@pytest.fixture()
def cleanup_variables(
    variable_client: VariableClient, resource_group: str, automation_account: str
) -> Generator[list[str]]:
    created: list[str] = []
    yield created
    for name in reversed(created):
        with contextlib.suppress(AzureError):
            variable_client.delete(resource_group, automation_account, name)


# ---------------------------------------------------------------------------
# Config factory
# ---------------------------------------------------------------------------


@pytest.fixture()
def make_config(
    variable_client: VariableClient,
    subscription_id: str,
    resource_group: str,
    automation_account: str,
    tmp_path: Path,
) -> Callable[..., Config]:
    _ = variable_client  # skip early when the account is unreachable

    def _make(
        *,
        variables: list[dict[str, Any]] | None = None,
        state_name: str = "state",
        require_import: bool = False,
    ) -> Config:
        entries = [
            {
                "resource_group_name": resource_group,
                "automation_account_name": automation_account,
                **v,
            }
            for v in variables or []
        ]
        return Config(
            provider=ProviderConfig(
                subscription_id=subscription_id,
                resource_group=resource_group,
                automation_account=automation_account,
                require_import=require_import,
            ),
            state_path=tmp_path / f".{state_name}.json",
            variables=entries,
        )

    return _make


# ---------------------------------------------------------------------------
# Assertion helpers
# ---------------------------------------------------------------------------


def assert_changes(plan_obj: Any, expected: dict[str, str]) -> None:
    """Assert that a plan contains exactly the expected actions.

    *expected* maps variable names to Action values (e.g. ``{"retries": "create"}``).
    """
    from automation_provisioner.engine.types import Action

    actual = {c.address.split(".", 1)[-1]: c.action for c in plan_obj.changes}
    normalized = {
        name: (Action(action) if isinstance(action, str) else action)
        for name, action in expected.items()
    }
    assert actual == normalized, (
        f"Plan changes mismatch.\nExpected: {normalized}\nActual:   {actual}"
    )
