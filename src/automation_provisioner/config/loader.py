"""YAML configuration file loader."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import TYPE_CHECKING, Any

from dotenv import dotenv_values
from pydantic import ValidationError
from ruamel.yaml import YAML
from ruamel.yaml.constructor import SafeConstructor

from automation_provisioner.config.schema import Config

logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from automation_provisioner.resources.variable import AutomationVariableResource


class ConfigError(Exception):
    """Raised for configuration loading / validation errors."""


# Field name → environment variable.
_PROVIDER_ENV_MAP: dict[str, str] = {
    "subscription_id": "AZURE_SUBSCRIPTION_ID",
    "resource_group": "AZURE_RESOURCE_GROUP",
    "automation_account": "AZURE_AUTOMATION_ACCOUNT",
    "require_import": "AZURE_REQUIRE_IMPORT",
    "timeout": "AZURE_TIMEOUT",
    "tenant_id": "AZURE_TENANT_ID",
    "client_id": "AZURE_CLIENT_ID",
    "client_secret": "AZURE_CLIENT_SECRET",
}

_PROVIDER_BOOL_FIELDS: frozenset[str] = frozenset({"require_import"})

# Never read from YAML; keeps secrets out of version control.
_PROVIDER_ENV_ONLY: frozenset[str] = frozenset({"tenant_id", "client_id", "client_secret"})


def _resolve_provider(raw_provider: dict[str, Any], config_dir: Path) -> dict[str, Any]:
    """Resolve provider fields from YAML, env vars, and ``.env`` file.

    Priority (highest wins): YAML value > env var > ``.env`` file.
    """
    leaked = sorted(_PROVIDER_ENV_ONLY & raw_provider.keys())
    if leaked:
        raise ConfigError(
            f"provider.{leaked[0]} must not be set in YAML; "
            f"use the {_PROVIDER_ENV_MAP[leaked[0]]} environment variable"
        )

    env_file = config_dir / ".env"
    dotenv_vals = dotenv_values(env_file, encoding="utf-8-sig") if env_file.is_file() else {}

    resolved: dict[str, Any] = {}
    for field, env_key in _PROVIDER_ENV_MAP.items():
        val = raw_provider.get(field)
        if val is None:
            val = os.environ.get(env_key)
        if val is None:
            val = dotenv_vals.get(env_key)
        if val is not None:
            if field in _PROVIDER_BOOL_FIELDS and isinstance(val, str):
                if val.lower() not in SafeConstructor.bool_values:
                    raise ConfigError(f"Invalid boolean for {env_key}: {val!r}")
                val = SafeConstructor.bool_values[val.lower()]
            resolved[field] = val

    unknown = sorted(raw_provider.keys() - _PROVIDER_ENV_MAP.keys())
    if unknown:
        raise ConfigError(f"Unknown provider setting(s): {', '.join(unknown)}")

    return resolved


def _apply_variable_defaults(raw_variables: Any, provider: dict[str, Any]) -> Any:
    """Fill in ``resource_group_name`` / ``automation_account_name`` from the provider."""
    if not isinstance(raw_variables, list):
        return raw_variables

    defaults = {
        "resource_group_name": provider.get("resource_group"),
        "automation_account_name": provider.get("automation_account"),
    }
    for entry in raw_variables:
        if not isinstance(entry, dict):
            continue
        for key, default in defaults.items():
            if entry.get(key) is None and default is not None:
                entry[key] = default
    return raw_variables


def _validate_unique_names(variables: list[AutomationVariableResource]) -> list[str]:
    """Check that each variable is declared once per automation account.

    Azure resource names are case-insensitive, and the address only carries
    the name, so the same name in two accounts is also rejected.
    """
    seen: dict[tuple[str, str, str], str] = {}  # (rg, account, name) → first_address
    addresses: dict[str, str] = {}  # address → account label
    errors: list[str] = []
    for v in variables:
        key = (
            v.resource_group_name.lower(),
            v.automation_account_name.lower(),
            v.name.lower(),
        )
        label = f"{v.resource_group_name}/{v.automation_account_name}"
        if key in seen:
            errors.append(
                f"Duplicate variable name '{v.name}' in {label}: "
                f"found in both {seen[key]} and {v.address}"
            )
            continue
        seen[key] = v.address

        if v.address in addresses:
            errors.append(
                f"Duplicate address {v.address}: declared in both {addresses[v.address]} "
                f"and {label}"
            )
        else:
            addresses[v.address] = label
    return errors


def load_config(path: Path | str) -> Config:
    """Load a YAML configuration file and return a ``Config`` object.

    Raises:
        ConfigError: On YAML parse errors, missing sections, or validation failures.
    """
    path = Path(path)

    try:
        raw = YAML(typ="safe").load(path)
    except Exception as exc:
        raise ConfigError(f"Failed to read {path}: {exc}") from exc

    if not isinstance(raw, dict):
        raise ConfigError(f"{path} must contain a mapping at the top level")

    raw["provider"] = _resolve_provider(raw.get("provider") or {}, path.parent)
    if "subscription_id" not in raw["provider"]:
        raise ConfigError(
            "provider.subscription_id is required (set in YAML or AZURE_SUBSCRIPTION_ID env var)"
        )
    raw["variables"] = _apply_variable_defaults(raw.get("variables"), raw["provider"])

    try:
        config = Config.model_validate(raw)
    except ValidationError as exc:
        raise ConfigError(str(exc)) from exc

    config.config_dir = path.parent
    if not config.state_path.is_absolute():
        config.state_path = config.config_dir / config.state_path

    errors = _validate_unique_names(config.variables)
    if errors:
        raise ConfigError("\n".join(errors))

    logger.info("Loaded config from %s (%d variables)", path, len(config.variables))
    return config
