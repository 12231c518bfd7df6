"""YAML configuration loading and convenience plan/apply API."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import SecretStr

from automation_provisioner.config.loader import ConfigError, load_config
from automation_provisioner.config.registry import default_registry
from automation_provisioner.config.schema import Config, ProviderConfig
from automation_provisioner.core.provider import AutomationProvider, ClientSecretAuth
from automation_provisioner.core.state import State
from automation_provisioner.engine.engine import AutomationEngine, ProgressCallback
from automation_provisioner.engine.lock import StateLock
from automation_provisioner.engine.types import Action, ResourceChange

if TYPE_CHECKING:
    from pathlib import Path

    from automation_provisioner.core.state import ResourceInstance
    from automation_provisioner.engine.types import ApplyResult, Plan

__all__ = [
    "Config",
    "ConfigError",
    "ProviderConfig",
    "State",
    "apply",
    "destroy",
    "drift",
    "import_resource",
    "load",
    "load_config",
    "plan",
    "plan_and_apply",
    "refresh",
    "save_state",
    "verify_destroyed",
]


def load(path: Path | str) -> Config:
    """Load a YAML configuration file."""
    return load_config(path)


def _provider_from_config(config: Config) -> AutomationProvider:
    p = config.provider
    credentials = (p.tenant_id, p.client_id, p.client_secret)
    if any(credentials) and not all(credentials):
        raise ConfigError(
            "AZURE_TENANT_ID, AZURE_CLIENT_ID and AZURE_CLIENT_SECRET must be set together"
        )
    auth = None
    if all(credentials):
        auth = ClientSecretAuth(
            tenant_id=p.tenant_id,
            client_id=p.client_id,
            client_secret=SecretStr(p.client_secret),
        )
    return AutomationProvider(subscription_id=p.subscription_id, auth=auth)


def _engine_from_config(
    config: Config, *, provider: AutomationProvider | None = None
) -> AutomationEngine:
    """Build an ``AutomationEngine`` from a ``Config`` instance."""
    return AutomationEngine(
        provider=provider or _provider_from_config(config),
        state_path=config.state_path,
        registry=default_registry(),
        require_import=config.provider.require_import,
        timeout=config.provider.timeout,
    )


def plan(config: Config, *, destroy: bool = False, refresh: bool = True) -> Plan:
    """Plan changes for the given configuration."""
    engine = _engine_from_config(config)
    return engine.plan(config.resources, destroy=destroy, refresh=refresh)


def apply(
    plan_obj: Plan, config: Config, *, progress: ProgressCallback | None = None
) -> ApplyResult:
    """Apply a previously computed plan."""
    engine = _engine_from_config(config)
    return engine.apply(plan_obj, progress=progress)


def plan_and_apply(config: Config, *, destroy: bool = False, refresh: bool = True) -> ApplyResult:
    """Plan and apply in one step."""
    plan_obj = plan(config, destroy=destroy, refresh=refresh)
    return apply(plan_obj, config)


def destroy(
    config: Config,
    plan_obj: Plan | None = None,
    *,
    progress: ProgressCallback | None = None,
) -> ApplyResult:
    """Delete every tracked variable, then check that none of them survived.

    *plan_obj* must be a destroy plan; one is computed when omitted.

    Raises:
        ResourceStillExistsError: Lists every variable that still exists.
    """
    engine = _engine_from_config(config)
    if plan_obj is None:
        plan_obj = engine.plan(config.resources, destroy=True)
    elif not plan_obj.metadata.destroy:
        raise ConfigError("destroy() needs a plan created with destroy=True")
    tracked = _tracked_instances(config)
    result = engine.apply(plan_obj, progress=progress)
    engine.verify_destroyed(tracked)
    return result


def _tracked_instances(config: Config) -> list[ResourceInstance]:
    state = State.load_or_create(config.state_path, config.provider.subscription_id)
    return list(state.resources.values())


def verify_destroyed(config: Config, instances: list[ResourceInstance]) -> None:
    """Check that none of *instances* still exists in Azure."""
    _engine_from_config(config).verify_destroyed(instances)


def import_resource(config: Config, address: str, resource_id: str) -> ResourceInstance:
    """Bring an existing variable under management at *address*."""
    engine = _engine_from_config(config)
    return engine.import_resource(address, resource_id)


def refresh(config: Config) -> tuple[list[ResourceChange], State]:
    """Refresh state from Azure (not persisted).

    Returns the list of drift changes and the new state. Call
    :func:`save_state` to persist the returned state to disk.
    """
    engine = _engine_from_config(config)
    old_state = State.load_or_create(config.state_path, config.provider.subscription_id)
    new_state = engine.refresh()
    return _build_drift_changes(old_state, new_state), new_state


def save_state(config: Config, state: State) -> None:
    """Persist state to disk."""
    with StateLock(config.state_path):
        state.serial += 1
        state.save(config.state_path)


def drift(config: Config) -> list[ResourceChange]:
    """Detect drift between state file and Azure."""
    changes, _ = refresh(config)
    return changes


def _build_drift_changes(old_state: State, new_state: State) -> list[ResourceChange]:
    """Compare old vs new state and return a list of drift changes."""
    old_attrs = {addr: inst.attributes.copy() for addr, inst in old_state.resources.items()}
    changes: list[ResourceChange] = []
    for addr, inst in sorted(new_state.resources.items()):
        old = old_attrs.get(addr)
        if old is None or old == inst.attributes:
            continue
        all_keys = set(old) | set(inst.attributes)
        diff = {
            k: {"from": old.get(k), "to": inst.attributes.get(k)}
            for k in sorted(all_keys)
            if old.get(k) != inst.attributes.get(k)
        }
        changes.append(
            ResourceChange(
                address=addr,
                resource_type=inst.resource_type,
                action=Action.UPDATE,
                prior=old,
                planned=dict(inst.attributes),
                diff=diff,
            )
        )
    for addr in sorted(set(old_attrs) - set(new_state.resources)):
        changes.append(
            ResourceChange(
                address=addr,
                resource_type=old_state.resources[addr].resource_type,
                action=Action.DELETE,
                prior=old_attrs[addr],
            )
        )
    return changes
