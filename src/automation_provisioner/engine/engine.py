"""Plan/apply engine."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, Literal

from automation_provisioner import __version__
from automation_provisioner.core.state import (
    ResourceInstance,
    State,
    compute_attributes_hash,
    compute_state_digest,
)
from automation_provisioner.engine.errors import (
    ApplyCanceled,
    ApplyError,
    DuplicateAddressError,
    ResourceImportError,
    ResourceStillExistsError,
    StalePlanError,
    StateSubscriptionMismatchError,
    ValidationError,
)
from automation_provisioner.engine.handlers import EngineContext
from automation_provisioner.engine.lock import StateLock
from automation_provisioner.engine.operations import (
    CreateOperation,
    DeleteOperation,
    ReplaceOperation,
    UpdateOperation,
)
from automation_provisioner.engine.types import (
    Action,
    ApplyResult,
    Plan,
    PlanMetadata,
    RemoteKey,
    ResourceChange,
    remote_key,
)
from automation_provisioner.resources.markers import collect_force_new

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[ResourceChange, Literal["start", "done"]], None]

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence
    from pathlib import Path

    from automation_provisioner.core import AutomationProvider
    from automation_provisioner.engine.operations import Operation
    from automation_provisioner.engine.registry import ResourceTypeRegistry
    from automation_provisioner.resources.base import Resource

_OPERATIONS: dict[Action, Callable[[ResourceChange], Operation]] = {
    Action.CREATE: CreateOperation,
    Action.UPDATE: UpdateOperation,
    Action.REPLACE: ReplaceOperation,
    Action.DELETE: DeleteOperation,
}


def _desired_attrs(resource: Resource) -> dict[str, Any]:
    return resource.model_dump(mode="json", exclude={"address"})


class AutomationEngine:
    """Terraform-like plan/apply engine for one subscription's variables."""

    def __init__(
        self,
        *,
        provider: AutomationProvider,
        state_path: Path,
        registry: ResourceTypeRegistry,
        require_import: bool = False,
        timeout: float | None = None,
        lock_timeout: float | None = 30.0,
    ) -> None:
        self._provider = provider
        self._state_path = state_path
        self._registry = registry
        self._require_import = require_import
        self._timeout = timeout
        self._lock_timeout = lock_timeout

    @property
    def subscription_id(self) -> str:
        return self._provider.subscription_id

    @property
    def state_path(self) -> Path:
        return self._state_path

    def _ctx(self) -> EngineContext:
        return EngineContext(
            provider=self._provider,
            subscription_id=self.subscription_id,
            require_import=self._require_import,
            timeout=self._timeout,
        )

    def _lock(self) -> StateLock:
        return StateLock(self._state_path, timeout=self._lock_timeout)

    def _load_state(self) -> State:
        state = State.load_or_create(self._state_path, subscription_id=self.subscription_id)
        if state.subscription_id != self.subscription_id:
            raise StateSubscriptionMismatchError(self.subscription_id, state.subscription_id)
        logger.debug("State loaded: serial=%d, %d resources", state.serial, len(state.resources))
        return state

    def _refresh_state_in_place(self, state: State) -> bool:
        logger.debug("Refreshing state from Azure")
        changed = False
        ctx = self._ctx()

        for address, inst in list(state.resources.items()):
            handler = self._registry.get(inst.resource_type).handler
            attrs = handler.read(ctx, inst)
            if attrs is None:
                logger.info("%s no longer exists - removing from state", address)
                del state.resources[address]
                changed = True
                continue

            if compute_attributes_hash(attrs) != inst.attributes_hash:
                inst.set_attributes(attrs)
                changed = True

        logger.debug("State refreshed, changed=%s", changed)
        return changed

    def refresh(self, *, persist: bool = False) -> State:
        """Refresh state from Azure. Writes it back only when *persist* is set."""
        with self._lock():
            state = self._load_state()
            changed = self._refresh_state_in_place(state)
            if changed and persist:
                state.serial += 1
                state.save(self._state_path)
            return state

    def _classify_change(self, resource: Resource, state: State) -> ResourceChange:
        """Classify a single resource as CREATE, UPDATE, REPLACE or NOOP."""
        addr = resource.address
        planned = _desired_attrs(resource)

        prior_inst = state.resources.get(addr)
        if prior_inst is None:
            logger.debug("Classified %s as create", addr)
            return ResourceChange(
                address=addr,
                resource_type=resource.resource_type,
                action=Action.CREATE,
                desired=planned,
                planned=planned,
            )

        prior = dict(prior_inst.attributes)
        diff = {
            k: {"from": prior.get(k), "to": v} for k, v in planned.items() if prior.get(k) != v
        }
        replace_fields = sorted(collect_force_new(resource) & diff.keys())

        if replace_fields:
            action = Action.REPLACE
        elif diff:
            action = Action.UPDATE
        else:
            action = Action.NOOP
        logger.debug("Classified %s as %s", addr, action.value)
        return ResourceChange(
            address=addr,
            resource_type=resource.resource_type,
            action=action,
            desired=planned,
            prior=prior,
            planned=planned,
            diff=diff or None,
            replace_fields=replace_fields,
        )

    def _plan_deletes(self, state: State, addrs: Iterable[str]) -> list[ResourceChange]:
        changes: list[ResourceChange] = []
        for addr in sorted(addrs, reverse=True):
            inst = state.resources[addr]
            self._registry.get(inst.resource_type)  # fail early if unknown
            changes.append(
                ResourceChange(
                    address=addr,
                    resource_type=inst.resource_type,
                    action=Action.DELETE,
                    prior=dict(inst.attributes),
                )
            )
        return changes

    def _validate(self, desired: Iterable[Resource]) -> None:
        ctx = self._ctx()
        errors: list[str] = []
        owners: dict[RemoteKey, str] = {}
        for r in desired:
            errors.extend(self._registry.get(r.resource_type).handler.validate(ctx, r))
            key = remote_key(_desired_attrs(r))
            if key in owners:
                errors.append(f"{r.address}: same remote variable as {owners[key]}")
            else:
                owners[key] = r.address
        if errors:
            raise ValidationError(errors)

    @staticmethod
    def _link_takeovers(changes: list[ResourceChange]) -> None:
        """Point writes at the tracked address whose remote variable they reuse."""
        vacated = {c.vacates: c.address for c in changes if c.vacates is not None}
        for c in changes:
            if c.target is None:
                continue
            owner = vacated.get(c.target)
            if owner is not None and owner != c.address:
                c.supersedes = owner
                logger.info("%s takes over the remote variable of %s", c.address, owner)

    def plan(
        self, resources: Sequence[Resource], *, destroy: bool = False, refresh: bool = True
    ) -> Plan:
        logger.info(
            "Planning %d resources (destroy=%s, refresh=%s)", len(resources), destroy, refresh
        )
        with self._lock():
            state = self._load_state()

            if refresh:
                changed = self._refresh_state_in_place(state)
                if changed:
                    state.serial += 1
                    state.save(self._state_path)

            desired_by_addr: dict[str, Resource] = {}
            for r in resources:
                if r.address in desired_by_addr:
                    raise DuplicateAddressError(r.address)
                self._registry.get(r.resource_type)
                desired_by_addr[r.address] = r

            if destroy:
                changes = self._plan_deletes(state, state.resources)
            else:
                self._validate(desired_by_addr[addr] for addr in sorted(desired_by_addr))
                changes = [
                    self._classify_change(desired_by_addr[addr], state)
                    for addr in sorted(desired_by_addr)
                ]
                orphaned = set(state.resources) - set(desired_by_addr)
                changes.extend(self._plan_deletes(state, orphaned))
                self._link_takeovers(changes)

            metadata = PlanMetadata(
                subscription_id=self.subscription_id,
                created_at=datetime.now(UTC),
                destroy=destroy,
                refresh=refresh,
                state_lineage=state.lineage,
                state_serial=state.serial,
                state_digest=compute_state_digest(state),
                engine_version=__version__,
            )
            return Plan(metadata=metadata, changes=changes)

    def _load_state_for_apply(self, plan: Plan) -> State:
        if self._state_path.exists():
            return self._load_state()
        # No state yet: bootstrap from the plan metadata (saved-plan semantics).
        return State(
            subscription_id=self.subscription_id,
            lineage=plan.metadata.state_lineage,
            serial=plan.metadata.state_serial,
        )

    def apply(self, plan: Plan, *, progress: ProgressCallback | None = None) -> ApplyResult:
        with self._lock():
            state = self._load_state_for_apply(plan)

            if state.lineage != plan.metadata.state_lineage:
                raise StalePlanError("State lineage changed; re-run plan")
            if state.serial != plan.metadata.state_serial:
                raise StalePlanError("State serial changed; re-run plan")
            if compute_state_digest(state) != plan.metadata.state_digest:
                raise StalePlanError("State digest changed; re-run plan")

            ctx = self._ctx()
            applied: list[ResourceChange] = []
            ordered = plan.execution_order()
            logger.info("Applying %d changes", len(ordered))

            change: ResourceChange | None = None
            try:
                for change in ordered:
                    logger.debug("Applying %s: %s", change.address, change.action.value)
                    if progress:
                        progress(change, "start")
                    _OPERATIONS[change.action](change).run(
                        ctx=ctx, state=state, registry=self._registry
                    )
                    if progress:
                        progress(change, "done")

                    state.serial += 1
                    state.save(self._state_path)
                    applied.append(change)
            except KeyboardInterrupt as e:  # pragma: no cover
                raise ApplyCanceled("Apply canceled") from e
            except Exception as e:
                address = change.address if change is not None else "<plan>"
                raise ApplyError(applied=applied, address=address, message=str(e)) from e

            return ApplyResult(applied=applied)

    def import_resource(self, address: str, resource_id: str) -> ResourceInstance:
        """Track an existing remote variable at *address* without creating it.

        Raises:
            ResourceImportError: The address is already tracked, the object
                does not exist, or its ID does not match the address name.
        """
        reg, name = self._registry.resolve_address(address)

        with self._lock():
            state = self._load_state()
            if address in state.resources:
                raise ResourceImportError(
                    f"{address} is already managed (ID {state.resources[address].resource_id}); "
                    "remove it from state before importing again"
                )

            attrs = reg.handler.import_state(self._ctx(), resource_id)
            if attrs is None:
                raise ResourceImportError(
                    f"Cannot import non-existent remote object {resource_id!r}"
                )
            if attrs["name"] != name:
                raise ResourceImportError(
                    f"{resource_id!r} is named {attrs['name']!r}, which does not match {address}"
                )

            inst = ResourceInstance(address=address, resource_type=reg.resource_type, name=name)
            inst.set_attributes(attrs)
            state.resources[address] = inst
            state.serial += 1
            state.save(self._state_path)
            logger.info("Imported %s into %s", resource_id, address)
            return inst

    def verify_destroyed(self, instances: Iterable[ResourceInstance]) -> None:
        """Check that none of *instances* still exists remotely.

        Every instance is checked; the error lists all survivors.
        """
        ctx = self._ctx()
        remaining = [
            inst.address
            for inst in instances
            if self._registry.get(inst.resource_type).handler.read(ctx, inst) is not None
        ]
        if remaining:
            raise ResourceStillExistsError(sorted(remaining))
