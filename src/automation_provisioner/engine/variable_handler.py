"""Variable handler implementing CRUD on top of ``VariableReconciler``."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from automation_provisioner.core.codec import codec_for
from automation_provisioner.core.errors import VariableError
from automation_provisioner.core.identity import VariableIdentity, parse_canonical
from automation_provisioner.engine.handlers import ResourceHandler
from automation_provisioner.engine.reconciler import VariableReconciler

if TYPE_CHECKING:
    from automation_provisioner.core.state import ResourceInstance
    from automation_provisioner.engine.handlers import EngineContext
    from automation_provisioner.engine.reconciler import VariableState
    from automation_provisioner.resources.variable import AutomationVariableResource

logger = logging.getLogger(__name__)


class AutomationVariableHandler(ResourceHandler["AutomationVariableResource"]):
    """CRUD handler for one kind of automation variable.

    Encrypted variables never return their value, so the stored ``value`` is
    the last one written (or ``None`` after an import).
    """

    def __init__(self, model: type[AutomationVariableResource]) -> None:
        self._model = model
        self._kind = model.value_kind

    def _reconciler(self, ctx: EngineContext) -> VariableReconciler:
        return VariableReconciler(ctx.provider.variables, ctx.subscription_id)

    def _attrs(self, state: VariableState, value: Any) -> dict[str, Any]:
        """Stored attributes, shaped like the resource's model_dump output."""
        return {
            "id": state.resource_id,
            "type": self._kind.value,
            "name": state.identity.name,
            "resource_group_name": state.identity.resource_group,
            "automation_account_name": state.identity.account_name,
            "description": state.description,
            "encrypted": state.encrypted,
            "value": state.value if not state.encrypted else value,
        }

    def _identity(self, ctx: EngineContext, prior: ResourceInstance) -> VariableIdentity:
        if prior.resource_id:
            return parse_canonical(prior.resource_id)
        attrs = prior.attributes
        return VariableIdentity(
            subscription_id=ctx.subscription_id,
            resource_group=attrs["resource_group_name"],
            account_name=attrs["automation_account_name"],
            name=prior.name,
        )

    def validate(self, ctx: EngineContext, desired: AutomationVariableResource) -> list[str]:
        errors: list[str] = []
        try:
            desired.identity(ctx.subscription_id)
        except VariableError as e:
            errors.append(f"{desired.address}: {e}")
        try:
            codec_for(self._kind).encode(desired.value)
        except (VariableError, TypeError, ValueError) as e:
            errors.append(f"{desired.address}: {e}")
        return errors

    def create(self, ctx: EngineContext, desired: AutomationVariableResource) -> dict[str, Any]:
        state = self._reconciler(ctx).create_or_update(
            desired, import_guard=ctx.require_import, **ctx.call_options()
        )
        return self._attrs(state, desired.value)

    def read(self, ctx: EngineContext, prior: ResourceInstance) -> dict[str, Any] | None:
        identity = self._identity(ctx, prior)
        state = self._reconciler(ctx).read(identity, self._kind, **ctx.call_options())
        if state is None:
            return None
        return self._attrs(state, prior.attributes.get("value"))

    def update(
        self, ctx: EngineContext, desired: AutomationVariableResource, prior: ResourceInstance
    ) -> dict[str, Any]:
        _ = prior
        state = self._reconciler(ctx).create_or_update(
            desired, import_guard=False, **ctx.call_options()
        )
        return self._attrs(state, desired.value)

    def delete(self, ctx: EngineContext, prior: ResourceInstance) -> None:
        identity = self._identity(ctx, prior)
        self._reconciler(ctx).delete(identity, **ctx.call_options())

    def import_state(self, ctx: EngineContext, resource_id: str) -> dict[str, Any] | None:
        state = self._reconciler(ctx).import_(resource_id, self._kind, **ctx.call_options())
        if state is None:
            return None
        logger.info("Imported %s as %s", resource_id, self._model.resource_type)
        return self._attrs(state, None)
