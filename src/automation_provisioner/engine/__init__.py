"""Plan and apply engine for automation variables."""

from automation_provisioner.engine.engine import AutomationEngine, ProgressCallback
from automation_provisioner.engine.errors import (
    ApplyCanceled,
    ApplyError,
    DuplicateAddressError,
    EngineError,
    ResourceImportError,
    ResourceStillExistsError,
    StalePlanError,
    StateLockError,
    StateSubscriptionMismatchError,
    UnknownResourceTypeError,
    ValidationError,
)
from automation_provisioner.engine.handlers import EngineContext, ResourceHandler
from automation_provisioner.engine.reconciler import VariableReconciler, VariableState
from automation_provisioner.engine.registry import ResourceTypeRegistration, ResourceTypeRegistry
from automation_provisioner.engine.types import (
    Action,
    ApplyResult,
    Plan,
    PlanMetadata,
    ResourceChange,
)
from automation_provisioner.engine.variable_handler import AutomationVariableHandler

__all__ = [
    "Action",
    "ApplyCanceled",
    "ApplyError",
    "ApplyResult",
    "AutomationEngine",
    "AutomationVariableHandler",
    "DuplicateAddressError",
    "EngineContext",
    "EngineError",
    "Plan",
    "PlanMetadata",
    "ProgressCallback",
    "ResourceChange",
    "ResourceHandler",
    "ResourceImportError",
    "ResourceStillExistsError",
    "ResourceTypeRegistration",
    "ResourceTypeRegistry",
    "StalePlanError",
    "StateLockError",
    "StateSubscriptionMismatchError",
    "UnknownResourceTypeError",
    "ValidationError",
    "VariableReconciler",
    "VariableState",
]
