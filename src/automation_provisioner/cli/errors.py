"""Turn exceptions raised by commands into stderr lines and an exit code.

Each known exception type has a renderer returning the lines to print; the
first renderer whose type matches wins, so subclasses come before their bases.
Every error exits with code 1 and no traceback.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import typer
from azure.core.exceptions import AzureError, ClientAuthenticationError

from automation_provisioner.config.loader import ConfigError
from automation_provisioner.core.errors import (
    AlreadyExistsError,
    DeleteFailedError,
    ValueDecodeError,
    VariableError,
)
from automation_provisioner.engine.errors import (
    ApplyCanceled,
    ApplyError,
    ResourceImportError,
    ResourceStillExistsError,
    StalePlanError,
    StateLockError,
    StateSubscriptionMismatchError,
    ValidationError,
)

_PARTIAL_VERBS = (
    ("create", "added"),
    ("update", "changed"),
    ("replace", "replaced"),
    ("delete", "destroyed"),
)

_ADOPT_HINT = "  Or set provider.require_import to false to adopt existing variables."
_DELETE_HINT = "  The variable is still tracked; apply again once the cause is fixed."


def _decode_hint(exc: ValueDecodeError) -> list[str]:
    if exc.actual in ("int", "bool", "datetime", "string"):
        return [f"  Declare the variable with type: {exc.actual}, or overwrite it in Azure."]
    return ["  The stored value matches no variable type; overwrite it in Azure."]


def _cause_hints(exc: BaseException | None) -> list[str]:
    if isinstance(exc, AlreadyExistsError):
        return [_ADOPT_HINT]
    if isinstance(exc, ValueDecodeError):
        return _decode_hint(exc)
    if isinstance(exc, DeleteFailedError):
        return [_DELETE_HINT]
    return []


def _apply_failed(exc: ApplyError) -> list[str]:
    lines = [str(exc), *_cause_hints(exc.__cause__)]
    summary = exc.result.summary()
    done = [f"{summary[action]} {verb}" for action, verb in _PARTIAL_VERBS if summary[action]]
    if done:
        lines.append(f"  Partial result: {', '.join(done)}.")
    return lines


def _validation_failed(exc: ValidationError) -> list[str]:
    return ["Validation failed:", *(f"  - {e}" for e in exc.errors)]


def _still_exists(exc: ResourceStillExistsError) -> list[str]:
    return [
        f"Destroy incomplete: {exc}",
        "  They are no longer tracked; delete them in Azure or import them again.",
    ]


_RENDERERS: list[tuple[type[Exception], Callable[[Any], list[str]]]] = [
    (ConfigError, lambda e: [f"Configuration error: {e}"]),
    (ValidationError, _validation_failed),
    (StalePlanError, lambda e: [f"Plan is stale: {e}"]),
    (StateSubscriptionMismatchError, lambda e: [f"State mismatch: {e}"]),
    (StateLockError, lambda e: [f"State locked: {e}"]),
    (ApplyError, _apply_failed),
    (ApplyCanceled, lambda e: ["Apply canceled."]),
    (ResourceImportError, lambda e: [f"Import failed: {e}"]),
    (ResourceStillExistsError, _still_exists),
    (AlreadyExistsError, lambda e: [f"Variable already exists: {e}", _ADOPT_HINT]),
    (ValueDecodeError, lambda e: [f"Variable value mismatch: {e}", *_decode_hint(e)]),
    (DeleteFailedError, lambda e: [f"Delete failed: {e}", _DELETE_HINT]),
    (VariableError, lambda e: [f"Variable error: {e}"]),
    (ClientAuthenticationError, lambda e: [f"Azure authentication failed: {e.message}"]),
    (AzureError, lambda e: [f"Azure error: {e.message}"]),
]


def error_lines(exc: Exception) -> list[str]:
    """Lines describing *exc* for the terminal."""
    for exc_type, render in _RENDERERS:
        if isinstance(exc, exc_type):
            return render(exc)
    return [f"Error: {exc}"]


def handle_error(exc: Exception, *, color: bool = True) -> int:
    """Print *exc* to stderr and return the exit code."""
    fg = typer.colors.RED if color else None
    for line in error_lines(exc):
        typer.echo(typer.style(line, fg=fg), err=True)
    return 1
