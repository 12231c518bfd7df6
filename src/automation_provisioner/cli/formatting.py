"""Terminal rendering of plans, apply results and drift.

Plans print one Terraform-style block per variable. Encrypted values never
reach the terminal: every ``value`` of an encrypted variable is masked.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, NamedTuple

import typer

from automation_provisioner.engine.types import Action

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from automation_provisioner.engine.types import Plan, ResourceChange


class ActionLook(NamedTuple):
    fg: str
    symbol: str
    described: str
    progress_verb: str
    done_verb: str


_LOOKS: dict[Action, ActionLook] = {
    Action.CREATE: ActionLook("green", "+", "will be created", "Creating", "Creation complete"),
    Action.UPDATE: ActionLook(
        "yellow", "~", "will be updated in-place", "Updating", "Update complete"
    ),
    Action.REPLACE: ActionLook(
        "magenta", "-/+", "must be replaced", "Replacing", "Replacement complete"
    ),
    Action.DELETE: ActionLook("red", "-", "will be destroyed", "Destroying", "Destroy complete"),
    Action.NOOP: ActionLook("bright_black", " ", "is up-to-date", "", ""),
}

_SENSITIVE = "(sensitive value)"
_NO_CHANGES = "No changes. Variables are up-to-date."


def look(action: Action) -> ActionLook:
    """Color, symbol and wording used for *action*."""
    return _LOOKS[action]


def styler(color: bool) -> Callable[..., str]:
    """``typer.style`` when *color* is set, otherwise a function returning the text as is."""
    if color:
        return typer.style
    return lambda text, **_kw: text


def has_actionable_changes(plan: Plan) -> bool:
    return any(c.action != Action.NOOP for c in plan.changes)


def _literal(value: Any) -> str:
    """Write *value* the way it would appear in the YAML configuration."""
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, str):
        return f'"{value}"'
    return "null" if value is None else str(value)


def _aligned(pairs: dict[str, str]) -> Iterable[tuple[str, str]]:
    width = max((len(k) for k in pairs), default=0)
    return ((k.ljust(width), v) for k, v in pairs.items())


def _attribute_lines(change: ResourceChange) -> dict[str, str]:
    """Attribute name to rendered value (or ``old -> new``) for one change.

    Creates show every planned attribute, updates and replaces only the diff.
    """
    attrs = change.planned or change.prior or {}
    hidden = bool(attrs.get("encrypted"))

    def show(key: str, value: Any) -> str:
        return _SENSITIVE if hidden and key == "value" else _literal(value)

    if change.action == Action.CREATE:
        return {k: show(k, v) for k, v in (change.planned or {}).items()}
    if change.action not in (Action.UPDATE, Action.REPLACE):
        return {}
    diff = change.diff or {}
    rendered = {k: f"{show(k, d['from'])} -> {show(k, d['to'])}" for k, d in diff.items()}
    for forcing in change.replace_fields:
        rendered[forcing] += " # forces replacement"
    return rendered


def format_change(change: ResourceChange, *, color: bool = True) -> str:
    """One change as a ``resource "<type>" "<name>" { ... }`` block."""
    paint = styler(color)
    lk = look(change.action)
    _, _, name = change.address.partition(".")

    title = f"  # {change.address} {lk.described}"
    if change.supersedes:
        title += f" in place of {change.supersedes}, which is destroyed first"
    out = [
        paint(title, fg=lk.fg, bold=True),
        paint(
            f'  {lk.symbol} resource "{change.resource_type}" "{name or change.address}" {{',
            fg=lk.fg,
        ),
    ]
    out += [
        paint(f"      {lk.symbol} {k} = {v}", fg=lk.fg)
        for k, v in _aligned(_attribute_lines(change))
    ]
    out.append(paint("    }", fg=lk.fg))
    return "\n".join(out)


def format_changes(changes: list[ResourceChange], *, color: bool = True) -> str:
    """Blocks for every change that does something, or a no-changes line."""
    pending = [c for c in changes if c.action != Action.NOOP]
    if not pending:
        return _NO_CHANGES
    return "\n\n".join(format_change(c, color=color) for c in pending)


def format_plan(plan: Plan, *, color: bool = True) -> str:
    return format_changes(plan.changes, color=color)


def _counted(counts: Iterable[tuple[int, str, str]], *, color: bool) -> str:
    paint = styler(color)
    return ", ".join(paint(f"{n} {word}", fg=fg) if n else f"{n} {word}" for n, word, fg in counts)


def _add_change_destroy(summary: dict[str, int]) -> tuple[int, int, int]:
    # A replace deletes one variable and creates another.
    replaced = summary.get("replace", 0)
    return (
        summary.get("create", 0) + replaced,
        summary.get("update", 0),
        summary.get("delete", 0) + replaced,
    )


def format_plan_summary(
    summary: dict[str, int], *, color: bool = True, header: str = "Plan"
) -> str:
    """``Plan: 2 to add, 1 to change, 0 to destroy.``"""
    add, change, destroy = _add_change_destroy(summary)
    counts = (
        (add, "to add", "green"),
        (change, "to change", "yellow"),
        (destroy, "to destroy", "red"),
    )
    return f"{header}: {_counted(counts, color=color)}."


def format_apply_summary(summary: dict[str, int], *, color: bool = True) -> str:
    """``Apply complete! Resources: 2 added, 0 changed, 0 destroyed.``"""
    add, change, destroy = _add_change_destroy(summary)
    counts = (
        (add, "added", "green"),
        (change, "changed", "yellow"),
        (destroy, "destroyed", "red"),
    )
    done = styler(color)("Apply complete!", fg="green", bold=True)
    return f"{done} Resources: {_counted(counts, color=color)}."


def format_drift_summary(
    changes: list[ResourceChange], *, color: bool = True, header: str = "Drift"
) -> str:
    """``Drift: 1 changed, 0 deleted.``"""
    changed = sum(1 for c in changes if c.action == Action.UPDATE)
    deleted = sum(1 for c in changes if c.action == Action.DELETE)
    counts = ((changed, "changed", "yellow"), (deleted, "deleted", "red"))
    return f"{header}: {_counted(counts, color=color)}."


def format_drift(changes: list[ResourceChange], *, color: bool = True) -> str:
    """Render what changed in Azure since the state file was written.

    Variables deleted remotely get one line each; changed ones list the
    differing attributes, with encrypted values masked.
    """
    paint = styler(color)
    out: list[str] = []
    for c in changes:
        if c.action == Action.DELETE:
            out.append(paint(f"  - {c.address} was deleted in Azure", fg="red"))
            continue
        out.append(paint(f"  ~ {c.address} was changed in Azure", fg="yellow", bold=True))
        out += [
            paint(f"      {k} = {v}", fg="yellow") for k, v in _aligned(_attribute_lines(c))
        ]
    return "\n".join(out)


def format_encrypted_note(count: int) -> str | None:
    """Say how many tracked variables could only be checked for existence and metadata."""
    if not count:
        return None
    noun = "variable was" if count == 1 else "variables were"
    return (
        f"Note: {count} encrypted {noun} checked for existence and metadata only; "
        "Azure never returns encrypted values."
    )
