"""CLI commands.

Every command loads the config, calls the matching function of
``automation_provisioner.config`` and renders the outcome. Library errors go
through :func:`handle_error`.
"""

from __future__ import annotations

import os
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Annotated, Literal

import typer

from automation_provisioner.cli import app
from automation_provisioner.cli.errors import handle_error

if TYPE_CHECKING:
    from collections.abc import Iterator

    from automation_provisioner.config.schema import Config
    from automation_provisioner.core.state import State
    from automation_provisioner.engine.types import ApplyResult, Plan, ResourceChange

DEFAULT_CONFIG = Path("automation-provisioner.yaml")

ConfigPath = Annotated[
    Path,
    typer.Option("--config", "-c", help="Path to the configuration file."),
]
NoColor = Annotated[bool, typer.Option("--no-color", help="Disable colored output.")]
AutoApprove = Annotated[bool, typer.Option("--auto-approve", help="Skip interactive approval.")]
NoRefresh = Annotated[
    bool,
    typer.Option("--no-refresh", help="Plan against the state file without reading Azure."),
]


def _use_color(no_color: bool) -> bool:
    return not (no_color or os.environ.get("NO_COLOR"))


@contextmanager
def _reported(color: bool) -> Iterator[None]:
    """Turn any library error raised inside the block into a clean exit."""
    try:
        yield
    except Exception as exc:
        raise typer.Exit(handle_error(exc, color=color)) from exc


def _approve(question: str, *, canceled: str) -> None:
    try:
        typer.confirm(question, abort=True)
    except typer.Abort as e:
        typer.echo(canceled, err=True)
        raise typer.Exit(1) from e


def _plural(count: int, noun: str) -> str:
    return f"{count} {noun}{'' if count == 1 else 's'}"


# ---------------------------------------------------------------------------
# Plan / apply / destroy
# ---------------------------------------------------------------------------


def _echo_plan(plan_obj: Plan, *, color: bool) -> None:
    from automation_provisioner.cli.formatting import format_plan, format_plan_summary

    typer.echo(format_plan(plan_obj, color=color))
    typer.echo()
    typer.echo(format_plan_summary(plan_obj.summary(), color=color))


def _run_with_progress(
    plan_obj: Plan, cfg: Config, *, color: bool, destroy: bool
) -> ApplyResult:
    """Apply *plan_obj* behind a Rich progress bar, one status line per variable."""
    from rich.console import Console
    from rich.progress import BarColumn, Progress, SpinnerColumn, TaskProgressColumn, TextColumn

    from automation_provisioner import config as api
    from automation_provisioner.cli.formatting import look

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        console=Console(no_color=not color),
    ) as progress:
        task = progress.add_task("Applying", total=len(plan_obj.execution_order()))

        def on_progress(change: ResourceChange, event: Literal["start", "done"]) -> None:
            style = look(change.action)
            if event == "start":
                progress.update(task, description=f"{change.address}: {style.progress_verb}...")
                return
            progress.console.print(f"  {change.address}: {style.done_verb}")
            progress.advance(task)

        if destroy:
            return api.destroy(cfg, plan_obj, progress=on_progress)
        return api.apply(plan_obj, cfg, progress=on_progress)


def _approve_and_run(
    plan_obj: Plan, cfg: Config, *, color: bool, auto_approve: bool, destroy: bool = False
) -> None:
    from automation_provisioner.cli.formatting import (
        format_apply_summary,
        has_actionable_changes,
    )

    if not has_actionable_changes(plan_obj):
        typer.echo(
            "No variables to destroy." if destroy else "No changes. Variables are up-to-date."
        )
        return

    _echo_plan(plan_obj, color=color)
    typer.echo()
    if not auto_approve:
        question = (
            "Do you really want to destroy all variables?"
            if destroy
            else "Do you want to apply these changes?"
        )
        _approve(question, canceled="Apply canceled.")

    with _reported(color):
        result = _run_with_progress(plan_obj, cfg, color=color, destroy=destroy)

    typer.echo()
    typer.echo(format_apply_summary(result.summary(), color=color))


@app.command()
def plan(
    config: ConfigPath = DEFAULT_CONFIG,
    out: Annotated[
        Path | None,
        typer.Option("--out", "-o", help="Save the plan for a later `apply PLAN_FILE`."),
    ] = None,
    destroy: Annotated[
        bool,
        typer.Option("--destroy", help="Plan the deletion of every tracked variable."),
    ] = False,
    no_color: NoColor = False,
    no_refresh: NoRefresh = False,
) -> None:
    """Show what apply would change. Exits 2 when changes are pending."""
    from automation_provisioner import config as api
    from automation_provisioner.cli.formatting import has_actionable_changes

    color = _use_color(no_color)
    with _reported(color):
        cfg = api.load(config)
        plan_obj = api.plan(cfg, destroy=destroy, refresh=not no_refresh)

    _echo_plan(plan_obj, color=color)
    if out is not None:
        plan_obj.save(out)
        typer.echo(f"\nPlan saved to {out}")

    if has_actionable_changes(plan_obj):
        raise typer.Exit(2)


@app.command(name="apply")
def apply_cmd(
    plan_file: Annotated[
        Path | None,
        typer.Argument(help="Plan saved by `plan --out`; planned afresh when omitted."),
    ] = None,
    config: ConfigPath = DEFAULT_CONFIG,
    auto_approve: AutoApprove = False,
    no_color: NoColor = False,
    no_refresh: NoRefresh = False,
) -> None:
    """Create, update and delete variables to match the configuration."""
    from automation_provisioner import config as api
    from automation_provisioner.engine.types import Plan

    color = _use_color(no_color)
    with _reported(color):
        cfg = api.load(config)
        if plan_file is not None:
            plan_obj = Plan.load(plan_file)
        else:
            plan_obj = api.plan(cfg, refresh=not no_refresh)

    _approve_and_run(plan_obj, cfg, color=color, auto_approve=auto_approve)


@app.command()
def destroy(
    config: ConfigPath = DEFAULT_CONFIG,
    auto_approve: AutoApprove = False,
    no_color: NoColor = False,
) -> None:
    """Delete every tracked variable and check that none survived."""
    from automation_provisioner import config as api

    color = _use_color(no_color)
    with _reported(color):
        cfg = api.load(config)
        plan_obj = api.plan(cfg, destroy=True)

    _approve_and_run(plan_obj, cfg, color=color, auto_approve=auto_approve, destroy=True)


# ---------------------------------------------------------------------------
# Refresh / drift
# ---------------------------------------------------------------------------


def _encrypted_count(state: State) -> int:
    return sum(1 for inst in state.resources.values() if inst.attributes.get("encrypted"))


def _echo_drift(
    changes: list[ResourceChange], state: State, *, color: bool, header: str
) -> None:
    """Print remote changes, then what could not be compared for encrypted variables."""
    from automation_provisioner.cli.formatting import (
        format_drift,
        format_drift_summary,
        format_encrypted_note,
    )

    if changes:
        typer.echo(format_drift(changes, color=color))
        typer.echo()
        typer.echo(format_drift_summary(changes, color=color, header=header))
    note = format_encrypted_note(_encrypted_count(state))
    if note:
        typer.echo(note)


@app.command(name="refresh")
def refresh_cmd(
    config: ConfigPath = DEFAULT_CONFIG,
    auto_approve: AutoApprove = False,
    no_color: NoColor = False,
) -> None:
    """Re-read every tracked variable from Azure and update the state file."""
    from automation_provisioner import config as api

    color = _use_color(no_color)
    with _reported(color):
        cfg = api.load(config)
        changes, state = api.refresh(cfg)

    if not changes:
        typer.echo("No changes. State is up-to-date with Azure.")
    _echo_drift(changes, state, color=color, header="Refresh")
    if not changes:
        return

    typer.echo()
    if not auto_approve:
        _approve("Do you want to update the state file?", canceled="Refresh canceled.")

    with _reported(color):
        api.save_state(cfg, state)
    typer.echo(f"State refreshed. {_plural(len(state.resources), 'variable')} tracked.")


@app.command()
def drift(
    config: ConfigPath = DEFAULT_CONFIG,
    no_color: NoColor = False,
) -> None:
    """Show how Azure differs from the state file, without changing either."""
    from automation_provisioner import config as api

    color = _use_color(no_color)
    with _reported(color):
        cfg = api.load(config)
        changes, state = api.refresh(cfg)

    if changes:
        typer.echo("Drift detected:\n")
    else:
        typer.echo("No drift detected. State is up-to-date with Azure.")
    _echo_drift(changes, state, color=color, header="Drift")


# ---------------------------------------------------------------------------
# Import / validate
# ---------------------------------------------------------------------------


@app.command(name="import")
def import_cmd(
    address: Annotated[
        str,
        typer.Argument(help="Address to track the variable at, e.g. automation_int_variable.x"),
    ],
    resource_id: Annotated[
        str,
        typer.Argument(help="Canonical Azure resource ID of the existing variable."),
    ],
    config: ConfigPath = DEFAULT_CONFIG,
    no_color: NoColor = False,
) -> None:
    """Track an existing variable without writing to it."""
    from automation_provisioner import config as api
    from automation_provisioner.cli.formatting import styler

    color = _use_color(no_color)
    with _reported(color):
        cfg = api.load(config)
        inst = api.import_resource(cfg, address, resource_id)

    style = styler(color)
    typer.echo(style(f"Imported {inst.resource_id} as {inst.address}.", fg="green"))
    if inst.attributes.get("encrypted"):
        typer.echo(
            "The variable is encrypted, so its value is unknown until the next apply writes it."
        )


@app.command()
def validate(
    config: ConfigPath = DEFAULT_CONFIG,
    no_color: NoColor = False,
) -> None:
    """Check the configuration and every variable value without calling Azure."""
    from automation_provisioner import config as api
    from automation_provisioner.cli.formatting import styler

    color = _use_color(no_color)
    with _reported(color):
        cfg = api.load(config)
        api.plan(cfg, refresh=False)

    count = _plural(len(cfg.variables), "variable")
    typer.echo(styler(color)(f"Configuration is valid: {count}.", fg="green"))
