"""``automation-provisioner`` command line: plan, apply and inspect Automation variables."""

from __future__ import annotations

import logging
import os
from importlib.metadata import version as dist_version

import typer

from automation_provisioner import __version__

LOG_ENV = "AUTOMATION_LOG"

app = typer.Typer(
    name="automation-provisioner",
    help="Terraform-style management of Azure Automation variables.",
    no_args_is_help=True,
    add_completion=False,
)


def _version_callback(value: bool) -> None:
    if not value:
        return
    typer.echo(
        f"automation-provisioner {__version__} "
        f"(azure-mgmt-automation {dist_version('azure-mgmt-automation')})"
    )
    raise typer.Exit


def _log_level(verbose: int) -> int | None:
    """Level for the package logger; ``None`` leaves logging unconfigured.

    ``AUTOMATION_LOG`` wins over ``-v``. An unknown level name falls back to INFO.
    """
    name = os.environ.get(LOG_ENV, "").strip().upper()
    if name:
        level = logging.getLevelNamesMapping().get(name)
        if level is None:
            typer.echo(f"WARNING: unknown {LOG_ENV} level {name!r}; using INFO", err=True)
            return logging.INFO
        return level
    if verbose <= 0:
        return None
    return logging.INFO if verbose == 1 else logging.DEBUG


def _configure_logging(verbose: int) -> None:
    """Route log records to stderr through Rich.

    Only ``automation_provisioner`` loggers follow the requested level; the
    Azure SDK logs every HTTP call at INFO, so everything else stays at WARNING.
    """
    level = _log_level(verbose)
    if level is None:
        return

    from rich.console import Console
    from rich.logging import RichHandler

    handler = RichHandler(
        console=Console(stderr=True),
        rich_tracebacks=True,
        show_time=False,
        show_path=False,
    )
    logging.basicConfig(level=logging.WARNING, format="%(message)s", handlers=[handler], force=True)
    logging.getLogger("automation_provisioner").setLevel(level)


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
    verbose: int = typer.Option(
        0,
        "--verbose",
        "-v",
        count=True,
        help=f"Log more (-v info, -vv debug). {LOG_ENV}=<level> overrides it.",
    ),
) -> None:
    _ = version
    _configure_logging(verbose)


# Commands register themselves on ``app``.
from automation_provisioner.cli import commands as _commands  # noqa: E402, F401
