"""Shared Typer option definitions for CLI commands."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer

from twinrender.core.config import DEFAULT_ENVIRONMENT


PROJECT_PANEL = "Project"
SERVER_PANEL = "Server"
REQUEST_PANEL = "Request"
DIAGNOSTICS_PANEL = "Diagnostics"

RootArgument = Annotated[
    Path,
    typer.Argument(
        metavar="ROOT",
        help="Project directory holding twinrender.toml and the fragments directory.",
        exists=True,
        file_okay=False,
        dir_okay=True,
        resolve_path=True,
        rich_help_panel=PROJECT_PANEL,
    ),
]

EnvOption = Annotated[
    str,
    typer.Option(
        "--env",
        "-e",
        help="Configuration environment whose [env.<name>] overrides apply.",
        rich_help_panel=PROJECT_PANEL,
    ),
]

DEFAULT_ENV = DEFAULT_ENVIRONMENT

VerboseOption = Annotated[
    int,
    typer.Option(
        "--verbose",
        "-v",
        count=True,
        help="Increase CLI verbosity. Combine multiple times for additional diagnostics.",
        rich_help_panel=DIAGNOSTICS_PANEL,
    ),
]

DebugOption = Annotated[
    bool,
    typer.Option(
        "--debug/--no-debug",
        help="Show full tracebacks when an unexpected error occurs.",
        rich_help_panel=DIAGNOSTICS_PANEL,
    ),
]


__all__ = [
    "DEFAULT_ENV",
    "DIAGNOSTICS_PANEL",
    "DebugOption",
    "EnvOption",
    "PROJECT_PANEL",
    "REQUEST_PANEL",
    "RootArgument",
    "SERVER_PANEL",
    "VerboseOption",
]
