"""Serve a project with uvicorn."""

from __future__ import annotations

from typing import Annotated

import typer

from twinrender.core.exceptions import TwinRenderError
from twinrender.server.app import create_app_from_root

from .._options import DEFAULT_ENV, SERVER_PANEL, EnvOption, RootArgument
from ..diagnostics import CliEmitter
from ..state import emit_error, get_cli_state


def serve(
    root: RootArgument,
    env: EnvOption = DEFAULT_ENV,
    host: Annotated[
        str,
        typer.Option("--host", help="Interface to bind.", rich_help_panel=SERVER_PANEL),
    ] = "127.0.0.1",
    port: Annotated[
        int,
        typer.Option("--port", "-p", help="Port to listen on.", rich_help_panel=SERVER_PANEL),
    ] = 8000,
) -> None:
    """Serve pages, fragment sub-requests and the fragment channel."""
    import uvicorn

    state = get_cli_state()
    try:
        app = create_app_from_root(root, env, emitter=CliEmitter(state))
    except TwinRenderError as exc:
        emit_error(f"Cannot start the server: {exc}", exception=exc)
        raise typer.Exit(code=1) from exc

    log_level = "debug" if state.verbosity >= 2 else "info" if state.verbosity == 1 else "warning"
    uvicorn.run(app, host=host, port=port, log_level=log_level)


__all__ = ["serve"]
