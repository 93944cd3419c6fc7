"""Render one URL of a project in-process and print the response."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Annotated

import httpx
from starlette.applications import Starlette
import typer

from twinrender.core.exceptions import TwinRenderError
from twinrender.server.app import close_environment, create_app_from_root

from .._options import DEFAULT_ENV, REQUEST_PANEL, EnvOption, RootArgument
from ..diagnostics import CliEmitter
from ..state import emit_error, get_cli_state


BASE_URL = "http://twinrender.local"


def _parse_fields(values: list[str]) -> dict[str, str]:
    fields: dict[str, str] = {}
    for value in values:
        name, separator, content = value.partition("=")
        if not separator or not name:
            raise typer.BadParameter(f"Expected NAME=VALUE, got '{value}'", param_hint="--data")
        fields[name] = content
    return fields


async def fetch_page(
    app: Starlette,
    path: str,
    *,
    form: dict[str, str] | None = None,
    headers: dict[str, str] | None = None,
) -> httpx.Response:
    """Send one request through the application without opening a socket."""
    transport = httpx.ASGITransport(app=app)
    try:
        async with httpx.AsyncClient(transport=transport, base_url=BASE_URL) as client:
            if form:
                return await client.post(path, data=form, headers=headers)
            return await client.get(path, headers=headers)
    finally:
        await close_environment(app.state.handler.env)


def render(
    root: RootArgument,
    path: Annotated[
        str,
        typer.Argument(metavar="PATH", help="URL path to render, e.g. /about?tab=1."),
    ] = "/",
    env: EnvOption = DEFAULT_ENV,
    data: Annotated[
        list[str] | None,
        typer.Option(
            "--data",
            "-d",
            help="Form field NAME=VALUE; when given the page is requested with POST.",
            rich_help_panel=REQUEST_PANEL,
        ),
    ] = None,
    cookie: Annotated[
        str | None,
        typer.Option("--cookie", help="Cookie header to send.", rich_help_panel=REQUEST_PANEL),
    ] = None,
    output: Annotated[
        Path | None,
        typer.Option(
            "--output",
            "-o",
            help="Write the response body to this file instead of stdout.",
            dir_okay=False,
            rich_help_panel=REQUEST_PANEL,
        ),
    ] = None,
) -> None:
    """Render PATH through the full request pipeline."""
    state = get_cli_state()
    form = _parse_fields(data or [])
    if not path.startswith("/"):
        path = f"/{path}"

    try:
        app = create_app_from_root(root, env, emitter=CliEmitter(state))
        response = asyncio.run(
            fetch_page(app, path, form=form, headers={"cookie": cookie} if cookie else None)
        )
    except TwinRenderError as exc:
        emit_error(f"Failed to render {path}: {exc}", exception=exc)
        raise typer.Exit(code=1) from exc

    state.err_console.print(f"[bold]{response.status_code}[/bold] {path}")
    if "location" in response.headers:
        state.err_console.print(f"Location: {response.headers['location']}")
    for value in response.headers.get_list("set-cookie"):
        state.err_console.print(f"Set-Cookie: {value}")

    if output is not None:
        output.write_text(response.text, encoding="utf-8")
    else:
        typer.echo(response.text)

    if response.status_code >= 500:
        raise typer.Exit(code=1)


__all__ = ["fetch_page", "render"]
