"""List the fragments a project registers."""

from __future__ import annotations

import typer

from twinrender.core.config import load_config
from twinrender.core.exceptions import TwinRenderError
from twinrender.server.app import discover_registry

from .._options import DEFAULT_ENV, EnvOption, RootArgument
from ..state import emit_error, get_cli_state


def fragments(root: RootArgument, env: EnvOption = DEFAULT_ENV) -> None:
    """Print a table of the registered fragments."""
    from rich import box
    from rich.table import Table

    try:
        config = load_config(root, env)
        registry = discover_registry(config, root)
    except TwinRenderError as exc:
        emit_error(f"Cannot load fragments from {root}: {exc}", exception=exc)
        raise typer.Exit(code=1) from exc

    table = Table(
        title="Registered Fragments",
        box=box.SQUARE,
        show_edge=True,
        header_style="bold cyan",
    )
    table.add_column("Id", style="magenta")
    table.add_column("Template", justify="center")
    table.add_column("Hooks", style="green")
    table.add_column("Source")

    if not registry:
        table.add_row("-", "-", "-", "No fragments found")
    for fragment_id, definition in registry.items():
        hooks = definition.load()
        names = [name for name in ("control", "render") if getattr(hooks, name) is not None]
        table.add_row(
            fragment_id,
            "yes" if definition.template.strip() else "-",
            ", ".join(names) or "-",
            str(definition.source or "-"),
        )

    get_cli_state().console.print(table)


__all__ = ["fragments"]
