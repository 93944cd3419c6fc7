"""CLI command implementations exposed via `twinrender.cli`."""

from __future__ import annotations

from .fragments import fragments
from .render import render
from .serve import serve


__all__ = ["fragments", "render", "serve"]
