"""Fragments shipped with twinrender, registered under the ``twinrender:`` prefix."""

from __future__ import annotations

from pathlib import Path


BUILTIN_FRAGMENT_DIR = Path(__file__).resolve().parent


__all__ = ["BUILTIN_FRAGMENT_DIR"]
