"""Small helpers shared by the pipeline modules."""

from __future__ import annotations

import inspect
from typing import Any


async def maybe_await(value: Any) -> Any:
    """Await ``value`` when hook code returned an awaitable, else return it."""
    if inspect.isawaitable(value):
        return await value
    return value


def escape_script_text(text: str) -> str:
    """Prevent embedded text from closing the surrounding script element."""
    return text.replace("</script", "<\\/script").replace("</SCRIPT", "<\\/SCRIPT")


__all__ = ["escape_script_text", "maybe_await"]
