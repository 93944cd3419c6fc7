"""Substrate strategy contract injected into hook contexts.

Hook semantics are identical on both substrates; a strategy only decides how
a cookie write becomes wire state, how a ``binding:`` fetch is dispatched, how
queued element transforms are applied, and where a refreshed location comes
from. Concrete strategies live in :mod:`twinrender.server.strategy` and
:mod:`twinrender.client.strategy`.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

import httpx

from .element import Element


if TYPE_CHECKING:  # pragma: no cover - typing only
    from bs4.element import Tag

    from .geolocation import GeoLocation
    from .request import AnyRequest


TransformCallback = Callable[[Element], Any]


@runtime_checkable
class Strategy(Protocol):
    """Substrate-specific primitives used by hook contexts."""

    substrate: str

    def set_cookie(self, cookie: str) -> None: ...

    async def fetch(self, url: str, **options: Any) -> httpx.Response: ...

    async def binding_fetch(
        self, binding: str, url: httpx.URL, **options: Any
    ) -> httpx.Response: ...

    async def relocate(self) -> GeoLocation | None: ...

    def add_transform(self, selector: str, callback: TransformCallback) -> None: ...

    async def apply_transforms(self, root: Tag) -> None: ...


class BaseStrategy:
    """Behaviour common to every substrate: the transform queue and plain fetches."""

    substrate = "base"

    def __init__(self, request: AnyRequest) -> None:
        self.request = request
        self._transforms: list[tuple[str, TransformCallback]] = []

    @property
    def transforms(self) -> tuple[tuple[str, TransformCallback], ...]:
        return tuple(self._transforms)

    def add_transform(self, selector: str, callback: TransformCallback) -> None:
        self._transforms.append((selector, callback))

    async def fetch(self, url: str, **options: Any) -> httpx.Response:
        method = options.pop("method", "GET")
        env = self.request.env
        client = env.http if env is not None else None
        if client is not None:
            return await client.request(method, url, **options)
        async with httpx.AsyncClient() as session:
            return await session.request(method, url, **options)


__all__ = ["BaseStrategy", "Strategy", "TransformCallback"]
