"""Client-side strategy: cookie store writes and origin-proxied bindings."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

import httpx

from ..core.codec import deserialize
from ..core.element import Element
from ..core.exceptions import CodecError
from ..core.fragments import is_owned
from ..core.geolocation import GeoLocation
from ..core.headers import BINDING_PATH, LOCATION_PATH
from ..core.strategy import BaseStrategy
from ..core.utils import maybe_await


if TYPE_CHECKING:  # pragma: no cover - typing only
    from bs4.element import Tag

    from ..core.request import AnyRequest
    from .app import ClientApplication


class ClientStrategy(BaseStrategy):
    """Strategy used while rendering against the live client document."""

    substrate = "client"

    def __init__(self, request: AnyRequest, app: ClientApplication) -> None:
        super().__init__(request)
        self.app = app

    def set_cookie(self, cookie: str) -> None:
        self.app.cookies.write(cookie)

    async def binding_fetch(self, binding: str, url: httpx.URL, **options: Any) -> httpx.Response:
        method = options.pop("method", "GET")
        return await self.app.http.request(
            method, f"{BINDING_PATH}/{binding}", params={"url": str(url)}, **options
        )

    async def relocate(self) -> GeoLocation | None:
        response = await self.app.http.get(LOCATION_PATH)
        if response.status_code != 200:
            return None
        try:
            location = deserialize(response.text, [GeoLocation])
        except CodecError:
            return None
        return location if isinstance(location, GeoLocation) else None

    async def apply_transforms(self, root: Tag) -> None:
        """Apply transforms selector by selector; matches of one selector run together."""
        for selector, callback in self._transforms:
            matches = [tag for tag in root.select(selector) if is_owned(tag, root)]
            await asyncio.gather(*(maybe_await(callback(Element(tag))) for tag in matches))


__all__ = ["ClientStrategy"]
