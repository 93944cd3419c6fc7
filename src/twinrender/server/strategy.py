"""Server-side strategy: pending response cookies and direct binding calls."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import httpx

from ..core.element import Element
from ..core.exceptions import UnknownBindingError
from ..core.fragments import is_owned
from ..core.strategy import BaseStrategy
from ..core.utils import maybe_await


if TYPE_CHECKING:  # pragma: no cover - typing only
    from bs4.element import Tag

    from ..core.geolocation import GeoLocation


class ServerStrategy(BaseStrategy):
    """Strategy used while rendering inside the request handler."""

    substrate = "server"

    def set_cookie(self, cookie: str) -> None:
        self.request.pending_cookies.append(cookie)

    async def binding_fetch(self, binding: str, url: httpx.URL, **options: Any) -> httpx.Response:
        env = self.request.env
        client = env.bindings.get(binding) if env is not None else None
        if client is None:
            raise UnknownBindingError(f"Binding '{binding}' has no client on this server")
        method = options.pop("method", "GET")
        return await client.request(method, url.raw_path.decode("ascii"), **options)

    async def relocate(self) -> GeoLocation | None:
        return self.request.geolocation

    async def apply_transforms(self, root: Tag) -> None:
        """Visit owned elements in document order, running matching handlers in turn."""
        if not self._transforms:
            return
        for tag in list(root.find_all(True)):
            if not is_owned(tag, root):
                continue
            for selector, callback in self._transforms:
                if tag.css.match(selector):
                    await maybe_await(callback(Element(tag)))


__all__ = ["ServerStrategy"]
