"""Hook contexts: the object passed to fragment ``control`` and ``render`` hooks.

Every hook receives a context exposing the same read accessors. Control hooks
additionally get setters that stage response metadata or leave the pipeline
through an interrupt; render hooks get :meth:`RenderContext.select` to queue
element transforms. Anything substrate-specific is delegated to the injected
:class:`~twinrender.core.strategy.Strategy`.

A typical pair of hooks::

    async def control(ctx):
        if ctx.url().path == "/old":
            ctx.url("/new", 301)
        await ctx.pass_("home")

    def render(ctx):
        ctx.select("title", lambda el: el.text(f"{ctx.title()} | Demo"))
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from enum import Enum
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, ClassVar
from urllib.parse import urlsplit, urlunsplit

import httpx

from .exceptions import UnknownBindingError
from .outcomes import ErrorStatus, HTTPError, Redirect, Redirected
from .request import cookie_string


if TYPE_CHECKING:  # pragma: no cover - typing only
    from .loader import Loader
    from .request import AnyRequest
    from .strategy import Strategy, TransformCallback


_UNSET: Any = object()

BINDING_SCHEME = "binding"


class HookKind(Enum):
    """Which hook a context was built for."""

    CONTROL = "control"
    RENDER = "render"


class HookContext:
    """Read accessors shared by every hook."""

    kind: ClassVar[HookKind]

    def __init__(
        self,
        request: AnyRequest,
        strategy: Strategy,
        *,
        loader: Loader | None = None,
        props: Mapping[str, str] | None = None,
        bindings: Iterable[str] = (),
    ) -> None:
        self._request = request
        self._strategy = strategy
        self._loader = loader
        self._props = dict(props or {})
        self._bindings = frozenset(bindings)

    @property
    def substrate(self) -> str:
        """Name of the substrate running the hook (``server`` or ``client``)."""
        return self._strategy.substrate

    @property
    def props(self) -> Mapping[str, str]:
        return MappingProxyType(self._props)

    def url(self) -> httpx.URL:
        return httpx.URL(self._request.url)

    def status_code(self) -> int:
        return self._request.status

    def error(self) -> int:
        return self._request.status

    def cookie(self, name: str) -> str | None:
        return self._request.cookies.get(name)

    def title(self) -> str:
        return self._request.title

    def description(self) -> str:
        return self._request.description

    def form(self, field: str = _UNSET) -> Any:
        """Return None outside form posts, True without ``field``, else the field value."""
        form = self._request.form
        if form is None:
            return None
        if field is _UNSET:
            return True
        return form.get(field)

    def data(self, attr: str) -> str | None:
        """Read a prop passed by the parent placeholder (``data-<attr>``)."""
        return self._props.get(attr)

    def location(self) -> dict[str, Any] | None:
        geolocation = self._request.geolocation
        return geolocation.loc() if geolocation is not None else None

    def timezone(self) -> str | None:
        geolocation = self._request.geolocation
        return geolocation.timezone if geolocation is not None else None

    async def relocate(self) -> dict[str, Any] | None:
        """Refresh the request location through the strategy and return it."""
        geolocation = await self._strategy.relocate()
        if geolocation is not None:
            self._request.geolocation = geolocation
        return self.location()

    async def fetch(self, resource: str | httpx.URL, **options: Any) -> httpx.Response:
        """Fetch ``resource``; ``binding:<name>/<path>`` targets a configured backend."""
        target = str(resource)
        parts = urlsplit(target)
        if parts.scheme == BINDING_SCHEME:
            if parts.netloc:
                binding, path = parts.netloc, parts.path.lstrip("/")
            else:
                binding, _, path = parts.path.partition("/")
            if binding not in self._bindings:
                raise UnknownBindingError(f"Unrecognised binding '{binding}'")
            url = httpx.URL(urlunsplit(("https", binding, f"/{path}", parts.query, parts.fragment)))
            return await self._strategy.binding_fetch(binding, url, **options)

        absolute = httpx.URL(self._request.url).join(target)
        return await self._strategy.fetch(str(absolute), **options)


class ControlContext(HookContext):
    """Context for control hooks: may mutate request metadata or interrupt."""

    kind = HookKind.CONTROL

    def url(self, new_url: str | httpx.URL | None = None, status: int = 302) -> httpx.URL:
        """Return the request URL, or redirect to ``new_url``."""
        if new_url is None:
            return super().url()
        target = httpx.URL(self._request.url).join(str(new_url))
        raise Redirect(str(target), status)

    def error(self, code: int | None = None) -> int:
        """Return the current status, or abort the pass with ``code``."""
        if code is None:
            return self._request.status
        raise HTTPError(code)

    def cookie(
        self,
        name: str,
        value: Any = _UNSET,
        options: Mapping[str, Any] | None = None,
        **attributes: Any,
    ) -> str | None:
        """Read a cookie, or write one (always scoped to ``path=/``).

        Keyword attributes use underscores for dashes: ``max_age=60`` becomes
        ``max-age=60``.
        """
        if value is _UNSET:
            return super().cookie(name)

        merged = dict(options or {})
        merged.update({key.replace("_", "-"): item for key, item in attributes.items()})
        merged = {key: item for key, item in merged.items() if key.lower() != "path"}
        merged["path"] = "/"

        self._strategy.set_cookie(cookie_string(name, value, merged))
        self._request.cookies[name] = str(value)
        return None

    def title(self, value: str | None = None) -> str:
        """Read the page title or stage a new one for the render hooks."""
        if value is not None:
            self._request.title = str(value)
        return self._request.title

    def description(self, value: str | None = None) -> str:
        if value is not None:
            self._request.description = str(value)
        return self._request.description

    async def pass_(self, fragment_id: str, props: Mapping[str, str] | None = None) -> None:
        """Run another fragment's control hook against the same request."""
        if self._loader is None:
            raise RuntimeError("This context is not bound to a loader")
        outcome = await self._loader.control(fragment_id, self._request, props)
        if isinstance(outcome, (Redirected, ErrorStatus)):
            raise outcome.interrupt()


class RenderContext(HookContext):
    """Context for render hooks: read-only, queues element transforms."""

    kind = HookKind.RENDER

    def select(self, selector: str, callback: TransformCallback) -> None:
        """Run ``callback`` once for every owned element matching ``selector``.

        Callbacks run after the hook returns, against the fragment's own
        subtree only.
        """
        self._strategy.add_transform(selector, callback)


__all__ = [
    "BINDING_SCHEME",
    "ControlContext",
    "HookContext",
    "HookKind",
    "RenderContext",
]
