"""Canonical request representations shared by the server and client substrates."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any
from urllib.parse import quote, unquote

import httpx

from .codec import deserialize, register_type, serialize
from .exceptions import CodecError
from .geolocation import GeoLocation
from .outcomes import ErrorStatus, Ok, Outcome, Redirected


if TYPE_CHECKING:  # pragma: no cover - typing only
    from starlette.requests import Request as HTTPRequest

    from .loader import Loader


HOOKS = ("control", "render")
ROOT_FRAGMENT = "root"

_COOKIE_SAFE = "!~*'()"


@dataclass(slots=True)
class Environment:
    """Handles to backing services attached to a request; never serialised."""

    bindings: Mapping[str, httpx.AsyncClient] = field(default_factory=dict)
    http: httpx.AsyncClient | None = None


def parse_cookie_header(header: str | None) -> dict[str, str]:
    """Parse a Cookie header; a repeated name keeps its last value."""
    cookies: dict[str, str] = {}
    if not header:
        return cookies
    for chunk in header.split(";"):
        name, _, value = chunk.partition("=")
        name = unquote(name.strip())
        if not name:
            continue
        cookies.pop(name, None)
        cookies[name] = unquote(value.strip())
    return cookies


def cookie_string(name: str, value: Any, options: Mapping[str, Any] | None = None) -> str:
    """Serialise a cookie write the way a Set-Cookie header expects it."""
    parts = [f"{quote(str(name), safe=_COOKIE_SAFE)}={quote(str(value), safe=_COOKIE_SAFE)}"]
    for key, option in (options or {}).items():
        if option is None or option is False:
            continue
        if option is True:
            parts.append(str(key))
        else:
            parts.append(f"{key}={option}")
    return "; ".join(parts)


async def read_form(http_request: HTTPRequest) -> Mapping[str, Any] | None:
    """Return the submitted form for form-encoded POST requests, else None."""
    if http_request.method != "POST":
        return None
    content_type = http_request.headers.get("content-type", "")
    if "form" not in content_type:
        return None
    return await http_request.form()


_PUBLIC_FIELDS: dict[str, type | tuple[type, ...]] = {
    "url": str,
    "status": int,
    "title": str,
    "description": str,
    "cookies": dict,
    "geolocation": (GeoLocation, type(None)),
}


def _check_fields(request: Any) -> None:
    """Reject decoded requests whose public state is missing or mistyped."""
    for name, expected in _PUBLIC_FIELDS.items():
        if not hasattr(request, name) or not isinstance(getattr(request, name), expected):
            raise CodecError(f"Serialised request has no valid '{name}'")
    status = request.status
    if isinstance(status, bool) or status < 100 or status > 599:
        raise CodecError(f"Serialised request has an invalid status {status!r}")
    for key, value in request.cookies.items():
        if not isinstance(key, str) or not isinstance(value, str):
            raise CodecError("Serialised request cookies must map names to strings")


@register_type
class PageRequest:
    """One navigation: URL, response metadata staged by hooks, and client state.

    Public attributes are what crosses the server/client boundary. The
    environment handle, the submitted form (which may carry uploads) and the
    cookie strings written during this cycle are private and stay local.
    """

    recoverable = True

    def __init__(
        self,
        url: str | httpx.URL,
        *,
        env: Environment | None = None,
        form: Mapping[str, Any] | None = None,
        cookies: str | Mapping[str, str] | None = None,
        geolocation: GeoLocation | None = None,
        status: int = 200,
        title: str = "",
        description: str = "",
    ) -> None:
        self.url = str(url)
        self.status = status
        self.title = title
        self.description = description
        self.geolocation = geolocation
        if cookies is None or isinstance(cookies, str):
            self.cookies = parse_cookie_header(cookies)
        else:
            self.cookies = dict(cookies)
        self._attach(env, form)

    def _attach(self, env: Environment | None, form: Mapping[str, Any] | None) -> None:
        self._env = env
        self._form = form
        self._pending_cookies: list[str] = []

    @classmethod
    async def read(cls, http_request: HTTPRequest, **extra: Any) -> PageRequest:
        """Build a request from an incoming HTTP request."""
        extra.setdefault("cookies", http_request.headers.get("cookie"))
        return cls(str(http_request.url), form=await read_form(http_request), **extra)

    @property
    def env(self) -> Environment | None:
        return self._env

    @env.setter
    def env(self, value: Environment | None) -> None:
        self._env = value

    @property
    def form(self) -> Mapping[str, Any] | None:
        return self._form

    @form.setter
    def form(self, value: Mapping[str, Any] | None) -> None:
        self._form = value

    @property
    def pending_cookies(self) -> list[str]:
        """Cookie strings written on the server during this request cycle."""
        return self._pending_cookies

    def serialize(self) -> str:
        return serialize(self)

    @classmethod
    def deserialize(
        cls,
        text: str,
        *,
        env: Environment | None = None,
        form: Mapping[str, Any] | None = None,
    ) -> PageRequest:
        request = deserialize(text, {cls.__name__: cls, GeoLocation.__name__: GeoLocation})
        if not isinstance(request, cls):
            raise CodecError(f"Expected a serialised {cls.__name__}")
        _check_fields(request)
        request._attach(env, form)
        return request

    def update_from(self, other: PageRequest) -> None:
        """Copy the public state of ``other`` onto this request."""
        for key, value in vars(other).items():
            if not key.startswith("_"):
                setattr(self, key, value)

    async def handle(self, loader: Loader) -> Outcome:
        """Run the root control hook, then render the root fragment."""
        outcome = await loader.control(ROOT_FRAGMENT, self)
        if not isinstance(outcome, Ok):
            return outcome
        return Ok(await loader.render(ROOT_FRAGMENT, self))

    async def redirect(self, loader: Loader, location: str, status: int) -> Outcome:
        return Redirected(location, status)

    async def error(self, loader: Loader, status: int) -> Outcome:
        """Re-run the whole pipeline so templates can render ``status``."""
        self.status = status
        return await self.handle(loader)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.url!r}, status={self.status})"


def _proxy(name: str) -> property:
    def getter(self: FragmentRequest) -> Any:
        return getattr(self._request, name)

    def setter(self: FragmentRequest, value: Any) -> None:
        setattr(self._request, name, value)

    return property(getter, setter)


class FragmentRequest:
    """One step of a :class:`PageRequest`: a single hook of a single fragment.

    Every request field is proxied to the wrapped request so hooks cannot tell
    the difference.
    """

    recoverable = False

    url = _proxy("url")
    status = _proxy("status")
    title = _proxy("title")
    description = _proxy("description")
    cookies = _proxy("cookies")
    geolocation = _proxy("geolocation")
    env = _proxy("env")
    form = _proxy("form")

    def __init__(
        self,
        request: PageRequest,
        fragment_id: str,
        hook: str,
        *,
        props: Mapping[str, str] | None = None,
    ) -> None:
        if hook not in HOOKS:
            raise ValueError(f"Unrecognised hook {hook!r}")
        self._request = request
        self.fragment_id = fragment_id
        self.hook = hook
        self.props = dict(props or {})

    @property
    def base(self) -> PageRequest:
        return self._request

    @property
    def pending_cookies(self) -> list[str]:
        return self._request.pending_cookies

    def serialize(self) -> str:
        return self._request.serialize()

    async def handle(self, loader: Loader) -> Outcome:
        if self.hook == "control":
            return await loader.control(self.fragment_id, self, self.props)
        return Ok(await loader.render(self.fragment_id, self, self.props))

    async def redirect(self, loader: Loader, location: str, status: int) -> Outcome:
        return Redirected(location, status)

    async def error(self, loader: Loader, status: int) -> Outcome:
        return ErrorStatus(status)

    def update_from(self, other: PageRequest) -> None:
        self._request.update_from(other)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.fragment_id!r}, {self.hook!r}, {self._request!r})"


AnyRequest = PageRequest | FragmentRequest


__all__ = [
    "HOOKS",
    "ROOT_FRAGMENT",
    "AnyRequest",
    "Environment",
    "FragmentRequest",
    "PageRequest",
    "cookie_string",
    "parse_cookie_header",
    "read_form",
]
