"""Client-side cookie jar fed by cookie strings."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from urllib.parse import quote, unquote

from ..core.request import parse_cookie_header


class CookieStore(Mapping[str, str]):
    """Name to value mapping updated the way a browser applies ``document.cookie``."""

    def __init__(self, initial: str | Mapping[str, str] | None = None) -> None:
        if initial is None or isinstance(initial, str):
            self._cookies = parse_cookie_header(initial)
        else:
            self._cookies = dict(initial)

    def __getitem__(self, name: str) -> str:
        return self._cookies[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._cookies)

    def __len__(self) -> int:
        return len(self._cookies)

    def write(self, cookie: str) -> None:
        """Apply one ``name=value; attr=...`` string; expired cookies are removed."""
        pair, *attributes = cookie.split(";")
        name, separator, value = pair.partition("=")
        name = unquote(name.strip())
        if not name or not separator:
            return

        if _expired(attributes):
            self._cookies.pop(name, None)
            return
        self._cookies.pop(name, None)
        self._cookies[name] = unquote(value.strip())

    def header(self) -> str:
        """Render the store as a Cookie request header."""
        return "; ".join(f"{quote(name)}={quote(value)}" for name, value in self._cookies.items())


def _expired(attributes: list[str]) -> bool:
    for attribute in attributes:
        key, _, value = attribute.partition("=")
        key = key.strip().lower()
        value = value.strip()
        if key == "max-age":
            try:
                return int(value) <= 0
            except ValueError:
                continue
        if key == "expires":
            try:
                expires = parsedate_to_datetime(value)
            except (TypeError, ValueError):
                continue
            if expires.tzinfo is None:
                expires = expires.replace(tzinfo=timezone.utc)
            return expires <= datetime.now(timezone.utc)
    return False


__all__ = ["CookieStore"]
