"""Finishing touches applied to successful responses."""

from __future__ import annotations

from typing import TYPE_CHECKING

import httpx
from bs4 import BeautifulSoup
from bs4.element import Comment

from ..core.headers import EXPOSED_HEADERS, INITIAL_REQUEST_ID
from ..core.utils import escape_script_text


if TYPE_CHECKING:  # pragma: no cover - typing only
    from ..core.config import AppConfig
    from ..core.request import PageRequest


def cors_headers(config: AppConfig, origin: str | None) -> dict[str, str]:
    """Return CORS headers for ``origin`` when it is allowed, else nothing."""
    if not config.origin_allowed(origin):
        return {}
    return {
        "Access-Control-Allow-Origin": origin or "",
        "Access-Control-Allow-Credentials": "true",
        "Access-Control-Expose-Headers": ", ".join(EXPOSED_HEADERS),
        "Vary": "Origin",
    }


def strip_comments(soup: BeautifulSoup) -> None:
    for comment in soup.find_all(string=lambda text: isinstance(text, Comment)):
        comment.extract()


def rewrite_asset_urls(soup: BeautifulSoup, request_url: str, deploy_url: str) -> None:
    """Point same-origin ``link[href]`` and ``[src]`` URLs at ``deploy_url``."""
    page = httpx.URL(request_url)
    base = deploy_url.rstrip("/")
    targets = [(tag, "href") for tag in soup.select("link[href]")]
    targets.extend((tag, "src") for tag in soup.select("[src]"))
    for tag, attribute in targets:
        value = tag.get(attribute)
        if not isinstance(value, str) or not value:
            continue
        resolved = page.join(value)
        if resolved.scheme != page.scheme or resolved.netloc != page.netloc:
            continue
        target = resolved.raw_path.decode("ascii")
        if resolved.fragment:
            target = f"{target}#{resolved.fragment}"
        tag[attribute] = f"{base}{target}"


def embed_request(soup: BeautifulSoup, request: PageRequest) -> None:
    """Store the serialised request where the client resumes from it."""
    script = soup.find("script", id=INITIAL_REQUEST_ID)
    if script is None:
        script = soup.new_tag("script", id=INITIAL_REQUEST_ID, type="application/json")
        container = soup.find("head") or soup.find("body") or soup
        container.append(script)
    script.string = escape_script_text(request.serialize())


def finish_document(soup: BeautifulSoup, request: PageRequest, config: AppConfig) -> str:
    """Apply the document-level finishing touches and return the markup."""
    if config.strip_comments:
        strip_comments(soup)
    if config.deploy_url:
        rewrite_asset_urls(soup, request.url, config.deploy_url)
    embed_request(soup, request)
    return str(soup)


__all__ = [
    "cors_headers",
    "embed_request",
    "finish_document",
    "rewrite_asset_urls",
    "strip_comments",
]
