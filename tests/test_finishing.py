from __future__ import annotations

import json

from twinrender.core.config import AppConfig
from twinrender.core.element import parse_html
from twinrender.core.request import PageRequest
from twinrender.server.finishing import (
    cors_headers,
    embed_request,
    finish_document,
    rewrite_asset_urls,
    strip_comments,
)
from twinrender.server.handler import parse_props


def test_cors_headers_only_for_allowed_origins() -> None:
    config = AppConfig(cors_origins=r"https://app\.example\.com")

    headers = cors_headers(config, "https://app.example.com")

    assert headers["Access-Control-Allow-Origin"] == "https://app.example.com"
    assert headers["Vary"] == "Origin"
    assert "Twin-Location" in headers["Access-Control-Expose-Headers"]
    assert cors_headers(config, "https://other.example.com") == {}
    assert cors_headers(config, None) == {}


def test_strip_comments() -> None:
    soup = parse_html("<p>a<!-- hidden --></p><!-- top -->")

    strip_comments(soup)

    assert str(soup) == "<p>a</p>"


def test_rewrite_asset_urls_targets_same_origin_only() -> None:
    soup = parse_html(
        '<link rel="stylesheet" href="/assets/site.css">'
        '<img src="logo.png#x">'
        '<script src="https://cdn.other.net/lib.js"></script>'
        '<a href="/about">about</a>'
    )

    rewrite_asset_urls(soup, "https://example.com/blog/post", "https://static.example.com/")

    assert soup.link["href"] == "https://static.example.com/assets/site.css"
    assert soup.img["src"] == "https://static.example.com/blog/logo.png#x"
    assert soup.script["src"] == "https://cdn.other.net/lib.js"
    assert soup.a["href"] == "/about"


def test_embed_request_escapes_closing_script_tags() -> None:
    soup = parse_html("<html><head></head><body></body></html>")
    request = PageRequest("https://example.com/", title="</script><b>x</b>")

    embed_request(soup, request)
    markup = str(soup)
    reparsed = parse_html(markup).find("script", id="twin-initial-request")

    assert "</script><b>" not in markup
    assert soup.head.script is not None
    assert PageRequest.deserialize(reparsed.string).title == "</script><b>x</b>"


def test_embed_request_reuses_existing_script() -> None:
    soup = parse_html('<div><script id="twin-initial-request">old</script></div>')

    embed_request(soup, PageRequest("https://example.com/"))

    assert len(soup.find_all("script")) == 1
    assert json.loads(soup.script.string)[0] == "Object"


def test_finish_document_applies_configured_steps() -> None:
    soup = parse_html("<html><head></head><body><!-- c --><img src='/a.png'></body></html>")
    config = AppConfig(strip_comments=True, deploy_url="https://cdn.example.com")

    html = finish_document(soup, PageRequest("https://example.com/"), config)

    assert "<!--" not in html
    assert 'src="https://cdn.example.com/a.png"' in html
    assert 'id="twin-initial-request"' in html


def test_parse_props() -> None:
    assert parse_props('[["a", "1"], ["b", 2]]') == {"a": "1", "b": "2"}
    assert parse_props(None) == {}
