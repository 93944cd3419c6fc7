from __future__ import annotations

import json

import pytest

from twinrender.core.codec import serialize
from twinrender.core.exceptions import CodecError
from twinrender.core.geolocation import GeoLocation, parse_accept_language
from twinrender.core.request import (
    Environment,
    FragmentRequest,
    PageRequest,
    cookie_string,
    parse_cookie_header,
)


def test_parse_cookie_header_keeps_last_value() -> None:
    cookies = parse_cookie_header("a=1; b=hello%20world; a=2; =ignored")

    assert cookies == {"b": "hello world", "a": "2"}
    assert parse_cookie_header(None) == {}


def test_cookie_string_renders_flags_and_skips_disabled_options() -> None:
    cookie = cookie_string(
        "session id", "a b", {"max-age": 60, "secure": True, "httponly": False, "domain": None}
    )

    assert cookie == "session%20id=a%20b; max-age=60; secure"


def test_request_serialisation_keeps_public_state_only() -> None:
    env = Environment()
    request = PageRequest(
        "https://example.com/page?x=1",
        env=env,
        form={"name": "Ada"},
        cookies="theme=dark",
        geolocation=GeoLocation(country="FR", latitude=48.8),
        status=404,
        title="Missing",
    )
    request.pending_cookies.append("theme=light; path=/")

    restored = PageRequest.deserialize(request.serialize())

    assert restored.url == "https://example.com/page?x=1"
    assert restored.status == 404
    assert restored.title == "Missing"
    assert restored.cookies == {"theme": "dark"}
    assert restored.geolocation == GeoLocation(country="FR", latitude=48.8)
    assert restored.env is None
    assert restored.form is None
    assert restored.pending_cookies == []


def test_deserialize_rejects_other_payloads() -> None:
    with pytest.raises(CodecError, match="Expected a serialised PageRequest"):
        PageRequest.deserialize(serialize([1, 2]))
    with pytest.raises(CodecError, match="no valid 'url'"):
        PageRequest.deserialize('["Object","PageRequest",{}]')


@pytest.mark.parametrize(
    "mutate",
    [
        lambda payload: payload.pop("url"),
        lambda payload: payload.pop("cookies"),
        lambda payload: payload.update(status="200"),
        lambda payload: payload.update(status=42),
        lambda payload: payload.update(cookies=["Iterable", "dict", [["a", 1]]]),
    ],
)
def test_deserialize_rejects_incomplete_requests(mutate) -> None:
    kind, name, payload = json.loads(PageRequest("https://example.com/").serialize())
    mutate(payload)

    with pytest.raises(CodecError, match="Serialised request"):
        PageRequest.deserialize(json.dumps([kind, name, payload]))


def test_update_from_copies_public_fields() -> None:
    request = PageRequest("https://example.com/", form={"a": "1"})
    other = PageRequest("https://example.com/", title="Updated", cookies={"k": "v"}, status=302)

    request.update_from(other)

    assert request.title == "Updated"
    assert request.cookies == {"k": "v"}
    assert request.status == 302
    assert request.form == {"a": "1"}


def test_fragment_request_proxies_the_page_request() -> None:
    page = PageRequest("https://example.com/", cookies={"a": "1"})
    fragment = FragmentRequest(page, "home", "control", props={"msg": "hi"})

    fragment.title = "From fragment"
    fragment.pending_cookies.append("a=2")

    assert page.title == "From fragment"
    assert fragment.url == page.url
    assert fragment.cookies is page.cookies
    assert page.pending_cookies == ["a=2"]
    assert fragment.base is page
    assert fragment.recoverable is False
    assert page.recoverable is True
    assert fragment.serialize() == page.serialize()


def test_fragment_request_rejects_unknown_hooks() -> None:
    with pytest.raises(ValueError, match="Unrecognised hook"):
        FragmentRequest(PageRequest("https://example.com/"), "home", "teardown")


def test_geolocation_from_headers() -> None:
    location = GeoLocation.from_headers(
        {
            "cf-ipcountry": "FR",
            "cf-ipcity": "Paris",
            "cf-iplatitude": "48.85",
            "cf-iplongitude": "not a number",
            "cf-timezone": "Europe/Paris",
            "accept-language": "en;q=0.5, fr-FR, *;q=0.1",
        }
    )

    assert location.country == "FR"
    assert location.city == "Paris"
    assert location.latitude == 48.85
    assert location.longitude is None
    assert location.timezone == "Europe/Paris"
    assert location.languages == ["fr-FR", "en"]
    assert location.loc()["city"] == "Paris"
    assert "timezone" not in location.loc()


def test_parse_accept_language_drops_zero_weights() -> None:
    assert parse_accept_language("de;q=0, it") == ["it"]
    assert parse_accept_language("") == []
