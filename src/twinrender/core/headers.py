"""Header names and paths shared by the server routes and the client."""

from __future__ import annotations

REQUEST_HEADER = "Twin-Request"
PROPS_HEADER = "Twin-Props"
STATUS_HEADER = "Twin-Status"
LOCATION_HEADER = "Twin-Location"
TITLE_HEADER = "Twin-Title"
DESCRIPTION_HEADER = "Twin-Description"
SET_COOKIE_HEADER = "Twin-Set-Cookie"

EXPOSED_HEADERS = (
    REQUEST_HEADER,
    STATUS_HEADER,
    LOCATION_HEADER,
    TITLE_HEADER,
    DESCRIPTION_HEADER,
    SET_COOKIE_HEADER,
)

ASSETS_PATH = "/assets"
BINDING_PATH = "/_binding"
LOCATION_PATH = "/_location"
FRAGMENT_PATH = "/_fragment"
CHANNEL_PATH = "/_channel"

INITIAL_REQUEST_ID = "twin-initial-request"


def fragment_path(fragment_id: str, hook: str) -> str:
    """Return the sub-request path for one hook of one fragment."""
    return f"{FRAGMENT_PATH}/{fragment_id}/{hook}"


__all__ = [
    "ASSETS_PATH",
    "BINDING_PATH",
    "CHANNEL_PATH",
    "DESCRIPTION_HEADER",
    "EXPOSED_HEADERS",
    "FRAGMENT_PATH",
    "INITIAL_REQUEST_ID",
    "LOCATION_HEADER",
    "LOCATION_PATH",
    "PROPS_HEADER",
    "REQUEST_HEADER",
    "SET_COOKIE_HEADER",
    "STATUS_HEADER",
    "TITLE_HEADER",
    "fragment_path",
]
