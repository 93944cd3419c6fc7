"""Approximate client location derived from edge request headers."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from .codec import register_type


DEFAULT_GEOLOCATION_HEADERS: dict[str, str] = {
    "continent": "cf-ipcontinent",
    "country": "cf-ipcountry",
    "region": "cf-region",
    "city": "cf-ipcity",
    "postal_code": "cf-postal-code",
    "latitude": "cf-iplatitude",
    "longitude": "cf-iplongitude",
    "timezone": "cf-timezone",
}


@register_type
@dataclass
class GeoLocation:
    """Location of the datacentre or proxy that received the initial request."""

    continent: str | None = None
    country: str | None = None
    region: str | None = None
    city: str | None = None
    postal_code: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    timezone: str | None = None
    languages: list[str] = field(default_factory=list)

    @classmethod
    def from_headers(
        cls,
        headers: Mapping[str, str],
        header_names: Mapping[str, str] | None = None,
    ) -> GeoLocation:
        """Build a location from request headers, ignoring missing values."""
        names = header_names or DEFAULT_GEOLOCATION_HEADERS
        values: dict[str, Any] = {}
        for attribute, header in names.items():
            raw = headers.get(header)
            if raw is None or raw == "":
                continue
            if attribute in {"latitude", "longitude"}:
                try:
                    values[attribute] = float(raw)
                except ValueError:
                    continue
            else:
                values[attribute] = raw
        return cls(languages=parse_accept_language(headers.get("accept-language")), **values)

    def loc(self) -> dict[str, Any]:
        """Return the location fields exposed to hook code."""
        return {
            "continent": self.continent,
            "country": self.country,
            "region": self.region,
            "city": self.city,
            "postal_code": self.postal_code,
            "latitude": self.latitude,
            "longitude": self.longitude,
        }


def parse_accept_language(header: str | None) -> list[str]:
    """Return language tags from an Accept-Language header ordered by weight."""
    if not header:
        return []
    weighted: list[tuple[float, int, str]] = []
    for index, entry in enumerate(header.split(",")):
        parts = [part.strip() for part in entry.split(";")]
        tag = parts[0]
        if not tag or tag == "*":
            continue
        weight = 1.0
        for parameter in parts[1:]:
            if parameter.startswith("q="):
                try:
                    weight = float(parameter[2:])
                except ValueError:
                    weight = 0.0
        if weight > 0:
            weighted.append((-weight, index, tag))
    return [tag for _, _, tag in sorted(weighted)]


__all__ = ["DEFAULT_GEOLOCATION_HEADERS", "GeoLocation", "parse_accept_language"]
