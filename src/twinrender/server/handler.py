"""Request handler: turns HTTP requests into loader runs and responses.

Full pages run the root fragment under the recovery loop and answer with the
finished document. Fragment sub-requests run one hook of one fragment and
answer with the neutral :class:`FragmentResult`, which the HTTP route and the
duplex channel serialise in their own way.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
import json
import logging
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

import httpx
from starlette.requests import Request
from starlette.responses import HTMLResponse, PlainTextResponse, RedirectResponse, Response

from ..core.codec import serialize
from ..core.diagnostics import DiagnosticEmitter, LoggingEmitter
from ..core.exceptions import CodecError
from ..core.geolocation import GeoLocation
from ..core.headers import (
    DESCRIPTION_HEADER,
    LOCATION_HEADER,
    PROPS_HEADER,
    REQUEST_HEADER,
    SET_COOKIE_HEADER,
    STATUS_HEADER,
    TITLE_HEADER,
)
from ..core.outcomes import ErrorStatus, Ok, Redirected
from ..core.recovery import FALLBACK_BODY, FALLBACK_STATUS, RetryBudget, handle_with_recovery
from ..core.request import HOOKS, Environment, FragmentRequest, PageRequest, read_form
from .finishing import cors_headers, finish_document
from .loader import ServerLoader


if TYPE_CHECKING:  # pragma: no cover - typing only
    from ..core.config import AppConfig
    from ..core.fragments import FragmentRegistry


logger = logging.getLogger(__name__)

_HOP_BY_HOP = frozenset(
    {
        "connection",
        "content-encoding",
        "content-length",
        "host",
        "keep-alive",
        "transfer-encoding",
        "upgrade",
    }
)


@dataclass(slots=True)
class FragmentResult:
    """Transport-neutral answer to one fragment sub-request."""

    status: int
    headers: dict[str, str] = field(default_factory=dict)
    body: str = ""

    def as_frame(self) -> dict[str, Any]:
        return {"status": self.status, "headers": dict(self.headers), "body": self.body}


def parse_props(header: str | None) -> dict[str, str]:
    """Decode the ``Twin-Props`` header (a JSON list of ``[name, value]`` pairs)."""
    if not header:
        return {}
    try:
        pairs = json.loads(header)
        return {str(name): str(value) for name, value in pairs}
    except (ValueError, TypeError) as exc:
        raise CodecError(f"Malformed {PROPS_HEADER} header") from exc


class RequestHandler:
    """Serve full pages and fragment sub-requests for one application."""

    def __init__(
        self,
        registry: FragmentRegistry,
        config: AppConfig,
        *,
        env: Environment | None = None,
        emitter: DiagnosticEmitter | None = None,
    ) -> None:
        self.registry = registry
        self.config = config
        self.env = env or Environment()
        self.emitter = emitter or LoggingEmitter()
        self.loader = ServerLoader(registry, bindings=config.bindings, emitter=self.emitter)

    def budget(self) -> RetryBudget:
        return RetryBudget(self.config.retry_budget)

    def geolocation(self, http_request: Request) -> GeoLocation:
        return GeoLocation.from_headers(http_request.headers, self.config.geolocation_headers)

    async def read_request(self, http_request: Request) -> PageRequest:
        return await PageRequest.read(
            http_request, env=self.env, geolocation=self.geolocation(http_request)
        )

    async def handle_page(self, http_request: Request) -> Response:
        """Render a full page for a GET or POST navigation."""
        request = await self.read_request(http_request)
        logger.debug("Serving page %s", request)
        response = await self.respond_page(request)
        response.headers.update(cors_headers(self.config, http_request.headers.get("origin")))
        return response

    async def respond_page(self, request: PageRequest) -> Response:
        outcome = await handle_with_recovery(
            request, self.loader, budget=self.budget(), emitter=self.emitter
        )

        match outcome:
            case Ok(value=document):
                html = finish_document(document, request, self.config)
                response: Response = HTMLResponse(html, status_code=request.status)
            case Redirected(location=location, status=status):
                response = RedirectResponse(location, status_code=status)
            case _:
                return PlainTextResponse(FALLBACK_BODY, status_code=FALLBACK_STATUS)

        for cookie in request.pending_cookies:
            response.headers.append("set-cookie", cookie)
        return response

    async def handle_fragment(self, http_request: Request) -> Response:
        """Answer ``/_fragment/{fragment}/{hook}`` sub-requests."""
        fragment_id = http_request.path_params["fragment"]
        hook = http_request.path_params["hook"]
        form = await read_form(http_request)
        serialized = http_request.headers.get(REQUEST_HEADER)

        try:
            props = parse_props(http_request.headers.get(PROPS_HEADER))
            if serialized:
                request = PageRequest.deserialize(serialized, env=self.env, form=form)
            else:
                request = await self.read_request(http_request)
        except CodecError as exc:
            self.emitter.warning(f"Rejected fragment request for '{fragment_id}'", exc)
            return PlainTextResponse(str(exc), status_code=400)

        result = await self.run_fragment(request, fragment_id, hook, props)
        response = Response(
            result.body or None,
            status_code=result.status,
            headers=result.headers,
            media_type="text/html" if result.body else None,
        )
        response.headers.update(cors_headers(self.config, http_request.headers.get("origin")))
        return response

    async def run_fragment(
        self,
        request: PageRequest,
        fragment_id: str,
        hook: str,
        props: Mapping[str, str] | None = None,
    ) -> FragmentResult:
        """Run one hook of one fragment under the recovery loop."""
        if hook not in HOOKS or fragment_id not in self.registry:
            return FragmentResult(404)

        fragment_request = FragmentRequest(request, fragment_id, hook, props=props)
        outcome = await handle_with_recovery(
            fragment_request, self.loader, budget=self.budget(), emitter=self.emitter
        )

        match outcome:
            case Ok() if hook == "control":
                return FragmentResult(
                    200,
                    {
                        REQUEST_HEADER: request.serialize(),
                        TITLE_HEADER: quote(request.title),
                        DESCRIPTION_HEADER: quote(request.description),
                        STATUS_HEADER: str(request.status),
                        SET_COOKIE_HEADER: json.dumps(request.pending_cookies),
                    },
                )
            case Ok(value=value):
                return FragmentResult(200, body=str(value))
            case Redirected(location=location, status=status):
                return FragmentResult(
                    204, {STATUS_HEADER: str(status), LOCATION_HEADER: location}
                )
            case ErrorStatus(status=status):
                return FragmentResult(status)
            case _:
                return FragmentResult(FALLBACK_STATUS, body=FALLBACK_BODY)

    async def proxy_binding(self, http_request: Request) -> Response:
        """Forward ``/_binding/{name}?url=...`` to the configured binding client."""
        name = http_request.path_params["name"]
        client = self.env.bindings.get(name)
        if client is None:
            self.emitter.warning(f"Request for unknown binding '{name}'")
            return PlainTextResponse(FALLBACK_BODY, status_code=FALLBACK_STATUS)

        target = http_request.query_params.get("url")
        if not target:
            return PlainTextResponse("Missing url parameter", status_code=400)
        url = httpx.URL(target)
        if url.host.lower() != name.lower():
            return PlainTextResponse("Binding URL does not match binding", status_code=400)

        headers = {
            key: value
            for key, value in http_request.headers.items()
            if key.lower() not in _HOP_BY_HOP and key.lower() != "cookie"
        }
        upstream = await client.request(
            http_request.method,
            url.raw_path.decode("ascii"),
            content=await http_request.body(),
            headers=headers,
        )
        response_headers = {
            key: value
            for key, value in upstream.headers.items()
            if key.lower() not in _HOP_BY_HOP
        }
        response = Response(
            upstream.content, status_code=upstream.status_code, headers=response_headers
        )
        response.headers.update(cors_headers(self.config, http_request.headers.get("origin")))
        return response

    async def preflight(self, http_request: Request) -> Response:
        """Answer CORS preflight requests for fragment and binding routes."""
        headers = cors_headers(self.config, http_request.headers.get("origin"))
        if headers:
            headers["Access-Control-Allow-Methods"] = "GET, POST, PUT, PATCH, DELETE"
            headers["Access-Control-Allow-Headers"] = ", ".join(
                (REQUEST_HEADER, PROPS_HEADER, "Content-Type")
            )
        return Response(status_code=204, headers=headers)

    async def locate(self, http_request: Request) -> Response:
        """Answer ``/_location`` with the serialised location of the caller."""
        response = Response(
            serialize(self.geolocation(http_request)), media_type="application/json"
        )
        response.headers.update(cors_headers(self.config, http_request.headers.get("origin")))
        return response


__all__ = ["FragmentResult", "RequestHandler", "parse_props"]
