"""Run fragment hooks on the origin server when they are not cached locally."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
import json
import logging
from typing import TYPE_CHECKING

import httpx
from bs4.element import Tag

from ..core.element import replace_children
from ..core.fragments import is_placeholder
from ..core.headers import (
    LOCATION_HEADER,
    PROPS_HEADER,
    REQUEST_HEADER,
    SET_COOKIE_HEADER,
    STATUS_HEADER,
    fragment_path,
)
from ..core.outcomes import ErrorStatus, HTTPError, Ok, Outcome, Redirected
from ..core.request import PageRequest


if TYPE_CHECKING:  # pragma: no cover - typing only
    from ..core.request import AnyRequest
    from .channel import DuplexChannel
    from .cookies import CookieStore
    from .tree import FragmentTree


logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class FragmentResponse:
    """Answer to a fragment sub-request, whichever transport carried it."""

    status: int
    headers: httpx.Headers
    body: str = ""

    @property
    def ok(self) -> bool:
        return self.status >= 200 and self.status <= 299


class OriginLoader:
    """Issue fragment sub-requests over HTTP or the duplex channel."""

    def __init__(
        self,
        http: httpx.AsyncClient,
        *,
        cookies: CookieStore,
        tree: FragmentTree,
        channel: DuplexChannel | None = None,
    ) -> None:
        self.http = http
        self.cookies = cookies
        self.tree = tree
        self.channel = channel

    async def fetch(
        self,
        fragment_id: str,
        hook: str,
        request: AnyRequest,
        props: Mapping[str, str] | None = None,
    ) -> FragmentResponse:
        pairs = [[name, value] for name, value in (props or {}).items()]
        serialized = request.serialize()
        form = request.form if hook == "control" else None

        if self.channel is not None and form is None:
            return await self.channel.call(fragment_id, hook, pairs, request=serialized)

        headers = {REQUEST_HEADER: serialized, PROPS_HEADER: json.dumps(pairs)}
        if self.cookies:
            headers["Cookie"] = self.cookies.header()
        path = fragment_path(fragment_id, hook)
        logger.debug("Fetching %s from the origin", path)
        if form is not None:
            response = await self.http.post(path, data=dict(form), headers=headers)
        else:
            response = await self.http.get(path, headers=headers)
        return FragmentResponse(response.status_code, response.headers, response.text)

    async def control(
        self,
        fragment_id: str,
        request: AnyRequest,
        props: Mapping[str, str] | None = None,
    ) -> Outcome:
        """Run a control hook remotely and fold its effects into ``request``."""
        response = await self.fetch(fragment_id, "control", request, props)
        if response.status == 204:
            return Redirected(
                response.headers.get(LOCATION_HEADER, "/"),
                int(response.headers.get(STATUS_HEADER, "302")),
            )
        if not response.ok:
            return ErrorStatus(response.status)

        updated = response.headers.get(REQUEST_HEADER)
        if updated:
            request.update_from(PageRequest.deserialize(updated))
        for cookie in json.loads(response.headers.get(SET_COOKIE_HEADER) or "[]"):
            self.cookies.write(cookie)
        return Ok()

    async def render(
        self,
        fragment_id: str,
        element: Tag,
        request: AnyRequest,
        props: Mapping[str, str] | None = None,
    ) -> None:
        """Replace the content of ``element`` with the fragment rendered remotely."""
        response = await self.fetch(fragment_id, "render", request, props)
        if not response.ok:
            raise HTTPError(response.status)
        replace_children(element, response.body)
        self.tree.seed(element)
        if is_placeholder(element):
            self.tree.mark_fresh(element)


__all__ = ["FragmentResponse", "OriginLoader"]
