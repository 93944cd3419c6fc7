"""Client application: the live document and everything that keeps it current.

A :class:`ClientApplication` resumes from a server-rendered page, then runs
navigations through the same recovery loop as the server. Cached fragments
re-render in place; anything else is fetched from the origin::

    async with httpx.AsyncClient(base_url="https://example.com") as http:
        app = ClientApplication.from_document(html, registry, http)
        await app.start()
        await app.navigate("/about")
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
import logging
from typing import Any

from bs4 import BeautifulSoup
from bs4.element import Tag
import httpx

from ..core.config import AppConfig
from ..core.diagnostics import DiagnosticEmitter, NullEmitter
from ..core.element import parse_html
from ..core.fragments import FragmentRegistry
from ..core.headers import INITIAL_REQUEST_ID
from ..core.loader import placeholder_target
from ..core.outcomes import REDIRECT_STATUSES, Exhausted, Outcome, Redirected
from ..core.recovery import FALLBACK_BODY, RetryBudget, handle_with_recovery
from ..core.request import Environment, PageRequest
from .cache import FragmentCache
from .channel import DuplexChannel
from .cookies import CookieStore
from .loader import ClientLoader
from .origin import OriginLoader
from .tree import FragmentNode, FragmentTree


logger = logging.getLogger(__name__)


def follow_redirect(
    method: str, form: Mapping[str, Any] | None, status: int
) -> tuple[str, Mapping[str, Any] | None]:
    """Return the method and form to use after a redirect with ``status``."""
    if status not in REDIRECT_STATUSES:
        raise ValueError(f"Cannot follow a redirect with status {status}")
    if status == 303:
        return "GET", None
    return method, form


class ClientApplication:
    """State of one client session: document, cookies, history and fragment cache."""

    def __init__(
        self,
        registry: FragmentRegistry,
        http: httpx.AsyncClient,
        *,
        config: AppConfig | None = None,
        document: BeautifulSoup | None = None,
        request: PageRequest | None = None,
        emitter: DiagnosticEmitter | None = None,
        channel: DuplexChannel | None = None,
    ) -> None:
        self.registry = registry
        self.http = http
        self.config = config or AppConfig()
        self.emitter = emitter or NullEmitter()
        self.document = document if document is not None else parse_html("")
        self.request = request
        self.history: list[str] = [request.url] if request is not None else []
        self.cookies = CookieStore(request.cookies if request is not None else None)
        self.tree = FragmentTree()
        self.cache = FragmentCache(registry.loaders(), emitter=self.emitter)
        self.channel = channel
        self.origin = OriginLoader(http, cookies=self.cookies, tree=self.tree, channel=channel)
        self.loader = ClientLoader(self)
        if request is not None:
            request.env = self.environment()

    @classmethod
    def from_document(
        cls,
        html: str,
        registry: FragmentRegistry,
        http: httpx.AsyncClient,
        **options: Any,
    ) -> ClientApplication:
        """Resume from a server-rendered page carrying its initial request."""
        document = parse_html(html)
        script = document.find("script", id=INITIAL_REQUEST_ID)
        request = None
        if isinstance(script, Tag) and script.string:
            request = PageRequest.deserialize(script.string)
        return cls(registry, http, document=document, request=request, **options)

    def environment(self) -> Environment:
        return Environment(http=self.http)

    async def start(self) -> None:
        """Adopt the placeholders of the current document and warm the cache."""
        self.tree.seed(self.document)
        await self.sync_cache()

    async def sync_cache(self) -> None:
        self.tree.prune(self.document)
        await self.cache.sync(self.tree.present_ids(self.document))
        self.schedule_refreshes()

    def schedule_refreshes(self) -> None:
        """Start, restart or stop the periodic refresh of every placeholder."""
        for node in self.tree.nodes():
            running = node.refresh is not None and not node.refresh.done()
            if running and node.refresh_interval == node.interval:
                continue
            node.cancel_refresh()
            if node.interval is not None:
                node.refresh_interval = node.interval
                node.refresh = asyncio.create_task(self._refresh(node, node.interval))

    async def _refresh(self, node: FragmentNode, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            name, _ = placeholder_target(node.element)
            if name is None:
                continue
            try:
                await self.update(name, node.element)
            except Exception as exc:
                self.emitter.error(f"Periodic refresh of '{name}' failed", exc)

    def new_request(self, url: str, form: Mapping[str, Any] | None = None) -> PageRequest:
        geolocation = self.request.geolocation if self.request is not None else None
        return PageRequest(
            url,
            env=self.environment(),
            form=form,
            cookies=dict(self.cookies),
            geolocation=geolocation,
        )

    def resolve_url(self, url: str | httpx.URL) -> str:
        if self.request is None:
            return str(url)
        return str(httpx.URL(self.request.url).join(str(url)))

    async def navigate(
        self,
        url: str | httpx.URL,
        *,
        method: str = "GET",
        form: Mapping[str, Any] | None = None,
        budget: RetryBudget | None = None,
    ) -> Outcome:
        """Render ``url`` into the live document, following redirects."""
        budget = budget or RetryBudget(self.config.retry_budget)
        target = self.resolve_url(url)
        method = method.upper()

        while True:
            request = self.new_request(target, form if method == "POST" else None)
            outcome = await handle_with_recovery(
                request, self.loader, budget=budget, emitter=self.emitter
            )
            if not isinstance(outcome, Redirected):
                break
            try:
                method, form = follow_redirect(method, form, outcome.status)
            except ValueError as exc:
                self.emitter.error(f"Unsupported redirect from {target}", exc)
                outcome = Exhausted("unsupported redirect")
                break
            target = str(httpx.URL(target).join(outcome.location))
            if not budget:
                self.emitter.event("fallback", {"url": target, "reason": "retry budget exhausted"})
                outcome = Exhausted("retry budget exhausted")
                break

        if isinstance(outcome, Exhausted):
            self.document = parse_html(FALLBACK_BODY)
            self.tree.clear()
            self.tree = FragmentTree()
            self.origin.tree = self.tree
            return outcome

        self.request = request
        self.history.append(target)
        await self.sync_cache()
        return outcome

    async def submit(self, url: str | httpx.URL, form: Mapping[str, Any]) -> Outcome:
        """Navigate with a form submission."""
        return await self.navigate(url, method="POST", form=form)

    async def update(self, fragment_id: str, element: Tag) -> Tag:
        """Re-render one placeholder of the live document against the current request."""
        if self.request is None:
            raise RuntimeError("The application has no current request")
        node = self.tree.observe(element)
        rendered = await self.loader.render(
            fragment_id, self.request, node.props, element=element
        )
        await self.sync_cache()
        return rendered

    async def close(self) -> None:
        self.tree.clear()
        if self.channel is not None:
            await self.channel.close()


__all__ = ["ClientApplication", "follow_redirect"]
