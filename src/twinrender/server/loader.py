"""Server loader: renders fragments from their registered templates."""

from __future__ import annotations

from collections.abc import Mapping
import logging
from typing import TYPE_CHECKING

from bs4 import BeautifulSoup
from bs4.element import Tag

from ..core.diagnostics import DiagnosticEmitter
from ..core.element import parse_html, replace_children
from ..core.fragments import FragmentHooks, FragmentRegistry
from ..core.loader import Loader, placeholder_target
from .strategy import ServerStrategy


if TYPE_CHECKING:  # pragma: no cover - typing only
    from ..core.request import AnyRequest


logger = logging.getLogger(__name__)


class ServerLoader(Loader):
    """Compose documents from the fragment registry."""

    def __init__(
        self,
        registry: FragmentRegistry,
        *,
        bindings: Mapping[str, str] | None = None,
        emitter: DiagnosticEmitter | None = None,
    ) -> None:
        super().__init__(bindings=(bindings or {}).keys(), emitter=emitter)
        self.registry = registry

    def hooks(self, fragment_id: str) -> FragmentHooks:
        return self.registry.require(fragment_id).load()

    def strategy(self, request: AnyRequest) -> ServerStrategy:
        return ServerStrategy(request)

    async def render(
        self,
        fragment_id: str,
        request: AnyRequest,
        props: Mapping[str, str] | None = None,
    ) -> BeautifulSoup:
        """Render ``fragment_id`` and all of its descendants into a new tree."""
        soup = parse_html(self.registry.require(fragment_id).template)
        await self.compose(fragment_id, soup, request, props)
        return soup

    async def render_placeholder(self, placeholder: Tag, request: AnyRequest) -> None:
        fragment_id, props = placeholder_target(placeholder)
        if fragment_id is None:
            logger.warning("Ignoring placeholder without a fragment name: %s", placeholder)
            return
        replace_children(placeholder, await self.render(fragment_id, request, props))


__all__ = ["ServerLoader"]
