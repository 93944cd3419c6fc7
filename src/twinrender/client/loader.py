"""Client loader: renders cached fragments in place, defers the rest to the origin."""

from __future__ import annotations

from collections.abc import Mapping
import logging
from typing import TYPE_CHECKING

from bs4.element import Tag

from ..core.exceptions import FragmentNotFoundError
from ..core.fragments import FragmentHooks
from ..core.loader import Loader, placeholder_target
from ..core.outcomes import Outcome
from .strategy import ClientStrategy


if TYPE_CHECKING:  # pragma: no cover - typing only
    from ..core.request import AnyRequest
    from .app import ClientApplication


logger = logging.getLogger(__name__)


class ClientLoader(Loader):
    """Loader bound to one :class:`ClientApplication`."""

    def __init__(self, app: ClientApplication) -> None:
        super().__init__(bindings=app.config.bindings.keys(), emitter=app.emitter)
        self.app = app

    def hooks(self, fragment_id: str) -> FragmentHooks:
        hooks = self.app.cache.peek(fragment_id)
        if hooks is None:
            raise FragmentNotFoundError(fragment_id)
        return hooks

    def strategy(self, request: AnyRequest) -> ClientStrategy:
        return ClientStrategy(request, self.app)

    async def control(
        self,
        fragment_id: str,
        request: AnyRequest,
        props: Mapping[str, str] | None = None,
    ) -> Outcome:
        if self.app.cache.peek(fragment_id) is None:
            return await self.app.origin.control(fragment_id, request, props)
        return await super().control(fragment_id, request, props)

    async def render(
        self,
        fragment_id: str,
        request: AnyRequest,
        props: Mapping[str, str] | None = None,
        element: Tag | None = None,
    ) -> Tag:
        """Render ``fragment_id`` into ``element`` (the whole document by default)."""
        target = self.app.document if element is None else element
        node = self.app.tree.node(target)
        if self.app.cache.peek(fragment_id) is None or (node is not None and node.requires_fetch):
            logger.debug("Rendering '%s' on the origin", fragment_id)
            await self.app.origin.render(fragment_id, target, request, props)
            return target
        await self.compose(fragment_id, target, request, props)
        return target

    async def render_placeholder(self, placeholder: Tag, request: AnyRequest) -> None:
        fragment_id, props = placeholder_target(placeholder)
        if fragment_id is None:
            return
        self.app.tree.observe(placeholder)
        await self.render(fragment_id, request, props, element=placeholder)


__all__ = ["ClientLoader"]
