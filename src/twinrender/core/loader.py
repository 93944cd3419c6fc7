"""Recursive fragment loader shared by both substrates.

The base :class:`Loader` owns hook dispatch and the composition order of a
fragment subtree: render hook, queued transforms, placeholder discovery, then
every child concurrently. Substrates decide where hooks come from, which
strategy a hook sees, and how a child placeholder gets its content.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
import asyncio
from collections.abc import Iterable, Mapping
import logging
from typing import TYPE_CHECKING, Any

from bs4.element import Tag

from .context import ControlContext, HookContext, HookKind, RenderContext
from .diagnostics import DiagnosticEmitter, NullEmitter
from .exceptions import InterruptInRenderError
from .fragments import FragmentHooks, owned_placeholders, props_from_attributes
from .outcomes import Interrupt, Ok, Outcome
from .utils import maybe_await


if TYPE_CHECKING:  # pragma: no cover - typing only
    from .request import AnyRequest
    from .strategy import Strategy


logger = logging.getLogger(__name__)

CONTEXT_TYPES: dict[HookKind, type[HookContext]] = {
    HookKind.CONTROL: ControlContext,
    HookKind.RENDER: RenderContext,
}


class Loader(ABC):
    """Run fragment hooks and compose rendered fragments."""

    def __init__(
        self,
        *,
        bindings: Iterable[str] = (),
        emitter: DiagnosticEmitter | None = None,
    ) -> None:
        self.bindings = frozenset(bindings)
        self.emitter = emitter or NullEmitter()

    @abstractmethod
    def hooks(self, fragment_id: str) -> FragmentHooks:
        """Return the hooks of ``fragment_id``."""

    @abstractmethod
    def strategy(self, request: AnyRequest) -> Strategy:
        """Return a fresh strategy for one hook invocation."""

    @abstractmethod
    async def render(
        self,
        fragment_id: str,
        request: AnyRequest,
        props: Mapping[str, str] | None = None,
    ) -> Any:
        """Render ``fragment_id`` and its descendants."""

    @abstractmethod
    async def render_placeholder(self, placeholder: Tag, request: AnyRequest) -> None:
        """Fill ``placeholder`` with the rendered child it names."""

    def context(
        self,
        kind: HookKind,
        request: AnyRequest,
        strategy: Strategy,
        props: Mapping[str, str] | None = None,
    ) -> HookContext:
        return CONTEXT_TYPES[kind](
            request, strategy, loader=self, props=props, bindings=self.bindings
        )

    async def control(
        self,
        fragment_id: str,
        request: AnyRequest,
        props: Mapping[str, str] | None = None,
    ) -> Outcome:
        """Run the control hook of ``fragment_id``; a missing hook is a no-op."""
        hook = self.hooks(fragment_id).control
        if hook is None:
            return Ok()
        context = self.context(HookKind.CONTROL, request, self.strategy(request), props)
        try:
            await maybe_await(hook(context))
        except Interrupt as interrupt:
            logger.debug("Control hook of '%s' interrupted: %s", fragment_id, interrupt)
            return interrupt.outcome()
        return Ok()

    async def compose(
        self,
        fragment_id: str,
        root: Tag,
        request: AnyRequest,
        props: Mapping[str, str] | None = None,
    ) -> None:
        """Run the render pipeline of ``fragment_id`` over ``root``.

        ``root`` already holds the fragment markup. Transforms queued by the
        render hook only see elements owned by this fragment, and children
        are discovered after every transform has run.
        """
        strategy = self.strategy(request)
        hook = self.hooks(fragment_id).render
        if hook is not None:
            context = self.context(HookKind.RENDER, request, strategy, props)
            try:
                await maybe_await(hook(context))
            except Interrupt as interrupt:
                raise InterruptInRenderError(
                    f"Render hook of '{fragment_id}' raised {interrupt}"
                ) from interrupt
        await strategy.apply_transforms(root)

        placeholders = owned_placeholders(root)
        if placeholders:
            await asyncio.gather(
                *(self.render_placeholder(placeholder, request) for placeholder in placeholders)
            )


def placeholder_target(placeholder: Tag) -> tuple[str | None, dict[str, str]]:
    """Return the fragment id and props carried by a placeholder."""
    name = placeholder.get("name")
    if isinstance(name, list):
        name = " ".join(name)
    return (name or None), props_from_attributes(placeholder.attrs)


__all__ = ["CONTEXT_TYPES", "Loader", "placeholder_target"]
