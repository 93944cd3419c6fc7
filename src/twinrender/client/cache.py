"""Client cache of fragment hooks, kept in step with the live document."""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterable, Mapping
from typing import Any

from ..core.diagnostics import DiagnosticEmitter, NullEmitter
from ..core.exceptions import FragmentNotFoundError
from ..core.fragments import FragmentHooks
from ..core.utils import maybe_await


HookLoader = Callable[[], Any]


class FragmentCache:
    """Hooks of the fragments currently present in the document.

    ``loaders`` maps every known fragment id to a callable returning its
    :class:`FragmentHooks` (or an awaitable of them).
    """

    def __init__(
        self,
        loaders: Mapping[str, HookLoader],
        *,
        emitter: DiagnosticEmitter | None = None,
    ) -> None:
        self._loaders = loaders
        self._entries: dict[str, FragmentHooks] = {}
        self.emitter = emitter or NullEmitter()

    def __contains__(self, fragment_id: object) -> bool:
        return fragment_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def ids(self) -> frozenset[str]:
        return frozenset(self._entries)

    def peek(self, fragment_id: str) -> FragmentHooks | None:
        """Return cached hooks without loading anything."""
        return self._entries.get(fragment_id)

    async def resolve(self, fragment_id: str) -> FragmentHooks:
        """Return cached hooks, loading them on demand."""
        cached = self._entries.get(fragment_id)
        if cached is not None:
            return cached
        loader = self._loaders.get(fragment_id)
        if loader is None:
            raise FragmentNotFoundError(fragment_id)
        hooks = await maybe_await(loader())
        self._entries[fragment_id] = hooks
        return hooks

    async def sync(self, present: Iterable[str]) -> tuple[list[str], list[str]]:
        """Load hooks for newly present fragments and evict absent ones.

        Every load completes before the cache changes; insertions and
        evictions then happen together without yielding to the event loop.
        Returns the loaded and evicted ids.
        """
        wanted = set(present)
        missing = [
            fragment_id
            for fragment_id in self._loaders
            if fragment_id in wanted and fragment_id not in self._entries
        ]
        loaded = await asyncio.gather(
            *(maybe_await(self._loaders[fragment_id]()) for fragment_id in missing)
        )

        evicted = [fragment_id for fragment_id in self._entries if fragment_id not in wanted]
        for fragment_id in evicted:
            del self._entries[fragment_id]
        self._entries.update(zip(missing, loaded))

        if missing or evicted:
            self.emitter.event("cache_sync", {"loaded": missing, "evicted": evicted})
        return missing, evicted


__all__ = ["FragmentCache", "HookLoader"]
