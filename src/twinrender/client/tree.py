"""Bookkeeping for the placeholders of the live client document."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
import logging
import re

from bs4.element import Tag

from ..core.fragments import PLACEHOLDER_TAG
from ..core.loader import placeholder_target
from ..core.request import ROOT_FRAGMENT


logger = logging.getLogger(__name__)

TIMEOUT_ATTRIBUTE = "twin-timeout"

_INTERVAL_UNITS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0}
_INTERVAL_PATTERN = re.compile(r"\s*(\d+(?:\.\d+)?)\s*(ms|s|m|h)?\s*")


def parse_interval(value: str | None) -> float | None:
    """Return a refresh interval in seconds; bare numbers count milliseconds."""
    if not value:
        return None
    match = _INTERVAL_PATTERN.fullmatch(value)
    if match is None:
        logger.warning("Ignoring unreadable %s value %r", TIMEOUT_ATTRIBUTE, value)
        return None
    seconds = float(match.group(1)) * _INTERVAL_UNITS[match.group(2) or "ms"]
    return seconds if seconds > 0 else None


@dataclass(slots=True)
class FragmentNode:
    """State tracked for one placeholder element."""

    element: Tag
    name: str | None
    props: dict[str, str] = field(default_factory=dict)
    requires_fetch: bool = False
    interval: float | None = None
    refresh: asyncio.Task[None] | None = field(default=None, repr=False)
    refresh_interval: float | None = None

    def cancel_refresh(self) -> None:
        if self.refresh is not None:
            self.refresh.cancel()
        self.refresh = None
        self.refresh_interval = None


class FragmentTree:
    """Track which placeholders hold up-to-date content.

    A placeholder needs its content fetched from the origin when it was
    inserted after the last render or when its ``name`` changed since.
    Placeholders carrying ``twin-timeout`` also record how often they refresh.
    """

    def __init__(self) -> None:
        self._nodes: dict[int, FragmentNode] = {}

    def __len__(self) -> int:
        return len(self._nodes)

    def nodes(self) -> list[FragmentNode]:
        return list(self._nodes.values())

    def node(self, element: Tag) -> FragmentNode | None:
        node = self._nodes.get(id(element))
        if node is None or node.element is not element:
            return None
        return node

    def observe(self, element: Tag) -> FragmentNode:
        """Register ``element`` and flag it when its content is stale."""
        name, props = placeholder_target(element)
        interval = parse_interval(element.get(TIMEOUT_ATTRIBUTE))
        node = self.node(element)
        if node is None:
            node = FragmentNode(element, name, props, requires_fetch=True, interval=interval)
            self._nodes[id(element)] = node
            return node
        if node.name != name:
            node.requires_fetch = True
        node.name = name
        node.props = props
        node.interval = interval
        return node

    def mark_fresh(self, element: Tag) -> FragmentNode:
        """Record that ``element`` holds content rendered for its current name."""
        node = self.observe(element)
        node.requires_fetch = False
        return node

    def seed(self, root: Tag) -> None:
        """Mark every placeholder under ``root`` as fresh."""
        for element in root.find_all(PLACEHOLDER_TAG):
            self.mark_fresh(element)

    def prune(self, root: Tag) -> None:
        """Forget placeholders that are no longer under ``root``."""
        current = {id(element) for element in root.find_all(PLACEHOLDER_TAG)}
        for key in [key for key in self._nodes if key not in current]:
            self._nodes.pop(key).cancel_refresh()

    def clear(self) -> None:
        """Forget every placeholder and stop their refreshes."""
        for node in self._nodes.values():
            node.cancel_refresh()
        self._nodes.clear()

    def present_ids(self, root: Tag) -> set[str]:
        """Return the fragment ids referenced under ``root``, plus the root fragment."""
        present = {ROOT_FRAGMENT}
        for element in root.find_all(PLACEHOLDER_TAG):
            name, _ = placeholder_target(element)
            if name:
                present.add(name)
        return present


__all__ = ["TIMEOUT_ATTRIBUTE", "FragmentNode", "FragmentTree", "parse_interval"]
