"""``twinrender:list``: one list item per entry of a JSON mapping.

Props:

`fragment`
: Fragment rendered inside every item.

`iter`
: JSON object mapping an item id to the props of that item.

Items already in the list are reused by ``data-id`` so a live document keeps
their rendered content; new items start empty and are fetched.
"""

from __future__ import annotations

import json
from typing import Any

from bs4.element import Tag

from twinrender.core.element import Element, parse_html
from twinrender.core.fragments import PLACEHOLDER_TAG


def _prop_value(value: Any) -> str:
    return value if isinstance(value, str) else json.dumps(value)


def _new_item() -> Tag:
    soup = parse_html(f"<li><{PLACEHOLDER_TAG}></{PLACEHOLDER_TAG}></li>")
    return soup.find("li").extract()


def render(ctx: Any) -> None:
    fragment = ctx.data("fragment")
    if not fragment:
        return
    entries = json.loads(ctx.data("iter") or "{}")

    def fill(element: Element) -> None:
        tag = element.tag
        existing: dict[str, Tag] = {}
        for item in tag.find_all("li", recursive=False):
            placeholder = item.find(PLACEHOLDER_TAG)
            if placeholder is not None and placeholder.get("data-id") is not None:
                existing[placeholder["data-id"]] = item

        items = []
        for item_id, props in entries.items():
            item = existing.get(str(item_id)) or _new_item()
            placeholder = item.find(PLACEHOLDER_TAG)
            placeholder["name"] = fragment
            placeholder["data-id"] = str(item_id)
            for key, value in (props or {}).items():
                placeholder[f"data-{key}"] = _prop_value(value)
            items.append(item)

        tag.clear()
        for item in items:
            tag.append(item)

    ctx.select("ul.twin-list", fill)
