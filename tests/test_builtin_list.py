from __future__ import annotations

import json

import pytest

from twinrender.builtin_fragments import BUILTIN_FRAGMENT_DIR
from twinrender.core.context import RenderContext
from twinrender.core.element import parse_html
from twinrender.core.fragments import FragmentDefinition
from twinrender.core.request import PageRequest
from twinrender.server.strategy import ServerStrategy


LIST = FragmentDefinition.from_directory(BUILTIN_FRAGMENT_DIR / "list", prefix="twinrender")


async def _render(markup: str, props: dict[str, str]):
    soup = parse_html(markup)
    request = PageRequest("https://example.com/")
    strategy = ServerStrategy(request)
    LIST.load().render(RenderContext(request, strategy, props=props))
    await strategy.apply_transforms(soup)
    return soup


def test_list_is_namespaced() -> None:
    assert LIST.id == "twinrender:list"


@pytest.mark.asyncio
async def test_items_follow_the_mapping_order() -> None:
    entries = {"x": {"value": 1, "tags": ["a"]}, "y": {"value": "two"}}

    soup = await _render(LIST.template, {"fragment": "item", "iter": json.dumps(entries)})
    placeholders = soup.select("ul.twin-list > li > twin-fragment")

    assert [tag["data-id"] for tag in placeholders] == ["x", "y"]
    assert {tag["name"] for tag in placeholders} == {"item"}
    assert placeholders[0]["data-value"] == "1"
    assert placeholders[0]["data-tags"] == '["a"]'
    assert placeholders[1]["data-value"] == "two"


@pytest.mark.asyncio
async def test_existing_items_are_reused_by_id() -> None:
    markup = (
        '<ul class="twin-list">'
        '<li><twin-fragment name="item" data-id="a"><b>kept</b></twin-fragment></li>'
        '<li><twin-fragment name="item" data-id="gone"></twin-fragment></li>'
        "</ul>"
    )
    entries = {"b": {"value": 2}, "a": {"value": 1}}

    soup = await _render(markup, {"fragment": "item", "iter": json.dumps(entries)})
    placeholders = soup.select("twin-fragment")

    assert [tag["data-id"] for tag in placeholders] == ["b", "a"]
    assert placeholders[1].find("b").get_text() == "kept"
    assert placeholders[1]["data-value"] == "1"
    assert placeholders[0].find("b") is None


@pytest.mark.asyncio
async def test_list_without_fragment_prop_is_untouched() -> None:
    soup = await _render(LIST.template, {"iter": "{}"})

    assert soup.find("li") is None
