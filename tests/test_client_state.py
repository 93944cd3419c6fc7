from __future__ import annotations

import asyncio

import pytest

from twinrender.client.cache import FragmentCache
from twinrender.client.cookies import CookieStore
from twinrender.client.tree import FragmentTree, parse_interval
from twinrender.core.element import parse_html
from twinrender.core.exceptions import FragmentNotFoundError
from twinrender.core.fragments import FragmentHooks

from conftest import RecordingEmitter


def test_cookie_store_applies_writes() -> None:
    store = CookieStore("a=1; b=2")

    store.write("a=updated%20value; path=/; max-age=60")
    store.write("c=3")
    store.write("b=; max-age=0")
    store.write("invalid")

    assert dict(store) == {"a": "updated value", "c": "3"}
    assert store.header() == "a=updated%20value; c=3"


def test_cookie_store_honours_expires() -> None:
    store = CookieStore({"old": "1", "new": "1"})

    store.write("old=1; expires=Thu, 01 Jan 1970 00:00:00 GMT")
    store.write("new=2; expires=Fri, 01 Jan 2100 00:00:00 GMT")

    assert dict(store) == {"new": "2"}


def test_tree_flags_new_and_renamed_placeholders() -> None:
    soup = parse_html(
        '<twin-fragment name="a" data-x="1"></twin-fragment>'
        '<twin-fragment name="b"></twin-fragment>'
    )
    first, second = soup.find_all("twin-fragment")
    tree = FragmentTree()

    assert tree.observe(first).requires_fetch is True

    tree.seed(soup)
    assert tree.node(first).requires_fetch is False
    assert tree.node(second).requires_fetch is False

    first["data-x"] = "2"
    node = tree.observe(first)
    assert node.requires_fetch is False
    assert node.props == {"x": "2"}

    first["name"] = "c"
    assert tree.observe(first).requires_fetch is True
    assert tree.mark_fresh(first).requires_fetch is False


def test_tree_prunes_detached_placeholders() -> None:
    soup = parse_html('<div><twin-fragment name="a"></twin-fragment></div>')
    placeholder = soup.find("twin-fragment")
    tree = FragmentTree()
    tree.seed(soup)

    placeholder.extract()
    tree.prune(soup)

    assert len(tree) == 0
    assert tree.node(placeholder) is None
    assert tree.present_ids(soup) == {"root"}


@pytest.mark.parametrize(
    ("value", "seconds"),
    [("250", 0.25), ("250ms", 0.25), ("2s", 2.0), ("1.5 m", 90.0), ("1h", 3600.0)],
)
def test_parse_interval_units(value: str, seconds: float) -> None:
    assert parse_interval(value) == pytest.approx(seconds)


@pytest.mark.parametrize("value", [None, "", "0", "soon", "-5s"])
def test_parse_interval_ignores_unusable_values(value) -> None:
    assert parse_interval(value) is None


def test_tree_tracks_refresh_intervals() -> None:
    soup = parse_html('<twin-fragment name="a" twin-timeout="5s"></twin-fragment>')
    placeholder = soup.find("twin-fragment")
    tree = FragmentTree()

    assert tree.observe(placeholder).interval == 5.0
    placeholder["twin-timeout"] = "1s"
    assert tree.observe(placeholder).interval == 1.0
    del placeholder["twin-timeout"]
    assert tree.observe(placeholder).interval is None
    assert "twin-timeout" not in tree.observe(placeholder).props


@pytest.mark.asyncio
async def test_pruning_cancels_refreshes() -> None:
    soup = parse_html('<div><twin-fragment name="a"></twin-fragment></div>')
    placeholder = soup.find("twin-fragment")
    tree = FragmentTree()
    node = tree.mark_fresh(placeholder)
    task = asyncio.create_task(asyncio.sleep(60))
    node.refresh = task

    placeholder.extract()
    tree.prune(soup)

    with pytest.raises(asyncio.CancelledError):
        await task
    assert node.refresh is None


def test_tree_present_ids_include_nested_placeholders() -> None:
    soup = parse_html(
        '<twin-fragment name="a"><twin-fragment name="b"></twin-fragment></twin-fragment>'
        "<twin-fragment></twin-fragment>"
    )

    assert FragmentTree().present_ids(soup) == {"root", "a", "b"}


@pytest.mark.asyncio
async def test_cache_sync_loads_and_evicts_together() -> None:
    emitter = RecordingEmitter()
    hooks = {name: FragmentHooks() for name in ("root", "a", "b")}

    async def load_b() -> FragmentHooks:
        return hooks["b"]

    cache = FragmentCache(
        {"root": lambda: hooks["root"], "a": lambda: hooks["a"], "b": load_b}, emitter=emitter
    )

    assert await cache.sync({"root", "a"}) == (["root", "a"], [])
    assert await cache.sync({"root", "b", "unknown"}) == (["b"], ["a"])
    assert await cache.sync({"root", "b"}) == ([], [])

    assert cache.ids() == {"root", "b"}
    assert cache.peek("b") is hooks["b"]
    assert cache.peek("a") is None
    assert emitter.names() == ["cache_sync", "cache_sync"]


@pytest.mark.asyncio
async def test_cache_resolve_loads_on_demand() -> None:
    hooks = FragmentHooks()
    cache = FragmentCache({"a": lambda: hooks})

    assert await cache.resolve("a") is hooks
    assert "a" in cache
    with pytest.raises(FragmentNotFoundError):
        await cache.resolve("missing")


@pytest.mark.asyncio
async def test_failed_loads_leave_the_cache_untouched() -> None:
    def broken() -> FragmentHooks:
        raise RuntimeError("cannot load")

    cache = FragmentCache({"a": lambda: FragmentHooks(), "b": broken})
    await cache.sync({"a"})

    with pytest.raises(RuntimeError):
        await cache.sync({"b"})

    assert cache.ids() == {"a"}
