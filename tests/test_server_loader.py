from __future__ import annotations

import asyncio

import pytest

from twinrender.core.exceptions import FragmentNotFoundError, InterruptInRenderError
from twinrender.core.fragments import FragmentDefinition
from twinrender.core.loader import Loader
from twinrender.core.outcomes import ErrorStatus, HTTPError, Ok, Redirected
from twinrender.core.request import PageRequest
from twinrender.server.loader import ServerLoader

from conftest import make_registry


def _request() -> PageRequest:
    return PageRequest("https://example.com/")


@pytest.mark.asyncio
async def test_render_runs_hook_then_transforms_then_children() -> None:
    order: list[str] = []

    def parent_render(ctx):
        order.append("parent hook")
        ctx.select("#title", lambda el: order.append("parent transform"))

    def child_render(ctx):
        order.append("child hook")

    registry = make_registry(
        FragmentDefinition(
            id="parent",
            template='<h1 id="title"></h1><twin-fragment name="child"></twin-fragment>',
            render=parent_render,
        ),
        FragmentDefinition(id="child", template="<p>child</p>", render=child_render),
    )

    soup = await ServerLoader(registry).render("parent", _request())

    assert order == ["parent hook", "parent transform", "child hook"]
    assert soup.find("twin-fragment").find("p").get_text() == "child"


@pytest.mark.asyncio
async def test_transforms_only_touch_owned_elements() -> None:
    def parent_render(ctx):
        ctx.select("p", lambda el: el.text("parent"))

    registry = make_registry(
        FragmentDefinition(
            id="parent",
            template='<p id="a"></p><twin-fragment><p id="b">nested</p></twin-fragment>',
            render=parent_render,
        ),
    )

    soup = await ServerLoader(registry).render("parent", _request())

    assert soup.find(id="a").get_text() == "parent"
    assert soup.find(id="b").get_text() == "nested"


@pytest.mark.asyncio
async def test_parent_transforms_can_retarget_placeholders() -> None:
    def parent_render(ctx):
        ctx.select("twin-fragment", lambda el: el.attr("name", "second"))

    registry = make_registry(
        FragmentDefinition(
            id="parent",
            template='<twin-fragment name="first" data-label="x"></twin-fragment>',
            render=parent_render,
        ),
        FragmentDefinition(id="first", template="<p>first</p>"),
        FragmentDefinition(
            id="second",
            template="<p></p>",
            render=lambda ctx: ctx.select("p", lambda el: el.text(ctx.data("label"))),
        ),
    )

    soup = await ServerLoader(registry).render("parent", _request())

    assert soup.find("p").get_text() == "x"


@pytest.mark.asyncio
async def test_async_hooks_and_callbacks_are_awaited() -> None:
    async def render(ctx):
        await asyncio.sleep(0)

        async def fill(el):
            await asyncio.sleep(0)
            el.text("async")

        ctx.select("span", fill)

    registry = make_registry(FragmentDefinition(id="a", template="<span></span>", render=render))

    soup = await ServerLoader(registry).render("a", _request())

    assert soup.find("span").get_text() == "async"


@pytest.mark.asyncio
async def test_siblings_render_concurrently() -> None:
    started: list[str] = []
    both_started = asyncio.Event()

    async def render(ctx):
        started.append(ctx.data("n"))
        if len(started) == 2:
            both_started.set()
        await asyncio.wait_for(both_started.wait(), 1)

    registry = make_registry(
        FragmentDefinition(
            id="parent",
            template=(
                '<twin-fragment name="child" data-n="1"></twin-fragment>'
                '<twin-fragment name="child" data-n="2"></twin-fragment>'
            ),
        ),
        FragmentDefinition(id="child", template="<i></i>", render=render),
    )

    await ServerLoader(registry).render("parent", _request())

    assert sorted(started) == ["1", "2"]


@pytest.mark.asyncio
async def test_placeholder_without_name_is_left_alone() -> None:
    registry = make_registry(
        FragmentDefinition(id="parent", template="<twin-fragment><b>kept</b></twin-fragment>")
    )

    soup = await ServerLoader(registry).render("parent", _request())

    assert soup.find("b").get_text() == "kept"


@pytest.mark.asyncio
async def test_unknown_child_fragment_raises() -> None:
    registry = make_registry(
        FragmentDefinition(id="parent", template='<twin-fragment name="ghost"></twin-fragment>')
    )

    with pytest.raises(FragmentNotFoundError):
        await ServerLoader(registry).render("parent", _request())


@pytest.mark.asyncio
async def test_interrupt_in_render_hook_is_an_error() -> None:
    def render(ctx):
        raise HTTPError(404)

    registry = make_registry(FragmentDefinition(id="a", render=render))

    with pytest.raises(InterruptInRenderError):
        await ServerLoader(registry).render("a", _request())


@pytest.mark.asyncio
async def test_control_converts_interrupts_to_outcomes() -> None:
    async def redirecting(ctx):
        await ctx.pass_("inner")

    registry = make_registry(
        FragmentDefinition(id="outer", control=redirecting),
        FragmentDefinition(id="inner", control=lambda ctx: ctx.url("/login", 303)),
        FragmentDefinition(id="failing", control=lambda ctx: ctx.error(403)),
        FragmentDefinition(id="plain", template="<p></p>"),
    )
    loader = ServerLoader(registry)

    assert await loader.control("outer", _request()) == Redirected(
        "https://example.com/login", 303
    )
    assert await loader.control("failing", _request()) == ErrorStatus(403)
    assert await loader.control("plain", _request()) == Ok()


@pytest.mark.asyncio
async def test_control_hooks_share_the_request() -> None:
    def outer(ctx):
        ctx.title("Outer")

    async def root(ctx):
        await ctx.pass_("outer", {"x": "1"})
        ctx.description(f"after {ctx.title()}")

    registry = make_registry(
        FragmentDefinition(id="root", control=root),
        FragmentDefinition(id="outer", control=outer),
    )
    request = _request()

    await ServerLoader(registry).control("root", request)

    assert request.title == "Outer"
    assert request.description == "after Outer"


def test_loader_substrates_must_provide_every_hook() -> None:
    class HooksOnly(Loader):
        def hooks(self, fragment_id):
            raise AssertionError

    with pytest.raises(TypeError):
        Loader()
    with pytest.raises(TypeError):
        HooksOnly()
