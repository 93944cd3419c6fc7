from __future__ import annotations

import pytest

from twinrender.core.fragments import FragmentDefinition
from twinrender.core.outcomes import ErrorStatus, Exhausted, HTTPError, Ok, Redirected
from twinrender.core.recovery import RetryBudget, handle_with_recovery
from twinrender.core.request import FragmentRequest, PageRequest
from twinrender.server.loader import ServerLoader

from conftest import RecordingEmitter, make_registry


class Counter:
    def __init__(self) -> None:
        self.control = 0
        self.render = 0


def _loader(control, render=None) -> ServerLoader:
    return ServerLoader(
        make_registry(
            FragmentDefinition(id="root", template="<main></main>", control=control, render=render)
        )
    )


def test_budget_needs_one_attempt() -> None:
    with pytest.raises(ValueError):
        RetryBudget(0)

    budget = RetryBudget(2)
    assert budget.take() and budget.take()
    assert not budget.take()
    assert not budget


@pytest.mark.asyncio
async def test_error_status_reruns_with_that_status() -> None:
    calls = Counter()
    emitter = RecordingEmitter()

    def control(ctx):
        calls.control += 1
        if ctx.error() == 200:
            ctx.error(404)

    def render(ctx):
        calls.render += 1

    request = PageRequest("https://example.com/missing")
    outcome = await handle_with_recovery(
        request, _loader(control, render), budget=RetryBudget(5), emitter=emitter
    )

    assert isinstance(outcome, Ok)
    assert request.status == 404
    assert (calls.control, calls.render) == (2, 1)
    assert emitter.names() == ["recovery"]
    assert emitter.events[0][1]["status"] == 404


@pytest.mark.asyncio
async def test_repeated_500_stops_after_two_attempts() -> None:
    calls = Counter()
    emitter = RecordingEmitter()

    def control(ctx):
        calls.control += 1
        raise RuntimeError("broken")

    request = PageRequest("https://example.com/")
    outcome = await handle_with_recovery(
        request, _loader(control), budget=RetryBudget(5), emitter=emitter
    )

    assert outcome == Exhausted("repeated 500")
    assert calls.control == 2
    assert len(emitter.errors) == 2
    assert isinstance(emitter.errors[0][1], RuntimeError)
    assert emitter.names() == ["recovery", "fallback"]


@pytest.mark.asyncio
async def test_budget_of_one_allows_a_single_attempt() -> None:
    calls = Counter()

    def control(ctx):
        calls.control += 1
        ctx.error(404)

    outcome = await handle_with_recovery(
        PageRequest("https://example.com/"), _loader(control), budget=RetryBudget(1)
    )

    assert outcome == Exhausted("retry budget exhausted")
    assert calls.control == 1


@pytest.mark.asyncio
async def test_changing_errors_consume_the_whole_budget() -> None:
    calls = Counter()

    def control(ctx):
        calls.control += 1
        ctx.error(400 + calls.control)

    budget = RetryBudget(3)
    outcome = await handle_with_recovery(
        PageRequest("https://example.com/"), _loader(control), budget=budget
    )

    assert outcome == Exhausted("retry budget exhausted")
    assert calls.control == 3
    assert budget.remaining == 0


@pytest.mark.asyncio
async def test_redirect_skips_rendering() -> None:
    calls = Counter()
    emitter = RecordingEmitter()

    def control(ctx):
        ctx.url("/login")

    def render(ctx):
        calls.render += 1

    outcome = await handle_with_recovery(
        PageRequest("https://example.com/account"),
        _loader(control, render),
        budget=RetryBudget(5),
        emitter=emitter,
    )

    assert outcome == Redirected("https://example.com/login", 302)
    assert calls.render == 0
    assert emitter.names() == ["redirect"]


@pytest.mark.asyncio
async def test_render_failures_fall_back() -> None:
    def render(ctx):
        raise HTTPError(404)

    request = PageRequest("https://example.com/")
    outcome = await handle_with_recovery(
        request, _loader(None, render), budget=RetryBudget(5)
    )

    assert outcome == Exhausted("repeated 500")
    assert request.status == 500


@pytest.mark.asyncio
async def test_fragment_requests_are_not_rerun() -> None:
    calls = Counter()

    def control(ctx):
        calls.control += 1
        ctx.error(404)

    page = PageRequest("https://example.com/")
    outcome = await handle_with_recovery(
        FragmentRequest(page, "root", "control"), _loader(control), budget=RetryBudget(5)
    )

    assert outcome == ErrorStatus(404)
    assert calls.control == 1
    assert page.status == 200
