"""Bounded retry loop shared by the request handler and the client application.

An HTTP error re-runs the request with the new status so templates can render
an error page. Each attempt consumes one unit of a :class:`RetryBudget`; a
second consecutive 500 or an empty budget ends the loop with
:class:`~twinrender.core.outcomes.Exhausted`, which callers answer with the
literal fallback body.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from .diagnostics import DiagnosticEmitter, NullEmitter
from .outcomes import ErrorStatus, Exhausted, Interrupt, Outcome, Redirected


if TYPE_CHECKING:  # pragma: no cover - typing only
    from .loader import Loader
    from .request import AnyRequest


DEFAULT_RETRY_BUDGET = 5
FALLBACK_STATUS = 500
FALLBACK_BODY = "500 Internal Server Error"


class RetryBudget:
    """Attempts left for one navigation, redirects included."""

    def __init__(self, attempts: int = DEFAULT_RETRY_BUDGET) -> None:
        if attempts < 1:
            raise ValueError("A retry budget needs at least one attempt")
        self.remaining = attempts

    def take(self) -> bool:
        """Consume one attempt; return False when none is left."""
        if self.remaining <= 0:
            return False
        self.remaining -= 1
        return True

    def __bool__(self) -> bool:
        return self.remaining > 0

    def __repr__(self) -> str:
        return f"RetryBudget(remaining={self.remaining})"


async def handle_with_recovery(
    request: AnyRequest,
    loader: Loader,
    *,
    budget: RetryBudget,
    emitter: DiagnosticEmitter | None = None,
) -> Outcome:
    """Handle ``request`` until it succeeds, redirects, or runs out of attempts."""
    emitter = emitter or NullEmitter()
    pending: int | None = None

    while budget.take():
        try:
            if pending is None:
                outcome = await request.handle(loader)
            else:
                outcome = await request.error(loader, pending)
        except Interrupt as interrupt:
            outcome = interrupt.outcome()
        except Exception as exc:
            emitter.error(f"Unhandled failure while serving {request.url}", exc)
            outcome = ErrorStatus(FALLBACK_STATUS)

        if isinstance(outcome, Redirected):
            emitter.event(
                "redirect",
                {"url": request.url, "location": outcome.location, "status": outcome.status},
            )
            return outcome
        if not isinstance(outcome, ErrorStatus):
            return outcome
        if not request.recoverable:
            return outcome
        if outcome.status == FALLBACK_STATUS and request.status == FALLBACK_STATUS:
            emitter.event("fallback", {"url": request.url, "reason": "repeated 500"})
            return Exhausted("repeated 500")

        pending = outcome.status
        emitter.event(
            "recovery",
            {"url": request.url, "status": pending, "remaining": budget.remaining},
        )

    emitter.event("fallback", {"url": request.url, "reason": "retry budget exhausted"})
    return Exhausted("retry budget exhausted")


__all__ = [
    "DEFAULT_RETRY_BUDGET",
    "FALLBACK_BODY",
    "FALLBACK_STATUS",
    "RetryBudget",
    "handle_with_recovery",
]
