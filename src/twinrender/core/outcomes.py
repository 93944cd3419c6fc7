"""Interrupts raised by hooks and the explicit outcomes that replace them.

Control hooks leave the pipeline early by raising :class:`Redirect` or
:class:`HTTPError` from a context setter. Those exceptions only ever travel
through user code: the loader catches them at the hook boundary and returns an
:data:`Outcome` instead, which the loader, request and handler layers inspect
explicitly.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


REDIRECT_STATUSES = frozenset({301, 302, 303, 307, 308})


def is_redirect_status(status: int) -> bool:
    """Return True when ``status`` lies in the 3xx range."""
    return status >= 300 and status <= 399


@dataclass(frozen=True, slots=True)
class Ok:
    """The hook or pipeline step completed; ``value`` carries its result."""

    value: Any = None


@dataclass(frozen=True, slots=True)
class Redirected:
    """The pipeline must stop and send the client to ``location``."""

    location: str
    status: int = 302

    def interrupt(self) -> Redirect:
        return Redirect(self.location, self.status)


@dataclass(frozen=True, slots=True)
class ErrorStatus:
    """The pipeline must be re-run (or answered) with ``status``."""

    status: int

    def interrupt(self) -> HTTPError:
        return HTTPError(self.status)


@dataclass(frozen=True, slots=True)
class Exhausted:
    """Recovery gave up; the caller must serve the fallback error body."""

    reason: str = "exhausted"


Outcome = Ok | Redirected | ErrorStatus | Exhausted


class Interrupt(Exception):
    """Base class for intentional non-local exits out of a hook."""

    def outcome(self) -> Redirected | ErrorStatus:
        raise NotImplementedError


class Redirect(Interrupt):
    """Raised by ``ControlContext.url(new_url)``."""

    def __init__(self, location: str, status: int = 302) -> None:
        if status not in REDIRECT_STATUSES:
            raise ValueError(f"Unsupported redirect status {status}")
        super().__init__(f"Redirect to {location} ({status})")
        self.location = str(location)
        self.status = status

    def outcome(self) -> Redirected:
        return Redirected(self.location, self.status)


class HTTPError(Interrupt):
    """Raised by ``ControlContext.error(code)``."""

    def __init__(self, status: int) -> None:
        super().__init__(f"HTTP error {status}")
        self.status = int(status)

    def outcome(self) -> ErrorStatus:
        return ErrorStatus(self.status)


__all__ = [
    "REDIRECT_STATUSES",
    "ErrorStatus",
    "Exhausted",
    "HTTPError",
    "Interrupt",
    "Ok",
    "Outcome",
    "Redirect",
    "Redirected",
    "is_redirect_status",
]
