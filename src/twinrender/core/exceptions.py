"""Custom exception hierarchy for the rendering pipeline."""

from __future__ import annotations


class TwinRenderError(RuntimeError):
    """Base exception for rendering failures."""


class ConfigError(TwinRenderError):
    """Raised when the application configuration cannot be loaded."""


class CodecError(TwinRenderError):
    """Raised when a value cannot be serialised or a payload cannot be decoded."""


class FragmentNotFoundError(TwinRenderError):
    """Raised when a fragment identifier is missing from the registry."""

    def __init__(self, fragment_id: str) -> None:
        super().__init__(f"Unknown fragment '{fragment_id}'")
        self.fragment_id = fragment_id


class FragmentDefinitionError(TwinRenderError):
    """Raised when a fragment directory or module is malformed."""


class UnknownBindingError(TwinRenderError):
    """Raised when a hook fetches a ``binding:`` URL that is not configured."""


class InterruptInRenderError(TwinRenderError):
    """Raised when a redirect or HTTP error escapes a render hook."""


class ChannelError(TwinRenderError):
    """Raised when the duplex fragment channel fails."""


class ChannelTimeoutError(ChannelError):
    """Raised when a single fragment fetch over the channel times out."""


def exception_messages(exc: BaseException) -> list[str]:
    """Return the collected message chain for an exception and its causes."""
    messages: list[str] = []
    visited: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in visited:
        visited.add(id(current))
        text = str(current).strip()
        if text:
            first_line = text.splitlines()[0].strip()
            if first_line:
                messages.append(first_line)
        current = current.__cause__ or current.__context__
    return messages


def exception_hint(exc: BaseException) -> str | None:
    """Return the most specific message available for an exception chain."""
    messages = exception_messages(exc)
    return messages[-1] if messages else None


__all__ = [
    "ChannelError",
    "ChannelTimeoutError",
    "CodecError",
    "ConfigError",
    "FragmentDefinitionError",
    "FragmentNotFoundError",
    "InterruptInRenderError",
    "TwinRenderError",
    "UnknownBindingError",
    "exception_hint",
    "exception_messages",
]
