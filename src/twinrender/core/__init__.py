"""Substrate-independent pieces of the rendering pipeline."""

from __future__ import annotations

from .codec import deserialize, register_type, serialize
from .config import AppConfig, load_config
from .context import ControlContext, HookContext, HookKind, RenderContext
from .diagnostics import DiagnosticEmitter, LoggingEmitter, NullEmitter
from .element import Element
from .exceptions import (
    ChannelError,
    ChannelTimeoutError,
    CodecError,
    ConfigError,
    FragmentDefinitionError,
    FragmentNotFoundError,
    InterruptInRenderError,
    TwinRenderError,
    UnknownBindingError,
)
from .fragments import FragmentDefinition, FragmentHooks, FragmentRegistry
from .geolocation import GeoLocation
from .loader import Loader
from .outcomes import ErrorStatus, Exhausted, HTTPError, Ok, Outcome, Redirect, Redirected
from .recovery import FALLBACK_BODY, RetryBudget, handle_with_recovery
from .request import Environment, FragmentRequest, PageRequest


__all__ = [
    "FALLBACK_BODY",
    "AppConfig",
    "ChannelError",
    "ChannelTimeoutError",
    "CodecError",
    "ConfigError",
    "ControlContext",
    "DiagnosticEmitter",
    "Element",
    "Environment",
    "ErrorStatus",
    "Exhausted",
    "FragmentDefinition",
    "FragmentDefinitionError",
    "FragmentHooks",
    "FragmentNotFoundError",
    "FragmentRegistry",
    "FragmentRequest",
    "GeoLocation",
    "HTTPError",
    "HookContext",
    "HookKind",
    "InterruptInRenderError",
    "Loader",
    "LoggingEmitter",
    "NullEmitter",
    "Ok",
    "Outcome",
    "PageRequest",
    "Redirect",
    "Redirected",
    "RenderContext",
    "RetryBudget",
    "TwinRenderError",
    "UnknownBindingError",
    "deserialize",
    "handle_with_recovery",
    "load_config",
    "register_type",
    "serialize",
]
