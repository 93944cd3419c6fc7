"""Primary public API for twinrender."""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version as _pkg_version

from twinrender.core import (
    FALLBACK_BODY,
    AppConfig,
    ControlContext,
    Element,
    Environment,
    FragmentDefinition,
    FragmentRegistry,
    FragmentRequest,
    GeoLocation,
    HookKind,
    PageRequest,
    RenderContext,
    RetryBudget,
    TwinRenderError,
    deserialize,
    load_config,
    register_type,
    serialize,
)


try:
    __version__ = _pkg_version("twinrender")
except PackageNotFoundError:  # pragma: no cover - source checkout without metadata
    __version__ = "0.0.0"


__all__ = [
    "FALLBACK_BODY",
    "AppConfig",
    "ControlContext",
    "Element",
    "Environment",
    "FragmentDefinition",
    "FragmentRegistry",
    "FragmentRequest",
    "GeoLocation",
    "HookKind",
    "PageRequest",
    "RenderContext",
    "RetryBudget",
    "TwinRenderError",
    "__version__",
    "deserialize",
    "load_config",
    "register_type",
    "serialize",
]
