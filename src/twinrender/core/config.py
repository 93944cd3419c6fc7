"""Application configuration loaded from ``twinrender.toml``.

AppConfig

`bindings` (`dict[str, str]`)
: Backend services reachable from hooks through ``binding:<name>/...`` URLs,
  mapped to the base URL the server forwards to.

`cors_origins` (`str`)
: Regular expression matched against the ``Origin`` header. Matching origins
  receive CORS headers exposing the ``Twin-*`` response headers.

`strip_comments` (`bool`)
: Remove HTML comments from full-page responses.

`deploy_url` (`str | None`)
: Base URL prepended to same-origin ``link[href]`` and ``[src]`` URLs of
  full-page responses, typically a CDN serving the assets directory.

`retry_budget` (`int`)
: Attempts available to one navigation before the fallback error body is
  served. Redirects followed on the client consume the same budget.

`fragment_dir` (`Path`)
: Directory holding one sub-directory per fragment, relative to the project.

`assets_dir` (`Path`)
: Directory served under ``/assets``.

`plugins` (`dict[str, str]`)
: Namespaced fragment collections: prefix mapped to a directory or an
  importable package. Fragments are registered as ``prefix:name``.

`channel_timeout` (`float`)
: Seconds a client waits for one fragment response over the duplex channel.

`geolocation_headers` (`dict[str, str]`)
: Request headers read to populate the request location.

A configuration file holds defaults at the top level and per-environment
overrides in ``[env.<name>]`` tables::

    retry_budget = 5

    [bindings]
    api = "https://api.example.com"

    [env.production]
    deploy_url = "https://cdn.example.com"
"""

from __future__ import annotations

from collections.abc import Mapping
import importlib.resources
from pathlib import Path
import re
import tomllib
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .exceptions import ConfigError
from .geolocation import DEFAULT_GEOLOCATION_HEADERS
from .recovery import DEFAULT_RETRY_BUDGET


CONFIG_FILENAME = "twinrender.toml"
DEFAULT_ENVIRONMENT = "local"
BUILTIN_PLUGIN_PREFIX = "twinrender"
BUILTIN_PLUGIN_PACKAGE = "twinrender.builtin_fragments"


class AppConfig(BaseModel):
    """Settings shared by the request handler, the client and the CLI."""

    model_config = ConfigDict(extra="forbid")

    bindings: dict[str, str] = Field(default_factory=dict)
    cors_origins: str = ".*"
    strip_comments: bool = False
    deploy_url: str | None = None
    retry_budget: int = Field(default=DEFAULT_RETRY_BUDGET, ge=1)
    fragment_dir: Path = Path("fragments")
    assets_dir: Path = Path("assets")
    plugins: dict[str, str] = Field(
        default_factory=lambda: {BUILTIN_PLUGIN_PREFIX: BUILTIN_PLUGIN_PACKAGE}
    )
    channel_timeout: float = Field(default=10.0, gt=0)
    geolocation_headers: dict[str, str] = Field(
        default_factory=lambda: dict(DEFAULT_GEOLOCATION_HEADERS)
    )

    @field_validator("cors_origins")
    @classmethod
    def check_pattern(cls, value: str) -> str:
        try:
            re.compile(value)
        except re.error as exc:
            raise ValueError(f"invalid origin pattern: {exc}") from exc
        return value

    def origin_allowed(self, origin: str | None) -> bool:
        """Return True when ``origin`` matches ``cors_origins``."""
        if not origin:
            return False
        return re.fullmatch(self.cors_origins, origin) is not None

    def resolve(self, root: Path) -> AppConfig:
        """Return a copy whose relative directories are anchored at ``root``."""
        return self.model_copy(
            update={
                "fragment_dir": _anchor(root, self.fragment_dir),
                "assets_dir": _anchor(root, self.assets_dir),
            }
        )

    def plugin_dirs(self, root: Path | None = None) -> dict[str, Path]:
        """Resolve every plugin entry to a fragment directory."""
        resolved: dict[str, Path] = {}
        for prefix, target in self.plugins.items():
            candidate = _anchor(root, Path(target)) if root is not None else Path(target)
            if candidate.is_dir():
                resolved[prefix] = candidate
                continue
            try:
                package = importlib.resources.files(target)
            except (ModuleNotFoundError, TypeError) as exc:
                raise ConfigError(
                    f"Plugin '{prefix}' is neither a directory nor a package: {target}"
                ) from exc
            resolved[prefix] = Path(str(package))
        return resolved


def _anchor(root: Path | None, path: Path) -> Path:
    if root is None or path.is_absolute():
        return path
    return (root / path).resolve()


def merge_environment(data: Mapping[str, Any], env: str | None) -> dict[str, Any]:
    """Overlay the ``[env.<name>]`` table of ``data`` onto its top-level keys."""
    merged = {key: value for key, value in data.items() if key != "env"}
    environments = data.get("env") or {}
    if not isinstance(environments, Mapping):
        raise ConfigError("The 'env' table must map environment names to tables")
    if env is None:
        return merged
    overrides = environments.get(env) or {}
    if not isinstance(overrides, Mapping):
        raise ConfigError(f"Environment '{env}' must be a table")
    for key, value in overrides.items():
        current = merged.get(key)
        if isinstance(current, Mapping) and isinstance(value, Mapping):
            merged[key] = {**current, **value}
        else:
            merged[key] = value
    return merged


def load_config(root: Path, env: str | None = DEFAULT_ENVIRONMENT) -> AppConfig:
    """Load ``twinrender.toml`` from ``root``; a missing file yields defaults."""
    root = Path(root)
    path = root / CONFIG_FILENAME
    data: dict[str, Any] = {}
    if path.exists():
        try:
            data = tomllib.loads(path.read_text(encoding="utf-8"))
        except OSError as exc:  # pragma: no cover - IO failure
            raise ConfigError(f"Failed to read {path}: {exc}") from exc
        except tomllib.TOMLDecodeError as exc:
            raise ConfigError(f"Invalid configuration file {path}: {exc}") from exc

    try:
        config = AppConfig.model_validate(merge_environment(data, env))
    except ValidationError as exc:
        raise ConfigError(f"Configuration validation failed: {exc}") from exc
    return config.resolve(root)


__all__ = [
    "BUILTIN_PLUGIN_PACKAGE",
    "BUILTIN_PLUGIN_PREFIX",
    "CONFIG_FILENAME",
    "DEFAULT_ENVIRONMENT",
    "AppConfig",
    "load_config",
    "merge_environment",
]
