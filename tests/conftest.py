from __future__ import annotations

from collections.abc import Iterator, Mapping
import logging
from pathlib import Path
from typing import Any

import httpx
import pytest

from twinrender.core.config import AppConfig, load_config
from twinrender.core.fragments import FragmentDefinition, FragmentRegistry
from twinrender.core.request import Environment


DEMO_ROOT = Path(__file__).resolve().parents[1] / "examples" / "demo"


class RecordingEmitter:
    """Emitter collecting every diagnostic for assertions."""

    debug_enabled = False

    def __init__(self) -> None:
        self.warnings: list[str] = []
        self.errors: list[tuple[str, BaseException | None]] = []
        self.events: list[tuple[str, dict[str, Any]]] = []

    def warning(self, message: str, exc: BaseException | None = None) -> None:
        self.warnings.append(message)

    def error(self, message: str, exc: BaseException | None = None) -> None:
        self.errors.append((message, exc))

    def event(self, name: str, payload: Mapping[str, Any]) -> None:
        self.events.append((name, dict(payload)))

    def names(self) -> list[str]:
        return [name for name, _ in self.events]


def backend_handler(request: httpx.Request) -> httpx.Response:
    return httpx.Response(200, text=f"backend:{request.url.path}")


def make_backend_env() -> Environment:
    """Environment whose ``backend`` binding answers from an in-memory transport."""
    client = httpx.AsyncClient(
        transport=httpx.MockTransport(backend_handler), base_url="https://backend"
    )
    return Environment(bindings={"backend": client})


def make_registry(*definitions: FragmentDefinition) -> FragmentRegistry:
    return FragmentRegistry(definitions)


def write_fragment(
    directory: Path,
    name: str,
    *,
    template: str | None = None,
    module: str | None = None,
) -> Path:
    fragment = directory / name
    fragment.mkdir(parents=True)
    if template is not None:
        (fragment / "fragment.html").write_text(template, encoding="utf-8")
    if module is not None:
        (fragment / "fragment.py").write_text(module, encoding="utf-8")
    return fragment


@pytest.fixture
def emitter() -> RecordingEmitter:
    return RecordingEmitter()


@pytest.fixture
def demo_config() -> AppConfig:
    return load_config(DEMO_ROOT)


@pytest.fixture
def backend_env() -> Environment:
    return make_backend_env()


@pytest.fixture(autouse=True)
def _restore_package_logger() -> Iterator[None]:
    logger = logging.getLogger("twinrender")
    handlers = list(logger.handlers)
    level = logger.level
    propagate = logger.propagate
    yield
    logger.handlers[:] = handlers
    logger.setLevel(level)
    logger.propagate = propagate
