"""Starlette application wiring the request handler to its routes."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
import logging
from pathlib import Path

import httpx
from starlette.applications import Starlette
from starlette.routing import BaseRoute, Mount, Route, WebSocketRoute
from starlette.staticfiles import StaticFiles
from starlette.websockets import WebSocket

from ..core.config import DEFAULT_ENVIRONMENT, AppConfig, load_config
from ..core.diagnostics import DiagnosticEmitter
from ..core.fragments import FragmentRegistry
from ..core.headers import ASSETS_PATH, BINDING_PATH, CHANNEL_PATH, FRAGMENT_PATH, LOCATION_PATH
from ..core.request import Environment
from .channel import channel_endpoint
from .handler import RequestHandler


logger = logging.getLogger(__name__)

PROXY_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE"]


def build_environment(config: AppConfig) -> Environment:
    """Create one HTTP client per configured binding plus a general client."""
    bindings = {
        name: httpx.AsyncClient(base_url=url, follow_redirects=True)
        for name, url in config.bindings.items()
    }
    return Environment(bindings=bindings, http=httpx.AsyncClient(follow_redirects=True))


async def close_environment(env: Environment) -> None:
    for client in env.bindings.values():
        await client.aclose()
    if env.http is not None:
        await env.http.aclose()


def discover_registry(config: AppConfig, root: Path | None = None) -> FragmentRegistry:
    fragment_dir = config.fragment_dir if config.fragment_dir.is_dir() else None
    if fragment_dir is None:
        logger.warning("Fragment directory %s does not exist", config.fragment_dir)
    return FragmentRegistry.discover(fragment_dir, config.plugin_dirs(root))


def create_app(
    config: AppConfig,
    *,
    root: Path | None = None,
    registry: FragmentRegistry | None = None,
    env: Environment | None = None,
    emitter: DiagnosticEmitter | None = None,
) -> Starlette:
    """Build the ASGI application serving pages, fragments and the channel."""
    if registry is None:
        registry = discover_registry(config, root)
    owns_env = env is None
    environment = env if env is not None else build_environment(config)
    handler = RequestHandler(registry, config, env=environment, emitter=emitter)

    @asynccontextmanager
    async def lifespan(app: Starlette) -> AsyncIterator[None]:
        try:
            yield
        finally:
            if owns_env:
                await close_environment(environment)

    async def channel(websocket: WebSocket) -> None:
        await channel_endpoint(websocket, handler)

    routes: list[BaseRoute] = []
    if config.assets_dir.is_dir():
        routes.append(
            Mount(ASSETS_PATH, app=StaticFiles(directory=config.assets_dir), name="assets")
        )
    routes.extend(
        [
            Route(f"{BINDING_PATH}/{{name}}", handler.proxy_binding, methods=PROXY_METHODS),
            Route(f"{BINDING_PATH}/{{name}}", handler.preflight, methods=["OPTIONS"]),
            Route(LOCATION_PATH, handler.locate, methods=["GET"]),
            Route(
                f"{FRAGMENT_PATH}/{{fragment}}/{{hook}}",
                handler.handle_fragment,
                methods=["GET", "POST"],
            ),
            Route(f"{FRAGMENT_PATH}/{{fragment}}/{{hook}}", handler.preflight, methods=["OPTIONS"]),
            WebSocketRoute(CHANNEL_PATH, channel),
            Route("/{path:path}", handler.handle_page, methods=["GET", "POST"]),
        ]
    )

    app = Starlette(routes=routes, lifespan=lifespan)
    app.state.handler = handler
    app.state.config = config
    logger.debug("Application ready with %d fragments", len(registry))
    return app


def create_app_from_root(
    root: Path,
    env: str | None = DEFAULT_ENVIRONMENT,
    *,
    emitter: DiagnosticEmitter | None = None,
) -> Starlette:
    """Load ``twinrender.toml`` from ``root`` and build the application."""
    root = Path(root).resolve()
    return create_app(load_config(root, env), root=root, emitter=emitter)


__all__ = [
    "build_environment",
    "close_environment",
    "create_app",
    "create_app_from_root",
    "discover_registry",
]
