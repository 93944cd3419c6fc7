"""Server substrate: request handler, loader and ASGI application."""

from __future__ import annotations

from .app import build_environment, create_app, create_app_from_root
from .channel import ChannelSession
from .handler import FragmentResult, RequestHandler
from .loader import ServerLoader
from .strategy import ServerStrategy


__all__ = [
    "ChannelSession",
    "FragmentResult",
    "RequestHandler",
    "ServerLoader",
    "ServerStrategy",
    "build_environment",
    "create_app",
    "create_app_from_root",
]
