"""Client substrate: live document, fragment cache and origin fallback."""

from __future__ import annotations

from .app import ClientApplication, follow_redirect
from .cache import FragmentCache
from .channel import ChannelConnection, DuplexChannel
from .cookies import CookieStore
from .loader import ClientLoader
from .origin import FragmentResponse, OriginLoader
from .strategy import ClientStrategy
from .tree import FragmentNode, FragmentTree


__all__ = [
    "ChannelConnection",
    "ClientApplication",
    "ClientLoader",
    "ClientStrategy",
    "CookieStore",
    "DuplexChannel",
    "FragmentCache",
    "FragmentNode",
    "FragmentResponse",
    "FragmentTree",
    "OriginLoader",
    "follow_redirect",
]
