"""Client side of the duplex fragment channel.

The channel multiplexes fragment sub-requests over one long-lived connection.
Establishment is serialised by a lock, every call is correlated by a random id
and times out on its own without tearing the connection down.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
import json
import logging
from typing import Any, Protocol
from uuid import uuid4

import httpx

from ..core.exceptions import ChannelError, ChannelTimeoutError
from .origin import FragmentResponse


logger = logging.getLogger(__name__)


class ChannelConnection(Protocol):
    """Minimal text-frame connection, as offered by websocket clients."""

    async def send_text(self, data: str) -> None: ...

    async def receive_text(self) -> str: ...

    async def close(self) -> None: ...


ConnectionFactory = Callable[[], Awaitable[ChannelConnection]]


class DuplexChannel:
    """Fragment calls multiplexed over a single connection."""

    def __init__(self, connect: ConnectionFactory, *, timeout: float = 10.0) -> None:
        self._connect = connect
        self.timeout = timeout
        self._lock = asyncio.Lock()
        self._connection: ChannelConnection | None = None
        self._reader: asyncio.Task[None] | None = None
        self._pending: dict[str, asyncio.Future[dict[str, Any]]] = {}

    @property
    def connected(self) -> bool:
        return self._connection is not None

    @property
    def pending(self) -> int:
        return len(self._pending)

    async def open(self, request: str) -> ChannelConnection:
        """Connect once, sending ``request`` as the opening frame."""
        async with self._lock:
            if self._connection is not None:
                return self._connection
            connection = await self._connect()
            await connection.send_text(request)
            self._connection = connection
            self._reader = asyncio.create_task(self._read(connection))
            logger.debug("Fragment channel established")
            return connection

    async def call(
        self,
        fragment_id: str,
        hook: str,
        props: list[list[str]],
        *,
        request: str,
    ) -> FragmentResponse:
        connection = await self.open(request)
        call_id = uuid4().hex
        future: asyncio.Future[dict[str, Any]] = asyncio.get_running_loop().create_future()
        self._pending[call_id] = future
        frame = {
            "id": call_id,
            "fragment": fragment_id,
            "hook": hook,
            "props": props,
            "request": request,
        }
        try:
            await connection.send_text(json.dumps(frame))
            reply = await asyncio.wait_for(future, self.timeout)
        except TimeoutError as exc:
            raise ChannelTimeoutError(
                f"No answer for {fragment_id}/{hook} within {self.timeout}s"
            ) from exc
        finally:
            self._pending.pop(call_id, None)

        return FragmentResponse(
            int(reply.get("status", 500)),
            httpx.Headers(reply.get("headers") or {}),
            reply.get("body") or "",
        )

    async def _read(self, connection: ChannelConnection) -> None:
        try:
            while True:
                text = await connection.receive_text()
                try:
                    reply = json.loads(text)
                    future = self._pending.get(reply["id"])
                except (ValueError, KeyError, TypeError):
                    logger.warning("Ignoring malformed channel frame")
                    continue
                if future is not None and not future.done():
                    future.set_result(reply)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.debug("Fragment channel closed: %s", exc)
            if self._connection is connection:
                self._connection = None
            self._fail_pending(ChannelError(f"Fragment channel closed: {exc}"))

    def _fail_pending(self, error: ChannelError) -> None:
        for future in self._pending.values():
            if not future.done():
                future.set_exception(error)

    async def close(self) -> None:
        """Stop the reader, close the connection and fail outstanding calls."""
        async with self._lock:
            reader, self._reader = self._reader, None
            connection, self._connection = self._connection, None
        if reader is not None:
            reader.cancel()
            try:
                await reader
            except asyncio.CancelledError:
                pass
        if connection is not None:
            await connection.close()
        self._fail_pending(ChannelError("Fragment channel closed"))


__all__ = ["ChannelConnection", "ConnectionFactory", "DuplexChannel"]
