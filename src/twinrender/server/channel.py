"""Server side of the duplex fragment channel.

The first text frame carries the serialised request. Every later frame is a
JSON call ``{"id", "fragment", "hook", "props"}`` (optionally with a fresher
``"request"``) answered by ``{"id", "status", "headers", "body"}``. Calls are
served concurrently; answers are correlated by ``id``.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

from starlette.websockets import WebSocket, WebSocketDisconnect

from ..core.exceptions import ChannelError, CodecError
from ..core.request import PageRequest
from .handler import FragmentResult, RequestHandler


logger = logging.getLogger(__name__)


class ChannelSession:
    """Answer fragment calls for one connected client.

    The session keeps the serialised request and rebuilds it for every call,
    so state written by one call never leaks into another.
    """

    def __init__(self, handler: RequestHandler) -> None:
        self.handler = handler
        self.frame: str | None = None

    def request(self) -> PageRequest:
        if self.frame is None:
            raise ChannelError("Channel call received before the opening frame")
        return PageRequest.deserialize(self.frame, env=self.handler.env)

    def open(self, frame: str) -> None:
        """Adopt the request carried by the opening frame."""
        PageRequest.deserialize(frame)
        self.frame = frame

    async def respond(self, frame: str) -> str:
        """Run the call described by ``frame`` and return the answer frame."""
        try:
            message = json.loads(frame)
            call_id = message["id"]
            fragment_id = str(message["fragment"])
            hook = str(message["hook"])
            props = {str(key): str(value) for key, value in message.get("props") or []}
        except (ValueError, KeyError, TypeError) as exc:
            raise ChannelError(f"Malformed channel frame: {exc}") from exc

        if message.get("request"):
            try:
                PageRequest.deserialize(message["request"])
            except CodecError as exc:
                logger.warning("Unreadable request in channel call %s: %s", call_id, exc)
                rejected = FragmentResult(400, body=str(exc))
                return json.dumps({"id": call_id, **rejected.as_frame()})
            self.frame = message["request"]

        result = await self.handler.run_fragment(self.request(), fragment_id, hook, props)
        payload: dict[str, Any] = {"id": call_id, **result.as_frame()}
        return json.dumps(payload)


async def channel_endpoint(websocket: WebSocket, handler: RequestHandler) -> None:
    """Serve one websocket connection until the client disconnects."""
    await websocket.accept()
    session = ChannelSession(handler)
    tasks: set[asyncio.Task[None]] = set()
    send_lock = asyncio.Lock()

    async def answer(frame: str) -> None:
        try:
            reply = await session.respond(frame)
        except (ChannelError, CodecError) as exc:
            logger.warning("Dropping channel frame: %s", exc)
            return
        async with send_lock:
            await websocket.send_text(reply)

    try:
        try:
            session.open(await websocket.receive_text())
        except CodecError as exc:
            logger.warning("Closing channel with an unreadable request: %s", exc)
            await websocket.close(code=1003)
            return
        while True:
            frame = await websocket.receive_text()
            task = asyncio.create_task(answer(frame))
            tasks.add(task)
            task.add_done_callback(tasks.discard)
    except WebSocketDisconnect:
        logger.debug("Channel client disconnected")
    finally:
        for task in tasks:
            task.cancel()


__all__ = ["ChannelSession", "channel_endpoint"]
