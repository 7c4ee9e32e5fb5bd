# src/guildhall/realtime/session.py
"""Per-connection WebSocket session with a bounded outbound buffer."""

from __future__ import annotations

import asyncio
import itertools
import logging

from fastapi import WebSocket
from starlette.websockets import WebSocketDisconnect

logger = logging.getLogger(__name__)

_session_ids = itertools.count(1)


class WebSocketSession:
    """Outbound side of one gateway connection.

    :meth:`send` never blocks and may be called from any thread: frames are
    queued on the connection's event loop and written by :meth:`run_writer`.
    When the queue is full, new frames are dropped.
    """

    def __init__(self, websocket: WebSocket, user_id: int, queue_size: int = 256) -> None:
        self.websocket = websocket
        self.user_id = user_id
        self.session_id = next(_session_ids)
        self.closed = False
        self.dropped = 0
        self._loop = asyncio.get_running_loop()
        self._queue: asyncio.Queue[str | None] = asyncio.Queue(maxsize=queue_size)

    def __repr__(self) -> str:
        return f"<WebSocketSession {self.session_id} user={self.user_id}>"

    def send(self, frame: str) -> None:
        if self.closed:
            return
        try:
            self._loop.call_soon_threadsafe(self._enqueue, frame)
        except RuntimeError:
            # Event loop already shut down.
            self.closed = True

    def _enqueue(self, frame: str | None) -> None:
        try:
            self._queue.put_nowait(frame)
        except asyncio.QueueFull:
            self.dropped += 1
            logger.warning("Send buffer full for %r; dropped frame", self)

    async def run_writer(self) -> None:
        """Drain the queue to the socket until closed."""
        while True:
            frame = await self._queue.get()
            if frame is None:
                break
            try:
                await self.websocket.send_text(frame)
            except (WebSocketDisconnect, RuntimeError, OSError):
                logger.info("Writer for %r stopped: socket closed", self)
                break
        self.closed = True

    def close(self) -> None:
        """Stop accepting frames and let the writer finish."""
        if self.closed:
            return
        self.closed = True
        try:
            self._queue.put_nowait(None)
        except asyncio.QueueFull:
            logger.debug("Send buffer full while closing %r; writer will be cancelled", self)
